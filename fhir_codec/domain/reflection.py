"""Reflective Type Layer.

The ``Reflective`` mixin gives every element model the surface the path
evaluator walks: ``children``, ``equal``, ``equivalent``, the eight scalar
coercions and ``type_info``. Everything here is driven by the class's field
table (``__fhir_fields__``), never by inspecting attribute values.

Comparison follows three-valued logic: ``equal`` and ``equivalent`` return
``None`` when the two values are not comparable instead of raising, and a
coercion with no valid projection returns a failed ``Result`` carrying a
``ConversionError``.
"""

from typing import Any, Dict, List, Optional

from fhir_codec.domain.fields import FieldKind, FieldSpec
from fhir_codec.domain.ports import ConversionError, ReflectivePort, Result
from fhir_codec.domain.registry import registry
from fhir_codec.domain.type_info import ClassInfo, ClassInfoElement, TypeSpecifier

CONVERSION_TARGETS = (
    "Boolean",
    "String",
    "Integer",
    "Decimal",
    "Date",
    "Time",
    "DateTime",
    "Quantity",
)


class Reflective(ReflectivePort):
    """Field-table driven implementation of the reflective surface."""

    __fhir_fields__: Dict[str, FieldSpec] = {}

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------

    def children(self, *names: str) -> List[Any]:
        """Return the ordered immediate children of this element.

        Lists are flattened; absent fields and empty primitives contribute
        nothing. String attributes (``id``, ``Extension.url``) and narrative
        XHTML are surfaced as primitive elements so the caller only ever
        sees reflective values.

        Parameters:
            *names: Wire names to include (all fields when omitted); a
                choice field is selected by its base name (``value``)

        Returns:
            List of child elements in field-table order
        """
        result: List[Any] = []
        for spec in self.__fhir_fields__.values():
            if names and spec.name not in names:
                continue
            value = getattr(self, spec.attr)
            if value is None:
                continue
            if spec.kind in (FieldKind.ATTRIBUTE, FieldKind.XHTML):
                result.append(_wrap_scalar(spec, value))
            else:
                result.extend(item for item in (value if spec.many else [value]) if not _is_absent(item))
        return result

    # ------------------------------------------------------------------
    # Equality
    # ------------------------------------------------------------------

    def equal(self, other: Any) -> Optional[bool]:
        """Strict deep equality, field by field in table order.

        A child only matches the child in the same field at the same list
        position, so equal values held by different fields never compare
        equal.

        Returns:
            True or False for values of the same type, None when ``other``
            is not comparable with this element
        """
        if type(other) is not type(self):
            return None
        for spec in self.__fhir_fields__.values():
            if not sequence_equal(self.children(spec.name), other.children(spec.name)):
                return False
        return True

    def equivalent(self, other: Any) -> Optional[bool]:
        """Deep equality after removing the top-level ``id`` from both sides."""
        if type(other) is not type(self):
            return None
        return self._without_id().equal(other._without_id())

    def _without_id(self) -> "Reflective":
        if "id" not in self.__fhir_fields__:
            return self
        return self.model_copy(update={self.__fhir_fields__["id"].attr: None})

    # ------------------------------------------------------------------
    # Scalar coercions
    # ------------------------------------------------------------------

    def to_boolean(self, explicit: bool = False) -> Result:
        return self._convert("Boolean", explicit)

    def to_string(self, explicit: bool = False) -> Result:
        return self._convert("String", explicit)

    def to_integer(self, explicit: bool = False) -> Result:
        return self._convert("Integer", explicit)

    def to_decimal(self, explicit: bool = False) -> Result:
        return self._convert("Decimal", explicit)

    def to_date(self, explicit: bool = False) -> Result:
        return self._convert("Date", explicit)

    def to_time(self, explicit: bool = False) -> Result:
        return self._convert("Time", explicit)

    def to_date_time(self, explicit: bool = False) -> Result:
        return self._convert("DateTime", explicit)

    def to_quantity(self, explicit: bool = False) -> Result:
        return self._convert("Quantity", explicit)

    def _convert(self, target: str, explicit: bool) -> Result:
        """Project this element onto a system type; composites have no projection."""
        return self._not_convertible(target)

    def _not_convertible(self, target: str) -> Result:
        source = type(self).fhir_type
        error = ConversionError(
            f"cannot convert {source} to {target}",
            source_type=source,
            target_type=target,
        )
        return Result.failure_result(
            error,
            error_type="ConversionError",
            error_details={"source_type": source, "target_type": target},
        )

    # ------------------------------------------------------------------
    # Type information
    # ------------------------------------------------------------------

    @classmethod
    def type_info(cls) -> ClassInfo:
        """Static descriptor of this type and its declared elements."""
        elements = [
            ClassInfoElement(
                name=spec.name,
                type=TypeSpecifier(name=spec.type_name, list=spec.many),
                choices=spec.choices,
            )
            for spec in cls.__fhir_fields__.values()
        ]
        base = _base_type_name(cls)
        return ClassInfo(
            name=cls.fhir_type,
            base_type=TypeSpecifier(name=base) if base else None,
            element=elements,
        )


def _base_type_name(cls: type) -> Optional[str]:
    for base in cls.__mro__[1:]:
        name = base.__dict__.get("fhir_type")
        if name:
            return name
    return None


def _wrap_scalar(spec: FieldSpec, value: Any) -> Any:
    klass = registry.get_type(spec.type_name)
    return klass(value=value)


def sequence_equal(left: List[Any], right: List[Any]) -> bool:
    if len(left) != len(right):
        return False
    for a, b in zip(left, right):
        if not a.equal(b):
            return False
    return True


def _is_absent(value: Any) -> bool:
    # A primitive with neither value nor decoration is never emitted.
    return getattr(value, "is_primitive", False) and value.is_empty()

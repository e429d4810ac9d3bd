"""Declarative field table entries for FHIR element models.

Every model attribute that appears on the wire carries a ``FieldSpec`` in
its ``Annotated`` metadata. The codecs, ``children`` and ``type_info`` all
walk this table instead of inspecting attribute values, so the order in
which fields are declared is the order in which they are encoded.

Example:
    ```python
    class Period(DataType):
        start: Annotated[Optional[DateTime], primitive("dateTime")] = None
        end: Annotated[Optional[DateTime], primitive("dateTime")] = None
    ```
"""

import functools
import inspect
import typing
from dataclasses import dataclass, replace
from enum import Enum
from typing import Dict, Iterable, Optional, Tuple

from pydantic.alias_generators import to_camel


class FieldKind(str, Enum):
    """How a field is represented on the wire."""

    ATTRIBUTE = "attribute"  # plain string, XML attribute (Element.id, Extension.url)
    PRIMITIVE = "primitive"
    COMPLEX = "complex"
    CHOICE = "choice"
    RESOURCE = "resource"
    XHTML = "xhtml"


@dataclass(frozen=True)
class FieldSpec:
    """One entry in a type's field table.

    Attributes:
        kind: Wire representation of the field
        type_name: Declared FHIR type (``DataType`` for choices, ``Resource``
            for any-resource slots)
        many: True for list fields
        choices: Concrete type names a choice field may hold, in declared order
        required: True when the field must be present
        name: Wire name, e.g. ``birthDate`` (derived from the attribute name)
        attr: Python attribute name, e.g. ``birth_date``
    """

    kind: FieldKind
    type_name: str
    many: bool = False
    choices: Tuple[str, ...] = ()
    required: bool = False
    name: str = ""
    attr: str = ""

    @property
    def is_choice(self) -> bool:
        return self.kind is FieldKind.CHOICE

    def wire_name_for(self, type_name: str) -> str:
        """Wire name of a choice field holding ``type_name`` (``value`` + ``Date``)."""
        return self.name + choice_suffix(type_name)


def choice_suffix(type_name: str) -> str:
    """Suffix naming a concrete type in a choice field: first letter upper-cased."""
    return type_name[:1].upper() + type_name[1:]


def attribute(required: bool = False, type_name: str = "string", name: str = "") -> FieldSpec:
    return FieldSpec(kind=FieldKind.ATTRIBUTE, type_name=type_name, required=required, name=name)


def primitive(type_name: str, many: bool = False, required: bool = False, name: str = "") -> FieldSpec:
    return FieldSpec(kind=FieldKind.PRIMITIVE, type_name=type_name, many=many, required=required, name=name)


def element(type_name: str, many: bool = False, required: bool = False, name: str = "") -> FieldSpec:
    return FieldSpec(kind=FieldKind.COMPLEX, type_name=type_name, many=many, required=required, name=name)


def choice(*type_names: str, required: bool = False, name: str = "") -> FieldSpec:
    if not type_names:
        raise ValueError("a choice field needs at least one type")
    return FieldSpec(
        kind=FieldKind.CHOICE,
        type_name="DataType",
        choices=tuple(type_names),
        required=required,
        name=name,
    )


def resource(many: bool = False, name: str = "") -> FieldSpec:
    return FieldSpec(kind=FieldKind.RESOURCE, type_name="Resource", many=many, name=name)


def xhtml(required: bool = False) -> FieldSpec:
    return FieldSpec(kind=FieldKind.XHTML, type_name="xhtml", required=required)


def collect_fields(klass: type) -> Dict[str, FieldSpec]:
    """Build the ordered field table of a model class.

    Walks the class hierarchy base-first so inherited fields keep their
    position ahead of the subclass's own fields. A subclass re-declaring an
    attribute keeps the original position.

    Parameters:
        klass: Model class

    Returns:
        Dict[str, FieldSpec]: Field specs keyed by wire name, in wire order
    """
    by_attr: Dict[str, FieldSpec] = {}
    for base in reversed(klass.__mro__):
        for attr, annotation in _own_annotations(base):
            spec = _spec_from_annotation(annotation)
            if spec is None:
                continue
            by_attr[attr] = replace(spec, attr=attr, name=spec.name or to_camel(attr))
    return {spec.name: spec for spec in by_attr.values()}


def _own_annotations(base: type) -> Iterable[Tuple[str, object]]:
    if base is object:
        return ()
    return inspect.get_annotations(base).items()


def _spec_from_annotation(annotation: object) -> Optional[FieldSpec]:
    if typing.get_origin(annotation) is not typing.Annotated:
        return None
    for meta in annotation.__metadata__:
        if isinstance(meta, FieldSpec):
            return meta
    return None


@functools.lru_cache(maxsize=None)
def wire_index(klass: type) -> Dict[str, Tuple[FieldSpec, str]]:
    """Map every legal wire name of a class to its field and concrete type.

    Choice fields contribute one entry per declared type (``valueString``,
    ``valueQuantity``, ...) and none for their bare base name.
    """
    index: Dict[str, Tuple[FieldSpec, str]] = {}
    for spec in klass.__fhir_fields__.values():
        if spec.kind is FieldKind.CHOICE:
            for type_name in spec.choices:
                index[spec.wire_name_for(type_name)] = (spec, type_name)
        else:
            index[spec.name] = (spec, spec.type_name)
    return index

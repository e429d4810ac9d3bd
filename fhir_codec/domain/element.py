"""Structural Element Model.

A FHIR element is an immutable pydantic model whose wire-visible fields
are declared in an ``Annotated`` field table (see ``fhir_codec.domain.fields``).
Subclasses register themselves in the type registry as they are defined.

Class hierarchy:
    Base
    ├── Element (id, extension)
    │   ├── DataType
    │   │   └── Extension (url, value[x])
    │   ├── BackboneElement (modifierExtension)
    │   └── PrimitiveType (see primitives.py)
    └── Resource (see resource.py)
"""

from typing import Annotated, Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from fhir_codec.domain.fields import FieldKind, attribute, choice, collect_fields, element
from fhir_codec.domain.ports import DecodeError
from fhir_codec.domain.reflection import Reflective
from fhir_codec.domain.registry import registry


class Base(BaseModel, Reflective):
    """Root of every FHIR element and resource model."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="forbid",
    )

    fhir_type: ClassVar[str] = "Base"
    is_primitive: ClassVar[bool] = False
    is_resource: ClassVar[bool] = False

    __fhir_abstract__ = True

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs):
        super().__pydantic_init_subclass__(**kwargs)
        if "fhir_type" not in cls.__dict__:
            cls.fhir_type = cls.__name__
        cls.__fhir_fields__ = collect_fields(cls)
        registry.register(cls)

    @model_validator(mode="after")
    def _check_field_types(self):
        """Each field holds exactly its declared type.

        A choice field holds one of its declared types. Any other element
        field holds the declared type itself and not a specialisation
        (``Age`` in a ``Quantity`` field), since the wire format cannot
        name the subtype.
        """
        for spec in self.__fhir_fields__.values():
            if spec.kind not in (FieldKind.CHOICE, FieldKind.PRIMITIVE, FieldKind.COMPLEX):
                continue
            value = getattr(self, spec.attr)
            for item in (value if spec.many else [value]):
                if item is None:
                    continue
                held = getattr(type(item), "fhir_type", type(item).__name__)
                if spec.kind is FieldKind.CHOICE:
                    if held not in spec.choices:
                        raise ValueError(
                            f"{type(self).fhir_type}.{spec.name}[x] cannot hold {held}; "
                            f"expected one of: {', '.join(spec.choices)}"
                        )
                elif held != spec.type_name:
                    raise ValueError(
                        f"{type(self).fhir_type}.{spec.name} cannot hold {held}; "
                        f"declared type is {spec.type_name}"
                    )
        return self

    def is_empty(self) -> bool:
        """True when no field carries a value."""
        for spec in self.__fhir_fields__.values():
            value = getattr(self, spec.attr)
            if spec.many:
                if value:
                    return False
            elif value is not None:
                return False
        return True


class Element(Base):
    """Base for every element: an optional id and ordered extensions."""

    __fhir_abstract__ = True

    id: Annotated[Optional[str], attribute()] = None
    extension: Annotated[List["Extension"], element("Extension", many=True)] = []


class DataType(Element):
    __fhir_abstract__ = True


class BackboneElement(Element):
    """Element nested inside a resource definition (e.g. Observation.component)."""

    __fhir_abstract__ = True

    modifier_extension: Annotated[List["Extension"], element("Extension", many=True)] = []


EXTENSION_VALUE_TYPES = (
    "base64Binary",
    "boolean",
    "canonical",
    "code",
    "date",
    "dateTime",
    "decimal",
    "id",
    "instant",
    "integer",
    "markdown",
    "oid",
    "positiveInt",
    "string",
    "time",
    "unsignedInt",
    "uri",
    "url",
    "uuid",
    "Address",
    "Age",
    "Annotation",
    "Attachment",
    "CodeableConcept",
    "Coding",
    "ContactPoint",
    "Duration",
    "HumanName",
    "Identifier",
    "Meta",
    "Period",
    "Quantity",
    "Range",
    "Ratio",
    "Reference",
)


class Extension(DataType):
    """Additional content keyed by a URL, with one typed value or nested extensions."""

    url: Annotated[str, attribute(required=True, type_name="uri")]
    value: Annotated[Optional[Element], choice(*EXTENSION_VALUE_TYPES)] = None


def build_element(klass: type, values: Dict[str, Any], path: str) -> Any:
    """Instantiate a decoded element, reporting validation failures as DecodeError.

    Parameters:
        klass: Model class to build
        values: Field values keyed by attribute name
        path: Document path of the element, for error messages

    Raises:
        DecodeError: If the values do not validate (first error reported)
    """
    try:
        return klass(**values)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        field = str(first["loc"][0]) if first["loc"] else None
        raise DecodeError(
            f"invalid {klass.fhir_type} at {path}: {location or 'value'}: {first['msg']}",
            type_name=klass.fhir_type,
            field=field,
            path=path,
        ) from e

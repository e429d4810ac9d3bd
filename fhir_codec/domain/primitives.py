"""Primitive Value Model.

A primitive pairs an optional scalar ``value`` with the element decoration
every FHIR element carries (``id`` and ``extension``). The two halves are
independent: a primitive may carry decoration without a value, and the
structured-text codec writes them as separate wire fields.

Scalars are held in their natural Python form: ``bool``, ``int``,
``decimal.Decimal`` (exact lexical precision) and ``str`` for every string,
URI, binary and date/time type. Date/time values stay strings so partial
dates such as ``2020-05`` round-trip unchanged; the coercions project them
onto system date/time values.

Security Impact:
    - Lexical forms are validated at construction; malformed scalars never
      enter a decoded tree
    - Integers are bounded to the 32-bit range
"""

import decimal
import re
from typing import Annotated, Any, ClassVar, Optional, Pattern, Tuple

from pydantic import BaseModel, Field, StrictBool, StrictInt, StrictStr, field_validator, model_validator

from fhir_codec.domain.element import Element
from fhir_codec.domain.ports import Result
from fhir_codec.domain.reflection import sequence_equal
from fhir_codec.domain.system_types import SystemDate, SystemDateTime, SystemQuantity, SystemTime

INT32_MIN = -2147483648
INT32_MAX = 2147483647

_YEAR = r"([0-9]([0-9]([0-9][1-9]|[1-9]0)|[1-9]00)|[1-9]000)"
_TIME = r"([01][0-9]|2[0-3]):[0-5][0-9]:([0-5][0-9]|60)(\.[0-9]+)?"
_ZONE = r"(Z|(\+|-)((0[0-9]|1[0-3]):[0-5][0-9]|14:00))"

DATE_PATTERN = re.compile(_YEAR + r"(-(0[1-9]|1[0-2])(-(0[1-9]|[1-2][0-9]|3[0-1]))?)?")
DATETIME_PATTERN = re.compile(
    _YEAR + r"(-(0[1-9]|1[0-2])(-(0[1-9]|[1-2][0-9]|3[0-1])(T" + _TIME + _ZONE + r")?)?)?"
)
INSTANT_PATTERN = re.compile(
    _YEAR + r"-(0[1-9]|1[0-2])-(0[1-9]|[1-2][0-9]|3[0-1])T" + _TIME + _ZONE
)
TIME_PATTERN = re.compile(_TIME)
DECIMAL_PATTERN = re.compile(r"-?(0|[1-9][0-9]*)(\.[0-9]+)?([eE][+-]?[0-9]+)?")
INTEGER_PATTERN = re.compile(r"[0]|[-+]?[1-9][0-9]*")


class PrimitiveType(Element):
    """Base of all primitive types.

    Subclasses declare the Python type of ``value``, the lexical pattern
    enforced on string values, the system type used for comparisons and
    the system types the value converts to implicitly.
    """

    __fhir_abstract__ = True

    is_primitive: ClassVar[bool] = True
    lexical_pattern: ClassVar[Optional[Pattern]] = None
    system_type: ClassVar[str] = "String"
    conversions: ClassVar[Tuple[str, ...]] = ("String",)

    value: Optional[Any] = None

    @model_validator(mode="before")
    @classmethod
    def _from_scalar(cls, data: Any) -> Any:
        """Allow ``String("x")``-style construction from a bare scalar."""
        if data is None or isinstance(data, (dict, BaseModel)):
            return data
        return {"value": data}

    def __init__(self, value: Any = None, /, **data: Any):
        if value is not None:
            data["value"] = value
        super().__init__(**data)

    @field_validator("value")
    @classmethod
    def _check_lexical_form(cls, value: Any) -> Any:
        if isinstance(value, str) and cls.lexical_pattern is not None:
            if cls.lexical_pattern.fullmatch(value) is None:
                raise ValueError(f"invalid {cls.fhir_type} value: {value!r}")
        return value

    # ------------------------------------------------------------------
    # Value / decoration
    # ------------------------------------------------------------------

    def has_value(self) -> bool:
        return self.value is not None

    def has_decoration(self) -> bool:
        return self.id is not None or bool(self.extension)

    def is_empty(self) -> bool:
        return not self.has_value() and not self.has_decoration()

    # ------------------------------------------------------------------
    # Wire scalars
    # ------------------------------------------------------------------

    @classmethod
    def parse_json_value(cls, raw: Any) -> Any:
        """Validate the JSON type of a scalar; string types take JSON strings."""
        if not isinstance(raw, str):
            raise ValueError(f"expected a JSON string for {cls.fhir_type}, got {_json_type(raw)}")
        return raw

    def json_value(self) -> Any:
        return self.value

    @classmethod
    def parse_xml_value(cls, text: str) -> Any:
        return text

    def xml_value(self) -> str:
        return str(self.value)

    # ------------------------------------------------------------------
    # Reflection
    # ------------------------------------------------------------------

    def comparable_with(self, other: Any) -> bool:
        if not isinstance(other, PrimitiveType):
            return False
        if self.system_type == other.system_type:
            return True
        return {self.system_type, other.system_type} == {"Integer", "Decimal"}

    def equal(self, other: Any) -> Optional[bool]:
        """Compare value, id and extensions.

        Returns None when ``other`` is not a primitive of a comparable
        system type.
        """
        if not self.comparable_with(other):
            return None
        if not self._value_equal(other):
            return False
        if self.id != other.id:
            return False
        return sequence_equal(self.extension, other.extension)

    def equivalent(self, other: Any) -> Optional[bool]:
        if not self.comparable_with(other):
            return None
        return self._without_id().equal(other._without_id())

    def _value_equal(self, other: "PrimitiveType") -> bool:
        if self.value is None or other.value is None:
            return self.value is None and other.value is None
        if self.system_type != other.system_type:
            return decimal.Decimal(self.value) == decimal.Decimal(other.value)
        return self.value == other.value

    def _convert(self, target: str, explicit: bool) -> Result:
        if target not in self.conversions and not (explicit and target == "String"):
            return self._not_convertible(target)
        if self.value is None:
            return Result.success_result(None)
        return Result.success_result(self._system_value(target))

    def _system_value(self, target: str) -> Any:
        if target == "String":
            return self.xml_value()
        if target == "Date":
            return SystemDate.parse(self.value)
        if target == "Time":
            return SystemTime.parse(self.value)
        if target == "DateTime":
            return SystemDateTime.parse(self.value)
        if target == "Decimal":
            return decimal.Decimal(self.value)
        if target == "Quantity":
            return SystemQuantity(value=decimal.Decimal(self.value))
        return self.value


def _json_type(raw: Any) -> str:
    if raw is None:
        return "null"
    if isinstance(raw, bool):
        return "boolean"
    if isinstance(raw, (int, decimal.Decimal, float)):
        return "number"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, list):
        return "array"
    return "object"


# ============================================================================
# String family
# ============================================================================

class String(PrimitiveType):
    fhir_type = "string"
    lexical_pattern = re.compile(r"[ \r\n\t\S]+")

    value: Optional[StrictStr] = None


class Code(String):
    fhir_type = "code"
    lexical_pattern = re.compile(r"[^\s]+(\s[^\s]+)*")


class Id(String):
    fhir_type = "id"
    lexical_pattern = re.compile(r"[A-Za-z0-9\-\.]{1,64}")


class Markdown(String):
    fhir_type = "markdown"
    lexical_pattern = re.compile(r"[\s\S]+")


class Uri(PrimitiveType):
    fhir_type = "uri"
    lexical_pattern = re.compile(r"\S*")

    value: Optional[StrictStr] = None


class Url(Uri):
    fhir_type = "url"


class Canonical(Uri):
    fhir_type = "canonical"


class Oid(Uri):
    fhir_type = "oid"
    lexical_pattern = re.compile(r"urn:oid:[0-2](\.(0|[1-9][0-9]*))+")


class Uuid(Uri):
    fhir_type = "uuid"
    lexical_pattern = re.compile(
        r"urn:uuid:[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"
    )


class Base64Binary(PrimitiveType):
    fhir_type = "base64Binary"
    lexical_pattern = re.compile(r"(\s*([0-9a-zA-Z+/=]){4}\s*)+")

    value: Optional[StrictStr] = None


class Xhtml(PrimitiveType):
    """Narrative XHTML markup, held as serialized text."""

    fhir_type = "xhtml"

    value: Optional[StrictStr] = None


# ============================================================================
# Boolean and numbers
# ============================================================================

class Boolean(PrimitiveType):
    fhir_type = "boolean"
    system_type = "Boolean"
    conversions = ("Boolean",)

    value: Optional[StrictBool] = None

    @classmethod
    def parse_json_value(cls, raw: Any) -> Any:
        if not isinstance(raw, bool):
            raise ValueError(f"expected a JSON boolean for boolean, got {_json_type(raw)}")
        return raw

    @classmethod
    def parse_xml_value(cls, text: str) -> Any:
        if text == "true":
            return True
        if text == "false":
            return False
        raise ValueError(f"invalid boolean value: {text!r}")

    def xml_value(self) -> str:
        return "true" if self.value else "false"


class Integer(PrimitiveType):
    fhir_type = "integer"
    system_type = "Integer"
    conversions = ("Integer", "Decimal", "Quantity")

    value: Optional[Annotated[StrictInt, Field(ge=INT32_MIN, le=INT32_MAX)]] = None

    @classmethod
    def parse_json_value(cls, raw: Any) -> Any:
        if isinstance(raw, bool) or not isinstance(raw, int):
            raise ValueError(f"expected a JSON integer for {cls.fhir_type}, got {_json_type(raw)}")
        return raw

    @classmethod
    def parse_xml_value(cls, text: str) -> Any:
        if INTEGER_PATTERN.fullmatch(text) is None:
            raise ValueError(f"invalid {cls.fhir_type} value: {text!r}")
        return int(text)


class PositiveInt(Integer):
    fhir_type = "positiveInt"

    value: Optional[Annotated[StrictInt, Field(ge=1, le=INT32_MAX)]] = None


class UnsignedInt(Integer):
    fhir_type = "unsignedInt"

    value: Optional[Annotated[StrictInt, Field(ge=0, le=INT32_MAX)]] = None


class Decimal(PrimitiveType):
    fhir_type = "decimal"
    system_type = "Decimal"
    conversions = ("Decimal", "Quantity")

    value: Optional[Annotated[decimal.Decimal, Field(allow_inf_nan=False)]] = None

    @classmethod
    def parse_json_value(cls, raw: Any) -> Any:
        if isinstance(raw, bool) or not isinstance(raw, (int, decimal.Decimal)):
            raise ValueError(f"expected a JSON number for decimal, got {_json_type(raw)}")
        return decimal.Decimal(raw)

    @classmethod
    def parse_xml_value(cls, text: str) -> Any:
        if DECIMAL_PATTERN.fullmatch(text) is None:
            raise ValueError(f"invalid decimal value: {text!r}")
        return decimal.Decimal(text)


# ============================================================================
# Dates and times
# ============================================================================

class Date(PrimitiveType):
    fhir_type = "date"
    lexical_pattern = DATE_PATTERN
    system_type = "Date"
    conversions = ("Date", "DateTime")

    value: Optional[StrictStr] = None


class DateTime(PrimitiveType):
    fhir_type = "dateTime"
    lexical_pattern = DATETIME_PATTERN
    system_type = "DateTime"
    conversions = ("DateTime",)

    value: Optional[StrictStr] = None


class Instant(PrimitiveType):
    fhir_type = "instant"
    lexical_pattern = INSTANT_PATTERN
    system_type = "DateTime"
    conversions = ("DateTime",)

    value: Optional[StrictStr] = None


class Time(PrimitiveType):
    fhir_type = "time"
    lexical_pattern = TIME_PATTERN
    system_type = "Time"
    conversions = ("Time",)

    value: Optional[StrictStr] = None

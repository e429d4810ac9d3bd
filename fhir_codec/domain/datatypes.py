"""Complex data types.

General-purpose FHIR data types built on the declarative field table.
Each class lists its fields in FHIR definition order, which is the order
both codecs write them.
"""

import re
from typing import Annotated, Any, List, Optional

from pydantic import field_validator

from fhir_codec.domain.element import DataType, Element
from fhir_codec.domain.fields import choice, element, primitive, xhtml
from fhir_codec.domain.ports import Result
from fhir_codec.domain.primitives import (
    Base64Binary,
    Boolean,
    Canonical,
    Code,
    DateTime,
    Decimal,
    Id,
    Instant,
    Markdown,
    PositiveInt,
    String,
    UnsignedInt,
    Uri,
    Url,
)
from fhir_codec.domain.system_types import SystemQuantity


class Coding(DataType):
    system: Annotated[Optional[Uri], primitive("uri")] = None
    version: Annotated[Optional[String], primitive("string")] = None
    code: Annotated[Optional[Code], primitive("code")] = None
    display: Annotated[Optional[String], primitive("string")] = None
    user_selected: Annotated[Optional[Boolean], primitive("boolean")] = None


class CodeableConcept(DataType):
    coding: Annotated[List[Coding], element("Coding", many=True)] = []
    text: Annotated[Optional[String], primitive("string")] = None


class Period(DataType):
    start: Annotated[Optional[DateTime], primitive("dateTime")] = None
    end: Annotated[Optional[DateTime], primitive("dateTime")] = None


class Identifier(DataType):
    use: Annotated[Optional[Code], primitive("code")] = None
    type: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    system: Annotated[Optional[Uri], primitive("uri")] = None
    value: Annotated[Optional[String], primitive("string")] = None
    period: Annotated[Optional[Period], element("Period")] = None
    assigner: Annotated[Optional["Reference"], element("Reference")] = None


class Reference(DataType):
    """A reference from one resource to another, by URL or logical identifier."""

    reference: Annotated[Optional[String], primitive("string")] = None
    type: Annotated[Optional[Uri], primitive("uri")] = None
    identifier: Annotated[Optional[Identifier], element("Identifier")] = None
    display: Annotated[Optional[String], primitive("string")] = None


class Quantity(DataType):
    """A measured amount.

    Converts to a system quantity; the unit is taken from ``code`` when the
    quantity is coded and from the human-readable ``unit`` otherwise.
    """

    value: Annotated[Optional[Decimal], primitive("decimal")] = None
    comparator: Annotated[Optional[Code], primitive("code")] = None
    unit: Annotated[Optional[String], primitive("string")] = None
    system: Annotated[Optional[Uri], primitive("uri")] = None
    code: Annotated[Optional[Code], primitive("code")] = None

    def _convert(self, target: str, explicit: bool) -> Result:
        if target != "Quantity":
            return self._not_convertible(target)
        if self.value is None or self.value.value is None:
            return Result.success_result(None)
        unit = "1"
        if self.code is not None and self.code.value is not None:
            unit = self.code.value
        elif self.unit is not None and self.unit.value is not None:
            unit = self.unit.value
        return Result.success_result(SystemQuantity(value=self.value.value, unit=unit))


class Age(Quantity):
    pass


class Duration(Quantity):
    pass


class Range(DataType):
    low: Annotated[Optional[Quantity], element("Quantity")] = None
    high: Annotated[Optional[Quantity], element("Quantity")] = None


class Ratio(DataType):
    numerator: Annotated[Optional[Quantity], element("Quantity")] = None
    denominator: Annotated[Optional[Quantity], element("Quantity")] = None


class HumanName(DataType):
    use: Annotated[Optional[Code], primitive("code")] = None
    text: Annotated[Optional[String], primitive("string")] = None
    family: Annotated[Optional[String], primitive("string")] = None
    given: Annotated[List[String], primitive("string", many=True)] = []
    prefix: Annotated[List[String], primitive("string", many=True)] = []
    suffix: Annotated[List[String], primitive("string", many=True)] = []
    period: Annotated[Optional[Period], element("Period")] = None


class Address(DataType):
    use: Annotated[Optional[Code], primitive("code")] = None
    type: Annotated[Optional[Code], primitive("code")] = None
    text: Annotated[Optional[String], primitive("string")] = None
    line: Annotated[List[String], primitive("string", many=True)] = []
    city: Annotated[Optional[String], primitive("string")] = None
    district: Annotated[Optional[String], primitive("string")] = None
    state: Annotated[Optional[String], primitive("string")] = None
    postal_code: Annotated[Optional[String], primitive("string")] = None
    country: Annotated[Optional[String], primitive("string")] = None
    period: Annotated[Optional[Period], element("Period")] = None


class ContactPoint(DataType):
    system: Annotated[Optional[Code], primitive("code")] = None
    value: Annotated[Optional[String], primitive("string")] = None
    use: Annotated[Optional[Code], primitive("code")] = None
    rank: Annotated[Optional[PositiveInt], primitive("positiveInt")] = None
    period: Annotated[Optional[Period], element("Period")] = None


class Meta(DataType):
    version_id: Annotated[Optional[Id], primitive("id")] = None
    last_updated: Annotated[Optional[Instant], primitive("instant")] = None
    source: Annotated[Optional[Uri], primitive("uri")] = None
    profile: Annotated[List[Canonical], primitive("canonical", many=True)] = []
    security: Annotated[List[Coding], element("Coding", many=True)] = []
    tag: Annotated[List[Coding], element("Coding", many=True)] = []


class Annotation(DataType):
    author: Annotated[Optional[Element], choice("Reference", "string")] = None
    time: Annotated[Optional[DateTime], primitive("dateTime")] = None
    text: Annotated[Markdown, primitive("markdown", required=True)]


class Attachment(DataType):
    content_type: Annotated[Optional[Code], primitive("code")] = None
    language: Annotated[Optional[Code], primitive("code")] = None
    data: Annotated[Optional[Base64Binary], primitive("base64Binary")] = None
    url: Annotated[Optional[Url], primitive("url")] = None
    size: Annotated[Optional[UnsignedInt], primitive("unsignedInt")] = None
    hash: Annotated[Optional[Base64Binary], primitive("base64Binary")] = None
    title: Annotated[Optional[String], primitive("string")] = None
    creation: Annotated[Optional[DateTime], primitive("dateTime")] = None


_DIV_RE = re.compile(r"\s*<div[\s>/].*", re.DOTALL)


class Narrative(DataType):
    """Human-readable summary of a resource.

    ``div`` holds the serialized XHTML ``<div>`` element. It is a JSON
    string on the structured-text side and an embedded element in the
    XHTML namespace on the markup side.
    """

    status: Annotated[Code, primitive("code", required=True)]
    div: Annotated[str, xhtml(required=True)]

    @field_validator("div")
    @classmethod
    def _check_div(cls, value: Any) -> Any:
        if not _DIV_RE.fullmatch(value):
            raise ValueError("narrative must be an XHTML <div> element")
        return value

"""Concrete resources.

Patient, Observation and Bundle, with their backbone elements. Every other
resource is declared the same way: a DomainResource subclass listing its
fields in definition order.
"""

from typing import Annotated, List, Optional

from fhir_codec.domain.datatypes import (
    Address,
    Annotation,
    CodeableConcept,
    ContactPoint,
    HumanName,
    Identifier,
    Quantity,
    Range,
    Reference,
)
from fhir_codec.domain.element import BackboneElement, Element
from fhir_codec.domain.fields import choice, element, primitive
from fhir_codec.domain.fields import resource as resource_field
from fhir_codec.domain.primitives import (
    Boolean,
    Code,
    Date,
    Decimal,
    Instant,
    String,
    UnsignedInt,
    Uri,
)
from fhir_codec.domain.resource import DomainResource, Resource


# ============================================================================
# Patient
# ============================================================================

class Patient(DomainResource):
    """Demographics and administrative information about a person receiving care."""

    identifier: Annotated[List[Identifier], element("Identifier", many=True)] = []
    active: Annotated[Optional[Boolean], primitive("boolean")] = None
    name: Annotated[List[HumanName], element("HumanName", many=True)] = []
    telecom: Annotated[List[ContactPoint], element("ContactPoint", many=True)] = []
    gender: Annotated[Optional[Code], primitive("code")] = None
    birth_date: Annotated[Optional[Date], primitive("date")] = None
    deceased: Annotated[Optional[Element], choice("boolean", "dateTime")] = None
    address: Annotated[List[Address], element("Address", many=True)] = []
    marital_status: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    multiple_birth: Annotated[Optional[Element], choice("boolean", "integer")] = None
    general_practitioner: Annotated[List[Reference], element("Reference", many=True)] = []
    managing_organization: Annotated[Optional[Reference], element("Reference")] = None


# ============================================================================
# Observation
# ============================================================================

OBSERVATION_VALUE_TYPES = (
    "Quantity",
    "CodeableConcept",
    "string",
    "boolean",
    "integer",
    "Range",
    "Ratio",
    "time",
    "dateTime",
    "Period",
)


class ObservationReferenceRange(BackboneElement):
    low: Annotated[Optional[Quantity], element("Quantity")] = None
    high: Annotated[Optional[Quantity], element("Quantity")] = None
    type: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    applies_to: Annotated[List[CodeableConcept], element("CodeableConcept", many=True)] = []
    age: Annotated[Optional[Range], element("Range")] = None
    text: Annotated[Optional[String], primitive("string")] = None


class ObservationComponent(BackboneElement):
    code: Annotated[CodeableConcept, element("CodeableConcept", required=True)]
    value: Annotated[Optional[Element], choice(*OBSERVATION_VALUE_TYPES)] = None
    data_absent_reason: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    interpretation: Annotated[List[CodeableConcept], element("CodeableConcept", many=True)] = []
    reference_range: Annotated[
        List[ObservationReferenceRange], element("ObservationReferenceRange", many=True)
    ] = []


class Observation(DomainResource):
    """Measurements and simple assertions made about a patient or other subject."""

    identifier: Annotated[List[Identifier], element("Identifier", many=True)] = []
    based_on: Annotated[List[Reference], element("Reference", many=True)] = []
    part_of: Annotated[List[Reference], element("Reference", many=True)] = []
    status: Annotated[Code, primitive("code", required=True)]
    category: Annotated[List[CodeableConcept], element("CodeableConcept", many=True)] = []
    code: Annotated[CodeableConcept, element("CodeableConcept", required=True)]
    subject: Annotated[Optional[Reference], element("Reference")] = None
    focus: Annotated[List[Reference], element("Reference", many=True)] = []
    encounter: Annotated[Optional[Reference], element("Reference")] = None
    effective: Annotated[
        Optional[Element], choice("dateTime", "Period", "instant")
    ] = None
    issued: Annotated[Optional[Instant], primitive("instant")] = None
    performer: Annotated[List[Reference], element("Reference", many=True)] = []
    value: Annotated[Optional[Element], choice(*OBSERVATION_VALUE_TYPES)] = None
    data_absent_reason: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    interpretation: Annotated[List[CodeableConcept], element("CodeableConcept", many=True)] = []
    note: Annotated[List[Annotation], element("Annotation", many=True)] = []
    body_site: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    method: Annotated[Optional[CodeableConcept], element("CodeableConcept")] = None
    specimen: Annotated[Optional[Reference], element("Reference")] = None
    device: Annotated[Optional[Reference], element("Reference")] = None
    reference_range: Annotated[
        List[ObservationReferenceRange], element("ObservationReferenceRange", many=True)
    ] = []
    has_member: Annotated[List[Reference], element("Reference", many=True)] = []
    derived_from: Annotated[List[Reference], element("Reference", many=True)] = []
    component: Annotated[List[ObservationComponent], element("ObservationComponent", many=True)] = []


# ============================================================================
# Bundle
# ============================================================================

class BundleLink(BackboneElement):
    relation: Annotated[String, primitive("string", required=True)]
    url: Annotated[Uri, primitive("uri", required=True)]


class BundleEntrySearch(BackboneElement):
    mode: Annotated[Optional[Code], primitive("code")] = None
    score: Annotated[Optional[Decimal], primitive("decimal")] = None


class BundleEntry(BackboneElement):
    link: Annotated[List[BundleLink], element("BundleLink", many=True)] = []
    full_url: Annotated[Optional[Uri], primitive("uri")] = None
    resource: Annotated[Optional[Resource], resource_field()] = None
    search: Annotated[Optional[BundleEntrySearch], element("BundleEntrySearch")] = None


class Bundle(Resource):
    """A container for a collection of resources."""

    identifier: Annotated[Optional[Identifier], element("Identifier")] = None
    type: Annotated[Code, primitive("code", required=True)]
    timestamp: Annotated[Optional[Instant], primitive("instant")] = None
    total: Annotated[Optional[UnsignedInt], primitive("unsignedInt")] = None
    link: Annotated[List[BundleLink], element("BundleLink", many=True)] = []
    entry: Annotated[List[BundleEntry], element("BundleEntry", many=True)] = []

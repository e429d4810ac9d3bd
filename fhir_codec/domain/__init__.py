"""Domain layer: element models, reflection and ports.

Importing this package defines and registers every shipped FHIR type.
"""

from fhir_codec.domain.datatypes import (
    Address,
    Age,
    Annotation,
    Attachment,
    CodeableConcept,
    Coding,
    ContactPoint,
    Duration,
    HumanName,
    Identifier,
    Meta,
    Narrative,
    Period,
    Quantity,
    Range,
    Ratio,
    Reference,
)
from fhir_codec.domain.element import BackboneElement, Base, DataType, Element, Extension
from fhir_codec.domain.envelope import ResourceEnvelope
from fhir_codec.domain.fields import FieldKind, FieldSpec
from fhir_codec.domain.ports import (
    CodecError,
    ConversionError,
    DecodeError,
    EncodeError,
    Result,
    UnsupportedFormatError,
)
from fhir_codec.domain.primitives import (
    Base64Binary,
    Boolean,
    Canonical,
    Code,
    Date,
    DateTime,
    Decimal,
    Id,
    Instant,
    Integer,
    Markdown,
    Oid,
    PositiveInt,
    PrimitiveType,
    String,
    Time,
    UnsignedInt,
    Uri,
    Url,
    Uuid,
    Xhtml,
)
from fhir_codec.domain.registry import registry
from fhir_codec.domain.resource import DomainResource, Resource
from fhir_codec.domain.resources import (
    Bundle,
    BundleEntry,
    BundleEntrySearch,
    BundleLink,
    Observation,
    ObservationComponent,
    ObservationReferenceRange,
    Patient,
)

registry.finalize()

__all__ = [
    "Address", "Age", "Annotation", "Attachment", "BackboneElement", "Base",
    "Base64Binary", "Boolean", "Bundle", "BundleEntry", "BundleEntrySearch",
    "BundleLink", "Canonical", "Code", "CodeableConcept", "CodecError", "Coding",
    "ContactPoint", "ConversionError", "DataType", "Date", "DateTime", "Decimal",
    "DecodeError", "DomainResource", "Duration", "Element", "EncodeError",
    "Extension", "FieldKind", "FieldSpec", "HumanName", "Id", "Identifier",
    "Instant", "Integer", "Markdown", "Meta", "Narrative", "Observation",
    "ObservationComponent", "ObservationReferenceRange", "Oid", "Patient",
    "Period", "PositiveInt", "PrimitiveType", "Quantity", "Range", "Ratio",
    "Reference", "Resource", "ResourceEnvelope", "Result", "String", "Time",
    "UnsignedInt", "UnsupportedFormatError", "Uri", "Url", "Uuid", "Xhtml",
    "registry",
]

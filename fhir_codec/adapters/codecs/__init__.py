"""FHIR JSON and XML codecs."""

from fhir_codec.adapters.codecs.json_codec import JSONCodec
from fhir_codec.adapters.codecs.xml_codec import XMLCodec

__all__ = ["JSONCodec", "XMLCodec"]

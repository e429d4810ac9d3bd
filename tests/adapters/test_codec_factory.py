"""Unit tests for codec selection by format name, MIME type and file suffix."""

import pytest

from fhir_codec.adapters import JSONCodec, XMLCodec, detect_format, get_codec
from fhir_codec.domain.ports import UnsupportedFormatError


class TestGetCodec:
    """Test the codec factory."""

    @pytest.mark.parametrize("name", ["json", "application/fhir+json", "application/json", "text/json"])
    def test_json_names(self, name):
        """Short names and JSON MIME types select the JSON codec."""
        assert isinstance(get_codec(name), JSONCodec)

    @pytest.mark.parametrize("name", ["xml", "application/fhir+xml", "application/xml", "text/xml"])
    def test_xml_names(self, name):
        """Short names and XML MIME types select the XML codec."""
        assert isinstance(get_codec(name), XMLCodec)

    def test_mime_parameters_and_case(self):
        """MIME parameters are ignored and matching is case-insensitive."""
        assert isinstance(get_codec("Application/FHIR+JSON; charset=utf-8"), JSONCodec)
        assert isinstance(get_codec(" XML "), XMLCodec)

    def test_constructor_arguments(self):
        """Keyword arguments reach the codec."""
        assert get_codec("json", indent=4).indent == 4
        assert get_codec("xml", streaming=True).streaming is True

    def test_unsupported(self):
        """Unknown formats raise UnsupportedFormatError."""
        with pytest.raises(UnsupportedFormatError, match="Unsupported format") as exc_info:
            get_codec("text/turtle")

        assert exc_info.value.format_name == "text/turtle"

    def test_can_handle(self):
        """Instances report the formats they handle."""
        assert JSONCodec().can_handle("application/fhir+json") is True
        assert JSONCodec().can_handle("application/fhir+xml") is False


class TestDetectFormat:
    """Test format inference from file names."""

    def test_suffixes(self):
        """.json and .xml map to their formats."""
        assert detect_format("patient.json") == "json"
        assert detect_format("bundle.XML") == "xml"

    def test_unknown_suffix(self):
        """Other suffixes are unsupported."""
        with pytest.raises(UnsupportedFormatError):
            detect_format("patient.ndjson")

"""Unit tests for the secure streaming XML parser.

Security Impact:
    - Verifies DTDs, oversize documents and runaway nesting are rejected
"""

import io

import pytest

from fhir_codec.domain.ports import DecodeError
from fhir_codec.infrastructure.xml_streaming_parser import SecurityError, StreamingXMLParser


class TestStreamingXMLParser:
    """Test StreamingXMLParser limits and output."""

    def test_parse_bytes(self):
        """A well-formed document yields its root element."""
        root = StreamingXMLParser().parse_document(b'<Patient xmlns="http://hl7.org/fhir"><id value="p1"/></Patient>')

        assert root.tag == "{http://hl7.org/fhir}Patient"
        assert root[0].get("value") == "p1"

    def test_parse_stream(self):
        """Binary streams are accepted."""
        root = StreamingXMLParser().parse_document(io.BytesIO(b"<a><b/></a>"))

        assert root.tag == "a"

    def test_comments_removed(self):
        """Comments and processing instructions are dropped."""
        root = StreamingXMLParser().parse_document(b"<a><!-- c --><?pi x?><b/></a>")

        assert [child.tag for child in root] == ["b"]

    def test_event_count(self):
        """Elements are counted."""
        parser = StreamingXMLParser()
        parser.parse_document(b"<a><b/><c><d/></c></a>")

        assert parser.event_count == 4

    def test_event_limit(self):
        """Too many elements raise SecurityError."""
        parser = StreamingXMLParser(max_events=3)

        with pytest.raises(SecurityError, match="event limit"):
            parser.parse_document(b"<a><b/><c/><d/></a>")

    def test_depth_limit(self):
        """Too deep nesting raises SecurityError."""
        parser = StreamingXMLParser(max_depth=2)

        with pytest.raises(SecurityError, match="depth limit"):
            parser.parse_document(b"<a><b><c><d/></c></b></a>")

    def test_size_limit(self):
        """Oversize documents are rejected before parsing."""
        parser = StreamingXMLParser(max_document_size=8)

        with pytest.raises(SecurityError, match="size exceeds limit"):
            parser.parse_document(b"<a><b/><c/></a>")

    def test_dtd_rejected(self):
        """Documents carrying a DTD are rejected."""
        document = b'<?xml version="1.0"?><!DOCTYPE a [<!ENTITY e "x">]><a>&e;</a>'

        with pytest.raises(DecodeError):
            StreamingXMLParser().parse_document(document)

    def test_malformed(self):
        """Malformed XML is a decode error."""
        with pytest.raises(DecodeError, match="Failed to parse XML"):
            StreamingXMLParser().parse_document(b"<a><b></a>")

    def test_empty_document(self):
        """An empty document has no root element."""
        with pytest.raises(DecodeError):
            StreamingXMLParser().parse_document(b"")

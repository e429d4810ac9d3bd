"""Tests for the top-level package surface."""

import fhir_codec
from fhir_codec.domain.primitives import Code, Id, Uri
from fhir_codec.domain.resources import Bundle, BundleEntry, Patient
from fhir_codec.infrastructure.settings import APP_VERSION


class TestPackage:
    """Test importing and using the package root."""

    def test_exports(self):
        """The package root exposes the codecs and the version."""
        assert fhir_codec.__version__ == APP_VERSION
        assert fhir_codec.get_codec("json").format_name == "json"

    def test_bundle_entry_resource_round_trip(self):
        """A bundle entry's resource survives both codecs."""
        bundle = Bundle(
            type=Code("collection"),
            entry=[BundleEntry(full_url=Uri("urn:uuid:p1"), resource=Patient(id=Id("p1")))],
        )

        for codec in (fhir_codec.JSONCodec(), fhir_codec.XMLCodec(streaming=False)):
            decoded = codec.loads(codec.dumps(bundle))

            assert isinstance(decoded.entry[0].resource, Patient)
            assert decoded.equal(bundle) is True

"""Tests for the fhircodec command line interface."""

import pytest
from typer.testing import CliRunner

from fhir_codec.adapters import JSONCodec, XMLCodec
from fhir_codec.cli import app
from fhir_codec.domain.resources import Patient

runner = CliRunner()


@pytest.fixture
def patient_json_file(tmp_path, patient_json_text):
    path = tmp_path / "patient.json"
    path.write_text(patient_json_text, encoding="utf-8")
    return path


@pytest.fixture
def patient_xml_file(tmp_path, patient_xml_text):
    path = tmp_path / "patient.xml"
    path.write_text(patient_xml_text, encoding="utf-8")
    return path


class TestConvertCommand:
    """Test the convert command."""

    def test_xml_to_json_stdout(self, patient_xml_file):
        """Converted JSON is written to stdout."""
        result = runner.invoke(app, ["convert", str(patient_xml_file), "--to", "json"])

        assert result.exit_code == 0
        assert '"resourceType":"Patient"' in result.output
        assert '"_birthDate"' in result.output

    def test_json_to_xml_file(self, tmp_path, patient_json_file, patient):
        """Converted XML is written to the output file."""
        output = tmp_path / "out.xml"

        result = runner.invoke(app, ["convert", str(patient_json_file), "--to", "xml", "--output", str(output)])

        assert result.exit_code == 0
        decoded = XMLCodec().loads(output.read_text(encoding="utf-8"))
        assert isinstance(decoded, Patient)
        assert decoded.equal(patient) is True

    def test_mime_type_target(self, tmp_path, patient_xml_file):
        """The target format may be a MIME type."""
        output = tmp_path / "out.json"

        result = runner.invoke(
            app, ["convert", str(patient_xml_file), "--to", "application/fhir+json", "-o", str(output)]
        )

        assert result.exit_code == 0
        assert JSONCodec().loads(output.read_text(encoding="utf-8")).resource_id() == "example"

    def test_unsupported_target(self, patient_json_file):
        """Unknown target formats fail."""
        result = runner.invoke(app, ["convert", str(patient_json_file), "--to", "yaml"])

        assert result.exit_code == 1

    def test_invalid_document(self, tmp_path):
        """Non-conforming input fails the conversion."""
        path = tmp_path / "bad.json"
        path.write_text('{"resourceType":"Patient","nickname":"Pete"}', encoding="utf-8")

        result = runner.invoke(app, ["convert", str(path)])

        assert result.exit_code == 1
        assert "unknown field" in result.output


class TestValidateCommand:
    """Test the validate command."""

    def test_valid_json(self, patient_json_file):
        """A conforming document validates."""
        result = runner.invoke(app, ["validate", str(patient_json_file)])

        assert result.exit_code == 0
        assert "valid" in result.output

    def test_valid_xml_streaming(self, patient_xml_file):
        """XML validates in streaming mode."""
        result = runner.invoke(app, ["validate", str(patient_xml_file), "--streaming"])

        assert result.exit_code == 0

    def test_invalid_xml(self, tmp_path):
        """A violation exits with status 1."""
        path = tmp_path / "bad.xml"
        path.write_text('<Patient xmlns="http://hl7.org/fhir"><active value="yes"/></Patient>', encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1

    def test_unknown_suffix(self, tmp_path):
        """Files without a known suffix are rejected."""
        path = tmp_path / "patient.txt"
        path.write_text("{}", encoding="utf-8")

        result = runner.invoke(app, ["validate", str(path)])

        assert result.exit_code == 1


class TestInspectCommands:
    """Test the inspect and types commands."""

    def test_inspect(self):
        """inspect lists a type's elements."""
        result = runner.invoke(app, ["inspect", "Patient"])

        assert result.exit_code == 0
        assert "birthDate" in result.output
        assert "FHIR.DomainResource" in result.output

    def test_inspect_unknown(self):
        """Unknown types fail."""
        result = runner.invoke(app, ["inspect", "Organization"])

        assert result.exit_code == 1

    def test_types_resources(self):
        """types --resources lists the dispatchable resources."""
        result = runner.invoke(app, ["types", "--resources"])

        assert result.exit_code == 0
        for name in ("Bundle", "Observation", "Patient"):
            assert name in result.output

    def test_version(self):
        """--version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert "fhir-codec" in result.output

"""Unit tests for the primitive value model.

Security Impact:
    - Verifies malformed lexical forms are rejected at construction
    - Confirms integer bounds and strict scalar types are enforced
"""

import decimal

import pytest
from pydantic import ValidationError

from fhir_codec.domain.element import Extension
from fhir_codec.domain.primitives import (
    Base64Binary,
    Boolean,
    Code,
    Date,
    DateTime,
    Decimal as FhirDecimal,
    Id,
    Instant,
    Integer,
    PositiveInt,
    String,
    Time,
    UnsignedInt,
    Uri,
)


class TestPrimitiveConstruction:
    """Test building primitives from scalars and decoration."""

    def test_positional_value(self):
        """A bare scalar becomes the value."""
        assert String("Peter").value == "Peter"
        assert Boolean(True).value is True

    def test_decoration_without_value(self):
        """A primitive may carry id and extensions without a value."""
        item = String(id="s1", extension=[Extension(url="http://example.org/ext")])

        assert item.value is None
        assert item.has_value() is False
        assert item.has_decoration() is True
        assert item.is_empty() is False

    def test_empty_primitive(self):
        """A primitive with nothing set is empty."""
        assert String().is_empty() is True

    def test_frozen(self):
        """Primitives are immutable."""
        item = String("a")
        with pytest.raises(ValidationError):
            item.value = "b"


class TestLexicalValidation:
    """Test lexical constraints on primitive values."""

    @pytest.mark.parametrize("text", ["2020", "2020-05", "2020-05-01"])
    def test_partial_dates_accepted(self, text):
        """Dates keep year, month or day precision."""
        assert Date(text).value == text

    @pytest.mark.parametrize("text", ["2020-13", "2020-5-1", "20200501", "2020-05-01T10:00:00Z"])
    def test_invalid_dates_rejected(self, text):
        """Malformed dates are rejected."""
        with pytest.raises(ValidationError):
            Date(text)

    def test_datetime_requires_zone_with_time(self):
        """A dateTime with a time must carry a zone."""
        assert DateTime("2020-05-01T10:30:00+01:00").value == "2020-05-01T10:30:00+01:00"
        with pytest.raises(ValidationError):
            DateTime("2020-05-01T10:30:00")

    def test_instant_requires_full_precision(self):
        """An instant is always a full timestamp."""
        assert Instant("2020-05-01T10:30:00.123Z").value == "2020-05-01T10:30:00.123Z"
        with pytest.raises(ValidationError):
            Instant("2020-05-01")

    def test_time(self):
        """Times are hh:mm:ss with optional fraction."""
        assert Time("23:59:59.5").value == "23:59:59.5"
        with pytest.raises(ValidationError):
            Time("24:00:00")

    def test_empty_string_rejected(self):
        """FHIR strings are never empty."""
        with pytest.raises(ValidationError):
            String("")

    def test_code_whitespace(self):
        """Codes have no leading, trailing or repeated whitespace."""
        assert Code("final").value == "final"
        with pytest.raises(ValidationError):
            Code(" final")

    def test_id_length(self):
        """Ids are at most 64 characters."""
        assert Id("a" * 64).value == "a" * 64
        with pytest.raises(ValidationError):
            Id("a" * 65)

    def test_uri_rejects_whitespace(self):
        """URIs carry no whitespace."""
        with pytest.raises(ValidationError):
            Uri("http://example.org/a b")

    def test_base64(self):
        """base64Binary accepts padded base64."""
        assert Base64Binary("aGVsbG8=").value == "aGVsbG8="


class TestNumericPrimitives:
    """Test integers, decimals and booleans."""

    def test_integer_bounds(self):
        """Integers are 32-bit."""
        assert Integer(2147483647).value == 2147483647
        with pytest.raises(ValidationError):
            Integer(2147483648)

    def test_integer_is_strict(self):
        """Booleans and strings are not integers."""
        with pytest.raises(ValidationError):
            Integer(True)
        with pytest.raises(ValidationError):
            Integer("5")

    def test_positive_and_unsigned(self):
        """positiveInt starts at 1, unsignedInt at 0."""
        assert UnsignedInt(0).value == 0
        with pytest.raises(ValidationError):
            PositiveInt(0)
        with pytest.raises(ValidationError):
            UnsignedInt(-1)

    def test_decimal_keeps_precision(self):
        """Decimal values keep their lexical precision."""
        value = FhirDecimal.parse_json_value(decimal.Decimal("1.50"))

        assert str(FhirDecimal(value).json_value()) == "1.50"

    def test_decimal_rejects_nan(self):
        """NaN and infinity are not FHIR decimals."""
        with pytest.raises(ValidationError):
            FhirDecimal(decimal.Decimal("NaN"))

    def test_boolean_is_strict(self):
        """Strings are not booleans."""
        with pytest.raises(ValidationError):
            Boolean("true")


class TestWireScalars:
    """Test the JSON and XML scalar hooks."""

    def test_json_type_checks(self):
        """JSON scalars must have the primitive's JSON type."""
        assert Boolean.parse_json_value(True) is True
        assert Integer.parse_json_value(5) == 5
        assert String.parse_json_value("x") == "x"
        with pytest.raises(ValueError, match="JSON boolean"):
            Boolean.parse_json_value("true")
        with pytest.raises(ValueError, match="JSON integer"):
            Integer.parse_json_value(True)
        with pytest.raises(ValueError, match="JSON string"):
            String.parse_json_value(5)

    def test_xml_values(self):
        """XML attribute text is parsed per type."""
        assert Boolean.parse_xml_value("false") is False
        assert Integer.parse_xml_value("-12") == -12
        assert FhirDecimal.parse_xml_value("3.10") == decimal.Decimal("3.10")
        with pytest.raises(ValueError):
            Boolean.parse_xml_value("yes")
        with pytest.raises(ValueError):
            Integer.parse_xml_value("1.0")

    def test_xml_value_rendering(self):
        """Values render back to their lexical form."""
        assert Boolean(True).xml_value() == "true"
        assert FhirDecimal(decimal.Decimal("72.0")).xml_value() == "72.0"
        assert Integer(7).xml_value() == "7"

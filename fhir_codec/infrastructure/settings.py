"""Application Settings and Configuration.

This module provides codec settings loaded from environment variables with
defaults suitable for development.

Security Impact:
    - Input size, XML event and XML depth limits bound the work a single
      hostile document can cause
    - Limits are validated before use
"""

import os

from pydantic import BaseModel, Field, field_validator

# Application metadata
APP_NAME = "fhir-codec"
APP_VERSION = "1.0.0"

# Default max document size (50MB)
DEFAULT_MAX_DOCUMENT_SIZE = 50 * 1024 * 1024

# Documents above this size are parsed with the streaming XML parser (10MB)
DEFAULT_XML_STREAMING_THRESHOLD = 10 * 1024 * 1024


class CodecLimits(BaseModel):
    """Validated resource limits applied by the codecs.

    Attributes:
        max_document_size: Largest accepted input, in bytes
        xml_max_events: Largest number of XML parse events per document
        xml_max_depth: Deepest accepted XML element nesting
        xml_streaming_enabled: Allow the lxml streaming parser for large inputs
        xml_streaming_threshold: Input size above which streaming is used
    """

    max_document_size: int = Field(default=DEFAULT_MAX_DOCUMENT_SIZE, gt=0)
    xml_max_events: int = Field(default=1000000, gt=0)
    xml_max_depth: int = Field(default=100, gt=0)
    xml_streaming_enabled: bool = True
    xml_streaming_threshold: int = Field(default=DEFAULT_XML_STREAMING_THRESHOLD, ge=0)

    @field_validator("xml_max_depth")
    @classmethod
    def validate_depth(cls, v: int) -> int:
        """Nested FHIR content needs more than a handful of levels."""
        if v < 8:
            raise ValueError("xml_max_depth must be at least 8")
        return v


class Settings:
    """Application settings loaded from the environment.

    Every setting reads an ``FHIRCODEC_*`` variable and falls back to a
    default.
    """

    def __init__(self):
        """Initialize settings from environment."""
        self.app_name = os.getenv("FHIRCODEC_APP_NAME", APP_NAME)

        # Logging
        self.log_level = os.getenv("FHIRCODEC_LOG_LEVEL", "INFO")
        self.log_json = os.getenv("FHIRCODEC_LOG_JSON", "false").lower() == "true"

        # Output
        self.json_indent = int(os.getenv("FHIRCODEC_JSON_INDENT", "0"))

        # Input limits
        self.max_document_size = int(
            os.getenv("FHIRCODEC_MAX_DOCUMENT_SIZE", str(DEFAULT_MAX_DOCUMENT_SIZE))
        )

        # XML parsing settings
        self.xml_streaming_enabled = os.getenv("FHIRCODEC_XML_STREAMING_ENABLED", "true").lower() == "true"
        self.xml_streaming_threshold = int(
            os.getenv("FHIRCODEC_XML_STREAMING_THRESHOLD", str(DEFAULT_XML_STREAMING_THRESHOLD))
        )
        self.xml_max_events = int(os.getenv("FHIRCODEC_XML_MAX_EVENTS", "1000000"))
        self.xml_max_depth = int(os.getenv("FHIRCODEC_XML_MAX_DEPTH", "100"))

    @property
    def limits(self) -> CodecLimits:
        """Get validated codec limits.

        Raises:
            pydantic.ValidationError: If an environment value is out of range
        """
        return CodecLimits(
            max_document_size=self.max_document_size,
            xml_max_events=self.xml_max_events,
            xml_max_depth=self.xml_max_depth,
            xml_streaming_enabled=self.xml_streaming_enabled,
            xml_streaming_threshold=self.xml_streaming_threshold,
        )


# Global settings instance
settings = Settings()

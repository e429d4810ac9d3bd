"""Wire-format adapters for fhir-codec.

This module contains the codecs that implement the CodecPort interface for
FHIR JSON and FHIR XML, and the factory that selects one by format name,
MIME type or file suffix.
"""

from pathlib import Path
from typing import Union

from fhir_codec.adapters.codecs.json_codec import JSONCodec
from fhir_codec.adapters.codecs.xml_codec import XMLCodec
from fhir_codec.domain.ports import CodecPort, UnsupportedFormatError

__all__ = ["JSONCodec", "XMLCodec", "detect_format", "get_codec"]


def get_codec(format_name: str, **kwargs) -> CodecPort:
    """Factory function to get the codec for a wire format.

    Accepts short names (``json``, ``xml``) and the FHIR, generic and
    legacy MIME types (``application/fhir+json``, ``application/json``,
    ``text/json`` and their XML counterparts). Matching is
    case-insensitive and MIME parameters such as ``; charset=utf-8`` are
    ignored.

    Parameters:
        format_name: Format name or MIME type
        **kwargs: Additional arguments passed to the codec constructor
            - For JSON: indent, max_document_size
            - For XML: indent, streaming, limits

    Returns:
        CodecPort: Codec instance

    Raises:
        UnsupportedFormatError: If no codec handles the format

    Example Usage:
        ```python
        codec = get_codec("application/fhir+json")
        patient = codec.loads(text)
        ```
    """
    codecs = [
        ("json", JSONCodec),
        ("xml", XMLCodec),
    ]

    for name, codec_class in codecs:
        if codec_class.handles(format_name):
            return codec_class(**kwargs)

    raise UnsupportedFormatError(
        f"Unsupported format: {format_name!r}. Expected json, xml or a FHIR MIME type.",
        format_name=format_name,
    )


def detect_format(path: Union[str, Path]) -> str:
    """Infer the wire format of a file from its suffix.

    Raises:
        UnsupportedFormatError: If the suffix is neither .json nor .xml
    """
    suffix = Path(path).suffix.lower()
    if suffix == ".json":
        return "json"
    if suffix == ".xml":
        return "xml"
    raise UnsupportedFormatError(
        f"Cannot determine format of {str(path)!r} from its extension",
        format_name=suffix or None,
    )

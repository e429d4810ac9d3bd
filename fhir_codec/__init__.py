"""fhir-codec: FHIR element models with JSON and XML codecs.

The domain layer defines immutable element and resource models, their
reflective surface and the type registry. The adapters layer holds the
wire-format codecs.

Example Usage:
    ```python
    from fhir_codec import get_codec

    codec = get_codec("application/fhir+json")
    patient = codec.loads(text)
    xml = get_codec("xml").dumps(patient)
    ```
"""

from fhir_codec.adapters import JSONCodec, XMLCodec, detect_format, get_codec
from fhir_codec.infrastructure.settings import APP_VERSION

__version__ = APP_VERSION

__all__ = ["JSONCodec", "XMLCodec", "detect_format", "get_codec", "__version__"]

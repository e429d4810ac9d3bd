"""Domain Ports - Abstract Contracts for FHIR Codecs and Reflection.

This module defines the Port interfaces (abstract contracts) that wire-format
adapters and reflective element types must implement. Following Hexagonal
Architecture, the domain core defines what it needs, not how it's provided.

Security Impact:
    - Codec ports decode into validated, immutable element trees only
    - Decode errors abort the whole document (no partial results)
    - Conversion failures are values, never unhandled faults

Architecture:
    - Pure abstract interfaces with zero infrastructure dependencies
    - Adapters (JSON, XML) implement CodecPort
    - Every element type implements ReflectivePort for the path evaluator
"""

import io
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import IO, Any, Generic, Optional, Sequence, Tuple, TypeVar, Union

T = TypeVar('T')


# ============================================================================
# Conversion outcomes
# ============================================================================

@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a scalar coercion, returned instead of raised.

    The path evaluator receives one of three shapes: success with a system
    value, success with ``None`` for an element that carries no value, or a
    failure holding the "cannot convert" message.

    Attributes:
        success: Whether the coercion produced a value (or a legitimate None)
        value: Converted system value; None on failure or for empty elements
        error: Message of a failed coercion
        error_type: Name of the error class, usually "ConversionError"
        error_details: Source and target type names of a failed coercion

    Example:
        ```python
        outcome = address.to_boolean()
        if outcome.is_failure():
            print(outcome.error)  # cannot convert Address to Boolean
        ```
    """

    success: bool
    value: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None
    error_details: Optional[dict] = None

    @classmethod
    def success_result(cls, value: T) -> 'Result[T]':
        """Wrap a converted value (None for an empty element)."""
        return cls(success=True, value=value)

    @classmethod
    def failure_result(
        cls,
        error: Union[str, Exception],
        error_type: Optional[str] = None,
        error_details: Optional[dict] = None
    ) -> 'Result[T]':
        """Wrap a failed conversion.

        Parameters:
            error: Message, or the exception whose text becomes the message
            error_type: Error class name; taken from ``error`` when omitted
            error_details: Extra context such as source and target types

        Returns:
            Result: A failed outcome with no value
        """
        if isinstance(error, Exception):
            message = str(error)
            kind = error_type or type(error).__name__
        else:
            message = error
            kind = error_type or "UnknownError"
        return cls(success=False, error=message, error_type=kind, error_details=error_details or {})

    def is_success(self) -> bool:
        return self.success

    def is_failure(self) -> bool:
        return not self.success


# ============================================================================
# Custom Exception Hierarchy
# ============================================================================

class CodecError(Exception):
    """Base exception for all codec-related errors."""
    pass


class DecodeError(CodecError):
    """Raised when a document does not conform to the declared element structure.

    Covers wrong tokens, unknown fields or attributes, wrong namespaces,
    unknown resource types and conflicting choice values. Decoding aborts
    on the first error.

    Attributes:
        type_name: FHIR type being decoded when the error occurred
        field: Wire name of the offending field, if known
        path: Document path of the offending value (e.g. Patient.name[0].given)
    """

    def __init__(
        self,
        message: str,
        type_name: Optional[str] = None,
        field: Optional[str] = None,
        path: Optional[str] = None
    ):
        super().__init__(message)
        self.type_name = type_name
        self.field = field
        self.path = path


class EncodeError(CodecError):
    """Raised when a value cannot be written to the sink.

    Attributes:
        type_name: FHIR type being encoded
        field: Wire name of the offending field, if known
    """

    def __init__(self, message: str, type_name: Optional[str] = None, field: Optional[str] = None):
        super().__init__(message)
        self.type_name = type_name
        self.field = field


class ConversionError(CodecError):
    """A scalar coercion requested on a type with no valid projection.

    Never raised by the reflective surface; it travels inside a failed
    Result so the evaluator can treat it as an ordinary outcome.

    Attributes:
        source_type: FHIR type name of the converted element
        target_type: System type name requested (Boolean, String, ...)
    """

    def __init__(self, message: str, source_type: Optional[str] = None, target_type: Optional[str] = None):
        super().__init__(message)
        self.source_type = source_type
        self.target_type = target_type


class UnsupportedFormatError(CodecError):
    """Raised when no codec handles the requested wire format.

    Attributes:
        format_name: The format name, MIME type or file suffix requested
    """

    def __init__(self, message: str, format_name: Optional[str] = None):
        super().__init__(message)
        self.format_name = format_name


# ============================================================================
# Reflective Port (consumed by the path evaluator)
# ============================================================================

class ReflectivePort(ABC):
    """Uniform reflective surface every element type implements.

    The path evaluator treats every element purely through this interface
    and never inspects concrete classes directly.
    """

    @abstractmethod
    def children(self, *names: str) -> Sequence[Any]:
        """Ordered immediate children, optionally limited to the given field names."""
        pass

    @abstractmethod
    def equal(self, other: Any) -> Optional[bool]:
        """Strict deep equality; None when the values are not comparable."""
        pass

    @abstractmethod
    def equivalent(self, other: Any) -> Optional[bool]:
        """Deep equality ignoring the top-level id; None when not comparable."""
        pass

    @abstractmethod
    def to_boolean(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_string(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_integer(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_decimal(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_date(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_time(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_date_time(self, explicit: bool = False) -> Result:
        pass

    @abstractmethod
    def to_quantity(self, explicit: bool = False) -> Result:
        pass

    @classmethod
    @abstractmethod
    def type_info(cls) -> Any:
        """Static ClassInfo describing the type's fields."""
        pass


# ============================================================================
# Codec Port (implemented by wire-format adapters)
# ============================================================================

class CodecPort(ABC):
    """Abstract contract for FHIR wire-format codecs.

    Encode writes a single pass onto a text sink; decode reads a whole
    document and either returns a fully built element or raises DecodeError.

    Security Impact:
        - Input size is bounded before decoding
        - Unknown fields are rejected rather than ignored
    """

    format_name: str = ""
    mime_types: Tuple[str, ...] = ()

    @abstractmethod
    def encode(self, value: Any, sink: IO[str]) -> None:
        """Write value onto sink.

        Parameters:
            value: Resource or data type to encode
            sink: Text stream receiving the document

        Raises:
            EncodeError: If the value cannot be encoded or the sink fails
        """
        pass

    @abstractmethod
    def decode(self, source: Union[str, bytes, IO], expected: Optional[type] = None) -> Any:
        """Decode a document.

        Parameters:
            source: Document text, bytes or a readable stream
            expected: Element class to decode into; resources are
                dispatched on their discriminant when omitted

        Returns:
            The decoded element

        Raises:
            DecodeError: If the document does not conform
        """
        pass

    @classmethod
    def handles(cls, format_name: str) -> bool:
        """Check whether this codec class handles a format name or MIME type.

        MIME parameters (``; charset=utf-8``) are ignored and matching is
        case-insensitive.
        """
        normalized = format_name.split(";", 1)[0].strip().lower()
        return normalized in cls.mime_types

    def can_handle(self, format_name: str) -> bool:
        """Check whether this codec handles a format name or MIME type."""
        return self.handles(format_name)

    def dumps(self, value: Any) -> str:
        """Encode value to a string."""
        buffer = io.StringIO()
        self.encode(value, buffer)
        return buffer.getvalue()

    def loads(self, text: Union[str, bytes], expected: Optional[type] = None) -> Any:
        """Decode a document held in memory."""
        return self.decode(text, expected)

"""FHIR JSON Codec Adapter.

This adapter implements CodecPort for the FHIR JSON wire format.

The format splits every primitive into two sibling keys: the bare name
carries the value and an underscore-prefixed name carries the element's
``id`` and ``extension``. Primitive lists become two parallel arrays that
use ``null`` placeholders to keep positions aligned. Choice fields name the
concrete type in the key (``valueQuantity``, ``_valueDate``). Resources
carry a ``resourceType`` discriminant, written first.

Security Impact:
    - Document size is bounded before parsing
    - Unknown keys, duplicate keys and misplaced nulls are rejected
    - Excessive nesting is reported as a decode error, never a crash
    - Scalars are validated by the primitive models before entering the tree

Architecture:
    - Implements CodecPort from the domain layer
    - Encoding is a single pass over the field tables through a token writer
    - Decoding parses with the standard json module (exact decimals) and
      then walks the field tables; value/shadow merging is local to this module
"""

import decimal
import json
import logging
from dataclasses import dataclass
from typing import IO, Any, Dict, List, Optional, Union

from fhir_codec.domain.element import Base, build_element
from fhir_codec.domain.envelope import ResourceEnvelope
from fhir_codec.domain.fields import FieldKind, FieldSpec, wire_index
from fhir_codec.domain.ports import CodecPort, DecodeError, EncodeError
from fhir_codec.domain.primitives import PrimitiveType
from fhir_codec.domain.registry import registry
from fhir_codec.domain.resource import Resource
from fhir_codec.infrastructure.settings import settings
from fhir_codec.infrastructure.xml_streaming_parser import SecurityError

logger = logging.getLogger(__name__)

RESOURCE_TYPE_KEY = "resourceType"


# ============================================================================
# Token writer
# ============================================================================

class _JSONWriter:
    """Token-level JSON writer.

    Tracks one "first item" flag per open container so commas are written
    between items only; optional indentation.
    """

    def __init__(self, sink: IO[str], indent: Optional[int] = None):
        self._sink = sink
        self._indent = indent or 0
        self._open: List[bool] = []
        self._after_key = False

    def begin_object(self) -> None:
        self._begin_value()
        self._sink.write("{")
        self._open.append(True)

    def end_object(self) -> None:
        self._end_container("}")

    def begin_array(self) -> None:
        self._begin_value()
        self._sink.write("[")
        self._open.append(True)

    def end_array(self) -> None:
        self._end_container("]")

    def key(self, name: str) -> None:
        self._separator()
        self._sink.write(json.dumps(name))
        self._sink.write(": " if self._indent else ":")
        self._after_key = True

    def scalar(self, value: Any) -> None:
        self._begin_value()
        self._sink.write(_scalar_token(value))

    def _begin_value(self) -> None:
        if self._after_key:
            self._after_key = False
        elif self._open:
            self._separator()

    def _separator(self) -> None:
        if self._open[-1]:
            self._open[-1] = False
        else:
            self._sink.write(",")
        self._newline(len(self._open))

    def _end_container(self, closer: str) -> None:
        empty = self._open.pop()
        if not empty:
            self._newline(len(self._open))
        self._sink.write(closer)

    def _newline(self, depth: int) -> None:
        if self._indent:
            self._sink.write("\n" + " " * (self._indent * depth))


def _scalar_token(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, decimal.Decimal):
        return str(value)
    return json.dumps(value, ensure_ascii=False)


# ============================================================================
# Decode helpers
# ============================================================================

def _reject_duplicate_keys(pairs: List[tuple]) -> Dict[str, Any]:
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise DecodeError(f"duplicate key {key!r} in JSON object", field=key)
        result[key] = value
    return result


def _reject_constant(name: str) -> Any:
    raise DecodeError(f"invalid JSON number: {name}")


def _token_name(raw: Any) -> str:
    if raw is None:
        return "null"
    if isinstance(raw, dict):
        return "'{'"
    if isinstance(raw, list):
        return "'['"
    if isinstance(raw, str):
        return "string"
    if isinstance(raw, bool):
        return "boolean"
    return "number"


@dataclass
class _PrimitiveParts:
    """Value and shadow halves of one primitive key, in arrival order."""

    spec: FieldSpec
    type_name: str
    value: Any = None
    shadow: Any = None
    has_value: bool = False
    has_shadow: bool = False


# ============================================================================
# Codec
# ============================================================================

class JSONCodec(CodecPort):
    """FHIR JSON codec.

    Security Impact:
        - max_document_size bounds the input read before parsing
        - json.loads runs with exact decimals and rejects NaN/Infinity

    Example Usage:
        ```python
        codec = JSONCodec(indent=2)
        text = codec.dumps(patient)
        same = codec.loads(text)
        assert same.equal(patient)
        ```
    """

    format_name = "json"
    mime_types = ("json", "application/fhir+json", "application/json", "text/json")

    def __init__(self, indent: Optional[int] = None, max_document_size: Optional[int] = None):
        """Initialize the JSON codec.

        Parameters:
            indent: Spaces per indentation level (None/0 = compact)
            max_document_size: Maximum input size in bytes (defaults to settings)
        """
        self.indent = indent if indent is not None else settings.json_indent
        self.max_document_size = max_document_size or settings.max_document_size

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, value: Any, sink: IO[str]) -> None:
        """Write value onto sink as FHIR JSON.

        Raises:
            EncodeError: If the value is not an element or the sink fails
        """
        if not isinstance(value, Base) or isinstance(value, PrimitiveType):
            raise EncodeError(
                f"cannot encode {type(value).__name__} as a JSON document; expected a resource or data type"
            )
        writer = _JSONWriter(sink, self.indent)
        try:
            if isinstance(value, Resource):
                ResourceEnvelope(value).seal(
                    lambda resource_type, resource: self._write_object(writer, resource, resource_type)
                )
            else:
                self._write_object(writer, value)
        except OSError as e:
            raise EncodeError(
                f"failed to write {type(value).fhir_type}: {str(e)}",
                type_name=type(value).fhir_type,
            ) from e
        logger.debug(f"Encoded {type(value).fhir_type} as JSON")

    def _write_object(self, writer: _JSONWriter, value: Base, resource_type: Optional[str] = None) -> None:
        writer.begin_object()
        if resource_type is not None:
            writer.key(RESOURCE_TYPE_KEY)
            writer.scalar(resource_type)
        for spec in value.__fhir_fields__.values():
            self._write_field(writer, value, spec)
        writer.end_object()

    def _write_field(self, writer: _JSONWriter, owner: Base, spec: FieldSpec) -> None:
        value = getattr(owner, spec.attr)
        if value is None or (spec.many and not value):
            return

        if spec.kind in (FieldKind.ATTRIBUTE, FieldKind.XHTML):
            writer.key(spec.name)
            writer.scalar(value)
        elif spec.kind is FieldKind.PRIMITIVE:
            if spec.many:
                self._write_primitive_list(writer, spec.name, value)
            else:
                self._write_primitive(writer, spec.name, value)
        elif spec.kind is FieldKind.COMPLEX:
            writer.key(spec.name)
            if spec.many:
                writer.begin_array()
                for item in value:
                    self._write_object(writer, item)
                writer.end_array()
            else:
                self._write_object(writer, value)
        elif spec.kind is FieldKind.CHOICE:
            type_name = type(value).fhir_type
            if type_name not in spec.choices:
                raise EncodeError(
                    f"{type(owner).fhir_type}.{spec.name}[x] cannot hold {type_name}",
                    type_name=type(owner).fhir_type,
                    field=spec.name,
                )
            name = spec.wire_name_for(type_name)
            if isinstance(value, PrimitiveType):
                self._write_primitive(writer, name, value)
            else:
                writer.key(name)
                self._write_object(writer, value)
        elif spec.kind is FieldKind.RESOURCE:
            writer.key(spec.name)
            if spec.many:
                writer.begin_array()
                for item in value:
                    self._write_resource(writer, item)
                writer.end_array()
            else:
                self._write_resource(writer, value)

    def _write_resource(self, writer: _JSONWriter, value: Resource) -> None:
        ResourceEnvelope(value).seal(
            lambda resource_type, resource: self._write_object(writer, resource, resource_type)
        )

    def _write_primitive(self, writer: _JSONWriter, name: str, value: PrimitiveType) -> None:
        if value.has_value():
            writer.key(name)
            writer.scalar(value.json_value())
        if value.has_decoration():
            writer.key("_" + name)
            self._write_object(writer, value)

    def _write_primitive_list(self, writer: _JSONWriter, name: str, items: List[PrimitiveType]) -> None:
        items = [item for item in items if not item.is_empty()]
        if any(item.has_value() for item in items):
            writer.key(name)
            writer.begin_array()
            for item in items:
                writer.scalar(item.json_value() if item.has_value() else None)
            writer.end_array()
        if any(item.has_decoration() for item in items):
            writer.key("_" + name)
            writer.begin_array()
            for item in items:
                if item.has_decoration():
                    self._write_object(writer, item)
                else:
                    writer.scalar(None)
            writer.end_array()

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, source: Union[str, bytes, IO], expected: Optional[type] = None) -> Any:
        """Decode a FHIR JSON document.

        Parameters:
            source: Document text, bytes or a readable stream
            expected: Class to decode into; when omitted (or an abstract
                resource class) the class is chosen by ``resourceType``

        Returns:
            The decoded resource or data type

        Raises:
            DecodeError: If the document does not conform
            SecurityError: If the document exceeds the configured size or nesting
        """
        try:
            data = self._parse(source)
            result = self._decode_root(data, expected)
        except DecodeError as e:
            logger.warning(
                f"Rejected JSON document: {str(e)}",
                extra={"codec": self.format_name, "resource_type": e.type_name},
            )
            raise
        except RecursionError:
            logger.warning("Rejected JSON document: nesting too deep", extra={"codec": self.format_name})
            raise SecurityError("JSON document nesting too deep")
        logger.debug(f"Decoded {type(result).fhir_type} from JSON")
        return result

    def _parse(self, source: Union[str, bytes, IO]) -> Any:
        if hasattr(source, "read"):
            data = source.read(self.max_document_size + 1)
        else:
            data = source
        if isinstance(data, str):
            data = data.encode("utf-8")
        # The limit is in bytes for text and binary input alike.
        if len(data) > self.max_document_size:
            raise SecurityError(
                f"JSON document size exceeds limit: > {self.max_document_size} bytes"
            )
        try:
            text = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecodeError(f"JSON document is not valid UTF-8: {str(e)}")
        try:
            return json.loads(
                text,
                object_pairs_hook=_reject_duplicate_keys,
                parse_float=decimal.Decimal,
                parse_constant=_reject_constant,
            )
        except json.JSONDecodeError as e:
            raise DecodeError(f"invalid JSON: {str(e)}")

    def _decode_root(self, data: Any, expected: Optional[type]) -> Any:
        if expected is not None and not (isinstance(expected, type) and issubclass(expected, Base)):
            raise TypeError(f"expected must be an element class, got {expected!r}")

        if expected is None or issubclass(expected, Resource):
            if not isinstance(data, dict):
                raise DecodeError(f"invalid token {_token_name(data)}, expected '{{' at document root")
            resource = self._read_resource(data, path="")
            if expected is not None and not isinstance(resource, expected):
                raise DecodeError(
                    f"expected resource type {expected.fhir_type}, found {resource.resource_type}",
                    type_name=expected.fhir_type,
                    field=RESOURCE_TYPE_KEY,
                )
            return resource

        return self._read_object(expected, data, expected.fhir_type)

    def _read_resource(self, data: Any, path: str) -> Resource:
        if not isinstance(data, dict):
            raise DecodeError(
                f"invalid token {_token_name(data)}, expected '{{' in Resource element at {path}",
                type_name="Resource",
                path=path,
            )
        discriminant = data.get(RESOURCE_TYPE_KEY)
        if discriminant is None:
            raise DecodeError(
                f"missing {RESOURCE_TYPE_KEY} in resource at {path or '<root>'}",
                type_name="Resource",
                field=RESOURCE_TYPE_KEY,
                path=path or None,
            )
        if not isinstance(discriminant, str):
            raise DecodeError(
                f"invalid token {_token_name(discriminant)}, expected string for {RESOURCE_TYPE_KEY}",
                type_name="Resource",
                field=RESOURCE_TYPE_KEY,
                path=path or None,
            )
        child_path = path or discriminant
        envelope = ResourceEnvelope.open(
            discriminant,
            lambda klass: self._read_object(klass, data, child_path),
            path=path,
        )
        return envelope.resource

    def _read_object(self, klass: type, data: Any, path: str) -> Any:
        values = self._read_fields(klass, data, path)
        return build_element(klass, values, path)

    def _read_fields(self, klass: type, data: Any, path: str) -> Dict[str, Any]:
        """Decode the keys of one JSON object into model attribute values."""
        type_name = klass.fhir_type
        if not isinstance(data, dict):
            raise DecodeError(
                f"invalid token {_token_name(data)}, expected '{{' in {type_name} element at {path}",
                type_name=type_name,
                path=path,
            )

        index = wire_index(klass)
        values: Dict[str, Any] = {}
        parts: Dict[str, _PrimitiveParts] = {}
        choices: Dict[str, str] = {}

        for key, raw in data.items():
            if key == RESOURCE_TYPE_KEY and klass.is_resource:
                if raw != type_name:
                    raise DecodeError(
                        f"{RESOURCE_TYPE_KEY} {raw!r} does not match {type_name}",
                        type_name=type_name,
                        field=key,
                        path=path,
                    )
                continue

            shadow = key.startswith("_")
            name = key[1:] if shadow else key
            entry = index.get(name)
            if entry is None:
                raise DecodeError(
                    f"unknown field \"{key}\" in {type_name} element at {path}",
                    type_name=type_name,
                    field=key,
                    path=path,
                )
            spec, field_type = entry
            field_path = f"{path}.{name}"
            is_primitive = (
                spec.kind in (FieldKind.PRIMITIVE, FieldKind.CHOICE) and registry.is_primitive(field_type)
            )
            if shadow and not is_primitive:
                raise DecodeError(
                    f"unknown field \"{key}\" in {type_name} element at {path}",
                    type_name=type_name,
                    field=key,
                    path=path,
                )

            if spec.kind is FieldKind.CHOICE:
                previous = choices.setdefault(spec.name, field_type)
                if previous != field_type:
                    raise DecodeError(
                        f"multiple values for field \"{spec.name}\" in {type_name} element: "
                        f"{spec.wire_name_for(previous)} and {name}",
                        type_name=type_name,
                        field=spec.name,
                        path=path,
                    )

            if is_primitive:
                part = parts.setdefault(name, _PrimitiveParts(spec=spec, type_name=field_type))
                if shadow:
                    part.shadow, part.has_shadow = raw, True
                else:
                    part.value, part.has_value = raw, True
                continue

            if raw is None:
                raise DecodeError(
                    f"invalid token null in {type_name} element, field \"{key}\"",
                    type_name=type_name,
                    field=key,
                    path=field_path,
                )

            if spec.kind in (FieldKind.ATTRIBUTE, FieldKind.XHTML):
                if not isinstance(raw, str):
                    raise DecodeError(
                        f"invalid token {_token_name(raw)}, expected string for \"{key}\" in {type_name} element",
                        type_name=type_name,
                        field=key,
                        path=field_path,
                    )
                values[spec.attr] = raw
            elif spec.kind is FieldKind.RESOURCE:
                if spec.many:
                    items = self._expect_array(raw, klass, key, field_path)
                    values[spec.attr] = [
                        self._read_resource(item, f"{field_path}[{i}]") for i, item in enumerate(items)
                    ]
                else:
                    values[spec.attr] = self._read_resource(raw, field_path)
            else:
                child_klass = registry.get_type(field_type)
                if spec.many:
                    items = self._expect_array(raw, klass, key, field_path)
                    values[spec.attr] = [
                        self._read_object(child_klass, item, f"{field_path}[{i}]")
                        for i, item in enumerate(items)
                    ]
                else:
                    values[spec.attr] = self._read_object(child_klass, raw, field_path)

        for name, part in parts.items():
            field_path = f"{path}.{name}"
            if part.spec.many:
                values[part.spec.attr] = self._merge_primitive_list(klass, name, part, field_path)
            else:
                values[part.spec.attr] = self._merge_primitive(klass, name, part, field_path)

        return values

    def _merge_primitive(self, owner: type, name: str, part: _PrimitiveParts, path: str) -> PrimitiveType:
        if (part.has_value and part.value is None) or (part.has_shadow and part.shadow is None):
            raise DecodeError(
                f"invalid token null in {owner.fhir_type} element, field \"{name}\"",
                type_name=owner.fhir_type,
                field=name,
                path=path,
            )
        if isinstance(part.value, (dict, list)):
            raise DecodeError(
                f"invalid token {_token_name(part.value)}, expected {part.type_name} value "
                f"for \"{name}\" in {owner.fhir_type} element",
                type_name=owner.fhir_type,
                field=name,
                path=path,
            )
        return self._build_primitive(registry.get_type(part.type_name), part.value, part.shadow, path)

    def _merge_primitive_list(
        self, owner: type, name: str, part: _PrimitiveParts, path: str
    ) -> List[PrimitiveType]:
        primitive_klass = registry.get_type(part.type_name)
        raw_values = self._expect_array(part.value, owner, name, path) if part.has_value else []
        raw_shadows = self._expect_array(part.shadow, owner, "_" + name, path) if part.has_shadow else []

        items = []
        for i in range(max(len(raw_values), len(raw_shadows))):
            raw_value = raw_values[i] if i < len(raw_values) else None
            raw_shadow = raw_shadows[i] if i < len(raw_shadows) else None
            if isinstance(raw_value, (dict, list)):
                raise DecodeError(
                    f"invalid token {_token_name(raw_value)}, expected {part.type_name} value "
                    f"in \"{name}\" of {owner.fhir_type} element",
                    type_name=owner.fhir_type,
                    field=name,
                    path=f"{path}[{i}]",
                )
            item = self._build_primitive(primitive_klass, raw_value, raw_shadow, f"{path}[{i}]")
            if not item.is_empty():
                items.append(item)
        return items

    def _build_primitive(self, klass: type, raw_value: Any, raw_shadow: Any, path: str) -> PrimitiveType:
        values: Dict[str, Any] = {}
        if raw_shadow is not None:
            values = self._read_fields(klass, raw_shadow, path)
        if raw_value is not None:
            try:
                values["value"] = klass.parse_json_value(raw_value)
            except ValueError as e:
                raise DecodeError(
                    f"invalid {klass.fhir_type} at {path}: {str(e)}",
                    type_name=klass.fhir_type,
                    field="value",
                    path=path,
                )
        return build_element(klass, values, path)

    def _expect_array(self, raw: Any, owner: type, key: str, path: str) -> list:
        if not isinstance(raw, list):
            raise DecodeError(
                f"invalid token {_token_name(raw)}, expected '[' for \"{key}\" in {owner.fhir_type} element",
                type_name=owner.fhir_type,
                field=key,
                path=path,
            )
        return raw

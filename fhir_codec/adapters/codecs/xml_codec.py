"""FHIR XML Codec Adapter.

This adapter implements CodecPort for the FHIR XML wire format.

Every element lives in the FHIR namespace. Primitive values travel in a
``value`` attribute and element ids in an ``id`` attribute; extensions are
child elements. Resources held in "any resource" fields are wrapped in an
element named after the field (``<contained><Patient>...</Patient></contained>``).
Narrative ``div`` content is XHTML in its own namespace.

Security Impact:
    - Uses defusedxml to prevent Billion Laughs attacks and quadratic blowup
    - Large documents go through the lxml streaming parser with event and
      depth limits; DTDs are rejected in both modes
    - Unknown elements, unknown attributes and foreign namespaces are
      rejected rather than ignored

Architecture:
    - Implements CodecPort from the domain layer
    - Two parsing modes (traditional defusedxml, streaming lxml) produce an
      element tree read by one walker
    - Encoding builds an lxml tree from the field tables
"""

import copy
import logging
import re
from dataclasses import dataclass
from typing import IO, Any, Callable, Dict, Optional, Set, Tuple, Union

from defusedxml import DTDForbidden, EntitiesForbidden, ExternalReferenceForbidden
from defusedxml import ElementTree as SafeET
from defusedxml.ElementTree import ParseError as SafeParseError
from lxml import etree

from fhir_codec.domain.element import Base, build_element
from fhir_codec.domain.envelope import ResourceEnvelope
from fhir_codec.domain.fields import FieldKind, FieldSpec, wire_index
from fhir_codec.domain.ports import CodecPort, DecodeError, EncodeError
from fhir_codec.domain.primitives import PrimitiveType
from fhir_codec.domain.registry import registry
from fhir_codec.domain.resource import Resource
from fhir_codec.infrastructure.settings import CodecLimits, settings
from fhir_codec.infrastructure.xml_streaming_parser import SecurityError, StreamingXMLParser

logger = logging.getLogger(__name__)

FHIR_NS = "http://hl7.org/fhir"
XHTML_NS = "http://www.w3.org/1999/xhtml"

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

_DIV_OPEN = re.compile(r"^\s*<div(?=[\s>/])")


def _split_tag(tag: str) -> Tuple[Optional[str], str]:
    if tag.startswith("{"):
        namespace, _, local = tag[1:].partition("}")
        return namespace, local
    return None, tag


def _fhir_tag(name: str) -> str:
    return f"{{{FHIR_NS}}}{name}"


@dataclass
class _ReadContext:
    """Per-document decoding state."""

    max_depth: int
    serialize_xhtml: Callable[[Any], str]


def _serialize_lxml(el: Any) -> str:
    return etree.tostring(el, encoding="unicode", with_tail=False)


def _serialize_etree(el: Any) -> str:
    detached = copy.copy(el)
    detached.tail = None
    return SafeET.tostring(detached, encoding="unicode", default_namespace=XHTML_NS)


class XMLCodec(CodecPort):
    """FHIR XML codec.

    Security Impact:
        - Traditional mode: defusedxml with DTDs forbidden
        - Streaming mode: lxml iterparse with entity resolution and network
          access disabled, bounded events and depth
        - Both modes bound document size and nesting depth

    Example Usage:
        ```python
        codec = XMLCodec(indent=True)
        text = codec.dumps(patient)
        same = codec.loads(text)
        ```
    """

    format_name = "xml"
    mime_types = ("xml", "application/fhir+xml", "application/xml", "text/xml")

    def __init__(
        self,
        indent: Optional[bool] = None,
        streaming: Optional[bool] = None,
        limits: Optional[CodecLimits] = None
    ):
        """Initialize the XML codec.

        Parameters:
            indent: Pretty-print encoded documents
            streaming: Force (True) or disable (False) the streaming parser;
                None chooses by document size
            limits: Size, event and depth limits (defaults to settings)
        """
        self.indent = bool(indent)
        self.streaming = streaming
        self.limits = limits or settings.limits

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def encode(self, value: Any, sink: IO[str]) -> None:
        """Write value onto sink as FHIR XML.

        Raises:
            EncodeError: If the value is not an element or the sink fails
        """
        if not isinstance(value, Base) or isinstance(value, PrimitiveType):
            raise EncodeError(
                f"cannot encode {type(value).__name__} as an XML document; expected a resource or data type"
            )
        root = etree.Element(_fhir_tag(type(value).fhir_type), nsmap={None: FHIR_NS})
        self._write_fields(root, value)
        try:
            sink.write(XML_DECLARATION)
            sink.write(etree.tostring(root, encoding="unicode", pretty_print=self.indent))
        except OSError as e:
            raise EncodeError(
                f"failed to write {type(value).fhir_type}: {str(e)}",
                type_name=type(value).fhir_type,
            ) from e
        logger.debug(f"Encoded {type(value).fhir_type} as XML")

    def _write_fields(self, el: Any, value: Base) -> None:
        for spec in value.__fhir_fields__.values():
            field_value = getattr(value, spec.attr)
            if field_value is None or (spec.many and not field_value):
                continue
            items = field_value if spec.many else [field_value]

            if spec.kind is FieldKind.ATTRIBUTE:
                el.set(spec.name, field_value)
            elif spec.kind is FieldKind.XHTML:
                el.append(self._parse_xhtml(field_value, type(value).fhir_type, spec.name))
            elif spec.kind is FieldKind.RESOURCE:
                for item in items:
                    wrapper = etree.SubElement(el, _fhir_tag(spec.name))
                    ResourceEnvelope(item).seal(
                        lambda resource_type, resource: self._write_fields(
                            etree.SubElement(wrapper, _fhir_tag(resource_type)), resource
                        )
                    )
            elif spec.kind is FieldKind.CHOICE:
                type_name = type(field_value).fhir_type
                if type_name not in spec.choices:
                    raise EncodeError(
                        f"{type(value).fhir_type}.{spec.name}[x] cannot hold {type_name}",
                        type_name=type(value).fhir_type,
                        field=spec.name,
                    )
                self._append_object(el, spec.wire_name_for(type_name), field_value)
            else:
                for item in items:
                    self._append_object(el, spec.name, item)

    def _append_object(self, parent: Any, name: str, value: Base) -> None:
        if isinstance(value, PrimitiveType) and value.is_empty():
            return
        child = etree.SubElement(parent, _fhir_tag(name))
        if isinstance(value, PrimitiveType) and value.has_value():
            child.set("value", value.xml_value())
        self._write_fields(child, value)

    def _parse_xhtml(self, markup: str, owner: str, field: str) -> Any:
        if _DIV_OPEN.match(markup) and "xmlns" not in markup.split(">", 1)[0]:
            markup = _DIV_OPEN.sub(f'<div xmlns="{XHTML_NS}"', markup, count=1)
        parser = etree.XMLParser(resolve_entities=False, no_network=True, load_dtd=False)
        try:
            div = etree.fromstring(markup, parser=parser)
        except etree.XMLSyntaxError as e:
            raise EncodeError(
                f"{owner}.{field} is not well-formed XHTML: {str(e)}",
                type_name=owner,
                field=field,
            ) from e
        if div.tag != f"{{{XHTML_NS}}}div":
            raise EncodeError(
                f"{owner}.{field} must be an XHTML div element, found {div.tag}",
                type_name=owner,
                field=field,
            )
        return div

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def decode(self, source: Union[str, bytes, IO], expected: Optional[type] = None) -> Any:
        """Decode a FHIR XML document.

        Parameters:
            source: Document text, bytes or a readable stream
            expected: Class to decode into; when omitted (or an abstract
                resource class) the class is chosen by the root element name

        Returns:
            The decoded resource or data type

        Raises:
            DecodeError: If the document does not conform
            SecurityError: If the document breaches a security limit
        """
        if expected is not None and not (isinstance(expected, type) and issubclass(expected, Base)):
            raise TypeError(f"expected must be an element class, got {expected!r}")
        try:
            data = self._read_source(source)
            if self._use_streaming(len(data)):
                root = self._parse_streaming(data)
                context = _ReadContext(self.limits.xml_max_depth, _serialize_lxml)
            else:
                root = self._parse_traditional(data)
                context = _ReadContext(self.limits.xml_max_depth, _serialize_etree)
            result = self._decode_root(root, expected, context)
        except DecodeError as e:
            logger.warning(
                f"Rejected XML document: {str(e)}",
                extra={"codec": self.format_name, "resource_type": e.type_name},
            )
            raise
        logger.debug(f"Decoded {type(result).fhir_type} from XML")
        return result

    def _read_source(self, source: Union[str, bytes, IO]) -> bytes:
        limit = self.limits.max_document_size
        if hasattr(source, "read"):
            data = source.read(limit + 1)
        else:
            data = source
        if isinstance(data, str):
            data = data.encode("utf-8")
        if len(data) > limit:
            raise SecurityError(f"XML document size exceeds limit: > {limit} bytes")
        return bytes(data)

    def _use_streaming(self, size: int) -> bool:
        if self.streaming is not None:
            return self.streaming
        return self.limits.xml_streaming_enabled and size >= self.limits.xml_streaming_threshold

    def _parse_streaming(self, data: bytes) -> Any:
        logger.debug(f"Parsing XML document in streaming mode ({len(data)} bytes)")
        parser = StreamingXMLParser(
            max_events=self.limits.xml_max_events,
            max_depth=self.limits.xml_max_depth,
            max_document_size=self.limits.max_document_size,
        )
        return parser.parse_document(data)

    def _parse_traditional(self, data: bytes) -> Any:
        try:
            # Parse XML with defusedxml (prevents XML attacks)
            return SafeET.fromstring(data, forbid_dtd=True)
        except (DTDForbidden, EntitiesForbidden, ExternalReferenceForbidden) as e:
            raise SecurityError(f"Rejected unsafe XML construct: {str(e)}")
        except SafeParseError as e:
            raise DecodeError(f"Failed to parse XML document: {str(e)}")

    def _decode_root(self, root: Any, expected: Optional[type], context: _ReadContext) -> Any:
        namespace, local = _split_tag(root.tag)
        if namespace != FHIR_NS:
            raise DecodeError(
                f"invalid namespace: \"{namespace or ''}\", expected: \"{FHIR_NS}\"",
                type_name=local,
                path=local,
            )

        if expected is None or issubclass(expected, Resource):
            resource = ResourceEnvelope.open(
                local,
                lambda klass: self._read_element(klass, root, local, 0, context),
                path=local,
            ).resource
            if expected is not None and not isinstance(resource, expected):
                raise DecodeError(
                    f"expected resource type {expected.fhir_type}, found {resource.resource_type}",
                    type_name=expected.fhir_type,
                    path=local,
                )
            return resource

        if local != expected.fhir_type:
            raise DecodeError(
                f"expected root element {expected.fhir_type}, found {local}",
                type_name=expected.fhir_type,
                path=local,
            )
        return self._read_element(expected, root, local, 0, context)

    def _read_element(self, klass: type, el: Any, path: str, depth: int, context: _ReadContext) -> Any:
        """Decode the attributes and children of one XML element."""
        type_name = klass.fhir_type
        if depth > context.max_depth:
            raise SecurityError(
                f"XML depth limit exceeded: {depth} > {context.max_depth} at {path}",
                type_name=type_name,
                path=path,
            )

        index = wire_index(klass)
        values: Dict[str, Any] = {}
        self._read_attributes(klass, el, path, values)
        self._reject_text(el.text, type_name, path)

        seen: Set[str] = set()
        choices: Dict[str, str] = {}
        for child in el:
            if not isinstance(child.tag, str):
                continue
            self._reject_text(child.tail, type_name, path)
            namespace, local = _split_tag(child.tag)
            entry = index.get(local)
            if entry is None or entry[0].kind is FieldKind.ATTRIBUTE:
                if namespace not in (FHIR_NS, XHTML_NS):
                    self._reject_namespace(namespace, FHIR_NS, type_name, local, path)
                raise DecodeError(
                    f"unknown element \"{local}\" in {type_name} element at {path}",
                    type_name=type_name,
                    field=local,
                    path=path,
                )
            spec, field_type = entry
            required_ns = XHTML_NS if spec.kind is FieldKind.XHTML else FHIR_NS
            if namespace != required_ns:
                self._reject_namespace(namespace, required_ns, type_name, local, path)

            if spec.kind is FieldKind.CHOICE:
                previous = choices.setdefault(spec.name, field_type)
                if previous != field_type:
                    raise DecodeError(
                        f"multiple values for field \"{spec.name}\" in {type_name} element: "
                        f"{spec.wire_name_for(previous)} and {local}",
                        type_name=type_name,
                        field=spec.name,
                        path=path,
                    )
            if not spec.many:
                if spec.attr in seen:
                    raise DecodeError(
                        f"repeated element \"{local}\" in {type_name} element at {path}",
                        type_name=type_name,
                        field=local,
                        path=path,
                    )
                seen.add(spec.attr)

            child_path = f"{path}.{local}"
            if spec.many:
                child_path = f"{child_path}[{len(values.get(spec.attr, []))}]"
            item = self._read_field(spec, field_type, child, child_path, depth + 1, context)
            if item is None:
                continue
            if spec.many:
                values.setdefault(spec.attr, []).append(item)
            else:
                values[spec.attr] = item

        return build_element(klass, values, path)

    def _read_field(
        self, spec: FieldSpec, field_type: str, child: Any, path: str, depth: int, context: _ReadContext
    ) -> Any:
        if spec.kind is FieldKind.XHTML:
            return context.serialize_xhtml(child)
        if spec.kind is FieldKind.RESOURCE:
            return self._read_contained(child, path, depth, context)
        item = self._read_element(registry.get_type(field_type), child, path, depth, context)
        if isinstance(item, PrimitiveType) and item.is_empty():
            return None
        return item

    def _read_contained(self, wrapper: Any, path: str, depth: int, context: _ReadContext) -> Resource:
        if wrapper.attrib:
            name = next(iter(wrapper.attrib))
            raise DecodeError(
                f"invalid attribute: \"{name}\"",
                type_name="Resource",
                field=name,
                path=path,
            )
        self._reject_text(wrapper.text, "Resource", path)
        children = [child for child in wrapper if isinstance(child.tag, str)]
        for child in children:
            self._reject_text(child.tail, "Resource", path)
        if len(children) != 1:
            raise DecodeError(
                f"expected exactly one resource in {path}, found {len(children)}",
                type_name="Resource",
                path=path,
            )
        inner = children[0]
        namespace, local = _split_tag(inner.tag)
        if namespace != FHIR_NS:
            self._reject_namespace(namespace, FHIR_NS, "Resource", local, path)
        return ResourceEnvelope.open(
            local,
            lambda klass: self._read_element(klass, inner, path, depth + 1, context),
            path=path,
        ).resource

    def _read_attributes(self, klass: type, el: Any, path: str, values: Dict[str, Any]) -> None:
        index = wire_index(klass)
        for name, text in el.attrib.items():
            entry = index.get(name)
            if name == "value" and klass.is_primitive:
                try:
                    values["value"] = klass.parse_xml_value(text)
                except ValueError as e:
                    raise DecodeError(
                        f"invalid {klass.fhir_type} at {path}: {str(e)}",
                        type_name=klass.fhir_type,
                        field="value",
                        path=path,
                    )
            elif entry is not None and entry[0].kind is FieldKind.ATTRIBUTE:
                values[entry[0].attr] = text
            else:
                raise DecodeError(
                    f"invalid attribute: \"{name}\"",
                    type_name=klass.fhir_type,
                    field=name,
                    path=path,
                )

    @staticmethod
    def _reject_text(text: Optional[str], type_name: str, path: str) -> None:
        if text and text.strip():
            raise DecodeError(
                f"unexpected text content in {type_name} element at {path}: {text.strip()[:40]!r}",
                type_name=type_name,
                path=path,
            )

    @staticmethod
    def _reject_namespace(namespace: Optional[str], required: str, type_name: str, local: str, path: str) -> None:
        raise DecodeError(
            f"invalid namespace: \"{namespace or ''}\", expected: \"{required}\"",
            type_name=type_name,
            field=local,
            path=path,
        )

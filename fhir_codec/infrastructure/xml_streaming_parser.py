"""Bounded incremental XML reader.

Large FHIR XML documents are read with lxml's iterparse so element
counting and nesting checks happen while the tree is being built, before
the whole document has been materialised.

Security Impact:
    - Entity expansion and network fetches are switched off in lxml
    - Element count, nesting depth and byte size are capped
    - A DOCTYPE anywhere in the document is a hard failure

Architecture:
    - One parser instance per document; counters reset on every call
    - Returns the lxml root so the XML codec can walk it like any
      other element tree
"""

import io
import logging
from typing import IO, Any, Optional, Union

from lxml import etree

from fhir_codec.domain.ports import DecodeError

logger = logging.getLogger(__name__)

# Fractions of the element budget at which a warning is logged once.
_WARN_FRACTIONS = (0.8, 0.9)


class SecurityError(DecodeError):
    """A document breached a configured safety limit."""
    pass


class StreamingXMLParser:
    """Builds an lxml tree from iterparse events under hard limits.

    Security Impact:
        - Refuses DTDs, so entity tricks never reach the tree
        - Depth and element caps keep hostile input from exhausting memory

    Example Usage:
        ```python
        reader = StreamingXMLParser(max_events=50_000, max_depth=64)
        root = reader.parse_document(payload)
        ```
    """

    def __init__(
        self,
        max_events: int = 1000000,
        max_depth: int = 100,
        max_document_size: Optional[int] = None,
        huge_tree: bool = False
    ):
        """Configure the reader.

        Parameters:
            max_events: Number of elements allowed in one document
            max_depth: Deepest element allowed, counting the root as 0
            max_document_size: Byte cap for in-memory input (None disables it)
            huge_tree: Forwarded to lxml; leave off unless documents are trusted
        """
        self.max_events = max_events
        self.max_depth = max_depth
        self.max_document_size = max_document_size
        self.huge_tree = huge_tree

        self.event_count = 0
        self._warn_at = {int(max_events * f): f for f in _WARN_FRACTIONS}

    def _on_element(self, depth: int) -> None:
        self.event_count += 1

        fraction = self._warn_at.get(self.event_count)
        if fraction is not None:
            logger.warning(
                f"XML element count reached {fraction:.0%} of the limit "
                f"({self.event_count:,} of {self.max_events:,})"
            )

        if self.event_count > self.max_events:
            raise SecurityError(
                f"XML event limit exceeded: more than {self.max_events:,} elements"
            )
        if depth > self.max_depth:
            raise SecurityError(
                f"XML depth limit exceeded: element at depth {depth}, maximum is {self.max_depth}"
            )

    def _open(self, source: Union[bytes, IO[bytes]]) -> IO[bytes]:
        if not isinstance(source, (bytes, bytearray)):
            return source
        size = len(source)
        if self.max_document_size and size > self.max_document_size:
            raise SecurityError(
                f"XML document size exceeds limit: {size} > {self.max_document_size} bytes"
            )
        return io.BytesIO(source)

    def parse_document(self, source: Union[bytes, IO[bytes]]) -> Any:
        """Read a whole document and return its root element.

        Parameters:
            source: Raw document bytes or a binary stream

        Returns:
            The lxml root element, with comments and processing
            instructions already dropped

        Raises:
            SecurityError: On a DTD or when a limit is breached
            DecodeError: When the input is not well-formed XML
        """
        stream = self._open(source)
        self.event_count = 0
        depth = -1
        root = None

        events = etree.iterparse(
            stream,
            events=("start", "end"),
            huge_tree=self.huge_tree,
            resolve_entities=False,
            no_network=True,
            load_dtd=False,
            recover=False,
            remove_comments=True,
            remove_pis=True,
        )
        try:
            for event, elem in events:
                if event == "end":
                    depth -= 1
                    continue
                depth += 1
                if root is None:
                    root = elem
                    self._reject_dtd(root)
                self._on_element(depth)
        except etree.XMLSyntaxError as e:
            raise DecodeError(f"Failed to parse XML document: {e}") from e

        if root is None:
            raise DecodeError("Failed to parse XML document: no root element")
        self._reject_dtd(root)
        logger.debug(f"Streamed XML document of {self.event_count:,} elements")
        return root

    @staticmethod
    def _reject_dtd(root: Any) -> None:
        info = root.getroottree().docinfo
        if info.doctype or info.internalDTD is not None:
            logger.warning("Refusing XML document with a DOCTYPE declaration")
            raise SecurityError("DTD declarations are not allowed in FHIR XML documents")

"""Conversion of feed XML into a generic tree of raw nodes.

The extraction layer only ever sees `RawNode` objects: a mapping of tag name to
the ordered occurrences of that tag, plus the element's attributes and own text.
Well-known podcast namespaces always get their conventional prefix
(``itunes:duration``) whatever prefix the feed declares, so field tables can
name tags once. Other namespaces keep the prefix the feed author used.
"""

from __future__ import annotations

import io
import logging

# Bandit: parsing handled via defusedxml safe APIs
import xml.etree.ElementTree as ET  # nosec B405
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

from defusedxml import DefusedXmlException
from defusedxml.ElementTree import (
    fromstring as safe_fromstring,
    iterparse as safe_iterparse,
    ParseError as DefusedXMLParseError,
)

from .config_constants import KNOWN_NAMESPACES
from .exceptions import ParsingError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawNode:
    """One XML element as seen by the field extractor.

    Attributes:
        text: The element's own text content (stripped), None when empty.
        attrs: Attribute name to value.
        children: Child tag to the tuple of child nodes, in document order.
    """

    text: Optional[str] = None
    attrs: Mapping[str, str] = field(default_factory=dict)
    children: Mapping[str, Tuple["RawNode", ...]] = field(default_factory=dict)

    def get(self, tag: str) -> Tuple["RawNode", ...]:
        """Return every occurrence of ``tag`` (empty tuple when absent)."""
        return self.children.get(tag, ())

    def first(self, tag: str) -> Optional["RawNode"]:
        """Return the first occurrence of ``tag`` or None."""
        nodes = self.get(tag)
        return nodes[0] if nodes else None

    def attr(self, name: str) -> Optional[str]:
        """Return a stripped attribute value, None when absent or blank."""
        value = self.attrs.get(name)
        if value is None:
            return None
        value = value.strip()
        return value or None


def _collect_namespaces(source: Union[str, bytes]) -> Dict[str, str]:
    """Map namespace URIs to the prefix the document declares for them."""
    stream: Union[io.BytesIO, io.StringIO]
    stream = io.StringIO(source) if isinstance(source, str) else io.BytesIO(source)
    prefixes: Dict[str, str] = {}
    for _event, (prefix, uri) in safe_iterparse(stream, events=("start-ns",)):
        if prefix and uri not in prefixes:
            prefixes[uri] = prefix
    return prefixes


def _qualified_tag(tag: str, prefixes: Mapping[str, str]) -> str:
    if not tag.startswith("{"):
        return tag
    uri, _, local = tag[1:].partition("}")
    prefix = KNOWN_NAMESPACES.get(uri) or prefixes.get(uri)
    return f"{prefix}:{local}" if prefix else local


def _own_text(element: ET.Element) -> Optional[str]:
    parts = [element.text or ""]
    parts.extend(child.tail or "" for child in element)
    text = "".join(parts).strip()
    return text or None


def _convert(element: ET.Element, prefixes: Mapping[str, str]) -> RawNode:
    grouped: Dict[str, List[RawNode]] = {}
    for child in element:
        if not isinstance(child.tag, str):
            # Comments and processing instructions
            continue
        grouped.setdefault(_qualified_tag(child.tag, prefixes), []).append(
            _convert(child, prefixes)
        )
    attrs = {_qualified_tag(name, prefixes): value for name, value in element.attrib.items()}
    return RawNode(
        text=_own_text(element),
        attrs=attrs,
        children={tag: tuple(nodes) for tag, nodes in grouped.items()},
    )


def parse_xml(feed: Union[str, bytes]) -> RawNode:
    """Parse feed text into a document node.

    The returned node has no text or attributes of its own and a single child
    keyed by the root element's tag (``rss`` for RSS feeds).

    Args:
        feed: Feed XML as text or raw bytes

    Returns:
        Document node wrapping the root element

    Raises:
        ParsingError: If the text is not well-formed XML or uses forbidden
            constructs (entity expansion, external entities)
    """
    if not feed or not feed.strip():
        raise ParsingError("Parsing error: feed is empty.")
    try:
        root = safe_fromstring(feed)
        prefixes = _collect_namespaces(feed)
    except (DefusedXMLParseError, DefusedXmlException, ValueError) as exc:
        logger.debug("Failed to parse feed XML: %s", exc)
        raise ParsingError(f"Parsing error: {exc}") from exc

    root_node = _convert(root, prefixes)
    return RawNode(children={_qualified_tag(root.tag, prefixes): (root_node,)})

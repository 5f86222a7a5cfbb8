"""Value coercers: raw feed nodes to typed values.

Every coercer returns None for input it cannot interpret and never raises.
Whether a None is acceptable is decided by the field extractor.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Callable, Dict, Optional, Sequence, Tuple

from .models import Owner
from .xml_tree import RawNode

logger = logging.getLogger(__name__)

SECONDS_PER_SEGMENT = 60

EXPLICIT_TRUE_VALUES = frozenset({"yes", "explicit", "true"})
EXPLICIT_FALSE_VALUES = frozenset({"clean", "no", "false"})
TRUTH_VALUE = "yes"

_LEADING_INT = re.compile(r"^[+-]?\d+")

Coercer = Callable[..., object]


def text(node: RawNode) -> Optional[str]:
    """Return the node's own text."""
    return node.text


def url_attr(node: RawNode) -> Optional[str]:
    """Return the ``url`` attribute (enclosures)."""
    return node.attr("url")


def href_attr(node: RawNode) -> Optional[str]:
    """Return the ``href`` attribute (itunes:image)."""
    return node.attr("href")


def image_url_child(node: RawNode) -> Optional[str]:
    """Return the text of the nested ``url`` element (RSS <image>)."""
    url_node = node.first("url")
    return url_node.text if url_node is not None else None


def guid_text(node: RawNode) -> Optional[str]:
    """Return a guid's text, ignoring attributes such as isPermaLink."""
    return node.text


def explicit(node: RawNode) -> Optional[bool]:
    """Tri-state explicit flag: True, False, or None when unrecognized."""
    value = (node.text or "").strip().lower()
    if value in EXPLICIT_TRUE_VALUES:
        return True
    if value in EXPLICIT_FALSE_VALUES:
        return False
    return None


def truth(node: RawNode) -> bool:
    """Case-insensitive ``yes`` check used by itunes:block and itunes:complete."""
    return (node.text or "").strip().lower() == TRUTH_VALUE


def date(node: RawNode) -> Optional[datetime]:
    """Parse an RFC 2822 or ISO 8601 date.

    Unparseable dates yield None rather than a sentinel timestamp. Dates
    without an offset are taken as UTC so every result is comparable.
    """
    value = (node.text or "").strip()
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            logger.debug("Unparseable date: %r", value)
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _segment_value(segment: str) -> Optional[int]:
    match = _LEADING_INT.match(segment.strip())
    return int(match.group(0)) if match else None


def duration(node: RawNode) -> Optional[int]:
    """Convert ``H:MM:SS``, ``MM:SS`` or ``SS`` to total seconds.

    Segments are read right to left, each weighted by the next power of 60,
    so any number of segments is accepted.
    """
    value = (node.text or "").strip()
    if not value:
        return None

    total = 0
    multiplier = 1
    for segment in reversed(value.split(":")):
        seconds = _segment_value(segment)
        if seconds is None:
            logger.debug("Unparseable duration: %r", value)
            return None
        total += multiplier * seconds
        multiplier *= SECONDS_PER_SEGMENT
    return total


def owner(node: RawNode) -> Optional[Owner]:
    """Build an Owner from itunes:name and itunes:email; None if either is missing."""
    name_node = node.first("itunes:name")
    email_node = node.first("itunes:email")
    if name_node is None or email_node is None:
        return None
    if not name_node.text or not email_node.text:
        return None
    return Owner(name=name_node.text, email=email_node.text)


def categories(nodes: Sequence[RawNode]) -> Tuple[Tuple[str, ...], ...]:
    """Flatten itunes:category nodes into (primary[, sub-category]) tuples.

    Entries without a ``text`` attribute are skipped so every tuple has a
    primary category.
    """
    result = []
    for node in nodes:
        primary = node.attr("text")
        if primary is None:
            continue
        sub_node = node.first("itunes:category")
        sub = sub_node.attr("text") if sub_node is not None else None
        result.append((primary, sub) if sub else (primary,))
    return tuple(result)


def text_list(nodes: Sequence[RawNode]) -> Tuple[str, ...]:
    """Text of every occurrence, skipping empty ones (repeated language tags)."""
    return tuple(node.text for node in nodes if node.text)


COERCERS: Dict[str, Coercer] = {
    "text": text,
    "url_attr": url_attr,
    "href_attr": href_attr,
    "image_url_child": image_url_child,
    "guid_text": guid_text,
    "explicit": explicit,
    "truth": truth,
    "date": date,
    "duration": duration,
    "owner": owner,
    "categories": categories,
    "text_list": text_list,
}

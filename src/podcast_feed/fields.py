"""Field extraction driven by declarative per-record tables.

The XML tree wraps every field in a sequence (one entry per occurrence). Most
feed fields are logically scalar, so the first occurrence wins; a few
(``language``, ``itunes:category``) are logically repeated and are coerced as a
whole. Each `FieldSpec` pairs a tag with one of four extraction strategies and
a named coercer from `coercers.COERCERS`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional, Sequence, Tuple

from .coercers import COERCERS
from .exceptions import RequiredFieldMissing
from .xml_tree import RawNode

logger = logging.getLogger(__name__)

RECORD_META = "meta"
RECORD_EPISODE = "episode"


class Strategy(Enum):
    """How a field's occurrences are turned into a value."""

    SCALAR_REQUIRED = "scalar-required"
    SCALAR_OPTIONAL = "scalar-optional"
    ARRAY_REQUIRED = "array-required"
    ARRAY_OPTIONAL = "array-optional"

    @property
    def required(self) -> bool:
        return self in (Strategy.SCALAR_REQUIRED, Strategy.ARRAY_REQUIRED)

    @property
    def is_array(self) -> bool:
        return self in (Strategy.ARRAY_REQUIRED, Strategy.ARRAY_OPTIONAL)


@dataclass(frozen=True)
class FieldSpec:
    """One row of a field table.

    Attributes:
        name: Attribute name on the output record.
        tag: Tag read from the source node.
        strategy: Required-ness and array-ness.
        coercer: Name of the coercer in `coercers.COERCERS`. Defaults to
            ``text`` for scalar fields and ``text_list`` for array fields.
        fallbacks: Extra (tag, coercer) sources tried in order when the
            primary source yields nothing.
        from_channel: Read from the channel node even when building an episode.
    """

    name: str
    tag: str
    strategy: Strategy = Strategy.SCALAR_OPTIONAL
    coercer: Optional[str] = None
    fallbacks: Tuple[Tuple[str, str], ...] = ()
    from_channel: bool = False

    @property
    def sources(self) -> Tuple[Tuple[str, str], ...]:
        default = "text_list" if self.strategy.is_array else "text"
        return ((self.tag, self.coercer or default),) + self.fallbacks


def _is_missing(value: Any) -> bool:
    return value is None or value == "" or value == ()


def extract(
    raw: Optional[Sequence[RawNode]],
    required: bool = False,
    is_array: bool = False,
    coercer: Optional[Callable[..., Any]] = None,
    *,
    field: Optional[str] = None,
    record: Optional[str] = None,
    index: Optional[int] = None,
) -> Any:
    """Extract a value from the occurrences of one field.

    Args:
        raw: Every occurrence of the field (may be empty or None)
        required: Raise when the field is absent or coerces to nothing
        is_array: Coerce the whole sequence instead of its first element
        coercer: Optional function applied to the first element (scalar) or the
            whole sequence (array)
        field, record, index: Context attached to `RequiredFieldMissing`

    Returns:
        The coerced value, the raw first element / sequence when no coercer is
        given, or None when an optional field is absent

    Raises:
        RequiredFieldMissing: If ``required`` and no usable value exists
    """
    if not raw:
        if required:
            raise RequiredFieldMissing(field=field, record=record, index=index)
        return None

    if is_array:
        value = coercer(raw) if coercer else tuple(raw)
    else:
        value = coercer(raw[0]) if coercer else raw[0]

    if required and _is_missing(value):
        raise RequiredFieldMissing(field=field, record=record, index=index)
    return value


def extract_field(
    node: RawNode,
    spec: FieldSpec,
    *,
    record: Optional[str] = None,
    index: Optional[int] = None,
) -> Any:
    """Extract one field described by ``spec`` from ``node``.

    Fallback sources are consulted in order; the required check applies only
    once every source has come up empty.
    """
    sources = spec.sources
    last = len(sources) - 1
    for position, (tag, coercer_name) in enumerate(sources):
        value = extract(
            node.get(tag),
            required=spec.strategy.required and position == last,
            is_array=spec.strategy.is_array,
            coercer=COERCERS[coercer_name],
            field=spec.name,
            record=record,
            index=index,
        )
        if not _is_missing(value):
            return value
        if position < last:
            logger.debug("Field %s missing from <%s>, trying fallback", spec.name, tag)
    return None


META_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("title", "title", Strategy.SCALAR_REQUIRED),
    FieldSpec("guid", "guid", coercer="guid_text"),
    FieldSpec("description", "description", Strategy.SCALAR_REQUIRED),
    FieldSpec("subtitle", "itunes:subtitle"),
    FieldSpec(
        "image_url",
        "image",
        Strategy.SCALAR_REQUIRED,
        coercer="image_url_child",
        fallbacks=(("itunes:image", "href_attr"),),
    ),
    FieldSpec("last_updated", "lastBuildDate", coercer="date"),
    FieldSpec("link", "link"),
    FieldSpec("language", "language", Strategy.ARRAY_OPTIONAL),
    FieldSpec("editor", "managingEditor"),
    FieldSpec("author", "itunes:author"),
    FieldSpec("summary", "itunes:summary"),
    FieldSpec("categories", "itunes:category", Strategy.ARRAY_OPTIONAL, coercer="categories"),
    FieldSpec("owner", "itunes:owner", coercer="owner"),
    FieldSpec("explicit", "itunes:explicit", coercer="explicit"),
    FieldSpec("complete", "itunes:complete", coercer="truth"),
    FieldSpec("blocked", "itunes:block", coercer="truth"),
)

EPISODE_FIELDS: Tuple[FieldSpec, ...] = (
    FieldSpec("title", "title", Strategy.SCALAR_REQUIRED),
    FieldSpec("guid", "guid", Strategy.SCALAR_REQUIRED, coercer="guid_text"),
    FieldSpec("language", "language", Strategy.ARRAY_OPTIONAL, from_channel=True),
    FieldSpec("link", "link"),
    FieldSpec("image_url", "itunes:image", coercer="href_attr"),
    FieldSpec("publication_date", "pubDate", coercer="date"),
    FieldSpec("audio_file_url", "enclosure", Strategy.SCALAR_REQUIRED, coercer="url_attr"),
    FieldSpec("duration", "itunes:duration", coercer="duration"),
    FieldSpec("description", "description"),
    FieldSpec("subtitle", "itunes:subtitle"),
    FieldSpec("summary", "itunes:summary"),
    FieldSpec("blocked", "itunes:block", coercer="truth"),
    FieldSpec("explicit", "itunes:explicit", coercer="explicit"),
    FieldSpec("order", "itunes:order"),
)

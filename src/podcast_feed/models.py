from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

Category = Tuple[str, ...]


@dataclass(frozen=True)
class Owner:
    """Podcast owner from ``itunes:owner``."""

    name: str
    email: str


@dataclass(frozen=True)
class PodcastMeta:
    """Podcast-level metadata read from the feed's channel.

    ``title``, ``description`` and ``image_url`` are always present; every other
    field is None when the feed does not carry it.

    Attributes:
        title: Channel title.
        description: Channel description.
        image_url: Cover art URL (``<image><url>``, falling back to ``itunes:image``).
        guid: Channel guid text.
        subtitle: ``itunes:subtitle``.
        last_updated: ``lastBuildDate`` as an aware datetime.
        link: Website link.
        language: Every ``language`` value, in feed order.
        editor: ``managingEditor``.
        author: ``itunes:author``.
        summary: ``itunes:summary``.
        categories: (primary[, sub-category]) tuples from ``itunes:category``.
        owner: ``itunes:owner`` name and email.
        explicit: True, False, or None when the feed value is unrecognized.
        complete: ``itunes:complete``.
        blocked: ``itunes:block``.
    """

    title: str
    description: str
    image_url: str
    guid: Optional[str] = None
    subtitle: Optional[str] = None
    last_updated: Optional[datetime] = None
    link: Optional[str] = None
    language: Optional[Tuple[str, ...]] = None
    editor: Optional[str] = None
    author: Optional[str] = None
    summary: Optional[str] = None
    categories: Optional[Tuple[Category, ...]] = None
    owner: Optional[Owner] = None
    explicit: Optional[bool] = None
    complete: Optional[bool] = None
    blocked: Optional[bool] = None


@dataclass(frozen=True)
class Episode:
    """A single feed item.

    ``order`` keeps the raw ``itunes:order`` text; it only drives sorting.
    ``language`` is inherited from the channel.
    """

    title: str
    guid: str
    audio_file_url: str
    language: Optional[Tuple[str, ...]] = None
    link: Optional[str] = None
    image_url: Optional[str] = None
    publication_date: Optional[datetime] = None
    duration: Optional[int] = None
    description: Optional[str] = None
    subtitle: Optional[str] = None
    summary: Optional[str] = None
    blocked: Optional[bool] = None
    explicit: Optional[bool] = None
    order: Optional[str] = None


@dataclass(frozen=True)
class Podcast:
    """Result of resolving a feed: channel metadata plus sorted episodes."""

    meta: PodcastMeta
    episodes: Tuple[Episode, ...]

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict form, with datetimes as ISO 8601 strings."""
        return _isoformat_dates(asdict(self))


def _isoformat_dates(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: _isoformat_dates(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_isoformat_dates(item) for item in value]
    return value

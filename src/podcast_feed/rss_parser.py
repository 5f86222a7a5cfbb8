"""Channel and item record builders, plus episode ordering."""

from __future__ import annotations

import logging
import math
from datetime import datetime
from functools import cmp_to_key
from typing import Iterable, List, Optional, Tuple, Union

from . import fields, models
from .xml_tree import RawNode

logger = logging.getLogger(__name__)

OrderKey = Tuple[int, Union[float, str]]


def build_meta(channel: RawNode) -> models.PodcastMeta:
    """Build podcast metadata from a channel node.

    Raises:
        RequiredFieldMissing: If title, description or image is absent
    """
    values = {
        spec.name: fields.extract_field(channel, spec, record=fields.RECORD_META)
        for spec in fields.META_FIELDS
    }
    return models.PodcastMeta(**values)


def build_episode(item: RawNode, channel: RawNode, index: int) -> models.Episode:
    """Build one episode from an item node.

    Args:
        item: The ``<item>`` node
        channel: Enclosing channel, source of channel-scoped fields (language)
        index: Position of the item in the feed, used in error messages

    Raises:
        RequiredFieldMissing: If title, guid or enclosure URL is absent
    """
    values = {
        spec.name: fields.extract_field(
            channel if spec.from_channel else item,
            spec,
            record=fields.RECORD_EPISODE,
            index=index,
        )
        for spec in fields.EPISODE_FIELDS
    }
    return models.Episode(**values)


def _order_key(order: str) -> OrderKey:
    """Rank key for an itunes:order value.

    Finite numbers rank by value. Any other text ranks above every number and
    compares as text among itself.
    """
    try:
        number = float(order)
    except ValueError:
        return (1, order)
    if not math.isfinite(number):
        return (1, order)
    return (0, number)


def _compare_dates(a: Optional[datetime], b: Optional[datetime]) -> int:
    """Most recent first; undated episodes after dated ones."""
    if a == b:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1
    return -1 if a > b else 1


def compare_episodes(a: models.Episode, b: models.Episode) -> int:
    """Comparator for episode ordering.

    - Same order value, or neither has one: newest publication date first,
      then the greater title first.
    - Only one has an order value: the one without sorts first.
    - Different order values: the greater order sorts first.
    """
    a_has_order = a.order is not None
    b_has_order = b.order is not None

    if a_has_order != b_has_order:
        return 1 if a_has_order else -1

    if a_has_order and b_has_order:
        a_key = _order_key(a.order)  # type: ignore[arg-type]
        b_key = _order_key(b.order)  # type: ignore[arg-type]
        if a_key != b_key:
            return -1 if a_key > b_key else 1

    by_date = _compare_dates(a.publication_date, b.publication_date)
    if by_date:
        return by_date
    if a.title == b.title:
        return 0
    return -1 if a.title > b.title else 1


def sort_episodes(episodes: Iterable[models.Episode]) -> List[models.Episode]:
    """Return episodes sorted with `compare_episodes`."""
    return sorted(episodes, key=cmp_to_key(compare_episodes))


def build_episodes(channel: RawNode) -> Tuple[models.Episode, ...]:
    """Build and sort every episode under a channel.

    Raises:
        RequiredFieldMissing: If any item lacks a required field
    """
    items = channel.get("item")
    episodes = [build_episode(item, channel, index) for index, item in enumerate(items)]
    logger.debug("Built %d episodes from channel", len(episodes))
    return tuple(sort_episodes(episodes))

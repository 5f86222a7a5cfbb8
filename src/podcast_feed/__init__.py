# This project is intended for personal, non-commercial use only.
# See README for details.

"""Podcast Feed - Normalize podcast RSS feeds into typed records.

This package reads a podcast RSS feed and returns:
- Podcast-level metadata (title, artwork, owner, categories, iTunes flags)
- Episode records sorted by itunes:order, then publication date, then title

Programmatic API Example:
    >>> import podcast_feed
    >>>
    >>> podcast = podcast_feed.get_podcast_from_url("https://example.com/feed.xml")
    >>> print(podcast.meta.title, len(podcast.episodes))
    >>>
    >>> with open("feed.xml", "rb") as fh:
    ...     podcast = podcast_feed.get_podcast_from_feed(fh.read())

Redirected feeds (itunes:new-feed-url):
    >>> cfg = podcast_feed.Config(redirect_policy="follow")
    >>> podcast = podcast_feed.get_podcast_from_url("https://example.com/old.xml", cfg)
"""

from __future__ import annotations

from .config import Config, load_config_file
from .exceptions import (
    ERRORS,
    FetchingError,
    ParsingError,
    PodcastFeedError,
    RequiredFieldMissing,
)
from .models import Episode, Owner, Podcast, PodcastMeta
from .workflow import (
    apply_log_level,
    configure_logging,
    get_podcast_from_feed,
    get_podcast_from_url,
)

__all__ = [
    "Config",
    "load_config_file",
    "apply_log_level",
    "configure_logging",
    "get_podcast_from_feed",
    "get_podcast_from_url",
    "Podcast",
    "PodcastMeta",
    "Episode",
    "Owner",
    "ERRORS",
    "PodcastFeedError",
    "ParsingError",
    "RequiredFieldMissing",
    "FetchingError",
    "__version__",
]
__version__ = "1.0.0"

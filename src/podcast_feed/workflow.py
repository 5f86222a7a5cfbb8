"""Feed resolution: fetch, parse, locate the channel and build records."""

from __future__ import annotations

import logging
import os
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Optional, Union

from . import config, config_constants, downloader, models, rss_parser, xml_tree
from .exceptions import FetchingError, ParsingError, PodcastFeedError

logger = logging.getLogger(__name__)

NEW_FEED_URL_TAG = "itunes:new-feed-url"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_NOT_A_FEED_SUGGESTION = "Make sure the URL points to an RSS feed, not a web page"

_REDIRECT_EXECUTOR: Optional[ThreadPoolExecutor] = None
_REDIRECT_EXECUTOR_LOCK = threading.Lock()


def _has_file_handler(root_logger: logging.Logger, log_file: str) -> bool:
    target = os.path.abspath(log_file)
    return any(
        isinstance(h, logging.FileHandler) and h.baseFilename == target
        for h in root_logger.handlers
    )


def apply_log_level(level: str, log_file: Optional[str] = None) -> None:
    """Set the root log level and attach console/file handlers.

    A console handler is added only when the root logger has none. A file
    handler is added once per path; its parent directory is created.

    Raises:
        ValueError: If ``level`` is not one of `config.VALID_LOG_LEVELS`
        OSError: If the log file cannot be created
    """
    level_name = str(level).strip().upper()
    if level_name not in config.VALID_LOG_LEVELS:
        raise ValueError(f"Invalid log level: {level}")
    numeric_level = logging.getLevelName(level_name)

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    if root_logger.handlers:
        for handler in root_logger.handlers:
            handler.setLevel(numeric_level)
    else:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(console_handler)

    if log_file and not _has_file_handler(root_logger, log_file):
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setLevel(numeric_level)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root_logger.addHandler(file_handler)
        logger.info("Logging to file: %s", log_file)


def configure_logging(cfg: Optional[config.Config] = None) -> None:
    """Apply ``cfg.log_level`` and ``cfg.log_file`` to the root logger.

    Library calls never touch logging on their own; applications call this
    once at startup.

    Example:
        >>> configure_logging(Config(log_level="DEBUG", log_file="feed.log"))
    """
    cfg = cfg or config.Config()
    apply_log_level(cfg.log_level, cfg.log_file)


def resolve_channel(document: xml_tree.RawNode) -> xml_tree.RawNode:
    """Return the first ``channel`` under the document's ``rss`` element.

    Raises:
        ParsingError: If the document has no rss/channel element
    """
    rss = document.first("rss")
    if rss is None:
        raise ParsingError(
            "Parsing error: document has no <rss> element.",
            suggestion=_NOT_A_FEED_SUGGESTION,
        )
    channel = rss.first("channel")
    if channel is None:
        raise ParsingError(
            "Parsing error: <rss> has no <channel> element.",
            suggestion=_NOT_A_FEED_SUGGESTION,
        )
    return channel


def _get_redirect_executor() -> ThreadPoolExecutor:
    global _REDIRECT_EXECUTOR
    with _REDIRECT_EXECUTOR_LOCK:
        if _REDIRECT_EXECUTOR is None:
            _REDIRECT_EXECUTOR = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="feed-redirect"
            )
        return _REDIRECT_EXECUTOR


def _resolve_in_background(
    url: str, cfg: config.Config, hops: int
) -> Optional[models.Podcast]:
    try:
        podcast = _podcast_from_url(url, cfg, hops)
    except PodcastFeedError as exc:
        logger.warning("Background resolution of redirected feed %s failed: %s", url, exc)
        return None
    except Exception:
        logger.exception("Unexpected error resolving redirected feed %s", url)
        return None
    logger.debug(
        "Background resolution of %s finished with %d episodes (result not used)",
        url,
        len(podcast.episodes),
    )
    return podcast


def schedule_redirect(
    url: str, cfg: config.Config, hops: int = 1
) -> "Future[Optional[models.Podcast]]":
    """Resolve ``url`` on a background worker without waiting for it."""
    logger.debug("Scheduling background resolution of redirected feed %s", url)
    return _get_redirect_executor().submit(_resolve_in_background, url, cfg, hops)


def _handle_redirect(
    channel: xml_tree.RawNode,
    cfg: config.Config,
    source_url: Optional[str],
    hops: int,
) -> Optional[models.Podcast]:
    """Act on ``itunes:new-feed-url`` according to ``cfg.redirect_policy``.

    Returns the redirected feed's result only for the ``follow`` policy.
    """
    marker = channel.first(NEW_FEED_URL_TAG)
    new_url = marker.text if marker is not None else None
    if not new_url:
        return None
    if new_url == source_url:
        logger.debug("Feed %s redirects to itself, ignoring", new_url)
        return None

    policy = cfg.redirect_policy
    if policy == config_constants.REDIRECT_POLICY_IGNORE:
        logger.info("Feed declares new URL %s (not followed)", new_url)
        return None

    if hops >= config_constants.MAX_FEED_REDIRECTS:
        if policy == config_constants.REDIRECT_POLICY_FOLLOW:
            raise FetchingError(
                new_url,
                reason=f"more than {config_constants.MAX_FEED_REDIRECTS} feed redirects",
            )
        logger.warning("Not resolving %s: feed redirect limit reached", new_url)
        return None

    if policy == config_constants.REDIRECT_POLICY_FOLLOW:
        logger.info("Following feed redirect to %s", new_url)
        return _podcast_from_url(new_url, cfg, hops + 1)

    schedule_redirect(new_url, cfg, hops + 1)
    return None


def podcast_from_document(
    document: xml_tree.RawNode,
    cfg: Optional[config.Config] = None,
    source_url: Optional[str] = None,
    hops: int = 0,
) -> models.Podcast:
    """Build a Podcast from a parsed document.

    Args:
        document: Parsed document node (see `xml_tree.parse_xml`)
        cfg: Configuration; defaults to `Config()`
        source_url: URL the document was fetched from, if any
        hops: Number of feed redirects already followed

    Raises:
        ParsingError: If the document has no rss/channel element
        RequiredFieldMissing: If a required channel or item field is absent
        FetchingError: If a followed redirect cannot be fetched
    """
    cfg = cfg or config.Config()
    channel = resolve_channel(document)

    redirected = _handle_redirect(channel, cfg, source_url, hops)
    if redirected is not None:
        return redirected

    meta = rss_parser.build_meta(channel)
    episodes = rss_parser.build_episodes(channel)
    return models.Podcast(meta=meta, episodes=episodes)


def _podcast_from_url(url: str, cfg: config.Config, hops: int) -> models.Podcast:
    body = downloader.fetch_feed_text(url, cfg.user_agent, cfg.timeout)
    document = xml_tree.parse_xml(body)
    return podcast_from_document(document, cfg, source_url=url, hops=hops)


def get_podcast_from_url(url: str, cfg: Optional[config.Config] = None) -> models.Podcast:
    """Fetch, parse and extract a remote feed.

    Args:
        url: Feed URL
        cfg: Configuration; defaults to `Config()`

    Returns:
        Podcast with metadata and sorted episodes

    Raises:
        FetchingError: If the feed cannot be retrieved
        ParsingError: If the response is not a well-formed RSS document
        RequiredFieldMissing: If a required field is absent
    """
    return _podcast_from_url(url, cfg or config.Config(), hops=0)


def get_podcast_from_feed(
    feed_text: Union[str, bytes], cfg: Optional[config.Config] = None
) -> models.Podcast:
    """Parse and extract feed text that was already retrieved.

    Raises:
        ParsingError: If the text is not a well-formed RSS document
        RequiredFieldMissing: If a required field is absent
        FetchingError: Only when ``redirect_policy="follow"`` and the
            redirected feed cannot be retrieved
    """
    document = xml_tree.parse_xml(feed_text)
    return podcast_from_document(document, cfg)

"""HTTP session management and feed download for podcast_feed."""

from __future__ import annotations

import atexit
import logging
import threading
from typing import cast, List

import requests
from requests.adapters import HTTPAdapter
from requests.utils import requote_uri
from urllib3.util.retry import Retry

from .exceptions import FetchingError

logger = logging.getLogger(__name__)

# A failed fetch surfaces immediately; no retries
HTTP_RETRY_TOTAL = 0

_THREAD_LOCAL = threading.local()
_SESSION_REGISTRY: List[requests.Session] = []
_SESSION_REGISTRY_LOCK = threading.Lock()


def normalize_url(url: str) -> str:
    """Normalize URLs while preserving already-encoded segments."""
    normalized = requote_uri(url)
    if normalized != url:
        logger.debug("Normalized URL %s -> %s", url, normalized)
    return cast(str, normalized)


def _configure_http_session(session: requests.Session) -> None:
    """Attach non-retrying HTTP adapters to a session."""
    retry = Retry(total=HTTP_RETRY_TOTAL, raise_on_status=False)
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    logger.debug("Configured HTTP session %s", hex(id(session)))


def _get_thread_request_session() -> requests.Session:
    session = getattr(_THREAD_LOCAL, "session", None)
    if session is None:
        session = requests.Session()
        _configure_http_session(session)
        setattr(_THREAD_LOCAL, "session", session)
        with _SESSION_REGISTRY_LOCK:
            _SESSION_REGISTRY.append(session)
        logger.debug("Created new thread-local HTTP session %s", hex(id(session)))
    return session


def _close_all_sessions() -> None:
    with _SESSION_REGISTRY_LOCK:
        for session in _SESSION_REGISTRY:
            try:
                session.close()
            # Best-effort cleanup; ignore shutdown errors
            except Exception:  # pragma: no cover  # nosec B110
                pass
        _SESSION_REGISTRY.clear()


atexit.register(_close_all_sessions)


def fetch_feed_text(url: str, user_agent: str, timeout: int) -> bytes:
    """Fetch a feed and return its raw body.

    The body is returned as bytes so the XML parser can honor the encoding
    declared by the feed.

    Args:
        url: Feed URL
        user_agent: User-Agent header value
        timeout: Request timeout in seconds

    Returns:
        Response body

    Raises:
        FetchingError: On transport errors or a non-success status
    """
    normalized_url = normalize_url(url)
    headers = {"User-Agent": user_agent}
    session = _get_thread_request_session()
    logger.debug("Fetching feed %s (timeout=%s)", normalized_url, timeout)
    try:
        resp = session.get(normalized_url, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Failed to fetch %s: %s", url, exc)
        raise FetchingError(
            url,
            reason=str(exc),
            suggestion="Check network connectivity and that the feed host is reachable",
        ) from exc

    try:
        resp.raise_for_status()
        content = resp.content
    except requests.HTTPError as exc:
        logger.warning("Failed to fetch %s: HTTP %s", url, resp.status_code)
        raise FetchingError(
            url,
            reason=f"HTTP {resp.status_code}",
            status_code=resp.status_code,
            suggestion="Check that the feed URL is correct and publicly accessible",
        ) from exc
    except requests.RequestException as exc:
        logger.warning("Failed to read response from %s: %s", url, exc)
        raise FetchingError(url, reason=str(exc)) from exc
    finally:
        resp.close()

    logger.debug("Fetched %d bytes from %s", len(content), normalized_url)
    return content

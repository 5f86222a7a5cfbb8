"""Shared fixtures and test utilities for podcast_feed tests.

This module contains:
- Test constants
- Helpers that build RSS feed text
- A mock HTTP response
- Network isolation for unit tests

All test files can import from this module using pytest's conftest.py mechanism.
"""

import socket
from unittest.mock import patch

import pytest

from podcast_feed import config

# Test constants
TEST_BASE_URL = "https://example.com"
TEST_FEED_URL = "https://example.com/feed.xml"
TEST_NEW_FEED_URL = "https://new.example.com/feed.xml"
TEST_FEED_TITLE = "Test Feed"
TEST_FEED_DESCRIPTION = "A podcast about tests"
TEST_IMAGE_URL = "https://example.com/cover.jpg"
TEST_EPISODE_TITLE = "Episode Title"
TEST_EPISODE_GUID = "episode-guid-1"
TEST_MEDIA_URL = "https://example.com/episode.mp3"
TEST_MEDIA_TYPE_MP3 = "audio/mpeg"
TEST_PUB_DATE = "Mon, 15 Jan 2024 10:00:00 +0000"

ITUNES_NS = "http://www.itunes.com/dtds/podcast-1.0.dtd"

# Required elements, keyed by the name tests use to omit them
_CHANNEL_REQUIRED = {
    "title": f"<title>{TEST_FEED_TITLE}</title>",
    "description": f"<description>{TEST_FEED_DESCRIPTION}</description>",
    "image": f"<image><url>{TEST_IMAGE_URL}</url></image>",
}


def build_item_xml(
    title=TEST_EPISODE_TITLE,
    guid=TEST_EPISODE_GUID,
    media_url=TEST_MEDIA_URL,
    extra="",
    omit=(),
):
    """Build an <item> element.

    Args:
        title: Episode title
        guid: Episode guid text
        media_url: Enclosure URL
        extra: Additional raw XML placed inside the item
        omit: Names of required elements to leave out ("title", "guid", "enclosure")

    Returns:
        Item XML string
    """
    parts = []
    if "title" not in omit:
        parts.append(f"<title>{title}</title>")
    if "guid" not in omit:
        parts.append(f'<guid isPermaLink="false">{guid}</guid>')
    if "enclosure" not in omit:
        parts.append(
            f'<enclosure url="{media_url}" type="{TEST_MEDIA_TYPE_MP3}" length="1234"/>'
        )
    parts.append(extra)
    return "<item>" + "".join(parts) + "</item>"


def build_rss_xml(items=None, channel_extra="", omit=()):
    """Build a complete RSS document with the iTunes namespace declared.

    Args:
        items: Item XML strings; defaults to one minimal item
        channel_extra: Additional raw XML placed inside the channel
        omit: Names of required channel elements to leave out
            ("title", "description", "image")

    Returns:
        RSS XML string
    """
    if items is None:
        items = [build_item_xml()]
    required = "".join(xml for name, xml in _CHANNEL_REQUIRED.items() if name not in omit)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<rss version="2.0" xmlns:itunes="{ITUNES_NS}">'
        "<channel>"
        f"{required}{channel_extra}{''.join(items)}"
        "</channel>"
        "</rss>"
    )


def create_test_config(**overrides):
    """Create test Config object with defaults.

    Args:
        **overrides: Fields to override from defaults

    Returns:
        config.Config object with test defaults
    """
    defaults = {
        "user_agent": "test-agent",
        "timeout": 30,
        "redirect_policy": "ignore",
        "log_level": "INFO",
    }
    defaults.update(overrides)
    return config.Config(**defaults)


class MockHTTPResponse:
    """Simple mock for HTTP responses."""

    def __init__(self, *, content=b"", url="", status_code=200, headers=None):
        self.content = content
        self.url = url
        self.status_code = status_code
        self.headers = headers or {}
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            import requests

            raise requests.HTTPError(f"{self.status_code} Error", response=self)
        return None

    def close(self):
        self.closed = True


def create_rss_response(rss_xml, url=TEST_FEED_URL):
    """Create MockHTTPResponse for RSS feed."""
    return MockHTTPResponse(
        content=rss_xml.encode("utf-8"),
        url=url,
        headers={"Content-Type": "application/rss+xml"},
    )


class NetworkCallDetectedError(Exception):
    """Raised when a test attempts to open a network connection."""

    def __init__(self, address):
        self.address = address
        super().__init__(
            f"Network call detected in test: connect({address!r})\n"
            f"Tests must not make network calls. Use mocks instead."
        )


@pytest.fixture(autouse=True)
def block_network():
    """Fail any test that tries to open a real socket connection."""

    def blocker(self, address, *args, **kwargs):
        raise NetworkCallDetectedError(address)

    with patch.object(socket.socket, "connect", blocker), patch.object(
        socket.socket, "connect_ex", blocker
    ):
        yield


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep configuration environment variables from leaking into tests."""
    for name in ("LOG_LEVEL", "LOG_FILE", "TIMEOUT", "USER_AGENT", "FEED_REDIRECT_POLICY"):
        monkeypatch.delenv(name, raising=False)

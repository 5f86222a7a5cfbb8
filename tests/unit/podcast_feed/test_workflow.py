#!/usr/bin/env python3
"""Tests for feed resolution and the public API."""

import logging
import os
import re
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

import podcast_feed
from podcast_feed import config_constants, workflow
from podcast_feed.exceptions import FetchingError, ParsingError, RequiredFieldMissing

# Add tests directory to path for conftest import
tests_dir = Path(__file__).resolve().parents[2]
if str(tests_dir) not in sys.path:
    sys.path.insert(0, str(tests_dir))

from conftest import (  # noqa: E402
    build_item_xml,
    build_rss_xml,
    create_test_config,
    TEST_FEED_TITLE,
    TEST_FEED_URL,
    TEST_NEW_FEED_URL,
)


def _redirecting_feed(new_url, title="Old Feed"):
    return build_rss_xml(
        omit=("title",),
        channel_extra=f"<title>{title}</title><itunes:new-feed-url>{new_url}</itunes:new-feed-url>",
    )


class TestGetPodcastFromFeed(unittest.TestCase):
    """Tests for get_podcast_from_feed."""

    def test_minimal_feed_has_all_required_fields(self):
        podcast = podcast_feed.get_podcast_from_feed(build_rss_xml(), create_test_config())
        self.assertEqual(podcast.meta.title, TEST_FEED_TITLE)
        self.assertTrue(podcast.meta.description)
        self.assertTrue(podcast.meta.image_url)
        self.assertEqual(len(podcast.episodes), 1)
        episode = podcast.episodes[0]
        self.assertTrue(episode.title)
        self.assertTrue(episode.guid)
        self.assertTrue(episode.audio_file_url)

    def test_removing_any_required_field_fails(self):
        cfg = create_test_config()
        feeds = {
            "channel title": build_rss_xml(omit=("title",)),
            "channel description": build_rss_xml(omit=("description",)),
            "channel image": build_rss_xml(omit=("image",)),
            "item title": build_rss_xml(items=[build_item_xml(omit=("title",))]),
            "item guid": build_rss_xml(items=[build_item_xml(omit=("guid",))]),
            "item enclosure": build_rss_xml(items=[build_item_xml(omit=("enclosure",))]),
        }
        for name, xml in feeds.items():
            with self.subTest(missing=name):
                with self.assertRaises(RequiredFieldMissing):
                    podcast_feed.get_podcast_from_feed(xml, cfg)

    def test_idempotent(self):
        xml = build_rss_xml(
            items=[
                build_item_xml(title="A", guid="a", extra="<itunes:order>2</itunes:order>"),
                build_item_xml(title="B", guid="b"),
            ],
            channel_extra="<language>en</language>",
        )
        cfg = create_test_config()
        first = podcast_feed.get_podcast_from_feed(xml, cfg)
        second = podcast_feed.get_podcast_from_feed(xml, cfg)
        self.assertEqual(first, second)
        self.assertEqual(first.to_dict(), second.to_dict())

    def test_malformed_xml_raises_parsing_error(self):
        with self.assertRaises(ParsingError):
            podcast_feed.get_podcast_from_feed("<rss><channel>", create_test_config())

    def test_document_without_channel_raises_parsing_error(self):
        with self.assertRaises(ParsingError):
            podcast_feed.get_podcast_from_feed("<rss version='2.0'/>", create_test_config())
        with self.assertRaises(ParsingError):
            podcast_feed.get_podcast_from_feed("<html><body/></html>", create_test_config())

    def test_itunes_fields_read_under_any_declared_prefix(self):
        xml = build_rss_xml(channel_extra="<itms:author>Jane</itms:author>").replace(
            "<rss ", '<rss xmlns:itms="http://www.itunes.com/dtds/podcast-1.0.dtd" ', 1
        )
        podcast = podcast_feed.get_podcast_from_feed(xml, create_test_config())
        self.assertEqual(podcast.meta.author, "Jane")

    def test_missing_channel_error_carries_suggestion(self):
        with self.assertRaises(ParsingError) as ctx:
            podcast_feed.get_podcast_from_feed("<html><body/></html>", create_test_config())
        self.assertIsNotNone(ctx.exception.suggestion)
        self.assertIn("Suggestion:", str(ctx.exception))

    def test_uses_first_channel(self):
        xml = build_rss_xml().replace(
            "</rss>", "<channel><title>Second</title></channel></rss>"
        )
        podcast = podcast_feed.get_podcast_from_feed(xml, create_test_config())
        self.assertEqual(podcast.meta.title, TEST_FEED_TITLE)

    def test_default_config(self):
        podcast = podcast_feed.get_podcast_from_feed(build_rss_xml())
        self.assertEqual(podcast.meta.title, TEST_FEED_TITLE)


class TestGetPodcastFromURL(unittest.TestCase):
    """Tests for get_podcast_from_url."""

    def test_fetches_and_parses(self):
        cfg = create_test_config()
        with patch(
            "podcast_feed.downloader.fetch_feed_text",
            return_value=build_rss_xml().encode("utf-8"),
        ) as mock_fetch:
            podcast = podcast_feed.get_podcast_from_url(TEST_FEED_URL, cfg)
        mock_fetch.assert_called_once_with(TEST_FEED_URL, "test-agent", 30)
        self.assertEqual(podcast.meta.title, TEST_FEED_TITLE)

    def test_fetch_failure_propagates(self):
        with patch(
            "podcast_feed.downloader.fetch_feed_text",
            side_effect=FetchingError(TEST_FEED_URL, reason="boom"),
        ):
            with self.assertRaises(FetchingError):
                podcast_feed.get_podcast_from_url(TEST_FEED_URL, create_test_config())

    def test_malformed_response_is_parsing_error(self):
        with patch("podcast_feed.downloader.fetch_feed_text", return_value=b"<html>"):
            with self.assertRaises(ParsingError):
                podcast_feed.get_podcast_from_url(TEST_FEED_URL, create_test_config())


class TestFeedRedirect(unittest.TestCase):
    """Tests for itunes:new-feed-url handling."""

    def test_background_policy_returns_current_feed(self):
        cfg = create_test_config(redirect_policy="background")
        with patch("podcast_feed.workflow.schedule_redirect") as mock_schedule:
            podcast = podcast_feed.get_podcast_from_feed(_redirecting_feed(TEST_NEW_FEED_URL), cfg)
        mock_schedule.assert_called_once_with(TEST_NEW_FEED_URL, cfg, 1)
        self.assertEqual(podcast.meta.title, "Old Feed")

    def test_background_resolution_runs_and_result_is_discarded(self):
        cfg = create_test_config(redirect_policy="background")
        new_feed = build_rss_xml().encode("utf-8")
        with patch("podcast_feed.downloader.fetch_feed_text", return_value=new_feed) as mock_fetch:
            future = workflow.schedule_redirect(TEST_NEW_FEED_URL, cfg)
            result = future.result(timeout=10)
        mock_fetch.assert_called_once_with(TEST_NEW_FEED_URL, "test-agent", 30)
        self.assertEqual(result.meta.title, TEST_FEED_TITLE)

    def test_background_failure_is_logged_not_raised(self):
        cfg = create_test_config(redirect_policy="background")
        with patch(
            "podcast_feed.downloader.fetch_feed_text",
            side_effect=FetchingError(TEST_NEW_FEED_URL, reason="down"),
        ):
            with self.assertLogs("podcast_feed.workflow", level="WARNING"):
                future = workflow.schedule_redirect(TEST_NEW_FEED_URL, cfg)
                self.assertIsNone(future.result(timeout=10))

    def test_background_unexpected_error_is_logged(self):
        cfg = create_test_config(redirect_policy="background")
        with patch(
            "podcast_feed.downloader.fetch_feed_text", side_effect=RuntimeError("boom")
        ):
            with self.assertLogs("podcast_feed.workflow", level="ERROR") as logs:
                future = workflow.schedule_redirect(TEST_NEW_FEED_URL, cfg)
                self.assertIsNone(future.result(timeout=10))
        self.assertIn(TEST_NEW_FEED_URL, logs.output[0])

    def test_follow_policy_returns_redirected_feed(self):
        cfg = create_test_config(redirect_policy="follow")
        new_feed = build_rss_xml().encode("utf-8")
        with patch("podcast_feed.downloader.fetch_feed_text", return_value=new_feed) as mock_fetch:
            podcast = podcast_feed.get_podcast_from_feed(_redirecting_feed(TEST_NEW_FEED_URL), cfg)
        mock_fetch.assert_called_once_with(TEST_NEW_FEED_URL, "test-agent", 30)
        self.assertEqual(podcast.meta.title, TEST_FEED_TITLE)

    def test_follow_policy_propagates_fetch_failure(self):
        cfg = create_test_config(redirect_policy="follow")
        with patch(
            "podcast_feed.downloader.fetch_feed_text",
            side_effect=FetchingError(TEST_NEW_FEED_URL),
        ):
            with self.assertRaises(FetchingError):
                podcast_feed.get_podcast_from_feed(_redirecting_feed(TEST_NEW_FEED_URL), cfg)

    def test_follow_policy_limits_redirect_chain(self):
        cfg = create_test_config(redirect_policy="follow")

        def fetch(url, user_agent, timeout):
            number = int(re.search(r"/(\d+)\.xml$", url).group(1))
            return _redirecting_feed(f"https://example.com/{number + 1}.xml").encode("utf-8")

        with patch("podcast_feed.downloader.fetch_feed_text", side_effect=fetch) as mock_fetch:
            with self.assertRaises(FetchingError):
                podcast_feed.get_podcast_from_url("https://example.com/0.xml", cfg)
        self.assertEqual(mock_fetch.call_count, config_constants.MAX_FEED_REDIRECTS + 1)

    def test_self_redirect_is_not_followed(self):
        cfg = create_test_config(redirect_policy="follow")
        feed = _redirecting_feed(TEST_FEED_URL).encode("utf-8")
        with patch("podcast_feed.downloader.fetch_feed_text", return_value=feed) as mock_fetch:
            podcast = podcast_feed.get_podcast_from_url(TEST_FEED_URL, cfg)
        mock_fetch.assert_called_once()
        self.assertEqual(podcast.meta.title, "Old Feed")

    def test_ignore_policy(self):
        cfg = create_test_config(redirect_policy="ignore")
        with patch("podcast_feed.workflow.schedule_redirect") as mock_schedule, patch(
            "podcast_feed.downloader.fetch_feed_text"
        ) as mock_fetch:
            podcast = podcast_feed.get_podcast_from_feed(_redirecting_feed(TEST_NEW_FEED_URL), cfg)
        mock_schedule.assert_not_called()
        mock_fetch.assert_not_called()
        self.assertEqual(podcast.meta.title, "Old Feed")


class TestApplyLogLevel(unittest.TestCase):
    """Tests for apply_log_level."""

    def setUp(self):
        self.root_logger = logging.getLogger()
        self.saved_level = self.root_logger.level
        self.saved_handlers = list(self.root_logger.handlers)

    def tearDown(self):
        for handler in list(self.root_logger.handlers):
            if handler not in self.saved_handlers:
                self.root_logger.removeHandler(handler)
                handler.close()
        self.root_logger.setLevel(self.saved_level)

    def test_sets_root_level(self):
        workflow.apply_log_level("debug")
        self.assertEqual(self.root_logger.level, logging.DEBUG)

    def test_invalid_level(self):
        with self.assertRaises(ValueError):
            workflow.apply_log_level("LOUD")

    def test_log_file_handler(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = str(Path(tmp_dir) / "logs" / "feed.log")
            workflow.apply_log_level("INFO", log_file)
            file_handlers = [
                h for h in self.root_logger.handlers if isinstance(h, logging.FileHandler)
            ]
            self.assertTrue(any(h.baseFilename.endswith("feed.log") for h in file_handlers))
            for handler in file_handlers:
                if handler not in self.saved_handlers:
                    self.root_logger.removeHandler(handler)
                    handler.close()

    def test_configure_logging_reads_config(self):
        with tempfile.TemporaryDirectory() as tmp_dir:
            log_file = str(Path(tmp_dir) / "feed.log")
            cfg = create_test_config(log_level="warning", log_file=log_file)
            workflow.configure_logging(cfg)
            self.assertEqual(self.root_logger.level, logging.WARNING)
            added = [h for h in self.root_logger.handlers if h not in self.saved_handlers]
            self.assertTrue(
                any(
                    isinstance(h, logging.FileHandler)
                    and h.baseFilename == os.path.abspath(log_file)
                    for h in added
                )
            )
            for handler in added:
                self.root_logger.removeHandler(handler)
                handler.close()

    def test_configure_logging_defaults(self):
        workflow.configure_logging()
        self.assertEqual(self.root_logger.level, logging.INFO)


if __name__ == "__main__":
    unittest.main()

import unittest
from datetime import datetime, timezone
from unittest.mock import MagicMock

import requests

from cryptobriefs.ingestion.article_types import PLACEHOLDER_IMAGE, PLACEHOLDER_TITLE, Sentiment
from cryptobriefs.ingestion.feeds import FeedFetcher, extract_image, normalize_entry, parse_published


FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _rss(items):
    body = "".join(items)
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        '<rss version="2.0" xmlns:content="http://purl.org/rss/1.0/modules/content/">'
        f"<channel><title>Test</title><link>https://example.com</link>{body}</channel></rss>"
    ).encode("utf-8")


def _item(n, *, day=1, extra=""):
    return (
        f"<item><title>Headline {n}</title><link>https://example.com/{n}</link>"
        f"<pubDate>2024-02-{day:02d}T10:00:00Z</pubDate>{extra}</item>"
    )


def _response(content=b"", status_error=None):
    resp = MagicMock()
    resp.content = content
    if status_error is not None:
        resp.raise_for_status.side_effect = status_error
    return resp


class FakeSession:
    def __init__(self, routes):
        self.routes = routes
        self.calls = []

    def get(self, url, headers=None, timeout=None):
        self.calls.append((url, timeout))
        result = self.routes[url]
        if isinstance(result, Exception):
            raise result
        return result


class TestExtractImage(unittest.TestCase):
    def test_enclosure_wins(self):
        entry = {
            "enclosures": [{"href": "https://img.example.com/a.jpg"}],
            "content": [{"value": '<p><img src="https://img.example.com/b.jpg"></p>'}],
        }
        self.assertEqual(extract_image(entry), "https://img.example.com/a.jpg")

    def test_media_content(self):
        entry = {"media_content": [{"url": "https://img.example.com/m.jpg", "medium": "image"}]}
        self.assertEqual(extract_image(entry), "https://img.example.com/m.jpg")

    def test_embedded_img(self):
        entry = {"content": [{"value": '<div><img class="x" src="https://img.example.com/c.png" /></div>'}]}
        self.assertEqual(extract_image(entry), "https://img.example.com/c.png")

    def test_placeholder(self):
        self.assertEqual(extract_image({"summary": "no images here"}), PLACEHOLDER_IMAGE)


class TestNormalizeEntry(unittest.TestCase):
    def test_missing_title_and_date_use_defaults(self):
        article = normalize_entry({"link": "https://example.com/x"}, now=FIXED_NOW)
        self.assertEqual(article.title, PLACEHOLDER_TITLE)
        self.assertEqual(article.published, FIXED_NOW)
        self.assertIs(article.sentiment, Sentiment.NEUTRAL)
        self.assertEqual(article.coins, frozenset())

    def test_missing_link_is_dropped(self):
        self.assertIsNone(normalize_entry({"title": "Bitcoin news", "link": ""}))
        self.assertIsNone(normalize_entry({"title": "Bitcoin news"}))

    def test_iso_string_date(self):
        published = parse_published({"published": "2024-02-03T04:05:06Z"})
        self.assertEqual(published, datetime(2024, 2, 3, 4, 5, 6, tzinfo=timezone.utc))

    def test_coins_are_detected(self):
        article = normalize_entry({"title": "Solana ETF filed", "link": "https://example.com/sol"}, now=FIXED_NOW)
        self.assertEqual(article.coins, {"SOL"})


class TestFeedFetcher(unittest.TestCase):
    def test_feed_isolation_and_sort(self):
        session = FakeSession(
            {
                "https://a.example/rss": _response(_rss([_item("a1", day=1), _item("a2", day=5)])),
                "https://broken.example/rss": _response(b"this is <<< not a feed"),
                "https://down.example/rss": requests.ConnectionError("connection refused"),
                "https://b.example/rss": _response(_rss([_item("b1", day=3)])),
            }
        )
        fetcher = FeedFetcher(feeds=list(session.routes), session=session, timeout=5)

        with self.assertLogs("cryptobriefs.ingestion.feeds", level="ERROR") as logs:
            articles = fetcher.fetch_latest()

        self.assertEqual(
            [a.link for a in articles],
            ["https://example.com/a2", "https://example.com/b1", "https://example.com/a1"],
        )
        self.assertEqual(len([line for line in logs.output if "Failed to fetch" in line]), 2)
        self.assertTrue(all(timeout == 5 for _, timeout in session.calls))

    def test_http_error_skips_feed(self):
        session = FakeSession(
            {
                "https://a.example/rss": _response(status_error=requests.HTTPError("503 Server Error")),
                "https://b.example/rss": _response(_rss([_item("b1")])),
            }
        )
        fetcher = FeedFetcher(feeds=list(session.routes), session=session)
        with self.assertLogs("cryptobriefs.ingestion.feeds", level="ERROR"):
            articles = fetcher.fetch_latest()
        self.assertEqual([a.link for a in articles], ["https://example.com/b1"])

    def test_per_feed_limit_keeps_most_recent(self):
        # oldest first in the document
        items = [_item(i, day=i + 1) for i in range(15)]
        session = FakeSession({"https://a.example/rss": _response(_rss(items))})
        fetcher = FeedFetcher(feeds=["https://a.example/rss"], session=session, item_limit=10)

        articles = fetcher.fetch_feed("https://a.example/rss")
        self.assertEqual(len(articles), 10)
        self.assertEqual({a.link for a in articles}, {f"https://example.com/{i}" for i in range(5, 15)})
        self.assertEqual(articles[0].link, "https://example.com/14")

    def test_unordered_feed_is_sorted_before_limit(self):
        items = [_item("mid", day=10), _item("old", day=2), _item("new", day=20)]
        session = FakeSession({"https://a.example/rss": _response(_rss(items))})
        fetcher = FeedFetcher(feeds=["https://a.example/rss"], session=session, item_limit=2)

        articles = fetcher.fetch_feed("https://a.example/rss")
        self.assertEqual([a.link for a in articles], ["https://example.com/new", "https://example.com/mid"])

    def test_entry_fields_from_rss(self):
        enclosure = '<enclosure url="https://img.example.com/e.jpg" type="image/jpeg" length="0"/>'
        session = FakeSession({"https://a.example/rss": _response(_rss([_item("x", day=2, extra=enclosure)]))})
        fetcher = FeedFetcher(feeds=["https://a.example/rss"], session=session)

        (article,) = fetcher.fetch_feed("https://a.example/rss")
        self.assertEqual(article.title, "Headline x")
        self.assertEqual(article.image, "https://img.example.com/e.jpg")
        self.assertEqual(article.published, datetime(2024, 2, 2, 10, 0, tzinfo=timezone.utc))
        self.assertEqual(article.source, "a.example")


if __name__ == "__main__":
    unittest.main()

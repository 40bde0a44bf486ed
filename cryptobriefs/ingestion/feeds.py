"""RSS feed fetcher for crypto news.

- Fetch each feed independently (bytes via requests, parsed by feedparser)
- A failing feed is logged and skipped; the other feeds still count
- Normalize entries into Article (image + published + coins)
- Newest first across all feeds
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Sequence
from urllib.parse import urlparse

import feedparser
import requests

from cryptobriefs.ingestion.article_types import PLACEHOLDER_IMAGE, PLACEHOLDER_TITLE, Article
from cryptobriefs.ingestion.coins import detect_coins

logger = logging.getLogger(__name__)

USER_AGENT = "CryptoBriefs/1.0"

_IMG_SRC = re.compile(r"<img[^>]+src=[\"']([^\"'>]+)[\"']", re.IGNORECASE)


class FeedParseError(RuntimeError):
    """Raised when a feed document cannot be parsed into entries."""


def _domain(url: str) -> Optional[str]:
    host = (urlparse(url or "").netloc or "").lower().strip()
    return host or None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _parse_dt(dt: Any) -> Optional[datetime]:
    if not dt:
        return None
    if isinstance(dt, datetime):
        return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)
    s = str(dt).strip()
    if not s:
        return None
    s = s.replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(s)
    except ValueError:
        return None
    # Normalize naive to UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_published(entry: Any, *, now: Optional[datetime] = None) -> datetime:
    """Best timestamp for an entry; fetch time when the feed gives none."""
    for key in ("published_parsed", "updated_parsed"):
        struct = entry.get(key)
        if struct:
            return datetime(*struct[:6], tzinfo=timezone.utc)
    for key in ("published", "updated"):
        parsed = _parse_dt(entry.get(key))
        if parsed:
            return parsed
    return now or _utc_now()


def extract_image(entry: Any) -> str:
    """Enclosure, then media:content, then the first <img> in embedded markup."""
    for enclosure in entry.get("enclosures") or []:
        href = enclosure.get("href") or enclosure.get("url")
        if href:
            return href

    for media in entry.get("media_content") or []:
        url = media.get("url")
        if url:
            return url

    markup = [c.get("value") or "" for c in entry.get("content") or []]
    markup.append(entry.get("summary") or "")
    for html in markup:
        match = _IMG_SRC.search(html)
        if match:
            return match.group(1)

    return PLACEHOLDER_IMAGE


def normalize_entry(entry: Any, *, source: Optional[str] = None, now: Optional[datetime] = None) -> Optional[Article]:
    link = str(entry.get("link") or "").strip()
    if not link:
        return None
    title = str(entry.get("title") or "").strip() or PLACEHOLDER_TITLE
    return Article(
        title=title,
        link=link,
        image=extract_image(entry),
        published=parse_published(entry, now=now),
        coins=detect_coins(title),
        source=source,
    )


@dataclass
class FeedFetcher:
    """Pulls a fixed list of RSS/Atom feeds into a newest-first Article list."""

    feeds: Sequence[str]
    item_limit: int = 10
    timeout: float = 5.0
    session: Any = None
    clock: Callable[[], datetime] = field(default=_utc_now)

    def __post_init__(self) -> None:
        if self.session is None:
            self.session = requests.Session()

    def fetch_feed(self, feed_url: str) -> List[Article]:
        resp = self.session.get(feed_url, headers={"User-Agent": USER_AGENT}, timeout=self.timeout)
        resp.raise_for_status()
        parsed = feedparser.parse(resp.content)
        entries = parsed.entries or []
        if not entries and (parsed.bozo or not parsed.get("version")):
            raise FeedParseError(f"malformed feed: {parsed.get('bozo_exception')}")

        now = self.clock()
        source = _domain(feed_url)
        out: List[Article] = []
        for entry in entries:
            article = normalize_entry(entry, source=source, now=now)
            if article is not None:
                out.append(article)
        # feeds are not guaranteed to list newest first
        out.sort(key=lambda a: a.published, reverse=True)
        return out[: max(0, self.item_limit)]

    def fetch_latest(self) -> List[Article]:
        articles: List[Article] = []
        for feed_url in self.feeds:
            try:
                items = self.fetch_feed(feed_url)
            except (requests.RequestException, FeedParseError) as e:
                logger.error(f"[rss] Failed to fetch {feed_url}: {e}")
                continue
            logger.info(f"[rss] {feed_url}: {len(items)} items")
            articles.extend(items)

        articles.sort(key=lambda a: a.published, reverse=True)
        return articles

"""Dedup/merge of freshly fetched articles against the persisted news store.

One run:
1. keep the M most recent articles that have a link
2. bulk-read (link, sentiment) for those links
3. reuse stable (bullish/bearish) sentiments, classify new or neutral ones
4. write only first sightings and sentiment transitions
5. run the writes in a bounded pool and report every outcome

Runs are not mutually exclusive; two overlapping runs resolve to whichever
upsert lands last for a given link.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from cryptobriefs.ingestion.article_types import Article, NewsRecord, Sentiment
from cryptobriefs.storage.news_store import NewsStoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlannedWrite:
    article: Article
    sentiment: Sentiment


@dataclass(frozen=True)
class UpsertOutcome:
    link: str
    inserted: bool = False
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class RunReport:
    fetched: int = 0
    considered: int = 0
    classified: int = 0
    reused: int = 0
    lookup_failed: bool = False
    outcomes: List[UpsertOutcome] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.outcomes)

    @property
    def inserted(self) -> int:
        return sum(1 for o in self.outcomes if o.ok and o.inserted)

    @property
    def updated(self) -> int:
        return sum(1 for o in self.outcomes if o.ok and not o.inserted)

    @property
    def failed(self) -> List[UpsertOutcome]:
        return [o for o in self.outcomes if not o.ok]

    def summary(self) -> str:
        return (
            f"fetched={self.fetched} considered={self.considered} classified={self.classified} "
            f"reused={self.reused} attempted_upserts={self.attempted} inserted={self.inserted} "
            f"updated={self.updated} failed={len(self.failed)}"
        )


class NewsSyncEngine:
    """Owns every write to the news store.

    `store` needs `find_sentiments(links)` and `upsert(article, sentiment)`;
    `classifier` needs `classify(title, link=None)`.
    """

    def __init__(self, store: Any, classifier: Any, *, max_articles: int = 10, max_workers: int = 4):
        self.store = store
        self.classifier = classifier
        self.max_articles = max_articles
        self.max_workers = max(1, max_workers)

    def select_batch(self, articles: Iterable[Article]) -> List[Article]:
        newest_first = sorted(articles, key=lambda a: a.published, reverse=True)
        batch = newest_first[: self.max_articles]
        return [a for a in batch if a.link]

    def plan(self, batch: Iterable[Article], existing: Dict[str, Sentiment]) -> Tuple[List[PlannedWrite], int, int]:
        """Resolve sentiment and decide the write for each article.

        Returns (writes, classified, reused).
        """
        writes: List[PlannedWrite] = []
        classified = reused = 0
        seen = set()
        for article in batch:
            if article.link in seen:
                continue
            seen.add(article.link)

            previous = existing.get(article.link)
            if previous is not None and previous.is_stable:
                logger.info(f"[news] {article.title!r} - skip classification, stored sentiment {previous.value}")
                reused += 1
                continue

            sentiment = self.classifier.classify(article.title, link=article.link)
            classified += 1
            logger.info(f"[news] {article.title!r} - classified {sentiment.value}")

            if previous is None or sentiment != previous:
                writes.append(PlannedWrite(article=article.with_sentiment(sentiment), sentiment=sentiment))
        return writes, classified, reused

    def _upsert(self, write: PlannedWrite) -> UpsertOutcome:
        # a failed write only marks its own outcome
        try:
            inserted = self.store.upsert(write.article, write.sentiment)
        except NewsStoreError as e:
            return UpsertOutcome(link=write.article.link, error=str(e))
        except Exception as e:
            return UpsertOutcome(link=write.article.link, error=f"{type(e).__name__}: {e}")
        return UpsertOutcome(link=write.article.link, inserted=bool(inserted))

    def execute(self, writes: List[PlannedWrite]) -> List[UpsertOutcome]:
        """Run every write and wait for all of them; one failure never cancels the rest."""
        if not writes:
            return []
        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(writes))) as pool:
            return list(pool.map(self._upsert, writes))

    def run(self, articles: Iterable[Article]) -> RunReport:
        articles = list(articles)
        report = RunReport(fetched=len(articles))
        batch = self.select_batch(articles)
        report.considered = len(batch)
        if not batch:
            return report

        try:
            records: List[NewsRecord] = self.store.find_sentiments([a.link for a in batch])
        except NewsStoreError as e:
            logger.error(f"[news] Existing-record lookup failed, skipping this run: {e}")
            report.lookup_failed = True
            return report

        existing = {record.link: record.sentiment for record in records}
        writes, report.classified, report.reused = self.plan(batch, existing)
        report.outcomes = self.execute(writes)
        return report


def run_news_job(fetcher: Any, engine: NewsSyncEngine) -> RunReport:
    logger.info("[news] insert news job start")
    report = engine.run(fetcher.fetch_latest())
    logger.info(f"[news] insert news job done: {report.summary()}")
    for outcome in report.failed:
        logger.warning(f"[news] upsert failed for {outcome.link}: {outcome.error}")
    return report

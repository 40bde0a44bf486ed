"""Postgres repository for crypto news records.

Only two access paths exist: a bulk (link, sentiment) lookup and a per-link
upsert. The upsert sets title/image/published/coins on insert only; an existing
row can only have its sentiment changed.
"""

from __future__ import annotations

from typing import List, Sequence

import psycopg

from cryptobriefs.ingestion.article_types import Article, NewsRecord, Sentiment


class NewsStoreError(RuntimeError):
    """Raised when a Postgres read or write fails."""


UPSERT_SQL = """
INSERT INTO crypto_news (title, link, image, published, coins, sentiment)
VALUES (%(title)s, %(link)s, %(image)s, %(published)s, %(coins)s, %(sentiment)s)
ON CONFLICT (link) DO UPDATE SET
  sentiment = EXCLUDED.sentiment,
  updated_at = now()
RETURNING (xmax = 0) AS inserted
"""


class PostgresNewsStore:
    def __init__(self, pg_dsn: str):
        self.pg_dsn = pg_dsn

    def find_sentiments(self, links: Sequence[str]) -> List[NewsRecord]:
        """(link, sentiment) records for the links that already exist."""
        wanted = sorted({link for link in links if link})
        if not wanted:
            return []
        try:
            with psycopg.connect(self.pg_dsn) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "SELECT link, sentiment FROM crypto_news WHERE link = ANY(%s)",
                        (wanted,),
                    )
                    rows = cur.fetchall()
        except psycopg.Error as e:
            raise NewsStoreError(f"lookup of {len(wanted)} links failed: {e}") from e
        return [NewsRecord(link=link, sentiment=Sentiment.parse(sentiment)) for link, sentiment in rows]

    def upsert(self, article: Article, sentiment: Sentiment) -> bool:
        """Upsert one article keyed by link; returns True when a new row was inserted."""
        params = {
            "title": article.title,
            "link": article.link,
            "image": article.image,
            "published": article.published,
            "coins": sorted(article.coins),
            "sentiment": sentiment.value,
        }
        try:
            with psycopg.connect(self.pg_dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(UPSERT_SQL, params)
                    row = cur.fetchone()
        except psycopg.Error as e:
            raise NewsStoreError(f"upsert failed for {article.link}: {e}") from e
        return bool(row and row[0])

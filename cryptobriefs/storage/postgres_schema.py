"""Postgres schema management for the crypto news store.

Schema creation is idempotent (CREATE IF NOT EXISTS) so the worker can run it
on every start.
"""

from __future__ import annotations

from typing import Iterable, Optional

import psycopg

from cryptobriefs.ingestion.article_types import PLACEHOLDER_IMAGE


SCHEMA_STATEMENTS: list[str] = [
    f"""
    CREATE TABLE IF NOT EXISTS crypto_news (
      id BIGSERIAL PRIMARY KEY,
      title TEXT NOT NULL,
      link TEXT NOT NULL UNIQUE,
      image TEXT NOT NULL DEFAULT '{PLACEHOLDER_IMAGE}',
      published TIMESTAMPTZ NOT NULL,
      sentiment TEXT NOT NULL DEFAULT 'neutral'
        CHECK (sentiment IN ('bullish', 'bearish', 'neutral')),
      coins TEXT[] NOT NULL DEFAULT '{{}}',
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    """,
    "CREATE INDEX IF NOT EXISTS idx_crypto_news_published ON crypto_news (published DESC);",
    "CREATE INDEX IF NOT EXISTS idx_crypto_news_sentiment ON crypto_news (sentiment);",
    "CREATE INDEX IF NOT EXISTS idx_crypto_news_coins ON crypto_news USING GIN (coins);",
]


def ensure_news_schema(pg_dsn: str, *, statements: Optional[Iterable[str]] = None) -> None:
    """Ensure Postgres schema exists."""
    stmts = list(statements) if statements is not None else SCHEMA_STATEMENTS
    with psycopg.connect(pg_dsn, autocommit=True) as conn:
        with conn.cursor() as cur:
            for s in stmts:
                cur.execute(s)

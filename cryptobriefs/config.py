"""Worker configuration.

Loaded once at process start (after `load_dotenv()`) and passed into every
component. Nothing else in the package reads the environment.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from typing import Optional, Tuple

DEFAULT_FEEDS: Tuple[str, ...] = (
    "https://www.coindesk.com/arc/outboundfeeds/rss/?outputType=xml",
    "https://cointelegraph.com/rss",
)

_AT_MINUTE = re.compile(r"^:[0-5]\d$")


class ConfigError(ValueError):
    """Raised when the worker configuration is missing or invalid."""


def _env_is_true(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(v.strip() for v in value.split(",") if v.strip())


@dataclass
class Config:
    """Configuration for the news and blog cron jobs."""

    pg_dsn: str

    # Feeds
    feed_urls: Tuple[str, ...] = DEFAULT_FEEDS
    feed_item_limit: int = 10
    max_articles_per_run: int = 10
    feed_timeout: float = 5.0

    # Sentiment classification (OpenAI-compatible endpoint, DeepSeek by default)
    sentiment_api_key: str = ""
    sentiment_base_url: str = "https://api.deepseek.com"
    sentiment_model: str = "deepseek-chat"
    sentiment_timeout: float = 10.0

    upsert_concurrency: int = 4

    # Blog generation + publishing
    openai_api_key: str = ""
    blog_model: str = "gpt-4o"
    image_model: str = "dall-e-3"
    generation_timeout: float = 60.0
    base_api_url: str = ""
    publish_timeout: float = 20.0

    # Triggers
    news_job_at: str = ":00"
    blog_job_at: str = ":15"
    brief_summary_at: str = ""
    single_flight_runs: bool = False

    log_level: str = "INFO"
    log_file: str = "cron_worker.log"

    @classmethod
    def from_env(cls) -> "Config":
        """Load and validate configuration from environment variables."""
        base_api_url = os.getenv("BASE_API_URL", "").strip()
        if base_api_url and not base_api_url.endswith("/"):
            base_api_url += "/"
        try:
            config = cls(
                pg_dsn=os.getenv("PG_DSN", "").strip(),
                feed_urls=_split_csv(os.getenv("NEWS_FEEDS", "")) or DEFAULT_FEEDS,
                feed_item_limit=int(os.getenv("FEED_ITEM_LIMIT", "10")),
                max_articles_per_run=int(os.getenv("MAX_ARTICLES_PER_RUN", "10")),
                feed_timeout=float(os.getenv("FEED_TIMEOUT", "5")),
                sentiment_api_key=os.getenv("DEEP_SEEK_KEY", "").strip(),
                sentiment_base_url=os.getenv("SENTIMENT_BASE_URL", "https://api.deepseek.com").strip(),
                sentiment_model=os.getenv("SENTIMENT_MODEL", "deepseek-chat").strip(),
                sentiment_timeout=float(os.getenv("SENTIMENT_TIMEOUT", "10")),
                upsert_concurrency=int(os.getenv("UPSERT_CONCURRENCY", "4")),
                openai_api_key=os.getenv("OPENAI_API_KEY", "").strip(),
                blog_model=os.getenv("BLOG_MODEL", "gpt-4o").strip(),
                image_model=os.getenv("IMAGE_MODEL", "dall-e-3").strip(),
                generation_timeout=float(os.getenv("GENERATION_TIMEOUT", "60")),
                base_api_url=base_api_url,
                publish_timeout=float(os.getenv("PUBLISH_TIMEOUT", "20")),
                news_job_at=os.getenv("NEWS_JOB_AT", ":00").strip(),
                blog_job_at=os.getenv("BLOG_JOB_AT", ":15").strip(),
                brief_summary_at=os.getenv("BRIEF_SUMMARY_AT", "").strip(),
                single_flight_runs=_env_is_true(os.getenv("SINGLE_FLIGHT_RUNS", "false")),
                log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper(),
                log_file=os.getenv("LOG_FILE", "cron_worker.log").strip(),
            )
        except ValueError as e:
            raise ConfigError(f"Configuration validation failed:\n  - {e}") from e

        config._validate()
        return config

    def _validate(self) -> None:
        """Collect every problem and raise a single ConfigError."""
        errors = []

        if not self.pg_dsn:
            errors.append("PG_DSN is required")
        if not self.feed_urls:
            errors.append("NEWS_FEEDS must list at least one feed URL")
        if self.feed_item_limit < 1:
            errors.append("FEED_ITEM_LIMIT must be at least 1")
        if self.max_articles_per_run < 1:
            errors.append("MAX_ARTICLES_PER_RUN must be at least 1")
        if self.upsert_concurrency < 1:
            errors.append("UPSERT_CONCURRENCY must be at least 1")
        for name, value in (
            ("FEED_TIMEOUT", self.feed_timeout),
            ("SENTIMENT_TIMEOUT", self.sentiment_timeout),
            ("GENERATION_TIMEOUT", self.generation_timeout),
            ("PUBLISH_TIMEOUT", self.publish_timeout),
        ):
            if value <= 0:
                errors.append(f"{name} must be positive")
        for name, value in (("NEWS_JOB_AT", self.news_job_at), ("BLOG_JOB_AT", self.blog_job_at)):
            if not _AT_MINUTE.match(value):
                errors.append(f"{name} must look like ':MM' (got {value!r})")
        if self.brief_summary_at and not _AT_MINUTE.match(self.brief_summary_at):
            errors.append(f"BRIEF_SUMMARY_AT must look like ':MM' (got {self.brief_summary_at!r})")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            raise ConfigError(error_msg)

    def require_blog_settings(self) -> None:
        missing = [
            name
            for name, value in (("OPENAI_API_KEY", self.openai_api_key), ("BASE_API_URL", self.base_api_url))
            if not value
        ]
        if missing:
            raise ConfigError(f"Blog job disabled, missing: {', '.join(missing)}")

    def masked(self, value: Optional[str]) -> str:
        if not value:
            return "<unset>"
        return f"...{value[-6:]}" if len(value) > 6 else "***"

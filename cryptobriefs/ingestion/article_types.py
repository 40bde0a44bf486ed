"""Shared ingestion data types."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import FrozenSet, Optional

PLACEHOLDER_TITLE = "Untitled"
PLACEHOLDER_IMAGE = "https://via.placeholder.com/300"


class Sentiment(str, Enum):
    """Short-term market direction of a headline. NEUTRAL doubles as 'unclassified'."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"

    @classmethod
    def match(cls, raw: Optional[str]) -> Optional["Sentiment"]:
        """First label found in the lowercased text, checked bullish, bearish, neutral; else None.

        Model answers are capped at a few tokens, so "Bullish sentiment" or a
        truncated "Bearish (short" still carry their label.
        """
        if not raw:
            return None
        text = str(raw).lower()
        for label in (cls.BULLISH, cls.BEARISH, cls.NEUTRAL):
            if label.value in text:
                return label
        return None

    @classmethod
    def parse(cls, raw: Optional[str]) -> "Sentiment":
        """Fails closed: text without a label is NEUTRAL."""
        return cls.match(raw) or cls.NEUTRAL

    @property
    def is_stable(self) -> bool:
        return self is not Sentiment.NEUTRAL


@dataclass(frozen=True)
class Article:
    """Normalized feed entry, produced fresh on every run."""

    title: str
    link: str
    published: datetime
    image: str = PLACEHOLDER_IMAGE
    coins: FrozenSet[str] = field(default_factory=frozenset)
    sentiment: Sentiment = Sentiment.NEUTRAL
    source: Optional[str] = None

    def with_sentiment(self, sentiment: Sentiment) -> "Article":
        return replace(self, sentiment=sentiment)


@dataclass(frozen=True)
class NewsRecord:
    """Minimal projection of a persisted news row used by the merge step."""

    link: str
    sentiment: Sentiment

"""Headline sentiment classification through an OpenAI-compatible chat endpoint.

The classifier never raises: a missing credential, network errors, timeouts
and unusable answers all come back as Sentiment.NEUTRAL.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import openai

from cryptobriefs.config import Config
from cryptobriefs.ingestion.article_types import Sentiment

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a crypto market sentiment classifier. Your task is to read crypto news headlines "
    "and classify short-term market sentiment as exactly one of three labels: bullish, bearish, "
    "or neutral. Respond with ONLY ONE WORD: 'bullish', 'bearish', or 'neutral'. No explanation."
)

USER_PROMPT = (
    'Classify the sentiment of this crypto news headline:\n\n"{title}"\n\n'
    "Answer with ONLY one word: bullish, bearish, or neutral."
)


class SentimentClassifier:
    def __init__(self, client: Optional[Any], model: str = "deepseek-chat", max_tokens: int = 3):
        self.client = client
        self.model = model
        self.max_tokens = max_tokens

    @classmethod
    def from_config(cls, config: Config) -> "SentimentClassifier":
        if not config.sentiment_api_key:
            logger.warning("[sentiment] DEEP_SEEK_KEY not set, every headline falls back to neutral")
            return cls(client=None, model=config.sentiment_model)
        client = openai.OpenAI(
            api_key=config.sentiment_api_key,
            base_url=config.sentiment_base_url,
            timeout=config.sentiment_timeout,
            max_retries=0,
        )
        logger.info(
            f"[sentiment] Using {config.sentiment_model} at {config.sentiment_base_url}, "
            f"key: {config.masked(config.sentiment_api_key)}"
        )
        return cls(client=client, model=config.sentiment_model)

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def classify(self, title: str, link: Optional[str] = None) -> Sentiment:
        if self.client is None:
            return Sentiment.NEUTRAL

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": USER_PROMPT.format(title=title)},
                ],
                max_tokens=self.max_tokens,
                temperature=0,
            )
        except openai.OpenAIError as e:
            logger.error(f"[sentiment] Classification failed for {link or title!r}: {e}")
            return Sentiment.NEUTRAL

        raw = ""
        if response.choices:
            raw = response.choices[0].message.content or ""
        sentiment = Sentiment.match(raw)
        if sentiment is None:
            logger.warning(f"[sentiment] Unrecognized label {raw!r} for {link or title!r}, using neutral")
            return Sentiment.NEUTRAL
        return sentiment

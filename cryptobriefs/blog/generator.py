"""Generative calls for the blog pipeline (ideas, title, body, cover image)."""

from __future__ import annotations

import logging
import re
from typing import Any, List, Optional

import openai

from cryptobriefs.config import Config

logger = logging.getLogger(__name__)

DEFAULT_TONE = "Professional"
DEFAULT_LENGTH = "Medium (~400-500 words)"
DEFAULT_AUDIENCE = "General Audience"
DEFAULT_TAGS = "AI,crypto,trading,Portfolio,Technology,Blockchain,Cryptocurrency,Crypto,bots,Bitcoin,btc"

IDEAS_PROMPT = """
You are a senior crypto SEO strategist and market analyst.
Analyze the past 24 hours of crypto activity and identify the 3-4 strongest narratives based on:
- Social momentum (X viral threads, trending tokens)
- Whale movements & on-chain anomalies
- Volume spikes & volatility events
- Governance votes, protocol upgrades
- Hacks/exploits/security alerts
- Regulatory developments
- Funding rounds / ecosystem partnerships
For each narrative, extract 2 low-competition long-tail keyword angles with high search potential.

Requirements:
- 10 total titles, numbered 1-10 (plain text, no markdown bulleting).
- Each title <= 14 words, highlight action or insight.
- Include a specific hook (data point, timeframe, region, protocol, or narrative).
- Mix tones: analytical, experimental, regulatory, community-focused.
"""

TITLE_PROMPT = """
You are an expert copywriter and SEO specialist. Your task is to take a blog post title and make it more compelling, engaging, and SEO-friendly.
Keep the core topic the same, but improve the wording to attract more readers.
Do not add quotes or any extra explanatory text around your response. Only return the improved title as a single line of plain text.
Make sure the optimized title is not too long
Original Title: "{title}"

Optimized Title:
"""

POST_PROMPT = """
You are an expert financial writer specializing in cryptocurrency and blockchain technology for a blog called "Crypto Briefs".

Your task is to write a blog post about the following topic: "{topic}".

Please adhere to the following parameters for the article:
- Tone: {tone}
- Target Audience: {audience}
- Length: {length}

The post should be well-structured and formatted in Markdown.
Use markdown for structure, including headings (e.g., '## Subheading'), bulleted lists (e.g., '- List item'), and bold text (e.g., '**bold**').
Do not include a main title (H1, or '# Title') in the output, as the user has already provided it.
Start directly with the main content of the article.
Do not wrap the article in quotes.
"""

IMAGE_PROMPT = "A cover image for a medium.com article titled: {title}, with a {tone} tone. 16:9, no text."

_NUMBERED_LINE = re.compile(r"\d+\.\s+(.*)")


class BlogGenerationError(RuntimeError):
    """Raised when the generative endpoint fails or returns nothing usable."""


def extract_ideas(raw_text: Optional[str]) -> List[str]:
    """Pull the titles out of a numbered '1. Title' list."""
    if not raw_text:
        return []
    return [m.strip() for m in _NUMBERED_LINE.findall(raw_text) if m.strip()]


def _strip_quotes(text: str) -> str:
    return text.replace('"', "").strip()


class BlogGenerator:
    def __init__(self, client: Any, model: str = "gpt-4o", image_model: str = "dall-e-3"):
        self.client = client
        self.model = model
        self.image_model = image_model

    @classmethod
    def from_config(cls, config: Config) -> "BlogGenerator":
        client = openai.OpenAI(api_key=config.openai_api_key, timeout=config.generation_timeout)
        return cls(client=client, model=config.blog_model, image_model=config.image_model)

    def _complete(self, prompt: str, *, temperature: float, what: str, **extra: Any) -> str:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=temperature,
                **extra,
            )
        except openai.OpenAIError as e:
            raise BlogGenerationError(f"{what} failed: {e}") from e
        text = (response.choices[0].message.content or "") if response.choices else ""
        if not text.strip():
            raise BlogGenerationError(f"{what} returned empty content")
        return text

    def generate_ideas(self) -> str:
        return _strip_quotes(self._complete(IDEAS_PROMPT, temperature=0.8, what="idea generation"))

    def optimize_title(self, title: str) -> str:
        raw = self._complete(TITLE_PROMPT.format(title=title), temperature=0.8, what="title optimization")
        # first non-empty line only
        line = next((ln for ln in raw.splitlines() if ln.strip()), "")
        return _strip_quotes(line)

    def generate_post(
        self,
        topic: str,
        tone: str = DEFAULT_TONE,
        length: str = DEFAULT_LENGTH,
        audience: str = DEFAULT_AUDIENCE,
    ) -> str:
        prompt = POST_PROMPT.format(topic=topic, tone=tone, length=length, audience=audience)
        return self._complete(prompt, temperature=0.7, what="post generation", top_p=1).strip()

    def generate_cover_image(self, title: str, tone: str = DEFAULT_TONE) -> str:
        """Return the generated cover as a base64 string."""
        try:
            response = self.client.images.generate(
                model=self.image_model,
                prompt=IMAGE_PROMPT.format(title=title, tone=tone),
                n=1,
                size="1792x1024",
                response_format="b64_json",
            )
        except openai.OpenAIError as e:
            raise BlogGenerationError(f"image generation failed: {e}") from e
        data = response.data or []
        if not data or not data[0].b64_json:
            raise BlogGenerationError("image generation returned no image")
        return data[0].b64_json

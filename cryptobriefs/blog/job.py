"""Blog post job: ideas -> title -> body -> cover image -> publish.

Best effort end to end. The body is the only hard requirement; a missing
cover image or an unoptimized title still publishes.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Optional

from cryptobriefs.blog.generator import (
    DEFAULT_AUDIENCE,
    DEFAULT_LENGTH,
    DEFAULT_TAGS,
    DEFAULT_TONE,
    BlogGenerationError,
    BlogGenerator,
    extract_ideas,
)
from cryptobriefs.blog.publisher import BlogPublisher, PublishError

logger = logging.getLogger(__name__)


class BlogPostJob:
    def __init__(
        self,
        generator: BlogGenerator,
        publisher: BlogPublisher,
        *,
        rng: Optional[random.Random] = None,
        tone: str = DEFAULT_TONE,
        length: str = DEFAULT_LENGTH,
        audience: str = DEFAULT_AUDIENCE,
        tags: str = DEFAULT_TAGS,
    ):
        self.generator = generator
        self.publisher = publisher
        self.rng = rng or random.Random()
        self.tone = tone
        self.length = length
        self.audience = audience
        self.tags = tags

    def _pick_idea(self) -> Optional[str]:
        try:
            raw = self.generator.generate_ideas()
        except BlogGenerationError as e:
            logger.error(f"[blog] {e}")
            return None
        ideas = extract_ideas(raw)
        logger.info(f"[blog] {len(ideas)} ideas generated")
        if not ideas:
            return None
        return self.rng.choice(ideas)

    def _optimized_title(self, idea: str) -> str:
        try:
            title = self.generator.optimize_title(idea)
        except BlogGenerationError as e:
            logger.warning(f"[blog] {e}; keeping original idea title")
            return idea
        return title or idea

    def _cover_image_url(self, title: str) -> str:
        try:
            image_b64 = self.generator.generate_cover_image(title, self.tone)
            return self.publisher.upload_image(image_b64)
        except (BlogGenerationError, PublishError) as e:
            logger.warning(f"[blog] cover image skipped: {e}")
            return ""

    def run(self) -> Optional[Any]:
        logger.info("[blog] create blog post job start")
        idea = self._pick_idea()
        if not idea:
            logger.warning("[blog] no idea generated, skipping blog creation")
            return None
        logger.info(f"[blog] selected idea: {idea}")

        title = self._optimized_title(idea)
        logger.info(f"[blog] optimized title: {title}")

        try:
            article = self.generator.generate_post(title, self.tone, self.length, self.audience)
        except BlogGenerationError as e:
            logger.error(f"[blog] {e}; nothing published")
            return None
        logger.info(f"[blog] article generated ({len(article)} chars)")

        image_url = self._cover_image_url(idea)
        logger.info(f"[blog] cover image: {image_url or '<none>'}")

        try:
            response = self.publisher.publish_post(
                title=title,
                content=article,
                blog=idea,
                tag=self.tags,
                image_url=image_url,
            )
        except PublishError as e:
            logger.error(f"[blog] publish failed: {e}")
            return None
        logger.info(f"[blog] create blog post job done: {response}")
        return response


def run_brief_summary_job(publisher: BlogPublisher) -> Optional[Any]:
    logger.info("[brief] add summary start")
    try:
        response = publisher.request_brief_summary()
    except PublishError as e:
        logger.error(f"[brief] add summary failed: {e}")
        return None
    logger.info(f"[brief] add summary done: {response}")
    return response

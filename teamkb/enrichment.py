"""
Document enrichment: summaries and tags for newly saved documents.

GenerativeEnricher asks the chat model and falls back on failure;
HeuristicEnricher is used when no model is configured.
"""

import asyncio
import logging
from typing import List, Optional

from teamkb.generator import SUMMARY_PROMPT, TAGS_PROMPT, GenerationCapability
from teamkb.heuristics import fallback_summary, fallback_tags

logger = logging.getLogger(__name__)


class HeuristicEnricher:
    """First sentences as the summary, frequent long words as tags."""

    async def summarize(self, content: str) -> str:
        if not content or not content.strip():
            return ""
        return fallback_summary(content)

    async def extract_tags(self, content: str) -> List[str]:
        if not content or not content.strip():
            return []
        return fallback_tags(content)


class GenerativeEnricher:
    """Summaries and tags from the chat model."""

    def __init__(
        self,
        generator: GenerationCapability,
        timeout_seconds: Optional[float] = None
    ):
        self.generator = generator
        self.timeout_seconds = timeout_seconds

    async def _complete(self, prompt: str) -> str:
        return await asyncio.wait_for(
            self.generator.generate(prompt), timeout=self.timeout_seconds
        )

    async def summarize(self, content: str) -> str:
        if not content or not content.strip():
            return ""
        try:
            summary = await self._complete(SUMMARY_PROMPT.format(content=content))
        except Exception:
            logger.exception("Summary generation failed, using fallback")
            return fallback_summary(content)
        return (summary or "").strip() or fallback_summary(content)

    async def extract_tags(self, content: str) -> List[str]:
        if not content or not content.strip():
            return []
        try:
            reply = await self._complete(TAGS_PROMPT.format(content=content))
        except Exception:
            logger.exception("Error generating tags")
            return []
        return [tag.strip() for tag in (reply or "").split(",") if tag.strip()]

"""LearningExtractor: distills one accepted search result into a learning and follow-up questions."""

from __future__ import annotations

import logging
from dataclasses import asdict
from typing import List

from pydantic import BaseModel, Field

from research_state import Learning, SearchResult

from .collaborators import StructuredGenerator
from .errors import LearningExtractionError
from .research_prompts import learning_prompt

logger = logging.getLogger(__name__)


class LearningPayload(BaseModel):
    learning: str
    followUpQuestions: List[str] = Field(default_factory=list)


class LearningExtractor:
    def __init__(self, *, llm: StructuredGenerator) -> None:
        self._llm = llm

    async def extract(self, query: str, result: SearchResult) -> Learning:
        try:
            payload = await self._llm.generate_structured(
                learning_prompt(query=query, result=asdict(result)), LearningPayload
            )
        except Exception as exc:
            logger.exception("Learning extraction failed for %s", result.url)
            raise LearningExtractionError(f"Learning extraction failed for {result.url}: {exc}") from exc

        questions = tuple(q.strip() for q in payload.followUpQuestions if q and q.strip())
        learning = Learning(learning=payload.learning.strip(), follow_up_questions=questions)
        logger.info("Learning from %s: %s (%d follow-ups)", result.url, learning.learning, len(questions))
        return learning

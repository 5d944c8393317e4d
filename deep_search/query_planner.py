"""QueryPlanner: turns a research prompt into a bounded list of web search queries."""

from __future__ import annotations

import logging
from typing import List

from pydantic import BaseModel, Field

from .collaborators import StructuredGenerator
from .errors import QueryPlanningError
from .research_prompts import planning_prompt

logger = logging.getLogger(__name__)

MAX_PLANNED_QUERIES = 7


class PlannedQueries(BaseModel):
    queries: List[str] = Field(default_factory=list)


class QueryPlanner:
    def __init__(self, *, llm: StructuredGenerator) -> None:
        self._llm = llm

    async def plan(self, topic: str, count: int) -> List[str]:
        """Return between 1 and ``count`` queries for ``topic``.

        Any model failure, or an answer without a usable query, raises
        QueryPlanningError.
        """
        if not topic or not topic.strip():
            raise ValueError("Topic must be a non-empty string.")
        if not 1 <= count <= MAX_PLANNED_QUERIES:
            raise ValueError(f"count must be between 1 and {MAX_PLANNED_QUERIES}, got {count}.")

        try:
            planned = await self._llm.generate_structured(planning_prompt(topic=topic, count=count), PlannedQueries)
        except Exception as exc:
            logger.exception("Query planning failed for topic: %s", topic)
            raise QueryPlanningError(f"Query planning failed: {exc}") from exc

        queries = [query.strip() for query in planned.queries if query and query.strip()]
        if len(queries) > count:
            logger.info("Planner returned %d queries; keeping the first %d.", len(queries), count)
            queries = queries[:count]
        if not queries:
            raise QueryPlanningError(f"No search queries were generated for: {topic}")
        logger.info("Planned %d queries: %s", len(queries), queries)
        return queries

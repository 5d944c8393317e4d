"""
ResearchEngine: the recursive depth/breadth-bounded research traversal.

Each level plans queries for its prompt, searches and filters each query,
extracts a learning from every accepted result and recurses on the learning's
follow-up questions with one less depth and half the breadth (rounded up).
One `Research` instance is shared by every branch of a run, so later branches
see the results accepted by earlier ones. External calls are awaited one at a
time; there is no fan-out between siblings.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

from research_state import Research, SearchResult

from .collaborators import SearchFilters
from .errors import ResearchError
from .interaction_log import InteractionLog
from .knowledge_base import KnowledgeAugmenter
from .learning_extractor import LearningExtractor
from .query_planner import MAX_PLANNED_QUERIES, QueryPlanner
from .relevance_filter import SearchAndFilter
from .research_prompts import focus_directive, follow_up_prompt

logger = logging.getLogger(__name__)


def next_breadth(breadth: int) -> int:
    """Breadth for the next level down: ceil(breadth / 2), never below 1."""
    return max(1, math.ceil(breadth / 2))


def effective_prompt(prompt: str, focus_topics: Sequence[str], depth: int) -> str:
    """Bind the focus topic for this depth, consuming topics from the end as depth decreases.

    A depth larger than the number of topics has no focus topic.
    """
    if not focus_topics:
        return prompt
    index = len(focus_topics) - depth
    if not 0 <= index < len(focus_topics):
        return prompt
    return focus_directive(prompt=prompt, topic=focus_topics[index])


@dataclass(slots=True)
class _RunContext:
    research: Research
    filters: Optional[SearchFilters]
    focus_topics: Tuple[str, ...]
    knowledge_base_id: Optional[str]
    log: Optional[InteractionLog]

    def record(self, step: str, **context) -> None:
        if self.log is not None:
            self.log.record(step, context)


class ResearchEngine:
    def __init__(
        self,
        *,
        planner: QueryPlanner,
        search_and_filter: SearchAndFilter,
        extractor: LearningExtractor,
        knowledge: Optional[KnowledgeAugmenter] = None,
        isolate_branch_failures: bool = True,
    ) -> None:
        self._planner = planner
        self._search_and_filter = search_and_filter
        self._extractor = extractor
        self._knowledge = knowledge
        self._isolate_branch_failures = isolate_branch_failures

    async def run(
        self,
        filters: Optional[SearchFilters],
        prompt: str,
        depth: int,
        breadth: int,
        focus_topics: Sequence[str] = (),
        research: Optional[Research] = None,
        *,
        knowledge_base_id: Optional[str] = None,
        log: Optional[InteractionLog] = None,
    ) -> Research:
        """Research ``prompt`` to ``depth`` levels and return the shared state.

        Failures in nested branches are logged and skipped when branch
        isolation is on; a failure at the top level always propagates.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt must be a non-empty string.")
        if depth < 0:
            raise ValueError(f"depth must not be negative, got {depth}.")
        if not 1 <= breadth <= MAX_PLANNED_QUERIES:
            raise ValueError(f"breadth must be between 1 and {MAX_PLANNED_QUERIES}, got {breadth}.")
        if knowledge_base_id and self._knowledge is None:
            raise ValueError("A knowledge base id was given but no knowledge augmenter is configured.")

        context = _RunContext(
            research=research if research is not None else Research(),
            filters=filters,
            focus_topics=tuple(focus_topics),
            knowledge_base_id=knowledge_base_id or None,
            log=log,
        )
        await self._expand(context, prompt, depth, breadth)
        return context.research

    async def _expand(self, context: _RunContext, prompt: str, depth: int, breadth: int) -> None:
        research = context.research
        research.set_root(prompt)
        if depth == 0:
            return

        level_prompt = effective_prompt(prompt, context.focus_topics, depth)
        logger.info("Research level depth=%d breadth=%d", depth, breadth)
        logger.debug("Level prompt: %s", level_prompt)
        queries = await self._planner.plan(level_prompt, breadth)
        research.add_queries(queries)
        context.record("plan", depth=depth, breadth=breadth, prompt=level_prompt, queries=queries)

        for query in queries:
            accepted = await self._search_and_filter.run(query, breadth, context.filters, research.search_results)
            research.add_search_results(accepted)
            context.record("search_and_filter", query=query, accepted=[result.url for result in accepted])

            if context.knowledge_base_id:
                answer = await self._knowledge.lookup(query, context.knowledge_base_id)
                research.add_knowledge_base_result(answer)
                context.record("knowledge_base", query=query, answered=bool(answer))

            for result in accepted:
                await self._follow_result(context, query, result, depth, breadth)

    async def _follow_result(
        self, context: _RunContext, query: str, result: SearchResult, depth: int, breadth: int
    ) -> None:
        research = context.research
        try:
            learning = await self._extractor.extract(query, result)
        except ResearchError as exc:
            self._branch_failed(context, "extract", query, exc)
            return
        research.add_learning(query, learning)
        context.record("learning", query=query, url=result.url, learning=learning.learning)

        nested_prompt = follow_up_prompt(
            goal=research.query,
            completed_queries=research.completed_queries,
            follow_up_questions=learning.follow_up_questions,
        )
        try:
            await self._expand(context, nested_prompt, depth - 1, next_breadth(breadth))
        except Exception as exc:
            self._branch_failed(context, "expand", query, exc)

    def _branch_failed(self, context: _RunContext, stage: str, query: str, exc: Exception) -> None:
        if not self._isolate_branch_failures:
            raise exc
        logger.warning("Skipping branch of %r after %s failure: %s", query, stage, exc)
        context.record("branch_failure", stage=stage, query=query, error=str(exc))

"""
Search-and-filter loop: web search plus relevance/novelty evaluation for one query.

A `SearchSession` holds the state of one query's loop: a stack of pending
search results, the accepted results and a hard step budget shared by both
tools. The session is driven either by a tool-calling research agent, which
decides when to search and when to evaluate, or by a fixed loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from typing import List, Optional, Sequence

from research_state import SearchResult

from .collaborators import AgentTool, SearchFilters, SearchProvider, StructuredGenerator, ToolCallingGenerator
from .errors import ExternalCallTimeout, bounded_call
from .research_prompts import (
    EVALUATE_TOOL_DESCRIPTION,
    EVALUATION_ERROR_HINT,
    IRRELEVANT,
    IRRELEVANT_HINT,
    NOTHING_TO_EVALUATE,
    RELEVANT,
    RELEVANT_HINT,
    RESEARCHER_SYSTEM_PROMPT,
    SEARCH_TOOL_DESCRIPTION,
    STEP_BUDGET_EXHAUSTED,
    VERDICTS,
    evaluation_prompt,
    research_task_prompt,
)

logger = logging.getLogger(__name__)

SEARCH_SUMMARY_CHARS = 300


class RelevanceFilter:
    """Asks the model whether one result is relevant and new for a query."""

    def __init__(self, *, llm: StructuredGenerator) -> None:
        self._llm = llm

    async def judge(self, *, query: str, result: SearchResult, accepted_urls: Sequence[str]) -> str:
        prompt = evaluation_prompt(query=query, result=asdict(result), accepted_urls=accepted_urls)
        verdict = await self._llm.generate_enum(prompt, VERDICTS)
        if verdict not in VERDICTS:
            raise ValueError(f"Unexpected evaluation verdict: {verdict!r}")
        logger.info("Evaluation of %s for %r: %s", result.url, query, verdict)
        return verdict


class SearchSession:
    """Pending stack, accepted results and step counter for one query."""

    def __init__(
        self,
        *,
        query: str,
        breadth: int,
        filters: Optional[SearchFilters],
        already_accepted: Sequence[SearchResult],
        search_provider: SearchProvider,
        relevance_filter: RelevanceFilter,
        max_steps: int = 7,
        drain_policy: str = "latest",
        timeout: Optional[float] = None,
    ) -> None:
        self.query = query
        self.pending: List[SearchResult] = []
        self.accepted: List[SearchResult] = []
        self.steps = 0
        self._breadth = breadth
        self._filters = filters
        self._already_accepted = already_accepted
        self._search_provider = search_provider
        self._relevance_filter = relevance_filter
        self._max_steps = max(1, max_steps)
        self._drain_policy = drain_policy
        self._timeout = timeout
        # Model-issued parallel tool calls must not interleave.
        self._lock = asyncio.Lock()

    @property
    def exhausted(self) -> bool:
        return self.steps >= self._max_steps

    def _take_step(self) -> bool:
        if self.exhausted:
            return False
        self.steps += 1
        return True

    async def search_web(self, query: str) -> str:
        """Run a web search and push every result onto the pending stack."""
        async with self._lock:
            if not self._take_step():
                return STEP_BUDGET_EXHAUSTED
            logger.info("Searching the web for: %s", query)
            try:
                results = await bounded_call(
                    asyncio.to_thread(self._search_provider.search, query, self._breadth, self._filters),
                    timeout=self._timeout,
                    label="web search",
                )
            except Exception as exc:
                logger.warning("Web search for %r failed: %s", query, exc)
                return f"Search failed: {exc}"
            self.pending.extend(results)
            if not results:
                return f"No results found for '{query}'."
            lines = [f"- {item.title} ({item.url}): {item.content[:SEARCH_SUMMARY_CHARS]}" for item in results]
            return f"Search results for '{query}':\n" + "\n".join(lines)

    async def evaluate(self) -> str:
        """Judge pending results, most recently pushed first, per the drain policy."""
        async with self._lock:
            if not self._take_step():
                return STEP_BUDGET_EXHAUSTED
            if not self.pending:
                return NOTHING_TO_EVALUATE
            if self._drain_policy == "all":
                batch = list(reversed(self.pending))
                self.pending.clear()
            else:
                batch = [self.pending.pop()]

            relevant_found = False
            failures = 0
            for candidate in batch:
                try:
                    verdict = await self._judge(candidate)
                except Exception:
                    logger.exception("Error in evaluate tool for %s", candidate.url)
                    failures += 1
                    continue
                if verdict == RELEVANT:
                    self.accepted.append(candidate)
                    relevant_found = True

            if relevant_found:
                return RELEVANT_HINT
            if failures == len(batch):
                return EVALUATION_ERROR_HINT
            return IRRELEVANT_HINT

    async def _judge(self, candidate: SearchResult) -> str:
        known_urls = [result.url for result in self._already_accepted]
        known_urls.extend(result.url for result in self.accepted)
        if candidate.url in known_urls:
            logger.info("Skipping already accepted page: %s", candidate.url)
            return IRRELEVANT
        return await bounded_call(
            self._relevance_filter.judge(query=self.query, result=candidate, accepted_urls=known_urls),
            timeout=self._timeout,
            label="relevance evaluation",
        )


class SearchAndFilter:
    """Runs one `SearchSession` per query and returns the accepted results."""

    def __init__(
        self,
        *,
        search_provider: SearchProvider,
        relevance_filter: RelevanceFilter,
        agent_llm: Optional[ToolCallingGenerator] = None,
        max_steps: int = 7,
        drain_policy: str = "latest",
        driver: str = "agent",
        timeout: Optional[float] = None,
    ) -> None:
        if driver == "agent" and agent_llm is None:
            raise ValueError("The agent driver needs a tool-calling language model.")
        self._search_provider = search_provider
        self._relevance_filter = relevance_filter
        self._agent_llm = agent_llm
        self._max_steps = max_steps
        self._drain_policy = drain_policy
        self._driver = driver
        self._timeout = timeout

    async def run(
        self,
        query: str,
        breadth: int,
        filters: Optional[SearchFilters],
        already_accepted: Sequence[SearchResult],
    ) -> List[SearchResult]:
        session = SearchSession(
            query=query,
            breadth=breadth,
            filters=filters,
            already_accepted=already_accepted,
            search_provider=self._search_provider,
            relevance_filter=self._relevance_filter,
            max_steps=self._max_steps,
            drain_policy=self._drain_policy,
            timeout=self._timeout,
        )
        if self._driver == "agent":
            await self._drive_with_agent(session)
        else:
            await self._drive_loop(session)
        if session.pending:
            logger.info("%d pending results for %r were never evaluated.", len(session.pending), query)
        logger.info("Accepted %d results for %r after %d steps.", len(session.accepted), query, session.steps)
        return list(session.accepted)

    async def _drive_with_agent(self, session: SearchSession) -> None:
        tools = [
            AgentTool(name="search_web", description=SEARCH_TOOL_DESCRIPTION, func=session.search_web),
            AgentTool(name="evaluate", description=EVALUATE_TOOL_DESCRIPTION, func=session.evaluate),
        ]
        try:
            await self._agent_llm.generate_with_tools(
                research_task_prompt(query=session.query),
                RESEARCHER_SYSTEM_PROMPT,
                tools,
                self._max_steps,
            )
        except ExternalCallTimeout as exc:
            logger.warning("%s; keeping %d accepted results for %r.", exc, len(session.accepted), session.query)

    async def _drive_loop(self, session: SearchSession) -> None:
        await session.search_web(session.query)
        while session.pending and not session.exhausted:
            hint = await session.evaluate()
            if hint == RELEVANT_HINT:
                break

import re
from typing import Callable, List, Optional

import pytest

from deep_search.engine import ResearchEngine
from deep_search.knowledge_base import KnowledgeAugmenter
from deep_search.learning_extractor import LearningExtractor, LearningPayload
from deep_search.query_planner import PlannedQueries, QueryPlanner
from deep_search.relevance_filter import RelevanceFilter, SearchAndFilter
from deep_search.research_prompts import RELEVANT, RELEVANT_HINT
from research_state import SearchResult


def make_result(n, url=None) -> SearchResult:
    return SearchResult(
        title=f"Result {n}",
        url=url or f"https://example.com/{n}",
        content=f"content of result {n}",
        published_date="2025-01-01",
    )


class FakeLLM:
    """In-memory stand-in for every generation contract."""

    def __init__(
        self,
        *,
        verdict: Callable[[str], str] = lambda prompt: RELEVANT,
        plan: Optional[Callable[[str, int, int], List[str]]] = None,
        plan_error_on: Optional[Callable[[int], bool]] = None,
        learning_error_on: Optional[Callable[[str], bool]] = None,
        report_error: Optional[Exception] = None,
    ) -> None:
        self.verdict = verdict
        self.plan = plan or (lambda topic, count, call: [f"q{call}-{k}" for k in range(count)])
        self.plan_error_on = plan_error_on or (lambda call: False)
        self.learning_error_on = learning_error_on or (lambda prompt: False)
        self.report_error = report_error
        self.plan_prompts: List[str] = []
        self.plan_counts: List[int] = []
        self.evaluation_prompts: List[str] = []
        self.learning_prompts: List[str] = []
        self.tool_prompts: List[str] = []
        self.report_prompts: List[str] = []

    async def generate_structured(self, prompt, schema, system_prompt=None):
        if schema is PlannedQueries:
            self.plan_prompts.append(prompt)
            call = len(self.plan_prompts)
            if self.plan_error_on(call):
                raise RuntimeError("planner unavailable")
            count = int(re.match(r"Generate (\d+) search queries", prompt).group(1))
            self.plan_counts.append(count)
            return PlannedQueries(queries=self.plan(prompt, count, call))
        if schema is LearningPayload:
            self.learning_prompts.append(prompt)
            if self.learning_error_on(prompt):
                raise RuntimeError("extraction failed")
            return LearningPayload(
                learning=f"learning {len(self.learning_prompts)}",
                followUpQuestions=[f"follow-up {len(self.learning_prompts)}"],
            )
        raise AssertionError(f"unexpected schema {schema!r}")

    async def generate_enum(self, prompt, allowed_values):
        self.evaluation_prompts.append(prompt)
        value = self.verdict(prompt)
        assert value in allowed_values
        return value

    async def generate_with_tools(self, prompt, system_prompt, tools, max_steps):
        """Search once, then evaluate until a result is accepted or the budget runs out."""
        self.tool_prompts.append(prompt)
        by_name = {tool.name: tool for tool in tools}
        await by_name["search_web"].func(query=prompt)
        for _ in range(max_steps - 1):
            hint = await by_name["evaluate"].func()
            if hint == RELEVANT_HINT:
                break
        return "done"

    async def generate_text(self, prompt, system_prompt=None):
        self.report_prompts.append(prompt)
        if self.report_error is not None:
            raise self.report_error
        return f"# Report\n\n{prompt}"


class FakeSearch:
    """Returns ``per_call`` fresh results per search unless ``results`` is given."""

    def __init__(self, *, per_call: int = 1, results: Optional[Callable[[str, int], List[SearchResult]]] = None):
        self.calls = []
        self._per_call = per_call
        self._results = results

    def search(self, query, result_count, filters=None):
        self.calls.append((query, result_count, filters))
        call = len(self.calls)
        if self._results is not None:
            results = self._results(query, call)
        else:
            results = [make_result(f"{call}-{k}") for k in range(self._per_call)]
        return results[:result_count]


class FakeKnowledgeStore:
    def __init__(self, *, error: Optional[Exception] = None) -> None:
        self.calls = []
        self.error = error

    async def answer_from_store(self, query, store_id, output_language):
        self.calls.append((query, store_id, output_language))
        if self.error is not None:
            raise self.error
        return f"kb answer for {query}"


@pytest.fixture
def make_engine():
    def _make(
        llm,
        search,
        *,
        driver="loop",
        drain_policy="latest",
        max_steps=7,
        knowledge_store=None,
        isolate=True,
        timeout=None,
    ):
        knowledge = None
        if knowledge_store is not None:
            knowledge = KnowledgeAugmenter(store=knowledge_store, output_language="en", timeout=timeout)
        return ResearchEngine(
            planner=QueryPlanner(llm=llm),
            search_and_filter=SearchAndFilter(
                search_provider=search,
                relevance_filter=RelevanceFilter(llm=llm),
                agent_llm=llm,
                max_steps=max_steps,
                drain_policy=drain_policy,
                driver=driver,
                timeout=timeout,
            ),
            extractor=LearningExtractor(llm=llm),
            knowledge=knowledge,
            isolate_branch_failures=isolate,
        )

    return _make

import asyncio
import time

import pytest

from conftest import FakeLLM, FakeSearch, make_result
from deep_search.errors import ExternalCallTimeout
from deep_search.relevance_filter import RelevanceFilter, SearchAndFilter, SearchSession
from deep_search.research_prompts import (
    EVALUATION_ERROR_HINT,
    IRRELEVANT,
    IRRELEVANT_HINT,
    NOTHING_TO_EVALUATE,
    RELEVANT,
    RELEVANT_HINT,
    STEP_BUDGET_EXHAUSTED,
)


def _session(llm, search, *, already_accepted=(), max_steps=7, drain_policy="latest", timeout=None):
    return SearchSession(
        query="solid-state batteries",
        breadth=3,
        filters=None,
        already_accepted=list(already_accepted),
        search_provider=search,
        relevance_filter=RelevanceFilter(llm=llm),
        max_steps=max_steps,
        drain_policy=drain_policy,
        timeout=timeout,
    )


def _three_results(query, call):
    return [make_result("a"), make_result("b"), make_result("c")]


def test_evaluate_with_nothing_pending_is_a_no_op():
    llm = FakeLLM()
    session = _session(llm, FakeSearch())

    first = asyncio.run(session.evaluate())
    second = asyncio.run(session.evaluate())

    assert first == NOTHING_TO_EVALUATE
    assert second == NOTHING_TO_EVALUATE
    assert session.accepted == []
    assert llm.evaluation_prompts == []


def test_evaluate_judges_the_most_recently_pushed_result():
    llm = FakeLLM()
    session = _session(llm, FakeSearch(results=_three_results))

    async def scenario():
        await session.search_web("solid-state batteries")
        return await session.evaluate()

    hint = asyncio.run(scenario())

    assert hint == RELEVANT_HINT
    assert [r.url for r in session.accepted] == ["https://example.com/c"]
    assert [r.url for r in session.pending] == ["https://example.com/a", "https://example.com/b"]
    assert len(llm.evaluation_prompts) == 1
    assert "https://example.com/c" in llm.evaluation_prompts[0]


def test_irrelevant_result_is_discarded_and_asks_for_a_new_search():
    llm = FakeLLM(verdict=lambda prompt: IRRELEVANT)
    session = _session(llm, FakeSearch(results=_three_results))

    async def scenario():
        await session.search_web("solid-state batteries")
        return await session.evaluate()

    hint = asyncio.run(scenario())

    assert hint == IRRELEVANT_HINT
    assert session.accepted == []
    assert len(session.pending) == 2


def test_evaluation_errors_are_reported_softly():
    def broken(prompt):
        raise RuntimeError("model unavailable")

    llm = FakeLLM(verdict=broken)
    session = _session(llm, FakeSearch(results=_three_results))

    async def scenario():
        await session.search_web("solid-state batteries")
        first = await session.evaluate()
        second = await session.evaluate()
        return first, second

    first, second = asyncio.run(scenario())

    assert first == EVALUATION_ERROR_HINT
    assert second == EVALUATION_ERROR_HINT
    assert session.accepted == []
    assert len(session.pending) == 1


def test_step_budget_is_shared_by_both_tools_and_abandons_older_results():
    llm = FakeLLM(verdict=lambda prompt: IRRELEVANT)
    search = FakeSearch(results=_three_results)
    session = _session(llm, search, max_steps=3)

    async def scenario():
        await session.search_web("solid-state batteries")
        await session.evaluate()
        await session.evaluate()
        return await session.evaluate(), await session.search_web("again")

    late_evaluate, late_search = asyncio.run(scenario())

    assert late_evaluate == STEP_BUDGET_EXHAUSTED
    assert late_search == STEP_BUDGET_EXHAUSTED
    assert session.exhausted
    assert len(search.calls) == 1
    assert [r.url for r in session.pending] == ["https://example.com/a"]


def test_drain_all_policy_judges_every_pending_result():
    llm = FakeLLM(verdict=lambda prompt: RELEVANT if "example.com/b" not in prompt.split("<existing_results>")[0] else IRRELEVANT)
    session = _session(llm, FakeSearch(results=_three_results), drain_policy="all")

    async def scenario():
        await session.search_web("solid-state batteries")
        return await session.evaluate()

    hint = asyncio.run(scenario())

    assert hint == RELEVANT_HINT
    assert [r.url for r in session.accepted] == ["https://example.com/c", "https://example.com/a"]
    assert session.pending == []


def test_already_accepted_url_is_rejected_without_asking_the_model():
    llm = FakeLLM()
    search = FakeSearch(results=lambda query, call: [make_result("dup")])
    session = _session(llm, search, already_accepted=[make_result("dup")])

    async def scenario():
        await session.search_web("solid-state batteries")
        return await session.evaluate()

    hint = asyncio.run(scenario())

    assert hint == IRRELEVANT_HINT
    assert session.accepted == []
    assert llm.evaluation_prompts == []


def test_existing_urls_are_shown_to_the_model():
    llm = FakeLLM()
    search = FakeSearch(results=lambda query, call: [make_result("new")])
    session = _session(llm, search, already_accepted=[make_result("old")])

    async def scenario():
        await session.search_web("solid-state batteries")
        await session.evaluate()

    asyncio.run(scenario())

    existing = llm.evaluation_prompts[0].split("<existing_results>")[1]
    assert "https://example.com/old" in existing


def test_search_failure_is_reported_to_the_driver():
    class BrokenSearch:
        def search(self, query, result_count, filters=None):
            raise ConnectionError("offline")

    session = _session(FakeLLM(), BrokenSearch())

    message = asyncio.run(session.search_web("solid-state batteries"))

    assert message.startswith("Search failed")
    assert session.pending == []
    assert session.steps == 1


def test_hung_search_is_reported_as_a_failed_search():
    class HungSearch:
        def search(self, query, result_count, filters=None):
            time.sleep(0.3)
            return [make_result("late")]

    session = _session(FakeLLM(), HungSearch(), timeout=0.05)

    message = asyncio.run(session.search_web("solid-state batteries"))

    assert message.startswith("Search failed")
    assert "web search" in message
    assert session.pending == []


def test_hung_evaluation_is_reported_as_an_evaluation_error():
    class SlowJudgeLLM(FakeLLM):
        async def generate_enum(self, prompt, allowed_values):
            await asyncio.sleep(0.3)
            return await super().generate_enum(prompt, allowed_values)

    session = _session(SlowJudgeLLM(), FakeSearch(), timeout=0.05)

    async def scenario():
        await session.search_web("solid-state batteries")
        return await session.evaluate()

    hint = asyncio.run(scenario())

    assert hint == EVALUATION_ERROR_HINT
    assert session.accepted == []
    assert session.pending == []


def test_agent_driver_returns_accepted_results():
    llm = FakeLLM()
    search = FakeSearch(results=_three_results)
    search_and_filter = SearchAndFilter(
        search_provider=search, relevance_filter=RelevanceFilter(llm=llm), agent_llm=llm, driver="agent"
    )

    accepted = asyncio.run(search_and_filter.run("solid-state batteries", 3, None, []))

    assert [r.url for r in accepted] == ["https://example.com/c"]
    assert len(llm.tool_prompts) == 1
    assert "solid-state batteries" in llm.tool_prompts[0]


def test_agent_timeout_keeps_results_accepted_so_far():
    class SlowAgentLLM(FakeLLM):
        async def generate_with_tools(self, prompt, system_prompt, tools, max_steps):
            by_name = {tool.name: tool for tool in tools}
            await by_name["search_web"].func(query=prompt)
            await by_name["evaluate"].func()
            raise ExternalCallTimeout(label="research agent conversation", timeout=1)

    llm = SlowAgentLLM()
    search_and_filter = SearchAndFilter(
        search_provider=FakeSearch(), relevance_filter=RelevanceFilter(llm=llm), agent_llm=llm
    )

    accepted = asyncio.run(search_and_filter.run("solid-state batteries", 1, None, []))

    assert len(accepted) == 1


def test_loop_driver_stops_after_first_relevant_result():
    llm = FakeLLM(verdict=lambda prompt: RELEVANT if "example.com/b" in prompt.split("<existing_results>")[0] else IRRELEVANT)
    search = FakeSearch(results=_three_results)
    search_and_filter = SearchAndFilter(
        search_provider=search, relevance_filter=RelevanceFilter(llm=llm), driver="loop"
    )

    accepted = asyncio.run(search_and_filter.run("solid-state batteries", 3, None, []))

    assert [r.url for r in accepted] == ["https://example.com/b"]
    assert len(llm.evaluation_prompts) == 2
    assert search.calls[0][0] == "solid-state batteries"


def test_agent_driver_requires_a_tool_calling_model():
    with pytest.raises(ValueError):
        SearchAndFilter(search_provider=FakeSearch(), relevance_filter=RelevanceFilter(llm=FakeLLM()))

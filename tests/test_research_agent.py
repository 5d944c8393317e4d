import json

import pytest

from conftest import FakeKnowledgeStore, FakeLLM, FakeSearch
from deep_search import DeepSearchAgent, ResearchConfig
from deep_search.errors import SynthesisError


def _agent(tmp_path, llm=None, report_llm=None, **config):
    llm = llm or FakeLLM()
    return DeepSearchAgent(
        config=ResearchConfig(openai_api_key="sk-test", log_dir=tmp_path, **config),
        llm=llm,
        report_llm=report_llm or llm,
        search_provider=FakeSearch(),
        knowledge_store=FakeKnowledgeStore(),
    )


def test_invoke_researches_reports_and_writes_the_run_log(tmp_path):
    agent = _agent(tmp_path)

    report = agent.invoke("state of solid-state batteries", depth=1, breadth=2, knowledge_base_id="vs_9")

    assert "state of solid-state batteries" in report
    research = agent.last_research
    assert research.query == "state of solid-state batteries"
    assert len(research.knowledge_base_results) == 2
    record = json.loads(agent.last_log_path.read_text(encoding="utf-8"))
    assert record["report"] == report
    assert record["research"]["queries"] == research.queries
    assert "plan" in [step["step"] for step in record["steps"]]


def test_failed_synthesis_keeps_partial_research_in_the_log(tmp_path):
    agent = _agent(tmp_path, report_llm=FakeLLM(report_error=RuntimeError("rate limited")))

    with pytest.raises(SynthesisError):
        agent.invoke("topic", depth=1, breadth=1)

    record = json.loads(agent.last_log_path.read_text(encoding="utf-8"))
    assert "rate limited" in record["error"]
    assert len(record["research"]["learnings"]) == 1
    assert len(agent.last_research.learnings) == 1


def test_run_and_synthesize_separately(tmp_path):
    agent = _agent(tmp_path, driver="loop")

    research = agent.run_deep_research(None, "topic", 1, 1)
    report = agent.synthesize_report(research, "You write reports.")

    assert research.queries == ["q1-0"]
    assert "topic" in report

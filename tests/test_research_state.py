import dataclasses

import pytest

from conftest import make_result
from research_state import Learning, Research


def test_root_is_set_only_once():
    research = Research()

    assert research.set_root("first") is True
    assert research.set_root("second") is False
    assert research.query == "first"


def test_add_learning_records_the_completed_query():
    research = Research()
    research.add_learning("q", Learning("l1"))
    research.add_learning("q", Learning("l2"))

    assert research.completed_queries == ["q", "q"]
    assert [item.learning for item in research.learnings] == ["l1", "l2"]


def test_results_and_learnings_are_immutable():
    with pytest.raises(dataclasses.FrozenInstanceError):
        make_result(1).url = "https://example.com/other"
    with pytest.raises(dataclasses.FrozenInstanceError):
        Learning("l").learning = "changed"


def test_to_dict_is_json_ready():
    research = Research(query="q")
    research.add_learning("q", Learning("l", ("f1", "f2")))

    data = research.to_dict()

    assert data["learnings"] == [{"learning": "l", "follow_up_questions": ["f1", "f2"]}]
    assert data["knowledge_base_results"] == []

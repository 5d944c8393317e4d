"""
State models supporting the deep research workflow.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple


@dataclass(frozen=True, slots=True)
class SearchResult:
    """A single page returned by the search provider. Identified by its URL."""

    title: str
    url: str
    content: str
    published_date: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Learning:
    """A distilled finding plus the follow-up questions it raised."""

    learning: str
    follow_up_questions: Tuple[str, ...] = ()


@dataclass(slots=True)
class Research:
    """
    Accumulated state for one top-level investigation.

    A single instance is shared by reference across every branch of the
    recursive traversal. All sequences only ever grow.
    """

    query: Optional[str] = None
    queries: List[str] = field(default_factory=list)
    search_results: List[SearchResult] = field(default_factory=list)
    knowledge_base_results: List[str] = field(default_factory=list)
    learnings: List[Learning] = field(default_factory=list)
    completed_queries: List[str] = field(default_factory=list)

    def set_root(self, prompt: str) -> bool:
        """Record the root prompt if none is set yet. Returns True when it was set."""
        if self.query:
            return False
        self.query = prompt
        return True

    def add_queries(self, queries: Iterable[str]) -> None:
        self.queries.extend(queries)

    def add_search_results(self, results: Iterable[SearchResult]) -> None:
        self.search_results.extend(results)

    def add_knowledge_base_result(self, answer: str) -> None:
        self.knowledge_base_results.append(answer)

    def add_learning(self, query: str, learning: Learning) -> None:
        self.learnings.append(learning)
        self.completed_queries.append(query)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        for item in data["learnings"]:
            item["follow_up_questions"] = list(item["follow_up_questions"])
        return data

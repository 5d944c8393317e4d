"""
Contracts for the external services the research core depends on.

Production implementations live in `llm`, `search` and `knowledge_base`;
tests substitute in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Sequence, Type, TypeVar

from pydantic import BaseModel

from research_state import SearchResult

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True, slots=True)
class SearchFilters:
    """Filters applied to every web search of one run."""

    start_published_date: Optional[str] = None
    end_published_date: Optional[str] = None
    include_domains: Optional[List[str]] = None
    exclude_domains: Optional[List[str]] = None
    include_text: Optional[List[str]] = None
    exclude_text: Optional[List[str]] = None


@dataclass(frozen=True, slots=True)
class AgentTool:
    """A callable offered to a tool-driven model conversation.

    The parameter schema is derived from the signature of ``func``.
    """

    name: str
    description: str
    func: Callable[..., Awaitable[Any]]


class SearchProvider(Protocol):
    def search(
        self,
        query: str,
        result_count: int,
        filters: Optional[SearchFilters] = None,
    ) -> List[SearchResult]:
        ...


class StructuredGenerator(Protocol):
    async def generate_structured(
        self, prompt: str, schema: Type[ModelT], system_prompt: Optional[str] = None
    ) -> ModelT:
        ...

    async def generate_enum(self, prompt: str, allowed_values: Sequence[str]) -> str:
        ...


class ToolCallingGenerator(Protocol):
    async def generate_with_tools(
        self, prompt: str, system_prompt: str, tools: Sequence[AgentTool], max_steps: int
    ) -> str:
        ...


class TextGenerator(Protocol):
    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        ...


class KnowledgeStore(Protocol):
    async def answer_from_store(self, query: str, store_id: str, output_language: str) -> str:
        ...

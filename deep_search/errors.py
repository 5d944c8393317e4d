"""Exception types raised by the research core, plus the timeout guard for external calls."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Optional, TypeVar

T = TypeVar("T")


class ResearchError(RuntimeError):
    """Base class for failures inside a research run."""


class QueryPlanningError(ResearchError):
    """Raised when no search queries could be planned for a topic."""


class LearningExtractionError(ResearchError):
    """Raised when a learning could not be extracted from an accepted result."""


class SynthesisError(ResearchError):
    """Raised when the final report could not be generated."""


class ExternalCallTimeout(ResearchError):
    """Raised when a search, model or knowledge-base call exceeds its timeout."""

    def __init__(self, *, label: str, timeout: float) -> None:
        super().__init__(f"{label} timed out after {timeout:g}s")
        self.label = label
        self.timeout = timeout


async def bounded_call(awaitable: Awaitable[T], *, timeout: Optional[float], label: str) -> T:
    """Await an external call, converting expiry of ``timeout`` into ExternalCallTimeout."""
    if timeout is None or timeout <= 0:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ExternalCallTimeout(label=label, timeout=timeout) from exc

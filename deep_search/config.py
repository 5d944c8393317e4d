"""
Runtime configuration for the deep search agents.

Values are read from the environment (typically populated from a `.env` file
via python-dotenv) and handed explicitly to every collaborator at construction.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DRAIN_POLICIES = ("latest", "all")
DRIVERS = ("agent", "loop")
SEARCH_BACKENDS = ("tavily", "mcp")


@dataclass(slots=True)
class ResearchConfig:
    """Model identifiers, credentials and limits shared by one research agent."""

    openai_api_key: str
    openai_base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4.1-mini"
    report_model: str = "o3-mini"
    knowledge_model: str = "gpt-4.1"
    output_language: str = "en"
    request_timeout: Optional[float] = 120.0
    max_search_steps: int = 7
    drain_policy: str = "latest"
    driver: str = "agent"
    isolate_branch_failures: bool = True
    search_backend: str = "tavily"
    tavily_api_key: Optional[str] = None
    tavily_mcp_base_url: str = "http://127.0.0.1:6112/mcp"
    tavily_mcp_api_key: Optional[str] = None
    log_dir: Path = Path("logs")

    def __post_init__(self) -> None:
        if self.drain_policy not in DRAIN_POLICIES:
            raise ValueError(f"drain_policy must be one of {DRAIN_POLICIES}, got {self.drain_policy!r}")
        if self.driver not in DRIVERS:
            raise ValueError(f"driver must be one of {DRIVERS}, got {self.driver!r}")
        if self.search_backend not in SEARCH_BACKENDS:
            raise ValueError(f"search_backend must be one of {SEARCH_BACKENDS}, got {self.search_backend!r}")
        self.max_search_steps = max(1, self.max_search_steps)

    @classmethod
    def from_env(cls, *, dotenv: bool = True) -> "ResearchConfig":
        if dotenv:
            load_dotenv()
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise EnvironmentError("OPENAI_API_KEY is not set.")

        timeout_raw = os.getenv("DEEP_SEARCH_TIMEOUT", "120")
        try:
            timeout: Optional[float] = float(timeout_raw)
        except ValueError:
            raise EnvironmentError(f"DEEP_SEARCH_TIMEOUT must be a number, got {timeout_raw!r}.")
        if timeout is not None and timeout <= 0:
            timeout = None

        steps_raw = os.getenv("DEEP_SEARCH_MAX_SEARCH_STEPS", "7")
        try:
            max_steps = int(steps_raw)
        except ValueError:
            raise EnvironmentError(f"DEEP_SEARCH_MAX_SEARCH_STEPS must be an integer, got {steps_raw!r}.")

        isolate = os.getenv("DEEP_SEARCH_ISOLATE_BRANCHES", "true").strip().lower() not in {"0", "false", "no"}

        return cls(
            openai_api_key=api_key,
            openai_base_url=os.getenv("OPENAI_API_BASE_URL", "https://api.openai.com/v1"),
            model=os.getenv("DEEP_SEARCH_MODEL", "gpt-4.1-mini"),
            report_model=os.getenv("DEEP_SEARCH_REPORT_MODEL", "o3-mini"),
            knowledge_model=os.getenv("DEEP_SEARCH_KNOWLEDGE_MODEL", "gpt-4.1"),
            output_language=os.getenv("DEEP_SEARCH_OUTPUT_LANG", "en"),
            request_timeout=timeout,
            max_search_steps=max_steps,
            drain_policy=os.getenv("DEEP_SEARCH_DRAIN_POLICY", "latest"),
            driver=os.getenv("DEEP_SEARCH_DRIVER", "agent"),
            isolate_branch_failures=isolate,
            search_backend=os.getenv("DEEP_SEARCH_SEARCH_BACKEND", "tavily"),
            tavily_api_key=os.getenv("TAVILY_API_KEY"),
            tavily_mcp_base_url=os.getenv("TAVILY_MCP_BASE_URL", "http://127.0.0.1:6112/mcp"),
            tavily_mcp_api_key=os.getenv("TAVILY_MCP_API_KEY") or os.getenv("TAVILY_API_KEY"),
            log_dir=Path(os.getenv("DEEP_SEARCH_LOG_DIR", "logs")),
        )

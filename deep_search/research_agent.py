"""
Deep Search Agent (Tavily + OpenAI)

- Built on Microsoft AutoGen (agentchat/core/ext stack).
- OpenAI models for planning, evaluation, learnings and the final report.
- Tavily web search, directly or through an MCP JSON-RPC search server.
- Optional OpenAI vector store as a private knowledge base.

Required env:
  - OPENAI_API_KEY
  - TAVILY_API_KEY (or TAVILY_MCP_BASE_URL with DEEP_SEARCH_SEARCH_BACKEND=mcp)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Coroutine, Optional, Sequence, TypeVar

from research_state import Research

from .collaborators import KnowledgeStore, SearchFilters, SearchProvider
from .config import ResearchConfig
from .engine import ResearchEngine
from .interaction_log import InteractionLog
from .knowledge_base import KnowledgeAugmenter, OpenAIVectorStore
from .learning_extractor import LearningExtractor
from .llm import AutogenLanguageModel
from .query_planner import QueryPlanner
from .relevance_filter import RelevanceFilter, SearchAndFilter
from .report import ReportSynthesizer
from .search import McpSearchProvider, TavilySearchProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeepSearchAgent:
    """Recursive web research followed by report synthesis."""

    def __init__(
        self,
        *,
        config: Optional[ResearchConfig] = None,
        llm: Optional[Any] = None,
        report_llm: Optional[Any] = None,
        search_provider: Optional[SearchProvider] = None,
        knowledge_store: Optional[KnowledgeStore] = None,
    ) -> None:
        self._config = config or ResearchConfig.from_env()
        cfg = self._config

        if llm is None:
            logger.info("Initializing research model '%s'", cfg.model)
            llm = AutogenLanguageModel(
                model_name=cfg.model,
                api_key=cfg.openai_api_key,
                base_url=cfg.openai_base_url,
                timeout=cfg.request_timeout,
            )
        if report_llm is None:
            logger.info("Initializing report model '%s'", cfg.report_model)
            report_llm = AutogenLanguageModel(
                model_name=cfg.report_model,
                api_key=cfg.openai_api_key,
                base_url=cfg.openai_base_url,
                timeout=cfg.request_timeout,
            )
        if search_provider is None:
            search_provider = self._build_search_provider(cfg)
        if knowledge_store is None:
            knowledge_store = OpenAIVectorStore(
                api_key=cfg.openai_api_key,
                model=cfg.knowledge_model,
                base_url=cfg.openai_base_url,
            )

        self._engine = ResearchEngine(
            planner=QueryPlanner(llm=llm),
            search_and_filter=SearchAndFilter(
                search_provider=search_provider,
                relevance_filter=RelevanceFilter(llm=llm),
                agent_llm=llm,
                max_steps=cfg.max_search_steps,
                drain_policy=cfg.drain_policy,
                driver=cfg.driver,
                timeout=cfg.request_timeout,
            ),
            extractor=LearningExtractor(llm=llm),
            knowledge=KnowledgeAugmenter(
                store=knowledge_store,
                output_language=cfg.output_language,
                timeout=cfg.request_timeout,
            ),
            isolate_branch_failures=cfg.isolate_branch_failures,
        )
        self._synthesizer = ReportSynthesizer(llm=report_llm)
        self._last_research: Optional[Research] = None
        self._last_log_path: Optional[Path] = None

    @property
    def config(self) -> ResearchConfig:
        return self._config

    @property
    def last_research(self) -> Optional[Research]:
        """Research state of the most recent invoke(), including failed runs."""
        return self._last_research

    @property
    def last_log_path(self) -> Optional[Path]:
        return self._last_log_path

    def run_deep_research(
        self,
        filters: Optional[SearchFilters],
        prompt: str,
        depth: int,
        breadth: int,
        focus_topics: Sequence[str] = (),
        knowledge_base_id: Optional[str] = None,
    ) -> Research:
        return self._run_async(
            self._engine.run(filters, prompt, depth, breadth, focus_topics, knowledge_base_id=knowledge_base_id)
        )

    def synthesize_report(self, research: Research, system_prompt: Optional[str] = None) -> str:
        return self._run_async(self._synthesizer.synthesize(research, system_prompt))

    def invoke(
        self,
        prompt: str,
        *,
        depth: int = 2,
        breadth: int = 5,
        focus_topics: Sequence[str] = (),
        filters: Optional[SearchFilters] = None,
        knowledge_base_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        """Research ``prompt`` and return the synthesized report, recording the run to the log directory."""
        return self._run_async(
            self.ainvoke(
                prompt,
                depth=depth,
                breadth=breadth,
                focus_topics=focus_topics,
                filters=filters,
                knowledge_base_id=knowledge_base_id,
                system_prompt=system_prompt,
            )
        )

    async def ainvoke(
        self,
        prompt: str,
        *,
        depth: int = 2,
        breadth: int = 5,
        focus_topics: Sequence[str] = (),
        filters: Optional[SearchFilters] = None,
        knowledge_base_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
    ) -> str:
        log = InteractionLog(log_dir=self._config.log_dir, prompt=prompt)
        research = Research()
        self._last_research = research
        logger.info("Received research prompt: %s", prompt)
        try:
            await self._engine.run(
                filters,
                prompt,
                depth,
                breadth,
                focus_topics,
                research,
                knowledge_base_id=knowledge_base_id,
                log=log,
            )
            logger.info(
                "Research complete: %d queries, %d accepted results, %d learnings.",
                len(research.queries),
                len(research.search_results),
                len(research.learnings),
            )
            report = await self._synthesizer.synthesize(research, system_prompt)
        except Exception as exc:
            logger.exception("Deep research failed for prompt: %s", prompt)
            self._last_log_path = log.finalize(research=research.to_dict(), error=str(exc))
            raise
        self._last_log_path = log.finalize(research=research.to_dict(), report=report)
        return report

    @staticmethod
    def _build_search_provider(cfg: ResearchConfig) -> SearchProvider:
        if cfg.search_backend == "mcp":
            return McpSearchProvider(
                base_url=cfg.tavily_mcp_base_url,
                api_key=cfg.tavily_mcp_api_key,
                request_timeout=cfg.request_timeout or 60,
            )
        return TavilySearchProvider(api_key=cfg.tavily_api_key)

    @staticmethod
    def _run_async(coro: Coroutine[Any, Any, T]) -> T:
        return asyncio.run(coro)

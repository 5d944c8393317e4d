"""Private knowledge-base lookups backed by an OpenAI vector store."""

from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI

from .collaborators import KnowledgeStore
from .errors import bounded_call
from .research_prompts import knowledge_base_instruction

logger = logging.getLogger(__name__)


class OpenAIVectorStore:
    """Answers a query with the Responses API `file_search` tool over one vector store."""

    def __init__(
        self,
        *,
        api_key: str,
        model: str = "gpt-4.1",
        base_url: Optional[str] = None,
        max_num_results: int = 5,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        self._client = client or AsyncOpenAI(api_key=api_key, base_url=base_url)
        self._model = model
        self._max_num_results = max_num_results

    async def answer_from_store(self, query: str, store_id: str, output_language: str) -> str:
        response = await self._client.responses.create(
            model=self._model,
            tools=[
                {
                    "type": "file_search",
                    "vector_store_ids": [store_id],
                    "max_num_results": self._max_num_results,
                }
            ],
            input=[
                {"role": "developer", "content": knowledge_base_instruction(output_language=output_language)},
                {"role": "user", "content": query},
            ],
        )
        logger.info("Knowledge base %s answered %r", store_id, query)
        return response.output_text


class KnowledgeAugmenter:
    """Looks queries up in the knowledge base, recording failures as an empty answer."""

    def __init__(
        self,
        *,
        store: KnowledgeStore,
        output_language: str = "en",
        timeout: Optional[float] = None,
    ) -> None:
        self._store = store
        self._output_language = output_language
        self._timeout = timeout

    async def lookup(self, query: str, knowledge_base_id: str) -> str:
        try:
            answer = await bounded_call(
                self._store.answer_from_store(query, knowledge_base_id, self._output_language),
                timeout=self._timeout,
                label="knowledge base lookup",
            )
        except Exception as exc:
            logger.warning("Knowledge base lookup for %r failed: %s", query, exc)
            return ""
        return answer or ""

"""
Language-model access for the research core, built on Microsoft AutoGen.

`AutogenLanguageModel` wraps one `OpenAIChatCompletionClient` and exposes the
structured, enum-constrained, plain-text and tool-driven generation calls the
research collaborators depend on.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence, Type, TypeVar

from autogen_agentchat.agents import AssistantAgent
from autogen_agentchat.messages import BaseChatMessage
from autogen_core.models import ChatCompletionClient, LLMMessage, ModelInfo, SystemMessage, UserMessage
from autogen_core.tools import FunctionTool
from autogen_ext.models.openai import OpenAIChatCompletionClient
from pydantic import BaseModel, create_model

from .collaborators import AgentTool
from .errors import bounded_call
from .research_prompts import enum_prompt

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class AutogenLanguageModel:
    """One model endpoint, with a per-call timeout applied to every request."""

    def __init__(
        self,
        *,
        model_name: str,
        api_key: Optional[str] = None,
        base_url: str = "https://api.openai.com/v1",
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        model_client: Optional[ChatCompletionClient] = None,
    ) -> None:
        self._model_name = model_name
        self._timeout = timeout
        if model_client is None:
            if not api_key:
                raise EnvironmentError("OPENAI_API_KEY is not set.")
            model_client = self._build_openai_client(
                openai_model_name=model_name,
                api_key=api_key,
                base_url=base_url,
                temperature=temperature,
            )
        self._model_client = model_client

    @property
    def model_name(self) -> str:
        return self._model_name

    async def generate_structured(
        self, prompt: str, schema: Type[ModelT], system_prompt: Optional[str] = None
    ) -> ModelT:
        messages = self._messages(prompt, system_prompt)
        result = await bounded_call(
            self._model_client.create(messages, json_output=schema),
            timeout=self._timeout,
            label=f"{self._model_name} structured generation",
        )
        content = result.content
        if not isinstance(content, str):
            raise ValueError(f"Expected a JSON payload from {self._model_name}, got {type(content).__name__}.")
        logger.debug("Structured output (%s): %s", schema.__name__, content)
        return schema.model_validate_json(content)

    async def generate_enum(self, prompt: str, allowed_values: Sequence[str]) -> str:
        values = [str(value) for value in allowed_values]
        if not values:
            raise ValueError("allowed_values must not be empty.")
        choice_model = create_model("EnumChoice", value=(Literal[tuple(values)], ...))
        choice = await self.generate_structured(enum_prompt(prompt=prompt, allowed_values=values), choice_model)
        return choice.value

    async def generate_text(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        messages = self._messages(prompt, system_prompt)
        result = await bounded_call(
            self._model_client.create(messages),
            timeout=self._timeout,
            label=f"{self._model_name} text generation",
        )
        content = result.content
        if not isinstance(content, str):
            raise ValueError(f"Expected text from {self._model_name}, got {type(content).__name__}.")
        return content.strip()

    async def generate_with_tools(
        self, prompt: str, system_prompt: str, tools: Sequence[AgentTool], max_steps: int
    ) -> str:
        steps = max(1, max_steps)
        agent = AssistantAgent(
            name="web_researcher",
            model_client=self._model_client,
            system_message=system_prompt,
            description="Searches the web and evaluates results for one query.",
            tools=[FunctionTool(func=tool.func, name=tool.name, description=tool.description) for tool in tools],
            max_tool_iterations=steps,
        )
        # One request timeout per tool step, plus the final answer.
        timeout = self._timeout * (steps + 1) if self._timeout else None
        result = await bounded_call(agent.run(task=prompt), timeout=timeout, label="research agent conversation")
        text = self._extract_text(result.messages)
        logger.info("Research agent finished: %s", text)
        return text

    @staticmethod
    def _messages(prompt: str, system_prompt: Optional[str]) -> List[LLMMessage]:
        messages: List[LLMMessage] = []
        if system_prompt:
            messages.append(SystemMessage(content=system_prompt))
        messages.append(UserMessage(content=prompt, source="user"))
        return messages

    @staticmethod
    def _last_chat_message(messages: Iterable[Any]) -> Optional[BaseChatMessage]:
        for message in reversed(list(messages)):
            if isinstance(message, BaseChatMessage):
                return message
        return None

    def _extract_text(self, messages: Iterable[Any]) -> str:
        last = self._last_chat_message(messages)
        if last is None:
            return ""
        return last.to_text().strip()

    @staticmethod
    def _build_openai_client(
        *,
        openai_model_name: str,
        api_key: str,
        base_url: str,
        temperature: Optional[float],
    ) -> ChatCompletionClient:
        model_info: ModelInfo = {
            "vision": False,
            "function_calling": True,
            "json_output": True,
            "structured_output": True,
            "family": "openai",
        }
        client_kwargs: Dict[str, Any] = {
            "model": openai_model_name,
            "api_key": api_key,
            "base_url": base_url,
            "include_name_in_message": False,
            "model_info": model_info,
        }
        if temperature is not None:
            client_kwargs["temperature"] = temperature
        return OpenAIChatCompletionClient(**client_kwargs)

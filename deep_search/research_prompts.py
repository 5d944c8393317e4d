"""
Centralized prompts used by the deep search collaborators.
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Sequence

RESEARCHER_SYSTEM_PROMPT: str = (
    "You are a researcher. For each query, search the web and then evaluate if the results are relevant "
    "and will help answer the following query"
)

DEFAULT_REPORT_SYSTEM_PROMPT: str = (
    "You are an expert analyst. Write a detailed, well-structured report in Markdown from the structured "
    "research data you are given. Ground every statement in the provided search results, learnings and "
    "knowledge-base answers, and cite source URLs inline."
)

RELEVANT = "relevant"
IRRELEVANT = "irrelevant"
VERDICTS = (RELEVANT, IRRELEVANT)

RELEVANT_HINT = "Search results are relevant. End research for this query."
IRRELEVANT_HINT = "Search results are irrelevant. Please search again with a more specific query."
EVALUATION_ERROR_HINT = "Evaluation tool error occurred, skipping this evaluation."
NOTHING_TO_EVALUATE = "No search results available for evaluation."
STEP_BUDGET_EXHAUSTED = "Step budget exhausted. Stop researching this query."

SEARCH_TOOL_DESCRIPTION = "Search the web for information about a given query"
EVALUATE_TOOL_DESCRIPTION = "Evaluate the search results"


def planning_prompt(*, topic: str, count: int) -> str:
    return f"Generate {count} search queries for the following query: {topic}"


def focus_directive(*, prompt: str, topic: str) -> str:
    return f"{prompt}, focus on these important branches of thought: {topic}"


def research_task_prompt(*, query: str) -> str:
    return (
        f"Search the web for information about {query}, For each item, where possible, collect detailed "
        "examples of use cases (news stories) with a detailed description."
    )


def evaluation_prompt(*, query: str, result: Dict[str, Any], accepted_urls: Sequence[str]) -> str:
    return (
        f"Evaluate whether the search results are relevant and will help answer the following query: {query}. "
        "If the page already exists in the existing results, mark it as irrelevant.\n\n"
        f"<search_results>\n{json.dumps(result, ensure_ascii=False)}\n</search_results>\n\n"
        f"<existing_results>\n{json.dumps(list(accepted_urls), ensure_ascii=False)}\n</existing_results>"
    )


def learning_prompt(*, query: str, result: Dict[str, Any]) -> str:
    return (
        f'The user is researching "{query}". The following search result were deemed relevant.\n'
        "Generate a learning and a follow-up question from the following search result. "
        "If the result holds no clear insight, say so in the learning.\n\n"
        f"<search_result>\n{json.dumps(result, ensure_ascii=False)}\n</search_result>"
    )


def follow_up_prompt(*, goal: str, completed_queries: Iterable[str], follow_up_questions: Iterable[str]) -> str:
    return (
        f"Overall research goal: {goal}\n"
        f"Previous search queries: {', '.join(completed_queries)}\n"
        f"Follow-up questions: {', '.join(follow_up_questions)}"
    )


def knowledge_base_instruction(*, output_language: str) -> str:
    return f"Search the vector store for information. Output format language: {output_language}"


def report_prompt(*, research_json: str) -> str:
    return "Use the following structured research data to generate a detailed expert report:\n\n" + research_json


def enum_prompt(*, prompt: str, allowed_values: List[str]) -> str:
    return f"{prompt}\n\nAnswer with exactly one of: {', '.join(allowed_values)}."

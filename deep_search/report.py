"""ReportSynthesizer: turns the accumulated research into the final prose report."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

from research_state import Research

from .collaborators import TextGenerator
from .errors import SynthesisError
from .research_prompts import DEFAULT_REPORT_SYSTEM_PROMPT, report_prompt

logger = logging.getLogger(__name__)


class ReportSynthesizer:
    def __init__(self, *, llm: TextGenerator) -> None:
        self._llm = llm

    async def synthesize(self, research: Research, system_prompt: Optional[str] = None) -> str:
        research_json = json.dumps(research.to_dict(), indent=2, ensure_ascii=False)
        try:
            text = await self._llm.generate_text(
                report_prompt(research_json=research_json),
                system_prompt or DEFAULT_REPORT_SYSTEM_PROMPT,
            )
        except Exception as exc:
            logger.exception("Report synthesis failed for %r", research.query)
            raise SynthesisError(f"Report synthesis failed: {exc}") from exc
        if not text or not text.strip():
            raise SynthesisError("The report model returned an empty report.")
        logger.info("Report generated (%d characters).", len(text))
        return text


def save_report(report: str, path: Path) -> Path:
    path = Path(path)
    if path.parent and not path.parent.exists():
        path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(report, encoding="utf-8")
    logger.info("Saved report to %s", path)
    return path

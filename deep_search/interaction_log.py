"""Per-run JSON record of every research step, written to the log directory."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

logger = logging.getLogger(__name__)


def make_serializable(data: Any) -> Any:
    try:
        json.dumps(data)
        return data
    except TypeError:
        if isinstance(data, dict):
            return {str(key): make_serializable(value) for key, value in data.items()}
        if isinstance(data, (list, set, tuple)):
            return [make_serializable(item) for item in data]
        return repr(data)


class InteractionLog:
    def __init__(self, *, log_dir: Path, prompt: str) -> None:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        self.path: Path = Path(log_dir) / f"deep_search_{timestamp}_{uuid4().hex[:8]}.json"
        self._record: Dict[str, Any] = {"timestamp": timestamp, "prompt": prompt, "steps": []}
        self._closed = False

    @property
    def steps(self) -> list:
        return self._record["steps"]

    def record(self, step: str, context: Dict[str, Any]) -> None:
        if self._closed:
            return
        self._record["steps"].append(
            {
                "step": step,
                "timestamp": datetime.now(timezone.utc).isoformat(timespec="seconds"),
                "context": make_serializable(context),
            }
        )

    def finalize(
        self,
        *,
        research: Optional[Dict[str, Any]] = None,
        report: Optional[str] = None,
        error: Optional[str] = None,
    ) -> Optional[Path]:
        """Write the record to disk. Returns the path, or None when it could not be written."""
        if self._closed:
            return None
        self._closed = True
        if research is not None:
            self._record["research"] = make_serializable(research)
        if report is not None:
            self._record["report"] = report
        if error:
            self._record["error"] = error
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._record, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:  # pragma: no cover - filesystem issues
            logger.warning("Failed to write interaction log %s: %s", self.path, exc)
            return None
        logger.info("Wrote interaction log to %s", self.path)
        return self.path

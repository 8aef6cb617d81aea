"""Helpers to persist intermediate representations for debugging."""
from __future__ import annotations

import json
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from chapter_docx.model.document_model import DocumentPlan


class DebugDumper:
    """Writes intermediate artifacts onto disk for inspection."""

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def dump(self, plan: DocumentPlan) -> Path:
        """Persist the document plan and its diagnostics as JSON for offline analysis."""
        self.directory.mkdir(parents=True, exist_ok=True)
        payload = {
            "chapter_count": plan.chapter_count,
            "blocks": [{"type": type(block).__name__, **self._serialize(block)} for block in plan.blocks],
            "assets": self._serialize(plan.assets),
            "diagnostics": self._serialize(list(plan.diagnostics)),
        }
        target = self.directory / "document_plan.json"
        target.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        return target

    def _serialize(self, value: Any) -> Any:
        if is_dataclass(value) and not isinstance(value, type):
            return {item.name: self._serialize(getattr(value, item.name)) for item in fields(value)}
        if isinstance(value, bytes):
            return f"<{len(value)} bytes>"
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return {k: self._serialize(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._serialize(v) for v in value]
        return value

"""Side-channel report of recoverable problems met during a conversion batch."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from chapter_docx.utils.logger import get_logger

LOGGER = get_logger(__name__)

_FRAGMENT_PREVIEW = 120


class DiagnosticKind(str, Enum):
    """Taxonomy of non-fatal conversion problems."""

    INPUT_RECORD_MALFORMED = "input-record-malformed"
    MARKUP_UNPARSEABLE = "markup-unparseable"
    IMAGE_FETCH_FAILED = "image-fetch-failed"
    ENTITY_UNRESOLVABLE = "entity-unresolvable"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """A single problem with enough context to act on."""

    kind: DiagnosticKind
    message: str
    record_id: Optional[str] = None
    url: Optional[str] = None
    fragment: Optional[str] = None

    def describe(self) -> str:
        parts = [f"[{self.kind.value}]"]
        if self.record_id:
            parts.append(f"record={self.record_id}")
        if self.url:
            parts.append(f"url={self.url}")
        parts.append(self.message)
        if self.fragment:
            parts.append(f"fragment={self.fragment!r}")
        return " ".join(parts)


class DiagnosticReport:
    """Ordered collection of diagnostics; every entry is logged as it arrives."""

    def __init__(self) -> None:
        self._entries: List[Diagnostic] = []

    def add(
        self,
        kind: DiagnosticKind,
        message: str,
        *,
        record_id: Optional[str] = None,
        url: Optional[str] = None,
        fragment: Optional[str] = None,
    ) -> Diagnostic:
        if fragment is not None and len(fragment) > _FRAGMENT_PREVIEW:
            fragment = fragment[:_FRAGMENT_PREVIEW] + "..."
        diagnostic = Diagnostic(kind=kind, message=message, record_id=record_id, url=url, fragment=fragment)
        self._entries.append(diagnostic)
        LOGGER.warning("%s", diagnostic.describe())
        return diagnostic

    def of_kind(self, kind: DiagnosticKind) -> List[Diagnostic]:
        return [entry for entry in self._entries if entry.kind is kind]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __bool__(self) -> bool:
        return bool(self._entries)

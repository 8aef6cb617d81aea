"""In-memory representation of compiled chapter content."""
from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Optional, Sequence, Tuple

from chapter_docx.utils.units import pixels_to_emu


@dataclass(frozen=True, slots=True)
class ChapterRecord:
    """One input row: chapter identifier, title and rich-HTML body."""

    id: str
    title: str
    body: str

    @classmethod
    def from_row(cls, row: Sequence[str]) -> "ChapterRecord":
        """Build a record from a CSV row, raising ``ValueError`` when fields are missing."""
        if len(row) < 3:
            raise ValueError(f"expected 3 fields, got {len(row)}")
        record_id, title, body = (value.strip() for value in row[:3])
        return cls(id=record_id, title=title, body=body)

    @property
    def is_complete(self) -> bool:
        return bool(self.id and self.title and self.body)


@dataclass(frozen=True, slots=True)
class StyleAttributes:
    """Formatting attributes; ``None`` means unset and never overrides on merge."""

    bold: Optional[bool] = None
    italic: Optional[bool] = None
    underline: Optional[bool] = None
    color: Optional[str] = None
    font_size_half_points: Optional[int] = None
    justification: Optional[str] = None
    left_indent_twips: Optional[int] = None
    first_line_indent_twips: Optional[int] = None
    hanging_indent_twips: Optional[int] = None
    spacing_before_twips: Optional[int] = None
    spacing_after_twips: Optional[int] = None

    RUN_FIELDS = ("bold", "italic", "underline", "color", "font_size_half_points")

    def merge(self, other: Optional["StyleAttributes"]) -> "StyleAttributes":
        """Return a copy where every field set on ``other`` overrides this one."""
        if other is None:
            return self
        overrides = {
            item.name: getattr(other, item.name)
            for item in fields(other)
            if getattr(other, item.name) is not None
        }
        if not overrides:
            return self
        return replace(self, **overrides)

    def run_properties(self) -> "StyleAttributes":
        """Project onto the character-level fields only."""
        return StyleAttributes(**{name: getattr(self, name) for name in self.RUN_FIELDS})

    def paragraph_properties(self) -> "StyleAttributes":
        """Project onto the paragraph-level fields only."""
        return StyleAttributes(
            **{
                item.name: getattr(self, item.name)
                for item in fields(self)
                if item.name not in self.RUN_FIELDS
            }
        )

    @property
    def is_empty(self) -> bool:
        return all(getattr(self, item.name) is None for item in fields(self))


@dataclass(frozen=True, slots=True)
class Run:
    """Contiguous text sharing one set of attributes, or a typed line break."""

    text: str
    attributes: StyleAttributes = field(default_factory=StyleAttributes)
    is_line_break: bool = False

    @classmethod
    def line_break(cls, attributes: Optional[StyleAttributes] = None) -> "Run":
        return cls(text="", attributes=attributes or StyleAttributes(), is_line_break=True)


@dataclass(frozen=True, slots=True)
class ImageAsset:
    """A fetched image registered with the document under a relationship id."""

    source_url: str
    binary_data: bytes
    assigned_filename: str
    relationship_id: str
    width_px: int
    height_px: int
    alignment: str = "left"
    caption: Optional[str] = None
    extension: str = "jpg"
    sequence: int = 0

    @property
    def width_emu(self) -> int:
        return pixels_to_emu(self.width_px)

    @property
    def height_emu(self) -> int:
        return pixels_to_emu(self.height_px)

    @property
    def media_path(self) -> str:
        return f"media/{self.assigned_filename}"


@dataclass(frozen=True, slots=True)
class TextSegment:
    """Block of inline markup plus the attributes of the element that holds it."""

    markup: str
    block_attributes: StyleAttributes = field(default_factory=StyleAttributes)


@dataclass(frozen=True, slots=True)
class FigureSegment:
    """A resolved image occurrence."""

    asset: ImageAsset


Segment = TextSegment | FigureSegment


@dataclass(frozen=True, slots=True)
class Paragraph:
    """Paragraph block; never constructed without at least one run."""

    runs: Tuple[Run, ...]
    attributes: StyleAttributes = field(default_factory=StyleAttributes)
    style_id: Optional[str] = None
    outline_level: Optional[int] = None

    def __post_init__(self) -> None:
        if not self.runs:
            object.__setattr__(self, "runs", (Run(text=""),))

    @property
    def text(self) -> str:
        return "".join("\n" if run.is_line_break else run.text for run in self.runs)


@dataclass(frozen=True, slots=True)
class ImageBlock:
    """Inline picture in its own paragraph."""

    asset: ImageAsset


@dataclass(frozen=True, slots=True)
class PageBreak:
    """Hard page break between chapters."""


BlockElement = Paragraph | ImageBlock | PageBreak

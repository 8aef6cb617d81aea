"""Render the document plan into a standalone HTML preview."""
from __future__ import annotations

import html
from pathlib import Path
from typing import Iterable

from chapter_docx.model.document_model import DocumentPlan
from chapter_docx.model.elements import BlockElement, ImageBlock, PageBreak, Paragraph, Run
from chapter_docx.renderer.utils import css_declarations, image_data_uri, style_to_css


class HtmlRenderer:
    """Produce a flowing HTML representation of the block sequence."""

    def __init__(self, output_path: Path) -> None:
        self._output_path = output_path

    def render(self, plan: DocumentPlan) -> None:
        html_text = self._build_html(plan.blocks)
        self._output_path.write_text(html_text, encoding="utf-8")

    def _build_html(self, blocks: Iterable[BlockElement]) -> str:
        elements = [self._block_to_html(block) for block in blocks]
        body = "\n".join(elements)
        return f"""<!DOCTYPE html>
<html lang=\"en\">
<head>
  <meta charset=\"utf-8\" />
  <title>Chapter Preview</title>
  <style>
    body {{ max-width: 42em; margin: 2em auto; font-family: Calibri, sans-serif; font-size: 11pt; }}
    p {{ margin: 0; white-space: pre-wrap; }}
    .page-break {{ border: 0; border-top: 1px dashed #999; margin: 2em 0; }}
  </style>
</head>
<body>
{body}
</body>
</html>
"""

    def _block_to_html(self, block: BlockElement) -> str:
        if isinstance(block, PageBreak):
            return "  <hr class=\"page-break\" />"
        if isinstance(block, ImageBlock):
            asset = block.asset
            style = css_declarations({"text-align": asset.alignment, "margin-bottom": "6pt"})
            return (
                f"  <p style=\"{style}\"><img src=\"{image_data_uri(asset)}\" "
                f"width=\"{asset.width_px}\" height=\"{asset.height_px}\" "
                f"alt=\"{html.escape(asset.caption or '')}\" /></p>"
            )
        if isinstance(block, Paragraph):
            tag = "h1" if block.outline_level is not None else "p"
            style = css_declarations(style_to_css(block.attributes))
            content = "".join(self._run_to_html(run) for run in block.runs)
            return f"  <{tag} style=\"{style}\">{content}</{tag}>"
        return ""

    @staticmethod
    def _run_to_html(run: Run) -> str:
        if run.is_line_break:
            return "<br />"
        text = html.escape(run.text)
        css = style_to_css(run.attributes)
        if not css:
            return text
        return f"<span style=\"{css_declarations(css)}\">{text}</span>"

"""Entry-point for the chapter CSV to DOCX pipeline."""
from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Optional

from chapter_docx.model.diagnostics import DiagnosticReport
from chapter_docx.model.document_model import DocumentPlan
from chapter_docx.model.options import DEFAULT_USER_AGENT, ConversionOptions
from chapter_docx.parser.assembler import DocumentAssembler
from chapter_docx.parser.csv_loader import ChapterCsvReader
from chapter_docx.parser.html_dir_loader import ChapterDirectoryReader
from chapter_docx.parser.image_fetcher import ImageFetcher
from chapter_docx.renderer.docx_writer import DocxWriter
from chapter_docx.renderer.html_renderer import HtmlRenderer
from chapter_docx.utils.debug import DebugDumper
from chapter_docx.utils.logger import get_logger, set_verbosity

LOGGER = get_logger(__name__)


def build_document_plan(
    csv_path: Path,
    options: Optional[ConversionOptions] = None,
    fetcher: Optional[ImageFetcher] = None,
) -> DocumentPlan:
    """Read chapter records and compile them into a block sequence plus assets.

    ``csv_path`` may also be a directory of ``.html`` files, one chapter each.
    """
    diagnostics = DiagnosticReport()
    if Path(csv_path).is_dir():
        records = ChapterDirectoryReader(csv_path).read(diagnostics)
    else:
        records = ChapterCsvReader(csv_path).read(diagnostics)
    assembler = DocumentAssembler(options, fetcher=fetcher)
    try:
        return assembler.assemble(records, diagnostics)
    finally:
        assembler.close()


def render_outputs(
    plan: DocumentPlan,
    output_path: Path,
    *,
    options: Optional[ConversionOptions] = None,
    html: bool = False,
    debug_dir: Optional[Path] = None,
) -> Path:
    """Write the .docx package and any requested side outputs."""
    DocxWriter(output_path, options, title=output_path.stem).write(plan)
    if html:
        HtmlRenderer(output_path.with_suffix(".html")).render(plan)
    if debug_dir is not None:
        DebugDumper(debug_dir).dump(plan)
    return output_path


def summarize(plan: DocumentPlan) -> str:
    counts = Counter(diagnostic.kind.value for diagnostic in plan.diagnostics)
    lines = [
        f"Chapters: {plan.chapter_count}",
        f"Images:   {len(plan.assets)}",
        f"Issues:   {len(plan.diagnostics)}",
    ]
    lines.extend(f"  {kind}: {count}" for kind, count in sorted(counts.items()))
    return "\n".join(lines)


def main(
    csv_file: str,
    output: Optional[str] = None,
    *,
    options: Optional[ConversionOptions] = None,
    html: bool = False,
    debug_dir: Optional[str] = None,
) -> DocumentPlan:
    """Run the CSV -> document plan -> DOCX pipeline."""
    csv_path = Path(csv_file).resolve()
    if not csv_path.exists():
        raise FileNotFoundError(f"Input not found: {csv_path}")

    LOGGER.info("Building document plan for %s", csv_path.name)
    plan = build_document_plan(csv_path, options)

    if output:
        output_path = Path(output).resolve()
    elif csv_path.is_dir():
        output_path = csv_path.parent / f"{csv_path.name}.docx"
    else:
        output_path = csv_path.with_suffix(".docx")
    LOGGER.info("Rendering outputs into %s", output_path)
    render_outputs(
        plan,
        output_path,
        options=options,
        html=html,
        debug_dir=Path(debug_dir) if debug_dir else None,
    )
    return plan


if __name__ == "__main__":  # pragma: no cover
    import argparse

    parser = argparse.ArgumentParser(description="Convert chapter records (id, title, HTML body) from CSV into a DOCX file")
    parser.add_argument("csv_file", help="Path to the input .csv file, or a directory of .html chapter files")
    parser.add_argument("--output", help="Path of the .docx file to write (default: next to the input)")
    parser.add_argument("--html", action="store_true", help="Write an HTML preview next to the DOCX")
    parser.add_argument("--debug-dir", help="Directory to dump the document plan as JSON")
    parser.add_argument("--timeout", type=float, default=15.0, help="Per-image download timeout in seconds")
    parser.add_argument("--user-agent", default=DEFAULT_USER_AGENT, help="User-Agent header for image downloads")
    parser.add_argument("--no-images", action="store_true", help="Drop images instead of downloading them")
    parser.add_argument("--no-captions", action="store_true", help="Omit figure captions")
    parser.add_argument("--basic-css", action="store_true", help="Honour only text-align and hex colors in inline styles")
    parser.add_argument("--verbose", action="store_true", help="Log per-element decisions")

    args = parser.parse_args()
    set_verbosity(args.verbose)
    cli_options = ConversionOptions(
        fetch_timeout=args.timeout,
        user_agent=args.user_agent,
        images=not args.no_images,
        captions=not args.no_captions,
        rich_css=not args.basic_css,
    )
    result = main(args.csv_file, args.output, options=cli_options, html=args.html, debug_dir=args.debug_dir)
    print(summarize(result))

import sys
from dataclasses import dataclass
from pathlib import Path

from tqdm import tqdm

from idn_area_extractor.config import DEFAULT_LINE_BREAK_THRESHOLD
from idn_area_extractor.pdf_reader import PdfReader
from idn_area_extractor.utils import (
    flatten_page_range,
    resolve_page_range,
    stringify_page_range,
)


@dataclass
class PdfExtractResult:
    num_pages: int
    """Total number of pages in the PDF."""
    pages_extracted: int
    """Number of pages that have been extracted."""
    page_range: str
    """Canonical range of the extracted pages, e.g. '1-3,5'."""
    page_contents: list[str]
    """Text of each extracted page, in page order."""


def extract_rows(text: str, *, trim: bool = False, remove_empty: bool = False) -> list[str]:
    """Split text into rows, optionally trimming them and dropping empty ones."""
    rows = text.split("\n")

    if trim:
        rows = [row.strip() for row in rows]

    if remove_empty:
        rows = [row for row in rows if row != ""]

    return rows


def extract_txt_file_rows(
    path: Path, *, trim: bool = False, remove_empty: bool = False
) -> list[str]:
    """Extract rows from a text file (.txt or .csv)."""
    return extract_rows(
        path.read_text(encoding="utf-8"),
        trim=trim,
        remove_empty=remove_empty,
    )


def extract_from_pdf(
    path: Path,
    page_range: str | None = None,
    *,
    line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD,
    show_progress: bool = False,
) -> PdfExtractResult:
    """
    Extract the text of a PDF, page by page.

    Args:
        path: Path to the PDF file
        page_range: Pages to extract, e.g. '1-2,5,7-10'. All pages when None.
        line_break_threshold: Vertical gap (page units) that starts a new line
        show_progress: Whether to show a progress bar

    Raises:
        InvalidRangeError: If the page range cannot be parsed
        RangeExceededError: If the page range exceeds the document
        PdfReaderError: If the document cannot be read
    """
    reader = PdfReader(path, line_break_threshold=line_break_threshold).load()
    num_pages = reader.num_pages
    intervals = resolve_page_range(page_range, num_pages)
    pages = flatten_page_range(intervals)

    page_contents: list[str] = []
    with tqdm(
        total=len(pages),
        desc="📄 Reading pages",
        colour="green",
        smoothing=0.1,
        disable=not show_progress or not sys.stdout.isatty(),
    ) as pbar:
        for page in pages:
            page_contents.append(reader.page_content_string(page))
            pbar.update(1)

    return PdfExtractResult(
        num_pages=num_pages,
        pages_extracted=len(pages),
        page_range=stringify_page_range(intervals),
        page_contents=page_contents,
    )

"""
Plain-text page reader for PDF documents.

Text is rebuilt from the glyph runs reported by pypdf: runs are concatenated in
document order and a line break is inserted whenever a run sits noticeably lower
on the page than the previous one.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import pypdf
from pypdf.errors import PyPdfError

from idn_area_extractor.config import DEFAULT_LINE_BREAK_THRESHOLD

# Vertical positions are expressed in page units of 16 PDF points
POINTS_PER_PAGE_UNIT = 16.0

RE_WHITESPACE = re.compile(r"\s+")


class PdfReaderError(Exception):
    """Base error for PDF reading."""


class NotLoadedError(PdfReaderError):
    """Raised when the document is used before load() is called."""


class PageNotFoundError(PdfReaderError):
    """Raised when the requested page does not exist."""


@dataclass(frozen=True)
class TextRun:
    """A run of glyphs sharing one vertical position (y grows downwards)."""

    y: float
    text: str


def join_text_runs(
    runs: Iterable[TextRun], threshold: float = DEFAULT_LINE_BREAK_THRESHOLD
) -> str:
    """
    Join text runs into newline separated lines.

    A new line starts when a run's y is more than `threshold` below the previous run.
    Each run is percent-decoded and its whitespace collapsed; empty runs are skipped
    but still move the reference position.
    """
    lines: list[list[str]] = [[]]
    prev_y: float | None = None

    for run in runs:
        if prev_y is not None and run.y - prev_y > threshold:
            lines.append([])

        phrase = RE_WHITESPACE.sub(" ", unquote(run.text)).strip()
        if phrase:
            lines[-1].append(phrase)

        prev_y = run.y

    return "\n".join(" ".join(words) for words in lines) + "\n"


class PdfReader:
    """
    Read page contents of a PDF as plain text.

    Usage:
        reader = PdfReader(path).load()
        for page in range(1, reader.num_pages + 1):
            text = reader.page_content_string(page)
    """

    def __init__(
        self, path: Path, *, line_break_threshold: float = DEFAULT_LINE_BREAK_THRESHOLD
    ) -> None:
        self.path = path
        self.line_break_threshold = line_break_threshold
        self._document: pypdf.PdfReader | None = None

    def load(self) -> "PdfReader":
        try:
            self._document = pypdf.PdfReader(str(self.path))
        except (PyPdfError, OSError) as e:
            raise PdfReaderError(f"Failed to read PDF {self.path}: {e}") from e
        return self

    @property
    def document(self) -> pypdf.PdfReader:
        if self._document is None:
            raise NotLoadedError("PDF not loaded")
        return self._document

    @property
    def num_pages(self) -> int:
        return len(self.document.pages)

    def text_runs(self, page_number: int = 1) -> list[TextRun]:
        """
        Collect the glyph runs of a page, in document order.

        Args:
            page_number: 1-based page number
        """
        document = self.document
        if not 1 <= page_number <= len(document.pages):
            raise PageNotFoundError(f"Page {page_number} not found")

        page = document.pages[page_number - 1]
        page_height = float(page.mediabox.height)
        runs: list[TextRun] = []

        def visitor(text: str, cm: list[Any], tm: list[Any], *_: Any) -> None:
            if not text:
                return
            # Text space origin mapped through the current transformation matrix
            y = float(tm[4]) * float(cm[1]) + float(tm[5]) * float(cm[3]) + float(cm[5])
            runs.append(TextRun(y=(page_height - y) / POINTS_PER_PAGE_UNIT, text=text))

        page.extract_text(visitor_text=visitor)
        return runs

    def page_content_string(self, page_number: int = 1) -> str:
        """Return the text of a page (1-based), one line per row, ending with a newline."""
        return join_text_runs(self.text_runs(page_number), self.line_break_threshold)

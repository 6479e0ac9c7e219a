from pathlib import Path
from types import SimpleNamespace
from typing import Any, Callable

import pytest

from idn_area_extractor import pdf_reader as pdf_reader_mod

DATA_DIR = Path(__file__).parent / "data"
PAGE_HEIGHT = 800.0


class StubPage:
    """Mimic a pypdf page: report (text, y) runs to the text visitor, y in PDF points."""

    def __init__(self, runs: list[tuple[str, float]], height: float = PAGE_HEIGHT) -> None:
        self.runs = runs
        self.mediabox = SimpleNamespace(height=height)

    def extract_text(self, visitor_text: Callable[..., None] | None = None) -> str:
        for text, y in self.runs:
            if visitor_text is not None:
                visitor_text(text, [1, 0, 0, 1, 0, 0], [1, 0, 0, 1, 72, y], {}, 10)
        return " ".join(text for text, _ in self.runs)


class StubDocument:
    def __init__(self, pages: list[StubPage]) -> None:
        self.pages = pages


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def regency_pages() -> list[StubPage]:
    """Two pages of a regency table; each text line is 16 points below the previous."""
    return [
        StubPage(
            [
                ("NO. NAMA KABUPATEN/KOTA", 700),
                ("KODE", 700),
                ("KAB. ACEH TENGGARA", 684),
                ("16   4.179,1232", 684),
                ("Kutacane 11.02 227.9210 385", 684),
                ("KAB.%20ACEH TIMUR 24 6.040,60 Idi Rayeuk", 668),
                ("11.03 419.594 513", 668),
            ]
        ),
        StubPage(
            [
                ("KOTA BANDA ACEH 9 61,36 Banda Aceh", 700),
                ("11.71 252.899 90", 684),
            ]
        ),
    ]


@pytest.fixture
def stub_pdf(
    monkeypatch: pytest.MonkeyPatch, regency_pages: list[StubPage]
) -> Callable[[list[StubPage]], None]:
    """Replace pypdf.PdfReader with a stub document; returns a setter for other pages."""
    state: dict[str, list[StubPage]] = {"pages": regency_pages}

    def _reader(*_: Any, **__: Any) -> StubDocument:
        return StubDocument(state["pages"])

    monkeypatch.setattr(pdf_reader_mod.pypdf, "PdfReader", _reader)

    def _set_pages(pages: list[StubPage]) -> None:
        state["pages"] = pages

    return _set_pages


@pytest.fixture
def sample_pdf_file(tmp_path: Path) -> Path:
    """A file with a .pdf suffix; its content is never parsed when stub_pdf is used."""
    pdf_path = tmp_path / "regencies-11.pdf"
    pdf_path.write_bytes(b"%PDF-1.4\n%fake")
    return pdf_path

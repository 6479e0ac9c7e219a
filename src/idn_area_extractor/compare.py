"""
Comparison of an extracted CSV against the reference dataset.

The result is a unified diff: lines removed from the reference start with '-',
lines only present in the extraction start with '+'.
"""

import difflib
from dataclasses import dataclass
from pathlib import Path

from idn_area_extractor.utils import PROVINCE_CODE_LENGTH


@dataclass
class DiffSummary:
    added: int = 0
    removed: int = 0

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)


def _read_lines(path: Path) -> list[str]:
    # utf-8-sig drops a BOM on the header line
    return path.read_text(encoding="utf-8-sig").splitlines()


def _row_code(line: str) -> str:
    return line.split(",", 1)[0].strip('"')


def diff_against_reference(
    extracted_csv: Path, reference_csv: Path, *, restrict: bool = True
) -> list[str]:
    """
    Unified diff of the reference CSV versus the extracted CSV.

    Args:
        extracted_csv: CSV produced by the extraction (header on the first line)
        reference_csv: Reference CSV of the same entity
        restrict: Keep only reference rows of the provinces present in the extraction
    """
    extracted = _read_lines(extracted_csv)
    reference = _read_lines(reference_csv)

    if restrict and reference:
        provinces = {_row_code(line)[:PROVINCE_CODE_LENGTH] for line in extracted[1:]}
        reference = reference[:1] + [
            line
            for line in reference[1:]
            if _row_code(line)[:PROVINCE_CODE_LENGTH] in provinces
        ]

    return list(
        difflib.unified_diff(
            reference,
            extracted,
            fromfile=f"reference/{reference_csv.name}",
            tofile=f"extracted/{extracted_csv.name}",
            lineterm="",
        )
    )


def diff_summary(diff_lines: list[str]) -> DiffSummary:
    summary = DiffSummary()
    for line in diff_lines:
        if line.startswith(("+++", "---")):
            continue
        if line.startswith("+"):
            summary.added += 1
        elif line.startswith("-"):
            summary.removed += 1
    return summary


def write_diff(diff_lines: list[str], path: Path) -> None:
    with path.open("w", encoding="utf-8", newline="\n") as f:
        for line in diff_lines:
            f.write(f"{line}\n")

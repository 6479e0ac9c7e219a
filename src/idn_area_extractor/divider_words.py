"""
Divider words: keywords of boundary-change and legal commentary.

In the source documents an area name is often followed, on the same row, by a
remark such as "Pemekaran dari ..." or "sesuai Qanun ...". Matchers use these
words to know where the proper name ends.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from functools import cache
from pathlib import Path

import regex

DIVIDER_WORDS_PATH = Path(__file__).parent / "data" / "divider-words.csv"


@dataclass(frozen=True)
class DividerWord:
    word: str
    typos: tuple[str, ...] = ()


@cache
def load_divider_words(path: Path = DIVIDER_WORDS_PATH) -> tuple[DividerWord, ...]:
    """Parse the divider words list, one `canonical,typo1,typo2,...` entry per line."""
    entries: list[DividerWord] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        parts = [part.strip().lower() for part in line.split(",")]
        if not parts[0]:
            continue
        entries.append(DividerWord(word=parts[0], typos=tuple(p for p in parts[1:] if p)))
    return tuple(entries)


def divider_words(
    *, with_typos: bool = False, excluded_words: Iterable[str] = ()
) -> frozenset[str]:
    """
    Return the divider words.

    Args:
        with_typos: Include the known misspellings of each word
        excluded_words: Words removed from the result (exact match)
    """
    words: set[str] = set()
    for entry in load_divider_words():
        words.add(entry.word)
        if with_typos:
            words.update(entry.typos)
    return frozenset(words.difference(excluded_words))


def divider_words_pattern(words: Iterable[str]) -> str:
    """Render words as a regex alternation, longest first."""
    return "|".join(regex.escape(word) for word in sorted(words, key=lambda w: (-len(w), w)))

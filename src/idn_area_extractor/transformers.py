"""
Row preparation and transformation into area records.

Some records span several physical rows of the source document (a long name
wrapped into the next line). Each entity may define a merger that reassembles
those rows before matching.
"""

from collections.abc import Callable, Iterable
from functools import partial
from typing import Any, Generic, TypeVar

import regex

from idn_area_extractor.config import (
    DEFAULT_REGEX_TIMEOUT,
    DEFAULT_VILLAGE_COLUMN_WIDTH,
    Entity,
)
from idn_area_extractor.divider_words import divider_words, divider_words_pattern
from idn_area_extractor.matchers import (
    DistrictMatcher,
    IslandMatcher,
    Matcher,
    RegencyMatcher,
    VillageMatcher,
)
from idn_area_extractor.records import District, Island, Regency, Village
from idn_area_extractor.utils import regex_search

R = TypeVar("R", Regency, District, Island, Village)

RowMerger = Callable[[Iterable[str]], list[str]]

# Plural tags are accepted on the command line as well
ENTITY_ALIASES: dict[str, Entity] = {
    "regencies": "regency",
    "districts": "district",
    "islands": "island",
    "villages": "village",
}

RE_REGENCY_ROW_START = regex.compile(r"^((?:KAB\.?|KOTA)\s[A-Z. ]+)\s", regex.IGNORECASE)


# =========================
# Row mergers
# =========================


def merge_regency_rows(
    rows: Iterable[str], *, timeout: float = DEFAULT_REGEX_TIMEOUT
) -> list[str]:
    """
    A row starting with 'KAB.'/'KOTA' and a name opens a record; any other row is
    appended to the last opened record. Rows before the first record are dropped.
    """
    merged: list[str] = []

    for row in rows:
        if regex_search(RE_REGENCY_ROW_START, row, timeout=timeout):
            merged.append(row)
        elif merged:
            merged[-1] = f"{merged[-1]} {row}"

    return merged


def _village_fragment_pattern() -> regex.Pattern:
    dws = divider_words_pattern(divider_words(with_typos=True))
    return regex.compile(rf"^(?!(?:{dws})\b)([a-z.'()/\- ]+?)$", regex.IGNORECASE)


def merge_village_rows(
    rows: Iterable[str],
    *,
    column_width: int = DEFAULT_VILLAGE_COLUMN_WIDTH,
    timeout: float = DEFAULT_REGEX_TIMEOUT,
) -> list[str]:
    """
    A short row made only of name characters, not starting with a divider word, is
    the rest of the previous village name and is appended to it. Rows longer than
    the name column never are.
    """
    fragment_pattern = _village_fragment_pattern()
    merged: list[str] = []

    for row in rows:
        is_fragment = len(row) <= column_width and regex_search(
            fragment_pattern, row, timeout=timeout
        )

        if not is_fragment:
            merged.append(row)
        elif merged:
            merged[-1] = f"{merged[-1]} {row}"

    return merged


# =========================
# Transformer
# =========================


class Transformer(Generic[R]):
    """Drive prepare -> match -> sort over the rows of one entity."""

    def __init__(self, matcher: Matcher[R], merger: RowMerger | None = None) -> None:
        self.matcher = matcher
        self.merger = merger

    @property
    def headers(self) -> tuple[str, ...]:
        return self.matcher.record_type.csv_headers

    def prepare(self, rows: Iterable[str]) -> list[str]:
        if self.merger is None:
            return list(rows)
        return self.merger(rows)

    def transform(self, row: str) -> R | None:
        return self.matcher.parse(row)

    def transform_many(self, rows: Iterable[str]) -> list[R]:
        records = [self.transform(row) for row in self.prepare(rows)]
        return sorted(
            (record for record in records if record is not None),
            key=lambda record: record.code,
        )

    def to_csv_rows(self, records: Iterable[R]) -> list[list[str]]:
        return [record.to_csv_row() for record in records]


def _regency_transformer(timeout: float, column_width: int) -> Transformer[Regency]:
    return Transformer(
        RegencyMatcher(timeout=timeout),
        partial(merge_regency_rows, timeout=timeout),
    )


def _district_transformer(timeout: float, column_width: int) -> Transformer[District]:
    return Transformer(DistrictMatcher(timeout=timeout))


def _island_transformer(timeout: float, column_width: int) -> Transformer[Island]:
    return Transformer(IslandMatcher(timeout=timeout))


def _village_transformer(timeout: float, column_width: int) -> Transformer[Village]:
    return Transformer(
        VillageMatcher(timeout=timeout),
        partial(merge_village_rows, column_width=column_width, timeout=timeout),
    )


TRANSFORMER_FACTORIES: dict[Entity, Callable[[float, int], Transformer[Any]]] = {
    "regency": _regency_transformer,
    "district": _district_transformer,
    "island": _island_transformer,
    "village": _village_transformer,
}


def resolve_entity(value: str) -> Entity | None:
    """Return the entity tag for 'regency' or 'regencies' (any case); None if unknown."""
    tag = value.strip().lower()
    if tag in TRANSFORMER_FACTORIES:
        return tag  # type: ignore[return-value]
    return ENTITY_ALIASES.get(tag)


def get_transformer(
    entity: Entity,
    *,
    timeout: float = DEFAULT_REGEX_TIMEOUT,
    column_width: int = DEFAULT_VILLAGE_COLUMN_WIDTH,
) -> Transformer[Any]:
    try:
        factory = TRANSFORMER_FACTORIES[entity]
    except KeyError:
        raise ValueError(f"Unknown entity: {entity}") from None
    return factory(timeout, column_width)

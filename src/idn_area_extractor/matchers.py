from abc import ABC, abstractmethod
from typing import Generic, TypeVar

import regex

from idn_area_extractor.config import DEFAULT_REGEX_TIMEOUT
from idn_area_extractor.divider_words import divider_words, divider_words_pattern
from idn_area_extractor.records import District, Island, Regency, Village
from idn_area_extractor.utils import (
    DISTRICT_CODE_LENGTH,
    PROVINCE_CODE_LENGTH,
    REGENCY_CODE_LENGTH,
    format_coordinate,
    regex_search,
    strip_code,
)

R = TypeVar("R")

# Names in district rows may legitimately contain these words
DISTRICT_NAME_WORDS = ("desa", "nagari")

RE_REGENCY_LABEL = regex.compile(r"KAB\.?\s", regex.IGNORECASE)
# Page numbers glued to the last word of a village name, e.g. 'Datar Luas12'
RE_GLUED_NUMBER_SUFFIX = regex.compile(r"(?<!\s|\d)(\d+?)$")
RE_WHOLE_WORD_BP = regex.compile(r"\bBP\b")
RE_WHOLE_WORD_PPKT = regex.compile(r"\bPPKT\b")


class Matcher(ABC, Generic[R]):
    """
    Base matcher for a single text row:
     - defines the grammar (pattern)
     - turns a match into a record (transform)
    """

    record_type: type[R]
    """Record built by this matcher."""

    def __init__(self, *, timeout: float = DEFAULT_REGEX_TIMEOUT) -> None:
        self.timeout = timeout
        self._pattern: regex.Pattern | None = None

    @abstractmethod
    def _compile(self) -> regex.Pattern:
        """Build the grammar of this matcher."""
        ...

    @abstractmethod
    def _transform(self, match: regex.Match) -> R:
        """Build a record from a successful match."""
        ...

    def pattern(self) -> regex.Pattern:
        if self._pattern is None:
            self._pattern = self._compile()
        return self._pattern

    def match(self, row: str) -> regex.Match | None:
        return regex_search(self.pattern(), row, timeout=self.timeout)

    def transform(self, match: regex.Match | None) -> R | None:
        if match is None:
            return None
        return self._transform(match)

    def parse(self, row: str) -> R | None:
        """Match a row and transform it; None when the row does not match."""
        return self.transform(self.match(row))


class RegencyMatcher(Matcher[Regency]):
    """
    'KAB. ACEH TENGGARA 16 4.179,1232 Kutacane 11.02 227.9210 385'
      -> Regency(code='1102', province_code='11', name='KABUPATEN ACEH TENGGARA')
    """

    record_type = Regency

    def _compile(self) -> regex.Pattern:
        return regex.compile(
            r"^((?:KAB\.?|KOTA)\s[A-Z. ]+)\s.+(\d{2}\.\d{2})\s.+$",
            regex.IGNORECASE,
        )

    def _transform(self, match: regex.Match) -> Regency:
        code = strip_code(match.group(2))
        name = RE_REGENCY_LABEL.sub("KABUPATEN ", match.group(1), count=1)

        return Regency(
            code=code,
            province_code=code[:PROVINCE_CODE_LENGTH],
            name=name.strip().upper(),
        )


class DistrictMatcher(Matcher[District]):
    """
    '11.01.04 Labuhanhaji 23 16 Perubahan nama Kec Labuhan Haji, ...'
      -> District(code='110104', regency_code='1101', name='LABUHANHAJI')

    The name ends right before the trailing counts, at the end of the row or at the
    first divider word.
    """

    record_type = District

    def _compile(self) -> regex.Pattern:
        dws = divider_words_pattern(
            divider_words(with_typos=True, excluded_words=DISTRICT_NAME_WORDS)
        )
        return regex.compile(
            rf"^(\d{{2}}\.\d{{2}}\.\d{{2}})\s(.+?)\s?[\d. ]*(?=$|\s(?:{dws})\b)",
            regex.IGNORECASE,
        )

    def _transform(self, match: regex.Match) -> District:
        code = strip_code(match.group(1))

        return District(
            code=code,
            regency_code=code[:REGENCY_CODE_LENGTH],
            name=match.group(2).strip().upper(),
        )


# Degrees 00-90 / 000-180, minutes 00-60, seconds with optional decimals and an
# optionally doubled closing quote
_LATITUDE = r"(?:[0-8][0-9]|90)°\s?(?:[0-5][0-9]|60)'\s?(?:[0-5][0-9]|60)(?:\.\d*)?\"\"?\s[US]"
_LONGITUDE = (
    r"(?:0\d{2}|1[0-7][0-9]|180)°\s?(?:[0-5][0-9]|60)'\s?(?:[0-5][0-9]|60)(?:\.\d*)?\"\"?\s[BT]"
)


class IslandMatcher(Matcher[Island]):
    """
    '21.71.40322 Pulau Putri 01°12'15.00" U 104°04'41.00" T TBP(PPKT)'
      -> Island(code='217140322', regency_code='2171', name='Pulau Putri',
                coordinate='01°12'15.00" N 104°04'41.00" E',
                is_populated=False, is_outermost_small=True)
    """

    record_type = Island

    def _compile(self) -> regex.Pattern:
        return regex.compile(
            r"(?P<code>\d{2}\.\d{2}\.4\d{4})\s(?P<name>.+)\s"
            rf"(?P<coordinate>{_LATITUDE}\s{_LONGITUDE})\s*(?P<descriptor>\D*)"
        )

    def _transform(self, match: regex.Match) -> Island:
        code = strip_code(match.group("code"))
        descriptor = match.group("descriptor")
        # 'NN.00.4NNNN' islands are not assigned to any regency
        regency_code = "" if code[2:4] == "00" else code[:REGENCY_CODE_LENGTH]

        return Island(
            code=code,
            regency_code=regency_code,
            name=match.group("name").strip(),
            coordinate=format_coordinate(match.group("coordinate")),
            is_populated=RE_WHOLE_WORD_BP.search(descriptor) is not None,
            is_outermost_small=RE_WHOLE_WORD_PPKT.search(descriptor) is not None,
        )


class VillageMatcher(Matcher[Village]):
    """
    '11.01.01.2001 1 Keude Bakongan'
      -> Village(code='1101012001', district_code='110101', name='KEUDE BAKONGAN')

    An ordinal number may sit between the code and the name.
    """

    record_type = Village

    def _compile(self) -> regex.Pattern:
        dws = divider_words_pattern(divider_words(with_typos=True))
        return regex.compile(
            rf"^(\d{{2}}\.\d{{2}}\.\d{{2}}\.\d{{4}})\s*\d*\s*(.+?)(?=$|\s(?:{dws})\b)",
            regex.IGNORECASE,
        )

    def _transform(self, match: regex.Match) -> Village:
        code = strip_code(match.group(1))
        name = RE_GLUED_NUMBER_SUFFIX.sub("", match.group(2).strip())

        return Village(
            code=code,
            district_code=code[:DISTRICT_CODE_LENGTH],
            name=name.strip().upper(),
        )

import re

import regex

from idn_area_extractor.config import DEFAULT_REGEX_TIMEOUT

# =========================
# Code format constants
# =========================

# Dot-free code lengths
PROVINCE_CODE_LENGTH = 2
REGENCY_CODE_LENGTH = 4
DISTRICT_CODE_LENGTH = 6
VILLAGE_CODE_LENGTH = 10


def strip_code(code: str) -> str:
    """'11.01.02' -> '110102'"""
    return code.replace(".", "")


# =========================
# Bounded regex matching
# =========================


def regex_search(
    pattern: regex.Pattern, text: str, *, timeout: float = DEFAULT_REGEX_TIMEOUT
) -> regex.Match | None:
    """
    Return the first match of `pattern` in `text`, or None.

    Matching is abandoned after `timeout` seconds and reported as no match, so a
    pathological row costs at most the timeout and never aborts the pipeline.
    """
    try:
        return pattern.search(text, timeout=timeout)
    except TimeoutError:
        return None


# =========================
# Page range handling
# =========================


class PageRangeError(ValueError):
    """Base error for page range expressions."""


class InvalidRangeError(PageRangeError):
    """The page range expression cannot be parsed."""


class RangeExceededError(PageRangeError):
    """The page range references pages outside the document."""


RE_PAGE_RANGE = re.compile(r"^(\d+(-\d+)?)(,(\d+(-\d+)?))*$")


def validate_page_range(page_range: str) -> bool:
    return bool(RE_PAGE_RANGE.match(page_range))


def parse_page_range(page_range: str) -> list[tuple[int, int]]:
    """
    Parse '1-3,5,4,9-10' into sorted, merged inclusive intervals: [(1, 5), (9, 10)].

    Raises:
        InvalidRangeError: unbounded intervals ('1-', '-1'), reversed intervals ('5-3'),
            empty segments ('1,'), whitespace or any non-numeric token.
    """
    if not page_range:
        raise InvalidRangeError("Page range must not be empty")

    intervals: list[tuple[int, int]] = []
    for part in page_range.split(","):
        bounds = part.split("-")
        if len(bounds) > 2:
            raise InvalidRangeError(f"Invalid page range segment: '{part}'")
        if len(bounds) == 2 and (not bounds[0] or not bounds[1]):
            raise InvalidRangeError(f"Unbounded page range segment: '{part}'")
        if not all(bound.isascii() and bound.isdigit() for bound in bounds):
            raise InvalidRangeError(f"Invalid page range segment: '{part}'")

        start, end = int(bounds[0]), int(bounds[-1])
        if start > end:
            raise InvalidRangeError(f"Page range start is greater than its end: '{part}'")
        intervals.append((start, end))

    intervals.sort()
    merged: list[tuple[int, int]] = [intervals[0]]
    for start, end in intervals[1:]:
        last_start, last_end = merged[-1]
        if start <= last_end + 1:
            merged[-1] = (last_start, max(last_end, end))
        else:
            merged.append((start, end))
    return merged


def stringify_page_range(intervals: list[tuple[int, int]]) -> str:
    return ",".join(str(start) if start == end else f"{start}-{end}" for start, end in intervals)


def resolve_page_range(page_range: str | None, total_pages: int) -> list[tuple[int, int]]:
    """
    Resolve a page range against a document's page count.

    A missing range means every page. Returns merged intervals fully contained in
    [1, total_pages].

    Raises:
        InvalidRangeError: the expression cannot be parsed
        RangeExceededError: a page falls outside [1, total_pages]
    """
    if page_range is None:
        if total_pages < 1:
            return []
        return [(1, total_pages)]

    intervals = parse_page_range(page_range)
    if intervals[0][0] < 1 or intervals[-1][1] > total_pages:
        raise RangeExceededError(
            f"Page range '{page_range}' exceeds the expected range 1-{total_pages}"
        )
    return intervals


def flatten_page_range(intervals: list[tuple[int, int]]) -> list[int]:
    return [page for start, end in intervals for page in range(start, end + 1)]


def format_duration(duration: float) -> str:
    hours, remainder = divmod(duration, 3600)
    minutes, seconds = divmod(remainder, 60)
    if hours:
        return f"{int(hours)}h {int(minutes)}m {int(seconds)}s"
    if minutes:
        return f"{int(minutes)}m {int(seconds)}s"
    return f"{seconds:.2f}s"


# =========================
# Coordinate normalization
# =========================
# Public API:
#   format_coordinate(coordinate) -> str
# Output: 'DD°MM\'SS.SS" N DDD°MM\'SS.SS" E'

# Map Indonesian hemispheres to N/S/E/W
_HEMI_MAP = {
    "N": "N",
    "S": "S",
    "E": "E",
    "W": "W",
    "U": "N",
    "LU": "N",
    "T": "E",
    "BT": "E",
    "LS": "S",
    "B": "W",
    "BB": "W",
}
_HEMI_TOKEN_RE = re.compile(r"\b(LU|LS|BT|BB|[NSEWUTB])\b", re.IGNORECASE)


def _normalize_quotes(s: str) -> str:
    # Smart quotes / primes to ASCII
    s = (
        s.replace("’", "'")
        .replace("‘", "'")
        .replace("′", "'")
        .replace("“", '"')
        .replace("”", '"')
        .replace("″", '"')
    )
    # Collapse duplicate quotes:  "" -> ",  '' -> '
    s = re.sub(r'"{2,}', '"', s)
    s = re.sub(r"'{2,}", "'", s)
    return s


def _normalize_spaces(s: str) -> str:
    return re.sub(r"\s+", " ", s).strip()


def _map_hemispheres(s: str) -> str:
    def repl(m: re.Match[str]) -> str:
        tok = m.group(1).upper()
        return _HEMI_MAP.get(tok, tok)

    return _HEMI_TOKEN_RE.sub(repl, s)


def _format_seconds_two_decimals(sec: str) -> str:
    # "3" -> "3.00", "3.4" -> "3.40", "3.444" -> "3.44"
    if "." in sec:
        whole, frac = sec.split(".", 1)
    else:
        whole, frac = sec, ""
    frac = (frac + "00")[:2]
    return f"{whole}.{frac}"


_COORD_RE = re.compile(
    r"""
    (?P<deg>\d{1,3})\s*°\s*
    (?P<min>\d{1,2})\s*'\s*
    (?P<sec>\d{1,2}(?:\.\d*)?)\s*"?\s*        # seconds; closing quote optional
    (?P<hemi>[NSEW])
    """,
    re.VERBOSE,
)


def format_coordinate(coordinate: str) -> str:
    """
    Canonicalize a DMS coordinate pair to 'DD°MM'SS.ss" N DDD°MM'SS.ss" E'.

    Hemisphere letters are translated (U -> N, T -> E, B -> W), quotes and whitespace
    normalized, and seconds padded or truncated to two decimals. Text that does not
    hold a latitude and a longitude is returned with only the normalization applied.
    """
    if not coordinate or not coordinate.strip():
        return ""

    s = _normalize_spaces(_map_hemispheres(_normalize_quotes(coordinate)))

    lat: str | None = None
    lon: str | None = None

    for m in _COORD_RE.finditer(s):
        hemi = m.group("hemi")
        secs = _format_seconds_two_decimals(m.group("sec"))
        canonical = f"{m.group('deg')}°{m.group('min')}'{secs}\" {hemi}"

        if hemi in ("N", "S") and lat is None:
            lat = canonical
        elif hemi in ("E", "W") and lon is None:
            lon = canonical

    if lat and lon:
        return f"{lat} {lon}"

    return s

"""
Field normalization helpers shared by every transform strategy.

Dates arrive in whatever layout a client's system exports; `date_format` on
the client profile describes it either as a strftime pattern ("%Y%m%d%H%M")
or in the legacy token form the client configurations were written in
("yyyyMMddHHmm", "M/d/yyyy h:mm tt").
"""

import re
from datetime import datetime
from functools import lru_cache
from typing import NamedTuple

from appointment_etl.core.errors import DateFormatError

_LEGACY_TOKENS = {
    "yyyy": "%Y",
    "yy": "%y",
    "MM": "%m",
    "dd": "%d",
    "HH": "%H",
    "hh": "%I",
    "mm": "%M",
    "ss": "%S",
    "fff": "%f",
    "tt": "%p",
    "M": "%m",
    "d": "%d",
    "H": "%H",
    "h": "%I",
    "m": "%M",
    "s": "%S",
}
_LEGACY_TOKEN_RE = re.compile("|".join(sorted(_LEGACY_TOKENS, key=len, reverse=True)))

# Two-digit fields so every directive renders at its widest
_WIDTH_SAMPLE = datetime(2000, 10, 10, 10, 10, 10)

DATE_SEPARATORS = ("-", "/")


class DateFormat(NamedTuple):
    """A client date format resolved for parsing."""

    source: str
    strptime: str
    width: int


@lru_cache(maxsize=64)
def resolve_date_format(date_format: str) -> DateFormat:
    """
    Resolve a client date format into a strptime pattern and its rendered width.

    Args:
        date_format: strftime pattern or legacy token pattern

    Returns:
        DateFormat with the pattern to parse with and the expected input width
    """
    if "%" in date_format:
        pattern = date_format
    else:
        # Single-letter tokens accept one or two digits, as strptime does
        pattern = _LEGACY_TOKEN_RE.sub(lambda m: _LEGACY_TOKENS[m.group(0)], date_format)
    return DateFormat(date_format, pattern, len(_WIDTH_SAMPLE.strftime(pattern)))


def _trim_to_format(raw: str, fmt: DateFormat) -> str:
    value = raw
    # Compact stamps often carry a time or fraction suffix the format does not cover
    if len(value) > fmt.width and not any(sep in value for sep in DATE_SEPARATORS):
        value = value[:fmt.width]
    if "." in value:
        value = value[:value.index(".")]
    return value


def parse_client_datetime(raw: str, date_format: str) -> datetime:
    """
    Parse a raw client date/time value against the client format.

    Raises:
        DateFormatError: If the trimmed value does not match the format
    """
    fmt = resolve_date_format(date_format)
    value = _trim_to_format(raw, fmt)
    try:
        return datetime.strptime(value, fmt.strptime)
    except ValueError as e:
        raise DateFormatError(raw, date_format) from e


def date_normalize(raw: str, date_format: str) -> str:
    """Return `raw` as MMDDYYYY; empty input stays empty."""
    if not raw:
        return raw
    parsed = parse_client_datetime(raw, date_format)
    return f"{parsed.month:02d}{parsed.day:02d}{parsed.year:04d}"


def time_normalize(raw: str, date_format: str) -> str:
    """Return the time part of `raw` as h:mmAM/PM (e.g. 9:05AM); empty stays empty."""
    if not raw:
        return raw
    parsed = parse_client_datetime(raw, date_format)
    hour = parsed.hour % 12 or 12
    suffix = "AM" if parsed.hour < 12 else "PM"
    return f"{hour}:{parsed.minute:02d}{suffix}"


def language_normalize(raw: str) -> str:
    """Keep at most the first three characters of a language code."""
    if not raw:
        return ""
    return raw[:3] if len(raw) > 3 else raw


def phone_normalize(primary: str, secondary: str) -> str:
    """
    Strip hyphens and fall back to the secondary phone when the primary is short.

    The result is not guaranteed to be ten digits; the validator enforces that.
    """
    stripped_primary = primary.strip().replace("-", "")
    if not stripped_primary or len(stripped_primary) < 10:
        return secondary.strip().replace("-", "")
    return stripped_primary


def split_bracketed(value: str) -> tuple[str, str | None]:
    """
    Split "Description [code]" into ("Description", "code").

    Returns (value stripped, None) when there is no bracket.
    """
    parts = value.split("[", 1)
    description = parts[0].strip()
    if len(parts) == 1:
        return description, None
    return description, parts[1].replace("]", "").strip()


def split_full_name(name: str) -> tuple[str, str]:
    """Split "First Rest Of Name" on the first space into (first, last)."""
    if not name:
        return "", ""
    first, _, rest = name.partition(" ")
    return first.strip(), rest.strip()


def split_last_first(name: str) -> tuple[str, str] | None:
    """Split "Last, First" into (last, first); None when there is no comma."""
    if "," not in name:
        return None
    last, _, first = name.partition(",")
    return last.strip(), first.strip()

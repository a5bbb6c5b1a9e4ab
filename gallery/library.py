"""
Library store: load/save the watch list and reconcile entries into it.

The library is a JSON object with three lists (watching, watched, wishlist).
Every entry is keyed by `id` and lives in exactly one list, the one named by
its `status`. Watch dates are ISO `YYYY-MM-DD` strings kept newest first.
"""

import math
import re
import sys
from datetime import datetime
from pathlib import Path

from dateutil import parser as date_parser

from gallery.utils import load_json, log, save_json


STATUSES = ("watching", "watched", "wishlist")
MEDIA_TYPES = ("movie", "tv", "web-video")
DEFAULT_STATUS = "watching"
DEFAULT_MEDIA_TYPE = "movie"

RATING_MIN = 0
RATING_MAX = 10

# Missing month/day ("2024", "2024-03") fill in from January 1st.
# Parsing against a second default year detects input without a year.
_DATE_DEFAULT = datetime(2000, 1, 1)
_DATE_DEFAULT_ALT = datetime(2004, 1, 1)

# Numeric date at the start of a value ("2024-10-01 20:15:00", "2024/10/1")
DATE_PREFIX = re.compile(r"^\d{4}[-/.]\d{1,2}[-/.]\d{1,2}")
_DATE_WORD = re.compile(r"^\d{4}[-/.]\d{1,2}[-/.]\d{1,2}$")

STATUS_ALIASES = {
    "1": "watching",
    "正在看": "watching",
    "watching": "watching",
    "2": "watched",
    "已看过": "watched",
    "已看完": "watched",
    "watched": "watched",
    "3": "wishlist",
    "想看": "wishlist",
    "wishlist": "wishlist",
    "planned": "wishlist",
}


# ---------------------------------------------------------------------------
# Field normalization
# ---------------------------------------------------------------------------

def normalize_date(value) -> str | None:
    """Reduce any parseable date string to `YYYY-MM-DD`, or None.

    The calendar date is taken as written; no timezone conversion happens.
    Values without a year ("5", "Oct 1") are dropped.
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        parsed = date_parser.parse(text, default=_DATE_DEFAULT)
        check = date_parser.parse(text, default=_DATE_DEFAULT_ALT)
    except (ValueError, OverflowError):
        return None
    if parsed.year != check.year:
        return None
    return parsed.date().isoformat()


def parse_watch_dates(raw: str | None) -> list[str]:
    """Parse a list of dates, newest first.

    Commas separate dates. Within a part, whitespace separates numeric dates
    ("2024-10-01 2025-01-12"); anything else is read as one date ("Oct 1 2024").
    """
    if not raw:
        return []
    dates = []
    for part in re.split(r"[,，;；]", raw):
        words = part.split()
        if not words:
            continue
        if all(_DATE_WORD.match(w) for w in words):
            dates.extend(normalize_date(w) for w in words)
            continue
        whole = normalize_date(part)
        if whole:
            dates.append(whole)
        else:
            dates.extend(normalize_date(w) for w in words if _DATE_WORD.match(w))
    return merge_dates(dates)


def parse_rating(value, scale: float = 1):
    """Parse a rating onto the 0-10 scale. Returns None when unusable.

    `scale` converts other scales on the way in (2 for five-star ratings).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        numeric = float(value)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            numeric = float(text)
        except ValueError:
            return None
    numeric *= scale
    if math.isnan(numeric) or not RATING_MIN <= numeric <= RATING_MAX:
        return None
    return int(numeric) if numeric.is_integer() else numeric


def normalize_status(value: str | None) -> str | None:
    """Map user input (1/2/3, English or Chinese labels) to a status."""
    if not value:
        return None
    return STATUS_ALIASES.get(value.strip().lower())


# ---------------------------------------------------------------------------
# Watch dates
# ---------------------------------------------------------------------------

def extract_watch_dates(entry: dict | None) -> list[str]:
    """Watch dates of an entry, honouring the legacy single `watchDate` field."""
    if not entry:
        return []
    dates = entry.get("watchDates")
    if isinstance(dates, list):
        return dates
    if entry.get("watchDate"):
        return [entry["watchDate"]]
    return []


def merge_dates(*date_lists) -> list[str]:
    """Deduplicated union of date lists, empties dropped, newest first."""
    dates = {d for dates in date_lists for d in (dates or []) if d}
    return sorted(dates, reverse=True)


def primary_watch_date(entry: dict | None) -> str | None:
    """Most recent watch date of an entry."""
    dates = merge_dates(extract_watch_dates(entry))
    return dates[0] if dates else None


# ---------------------------------------------------------------------------
# Merge / upsert
# ---------------------------------------------------------------------------

def _present(value) -> bool:
    return value is not None and value != ""


def merge_entries(existing: dict | None, incoming: dict) -> dict:
    """Merge an incoming (partial) entry onto an existing one with the same id.

    Scalars prefer the incoming value and fall back to the existing one.
    Watch dates are unioned. Status falls back to existing, then `watching`.
    """
    existing = existing or {}
    merged = dict(existing)

    for key, value in incoming.items():
        if key in ("watchDates", "watchDate"):
            continue
        if _present(value) or key not in merged:
            merged[key] = value

    merged["watchDates"] = merge_dates(
        extract_watch_dates(existing), extract_watch_dates(incoming)
    )
    merged.pop("watchDate", None)

    status = incoming.get("status") or existing.get("status") or DEFAULT_STATUS
    if status not in STATUSES:
        raise ValueError(f"Unknown status: {status!r}")
    merged["status"] = status
    merged["mediaType"] = (
        incoming.get("mediaType") or existing.get("mediaType") or DEFAULT_MEDIA_TYPE
    )
    return merged


def remove_by_id(library: dict, entry_id) -> dict | None:
    """Remove every occurrence of `entry_id` from all lists.

    Returns the removed entry (duplicates folded together), or None.
    """
    key = str(entry_id)
    removed = None
    for status in STATUSES:
        bucket = library.setdefault(status, [])
        kept = []
        for item in bucket:
            if str(item.get("id")) == key:
                removed = item if removed is None else merge_entries(removed, item)
            else:
                kept.append(item)
        bucket[:] = kept
    return removed


def upsert_entry(library: dict, incoming: dict) -> dict:
    """Insert or update an entry, moving it to the list matching its status.

    The merged entry goes to the head of its list and is returned.
    """
    if not _present(incoming.get("id")):
        raise ValueError("Library entries need an id")
    existing = remove_by_id(library, incoming["id"])
    merged = merge_entries(existing, incoming)
    library[merged["status"]].insert(0, merged)
    return merged


def find_entry(library: dict, entry_id) -> tuple[str | None, dict | None]:
    """Locate an entry by id. Returns (status, entry) or (None, None)."""
    key = str(entry_id)
    for status in STATUSES:
        for item in library.get(status, []):
            if str(item.get("id")) == key:
                return status, item
    return None, None


def iter_entries(library: dict):
    """Yield (status, entry) for every entry, list by list."""
    for status in STATUSES:
        for entry in library.get(status, []):
            yield status, entry


# ---------------------------------------------------------------------------
# Ordering
# ---------------------------------------------------------------------------

def sort_watched(entries: list[dict]) -> list[dict]:
    """Latest watch date first; undated entries last; ties by title."""
    by_title = sorted(entries, key=lambda e: (e.get("title") or "").casefold())
    return sorted(by_title, key=lambda e: primary_watch_date(e) or "", reverse=True)


# ---------------------------------------------------------------------------
# Load / save
# ---------------------------------------------------------------------------

def empty_library() -> dict:
    return {status: [] for status in STATUSES}


def load_library(path: Path) -> dict:
    """Load the library, tolerating a missing file and missing lists."""
    data = load_json(path, default={})
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object with watching/watched/wishlist")
    for status in STATUSES:
        if not isinstance(data.get(status), list):
            data[status] = []
    return data


def load_library_or_exit(path: Path) -> dict:
    """load_library for CLI scripts: a malformed file logs an error and exits 1."""
    try:
        return load_library(path)
    except ValueError as e:
        log(f"ERROR: could not read {path}: {e}")
        sys.exit(1)


def save_library(library: dict, path: Path) -> None:
    """Write the library back in canonical form."""
    for _, entry in iter_entries(library):
        if "watchDate" in entry:
            entry["watchDates"] = merge_dates(extract_watch_dates(entry))
            del entry["watchDate"]
    library["watched"] = sort_watched(library["watched"])
    save_json(path, library)


def library_counts(library: dict) -> dict:
    return {status: len(library.get(status, [])) for status in STATUSES}

"""
Douban export adapter.

Reads Douban (豆伴) CSV exports or JSON record lists into generic import
records, writes records back out as CSV, and scrapes a Douban subject page
for its IMDb id when the export lacks one.
"""

import csv
import io
import json
import re
import time
from pathlib import Path

import cloudscraper
from bs4 import BeautifulSoup

from gallery.library import DATE_PREFIX, normalize_date, parse_rating
from gallery.matching import parse_imdb_id, parse_tmdb_id, parse_year
from gallery.utils import log


# Header aliases per record field; the first non-empty alias wins
FIELD_ALIASES = {
    "title": ("标题", "title"),
    "watch_date": ("创建时间", "打分日期", "watch_date", "watchDate"),
    "year": ("年份", "上映日期", "year", "release_date"),
    "imdb_id": ("IMDb", "IMDb链接", "imdb_id", "imdb"),
    "douban_url": ("链接", "条目链接", "douban_link", "douban_url", "url"),
    "note": ("评论", "我的短评", "note"),
    "my_rating": ("我的评分", "个人评分", "rating", "my_rating"),
    "tmdb_id": ("tmdb_id", "TMDB"),
    "media_type": ("media_type", "mediaType"),
}

# Douban rates in stars (1-5); the library uses 0-10
STAR_RATING_HEADERS = {"我的评分", "个人评分"}

CSV_FIELDS = [
    "title",
    "watch_date",
    "year",
    "imdb_id",
    "douban_url",
    "note",
    "rating",
    "tmdb_id",
    "media_type",
]


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def _pick(cells: dict, field: str) -> tuple[str | None, str]:
    for alias in FIELD_ALIASES[field]:
        value = cells.get(alias.casefold())
        if value:
            return alias, value
    return None, ""


def normalize_row(row: dict) -> dict:
    """Map one CSV row (or JSON object) onto an import record."""
    cells = {}
    for key, value in row.items():
        if key is None or value is None or isinstance(value, (list, dict)):
            continue
        cells[str(key).strip().lstrip("\ufeff").casefold()] = str(value).strip()

    _, title = _pick(cells, "title")
    _, watch_raw = _pick(cells, "watch_date")
    _, year = _pick(cells, "year")
    _, imdb = _pick(cells, "imdb_id")
    _, douban_url = _pick(cells, "douban_url")
    _, note = _pick(cells, "note")
    rating_alias, rating_raw = _pick(cells, "my_rating")
    _, tmdb_id = _pick(cells, "tmdb_id")
    _, media_type = _pick(cells, "media_type")

    scale = 2 if rating_alias in STAR_RATING_HEADERS else 1
    # Douban timestamps carry a time of day after the date
    m = DATE_PREFIX.match(watch_raw)
    watch_date = normalize_date(m.group(0) if m else watch_raw)

    return {
        "title": title,
        "watch_date": watch_date or "",
        "year": parse_year(year),
        "imdb_id": parse_imdb_id(imdb),
        "douban_url": douban_url or None,
        "note": note or None,
        "my_rating": parse_rating(rating_raw, scale=scale),
        "tmdb_id": parse_tmdb_id(tmdb_id),
        "media_type": media_type or None,
    }


def parse_csv_text(text: str) -> list[dict]:
    """Parse CSV text (standard quoting) into import records."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    records = []
    for row in reader:
        if not any(isinstance(v, str) and v.strip() for v in row.values()):
            continue
        records.append(normalize_row(row))
    return records


def load_records(path: Path) -> list[dict]:
    """Load import records from a CSV or JSON file. Missing file -> []."""
    path = Path(path)
    if not path.exists():
        log(f"ERROR: File not found: {path}")
        return []
    raw = path.read_text(encoding="utf-8").strip()
    if not raw:
        return []
    if path.suffix.lower() == ".csv":
        return parse_csv_text(raw)
    if raw.lstrip("\ufeff").startswith(("[", "{")):
        try:
            parsed = json.loads(raw.lstrip("\ufeff"))
        except json.JSONDecodeError:
            log("WARNING: JSON parse failed, attempting CSV parsing instead.")
            return parse_csv_text(raw)
        if not isinstance(parsed, list):
            return []
        return [normalize_row(item) for item in parsed if isinstance(item, dict)]
    return parse_csv_text(raw)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def record_to_row(record: dict) -> dict:
    row = {field: record.get(field) for field in CSV_FIELDS}
    row["rating"] = record.get("my_rating")
    return {k: ("" if v is None else v) for k, v in row.items()}


def write_csv(records: list[dict], path: Path) -> None:
    """Write import records as CSV using the English header set."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS, quoting=csv.QUOTE_MINIMAL)
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record))


# ---------------------------------------------------------------------------
# Douban page scraping
# ---------------------------------------------------------------------------

DOUBAN_IMDB_LINK = re.compile(r"https?://(?:www\.)?imdb\.com/title/(tt\d+)", re.IGNORECASE)
DOUBAN_IMDB_TEXT = re.compile(r"IMDb\s*[:：]\s*(tt\d+)", re.IGNORECASE)
USER_AGENT = "Mozilla/5.0 (compatible; MovieGallery-Douban/1.0)"
HIT_DELAY = 0.4
MISS_DELAY = 0.2

# Caches for Douban page lookups (douban_url -> imdb_id)
_imdb_cache: dict[str, str] = {}
_failed_urls: set[str] = set()
_douban_scraper = None


def _get_douban_scraper():
    """Lazy-init a cloudscraper instance for Douban."""
    global _douban_scraper
    if _douban_scraper is None:
        _douban_scraper = cloudscraper.create_scraper(
            browser={"browser": "chrome", "platform": "darwin", "mobile": False}
        )
    return _douban_scraper


def extract_imdb_id(html: str) -> str | None:
    """Find the IMDb id on a Douban subject page."""
    soup = BeautifulSoup(html, "lxml")
    for a in soup.find_all("a", href=True):
        m = DOUBAN_IMDB_LINK.search(a["href"])
        if m:
            return m.group(1)

    info = soup.select_one("#info")
    text = info.get_text(" ") if info else soup.get_text(" ")
    m = DOUBAN_IMDB_TEXT.search(text)
    if m:
        return m.group(1)

    m = DOUBAN_IMDB_LINK.search(html)
    return m.group(1) if m else None


def get_imdb_from_douban(url: str) -> str | None:
    """Scrape a Douban page for its IMDb id. Failures are cached and logged."""
    if not url or url in _failed_urls:
        return None
    if url in _imdb_cache:
        return _imdb_cache[url]

    scraper = _get_douban_scraper()
    try:
        resp = scraper.get(url, headers={"User-Agent": USER_AGENT}, timeout=30)
    except Exception as e:
        log(f"  WARNING: error fetching Douban page {url}: {e}")
        _failed_urls.add(url)
        return None

    if resp.status_code != 200:
        log(f"  WARNING: Douban page request failed ({resp.status_code}): {url}")
        _failed_urls.add(url)
        return None

    imdb_id = extract_imdb_id(resp.text)
    if imdb_id:
        _imdb_cache[url] = imdb_id
        time.sleep(HIT_DELAY)
        return imdb_id

    _failed_urls.add(url)
    time.sleep(MISS_DELAY)
    return None

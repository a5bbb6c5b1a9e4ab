#!/usr/bin/env python3
"""
Convert a Douban export (CSV or JSON) into import records with catalog ids.

For each record: fill a missing IMDb id from the Douban page, then resolve
the TMDB id (direct id, IMDb lookup, or title search). Records that cannot
be resolved are kept with tmdb_id null and counted; they never stop the run.

Usage:
  python gallery/export_douban_json.py [data/douban.csv] [--output=fromdouban.json] [--limit=N]

Output: fromdouban.json
"""

import argparse
import sys

from tqdm import tqdm

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.douban import get_imdb_from_douban, load_records
from gallery.matching import resolve_all
from gallery.tmdb import TMDBClient
from gallery.utils import (
    DEFAULT_CSV_PATH,
    DEFAULT_IMPORT_PATH,
    log,
    resolve_path,
    save_json,
)


def fill_imdb_id(record: dict) -> bool:
    """Scrape the IMDb id for a record that only has a Douban URL."""
    if record.get("imdb_id") or not record.get("douban_url"):
        return False
    imdb_id = get_imdb_from_douban(record["douban_url"])
    if imdb_id:
        record["imdb_id"] = imdb_id
    return bool(imdb_id)


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Convert a Douban export into import records")
    parser.add_argument("input", nargs="?", help=f"CSV or JSON export (default: {DEFAULT_CSV_PATH})")
    parser.add_argument("--output", help=f"Output JSON (default: {DEFAULT_IMPORT_PATH})")
    parser.add_argument("--limit", type=int, default=0, help="Limit records written")
    args = parser.parse_args(argv)

    try:
        client = TMDBClient()
    except ValueError as e:
        log(f"ERROR: {e}")
        sys.exit(1)

    input_path = resolve_path(args.input, DEFAULT_CSV_PATH)
    output_path = resolve_path(args.output, DEFAULT_IMPORT_PATH)

    log(f"Reading {input_path}")
    records = load_records(input_path)
    if not records:
        log("No records read.")
        return

    titled = [r for r in records if r.get("title")]
    if len(titled) < len(records):
        log(f"  Skipped {len(records) - len(titled)} records without a title")
    if args.limit and args.limit > 0:
        titled = titled[:args.limit]

    found = 0
    for record in tqdm(titled, desc="Douban IMDb lookup"):
        found += fill_imdb_id(record)
    log(f"Found {found} IMDb ids on Douban pages")

    _, unresolved = resolve_all(client, titled)

    save_json(output_path, titled)
    log(f"Wrote {len(titled)} records to {output_path}")
    if unresolved:
        log(f"  {unresolved} records could not be matched in TMDB (tmdb_id is null)")


if __name__ == "__main__":
    main()

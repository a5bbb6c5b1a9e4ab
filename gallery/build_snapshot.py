#!/usr/bin/env python3
"""
Build the gallery snapshot: every library entry joined with its TMDB details.

Entries TMDB no longer knows (404) are skipped with a warning. Any other
catalog failure aborts the run before anything is written, so a published
snapshot is always complete. The output file is replaced wholesale.

Usage:
  python gallery/build_snapshot.py [--library=data/library.json] [--output=data/movies.json]

Output: data/movies.json
"""

import argparse
import sys
from datetime import datetime, timezone

from tqdm import tqdm

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    extract_watch_dates,
    iter_entries,
    library_counts,
    load_library_or_exit,
    merge_dates,
)
from gallery.tmdb import (
    TMDBClient,
    TMDBError,
    TMDBNotFound,
    release_date,
    release_year,
    result_title,
)
from gallery.utils import (
    DEFAULT_LIBRARY_PATH,
    DEFAULT_SNAPSHOT_PATH,
    log,
    resolve_path,
    save_json,
)


def summarise_details(details: dict, media_type: str) -> dict:
    """Reduce a TMDB detail response to the fields the gallery shows."""
    credits = details.get("credits") or {}
    if media_type == "tv":
        directors = [c["name"] for c in details.get("created_by", []) if c.get("name")]
    else:
        directors = [
            c["name"] for c in credits.get("crew", [])
            if c.get("job") == "Director" and c.get("name")
        ]

    runtime = details.get("runtime")
    if runtime is None and details.get("episode_run_time"):
        runtime = details["episode_run_time"][0]

    external_ids = details.get("external_ids") or {}

    return {
        "id": details.get("id"),
        "mediaType": media_type,
        "title": result_title(details),
        "originalTitle": details.get("original_title") or details.get("original_name"),
        "overview": details.get("overview") or "",
        "posterPath": details.get("poster_path"),
        "backdropPath": details.get("backdrop_path"),
        "releaseDate": release_date(details) or None,
        "year": release_year(details),
        "genres": [g["name"] for g in details.get("genres", []) if g.get("name")],
        "directors": directors,
        "runtime": runtime,
        "voteAverage": details.get("vote_average"),
        "voteCount": details.get("vote_count"),
        "imdbId": external_ids.get("imdb_id") or details.get("imdb_id"),
    }


def snapshot_item(status: str, entry: dict, tmdb: dict | None) -> dict:
    item = dict(entry)
    # List membership is authoritative for status
    item["status"] = status
    item["mediaType"] = entry.get("mediaType") or "movie"
    dates = merge_dates(extract_watch_dates(entry))
    item["watchDates"] = dates
    item["watchDate"] = dates[0] if dates else None
    item["tmdb"] = tmdb
    return item


def build_snapshot(library: dict, client: TMDBClient,
                   library_label: str | None = None) -> tuple[dict, list[dict]]:
    """Fetch details for every entry, one at a time.

    Returns (snapshot, skipped_entries). TMDBError other than not-found
    propagates and no snapshot is produced.
    """
    items = []
    skipped = []

    entries = list(iter_entries(library))
    for status, entry in tqdm(entries, desc="Fetching details"):
        media_type = entry.get("mediaType") or "movie"
        title = entry.get("title", "?")

        if media_type == "web-video":
            items.append(snapshot_item(status, entry, None))
            continue

        if not entry.get("id"):
            log(f"  WARNING: '{title}' has no catalog id, skipping")
            skipped.append(entry)
            continue

        try:
            details = client.get_details(entry["id"], media_type)
        except TMDBNotFound:
            log(f"  WARNING: TMDB has no {media_type} {entry['id']} ('{title}'), skipping")
            skipped.append(entry)
            continue

        items.append(snapshot_item(status, entry, summarise_details(details, media_type)))

    counts = library_counts(library)
    counts["skipped"] = len(skipped)

    snapshot = {
        "generatedAt": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        "source": {
            "type": "library",
            "library": library_label,
            "language": client.language,
            "region": client.region,
            "counts": counts,
        },
        "items": items,
    }
    return snapshot, skipped


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Build data/movies.json from the library")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    parser.add_argument("--output", help=f"Snapshot file (default: {DEFAULT_SNAPSHOT_PATH})")
    args = parser.parse_args(argv)

    try:
        client = TMDBClient()
    except ValueError as e:
        log(f"ERROR: {e}")
        sys.exit(1)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    output_path = resolve_path(args.output, DEFAULT_SNAPSHOT_PATH)

    library = load_library_or_exit(library_path)

    total = sum(library_counts(library).values())
    log(f"Loaded {total} library entries from {library_path}")

    try:
        snapshot, skipped = build_snapshot(
            library, client, library_label=args.library or DEFAULT_LIBRARY_PATH
        )
    except TMDBError as e:
        log(f"ERROR: {e}")
        log("Snapshot not written.")
        sys.exit(1)

    save_json(output_path, snapshot)
    log(f"Wrote {len(snapshot['items'])} items to {output_path}")
    if skipped:
        log(f"  {len(skipped)} entries skipped (not found in TMDB)")


if __name__ == "__main__":
    main()

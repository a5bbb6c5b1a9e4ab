#!/usr/bin/env python3
"""
Validate library integrity and print a coverage report.
Checks ids, list membership, watch dates, ratings and web-video fields.

Output: data/validation/library_report.json + console summary
Exit status 1 when any issue is found.
"""

import argparse
import re
import sys
import time

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    MEDIA_TYPES,
    RATING_MAX,
    RATING_MIN,
    STATUSES,
    extract_watch_dates,
    iter_entries,
    load_library_or_exit,
)
from gallery.utils import (
    DEFAULT_LIBRARY_PATH,
    DEFAULT_VALIDATION_DIR,
    log,
    resolve_path,
    save_json,
)


ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_library(library: dict) -> dict:
    """Check library invariants. Returns {"stats": ..., "issues": [...]}."""
    issues = []
    stats = {status: len(library.get(status, [])) for status in STATUSES}
    stats.update({
        "total": sum(stats.values()),
        "with_watch_dates": 0,
        "with_rating": 0,
        "with_note": 0,
        "media_types": {},
    })

    seen_ids = {}
    for status, entry in iter_entries(library):
        entry_id = entry.get("id")
        title = entry.get("title", "")

        if entry_id is None or entry_id == "":
            issues.append({"type": "missing_id", "title": title, "list": status})
        else:
            key = str(entry_id)
            if key in seen_ids:
                issues.append({
                    "type": "duplicate_id",
                    "id": entry_id,
                    "lists": [seen_ids[key], status],
                })
            seen_ids[key] = status

        if not title:
            issues.append({"type": "missing_title", "id": entry_id, "list": status})

        if entry.get("status") and entry["status"] != status:
            issues.append({
                "type": "status_mismatch",
                "id": entry_id,
                "status": entry["status"],
                "list": status,
            })

        media_type = entry.get("mediaType") or "movie"
        stats["media_types"][media_type] = stats["media_types"].get(media_type, 0) + 1
        if media_type not in MEDIA_TYPES:
            issues.append({"type": "invalid_media_type", "id": entry_id, "mediaType": media_type})
        if media_type == "web-video" and not entry.get("url"):
            issues.append({"type": "web_video_without_url", "id": entry_id})

        dates = extract_watch_dates(entry)
        if dates:
            stats["with_watch_dates"] += 1
        bad_dates = [d for d in dates if not isinstance(d, str) or not ISO_DATE.match(d)]
        if bad_dates:
            issues.append({"type": "invalid_watch_date", "id": entry_id, "dates": bad_dates})
        elif dates != sorted(set(dates), reverse=True):
            issues.append({"type": "unsorted_watch_dates", "id": entry_id, "dates": dates})

        rating = entry.get("rating")
        if rating is not None:
            stats["with_rating"] += 1
            if (
                isinstance(rating, bool)
                or not isinstance(rating, (int, float))
                or not RATING_MIN <= rating <= RATING_MAX
            ):
                issues.append({"type": "invalid_rating", "id": entry_id, "rating": rating})

        if entry.get("note"):
            stats["with_note"] += 1

    return {"stats": stats, "issues": issues}


def print_report(result: dict) -> None:
    """Print a formatted console report."""
    stats = result["stats"]
    print("\n" + "=" * 60)
    print("  LIBRARY VALIDATION REPORT")
    print("=" * 60)
    print(f"\n  Total entries: {stats['total']}")
    for status in STATUSES:
        print(f"    {status:<9} {stats[status]:>5}")
    print(f"  With watch dates: {stats['with_watch_dates']}")
    print(f"  With rating:      {stats['with_rating']}")
    print(f"  With note:        {stats['with_note']}")
    print(f"  Media types:      {stats['media_types']}")

    issues = result["issues"]
    print(f"\n  Issues: {len(issues)}")
    for issue in issues:
        detail = ", ".join(f"{k}={v}" for k, v in issue.items() if k != "type")
        print(f"    - {issue['type']}: {detail}")
    print("=" * 60 + "\n")


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Validate the library file")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    parser.add_argument("--output", help="Report file (default: data/validation/library_report.json)")
    args = parser.parse_args(argv)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    report_path = resolve_path(args.output, f"{DEFAULT_VALIDATION_DIR}/library_report.json")

    log(f"Loading {library_path}...")
    library = load_library_or_exit(library_path)

    result = validate_library(library)
    report = {"generated_at": time.strftime("%Y-%m-%dT%H:%M:%S"), **result}
    save_json(report_path, report)
    log(f"Saved validation report to {report_path}")

    print_report(result)
    if result["issues"]:
        sys.exit(1)


if __name__ == "__main__":
    main()

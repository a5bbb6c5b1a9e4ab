#!/usr/bin/env python3
"""
Add a web video (bilibili, YouTube, ...) to the library.

Web videos have no catalog record; their id is derived from platform,
title and the current time.

Usage:
  python gallery/add_web_video.py [--library=data/library.json]
"""

import argparse
import re
import sys
import time

sys.path.insert(0, str(__import__("pathlib").Path(__file__).resolve().parent.parent))
from gallery.library import (
    load_library_or_exit,
    normalize_date,
    parse_rating,
    save_library,
    upsert_entry,
)
from gallery.prompts import ask, ask_status
from gallery.utils import DEFAULT_LIBRARY_PATH, log, resolve_path


PLATFORMS = {
    "1": ("bilibili", "Bilibili"),
    "2": ("youtube", "YouTube"),
    "3": ("iqiyi", "iQIYI"),
    "4": ("tencent", "Tencent Video"),
    "5": ("youku", "Youku"),
    "6": ("other", "Other"),
}


def make_video_id(platform: str, title: str, timestamp_ms: int | None = None) -> str:
    """`{platform}-{sanitized title, 20 chars}-{ms timestamp}`."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    sanitized = re.sub(r"[^a-zA-Z0-9\u4e00-\u9fa5]", "-", title)[:20]
    return f"{platform}-{sanitized}-{timestamp_ms}"


def build_video_entry(title: str, platform: str, url: str, status: str,
                      cover_url: str = "", creator: str = "", duration: str = "",
                      watch_date: str | None = None, rating=None, note: str = "",
                      timestamp_ms: int | None = None) -> dict:
    entry = {
        "id": make_video_id(platform, title, timestamp_ms),
        "title": title,
        "mediaType": "web-video",
        "platform": platform,
        "url": url,
        "coverUrl": cover_url or None,
        "creator": creator or None,
        "duration": duration or None,
        "status": status,
        "note": note or None,
    }
    if status == "watched" and watch_date:
        entry["watchDates"] = [watch_date]
    if rating is not None:
        entry["rating"] = rating
    return entry


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(description="Add a web video to the library")
    parser.add_argument("--library", help=f"Library file (default: {DEFAULT_LIBRARY_PATH})")
    args = parser.parse_args(argv)

    library_path = resolve_path(args.library, DEFAULT_LIBRARY_PATH)
    library = load_library_or_exit(library_path)

    print("=== Add a web video ===\n")
    title = ask("Video title: ", required=True)

    print("\nPlatform:")
    for key, (_, label) in PLATFORMS.items():
        print(f"  {key}. {label}")
    choice = ask("Choose (1-6): ", required=True)
    if choice not in PLATFORMS:
        log("ERROR: invalid platform choice")
        sys.exit(1)
    platform, label = PLATFORMS[choice]

    url = ask("Video URL: ", required=True)
    cover_url = ask("Cover image URL: ")
    creator = ask("Creator / uploader: ")
    duration = ask("Duration (e.g. 01:23:45): ")
    status = ask_status("Status (1=watching, 2=watched, 3=wishlist, default 1): ",
                        default="watching")

    watch_date = None
    rating = None
    if status == "watched":
        watch_date = normalize_date(ask("Watch date (YYYY-MM-DD): "))
        rating = parse_rating(ask("Rating (0-10): "))

    note = ask("Note: ")

    entry = build_video_entry(
        title, platform, url, status,
        cover_url=cover_url, creator=creator, duration=duration,
        watch_date=watch_date, rating=rating, note=note,
    )

    upsert_entry(library, entry)
    save_library(library, library_path)

    log(f"Added web video {entry['id']} ({label}, {status}) to {library_path}")
    log("Next: run `python gallery/build_snapshot.py` to refresh data/movies.json")


if __name__ == "__main__":
    main()

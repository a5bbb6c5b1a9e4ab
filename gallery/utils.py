"""
Shared utilities for the movie gallery scripts.
File paths, JSON I/O, env loading, logging, fuzzy title scoring.
"""

import json
import os
import time
from pathlib import Path

from dotenv import load_dotenv
from thefuzz import fuzz


# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Script defaults are relative to the directory the script is run from
DEFAULT_LIBRARY_PATH = "data/library.json"
DEFAULT_SNAPSHOT_PATH = "data/movies.json"
DEFAULT_IMPORT_PATH = "fromdouban.json"
DEFAULT_CSV_PATH = "data/douban.csv"
DEFAULT_VALIDATION_DIR = "data/validation"


def resolve_path(value: str | None, default: str) -> Path:
    """Resolve a CLI path argument against the current working directory."""
    target = Path(value.strip() if value and value.strip() else default)
    if not target.is_absolute():
        target = Path.cwd() / target
    return target


# ---------------------------------------------------------------------------
# JSON I/O
# ---------------------------------------------------------------------------

def load_json(path: Path, default=None) -> list | dict:
    """Load JSON from a file. Returns `default` (empty list) if the file doesn't exist."""
    path = Path(path)
    if not path.exists():
        return [] if default is None else default
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def save_json(path: Path, data: list | dict, indent: int = 2) -> None:
    """Save data as JSON with a trailing newline, creating parent directories if needed."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=indent, ensure_ascii=False)
        f.write("\n")


# ---------------------------------------------------------------------------
# Fuzzy Matching
# ---------------------------------------------------------------------------

def fuzzy_match_score(text1: str, text2: str) -> int:
    """Return the token sort ratio score between two strings."""
    if not text1 or not text2:
        return 0
    return fuzz.token_sort_ratio(text1.lower().strip(), text2.lower().strip())


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

def load_env() -> None:
    """Load environment variables from .env file."""
    env_path = PROJECT_ROOT / ".env"
    load_dotenv(env_path)


def get_env(key: str, required: bool = True, default: str | None = None) -> str | None:
    """Get an environment variable, optionally raising if missing."""
    load_env()
    value = os.environ.get(key)
    if required and not value:
        raise ValueError(f"Missing required environment variable: {key}")
    return value or default


# ---------------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    """Print a timestamped log message."""
    ts = time.strftime("%H:%M:%S")
    print(f"[{ts}] {msg}")

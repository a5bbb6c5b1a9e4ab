"""
TMDB catalog client.

Read-only access to search, details, find-by-external-id and the account's
rated movies. Failures surface as TMDBError; a 404 is TMDBNotFound so callers
can tell a missing record apart from a broken request.
"""

import time

import requests

from gallery.utils import get_env, log


TMDB_BASE = "https://api.themoviedb.org/3"
TMDB_V4_BASE = "https://api.themoviedb.org/4"
TMDB_IMAGE_BASE = "https://image.tmdb.org/t/p"

DEFAULT_LANGUAGE = "zh-CN"
DEFAULT_REGION = "CN"
DEFAULT_RATED_SORT = "created_at.desc"

REQUEST_TIMEOUT = 15
MIN_REQUEST_INTERVAL = 0.05


class TMDBError(Exception):
    """A catalog request that did not succeed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class TMDBNotFound(TMDBError):
    """The catalog has no record for the requested id."""


def result_title(result: dict) -> str:
    """Display title of a search/detail result (movie or TV)."""
    return (
        result.get("title")
        or result.get("name")
        or result.get("original_title")
        or result.get("original_name")
        or ""
    )


def release_date(result: dict) -> str:
    return result.get("release_date") or result.get("first_air_date") or ""


def release_year(result: dict) -> int | None:
    date = release_date(result)
    if len(date) >= 4 and date[:4].isdigit():
        return int(date[:4])
    return None


class TMDBClient:
    """TMDB API client with rate limiting."""

    def __init__(self, api_key: str | None = None, language: str | None = None,
                 region: str | None = None):
        self.api_key = api_key or get_env("TMDB_API_KEY")
        self.language = language or get_env("TMDB_LANGUAGE", required=False, default=DEFAULT_LANGUAGE)
        self.region = region or get_env("TMDB_REGION", required=False, default=DEFAULT_REGION)
        self._last_request = 0.0

    def _rate_limit(self):
        """Ensure at least 50ms between requests (~20 req/s)."""
        elapsed = time.time() - self._last_request
        if elapsed < MIN_REQUEST_INTERVAL:
            time.sleep(MIN_REQUEST_INTERVAL - elapsed)
        self._last_request = time.time()

    def _request(self, url: str, params: dict, headers: dict | None = None) -> dict:
        self._rate_limit()
        try:
            resp = requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT)
            if resp.status_code == 429:
                # Rate limited, wait and retry once
                time.sleep(2)
                resp = requests.get(url, params=params, headers=headers, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise TMDBError(f"TMDB request to {url} failed: {e}") from e

        if resp.status_code == 404:
            raise TMDBNotFound(f"TMDB has no record at {url}", status_code=404)
        if resp.status_code != 200:
            raise TMDBError(
                f"TMDB request to {url} failed with status {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            return resp.json()
        except ValueError as e:
            raise TMDBError(
                f"TMDB response from {url} is not valid JSON: {e}",
                status_code=resp.status_code,
            ) from e

    def _get(self, endpoint: str, params: dict | None = None) -> dict:
        """Make a GET request to the v3 API."""
        query = {"api_key": self.api_key, "language": self.language}
        if params:
            query.update(params)
        return self._request(f"{TMDB_BASE}{endpoint}", query)

    # -- search / lookup -----------------------------------------------------

    def search(self, query: str, media_type: str = "movie") -> list[dict]:
        """Free-text search. Returns the first page of results."""
        endpoint = "/search/tv" if media_type == "tv" else "/search/movie"
        data = self._get(endpoint, {
            "query": query,
            "region": self.region,
            "include_adult": "false",
        })
        return data.get("results") or []

    def search_movie(self, query: str) -> list[dict]:
        return self.search(query, "movie")

    def search_tv(self, query: str) -> list[dict]:
        return self.search(query, "tv")

    def find_by_imdb(self, imdb_id: str) -> dict:
        """Look up catalog records by IMDb id."""
        return self._get(f"/find/{imdb_id}", {"external_source": "imdb_id"})

    def get_details(self, tmdb_id, media_type: str = "movie") -> dict:
        """Full details with credits and external ids appended."""
        kind = "tv" if media_type == "tv" else "movie"
        return self._get(f"/{kind}/{tmdb_id}", {"append_to_response": "credits,external_ids"})

    # -- account -------------------------------------------------------------

    def iter_rated_movies(self, account_id: str, session_id: str | None = None,
                          access_token: str | None = None,
                          sort_by: str = DEFAULT_RATED_SORT):
        """Yield the account's rated movies, page by page.

        With a v4 access token the v4 endpoint is used (it carries rating
        timestamps); otherwise the v3 endpoint with a session id.
        Each item gets `rating` and `rated_at` at the top level.
        """
        if access_token:
            url = f"{TMDB_V4_BASE}/account/{account_id}/movie/rated"
            headers = {
                "Authorization": f"Bearer {access_token}",
                "Content-Type": "application/json;charset=utf-8",
            }
            base_params = {"language": self.language, "sort_by": sort_by}
        elif session_id:
            url = f"{TMDB_BASE}/account/{account_id}/rated/movies"
            headers = None
            base_params = {
                "api_key": self.api_key,
                "session_id": session_id,
                "language": self.language,
                "sort_by": sort_by,
            }
        else:
            raise ValueError("Rated movies need either a v4 access token or a v3 session id")

        page = 1
        total_pages = 1
        while page <= total_pages:
            log(f"Fetching rated movies page {page}/{total_pages}...")
            data = self._request(url, {**base_params, "page": page}, headers=headers)
            for item in data.get("results") or []:
                account_rating = item.get("account_rating") or {}
                yield {
                    **item,
                    "media_type": "movie",
                    "rating": account_rating.get("value", item.get("rating")),
                    "rated_at": (
                        account_rating.get("created_at")
                        or item.get("rated_at")
                        or item.get("created_at")
                    ),
                }
            total_pages = data.get("total_pages") or 1
            page += 1

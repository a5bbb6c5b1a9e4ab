"""
Tests for the TMDB client: request parameters, error mapping, retry and
rated-movie paging. No network access; requests.get is patched.

Run: python -m unittest gallery.test_tmdb
"""

import io
import os
import unittest
from contextlib import redirect_stdout
from unittest import mock

import requests

from gallery.tmdb import (
    TMDB_BASE,
    TMDB_V4_BASE,
    TMDBClient,
    TMDBError,
    TMDBNotFound,
    release_year,
    result_title,
)


def make_response(status_code=200, payload=None):
    resp = mock.Mock()
    resp.status_code = status_code
    resp.json.return_value = payload if payload is not None else {}
    return resp


class TestResultHelpers(unittest.TestCase):

    def test_title_and_year(self):
        tv = {"name": "请回答1988", "first_air_date": "2015-11-06"}
        self.assertEqual(result_title(tv), "请回答1988")
        self.assertEqual(release_year(tv), 2015)
        self.assertIsNone(release_year({"release_date": ""}))


@mock.patch("gallery.tmdb.time.sleep")
@mock.patch("gallery.tmdb.requests.get")
class TestRequests(unittest.TestCase):

    def setUp(self):
        self.client = TMDBClient(api_key="key", language="zh-CN", region="CN")

    def test_search_params(self, get, sleep):
        get.return_value = make_response(payload={"results": [{"id": 1}]})
        results = self.client.search("霸王别姬")

        self.assertEqual(results, [{"id": 1}])
        url = get.call_args.args[0]
        params = get.call_args.kwargs["params"]
        self.assertEqual(url, f"{TMDB_BASE}/search/movie")
        self.assertEqual(params["query"], "霸王别姬")
        self.assertEqual(params["api_key"], "key")
        self.assertEqual(params["language"], "zh-CN")
        self.assertEqual(params["region"], "CN")

    def test_details_append_credits(self, get, sleep):
        get.return_value = make_response(payload={"id": 1396})
        self.client.get_details(1396, "tv")
        self.assertEqual(get.call_args.args[0], f"{TMDB_BASE}/tv/1396")
        self.assertEqual(
            get.call_args.kwargs["params"]["append_to_response"], "credits,external_ids"
        )

    def test_find_by_imdb(self, get, sleep):
        get.return_value = make_response(payload={"movie_results": [{"id": 278}]})
        found = self.client.find_by_imdb("tt0111161")
        self.assertEqual(found["movie_results"][0]["id"], 278)
        self.assertEqual(get.call_args.kwargs["params"]["external_source"], "imdb_id")

    def test_404_is_not_found(self, get, sleep):
        get.return_value = make_response(404)
        with self.assertRaises(TMDBNotFound) as ctx:
            self.client.get_details(1)
        self.assertEqual(ctx.exception.status_code, 404)

    def test_server_error(self, get, sleep):
        get.return_value = make_response(500)
        with self.assertRaises(TMDBError) as ctx:
            self.client.get_details(1)
        self.assertNotIsInstance(ctx.exception, TMDBNotFound)
        self.assertEqual(ctx.exception.status_code, 500)

    def test_body_not_json(self, get, sleep):
        resp = make_response(200)
        resp.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        get.return_value = resp
        with self.assertRaises(TMDBError) as ctx:
            self.client.search("x")
        self.assertEqual(ctx.exception.status_code, 200)

    def test_rate_limited_retry(self, get, sleep):
        get.side_effect = [make_response(429), make_response(payload={"results": []})]
        self.assertEqual(self.client.search("x"), [])
        self.assertEqual(get.call_count, 2)
        sleep.assert_any_call(2)

    def test_network_error(self, get, sleep):
        get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(TMDBError):
            self.client.search("x")

    def test_rated_movies_v4_paging(self, get, sleep):
        get.side_effect = [
            make_response(payload={
                "total_pages": 2,
                "results": [{
                    "id": 1,
                    "title": "A",
                    "account_rating": {"value": 8, "created_at": "2024-10-01T12:00:00.000Z"},
                }],
            }),
            make_response(payload={
                "total_pages": 2,
                "results": [{"id": 2, "title": "B", "account_rating": {"value": 6}}],
            }),
        ]
        with redirect_stdout(io.StringIO()):
            items = list(self.client.iter_rated_movies("acct", access_token="token"))

        self.assertEqual([i["id"] for i in items], [1, 2])
        self.assertEqual(items[0]["rating"], 8)
        self.assertEqual(items[0]["rated_at"], "2024-10-01T12:00:00.000Z")
        self.assertIsNone(items[1]["rated_at"])
        self.assertEqual(get.call_args_list[0].args[0], f"{TMDB_V4_BASE}/account/acct/movie/rated")
        self.assertEqual(get.call_args_list[1].kwargs["params"]["page"], 2)
        self.assertEqual(
            get.call_args_list[0].kwargs["headers"]["Authorization"], "Bearer token"
        )

    def test_rated_movies_v3(self, get, sleep):
        get.return_value = make_response(payload={
            "total_pages": 1,
            "results": [{"id": 3, "title": "C", "rating": 7.5}],
        })
        with redirect_stdout(io.StringIO()):
            items = list(self.client.iter_rated_movies("acct", session_id="sess"))
        self.assertEqual(items[0]["rating"], 7.5)
        self.assertEqual(get.call_args.args[0], f"{TMDB_BASE}/account/acct/rated/movies")
        self.assertEqual(get.call_args.kwargs["params"]["session_id"], "sess")

    def test_rated_movies_need_credentials(self, get, sleep):
        with self.assertRaises(ValueError):
            list(self.client.iter_rated_movies("acct"))
        get.assert_not_called()


@mock.patch("gallery.utils.load_env")
class TestClientConfig(unittest.TestCase):

    def test_missing_api_key(self, load_env):
        with mock.patch.dict(os.environ, {}, clear=True):
            with self.assertRaises(ValueError):
                TMDBClient()

    def test_env_defaults(self, load_env):
        with mock.patch.dict(os.environ, {"TMDB_API_KEY": "abc"}, clear=True):
            client = TMDBClient()
        self.assertEqual(client.api_key, "abc")
        self.assertEqual(client.language, "zh-CN")
        self.assertEqual(client.region, "CN")

    def test_env_overrides(self, load_env):
        env = {"TMDB_API_KEY": "abc", "TMDB_LANGUAGE": "en-US", "TMDB_REGION": "US"}
        with mock.patch.dict(os.environ, env, clear=True):
            client = TMDBClient()
        self.assertEqual((client.language, client.region), ("en-US", "US"))


if __name__ == "__main__":
    unittest.main()

"""
Tests for the Douban import adapter: CSV aliases, quoting, JSON input,
CSV round trip and IMDb id scraping.

Run: python -m unittest gallery.test_douban
"""

import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from gallery import douban
from gallery.douban import (
    extract_imdb_id,
    get_imdb_from_douban,
    load_records,
    normalize_row,
    parse_csv_text,
    write_csv,
)
from gallery.export_library_csv import library_to_records


DOUBAN_CSV = (
    "标题,我的评分,创建时间,链接,评论,IMDb,制片国家\n"
    '"Movie, The",4,2024-10-01 20:15:00,https://movie.douban.com/subject/1/,"He said ""hi""",tt0111161,美国\n'
    "\n"
    "霸王别姬,5,2023/02/14 09:00:00,https://movie.douban.com/subject/1291546/,,,中国大陆\n"
)


class TestParseCsv(unittest.TestCase):
    """Chinese and English headers map onto the same record fields."""

    def test_chinese_headers_and_quoting(self):
        records = parse_csv_text(DOUBAN_CSV)
        self.assertEqual(len(records), 2, "blank lines should be skipped")

        first = records[0]
        self.assertEqual(first["title"], "Movie, The")
        self.assertEqual(first["note"], 'He said "hi"')
        self.assertEqual(first["watch_date"], "2024-10-01")
        self.assertEqual(first["imdb_id"], "tt0111161")
        self.assertEqual(first["douban_url"], "https://movie.douban.com/subject/1/")
        self.assertEqual(first["my_rating"], 8, "star ratings double onto 0-10")

        second = records[1]
        self.assertEqual(second["title"], "霸王别姬")
        self.assertEqual(second["watch_date"], "2023-02-14")
        self.assertIsNone(second["imdb_id"])
        self.assertIsNone(second["note"])
        self.assertNotIn("制片国家", second, "unmapped columns are ignored")

    def test_english_headers(self):
        text = (
            "title,watch_date,year,imdb,rating,tmdb_id,media_type,extra\n"
            "Arrival,2025-01-12,2016,https://www.imdb.com/title/tt2543164/,9,329865,movie,x\n"
        )
        record = parse_csv_text(text)[0]
        self.assertEqual(record["title"], "Arrival")
        self.assertEqual(record["year"], 2016)
        self.assertEqual(record["imdb_id"], "tt2543164")
        self.assertEqual(record["my_rating"], 9, "English rating column is already 0-10")
        self.assertEqual(record["tmdb_id"], 329865)
        self.assertEqual(record["media_type"], "movie")

    def test_bad_values_become_absent(self):
        text = "title,watch_date,rating\nSomething,someday,great\n"
        record = parse_csv_text(text)[0]
        self.assertEqual(record["watch_date"], "")
        self.assertIsNone(record["my_rating"])

    def test_written_out_watch_date(self):
        self.assertEqual(normalize_row({"title": "X", "watch_date": "Oct 1, 2024"})["watch_date"], "2024-10-01")
        self.assertEqual(normalize_row({"title": "X", "watch_date": "2024/10/1 20:15"})["watch_date"], "2024-10-01")
        self.assertEqual(normalize_row({"title": "X", "watch_date": "Oct 1"})["watch_date"], "")

    def test_bom_header(self):
        record = parse_csv_text("\ufefftitle,watch_date\nHeat,1999-01-01\n")[0]
        self.assertEqual(record["title"], "Heat")


class TestLoadRecords(unittest.TestCase):

    def test_json_list(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "fromdouban.json"
            path.write_text(json.dumps([
                {"title": "Heat", "watch_date": "1999-01-01", "tmdb_id": 949, "my_rating": 9},
                "not a record",
            ]), encoding="utf-8")
            records = load_records(path)
        self.assertEqual(len(records), 1)
        self.assertEqual(records[0]["tmdb_id"], 949)
        self.assertEqual(records[0]["my_rating"], 9)

    def test_json_object_is_not_a_record_list(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "fromdouban.json"
            path.write_text(json.dumps({"title": "Heat"}), encoding="utf-8")
            records = load_records(path)
        self.assertEqual(records, [])

    def test_csv_without_extension(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "export.txt"
            path.write_text("标题,创建时间\n花样年华,2022-05-05 10:00:00\n", encoding="utf-8")
            records = load_records(path)
        self.assertEqual([(r["title"], r["watch_date"]) for r in records], [("花样年华", "2022-05-05")])

    def test_missing_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(load_records(Path(tmp) / "missing.csv"), [])


class TestCsvRoundTrip(unittest.TestCase):
    """Exported rows re-import with the same title and watch date."""

    def test_records_round_trip(self):
        records = parse_csv_text(DOUBAN_CSV)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.csv"
            write_csv(records, path)
            again = load_records(path)

        self.assertEqual(
            [(r["title"], r["watch_date"]) for r in again],
            [(r["title"], r["watch_date"]) for r in records],
        )
        self.assertEqual([r["my_rating"] for r in again], [8, 10])
        self.assertEqual(again[0]["note"], 'He said "hi"')

    def test_library_export_round_trip(self):
        library = {
            "watching": [{"id": 9, "title": "Not yet", "status": "watching"}],
            "watched": [
                {
                    "id": 329865,
                    "title": "降临",
                    "mediaType": "movie",
                    "status": "watched",
                    "watchDates": ["2025-01-12", "2024-10-01"],
                    "rating": 9,
                },
                {"id": "bilibili-x-1", "title": "Vlog", "mediaType": "web-video", "status": "watched"},
            ],
            "wishlist": [],
        }
        records = library_to_records(library)
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "library.csv"
            write_csv(records, path)
            again = load_records(path)

        self.assertEqual(
            [(r["title"], r["watch_date"], r["tmdb_id"]) for r in again],
            [("降临", "2025-01-12", 329865), ("降临", "2024-10-01", 329865)],
        )


DOUBAN_PAGE_TEXT = """
<html><body><div id="info">
<span class="pl">导演</span>: 陈凯歌<br/>
<span class="pl">IMDb:</span> tt0106332<br/>
</div></body></html>
"""

DOUBAN_PAGE_LINK = """
<html><body><div id="info">
<span class="pl">IMDb链接:</span> <a href="https://www.imdb.com/title/tt0111161" target="_blank">tt0111161</a>
</div></body></html>
"""


class TestDoubanScraping(unittest.TestCase):

    def setUp(self):
        douban._imdb_cache.clear()
        douban._failed_urls.clear()

    def test_extract_from_text_and_link(self):
        self.assertEqual(extract_imdb_id(DOUBAN_PAGE_TEXT), "tt0106332")
        self.assertEqual(extract_imdb_id(DOUBAN_PAGE_LINK), "tt0111161")
        self.assertIsNone(extract_imdb_id("<html><body>nothing</body></html>"))

    @mock.patch("gallery.douban.time.sleep")
    @mock.patch("gallery.douban._get_douban_scraper")
    def test_hit_is_cached(self, get_scraper, sleep):
        scraper = get_scraper.return_value
        scraper.get.return_value = mock.Mock(status_code=200, text=DOUBAN_PAGE_TEXT)

        url = "https://movie.douban.com/subject/1291546/"
        self.assertEqual(get_imdb_from_douban(url), "tt0106332")
        self.assertEqual(get_imdb_from_douban(url), "tt0106332")
        self.assertEqual(scraper.get.call_count, 1)
        sleep.assert_called_once_with(douban.HIT_DELAY)

    @mock.patch("gallery.douban.time.sleep")
    @mock.patch("gallery.douban._get_douban_scraper")
    def test_failures_are_not_fatal(self, get_scraper, sleep):
        scraper = get_scraper.return_value
        scraper.get.return_value = mock.Mock(status_code=403, text="")
        url = "https://movie.douban.com/subject/2/"
        self.assertIsNone(get_imdb_from_douban(url))
        self.assertIsNone(get_imdb_from_douban(url))
        self.assertEqual(scraper.get.call_count, 1, "failed URLs are not retried")

        scraper.get.side_effect = ConnectionError("reset")
        self.assertIsNone(get_imdb_from_douban("https://movie.douban.com/subject/3/"))


if __name__ == "__main__":
    unittest.main()

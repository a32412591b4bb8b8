"""
test_pipeline.py — End-to-End Tests for the Streamgraph Pipeline
==================================================================
Runs ranker → normaliser → stack layout → colour scale on a small
synthetic export, plus the configuration loader and the CLI runner.
"""

from __future__ import annotations

import datetime
import json
import os
import pathlib
import tempfile
import unittest
from unittest import mock

from listenstream.config import Settings, load_settings
from listenstream.models import MalformedDateError, MalformedRecordError
from listenstream.pipeline import build_streamgraph
from listenstream.utils import format_layout_summary, is_padding_key

import main as cli


def _make_dataset() -> dict:
    return {
        "top_artists": [
            {"id": 11, "name": "Aurora", "age": 2, "count": 10},
            {"id": 22, "name": "Boreal", "age": 5, "count": 10},
            {"id": 33, "name": "Cirrus", "age": 8, "count": 4},
        ],
        "data": [
            {"date": "2019-06-01", "other": 10, "11": 3, "22": 1},
            {"date": "2019-12-01", "other": 14, "11": 5, "33": 2},
            {"date": "2020-06-01", "other": 8, "22": 6, "33": 1},
            {"date": "2021-01-01", "other": 6, "11": 1, "22": 2, "33": 4},
        ],
    }


class TestBuildStreamgraph(unittest.TestCase):

    def setUp(self) -> None:
        self.layout = build_streamgraph(_make_dataset(), Settings())

    def test_keys(self):
        keys = self.layout.keys
        self.assertEqual(len(keys), 5)
        self.assertEqual(keys[0], "other0")
        self.assertEqual(keys[-1], "other1")
        self.assertEqual(sorted(keys[1:-1]), ["11", "22", "33"])

    def test_ranked_artists(self):
        self.assertEqual(list(self.layout.artists), ["11", "22", "33"])
        self.assertEqual(self.layout.artists["11"].popularity_rank, 1)

    def test_extents(self):
        start, end = self.layout.date_extent
        self.assertEqual(start, datetime.date(2019, 6, 1))
        self.assertEqual(end, datetime.date(2021, 1, 1))
        low, high = self.layout.value_extent
        self.assertLess(low, high)
        for band in self.layout.bands:
            self.assertGreaterEqual(min(band.y0), low)
            self.assertLessEqual(max(band.y1), high)

    def test_year_ticks_exclude_first_year_and_last_date(self):
        self.assertEqual(self.layout.year_ticks(), [datetime.date(2020, 1, 1)])

    def test_layer_kind_and_label(self):
        self.assertEqual(self.layout.layer_kind("other0"), "background")
        self.assertEqual(self.layout.layer_kind("11"), "artist")
        self.assertEqual(self.layout.artist_label("22"), "Boreal")
        self.assertEqual(self.layout.artist_label("other1"), "")

    def test_every_band_coloured(self):
        for key in self.layout.keys:
            color = self.layout.color(key)
            if is_padding_key(key):
                self.assertEqual(color.hex, "#f2f3f4")
            else:
                self.assertNotEqual(color.hex, "#f2f3f4")

    def test_to_dict_is_json_ready(self):
        payload = json.loads(json.dumps(self.layout.to_dict()))
        self.assertEqual(len(payload["layers"]), 5)
        self.assertEqual(payload["layers"][0]["kind"], "background")
        self.assertEqual(len(payload["layers"][1]["y0"]), 4)
        self.assertEqual(payload["year_ticks"], ["2020-01-01"])
        self.assertEqual(payload["artists"]["11"]["popularityRank"], 1)

    def test_rerun_is_identical(self):
        again = build_streamgraph(_make_dataset(), Settings())
        self.assertEqual(again.bands, self.layout.bands)
        for key in self.layout.keys:
            self.assertEqual(again.color(key), self.layout.color(key))

    def test_settings_palette_used(self):
        layout = build_streamgraph(_make_dataset(), Settings(padding_color="#000000"))
        self.assertEqual(layout.color("other0").hex, "#000000")

    def test_missing_section_is_malformed(self):
        with self.assertRaises(MalformedRecordError):
            build_streamgraph({"data": []}, Settings())

    def test_bad_date_propagates(self):
        dataset = _make_dataset()
        dataset["data"][2]["date"] = "June 2020"
        with self.assertRaises(MalformedDateError) as ctx:
            build_streamgraph(dataset, Settings())
        self.assertEqual(ctx.exception.index, 2)

    def test_summary_report(self):
        report = format_layout_summary(self.layout)
        self.assertIn("STREAMGRAPH LAYOUT", report)
        self.assertIn("Aurora", report)

    def test_summary_top_counts_artist_bands_only(self):
        report = format_layout_summary(self.layout, top=2)
        self.assertNotIn("other0", report)
        self.assertNotIn("other1", report)
        listed = [name for name in ("Aurora", "Boreal", "Cirrus") if name in report]
        self.assertEqual(len(listed), 2)
        self.assertIn("... 1 more", report)

    def test_text_metadata_in_samples_is_carried(self):
        dataset = _make_dataset()
        dataset["data"][1]["note"] = "holiday"
        layout = build_streamgraph(dataset, Settings())
        self.assertEqual(layout.samples[1].extras["note"], "holiday")
        self.assertEqual(len(layout.bands), 5)
        self.assertNotIn("note", layout.keys)


class TestSettings(unittest.TestCase):

    def test_env_overrides(self):
        env = {
            "LISTENSTREAM_COLOR_LOW": "#111111",
            "LISTENSTREAM_DATE_FORMAT": "%d.%m.%Y",
            "LISTENSTREAM_LOG_LEVEL": "debug",
        }
        with mock.patch.dict(os.environ, env):
            s = load_settings()
        self.assertEqual(s.color_low, "#111111")
        self.assertEqual(s.date_format, "%d.%m.%Y")
        self.assertEqual(s.log_level_value, 10)

    def test_unknown_log_level_falls_back_to_info(self):
        self.assertEqual(Settings(log_level="chatty").log_level_value, 20)


class TestCli(unittest.TestCase):

    def test_writes_layout(self):
        with tempfile.TemporaryDirectory() as tmp:
            data_path = pathlib.Path(tmp) / "data.json"
            out_path = pathlib.Path(tmp) / "out" / "layout.json"
            data_path.write_text(json.dumps(_make_dataset()))

            cli.main(["--data", str(data_path), "--out", str(out_path), "--summary"])

            payload = json.loads(out_path.read_text())
        self.assertEqual([layer["key"] for layer in payload["layers"]][0], "other0")
        self.assertEqual(len(payload["dates"]), 4)

    def test_invalid_dataset_exits_nonzero(self):
        dataset = _make_dataset()
        dataset["top_artists"][0]["age"] = 0
        with tempfile.TemporaryDirectory() as tmp:
            data_path = pathlib.Path(tmp) / "data.json"
            data_path.write_text(json.dumps(dataset))
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["--data", str(data_path), "--out", str(pathlib.Path(tmp) / "x.json")])
        self.assertEqual(ctx.exception.code, 1)

    def test_bad_palette_colour_in_env_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmp:
            data_path = pathlib.Path(tmp) / "data.json"
            data_path.write_text(json.dumps(_make_dataset()))
            with mock.patch.dict(os.environ, {"LISTENSTREAM_COLOR_LOW": "blue"}):
                with self.assertRaises(SystemExit) as ctx:
                    cli.main(["--data", str(data_path), "--out", str(pathlib.Path(tmp) / "x.json")])
        self.assertEqual(ctx.exception.code, 1)

    def test_missing_file_exits_nonzero(self):
        with tempfile.TemporaryDirectory() as tmp:
            with self.assertRaises(SystemExit) as ctx:
                cli.main(["--data", str(pathlib.Path(tmp) / "nope.json")])
        self.assertEqual(ctx.exception.code, 1)


if __name__ == "__main__":
    unittest.main()

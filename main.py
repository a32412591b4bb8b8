#!/usr/bin/env python3
"""
main.py — listenstream: Entry Point
====================================
Loads a listening-history export, computes the streamgraph layout and
writes it as JSON for the renderer.

Modes
-----
    python main.py                             # data/output paths from .env
    python main.py --data data.json            # explicit input
    python main.py --out layout.json --summary # print a text summary too
    python main.py --log-level DEBUG           # show pass-1 order etc.

Input
-----
``{"top_artists": [{id, name, age, count}, ...],
   "data": [{"date": "YYYY-MM-DD", "other": n, "<artist id>": n, ...}, ...]}``
"""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import pathlib
import sys
from typing import Any, Dict

from listenstream.config import Settings, load_settings
from listenstream.models import MalformedRecordError, StreamgraphError
from listenstream.pipeline import StreamgraphLayout, build_streamgraph
from listenstream.utils import format_layout_summary, get_logger

logger = get_logger("listenstream.main")


# ── I/O ─────────────────────────────────────────────────────────────────────

def load_dataset(path: pathlib.Path) -> Dict[str, Any]:
    """Read the export JSON; the top level must be an object."""
    logger.info("Loading dataset from %s", path)
    with open(path, encoding="utf-8") as f:
        dataset = json.load(f)
    if not isinstance(dataset, dict):
        raise MalformedRecordError(
            f"{path}: expected a JSON object, got {type(dataset).__name__}"
        )
    return dataset


def write_layout(layout: StreamgraphLayout, path: pathlib.Path) -> pathlib.Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(layout.to_dict(), f, indent=2, default=str)
    logger.info("Layout written → %s", path)
    return path


def run(
    data_path: pathlib.Path,
    out_path: pathlib.Path,
    settings: Settings,
    summary: bool = False,
) -> StreamgraphLayout:
    """Execute one full load → layout → write cycle."""
    dataset = load_dataset(data_path)
    layout = build_streamgraph(dataset, settings)
    write_layout(layout, out_path)

    if summary:
        print()
        print(format_layout_summary(layout))
        print()
    return layout


def _set_log_level(level: int) -> None:
    for name in list(logging.root.manager.loggerDict):
        if name.startswith("listenstream"):
            logging.getLogger(name).setLevel(level)


# ═════════════════════════════════════════════════════════════════════════════
#  CLI
# ═════════════════════════════════════════════════════════════════════════════

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="listenstream — streamgraph layout of listening history",
    )
    parser.add_argument(
        "--data",
        type=pathlib.Path,
        default=None,
        help="Dataset JSON (overrides LISTENSTREAM_DATA_PATH in .env).",
    )
    parser.add_argument(
        "--out",
        type=pathlib.Path,
        default=None,
        help="Output layout JSON (overrides LISTENSTREAM_OUTPUT_PATH in .env).",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        default=False,
        help="Print a plain-text summary of the layout to stdout.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Logging level, e.g. DEBUG (overrides LISTENSTREAM_LOG_LEVEL).",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    settings = load_settings()
    if args.log_level:
        settings = dataclasses.replace(settings, log_level=args.log_level)
    _set_log_level(settings.log_level_value)

    data_path = args.data or settings.data_path
    out_path = args.out or settings.output_path

    try:
        run(data_path, out_path, settings, summary=args.summary)
    except (StreamgraphError, OSError, json.JSONDecodeError) as exc:
        logger.error("Pipeline failed: %s", exc)
        sys.exit(1)


if __name__ == "__main__":
    main()

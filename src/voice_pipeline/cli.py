"""Command-line interface for the voice pipeline.

Provides subcommands: `views`, `fetch`, `aggregate`, `kol` and `top`.
Each command is implemented as a `cmd_*` function that accepts an
argparse namespace.
"""
from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
import pandas as pd

from voice_pipeline.aggregate.kol import KOL_ENDPOINT, aggregate_kol, kol_frame
from voice_pipeline.aggregate.matrix import to_frame, to_numeric_frame
from voice_pipeline.aggregate.months import parse_month
from voice_pipeline.aggregate.posts import TOP_POSTS_ENDPOINT, posts_frame, top_posts
from voice_pipeline.aggregate.views import VIEWS, DatasetView, get_view
from voice_pipeline.config import get_settings
from voice_pipeline.db import get_client, get_db
from voice_pipeline.ingest.feishu import fetch_dataset
from voice_pipeline.ingest.load_raw import COLLECTION, load_snapshot, snapshot_records
from voice_pipeline.logging_config import configure_logging
from voice_pipeline.models import METRIC_NAMES
from voice_pipeline.session import ViewController

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _view_or_exit(key: str) -> DatasetView:
    try:
        return get_view(key)
    except KeyError as e:
        log.error("%s", e.args[0])
        raise SystemExit(2) from None


def _check_month(month: str | None) -> None:
    if month and parse_month(month) is None:
        log.error("Invalid --month %r (expected e.g. Aug-25)", month)
        raise SystemExit(2)


def _fetcher(source: str):
    """Return a fetch callable for `source` (``api``, ``mongo`` or a JSON path)."""
    if source == "api":
        settings = get_settings()
        return lambda endpoint: fetch_dataset(settings, endpoint)

    if source == "mongo":
        settings = get_settings()
        db = get_db(get_client(settings.mongo_uri), settings.mongo_db)
        return lambda endpoint: load_snapshot(db[COLLECTION], endpoint)

    path = Path(source)

    def _from_file(endpoint: str) -> list[dict[str, Any]]:
        data = json.loads(path.read_text(encoding="utf-8"))
        # accept either a bare array or the Bitable {"data": {"items": [...]}} envelope
        if isinstance(data, dict):
            data = (data.get("data") or {}).get("items") or []
        log.info("Read %d records from %s", len(data), path)
        return data

    return _from_file


# --------------------------------------------------
# VIEWS
# --------------------------------------------------
def cmd_views(_: argparse.Namespace) -> None:
    """Print the registered dataset views."""
    rows = [
        {
            "view": v.key,
            "label": v.label,
            "endpoint": v.endpoint,
            "split": v.split,
            "entities": v.entity_set.name,
            "axis": v.row_axis,
        }
        for v in VIEWS.values()
    ]
    print(pd.DataFrame(rows).to_string(index=False))


# --------------------------------------------------
# FETCH
# --------------------------------------------------
def cmd_fetch(args: argparse.Namespace) -> None:
    """Pull the records behind a view, optionally snapshot to Mongo or a file.

    Args:
        args: argparse namespace with `view`, `snapshot`, `out`.
    """
    view = _view_or_exit(args.view)
    s = get_settings()
    records = fetch_dataset(s, view.endpoint)

    if args.snapshot:
        client = get_client(s.mongo_uri)
        db = get_db(client, s.mongo_db)
        snapshot_records(db[COLLECTION], view.endpoint, records)

    if args.out:
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
        log.info("Wrote %d records to %s", len(records), out)

    log.info("Fetch completed for %s (%d records).", view.endpoint, len(records))


# --------------------------------------------------
# AGGREGATE
# --------------------------------------------------
def cmd_aggregate(args: argparse.Namespace) -> None:
    """Build a view's matrix and print one metric as a table.

    Args:
        args: argparse namespace with `view`, `source`, `month`, `metric`,
            `numeric`.
    """
    view = _view_or_exit(args.view)
    _check_month(args.month)
    if args.month and view.row_axis != "platform":
        log.error("--month only applies to platform views; %s is a %s view", view.key, view.row_axis)
        raise SystemExit(2)

    controller = ViewController(view, _fetcher(args.source))
    state = controller.refresh(target_month=args.month)

    if state.error:
        raise RuntimeError(f"Fetch failed for {view.key}: {state.error}")

    result = state.result
    if result is None or result.empty:
        log.warning("No rows for view %s", view.key)
        return

    frame = to_numeric_frame(result, args.metric) if args.numeric else to_frame(result, args.metric)
    print(frame.to_string())


# --------------------------------------------------
# KOL
# --------------------------------------------------
def cmd_kol(args: argparse.Namespace) -> None:
    """Print the tier matrix of one molecule from the KOL placement table.

    Args:
        args: argparse namespace with `source`, `month`, `molecule`,
            `numeric`.
    """
    _check_month(args.month)
    records = _fetcher(args.source)(KOL_ENDPOINT)
    result = aggregate_kol(records, target_month=args.month)
    if result.empty:
        log.warning("No KOL rows for month %s", args.month or "(all)")
        return

    molecule = args.molecule or result.molecules[0]
    if molecule not in result.matrix:
        log.error("Unknown molecule %r; present: %s", molecule, ", ".join(result.molecules))
        raise SystemExit(2)
    print(kol_frame(result, molecule, numeric=args.numeric).to_string())


# --------------------------------------------------
# TOP POSTS
# --------------------------------------------------
def cmd_top(args: argparse.Namespace) -> None:
    """Print the hot-posts list, searched, filtered and sorted by interaction."""
    records = _fetcher(args.source)(TOP_POSTS_ENDPOINT)
    posts = top_posts(
        records,
        search=args.search,
        molecule=args.molecule,
        descending=not args.ascending,
    )
    if not posts:
        log.warning("No hot posts matched")
        return
    print(posts_frame(posts[: args.limit] if args.limit else posts).to_string(index=False))


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="voice-pipeline")
    p.add_argument("--verbose", "-v", action="store_true")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("views")

    p_fetch = sub.add_parser("fetch")
    p_fetch.add_argument("--view", required=True)
    p_fetch.add_argument("--snapshot", action="store_true")
    p_fetch.add_argument("--out", default=None)

    p_agg = sub.add_parser("aggregate")
    p_agg.add_argument("--view", required=True)
    p_agg.add_argument("--source", default="api", help="api, mongo, or a JSON file path")
    p_agg.add_argument("--month", default=None, help="Month for platform views only, e.g. Aug-25")
    p_agg.add_argument("--metric", choices=METRIC_NAMES, default="volume")
    p_agg.add_argument("--numeric", action="store_true")

    p_kol = sub.add_parser("kol")
    p_kol.add_argument("--source", default="api", help="api, mongo, or a JSON file path")
    p_kol.add_argument("--month", default=None, help="Keep one month, e.g. Jan-26; all months when omitted")
    p_kol.add_argument("--molecule", default=None, help="Defaults to the first molecule present")
    p_kol.add_argument("--numeric", action="store_true")

    p_top = sub.add_parser("top")
    p_top.add_argument("--source", default="api", help="api, mongo, or a JSON file path")
    p_top.add_argument("--search", default=None, help="Substring of post text or author")
    p_top.add_argument("--molecule", default=None)
    p_top.add_argument("--ascending", action="store_true")
    p_top.add_argument("--limit", type=int, default=None)

    return p


def main() -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    load_dotenv()
    args = build_parser().parse_args()
    configure_logging(Path("logs/pipeline.log"), level=logging.DEBUG if args.verbose else logging.INFO)

    if args.cmd == "views":
        cmd_views(args)
    elif args.cmd == "fetch":
        cmd_fetch(args)
    elif args.cmd == "aggregate":
        cmd_aggregate(args)
    elif args.cmd == "kol":
        cmd_kol(args)
    elif args.cmd == "top":
        cmd_top(args)
    else:
        raise SystemExit(2)


if __name__ == "__main__":
    main()

"""Command-line interface for running filters and reports over CRM records.

Provides subcommands: `filter`, `report` and `sources`. Each command is
implemented as a `cmd_*` function that accepts an argparse namespace and
prints JSON (or a text table) to stdout.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from crm_reports.config import get_settings
from crm_reports.logging_config import configure_logging
from crm_reports.db import get_client, get_db, load_label_tables, load_records

# FILTER
from crm_reports.filters.engine import apply_filter_logic

# REPORT
from crm_reports.reports.formatting import points_to_frame
from crm_reports.reports.pipeline import compute_report
from crm_reports.reports.sources import (
    DATA_SOURCES,
    GROUP_LABELS,
    METRIC_LABELS,
    default_group_by,
    default_metric,
)

log = logging.getLogger(__name__)


# --------------------------------------------------
# Helpers
# --------------------------------------------------
def _read_json(path: Path, parser: argparse.ArgumentParser) -> Any:
    """Read a JSON file or exit with a usage error."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        parser.error(f"cannot read {path}: {exc}")


def _records_from_file(data: Any, source: str | None) -> list[dict[str, Any]]:
    """Accept a bare list of records, or an object keyed by data source."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and source and isinstance(data.get(source), list):
        return data[source]
    return []


def _parse_where(items: list[str], parser: argparse.ArgumentParser) -> dict[str, str]:
    equals: dict[str, str] = {}
    for item in items:
        field, sep, value = item.partition("=")
        if not sep or not field.strip():
            parser.error(f"--where expects field=value, got {item!r}")
        equals[field.strip()] = value.strip()
    return equals


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


# --------------------------------------------------
# FILTER
# --------------------------------------------------
def cmd_filter(args: argparse.Namespace) -> None:
    """Apply a filter tree (JSON file) to a record file and print the matches.

    Args:
        args: argparse namespace with `records`, `filter` and `parser`.
    """
    records = _records_from_file(_read_json(args.records, args.parser), args.collection)
    group = _read_json(args.filter, args.parser) if args.filter else None

    matches = apply_filter_logic(records, group)
    log.info("Filter matched %d of %d records", len(matches), len(records))
    _print_json(matches)


# --------------------------------------------------
# REPORT
# --------------------------------------------------
def cmd_report(args: argparse.Namespace) -> None:
    """Compute a report for one data source and print its points.

    Records come from `--records FILE` or, with `--mongo`, from the
    collection named after the data source.
    """
    source = DATA_SOURCES[args.source]
    labels: dict[str, Any] = {}

    if args.mongo:
        s = get_settings()
        if not s.mongo_uri:
            args.parser.error("--mongo requires MONGO_URI to be set")
        client = get_client(s.mongo_uri)
        db = get_db(client, s.mongo_db)
        records = load_records(db[args.source])
        labels = load_label_tables(db)
    elif args.records is not None:
        records = _records_from_file(_read_json(args.records, args.parser), args.source)
    else:
        args.parser.error("report needs --records FILE or --mongo")

    if args.labels is not None:
        labels.update(_read_json(args.labels, args.parser))

    filters = {
        "date_range": {"start": args.start, "end": args.end},
        "equals": _parse_where(args.where, args.parser),
    }
    group_by = args.group_by or default_group_by(source)
    metric = args.metric or default_metric(source)

    points = compute_report(records, filters, group_by, metric, labels, source)

    if args.format == "table":
        df = points_to_frame(points, metric)
        print(df[["name", "display"]].to_string(index=False) if not df.empty else "No data.")
    else:
        _print_json([p.model_dump() for p in points])


# --------------------------------------------------
# SOURCES
# --------------------------------------------------
def cmd_sources(_: argparse.Namespace) -> None:
    """Print the configured data sources with their group-bys and metrics."""
    _print_json(
        {
            name: {
                "date_field": cfg.date_field,
                "group_by": {f: GROUP_LABELS.get(f, f) for f in cfg.groupable_fields},
                "metrics": {m: METRIC_LABELS.get(m, m) for m in cfg.metrics},
                "filters": [f.field for f in cfg.filter_fields],
            }
            for name, cfg in DATA_SOURCES.items()
        }
    )


# --------------------------------------------------
# CLI
# --------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    """Build and return the top-level argument parser for the CLI.

    The returned parser has subcommands `filter`, `report` and `sources`.

    Returns:
        Configured argparse.ArgumentParser instance.
    """
    p = argparse.ArgumentParser(prog="crm-reports")
    sub = p.add_subparsers(dest="cmd", required=True)

    p_filter = sub.add_parser("filter")
    p_filter.add_argument("--records", type=Path, required=True)
    p_filter.add_argument("--filter", type=Path, default=None)
    p_filter.add_argument("--collection", default=None)
    p_filter.set_defaults(func=cmd_filter, parser=p_filter)

    p_report = sub.add_parser("report")
    p_report.add_argument("--source", choices=sorted(DATA_SOURCES), default="donations")
    p_report.add_argument("--group-by", default=None)
    p_report.add_argument("--metric", default=None)
    p_report.add_argument("--records", type=Path, default=None)
    p_report.add_argument("--mongo", action="store_true")
    p_report.add_argument("--labels", type=Path, default=None)
    p_report.add_argument("--start", default=None)
    p_report.add_argument("--end", default=None)
    p_report.add_argument("--where", action="append", default=[])
    p_report.add_argument("--format", choices=["json", "table"], default="json")
    p_report.set_defaults(func=cmd_report, parser=p_report)

    p_sources = sub.add_parser("sources")
    p_sources.set_defaults(func=cmd_sources, parser=p_sources)

    return p


def main(argv: list[str] | None = None) -> None:
    """CLI entry point: parse args, configure logging and dispatch commands."""
    s = get_settings()
    # stdout carries the command output
    configure_logging(Path("logs/crm_reports.log"), level=s.log_level, stream=sys.stderr)

    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()

"""Diagnose one subscription from a snapshot file.

Usage::

    python -m scripts.diagnose --snapshot snapshot.yaml --subscription 42
    python -m scripts.diagnose --snapshot snapshot.json --subscription 42 --format console
    python -m scripts.diagnose --snapshot snapshot.yaml --subscription 42 --timeline

The snapshot is a YAML (or JSON) document with ``subscriptions``,
``orders`` and ``scheduled_jobs`` sections; see ``SnapshotSource.from_dict``.
Exit status is 0 for a healthy subscription, 1 when findings exist and 2
when the snapshot or subscription cannot be loaded.
"""

from __future__ import annotations

import argparse
import json
import sys

from src.core.config import load_settings
from src.core.logging import setup_logging
from src.core.types import ReportStatus
from src.engine.engine import DiagnosticsEngine
from src.report.formatters import format_report, report_to_dict, timeline_to_dict
from src.sources.exceptions import SnapshotFormatError, SubscriptionNotFoundError
from src.sources.snapshot import SnapshotSource


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Diagnose why a subscription deviates from its billing schedule.",
    )
    parser.add_argument(
        "--snapshot",
        required=True,
        help="Path to a YAML or JSON snapshot of host records",
    )
    parser.add_argument(
        "--subscription",
        type=int,
        required=True,
        help="Subscription id to analyze",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to settings YAML (default: config/settings.yaml)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Log level override (default: from settings)",
    )
    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="json",
        help="Output format (default: json)",
    )
    parser.add_argument(
        "--timeline",
        action="store_true",
        help="Print the merged timeline instead of the report",
    )
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    settings = load_settings(args.config)
    setup_logging(level=args.log_level)

    try:
        source = SnapshotSource.from_file(args.snapshot)
    except SnapshotFormatError as exc:
        print(f"Cannot load snapshot: {exc}", file=sys.stderr)
        return 2

    engine = DiagnosticsEngine(source, config=settings.diagnostics)

    try:
        if args.timeline:
            timeline = engine.build_timeline(args.subscription)
            if args.format == "json":
                print(json.dumps(timeline_to_dict(timeline), indent=2))
            else:
                for event in timeline.events:
                    print(f"{event.timestamp_str}  [{event.status.value:<7}] {event.title}")
            return 0

        report = engine.assemble_report(args.subscription)
    except SubscriptionNotFoundError as exc:
        print(str(exc), file=sys.stderr)
        return 2

    if args.format == "json":
        print(json.dumps(report_to_dict(report), indent=2))
    else:
        print("\n".join(format_report(report)))

    return 0 if report.status == ReportStatus.HEALTHY else 1


def main(argv: list[str] | None = None) -> None:
    sys.exit(run(parse_args(argv)))


if __name__ == "__main__":
    main()

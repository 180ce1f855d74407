from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime

from accountease.application.container import build_container
from accountease.config import get_app_paths, load_settings
from accountease.domain.errors import AppError
from accountease.domain.models import REPORT_TYPES, TIMEFRAMES
from accountease.logging_config import setup_logging

log = logging.getLogger(__name__)


def _parse_day(value: str) -> datetime:
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO date: {value}") from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="accountease", description="AccountEase bookkeeping reports")
    parser.add_argument("--owner", required=True, help="owner id whose records are read")
    parser.add_argument("--token", help="bearer token for the hosted record store")
    sub = parser.add_subparsers(dest="command", required=True)

    report = sub.add_parser("report", help="generate reports and print their summaries")
    report.add_argument("--type", choices=REPORT_TYPES, action="append", dest="types")
    report.add_argument("--timeframe", choices=TIMEFRAMES, default="monthly")
    report.add_argument("--start", type=_parse_day)
    report.add_argument("--end", type=_parse_day)
    report.add_argument("--export", help="write the first generated report to this .xlsx path")

    sub.add_parser("reconcile", help="rebuild item quantities from the movement history")
    return parser


def _summary_payload(report) -> dict:
    s = report.summary
    return {
        "type": report.type,
        "title": report.title,
        "count": s.count,
        "total": s.total_amount,
        "average": s.average_amount,
        "previous_period_change": round(s.previous_period_change, 2),
        "formatted_total": s.formatted_total,
    }


def run(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "report" and args.timeframe != "custom" and (args.start or args.end):
        parser.error("--start/--end require --timeframe custom")
    settings = load_settings()
    setup_logging(get_app_paths().logs_dir, level=settings.log_level)

    try:
        container = build_container(settings)
        container.session.sign_in(args.owner, token=args.token)

        if args.command == "report":
            container.filters.set_timeframe(args.timeframe, start=args.start, end=args.end)
            batch = container.reporting.generate_reports(types=args.types or REPORT_TYPES)
            out = {
                "reports": [_summary_payload(r) for r in batch.reports.values()],
                "errors": batch.errors,
            }
            print(json.dumps(out, ensure_ascii=False, indent=2))
            if args.export and batch.reports:
                first = next(iter(batch.reports.values()))
                container.reporting.export_report_excel(first, args.export)
            return 0 if batch.ok else 1

        if args.command == "reconcile":
            for item in container.inventory.list_items():
                fixed = container.inventory.reconcile_item(item.id)
                print(f"{fixed.sku}\t{fixed.quantity:g}\t{fixed.total_amount:.2f}")
            return 0
    except AppError as exc:
        log.error("command_failed command=%s error=%s", args.command, exc)
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


def main() -> None:
    sys.exit(run())


if __name__ == "__main__":
    main()

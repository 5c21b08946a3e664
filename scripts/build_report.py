import argparse
import asyncio
import sys
from pathlib import Path

from threatfeed.core.errors import EmptyReportError
from threatfeed.core.observability import configure_logging
from threatfeed.services.pipeline import fetch_all_threats
from threatfeed.services.reports import MONTHLY_REPORT, WEEKLY_REPORT, build_report_for, report_filename

REPORTS = {spec.slug: spec for spec in (WEEKLY_REPORT, MONTHLY_REPORT)}


def write_report(kind: str, output: Path | None = None) -> Path:
    spec = REPORTS[kind]
    run = asyncio.run(fetch_all_threats())
    pdf = build_report_for(spec, run.items)

    target = output or Path(report_filename(spec.title))
    if target.is_dir():
        target = target / report_filename(spec.title)
    target.write_bytes(pdf)
    return target


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Aggregate threat news and write a PDF report")
    parser.add_argument("--kind", choices=sorted(REPORTS), default="weekly", help="Report window to build")
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="File or directory to write to (defaults to the report filename in the working directory)",
    )
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL for this run")
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    try:
        path = write_report(args.kind, args.output)
    except EmptyReportError as exc:
        print(exc.message, file=sys.stderr)
        return 1
    print(f"Report written: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

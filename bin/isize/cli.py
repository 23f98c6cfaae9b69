"""CLI entry point for bam-isize: insert-size summary and distribution plot."""
from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from isize.config import ConfigurationError, ScanConfig, load_config
from isize.models import AlignmentRecord, InsertSizeAggregates, InsertSizeSummary
from isize.plot import RenderError, pic_format, render_distribution
from isize.reader import BamReader, DecodeError
from isize.stats import NoDataError, accept, finalize, normalize


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bam-isize",
        description="Insert-size statistics and distribution plot for properly paired BAM reads.",
    )
    parser.add_argument("bam", type=Path, help="Input BAM file")
    parser.add_argument(
        "-o", "--output", dest="pic", type=Path, required=True,
        help="Output picture path, .svg or .png",
    )
    parser.add_argument(
        "-m", "--max-insert", dest="upper", type=int, default=None,
        help="Maximum insert size to record (default: 500). Bigger values cost more memory.",
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None,
        help="TOML file with [scan] and [plot] settings",
    )
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress progress messages")
    return parser


def _progress(message: str, quiet: bool) -> None:
    if not quiet:
        print(f"[isize] {message}", file=sys.stderr)


def run(bam: Path, pic: Path, config: ScanConfig, quiet: bool = False) -> InsertSizeSummary:
    """Scan ``bam``, write the distribution chart to ``pic``, return the summary."""
    fmt = pic_format(pic)

    aggregates = InsertSizeAggregates(upper=config.upper)
    record = AlignmentRecord()
    with BamReader.from_path(bam) as reader:
        _progress(f"Skipped header and {reader.n_ref} reference(s) in {bam}", quiet)
        while reader.read_into(record):
            accept(record, aggregates)
        _progress(
            f"Scanned {reader.records_read} records: {aggregates.all_count} qualifying pairs, "
            f"{aggregates.count} with insert size <= {aggregates.upper}",
            quiet,
        )

    summary = finalize(aggregates)
    render_distribution(normalize(aggregates), pic, fmt, config.plot)
    _progress(f"Wrote {fmt.value.upper()} distribution to {pic}", quiet)
    return summary


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        pic_format(args.pic)
        config = load_config(args.config, upper=args.upper)
    except ConfigurationError as exc:
        print(f"[isize] Error: {exc}", file=sys.stderr)
        return 2

    try:
        summary = run(args.bam, args.pic, config, quiet=args.quiet)
    except (DecodeError, NoDataError, RenderError, OSError) as exc:
        print(f"[isize] Error: {exc}", file=sys.stderr)
        return 1

    print(json.dumps(summary.to_dict(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())

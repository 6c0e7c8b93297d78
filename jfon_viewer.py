"""jfon-viewer: read a jfon event log and print its timeline."""

from __future__ import annotations

import argparse
import json
import logging
import pathlib
import sys
from typing import Optional

from jfon.log_filters import filter_by_labels, filter_by_time_range
from jfon.log_loader import Events, LogFormatError, LogReadError, load_log_from_path
from jfon.timeline_analysis import build_timeline_payload, compute_label_summary, compute_overview

DEFAULT_LOG_PATH = pathlib.Path("out/7874.jfon")
LOG_NAME = "jfon_viewer"
LOG_FILE_PATH = pathlib.Path.cwd() / "jfon_viewer.log"


def configure_logging(log_file: pathlib.Path = LOG_FILE_PATH) -> logging.Logger:
    logger = logging.getLogger(LOG_NAME)
    if not logger.handlers:
        logger.setLevel(logging.INFO)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)
        logger.propagate = False
        logger.info("Logging initialised. Writing to %s", log_file)
    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jfon-viewer",
        description="Show the events of a jfon log as timeline bars grouped by label.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        type=pathlib.Path,
        default=DEFAULT_LOG_PATH,
        help="Path to the jfon log (default: %(default)s)",
    )
    parser.add_argument(
        "--label",
        action="append",
        dest="labels",
        help="Only show events with this label (repeatable)",
    )
    parser.add_argument("--start", type=int, help="Hide events ending before this normalized time")
    parser.add_argument("--end", type=int, help="Hide events starting after this normalized time")
    parser.add_argument(
        "--output",
        choices=["text", "json"],
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--skip-inverted",
        action="store_true",
        help="Drop events whose end precedes their start instead of failing",
    )
    parser.add_argument(
        "--log-file",
        type=pathlib.Path,
        default=LOG_FILE_PATH,
        help="Where to write the application log (default: %(default)s)",
    )
    return parser


def select_events(events: Events, args: argparse.Namespace) -> Events:
    if args.labels:
        events = filter_by_labels(events, args.labels)
    if args.start is not None or args.end is not None:
        events = filter_by_time_range(events, start=args.start, end=args.end)
    return events


def format_text(events: Events) -> str:
    overview = compute_overview(events)
    lines = [f"{key.replace('_', ' ')}: {value}" for key, value in overview.items()]
    lines.append("")
    lines.append(compute_label_summary(events).to_string(index=False))
    bars = events.to_dataframe()
    if not bars.empty:
        lines.append("")
        lines.append(bars.to_string(index=False))
    return "\n".join(lines)


def run(args: argparse.Namespace, logger: logging.Logger) -> int:
    logger.info("Loading log from %s", args.file)
    try:
        events = load_log_from_path(args.file, skip_inverted=args.skip_inverted)
    except LogReadError as exc:
        logger.error("Failed to read %s: %s", args.file, exc)
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except LogFormatError as exc:
        logger.warning("Log %s rejected: %s", args.file, exc)
        print(f"Error in {args.file}: {exc}", file=sys.stderr)
        return 1

    selected = select_events(events, args)
    logger.info("Showing %d of %d events.", len(selected), len(events))

    if args.output == "json":
        print(json.dumps(build_timeline_payload(selected, labels=args.labels), indent=2))
    else:
        print(format_text(selected))
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        logger = configure_logging(args.log_file)
    except OSError as exc:
        print(f"Error: cannot write application log {args.log_file}: {exc.strerror or exc}", file=sys.stderr)
        return 1
    try:
        return run(args, logger)
    except KeyboardInterrupt:
        return 130
    except BrokenPipeError:
        return 0


if __name__ == "__main__":
    sys.exit(main())

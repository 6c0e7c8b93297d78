#!/usr/bin/env python
"""
Export the timeline bars of a jfon log as JSON.

Usage:
    python scripts/export_timeline.py --input out/7874.jfon --output runtime/timeline.json

The resulting JSON contains the label rows, one bar per event and summary metadata.
"""

from __future__ import annotations

import argparse
import json
import pathlib
import sys
from typing import Optional

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from jfon.log_loader import LogFormatError, LogReadError, load_log_from_path  # noqa: E402
from jfon.timeline_analysis import build_timeline_payload  # noqa: E402


def export_timeline(
    input_path: pathlib.Path,
    output_path: pathlib.Path,
    *,
    labels: Optional[list[str]] = None,
    skip_inverted: bool = False,
) -> None:
    try:
        events = load_log_from_path(input_path, skip_inverted=skip_inverted)
    except LogReadError as exc:
        raise SystemExit(f"Failed to read log: {exc}") from exc
    except LogFormatError as exc:
        raise SystemExit(f"Failed to load log: {exc}") from exc

    payload = build_timeline_payload(events, labels=labels)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(f"Wrote timeline payload to {output_path}")


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export jfon timeline bars as JSON.")
    parser.add_argument("--input", required=True, type=pathlib.Path, help="Path to the source .jfon log.")
    parser.add_argument("--output", required=True, type=pathlib.Path, help="Destination JSON file.")
    parser.add_argument("--label", action="append", dest="labels", help="Only export this label (repeatable).")
    parser.add_argument(
        "--skip-inverted",
        action="store_true",
        help="Drop events whose end precedes their start instead of failing.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    export_timeline(args.input, args.output, labels=args.labels, skip_inverted=args.skip_inverted)


if __name__ == "__main__":
    main()

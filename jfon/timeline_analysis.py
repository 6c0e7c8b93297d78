from __future__ import annotations

import logging
import statistics
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .log_loader import Events

LOGGER = logging.getLogger("jfon_viewer").getChild("analysis")

LABEL_SUMMARY_COLUMNS = ["label", "events", "open_ended", "first_start", "last_end", "total_duration", "mean_duration"]


def compute_overview(events: Events) -> Dict[str, Any]:
    durations = [event.span.duration for event in events.events]
    overview = {
        "events": len(events.events),
        "labels": len(events.labels),
        "open_ended": sum(1 for event in events.events if event.open_ended),
        "extent": max((event.span.end for event in events.events), default=0),
        "median_duration": statistics.median(durations) if durations else "n/a",
        "mean_duration": round(statistics.mean(durations), 2) if durations else "n/a",
    }
    if events.faults:
        overview["skipped_faults"] = len(events.faults)
    return overview


def compute_label_summary(events: Events) -> pd.DataFrame:
    """
    Per-label totals over the reconstructed events, one row per label.

    Labels that were seen in the log but produced no event are listed with
    zero events so the table covers the whole label set.
    """
    df = events.to_dataframe()
    if df.empty:
        summary = pd.DataFrame(columns=LABEL_SUMMARY_COLUMNS[1:], index=pd.Index([], name="label"))
    else:
        summary = df.groupby("label").agg(
            events=("id", "size"),
            open_ended=("open_ended", "sum"),
            first_start=("start", "min"),
            last_end=("end", "max"),
            total_duration=("duration", "sum"),
            mean_duration=("duration", "mean"),
        )
    missing = sorted(events.labels - set(summary.index))
    if missing:
        empty_rows = pd.DataFrame(
            {"events": 0, "open_ended": 0}, index=pd.Index(missing, name="label")
        ).reindex(columns=LABEL_SUMMARY_COLUMNS[1:])
        summary = empty_rows if summary.empty else pd.concat([summary, empty_rows])
    summary = summary.sort_index().reset_index().rename(columns={"index": "label"})
    for column in ("events", "open_ended", "total_duration"):
        summary[column] = summary[column].fillna(0).astype("int64")
    # labels without events have no first start or last end
    for column in ("first_start", "last_end"):
        summary[column] = summary[column].astype("Int64")
    summary["mean_duration"] = summary["mean_duration"].astype(float).round(2)
    return summary[LABEL_SUMMARY_COLUMNS]


def build_timeline_payload(events: Events, labels: Optional[Iterable[str]] = None) -> Dict[str, Any]:
    """
    Lay the events out as horizontal bars, one row per label.

    Rows are ordered alphabetically. When `labels` is given only those rows
    (and their bars) are included.
    """
    row_labels = sorted(events.labels if labels is None else set(labels) & events.labels)
    row_index = {label: idx for idx, label in enumerate(row_labels)}

    bars: List[Dict[str, Any]] = []
    for event in events.events:
        row = row_index.get(event.label)
        if row is None:
            continue
        bars.append(
            {
                "label": event.label,
                "id": event.id,
                "name": str(event.id),
                "row": row,
                "start": event.span.start,
                "end": event.span.end,
                "duration": event.span.duration,
                "open_ended": event.open_ended,
            }
        )

    LOGGER.info("Timeline payload built: %d rows, %d bars.", len(row_labels), len(bars))
    return {
        "rows": row_labels,
        "bars": bars,
        "metadata": {
            "events": len(bars),
            "rows": len(row_labels),
            "extent": max((bar["end"] for bar in bars), default=0),
        },
    }

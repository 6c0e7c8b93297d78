from __future__ import annotations

from typing import Iterable, Optional

from .log_loader import Events


def filter_by_labels(events: Events, labels: Iterable[str]) -> Events:
    wanted = set(labels)
    return events.with_events(event for event in events.events if event.label in wanted)


def filter_by_time_range(events: Events, start: Optional[int] = None, end: Optional[int] = None) -> Events:
    """Keep events whose bar overlaps `[start, end]` on the normalized time axis."""
    subset = events.events
    if start is not None:
        subset = tuple(event for event in subset if event.span.end >= start)
    if end is not None:
        subset = tuple(event for event in subset if event.span.start <= end)
    return events.with_events(subset)

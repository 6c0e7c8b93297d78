from __future__ import annotations

import logging
import pathlib
import re
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

import pandas as pd

LOGGER = logging.getLogger("jfon_viewer").getChild("loader")

DEFAULT_DURATION = 1000
U32_MAX = 2**32 - 1
U64_MAX = 2**64 - 1

ACTION_START = "start"
ACTION_END = "end"

_UNSIGNED_PATTERN = re.compile(r"\+?[0-9]+")

Accumulator = Dict[Tuple[str, int], List[Optional[int]]]


class LogFormatError(Exception):
    """Raised when the content of a jfon log cannot be turned into events."""


class LogSyntaxError(LogFormatError):
    """A participating line is missing a field or holds a malformed integer."""

    def __init__(self, line: int, detail: str = "syntax error"):
        self.line = line
        self.detail = detail
        super().__init__(f"line {line}: {detail}")


class InvalidActionError(LogFormatError):
    """The action field is present but is neither `start` nor `end`."""

    def __init__(self, line: int, token: str):
        self.line = line
        self.token = token
        super().__init__(f"line {line}: invalid action {token!r}")


class ReconstructionFault(LogFormatError):
    """An entry recorded an end earlier than its start."""

    def __init__(self, label: str, seqno: int, start: int, end: int):
        self.label = label
        self.seqno = seqno
        self.start = start
        self.end = end
        super().__init__(f"{label}:{seqno} ends at {end} before it starts at {start}")


class LogReadError(Exception):
    """Raised when the log bytes cannot be obtained or decoded."""


@dataclass(frozen=True)
class Timespan:
    start: int
    duration: int

    @property
    def end(self) -> int:
        return self.start + self.duration


@dataclass(frozen=True)
class Event:
    label: str
    id: int
    span: Timespan
    open_ended: bool = False


@dataclass(frozen=True)
class Events:
    """
    Result of a parse: events ordered by normalized start plus every label seen.

    `faults` is only populated when reconstruction ran with `skip_inverted=True`.
    """

    events: Tuple[Event, ...] = ()
    labels: FrozenSet[str] = frozenset()
    faults: Tuple[ReconstructionFault, ...] = field(default=(), compare=False)

    def __len__(self) -> int:
        return len(self.events)

    def __iter__(self):
        return iter(self.events)

    def with_events(self, events: Iterable[Event]) -> "Events":
        """Copy of this result holding a different event subset, same labels and faults."""
        return Events(events=tuple(events), labels=self.labels, faults=self.faults)

    def to_dataframe(self) -> pd.DataFrame:
        rows = [
            {
                "label": event.label,
                "id": event.id,
                "start": event.span.start,
                "duration": event.span.duration,
                "end": event.span.end,
                "open_ended": event.open_ended,
            }
            for event in self.events
        ]
        columns = ["label", "id", "start", "duration", "end", "open_ended"]
        return pd.DataFrame(rows, columns=columns)


def _parse_unsigned(token: Optional[str], limit: int) -> Optional[int]:
    if token is None or not _UNSIGNED_PATTERN.fullmatch(token):
        return None
    value = int(token)
    if value > limit:
        return None
    return value


def _iter_lines(text: str) -> Iterable[Tuple[int, str]]:
    pieces = text.split("\n")
    if pieces and pieces[-1] == "":
        pieces.pop()
    for line_no, line in enumerate(pieces):
        yield line_no, line[:-1] if line.endswith("\r") else line


def parse_log_text(text: str) -> Tuple[Accumulator, FrozenSet[str]]:
    """
    Accumulate `(label, seqno) -> [start, end]` pairs from jfon log text.

    Lines without a `:` are ignored. The first malformed line raises and
    nothing accumulated so far is returned.
    """
    accumulator: Accumulator = {}
    labels: set[str] = set()

    for line_no, line in _iter_lines(text):
        label, separator, rest = line.partition(":")
        if not separator:
            continue
        labels.add(label)

        fields = rest.split(",", 3)
        seqno = _parse_unsigned(fields[0], U32_MAX)
        if seqno is None:
            raise LogSyntaxError(line_no, f"invalid sequence number {fields[0]!r}")

        if len(fields) < 2:
            raise LogSyntaxError(line_no, "missing action")
        action = fields[1]
        if action not in (ACTION_START, ACTION_END):
            raise InvalidActionError(line_no, action)

        raw_timestamp = fields[2] if len(fields) > 2 else None
        timestamp = _parse_unsigned(raw_timestamp, U64_MAX)
        if timestamp is None:
            detail = "missing timestamp" if raw_timestamp is None else f"invalid timestamp {raw_timestamp!r}"
            raise LogSyntaxError(line_no, detail)

        slot = 0 if action == ACTION_START else 1
        entry = accumulator.setdefault((label, seqno), [None, None])
        if entry[slot] is not None:
            LOGGER.debug("Line %d overwrites %s of %s:%d (%d -> %d)", line_no, action, label, seqno, entry[slot], timestamp)
        entry[slot] = timestamp

    return accumulator, frozenset(labels)


def reconstruct_events(
    accumulator: Accumulator,
    labels: Iterable[str],
    *,
    skip_inverted: bool = False,
) -> Events:
    """
    Turn accumulated start/end pairs into normalized, start-ordered events.

    Entries without a start are dropped. An entry whose end precedes its start
    raises `ReconstructionFault` unless `skip_inverted` is set, in which case it
    is dropped and recorded on the result.
    """
    starts = [start for start, _ in accumulator.values() if start is not None]
    min_start = min(starts, default=0)

    events: List[Event] = []
    faults: List[ReconstructionFault] = []
    for (label, seqno), (start, end) in accumulator.items():
        if start is None:
            continue
        if end is None:
            duration = DEFAULT_DURATION
        elif end < start:
            fault = ReconstructionFault(label, seqno, start, end)
            if not skip_inverted:
                raise fault
            LOGGER.warning("Skipping inverted span: %s", fault)
            faults.append(fault)
            continue
        else:
            duration = end - start
        events.append(
            Event(
                label=label,
                id=seqno,
                span=Timespan(start=start - min_start, duration=duration),
                open_ended=end is None,
            )
        )

    events.sort(key=lambda event: event.span.start)
    return Events(events=tuple(events), labels=frozenset(labels), faults=tuple(faults))


def parse_and_reconstruct(text: str, *, skip_inverted: bool = False) -> Events:
    """Parse jfon log text into an `Events` result, raising `LogFormatError` on bad content."""
    accumulator, labels = parse_log_text(text)
    result = reconstruct_events(accumulator, labels, skip_inverted=skip_inverted)
    LOGGER.info(
        "Parsed %d entries into %d events across %d labels.",
        len(accumulator),
        len(result.events),
        len(result.labels),
    )
    return result


def load_log_from_bytes(file_bytes: bytes, *, skip_inverted: bool = False) -> Events:
    """
    Decode raw file bytes as UTF-8 and parse them.
    """
    try:
        text = file_bytes.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise LogReadError(f"Log is not valid UTF-8 (byte {exc.start})") from exc
    return parse_and_reconstruct(text, skip_inverted=skip_inverted)


def load_log_from_path(path: Union[str, pathlib.Path], *, skip_inverted: bool = False) -> Events:
    path = pathlib.Path(path)
    try:
        file_bytes = path.read_bytes()
    except OSError as exc:
        raise LogReadError(f"Unable to read {path}: {exc.strerror or exc}") from exc
    return load_log_from_bytes(file_bytes, skip_inverted=skip_inverted)

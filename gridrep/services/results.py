"""Normalize iRacing result payloads into a session header and a grid.

The provider's result schema varies by endpoint and version, so every field
is read through an ordered list of :class:`Attempt` objects and the first
non-empty match wins. Everything here is pure and free of I/O.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, Union

PathPart = Union[str, int]

RACE_TYPE_NAME = "RACE"
RACE_TYPE_CODE = 6
_RACE_NAME = re.compile(r"race", re.IGNORECASE)
_ROW_KEYS = ("results", "result_rows", "rows")


def pick_string(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value
    return None


def pick_number(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value)
        except ValueError:
            return None
    else:
        return None
    if isinstance(number, float):
        if not math.isfinite(number):
            return None
        if number.is_integer():
            return int(number)
    return number


def pick_int(value: Any) -> Optional[int]:
    number = pick_number(value)
    return number if isinstance(number, int) else None


def dig(source: Any, path: Sequence[PathPart]) -> Any:
    """Follow ``path`` through nested dicts and lists, ``None`` on any miss."""

    current = source
    for part in path:
        if isinstance(part, int):
            if not isinstance(current, list) or not -len(current) <= part < len(current):
                return None
            current = current[part]
        else:
            if not isinstance(current, dict):
                return None
            current = current.get(part)
        if current is None:
            return None
    return current


@dataclass(frozen=True)
class Attempt:
    """One way of reading a value: a label, a path and a coercion."""

    label: str
    path: Tuple[PathPart, ...]
    coerce: Callable[[Any], Any] = pick_string


@dataclass(frozen=True)
class Match:
    label: str
    value: Any


def first_match(source: Any, attempts: Iterable[Attempt]) -> Optional[Match]:
    """Return the first attempt that yields a usable value."""

    for attempt in attempts:
        value = attempt.coerce(dig(source, attempt.path))
        if value is not None:
            return Match(attempt.label, value)
    return None


def first_value(source: Any, attempts: Iterable[Attempt]) -> Any:
    match = first_match(source, attempts)
    return match.value if match else None


def _attempts(paths: Iterable[Union[str, Tuple[PathPart, ...]]], coerce=pick_string) -> Tuple[Attempt, ...]:
    built = []
    for path in paths:
        parts = (path,) if isinstance(path, str) else tuple(path)
        built.append(Attempt(".".join(str(p) for p in parts), parts, coerce))
    return tuple(built)


START_TIME = _attempts(
    ["start_time", "subsession_start_time", "session_start_time", "startTime"]
)
SERIES_NAME = _attempts(
    ["series_name", ("series", "series_name"), "event_name", "seriesName"]
)
TRACK_NAME = _attempts(
    ["track_name", ("track", "track_name"), ("track", "track_name_full"), "trackName"]
)
SPLIT = _attempts(["split", "split_number"], pick_int)
SOF = _attempts(
    ["event_strength_of_field", "strength_of_field", "sof"], pick_int
)

MEMBER_ID = _attempts(["cust_id", "id"], pick_int)
DISPLAY_NAME = _attempts(["display_name", "name"])
FINISH_POSITION = _attempts(["finish_position", "finish_pos"], pick_int)
CAR_NAME = _attempts(["car_name", "car", ("car", "car_name")])


@dataclass(frozen=True)
class SessionHeader:
    start_time: Optional[str] = None
    series_name: Optional[str] = None
    track_name: Optional[str] = None
    split: Optional[int] = None
    sof: Optional[int] = None


@dataclass(frozen=True)
class Participant:
    member_id: str
    display_name: str
    finish_pos: Optional[int] = None
    car_name: Optional[str] = None


@dataclass(frozen=True)
class ExtractedResult:
    header: SessionHeader
    participants: List[Participant] = field(default_factory=list)


def extract_session_header(payload: Any) -> SessionHeader:
    return SessionHeader(
        start_time=first_value(payload, START_TIME),
        series_name=first_value(payload, SERIES_NAME),
        track_name=first_value(payload, TRACK_NAME),
        split=first_value(payload, SPLIT),
        sof=first_value(payload, SOF),
    )


def pick_rows(block: Any) -> List[Any]:
    for key in _ROW_KEYS:
        rows = dig(block, (key,))
        if isinstance(rows, list):
            return rows
    return []


def _is_race_by_name(block: Any) -> bool:
    name = dig(block, ("simsession_type_name",))
    return isinstance(name, str) and name.strip().upper() == RACE_TYPE_NAME


def _is_race_by_code(block: Any) -> bool:
    return pick_int(dig(block, ("simsession_type",))) == RACE_TYPE_CODE


def _is_race_by_fuzzy_name(block: Any) -> bool:
    name = dig(block, ("simsession_name",))
    return isinstance(name, str) and bool(_RACE_NAME.search(name))


RACE_BLOCK_RULES: Tuple[Tuple[str, Callable[[Any], bool]], ...] = (
    ("type_name", _is_race_by_name),
    ("type_code", _is_race_by_code),
    ("fuzzy_name", _is_race_by_fuzzy_name),
)


def select_race_block(blocks: Sequence[Any]) -> List[Any]:
    """Return the rows of the race phase among per-phase result blocks.

    Rules are tried in order over every block; when none matches, or the
    matched block is empty, the first block with rows is used.
    """

    for _label, rule in RACE_BLOCK_RULES:
        chosen = next((block for block in blocks if rule(block)), None)
        if chosen is not None:
            rows = pick_rows(chosen)
            if rows:
                return rows
            break

    for block in blocks:
        rows = pick_rows(block)
        if rows:
            return rows
    return []


def extract_participant(row: Any) -> Optional[Participant]:
    member_id = first_value(row, MEMBER_ID)
    if member_id is None or member_id <= 0:
        return None
    name = first_value(row, DISPLAY_NAME) or f"Driver {member_id}"

    raw_pos = first_value(row, FINISH_POSITION)
    # positions are 0-based in result payloads
    finish_pos = raw_pos + 1 if raw_pos is not None else None

    return Participant(
        member_id=str(member_id),
        display_name=name,
        finish_pos=finish_pos,
        car_name=first_value(row, CAR_NAME),
    )


def extract_participants(payload: Any) -> List[Participant]:
    rows: List[Any] = []
    blocks = dig(payload, ("session_results",))
    if isinstance(blocks, list):
        rows = select_race_block(blocks)
    if not rows:
        rows = pick_rows(payload)

    participants: List[Participant] = []
    seen = set()
    for row in rows:
        participant = extract_participant(row)
        if participant is None or participant.member_id in seen:
            continue
        seen.add(participant.member_id)
        participants.append(participant)
    return participants


def extract_result(payload: Any) -> ExtractedResult:
    return ExtractedResult(
        header=extract_session_header(payload),
        participants=extract_participants(payload),
    )


RECENT_ROWS = (
    Attempt("list", (), lambda value: value if isinstance(value, list) else None),
    *_attempts(["races", "recent_races", "results"], lambda v: v if isinstance(v, list) else None),
)
SUBSESSION_ID = _attempts(["subsession_id", "subsessionId"], pick_int)


def extract_recent_session_ids(payload: Any, limit: int) -> List[str]:
    """Return up to ``limit`` distinct subsession ids from a recent-races payload."""

    rows = first_value(payload, RECENT_ROWS) or []
    ids: List[str] = []
    for row in rows:
        session_id = first_value(row, SUBSESSION_ID)
        if session_id is None:
            continue
        session_id = str(session_id)
        if session_id not in ids:
            ids.append(session_id)
        if len(ids) >= limit:
            break
    return ids


__all__ = [
    "Attempt",
    "ExtractedResult",
    "Match",
    "Participant",
    "SessionHeader",
    "dig",
    "extract_participant",
    "extract_participants",
    "extract_recent_session_ids",
    "extract_result",
    "extract_session_header",
    "first_match",
    "first_value",
    "pick_int",
    "pick_number",
    "pick_rows",
    "pick_string",
    "select_race_block",
]

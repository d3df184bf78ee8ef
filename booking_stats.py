"""Core data processing for meeting-booking statistics.

Parses booking timestamps and computes the counts and rankings shown on the
bookings dashboard.  Used by both the CLI (booking_summary.py) and the web
service (app.py).
"""

from __future__ import annotations

import copy
import csv
import enum
import hashlib
import json
import logging
import os
import re
import threading
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Booking export fields
# ---------------------------------------------------------------------------
MEETING_TYPE_FIELD = "نوع الاجتماع"
DEPARTMENT_FIELD = "الإدارة"
START_FIELD = "من"

TOP_DEPARTMENTS_LIMIT = 5
NO_DATA_LABEL = "لا يوجد"

Booking = Mapping[str, Any]


class MeetingType(enum.Enum):
    """Meeting type values as written in the booking export."""

    INTERNAL = "داخلي"
    EXTERNAL = "خارجي"

    @property
    def label(self) -> str:
        """Legend label used in the meeting type breakdown."""
        return _MEETING_TYPE_LABELS[self]


_MEETING_TYPE_LABELS = {
    MeetingType.INTERNAL: "اجتماعات داخلية",
    MeetingType.EXTERNAL: "اجتماعات خارجية",
}


class Weekday(enum.IntEnum):
    """Days of the week, Sunday first."""

    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def from_datetime(cls, moment: datetime) -> Weekday:
        # datetime.weekday() counts from Monday = 0
        return cls((moment.weekday() + 1) % 7)

    @property
    def label(self) -> str:
        return WEEKDAY_LABELS[self.value]


WEEKDAY_LABELS = (
    "الأحد",
    "الاثنين",
    "الثلاثاء",
    "الأربعاء",
    "الخميس",
    "الجمعة",
    "السبت",
)

# ---------------------------------------------------------------------------
# Timestamp parsing
# ---------------------------------------------------------------------------
_MERIDIEM_REPLACEMENTS = (("م", "PM"), ("ص", "AM"))

_REORDERED_RE = re.compile(r"(\d{1,2}:\d{2}:\d{2})\s*(AM|PM)\s*(\d{4}-\d{2}-\d{2})")

# A parse is only trusted when the text names a year, a month and a day.
_FULL_DATE_RE = re.compile(
    r"\d{4}[-/.]\d{1,2}[-/.]\d{1,2}"
    r"|\d{1,2}[-/.]\d{1,2}[-/.]\d{4}"
    r"|[A-Za-z]{3,}\.?\s+\d{1,2}(?:st|nd|rd|th)?,?\s+\d{4}"
    r"|\d{1,2}\s+[A-Za-z]{3,}\.?,?\s+\d{4}"
)


def _normalize_datetime_text(text: str) -> str:
    """Swap Arabic meridiem markers for AM/PM and slashes for dashes."""
    for glyph, ascii_marker in _MERIDIEM_REPLACEMENTS:
        text = text.replace(glyph, ascii_marker)
    return text.replace("/", "-")


def _parse_generic(text: str) -> datetime | None:
    """Parse *text* with pandas' general-purpose datetime parser.

    Args:
        text: Candidate date/time string.

    Returns:
        A naive or aware ``datetime``, or None if the text does not hold a
        complete calendar date or cannot be parsed.
    """
    if not _FULL_DATE_RE.search(text):
        return None
    try:
        parsed = pd.to_datetime(text)
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    # datetime has no nanoseconds; drop them rather than warn
    return parsed.floor("us").to_pydatetime()


def _parse_normalized(text: str) -> datetime | None:
    """Parse after swapping Arabic meridiem markers and slash separators."""
    return _parse_generic(_normalize_datetime_text(text))


def _parse_reordered(text: str) -> datetime | None:
    """Handle exports that put the time and meridiem before the date.

    ``"03:15:00 م 2024-05-01"`` normalizes to ``"03:15:00 PM 2024-05-01"``,
    which is reassembled as ``"2024-05-01 03:15:00 PM"``.
    """
    match = _REORDERED_RE.search(_normalize_datetime_text(text))
    if match is None:
        return None
    time_part, meridiem, date_part = match.groups()
    return _parse_generic(f"{date_part} {time_part} {meridiem}")


def _parse_raw(text: str) -> datetime | None:
    """Parse the original text, for formats the normalization would break."""
    return _parse_generic(text)


DATETIME_STRATEGIES: tuple[Callable[[str], datetime | None], ...] = (
    _parse_normalized,
    _parse_reordered,
    _parse_raw,
)


def parse_booking_datetime(value: object) -> datetime | None:
    """Parse a booking start timestamp in any of the export's formats.

    Tries each strategy in ``DATETIME_STRATEGIES`` in order and returns the
    first successful result.  Supported inputs include
    ``"2024-05-01 3:15:00 PM"``, ``"03:15:00 م 2024-05-01"`` and
    ``"2024/05/01 15:15:00"``.

    Args:
        value: The raw field value.  Anything that is not a string (including
            None) is treated as unparseable.

    Returns:
        The parsed ``datetime``, or None if no strategy succeeds.  Never
        raises.
    """
    if not isinstance(value, str):
        return None
    for strategy in DATETIME_STRATEGIES:
        parsed = strategy(value)
        if parsed is not None:
            return parsed
    return None


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def count_meeting_types(bookings: Sequence[Booking]) -> dict[str, int]:
    """Count all bookings and the internal/external meeting types.

    Values other than the two known meeting types only count toward the
    total.

    Args:
        bookings: Booking records.

    Returns:
        Dict with keys total_meetings, internal_meetings, external_meetings.
    """
    internal = 0
    external = 0
    for booking in bookings:
        meeting_type = booking.get(MEETING_TYPE_FIELD)
        if meeting_type == MeetingType.INTERNAL.value:
            internal += 1
        elif meeting_type == MeetingType.EXTERNAL.value:
            external += 1
    return {
        "total_meetings": len(bookings),
        "internal_meetings": internal,
        "external_meetings": external,
    }


def compute_weekday_histogram(bookings: Iterable[Booking]) -> dict[Weekday, int]:
    """Count bookings per weekday of their start timestamp.

    Bookings whose start timestamp cannot be parsed are skipped.  Keys appear
    in the order their weekday was first seen.

    Args:
        bookings: Booking records.

    Returns:
        Dict mapping ``Weekday`` to number of bookings starting on that day.
    """
    histogram: dict[Weekday, int] = {}
    for booking in bookings:
        raw = booking.get(START_FIELD)
        started = parse_booking_datetime(raw)
        if started is None:
            logger.debug("Skipping booking with unparseable start time %r", raw)
            continue
        day = Weekday.from_datetime(started)
        histogram[day] = histogram.get(day, 0) + 1
    return histogram


def most_frequent_day(histogram: Mapping[Weekday, int]) -> Weekday | None:
    """Return the weekday with the highest count.

    On ties the first key in the histogram's iteration order wins.

    Args:
        histogram: Weekday counts, e.g. from ``compute_weekday_histogram``.

    Returns:
        The busiest ``Weekday``, or None if the histogram is empty.
    """
    best: Weekday | None = None
    best_count = 0
    for day, count in histogram.items():
        if best is None or count > best_count:
            best, best_count = day, count
    return best


def day_label(day: Weekday | None) -> str:
    """Display label for a weekday, or ``NO_DATA_LABEL`` for None."""
    return NO_DATA_LABEL if day is None else day.label


def rank_departments(
    bookings: Iterable[Booking],
    limit: int = TOP_DEPARTMENTS_LIMIT,
) -> list[tuple[str, int]]:
    """Rank departments by number of bookings.

    Bookings with an absent or empty department are skipped.  Departments
    with equal counts keep the order in which they were first seen.

    Args:
        bookings: Booking records.
        limit: Maximum number of departments to return.

    Returns:
        List of (department, count) tuples sorted descending by count.
    """
    counts: dict[str, int] = {}
    for booking in bookings:
        department = booking.get(DEPARTMENT_FIELD)
        if not department:
            continue
        department = str(department)
        counts[department] = counts.get(department, 0) + 1
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return ranked[:limit]


def compute_booking_stats(bookings: Sequence[Booking]) -> dict[str, Any]:
    """Compute the full statistics snapshot for a set of bookings.

    Pure function of *bookings*; malformed fields only exclude a booking
    from the metric they feed.

    Args:
        bookings: Booking records.

    Returns:
        Dict with keys:
            - total_meetings, internal_meetings, external_meetings: ints.
            - most_frequent_day: weekday label, or ``NO_DATA_LABEL`` when
              no start time could be parsed.
            - weekday_counts: dict of weekday label to count, all seven
              days in Sunday-first order.
            - top_departments: list of dicts (department, count,
              share_of_top), at most five, descending by count.
              share_of_top is the count as a percentage of the leader's.
            - meeting_types: list of dicts (name, value) for the meeting
              type breakdown.
    """
    counts = count_meeting_types(bookings)
    histogram = compute_weekday_histogram(bookings)

    parsed = sum(histogram.values())
    if bookings and not parsed:
        logger.warning(
            "None of %d bookings had a parseable start time. "
            "The booking export format may have changed.",
            len(bookings),
        )

    ranking = rank_departments(bookings)
    top_count = ranking[0][1] if ranking else 1
    top_departments = [
        {
            "department": department,
            "count": count,
            "share_of_top": round(count / top_count * 100, 1),
        }
        for department, count in ranking
    ]

    return {
        **counts,
        "most_frequent_day": day_label(most_frequent_day(histogram)),
        "weekday_counts": {day.label: histogram.get(day, 0) for day in Weekday},
        "top_departments": top_departments,
        "meeting_types": [
            {"name": MeetingType.INTERNAL.label, "value": counts["internal_meetings"]},
            {"name": MeetingType.EXTERNAL.label, "value": counts["external_meetings"]},
        ],
    }


# ---------------------------------------------------------------------------
# Memoization
# ---------------------------------------------------------------------------

def bookings_fingerprint(bookings: Sequence[Booking]) -> str:
    """Return a stable SHA-256 hex digest of the booking records' content."""
    canonical = json.dumps(
        [dict(b) for b in bookings],
        sort_keys=True,
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class StatsCache:
    """Remembers the stats of the last booking set seen.

    Recomputes only when the content fingerprint of the bookings changes.
    Safe to share between threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._key: str | None = None
        self._stats: dict[str, Any] | None = None

    def get(self, bookings: Sequence[Booking]) -> dict[str, Any]:
        """Return the stats for *bookings*, recomputing only on a content change.

        Each call gets its own copy, so callers may modify the result freely.
        """
        key = bookings_fingerprint(bookings)
        with self._lock:
            if self._stats is not None and key == self._key:
                return copy.deepcopy(self._stats)

        stats = compute_booking_stats(bookings)

        with self._lock:
            self._key = key
            self._stats = stats
        return copy.deepcopy(stats)

    def clear(self) -> None:
        """Forget the cached stats."""
        with self._lock:
            self._key = None
            self._stats = None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def load_bookings(path: str | os.PathLike = "bookings.json") -> list[dict]:
    """Load booking records from a JSON or CSV export.

    Args:
        path: Filesystem path to the export.  Files ending in ``.csv`` are
            read with a header row of field names; anything else is read as
            a JSON list of objects.

    Returns:
        List of booking dicts.

    Raises:
        FileNotFoundError: If the file at *path* does not exist.
        json.JSONDecodeError: If a JSON file contains invalid JSON.
        ValueError: If a JSON file is not a list of objects.
    """
    path = Path(path)
    if path.suffix.lower() == ".csv":
        # utf-8-sig drops the BOM spreadsheet exports tend to add
        with open(path, "r", encoding="utf-8-sig", newline="") as f:
            return list(csv.DictReader(f))

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list) or not all(isinstance(b, dict) for b in data):
        raise ValueError(f"{path} must contain a JSON list of booking objects")
    return data


def build_dashboard_payload(path: str | os.PathLike = "bookings.json") -> dict[str, Any]:
    """One-call entry point: load the export and compute all dashboard stats.

    Args:
        path: Filesystem path to the booking export.

    Returns:
        Dict with keys generated_at (ISO timestamp) and stats (the
        ``compute_booking_stats`` snapshot).

    Raises:
        FileNotFoundError: If the export does not exist.
        json.JSONDecodeError: If the export contains invalid JSON.
        ValueError: If the export is not a list of booking objects.
    """
    bookings = load_bookings(path)
    logger.info("Loaded %d bookings from %s", len(bookings), path)
    return {
        "generated_at": datetime.now().isoformat(),
        "stats": compute_booking_stats(bookings),
    }


# ---------------------------------------------------------------------------
# CLI helpers
# ---------------------------------------------------------------------------

def save_stats_files(
    stats: dict[str, Any],
    output_dir: str = "booking_analytics",
) -> None:
    """Write the stats snapshot to JSON and the department ranking to CSV.

    Creates *output_dir* if needed and writes booking_stats.json and
    top_departments.csv.
    """
    os.makedirs(output_dir, exist_ok=True)

    with open(f"{output_dir}/booking_stats.json", "w", encoding="utf-8") as f:
        json.dump(stats, f, indent=2, ensure_ascii=False)

    with open(f"{output_dir}/top_departments.csv", "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=["department", "count", "share_of_top"])
        writer.writeheader()
        writer.writerows(stats["top_departments"])


def print_summary_report(stats: dict[str, Any]) -> None:
    """Print the CLI summary report to stdout.

    Args:
        stats: Snapshot from ``compute_booking_stats``.
    """
    print(f"\n{'=' * 60}")
    print("Meeting Bookings Summary")
    print(f"{'=' * 60}")
    print(f"Total Meetings: {stats['total_meetings']:,}")
    print(f"Internal Meetings: {stats['internal_meetings']:,}")
    print(f"External Meetings: {stats['external_meetings']:,}")
    print(f"Busiest Day: {stats['most_frequent_day']}")

    if stats["top_departments"]:
        print(f"\nTop {len(stats['top_departments'])} Departments by Bookings:")
        for rank, entry in enumerate(stats["top_departments"], 1):
            print(f"  {rank}. {entry['department']}: {entry['count']:,}")
    else:
        print("\nNo department bookings to rank.")

    print(f"{'=' * 60}")

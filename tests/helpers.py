"""Shared test helpers for booking stats tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

from booking_stats import DEPARTMENT_FIELD, MEETING_TYPE_FIELD, START_FIELD

INTERNAL = "داخلي"
EXTERNAL = "خارجي"


def make_booking(
    meeting_type: str | None = INTERNAL,
    department: str | None = None,
    start: str | None = None,
) -> dict:
    """Build a booking record; fields passed as None are left out.

    Args:
        meeting_type: Value for the meeting type field.
        department: Value for the department field.
        start: Value for the start timestamp field.

    Returns:
        A dict matching the booking export structure.
    """
    booking: dict[str, str] = {"الموضوع": "اجتماع"}
    if meeting_type is not None:
        booking[MEETING_TYPE_FIELD] = meeting_type
    if department is not None:
        booking[DEPARTMENT_FIELD] = department
    if start is not None:
        booking[START_FIELD] = start
    return booking


def make_sunday_bookings() -> list[dict]:
    """Six bookings on Sunday 5 May 2024: 4 internal, 2 external, depts A/B/C."""
    types = [INTERNAL, INTERNAL, EXTERNAL, INTERNAL, INTERNAL, EXTERNAL]
    departments = ["A", "A", "B", "C", "A", "B"]
    starts = [
        "2024-05-05 9:00:00 AM",
        "10:30:00 ص 2024-05-05",
        "2024/05/05 13:00:00",
        "2024-05-05 02:00:00 م",
        "2024-05-05T16:00:00",
        "03:15:00 PM 2024-05-05",
    ]
    return [
        make_booking(t, d, s) for t, d, s in zip(types, departments, starts)
    ]

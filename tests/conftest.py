"""Shared fixtures for booking stats tests."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient


# ── Minimal dashboard payload for app.py tests ──


def _minimal_dashboard_payload() -> dict:
    """Return a minimal payload matching build_dashboard_payload() shape.

    Keys and structure must exactly match the dict returned by
    ``booking_stats.build_dashboard_payload``.
    """
    return {
        "generated_at": "2024-05-05T12:00:00",
        "stats": {
            "total_meetings": 3,
            "internal_meetings": 2,
            "external_meetings": 1,
            "most_frequent_day": "الأحد",
            "weekday_counts": {
                "الأحد": 3, "الاثنين": 0, "الثلاثاء": 0, "الأربعاء": 0,
                "الخميس": 0, "الجمعة": 0, "السبت": 0,
            },
            "top_departments": [
                {"department": "المالية", "count": 2, "share_of_top": 100.0},
                {"department": "الموارد البشرية", "count": 1, "share_of_top": 50.0},
            ],
            "meeting_types": [
                {"name": "اجتماعات داخلية", "value": 2},
                {"name": "اجتماعات خارجية", "value": 1},
            ],
        },
    }


@pytest.fixture()
def mock_payload():
    """Return the minimal dashboard payload dict."""
    return _minimal_dashboard_payload()


@pytest.fixture()
def client(mock_payload):
    """TestClient for app.py with mocked booking data.

    Patches build_dashboard_payload so no bookings.json is needed.
    Resets the module-level caches between tests.
    """
    import app as app_module

    app_module._posted_stats.clear()
    with patch.object(
        app_module, "_cache", {"data": None, "built_at": 0.0}
    ):
        with patch(
            "app.build_dashboard_payload", return_value=mock_payload
        ):
            with TestClient(app_module.app) as tc:
                yield tc

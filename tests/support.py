"""Shared payload builders for the unit tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

# 1x1 PNG
VALID_PNG_BASE64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR42mP8/wIAAgMBApUAAAAASUVORK5CYII="
)
PNG_DATA_URL = f"data:image/png;base64,{VALID_PNG_BASE64}"
OVERSIZED_DATA_URL = "data:image/png;base64," + "A" * (1024 * 1024 * 2)

FIXED_NOW = datetime(2026, 10, 18, 12, 30, 0, tzinfo=timezone.utc)
FIXED_NOW_MS = int(FIXED_NOW.timestamp() * 1000)


def make_submission(**overrides: Any) -> dict[str, Any]:
    submission: dict[str, Any] = {
        "preferredLanguage": "en",
        "firstName": "John",
        "lastName": "Doe",
        "email": "john@example.com",
        "phone": "1234567890",
        "languages": "English",
        "program": "Engineering",
        "rsg1": "ESS",
        "emergencyName": "Jane",
        "emergencyPhone": "0987654321",
        "signatureParticipant": PNG_DATA_URL,
        "fullNameParticipant": "John Doe",
        "dob": "2000-01-01",
    }
    submission.update(overrides)
    return submission


def make_minor_submission(**overrides: Any) -> dict[str, Any]:
    submission = make_submission(
        dob="2015-01-01",
        fullNameParent="Parent Name",
        signatureParent=PNG_DATA_URL,
    )
    submission.update(overrides)
    return submission

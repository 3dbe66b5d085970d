from __future__ import annotations

import pytest

from week_contracts.keys import (
    build_submission_key,
    is_legacy_key,
    key_matches_email,
    legacy_blob_path,
    name_prefix,
    normalize,
    sanitize,
    signature_blob_path,
)


def test_sanitize_replaces_non_alphanumerics() -> None:
    assert sanitize("  Mary-Jane O'Neil ") == "mary_jane_o_neil"
    assert sanitize("john.doe+test@example.com") == "john_doe_test_example_com"


def test_sanitize_keeps_underscore_runs() -> None:
    assert sanitize("J. Doe") == "j__doe"


def test_normalize_collapses_and_strips_underscores() -> None:
    assert normalize("  J.  Doe!! ") == "j_doe"
    assert normalize("First Last") == "first_last"


def test_submission_key_layout() -> None:
    key = build_submission_key("John", "Doe", "John@Example.com", 1760000000123)

    assert key == "john_doe_john_example_com_1760000000123"


def test_name_prefix_matches_key_construction() -> None:
    key = build_submission_key("J.", "Doe", "j@example.com", 1)

    assert key.startswith(name_prefix("J.", "Doe"))


def test_key_matches_email_on_email_segment_only() -> None:
    key = build_submission_key("John", "Doe", "john@example.com", 1760000000123)

    assert key_matches_email(key, "JOHN@example.com")
    assert not key_matches_email(key, "ohn@example.com")
    assert not key_matches_email("submission:abc", "john@example.com")


def test_signature_paths() -> None:
    assert signature_blob_path("john_doe_x_1", "participant") == "john_doe_x_1_participant.png"
    assert signature_blob_path("john_doe_x_1", "parent") == "john_doe_x_1_parent.png"
    assert legacy_blob_path("submission:abc", "parent") == "submission:abc-parent.png"


def test_unknown_signature_role_is_rejected() -> None:
    with pytest.raises(ValueError):
        signature_blob_path("key", "guardian")


def test_legacy_key_detection() -> None:
    assert is_legacy_key("submission:1234")
    assert not is_legacy_key("john_doe_john_example_com_1")

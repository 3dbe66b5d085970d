from __future__ import annotations

import base64
import json

import pytest

from tests.support import (
    FIXED_NOW,
    FIXED_NOW_MS,
    OVERSIZED_DATA_URL,
    VALID_PNG_BASE64,
    make_minor_submission,
    make_submission,
)
from week_contracts.settings import Settings
from week_contracts import submissions
from week_contracts.storage import InMemoryBlobStore, InMemoryKeyValueStore, StorageError
from week_contracts.submissions import handle_submission
from week_contracts.validation import SubmissionRejected

EXPECTED_KEY = f"john_doe_john_example_com_{FIXED_NOW_MS}"


def _submit(payload, kv=None, blobs=None):
    kv = kv if kv is not None else InMemoryKeyValueStore()
    blobs = blobs if blobs is not None else InMemoryBlobStore()
    receipt = handle_submission(payload, kv=kv, blobs=blobs, settings=Settings(), now=FIXED_NOW)
    return receipt, kv, blobs


def test_adult_submission_is_stored() -> None:
    receipt, kv, blobs = _submit(make_submission())

    assert receipt.asdict() == {"ok": True, "id": EXPECTED_KEY}
    record = json.loads(kv.get(EXPECTED_KEY))
    assert record["firstName"] == "John"
    assert "signatureParticipant" not in record
    assert record["signaturePaths"] == {
        "signatureParticipant": f"{EXPECTED_KEY}_participant.png",
        "signatureParent": None,
    }
    assert record["submittedAt"] == "2026-10-18T12:30:00Z"
    assert blobs.get(f"{EXPECTED_KEY}_participant.png") == base64.b64decode(VALID_PNG_BASE64)
    assert blobs.content_type(f"{EXPECTED_KEY}_participant.png") == "image/png"


def test_minor_submission_stores_both_signatures() -> None:
    receipt, _, blobs = _submit(make_minor_submission())

    assert receipt.is_adult is False
    assert blobs.paths() == [f"{EXPECTED_KEY}_parent.png", f"{EXPECTED_KEY}_participant.png"]


def test_text_signature_is_kept_in_record() -> None:
    _, kv, blobs = _submit(make_submission(signatureParticipant="John Doe"))

    record = json.loads(kv.get(EXPECTED_KEY))
    assert record["signatureParticipant"] == "John Doe"
    assert record["signaturePaths"]["signatureParticipant"] is None
    assert blobs.paths() == []


def test_extra_fields_are_stored() -> None:
    _, kv, _ = _submit(make_submission(extraField="extra"))

    assert json.loads(kv.get(EXPECTED_KEY))["extraField"] == "extra"


def test_rejected_submission_writes_nothing() -> None:
    kv = InMemoryKeyValueStore()
    blobs = InMemoryBlobStore()
    payload = make_minor_submission(signatureParent=OVERSIZED_DATA_URL)

    with pytest.raises(SubmissionRejected, match="Parent signature image too large"):
        _submit(payload, kv, blobs)

    assert kv.list_keys() == []
    assert blobs.paths() == []


def test_signature_size_limit_comes_from_settings() -> None:
    settings = Settings(MAX_SIGNATURE_BYTES=16)

    with pytest.raises(SubmissionRejected, match="Participant signature image too large"):
        handle_submission(
            make_submission(),
            kv=InMemoryKeyValueStore(),
            blobs=InMemoryBlobStore(),
            settings=settings,
            now=FIXED_NOW,
        )


def test_key_uses_sanitized_names() -> None:
    receipt, _, _ = _submit(make_submission(firstName=" Mary-Jane ", lastName="O'Neil", email="MJ@Example.org"))

    assert receipt.id == f"mary_jane_o_neil_mj_example_org_{FIXED_NOW_MS}"


def test_failed_record_write_removes_uploaded_blobs() -> None:
    class FailingPut(InMemoryKeyValueStore):
        def put(self, key, value):
            raise StorageError("KV PUT failed")

    kv, blobs = FailingPut(), InMemoryBlobStore()

    with pytest.raises(StorageError, match="KV PUT failed"):
        _submit(make_minor_submission(), kv, blobs)

    assert blobs.paths() == []
    assert kv.list_keys() == []


def test_failed_blob_upload_removes_earlier_blobs() -> None:
    class FailingParent(InMemoryBlobStore):
        def put(self, path, data, *, content_type=None):
            if path.endswith("_parent.png"):
                raise StorageError("R2 put failed")
            super().put(path, data, content_type=content_type)

    kv, blobs = InMemoryKeyValueStore(), FailingParent()

    with pytest.raises(StorageError):
        _submit(make_minor_submission(), kv, blobs)

    assert blobs.paths() == []
    assert kv.list_keys() == []


def test_rejection_log_carries_field_label(monkeypatch) -> None:
    events = []

    class RecordingLogger:
        def info(self, event, **kwargs):
            events.append((event, kwargs))

    monkeypatch.setattr(submissions, "LOGGER", RecordingLogger())

    with pytest.raises(SubmissionRejected):
        _submit(make_submission(email="nope"))

    assert events == [
        (
            "submission.rejected",
            {"reason": "Invalid email format", "field": "email", "label": "Email"},
        )
    ]

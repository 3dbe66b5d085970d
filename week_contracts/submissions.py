"""Form submission handling: validate, derive the key, store blobs and record."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from time import perf_counter
from typing import Any

import structlog

from week_contracts import metrics
from week_contracts.form_rules import FormRules, load_rules
from week_contracts.keys import build_submission_key
from week_contracts.settings import Settings
from week_contracts.signatures import SIGNATURE_FIELDS, split_signatures
from week_contracts.storage.base import BlobStore, KeyValueStore, StorageError
from week_contracts.validation import SubmissionRejected, validate_submission

LOGGER = structlog.get_logger(__name__)


@dataclass(slots=True)
class SubmissionReceipt:
    id: str
    is_adult: bool
    signature_paths: dict[str, str | None] = field(default_factory=dict)

    def asdict(self) -> dict[str, Any]:
        return {"ok": True, "id": self.id}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _discard_blobs(blobs: BlobStore, paths: list[str], *, key: str) -> None:
    """Remove blobs uploaded for a record that was never written."""
    for path in paths:
        try:
            blobs.delete(path)
        except StorageError as exc:
            LOGGER.warning("submission.orphaned_blob", key=key, path=path, error=str(exc))


def handle_submission(
    payload: Any,
    *,
    kv: KeyValueStore,
    blobs: BlobStore,
    settings: Settings,
    rules: FormRules | None = None,
    now: datetime | None = None,
) -> SubmissionReceipt:
    """Validate and persist a single submission.

    Every check runs before the first write; signature blobs are uploaded
    before the record that points at them. If a store write fails, the
    blobs uploaded so far are removed and the StorageError propagates.
    """

    start = perf_counter()
    now = now or _utcnow()
    rules = rules or load_rules(settings.form_rules_path)

    try:
        validated = validate_submission(payload, rules=rules, today=now.date())
        submission = validated.data
        key = build_submission_key(
            submission["firstName"],
            submission["lastName"],
            submission["email"],
            int(now.timestamp() * 1000),
        )
        split = split_signatures(submission, key=key, max_bytes=settings.max_signature_bytes)
    except SubmissionRejected as exc:
        latency_ms = (perf_counter() - start) * 1000
        metrics.observe_submission(latency_ms=latency_ms, accepted=False, field=exc.field)
        LOGGER.info(
            "submission.rejected",
            reason=exc.message,
            field=exc.field,
            label=rules.label(exc.field) if exc.field else None,
        )
        raise

    uploaded: list[str] = []
    record = split.record
    record["submittedAt"] = now.isoformat().replace("+00:00", "Z")
    try:
        for upload in split.uploads:
            blobs.put(upload.path, upload.data, content_type=upload.content_type)
            uploaded.append(upload.path)
            metrics.observe_signature(role=SIGNATURE_FIELDS[upload.field], size=len(upload.data))
        kv.put(key, json.dumps(record))
    except StorageError as exc:
        LOGGER.error("submission.store_failed", key=key, error=str(exc), uploaded=uploaded)
        _discard_blobs(blobs, uploaded, key=key)
        raise

    latency_ms = (perf_counter() - start) * 1000
    metrics.observe_submission(latency_ms=latency_ms, accepted=True)
    LOGGER.info(
        "submission.stored",
        key=key,
        is_adult=validated.is_adult,
        blobs=len(split.uploads),
        latency_ms=latency_ms,
    )

    return SubmissionReceipt(
        id=key,
        is_adult=validated.is_adult,
        signature_paths=split.signature_paths,
    )

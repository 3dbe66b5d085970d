"""Admin operations over stored submissions: lookup, delete, key migration."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from week_contracts import metrics
from week_contracts.keys import (
    LEGACY_KEY_PREFIX,
    build_submission_key,
    is_legacy_key,
    key_matches_email,
    legacy_blob_path,
    name_prefix,
    signature_blob_path,
)
from week_contracts.signatures import PNG_CONTENT_TYPE, SIGNATURE_FIELDS
from week_contracts.storage.base import BlobStore, KeyValueStore, StorageError
from week_contracts.validation import is_blank, is_valid_email

LOGGER = structlog.get_logger(__name__)

DEFAULT_MAX_RESULTS = 50


class LookupRejected(ValueError):
    """The lookup input is neither an email nor a first/last name pair."""


class SubmissionNotFound(LookupError):
    def __init__(self, key: str):
        super().__init__(f"Submission not found: {key}")
        self.key = key


@dataclass(slots=True)
class LookupResult:
    key: str
    data: Any

    def asdict(self) -> dict[str, Any]:
        return {"key": self.key, "data": self.data}


@dataclass(slots=True)
class DeletionReport:
    key: str
    deleted_blobs: list[str] = field(default_factory=list)

    def asdict(self) -> dict[str, Any]:
        return {"ok": True, "key": self.key, "deletedBlobs": self.deleted_blobs}


@dataclass(slots=True)
class BlobMove:
    field: str
    source: str
    target: str


@dataclass(slots=True)
class MigrationMove:
    source: str
    target: str
    blobs: list[BlobMove] = field(default_factory=list)


@dataclass(slots=True)
class MigrationIssue:
    key: str
    reason: str


@dataclass(slots=True)
class MigrationReport:
    dry_run: bool
    migrated: list[MigrationMove] = field(default_factory=list)
    skipped: list[MigrationIssue] = field(default_factory=list)
    failed: list[MigrationIssue] = field(default_factory=list)

    def asdict(self) -> dict[str, Any]:
        return {
            "dryRun": self.dry_run,
            "migrated": [
                {
                    "from": move.source,
                    "to": move.target,
                    "blobs": [{"from": blob.source, "to": blob.target} for blob in move.blobs],
                }
                for move in self.migrated
            ],
            "skipped": [{"key": issue.key, "reason": issue.reason} for issue in self.skipped],
            "failed": [{"key": issue.key, "reason": issue.reason} for issue in self.failed],
        }


def _decode(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError:
        return value


def _matches_rsg(data: Any, rsg: str) -> bool:
    if not isinstance(data, dict):
        return False
    return rsg in (data.get("rsg1"), data.get("rsg2"))


def _same_email(data: Any, email: str) -> bool:
    # Sanitized keys collide ("a@b.co" vs "x.a@b.co"), so parsed records are
    # checked against their own email; only raw values rely on the key.
    if not isinstance(data, dict):
        return True
    stored = data.get("email")
    return isinstance(stored, str) and stored.strip().lower() == email.lower()


def lookup_submissions(
    raw_input: str | None,
    *,
    kv: KeyValueStore,
    limit: int = DEFAULT_MAX_RESULTS,
    rsg: str | None = None,
) -> list[LookupResult]:
    """Find submissions by email or by "First Last".

    At most ``limit`` results are returned; the ``rsg`` filter is applied
    while fetching so matches past the first ``limit`` keys are still found.
    """

    if raw_input is None or not raw_input.strip():
        raise LookupRejected("Missing 'input' query parameter")
    text = raw_input.strip()

    email: str | None = None
    if is_valid_email(text):
        mode = "email"
        email = text
        keys = [key for key in kv.list_keys() if key_matches_email(key, text)]
    else:
        parts = text.split()
        if len(parts) != 2:
            raise LookupRejected("Input must be a valid email or full name")
        mode = "name"
        keys = kv.list_keys(name_prefix(parts[0], parts[1]))

    rsg = (rsg or "").strip()
    results: list[LookupResult] = []
    for key in keys:
        if len(results) >= limit:
            break
        value = kv.get(key)
        if value is None:
            continue
        data = _decode(value)
        if email is not None and not _same_email(data, email):
            continue
        if rsg and not _matches_rsg(data, rsg):
            continue
        results.append(LookupResult(key=key, data=data))

    LOGGER.info("lookup.done", mode=mode, matched=len(keys), returned=len(results))
    return results


def _signature_paths(record: Any) -> dict[str, str]:
    if not isinstance(record, dict):
        return {}
    paths = record.get("signaturePaths")
    if not isinstance(paths, dict):
        return {}
    return {name: path for name, path in paths.items() if isinstance(path, str) and path}


def delete_submission(key: str, *, kv: KeyValueStore, blobs: BlobStore) -> DeletionReport:
    """Delete a record and every signature blob it references."""

    value = kv.get(key)
    if value is None:
        raise SubmissionNotFound(key)

    report = DeletionReport(key=key)
    for path in _signature_paths(_decode(value)).values():
        blobs.delete(path)
        report.deleted_blobs.append(path)
    kv.delete(key)

    LOGGER.info("submission.deleted", key=key, blobs=len(report.deleted_blobs))
    return report


def _timestamp_ms(value: Any, fallback: datetime) -> int:
    moment = fallback
    if isinstance(value, str) and value:
        try:
            moment = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            moment = fallback
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(moment.timestamp() * 1000)


def _plan_move(key: str, record: dict[str, Any], now: datetime) -> MigrationMove:
    target = build_submission_key(
        str(record["firstName"]),
        str(record["lastName"]),
        str(record["email"]),
        _timestamp_ms(record.get("submittedAt"), now),
    )
    paths = _signature_paths(record)
    if "signaturePaths" not in record and is_legacy_key(key):
        # Early records carry no signaturePaths; their images sit at the
        # conventional "<key>-<role>.png" names.
        paths = {field_name: legacy_blob_path(key, role) for field_name, role in SIGNATURE_FIELDS.items()}
    blob_moves = [
        BlobMove(field=field_name, source=paths[field_name], target=signature_blob_path(target, role))
        for field_name, role in SIGNATURE_FIELDS.items()
        if field_name in paths
    ]
    return MigrationMove(source=key, target=target, blobs=blob_moves)


def _apply_move(
    move: MigrationMove,
    record: dict[str, Any],
    *,
    kv: KeyValueStore,
    blobs: BlobStore,
) -> None:
    new_paths: dict[str, str | None] = {field_name: None for field_name in SIGNATURE_FIELDS}
    for blob in move.blobs:
        if blobs.copy(blob.source, blob.target, content_type=PNG_CONTENT_TYPE):
            new_paths[blob.field] = blob.target
        else:
            LOGGER.warning("migration.blob_missing", key=move.source, path=blob.source)

    record["signaturePaths"] = new_paths
    kv.put(move.target, json.dumps(record))
    kv.delete(move.source)
    for blob in move.blobs:
        blobs.delete(blob.source)


def migrate_submissions(
    *,
    kv: KeyValueStore,
    blobs: BlobStore,
    dry_run: bool = False,
    now: datetime | None = None,
    prefix: str = LEGACY_KEY_PREFIX,
) -> MigrationReport:
    """Rewrite ``submission:<uuid>`` records into the name/email/timestamp scheme.

    Best effort and not transactional: each record is copied, then the old
    record and blobs are removed. A failure on one key is recorded and the
    sweep moves on; nothing is rolled back.
    """

    now = now or datetime.now(timezone.utc)
    report = MigrationReport(dry_run=dry_run)

    for key in kv.list_keys(prefix):
        try:
            value = kv.get(key)
            if value is None:
                report.skipped.append(MigrationIssue(key, "record disappeared"))
                continue
            record = _decode(value)
            if not isinstance(record, dict):
                report.skipped.append(MigrationIssue(key, "record is not a JSON object"))
                continue
            missing = [name for name in ("firstName", "lastName", "email") if is_blank(record.get(name))]
            if missing:
                report.skipped.append(MigrationIssue(key, f"missing {', '.join(missing)}"))
                continue

            move = _plan_move(key, record, now)
            if kv.exists(move.target):
                report.skipped.append(MigrationIssue(key, f"target {move.target} already exists"))
                continue
            if not dry_run:
                _apply_move(move, record, kv=kv, blobs=blobs)
            report.migrated.append(move)
        except StorageError as exc:
            LOGGER.error("migration.failed", key=key, error=str(exc))
            report.failed.append(MigrationIssue(key, str(exc)))

    metrics.observe_migration(
        migrated=0 if dry_run else len(report.migrated),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    LOGGER.info(
        "migration.done",
        dry_run=dry_run,
        migrated=len(report.migrated),
        skipped=len(report.skipped),
        failed=len(report.failed),
    )
    return report

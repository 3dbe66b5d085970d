"""Prometheus metrics helpers."""

from __future__ import annotations

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

SUBMISSION_LATENCY = Histogram(
    "contracts_submission_latency_seconds",
    "Latency of form submission handling",
    buckets=(0.01, 0.02, 0.04, 0.08, 0.16, 0.32, 0.64, 1.28, 2.56),
    registry=REGISTRY,
)

SUBMISSIONS_TOTAL = Counter(
    "contracts_submissions_total",
    "Form submissions by outcome",
    labelnames=("outcome",),
    registry=REGISTRY,
)

REJECTIONS_TOTAL = Counter(
    "contracts_rejections_total",
    "Rejected submissions grouped by offending field",
    labelnames=("field",),
    registry=REGISTRY,
)

SIGNATURE_BYTES = Histogram(
    "contracts_signature_bytes",
    "Size of uploaded signature images",
    labelnames=("role",),
    buckets=(1024, 4096, 16384, 65536, 262144, 1048576),
    registry=REGISTRY,
)

ADMIN_OPERATIONS = Counter(
    "contracts_admin_operations_total",
    "Admin operations by kind and outcome",
    labelnames=("operation", "outcome"),
    registry=REGISTRY,
)

MIGRATED_RECORDS = Counter(
    "contracts_migrated_records_total",
    "Records handled by the key migration sweep",
    labelnames=("status",),
    registry=REGISTRY,
)


def observe_submission(*, latency_ms: float, accepted: bool, field: str | None = None) -> None:
    SUBMISSION_LATENCY.observe(latency_ms / 1000.0)
    SUBMISSIONS_TOTAL.labels(outcome="accepted" if accepted else "rejected").inc()
    if not accepted:
        REJECTIONS_TOTAL.labels(field=field or "payload").inc()


def observe_signature(*, role: str, size: int) -> None:
    SIGNATURE_BYTES.labels(role=role).observe(size)


def observe_admin(*, operation: str, outcome: str) -> None:
    ADMIN_OPERATIONS.labels(operation=operation, outcome=outcome).inc()


def observe_migration(*, migrated: int, skipped: int, failed: int) -> None:
    MIGRATED_RECORDS.labels(status="migrated").inc(migrated)
    MIGRATED_RECORDS.labels(status="skipped").inc(skipped)
    MIGRATED_RECORDS.labels(status="failed").inc(failed)


def render_metrics() -> tuple[bytes, str]:
    payload = generate_latest(REGISTRY)
    return payload, CONTENT_TYPE_LATEST

"""AWS Lambda adapter.

Routes API Gateway (REST v1 and HTTP v2 payload) events to the same service
functions as the FastAPI app, with the same status codes and messages:

    POST   /form-handler
    GET    /lookup?input=&rsg=
    DELETE /submissions/{key}
    POST   /admin/migrate?dry_run=
    GET    /healthz
"""

from __future__ import annotations

import base64
import binascii
import json
import re
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote

import structlog

from week_contracts.admin import (
    LookupRejected,
    SubmissionNotFound,
    delete_submission,
    lookup_submissions,
    migrate_submissions,
)
from week_contracts.main import configure_logging
from week_contracts.settings import Settings, get_settings
from week_contracts.storage import BlobStore, KeyValueStore, StorageError, build_blob_store, build_kv_store
from week_contracts.submissions import handle_submission
from week_contracts.validation import SubmissionRejected

logger = structlog.get_logger(__name__)

_SUBMISSION_PATH = re.compile(r"/submissions/(?P<key>.+)$")
_stores: Optional[Tuple[KeyValueStore, BlobStore]] = None


def _response(status_code: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps(body),
    }


def _text(status_code: int, message: str) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {"Content-Type": "text/plain; charset=utf-8"},
        "body": message,
    }


def _parse_request(event: Dict[str, Any]) -> Tuple[str, str, Dict[str, str], Dict[str, str]]:
    method = (
        (event.get("requestContext") or {}).get("http", {}).get("method")
        or event.get("httpMethod", "")
    ).upper()
    path = (event.get("rawPath") or event.get("path") or "/").rstrip("/") or "/"
    query = event.get("queryStringParameters") or {}
    headers = {str(k).lower(): str(v) for k, v in (event.get("headers") or {}).items()}
    return method, path, query, headers


def _body(event: Dict[str, Any]) -> bytes:
    raw = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(raw)
    return raw.encode("utf-8")


def _authorized(headers: Dict[str, str], settings: Settings) -> Optional[Dict[str, Any]]:
    if not settings.require_api_key:
        return None
    if not settings.api_key:
        logger.error("auth_config_error", reason="api_key_not_configured")
        return _text(500, "API key not configured")
    if headers.get("x-api-key") != settings.api_key:
        logger.warning("auth_failure", reason="invalid_api_key")
        return _text(401, "unauthorized")
    return None


def _handle_form(event: Dict[str, Any], settings: Settings, kv: KeyValueStore, blobs: BlobStore) -> Dict[str, Any]:
    try:
        body = _body(event)
    except (binascii.Error, ValueError) as exc:
        return _text(400, f"Bad Request: {exc}")
    if len(body) > settings.max_request_size_bytes:
        return _text(413, "request too large")
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        return _text(400, f"Bad Request: {exc}")
    try:
        receipt = handle_submission(payload, kv=kv, blobs=blobs, settings=settings)
    except SubmissionRejected as exc:
        return _text(400, exc.message)
    return _response(200, receipt.asdict())


def dispatch(
    event: Dict[str, Any],
    *,
    settings: Settings,
    kv: KeyValueStore,
    blobs: BlobStore,
) -> Dict[str, Any]:
    method, path, query, headers = _parse_request(event)
    logger.info("lambda.request", method=method, path=path)

    try:
        if path.endswith("/healthz") and method == "GET":
            return _text(200, "ok\n")
        if path.endswith("/form-handler") and method == "POST":
            return _handle_form(event, settings, kv, blobs)

        match = _SUBMISSION_PATH.search(path)
        admin_route = (
            (path.endswith("/lookup") and method == "GET")
            or (path.endswith("/admin/migrate") and method == "POST")
            or (match is not None and method == "DELETE")
        )
        if not admin_route:
            return _text(405, "Method Not Allowed")

        denied = _authorized(headers, settings)
        if denied:
            return denied

        if method == "GET":
            try:
                results = lookup_submissions(
                    query.get("input"),
                    kv=kv,
                    limit=settings.max_lookup_results,
                    rsg=query.get("rsg"),
                )
            except LookupRejected as exc:
                return _text(400, str(exc))
            return _response(200, [result.asdict() for result in results])

        if method == "POST":
            dry_run = str(query.get("dry_run", "false")).lower() in {"1", "true", "yes"}
            report = migrate_submissions(kv=kv, blobs=blobs, dry_run=dry_run)
            return _response(200, report.asdict())

        key = unquote(match.group("key"))
        try:
            report = delete_submission(key, kv=kv, blobs=blobs)
        except SubmissionNotFound as exc:
            return _text(404, str(exc))
        return _response(200, report.asdict())
    except StorageError as exc:
        logger.error("lambda.storage_error", method=method, path=path, error=str(exc))
        return _text(500, "Internal Server Error")


def _runtime_stores(settings: Settings) -> Tuple[KeyValueStore, BlobStore]:
    global _stores
    if _stores is None:
        configure_logging(settings.log_level)
        _stores = (build_kv_store(settings), build_blob_store(settings))
    return _stores


def handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    del context
    settings = get_settings()
    kv, blobs = _runtime_stores(settings)
    return dispatch(event, settings=settings, kv=kv, blobs=blobs)

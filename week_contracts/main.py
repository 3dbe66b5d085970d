"""FastAPI application entrypoint for the contract form worker."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Annotated

import structlog
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, Response, status
from fastapi.responses import JSONResponse, PlainTextResponse

from week_contracts import metrics
from week_contracts.admin import (
    LookupRejected,
    SubmissionNotFound,
    delete_submission,
    lookup_submissions,
    migrate_submissions,
)
from week_contracts.form_rules import FormRules
from week_contracts.settings import Settings, get_settings
from week_contracts.storage import BlobStore, KeyValueStore, StorageError, build_blob_store, build_kv_store
from week_contracts.submissions import handle_submission
from week_contracts.validation import SubmissionRejected

# Security logger for auth/limit events
_security_logger = structlog.get_logger("security")
logger = structlog.get_logger(__name__)

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def app_settings(request: Request) -> Settings:
    return request.app.state.settings


def kv_store(request: Request) -> KeyValueStore:
    return request.app.state.kv_store


def blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


SettingsDep = Annotated[Settings, Depends(app_settings)]
KVDep = Annotated[KeyValueStore, Depends(kv_store)]
BlobDep = Annotated[BlobStore, Depends(blob_store)]


async def verify_api_key(
    request: Request,
    settings: SettingsDep,
    x_api_key: str | None = Header(default=None),
) -> None:
    """Simple API key gate for admin endpoints."""
    if not settings.require_api_key:
        return
    if not settings.api_key:
        _security_logger.error(
            "auth_config_error",
            path=str(request.url.path),
            reason="api_key_not_configured",
        )
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="API key not configured",
        )
    if x_api_key != settings.api_key:
        _security_logger.warning(
            "auth_failure",
            path=str(request.url.path),
            reason="invalid_api_key",
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="unauthorized",
        )


def configure_logging(log_level: str) -> None:
    numeric_level = logging.getLevelName(log_level.upper())
    if isinstance(numeric_level, str):
        numeric_level = logging.INFO
    logging.basicConfig(level=numeric_level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric_level),
        cache_logger_on_first_use=True,
    )


def _text(message: str, status_code: int) -> PlainTextResponse:
    return PlainTextResponse(content=message, status_code=status_code)


def create_app(
    settings: Settings | None = None,
    *,
    kv: KeyValueStore | None = None,
    blobs: BlobStore | None = None,
    rules: FormRules | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    if kv is None or blobs is None:
        errors = settings.validate_backends()
        if errors:
            logger.error("store_config_invalid", errors=errors)
            raise ValueError("; ".join(errors))

    app = FastAPI(title="101 Week Contracts", version=settings.service_version)
    app.state.settings = settings
    app.state.kv_store = kv if kv is not None else build_kv_store(settings)
    app.state.blob_store = blobs if blobs is not None else build_blob_store(settings)
    app.state.form_rules = rules

    @app.middleware("http")
    async def enforce_limits(request: Request, call_next):
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            method=request.method, path=str(request.url.path)
        )
        if request.url.path == "/form-handler":
            limit = settings.max_request_size_bytes
            content_length = request.headers.get("content-length")
            if content_length:
                try:
                    size = int(content_length)
                    if size > limit:
                        _security_logger.warning(
                            "request_rejected",
                            path=str(request.url.path),
                            reason="body_too_large",
                            size=size,
                            limit=limit,
                        )
                        return _text("request too large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
                except ValueError:
                    pass  # Ignore malformed header and fall through
        return await call_next(request)

    @app.get("/healthz", response_class=Response)
    async def healthz() -> Response:
        return Response(content="ok\n", media_type="text/plain")

    @app.post("/form-handler")
    async def form_handler(request: Request, settings: SettingsDep, kv: KVDep, blobs: BlobDep) -> Response:
        body = await request.body()
        if len(body) > settings.max_request_size_bytes:
            return _text("request too large", status.HTTP_413_REQUEST_ENTITY_TOO_LARGE)
        try:
            payload = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            return _text(f"Bad Request: {exc}", status.HTTP_400_BAD_REQUEST)

        try:
            receipt = await asyncio.to_thread(
                handle_submission,
                payload,
                kv=kv,
                blobs=blobs,
                settings=settings,
                rules=request.app.state.form_rules,
            )
        except SubmissionRejected as exc:
            return _text(exc.message, status.HTTP_400_BAD_REQUEST)
        except StorageError as exc:
            logger.error("form_handler_error", error=str(exc))
            return _text("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        return JSONResponse(receipt.asdict())

    @app.get("/lookup")
    async def lookup(
        settings: SettingsDep,
        kv: KVDep,
        input: str | None = Query(default=None),
        rsg: str | None = Query(default=None),
        _: None = Depends(verify_api_key),
    ) -> Response:
        try:
            results = await asyncio.to_thread(
                lookup_submissions,
                input,
                kv=kv,
                limit=settings.max_lookup_results,
                rsg=rsg,
            )
        except LookupRejected as exc:
            metrics.observe_admin(operation="lookup", outcome="rejected")
            return _text(str(exc), status.HTTP_400_BAD_REQUEST)
        except StorageError as exc:
            metrics.observe_admin(operation="lookup", outcome="error")
            logger.error("lookup_error", error=str(exc))
            return _text("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        metrics.observe_admin(operation="lookup", outcome="ok")
        return JSONResponse([result.asdict() for result in results])

    @app.delete("/submissions/{key:path}")
    async def delete(key: str, kv: KVDep, blobs: BlobDep, _: None = Depends(verify_api_key)) -> Response:
        try:
            report = await asyncio.to_thread(delete_submission, key, kv=kv, blobs=blobs)
        except SubmissionNotFound as exc:
            metrics.observe_admin(operation="delete", outcome="not_found")
            return _text(str(exc), status.HTTP_404_NOT_FOUND)
        except StorageError as exc:
            metrics.observe_admin(operation="delete", outcome="error")
            logger.error("delete_error", key=key, error=str(exc))
            return _text("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        metrics.observe_admin(operation="delete", outcome="ok")
        return JSONResponse(report.asdict())

    @app.post("/admin/migrate")
    async def migrate(
        kv: KVDep,
        blobs: BlobDep,
        dry_run: bool = Query(default=False),
        _: None = Depends(verify_api_key),
    ) -> Response:
        try:
            report = await asyncio.to_thread(migrate_submissions, kv=kv, blobs=blobs, dry_run=dry_run)
        except StorageError as exc:
            metrics.observe_admin(operation="migrate", outcome="error")
            logger.error("migrate_error", error=str(exc))
            return _text("Internal Server Error", status.HTTP_500_INTERNAL_SERVER_ERROR)
        metrics.observe_admin(operation="migrate", outcome="ok")
        return JSONResponse(report.asdict())

    @app.get("/metrics")
    async def metrics_endpoint(
        settings: SettingsDep, _: None = Depends(verify_api_key)
    ) -> Response:
        if not settings.metrics_enabled:
            raise HTTPException(status_code=404, detail="metrics disabled")
        payload, content_type = metrics.render_metrics()
        return Response(content=payload, media_type=content_type)

    @app.api_route("/{path:path}", methods=ALL_METHODS, include_in_schema=False)
    async def method_not_allowed(path: str) -> Response:
        del path
        return _text("Method Not Allowed", status.HTTP_405_METHOD_NOT_ALLOWED)

    return app

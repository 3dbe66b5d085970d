"""Serve the contract form worker over HTTP with uvicorn.

Usage:
    PYTHONPATH=. python transports/http_uvicorn.py
    uvicorn transports.http_uvicorn:app --port 8787

Stores come from KV_BACKEND / BLOB_BACKEND; the in-memory defaults are for
local form testing only and lose every submission on restart. HOST, PORT
and DEV_RELOAD control the listener when run as a script.
"""

from __future__ import annotations

import os

import uvicorn

from week_contracts.main import create_app
from week_contracts.settings import get_settings

app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "transports.http_uvicorn:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8787")),
        reload=os.getenv("DEV_RELOAD", "false").lower() in {"1", "true", "yes"},
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":  # pragma: no cover - manual run helper
    run()

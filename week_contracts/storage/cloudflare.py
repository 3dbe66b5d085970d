"""
Cloudflare Workers KV backend.

Talks to the KV REST API of a single namespace:

    GET    /accounts/{account}/storage/kv/namespaces/{namespace}/keys?prefix=&cursor=
    GET    /accounts/{account}/storage/kv/namespaces/{namespace}/values/{key}
    PUT    /accounts/{account}/storage/kv/namespaces/{namespace}/values/{key}
    DELETE /accounts/{account}/storage/kv/namespaces/{namespace}/values/{key}

Configuration:
    CF_ACCOUNT_ID, CF_NAMESPACE_ID, CF_API_TOKEN
    STORE_RETRY_COUNT / STORE_RETRY_DELAY / STORE_TIMEOUT
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from week_contracts.retry import with_retry
from week_contracts.settings import Settings
from week_contracts.storage.base import KeyValueStore, StorageError

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.cloudflare.com/client/v4"
LIST_PAGE_SIZE = 1000


class _TransientStatus(Exception):
    """Retryable HTTP status (429 or 5xx)."""

    def __init__(self, response: httpx.Response):
        super().__init__(f"HTTP {response.status_code} from {response.request.url}")
        self.response = response


class CloudflareKVStore(KeyValueStore):
    def __init__(
        self,
        *,
        account_id: str,
        namespace_id: str,
        api_token: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        retry_count: int = 3,
        retry_delay: float = 0.5,
        transport: httpx.BaseTransport | None = None,
    ):
        self.namespace_id = namespace_id
        self.retry_count = retry_count
        self.retry_delay = retry_delay
        self._client = httpx.Client(
            base_url=f"{base_url.rstrip('/')}/accounts/{account_id}/storage/kv/namespaces/{namespace_id}",
            headers={"Authorization": f"Bearer {api_token}"},
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, *, transport: httpx.BaseTransport | None = None
    ) -> CloudflareKVStore:
        if not (settings.cf_account_id and settings.cf_namespace_id and settings.cf_api_token):
            raise ValueError("CF_ACCOUNT_ID, CF_NAMESPACE_ID and CF_API_TOKEN are required")
        return cls(
            account_id=settings.cf_account_id,
            namespace_id=settings.cf_namespace_id,
            api_token=settings.cf_api_token.get_secret_value(),
            base_url=settings.cf_api_base_url,
            timeout=settings.store_timeout,
            retry_count=settings.store_retry_count,
            retry_delay=settings.store_retry_delay,
            transport=transport,
        )

    def __enter__(self) -> CloudflareKVStore:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    @staticmethod
    def _value_url(key: str) -> str:
        return f"/values/{quote(key, safe='')}"

    def _request(
        self,
        method: str,
        url: str,
        *,
        missing_ok: bool = False,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute a request, retrying transport errors, 429 and 5xx responses."""

        def attempt() -> httpx.Response:
            response = self._client.request(method, url, **kwargs)
            if missing_ok and response.status_code == 404:
                return response
            if response.status_code == 429 or response.status_code >= 500:
                raise _TransientStatus(response)
            response.raise_for_status()
            return response

        try:
            return with_retry(
                attempt,
                retries=self.retry_count,
                base_delay=self.retry_delay,
                retry_on=(httpx.TransportError, _TransientStatus),
                label=f"kv.{method.lower()}",
            )
        except (httpx.HTTPError, _TransientStatus) as exc:
            logger.error("kv_request_failed", method=method, url=url, error=str(exc))
            raise StorageError(f"KV {method} {url} failed: {exc}") from exc

    def get(self, key: str) -> str | None:
        response = self._request("GET", self._value_url(key), missing_ok=True)
        if response.status_code == 404:
            return None
        return response.text

    def put(self, key: str, value: str) -> None:
        self._request(
            "PUT",
            self._value_url(key),
            content=value.encode("utf-8"),
            headers={"Content-Type": "text/plain; charset=utf-8"},
        )

    def delete(self, key: str) -> None:
        self._request("DELETE", self._value_url(key), missing_ok=True)

    def list_keys(self, prefix: str | None = None) -> list[str]:
        keys: list[str] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"limit": LIST_PAGE_SIZE}
            if prefix:
                params["prefix"] = prefix
            if cursor:
                params["cursor"] = cursor
            payload = self._request("GET", "/keys", params=params).json()
            if not payload.get("success", False):
                raise StorageError(f"KV list failed: {payload.get('errors')}")
            keys.extend(item["name"] for item in payload.get("result", []))
            cursor = (payload.get("result_info") or {}).get("cursor")
            if not cursor:
                break
        logger.debug("kv_listed", prefix=prefix, count=len(keys))
        return keys

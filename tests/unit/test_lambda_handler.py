from __future__ import annotations

import base64
import json

from tests.support import make_submission
from transports.aws_lambda_handler import dispatch
from week_contracts.settings import Settings
from week_contracts.storage import InMemoryBlobStore, InMemoryKeyValueStore


def _event(method: str, path: str, *, body=None, query=None, headers=None, v2: bool = True) -> dict:
    event = {
        "headers": headers or {},
        "queryStringParameters": query,
        "body": body,
        "isBase64Encoded": False,
    }
    if v2:
        event["rawPath"] = path
        event["requestContext"] = {"http": {"method": method}}
    else:
        event["path"] = path
        event["httpMethod"] = method
    return event


def _run(event: dict, settings: Settings | None = None, kv=None, blobs=None) -> dict:
    return dispatch(
        event,
        settings=settings or Settings(),
        kv=kv if kv is not None else InMemoryKeyValueStore(),
        blobs=blobs if blobs is not None else InMemoryBlobStore(),
    )


def test_form_submission_roundtrip() -> None:
    kv, blobs = InMemoryKeyValueStore(), InMemoryBlobStore()

    resp = _run(_event("POST", "/form-handler", body=json.dumps(make_submission())), kv=kv, blobs=blobs)

    assert resp["statusCode"] == 200
    key = json.loads(resp["body"])["id"]
    assert kv.get(key) is not None
    assert blobs.paths() == [f"{key}_participant.png"]


def test_base64_encoded_body_with_stage_prefix() -> None:
    body = base64.b64encode(json.dumps(make_submission()).encode()).decode()
    event = _event("POST", "/prod/form-handler", body=body, v2=False)
    event["isBase64Encoded"] = True

    assert _run(event)["statusCode"] == 200


def test_validation_errors_are_plain_text() -> None:
    resp = _run(_event("POST", "/form-handler", body=json.dumps(make_submission(email="nope"))))

    assert resp["statusCode"] == 400
    assert resp["body"] == "Invalid email format"
    assert resp["headers"]["Content-Type"].startswith("text/plain")


def test_malformed_body() -> None:
    resp = _run(_event("POST", "/form-handler", body="{oops"))

    assert resp["statusCode"] == 400
    assert resp["body"].startswith("Bad Request")


def test_lookup_and_delete() -> None:
    kv, blobs = InMemoryKeyValueStore(), InMemoryBlobStore()
    created = _run(_event("POST", "/form-handler", body=json.dumps(make_submission())), kv=kv, blobs=blobs)
    key = json.loads(created["body"])["id"]

    found = _run(_event("GET", "/lookup", query={"input": "John Doe"}), kv=kv, blobs=blobs)
    deleted = _run(_event("DELETE", f"/submissions/{key}"), kv=kv, blobs=blobs)
    missing = _run(_event("DELETE", f"/submissions/{key}"), kv=kv, blobs=blobs)

    assert [item["key"] for item in json.loads(found["body"])] == [key]
    assert deleted["statusCode"] == 200
    assert missing["statusCode"] == 404
    assert blobs.paths() == []


def test_lookup_without_input() -> None:
    resp = _run(_event("GET", "/lookup"))

    assert resp["statusCode"] == 400
    assert resp["body"] == "Missing 'input' query parameter"


def test_migrate_dry_run() -> None:
    kv = InMemoryKeyValueStore({"submission:abc": json.dumps(make_submission())})

    resp = _run(_event("POST", "/admin/migrate", query={"dry_run": "true"}), kv=kv)

    assert json.loads(resp["body"])["dryRun"] is True
    assert kv.list_keys() == ["submission:abc"]


def test_admin_routes_check_api_key() -> None:
    settings = Settings(REQUIRE_API_KEY=True, API_KEY="s3cret")

    denied = _run(_event("GET", "/lookup", query={"input": "John Doe"}), settings)
    allowed = _run(
        _event("GET", "/lookup", query={"input": "John Doe"}, headers={"X-Api-Key": "s3cret"}),
        settings,
    )

    assert denied["statusCode"] == 401
    assert allowed["statusCode"] == 200


def test_unmatched_requests_are_not_allowed() -> None:
    assert _run(_event("GET", "/form-handler"))["statusCode"] == 405
    assert _run(_event("PUT", "/lookup"))["body"] == "Method Not Allowed"

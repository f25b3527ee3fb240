from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from blockify.core.config import BlockifyConfig

DOC = [
    {"type": "p", "data": ["Hello", "world"]},
    {"type": "p", "data": [{"type": "a", "data": ["bad"], "attr": {"href": "javascript:alert(1)"}}, "ok"]},
]


@pytest.fixture
def open_env(monkeypatch):
    monkeypatch.delenv("BLOCKIFY_API_KEYS", raising=False)
    monkeypatch.delenv("BLOCKIFY_REQUIRE_AUTH", raising=False)
    monkeypatch.delenv("BLOCKIFY_MAX_BODY_BYTES", raising=False)


def _client(config=None):
    from blockify.api.server import create_app

    return TestClient(create_app(config=config or BlockifyConfig()))


def test_health_reports_mode(open_env):
    r = _client().get("/health")

    assert r.status_code == 200
    assert r.json() == {"ok": True, "auth_required": False, "dev": False}
    assert r.headers.get("x-request-id")


def test_normalize_returns_blocks_and_errors(open_env):
    r = _client().post("/normalize", json={"document": DOC})

    assert r.status_code == 200
    body = r.json()
    assert body["blocks"] == [
        {"type": "p", "data": ["Hello world"]},
        {"type": "p", "data": ["ok"]},
    ]
    assert body["valid"] is False
    assert body["errors"]["href"][0]["code"] == "invalid_url"
    assert "html" not in body


def test_normalize_accepts_json_text_and_renders(open_env):
    r = _client().post(
        "/normalize",
        json={"document": '[{"type": "h1", "data": ["Title"]}]', "render": True},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["valid"] is True
    assert body["html"] == "<h1>Title</h1>"


def test_invalid_document_is_empty_outside_dev_mode(open_env):
    r = _client().post("/normalize", json={"document": "not json"})

    assert r.status_code == 200
    assert r.json()["blocks"] == []


def test_invalid_document_is_400_in_dev_mode(open_env):
    r = _client(BlockifyConfig(dev=True)).post("/normalize", json={"document": "not json"})

    assert r.status_code == 400
    assert r.json()["detail"] == "invalid_input_format"


def test_render_endpoint(open_env):
    client = _client(BlockifyConfig(render_tag_names={"b": "strong"}))
    doc = [{"type": "p", "data": [{"type": "b", "data": ["x"]}]}, {"type": "h2", "data": ["T"]}]

    r = client.post("/render", json={"document": doc})
    assert r.status_code == 200
    assert r.json() == {"html": "<p><strong>x</strong></p><h2>T</h2>", "valid": True}

    r = client.post("/render", json={"document": doc, "only": ["h2"], "as_text": True})
    assert r.json()["html"] == "T"


def test_schemas_endpoint_lists_registry(open_env):
    r = _client().get("/schemas")

    assert r.status_code == 200
    by_name = {s["name"]: s for s in r.json()}
    assert by_name["ol"]["primary_child_types"] == ["li"]
    assert by_name["files"]["custom_item_structure"] is True


def test_api_key_auth(monkeypatch):
    monkeypatch.setenv("BLOCKIFY_API_KEYS", "k1:editor;malformed")
    monkeypatch.delenv("BLOCKIFY_REQUIRE_AUTH", raising=False)
    client = _client()

    assert client.get("/health").json()["auth_required"] is True
    assert client.post("/normalize", json={"document": DOC}).status_code == 401
    r = client.post(
        "/normalize", json={"document": DOC}, headers={"X-Blockify-API-Key": "wrong"}
    )
    assert r.status_code == 401
    r = client.post("/normalize", json={"document": DOC}, headers={"X-Blockify-API-Key": "k1"})
    assert r.status_code == 200


def test_require_auth_without_keys_fails_closed(monkeypatch):
    monkeypatch.delenv("BLOCKIFY_API_KEYS", raising=False)
    monkeypatch.setenv("BLOCKIFY_REQUIRE_AUTH", "1")

    r = _client().get("/schemas")
    assert r.status_code == 401


def test_body_size_limit(open_env, monkeypatch):
    monkeypatch.setenv("BLOCKIFY_MAX_BODY_BYTES", "64")
    client = _client()

    small = client.post("/normalize", json={"document": []})
    assert small.status_code == 200

    big = client.post("/normalize", json={"document": [{"type": "p", "data": ["x" * 200]}]})
    assert big.status_code == 413


def test_malformed_body_limit_falls_back_to_default(open_env, monkeypatch):
    monkeypatch.setenv("BLOCKIFY_MAX_BODY_BYTES", "small")
    client = _client()

    r = client.post("/normalize", json={"document": [{"type": "p", "data": ["x" * 200]}]})
    assert r.status_code == 200
    assert r.json()["blocks"] == [{"type": "p", "data": ["x" * 200]}]


def test_request_id_is_echoed_when_reasonable(open_env):
    client = _client()

    r = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert r.headers["x-request-id"] == "abc-123"

    r = client.get("/health", headers={"X-Request-ID": "x" * 500})
    assert r.headers["x-request-id"] != "x" * 500

"""
TEST: Remote Query Adapter

One request per query; every failure becomes the fixed apology.
requests.post is patched, nothing touches the network.
"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from risa.config import Config, _DEFAULT_CONFIG
from risa.policy import BRIEF_QUERY_PREFIX, REMOTE_FALLBACK_RESPONSE
from risa.remote_query import (
    RemoteQueryAdapter,
    build_request_body,
    extract_answer,
    sanitize_response,
)


def _response(payload=None, status_error=None, json_error=None):
    response = MagicMock()
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = payload
    return response


def _answer(text):
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


@pytest.fixture
def adapter():
    return RemoteQueryAdapter(
        base_url="https://example.test/v1beta/",
        model="test-model",
        timeout_seconds=5,
        api_key="secret",
    )


def test_request_shape(adapter):
    with patch("risa.remote_query.requests.post", return_value=_response(_answer("Paris"))) as post:
        assert adapter.query("capital of france") == "Paris"

    args, kwargs = post.call_args
    assert args[0] == "https://example.test/v1beta/models/test-model:generateContent"
    assert kwargs["params"] == {"key": "secret"}
    assert kwargs["json"] == {"contents": [{"parts": [{"text": "capital of france"}]}]}
    assert kwargs["timeout"] == 5


def test_brief_prefix(adapter):
    with patch("risa.remote_query.requests.post", return_value=_response(_answer("ok"))) as post:
        adapter.query("what is rust", brief=True)
    sent = post.call_args.kwargs["json"]["contents"][0]["parts"][0]["text"]
    assert sent == BRIEF_QUERY_PREFIX + "what is rust"


def test_answer_is_sanitized(adapter):
    raw = "**Rust** is a _systems_ language.\n\n* Fast\n* `Safe`"
    with patch("risa.remote_query.requests.post", return_value=_response(_answer(raw))):
        assert adapter.query("rust") == "Rust is a systems language. Fast Safe"


@pytest.mark.parametrize(
    "response",
    [
        _response(status_error=requests.exceptions.HTTPError("500")),
        _response(json_error=ValueError("not json")),
        _response({"candidates": []}),
        _response({"error": {"message": "bad key"}}),
        _response(_answer("  ** \n ")),
    ],
)
def test_failures_become_fallback(adapter, response):
    with patch("risa.remote_query.requests.post", return_value=response):
        assert adapter.query("anything") == REMOTE_FALLBACK_RESPONSE


def test_transport_error_becomes_fallback(adapter):
    with patch(
        "risa.remote_query.requests.post",
        side_effect=requests.exceptions.ConnectionError("offline"),
    ):
        assert adapter.query("anything") == REMOTE_FALLBACK_RESPONSE


def test_no_api_key_skips_request():
    adapter = RemoteQueryAdapter(api_key="")
    with patch("risa.remote_query.requests.post") as post:
        assert adapter.query("hello") == REMOTE_FALLBACK_RESPONSE
    post.assert_not_called()
    adapter.set_api_key("k")
    assert adapter.has_api_key


def test_from_config():
    adapter = RemoteQueryAdapter.from_config(Config(_DEFAULT_CONFIG), api_key="k")
    assert adapter.endpoint.endswith("/models/gemini-1.5-flash-latest:generateContent")
    assert adapter.timeout_seconds == 30.0


def test_helpers():
    assert build_request_body("hi") == {"contents": [{"parts": [{"text": "hi"}]}]}
    assert extract_answer(_answer("x")) == "x"
    assert sanitize_response("a\n\n  b") == "a b"

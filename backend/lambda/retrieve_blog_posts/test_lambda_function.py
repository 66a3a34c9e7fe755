"""Unit tests for the retrieve_blog_posts request flow."""

from __future__ import annotations

import importlib.util
import io
import json
import pathlib
import sys
from typing import Any, Dict, List, Optional

import psycopg2
import pytest

import persistence
from config import BlogPostsConfig
from credentials import CredentialsError, DbCredentials
from http_utils import EventParseError

MODULE_PATH = pathlib.Path(__file__).with_name("lambda_function.py")
SPEC = importlib.util.spec_from_file_location("retrieve_blog_posts_lambda", MODULE_PATH)
blog_lambda = importlib.util.module_from_spec(SPEC)
assert SPEC and SPEC.loader
sys.modules[SPEC.name] = blog_lambda
SPEC.loader.exec_module(blog_lambda)

CONFIG = BlogPostsConfig(db_url="postgresql://db.internal:5432/blog", secret_name="blog/db")
GENERIC_ERROR = {"error": "An error occurred while processing the request."}
SEARCH_ERROR = {"error": "An error occurred while processing the search request."}
CORS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class FakeCursor:
    def __init__(self, rows, execute_error: Optional[Exception] = None):
        self.rows = rows
        self.execute_error = execute_error
        self.description = (("title",), ("content",))
        self.executed: List[tuple] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def execute(self, sql, params=None):
        self.executed.append((sql, params))
        if self.execute_error:
            raise self.execute_error

    def fetchall(self):
        return list(self.rows)


class FakeConnection:
    def __init__(self, cursor: FakeCursor):
        self._cursor = cursor
        self.close_calls = 0

    def cursor(self, **_kwargs):
        return self._cursor

    def close(self):
        self.close_calls += 1


@pytest.fixture
def db(monkeypatch):
    """Stub credentials and the driver; returns the state the fakes record."""
    state: Dict[str, Any] = {
        "rows": [],
        "execute_error": None,
        "connect_error": None,
        "connections": [],
        "secret_calls": 0,
    }

    def _fake_credentials(config):
        state["secret_calls"] += 1
        return DbCredentials(username="blog", password="pw")

    def _fake_connect(dsn, user=None, password=None):
        if state["connect_error"] is not None:
            raise state["connect_error"]
        conn = FakeConnection(FakeCursor(state["rows"], state["execute_error"]))
        state["connections"].append(conn)
        return conn

    monkeypatch.setattr(blog_lambda, "_fetch_db_credentials", _fake_credentials)
    monkeypatch.setattr(persistence.psycopg2, "connect", _fake_connect)
    return state


def _event(params: Optional[Dict[str, str]] = None, **extra) -> Dict[str, Any]:
    event: Dict[str, Any] = {
        "requestContext": {"http": {"method": "GET"}},
        "rawPath": "/posts",
        "headers": {"content-type": "application/json"},
        "queryStringParameters": params,
    }
    event.update(extra)
    return event


def _executed(state) -> List[tuple]:
    return state["connections"][0]._cursor.executed


def test_no_params_runs_latest_posts_query(db):
    db["rows"] = [{"id": i, "title": f"T{i}", "content": f"C{i}"} for i in (5, 4, 3, 2, 1)]

    resp = blog_lambda.handle_request(_event(), CONFIG)

    assert resp["statusCode"] == 200
    assert _executed(db) == [("SELECT * FROM blog_page.blog_post ORDER BY id DESC LIMIT 5", None)]
    body = json.loads(resp["body"])
    assert [post["title"] for post in body] == ["T5", "T4", "T3", "T2", "T1"]
    assert db["connections"][0].close_calls == 1


def test_empty_params_dict_is_latest_mode(db):
    blog_lambda.handle_request(_event({}), CONFIG)
    assert _executed(db)[0][0] == "SELECT * FROM blog_page.blog_post ORDER BY id DESC LIMIT 5"


def test_search_pagination_and_order(db):
    resp = blog_lambda.handle_request(
        _event({"searchTerm": "lambda", "page": "2", "limit": "3", "order": "a"}),
        CONFIG,
    )

    assert resp["statusCode"] == 200
    sql, params = _executed(db)[0]
    assert "ORDER BY id ASC" in sql
    assert params == ("%lambda%", 3, 3)
    assert json.loads(resp["body"]) == []


def test_html_content_round_trips_verbatim(db):
    db["rows"] = [{"title": "A", "content": "<b>x</b>"}]

    resp = blog_lambda.handle_request(_event(), CONFIG)

    assert resp["body"] == '[{"title":"A","content":"<b>x</b>"}]'
    assert resp["isBase64Encoded"] is False
    assert resp["headers"] == {"Content-Type": "application/json", **CORS}


def test_preflight_short_circuits_without_database(db):
    resp = blog_lambda.handle_request({"headers": {"httpMethod": "OPTIONS"}}, CONFIG)

    assert resp["statusCode"] == 200
    assert resp["body"] == ""
    for name, value in CORS.items():
        assert resp["headers"][name] == value
    assert db["secret_calls"] == 0
    assert db["connections"] == []


@pytest.mark.parametrize(
    "params",
    [{"limit": "five"}, {"page": "x"}, {"page": "0"}, {"limit": "1_0"}, {"page": " 2 "}],
)
def test_bad_pagination_returns_search_error(db, params):
    resp = blog_lambda.handle_request(_event(params), CONFIG)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == SEARCH_ERROR
    assert db["connections"][0].close_calls == 1


def test_search_execution_failure_returns_search_error_and_closes_once(db):
    db["execute_error"] = psycopg2.ProgrammingError("syntax error at or near")

    resp = blog_lambda.handle_request(_event({"searchTerm": "x"}), CONFIG)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == SEARCH_ERROR
    assert "syntax" not in resp["body"]
    assert db["connections"][0].close_calls == 1


def test_latest_query_failure_returns_generic_error_and_closes_once(db):
    db["execute_error"] = psycopg2.OperationalError("server closed the connection")

    resp = blog_lambda.handle_request(_event(), CONFIG)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == GENERIC_ERROR
    assert db["connections"][0].close_calls == 1


def test_connection_failure_returns_generic_error(db):
    db["connect_error"] = psycopg2.OperationalError("could not connect to server")

    resp = blog_lambda.handle_request(_event({"searchTerm": "x"}), CONFIG)

    assert resp["statusCode"] == 500
    body = json.loads(resp["body"])
    assert body == GENERIC_ERROR
    assert not isinstance(body, list)


def test_missing_driver_returns_generic_error(db, monkeypatch):
    monkeypatch.setattr(persistence, "_PSYCOPG2_AVAILABLE", False)

    resp = blog_lambda.handle_request(_event(), CONFIG)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == GENERIC_ERROR
    assert db["connections"] == []


def test_secret_failure_returns_generic_error_without_connecting(db, monkeypatch):
    def _boom(_config):
        raise CredentialsError("Secret fetch failed: AccessDeniedException")

    monkeypatch.setattr(blog_lambda, "_fetch_db_credentials", _boom)

    resp = blog_lambda.handle_request(_event(), CONFIG)

    assert resp["statusCode"] == 500
    assert json.loads(resp["body"]) == GENERIC_ERROR
    assert db["connections"] == []


def test_wildcard_spaces_follow_config(db):
    config = BlogPostsConfig(
        db_url=CONFIG.db_url,
        secret_name=CONFIG.secret_name,
        search_term_wildcard_spaces=True,
    )

    blog_lambda.handle_request(_event({"searchTerm": "big data"}), config)

    assert _executed(db)[0][1][0] == "%big%data%"


def test_lambda_handler_uses_module_config(db, monkeypatch):
    monkeypatch.setattr(blog_lambda, "_CONFIG", CONFIG)

    resp = blog_lambda.lambda_handler(json.dumps(_event()), None)

    assert resp["statusCode"] == 200


def test_lambda_handler_rejects_malformed_event(db):
    with pytest.raises(EventParseError):
        blog_lambda.lambda_handler("{not json", None)
    assert db["secret_calls"] == 0


def test_stream_handler_writes_envelope(db):
    db["rows"] = [{"title": "A", "content": "<b>x</b>"}]
    output = io.BytesIO()

    blog_lambda.stream_handler(io.BytesIO(json.dumps(_event()).encode("utf-8")), output, None, config=CONFIG)

    envelope = json.loads(output.getvalue().decode("utf-8"))
    assert envelope["statusCode"] == 200
    assert envelope["isBase64Encoded"] is False
    assert json.loads(envelope["body"]) == [{"title": "A", "content": "<b>x</b>"}]


def test_stream_handler_logs_write_failures(db, caplog):
    class BrokenStream:
        def write(self, _data):
            raise OSError("stream closed")

    blog_lambda.stream_handler(io.BytesIO(b"{}"), BrokenStream(), None, config=CONFIG)

    assert "Error writing response" in caplog.text


def test_observability_line_emitted(db, caplog):
    caplog.set_level("INFO")

    class Ctx:
        aws_request_id = "req-123"

    blog_lambda.handle_request(_event(), CONFIG, blog_lambda._request_id(Ctx()))

    lines = [r.getMessage() for r in caplog.records if r.getMessage().startswith("[OBSERVABILITY]")]
    assert lines
    payload = json.loads(lines[-1][len("[OBSERVABILITY] "):])
    assert payload["request_id"] == "req-123"
    assert payload["query_mode"] == "latest"
    assert payload["status_code"] == 200

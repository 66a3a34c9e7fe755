"""http_utils.py — Response envelope, CORS headers, and inbound event parsing.

Part of the retrieve_blog_posts Lambda.
"""
from __future__ import annotations

import json
from typing import Any, Dict, Optional, Union

from serialization import ErrorBody, ResponseBody, _encode_body

__all__ = [
    "CORS_HEADERS",
    "EventParseError",
    "_error",
    "_is_preflight",
    "_parse_event",
    "_preflight_response",
    "_query_params",
    "_response",
]

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class EventParseError(ValueError):
    """The inbound event could not be decoded into a request."""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


def _headers() -> Dict[str, str]:
    return {"Content-Type": "application/json", **CORS_HEADERS}


def _envelope(status_code: int, body: str) -> Dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": _headers(),
        "body": body,
        "isBase64Encoded": False,
    }


def _response(status_code: int, body: ResponseBody) -> Dict[str, Any]:
    return _envelope(status_code, _encode_body(body))


def _error(status_code: int, message: str) -> Dict[str, Any]:
    return _response(status_code, ErrorBody(message))


def _preflight_response() -> Dict[str, Any]:
    return _envelope(200, "")


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def _parse_event(raw: Union[Dict[str, Any], str, bytes, bytearray, None]) -> Dict[str, Any]:
    """Normalize a Lambda event to a dict; raw JSON payloads are decoded."""
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventParseError(f"Event is not UTF-8: {exc}") from exc
    if not isinstance(raw, str):
        raise EventParseError(f"Unsupported event type: {type(raw).__name__}")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise EventParseError(f"Invalid JSON event: {exc}") from exc
    if not isinstance(parsed, dict):
        raise EventParseError("Event must be a JSON object")
    return parsed


def _is_preflight(event: Dict[str, Any]) -> bool:
    # Method is read from the headers map, not requestContext.http.method.
    headers = event.get("headers") or {}
    if not isinstance(headers, dict):
        return False
    return headers.get("httpMethod") == "OPTIONS"


def _query_params(event: Dict[str, Any]) -> Optional[Dict[str, str]]:
    """Return query-string parameters, or None when the request carries none."""
    params = event.get("queryStringParameters")
    if not isinstance(params, dict) or not params:
        return None
    return params

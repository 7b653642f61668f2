"""
=============================================================================
HTTP WIRE CODEC AND ROUTING
=============================================================================

The hand-written subset of HTTP/1.1 this service speaks:

    REQUEST:                              RESPONSE:
    ─────────                             ──────────
    POST /api/v1/users HTTP/1.1\r\n       HTTP/1.1 200 OK\r\n
    Content-Length: 35\r\n                Content-Type: application/json\r\n
    \r\n                                  Access-Control-Allow-Origin: *\r\n
    {"name":"Ann","email":"a@x.com"}      ...\r\n
                                          \r\n
                                          {"id":1,"name":"Ann",...}

- request.py:      bytes → HTTPRequest, path id and body decoding
- response.py:     the three response outcomes → bytes
- router.py:       (method, path) → user operation
- status_codes.py: status → status line
=============================================================================
"""

from .request import (
    HTTPRequest,
    HTTPParseError,
    RequestParser,
    parse_request,
    extract_id,
    parse_id,
    decode_user,
)
from .response import HTTPResponse, ok, not_found, internal_error
from .router import Router, Route, RouteMatch, build_router
from .status_codes import HTTPStatus

__all__ = [
    # Request decoding
    "HTTPRequest",
    "HTTPParseError",
    "RequestParser",
    "parse_request",
    "extract_id",
    "parse_id",
    "decode_user",
    # Response encoding
    "HTTPResponse",
    "ok",
    "not_found",
    "internal_error",
    # Routing
    "Router",
    "Route",
    "RouteMatch",
    "build_router",
    # Status codes
    "HTTPStatus",
]

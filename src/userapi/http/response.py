"""
=============================================================================
HTTP RESPONSE ENCODING
=============================================================================

Every request ends in one of three outcomes:

    ┌────────────────────┬──────────────────────────┬─────────────────────┐
    │  Outcome           │ Built with               │ Wire head           │
    ├────────────────────┼──────────────────────────┼─────────────────────┤
    │  Ok(payload)       │ ok(payload)              │ 200 OK + CORS       │
    │  NotFound(message) │ not_found(message)       │ 404 NOT FOUND       │
    │  InternalError     │ internal_error(reason)   │ 500 INTERNAL ERROR  │
    └────────────────────┴──────────────────────────┴─────────────────────┘

An internal error carries a `reason` for the logs. It is never written to
the client, which only sees a generic message.

=============================================================================
WIRE FORMAT
=============================================================================

    HTTP/1.1 200 OK\r\n
    Content-Type: application/json\r\n
    Access-Control-Allow-Origin: *\r\n
    Access-Control-Allow-Methods: GET, POST, PUT, DELETE\r\n
    Access-Control-Allow-Headers: Content-Type\r\n
    \r\n
    {"id":1,"name":"Ann","email":"a@x.com"}

There is NO Content-Length header. The server closes the connection after
every response, and the close marks the end of the body.
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Union
import json

from .status_codes import HTTPStatus


# Sent with every successful response, including OPTIONS preflights
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE",
    "Access-Control-Allow-Headers": "Content-Type",
}

GENERIC_ERROR_MESSAGE = "Internal error"


@dataclass
class HTTPResponse:
    """
    A response ready to be encoded.

    Build these with ok(), not_found() and internal_error() rather than
    directly, so the header set always matches the status.

    Attributes:
        status:  One of the HTTPStatus members.
        body:    Payload bytes.
        headers: Header fields, in the order they are written.
        reason:  Why an internal error happened (logged, never sent).
    """

    status: HTTPStatus = HTTPStatus.OK
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    reason: Optional[str] = field(default=None, repr=False)
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """e.g. "HTTP/1.1 404 NOT FOUND"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    def to_bytes(self) -> bytes:
        """
        Encode the response for socket.sendall().

        Status line, headers, blank line, then the body as-is.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        head = "\r\n".join(lines) + "\r\n\r\n"
        return head.encode("utf-8") + self.body


# =============================================================================
# OUTCOME CONSTRUCTORS
# =============================================================================


def ok(payload: Union[str, bytes, dict, list] = "") -> HTTPResponse:
    """
    Create a 200 OK response.

    - dict/list → compact JSON
    - str       → UTF-8 text
    - bytes     → sent as-is
    """
    if isinstance(payload, (dict, list)):
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
    elif isinstance(payload, str):
        body = payload.encode("utf-8")
    else:
        body = payload

    headers = {"Content-Type": "application/json"}
    headers.update(CORS_HEADERS)
    return HTTPResponse(status=HTTPStatus.OK, body=body, headers=headers)


def not_found(message: str = "404 not found") -> HTTPResponse:
    """Create a 404 response whose body is the given message."""
    return HTTPResponse(status=HTTPStatus.NOT_FOUND, body=message.encode("utf-8"))


def internal_error(reason: str, message: str = GENERIC_ERROR_MESSAGE) -> HTTPResponse:
    """
    Create a 500 response.

    Args:
        reason:  Diagnostic detail for the server log.
        message: What the client sees. Keep it generic.
    """
    return HTTPResponse(
        status=HTTPStatus.INTERNAL_SERVER_ERROR,
        body=message.encode("utf-8"),
        reason=reason,
    )

"""
=============================================================================
HTTP REQUEST DECODING
=============================================================================

Turns raw bytes from a client socket into an HTTPRequest, and pulls the two
pieces of request data the user operations need out of it: the id in the
path and the user document in the body.

=============================================================================
WHAT WE READ FROM A REQUEST
=============================================================================

Only three things matter to this service:

    PUT /api/v1/users/42 HTTP/1.1\r\n          ← request line
    ─┬─ ──────────┬─────                          method + path (split on
     │            │                               whitespace, version ignored)
    Method      Path
    Host: localhost:8080\r\n                    ← headers: only
    Content-Length: 39\r\n                        Content-Length is used
    \r\n                                        ← blank line ends the head
    {"name": "Ann", "email": "a@example.com"}   ← body

Everything else (query strings, other headers, keep-alive) is ignored.

=============================================================================
INCREMENTAL PARSING
=============================================================================

TCP is a byte stream: one request may arrive in several recv() chunks, and
the body may trail the head. RequestParser buffers chunks until it has:

    1. The head terminator (\r\n\r\n), and
    2. If the head declares Content-Length: that many body bytes.

    feed(b"POST /api/v1/us")          → None        (need more data)
    feed(b"ers HTTP/1.1\r\nContent-") → None
    feed(b"Length: 2\r\n\r\n{")       → None        (1 of 2 body bytes)
    feed(b"}")                        → HTTPRequest (complete)

Without Content-Length, whatever followed the blank line in the buffer is
the body. When the client closes early, finish() decodes what was buffered.

=============================================================================
THE PATH ID
=============================================================================

The id is the fifth "/"-separated segment of the path:

    "/api/v1/users/42".split("/")
     ["", "api", "v1", "users", "42"]
      0    1     2      3       4   ← index 4

A missing segment yields "". parse_id() then accepts only an optionally
signed run of ASCII digits that fits a 32-bit signed integer (the range of
a SERIAL column).
=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional
import json
import re

from ..errors import DecodeError, ParseError
from ..models import User


HEAD_TERMINATOR = b"\r\n\r\n"

# SERIAL columns are 4-byte signed integers
ID_MIN = -(2 ** 31)
ID_MAX = 2 ** 31 - 1

_ID_PATTERN = re.compile(r"[+-]?[0-9]+")


class HTTPParseError(ParseError):
    """Raised when a request cannot be read (e.g. it exceeds the size limit)."""


@dataclass
class HTTPRequest:
    """
    A decoded HTTP request.

    Attributes:
        method:         Request method as sent ("GET", "POST", ...), "" if absent.
        path:           Request target as sent, query string included, "" if absent.
        body:           Raw body bytes (everything after the blank line).
        headers:        Header fields with lowercase names.
        path_params:    Filled in by the router ({"id": "42"}).
        client_address: (ip, port) of the peer, for logging.
    """

    method: str
    path: str
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    path_params: Dict[str, str] = field(default_factory=dict)
    client_address: tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> Optional[int]:
        """The declared Content-Length, or None if missing or invalid."""
        return _parse_content_length(self.headers.get("content-length"))

    @property
    def user_id(self) -> str:
        """The raw id routed out of the path ("" when there is none)."""
        return self.path_params.get("id", "")


class RequestParser:
    """
    Incremental request parser for one connection.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        while True:
            chunk = sock.recv(1024)
            if not chunk:
                request = parser.finish()
                break
            request = parser.feed(chunk)
            if request is not None:
                break
    """

    def __init__(self, max_request_size: int = 1024 * 1024):
        """
        Args:
            max_request_size: Largest buffer (head + body) accepted before
                              the request is rejected.
        """
        self.max_request_size = max_request_size
        self._buffer = b""

    @property
    def buffered(self) -> int:
        """Number of bytes received so far."""
        return len(self._buffer)

    def feed(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0),
    ) -> Optional[HTTPRequest]:
        """
        Add received bytes and try to complete the request.

        Returns:
            The decoded request once it is complete, otherwise None
            ("need more data").

        Raises:
            HTTPParseError: If the buffered request exceeds max_request_size.
        """
        self._buffer += data
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(self._buffer)} bytes")

        header_end = self._buffer.find(HEAD_TERMINATOR)
        if header_end == -1:
            return None

        # A body is only awaited when its length was declared
        content_length = _content_length_from_head(self._buffer[:header_end])
        body_received = len(self._buffer) - (header_end + len(HEAD_TERMINATOR))
        if content_length is not None and body_received < content_length:
            return None

        return self._take(client_address)

    def finish(self, client_address: tuple[str, int] = ("", 0)) -> Optional[HTTPRequest]:
        """
        Decode whatever was buffered when the peer stopped sending.

        Returns:
            The (possibly truncated) request, or None if nothing arrived.
        """
        if not self._buffer:
            return None
        return self._take(client_address)

    def _take(self, client_address: tuple[str, int]) -> HTTPRequest:
        request = parse_request(self._buffer, client_address)
        self._buffer = b""
        return request


def parse_request(data: bytes, client_address: tuple[str, int] = ("", 0)) -> HTTPRequest:
    """
    Decode one buffer into (method, path, body).

    The buffer is split at the first blank line. The first line of the
    head is split on whitespace into method and path; missing tokens become
    empty strings so the request simply fails to match any route.

    A buffer without a blank line is all head with an empty body.
    """
    header_end = data.find(HEAD_TERMINATOR)
    if header_end == -1:
        head, body = data, b""
    else:
        head, body = data[:header_end], data[header_end + len(HEAD_TERMINATOR):]

    lines = head.decode("utf-8", errors="replace").split("\r\n")
    tokens = lines[0].split()
    method = tokens[0] if tokens else ""
    path = tokens[1] if len(tokens) > 1 else ""

    headers = _parse_headers(lines[1:])

    # Drop anything past the declared length
    content_length = _parse_content_length(headers.get("content-length"))
    if content_length is not None:
        body = body[:content_length]

    return HTTPRequest(
        method=method,
        path=path,
        body=body,
        headers=headers,
        client_address=client_address,
    )


def extract_id(path: str) -> str:
    """
    Return the id segment of a /api/<ns>/users/<id> path.

    Examples:
        extract_id("/api/v1/users/42")        → "42"
        extract_id("/api/v1/users/42/extra")  → "42"
        extract_id("/api/v1/users")           → ""
    """
    segments = path.split("/")
    if len(segments) <= 4:
        return ""
    tokens = segments[4].split()
    return tokens[0] if tokens else ""


def parse_id(raw: str) -> int:
    """
    Parse a path id into an integer.

    Raises:
        ParseError: If raw is not an optionally signed decimal integer in
                    the 32-bit signed range.
    """
    if not _ID_PATTERN.fullmatch(raw):
        raise ParseError(f"Invalid user id: {raw!r}")
    value = int(raw)
    if not ID_MIN <= value <= ID_MAX:
        raise ParseError(f"User id out of range: {raw!r}")
    return value


def decode_user(raw_body: bytes) -> User:
    """
    Decode a request body into an unsaved User.

    Raises:
        DecodeError: If the body is empty, is not JSON, or is not a valid
                     user document.
    """
    text = raw_body.decode("utf-8", errors="replace")
    if not text.strip():
        raise DecodeError("Request body is empty")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise DecodeError(f"Invalid JSON body: {e}") from e
    return User.from_dict(data)


def _parse_headers(lines: list[str]) -> Dict[str, str]:
    """Lenient "Name: value" parsing; malformed lines are skipped."""
    headers: Dict[str, str] = {}
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name.strip():
            continue
        headers[name.strip().lower()] = value.strip()
    return headers


def _parse_content_length(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        length = int(value)
    except ValueError:
        return None
    return length if length >= 0 else None


def _content_length_from_head(head: bytes) -> Optional[int]:
    lines = head.decode("utf-8", errors="replace").split("\r\n")
    return _parse_content_length(_parse_headers(lines[1:]).get("content-length"))

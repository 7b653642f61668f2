"""
Unit tests for HTTP request parsing.
"""

import pytest

from userapi.errors import DecodeError, ParseError
from userapi.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
    extract_id,
    parse_id,
    decode_user,
)


class TestParseRequest:
    """Tests for parse_request()."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        request = parse_request(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/v1/users/42"
        assert request.body == b""
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Header names are lowercased."""
        request = parse_request(sample_get_request)

        assert request.headers["host"] == "localhost:8080"
        assert request.headers["user-agent"] == "pytest"
        assert request.headers["accept"] == "application/json"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing POST request with JSON body."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/api/v1/users"
        assert request.body == b'{"name": "John", "email": "john@example.com"}'
        assert request.content_length == len(request.body)

    def test_body_truncated_to_content_length(self):
        raw = b"PUT /api/v1/users/1 HTTP/1.1\r\nContent-Length: 2\r\n\r\n{}garbage"
        assert parse_request(raw).body == b"{}"

    def test_body_without_content_length(self):
        """Everything after the blank line is the body."""
        raw = b'POST /api/v1/users HTTP/1.1\r\n\r\n{"a":1}'
        assert parse_request(raw).body == b'{"a":1}'

    def test_no_blank_line_means_empty_body(self):
        request = parse_request(b"GET /api/v1/users HTTP/1.1\r\nHost: x")

        assert request.method == "GET"
        assert request.path == "/api/v1/users"
        assert request.body == b""

    def test_missing_tokens_become_empty(self):
        """A bare method, or nothing at all, still parses."""
        request = parse_request(b"GET\r\n\r\n")
        assert request.method == "GET"
        assert request.path == ""

        request = parse_request(b"")
        assert request.method == ""
        assert request.path == ""

    def test_method_case_preserved(self):
        assert parse_request(b"get /api/v1/users HTTP/1.1\r\n\r\n").method == "get"

    def test_malformed_header_lines_skipped(self):
        raw = b"GET / HTTP/1.1\r\nno-colon-here\r\nX-Ok: yes\r\n\r\n"
        assert parse_request(raw).headers == {"x-ok": "yes"}

    def test_invalid_content_length_ignored(self):
        raw = b"POST /api/v1/users HTTP/1.1\r\nContent-Length: abc\r\n\r\nbody"
        request = parse_request(raw)

        assert request.content_length is None
        assert request.body == b"body"

    def test_invalid_utf8_is_replaced(self):
        request = parse_request(b"GET /api/v1/\xffusers HTTP/1.1\r\n\r\n")
        assert request.path == "/api/v1/\ufffdusers"


class TestRequestParser:
    """Tests for the incremental RequestParser."""

    def test_complete_in_one_chunk(self, sample_post_request: bytes):
        parser = RequestParser()
        request = parser.feed(sample_post_request)

        assert request is not None
        assert request.method == "POST"
        assert parser.buffered == 0

    def test_needs_more_data_until_head_ends(self):
        parser = RequestParser()

        assert parser.feed(b"GET /api/v1/users HTTP/1.1\r\n") is None
        assert parser.feed(b"Host: x\r\n") is None
        request = parser.feed(b"\r\n")

        assert request.path == "/api/v1/users"

    def test_waits_for_declared_body(self):
        parser = RequestParser()
        head = b"POST /api/v1/users HTTP/1.1\r\nContent-Length: 32\r\n\r\n"

        assert parser.feed(head + b'{"name":"Ann",') is None
        request = parser.feed(b'"email":"a@x.com"}')

        assert request.body == b'{"name":"Ann","email":"a@x.com"}'

    def test_finish_returns_partial_request(self):
        """A client that stops sending gets what it sent decoded."""
        parser = RequestParser()
        parser.feed(b"POST /api/v1/users HTTP/1.1\r\nContent-Length: 100\r\n\r\n{}")

        request = parser.finish(("10.0.0.1", 5000))

        assert request.method == "POST"
        assert request.body == b"{}"
        assert request.client_address == ("10.0.0.1", 5000)

    def test_finish_with_nothing_buffered(self):
        assert RequestParser().finish() is None

    def test_request_too_large(self):
        parser = RequestParser(max_request_size=64)

        with pytest.raises(HTTPParseError):
            parser.feed(b"GET /" + b"a" * 100)

    def test_too_large_is_a_parse_error(self):
        assert issubclass(HTTPParseError, ParseError)


class TestExtractId:
    """The id is the fifth "/"-separated segment."""

    @pytest.mark.parametrize("path, expected", [
        ("/api/v1/users/42", "42"),
        ("/api/v1/users/42/extra", "42"),
        ("/api/v1/users/abc", "abc"),
        ("/api/v1/users/", ""),
        ("/api/v1/users", ""),
        ("/", ""),
        ("", ""),
    ])
    def test_extract_id(self, path: str, expected: str):
        assert extract_id(path) == expected


class TestParseId:
    """Tests for parse_id()."""

    @pytest.mark.parametrize("raw, expected", [
        ("42", 42),
        ("0", 0),
        ("-7", -7),
        ("+7", 7),
        ("007", 7),
        ("2147483647", 2147483647),
        ("-2147483648", -2147483648),
    ])
    def test_valid_ids(self, raw: str, expected: int):
        assert parse_id(raw) == expected

    @pytest.mark.parametrize("raw", [
        "", "abc", "4 2", "4.2", "0x10", " 42", "2147483648", "-2147483649", "٤٢",
    ])
    def test_invalid_ids(self, raw: str):
        with pytest.raises(ParseError):
            parse_id(raw)


class TestDecodeUser:
    """Tests for decode_user()."""

    def test_decode_valid_user(self):
        user = decode_user(b'{"name": "Ann", "email": "ann@example.com"}')

        assert user.name == "Ann"
        assert user.email == "ann@example.com"
        assert user.id is None

    def test_client_id_ignored(self):
        user = decode_user(b'{"id": 99, "name": "Ann", "email": "a@x.com"}')
        assert user.id is None

    @pytest.mark.parametrize("body", [
        b"",
        b"   ",
        b"not json",
        b"[]",
        b'{"name": "Ann"}',
        b'{"name": 1, "email": "a@x.com"}',
        b'{"name": "", "email": "a@x.com"}',
    ])
    def test_invalid_bodies(self, body: bytes):
        with pytest.raises(DecodeError):
            decode_user(body)


class TestHTTPRequest:
    """Tests for HTTPRequest helpers."""

    def test_user_id_defaults_to_empty(self):
        assert HTTPRequest(method="GET", path="/api/v1/users").user_id == ""

    def test_user_id_from_path_params(self):
        request = HTTPRequest(method="GET", path="/api/v1/users/5", path_params={"id": "5"})
        assert request.user_id == "5"

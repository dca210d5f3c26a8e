"""
Unit tests for HTTP request parsing.
"""

import pytest

from minihttp.http.headers import HeaderMap
from minihttp.http.request import (
    Request,
    RequestParser,
    HTTPParseError,
    VALID_METHODS,
    parse_request,
)


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.url == "/api/users?page=1&limit=10"
        assert request.path == "/api/users"
        assert request.http_major_version == 1
        assert request.http_minor_version == 1
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)
        assert request.body == ""

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.get_header("user-agent") == "pytest"
        assert request.headers.get_all("ACCEPT") == ["text/html", "application/json"]
        assert request.keep_alive is True

    def test_parse_query_params(self, sample_get_request: bytes):
        """Test query parameter parsing."""
        request = parse_request(sample_get_request)

        assert request.query("page") == "1"
        assert request.query("limit") == "10"
        assert request.query("missing") is None
        assert request.query("missing", "default") == "default"

    def test_parse_post_with_body(self, sample_post_request: bytes):
        """Test parsing POST request with a Content-Length body."""
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.path == "/api/users"
        assert request.content_length == len(request.raw_body)
        assert request.body == '{"name": "John", "email": "john@example.com"}'

    def test_extra_bytes_after_body_ignored(self):
        """Test that bytes past Content-Length are not part of the body."""
        raw = b"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: 5\r\n\r\nhelloEXTRA"
        request = parse_request(raw)

        assert request.body == "hello"

    def test_query_not_percent_decoded(self):
        """Test that query values are kept as sent."""
        raw = b"GET /search?q=hello%20world HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/search"
        assert request.query("q") == "hello%20world"

    def test_malformed_query_pairs_skipped(self):
        """Test that only exact key=value pairs are kept."""
        raw = b"GET /p?a=1&b&=2&c=&d=1=2&e=5 HTTP/1.1\r\nHost: x\r\n\r\n"
        request = parse_request(raw)

        assert request.query_params == {"a": "1", "e": "5"}

    def test_repeated_query_key(self):
        """Test that a repeated query key keeps every value."""
        raw = b"GET /p?tag=a&tag=b HTTP/1.1\r\nHost: x\r\n\r\n"
        request = parse_request(raw)

        assert request.query("tag") == "a"
        assert request.query_params.get_all("tag") == ["a", "b"]

    def test_parse_invalid_method(self):
        """Test that non-standard methods are rejected."""
        raw = b"FOO / HTTP/1.1\r\nHost: x\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400
        assert "Unknow method" in exc_info.value.message

    def test_method_is_case_sensitive(self):
        """Test that a lowercase method is not accepted."""
        with pytest.raises(HTTPParseError):
            parse_request(b"get / HTTP/1.1\r\nHost: x\r\n\r\n")

    @pytest.mark.parametrize("method", sorted(VALID_METHODS))
    def test_all_standard_methods_accepted(self, method: str):
        """Test every standard method parses."""
        raw = f"{method} / HTTP/1.1\r\nHost: x\r\n\r\n".encode()
        assert parse_request(raw).method == method

    def test_parse_invalid_request_line(self):
        """Test handling of a request line with too few tokens."""
        raw = b"GET /\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.message == "Invalid request headers"

    def test_unknown_protocol(self):
        """Test a protocol token that is not HTTP."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / FTP/1.1\r\nHost: x\r\n\r\n")

        assert exc_info.value.message == "Unknown protocol"

    @pytest.mark.parametrize("protocol", ["HTTP", "HTTP/1", "HTTP/a.b", "HTTP/1.x"])
    def test_invalid_version(self, protocol: str):
        """Test malformed version info."""
        raw = f"GET / {protocol}\r\nHost: x\r\n\r\n".encode()

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.message == "Invalid http version info"

    @pytest.mark.parametrize("protocol", ["HTTP/2.0", "HTTP/0.9"])
    def test_unsupported_major_version(self, protocol: str):
        """Test that only major version 1 is served."""
        raw = f"GET / {protocol}\r\nHost: x\r\n\r\n".encode()

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.message == "Feature not supported"

    def test_http_1_0_accepted(self):
        """Test HTTP/1.0 request versions."""
        request = parse_request(b"GET / HTTP/1.0\r\nHost: x\r\n\r\n")

        assert request.http_minor_version == 0
        assert request.version == "HTTP/1.0"

    def test_missing_host(self):
        """Test that a request without Host is rejected."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/1.1\r\nAccept: */*\r\n\r\n")

        assert exc_info.value.message == "Missing host in header"

    def test_host_case_insensitive(self):
        """Test that any spelling of Host satisfies the check."""
        request = parse_request(b"GET / HTTP/1.1\r\nHOST: example.com\r\n\r\n")

        assert request.host == "example.com"

    def test_lf_only_boundary(self):
        """Test bare newline line endings."""
        request = parse_request(b"GET /a HTTP/1.1\nHost: x\n\n")

        assert request.path == "/a"
        assert request.host == "x"

    def test_incomplete_head(self):
        """Test data with no blank line."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n")

    def test_incomplete_body(self):
        """Test a body shorter than its Content-Length."""
        raw = b"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: 10\r\n\r\nabc"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert "Incomplete body" in exc_info.value.message

    def test_request_too_large(self):
        """Test size limit enforcement."""
        raw = b"GET / HTTP/1.1\r\nHost: x\r\n\r\n" + b"x" * 200

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw, max_size=100)

        assert exc_info.value.status_code == 413

    def test_invalid_utf8_body_replaced(self):
        """Test that undecodable body bytes do not fail the parse."""
        raw = b"POST / HTTP/1.1\r\nHost: x\r\nContent-Length: 2\r\n\r\n\xff\xfe"
        request = parse_request(raw)

        assert request.raw_body == b"\xff\xfe"
        assert "\ufffd" in request.body


class TestHeaderParsing:
    """Tests for header line handling."""

    def test_comma_values_split_and_trimmed(self):
        """Test that comma-separated values become separate entries."""
        raw = b"GET / HTTP/1.1\r\nHost: x\r\nX-List:  a ,b,  c \r\n\r\n"
        request = parse_request(raw)

        assert request.headers.get_all("x-list") == ["a", "b", "c"]

    def test_repeated_header_lines_accumulate(self):
        """Test that repeated headers append rather than overwrite."""
        raw = b"GET / HTTP/1.1\r\nHost: x\r\nCookie: a=1\r\ncookie: b=2\r\n\r\n"
        request = parse_request(raw)

        assert request.headers.get_all("Cookie") == ["a=1", "b=2"]

    def test_value_with_colon(self):
        """Test that only the first colon separates name from value."""
        raw = b"GET / HTTP/1.1\r\nHost: localhost:8080\r\n\r\n"
        request = parse_request(raw)

        assert request.host == "localhost:8080"

    def test_line_without_colon_skipped(self):
        """Test that garbage header lines are ignored."""
        raw = b"GET / HTTP/1.1\r\nHost: x\r\nnot a header\r\n\r\n"
        request = parse_request(raw)

        assert len(request.headers) == 1


class TestBodyFraming:
    """Tests for RequestParser.body_length."""

    def _head(self, headers: str) -> Request:
        return RequestParser().parse_head(f"POST / HTTP/1.1\r\nHost: x\r\n{headers}")

    def test_content_length(self):
        """Test that Content-Length decides the body size."""
        request = self._head("Content-Length: 42")
        assert RequestParser().body_length(request, 0) == 42

    def test_no_length_no_body(self):
        """Test that a request without framing headers has no body."""
        request = self._head("Accept: */*")
        assert RequestParser().body_length(request, 10) == 0

    def test_no_length_keep_alive_no_body(self):
        """Test that keep-alive without Content-Length has no body."""
        request = self._head("Connection: keep-alive")
        assert RequestParser().body_length(request, 10) == 0

    def test_no_length_connection_close_takes_buffered(self):
        """Test that Connection: close without a length takes what arrived."""
        request = self._head("Connection: close")
        assert RequestParser().body_length(request, 7) == 7

    def test_close_before_keep_alive_takes_buffered(self):
        """Test that a later keep-alive value does not change the framing."""
        request = self._head("Connection: close, keep-alive")
        assert RequestParser().body_length(request, 4) == 4

    def test_chunked_rejected(self):
        """Test that chunked transfer encoding is refused."""
        request = self._head("Transfer-Encoding: chunked")

        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().body_length(request, 0)

        assert exc_info.value.status_code == 400

    def test_other_transfer_encoding_rejected(self):
        """Test that any transfer encoding is refused."""
        request = self._head("Transfer-Encoding: gzip")

        with pytest.raises(HTTPParseError):
            RequestParser().body_length(request, 0)

    @pytest.mark.parametrize("value", ["abc", "-1", "1.5", " "])
    def test_malformed_content_length(self, value: str):
        """Test that a non-numeric Content-Length is a 400."""
        request = self._head(f"Content-Length: {value}")

        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().body_length(request, 0)

        assert exc_info.value.status_code == 400

    def test_conflicting_content_lengths(self):
        """Test that differing Content-Length values are a 400."""
        request = self._head("Content-Length: 5\r\nContent-Length: 6")

        with pytest.raises(HTTPParseError):
            RequestParser().body_length(request, 0)

    def test_identical_content_lengths(self):
        """Test that repeated equal Content-Length values are accepted."""
        request = self._head("Content-Length: 5, 5")
        assert RequestParser().body_length(request, 0) == 5

    def test_content_length_over_limit(self):
        """Test that a declared body over the limit is a 413."""
        request = self._head("Content-Length: 1000")

        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser(max_request_size=100).body_length(request, 0)

        assert exc_info.value.status_code == 413


class TestFindBoundary:
    """Tests for locating the end of the head."""

    def test_crlf(self):
        assert RequestParser.find_boundary(b"GET /\r\n\r\nbody") == (5, 9)

    def test_lf(self):
        assert RequestParser.find_boundary(b"GET /\n\nbody") == (5, 7)

    def test_earliest_wins(self):
        """Test that the first terminator in the buffer is used."""
        assert RequestParser.find_boundary(b"a\n\nb\r\n\r\n") == (1, 3)

    def test_incomplete(self):
        assert RequestParser.find_boundary(b"GET / HTTP/1.1\r\nHost: x\r\n") is None


class TestRequest:
    """Tests for the Request value object."""

    def test_request_is_immutable(self):
        """Test that parsed requests cannot be reassigned."""
        request = Request(method="GET", url="/", path="/")

        with pytest.raises(AttributeError):
            request.path = "/other"

    def test_keep_alive_requires_header(self):
        """Test that persistence is only on explicit request."""
        assert Request(method="GET", url="/", path="/").keep_alive is False

        headers = HeaderMap({"Connection": "Keep-Alive"})
        assert Request(method="GET", url="/", path="/", headers=headers).keep_alive is True

        headers = HeaderMap({"Connection": "close"})
        assert Request(method="GET", url="/", path="/", headers=headers).keep_alive is False

    def test_content_length_property(self):
        headers = HeaderMap({"Content-Length": "12"})
        assert Request(method="POST", url="/", path="/", headers=headers).content_length == 12

        headers = HeaderMap({"Content-Length": "nope"})
        assert Request(method="POST", url="/", path="/", headers=headers).content_length is None

    def test_keep_alive_decided_by_first_value(self):
        """Test that only the first Connection value counts."""
        request = parse_request(
            b"GET / HTTP/1.1\r\nHost: x\r\nConnection: close, keep-alive\r\n\r\n"
        )
        assert request.keep_alive is False

        request = parse_request(
            b"GET / HTTP/1.1\r\nHost: x\r\nConnection: keep-alive, Upgrade\r\n\r\n"
        )
        assert request.keep_alive is True

    def test_hashable_by_identity(self):
        """Test that requests hash and compare by identity."""
        first = Request(method="GET", url="/", path="/")
        second = Request(method="GET", url="/", path="/")

        assert first != second
        assert first == first
        assert len({first, second}) == 2

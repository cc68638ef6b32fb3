"""
Unit tests for the root, echo, user-agent and files handlers.
"""

import gzip
import logging

import pytest

from tinyhttpd.handlers import root, EchoHandler, user_agent, FileStore, FilesHandler
from tinyhttpd.http.headers import HeaderSet
from tinyhttpd.http.response import CRLF
from tinyhttpd.http.router import RouteContext
from tinyhttpd.http.status_codes import HTTPStatus


def context(method="GET", path="/", segment="", headers=(), body=None) -> RouteContext:
    return RouteContext(
        method=method,
        path=path,
        headers=HeaderSet.from_pairs(headers),
        body=body,
        segment=segment,
    )


class TestRoot:

    def test_root_is_empty_200(self):
        result = root(context())

        assert result.status is HTTPStatus.OK
        assert result.tail == CRLF


class TestEchoHandler:
    """Tests for EchoHandler."""

    def test_echo_text(self):
        result = EchoHandler().handle(context(path="/echo/abc", segment="abc"))

        assert result.status is HTTPStatus.OK
        assert result.tail == b"Content-Type: text/plain\r\nContent-Length: 3\r\n\r\nabc"

    def test_empty_segment(self):
        result = EchoHandler().handle(context(path="/echo", segment=""))

        assert result.tail == b"Content-Type: text/plain\r\nContent-Length: 0\r\n\r\n"

    def test_segment_with_slashes(self):
        result = EchoHandler().handle(context(path="/echo/a/b", segment="a/b"))

        assert result.body == b"a/b"

    def test_content_length_counts_bytes(self):
        segment = b"caf\xc3\xa9".decode("iso-8859-1")

        result = EchoHandler().handle(context(segment=segment))

        assert b"Content-Length: 5\r\n" in result.tail
        assert result.body == b"caf\xc3\xa9"

    def test_gzip_is_advertised_not_applied(self):
        ctx = context(segment="abc", headers=[("Accept-Encoding", "gzip")])

        result = EchoHandler().handle(ctx)

        assert result.tail == (
            b"Content-Type: text/plain\r\n"
            b"Content-Encoding: gzip\r\n"
            b"Content-Length: 3\r\n"
            b"\r\n"
            b"abc"
        )

    @pytest.mark.parametrize("value", ["gzip, deflate", "GZIP", "deflate", ""])
    def test_only_exact_gzip_counts(self, value):
        ctx = context(segment="abc", headers=[("Accept-Encoding", value)])

        result = EchoHandler().handle(ctx)

        assert b"Content-Encoding" not in result.tail

    def test_compress_option_gzips_body(self):
        ctx = context(segment="hello hello hello", headers=[("Accept-Encoding", "gzip")])

        result = EchoHandler(compress=True).handle(ctx)

        assert b"Content-Encoding: gzip\r\n" in result.tail
        assert gzip.decompress(result.body) == b"hello hello hello"
        assert f"Content-Length: {len(result.body)}\r\n".encode() in result.tail

    def test_compress_option_without_gzip_request(self):
        result = EchoHandler(compress=True).handle(context(segment="abc"))

        assert result.body == b"abc"


class TestUserAgent:

    def test_echoes_header(self):
        result = user_agent(context(path="/user-agent", headers=[("User-Agent", "foo/1.0")]))

        assert result.status is HTTPStatus.OK
        assert result.tail == b"Content-Type: text/plain\r\nContent-Length: 7\r\n\r\nfoo/1.0"

    def test_missing_header_is_empty_body(self):
        result = user_agent(context(path="/user-agent"))

        assert b"Content-Length: 0\r\n" in result.tail
        assert result.body == b""


class TestFileStore:
    """Tests for FileStore."""

    def test_write_then_read(self, storage_dir):
        store = FileStore(storage_dir)
        store.write("a.bin", b"\x00\x01binary")

        assert (storage_dir / "a.bin").is_file()
        assert store.read("a.bin") == b"\x00\x01binary"

    def test_read_strips_line_terminators(self, storage_dir):
        (storage_dir / "lines.txt").write_bytes(b"alpha\nbeta\r\ngamma")

        assert FileStore(storage_dir).read("lines.txt") == b"alphabetagamma"

    def test_preserve_line_endings(self, storage_dir):
        (storage_dir / "lines.txt").write_bytes(b"alpha\nbeta\r\ngamma\n")

        store = FileStore(storage_dir, preserve_line_endings=True)

        assert store.read("lines.txt") == b"alpha\nbeta\r\ngamma\n"

    def test_missing_file_raises_oserror(self, storage_dir):
        with pytest.raises(OSError):
            FileStore(storage_dir).read("missing")

    def test_write_overwrites(self, storage_dir):
        store = FileStore(storage_dir)
        store.write("x", b"first version")
        store.write("x", b"2nd")

        assert store.read("x") == b"2nd"


class TestFilesHandler:
    """Tests for FilesHandler."""

    @pytest.fixture
    def files(self, storage_dir) -> FilesHandler:
        return FilesHandler(FileStore(storage_dir))

    def test_get_existing(self, files, storage_dir):
        (storage_dir / "data").write_bytes(b"payload")

        result = files.handle(context(path="/files/data", segment="data"))

        assert result.status is HTTPStatus.OK
        assert result.tail == (
            b"Content-Type: application/octet-stream\r\n"
            b"Content-Length: 7\r\n"
            b"\r\n"
            b"payload"
        )

    def test_get_missing_is_404(self, files, caplog):
        with caplog.at_level(logging.INFO, logger="tinyhttpd.handlers.files"):
            result = files.handle(context(path="/files/nope", segment="nope"))

        assert result.status is HTTPStatus.NOT_FOUND
        assert result.tail == CRLF
        assert "nope" in caplog.text

    def test_get_directory_is_404(self, files, storage_dir):
        (storage_dir / "sub").mkdir()

        result = files.handle(context(path="/files/sub", segment="sub"))

        assert result.status is HTTPStatus.NOT_FOUND

    def test_get_empty_name(self, files):
        result = files.handle(context(path="/files", segment=""))

        assert result.status is HTTPStatus.OK
        assert b"Content-Length: 0\r\n" in result.tail
        assert result.body == b""

    def test_post_creates_file(self, files, storage_dir):
        result = files.handle(context("POST", "/files/new", "new", body=b"hello"))

        assert result.status is HTTPStatus.CREATED
        assert result.tail == CRLF
        assert (storage_dir / "new").read_bytes() == b"hello"

    def test_leading_slash_name_stays_under_root(self, files, storage_dir, tmp_path):
        outside = tmp_path / "outside.txt"
        inside = storage_dir / str(outside).lstrip("/")
        inside.parent.mkdir(parents=True)

        result = files.handle(context("POST", f"/files/{outside}", str(outside), body=b"data"))

        assert result.status is HTTPStatus.CREATED
        assert not outside.exists()
        assert inside.read_bytes() == b"data"
        assert files.handle(context(path=f"/files/{outside}", segment=str(outside))).body == b"data"

    def test_post_without_body_creates_empty_file(self, files, storage_dir):
        result = files.handle(context("POST", "/files/empty", "empty", body=None))

        assert result.status is HTTPStatus.CREATED
        assert (storage_dir / "empty").read_bytes() == b""

    def test_post_empty_name_is_400(self, files, storage_dir):
        result = files.handle(context("POST", "/files/", "", body=b"ignored"))

        assert result.status is HTTPStatus.BAD_REQUEST
        assert list(storage_dir.iterdir()) == []

    def test_post_write_failure_is_500(self, tmp_path, caplog):
        files = FilesHandler(FileStore(tmp_path / "does-not-exist"))

        with caplog.at_level(logging.ERROR, logger="tinyhttpd.handlers.files"):
            result = files.handle(context("POST", "/files/x", "x", body=b"data"))

        assert result.status is HTTPStatus.INTERNAL_SERVER_ERROR
        assert result.tail == CRLF
        assert "Error writing file" in caplog.text

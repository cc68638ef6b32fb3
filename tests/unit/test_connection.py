"""
Unit tests for Connection buffering and lifecycle.
"""

import socket

import pytest

from tinyhttpd.core.connection import Connection, ConnectionState
from tinyhttpd.http.request import RequestParser


@pytest.fixture
def pair():
    """Connected (server side, client side) sockets."""
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    yield server_side, client_side
    server_side.close()
    client_side.close()


def make_connection(sock, buffer_size=4) -> Connection:
    return Connection(socket=sock, address=("127.0.0.1", 5555), buffer_size=buffer_size)


class TestConnectionReading:
    """Tests for readline() and read()."""

    def test_readline_across_small_chunks(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)
        client_side.sendall(b"GET / HTTP/1.1\r\nHost: x\r\n")

        assert conn.readline() == b"GET / HTTP/1.1\r\n"
        assert conn.readline() == b"Host: x\r\n"

    def test_readline_at_eof_returns_remainder(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)
        client_side.sendall(b"partial")
        client_side.shutdown(socket.SHUT_WR)

        assert conn.readline() == b"partial"
        assert conn.readline() == b""

    def test_read_exact(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)
        client_side.sendall(b"0123456789")

        assert conn.read(6) == b"012345"
        assert conn.read(4) == b"6789"

    def test_read_short_at_eof(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)
        client_side.sendall(b"abc")
        client_side.shutdown(socket.SHUT_WR)

        assert conn.read(10) == b"abc"

    def test_parser_reads_from_connection(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side, buffer_size=3)
        client_side.sendall(b"POST /files/a HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello")

        request = RequestParser().parse(conn)

        assert request.path == "/files/a"
        assert request.body == b"hello"


class TestConnectionLifecycle:
    """Tests for sending and closing."""

    def test_socket_is_blocking(self, pair):
        server_side, _ = pair
        server_side.settimeout(1.0)

        conn = make_connection(server_side)

        assert conn.socket.gettimeout() is None

    def test_send_response(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)

        assert conn.send_response(b"HTTP/1.1 200 OK\r\n\r\n") is True
        assert client_side.recv(100) == b"HTTP/1.1 200 OK\r\n\r\n"

    def test_send_after_close_fails(self, pair):
        server_side, _ = pair
        conn = make_connection(server_side)
        conn.close()

        assert conn.send_response(b"data") is False

    def test_close_is_idempotent(self, pair):
        server_side, client_side = pair
        conn = make_connection(server_side)

        conn.close()
        conn.close()

        assert conn.state is ConnectionState.CLOSED
        assert client_side.recv(10) == b""

    def test_context_manager_closes(self, pair):
        server_side, _ = pair

        with make_connection(server_side) as conn:
            assert conn.state is ConnectionState.ACCEPTED

        assert conn.state is ConnectionState.CLOSED

    def test_client_ip(self, pair):
        server_side, _ = pair

        assert make_connection(server_side).client_ip == "127.0.0.1"

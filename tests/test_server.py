import json
import socket

import pytest

from minerkit.rpc import ApiSession
from minerkit.server import ApiConnection, ApiServer, http_response
from minerkit.stats import Telemetry


class _Conn:
    host = "pool.example.com"
    port = 4444

    def __str__(self):
        return "stratum://pool.example.com:4444"


class FakeBackend:
    def __init__(self):
        self.active_connection = _Conn()
        self.connected = True
        self.connection_switches = 0
        self.current_epoch = 1
        self.epoch_changes = 0
        self.current_difficulty = 1.0
        self.nonce_scrambler = 0
        self.segment_width = 40
        self.tstart = 0
        self.tstop = 0

    def telemetry(self):
        return Telemetry()


def make_connection():
    session = ApiSession(FakeBackend(), version="minerkit-test")
    return ApiConnection(1, session)


def split_http(raw):
    head, _, rest = raw.partition(b"\r\n\r\n")
    return head.decode().split("\r\n"), rest


def test_http_response_layout():
    raw = http_response("HTTP/1.1", "404 Not Found", "text/plain", "abc", "srv")
    assert raw == (
        b"HTTP/1.1 404 Not Found\r\nServer: srv\r\nContent-Type: text/plain\r\n"
        b"Content-Length: 3\r\n\r\nabc\r\n"
    )


def test_non_get_method_refused():
    conn = make_connection()
    replies = conn.feed(b"POST / HTTP/1.1\r\n\r\n")
    assert len(replies) == 1
    lines, body = split_http(replies[0])
    assert lines[0] == "HTTP/1.1 405 Method not allowed"
    assert body == b"Method POST not allowed\r\n"
    assert conn.should_close is True


def test_unknown_path_not_found():
    conn = make_connection()
    (reply,) = conn.feed(b"GET /nothing HTTP/1.0\r\n\r\n")
    lines, body = split_http(reply)
    assert lines[0] == "HTTP/1.0 404 Not Found"
    assert body.decode() == "The requested resource /nothing not found on this server\r\n"


@pytest.mark.parametrize("path", ["/", "/getstat1"])
def test_status_page_served(path):
    conn = make_connection()
    (reply,) = conn.feed(f"GET {path} HTTP/1.1\r\n\r\n".encode())
    lines, body = split_http(reply)
    assert lines[0] == "HTTP/1.1 200 Ok Error"
    assert "Server: minerkit-test" in lines
    assert "Content-Type: text/html; charset=utf-8" in lines
    length = int(next(line for line in lines if line.startswith("Content-Length")).split(": ")[1])
    assert len(body) == length + 2
    assert body.startswith(b"<!doctype html>")


def test_short_data_waits():
    conn = make_connection()
    assert conn.feed(b"GE") == []
    assert conn.should_close is False


def test_json_ping_reply():
    conn = make_connection()
    (reply,) = conn.feed(b'{"id":1,"jsonrpc":"2.0","method":"miner_ping"}\n')
    assert reply.endswith(b"\n")
    assert json.loads(reply) == {"id": 1, "jsonrpc": "2.0", "result": "pong"}
    assert conn.should_close is False


def test_json_split_across_feeds():
    conn = make_connection()
    assert conn.feed(b'{"id":"a","jsonrpc":"2.0",') == []
    (reply,) = conn.feed(b'"method":"miner_ping"}\n')
    assert json.loads(reply)["id"] == "a"


def test_two_lines_give_two_replies_and_blank_lines_none():
    conn = make_connection()
    data = (
        b'{"id":1,"jsonrpc":"2.0","method":"miner_ping"}\n'
        b"\n   \n"
        b'{"id":2,"jsonrpc":"2.0","method":"miner_ping"}\n'
    )
    replies = conn.feed(data)
    assert [json.loads(r)["id"] for r in replies] == [1, 2]


def test_invalid_json_reported():
    conn = make_connection()
    (reply,) = conn.feed(b"this is not json\n")
    decoded = json.loads(reply)
    assert decoded["id"] is None
    assert decoded["error"]["errorcode"] == "-32700"
    assert decoded["error"]["message"].startswith("Json parse error : ")


def test_negative_port_means_readonly():
    server = ApiServer("127.0.0.1", -3333, "", FakeBackend())
    assert server.readonly is True
    assert server.port == 3333
    assert server.is_running() is False


def test_port_zero_does_not_start():
    server = ApiServer("127.0.0.1", 0, "", FakeBackend())
    server.start()
    assert server.is_running() is False


def _free_port():
    with socket.socket() as probe:
        probe.bind(("127.0.0.1", 0))
        return probe.getsockname()[1]


def test_busy_port_does_not_start():
    with socket.socket() as holder:
        holder.bind(("127.0.0.1", 0))
        holder.listen(1)
        port = holder.getsockname()[1]
        server = ApiServer("127.0.0.1", port, "", FakeBackend())
        server.start()
        assert server.is_running() is False


def test_socket_round_trip():
    server = ApiServer("127.0.0.1", _free_port(), "", FakeBackend())
    server.start()
    try:
        assert server.is_running() is True
        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as client:
            client.sendall(b'{"id":7,"jsonrpc":"2.0","method":"miner_ping"}\n')
            received = b""
            while not received.endswith(b"\n"):
                chunk = client.recv(4096)
                if not chunk:
                    break
                received += chunk
        assert json.loads(received) == {"id": 7, "jsonrpc": "2.0", "result": "pong"}
    finally:
        server.stop()
    assert server.is_running() is False


def test_readonly_server_refuses_writes():
    server = ApiServer("127.0.0.1", -_free_port(), "", FakeBackend())
    server.start()
    try:
        with socket.create_connection(("127.0.0.1", server.port), timeout=5) as client:
            client.sendall(b'{"id":1,"jsonrpc":"2.0","method":"miner_shuffle"}\n')
            received = b""
            while not received.endswith(b"\n"):
                chunk = client.recv(4096)
                if not chunk:
                    break
                received += chunk
        assert json.loads(received)["error"] == {"code": -32601, "message": "Method not available"}
    finally:
        server.stop()
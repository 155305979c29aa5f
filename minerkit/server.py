"""TCP endpoint of the monitoring API: JSON-RPC lines and a small HTTP status page."""

from __future__ import annotations

import json
import re
import socket
import threading
from typing import Any, Callable

from minerkit.log import cnote, cwarn
from minerkit.rpc import ApiSession
from minerkit.stats import MinerBackend, miner_stat_detail, render_http_stat_detail

__all__ = ["ApiConnection", "ApiServer", "http_response"]

_HTTP_REQUEST = re.compile(r"([A-Z]{1,6}) (/\S*) (HTTP/1\.[0-9])")
_POLL_INTERVAL = 0.2


def http_response(
    version: str, status: str, content_type: str, body: str, server_name: str
) -> bytes:
    """A complete HTTP response carrying ``body``."""
    payload = body.encode("utf-8")
    head = (
        f"{version} {status}\r\n"
        f"Server: {server_name}\r\n"
        f"Content-Type: {content_type}\r\n"
        f"Content-Length: {len(payload)}\r\n\r\n"
    )
    return head.encode("utf-8") + payload + b"\r\n"


def _encode_json(value: Any) -> bytes:
    return (json.dumps(value, separators=(",", ":"), sort_keys=True) + "\n").encode("utf-8")


class ApiConnection:
    """Turns the bytes one client sends into the bytes to send back.

    After :meth:`feed` returns, ``should_close`` tells whether the connection
    must be closed once the replies have been sent.
    """

    def __init__(self, session_id: int, session: ApiSession) -> None:
        self.session_id = session_id
        self.session = session
        self.should_close = False
        self._message = ""

    def feed(self, data: bytes | str) -> list[bytes]:
        """Take in received data; return the replies it produces, in order."""
        if isinstance(data, bytes):
            data = data.decode("utf-8", errors="replace")
        self._message += data
        if len(self._message) < 4:
            return []

        match = _HTTP_REQUEST.match(self._message)
        if match:
            self._message = ""
            self.should_close = True
            return [self._http_reply(*match.groups())]

        replies = []
        while "\n" in self._message:
            line, self._message = self._message.split("\n", 1)
            response = self.session.handle_line(line)
            if response is not None:
                replies.append(_encode_json(response))
        return replies

    def _http_reply(self, method: str, path: str, version: str) -> bytes:
        server_name = self.session.version
        if method != "GET":
            what = f"Method {method} not allowed"
            return http_response(
                version, "405 Method not allowed", "text/plain", what, server_name
            )
        if path not in ("/", "/getstat1"):
            what = f"The requested resource {path} not found on this server"
            return http_response(version, "404 Not Found", "text/plain", what, server_name)
        try:
            detail = miner_stat_detail(self.session.backend, self.session.version)
            body = render_http_stat_detail(detail)
        except Exception as exc:  # noqa: BLE001 - reported to the client as a 500
            what = "Internal error : " + str(exc)
            return http_response(
                version, "500 Internal Server Error", "text/plain", what, server_name
            )
        return http_response(
            version, "200 Ok Error", "text/html; charset=utf-8", body, server_name
        )


class ApiServer:
    """Listens for API clients and serves each one on its own thread.

    A negative port makes the endpoint read-only; port zero disables it.
    """

    def __init__(
        self,
        address: str,
        port: int,
        password: str,
        backend: MinerBackend,
        version: str = "minerkit",
    ) -> None:
        self.address = address
        self.readonly = port < 0
        self.port = -port if port < 0 else port
        self.backend = backend
        self.version = version
        self._password = password
        self._running = threading.Event()
        self._listener: socket.socket | None = None
        self._accept_thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._sessions: dict[int, tuple[socket.socket, threading.Thread]] = {}
        self._last_session_id = 0

    def is_running(self) -> bool:
        """Whether the server is accepting clients."""
        return self._running.is_set()

    def start(self) -> None:
        """Bind and start accepting; logs a warning and returns if the port is unusable."""
        if self.port == 0 or self.is_running():
            return
        listener = socket.socket(socket.AF_INET6 if ":" in self.address else socket.AF_INET)
        try:
            listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            listener.bind((self.address, self.port))
            listener.listen(64)
        except OSError:
            listener.close()
            cwarn(f"Could not start API server on port: {self.port}")
            cwarn("Ensure port is not in use by another service")
            return
        listener.settimeout(_POLL_INTERVAL)
        self._listener = listener
        cnote(
            f"Api server listening on port {self.port}",
            "." if not self._password else ". Authentication needed.",
        )
        self._running.set()
        self._accept_thread = threading.Thread(
            target=self._accept_loop, name="api", daemon=True
        )
        self._accept_thread.start()

    def stop(self) -> None:
        """Stop accepting, close every session and wait for their threads."""
        if not self.is_running():
            return
        self._running.clear()
        if self._accept_thread is not None:
            self._accept_thread.join()
            self._accept_thread = None
        if self._listener is not None:
            self._listener.close()
            self._listener = None
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for _sock, thread in sessions:
            thread.join()

    def _accept_loop(self) -> None:
        assert self._listener is not None
        while self.is_running():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError:
                break
            with self._lock:
                self._last_session_id += 1
                session_id = self._last_session_id
            session = ApiSession(self.backend, self.readonly, self._password, self.version)
            connection = ApiConnection(session_id, session)
            cnote("New API session from ", f"{peer[0]}:{peer[1]}")
            thread = threading.Thread(
                target=self._serve,
                args=(client, connection, self._forget),
                name=f"api-{session_id}",
                daemon=True,
            )
            with self._lock:
                self._sessions[session_id] = (client, thread)
            thread.start()

    def _forget(self, session_id: int) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def _serve(
        self,
        client: socket.socket,
        connection: ApiConnection,
        on_disconnected: Callable[[int], None],
    ) -> None:
        client.settimeout(_POLL_INTERVAL)
        try:
            while self.is_running():
                try:
                    data = client.recv(4096)
                except socket.timeout:
                    continue
                if not data:
                    break
                for reply in connection.feed(data):
                    client.sendall(reply)
                if connection.should_close:
                    break
        except OSError:
            pass
        finally:
            try:
                client.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
            client.close()
            on_disconnected(connection.session_id)
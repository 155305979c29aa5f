"""JSON-RPC 2.0 request handling for the miner monitoring and control API."""

from __future__ import annotations

import hmac
import json
import math
import re
import sys
from typing import Any, Callable

from minerkit.commondata import MinerError
from minerkit.log import SETTINGS, LogFlag, cnote, cwarn
from minerkit.stats import MinerBackend, miner_stat1, miner_stat_detail

__all__ = [
    "RpcError",
    "ApiSession",
    "parse_request_id",
    "require_value",
    "check_write_access",
]

INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
UNPROCESSABLE = -422
UNAUTHORIZED = -401
FORBIDDEN = -403

_U32 = (1 << 32) - 1
_U64 = (1 << 64) - 1
_MAX_PASSWORD_LENGTH = 500
_HEX_NONCE = re.compile(r"0x([0-9a-fA-F]*)")

_NO_RESULT = object()


class RpcError(MinerError):
    """A JSON-RPC error carrying the code and message to send back."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(message)
        self.code = code

    def to_json(self) -> dict[str, Any]:
        """The error object of a response."""
        return {"code": self.code, "message": self.message}


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (dict, list)) and not value)


def _is_uint(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return 0 <= value <= _U32
    if isinstance(value, float):
        return math.isfinite(value) and value.is_integer() and 0 <= value <= _U32
    return False


def _as_uint64(value: Any) -> int | None:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value if 0 <= value <= _U64 else None
    if isinstance(value, float):
        if math.isfinite(value) and 0 <= value <= _U64:
            return int(value)
    return None


_TYPE_CHECKS: dict[str, Callable[[Any], bool]] = {
    "bool": lambda v: isinstance(v, bool),
    "uint": _is_uint,
    "object": lambda v: isinstance(v, dict),
    "string": lambda v: isinstance(v, str),
}

_CONVERTERS: dict[str, Callable[[Any], Any]] = {
    "bool": bool,
    "uint": int,
    "object": lambda v: v,
    "string": str,
}


def parse_request_id(request: Any) -> int | str:
    """The request id, which must be an unsigned integer or a string."""
    if not isinstance(request, dict) or _is_empty(request.get("id")):
        raise RpcError(INVALID_REQUEST, "Invalid Request (missing or empty id)")
    value = request["id"]
    if _is_uint(value):
        return int(value)
    if isinstance(value, str):
        return value
    raise RpcError(INVALID_REQUEST, "Invalid Request (id has invalid type)")


def require_value(container: Any, name: str, kind: str, optional: bool = False) -> Any:
    """Fetch member ``name`` of kind bool, uint, uint64, object or string.

    A missing optional member gives ``None``; any other problem raises ``RpcError``.
    """
    if kind != "uint64" and kind not in _TYPE_CHECKS:
        raise ValueError(f"unknown value kind: {kind}")
    if not isinstance(container, dict) or name not in container:
        if optional:
            return None
        raise RpcError(INVALID_PARAMS, f"Missing '{name}'")
    value = container[name]
    if kind == "uint64":
        if _is_empty(value):
            raise RpcError(INVALID_PARAMS, f"Empty '{name}'")
        converted = _as_uint64(value)
        if converted is None:
            raise RpcError(INVALID_PARAMS, f"Bad value in '{name}'")
        return converted
    if not _TYPE_CHECKS[kind](value):
        raise RpcError(INVALID_PARAMS, f"Invalid type of value '{name}'")
    if _is_empty(value):
        raise RpcError(INVALID_PARAMS, f"Empty '{name}'")
    return _CONVERTERS[kind](value)


def check_write_access(readonly: bool) -> None:
    """Refuse methods that change state on a read-only endpoint."""
    if readonly:
        raise RpcError(METHOD_NOT_FOUND, "Method not available")


def _padded(text: str) -> bytes:
    return text.encode("utf-8")[:_MAX_PASSWORD_LENGTH].ljust(_MAX_PASSWORD_LENGTH, b"\0")


class ApiSession:
    """State and request processing of one API client session."""

    def __init__(
        self,
        backend: MinerBackend,
        readonly: bool = False,
        password: str = "",
        version: str = "minerkit",
    ) -> None:
        self.backend = backend
        self.readonly = readonly
        self.version = version
        self._password = password
        self.authenticated = not password
        self._methods: dict[str, Callable[[dict], Any]] = {
            "miner_getstat1": self._getstat1,
            "miner_getstatdetail": self._getstatdetail,
            "miner_shuffle": self._shuffle,
            "miner_ping": self._ping,
            "miner_restart": self._restart,
            "miner_reboot": self._reboot,
            "miner_getconnections": self._getconnections,
            "miner_addconnection": self._addconnection,
            "miner_setactiveconnection": self._setactiveconnection,
            "miner_removeconnection": self._removeconnection,
            "miner_getscramblerinfo": self._getscramblerinfo,
            "miner_setscramblerinfo": self._setscramblerinfo,
            "miner_pausegpu": self._pausegpu,
            "miner_setverbosity": self._setverbosity,
        }

    def process_request(self, request: Any) -> dict[str, Any]:
        """Handle one decoded request and build its response."""
        response: dict[str, Any] = {"jsonrpc": "2.0"}
        try:
            response["id"] = parse_request_id(request)
        except RpcError as err:
            response["id"] = None
            response["error"] = err.to_json()
            return response
        try:
            result = self._dispatch(request)
        except RpcError as err:
            response["error"] = err.to_json()
            return response
        if result is not _NO_RESULT:
            response["result"] = result
        return response

    def handle_line(self, line: str) -> dict[str, Any] | None:
        """Decode and process one text line; ``None`` for a blank line."""
        text = line.strip()
        if not text:
            return None
        try:
            request = json.loads(text)
        except ValueError as exc:
            what = str(exc).replace("\n", " ")
            cwarn("API : Got invalid Json message ", what)
            return {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"errorcode": "-32700", "message": "Json parse error : " + what},
            }
        try:
            return self.process_request(request)
        except Exception as exc:  # noqa: BLE001 - reported back to the client
            return {
                "jsonrpc": "2.0",
                "id": None,
                "error": {"errorcode": "500", "message": str(exc)},
            }

    def _dispatch(self, request: dict) -> Any:
        try:
            jsonrpc = require_value(request, "jsonrpc", "string")
            if jsonrpc != "2.0":
                raise RpcError(INVALID_REQUEST, "Invalid Request")
            method = require_value(request, "method", "string")
        except RpcError:
            raise RpcError(INVALID_REQUEST, "Invalid Request") from None

        if not self.authenticated or method == "api_authorize":
            if method != "api_authorize":
                raise RpcError(FORBIDDEN, "Authorization needed")
            self._authorize(request)
            return _NO_RESULT

        cnote("API : Method ", method, " requested")
        handler = self._methods.get(method)
        if handler is None:
            raise RpcError(METHOD_NOT_FOUND, "Method not found")
        return handler(request)

    def _authorize(self, request: dict) -> None:
        self.authenticated = False
        params = require_value(request, "params", "object")
        given = require_value(params, "psw", "string")
        if hmac.compare_digest(_padded(given), _padded(self._password)):
            self.authenticated = True
            return
        sys.stderr.write("API : Invalid password provided.")
        raise RpcError(UNAUTHORIZED, "Invalid password")

    def _params(self, request: dict, write: bool = True) -> dict:
        if write:
            check_write_access(self.readonly)
        return require_value(request, "params", "object")

    def _getstat1(self, request: dict) -> Any:
        return miner_stat1(self.backend, self.version)

    def _getstatdetail(self, request: dict) -> Any:
        return miner_stat_detail(self.backend, self.version)

    def _shuffle(self, request: dict) -> Any:
        check_write_access(self.readonly)
        self.backend.shuffle()
        return True

    def _ping(self, request: dict) -> Any:
        return "pong"

    def _restart(self, request: dict) -> Any:
        check_write_access(self.readonly)
        self.backend.restart_async()
        return True

    def _reboot(self, request: dict) -> Any:
        check_write_access(self.readonly)
        return self.backend.reboot(["api_miner_reboot"])

    def _getconnections(self, request: dict) -> Any:
        return self.backend.connections_json()

    def _addconnection(self, request: dict) -> Any:
        params = self._params(request)
        uri = require_value(params, "uri", "string")
        try:
            self.backend.add_connection(uri)
        except Exception:  # noqa: BLE001 - any failure means the URI was refused
            raise RpcError(UNPROCESSABLE, "Bad URI : " + uri) from None
        return True

    def _setactiveconnection(self, request: dict) -> Any:
        params = self._params(request)
        try:
            if "index" in params:
                target: int | str = require_value(params, "index", "uint")
            else:
                target = require_value(params, "URI", "string")
        except RpcError:
            raise RpcError(UNPROCESSABLE, "Invalid index") from None
        try:
            self.backend.set_active_connection(target)
        except Exception as exc:  # noqa: BLE001 - reason is passed on to the client
            raise RpcError(UNPROCESSABLE, str(exc)) from None
        return True

    def _removeconnection(self, request: dict) -> Any:
        params = self._params(request)
        index = require_value(params, "index", "uint")
        try:
            self.backend.remove_connection(index)
        except Exception as exc:  # noqa: BLE001 - reason is passed on to the client
            raise RpcError(UNPROCESSABLE, str(exc)) from None
        return True

    def _getscramblerinfo(self, request: dict) -> Any:
        return self.backend.scrambler_json()

    def _setscramblerinfo(self, request: dict) -> Any:
        params = self._params(request)
        provided = False
        nonce = self.backend.nonce_scrambler
        width = self.backend.segment_width

        if "noncescrambler" in params:
            provided = True
            raw = params["noncescrambler"]
            match = _HEX_NONCE.match(raw) if isinstance(raw, str) else None
            if match:
                digits = match.group(1)
                nonce = int(digits, 16) if digits else 0
                if nonce > _U64:
                    raise RpcError(UNPROCESSABLE, "Invalid nonce")
            else:
                nonce = require_value(params, "noncescrambler", "uint64")

        if "segmentwidth" in params:
            provided = True
            width = require_value(params, "segmentwidth", "uint")

        if not provided:
            raise RpcError(INVALID_PARAMS, "Missing parameters")

        if width < 10:
            width = 10
        if width > 50:
            width = 40
        self.backend.nonce_scrambler = nonce
        self.backend.segment_width = width
        return True

    def _pausegpu(self, request: dict) -> Any:
        params = self._params(request)
        index = require_value(params, "index", "uint")
        pause = require_value(params, "pause", "bool")
        if not self.backend.pause_miner(index, pause):
            raise RpcError(UNPROCESSABLE, "Index out of bounds")
        return True

    def _setverbosity(self, request: dict) -> Any:
        params = self._params(request)
        verbosity = require_value(params, "verbosity", "uint")
        if verbosity >= LogFlag.NEXT:
            raise RpcError(
                UNPROCESSABLE, f"Verbosity out of bounds (0-{int(LogFlag.NEXT) - 1})"
            )
        cnote("Setting verbosity level to ", verbosity)
        SETTINGS.options = verbosity
        return True
"""Hex and big-endian conversions, difficulty/target maths and value formatting."""

from __future__ import annotations

import os
from collections.abc import Sequence
from decimal import Decimal

__all__ = [
    "MinerError",
    "BadHexCharacter",
    "ExternalFunctionFailure",
    "hex_digit_value",
    "from_hex",
    "to_hex",
    "to_hex_int",
    "to_compact_hex",
    "to_big_endian",
    "from_big_endian",
    "to_compact_big_endian",
    "bytes_required",
    "set_env",
    "target_from_difficulty",
    "hashes_to_target",
    "scaled_size",
    "format_hashes",
    "format_memory",
    "pad_left",
    "pad_right",
]

_DIFFICULTY_ONE_TARGET = int(
    "00000000ffff0000000000000000000000000000000000000000000000000000", 16
)
_MAX_TARGET = (1 << 256) - 1
_HASHES_DIVIDEND = int(
    "ffff000000000000000000000000000000000000000000000000000000000000", 16
)

_HASH_SUFFIXES = ("h", "Kh", "Mh", "Gh")
_MEMORY_SUFFIXES = ("B", "KB", "MB", "GB")


class MinerError(Exception):
    """Base class for all errors raised by the package."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message or type(self).__name__)
        self.message = message or type(self).__name__


class BadHexCharacter(MinerError):
    """A character that is not a hexadecimal digit was met."""

    def __init__(self, symbol: str | None = None) -> None:
        super().__init__("BadHexCharacter")
        self.symbol = symbol


class ExternalFunctionFailure(MinerError):
    """A call into an external facility failed."""

    def __init__(self, function: str) -> None:
        super().__init__(f"Function {function}() failed.")
        self.function = function


def hex_digit_value(char: str, strict: bool = False) -> int:
    """Value of one hex digit; -1 for a bad digit unless ``strict`` asks to raise."""
    if len(char) == 1:
        if "0" <= char <= "9":
            return ord(char) - ord("0")
        if "a" <= char <= "f":
            return ord(char) - ord("a") + 10
        if "A" <= char <= "F":
            return ord(char) - ord("A") + 10
    if strict:
        raise BadHexCharacter(char)
    return -1


def from_hex(text: str, strict: bool = False) -> bytes:
    """Decode a hex string (optional ``0x`` prefix, odd length allowed).

    On a bad character the result is empty, or ``BadHexCharacter`` is raised
    when ``strict`` is true.
    """
    start = 2 if text.startswith("0x") else 0
    out = bytearray()

    def fail() -> bytes:
        if strict:
            raise BadHexCharacter()
        return b""

    if len(text) % 2:
        high = hex_digit_value(text[start])
        if high == -1:
            return fail()
        out.append(high)
        start += 1

    for pos in range(start, len(text), 2):
        high = hex_digit_value(text[pos])
        low = hex_digit_value(text[pos + 1])
        if high == -1 or low == -1:
            return fail()
        out.append(high * 16 + low)
    return bytes(out)


def to_hex(data: bytes | bytearray | Sequence[int], prefix: bool = False) -> str:
    """Encode bytes as lower-case hex pairs."""
    text = bytes(data).hex()
    return "0x" + text if prefix else text


def to_hex_int(value: int, width: int = 16, prefix: bool = False) -> str:
    """Encode an integer as hex, zero-padded to at least ``width`` digits."""
    text = format(value, f"0{width}x")
    return "0x" + text if prefix else text


def to_compact_hex(value: int, prefix: bool = False) -> str:
    """Encode an integer as hex without padding."""
    text = format(value, "x")
    return "0x" + text if prefix else text


def to_big_endian(value: int, length: int) -> bytes:
    """Big-endian bytes of exactly ``length``; higher bytes that do not fit are dropped."""
    mask = (1 << (8 * length)) - 1
    return (value & mask).to_bytes(length, "big")


def from_big_endian(data: bytes | bytearray | Sequence[int]) -> int:
    """Integer value of big-endian bytes."""
    return int.from_bytes(bytes(data), "big")


def bytes_required(value: int) -> int:
    """Number of bytes needed to hold ``value``; 0 for zero."""
    if value < 0:
        raise ValueError("only non-negative values are supported")
    return (value.bit_length() + 7) // 8


def to_compact_big_endian(value: int, minimum: int = 0) -> bytes:
    """Big-endian bytes just long enough for ``value``, at least ``minimum`` long."""
    return to_big_endian(value, max(minimum, bytes_required(value)))


def set_env(name: str, value: str, override: bool = False) -> bool:
    """Set an environment variable, leaving an existing one alone unless ``override``."""
    if not override and name in os.environ:
        return True
    os.environ[name] = value
    return True


def target_from_difficulty(difficulty: float, prefix: bool = True) -> str:
    """The 256-bit boundary target, as 64 hex digits, for a pool difficulty."""
    if difficulty == 0:
        product = _MAX_TARGET
    else:
        inverse = 1 / difficulty
        product = _DIFFICULTY_ONE_TARGET * int(inverse)
        text = format(Decimal(format(inverse, ".17g")), "f")
        if "." in text:
            decimals = text.split(".", 1)[1]
            precision = len(decimals)
            digits = decimals.lstrip("0")
            if digits:
                product += _DIFFICULTY_ONE_TARGET * int(digits) // 10**precision
    target = format(product, "064x")
    return "0x" + target if prefix else target


def _parse_big_integer(text: str) -> int:
    stripped = text.strip()
    if stripped[:2] in ("0x", "0X"):
        return int(stripped[2:], 16)
    if len(stripped) > 1 and stripped.startswith("0"):
        return int(stripped[1:], 8)
    return int(stripped, 10)


def hashes_to_target(target: str) -> float:
    """Expected number of hashes to meet ``target`` (``0x`` hex, octal or decimal)."""
    return float(_HASHES_DIVIDEND // _parse_big_integer(target))


def scaled_size(
    value: float,
    divisor: float,
    precision: int,
    sizes: Sequence[str],
    suffix: bool = True,
) -> str:
    """Divide ``value`` down by ``divisor`` and label it with the matching unit."""
    index = 0
    while value > divisor and index < len(sizes) - 1:
        value /= divisor
        index += 1
    text = f"{value:.{precision}f}"
    return f"{text} {sizes[index]}" if suffix else text


def format_hashes(rate: float, suffix: bool = True, precision: int = 2) -> str:
    """Format a hash rate with h/Kh/Mh/Gh units."""
    return scaled_size(rate, 1000.0, precision, _HASH_SUFFIXES, suffix)


def format_memory(size: float, suffix: bool = True, precision: int = 2) -> str:
    """Format a memory size with B/KB/MB/GB units."""
    return scaled_size(size, 1024.0, precision, _MEMORY_SUFFIXES, suffix)


def pad_left(value: str, length: int, fill: str) -> str:
    """Pad on the left with ``fill`` up to ``length``; never shortens."""
    return value.rjust(length, fill)


def pad_right(value: str, length: int, fill: str) -> str:
    """Pad on the right with ``fill`` up to ``length``; never shortens."""
    return value.ljust(length, fill)
"""Fixed-size raw byte containers used to hold hashes, headers and seeds."""

from __future__ import annotations

import secrets
from collections.abc import Iterable, Sequence
from enum import Enum
from functools import total_ordering

from minerkit.commondata import from_big_endian, from_hex, to_big_endian, to_hex

__all__ = ["Align", "FixedHash", "abridged_list"]

ELLIPSIS = "\u2026"


class Align(Enum):
    """How source bytes of a different length are placed into a hash."""

    LEFT = "left"
    RIGHT = "right"
    FAIL_IF_DIFFERENT = "fail_if_different"


@total_ordering
class FixedHash:
    """A fixed number of bytes, big-endian when seen as an integer."""

    __slots__ = ("_size", "_data")

    def __init__(
        self,
        size: int,
        data: bytes | bytearray | Sequence[int] | FixedHash | None = None,
        align: Align | None = None,
    ) -> None:
        if size <= 0:
            raise ValueError("size must be positive")
        self._size = size
        self._data = bytearray(size)
        if data is None:
            return
        if isinstance(data, FixedHash):
            source = bytes(data)
            mode = align or Align.LEFT
        else:
            source = bytes(data)
            mode = align or Align.FAIL_IF_DIFFERENT
        if len(source) == size:
            self._data[:] = source
            return
        count = min(len(source), size)
        if mode is Align.LEFT:
            self._data[:count] = source[:count]
        elif mode is Align.RIGHT:
            self._data[size - count:] = source[len(source) - count:]

    @classmethod
    def from_int(cls, size: int, value: int) -> FixedHash:
        """Hash holding ``value`` big-endian; bytes that do not fit are dropped."""
        return cls(size, to_big_endian(value, size))

    @classmethod
    def from_hex(cls, size: int, text: str) -> FixedHash:
        """Hash from hex text; a length mismatch gives the zero hash."""
        return cls(size, from_hex(text, strict=True), Align.FAIL_IF_DIFFERENT)

    @classmethod
    def random(cls, size: int) -> FixedHash:
        """Hash filled with random bytes."""
        return cls(size, secrets.token_bytes(size))

    def to_int(self) -> int:
        """Integer value of the bytes, big-endian."""
        return from_big_endian(self._data)

    def hex(self, prefix: bool = False) -> str:
        """The whole hash as lower-case hex."""
        return to_hex(self._data, prefix)

    def abridged(self) -> str:
        """The first four bytes as hex followed by an ellipsis."""
        return to_hex(self._data[:4]) + ELLIPSIS

    def clear(self) -> None:
        """Set every byte to zero."""
        self._data[:] = bytes(self._size)

    def increment(self) -> FixedHash:
        """Add one, big-endian, wrapping to zero on overflow."""
        value = (self.to_int() + 1) % (1 << (8 * self._size))
        self._data[:] = to_big_endian(value, self._size)
        return self

    def _check_peer(self, other: FixedHash) -> None:
        if other._size != self._size:
            raise ValueError(f"size mismatch: {self._size} and {other._size}")

    def __bool__(self) -> bool:
        return any(self._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FixedHash):
            return NotImplemented
        return self._size == other._size and self._data == other._data

    def __lt__(self, other: FixedHash) -> bool:
        if not isinstance(other, FixedHash):
            return NotImplemented
        self._check_peer(other)
        return bytes(self._data) < bytes(other._data)

    def __hash__(self) -> int:
        return hash((self._size, bytes(self._data)))

    def _combine(self, other: FixedHash, op) -> FixedHash:
        if not isinstance(other, FixedHash):
            return NotImplemented
        self._check_peer(other)
        return FixedHash(self._size, bytes(op(a, b) for a, b in zip(self._data, other._data)))

    def __xor__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a ^ b)

    def __or__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a | b)

    def __and__(self, other: FixedHash) -> FixedHash:
        return self._combine(other, lambda a, b: a & b)

    def __invert__(self) -> FixedHash:
        return FixedHash(self._size, bytes(~b & 0xFF for b in self._data))

    def __getitem__(self, index):
        if isinstance(index, slice):
            return bytes(self._data[index])
        return self._data[index]

    def __setitem__(self, index: int, value: int) -> None:
        self._data[index] = value

    def __len__(self) -> int:
        return self._size

    def __bytes__(self) -> bytes:
        return bytes(self._data)

    def __iter__(self):
        return iter(bytes(self._data))

    def __str__(self) -> str:
        return self.hex()

    def __repr__(self) -> str:
        return f"FixedHash({self._size}, {self.hex(prefix=True)})"


def abridged_list(hashes: Iterable[FixedHash]) -> str:
    """Abridged hex of each hash in a bracketed list."""
    return "[ " + "".join(f"{h.abridged()}, " for h in hashes) + "]"
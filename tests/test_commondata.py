import os

import pytest

from minerkit.commondata import (
    BadHexCharacter,
    ExternalFunctionFailure,
    MinerError,
    bytes_required,
    format_hashes,
    format_memory,
    from_big_endian,
    from_hex,
    hashes_to_target,
    hex_digit_value,
    pad_left,
    pad_right,
    scaled_size,
    set_env,
    target_from_difficulty,
    to_big_endian,
    to_compact_big_endian,
    to_compact_hex,
    to_hex,
    to_hex_int,
)

BASE = "00000000ffff0000000000000000000000000000000000000000000000000000"
ALL_F = "ffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff"


def test_hex_digit_values():
    assert hex_digit_value("A") == 10
    assert hex_digit_value("f") == 15
    assert hex_digit_value("5") == 5


def test_hex_digit_bad_non_strict():
    assert hex_digit_value("g") == -1


def test_hex_digit_bad_strict():
    with pytest.raises(BadHexCharacter):
        hex_digit_value("z", strict=True)


def test_from_hex_documented_example():
    assert from_hex("41626261") == b"Abba"


def test_from_hex_prefix_and_odd_length():
    assert from_hex("0x4162") == b"Ab"
    assert from_hex("abc") == b"\x0a\xbc"


def test_from_hex_bad_characters():
    assert from_hex("41zz") == b""
    with pytest.raises(BadHexCharacter):
        from_hex("41zz", strict=True)


def test_to_hex_documented_example():
    assert to_hex(b"A\x69") == "4169"
    assert to_hex(b"A\x69", prefix=True) == "0x4169"


@pytest.mark.parametrize("data", [b"", b"\x00", b"\x01\xff\x10", bytes(range(256))])
def test_hex_round_trip(data):
    assert from_hex(to_hex(data)) == data
    assert from_hex(to_hex(data, prefix=True)) == data


@pytest.mark.parametrize("value", [0, 1, 255, 0xDEADBEEF, 2**64 - 1])
def test_to_hex_int_width_and_value(value):
    text = to_hex_int(value)
    assert len(text) == 16
    assert int(text, 16) == value
    short = to_hex_int(value, 8, prefix=True)
    assert short.startswith("0x")
    assert int(short, 16) == value
    assert len(short) >= 10


@pytest.mark.parametrize("value", [1, 15, 16, 0xABCDEF])
def test_to_compact_hex(value):
    text = to_compact_hex(value)
    assert int(text, 16) == value
    assert not text.startswith("0")
    assert to_compact_hex(value, prefix=True) == "0x" + text


def test_big_endian_fixed_length():
    assert to_big_endian(0x1234, 4) == b"\x00\x00\x12\x34"
    assert to_big_endian(0x123456, 2) == b"\x34\x56"


@pytest.mark.parametrize("value", [0, 1, 255, 256, 2**160 - 1, 2**255 + 7])
def test_big_endian_round_trip(value):
    assert from_big_endian(to_big_endian(value, 32)) == value
    compact = to_compact_big_endian(value)
    assert len(compact) == bytes_required(value)
    assert from_big_endian(compact) == value


def test_compact_big_endian_minimum():
    assert to_compact_big_endian(0, 3) == b"\x00\x00\x00"
    assert to_compact_big_endian(0x1234, 1) == b"\x12\x34"


def test_bytes_required():
    assert bytes_required(0) == 0
    assert bytes_required(255) == 1
    assert bytes_required(256) == 2
    with pytest.raises(ValueError):
        bytes_required(-1)


def test_set_env_respects_override(monkeypatch):
    monkeypatch.delenv("MINERKIT_TEST_VAR", raising=False)
    assert set_env("MINERKIT_TEST_VAR", "100") is True
    assert os.environ["MINERKIT_TEST_VAR"] == "100"
    set_env("MINERKIT_TEST_VAR", "200")
    assert os.environ["MINERKIT_TEST_VAR"] == "100"
    set_env("MINERKIT_TEST_VAR", "200", override=True)
    assert os.environ["MINERKIT_TEST_VAR"] == "200"


def test_target_for_difficulty_one():
    assert target_from_difficulty(1) == "0x" + BASE
    assert target_from_difficulty(1, prefix=False) == BASE


def test_target_for_difficulty_zero():
    assert target_from_difficulty(0) == "0x" + ALL_F


def test_target_scales_with_difficulty():
    base = int(BASE, 16)
    assert int(target_from_difficulty(2), 16) == base // 2
    assert int(target_from_difficulty(0.5), 16) == base * 2
    assert int(target_from_difficulty(4), 16) == base // 4


def test_target_always_64_digits():
    for difficulty in (1, 3, 7.5, 1e6, 4e9):
        target = target_from_difficulty(difficulty, prefix=False)
        assert len(target) == 64
        assert target == target.lower()


def test_target_decreases_with_difficulty():
    values = [int(target_from_difficulty(d), 16) for d in (1, 10, 1000, 1e6)]
    assert values == sorted(values, reverse=True)


def test_hashes_to_target():
    assert hashes_to_target("0x" + BASE) == 4294967296.0
    assert hashes_to_target(target_from_difficulty(2)) == 2 * hashes_to_target("0x" + BASE)


def test_hashes_to_target_bad_input():
    with pytest.raises(ValueError):
        hashes_to_target("0xnothex")


def test_format_hashes():
    assert format_hashes(500) == "500.00 h"
    assert format_hashes(500, suffix=False) == "500.00"
    assert format_hashes(2_500_000).endswith(" Mh")
    assert format_hashes(5e15).endswith(" Gh")


def test_format_memory():
    assert format_memory(2048) == "2.00 KB"
    assert format_memory(3 * 1024**3).endswith(" GB")


def test_scaled_size_precision():
    assert scaled_size(5, 10, 0, ["a", "b"]) == "5 a"
    assert scaled_size(50, 10, 1, ["a", "b"], suffix=False) == "5.0"


def test_padding():
    assert pad_left("7", 3, "0") == "007"
    assert pad_right("7", 3, "-") == "7--"
    assert pad_left("12345", 3, "0") == "12345"
    assert pad_right("12345", 3, "0") == "12345"


def test_exception_messages():
    assert str(ExternalFunctionFailure("open")) == "Function open() failed."
    assert str(BadHexCharacter("q")) == "BadHexCharacter"
    assert issubclass(BadHexCharacter, MinerError)
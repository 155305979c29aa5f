import pytest

from minerkit.commondata import BadHexCharacter
from minerkit.fixedhash import Align, FixedHash, abridged_list


def test_default_is_zero_and_false():
    h = FixedHash(32)
    assert len(h) == 32
    assert bytes(h) == bytes(32)
    assert not h


def test_int_round_trip():
    h = FixedHash.from_int(8, 0x0102030405060708)
    assert h.to_int() == 0x0102030405060708
    assert bytes(h) == bytes([1, 2, 3, 4, 5, 6, 7, 8])
    assert bool(h)


def test_int_too_large_is_truncated():
    h = FixedHash.from_int(2, 0x123456)
    assert h.to_int() == 0x3456


def test_hex_round_trip():
    text = "00ff10aa" * 8
    h = FixedHash.from_hex(32, text)
    assert h.hex() == text
    assert h.hex(prefix=True) == "0x" + text
    assert str(h) == text
    assert FixedHash.from_hex(32, "0x" + text) == h


def test_from_hex_bad_character_raises():
    with pytest.raises(BadHexCharacter):
        FixedHash.from_hex(2, "zz00")


def test_from_hex_wrong_length_gives_zero():
    assert FixedHash.from_hex(4, "0102") == FixedHash(4)


def test_bytes_wrong_length_fail_if_different():
    assert FixedHash(4, b"\x01\x02") == FixedHash(4)


def test_align_left_and_right():
    left = FixedHash(4, b"\x01\x02", Align.LEFT)
    right = FixedHash(4, b"\x01\x02", Align.RIGHT)
    assert bytes(left) == b"\x01\x02\x00\x00"
    assert bytes(right) == b"\x00\x00\x01\x02"


def test_from_other_hash_crops_left_by_default():
    big = FixedHash(4, b"\x01\x02\x03\x04")
    small = FixedHash(2, big)
    assert bytes(small) == b"\x01\x02"
    assert bytes(FixedHash(2, big, Align.RIGHT)) == b"\x03\x04"


def test_increment_carries_and_wraps():
    h = FixedHash(2, b"\x00\xff")
    h.increment()
    assert bytes(h) == b"\x01\x00"
    top = FixedHash(2, b"\xff\xff")
    assert not top.increment()


def test_ordering_is_bytewise():
    a = FixedHash(2, b"\x01\xff")
    b = FixedHash(2, b"\x02\x00")
    assert a < b
    assert b > a
    assert a <= a and a >= a
    assert sorted([b, a]) == [a, b]


def test_ordering_size_mismatch_raises():
    with pytest.raises(ValueError):
        FixedHash(2) < FixedHash(3)


def test_bitwise_operations():
    a = FixedHash(2, b"\x0f\xf0")
    b = FixedHash(2, b"\xff\x00")
    assert bytes(a ^ b) == b"\xf0\xf0"
    assert bytes(a | b) == b"\xff\xf0"
    assert bytes(a & b) == b"\x0f\x00"
    assert ~~a == a
    assert (a ^ a) == FixedHash(2)


def test_bitwise_size_mismatch_raises():
    with pytest.raises(ValueError):
        FixedHash(2) ^ FixedHash(4)


def test_item_access_and_clear():
    h = FixedHash(3)
    h[1] = 0xAB
    assert h[1] == 0xAB
    assert h[0:2] == b"\x00\xab"
    h.clear()
    assert not h
    with pytest.raises(ValueError):
        h[0] = 256
    with pytest.raises(IndexError):
        h[3] = 1


def test_hash_matches_equality():
    a = FixedHash(4, b"abcd")
    b = FixedHash(4, b"abcd")
    assert a == b
    assert hash(a) == hash(b)
    assert len({a, b}) == 1


def test_abridged_uses_first_four_bytes():
    h = FixedHash.from_hex(8, "0123456789abcdef")
    assert h.abridged() == "01234567\u2026"


def test_abridged_list_format():
    h = FixedHash.from_hex(4, "deadbeef")
    assert abridged_list([h, h]) == "[ deadbeef\u2026, deadbeef\u2026, ]"
    assert abridged_list([]) == "[ ]"


def test_random_has_requested_size():
    h = FixedHash.random(32)
    assert len(bytes(h)) == 32
    assert FixedHash(32, bytes(h)) == h


def test_invalid_size_raises():
    with pytest.raises(ValueError):
        FixedHash(0)
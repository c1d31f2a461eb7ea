"""Name rules for long (VFAT) file names."""

from __future__ import annotations

from typing import Iterable, Sequence, Union

Char = Union[str, int]

_BAD_CHARS = frozenset('*?<>|":/\\')
_REPLACE_CHARS = frozenset("[];,+=")
_SKIP_CHARS = frozenset(". ")

MSDOS_NAME = 11


def _code(ch: Char) -> int:
    return ord(ch) if isinstance(ch, str) else ch


def striptail_len(name: Union[str, bytes]) -> int:
    """Length of ``name`` ignoring trailing dots."""
    dot = "." if isinstance(name, str) else b"."
    return len(name.rstrip(dot))


def names_equal(a: str, b: str, fold: bool = True) -> bool:
    """Compare two names, trailing dots ignored; ``fold`` ignores case."""
    left = a[: striptail_len(a)]
    right = b[: striptail_len(b)]
    if len(left) != len(right):
        return False
    if fold:
        return left.lower() == right.lower()
    return left == right


def is_bad_char(ch: Char) -> bool:
    """Whether a character may never appear in a long name."""
    code = _code(ch)
    return code < 0x20 or chr(code) in _BAD_CHARS


def is_replace_char(ch: Char) -> bool:
    """Whether a character is replaced by '_' in a short name."""
    return chr(_code(ch)) in _REPLACE_CHARS


def is_skip_char(ch: Char) -> bool:
    """Whether a character is dropped from a short name."""
    return chr(_code(ch)) in _SKIP_CHARS


def check_bad_chars(units: Union[str, Sequence[int], Iterable[Char]]) -> None:
    """Reject a name holding a bad character or ending in a space.

    Raises ValueError.
    """
    codes = [_code(ch) for ch in units]
    if not codes:
        raise ValueError("empty name")
    for code in codes:
        if is_bad_char(code):
            raise ValueError(f"invalid character {chr(code)!r} in name")
    if codes[-1] == ord(" "):
        raise ValueError("name cannot end with a space")


def lfn_checksum(name11: bytes) -> int:
    """Checksum of an 11-byte short name as stored in long-name slots."""
    if len(name11) != MSDOS_NAME:
        raise ValueError(f"short name must be {MSDOS_NAME} bytes, got {len(name11)}")
    total = 0
    for byte in name11:
        total = ((((total & 1) << 7) | (total >> 1)) + byte) & 0xFF
    return total
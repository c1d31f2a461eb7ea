"""Generation of 8.3 short-name aliases for long file names."""

from __future__ import annotations

import codecs
import struct
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Union

from .options import SHORTNAME_MIXED, Shortname
from .vfat_names import MSDOS_NAME, is_replace_char, is_skip_char

CASE_LOWER_BASE = 0x08
CASE_LOWER_EXT = 0x10

DELETED_FLAG = 0xE5
_DELETED_SUBSTITUTE = 0x05

_BASE_LEN = 8
_EXT_LEN = 3
_DOT = 0x2E

Exists = Callable[[bytes], bool]


@dataclass(frozen=True)
class ShortnameResult:
    """A chosen 11-byte short name.

    ``is_shortname`` is true when the long name fits the alias exactly
    and no long-name slots need to be stored; ``lcase`` then holds the
    lower-case display flags.
    """

    name: bytes
    lcase: int
    is_shortname: bool


@dataclass
class _CaseInfo:
    lower: bool = True
    upper: bool = True
    valid: bool = True


def _codec_name(codepage: Union[int, str]) -> str:
    name = f"cp{codepage}" if isinstance(codepage, int) else codepage
    return codecs.lookup(name).name


def _units(uname: Union[str, Sequence[int], Iterable[int]]) -> List[int]:
    if isinstance(uname, str):
        data = uname.encode("utf-16-le", "surrogatepass")
        return [unit for (unit,) in struct.iter_unpack("<H", data)]
    return [int(unit) for unit in uname]


def _isalpha(byte: int) -> bool:
    if 0x41 <= byte <= 0x5A or 0x61 <= byte <= 0x7A:
        return True
    return byte >= 0xC0 and byte not in (0xD7, 0xF7)


def _toupper(byte: int, codec: str) -> int:
    try:
        upper = bytes([byte]).decode(codec).upper()
    except UnicodeDecodeError:
        return byte
    if len(upper) != 1:
        return byte
    try:
        encoded = upper.encode(codec)
    except UnicodeEncodeError:
        return byte
    return encoded[0] if len(encoded) == 1 else byte


def _to_shortname_char(unit: int, codec: str, info: _CaseInfo) -> bytes:
    if is_skip_char(unit):
        info.valid = False
        return b""
    if is_replace_char(unit):
        info.valid = False
        return b"_"
    try:
        encoded = chr(unit).encode(codec)
    except UnicodeEncodeError:
        encoded = b""
    if not encoded:
        info.valid = False
        return b"_"
    if len(encoded) > 1:
        info.lower = False
        info.upper = False
        return encoded
    prev = encoded[0]
    if prev >= 0x7F:
        info.lower = False
        info.upper = False
    upper = _toupper(prev, codec)
    if _isalpha(upper):
        if upper == prev:
            info.lower = False
        else:
            info.upper = False
    return bytes([upper])


def _split(units: List[int]) -> "tuple[int, Optional[int]]":
    """Return the base length and the index where the extension starts."""
    ulen = len(units)
    dot = next((i for i in range(ulen - 1, -1, -1) if units[i] == _DOT), None)
    if dot is None or dot == ulen - 1:
        return ulen, None
    if any(not is_skip_char(unit) for unit in units[:dot]):
        return dot, dot + 1
    return ulen, None


def create_shortname(
    uname: Union[str, Sequence[int]],
    codepage: Union[int, str] = 437,
    exists: Optional[Exists] = None,
    shortname_mode: int = int(SHORTNAME_MIXED),
    numtail: bool = True,
    tick: int = 0,
) -> ShortnameResult:
    """Choose a unique 8.3 alias for a long name.

    ``exists`` tells whether an 11-byte short name is already taken in
    the directory. ``tick`` seeds the hashed fallback tail used once the
    ``~1`` to ``~9`` tails are all taken. Raises ValueError if no alias
    can be formed and FileExistsError if the name itself already exists
    as a short name.
    """
    codec = _codec_name(codepage)
    taken: Exists = exists if exists is not None else (lambda name: False)
    units = _units(uname)
    ulen = len(units)
    base_info = _CaseInfo()
    ext_info = _CaseInfo()
    is_shortname = True

    sz, ext_start = _split(units)

    numtail_baselen = 6
    numtail2_baselen = 2
    base = bytearray()
    for index, unit in enumerate(units[:sz]):
        chars = _to_shortname_char(unit, codec, base_info)
        if not chars:
            continue
        chl = len(chars)
        if len(base) < 2 and len(base) + chl > 2:
            numtail2_baselen = len(base)
        if len(base) < 6 and len(base) + chl > 6:
            numtail_baselen = len(base)
        used = 0
        for byte in chars:
            base.append(byte)
            used += 1
            if len(base) >= _BASE_LEN:
                break
        if len(base) >= _BASE_LEN:
            if used < chl or index + 1 < sz:
                is_shortname = False
            break
    if not base:
        raise ValueError("name has no characters usable in a short name")

    ext = bytearray()
    if ext_start is not None:
        for index in range(ext_start, ulen):
            if len(ext) >= _EXT_LEN:
                break
            chars = _to_shortname_char(units[index], codec, ext_info)
            if not chars:
                continue
            if len(ext) + len(chars) > _EXT_LEN:
                is_shortname = False
                break
            ext.extend(chars)
            if len(ext) >= _EXT_LEN:
                if index + 1 != ulen:
                    is_shortname = False
                break

    if base[0] == DELETED_FLAG:
        base[0] = _DELETED_SUBSTITUTE

    name_res = bytearray(base.ljust(_BASE_LEN, b" ") + ext.ljust(_EXT_LEN, b" "))
    assert len(name_res) == MSDOS_NAME

    if is_shortname and base_info.valid and ext_info.valid:
        if taken(bytes(name_res)):
            raise FileExistsError(bytes(name_res).decode("latin-1"))
        if shortname_mode & Shortname.CREATE_WIN95:
            return ShortnameResult(
                bytes(name_res), 0, base_info.upper and ext_info.upper
            )
        if shortname_mode & Shortname.CREATE_WINNT:
            if (base_info.upper or base_info.lower) and (
                ext_info.upper or ext_info.lower
            ):
                lcase = 0
                if not base_info.upper and base_info.lower:
                    lcase |= CASE_LOWER_BASE
                if not ext_info.upper and ext_info.lower:
                    lcase |= CASE_LOWER_EXT
                return ShortnameResult(bytes(name_res), lcase, True)
            return ShortnameResult(bytes(name_res), 0, False)
        raise ValueError(f"no short-name creation rule in mode 0x{shortname_mode:x}")

    if not numtail and not taken(bytes(name_res)):
        return ShortnameResult(bytes(name_res), 0, False)

    baselen = len(base)
    if baselen > 6:
        baselen = numtail_baselen
        name_res[7] = ord(" ")
    name_res[baselen] = ord("~")
    for digit in range(1, 10):
        name_res[baselen + 1] = ord("0") + digit
        if not taken(bytes(name_res)):
            return ShortnameResult(bytes(name_res), 0, False)

    counter = tick
    tail = (tick >> 16) & 0x7
    if baselen > 2:
        baselen = numtail2_baselen
        name_res[7] = ord(" ")
    name_res[baselen + 4] = ord("~")
    name_res[baselen + 5] = ord("1") + tail
    for _ in range(0x10000):
        name_res[baselen : baselen + 4] = f"{counter & 0xFFFF:04X}".encode("ascii")
        if not taken(bytes(name_res)):
            return ShortnameResult(bytes(name_res), 0, False)
        counter -= 11
    raise FileExistsError("no free short name left for this base")
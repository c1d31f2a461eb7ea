"""Directory slots for a new VFAT entry: long-name slots and the 8.3 alias."""

from __future__ import annotations

import codecs
import re
import struct
import time as _clock
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from .options import MountOptions, parse_options
from .shortname import create_shortname
from .vfat_names import MSDOS_NAME, check_bad_chars, lfn_checksum

FAT_LFN_LEN = 255
LFN_CHARS_PER_SLOT = 13
LAST_SLOT_FLAG = 0x40

ATTR_DIR = 0x10
ATTR_ARCH = 0x20
ATTR_EXT = 0x0F

_HEX4 = re.compile(rb"[0-9a-fA-F]{4}")
_MAX_CHAR_BYTES = 4

_SLOT_FORMAT = struct.Struct("<B5HBBB6HH2H")
_ENTRY_FORMAT = struct.Struct("<11sBBBHHHHHHHI")

Name = Union[str, bytes, bytearray]
Exists = Callable[[bytes], bool]


@dataclass(frozen=True)
class LongNameSlot:
    """One 32-byte directory slot carrying 13 UTF-16 units of a long name."""

    sequence: int
    name: Tuple[int, ...]
    alias_checksum: int
    attr: int = ATTR_EXT
    reserved: int = 0
    start: int = 0

    def __post_init__(self) -> None:
        if len(self.name) != LFN_CHARS_PER_SLOT:
            raise ValueError(
                f"a slot holds {LFN_CHARS_PER_SLOT} units, got {len(self.name)}"
            )

    @property
    def is_last(self) -> bool:
        """Whether this slot holds the end of the name (it comes first on disk)."""
        return bool(self.sequence & LAST_SLOT_FLAG)

    def to_bytes(self) -> bytes:
        """The slot as stored on disk."""
        units = self.name
        return _SLOT_FORMAT.pack(
            self.sequence,
            *units[0:5],
            self.attr,
            self.reserved,
            self.alias_checksum,
            *units[5:11],
            self.start,
            *units[11:13],
        )


@dataclass(frozen=True)
class ShortEntry:
    """A 32-byte 8.3 directory entry."""

    name: bytes
    attr: int
    lcase: int = 0
    ctime_cs: int = 0
    ctime: int = 0
    cdate: int = 0
    adate: int = 0
    time: int = 0
    date: int = 0
    cluster: int = 0
    size: int = 0

    def __post_init__(self) -> None:
        if len(self.name) != MSDOS_NAME:
            raise ValueError(f"short name must be {MSDOS_NAME} bytes, got {len(self.name)}")

    def to_bytes(self) -> bytes:
        """The entry as stored on disk; the cluster is split into two halves."""
        return _ENTRY_FORMAT.pack(
            bytes(self.name),
            self.attr,
            self.lcase,
            self.ctime_cs,
            self.ctime,
            self.cdate,
            self.adate,
            (self.cluster >> 16) & 0xFFFF,
            self.time,
            self.date,
            self.cluster & 0xFFFF,
            self.size,
        )


def _codec(codepage: Union[int, str]) -> str:
    name = f"cp{codepage}" if isinstance(codepage, int) else codepage
    return codecs.lookup(name).name


def _utf16_units(text: str) -> List[int]:
    data = text.encode("utf-16-le", "surrogatepass")
    return [unit for (unit,) in struct.iter_unpack("<H", data)]


def _decode_char(raw: bytes, codec: str) -> Tuple[int, int]:
    """Decode one character at the start of ``raw``: (unit, bytes used)."""
    for size in range(1, min(_MAX_CHAR_BYTES, len(raw)) + 1):
        try:
            text = raw[:size].decode(codec)
        except UnicodeDecodeError:
            continue
        if len(text) != 1 or ord(text) > 0xFFFF:
            break
        return ord(text), size
    raise ValueError(f"byte sequence {raw[:_MAX_CHAR_BYTES]!r} has no {codec} mapping")


def _pad(units: List[int]) -> List[int]:
    padded = list(units)
    if len(padded) % LFN_CHARS_PER_SLOT:
        padded.append(0)
        fill = -len(padded) % LFN_CHARS_PER_SLOT
        padded.extend([0xFFFF] * fill)
    return padded


def xlate_to_uni(
    name: Name,
    escape: bool = False,
    utf8: bool = False,
    codepage: Union[int, str] = "iso8859-1",
) -> Tuple[List[int], int]:
    """Translate a name into UTF-16 units padded to whole slots.

    With ``utf8`` the name is read as UTF-8; otherwise each character is
    decoded with ``codepage``, and with ``escape`` a ``:XXXX`` sequence
    stands for the unit with that hex value. Returns the padded units
    (a 0 terminator and 0xFFFF fill when the length is not a multiple of
    13) and the length of the name itself. Raises ValueError for a bad
    or too long name.
    """
    if utf8:
        raw = name.encode("utf-8") if isinstance(name, str) else bytes(name)
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as err:
            raise ValueError(f"invalid UTF-8 in name: {err}") from None
        units = _utf16_units(text)
        if len(units) > FAT_LFN_LEN:
            raise ValueError("file name too long")
    else:
        codec = _codec(codepage)
        raw = name.encode(codec) if isinstance(name, str) else bytes(name)
        units = []
        pos = 0
        while pos < len(raw) and len(units) < FAT_LFN_LEN:
            if escape and raw[pos] == ord(":"):
                if pos > len(raw) - 5:
                    raise ValueError("truncated escape sequence in name")
                digits = raw[pos + 1 : pos + 5]
                if not _HEX4.fullmatch(digits):
                    raise ValueError(f"bad escape sequence {digits!r} in name")
                units.append(int(digits, 16))
                pos += 5
            else:
                unit, used = _decode_char(raw[pos:], codec)
                units.append(unit)
                pos += used
        if pos < len(raw):
            raise ValueError("file name too long")
    return _pad(units), len(units)


def _strip_tail(name: Name) -> Name:
    if isinstance(name, str):
        return name.rstrip(".")
    return bytes(name).rstrip(b".")


def build_slots(
    name: Name,
    is_dir: bool = False,
    cluster: int = 0,
    exists: Optional[Exists] = None,
    opts: Optional[MountOptions] = None,
    time: int = 0,
    date: int = 0,
    time_cs: int = 0,
) -> List[Union[LongNameSlot, ShortEntry]]:
    """Build the directory slots for a new entry called ``name``.

    Trailing dots are dropped first. Returns the long-name slots in disk
    order (last part of the name first) followed by the 8.3 entry; a name
    that fits its alias exactly gets the 8.3 entry alone. ``time``,
    ``date`` and ``time_cs`` are the encoded creation stamp. ``exists``
    tells whether a short name is already taken. Raises
    FileNotFoundError for an empty name, ValueError for a bad one and
    FileExistsError when the name already exists as a short name.
    """
    options = opts if opts is not None else parse_options()
    stripped = _strip_tail(name)
    if not stripped:
        raise FileNotFoundError("empty file name")

    units, longlen = xlate_to_uni(
        stripped, options.unicode_xlate, options.utf8, options.iocharset
    )
    check_bad_chars(units[:longlen])

    alias = create_shortname(
        units[:longlen],
        options.codepage,
        exists,
        options.shortname,
        options.numtail,
        int(_clock.monotonic() * 1000),
    )

    entries: List[Union[LongNameSlot, ShortEntry]] = []
    if not alias.is_shortname:
        checksum = lfn_checksum(alias.name)
        count = len(units) // LFN_CHARS_PER_SLOT
        for seq in range(count, 0, -1):
            offset = (seq - 1) * LFN_CHARS_PER_SLOT
            flag = LAST_SLOT_FLAG if seq == count else 0
            entries.append(
                LongNameSlot(
                    sequence=seq | flag,
                    name=tuple(units[offset : offset + LFN_CHARS_PER_SLOT]),
                    alias_checksum=checksum,
                )
            )

    entries.append(
        ShortEntry(
            name=alias.name,
            attr=ATTR_DIR if is_dir else ATTR_ARCH,
            lcase=alias.lcase,
            ctime_cs=time_cs,
            ctime=time,
            cdate=date,
            adate=date,
            time=time,
            date=date,
            cluster=cluster,
            size=0,
        )
    )
    return entries
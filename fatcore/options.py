"""Parsing and display of FAT mount options."""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)

_INT_MIN = -(2**31)
_INT_MAX = 2**31 - 1

# Write permission bits for group and others.
_UTIME_BITS = 0o022

# Limit for time_offset, in minutes (24 hours either way).
_MAX_TIME_OFFSET = 24 * 60

DEFAULT_CODEPAGE = 437
DEFAULT_IOCHARSET = "iso8859-1"


class OptionError(ValueError):
    """Raised when a mount option is unknown or carries a bad value."""


class ErrorMode(enum.Enum):
    """What the filesystem does when it meets corruption."""

    CONTINUE = "continue"
    PANIC = "panic"
    REMOUNT_RO = "remount-ro"


class NfsMode(enum.IntEnum):
    """How the volume is prepared for export over NFS."""

    NONE = 0
    STALE_RW = 1
    NOSTALE_RO = 2


class Shortname(enum.IntFlag):
    """Display and creation rules for 8.3 short names."""

    DISPLAY_LOWER = 0x0001
    DISPLAY_WIN95 = 0x0002
    DISPLAY_WINNT = 0x0004
    CREATE_WIN95 = 0x0100
    CREATE_WINNT = 0x0200


SHORTNAME_LOWER = Shortname.DISPLAY_LOWER | Shortname.CREATE_WIN95
SHORTNAME_WIN95 = Shortname.DISPLAY_WIN95 | Shortname.CREATE_WIN95
SHORTNAME_WINNT = Shortname.DISPLAY_WINNT | Shortname.CREATE_WINNT
SHORTNAME_MIXED = Shortname.DISPLAY_WINNT | Shortname.CREATE_WIN95

_SHORTNAME_NAMES: Dict[int, str] = {
    int(SHORTNAME_WIN95): "win95",
    int(SHORTNAME_WINNT): "winnt",
    int(SHORTNAME_MIXED): "mixed",
    int(SHORTNAME_LOWER): "lower",
}


@dataclass
class MountOptions:
    """The settled set of options a FAT volume is mounted with."""

    isvfat: bool
    fs_uid: int
    fs_gid: int
    fs_fmask: int
    fs_dmask: int
    allow_utime: int
    codepage: int
    iocharset: str
    shortname: int
    rodir: bool
    name_check: str = "n"
    quiet: bool = False
    showexec: bool = False
    sys_immutable: bool = False
    dots_ok: bool = False
    unicode_xlate: bool = False
    numtail: bool = True
    usefree: bool = False
    nocase: bool = False
    tz_set: bool = False
    time_offset: int = 0
    nfs: NfsMode = NfsMode.NONE
    errors: ErrorMode = ErrorMode.REMOUNT_RO
    utf8: bool = False
    flush: bool = False
    discard: bool = False
    dos1xfloppy: bool = False
    debug: bool = False
    force_read_only: bool = False


_COMMON_TOKENS: List[Tuple[str, str]] = [
    ("check_r", "check=relaxed"),
    ("check_s", "check=strict"),
    ("check_n", "check=normal"),
    ("check_r", "check=r"),
    ("check_s", "check=s"),
    ("check_n", "check=n"),
    ("uid", "uid=%u"),
    ("gid", "gid=%u"),
    ("umask", "umask=%o"),
    ("dmask", "dmask=%o"),
    ("fmask", "fmask=%o"),
    ("allow_utime", "allow_utime=%o"),
    ("codepage", "codepage=%u"),
    ("usefree", "usefree"),
    ("nocase", "nocase"),
    ("quiet", "quiet"),
    ("showexec", "showexec"),
    ("debug", "debug"),
    ("immutable", "sys_immutable"),
    ("flush", "flush"),
    ("tz_utc", "tz=UTC"),
    ("time_offset", "time_offset=%d"),
    ("err_cont", "errors=continue"),
    ("err_panic", "errors=panic"),
    ("err_ro", "errors=remount-ro"),
    ("discard", "discard"),
    ("nfs_stale_rw", "nfs"),
    ("nfs_stale_rw", "nfs=stale_rw"),
    ("nfs_nostale_ro", "nfs=nostale_ro"),
    ("dos1xfloppy", "dos1xfloppy"),
    ("obsolete", "conv=binary"),
    ("obsolete", "conv=text"),
    ("obsolete", "conv=auto"),
    ("obsolete", "conv=b"),
    ("obsolete", "conv=t"),
    ("obsolete", "conv=a"),
    ("obsolete", "fat=%u"),
    ("obsolete", "blocksize=%u"),
    ("obsolete", "cvf_format=%20s"),
    ("obsolete", "cvf_options=%100s"),
    ("obsolete", "posix"),
]

_MSDOS_TOKENS: List[Tuple[str, str]] = [
    ("nodots", "nodots"),
    ("nodots", "dotsOK=no"),
    ("dots", "dots"),
    ("dots", "dotsOK=yes"),
]

_VFAT_TOKENS: List[Tuple[str, str]] = [
    ("charset", "iocharset=%s"),
    ("shortname_lower", "shortname=lower"),
    ("shortname_win95", "shortname=win95"),
    ("shortname_winnt", "shortname=winnt"),
    ("shortname_mixed", "shortname=mixed"),
    ("utf8_no", "utf8=0"),
    ("utf8_no", "utf8=no"),
    ("utf8_no", "utf8=false"),
    ("utf8_yes", "utf8=1"),
    ("utf8_yes", "utf8=yes"),
    ("utf8_yes", "utf8=true"),
    ("utf8_yes", "utf8"),
    ("uni_xl_no", "uni_xlate=0"),
    ("uni_xl_no", "uni_xlate=no"),
    ("uni_xl_no", "uni_xlate=false"),
    ("uni_xl_yes", "uni_xlate=1"),
    ("uni_xl_yes", "uni_xlate=yes"),
    ("uni_xl_yes", "uni_xlate=true"),
    ("uni_xl_yes", "uni_xlate"),
    ("nonumtail_no", "nonumtail=0"),
    ("nonumtail_no", "nonumtail=no"),
    ("nonumtail_no", "nonumtail=false"),
    ("nonumtail_yes", "nonumtail=1"),
    ("nonumtail_yes", "nonumtail=yes"),
    ("nonumtail_yes", "nonumtail=true"),
    ("nonumtail_yes", "nonumtail"),
    ("rodir", "rodir"),
]

_SPEC = re.compile(r"%(\d*)([sduo])")
_UNSIGNED = r"0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*"
_NUMBER_PATTERNS = {
    "u": re.compile(_UNSIGNED),
    "d": re.compile(rf"-?(?:{_UNSIGNED})"),
    "o": re.compile(r"[0-7]+"),
}


def _match(pattern: str, text: str) -> Optional[List[str]]:
    """Match ``text`` against a pattern with %s/%d/%u/%o fields."""
    args: List[str] = []
    rest = text
    last = 0
    for spec in _SPEC.finditer(pattern):
        literal = pattern[last : spec.start()]
        if not rest.startswith(literal):
            return None
        rest = rest[len(literal) :]
        width, kind = spec.groups()
        if kind == "s":
            if not rest:
                return None
            size = len(rest) if not width else min(int(width), len(rest))
            args.append(rest[:size])
            rest = rest[size:]
        else:
            found = _NUMBER_PATTERNS[kind].match(rest)
            if found is None or not found.group():
                return None
            args.append(found.group())
            rest = rest[found.end() :]
        last = spec.end()
    return args if pattern[last:] == rest else None


def _lookup(table: List[Tuple[str, str]], text: str) -> Optional[Tuple[str, List[str]]]:
    for token, pattern in table:
        args = _match(pattern, text)
        if args is not None:
            return token, args
    return None


def _to_int(text: str, octal: bool = False) -> int:
    if octal:
        value = int(text, 8)
    else:
        negative = text.startswith("-")
        digits = text[1:] if negative else text
        if digits[:2].lower() == "0x":
            value = int(digits[2:], 16)
        elif len(digits) > 1 and digits.startswith("0"):
            value = int(digits[1:], 8)
        else:
            value = int(digits, 10)
        if negative:
            value = -value
    if not _INT_MIN <= value <= _INT_MAX:
        raise OptionError(f"value out of range: {text}")
    return value


def parse_options(
    options: Optional[str] = None,
    is_vfat: bool = True,
    uid: int = 0,
    gid: int = 0,
    umask: int = 0o022,
    codepage: int = DEFAULT_CODEPAGE,
    iocharset: str = DEFAULT_IOCHARSET,
    default_utf8: bool = False,
) -> MountOptions:
    """Parse a comma separated mount option string.

    ``uid``, ``gid`` and ``umask`` are the defaults of the mounting
    process. Raises OptionError for unknown options and bad values.
    """
    opts = MountOptions(
        isvfat=is_vfat,
        fs_uid=uid,
        fs_gid=gid,
        fs_fmask=umask,
        fs_dmask=umask,
        allow_utime=-1,
        codepage=codepage,
        iocharset=iocharset,
        shortname=int(SHORTNAME_MIXED) if is_vfat else 0,
        rodir=not is_vfat,
        utf8=default_utf8 and is_vfat,
    )
    utime_given = False

    for item in (options or "").split(","):
        if not item:
            continue
        found = _lookup(_COMMON_TOKENS, item)
        if found is None:
            found = _lookup(_VFAT_TOKENS if is_vfat else _MSDOS_TOKENS, item)
        if found is None:
            raise OptionError(f'Unrecognized mount option "{item}" or missing value')
        token, args = found

        if token == "check_s":
            opts.name_check = "s"
        elif token == "check_r":
            opts.name_check = "r"
        elif token == "check_n":
            opts.name_check = "n"
        elif token == "usefree":
            opts.usefree = True
        elif token == "nocase":
            if is_vfat:
                opts.shortname = int(SHORTNAME_WIN95)
            else:
                opts.nocase = True
        elif token == "quiet":
            opts.quiet = True
        elif token == "showexec":
            opts.showexec = True
        elif token == "debug":
            opts.debug = True
        elif token == "immutable":
            opts.sys_immutable = True
        elif token == "uid":
            opts.fs_uid = _to_int(args[0])
        elif token == "gid":
            opts.fs_gid = _to_int(args[0])
        elif token == "umask":
            opts.fs_fmask = opts.fs_dmask = _to_int(args[0], octal=True)
        elif token == "dmask":
            opts.fs_dmask = _to_int(args[0], octal=True)
        elif token == "fmask":
            opts.fs_fmask = _to_int(args[0], octal=True)
        elif token == "allow_utime":
            opts.allow_utime = _to_int(args[0], octal=True) & _UTIME_BITS
            utime_given = True
        elif token == "codepage":
            opts.codepage = _to_int(args[0])
        elif token == "flush":
            opts.flush = True
        elif token == "time_offset":
            offset = _to_int(args[0])
            if not -_MAX_TIME_OFFSET <= offset <= _MAX_TIME_OFFSET:
                raise OptionError(f"time_offset out of range: {offset}")
            opts.tz_set = True
            opts.time_offset = offset
        elif token == "tz_utc":
            opts.tz_set = True
            opts.time_offset = 0
        elif token == "err_cont":
            opts.errors = ErrorMode.CONTINUE
        elif token == "err_panic":
            opts.errors = ErrorMode.PANIC
        elif token == "err_ro":
            opts.errors = ErrorMode.REMOUNT_RO
        elif token == "nfs_stale_rw":
            opts.nfs = NfsMode.STALE_RW
        elif token == "nfs_nostale_ro":
            opts.nfs = NfsMode.NOSTALE_RO
        elif token == "dos1xfloppy":
            opts.dos1xfloppy = True
        elif token == "dots":
            opts.dots_ok = True
        elif token == "nodots":
            opts.dots_ok = False
        elif token == "charset":
            opts.iocharset = args[0]
        elif token == "shortname_lower":
            opts.shortname = int(SHORTNAME_LOWER)
        elif token == "shortname_win95":
            opts.shortname = int(SHORTNAME_WIN95)
        elif token == "shortname_winnt":
            opts.shortname = int(SHORTNAME_WINNT)
        elif token == "shortname_mixed":
            opts.shortname = int(SHORTNAME_MIXED)
        elif token == "utf8_no":
            opts.utf8 = False
        elif token == "utf8_yes":
            opts.utf8 = True
        elif token == "uni_xl_no":
            opts.unicode_xlate = False
        elif token == "uni_xl_yes":
            opts.unicode_xlate = True
        elif token == "nonumtail_no":
            opts.numtail = True
        elif token == "nonumtail_yes":
            opts.numtail = False
        elif token == "rodir":
            opts.rodir = True
        elif token == "discard":
            opts.discard = True
        elif token == "obsolete":
            logger.info('"%s" option is obsolete, not supported now', item)

    if opts.iocharset == "utf8":
        logger.warning(
            "utf8 is not a recommended IO charset for FAT filesystems, "
            "filesystem will be case sensitive!"
        )
    if not utime_given:
        opts.allow_utime = ~opts.fs_dmask & _UTIME_BITS
    if opts.unicode_xlate:
        opts.utf8 = False
    if opts.nfs == NfsMode.NOSTALE_RO:
        opts.force_read_only = True
    return opts


def format_options(
    opts: MountOptions,
    codepage_charset: Optional[str] = None,
    io_charset: Optional[str] = None,
) -> str:
    """Render options as shown in a mount table, each with a leading comma.

    ``codepage_charset`` is the loaded disk charset name (such as
    ``cp437``) and ``io_charset`` the loaded I/O charset; either is
    left out of the output when None.
    """
    parts: List[str] = []
    if opts.fs_uid != 0:
        parts.append(f"uid={opts.fs_uid}")
    if opts.fs_gid != 0:
        parts.append(f"gid={opts.fs_gid}")
    parts.append(f"fmask={opts.fs_fmask:04o}")
    parts.append(f"dmask={opts.fs_dmask:04o}")
    if opts.allow_utime:
        parts.append(f"allow_utime={opts.allow_utime:04o}")
    if codepage_charset is not None:
        parts.append(f"codepage={codepage_charset[2:]}")
    if opts.isvfat:
        if io_charset is not None:
            parts.append(f"iocharset={io_charset}")
        parts.append("shortname=" + _SHORTNAME_NAMES.get(int(opts.shortname), "unknown"))
    if opts.name_check != "n":
        parts.append(f"check={opts.name_check}")
    if opts.usefree:
        parts.append("usefree")
    if opts.quiet:
        parts.append("quiet")
    if opts.showexec:
        parts.append("showexec")
    if opts.sys_immutable:
        parts.append("sys_immutable")
    if not opts.isvfat:
        if opts.dots_ok:
            parts.append("dotsOK=yes")
        if opts.nocase:
            parts.append("nocase")
    else:
        if opts.utf8:
            parts.append("utf8")
        if opts.unicode_xlate:
            parts.append("uni_xlate")
        if not opts.numtail:
            parts.append("nonumtail")
        if opts.rodir:
            parts.append("rodir")
    if opts.flush:
        parts.append("flush")
    if opts.tz_set:
        if opts.time_offset:
            parts.append(f"time_offset={opts.time_offset}")
        else:
            parts.append("tz=UTC")
    parts.append(f"errors={opts.errors.value}")
    if opts.nfs == NfsMode.NOSTALE_RO:
        parts.append("nfs=nostale_ro")
    elif opts.nfs:
        parts.append("nfs=stale_rw")
    if opts.discard:
        parts.append("discard")
    if opts.dos1xfloppy:
        parts.append("dos1xfloppy")
    return "".join("," + part for part in parts)
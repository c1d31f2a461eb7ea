"""Formatting of the journal lines emitted by filesystem operations."""

from __future__ import annotations

from typing import Optional, Union

# Lines are built in a fixed buffer of 300 bytes including the terminator.
MAX_MESSAGE_LEN = 299

_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF


def _clip(text: str) -> str:
    return text[:MAX_MESSAGE_LEN]


def _u32(value: int) -> int:
    return value & _U32


def _u64(value: int) -> int:
    return value & _U64


def _inode_number(inode: Optional[int]) -> int:
    return 0 if inode is None else _u64(inode)


def write_begin_message(inode: Optional[int], pos: int, length: int) -> str:
    """Line for the start of a buffered write; a missing inode shows as 0."""
    return _clip(
        f"FAT_WRITE_BEGIN | inode={_inode_number(inode)} | pos={pos} "
        f"| len={_u32(length)}\n"
    )


def write_end_message(
    inode: Optional[int], pos: int, length: int, copied: int
) -> str:
    """Line for the end of a buffered write."""
    return _clip(
        f"FAT_WRITE_END | inode={_inode_number(inode)} | pos={pos} "
        f"| len={_u32(length)} | copied={_u32(copied)}\n"
    )


def detach_message(inode: int, old_pos: int) -> str:
    """Line for an inode leaving the position hash."""
    return _clip(f"FAT_DETACH | inode={_u64(inode)} | old_i_pos={old_pos}\n")


def fill_inode_message(inode: int, attr: int, size: int, start: int) -> str:
    """Line for an inode being filled from its directory entry."""
    return _clip(
        f"FAT_FILL_INODE | inode={_u64(inode)} | de_attr=0x{_u32(attr):x} "
        f"| de_size={_u32(size)} | de_start={_u32(start)}\n"
    )


def _first_char(value: Union[str, bytes, int, None]) -> str:
    if value is None:
        return "?"
    if isinstance(value, int):
        return bytes([value & 0xFF]).decode("latin-1")
    if isinstance(value, bytes):
        return value[:1].decode("latin-1") if value else "?"
    return value[:1] if value else "?"


def build_inode_message(
    i_pos: int, first_char: Union[str, bytes, int, None]
) -> str:
    """Line for a new inode built for a directory entry at ``i_pos``."""
    return _clip(
        f"FAT_BUILD_INODE | i_pos={i_pos} | de_name[0]={_first_char(first_char)}\n"
    )


def evict_inode_message(inode: int, nlink: int, size: int) -> str:
    """Line for an inode being evicted from memory."""
    return _clip(
        f"FAT_EVICT_INODE | inode={_u64(inode)} | i_nlink={_u32(nlink)} "
        f"| i_size={size}\n"
    )


def mount_message(dev: Optional[str], flags: int) -> str:
    """Line for a volume being mounted; a missing device shows as '?'."""
    name = "?" if not dev else dev
    return _clip(f"FAT_MOUNT | dev={name} | flags=0x{_u64(flags):x}\n")


def unmount_message(dev: Optional[str]) -> str:
    """Line for a volume being unmounted."""
    name = "?" if not dev else dev
    return _clip(f"FAT_UNMOUNT | dev={name}\n")


def lookup_message(name: Optional[str]) -> str:
    """Line for a name lookup in a directory."""
    shown = "?" if name is None else name
    return _clip(f"FAT_LOOKUP | name={shown}\n")


def mkdir_message(parent_inode: int, name: Optional[str], mode: int) -> str:
    """Line for a directory being created under ``parent_inode``."""
    shown = "?" if not name else name
    return _clip(
        f"FAT_MKDIR | parent_inode={_u64(parent_inode)} | name={shown} "
        f"| mode={_u32(mode):o}\n"
    )
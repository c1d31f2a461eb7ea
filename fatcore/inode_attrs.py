"""Inode attributes derived from FAT directory entries."""

from __future__ import annotations

from typing import Union

SECTOR_SHIFT = 9

_EXEC_EXTENSIONS = frozenset((b"EXE", b"COM", b"BAT"))


class InodeError(ValueError):
    """Raised when a directory entry describes a corrupted inode."""


def is_exec(extension: Union[bytes, bytearray, str]) -> bool:
    """Whether a short-name extension marks an executable (EXE, COM, BAT)."""
    raw = extension.encode("latin-1") if isinstance(extension, str) else bytes(extension)
    return raw[:3] in _EXEC_EXTENSIONS


def inode_blocks(size: int, cluster_size: int) -> int:
    """Number of 512-byte sectors a file of ``size`` bytes occupies.

    The size is rounded up to whole clusters; ``cluster_size`` must be a
    power of two.
    """
    if cluster_size <= 0 or cluster_size & (cluster_size - 1):
        raise ValueError(f"cluster size must be a power of two, got {cluster_size}")
    if size < 0:
        raise ValueError(f"size must not be negative, got {size}")
    rounded = (size + cluster_size - 1) & ~(cluster_size - 1)
    return rounded >> SECTOR_SHIFT


def calc_dir_size(cluster_count: int, cluster_bits: int) -> int:
    """Size in bytes of a directory whose chain holds ``cluster_count`` clusters.

    A directory with no start cluster has a chain of zero clusters and a
    size of zero.
    """
    if cluster_count < 0:
        raise InodeError(f"invalid cluster chain length {cluster_count}")
    if cluster_bits < 0:
        raise ValueError(f"cluster bits must not be negative, got {cluster_bits}")
    return cluster_count << cluster_bits


def validate_dir(nlink: int, start: int, root_cluster: int) -> None:
    """Check that a directory inode is sane.

    A directory needs at least the "." and ".." links, and must start at
    a real cluster other than the root's. Raises InodeError otherwise.
    """
    if nlink < 2:
        raise InodeError("corrupted directory (invalid entries)")
    if start == 0 or start == root_cluster:
        raise InodeError("corrupted directory (invalid i_start)")
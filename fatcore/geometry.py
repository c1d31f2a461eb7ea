"""Volume layout derived from the boot sector and FSINFO sector."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional, Union

from .bootsector import FAT_STATE_DIRTY, BiosParamBlock, BootSectorError

logger = logging.getLogger(__name__)

FSINFO_SIG1 = 0x41615252
FSINFO_SIG2 = 0x61417272

FAT_START_ENT = 2
MAX_FAT12 = 0xFF4
MAX_FAT16 = 0xFFF4
MAX_FAT32 = 0x0FFFFFF6

DIR_ENTRY_SIZE = 32

_FSINFO_LEN = 512
_U32 = 0xFFFFFFFF
_U64 = 0xFFFFFFFFFFFFFFFF

Buffer = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class FsInfo:
    """The FAT32 FSINFO sector: cached free-space hints."""

    signature1: int
    signature2: int
    free_clusters: int
    next_cluster: int

    @property
    def valid(self) -> bool:
        """Whether both signatures are correct."""
        return self.signature1 == FSINFO_SIG1 and self.signature2 == FSINFO_SIG2


def parse_fsinfo(sector: Buffer) -> FsInfo:
    """Decode an FSINFO sector. Raises ValueError if it is too short."""
    data = bytes(sector)
    if len(data) < _FSINFO_LEN:
        raise ValueError(f"FSINFO sector too short: {len(data)} bytes")
    (signature1,) = struct.unpack_from("<I", data, 0)
    signature2, free_clusters, next_cluster = struct.unpack_from("<III", data, 484)
    return FsInfo(signature1, signature2, free_clusters, next_cluster)


def calc_fat_clusters(fat_length: int, blocksize: int, fat_bits: int) -> int:
    """Number of entries the FAT tables can hold."""
    if fat_bits != 12:
        return (blocksize * 8 // fat_bits) * fat_length
    return fat_length * blocksize * 8 // fat_bits


def _ffs_bits(value: int) -> int:
    return (value & -value).bit_length() - 1


@dataclass
class VolumeGeometry:
    """Where the parts of a FAT volume lie and how big they are."""

    blocksize: int
    sec_per_clus: int
    cluster_size: int
    cluster_bits: int
    fats: int
    fat_bits: int
    fat_start: int
    fat_length: int
    root_cluster: int
    fsinfo_sector: int
    vol_id: int
    dir_per_block: int
    dir_per_block_bits: int
    dir_start: int
    dir_entries: int
    data_start: int
    max_cluster: int
    free_clusters: int
    free_clus_valid: bool
    prev_free: int
    dirty: bool

    @property
    def is_fat12(self) -> bool:
        return self.fat_bits == 12

    @property
    def is_fat16(self) -> bool:
        return self.fat_bits == 16

    @property
    def is_fat32(self) -> bool:
        return self.fat_bits == 32

    @property
    def max_fat(self) -> int:
        """Largest cluster count the FAT type allows."""
        if self.is_fat32:
            return MAX_FAT32
        if self.is_fat16:
            return MAX_FAT16
        return MAX_FAT12


def compute_geometry(
    bpb: BiosParamBlock,
    blocksize: int = 512,
    fsinfo: Optional[FsInfo] = None,
    usefree: bool = False,
) -> VolumeGeometry:
    """Work out the volume layout from a validated parameter block.

    ``blocksize`` is the device block size; a larger logical sector size
    replaces it. ``fsinfo`` is the FSINFO sector of a FAT32 volume, if
    read. Raises BootSectorError when the layout is not usable.
    """
    if bpb.sector_size < blocksize:
        raise BootSectorError(
            "logical sector size too small for device "
            f"(logical sector size = {bpb.sector_size})"
        )
    blocksize = bpb.sector_size
    sec_per_clus = bpb.sec_per_clus
    if sec_per_clus <= 0:
        raise BootSectorError(f"bogus sectors per cluster {sec_per_clus}")

    cluster_size = blocksize * sec_per_clus
    fat_bits = 0
    fat_length = bpb.fat_length
    root_cluster = 0
    fsinfo_sector = 0
    free_clusters = -1
    free_clus_valid = False
    prev_free = FAT_START_ENT

    if not fat_length and bpb.fat32_length:
        fat_bits = 32
        fat_length = bpb.fat32_length
        root_cluster = bpb.fat32_root_cluster
        fsinfo_sector = bpb.fat32_info_sector or 1
        if fsinfo is None or not fsinfo.valid:
            if fsinfo is not None:
                logger.warning(
                    "Invalid FSINFO signature: 0x%08x, 0x%08x (sector = %d)",
                    fsinfo.signature1,
                    fsinfo.signature2,
                    fsinfo_sector,
                )
        else:
            free_clus_valid = usefree
            free_clusters = fsinfo.free_clusters
            prev_free = fsinfo.next_cluster

    is_fat32 = fat_bits == 32
    vol_id = bpb.fat32_vol_id if is_fat32 else bpb.fat16_vol_id

    dir_per_block = blocksize // DIR_ENTRY_SIZE
    dir_per_block_bits = _ffs_bits(dir_per_block)
    fat_start = bpb.reserved
    dir_start = fat_start + bpb.fats * fat_length
    dir_entries = bpb.dir_entries
    if dir_entries & (dir_per_block - 1):
        raise BootSectorError(f"bogus number of directory entries ({dir_entries})")

    rootdir_sectors = dir_entries * DIR_ENTRY_SIZE // blocksize
    data_start = dir_start + rootdir_sectors
    total_sectors = bpb.sectors or bpb.total_sect
    total_clusters = (((total_sectors - data_start) & _U64) // sec_per_clus) & _U32

    if not is_fat32:
        fat_bits = 16 if total_clusters > MAX_FAT12 else 12

    state = bpb.fat32_state if is_fat32 else bpb.fat16_state
    dirty = bool(state & FAT_STATE_DIRTY)

    fat_clusters = calc_fat_clusters(fat_length, blocksize, fat_bits)
    total_clusters = min(total_clusters, (fat_clusters - FAT_START_ENT) & _U32)

    geometry = VolumeGeometry(
        blocksize=blocksize,
        sec_per_clus=sec_per_clus,
        cluster_size=cluster_size,
        cluster_bits=_ffs_bits(cluster_size),
        fats=bpb.fats,
        fat_bits=fat_bits,
        fat_start=fat_start,
        fat_length=fat_length,
        root_cluster=root_cluster,
        fsinfo_sector=fsinfo_sector,
        vol_id=vol_id,
        dir_per_block=dir_per_block,
        dir_per_block_bits=dir_per_block_bits,
        dir_start=dir_start,
        dir_entries=dir_entries,
        data_start=data_start,
        max_cluster=0,
        free_clusters=free_clusters,
        free_clus_valid=free_clus_valid,
        prev_free=prev_free,
        dirty=dirty,
    )
    if total_clusters > geometry.max_fat:
        raise BootSectorError(f"count of clusters too big ({total_clusters})")

    geometry.max_cluster = total_clusters + FAT_START_ENT
    if geometry.free_clusters != -1 and (
        geometry.free_clusters & _U32 > total_clusters
    ):
        geometry.free_clusters = -1
    geometry.prev_free %= geometry.max_cluster
    if geometry.prev_free < FAT_START_ENT:
        geometry.prev_free = FAT_START_ENT
    return geometry
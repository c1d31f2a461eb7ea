"""Decoding and validation of the FAT boot sector (BIOS parameter block)."""

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass
from typing import Optional, Tuple, Union

logger = logging.getLogger(__name__)

SECTOR_SIZE = 512
FAT_STATE_DIRTY = 0x01

# Byte offsets inside the boot sector.
_SECTOR_SIZE_OFF = 11
_SEC_PER_CLUS_OFF = 13
_RESERVED_OFF = 14
_FATS_OFF = 16
_DIR_ENTRIES_OFF = 17
_SECTORS_OFF = 19
_MEDIA_OFF = 21
_FAT_LENGTH_OFF = 22
_SECS_TRACK_OFF = 24
_HEADS_OFF = 26
_TOTAL_SECT_OFF = 32
_FAT16_STATE_OFF = 37
_FAT16_VOL_ID_OFF = 39
_FAT32_LENGTH_OFF = 36
_FAT32_ROOT_CLUSTER_OFF = 44
_FAT32_INFO_SECTOR_OFF = 48
_FAT32_STATE_OFF = 65
_FAT32_VOL_ID_OFF = 67

# Everything up to the end of the FAT32 file system type field.
_MIN_SECTOR_LEN = 90

_NOT_DOS1X = "This doesn't look like a DOS 1.x volume"

Buffer = Union[bytes, bytearray, memoryview]


class BootSectorError(ValueError):
    """Raised when a boot sector does not describe a usable FAT volume."""


@dataclass
class BiosParamBlock:
    """The fields of a boot sector that describe the volume layout."""

    sector_size: int = 0
    sec_per_clus: int = 0
    reserved: int = 0
    fats: int = 0
    dir_entries: int = 0
    sectors: int = 0
    fat_length: int = 0
    total_sect: int = 0
    fat16_state: int = 0
    fat16_vol_id: int = 0
    fat32_length: int = 0
    fat32_root_cluster: int = 0
    fat32_info_sector: int = 0
    fat32_state: int = 0
    fat32_vol_id: int = 0


@dataclass(frozen=True)
class FloppyDefaults:
    """Layout assumed for a DOS 1.x floppy of a given size."""

    nr_sectors: int
    sec_per_clus: int
    dir_entries: int
    media: int
    fat_length: int


_KB_IN_SECTORS = 2

FLOPPY_DEFAULTS: Tuple[FloppyDefaults, ...] = (
    FloppyDefaults(160 * _KB_IN_SECTORS, 1, 64, 0xFE, 1),
    FloppyDefaults(180 * _KB_IN_SECTORS, 1, 64, 0xFC, 2),
    FloppyDefaults(320 * _KB_IN_SECTORS, 2, 112, 0xFF, 1),
    FloppyDefaults(360 * _KB_IN_SECTORS, 2, 112, 0xFD, 2),
)


def _check_length(sector: Buffer) -> bytes:
    data = bytes(sector)
    if len(data) < _MIN_SECTOR_LEN:
        raise BootSectorError(
            f"boot sector too short: {len(data)} bytes, need {_MIN_SECTOR_LEN}"
        )
    return data


def _u8(data: bytes, offset: int) -> int:
    return data[offset]


def _u16(data: bytes, offset: int) -> int:
    return struct.unpack_from("<H", data, offset)[0]


def _u32(data: bytes, offset: int) -> int:
    return struct.unpack_from("<I", data, offset)[0]


def valid_media(media: int) -> bool:
    """Whether ``media`` is a media descriptor FAT accepts."""
    return media >= 0xF8 or media == 0xF0


def _is_power_of_2(value: int) -> bool:
    return value > 0 and value & (value - 1) == 0


def bpb_is_zero(sector: Buffer) -> bool:
    """Whether the DOS 2.x parameter fields of the boot sector are all zero."""
    data = _check_length(sector)
    return not any(
        (
            _u16(data, _SECTOR_SIZE_OFF),
            _u8(data, _SEC_PER_CLUS_OFF),
            _u16(data, _RESERVED_OFF),
            _u8(data, _FATS_OFF),
            _u16(data, _DIR_ENTRIES_OFF),
            _u16(data, _SECTORS_OFF),
            _u8(data, _MEDIA_OFF),
            _u16(data, _FAT_LENGTH_OFF),
            _u16(data, _SECS_TRACK_OFF),
            _u16(data, _HEADS_OFF),
        )
    )


def read_bpb(sector: Buffer) -> BiosParamBlock:
    """Decode and validate the parameter block of a boot sector.

    Raises BootSectorError if it does not look like a FAT volume.
    """
    data = _check_length(sector)
    bpb = BiosParamBlock(
        sector_size=_u16(data, _SECTOR_SIZE_OFF),
        sec_per_clus=_u8(data, _SEC_PER_CLUS_OFF),
        reserved=_u16(data, _RESERVED_OFF),
        fats=_u8(data, _FATS_OFF),
        dir_entries=_u16(data, _DIR_ENTRIES_OFF),
        sectors=_u16(data, _SECTORS_OFF),
        fat_length=_u16(data, _FAT_LENGTH_OFF),
        total_sect=_u32(data, _TOTAL_SECT_OFF),
        fat16_state=_u8(data, _FAT16_STATE_OFF),
        fat16_vol_id=_u32(data, _FAT16_VOL_ID_OFF),
        fat32_length=_u32(data, _FAT32_LENGTH_OFF),
        fat32_root_cluster=_u32(data, _FAT32_ROOT_CLUSTER_OFF),
        fat32_info_sector=_u16(data, _FAT32_INFO_SECTOR_OFF),
        fat32_state=_u8(data, _FAT32_STATE_OFF),
        fat32_vol_id=_u32(data, _FAT32_VOL_ID_OFF),
    )
    media = _u8(data, _MEDIA_OFF)

    if not bpb.reserved:
        raise BootSectorError("bogus number of reserved sectors")
    if not bpb.fats:
        raise BootSectorError("bogus number of FAT structure")
    if not valid_media(media):
        raise BootSectorError(f"invalid media value (0x{media:02x})")
    if not _is_power_of_2(bpb.sector_size) or not 512 <= bpb.sector_size <= 4096:
        raise BootSectorError(f"bogus logical sector size {bpb.sector_size}")
    if not _is_power_of_2(bpb.sec_per_clus):
        raise BootSectorError(f"bogus sectors per cluster {bpb.sec_per_clus}")
    if bpb.fat_length == 0 and bpb.fat32_length == 0:
        raise BootSectorError("bogus number of FAT sectors")
    return bpb


def _floppy_for(device_sectors: int) -> Optional[FloppyDefaults]:
    return next(
        (d for d in FLOPPY_DEFAULTS if d.nr_sectors == device_sectors), None
    )


def read_static_bpb(sector: Buffer, device_sectors: int) -> BiosParamBlock:
    """Build a parameter block for a DOS 1.x floppy from its size.

    Such volumes carry no parameter block; the layout is inferred from
    the device size. Raises BootSectorError if the sector or size does
    not fit a known DOS 1.x floppy.
    """
    data = _check_length(sector)
    if data[0] != 0xEB or data[2] != 0x90:
        raise BootSectorError(f"{_NOT_DOS1X}; no bootstrapping code")
    if not bpb_is_zero(data):
        raise BootSectorError(f"{_NOT_DOS1X}; DOS 2.x BPB is non-zero")
    defaults = _floppy_for(device_sectors)
    if defaults is None:
        raise BootSectorError(
            "This looks like a DOS 1.x volume, but isn't a recognized "
            f"floppy size ({device_sectors} sectors)"
        )
    logger.info("This looks like a DOS 1.x volume; assuming default BPB values")
    return BiosParamBlock(
        sector_size=SECTOR_SIZE,
        sec_per_clus=defaults.sec_per_clus,
        reserved=1,
        fats=2,
        dir_entries=defaults.dir_entries,
        sectors=defaults.nr_sectors,
        fat_length=defaults.fat_length,
    )


def set_dirty_state(sector: Buffer, is_fat32: bool, dirty: bool) -> bytes:
    """Return a copy of the boot sector with the dirty flag set or cleared."""
    data = bytearray(_check_length(sector))
    offset = _FAT32_STATE_OFF if is_fat32 else _FAT16_STATE_OFF
    if dirty:
        data[offset] |= FAT_STATE_DIRTY
    else:
        data[offset] &= ~FAT_STATE_DIRTY & 0xFF
    return bytes(data)
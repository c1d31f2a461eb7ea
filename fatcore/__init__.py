"""FAT and VFAT boot sectors, volume geometry, mount options, short names, directory slots and an operation journal."""

__version__ = "0.1.0"
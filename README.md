# fatcore

Building blocks for working with FAT12/16/32 volumes and VFAT long file
names, in plain Python with no dependencies outside the standard library.

## What it covers

- `fatcore.bootsector`: decode and validate the BIOS parameter block of a
  boot sector (`read_bpb`, returning a `BiosParamBlock`), recognise archaic
  DOS 1.x floppies by device size (`read_static_bpb`, `FloppyDefaults`),
  check whether the DOS 2.x fields are all zero (`bpb_is_zero`), and return a
  copy of the sector with the dirty flag set or cleared (`set_dirty_state`).
  Problems raise `BootSectorError`.
- `fatcore.geometry`: read the FAT32 FSINFO sector (`parse_fsinfo`, giving an
  `FsInfo`) and work out the layout of a volume (`compute_geometry`, giving a
  `VolumeGeometry`; `calc_fat_clusters`): FAT width, FAT and root directory
  positions, data start, cluster count and free-cluster hints.
- `fatcore.options`: parse a mount option string such as
  `"uid=1000,shortname=winnt,errors=continue"` into `MountOptions`
  (`parse_options`) and render it back in mount-table form
  (`format_options`). Unknown options and bad values raise `OptionError`.
  `ErrorMode` and `NfsMode` name the `errors=` and `nfs=` settings.
- `fatcore.vfat_names`: name comparison that ignores trailing dots
  (`striptail_len`, `names_equal`), the character classes of long names
  (`is_bad_char`, `is_replace_char`, `is_skip_char`, `check_bad_chars`), and
  the 8.3 alias checksum (`lfn_checksum`).
- `fatcore.shortname`: generate a unique 8.3 alias for a long name
  (`create_shortname`, returning a `ShortnameResult`), with the `~1`..`~9`
  tails and the hashed numeric tail after them.
- `fatcore.vfat_slots`: turn a name into UTF-16 units padded to whole slots
  (`xlate_to_uni`) and into the long-name slots plus the short entry that go
  on disk (`build_slots`, `LongNameSlot.to_bytes`, `ShortEntry.to_bytes`).
- `fatcore.inode_attrs`: small helpers for file attributes and sizes
  (`is_exec`, `inode_blocks`, `calc_dir_size`, `validate_dir`, which raises
  `InodeError`).
- `fatcore.events` and `fatcore.journal`: one-line records of filesystem
  operations (`mount_message`, `lookup_message`, `mkdir_message` and others),
  appended to a journal file by `FatJournal`.

## Installing

```
pip install .
```

## Examples

Reading a boot sector and working out the layout:

```python
from fatcore.bootsector import read_bpb, BootSectorError
from fatcore.geometry import compute_geometry

with open("disk.img", "rb") as image:
    sector = image.read(512)

try:
    bpb = read_bpb(sector)
    geometry = compute_geometry(bpb)
    print(geometry.fat_bits, geometry.data_start, geometry.max_cluster)
except BootSectorError as err:
    print("not a usable FAT volume:", err)
```

For a FAT32 volume, pass the FSINFO sector read from disk as
`compute_geometry(bpb, fsinfo=parse_fsinfo(raw))` to pick up the
free-cluster hints.

Parsing mount options:

```python
from fatcore.options import parse_options, format_options

opts = parse_options("uid=1000,umask=022,shortname=mixed", is_vfat=True)
print(format_options(opts))
```

Choosing a short name:

```python
from fatcore.shortname import create_shortname

taken = set()
result = create_shortname("Long File Name.txt", exists=taken.__contains__)
print(result.name)          # b'LONGFI~1TXT'
print(result.is_shortname)  # False: long-name slots are needed
```

`create_shortname` raises `FileExistsError` when the name is itself an 8.3
name that is already taken, and `ValueError` when no alias can be formed.
`build_slots` goes one step further and returns the `LongNameSlot` entries in
disk order followed by the `ShortEntry`.

Keeping a journal of operations:

```python
from fatcore.journal import FatJournal
from fatcore.events import mkdir_message, lookup_message

with FatJournal("journal.log") as journal:
    journal.write(mkdir_message(1, "docs", 0o755))
    journal.write(lookup_message("docs"))
```

The journal file is opened for appending, so earlier records are kept, and
each write is flushed at once. Writing to a journal that is not open does
nothing.

## What it does not do

fatcore works on sectors, names and option strings you hand to it. It does
not open or mount disk images, follow cluster chains in the FAT, read or
write directories and files, or copy files into or out of a volume, and it
has no command-line tool.

## Running the tests

```
pip install ".[test]"
pytest
```
import pytest

from fatcore.options import (
    SHORTNAME_MIXED,
    SHORTNAME_WIN95,
    SHORTNAME_WINNT,
    ErrorMode,
    MountOptions,
    NfsMode,
    OptionError,
    format_options,
    parse_options,
)


def test_vfat_defaults():
    opts = parse_options(None, is_vfat=True, umask=0o022)
    assert opts.shortname == int(SHORTNAME_MIXED)
    assert opts.rodir is False
    assert opts.name_check == "n"
    assert opts.numtail is True
    assert opts.errors is ErrorMode.REMOUNT_RO
    assert opts.nfs is NfsMode.NONE
    assert opts.allow_utime == ~0o022 & 0o022


def test_msdos_defaults():
    opts = parse_options("", is_vfat=False)
    assert opts.shortname == 0
    assert opts.rodir is True
    assert opts.utf8 is False


def test_default_utf8_only_for_vfat():
    assert parse_options(None, is_vfat=True, default_utf8=True).utf8 is True
    assert parse_options(None, is_vfat=False, default_utf8=True).utf8 is False


def test_uid_gid_and_masks():
    opts = parse_options("uid=1000,gid=1000,umask=077")
    assert opts.fs_uid == 1000
    assert opts.fs_gid == 1000
    assert opts.fs_fmask == 0o77
    assert opts.fs_dmask == 0o77


def test_octal_gid_literal():
    assert parse_options("gid=010").fs_gid == 8


def test_allow_utime_is_masked_to_write_bits():
    opts = parse_options("allow_utime=777")
    assert opts.allow_utime == 0o022


def test_allow_utime_defaults_from_dmask():
    opts = parse_options("dmask=0", umask=0o022)
    assert opts.allow_utime == 0o022


@pytest.mark.parametrize(
    "text",
    ["uid=-1", "uid=4294967296", "uid=", "umask=9", "codepage=abc", "bogus"],
)
def test_bad_values_raise(text):
    with pytest.raises(OptionError):
        parse_options(text)


def test_time_offset_limits():
    assert parse_options("time_offset=-1440").time_offset == -1440
    with pytest.raises(OptionError):
        parse_options("time_offset=1441")


def test_tz_utc():
    opts = parse_options("tz=UTC")
    assert opts.tz_set is True
    assert opts.time_offset == 0


def test_dots_only_for_msdos():
    assert parse_options("dots", is_vfat=False).dots_ok is True
    assert parse_options("dots,nodots", is_vfat=False).dots_ok is False
    with pytest.raises(OptionError):
        parse_options("dots", is_vfat=True)


def test_vfat_only_options_rejected_for_msdos():
    with pytest.raises(OptionError):
        parse_options("shortname=win95", is_vfat=False)


def test_nocase_on_vfat_sets_win95_shortname():
    opts = parse_options("nocase", is_vfat=True)
    assert opts.shortname == int(SHORTNAME_WIN95)
    assert opts.nocase is False
    assert parse_options("nocase", is_vfat=False).nocase is True


def test_unicode_xlate_disables_utf8():
    opts = parse_options("utf8,uni_xlate")
    assert opts.unicode_xlate is True
    assert opts.utf8 is False


def test_nonumtail_is_negated():
    assert parse_options("nonumtail").numtail is False
    assert parse_options("nonumtail=no").numtail is True


def test_nfs_modes():
    assert parse_options("nfs").nfs is NfsMode.STALE_RW
    opts = parse_options("nfs=nostale_ro")
    assert opts.nfs is NfsMode.NOSTALE_RO
    assert opts.force_read_only is True


def test_obsolete_options_are_accepted():
    opts = parse_options("conv=binary,posix,fat=12,cvf_format=abc")
    assert opts == parse_options(None)


def test_cvf_format_width_limit():
    with pytest.raises(OptionError):
        parse_options("cvf_format=" + "x" * 21)


def test_iocharset_and_errors():
    opts = parse_options("iocharset=utf8,errors=panic,check=strict")
    assert opts.iocharset == "utf8"
    assert opts.errors is ErrorMode.PANIC
    assert opts.name_check == "s"


def test_iocharset_needs_value():
    with pytest.raises(OptionError):
        parse_options("iocharset=")


def test_format_defaults():
    opts = parse_options(None, is_vfat=True, umask=0o022)
    text = format_options(opts, "cp437", "iso8859-1")
    assert text == (
        ",fmask=0022,dmask=0022,codepage=437,iocharset=iso8859-1"
        ",shortname=mixed,errors=remount-ro"
    )


def test_format_winnt_shortname():
    opts = parse_options("shortname=winnt")
    assert opts.shortname == int(SHORTNAME_WINNT)
    assert ",shortname=winnt" in format_options(opts)


def test_format_omits_charsets_when_missing():
    text = format_options(parse_options(None))
    assert "codepage" not in text
    assert "iocharset" not in text


@pytest.mark.parametrize(
    "text,is_vfat",
    [
        ("uid=1000,gid=100,umask=077", True),
        ("shortname=lower,utf8,nonumtail,rodir,flush", True),
        ("uni_xlate,time_offset=-60,errors=continue,nfs", True),
        ("check=r,usefree,quiet,showexec,sys_immutable,discard,dos1xfloppy", True),
        ("tz=UTC,nfs=nostale_ro,umask=0", True),
        ("dots,nocase,errors=panic,codepage=850", False),
        ("allow_utime=020,dmask=0", False),
    ],
)
def test_format_parse_round_trip(text, is_vfat):
    opts = parse_options(text, is_vfat=is_vfat)
    shown = format_options(opts, f"cp{opts.codepage}", opts.iocharset)
    again = parse_options(shown, is_vfat=is_vfat)
    assert isinstance(again, MountOptions)
    assert again == opts
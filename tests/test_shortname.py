import pytest
from hypothesis import given
from hypothesis import strategies as st

from fatcore.options import SHORTNAME_WIN95, SHORTNAME_WINNT, Shortname
from fatcore.shortname import (
    CASE_LOWER_BASE,
    CASE_LOWER_EXT,
    ShortnameResult,
    create_shortname,
)


def test_upper_8_3_name_is_a_valid_shortname():
    result = create_shortname("README.TXT")
    assert result == ShortnameResult(b"README  TXT", 0, True)


def test_lower_name_win95_needs_long_name():
    result = create_shortname("readme.txt", shortname_mode=int(SHORTNAME_WIN95))
    assert result.is_shortname is False
    assert result.name == create_shortname("README.TXT").name


def test_lower_name_winnt_sets_case_flags():
    result = create_shortname("readme.txt", shortname_mode=int(SHORTNAME_WINNT))
    assert result.is_shortname is True
    assert result.lcase == CASE_LOWER_BASE | CASE_LOWER_EXT


def test_lower_base_only_winnt():
    result = create_shortname("readme.TXT", shortname_mode=int(SHORTNAME_WINNT))
    assert result.lcase == CASE_LOWER_BASE


def test_mixed_case_winnt_is_not_shortname():
    result = create_shortname("ReadMe.txt", shortname_mode=int(SHORTNAME_WINNT))
    assert result.is_shortname is False
    assert result.lcase == 0


def test_existing_shortname_raises():
    with pytest.raises(FileExistsError):
        create_shortname("README.TXT", exists=lambda name: True)


def test_long_name_gets_numeric_tail():
    result = create_shortname("longfilename.txt")
    assert result.is_shortname is False
    assert b"~" in result.name
    assert result.name.endswith(b"TXT")
    assert len(result.name) == 11


def test_numeric_tail_skips_taken_names():
    first = create_shortname("longfilename.txt")
    second = create_shortname("longfilename.txt", exists=lambda n: n == first.name)
    assert second.name != first.name
    assert second.name[:6] == first.name[:6]
    assert second.name[7] == first.name[7] + 1


def test_no_numtail_keeps_truncated_name():
    result = create_shortname("longfilename.txt", numtail=False)
    assert result.name == b"LONGFILETXT"


def test_hashed_tail_after_nine_numeric_tails():
    seen = []

    def exists(name):
        seen.append(name)
        return b"~" in name and name[2:6] != b"0000"

    result = create_shortname("longfilename.txt", exists=exists, tick=0)
    assert result.name == b"LO0000~1TXT"
    assert len(seen) == 10


def test_replaced_character_forces_alias():
    result = create_shortname("a+b.txt")
    assert result.is_shortname is False
    assert b"_" in result.name
    assert b"+" not in result.name


def test_leading_dot_name_has_no_extension():
    result = create_shortname(".bashrc")
    assert result.name == b"BASHRC~1   "


@pytest.mark.parametrize("name", ["", "...", ". ."])
def test_empty_base_raises(name):
    with pytest.raises(ValueError):
        create_shortname(name)


def test_no_creation_rule_raises():
    with pytest.raises(ValueError):
        create_shortname("README.TXT", shortname_mode=int(Shortname.DISPLAY_LOWER))


def test_unknown_codepage_raises():
    with pytest.raises(LookupError):
        create_shortname("README.TXT", codepage="no-such-codec")


def test_accepts_code_unit_sequence():
    units = [ord(c) for c in "README.TXT"]
    assert create_shortname(units) == create_shortname("README.TXT")


@given(st.from_regex(r"[a-zA-Z0-9]{1,12}(\.[a-zA-Z0-9]{1,5})?", fullmatch=True))
def test_generated_names_are_well_formed(name):
    result = create_shortname(name)
    assert len(result.name) == 11
    assert result.name == result.name.upper()
    assert all(byte < 0x7F for byte in result.name)
    assert result.name[0] != ord(" ")


@given(st.from_regex(r"[A-Z0-9]{1,8}(\.[A-Z0-9]{1,3})?", fullmatch=True))
def test_upper_8_3_names_round_trip(name):
    result = create_shortname(name)
    base, _, ext = name.partition(".")
    assert result.is_shortname is True
    assert result.name[:8].rstrip(b" ").decode() == base
    assert result.name[8:].rstrip(b" ").decode() == ext
import pytest
from hypothesis import given
from hypothesis import strategies as st

from fatcore.vfat_names import (
    check_bad_chars,
    is_bad_char,
    is_replace_char,
    is_skip_char,
    lfn_checksum,
    names_equal,
    striptail_len,
)


@pytest.mark.parametrize(
    "name,length",
    [("abc...", 3), ("...", 0), ("a.b", 3), ("", 0), (b"x.", 1)],
)
def test_striptail_len(name, length):
    assert striptail_len(name) == length


def test_names_equal_folding():
    assert names_equal("File.", "file", True) is True
    assert names_equal("File.", "file", False) is False
    assert names_equal("abc", "abc..", False) is True
    assert names_equal("abc", "abcd", True) is False


@given(st.text(alphabet="abcXYZ.", max_size=12))
def test_name_equals_itself_with_extra_dots(name):
    assert names_equal(name, name + "..", fold=False)


@pytest.mark.parametrize("ch", list('*?<>|":/\\') + ["\x00", "\x1f"])
def test_bad_chars(ch):
    assert is_bad_char(ch) is True
    assert is_bad_char(ord(ch)) is True


@pytest.mark.parametrize("ch", ["a", " ", ".", "~", "["])
def test_not_bad_chars(ch):
    assert is_bad_char(ch) is False


@pytest.mark.parametrize("ch", list("[];,+="))
def test_replace_chars(ch):
    assert is_replace_char(ch) is True
    assert is_skip_char(ch) is False


def test_skip_chars():
    assert is_skip_char(".") is True
    assert is_skip_char(" ") is True
    assert is_skip_char("a") is False
    assert is_replace_char("a") is False


@pytest.mark.parametrize("name", ["a b ", "what?", "a/b", "tab\tname", ""])
def test_check_bad_chars_rejects(name):
    with pytest.raises(ValueError):
        check_bad_chars(name)


def test_check_bad_chars_accepts_code_units():
    with pytest.raises(ValueError):
        check_bad_chars([ord("a"), ord(" ")])


def test_checksum_requires_eleven_bytes():
    with pytest.raises(ValueError):
        lfn_checksum(b"SHORT")


def test_checksum_of_zero_name():
    assert lfn_checksum(bytes(11)) == 0


@given(st.binary(min_size=11, max_size=11), st.integers(0, 10), st.integers(1, 255))
def test_checksum_changes_with_any_byte(name, index, delta):
    changed = bytearray(name)
    changed[index] = (changed[index] + delta) % 256
    assert 0 <= lfn_checksum(name) <= 255
    assert lfn_checksum(bytes(changed)) != lfn_checksum(name)
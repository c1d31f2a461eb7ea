import pytest

from fatcore.journal import FatJournal


def test_write_appends_and_flushes(tmp_path):
    path = tmp_path / "journal.log"
    journal = FatJournal(path)
    journal.open()
    journal.write("FAT_LOOKUP | name=a\n")
    # Flushed immediately, visible before close.
    assert path.read_text() == "FAT_LOOKUP | name=a\n"
    journal.write("FAT_LOOKUP | name=b\n")
    journal.close()
    assert path.read_text() == "FAT_LOOKUP | name=a\nFAT_LOOKUP | name=b\n"


def test_open_keeps_existing_content(tmp_path):
    path = tmp_path / "journal.log"
    path.write_text("old\n")
    with FatJournal(path) as journal:
        journal.write("new\n")
    assert path.read_text() == "old\nnew\n"


def test_write_while_closed_is_ignored(tmp_path):
    path = tmp_path / "journal.log"
    journal = FatJournal(path)
    journal.write("lost\n")
    assert not path.exists()
    journal.open()
    journal.close()
    journal.write("lost again\n")
    assert path.read_text() == ""


def test_context_manager_closes(tmp_path):
    path = tmp_path / "journal.log"
    with FatJournal(path) as journal:
        assert journal.is_open is True
    assert journal.is_open is False


def test_open_twice_is_idempotent(tmp_path):
    path = tmp_path / "journal.log"
    journal = FatJournal(path)
    journal.open()
    journal.open()
    journal.write("x\n")
    journal.close()
    journal.close()
    assert path.read_text() == "x\n"


def test_open_failure_raises_and_stays_closed(tmp_path):
    journal = FatJournal(tmp_path)
    with pytest.raises(OSError):
        journal.open()
    assert journal.is_open is False
    journal.write("ignored\n")
    assert journal.is_open is False


def test_path_is_stored_as_string(tmp_path):
    path = tmp_path / "j.log"
    assert FatJournal(path).path == str(path)
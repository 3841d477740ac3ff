"""Tests for ledger module."""

import threading
from unittest.mock import patch

import pytest

from gmail_tts.errors import StorageError, ValidationError
from gmail_tts.ledger import Ledger


def test_ledger_missing_file_is_empty(ledger):
    assert ledger.ids() == []
    assert not ledger.contains("18c0ffee")


def test_ledger_append_creates_parent_dirs(ledger):
    ledger.append("18c0ffee")
    with open(ledger.path) as f:
        assert f.read() == "18c0ffee\n"


def test_ledger_contains_after_append(ledger):
    ledger.append("a1")
    ledger.append("b2")
    assert ledger.contains("a1")
    assert ledger.contains(" b2 ")
    assert not ledger.contains("c3")
    assert ledger.ids() == ["a1", "b2"]


def test_ledger_ignores_blank_lines(tmp_path):
    path = tmp_path / "ids.txt"
    path.write_text("a1\n\n  \nb2\n")
    assert Ledger(str(path)).ids() == ["a1", "b2"]


def test_ledger_reads_existing_file_fresh(tmp_path):
    """Every check rescans the file, so outside appends are seen."""
    path = tmp_path / "ids.txt"
    ledger = Ledger(str(path))
    assert not ledger.contains("x9")
    path.write_text("x9\n")
    assert ledger.contains("x9")


def test_ledger_empty_id_not_contained(ledger):
    ledger.append("a1")
    assert not ledger.contains("")
    assert not ledger.contains("   ")


@pytest.mark.parametrize("bad", ["", "  ", "a\nb", "a\rb"])
def test_ledger_rejects_invalid_ids(ledger, bad):
    with pytest.raises(ValidationError):
        ledger.append(bad)


def test_ledger_write_failure_is_storage_error(ledger):
    with patch("builtins.open", side_effect=PermissionError("read-only")):
        with pytest.raises(StorageError) as exc_info:
            ledger.append("a1")
    assert exc_info.value.stage == "ledger"
    assert ledger.path in str(exc_info.value)


def test_ledger_concurrent_appends_keep_every_line(ledger):
    ids = [f"id{i}" for i in range(50)]
    threads = [threading.Thread(target=ledger.append, args=(i,)) for i in ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert sorted(ledger.ids()) == sorted(ids)


def test_ledgers_on_same_path_share_lock(tmp_path):
    path = str(tmp_path / "ids.txt")
    first, second = Ledger(path), Ledger(str(tmp_path / "." / "ids.txt"))
    assert first._state is second._state
    assert Ledger(str(tmp_path / "other.txt"))._state is not first._state


def test_claim_blocks_second_owner_until_released(tmp_path):
    path = str(tmp_path / "ids.txt")
    with Ledger(path).claim("a1") as owned:
        assert owned
        with Ledger(path).claim("a1") as again:
            assert not again
    with Ledger(path).claim("a1") as owned:
        assert owned


def test_claim_refuses_recorded_id(ledger):
    ledger.append("a1")
    with ledger.claim(" a1 ") as owned:
        assert not owned


def test_claim_blank_id_is_owned(ledger):
    with ledger.claim("") as owned:
        assert owned
    assert ledger.ids() == []

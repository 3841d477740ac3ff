"""Tests for naming module."""

import pytest

from gmail_tts.naming import ArtifactNames, order_by_part_index, part_index, sanitize_name


@pytest.mark.parametrize("raw, expected", [
    ("Report: Q3/Q4 <final>", "Report_ Q3_Q4 _final"),
    ("a\\b|c?d*e", "a_b_c_d_e"),
    ('say "hi"', "say _hi"),
    ("tab\there", "tab_here"),
    ("  padded  ", "padded"),
    ("__edges__", "edges"),
    ("trailing dot.", "trailing dot"),
    ("週刊 ニュース", "週刊 ニュース"),
])
def test_sanitize_name(raw, expected):
    assert sanitize_name(raw) == expected


def test_sanitize_collapses_replacement_runs():
    assert sanitize_name("a///b") == "a_b"


def test_sanitize_output_has_no_unsafe_characters():
    unsafe = '/\\:*?"<>|' + "".join(chr(c) for c in range(0x20)) + "\x7f"
    name = sanitize_name("x" + unsafe + "y" + unsafe)
    assert not any(ch in unsafe for ch in name)


def test_sanitize_caps_length():
    assert len(sanitize_name("a" * 250)) == 100


def test_sanitize_truncation_keeps_combining_marks_together():
    """A base letter and its combining accent stay together or go together."""
    raw = "a" * 99 + "e\u0301" + "z"
    name = sanitize_name(raw)
    assert len(name) <= 100
    assert not name.endswith("e")
    assert name == "a" * 99


def test_sanitize_falls_back_to_message_id():
    assert sanitize_name("", fallback="18c0ffee") == "18c0ffee"
    assert sanitize_name("///", fallback="18c0ffee") == "18c0ffee"
    assert sanitize_name(None, fallback="18c0ffee") == "18c0ffee"


def test_sanitize_falls_back_to_untitled():
    assert sanitize_name("...") == "untitled"
    assert sanitize_name("", fallback="") == "untitled"


def test_sanitize_invalid_bytes_never_raise():
    assert sanitize_name(b"caf\xc3\xa9 \xff\xfe menu") == "caf\u00e9  menu"


def test_sanitize_drops_replacement_character_and_surrogates():
    assert sanitize_name("bad\ufffdname\udc80") == "badname"


@pytest.mark.parametrize("raw", [
    "Report: Q3/Q4 <final>",
    "x" * 99 + " .",
    "_ a . _",
    "a" * 98 + " _.",
    "  週刊 / 号 .  ",
])
def test_sanitize_is_idempotent(raw):
    once = sanitize_name(raw)
    assert sanitize_name(once) == once


def test_artifact_names_for_message():
    names = ArtifactNames.for_message("18c0ffee", "Weekly: News/Update")
    assert names.part(1) == "parts/18c0ffee/Weekly_ News_Update_part1"
    assert names.merged == "merged/18c0ffee/Weekly_ News_Update"


def test_artifact_names_empty_subject_uses_id():
    names = ArtifactNames.for_message("18c0ffee", "")
    assert names.merged == "merged/18c0ffee/18c0ffee"


@pytest.mark.parametrize("name, expected", [
    ("x_part1.txt", 1),
    ("dir/x_part12.mp3", 12),
    ("x_part3", 3),
    ("x.txt", None),
    ("x_partA.txt", None),
])
def test_part_index(name, expected):
    assert part_index(name) == expected


def test_order_by_part_index_is_numeric():
    names = ["a_part10.txt", "a_part2.txt", "notes.txt", "a_part1.txt"]
    assert order_by_part_index(names) == ["a_part1.txt", "a_part2.txt", "a_part10.txt", "notes.txt"]

# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.
"""Tests for byte-level difference computation."""

from __future__ import annotations

from fairground.diff import DiffResult, IndexRange, diff_bytes


def test_identical_payloads_have_no_changes() -> None:
    result = diff_bytes(b"same bytes", b"same bytes")

    assert result == DiffResult()
    assert result.is_empty
    assert result.total_changes == 0


def test_contiguous_insertion_is_one_range() -> None:
    result = diff_bytes(b"abcdef", b"abcXYdef")

    assert result.inserted_ranges == (IndexRange(3, 5),)
    assert result.removed_ranges == ()
    assert result.insertions == 2
    assert result.removals == 0
    assert result.total_changes == 2


def test_removal_indexes_old_payload() -> None:
    result = diff_bytes(b"abcdef", b"abef")

    assert result.removed_ranges == (IndexRange(2, 4),)
    assert result.insertions == 0
    assert result.removals == 2


def test_substitution_counts_insertion_and_removal() -> None:
    result = diff_bytes(b"abc", b"axc")

    assert result.inserted_ranges == (IndexRange(1, 2),)
    assert result.removed_ranges == (IndexRange(1, 2),)
    assert result.total_changes == 2


def test_scattered_edits_produce_separate_ranges() -> None:
    old = b"0123456789" * 3
    new = bytearray(old)
    new[5] = ord("x")
    new[25] = ord("y")

    result = diff_bytes(old, bytes(new))

    assert result.removed_ranges == (IndexRange(5, 6), IndexRange(25, 26))
    assert result.inserted_ranges == (IndexRange(5, 6), IndexRange(25, 26))
    assert result.total_changes == 4


def test_relocated_block_counts_as_move() -> None:
    result = diff_bytes(b"XYZ" + b"-" * 10, b"-" * 10 + b"XYZ")

    assert result.removed_ranges == (IndexRange(0, 3),)
    assert result.inserted_ranges == (IndexRange(10, 13),)
    assert result.moves == 1
    assert result.total_changes == 6


def test_small_edit_in_large_payload() -> None:
    old = bytes(range(256)) * 4096
    middle = len(old) // 2
    new = old[:middle] + b"\xaa\xbb" + old[middle:]

    result = diff_bytes(old, new)

    assert result.insertions == 2
    assert result.removals == 0
    assert not result.truncated


def test_search_beyond_limit_is_truncated() -> None:
    result = diff_bytes(bytes(100), b"\x01" * 100, limit=10)

    assert result.truncated
    assert result.inserted_ranges == (IndexRange(0, 100),)
    assert result.removed_ranges == (IndexRange(0, 100),)
    assert result.total_changes == 200


def test_distance_beyond_length_gap_is_truncated_without_search() -> None:
    result = diff_bytes(b"ab" * 10, b"xy" * 50_000, limit=1_000)

    assert result.truncated
    assert result.total_changes == 100_020


def test_large_limit_keeps_minimal_counts() -> None:
    old = bytes(range(256)) * 512
    new = bytearray(old)
    for index in (1_000, 40_000, 90_000):
        new[index] ^= 0xFF
    del new[120_000:120_010]

    result = diff_bytes(old, bytes(new), limit=10_000_000)

    assert not result.truncated
    assert result.removed_ranges == (
        IndexRange(1_000, 1_001),
        IndexRange(40_000, 40_001),
        IndexRange(90_000, 90_001),
        IndexRange(120_000, 120_010),
    )
    assert result.insertions == 3
    assert result.removals == 13


def test_interleaved_edits_are_minimal() -> None:
    result = diff_bytes(b"abcabba", b"cbabac")

    assert result.total_changes == 5
    assert not result.truncated


def test_index_range_rendering() -> None:
    assert str(IndexRange(3, 5)) == "3..<5"
    assert len(IndexRange(3, 5)) == 2

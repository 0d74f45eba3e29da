# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Blackcat Informatics® Inc.

"""Byte-level difference computation.

The diff is a shortest edit script (Myers) between two byte strings, reported
as half-open ranges of removed bytes (offsets in the old payload) and
inserted bytes (offsets in the new payload). The shared prefix and suffix are
trimmed before the search so small edits in large binaries stay cheap, and
the search splits the problem at the middle of a minimal path so it only keeps
linear state. Work grows with the payload size times the edit distance, so
callers bound the distance with ``limit``.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Final

DEFAULT_EDIT_LIMIT: Final[int] = 2_000
_SNAKE_CHUNK: Final[int] = 512


@dataclass(frozen=True, slots=True)
class IndexRange:
    """Half-open byte range ``[start, stop)``."""

    start: int
    stop: int

    def __len__(self) -> int:
        return self.stop - self.start

    def __str__(self) -> str:
        return f"{self.start}..<{self.stop}"


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Summary of the edits that turn an old payload into a new one.

    Attributes:
        inserted_ranges: Ranges of the new payload that were inserted.
        removed_ranges: Ranges of the old payload that were removed.
        insertions: Number of inserted bytes.
        removals: Number of removed bytes.
        moves: Number of removed ranges whose bytes reappear verbatim as an
            inserted range. Moves still count as one insertion plus one removal.
        truncated: ``True`` when the search stopped at the edit limit; the
            counts are then a lower bound.
    """

    inserted_ranges: tuple[IndexRange, ...] = ()
    removed_ranges: tuple[IndexRange, ...] = ()
    insertions: int = 0
    removals: int = 0
    moves: int = 0
    truncated: bool = False

    @property
    def total_changes(self) -> int:
        return self.insertions + self.removals

    @property
    def is_empty(self) -> bool:
        return self.total_changes == 0


def _coalesce(indices: Iterable[int]) -> tuple[IndexRange, ...]:
    ranges: list[IndexRange] = []
    start: int | None = None
    previous = -2
    for index in indices:
        if start is not None and index == previous + 1:
            previous = index
            continue
        if start is not None:
            ranges.append(IndexRange(start, previous + 1))
        start = previous = index
    if start is not None:
        ranges.append(IndexRange(start, previous + 1))
    return tuple(ranges)


def _snake(old: bytes, new: bytes, x: int, y: int, old_end: int, new_end: int) -> tuple[int, int]:
    while x < old_end and y < new_end:
        step = min(_SNAKE_CHUNK, old_end - x, new_end - y)
        if old[x : x + step] == new[y : y + step]:
            x += step
            y += step
            continue
        for offset in range(step):
            if old[x + offset] != new[y + offset]:
                return x + offset, y + offset
    return x, y


def _snake_back(old: bytes, new: bytes, x: int, y: int, old_start: int, new_start: int) -> tuple[int, int]:
    while x > old_start and y > new_start:
        step = min(_SNAKE_CHUNK, x - old_start, y - new_start)
        if old[x - step : x] == new[y - step : y]:
            x -= step
            y -= step
            continue
        for offset in range(1, step + 1):
            if old[x - offset] != new[y - offset]:
                return x - offset + 1, y - offset + 1
    return x, y


def _split(
    old: bytes,
    new: bytes,
    bounds: tuple[int, int, int, int],
    limit: int | None,
) -> tuple[int, int, int] | None:
    """Find a point on a minimal edit path that halves its cost.

    Forward and backward searches advance one cost step at a time, each
    keeping a single frontier of furthest-reaching points per diagonal
    (``x - y``), until they overlap.

    Returns:
        tuple[int, int, int] | None: The split point and the total edit cost,
        or ``None`` once the cost is known to exceed ``limit``.
    """

    old_start, old_end, new_start, new_end = bounds
    low, high = old_start - new_end, old_end - new_start
    offset = 1 - low
    forward_mid, backward_mid = old_start - new_start, old_end - new_end
    odd = (forward_mid - backward_mid) % 2 == 1
    forward = [0] * (high - low + 3)
    backward = [0] * (high - low + 3)
    forward[forward_mid + offset] = old_start
    backward[backward_mid + offset] = old_end
    forward_min = forward_max = forward_mid
    backward_min = backward_max = backward_mid
    unreached = old_end + 1

    cost = 0
    while True:
        cost += 1
        if limit is not None and 2 * cost - 1 > limit:
            return None
        if forward_min > low:
            forward_min -= 1
            forward[forward_min - 1 + offset] = -1
        else:
            forward_min += 1
        if forward_max < high:
            forward_max += 1
            forward[forward_max + 1 + offset] = -1
        else:
            forward_max -= 1
        for diagonal in range(forward_max, forward_min - 1, -2):
            if forward[diagonal - 1 + offset] >= forward[diagonal + 1 + offset]:
                x = forward[diagonal - 1 + offset] + 1
            else:
                x = forward[diagonal + 1 + offset]
            x, y = _snake(old, new, x, x - diagonal, old_end, new_end)
            forward[diagonal + offset] = x
            if odd and backward_min <= diagonal <= backward_max and backward[diagonal + offset] <= x:
                return x, y, 2 * cost - 1

        if limit is not None and 2 * cost > limit:
            return None
        if backward_min > low:
            backward_min -= 1
            backward[backward_min - 1 + offset] = unreached
        else:
            backward_min += 1
        if backward_max < high:
            backward_max += 1
            backward[backward_max + 1 + offset] = unreached
        else:
            backward_max -= 1
        for diagonal in range(backward_max, backward_min - 1, -2):
            if backward[diagonal - 1 + offset] < backward[diagonal + 1 + offset]:
                x = backward[diagonal - 1 + offset]
            else:
                x = backward[diagonal + 1 + offset] - 1
            x, y = _snake_back(old, new, x, x - diagonal, old_start, new_start)
            backward[diagonal + offset] = x
            if not odd and forward_min <= diagonal <= forward_max and x <= forward[diagonal + offset]:
                return x, y, 2 * cost


def _collect_edits(
    old: bytes,
    new: bytes,
    bounds: tuple[int, int, int, int],
    removed: list[int],
    inserted: list[int],
    limit: int | None = None,
) -> bool:
    """Append the edits between two regions; ``False`` when ``limit`` is exceeded."""

    old_start, old_end, new_start, new_end = bounds
    old_start, new_start = _snake(old, new, old_start, new_start, old_end, new_end)
    old_end, new_end = _snake_back(old, new, old_end, new_end, old_start, new_start)
    if old_start == old_end or new_start == new_end:
        if limit is not None and (old_end - old_start) + (new_end - new_start) > limit:
            return False
        removed.extend(range(old_start, old_end))
        inserted.extend(range(new_start, new_end))
        return True
    if limit is not None and abs((old_end - old_start) - (new_end - new_start)) > limit:
        return False

    split = _split(old, new, (old_start, old_end, new_start, new_end), limit)
    if split is None:
        return False
    x, y, _ = split
    _collect_edits(old, new, (old_start, x, new_start, y), removed, inserted)
    _collect_edits(old, new, (x, old_end, y, new_end), removed, inserted)
    return True


def _shortest_edit(old: bytes, new: bytes, limit: int) -> tuple[list[int], list[int], bool]:
    """Return removed and inserted indices of a minimal edit script."""

    removed: list[int] = []
    inserted: list[int] = []
    if not _collect_edits(old, new, (0, len(old), 0, len(new)), removed, inserted, limit):
        return [], [], True
    return removed, inserted, False


def _count_moves(
    old: bytes,
    new: bytes,
    removed: tuple[IndexRange, ...],
    inserted: tuple[IndexRange, ...],
) -> int:
    available: dict[bytes, int] = {}
    for item in inserted:
        chunk = new[item.start : item.stop]
        available[chunk] = available.get(chunk, 0) + 1
    moves = 0
    for item in removed:
        chunk = old[item.start : item.stop]
        if available.get(chunk, 0) > 0:
            available[chunk] -= 1
            moves += 1
    return moves


def _common_prefix(old: bytes, new: bytes) -> int:
    shortest = min(len(old), len(new))
    prefix = 0
    while prefix < shortest:
        step = min(_SNAKE_CHUNK, shortest - prefix)
        if old[prefix : prefix + step] == new[prefix : prefix + step]:
            prefix += step
            continue
        while old[prefix] == new[prefix]:
            prefix += 1
        break
    return prefix


def _common_suffix(old: bytes, new: bytes, available: int) -> int:
    suffix = 0
    while suffix < available:
        step = min(_SNAKE_CHUNK, available - suffix)
        old_end, new_end = len(old) - suffix, len(new) - suffix
        if old[old_end - step : old_end] == new[new_end - step : new_end]:
            suffix += step
            continue
        while old[len(old) - suffix - 1] == new[len(new) - suffix - 1]:
            suffix += 1
        break
    return suffix


def diff_bytes(old: bytes, new: bytes, *, limit: int = DEFAULT_EDIT_LIMIT) -> DiffResult:
    """Compute the byte-level difference between ``old`` and ``new``.

    Args:
        old: Original payload; removal ranges index into it.
        new: Updated payload; insertion ranges index into it.
        limit: Maximum edit distance to search for. Beyond it the result is
            flagged ``truncated`` and covers the whole differing region, so
            its counts exceed ``limit``.

    Returns:
        DiffResult: Insertion and removal ranges with their byte counts.
    """

    if old == new:
        return DiffResult()

    prefix = _common_prefix(old, new)
    suffix = _common_suffix(old, new, min(len(old), len(new)) - prefix)
    old_middle = old[prefix : len(old) - suffix]
    new_middle = new[prefix : len(new) - suffix]

    if not old_middle or not new_middle:
        removed_indices = [prefix + index for index in range(len(old_middle))]
        inserted_indices = [prefix + index for index in range(len(new_middle))]
    else:
        removed_raw, inserted_raw, truncated = _shortest_edit(old_middle, new_middle, limit)
        if truncated:
            return DiffResult(
                inserted_ranges=(IndexRange(prefix, prefix + len(new_middle)),),
                removed_ranges=(IndexRange(prefix, prefix + len(old_middle)),),
                insertions=len(new_middle),
                removals=len(old_middle),
                truncated=True,
            )
        removed_indices = [prefix + index for index in removed_raw]
        inserted_indices = [prefix + index for index in inserted_raw]

    removed_ranges = _coalesce(removed_indices)
    inserted_ranges = _coalesce(inserted_indices)
    return DiffResult(
        inserted_ranges=inserted_ranges,
        removed_ranges=removed_ranges,
        insertions=len(inserted_indices),
        removals=len(removed_indices),
        moves=_count_moves(old, new, removed_ranges, inserted_ranges),
    )


__all__ = ["DEFAULT_EDIT_LIMIT", "DiffResult", "IndexRange", "diff_bytes"]

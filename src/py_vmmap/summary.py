"""Aggregation — fold region entries into summary buckets.

vmmap ends its report with two cross-cut tables: one row per region
type for the whole process, and one row per malloc zone.  Both are the
same operation with a different grouping key, so ``aggregate`` takes
the key function and everything else is a thin wrapper around it.

Buckets are returned in a plain dict.  Accumulation only ever adds, so
totals do not depend on the order entries arrive in; callers that need
a stable display order sort by key themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from py_vmmap.maps.classifier import RegionType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from py_vmmap.maps.classifier import RegionEntry

PURGE_VOLATILE = "V"
PURGE_NONVOLATILE = "N"
PURGE_EMPTY = "E"


@dataclass
class SummaryBucket:
    """Running totals for every entry that shares one key."""

    key: str
    virtual_size: int = 0
    resident_size: int = 0
    dirty_size: int = 0
    swap_size: int = 0
    volatile_size: int = 0
    nonvolatile_size: int = 0
    empty_size: int = 0
    count: int = 0

    @property
    def is_malloc(self) -> bool:
        """Return True if this bucket's key names an allocator region."""
        return self.key.startswith(RegionType.MALLOC)

    def add(self, entry: RegionEntry) -> None:
        """Fold one entry into the running totals."""
        self.virtual_size += entry.virtual_size
        self.resident_size += entry.resident_size
        self.dirty_size += entry.dirty_size
        self.swap_size += entry.swap_size

        if entry.purge_state == PURGE_VOLATILE:
            self.volatile_size += entry.virtual_size
        elif entry.purge_state == PURGE_NONVOLATILE:
            self.nonvolatile_size += entry.virtual_size
        elif entry.purge_state == PURGE_EMPTY:
            self.empty_size += entry.virtual_size

        self.count += 1


@dataclass(frozen=True)
class RegionTotals:
    """Whole-process totals over a filtered subset of entries."""

    virtual_size: int = 0
    resident_size: int = 0
    swap_size: int = 0
    count: int = 0

    @property
    def unresident_size(self) -> int:
        """Return the part of the virtual size that is not resident."""
        return self.virtual_size - self.resident_size

    @property
    def unallocated_size(self) -> int:
        """Return the virtual size that is neither resident nor swapped."""
        return self.virtual_size - self.resident_size - self.swap_size


def aggregate(
    entries: Iterable[RegionEntry],
    key: Callable[[RegionEntry], str],
) -> dict[str, SummaryBucket]:
    """Group entries by *key* and sum each group.

    Args:
        entries: The entries to fold.
        key: Maps an entry to its bucket key.

    Returns:
        A mapping from key to bucket.  Iteration order is not meaningful.

    """
    buckets: dict[str, SummaryBucket] = {}
    for entry in entries:
        bucket_key = str(key(entry))
        bucket = buckets.get(bucket_key)
        if bucket is None:
            bucket = buckets[bucket_key] = SummaryBucket(key=bucket_key)
        bucket.add(entry)
    return buckets


def summarize_by_type(entries: Iterable[RegionEntry]) -> dict[str, SummaryBucket]:
    """Return one bucket per region type."""
    return aggregate(entries, lambda entry: entry.region_type)


def summarize_malloc_zones(entries: Iterable[RegionEntry]) -> dict[str, SummaryBucket]:
    """Return one bucket per malloc zone (allocator regions only)."""
    return aggregate((e for e in entries if e.is_malloc), lambda entry: entry.detail)


def totals(entries: Iterable[RegionEntry]) -> RegionTotals:
    """Sum virtual, resident and swap sizes over *entries*."""
    virtual_size = resident_size = swap_size = count = 0
    for entry in entries:
        virtual_size += entry.virtual_size
        resident_size += entry.resident_size
        swap_size += entry.swap_size
        count += 1
    return RegionTotals(
        virtual_size=virtual_size,
        resident_size=resident_size,
        swap_size=swap_size,
        count=count,
    )


def writable_totals(entries: Iterable[RegionEntry]) -> RegionTotals:
    """Return totals over writable regions."""
    return totals(e for e in entries if e.is_writable)


def read_only_library_totals(entries: Iterable[RegionEntry]) -> RegionTotals:
    """Return totals over the read-only portion of libraries.

    Only non-writable ``__TEXT`` regions count.
    """
    return totals(e for e in entries if not e.is_writable and e.region_type == RegionType.TEXT)

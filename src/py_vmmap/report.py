"""Reporting facade — turn an entry set into everything a report shows.

The facade does no I/O.  Given the normalized entries of one process it
partitions them the way vmmap prints them (non-writable regions first,
then writable ones, unless interleaved), runs the two aggregations and
computes the read-only/writable totals.  The renderer consumes the
resulting ``Report``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from py_vmmap.errors import ReportError
from py_vmmap.summary import (
    RegionTotals,
    SummaryBucket,
    read_only_library_totals,
    summarize_by_type,
    summarize_malloc_zones,
    writable_totals,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from py_vmmap.maps.classifier import RegionEntry


@dataclass(frozen=True)
class VmmapOptions:
    """Presentation options, mirroring vmmap's command-line flags."""

    wide: bool = False
    """Do not truncate the region detail column."""

    pages: bool = False
    """Report sizes as page counts instead of scaled bytes."""

    interleaved: bool = False
    """Print all regions in address order instead of split by writability."""

    summary: bool = False
    """Only print the overall summary, not the per-region tables."""

    no_coalesce: bool = False
    """Do not merge adjacent identical regions."""

    submap: bool = False
    all_split_libs: bool = False
    stacks: bool = False
    full_stacks: bool = False
    fork_corpse: bool = False


@dataclass(frozen=True)
class Report:
    """Aggregated view of one process's address space."""

    pid: int
    options: VmmapOptions
    entries: tuple[RegionEntry, ...]
    page_size: int
    by_type: dict[str, SummaryBucket]
    malloc_zones: dict[str, SummaryBucket]
    read_only_libraries: RegionTotals
    writable: RegionTotals
    non_writable_entries: tuple[RegionEntry, ...] = field(default=())
    writable_entries: tuple[RegionEntry, ...] = field(default=())


def partition_by_writable(
    entries: Sequence[RegionEntry],
) -> tuple[tuple[RegionEntry, ...], tuple[RegionEntry, ...]]:
    """Split entries into ``(non_writable, writable)``, keeping order."""
    non_writable = tuple(e for e in entries if not e.is_writable)
    writable = tuple(e for e in entries if e.is_writable)
    return non_writable, writable


def build_report(
    entries: Sequence[RegionEntry],
    options: VmmapOptions | None = None,
    *,
    pid: int = 0,
) -> Report:
    """Build the report data for one process.

    Args:
        entries: Normalized entries, in address order.
        options: Presentation options (defaults to all off).
        pid: The inspected process id, carried for display.

    Raises:
        ReportError: If *entries* is empty or a corpse fork is requested.

    """
    if options is None:
        options = VmmapOptions()
    if options.fork_corpse:
        msg = "-forkCorpse not implemented"
        raise ReportError(msg)
    if not entries:
        msg = f"process {pid} has no memory regions to report"
        raise ReportError(msg)

    non_writable: tuple[RegionEntry, ...] = ()
    writable: tuple[RegionEntry, ...] = ()
    if not options.interleaved:
        non_writable, writable = partition_by_writable(entries)

    return Report(
        pid=pid,
        options=options,
        entries=tuple(entries),
        page_size=entries[0].page_size,
        by_type=summarize_by_type(entries),
        malloc_zones=summarize_malloc_zones(entries),
        read_only_libraries=read_only_library_totals(entries),
        writable=writable_totals(entries),
        non_writable_entries=non_writable,
        writable_entries=writable,
    )

"""Text renderer — lay out a ``Report`` the way vmmap prints it.

The renderer returns strings and never prints; the command-line front
end decides where the text goes.  Column widths follow the stock tool so
that scripts written against its output keep working.

Fields the Linux data source cannot provide (code type, physical
footprint, malloc allocation counts) are shown as ``???``.
"""

from __future__ import annotations

import dataclasses
import os
from datetime import datetime
from typing import TYPE_CHECKING

from py_vmmap.errors import HostInfoError
from py_vmmap.maps.classifier import RegionType
from py_vmmap.units import format_data, pages_or_kilobytes, percent

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from py_vmmap.hostinfo import HostInfo
    from py_vmmap.maps.classifier import RegionEntry
    from py_vmmap.report import Report
    from py_vmmap.summary import SummaryBucket

TOOL_VERSION = "0.1.0"
REPORT_FORMAT = "0.0"
UNKNOWN = "???"

_LABEL_WIDTH = 30
_TIME_FORMAT = "%Y-%m-%d %H:%M:%S %Z"

# Region table columns.
_REGION_TYPE_WIDTH = 24
_ADDRESS_WIDTH = 12
_VSIZE_WIDTH = 6
_SIZE_WIDTH = 7
_PRTMAX_WIDTH = 7
_SHRMOD_WIDTH = 6
_PURGE_WIDTH = 8
# Everything on a region row before the detail column.
_REGION_FIXED_WIDTH = (
    _REGION_TYPE_WIDTH
    + 1
    + 2 * _ADDRESS_WIDTH
    + 3
    + _VSIZE_WIDTH
    + 3 * _SIZE_WIDTH
    + 2
    + _PRTMAX_WIDTH
    + 1
    + _SHRMOD_WIDTH
    + 1
    + _PURGE_WIDTH
    + 1
)

# Summary table columns.
_SUMMARY_TYPE_WIDTH = 30
_SUMMARY_SIZE_WIDTH = 8
_SUMMARY_COUNT_WIDTH = 7

# Malloc zone table columns.
_ZONE_NAME_WIDTH = 29
_ZONE_SIZE_WIDTH = 10
_ZONE_FRAG_WIDTH = 7
_ZONE_COUNT_WIDTH = 7

LEGEND = (
    "==== Legend\n"
    "SM=sharing mode:\n"
    "\t\tCOW=copy_on_write PRV=private NUL=empty ALI=aliased\n"
    "\t\tSHM=shared ZER=zero_filled S/A=shared_alias\n"
    "PURGE=purgeable mode:\n"
    "\t\tV=volatile N=nonvolatile E=empty   otherwise is unpurgeable\n"
)


def truncate_prefix(text: str, max_length: int) -> str:
    """Shorten *text* from the left, marking the cut with ``...``."""
    if max_length < 3:  # noqa: PLR2004
        return "." * max(max_length, 0)
    if len(text) <= max_length:
        return text
    return "..." + text[len(text) - (max_length - 3) :]


def truncate_suffix(text: str, max_length: int) -> str:
    """Shorten *text* from the right, marking the cut with ``...``."""
    if max_length < 3:  # noqa: PLR2004
        return "." * max(max_length, 0)
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def detail_width(terminal_width: int | None, *, wide: bool) -> int | None:
    """Return the detail column width, or None for no truncation."""
    if terminal_width is None or wide:
        return None
    return max(0, terminal_width - _REGION_FIXED_WIDTH)


def _same_region_kind(a: RegionEntry, b: RegionEntry) -> bool:
    return (
        a.end_address == b.start_address
        and a.region_type == b.region_type
        and a.permissions == b.permissions
        and a.max_permissions == b.max_permissions
        and a.share_mode == b.share_mode
        and a.purge_state == b.purge_state
        and a.detail == b.detail
    )


def coalesce(entries: Iterable[RegionEntry]) -> list[RegionEntry]:
    """Merge adjacent regions that look identical in the region table.

    Two regions merge when the second starts where the first ends and
    every displayed attribute other than the sizes matches.
    """
    merged: list[RegionEntry] = []
    for entry in entries:
        if merged and _same_region_kind(merged[-1], entry):
            last = merged[-1]
            merged[-1] = dataclasses.replace(
                last,
                end_address=entry.end_address,
                virtual_size=last.virtual_size + entry.virtual_size,
                resident_size=last.resident_size + entry.resident_size,
                dirty_size=last.dirty_size + entry.dirty_size,
                swap_size=last.swap_size + entry.swap_size,
            )
        else:
            merged.append(entry)
    return merged


# -- Overview -----------------------------------------------------------------


def _lookup(query: Callable[[], object]) -> str:
    """Run a host query, showing ``???`` when the host cannot answer."""
    try:
        return str(query())
    except HostInfoError:
        return UNKNOWN


def _labelled(label: str, value: str) -> str:
    return f"{label:<{_LABEL_WIDTH}}{value}"


def load_address(entries: Iterable[RegionEntry], executable: str) -> int | None:
    """Return the start of the ``__TEXT`` region mapped from *executable*."""
    for entry in entries:
        if entry.region_type == RegionType.TEXT and entry.detail.endswith(executable):
            return entry.start_address
    return None


def render_overview(report: Report, host: HostInfo, *, now: datetime | None = None) -> str:
    """Render the process overview block that opens the report."""
    pid = report.pid
    name = _lookup(lambda: host.process_name(pid))
    path = _lookup(lambda: host.process_path(pid))

    address = load_address(report.entries, path) if path != UNKNOWN else None
    address_str = f"{address:x}" if address is not None else UNKNOWN

    parent = _lookup(lambda: host.parent_pid(pid))
    parent_name = (
        _lookup(lambda: host.process_name(int(parent))) if parent != UNKNOWN else UNKNOWN
    )

    current = now if now is not None else datetime.now().astimezone()
    launched = _lookup(lambda: host.launch_time(pid).astimezone().strftime(_TIME_FORMAT))

    lines = [
        _labelled("Process:", f"{name} [{pid}]"),
        _labelled("Path:", path),
        _labelled("Load Address:", address_str),
        _labelled("Identifier:", name),
        _labelled("Version:", UNKNOWN),
        _labelled("Code Type:", UNKNOWN),
        _labelled("Parent Process:", f"{parent_name} [{parent}]"),
        "",
        _labelled("Date/Time:", current.strftime(_TIME_FORMAT)),
        _labelled("Launch Time:", launched),
        _labelled("OS Version:", _lookup(host.os_version)),
        _labelled("Report Version:", "0"),
        _labelled("Analysis Tool:", _lookup(lambda: host.process_path(os.getpid()))),
        _labelled("Analysis Tool Version:", TOOL_VERSION),
        "",
        _labelled("Physical footprint:", UNKNOWN),
        _labelled("Physical footprint (peak):", UNKNOWN),
        "----",
        "",
    ]
    return "\n".join(lines)


# -- Region tables --------------------------------------------------------------


def render_region_table(
    entries: Sequence[RegionEntry],
    *,
    pages: bool = False,
    width: int | None = None,
) -> str:
    """Render one region table (header plus a row per entry).

    Args:
        entries: The rows, already coalesced if desired.
        pages: Show page counts instead of scaled sizes.
        width: Detail column width; None disables truncation.

    """
    lines = [
        f"{'REGION TYPE':<{_REGION_TYPE_WIDTH}} "
        f"{'START ':>{_ADDRESS_WIDTH}}-{' END':<{_ADDRESS_WIDTH}} "
        f"[{'VSIZE':>{_VSIZE_WIDTH}}{'RSDNT':>{_SIZE_WIDTH}}"
        f"{'DIRTY':>{_SIZE_WIDTH}}{'SWAP':>{_SIZE_WIDTH}}] "
        f"{'PRT/MAX':<{_PRTMAX_WIDTH}} {'SHRMOD':<{_SHRMOD_WIDTH}} "
        f"{'PURGE':<{_PURGE_WIDTH}} REGION DETAIL"
    ]
    for entry in entries:
        vsize, rsdnt, dirty, swap = (
            pages_or_kilobytes(num_bytes, entry.page_size, pages=pages)
            for num_bytes in (
                entry.virtual_size,
                entry.resident_size,
                entry.dirty_size,
                entry.swap_size,
            )
        )
        detail = entry.detail if width is None else truncate_prefix(entry.detail, width)
        prt_max = f"{entry.permissions}/{entry.max_permissions}"
        lines.append(
            f"{entry.region_type:<{_REGION_TYPE_WIDTH}} "
            f"{entry.start_address:>{_ADDRESS_WIDTH}x}-{entry.end_address:<{_ADDRESS_WIDTH}x} "
            f"[{vsize:>{_VSIZE_WIDTH}}{rsdnt:>{_SIZE_WIDTH}}"
            f"{dirty:>{_SIZE_WIDTH}}{swap:>{_SIZE_WIDTH}}] "
            f"{prt_max:<{_PRTMAX_WIDTH}} {entry.share_mode:<{_SHRMOD_WIDTH}} "
            f"{entry.purge_state:<{_PURGE_WIDTH}} {detail}"
        )
    return "\n".join(lines)


def render_regions(report: Report, *, width: int | None = None) -> str:
    """Render the region section: map header, tables and legend."""
    options = report.options
    columns = detail_width(width, wide=options.wide)

    def table(entries: Sequence[RegionEntry]) -> str:
        rows = list(entries) if options.no_coalesce else coalesce(entries)
        return render_region_table(rows, pages=options.pages, width=columns)

    parts = [
        f"Virtual Memory Map of process {report.pid}\n"
        f"Output report format: {REPORT_FORMAT}\n"
        f"VM page size: {report.page_size} bytes\n"
    ]
    if options.interleaved:
        parts.append(
            f"==== regions for process {report.pid}  "
            "(non-writable and writable regions are interleaved)\n"
            f"{table(report.entries)}\n"
        )
    else:
        parts.append(
            f"==== Non-writable regions for process {report.pid}\n"
            f"{table(report.non_writable_entries)}\n"
        )
        parts.append(
            f"==== Writable regions for process {report.pid}\n"
            f"{table(report.writable_entries)}\n"
        )
    parts.append(LEGEND)
    return "\n".join(parts)


# -- Summary --------------------------------------------------------------------


def render_totals(report: Report) -> str:
    """Render the read-only libraries and writable regions lines."""
    ro = report.read_only_libraries
    rw = report.writable
    read_only = (
        "ReadOnly portion of Libraries: "
        f"Total={format_data(ro.virtual_size, '')} "
        f"resident={format_data(ro.resident_size, '')}"
        f"({percent(ro.resident_size, ro.virtual_size)}) "
        f"swapped_out_or_unallocated={format_data(ro.unresident_size, '')}"
        f"({percent(ro.unresident_size, ro.virtual_size)})"
    )
    writable = (
        "Writable regions: "
        f"Total={format_data(rw.virtual_size, '')} "
        f"written={format_data(rw.swap_size, '')}({percent(rw.swap_size, rw.virtual_size)}) "
        f"resident={format_data(rw.resident_size, '')}"
        f"({percent(rw.resident_size, rw.virtual_size)}) "
        f"swapped_out={format_data(rw.swap_size, '')}({percent(rw.swap_size, rw.virtual_size)}) "
        f"unallocated={format_data(rw.unallocated_size, '')}"
        f"({percent(rw.unallocated_size, rw.virtual_size)})"
    )
    return f"{read_only}\n{writable}"


def _sorted_buckets(buckets: dict[str, SummaryBucket]) -> list[SummaryBucket]:
    return [buckets[key] for key in sorted(buckets)]


def render_type_summary(report: Report) -> str:
    """Render the per-region-type summary table."""
    unit = "PAGES" if report.options.pages else "SIZE"
    sw = _SUMMARY_SIZE_WIDTH

    def size(num_bytes: int) -> str:
        return pages_or_kilobytes(num_bytes, report.page_size, pages=report.options.pages)

    lines = [
        f"{'':<{_SUMMARY_TYPE_WIDTH}} {'VIRTUAL':>{sw}} {'RESIDENT':>{sw}} {'DIRTY':>{sw}} "
        f"{'SWAPPED':>{sw}} {'VOLATILE':>{sw}} {'NONVOL':>{sw}} {'EMPTY':>{sw}} "
        f"{'REGION':>{_SUMMARY_COUNT_WIDTH}}",
        f"{'REGION TYPE':<{_SUMMARY_TYPE_WIDTH}} {unit:>{sw}} {unit:>{sw}} {unit:>{sw}} "
        f"{unit:>{sw}} {unit:>{sw}} {unit:>{sw}} {unit:>{sw}} "
        f"{'COUNT':>{_SUMMARY_COUNT_WIDTH}} (non-coalesced)",
        f"{'===========':<{_SUMMARY_TYPE_WIDTH}} {'=======':>{sw}} {'=======':>{sw}} "
        f"{'=====':>{sw}} {'=======':>{sw}} {'========':>{sw}} {'======':>{sw}} "
        f"{'=====':>{sw}} {'=======':>{_SUMMARY_COUNT_WIDTH}}",
    ]
    for bucket in _sorted_buckets(report.by_type):
        row = (
            f"{truncate_suffix(bucket.key, _SUMMARY_TYPE_WIDTH):<{_SUMMARY_TYPE_WIDTH}} "
            f"{size(bucket.virtual_size):>{sw}} {size(bucket.resident_size):>{sw}} "
            f"{size(bucket.dirty_size):>{sw}} {size(bucket.swap_size):>{sw}} "
            f"{size(bucket.volatile_size):>{sw}} {size(bucket.nonvolatile_size):>{sw}} "
            f"{size(bucket.empty_size):>{sw}} {bucket.count:>{_SUMMARY_COUNT_WIDTH}} "
        )
        if bucket.is_malloc:
            row += "see MALLOC ZONE table below"
        lines.append(row.rstrip())
    return "\n".join(lines)


def render_malloc_zones(report: Report) -> str:
    """Render the malloc zone table.

    Allocation counts and fragmentation need allocator introspection the
    memory map does not offer, so those columns are ``???``.
    """
    unit = "PAGES" if report.options.pages else "SIZE"
    zw = _ZONE_SIZE_WIDTH
    fw = _ZONE_FRAG_WIDTH
    cw = _ZONE_COUNT_WIDTH

    def size(num_bytes: int) -> str:
        return pages_or_kilobytes(num_bytes, report.page_size, pages=report.options.pages)

    lines = [
        f"{'':<{_ZONE_NAME_WIDTH}} {'VIRTUAL':>{zw}} {'RESIDENT':>{zw}} {'DIRTY':>{zw}} "
        f"{'SWAPPED':>{zw}} {'ALLOCATION':>{zw}} {'BYTES':>{zw}} {'DIRTY+SWAP':>{zw}} "
        f"{'':>{fw}} {'REGION':>{cw}}",
        f"{'MALLOC ZONE':<{_ZONE_NAME_WIDTH}} {unit:>{zw}} {unit:>{zw}} {unit:>{zw}} "
        f"{unit:>{zw}} {'COUNT':>{zw}} {'ALLOCATED':>{zw}} {'FRAG SIZE':>{zw}} "
        f"{'% FRAG':>{fw}} {'COUNT':>{cw}}",
        f"{'===========':<{_ZONE_NAME_WIDTH}} {'=======':>{zw}} {'=========':>{zw}} "
        f"{'=========':>{zw}} {'=========':>{zw}} {'=========':>{zw}} {'=========':>{zw}} "
        f"{'=========':>{zw}} {'======':>{fw}} {'======':>{cw}}",
    ]
    for zone in _sorted_buckets(report.malloc_zones):
        lines.append(
            f"{truncate_suffix(zone.key, _ZONE_NAME_WIDTH):<{_ZONE_NAME_WIDTH}} "
            f"{size(zone.virtual_size):>{zw}} {size(zone.resident_size):>{zw}} "
            f"{size(zone.dirty_size):>{zw}} {size(zone.swap_size):>{zw}} "
            f"{UNKNOWN:>{zw}} {UNKNOWN:>{zw}} {UNKNOWN:>{zw}} {'??%':>{fw}} "
            f"{zone.count:>{cw}}"
        )
    return "\n".join(lines)


def render_summary(report: Report) -> str:
    """Render the whole summary section."""
    return (
        f"==== Summary for process {report.pid}\n"
        f"{render_totals(report)}\n\n"
        f"{render_type_summary(report)}\n\n"
        f"{render_malloc_zones(report)}\n"
    )


def render_report(
    report: Report,
    host: HostInfo,
    *,
    width: int | None = None,
    now: datetime | None = None,
) -> str:
    """Render the complete vmmap report.

    Args:
        report: The aggregated report data.
        host: Source of process metadata for the overview block.
        width: Terminal width used to truncate region details; None
            (not a terminal) disables truncation.
        now: Report timestamp; defaults to the current local time.

    """
    parts = [render_overview(report, host, now=now)]
    if not report.options.summary:
        parts.append(render_regions(report, width=width))
    parts.append(render_summary(report))
    return "\n".join(parts)

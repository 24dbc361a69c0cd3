"""Region classifier — raw Linux records into vmmap-style entries.

Classification runs in two explicit stages:

1. ``classify`` normalizes one ``RawRegion`` using only its own data:
   sizes (attribute first, address arithmetic as fallback), current and
   maximum protection, and a region type guessed from the description.
2. ``refine_file_mappings`` looks at the whole entry set.  Linux has no
   equivalent of a Mach-O ``__TEXT`` segment flag, so a mapped file is
   split into code and data by co-residence: if *any* mapping of a path
   is executable, its executable mappings become ``__TEXT`` and the rest
   ``__DATA``.  This is a heuristic and can mislabel a data-only mapping
   of a library that is also mapped executable elsewhere.

Both stages return new values; nothing is mutated in place.
"""

from __future__ import annotations

import dataclasses
import os
import re
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from py_vmmap.config import DEFAULT_SYSTEM_PREFIX
from py_vmmap.units import parse_size

if TYPE_CHECKING:
    from collections.abc import Iterable

    from py_vmmap.maps.parser import RawRegion

UNKNOWN_PERMISSIONS = "???"
HEAP_MARKER = "HEAP"
STACK_MARKER = "[stack]"

READ_INDEX = 0
WRITE_INDEX = 1
EXECUTE_INDEX = 2

_THREAD_STACK_RE = re.compile(r"^\[stack:(\d+)\]$")

# VmFlags tokens that grant each maximum-protection slot.
_MAX_PERMISSION_FLAGS: tuple[tuple[int, str, str], ...] = (
    (READ_INDEX, "mr", "r"),
    (WRITE_INDEX, "mw", "w"),
    (EXECUTE_INDEX, "me", "x"),
)


class RegionType(StrEnum):
    """Region type labels, named the way vmmap names them."""

    VM_ALLOCATE = "VM_ALLOCATE"
    MAPPED_FILE = "mapped file"
    TEXT = "__TEXT"
    DATA = "__DATA"
    MALLOC = "MALLOC"
    STACK = "Stack"


@dataclass(frozen=True)
class RegionEntry:
    """One normalized memory region, ready for aggregation and display.

    ``region_type`` is a plain string because allocator regions may carry
    a zone suffix (``MALLOC_TINY``); the well-known values are in
    ``RegionType``.
    """

    region_type: str
    start_address: int
    end_address: int
    page_size: int
    virtual_size: int
    resident_size: int
    dirty_size: int
    swap_size: int
    permissions: str
    max_permissions: str
    share_mode: str = "NUL"
    purge_state: str = ""
    detail: str = ""

    @property
    def is_malloc(self) -> bool:
        """Return True for allocator regions (any ``MALLOC*`` type)."""
        return self.region_type.startswith(RegionType.MALLOC)

    @property
    def is_writable(self) -> bool:
        """Return True if the current protection grants write.

        An unknown protection (``???``) counts as not writable.
        """
        return _has_permission(self.permissions, WRITE_INDEX, "w")

    @property
    def is_executable(self) -> bool:
        """Return True if the current protection grants execute."""
        return _has_permission(self.permissions, EXECUTE_INDEX, "x")


def _has_permission(permissions: str, index: int, flag: str) -> bool:
    if permissions == UNKNOWN_PERMISSIONS or len(permissions) <= index:
        return False
    return permissions[index] == flag


def host_page_size() -> int:
    """Return the host's native page size in bytes."""
    return os.sysconf("SC_PAGE_SIZE")


def resolve_permissions(permissions: str) -> str:
    """Return the 3-character current protection, or ``???``."""
    if not permissions:
        return UNKNOWN_PERMISSIONS
    return permissions[:3]


def resolve_max_permissions(vm_flags: str | None) -> str:
    """Derive the maximum protection from a ``VmFlags`` value.

    ``mr``/``mw``/``me`` (may read / write / execute) set the matching
    slot; other flags are ignored.  A missing attribute means the
    maximum protection is unknown.
    """
    if vm_flags is None:
        return UNKNOWN_PERMISSIONS
    flags = set(vm_flags.split())
    slots = ["-", "-", "-"]
    for index, token, letter in _MAX_PERMISSION_FLAGS:
        if token in flags:
            slots[index] = letter
    return "".join(slots)


def _size_attribute(attributes: dict[str, str], name: str) -> int | None:
    value = attributes.get(name)
    return parse_size(value) if value is not None else None


def classify(
    raw: RawRegion,
    *,
    page_size: int | None = None,
    system_prefix: str = DEFAULT_SYSTEM_PREFIX,
) -> RegionEntry:
    """Normalize one raw region record (first classification stage).

    Args:
        raw: The parsed record.
        page_size: Page size to use when the record has no
            ``KernelPageSize`` attribute; defaults to the host's.
        system_prefix: Prefix prepended to the paths of file mappings.

    Returns:
        The normalized entry.  File mappings are labelled
        ``mapped file``; ``refine_file_mappings`` may relabel them.

    Raises:
        MalformedSizeError: If a size attribute has an unknown unit.

    """
    attrs = raw.attributes

    kernel_page_size = _size_attribute(attrs, "KernelPageSize")
    if kernel_page_size is not None:
        resolved_page_size = kernel_page_size
    elif page_size is not None:
        resolved_page_size = page_size
    else:
        resolved_page_size = host_page_size()

    virtual_size = _size_attribute(attrs, "Size")
    if virtual_size is None:
        virtual_size = raw.end - raw.start

    resident_size = _size_attribute(attrs, "Rss")
    if resident_size is None:
        # Not a measurement: without Rss the whole region counts as resident.
        resident_size = virtual_size

    dirty_size = (_size_attribute(attrs, "Shared_Dirty") or 0) + (
        _size_attribute(attrs, "Private_Dirty") or 0
    )
    swap_size = _size_attribute(attrs, "Swap") or 0

    region_type, detail = _classify_description(raw.description, system_prefix)

    return RegionEntry(
        region_type=region_type,
        start_address=raw.start,
        end_address=raw.end,
        page_size=resolved_page_size,
        virtual_size=virtual_size,
        resident_size=resident_size,
        dirty_size=dirty_size,
        swap_size=swap_size,
        permissions=resolve_permissions(raw.permissions),
        max_permissions=resolve_max_permissions(attrs.get("VmFlags")),
        detail=detail,
    )


def _classify_description(description: str, system_prefix: str) -> tuple[str, str]:
    """Return ``(region_type, detail)`` for a region description."""
    if "/" in description:
        return RegionType.MAPPED_FILE, system_prefix + description
    if description == HEAP_MARKER:
        return RegionType.MALLOC, description
    if description == STACK_MARKER:
        return RegionType.STACK, description

    thread_stack = _THREAD_STACK_RE.match(description)
    if thread_stack is not None:
        return RegionType.STACK, f"thread {int(thread_stack.group(1))}"

    return RegionType.VM_ALLOCATE, description


def executable_paths(entries: Iterable[RegionEntry]) -> frozenset[str]:
    """Return the paths of file mappings seen with execute permission."""
    return frozenset(
        entry.detail
        for entry in entries
        if entry.region_type == RegionType.MAPPED_FILE and entry.is_executable
    )


def refine_file_mappings(entries: Iterable[RegionEntry]) -> list[RegionEntry]:
    """Split file mappings into ``__TEXT`` and ``__DATA`` (second stage).

    Every ``mapped file`` entry whose path has an executable mapping
    somewhere in *entries* becomes ``__TEXT`` when itself executable and
    ``__DATA`` otherwise.  Paths never mapped executable keep the
    ``mapped file`` label.

    Returns:
        A new list in the same order as *entries*.

    """
    snapshot = list(entries)
    code_paths = executable_paths(snapshot)

    refined: list[RegionEntry] = []
    for entry in snapshot:
        if entry.region_type == RegionType.MAPPED_FILE and entry.detail in code_paths:
            new_type = RegionType.TEXT if entry.is_executable else RegionType.DATA
            entry = dataclasses.replace(entry, region_type=new_type)  # noqa: PLW2901
        refined.append(entry)
    return refined


def classify_regions(
    raws: Iterable[RawRegion],
    *,
    page_size: int | None = None,
    system_prefix: str = DEFAULT_SYSTEM_PREFIX,
) -> list[RegionEntry]:
    """Run both classification stages over a whole memory map."""
    if page_size is None:
        page_size = host_page_size()
    first_pass = [classify(raw, page_size=page_size, system_prefix=system_prefix) for raw in raws]
    return refine_file_mappings(first_pass)

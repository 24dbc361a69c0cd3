"""Memory-map parser — ``/proc/<pid>/smaps`` text into raw region records.

Linux describes a process's address space one region at a time.  Each
region starts with a fixed-format header line::

    00400000-0040b000 r-xp 00000000 08:01 1315       /bin/cat
    start    end      perm offset   dev   inode      description

``smaps`` follows every header with ``Label: value`` detail lines
(``Size:``, ``Rss:``, ``VmFlags:``); ``maps`` has headers only.  The
parser folds detail lines into the most recent header's attribute map
and skips anything it does not recognize.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable

HEADER_RE = re.compile(
    r"^([0-9a-fA-F]+)-([0-9a-fA-F]+)\s+"
    r"([rwxsp-]{4})\s+"
    r"([0-9a-fA-F]+)\s+"
    r"([0-9a-fA-F]+):([0-9a-fA-F]+)\s+"
    r"(\d+)"
    r"(?:\s+(.*))?\s*$"
)

ATTRIBUTE_RE = re.compile(r"^\s*([^:\s][^:]*):(?:\s+(.*?))?\s*$")


@dataclass
class RawRegion:
    """One region exactly as the memory-map source describes it."""

    start: int
    end: int
    permissions: str
    offset: int = 0
    device: str = "00:00"
    inode: int = 0
    description: str = ""
    attributes: dict[str, str] = field(default_factory=dict)  # pyright: ignore[reportUnknownVariableType]


def parse_header(line: str) -> RawRegion | None:
    """Parse a region header line, or return None if *line* is not one."""
    match = HEADER_RE.match(line)
    if match is None:
        return None
    start, end, perms, offset, major, minor, inode, rest = match.groups()
    return RawRegion(
        start=int(start, 16),
        end=int(end, 16),
        permissions=perms,
        offset=int(offset, 16),
        device=f"{major}:{minor}",
        inode=int(inode),
        description=(rest or "").strip(),
    )


def parse_attribute(line: str) -> tuple[str, str] | None:
    """Split a ``Label: value`` detail line, or return None."""
    match = ATTRIBUTE_RE.match(line)
    if match is None:
        return None
    return match.group(1).strip(), match.group(2) or ""


def parse_regions(lines: Iterable[str]) -> list[RawRegion]:
    """Parse memory-map text into raw region records in source order.

    Works on both the detailed (``smaps``) and minimal (``maps``) forms.
    Detail lines seen before the first header are dropped, and lines that
    are neither headers nor detail lines are skipped.

    Args:
        lines: The source text, one line per item (newlines optional).

    Returns:
        One ``RawRegion`` per header line.

    """
    regions: list[RawRegion] = []
    current: RawRegion | None = None

    for raw_line in lines:
        line = raw_line.rstrip("\r\n")

        header = parse_header(line)
        if header is not None:
            if current is not None:
                regions.append(current)
            current = header
            continue

        if current is None:
            continue

        attribute = parse_attribute(line)
        if attribute is not None:
            label, value = attribute
            current.attributes[label] = value

    if current is not None:
        regions.append(current)
    return regions


def parse_text(text: str) -> list[RawRegion]:
    """Parse a whole memory-map file held in a string."""
    return parse_regions(text.splitlines())

"""Size and unit helpers.

Memory-map sources report sizes as ``<integer> <unit>`` strings
(``Size:  132 kB``); reports show them either as page counts or as a
compact scaled figure (``528K``, ``12M``, ``3G``).  Everything here is a
pure function over integers and strings.
"""

import re

from py_vmmap.errors import MalformedSizeError

KIB = 1024
MIB = 1024 * KIB
GIB = 1024 * MIB

# Multipliers for the unit suffixes the kernel writes.
_UNIT_MULTIPLIERS: dict[str, int] = {
    "kB": KIB,
    "MB": MIB,
    "GB": GIB,
}

# Stock vmmap keeps kilobytes up to four digits before switching to M.
_KILOBYTE_LIMIT = 9999 * KIB

_SIZE_RE = re.compile(r"^\s*(\d+)\s*(\S*)\s*$")


def parse_size(value: str) -> int:
    """Parse a ``<integer> <unit>`` size string into bytes.

    Args:
        value: The raw attribute value, e.g. ``"4 kB"``.

    Returns:
        The size in bytes.

    Raises:
        MalformedSizeError: If the number or the unit is not recognized.

    """
    match = _SIZE_RE.match(value)
    if match is None or match.group(2) not in _UNIT_MULTIPLIERS:
        msg = f"Failed to parse size: {value}"
        raise MalformedSizeError(msg)
    return int(match.group(1)) * _UNIT_MULTIPLIERS[match.group(2)]


def bytes_to_pages(num_bytes: int, page_size: int) -> int:
    """Return how many whole pages *num_bytes* covers."""
    return num_bytes // page_size


def format_data(num_bytes: int, sep: str = " ") -> str:
    """Scale a byte count to ``K``, ``M`` or ``G`` (integer division).

    Args:
        num_bytes: The byte count to format.
        sep: Text placed between the number and the unit letter.

    """
    if num_bytes < _KILOBYTE_LIMIT:
        return f"{num_bytes // KIB}{sep}K"
    if num_bytes < GIB:
        return f"{num_bytes // MIB}{sep}M"
    return f"{num_bytes // GIB}{sep}G"


def percent(part: int, whole: int) -> str:
    """Format ``part / whole`` as a rounded percentage.

    A zero *whole* yields ``0%`` rather than dividing by zero.
    """
    if whole == 0:
        return "0%"
    return f"{round(part / whole * 100)}%"


def pages_or_kilobytes(num_bytes: int, page_size: int, *, pages: bool) -> str:
    """Format a size as a page count or as a scaled byte figure."""
    if pages:
        return str(bytes_to_pages(num_bytes, page_size))
    return format_data(num_bytes)

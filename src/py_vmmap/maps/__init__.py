"""Memory-map subsystem — reading, parsing and classifying regions.

Re-exports public symbols so callers can write::

    from py_vmmap.maps import parse_text, classify_regions
"""

from py_vmmap.maps.classifier import (
    UNKNOWN_PERMISSIONS,
    RegionEntry,
    RegionType,
    classify,
    classify_regions,
    executable_paths,
    host_page_size,
    refine_file_mappings,
    resolve_max_permissions,
    resolve_permissions,
)
from py_vmmap.maps.parser import RawRegion, parse_regions, parse_text
from py_vmmap.maps.source import (
    AttemptStatus,
    SourceAttempt,
    SourceKind,
    SourceText,
    read_memory_map,
)

__all__ = [
    "UNKNOWN_PERMISSIONS",
    "AttemptStatus",
    "RawRegion",
    "RegionEntry",
    "RegionType",
    "SourceAttempt",
    "SourceKind",
    "SourceText",
    "classify",
    "classify_regions",
    "executable_paths",
    "host_page_size",
    "parse_regions",
    "parse_text",
    "read_memory_map",
    "refine_file_mappings",
    "resolve_max_permissions",
    "resolve_permissions",
]

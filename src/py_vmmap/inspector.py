"""Inspector — one process's memory map, read, parsed and classified.

The inspector is the pipeline the front ends call::

    read_memory_map -> parse_text -> classify_regions

It reads the whole source before classifying anything, so a request
either produces the complete entry set or fails.  Every step is logged
to the inspector's ``Logger``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from py_vmmap.config import VmmapConfig
from py_vmmap.logging import Logger
from py_vmmap.maps.classifier import RegionType, classify_regions, host_page_size
from py_vmmap.maps.parser import parse_text
from py_vmmap.maps.source import AttemptStatus, read_memory_map

if TYPE_CHECKING:
    from py_vmmap.maps.classifier import RegionEntry

_SOURCE = "inspector"


class Inspector:
    """Produce normalized region entries for a process."""

    def __init__(
        self,
        *,
        config: VmmapConfig | None = None,
        logger: Logger | None = None,
    ) -> None:
        """Create an inspector.

        Args:
            config: Host settings; defaults to ``VmmapConfig()``.
            logger: Where to record inspection events; a fresh logger
                is created if omitted.

        """
        self._config = config if config is not None else VmmapConfig()
        self._logger = logger if logger is not None else Logger()

    @property
    def config(self) -> VmmapConfig:
        """Return the host settings in use."""
        return self._config

    @property
    def logger(self) -> Logger:
        """Return the inspection log."""
        return self._logger

    @property
    def page_size(self) -> int:
        """Return the fallback page size (configured or the host's)."""
        if self._config.page_size is not None:
            return self._config.page_size
        return host_page_size()

    def inspect(self, pid: int) -> list[RegionEntry]:
        """Read and classify the memory map of *pid*.

        Raises:
            TargetUnavailableError: If the process has no readable map.
            InsufficientPrivilegeError: If the map may not be read.
            MalformedSizeError: If a size attribute cannot be parsed.

        """
        source = read_memory_map(pid, proc_root=self._config.proc_root)
        for attempt in source.attempts:
            if attempt.status is AttemptStatus.MISSING:
                self._logger.warning(
                    f"Failed to open {attempt.path}; falling back", source="source"
                )
        self._logger.info(f"Reading {source.path}", source="source")
        return self.inspect_text(source.text)

    def inspect_text(self, text: str) -> list[RegionEntry]:
        """Parse and classify memory-map text already in memory.

        Raises:
            MalformedSizeError: If a size attribute cannot be parsed.

        """
        raws = parse_text(text)
        self._logger.debug(f"Parsed {len(raws)} regions", source="parser")

        entries = classify_regions(
            raws, page_size=self.page_size, system_prefix=self._config.system_prefix
        )

        split = sum(
            1
            for entry in entries
            if entry.region_type in (RegionType.TEXT, RegionType.DATA)
        )
        self._logger.debug(
            f"Split {split} file mappings into __TEXT/__DATA", source="classifier"
        )
        self._logger.info(f"Classified {len(entries)} regions", source=_SOURCE)
        return entries

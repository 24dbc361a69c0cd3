"""Host information — process metadata and OS version for the report header.

The report's overview block names the process, its executable, its
parent and when it was launched, plus the OS version.  None of that is
part of the memory map itself, so the renderer receives it through the
``HostInfo`` interface.  ``ProcHostInfo`` answers from Linux ``/proc``;
tests pass a stub.
"""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path
from typing import Protocol

from py_vmmap.config import DEFAULT_PROC_ROOT
from py_vmmap.errors import HostInfoError

# Fields of /proc/<pid>/stat counted after the ")" closing the command name
# (index 0 is the state letter).
_STAT_PPID_INDEX = 1
_STAT_STARTTIME_INDEX = 19


class HostInfo(Protocol):
    """Lookups the renderer needs that the memory map cannot answer."""

    def process_name(self, pid: int) -> str:
        """Return the short command name of *pid*."""
        ...

    def process_path(self, pid: int) -> str:
        """Return the executable path of *pid*."""
        ...

    def parent_pid(self, pid: int) -> int:
        """Return the parent process id of *pid*."""
        ...

    def launch_time(self, pid: int) -> datetime:
        """Return when *pid* was started."""
        ...

    def os_version(self) -> str:
        """Return a human-readable OS version string."""
        ...


class ProcHostInfo:
    """Answer host queries from a Linux ``/proc`` tree."""

    def __init__(self, *, proc_root: Path = DEFAULT_PROC_ROOT) -> None:
        """Create a host-info reader.

        Args:
            proc_root: The proc tree to read from.

        """
        self._proc_root = proc_root

    @property
    def proc_root(self) -> Path:
        """Return the proc tree this reader uses."""
        return self._proc_root

    def process_name(self, pid: int) -> str:
        """Return the command name from ``<pid>/comm``."""
        return self._read(Path(str(pid), "comm")).strip()

    def process_path(self, pid: int) -> str:
        """Resolve the ``<pid>/exe`` link.

        Raises:
            HostInfoError: If the link cannot be read.

        """
        link = self._proc_root / str(pid) / "exe"
        try:
            return os.readlink(link)
        except OSError as e:
            msg = f"failed to get process path for pid {pid}: {e}"
            raise HostInfoError(msg) from e

    def parent_pid(self, pid: int) -> int:
        """Return the parent pid from ``<pid>/stat``."""
        return self._stat_int(pid, _STAT_PPID_INDEX)

    def launch_time(self, pid: int) -> datetime:
        """Return the start time from ``<pid>/stat`` and the boot time.

        Raises:
            HostInfoError: If the boot time or start time is unavailable.

        """
        start_ticks = self._stat_int(pid, _STAT_STARTTIME_INDEX)
        ticks_per_second = os.sysconf("SC_CLK_TCK")
        started = self._boot_time() + start_ticks / ticks_per_second
        return datetime.fromtimestamp(started, tz=UTC)

    def os_version(self) -> str:
        """Return e.g. ``Linux 6.1.0 (#1 SMP PREEMPT_DYNAMIC)``.

        The build part is omitted when the kernel does not expose it.
        """
        os_type = self._read(Path("sys", "kernel", "ostype")).strip()
        release = self._read(Path("sys", "kernel", "osrelease")).strip()
        try:
            build = self._read(Path("sys", "kernel", "version")).strip()
        except HostInfoError:
            return f"{os_type} {release}"
        return f"{os_type} {release} ({build})"

    # -- Helpers ---------------------------------------------------------------

    def _read(self, relative: Path) -> str:
        """Read a file under the proc root.

        Raises:
            HostInfoError: If the file cannot be read.

        """
        path = self._proc_root / relative
        try:
            return path.read_text()
        except OSError as e:
            msg = f"cannot read {path}: {e}"
            raise HostInfoError(msg) from e

    def _stat_fields(self, pid: int) -> list[str]:
        """Return the ``<pid>/stat`` fields that follow the command name.

        The command name is wrapped in parentheses and may itself contain
        spaces or parentheses, so split after the last ``)``.
        """
        stat = self._read(Path(str(pid), "stat"))
        close = stat.rfind(")")
        if close == -1:
            msg = f"malformed stat for pid {pid}"
            raise HostInfoError(msg)
        return stat[close + 1 :].split()

    def _stat_int(self, pid: int, index: int) -> int:
        """Return one numeric ``<pid>/stat`` field.

        Raises:
            HostInfoError: If the field is absent or not an integer.

        """
        fields = self._stat_fields(pid)
        try:
            return int(fields[index])
        except (IndexError, ValueError) as e:
            msg = f"malformed stat for pid {pid}: field {index}"
            raise HostInfoError(msg) from e

    def _boot_time(self) -> int:
        """Return the boot time (seconds since the epoch) from ``stat``."""
        for line in self._read(Path("stat")).splitlines():
            fields = line.split()
            if fields[:1] == ["btime"]:
                try:
                    return int(fields[1])
                except (IndexError, ValueError) as e:
                    msg = f"malformed boot time in stat: {line!r}"
                    raise HostInfoError(msg) from e
        msg = "boot time not found in stat"
        raise HostInfoError(msg)

"""Memory-map source — find and read a process's map pseudo-file.

``/proc/<pid>/smaps`` carries per-region sizes and flags, but it is not
always present (older kernels, restricted containers).  The reader then
falls back to ``/proc/<pid>/maps``, which has header lines only, and the
classifier fills the gaps from address arithmetic.

A missing ``smaps`` is an *expected* absence, not an error, so each read
attempt returns a ``SourceAttempt`` saying whether the next source should
be tried.  Only the fatal outcomes (nothing readable, or reading is not
permitted) are raised to the caller.
"""

from __future__ import annotations

import errno
import os
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from py_vmmap.config import DEFAULT_PROC_ROOT
from py_vmmap.errors import InsufficientPrivilegeError, TargetUnavailableError


class SourceKind(StrEnum):
    """Which pseudo-file a memory map was read from."""

    SMAPS = "smaps"
    MAPS = "maps"


class AttemptStatus(StrEnum):
    """Outcome of reading one candidate source."""

    OK = "ok"
    MISSING = "missing"  # recoverable: try the next source
    DENIED = "denied"  # fatal: the caller lacks privileges


@dataclass(frozen=True)
class SourceAttempt:
    """Result of trying to read one candidate source file."""

    kind: SourceKind
    path: Path
    status: AttemptStatus
    text: str = ""
    reason: str = ""

    @property
    def recoverable(self) -> bool:
        """Return True if the next candidate source should be tried."""
        return self.status is AttemptStatus.MISSING


@dataclass(frozen=True)
class SourceText:
    """A successfully read memory map."""

    pid: int
    kind: SourceKind
    path: Path
    text: str
    attempts: tuple[SourceAttempt, ...] = ()

    @property
    def detailed(self) -> bool:
        """Return True if the text carries per-region detail lines."""
        return self.kind is SourceKind.SMAPS


# Candidate sources, most detailed first.
SOURCE_ORDER: tuple[SourceKind, ...] = (SourceKind.SMAPS, SourceKind.MAPS)


def probe_process(pid: int) -> None:
    """Check that *pid* exists and may be examined.

    Uses ``getpgid`` so a vanished process and a forbidden one produce
    different errors.

    Raises:
        TargetUnavailableError: If the process does not exist.
        InsufficientPrivilegeError: If the caller may not examine it.

    """
    try:
        os.getpgid(pid)
    except ProcessLookupError as e:
        raise TargetUnavailableError(pid) from e
    except PermissionError as e:
        raise InsufficientPrivilegeError(pid) from e
    except OSError as e:
        if e.errno == errno.EINVAL:
            raise TargetUnavailableError(pid) from e
        raise


def try_source(path: Path, kind: SourceKind) -> SourceAttempt:
    """Read one candidate source without raising for expected failures."""
    try:
        text = path.read_text(errors="replace")
    except PermissionError as e:
        return SourceAttempt(kind=kind, path=path, status=AttemptStatus.DENIED, reason=str(e))
    except OSError as e:
        return SourceAttempt(kind=kind, path=path, status=AttemptStatus.MISSING, reason=str(e))
    return SourceAttempt(kind=kind, path=path, status=AttemptStatus.OK, text=text)


def read_memory_map(
    pid: int,
    *,
    proc_root: Path = DEFAULT_PROC_ROOT,
    probe: bool | None = None,
) -> SourceText:
    """Read the most detailed memory map available for *pid*.

    Args:
        pid: The target process id.
        proc_root: Directory containing ``<pid>/smaps`` and ``<pid>/maps``.
        probe: Whether to check the live process first.  Defaults to
            probing only when *proc_root* is the real ``/proc``.

    Returns:
        The text of the first readable source, with the attempts made.

    Raises:
        TargetUnavailableError: If no source can be read.
        InsufficientPrivilegeError: If a source exists but is unreadable.

    """
    if probe is None:
        probe = proc_root == DEFAULT_PROC_ROOT
    if probe:
        probe_process(pid)

    process_dir = proc_root / str(pid)
    attempts: list[SourceAttempt] = []
    for kind in SOURCE_ORDER:
        attempt = try_source(process_dir / kind.value, kind)
        attempts.append(attempt)
        if attempt.status is AttemptStatus.OK:
            return SourceText(
                pid=pid,
                kind=kind,
                path=attempt.path,
                text=attempt.text,
                attempts=tuple(attempts),
            )
        # A refused smaps is final; maps carries the same access check.
        if not attempt.recoverable:
            raise InsufficientPrivilegeError(pid)

    raise TargetUnavailableError(pid)

"""Command-line front end — the ``vmmap`` console entry point.

Usage::

    vmmap [-wide] [-pages] [-interleaved] [-summary] [-noCoalesce] <pid>

Options use vmmap's single-dash long spelling.  Parsing is a plain loop
over ``argv`` producing a ``VmmapOptions``; ``main`` wires the inspector,
the report facade and the renderer together and prints the result.

Set ``VMMAP_DEBUG`` to dump the inspection log to stderr.
"""

from __future__ import annotations

import dataclasses
import os
import shutil
import sys
from typing import TYPE_CHECKING

from py_vmmap.config import config_from_env
from py_vmmap.errors import UsageError, VmmapError
from py_vmmap.hostinfo import ProcHostInfo
from py_vmmap.inspector import Inspector
from py_vmmap.logging import Logger, LogLevel
from py_vmmap.render import render_report
from py_vmmap.report import VmmapOptions, build_report

if TYPE_CHECKING:
    from collections.abc import Sequence

HELP_TEXT = "\n".join(
    [
        "vmmap: Gives you an indication of the VM used by a process",
        "Usage: vmmap [-wide] [-pages] [-interleaved] [-submap] [-allSplitLibs] "
        "[-noCoalesce] [-summary] [-stacks] [-forkCorpse] <pid>",
        "",
        *(
            f"\t{name:<15}{description}"
            for name, description in (
                ("-w/-wide", "print wide output"),
                ("-v/-verbose", "equivalent to -w -submap -allSplitLibs -noCoalesce"),
                ("-pages", "print region sizes in page counts rather than kilobytes"),
                (
                    "-interleaved",
                    "print all regions in order, rather than non-writable then writable",
                ),
                ("-submap", "print info about submaps"),
                (
                    "-allSplitLibs",
                    "print info about all system split libraries, "
                    "even those not loaded by this process",
                ),
                (
                    "-noCoalesce",
                    "do not coalesce adjacent identical regions "
                    "(default is to coalesce for more concise output)",
                ),
                ("-summary", "only print overall summary, not individual regions"),
                (
                    "-stacks",
                    "show region allocation backtraces if target process uses "
                    "MallocStackLogging (implies -interleaved -noCoalesce)",
                ),
                ("-fullStacks", "show region allocation backtraces with one line per frame"),
                ("-forkCorpse", "generate a corpse fork from process and run vmmap on it"),
            )
        ),
    ]
)

# Each flag maps to the option fields it switches on.
_FLAGS: dict[str, tuple[str, ...]] = {
    "-w": ("wide",),
    "-wide": ("wide",),
    "-v": ("wide", "submap", "all_split_libs", "no_coalesce"),
    "-verbose": ("wide", "submap", "all_split_libs", "no_coalesce"),
    "-pages": ("pages",),
    "-interleaved": ("interleaved",),
    "-submap": ("submap",),
    "-allSplitLibs": ("all_split_libs",),
    "-noCoalesce": ("no_coalesce",),
    "-summary": ("summary",),
    "-stacks": ("stacks", "interleaved", "no_coalesce"),
    "-fullStacks": ("full_stacks", "stacks", "interleaved", "no_coalesce"),
    "-forkCorpse": ("fork_corpse",),
}

_HELP_FLAGS = frozenset({"-h", "-help", "--help"})


@dataclasses.dataclass(frozen=True)
class Invocation:
    """A parsed command line."""

    pid: int | None
    options: VmmapOptions
    show_help: bool = False


def parse_args(argv: Sequence[str]) -> Invocation:
    """Parse vmmap's command-line arguments.

    Args:
        argv: Arguments without the program name.

    Raises:
        UsageError: On an unknown option, a non-numeric process, or a
            missing process.

    """
    enabled: set[str] = set()
    pid: int | None = None

    for arg in argv:
        if arg in _HELP_FLAGS:
            return Invocation(pid=pid, options=VmmapOptions(), show_help=True)
        if arg in _FLAGS:
            enabled.update(_FLAGS[arg])
        elif not arg.startswith("-"):
            if not arg.isdecimal():
                msg = "[invalid usage]: Only PID is supported at the moment."
                raise UsageError(msg)
            pid = int(arg)
        else:
            msg = f"[invalid usage]: unrecognized option '{arg}'"
            raise UsageError(msg)

    if pid is None:
        msg = "[invalid usage]: no process specified"
        raise UsageError(msg)

    return Invocation(pid=pid, options=VmmapOptions(**dict.fromkeys(enabled, True)))


def terminal_width(*, wide: bool) -> int | None:
    """Return the terminal width when stdout is a terminal, else None."""
    if wide or not sys.stdout.isatty():
        return None
    return shutil.get_terminal_size().columns


def _dump_log(logger: Logger) -> None:
    for entry in logger.filter(min_level=LogLevel.DEBUG):
        print(entry, file=sys.stderr)  # noqa: T201


def run(argv: Sequence[str]) -> int:
    """Run vmmap and return the process exit status."""
    logger = Logger()
    debug = "VMMAP_DEBUG" in os.environ
    try:
        invocation = parse_args(argv)
        if invocation.show_help or invocation.pid is None:
            print(HELP_TEXT)  # noqa: T201
            return 0

        config = config_from_env(os.environ)
        inspector = Inspector(config=config, logger=logger)
        entries = inspector.inspect(invocation.pid)
        report = build_report(entries, invocation.options, pid=invocation.pid)
        host = ProcHostInfo(proc_root=config.proc_root)
        text = render_report(report, host, width=terminal_width(wide=invocation.options.wide))
    except UsageError as e:
        print(e, file=sys.stderr)  # noqa: T201
        print(HELP_TEXT, file=sys.stderr)  # noqa: T201
        return 1
    except VmmapError as e:
        logger.error(str(e), source="cli")
        if debug:
            _dump_log(logger)
        print(f"vmmap: {e}", file=sys.stderr)  # noqa: T201
        return 1

    if debug:
        _dump_log(logger)
    print(text)  # noqa: T201
    return 0


def main() -> None:
    """Console entry point for ``vmmap``."""
    sys.exit(run(sys.argv[1:]))

"""Error hierarchy for vmmap inspections.

Every fatal condition of an inspection request surfaces as a subclass of
``VmmapError`` carrying a human-readable cause.  Callers that only want
to report the failure can catch the base class; callers that react
differently (the web UI maps them to HTTP status codes) catch the
specific kinds.

Unrecognized lines in a memory-map source are *not* errors; the parser
skips them.
"""


class VmmapError(Exception):
    """Raise when an inspection request cannot complete."""


class TargetUnavailableError(VmmapError):
    """Raise when the target process is gone or has no readable map."""

    def __init__(self, pid: int) -> None:
        """Build the message for *pid*."""
        self.pid = pid
        msg = (
            f"vmmap cannot examine process {pid} because it no longer appears to be running."
        )
        super().__init__(msg)


class InsufficientPrivilegeError(VmmapError):
    """Raise when the map exists but the caller may not read it."""

    def __init__(self, pid: int) -> None:
        """Build the message for *pid*."""
        self.pid = pid
        msg = (
            f"vmmap cannot examine process {pid} because you do not have "
            "appropriate privileges to examine it; try running with `sudo`."
        )
        super().__init__(msg)


class MalformedSizeError(VmmapError):
    """Raise when a size attribute has an unparseable value or unit."""


class ReportError(VmmapError):
    """Raise when a report cannot be built from the given entries."""


class HostInfoError(VmmapError):
    """Raise when process or host metadata cannot be looked up."""


class ConfigError(VmmapError):
    """Raise when a configuration file cannot be loaded."""


class UsageError(VmmapError):
    """Raise when the command line cannot be understood."""

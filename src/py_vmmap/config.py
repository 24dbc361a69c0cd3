"""Inspection configuration — where to look and how to present paths.

The defaults describe a Darling-style host: memory maps live under
``/proc`` and files that belong to the macOS side of the system are shown
under ``/Volumes/SystemRoot``.  A JSON file can override any of them::

    {"proc_root": "/proc", "system_prefix": "/Volumes/SystemRoot", "page_size": 16384}

Environment variables take precedence over the file:

- ``VMMAP_CONFIG`` — path of the JSON file to load.
- ``VMMAP_PROC_ROOT`` — alternative proc root (useful for snapshots).
- ``VMMAP_SYSTEM_PREFIX`` — prefix prepended to file-mapping paths.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from py_vmmap.errors import ConfigError

if TYPE_CHECKING:
    from collections.abc import Mapping

DEFAULT_PROC_ROOT = Path("/proc")
DEFAULT_SYSTEM_PREFIX = "/Volumes/SystemRoot"


@dataclass(frozen=True)
class VmmapConfig:
    """Host-level settings for an inspection."""

    proc_root: Path = DEFAULT_PROC_ROOT
    """Directory holding the per-process ``<pid>/smaps`` files."""

    system_prefix: str = DEFAULT_SYSTEM_PREFIX
    """Prefix that maps host paths to the paths a native viewer shows."""

    page_size: int | None = None
    """Page size override; ``None`` means ask the host."""


def load_config(path: Path) -> VmmapConfig:
    """Load a configuration from a JSON file.

    Missing keys fall back to the defaults.

    Raises:
        ConfigError: If the file cannot be read, is not a JSON object or
            holds a value of the wrong type.

    """
    try:
        data = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        msg = f"Cannot load configuration {path}: {e}"
        raise ConfigError(msg) from e

    if not isinstance(data, dict):
        msg = f"Configuration {path} must be a JSON object"
        raise ConfigError(msg)

    proc_root = data.get("proc_root", str(DEFAULT_PROC_ROOT))
    system_prefix = data.get("system_prefix", DEFAULT_SYSTEM_PREFIX)
    for key, value in (("proc_root", proc_root), ("system_prefix", system_prefix)):
        if not isinstance(value, str):
            msg = f"Invalid {key} in {path}: {value!r}"
            raise ConfigError(msg)

    page_size = data.get("page_size")
    if page_size is not None and (
        not isinstance(page_size, int) or isinstance(page_size, bool) or page_size <= 0
    ):
        msg = f"Invalid page_size in {path}: {page_size!r}"
        raise ConfigError(msg)

    return VmmapConfig(
        proc_root=Path(proc_root),
        system_prefix=system_prefix,
        page_size=page_size,
    )


def config_from_env(environ: Mapping[str, str]) -> VmmapConfig:
    """Build a configuration from environment variables.

    Args:
        environ: The environment to read (usually ``os.environ``).

    Raises:
        ConfigError: If ``VMMAP_CONFIG`` names an unloadable file.

    """
    config_path = environ.get("VMMAP_CONFIG")
    config = load_config(Path(config_path)) if config_path else VmmapConfig()

    overrides: dict[str, object] = {}
    if "VMMAP_PROC_ROOT" in environ:
        overrides["proc_root"] = Path(environ["VMMAP_PROC_ROOT"])
    if "VMMAP_SYSTEM_PREFIX" in environ:
        overrides["system_prefix"] = environ["VMMAP_SYSTEM_PREFIX"]
    return dataclasses.replace(config, **overrides) if overrides else config

"""Tests for the browser-facing web UI.

The web UI serves vmmap data over HTTP.  Tests use
``pytest.importorskip`` so they are skipped gracefully when Flask is not
installed, and point the inspector at a fake proc tree.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

import pytest

flask = pytest.importorskip("flask")

from py_vmmap.config import VmmapConfig  # noqa: E402
from py_vmmap.errors import HostInfoError  # noqa: E402
from py_vmmap.inspector import Inspector  # noqa: E402
from py_vmmap.web.app import create_app  # noqa: E402

if TYPE_CHECKING:
    from pathlib import Path

HTTP_OK = 200
HTTP_FORBIDDEN = 403
HTTP_NOT_FOUND = 404
HTTP_UNPROCESSABLE = 422

PID = 99
BAD_PID = 100

SMAPS_TEXT = """\
00400000-00401000 r-xp 00000000 08:01 12345 /usr/bin/demo
Size:                  4 kB
Rss:                   4 kB
00600000-00602000 rw-p 00000000 08:01 12345 /usr/bin/demo
Size:                  8 kB
Rss:                   4 kB
Private_Dirty:         4 kB
00700000-00701000 rw-p 00000000 00:00 0 HEAP
Size:                  4 kB
Rss:                   4 kB
"""


class StubHost:
    """HostInfo that knows nothing."""

    def process_name(self, pid: int) -> str:
        """Return a fixed name."""
        return f"proc{pid}"

    def process_path(self, pid: int) -> str:
        """Fail like an unreadable exe link."""
        msg = f"no path for {pid}"
        raise HostInfoError(msg)

    def parent_pid(self, pid: int) -> int:  # noqa: ARG002
        """Return pid 1."""
        return 1

    def launch_time(self, pid: int) -> datetime:  # noqa: ARG002
        """Return a fixed time."""
        return datetime(2024, 1, 1, tzinfo=UTC)

    def os_version(self) -> str:
        """Return a fixed version."""
        return "Linux 6.1.0"


def _create_client(tmp_path: Path) -> Any:
    """Create a test client serving a fake proc tree."""
    good = tmp_path / str(PID)
    good.mkdir()
    (good / "smaps").write_text(SMAPS_TEXT)
    bad = tmp_path / str(BAD_PID)
    bad.mkdir()
    (bad / "smaps").write_text("00400000-00401000 r-xp 00000000 08:01 1 /x\nSize: 4 zB\n")

    inspector = Inspector(config=VmmapConfig(proc_root=tmp_path))
    app = create_app(inspector=inspector, host=StubHost())
    app.config["TESTING"] = True
    return app.test_client()


# -- Cycle 1: App creation --------------------------------------------------


class TestAppCreation:
    """Verify the app factory."""

    def test_create_app_returns_flask(self, tmp_path: Path) -> None:
        """create_app should return a Flask application."""
        inspector = Inspector(config=VmmapConfig(proc_root=tmp_path))
        assert isinstance(create_app(inspector=inspector), flask.Flask)


# -- Cycle 2: JSON endpoints ------------------------------------------------


class TestRegionsEndpoint:
    """Verify GET /api/regions/<pid>."""

    def test_regions(self, tmp_path: Path) -> None:
        """Every region is returned with its classification."""
        response = _create_client(tmp_path).get(f"/api/regions/{PID}")
        assert response.status_code == HTTP_OK
        data = response.get_json()
        assert data["pid"] == PID
        assert [r["region_type"] for r in data["regions"]] == ["__TEXT", "__DATA", "MALLOC"]
        assert data["regions"][1]["dirty_size"] == 4096  # noqa: PLR2004

    def test_missing_process(self, tmp_path: Path) -> None:
        """An unknown pid is a 404 with an error message."""
        response = _create_client(tmp_path).get("/api/regions/12345")
        assert response.status_code == HTTP_NOT_FOUND
        assert "no longer appears to be running" in response.get_json()["error"]

    def test_unreadable_map(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """A map the server may not read is a 403."""
        client = _create_client(tmp_path)

        def refuse(self: Path, *args: object, **kwargs: object) -> str:  # noqa: ARG001
            msg = f"Permission denied: '{self}'"
            raise PermissionError(msg)

        monkeypatch.setattr(type(tmp_path), "read_text", refuse)
        response = client.get(f"/api/regions/{PID}")
        assert response.status_code == HTTP_FORBIDDEN
        assert "appropriate privileges" in response.get_json()["error"]

    def test_malformed_size(self, tmp_path: Path) -> None:
        """A malformed smaps is a 422."""
        response = _create_client(tmp_path).get(f"/api/regions/{BAD_PID}")
        assert response.status_code == HTTP_UNPROCESSABLE
        assert "Failed to parse size" in response.get_json()["error"]


class TestSummaryEndpoint:
    """Verify GET /api/summary/<pid>."""

    def test_summary(self, tmp_path: Path) -> None:
        """Buckets are sorted by key and totals are included."""
        data = _create_client(tmp_path).get(f"/api/summary/{PID}").get_json()
        assert [b["key"] for b in data["by_type"]] == ["MALLOC", "__DATA", "__TEXT"]
        assert [z["key"] for z in data["malloc_zones"]] == ["HEAP"]
        assert data["read_only_libraries"]["virtual_size"] == 4096  # noqa: PLR2004
        assert data["writable"]["count"] == 2  # noqa: PLR2004


# -- Cycle 3: Text report ---------------------------------------------------


class TestReportEndpoint:
    """Verify GET /report/<pid>."""

    def test_report_is_plain_text(self, tmp_path: Path) -> None:
        """The report is served as text/plain."""
        response = _create_client(tmp_path).get(f"/report/{PID}")
        assert response.status_code == HTTP_OK
        assert "text/plain" in response.content_type
        assert f"proc{PID} [{PID}]" in response.get_data(as_text=True)

    def test_summary_flag(self, tmp_path: Path) -> None:
        """?summary drops the region tables."""
        text = _create_client(tmp_path).get(f"/report/{PID}?summary=1").get_data(as_text=True)
        assert "Virtual Memory Map" not in text
        assert f"==== Summary for process {PID}" in text

    def test_interleaved_flag(self, tmp_path: Path) -> None:
        """?interleaved prints one table."""
        text = _create_client(tmp_path).get(f"/report/{PID}?interleaved").get_data(as_text=True)
        assert "==== Writable regions" not in text

    def test_false_flag_ignored(self, tmp_path: Path) -> None:
        """A flag set to a false value has no effect."""
        text = _create_client(tmp_path).get(f"/report/{PID}?summary=0").get_data(as_text=True)
        assert "Virtual Memory Map" in text

"""Tests for the reporting facade."""

import pytest

from py_vmmap.errors import ReportError
from py_vmmap.maps.classifier import RegionEntry, classify_regions
from py_vmmap.maps.parser import parse_text
from py_vmmap.report import VmmapOptions, build_report, partition_by_writable

PID = 321
PAGE_SIZE = 4096

MAPS_TEXT = """\
00400000-00401000 r-xp 00000000 08:01 12345 /bin/true
00600000-00602000 rw-p 00000000 08:01 12345 /bin/true
00700000-00701000 rw-p 00000000 00:00 0 HEAP
7f0000000000-7f0000001000 r--p 00000000 08:01 99 /usr/share/zoneinfo/UTC
7ffd00000000-7ffd00021000 rw-p 00000000 00:00 0 [stack]
"""


def _entries() -> list[RegionEntry]:
    """Classify the sample map."""
    return classify_regions(parse_text(MAPS_TEXT), page_size=PAGE_SIZE)


class TestPartition:
    """Verify the writable / non-writable split."""

    def test_partition_keeps_order(self) -> None:
        """Both halves keep address order."""
        non_writable, writable = partition_by_writable(_entries())
        assert [e.start_address for e in non_writable] == [0x400000, 0x7F0000000000]
        assert [e.start_address for e in writable] == [0x600000, 0x700000, 0x7FFD00000000]


class TestBuildReport:
    """Verify report assembly."""

    def test_default_options_partition(self) -> None:
        """Without -interleaved the report carries both partitions."""
        report = build_report(_entries(), pid=PID)
        assert report.pid == PID
        assert len(report.non_writable_entries) + len(report.writable_entries) == len(
            report.entries
        )

    def test_interleaved_skips_partition(self) -> None:
        """With -interleaved there are no partitions."""
        report = build_report(_entries(), VmmapOptions(interleaved=True), pid=PID)
        assert report.non_writable_entries == ()
        assert report.writable_entries == ()

    def test_page_size_from_first_entry(self) -> None:
        """The report page size is the entry set's page size."""
        assert build_report(_entries()).page_size == PAGE_SIZE

    def test_both_aggregations(self) -> None:
        """The report holds the type and zone buckets."""
        report = build_report(_entries())
        assert set(report.by_type) == {"__TEXT", "__DATA", "MALLOC", "mapped file", "Stack"}
        assert set(report.malloc_zones) == {"HEAP"}

    def test_totals(self) -> None:
        """Read-only libraries count only __TEXT; writable counts rw regions."""
        report = build_report(_entries())
        assert report.read_only_libraries.virtual_size == PAGE_SIZE
        assert report.writable.count == 3  # noqa: PLR2004

    def test_empty_entries_rejected(self) -> None:
        """An empty entry set has nothing to report."""
        with pytest.raises(ReportError, match="no memory regions"):
            build_report([], pid=PID)

    def test_fork_corpse_not_implemented(self) -> None:
        """Corpse forks are not supported."""
        with pytest.raises(ReportError, match="forkCorpse"):
            build_report(_entries(), VmmapOptions(fork_corpse=True))

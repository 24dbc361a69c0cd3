"""Tests for the memory-map parser.

The parser reads ``/proc/<pid>/smaps`` (or the header-only ``maps``)
line by line.  A header line opens a new region; ``Label: value`` lines
that follow are folded into that region's attributes; everything else
is skipped.
"""

from py_vmmap.maps.parser import RawRegion, parse_attribute, parse_header, parse_regions, parse_text

SMAPS_TEXT = """\
00400000-0040b000 r-xp 00000000 08:01 1315       /bin/cat
Size:                 44 kB
KernelPageSize:        4 kB
Rss:                  40 kB
Shared_Dirty:          0 kB
Private_Dirty:         0 kB
Swap:                  0 kB
VmFlags: rd ex mr mw me dw sd
0060a000-0060b000 rw-p 0000a000 08:01 1315       /bin/cat
Size:                  4 kB
Rss:                   4 kB
Private_Dirty:         4 kB
VmFlags: rd wr mr mw me dw ac sd
7ffd3c1e5000-7ffd3c206000 rw-p 00000000 00:00 0                          [stack]
Size:                132 kB
Rss:                  16 kB
VmFlags: rd wr mr mw me gd ac
"""

MAPS_TEXT = """\
00400000-00401000 r-xp 00000000 08:01 12345 /bin/true
00600000-00601000 rw-p 00000000 00:00 0
"""

EXPECTED_SMAPS_REGIONS = 3
EXPECTED_MAPS_REGIONS = 2
CAT_INODE = 1315
CAT_DATA_OFFSET = 0xA000


# ---------------------------------------------------------------------------
# Cycle 1 — header lines
# ---------------------------------------------------------------------------


class TestParseHeader:
    """Verify recognition of region header lines."""

    def test_parses_all_fields(self) -> None:
        """A header line should yield every positional field."""
        region = parse_header("00400000-00401000 r-xp 00000000 08:01 12345 /bin/true")
        assert region == RawRegion(
            start=0x400000,
            end=0x401000,
            permissions="r-xp",
            offset=0,
            device="08:01",
            inode=12345,
            description="/bin/true",
        )

    def test_anonymous_region_has_empty_description(self) -> None:
        """A header without a description should store an empty string."""
        region = parse_header("7f0000000000-7f0000021000 rw-p 00000000 00:00 0 ")
        assert region is not None
        assert region.description == ""

    def test_description_keeps_inner_spaces(self) -> None:
        """Paths with spaces should survive intact."""
        region = parse_header(
            "7f0000000000-7f0000001000 r--p 00000000 08:01 77   /tmp/my file (deleted)"
        )
        assert region is not None
        assert region.description == "/tmp/my file (deleted)"

    def test_detail_line_is_not_a_header(self) -> None:
        """A detail line should not be mistaken for a header."""
        assert parse_header("Size:                  4 kB") is None

    def test_garbage_is_not_a_header(self) -> None:
        """Arbitrary text should not parse as a header."""
        assert parse_header("hello world") is None


# ---------------------------------------------------------------------------
# Cycle 2 — attribute lines
# ---------------------------------------------------------------------------


class TestParseAttribute:
    """Verify recognition of ``Label: value`` detail lines."""

    def test_splits_label_and_value(self) -> None:
        """The value should start at the first non-blank character."""
        assert parse_attribute("Rss:                  40 kB") == ("Rss", "40 kB")

    def test_vmflags_value_keeps_all_tokens(self) -> None:
        """VmFlags values are space-separated token lists."""
        assert parse_attribute("VmFlags: rd wr mr mw") == ("VmFlags", "rd wr mr mw")

    def test_empty_value_is_allowed(self) -> None:
        """A label with nothing after the colon yields an empty value."""
        assert parse_attribute("VmFlags: ") == ("VmFlags", "")

    def test_line_without_colon_is_ignored(self) -> None:
        """A line with no colon is not an attribute."""
        assert parse_attribute("just some words") is None


# ---------------------------------------------------------------------------
# Cycle 3 — whole files
# ---------------------------------------------------------------------------


class TestParseRegions:
    """Verify folding of detail lines into regions."""

    def test_one_region_per_header_in_smaps(self) -> None:
        """The detailed form yields one record per header line."""
        assert len(parse_text(SMAPS_TEXT)) == EXPECTED_SMAPS_REGIONS

    def test_one_region_per_header_in_maps(self) -> None:
        """The minimal form yields one record per header line."""
        assert len(parse_text(MAPS_TEXT)) == EXPECTED_MAPS_REGIONS

    def test_regions_are_in_source_order(self) -> None:
        """Records keep the order of the source file."""
        starts = [r.start for r in parse_text(SMAPS_TEXT)]
        assert starts == sorted(starts)

    def test_attributes_attach_to_preceding_header(self) -> None:
        """Detail lines belong to the header above them."""
        text_region, data_region, stack = parse_text(SMAPS_TEXT)
        assert text_region.attributes["Size"] == "44 kB"
        assert data_region.attributes["Size"] == "4 kB"
        assert stack.attributes["Rss"] == "16 kB"

    def test_attributes_do_not_leak_between_regions(self) -> None:
        """A region only has the attributes listed under it."""
        _, data_region, _ = parse_text(SMAPS_TEXT)
        assert "KernelPageSize" not in data_region.attributes

    def test_first_region_is_not_duplicated(self) -> None:
        """The first header must not produce an extra empty record."""
        regions = parse_text(SMAPS_TEXT)
        assert regions[0].description == "/bin/cat"
        assert regions[0].inode == CAT_INODE
        assert regions[1].offset == CAT_DATA_OFFSET

    def test_maps_regions_have_no_attributes(self) -> None:
        """The minimal form carries no detail lines."""
        assert all(not r.attributes for r in parse_text(MAPS_TEXT))

    def test_detail_lines_before_any_header_are_dropped(self) -> None:
        """Orphan detail lines are silently ignored."""
        regions = parse_text("Size: 4 kB\n" + MAPS_TEXT)
        assert len(regions) == EXPECTED_MAPS_REGIONS
        assert regions[0].attributes == {}

    def test_unrecognized_lines_are_skipped(self) -> None:
        """Lines that are neither headers nor attributes are ignored."""
        text = MAPS_TEXT.replace("\n", "\n\n-- noise --\n", 1)
        assert len(parse_text(text)) == EXPECTED_MAPS_REGIONS

    def test_empty_input_yields_nothing(self) -> None:
        """No header lines means no regions."""
        assert parse_text("") == []

    def test_accepts_lines_with_newlines(self) -> None:
        """parse_regions should accept file-style lines."""
        lines = MAPS_TEXT.splitlines(keepends=True)
        assert len(parse_regions(lines)) == EXPECTED_MAPS_REGIONS

    def test_later_duplicate_attribute_wins(self) -> None:
        """A repeated label overwrites the earlier value."""
        text = "00400000-00401000 r-xp 00000000 08:01 1 /a\nRss: 4 kB\nRss: 8 kB\n"
        assert parse_text(text)[0].attributes["Rss"] == "8 kB"

"""Tests for the data block table parser."""

from plclink.models.records import DataBlockEntry, DataBlockInfo
from plclink.parsers.data_block_parser import parse_data_block_info


def table(*values):
    return "DA" + "".join(f"{value:04X}" for value in values)


class TestDataBlockTable:
    """Tests for data block table replies."""

    def test_header_and_entries(self):
        """Test a table with two allocated blocks."""
        info = parse_data_block_info(table(4, 2, 0x0100, 0x0200, 0x0300, 1, 0x0300, 16, 2, 0x0310, 8) + "\n")

        assert info.slots == 4
        assert info.active == 2
        assert info.table_offset == 0x0100
        assert info.free_space == 0x0200
        assert info.lowest_address == 0x0300
        assert info.entries == (
            DataBlockEntry(db=1, offset=0x0300, size=16),
            DataBlockEntry(db=2, offset=0x0310, size=8),
        )

    def test_unused_slots_skipped(self):
        """Test that entries with block number 0 are left out."""
        info = parse_data_block_info(table(3, 1, 0, 0, 0, 0, 0, 0, 5, 0x40, 4, 0, 0, 0))
        assert [entry.db for entry in info.entries] == [5]

    def test_partial_entry_ignored(self):
        """Test that a trailing incomplete entry is dropped."""
        info = parse_data_block_info(table(2, 1, 0, 0, 0, 1, 0x10, 4) + "0002")
        assert len(info.entries) == 1

    def test_short_header_reads_zero(self):
        """Test that missing header values read as 0."""
        info = parse_data_block_info(table(8, 3))
        assert info.slots == 8
        assert info.active == 3
        assert info.free_space == 0
        assert info.entries == ()

    def test_lowercase_and_spacing(self):
        """Test that case and whitespace inside the payload are ignored."""
        info = parse_data_block_info("DA 0002 0001 00ff 0000 0000 0001 00aa 0004")
        assert info.table_offset == 0xFF
        assert info.entries[0].offset == 0xAA

    def test_reply_without_tag(self):
        """Test that a device without data blocks reports the empty table."""
        assert parse_data_block_info("OK\n") == DataBlockInfo()
        assert parse_data_block_info("") == DataBlockInfo()

    def test_tag_only(self):
        """Test an empty table."""
        info = parse_data_block_info("DA")
        assert info.slots == 0
        assert info.entries == ()

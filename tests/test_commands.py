"""Tests for command builders and hex encoding."""

import pytest

from plclink.protocol.checksums import verify_frame
from plclink.protocol.commands import (
    build_memory_format,
    build_memory_read,
    build_memory_write,
    build_memory_write_masked,
    build_program_download,
    build_simple_command,
    build_tc_config,
    chunk_command,
    create_memory_subscription,
)
from plclink.protocol.constants import FIXED_COMMANDS, CommandCode
from plclink.protocol.encoding import (
    decode_uint16,
    decode_uint32,
    encode_byte,
    encode_bytes,
    encode_uint32,
    parse_hex,
    string_to_hex,
    strip_non_hex,
)


class TestEncoding:
    """Tests for hex encoding helpers."""

    def test_encode_byte(self):
        """Test byte encoding is two uppercase digits."""
        assert encode_byte(0) == "00"
        assert encode_byte(0x8F) == "8F"

    @pytest.mark.parametrize("value", [-1, 256])
    def test_encode_byte_out_of_range(self, value):
        """Test that non-byte values are rejected."""
        with pytest.raises(ValueError):
            encode_byte(value)

    def test_encode_uint32(self):
        """Test u32 encoding is eight digits, most significant first."""
        assert encode_uint32(10) == "0000000A"
        assert encode_uint32(0xFFFFFFFF) == "FFFFFFFF"

    @pytest.mark.parametrize("value", [-1, 0x100000000])
    def test_encode_uint32_out_of_range(self, value):
        """Test that values outside u32 are rejected."""
        with pytest.raises(ValueError):
            encode_uint32(value)

    def test_encode_bytes(self):
        """Test encoding of bytes and int sequences."""
        assert encode_bytes(b"\x01\x02\xff") == "0102FF"
        assert encode_bytes([1, 2, 3]) == "010203"
        assert encode_bytes([]) == ""

    def test_encode_bytes_validates_each_value(self):
        """Test that one bad value rejects the whole sequence."""
        with pytest.raises(ValueError):
            encode_bytes([1, 300])

    def test_string_to_hex(self):
        """Test ASCII to hex conversion."""
        assert string_to_hex("PI") == "5049"

    def test_strip_non_hex(self):
        """Test removal of separators and other characters."""
        assert strip_non_hex("OK 01-02:zz0a") == "01020a"

    def test_parse_hex(self):
        """Test hex decoding ignoring separators."""
        assert parse_hex("01 02 0a") == b"\x01\x02\n"

    def test_parse_hex_odd_length(self):
        """Test that an odd digit count is rejected."""
        with pytest.raises(ValueError):
            parse_hex("123")

    def test_decode_uint32(self):
        """Test u32 decoding at offsets."""
        payload = "0000000A000000FF"
        assert decode_uint32(payload) == 10
        assert decode_uint32(payload, 8) == 255

    def test_decode_uint32_short(self):
        """Test that a truncated field decodes to None."""
        assert decode_uint32("0000000A0000", 8) is None
        assert decode_uint32("", 0) is None

    def test_decode_uint16(self):
        """Test u16 decoding and truncation."""
        assert decode_uint16("00FF0a0b", 4) == 0x0A0B
        assert decode_uint16("00F") is None


class TestSimpleCommands:
    """Tests for fixed commands."""

    def test_program_info(self):
        """Test the info command."""
        assert build_simple_command(CommandCode.PROGRAM_INFO) == "PI52"

    def test_accepts_code_string(self):
        """Test that the two-letter code may be passed as text."""
        assert build_simple_command("PI") == "PI52"

    def test_every_fixed_command_verifies(self):
        """Test that each fixed command is its code plus a valid checksum."""
        for code in FIXED_COMMANDS:
            command = build_simple_command(code)
            assert len(command) == 4
            assert command.startswith(code.value)
            assert verify_frame(command) == code.value

    def test_data_block_info(self):
        """Test that the data block query needs no fields."""
        assert CommandCode.DATA_BLOCK_INFO in FIXED_COMMANDS
        assert verify_frame(build_simple_command(CommandCode.DATA_BLOCK_INFO)) == "DA"

    def test_parametrized_code_rejected(self):
        """Test that commands needing fields cannot be built bare."""
        with pytest.raises(ValueError):
            build_simple_command(CommandCode.MEMORY_WRITE)

    def test_unknown_code_rejected(self):
        """Test that an unknown code is rejected."""
        with pytest.raises(ValueError):
            build_simple_command("XX")


class TestParametrizedCommands:
    """Tests for commands with hex fields."""

    def test_memory_read(self):
        """Test memory read layout."""
        command = build_memory_read(10, 4)
        assert command[:-2] == "MR0000000A00000004"
        verify_frame(command)

    def test_memory_write(self):
        """Test memory write layout."""
        command = build_memory_write(10, [1, 2, 3])
        assert command[:-2] == "MW0000000A00000003010203"
        verify_frame(command)

    def test_memory_write_accepts_bytes(self):
        """Test that bytes and int lists build the same command."""
        assert build_memory_write(10, b"\x01\x02\x03") == build_memory_write(10, [1, 2, 3])

    def test_memory_write_bad_address(self):
        """Test that addresses must be u32."""
        with pytest.raises(ValueError):
            build_memory_write(-1, [1])

    def test_memory_write_bad_byte(self):
        """Test that data values must be bytes."""
        with pytest.raises(ValueError):
            build_memory_write(0, [256])

    def test_memory_write_masked(self):
        """Test masked write carries data then mask."""
        command = build_memory_write_masked(0x20, [0xFF, 0x00], [0x0F, 0xF0])
        assert command[:-2] == "MM0000002000000002FF000FF0"
        verify_frame(command)

    def test_memory_write_masked_length_mismatch(self):
        """Test that mask and data lengths must match."""
        with pytest.raises(ValueError):
            build_memory_write_masked(0, [1, 2], [0xFF])

    def test_memory_format(self):
        """Test memory format layout."""
        command = build_memory_format(64, 16, 0xAA)
        assert command[:-2] == "MF0000004000000010AA"
        verify_frame(command)

    def test_memory_format_bad_value(self):
        """Test that the fill value must be a byte."""
        with pytest.raises(ValueError):
            build_memory_format(0, 1, 0x100)

    def test_program_download(self):
        """Test program download layout."""
        command = build_program_download(b"\x01\x02")
        assert command[:-2] == "PD000000020102"
        verify_frame(command)

    def test_tc_config(self):
        """Test timer/counter configuration layout."""
        command = build_tc_config(704, 848)
        assert command[:-2] == "TC000002C000000350"
        verify_frame(command)

    def test_commands_are_uppercase_ascii(self):
        """Test that builders never emit lowercase hex."""
        command = build_memory_write(0xABCDEF, [0xAB, 0xCD])
        assert command == command.upper()
        command.encode("ascii")


class TestMemorySubscription:
    """Tests for pre-built subscription reads."""

    def test_command_built_once(self):
        """Test that the region carries its memory read command."""
        subscription = create_memory_subscription(64, 8)
        assert subscription.address == 64
        assert subscription.size == 8
        assert subscription.command == build_memory_read(64, 8)

    @pytest.mark.parametrize("size", [0, -1])
    def test_size_must_be_positive(self, size):
        """Test that an empty region is rejected."""
        with pytest.raises(ValueError):
            create_memory_subscription(0, size)

    def test_address_out_of_range(self):
        """Test that the address must fit a u32 field."""
        with pytest.raises(ValueError):
            create_memory_subscription(-1, 4)


class TestChunking:
    """Tests for chunked command writes."""

    def test_chunk_sizes(self):
        """Test slicing into fixed-size pieces with a short tail."""
        chunks = list(chunk_command("x" * 130, 64))
        assert [len(c) for c in chunks] == [64, 64, 2]
        assert "".join(chunks) == "x" * 130

    def test_short_text_single_chunk(self):
        """Test that short text is not split."""
        assert list(chunk_command("PI52\n")) == ["PI52\n"]

    def test_empty_text(self):
        """Test that empty text yields nothing."""
        assert list(chunk_command("")) == []

    def test_invalid_chunk_size(self):
        """Test that the chunk size must be positive."""
        with pytest.raises(ValueError):
            list(chunk_command("abc", 0))

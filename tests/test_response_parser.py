"""Tests for single-line reply parsers."""

import pytest

from plclink.exceptions import DeviceRejectedError, MalformedResponseError
from plclink.parsers.response_parser import (
    is_error_reply,
    parse_acknowledgement,
    parse_hex_payload,
)


class TestErrorReplies:
    """Tests for device error detection."""

    @pytest.mark.parametrize("line", ["ERR", "ERR:bad checksum", "E:5", " err 2", "e:x"])
    def test_error_prefixes(self, line):
        """Test that error prefixes are recognised."""
        assert is_error_reply(line) is True

    @pytest.mark.parametrize("line", ["OK", "", "0102", "PH00"])
    def test_non_errors(self, line):
        """Test that other lines are not errors."""
        assert is_error_reply(line) is False


class TestHexPayload:
    """Tests for hex payload replies."""

    def test_with_ok_prefix(self):
        """Test a memory read reply."""
        assert parse_hex_payload("OK010203") == b"\x01\x02\x03"

    def test_without_prefix(self):
        """Test a bare payload."""
        assert parse_hex_payload("0A0B\r\n") == b"\x0a\x0b"

    def test_whitespace_inside(self):
        """Test that whitespace inside the payload is ignored."""
        assert parse_hex_payload("OK 01 02") == b"\x01\x02"

    def test_empty_payload(self):
        """Test that OK alone is an empty payload."""
        assert parse_hex_payload("OK") == b""

    def test_rejected(self):
        """Test that an error reply raises."""
        with pytest.raises(DeviceRejectedError) as exc_info:
            parse_hex_payload("ERR:range")
        assert exc_info.value.response == "ERR:range"

    def test_odd_length(self):
        """Test that an odd digit count is malformed."""
        with pytest.raises(MalformedResponseError):
            parse_hex_payload("OK123")

    def test_bad_digits(self):
        """Test that non-hex text is malformed."""
        with pytest.raises(MalformedResponseError) as exc_info:
            parse_hex_payload("OKZZ")
        assert exc_info.value.response_type == "hex_payload"


class TestAcknowledgement:
    """Tests for acknowledgement replies."""

    def test_ok(self):
        """Test a plain acknowledgement."""
        assert parse_acknowledgement("OK\r\n") == "OK"

    def test_other_text_accepted(self):
        """Test that older firmware echo text counts as success."""
        assert parse_acknowledgement("Program loaded") == "Program loaded"

    def test_rejected(self):
        """Test an error acknowledgement."""
        with pytest.raises(DeviceRejectedError):
            parse_acknowledgement("E:crc")

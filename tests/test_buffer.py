"""Tests for the bounded receive buffer."""

import pytest

from plclink.transport.buffer import ByteBuffer


class TestByteBuffer:
    """Tests for ByteBuffer."""

    def test_invalid_capacity(self):
        """Test that capacity must be positive."""
        with pytest.raises(ValueError):
            ByteBuffer(0)

    def test_extend_and_pop_all(self):
        """Test FIFO order."""
        buf = ByteBuffer()
        buf.extend(b"ab")
        buf.extend(b"cd")
        assert len(buf) == 4
        assert buf.pop_all() == b"abcd"
        assert len(buf) == 0

    def test_overflow_drops_oldest(self):
        """Test that the oldest bytes go first and are counted."""
        buf = ByteBuffer(capacity=4)
        buf.extend(b"abcdef")
        assert len(buf) == 4
        assert buf.dropped == 2
        assert buf.pop_all() == b"cdef"

    def test_overflow_across_chunks(self):
        """Test that capacity holds over several appends."""
        buf = ByteBuffer(capacity=5)
        for _ in range(4):
            buf.extend(b"xyz")
        assert len(buf) == 5
        assert buf.dropped == 7

    def test_overflow_logged(self, caplog):
        """Test that dropping data is reported."""
        buf = ByteBuffer(capacity=2)
        with caplog.at_level("WARNING", logger="plclink.transport.buffer"):
            buf.extend(b"abc")
        assert "overflow" in caplog.text

    def test_empty_extend_ignored(self):
        """Test that empty chunks are no-ops."""
        buf = ByteBuffer()
        buf.extend(b"")
        assert len(buf) == 0

    def test_peek(self):
        """Test peeking without consuming."""
        buf = ByteBuffer()
        buf.extend(b"AB")
        assert buf.peek() == ord("A")
        assert buf.peek(1) == ord("B")
        assert buf.peek(2) is None
        assert len(buf) == 2

    def test_pop_byte(self):
        """Test consuming one byte at a time."""
        buf = ByteBuffer()
        buf.extend(b"A")
        assert buf.pop_byte() == ord("A")
        assert buf.pop_byte() is None

    def test_pop_line(self):
        """Test consuming one line including its terminator."""
        buf = ByteBuffer()
        buf.extend(b"OK\nPH")
        assert buf.pop_line() == b"OK\n"
        assert buf.pop_line() is None
        assert buf.pop_all() == b"PH"

    def test_find(self):
        """Test searching for a byte."""
        buf = ByteBuffer()
        buf.extend(b"ab\n")
        assert buf.find(ord("\n")) == 2
        assert buf.find(ord("z")) == -1

    def test_clear_keeps_dropped_count(self):
        """Test that clearing does not reset statistics."""
        buf = ByteBuffer(capacity=1)
        buf.extend(b"ab")
        buf.clear()
        assert len(buf) == 0
        assert buf.dropped == 1

    def test_repr(self):
        """Test string representation."""
        buf = ByteBuffer(capacity=8)
        buf.extend(b"abc")
        assert repr(buf) == "ByteBuffer(3/8, dropped=0)"

"""Tests for LineReader."""

import asyncio

import pytest

from plclink.exceptions import IncompleteResponseError, NotOpenError, ResponseTimeoutError
from plclink.transport.line_reader import LineReader
from plclink.transport.mock import MockTransport


class TestReadLine:
    """Tests for line replies."""

    @pytest.fixture
    def transport(self):
        """Create a MockTransport instance."""
        return MockTransport()

    @pytest.fixture
    def reader(self, transport):
        """Create a LineReader over the mock transport."""
        return LineReader(transport)

    @pytest.mark.asyncio
    async def test_buffered_line(self, transport, reader):
        """Test a line that is already buffered."""
        await transport.open()
        transport.feed("OK\r\n")
        assert await reader.read_line(1.0) == "OK"

    @pytest.mark.asyncio
    async def test_line_arrives_later(self, transport, reader):
        """Test waiting for a line."""
        await transport.open()
        asyncio.get_running_loop().call_later(0.02, transport.feed, "OK\n")
        assert await reader.read_line(1.0) == "OK"

    @pytest.mark.asyncio
    async def test_partial_line_completed(self, transport, reader):
        """Test that a partial line waits for its terminator."""
        await transport.open()
        transport.feed("OK01")
        asyncio.get_running_loop().call_later(0.03, transport.feed, "02\n")
        assert await reader.read_line(1.0) == "OK0102"

    @pytest.mark.asyncio
    async def test_timeout(self, transport, reader):
        """Test that no reply raises a response timeout."""
        await transport.open()
        with pytest.raises(ResponseTimeoutError) as exc_info:
            await reader.read_line(0.05)
        assert exc_info.value.timeout_seconds == 0.05

    @pytest.mark.asyncio
    async def test_partial_line_times_out(self, transport, reader):
        """Test that an unterminated line still times out."""
        await transport.open()
        transport.feed("OK")
        with pytest.raises(ResponseTimeoutError):
            await reader.read_line(0.05)

    @pytest.mark.asyncio
    async def test_closed_transport(self, reader):
        """Test reading from a closed transport."""
        with pytest.raises(NotOpenError):
            await reader.read_line(1.0)

    @pytest.mark.asyncio
    async def test_disconnect_while_waiting(self, transport, reader):
        """Test that a disconnect ends the wait with NotOpenError."""
        await transport.open()
        asyncio.get_running_loop().call_later(0.02, transport.simulate_disconnect)
        with pytest.raises(NotOpenError):
            await reader.read_line(5.0)


class TestReadBracketed:
    """Tests for fragmented bracketed replies."""

    @pytest.mark.asyncio
    async def test_three_fragments(self):
        """Test a reply split across three delayed deliveries."""
        transport = MockTransport(fragment_delay=0.02)
        reader = LineReader(transport)
        await transport.open()
        transport.add_response(["abc", "[1,2", ",3]\n"])

        await transport.write("PI52\n")
        result = await reader.read_bracketed(budget=2.0, idle_timeout=1.0, poll=0.05)

        assert result == "[1,2,3]"
        assert transport.available() == 0

    @pytest.mark.asyncio
    async def test_trailing_bytes_discarded(self):
        """Test that the rest of the line is dropped after the record."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        transport.feed("[a,b] trailing\r\n")

        assert await reader.read_bracketed(budget=1.0) == "[a,b]"
        assert transport.available() == 0

    @pytest.mark.asyncio
    async def test_incomplete_after_budget(self):
        """Test that an unbalanced record fails with the partial text."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        transport.feed("[VovkPLC,WASM")

        with pytest.raises(IncompleteResponseError) as exc_info:
            await reader.read_bracketed(budget=0.2, idle_timeout=0.1, poll=0.05)
        assert exc_info.value.partial == "[VovkPLC,WASM"

    @pytest.mark.asyncio
    async def test_no_data_idle_timeout(self):
        """Test giving up early when nothing arrives."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()

        loop = asyncio.get_running_loop()
        start = loop.time()
        with pytest.raises(IncompleteResponseError):
            await reader.read_bracketed(budget=5.0, idle_timeout=0.1, poll=0.05)
        assert loop.time() - start < 2.0

    @pytest.mark.asyncio
    async def test_closed_transport(self):
        """Test reading from a closed transport."""
        reader = LineReader(MockTransport())
        with pytest.raises(NotOpenError):
            await reader.read_bracketed(budget=1.0)


class TestDrainAndFlush:
    """Tests for discarding stray data."""

    @pytest.mark.asyncio
    async def test_drain_counts_discarded(self):
        """Test draining a wake-up answer."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        transport.feed("?\nhello\n")

        assert await reader.drain(timeout=0.5, gap=0.02) == 8
        assert transport.available() == 0

    @pytest.mark.asyncio
    async def test_discard_pending(self):
        """Test dropping buffered bytes without waiting."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        transport.feed("OK0102\n")

        assert reader.discard_pending() == 7
        assert reader.discard_pending() == 0
        assert transport.available() == 0

    @pytest.mark.asyncio
    async def test_drain_nothing(self):
        """Test draining when the device stays silent."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        assert await reader.drain(timeout=0.02, gap=0.01) == 0

    @pytest.mark.asyncio
    async def test_flush(self):
        """Test flushing stray bytes after a settle delay."""
        transport = MockTransport()
        reader = LineReader(transport)
        await transport.open()
        transport.feed("junk")
        asyncio.get_running_loop().call_later(0.01, transport.feed, "more")

        assert await reader.flush(settle=0.03, gap=0.01) == 8
        assert transport.available() == 0

"""
Accumulator for bracketed replies delivered in fragments.

Some USB-CDC devices (ESP32-C6 in particular) split one reply across
several deliveries with gaps between them. A ``[`` seen without its ``]`` is
therefore not an error: the accumulator keeps every chunk and only extracts
a payload once the opening bracket is balanced.

Example:
    >>> acc = BracketAccumulator()
    >>> acc.feed("abc")
    >>> acc.feed("[1,2")
    >>> acc.feed(",3]\\n")
    '[1,2,3]'
"""

from __future__ import annotations

from plclink.protocol.constants import ProtocolConstants


class BracketAccumulator:
    """
    Collect text chunks until a balanced ``[...]`` payload is present.

    Banner lines starting with ``::`` are dropped wherever they appear
    before the record, and an unterminated banner line is held until its
    newline arrives. Brackets inside a boot banner therefore never match.

    Attributes:
        text: Everything accumulated and not yet consumed.
    """

    def __init__(self) -> None:
        self._text = ""

    @property
    def text(self) -> str:
        return self._text

    def __len__(self) -> int:
        return len(self._text)

    def clear(self) -> None:
        self._text = ""

    def feed(self, chunk: str | bytes) -> str | None:
        """
        Add a chunk and try to extract a payload.

        Returns:
            The first balanced bracketed payload including its brackets, or
            None while the payload is still incomplete. Text up to and
            including the payload is consumed; anything after it is kept.
        """
        if isinstance(chunk, bytes):
            chunk = chunk.decode("utf-8", errors="replace")
        self._text += chunk
        self._drop_intro_lines()
        return self._extract()

    def _drop_intro_lines(self) -> None:
        # Banner lines may follow noise; only text before the record is scanned
        kept: list[str] = []
        position = 0
        while True:
            newline = self._text.find("\n", position)
            if newline < 0:
                break
            line = self._text[position : newline + 1]
            position = newline + 1
            if line.strip().startswith(ProtocolConstants.INTRO_PREFIX):
                continue
            kept.append(line)
            if "[" in line:
                break
        if position:
            self._text = "".join(kept) + self._text[position:]

    def _extract(self) -> str | None:
        start = self._text.find("[")
        if start < 0:
            return None

        tail_start = self._text.rfind("\n") + 1
        if start >= tail_start and self._text[tail_start:].strip().startswith(ProtocolConstants.INTRO_PREFIX):
            # Unterminated banner line; wait for its newline
            return None

        depth = 0
        for index in range(start, len(self._text)):
            char = self._text[index]
            if char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
                if depth == 0:
                    payload = self._text[start : index + 1]
                    self._text = self._text[index + 1 :]
                    return payload
        return None

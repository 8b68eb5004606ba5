"""Byte-oriented reader for EDM recordings.

Operates on an in-memory bytes buffer with a byte cursor, a resettable byte
counter and a capture buffer holding the bytes of the record currently being
parsed. The capture buffer feeds both checksum verification and diagnostic
dumps.
"""

from __future__ import annotations

from typing import Optional

from edmtools.decoder.errors import UnexpectedEof


class ByteStream:
    """Sequential reader over an in-memory bytes buffer.

    ``read`` advances the cursor, the counter and the current-record capture.
    ``skip`` advances the cursor and the counter only; ``peek`` and
    ``reset`` touch neither.
    """

    __slots__ = ("_data", "_end", "_pos", "_mark", "_counter", "_current_record")

    def __init__(self, data: bytes, start: int = 0, end: Optional[int] = None) -> None:
        self._data = data
        self._end = end if end is not None else len(data)
        self._pos = start
        self._mark = start
        self._counter = 0
        self._current_record = bytearray()

    # ── properties ────────────────────────────────────────────────────

    @property
    def pos(self) -> int:
        return self._pos

    @property
    def end(self) -> int:
        return self._end

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def eof(self) -> bool:
        return self._pos >= self._end

    # ── reads ─────────────────────────────────────────────────────────

    def read(self) -> int:
        """Read one unsigned byte. Raises UnexpectedEof when drained."""
        if self._pos >= self._end:
            raise UnexpectedEof()
        result = self._data[self._pos]
        self._pos += 1
        self._counter += 1
        self._current_record.append(result)
        return result

    def read_word(self) -> int:
        """Read a big-endian unsigned 16-bit integer."""
        high = self.read()
        return (high << 8) | self.read()

    def peek(self, num_bytes: int) -> bytes:
        """Return the next ``num_bytes`` without consuming them."""
        self.mark()
        try:
            if self._pos + num_bytes > self._end:
                raise UnexpectedEof(f"Unexpected EOF peeking {num_bytes} bytes")
            return bytes(self._data[self._pos:self._pos + num_bytes])
        finally:
            self.reset()

    def mark(self) -> None:
        self._mark = self._pos

    def reset(self) -> None:
        """Return the cursor to the last mark. Counter and capture are untouched."""
        self._pos = self._mark

    def skip(self, num_bytes: int) -> None:
        """Advance past ``num_bytes`` that belong to no record."""
        if self._pos + num_bytes > self._end:
            self._pos = self._end
            raise UnexpectedEof(f"Unexpected EOF skipping {num_bytes} bytes")
        self._pos += num_bytes
        self._counter += num_bytes

    def skip_to_end(self) -> int:
        """Drain the buffer, returning the number of bytes passed over."""
        length = self._end - self._pos
        self._pos = self._end
        return length

    # ── counter ───────────────────────────────────────────────────────

    def reset_counter(self) -> None:
        self._counter = 0

    def get_counter(self) -> int:
        return self._counter

    counter = property(get_counter)

    # ── current record ────────────────────────────────────────────────

    def clear_current_record(self) -> None:
        self._current_record.clear()

    def get_current_record_bytes(self) -> bytes:
        return bytes(self._current_record)

    @property
    def current_record_size(self) -> int:
        return len(self._current_record)

    def current_record_hex(self) -> str:
        """Space separated hex dump of the current record."""
        return " ".join(f"{b:02X}" for b in self._current_record)

    def checksum_epilogue(self) -> Optional[str]:
        """Read the trailing checksum byte and verify the current record.

        The bytes of a record, checksum included, sum to zero mod 256.
        Returns a warning message on mismatch, otherwise None.
        """
        actual = self.read()
        if _record_checksum(self._current_record) == 0:
            return None
        expected = -sum(self._current_record[:-1]) & 0xFF
        return (f"Checksum mismatch actual {actual:02X} vs expected {expected:02X}: "
                f"{self.current_record_hex()}")


# ── utility functions ─────────────────────────────────────────────────

def _record_checksum(record: bytes) -> int:
    # TODO: firmware before 3.00 is reported to XOR the record bytes; add a
    # variant once a recording from such a unit is available.
    return -sum(record) & 0xFF


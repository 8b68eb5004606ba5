"""Fixed-width bit array addressed by byte and by bit.

Byte 0 holds the lowest-order bits; bit ``b`` lives in byte ``b // 8`` at
position ``b % 8``.
"""

from __future__ import annotations


class BitMask:
    """Mutable bit array backed by ``num_bytes`` bytes."""

    __slots__ = ("_data",)

    def __init__(self, num_bytes: int) -> None:
        self._data = bytearray(num_bytes)

    @property
    def num_bytes(self) -> int:
        return len(self._data)

    @property
    def num_bits(self) -> int:
        return len(self._data) * 8

    def clear(self) -> None:
        for i in range(len(self._data)):
            self._data[i] = 0

    # ── byte-level writes ─────────────────────────────────────────────

    def set_byte(self, index: int, value: int) -> None:
        """Store a whole byte. Index 0 contains the lowest-order bits."""
        self._data[index] = value & 0xFF

    def set_word(self, index: int, value: int) -> None:
        """Store a 16-bit value little-endian at bytes ``index`` and ``index + 1``."""
        self._data[index] = value & 0xFF
        self._data[index + 1] = (value >> 8) & 0xFF

    # ── bit-level access ──────────────────────────────────────────────

    def test_bit(self, bit_index: int) -> bool:
        return bool(self._data[bit_index // 8] & (1 << (bit_index % 8)))

    def set_bit(self, bit_index: int) -> None:
        self._data[bit_index // 8] |= 1 << (bit_index % 8)

    def clear_bit(self, bit_index: int) -> None:
        self._data[bit_index // 8] &= ~(1 << (bit_index % 8)) & 0xFF

    def extract_bits(self, start: int, end: int) -> int:
        """Return bits ``start..end`` (inclusive) as an integer.

        Bit ``end`` is the most significant. The assembled value carries one
        trailing zero bit, so bits 11 and 12 set give ``extract_bits(10, 13) == 12``.
        """
        result = 0
        for i in range(end, start - 1, -1):
            result |= 1 if self.test_bit(i) else 0
            result <<= 1
        return result

    def count_bits(self, start: int, end: int) -> int:
        """Population count over bits ``start..end`` (inclusive)."""
        return sum(1 for i in range(start, end + 1) if self.test_bit(i))

    def set_bits(self) -> list[int]:
        """Indexes of all set bits, lowest first."""
        return [i for i in range(self.num_bits) if self.test_bit(i)]

    def __str__(self) -> str:
        return " ".join(f"{b:08b}" for b in reversed(self._data))

    def __repr__(self) -> str:
        return f"BitMask({self})"

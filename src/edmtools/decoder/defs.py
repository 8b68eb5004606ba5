"""EDM recording constants and enums.

Byte layout constants for the `$` text header, the binary flight header and
the per-interval data records, plus the enums stored in decoded records.
"""

from __future__ import annotations

from enum import IntEnum, IntFlag

# ── text header ───────────────────────────────────────────────────────

HEADER_PREFIX = "$"
HEADER_POSTFIX = "*"
HEADER_ITEM_DELIMITER = ","
HEADER_LINE_TERMINATOR = b"\r\n"
# Maps every byte to one character, so header text round-trips unchanged.
HEADER_ENCODING = "latin-1"
MAX_HEADER_LINE_LENGTH = 128
MAX_NUM_HEADERS = 128

# ── data records ──────────────────────────────────────────────────────

# Value and sign flags span 16 bytes, enough for a 16-bit decode mask.
MAX_NUM_VALUE_BYTES = 16

# A payload byte of 0 means the channel is currently "not available".
NOT_AVAILABLE_VALUE_MARKER = 0

# Decode-mask bits whose value bytes only carry high-byte extensions and
# therefore have no sign byte of their own.
SIGNLESS_DECODE_BITS = frozenset({6, 7})

# Accumulator seed for a metric that has not been seen yet in a flight.
DEFAULT_METRIC_VALUE = 240

# Two decode masks plus the repeat count byte.
MIN_RECORD_SIZE_SINGLE_BYTE_MASK = 3
MIN_RECORD_SIZE_WORD_MASK = 5

# ── model / firmware gates ────────────────────────────────────────────

MODEL_EDM_760 = 760
MODEL_EDM_960 = 960
MODEL_EDM_900_SERIES = 900
FIRMWARE_V4_METRICS = 108
BUILD_EXTRA_CONFIG_WORD = 880


# ── versions ──────────────────────────────────────────────────────────

class Version(IntFlag):
    """Metric table generations, selected from the unit identity."""
    V1 = 0x01  # EDM < 900 without a protocol header
    V2 = 0x02  # EDM 760
    V3 = 0x04  # EDM >= 900, older firmware
    V4 = 0x08  # EDM >= 900 newer firmware, or EDM < 900 with a protocol header
    V5 = 0x10  # EDM 960


ALL_VERSIONS = Version.V1 | Version.V2 | Version.V3 | Version.V4 | Version.V5


# ── record enums ──────────────────────────────────────────────────────

class Mark(IntEnum):
    NOT_MARKED = 0
    MARKED = 1
    RICH_START = 2
    RICH_END = 3


class FuelFlowUnits(IntEnum):
    GPH = 1
    LPH = 2
    KPH = 3
    PPH = 4


class TemperatureUnit(IntEnum):
    CELSIUS = 1
    FAHRENHEIT = 2

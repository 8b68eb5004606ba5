"""EDM text header parser.

The recording starts with ASCII lines of the form ``$K,v1,v2,...*HH\\r\\n``
where ``K`` names the record kind and ``HH`` is the XOR of every byte between
``$`` and ``*``. The ``$L`` line ends the header; the first flight follows
immediately.

Records understood:

- ``A`` alarm thresholds
- ``C`` unit configuration (model, sensors, firmware/build numbers)
- ``D`` flight directory entry (flight number, length in 16-bit words)
- ``F`` fuel configuration
- ``P`` protocol version
- ``T`` download timestamp
- ``U`` aircraft registration
"""

from __future__ import annotations

import logging
from typing import Optional

from edmtools.decoder.bitmask import BitMask
from edmtools.decoder.defs import (
    HEADER_ENCODING,
    HEADER_ITEM_DELIMITER,
    HEADER_LINE_TERMINATOR,
    HEADER_POSTFIX,
    HEADER_PREFIX,
    MAX_HEADER_LINE_LENGTH,
    MAX_NUM_HEADERS,
    FuelFlowUnits,
    TemperatureUnit,
)
from edmtools.decoder.errors import FormatError
from edmtools.decoder.schema import (
    AlarmThresholds,
    Features,
    FlightMetadata,
    Fuel,
    Metadata,
)
from edmtools.decoder.sensors import parse_sensors
from edmtools.decoder.stream import ByteStream
from edmtools.units import header_to_unix_timestamp

logger = logging.getLogger(__name__)

# Bit of the high sensor word selecting Fahrenheit engine temperatures.
_FAHRENHEIT_BIT = 12


# ── line level ────────────────────────────────────────────────────────

def read_header_line(stream: ByteStream) -> str:
    """Read one CRLF-terminated line, without the terminator."""
    line = bytearray()
    for _ in range(MAX_HEADER_LINE_LENGTH):
        line.append(stream.read())
        if line.endswith(HEADER_LINE_TERMINATOR):
            return line[:-len(HEADER_LINE_TERMINATOR)].decode(HEADER_ENCODING)
    raise FormatError("Header input too large", bytes(line).decode(HEADER_ENCODING))


def header_checksum(data: str) -> int:
    """XOR of the bytes between ``$`` and ``*``."""
    checksum = 0
    for b in data.encode(HEADER_ENCODING):
        checksum ^= b
    return checksum


def split_header_line(line: str) -> tuple[list[str], Optional[str]]:
    """Validate one header line.

    Returns the trimmed items and, when the checksum does not match, a
    warning message. Raises FormatError for lines that are not headers.
    """
    parts = line.split(HEADER_POSTFIX)
    if len(parts) != 2:
        raise FormatError(f"Expected a checksum denoted with {HEADER_POSTFIX}", line)
    data, checksum_text = parts
    if not data.startswith(HEADER_PREFIX):
        raise FormatError(f"Expected line to begin with {HEADER_PREFIX}", line)
    data = data[len(HEADER_PREFIX):]

    try:
        actual = int(checksum_text, 16)
    except ValueError:
        raise FormatError("Checksum byte malformed", line) from None

    warning = None
    computed = header_checksum(data)
    if computed != actual:
        warning = f"Checksum mismatch actual {actual:02X} vs expected {computed:02X}: {data}"
    return [item.strip() for item in data.split(HEADER_ITEM_DELIMITER)], warning


# ── record level ──────────────────────────────────────────────────────

def _parse_alarm_thresholds(values: list[str]) -> AlarmThresholds:
    return AlarmThresholds(
        max_volts=float(values[0]) / 10,
        min_volts=float(values[1]) / 10,
        max_exhaust_gas_temperature_difference=int(values[2]),
        max_cylinder_head_temperature=int(values[3]),
        max_cylinder_head_temperature_cooling_rate=int(values[4]),
        max_exhaust_gas_temperature=int(values[5]),
        max_oil_temperature=int(values[6]),
        min_oil_temperature=int(values[7]),
    )


def _parse_fuel(values: list[str]) -> Fuel:
    return Fuel(
        # units are zero-based on disk
        fuel_flow_units=FuelFlowUnits(int(values[0]) + 1),
        full_quantity=int(values[1]),
        warning_quantity=int(values[2]),
        k_factor_1=int(values[3]),
        k_factor_2=int(values[4]),
    )


def _parse_features(values: list[str]) -> Features:
    low = int(values[1])
    high = int(values[2])
    units = BitMask(2)
    units.set_word(0, high)
    features = Features(
        model_number=int(values[0]),
        sensors=parse_sensors(low, high),
        engine_temperature_unit=(
            TemperatureUnit.FAHRENHEIT if units.test_bit(_FAHRENHEIT_BIT) else TemperatureUnit.CELSIUS
        ),
    )
    # values[3] is not interpreted. The version numbers always come last, but
    # models differ in what precedes them, so read the tail from the end.
    tail = list(reversed(values[4:]))
    if len(tail) > 3:
        features.beta_number = int(tail.pop(0))
        features.build_number = int(tail.pop(0))
    features.firmware_version = int(tail[0])
    return features


def parse_header_line(metadata: Metadata, items: list[str]) -> bool:
    """Apply one split header line to *metadata*.

    Returns False when the line ends the header section.
    """
    kind, values = items[0], items[1:]
    try:
        if kind == "A":
            metadata.alarm_thresholds = _parse_alarm_thresholds(values)

        elif kind == "C":
            metadata.features = _parse_features(values)

        elif kind == "D":
            metadata.flight_metadata.append(FlightMetadata(
                flight_number=int(values[0]),
                flight_data_length_words=int(values[1]),
            ))

        elif kind == "F":
            metadata.fuel = _parse_fuel(values)

        elif kind == "P":
            metadata.protocol_version = int(values[0])

        elif kind == "T":
            month, day, year, hour, minute = (int(v) for v in values[:5])
            metadata.download_timestamp = header_to_unix_timestamp(month, day, year, hour, minute)

        elif kind == "U":
            metadata.registration = values[0].replace("_", " ").strip()

        elif kind == "L":
            return False

        # E, H, I and W carry nothing the decoder needs.

    except (IndexError, ValueError) as e:
        raise FormatError(f"Malformed ${kind} header ({e})", ",".join(items)) from None

    return True


def parse_headers(stream: ByteStream) -> Metadata:
    """Read all header lines from the stream at its current position.

    Returns a populated Metadata. The stream is left positioned at the first
    flight header with its counter reset.
    """
    metadata = Metadata()
    stream.reset_counter()

    num_headers = 0
    while True:
        num_headers += 1
        items, warning = split_header_line(read_header_line(stream))
        if warning is not None:
            logger.warning(warning)
            metadata.parse_warning.append(warning)
        if not parse_header_line(metadata, items):
            break
        if num_headers == MAX_NUM_HEADERS:
            raise FormatError("Too many headers")

    metadata.length = stream.get_counter()
    stream.reset_counter()
    logger.debug("Parsed %d headers (%d bytes), %d flights",
                 num_headers, metadata.length, len(metadata.flight_metadata))
    return metadata

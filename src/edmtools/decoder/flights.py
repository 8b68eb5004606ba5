"""Per-flight binary decoding.

A flight block is a fixed binary header followed by data records until the
directory's length estimate is used up::

    flight_number sensors_low sensors_high [config config [config]]
    unknown interval packed_date packed_time checksum
    data_record*

The directory length is in 16-bit words and the blocks are not always
word-aligned, so when skipping a flight the next flight number may sit one
byte later than the estimate.
"""

from __future__ import annotations

import logging
from typing import Optional

from edmtools.decoder.defs import (
    BUILD_EXTRA_CONFIG_WORD,
    MIN_RECORD_SIZE_SINGLE_BYTE_MASK,
    MIN_RECORD_SIZE_WORD_MASK,
)
from edmtools.decoder.errors import FormatError
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.metrics import MetricTable
from edmtools.decoder.records import DataRecordParser
from edmtools.decoder.schema import DataRecord, Flight, FlightMetadata
from edmtools.decoder.sensors import parse_sensors
from edmtools.decoder.stream import ByteStream
from edmtools.units import packed_to_unix_timestamp

logger = logging.getLogger(__name__)


# ── flight header ─────────────────────────────────────────────────────

def parse_flight_header(stream: ByteStream, metadata: MetadataView, expected_flight_number: int) -> Flight:
    """Parse the binary header at the current stream position.

    The stream counter and current record are reset first, so afterwards
    ``header_length`` equals the counter.
    """
    stream.reset_counter()
    stream.clear_current_record()
    flight = Flight()

    flight.flight_number = stream.read_word()
    if flight.flight_number != expected_flight_number:
        warning = "Unexpected flight number %d (0x%04X) instead of expected %d (0x%04X)" % (
            flight.flight_number, flight.flight_number, expected_flight_number, expected_flight_number)
        logger.warning(warning)
        flight.parse_warning.append(warning)

    low = stream.read_word()
    high = stream.read_word()
    flight.sensors = parse_sensors(low, high)

    # undocumented configuration words
    if metadata.has_extra_flight_header_configuration:
        stream.read_word()
        stream.read_word()
        if metadata.is_build_number_at_least(BUILD_EXTRA_CONFIG_WORD):
            stream.read_word()
    stream.read_word()

    flight.recording_interval_secs = stream.read_word()
    packed_date = stream.read_word()
    packed_time = stream.read_word()
    try:
        flight.start_timestamp = packed_to_unix_timestamp(packed_date, packed_time)
    except ValueError as e:
        raise FormatError(f"Invalid flight start time ({e})", stream.current_record_hex()) from None

    warning = stream.checksum_epilogue()
    if warning is not None:
        logger.warning("Flight %d header: %s", flight.flight_number, warning)
        flight.parse_warning.append(warning)

    flight.header_length = stream.get_counter()
    return flight


# ── flight decoder ────────────────────────────────────────────────────

class FlightDecoder:
    """Decodes one directory entry's flight block from a shared stream."""

    def __init__(
        self,
        stream: ByteStream,
        flight_metadata: FlightMetadata,
        metadata: MetadataView,
        metric_table: Optional[MetricTable] = None,
    ) -> None:
        self.stream = stream
        self.flight_metadata = flight_metadata
        self.metadata = metadata
        self.metric_table = metric_table if metric_table is not None else MetricTable.for_metadata(metadata)

    @property
    def flight_number(self) -> int:
        return self.flight_metadata.flight_number

    @property
    def estimated_length_bytes(self) -> int:
        return self.flight_metadata.flight_data_length_words * 2

    @property
    def minimum_record_size(self) -> int:
        if self.metadata.decode_mask_is_single_byte:
            return MIN_RECORD_SIZE_SINGLE_BYTE_MASK
        return MIN_RECORD_SIZE_WORD_MASK

    def decode(self) -> Flight:
        """Parse the header and every data record."""
        flight = parse_flight_header(self.stream, self.metadata, self.flight_number)
        self._parse_data_records(flight)
        flight.data_length = self.stream.get_counter()
        logger.info("Flight %d: %d records, %d bytes, %d warnings",
                    flight.flight_number, len(flight.data), flight.data_length, len(flight.parse_warning))
        return flight

    def decode_header_and_skip_data(self) -> Flight:
        """Parse the header and position the stream at the next flight."""
        flight = parse_flight_header(self.stream, self.metadata, self.flight_number)
        flight.data_length = self._skip_data_records(flight)
        logger.debug("Skipped flight %d (%d bytes)", flight.flight_number, flight.data_length)
        return flight

    def _parse_data_records(self, flight: Flight) -> None:
        parser = DataRecordParser(self.metadata, self.stream, self.metric_table)
        previous: Optional[DataRecord] = None
        # strict: with only minimum_record_size bytes left no checksum byte fits
        while self.stream.get_counter() + self.minimum_record_size < self.estimated_length_bytes:
            record = parser.parse(previous)
            repeat_count = parser.previous_repeat_count
            if repeat_count:
                if previous is None:
                    warning = f"Ignoring repeat count {repeat_count} on the first record"
                    logger.warning("Flight %d: %s", flight.flight_number, warning)
                    flight.parse_warning.append(warning)
                else:
                    flight.data.extend([previous] * repeat_count)
            flight.data.append(record)
            previous = record

    def _skip_data_records(self, flight: Flight) -> int:
        """Skip to the next flight header; returns the number of bytes skipped."""
        if self.metadata.is_last_flight(self.flight_number):
            return self.stream.skip_to_end()

        num_skip = self.estimated_length_bytes - flight.header_length - 1
        if num_skip < 0:
            raise FormatError(
                f"Flight {self.flight_number} is shorter than its header",
                f"{self.estimated_length_bytes} < {flight.header_length}",
            )
        self.stream.skip(num_skip)

        next_flight_number = self.metadata.get_next_flight_number(self.flight_number)
        peek = self.stream.peek(3)
        if (peek[0] << 8 | peek[1]) != next_flight_number:
            if (peek[1] << 8 | peek[2]) != next_flight_number:
                raise FormatError(
                    f"Could not find next flight header {next_flight_number}",
                    " ".join(f"{b:02X}" for b in peek),
                )
            # the next header starts one byte later than the estimate
            self.stream.skip(1)
            num_skip += 1
        return num_skip

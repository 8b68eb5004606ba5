"""Tests for edmtools.decoder.flights – flight headers and per-flight decoding."""

import pytest

from edmtools.decoder.errors import FormatError
from edmtools.decoder.flights import FlightDecoder, parse_flight_header
from edmtools.decoder.headers import parse_headers
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.stream import ByteStream

from tests.builders import (
    START_TIMESTAMP,
    data_record,
    flight_block,
    flight_header,
    recording,
    text_header,
)
from tests.conftest import make_view


def open_recording(data):
    """Stream positioned at the first flight, plus its metadata view."""
    stream = ByteStream(data)
    return stream, MetadataView(parse_headers(stream))


class TestFlightHeader:
    def test_basic(self, edm830):
        stream = ByteStream(flight_header(7, sensors=(0x0001, 0x0000), interval=2))
        flight = parse_flight_header(stream, edm830, 7)
        assert flight.flight_number == 7
        assert flight.sensors.voltage
        assert flight.recording_interval_secs == 2
        assert flight.start_timestamp == START_TIMESTAMP
        assert flight.header_length == 15
        assert flight.parse_warning == []

    def test_unexpected_flight_number(self, edm830):
        stream = ByteStream(flight_header(7))
        flight = parse_flight_header(stream, edm830, 8)
        assert flight.flight_number == 7
        assert flight.parse_warning == [
            "Unexpected flight number 7 (0x0007) instead of expected 8 (0x0008)"
        ]

    def test_extra_configuration_words(self, edm900):
        stream = ByteStream(flight_header(1, extra_words=2))
        flight = parse_flight_header(stream, edm900, 1)
        assert flight.header_length == 19
        assert flight.start_timestamp == START_TIMESTAMP

    def test_extra_configuration_word_for_new_builds(self):
        view = make_view(model=900, firmware=108, build=880)
        stream = ByteStream(flight_header(1, extra_words=3))
        flight = parse_flight_header(stream, view, 1)
        assert flight.header_length == 21
        assert flight.parse_warning == []

    def test_checksum_mismatch(self, edm830):
        data = bytearray(flight_header(1))
        data[-1] ^= 0xFF
        flight = parse_flight_header(ByteStream(bytes(data)), edm830, 1)
        assert len(flight.parse_warning) == 1
        assert flight.parse_warning[0].startswith("Checksum mismatch")

    def test_invalid_date(self, edm830):
        stream = ByteStream(flight_header(1, start=(2023, 0, 13, 10, 20, 30)))
        with pytest.raises(FormatError):
            parse_flight_header(stream, edm830, 1)

    def test_resets_counter(self, edm830):
        stream = ByteStream(b"\x00" + flight_header(1))
        stream.read()
        flight = parse_flight_header(stream, edm830, 1)
        assert flight.header_length == 15
        assert stream.get_counter() == 15


class TestDecodeFlight:
    def test_records(self):
        block = flight_block(1, [{0: 10, 8: 5}, {0: 5}, {8: -5}])
        stream, view = open_recording(recording([(1, block)]))
        flight = FlightDecoder(stream, view.flights[0], view).decode()

        assert flight.flight_number == 1
        assert [r.engine[0].exhaust_gas_temperature[0] for r in flight.data] == [250, 255, 255]
        assert [r.engine[0].cylinder_head_temperature[0] for r in flight.data] == [245, 245, 240]
        assert flight.header_length == 15
        assert flight.data_length == len(block)
        assert stream.eof

    def test_no_records(self):
        block = flight_block(1, [])
        stream, view = open_recording(recording([(1, block)]))
        flight = FlightDecoder(stream, view.flights[0], view).decode()
        assert flight.data == []
        assert flight.data_length == 15

    def test_repeat_count(self):
        block = flight_header(1) + data_record({0: 10}) + data_record({0: 5}, repeat=2)
        stream, view = open_recording(recording([(1, block)]))
        flight = FlightDecoder(stream, view.flights[0], view).decode()

        assert [r.engine[0].exhaust_gas_temperature[0] for r in flight.data] == [250, 250, 250, 255]
        assert flight.data[1] == flight.data[0]
        assert flight.parse_warning == []

    def test_repeat_count_on_first_record(self):
        block = flight_header(1) + data_record({0: 10}, repeat=3)
        stream, view = open_recording(recording([(1, block)]))
        flight = FlightDecoder(stream, view.flights[0], view).decode()

        assert len(flight.data) == 1
        assert len(flight.parse_warning) == 1
        assert "repeat count 3" in flight.parse_warning[0]

    def test_word_decode_mask(self):
        block = flight_block(1, [{0: 10, 64: 7}, {64: 1}], single_byte_mask=False, extra_words=2)
        stream, view = open_recording(recording([(1, block)], model=900, firmware=108, protocol=2))
        flight = FlightDecoder(stream, view.flights[0], view).decode()
        assert [r.amperage for r in flight.data] == [[247], [248]]
        assert stream.eof

    def test_stops_when_only_minimum_record_size_remains(self):
        # 29 bytes of flight data, 3 left over inside the 16-word estimate
        block = flight_block(1, [{0: 10}, {0: 1}])
        data = text_header([(1, 16)]) + block + b"\x00\x00\x00"
        stream, view = open_recording(data)
        flight = FlightDecoder(stream, view.flights[0], view).decode()
        assert len(flight.data) == 2
        assert flight.data_length == len(block)
        assert stream.end - stream.pos == 3

    def test_consecutive_flights_share_the_stream(self):
        first = flight_block(1, [{0: 10}])
        second = flight_block(2, [{0: 20}, {0: 1}])
        stream, view = open_recording(recording([(1, first), (2, second)]))
        flights = [FlightDecoder(stream, entry, view).decode() for entry in view.flights]
        assert [len(f.data) for f in flights] == [1, 2]
        # state does not leak between flights
        assert flights[1].data[0].engine[0].exhaust_gas_temperature == [260]


class TestSkipFlight:
    @pytest.mark.parametrize("num_records", [1, 2])
    def test_alignment(self, num_records):
        # 15 + 7n bytes: even for one record, odd for two
        first = flight_block(1, [{0: 10}] * num_records)
        second = flight_block(2, [{0: 20}])
        stream, view = open_recording(recording([(1, first), (2, second)]))

        skipped = FlightDecoder(stream, view.flights[0], view).decode_header_and_skip_data()
        assert skipped.flight_number == 1
        assert skipped.data == []
        assert skipped.header_length + skipped.data_length == len(first)
        assert skipped.parse_warning == []

        flight = FlightDecoder(stream, view.flights[1], view).decode()
        assert flight.flight_number == 2
        assert flight.parse_warning == []
        assert flight.data[0].engine[0].exhaust_gas_temperature == [260]

    def test_last_flight_skips_to_end(self):
        block = flight_block(1, [{0: 10}, {0: 1}])
        stream, view = open_recording(recording([(1, block)]))
        flight = FlightDecoder(stream, view.flights[0], view).decode_header_and_skip_data()
        assert flight.data_length == len(block) - flight.header_length
        assert stream.eof

    def test_next_flight_not_found(self):
        first = flight_block(1, [{0: 10}])
        second = flight_block(2, [{0: 20}])
        # directory claims two words more than the block holds
        data = text_header([(1, len(first) // 2 + 2), (2, len(second) // 2)]) + first + second
        stream, view = open_recording(data)
        with pytest.raises(FormatError) as exc_info:
            FlightDecoder(stream, view.flights[0], view).decode_header_and_skip_data()
        assert "next flight header" in exc_info.value.reason

    def test_flight_shorter_than_header(self):
        data = text_header([(1, 2), (2, 10)]) + flight_header(1) + flight_header(2)
        stream, view = open_recording(data)
        with pytest.raises(FormatError):
            FlightDecoder(stream, view.flights[0], view).decode_header_and_skip_data()

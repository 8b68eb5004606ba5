"""Integration tests for edmtools.decoder.edmlog – end-to-end decoding."""

import math
import os

import numpy as np
import pytest

from edmtools.decoder.defs import Mark
from edmtools.decoder.edmlog import (
    DecoderConfig,
    EdmLog,
    decode,
    flight_to_dataframe,
    record_to_dict,
)
from edmtools.decoder.schema import DataRecord, EngineDataRecord, Flight
from edmtools.decoder.stream import ByteStream

from tests.builders import START_TIMESTAMP, flight_block, recording

SAMPLES_DIR = os.path.join(os.path.dirname(__file__), "..", "samples")
SAMPLE_EDM830 = os.path.join(SAMPLES_DIR, "edm830.jpi")


def _skip_if_missing(path):
    if not os.path.isfile(path):
        pytest.skip(f"Sample file not found: {path}")


def three_flights():
    return recording([
        (1, flight_block(1, [{0: 10}])),
        (2, flight_block(2, [{0: 20}, {15: 5}])),
        (3, flight_block(3, [{0: 30}, {0: 1}, {0: 1}])),
    ])


@pytest.fixture
def jpi_path(tmp_path):
    path = tmp_path / "recording.jpi"
    path.write_bytes(three_flights())
    return path


class TestDecoderConfig:
    def test_defaults_select_everything(self):
        config = DecoderConfig()
        assert config.selects(1)
        assert config.selects(65535)

    def test_for_flight(self):
        config = DecoderConfig.for_flight(7)
        assert config.selects(7)
        assert not config.selects(6)
        assert not config.selects(8)

    def test_open_ended_range(self):
        config = DecoderConfig(start_flight_number=5)
        assert not config.selects(4)
        assert config.selects(500)


class TestDecode:
    def test_all_flights(self):
        jpi_file = decode(ByteStream(three_flights()))
        assert [f.flight_number for f in jpi_file.flight] == [1, 2, 3]
        assert [len(f.data) for f in jpi_file.flight] == [1, 2, 3]
        assert jpi_file.metadata.features.model_number == 830

    def test_flight_range(self):
        config = DecoderConfig(start_flight_number=2, end_flight_number=3)
        jpi_file = decode(ByteStream(three_flights()), config)
        assert [f.flight_number for f in jpi_file.flight] == [2, 3]
        assert jpi_file.flight[0].data[0].engine[0].exhaust_gas_temperature == [260]

    def test_single_flight_in_the_middle(self):
        jpi_file = decode(ByteStream(three_flights()), DecoderConfig.for_flight(2))
        assert [f.flight_number for f in jpi_file.flight] == [2]
        assert len(jpi_file.flight[0].data) == 2

    def test_headers_only(self):
        jpi_file = decode(ByteStream(three_flights()), DecoderConfig(headers_only=True))
        assert [f.flight_number for f in jpi_file.flight] == [1, 2, 3]
        assert all(f.data == [] for f in jpi_file.flight)
        assert all(f.start_timestamp == START_TIMESTAMP for f in jpi_file.flight)

    def test_missing_flight(self):
        jpi_file = decode(ByteStream(three_flights()), DecoderConfig.for_flight(9))
        assert jpi_file.flight == []


class TestEdmLog:
    def test_metadata(self, jpi_path):
        log = EdmLog(jpi_path)
        assert log.flight_numbers == [1, 2, 3]
        assert log.metadata.registration == "N12345"

    def test_decode_flight(self, jpi_path):
        flight = EdmLog(jpi_path).decode_flight(3)
        assert flight.flight_number == 3
        assert [r.engine[0].exhaust_gas_temperature[0] for r in flight.data] == [270, 271, 272]

    def test_decode_unknown_flight(self, jpi_path):
        with pytest.raises(KeyError):
            EdmLog(jpi_path).decode_flight(4)

    def test_to_dataframe(self, jpi_path):
        df = EdmLog(jpi_path).to_dataframe(2)
        assert list(df.columns[:2]) == ["timestamp", "engine[0].exhaust_gas_temperature[0]"]
        assert list(df["timestamp"]) == [START_TIMESTAMP, START_TIMESTAMP + 6]
        assert list(df["engine[0].exhaust_gas_temperature[0]"]) == [260, 260]
        assert math.isnan(df["engine[0].oil_temperature"][0])
        assert df["engine[0].oil_temperature"][1] == 245


class TestDataFrame:
    def test_record_to_dict(self):
        record = DataRecord(
            engine=[EngineDataRecord(exhaust_gas_temperature=[1300, 1320], rpm=2400)],
            voltage=[14.1],
            mark=Mark.RICH_START,
            parse_warning=["ignored"],
        )
        assert record_to_dict(record) == {
            "engine[0].exhaust_gas_temperature[0]": 1300,
            "engine[0].exhaust_gas_temperature[1]": 1320,
            "engine[0].rpm": 2400,
            "voltage[0]": 14.1,
            "mark": 2,
        }

    def test_empty_flight(self):
        assert flight_to_dataframe(Flight(flight_number=1)).empty

    def test_timestamps(self):
        flight = Flight(flight_number=1, start_timestamp=1000, recording_interval_secs=2,
                        data=[DataRecord(voltage=[12.0])] * 3)
        df = flight_to_dataframe(flight)
        assert df["timestamp"].dtype == np.int64
        assert list(df["timestamp"]) == [1000, 1002, 1004]
        assert list(df["voltage[0]"]) == [12.0, 12.0, 12.0]


class TestToRow:
    def test_canonical_row(self):
        record = DataRecord(
            engine=[EngineDataRecord(
                exhaust_gas_temperature=[1300, 1320],
                cylinder_head_temperature=[350, 360],
                oil_temperature=180,
                max_exhaust_gas_temperature_difference=20,
                cylinder_head_temperature_cooling_rate=-2,
                fuel_flow=[12.5],
                fuel_used=[3.4],
                rpm=2400,
                manifold_pressure=24.1,
                horsepower=65,
                oil_pressure=55,
                hours=123.4,
            )],
            voltage=[14.1],
            outside_air_temperature=12,
            mark=Mark.RICH_END,
        )
        assert record.to_row() == [
            "1300", "1320", "350", "360", "180", "20", "-2", "12", "14.1",
            "12.5", "3.4", "2400", "24.1", "65", "55", "123.4", "]",
        ]

    def test_unset_values(self):
        row = DataRecord().to_row()
        assert row == [""] * 13


class TestGolden:
    """Decoded flights against the instrument's own CSV export."""

    @pytest.mark.parametrize("flight_number", [45, 72])
    def test_edm830(self, flight_number):
        golden_path = os.path.join(SAMPLES_DIR, f"edm830.{flight_number}.txt")
        _skip_if_missing(SAMPLE_EDM830)
        _skip_if_missing(golden_path)

        golden = []
        with open(golden_path) as f:
            for line in f:
                parts = [p.strip() for p in line.split(",")]
                if len(parts) != 29 or parts[0] == "Date":
                    continue
                golden.append(parts[2:26] + [parts[28]])

        flight = EdmLog(SAMPLE_EDM830).decode_flight(flight_number)
        assert len(flight.data) == len(golden)
        for i, (expected, record) in enumerate(zip(golden, flight.data)):
            actual = record.to_row()
            assert len(actual) == len(expected), f"record {i}"
            for column, (want, got) in enumerate(zip(expected[:-1], actual[:-1])):
                assert float(want) == pytest.approx(float(got)), f"record {i} column {column}"
            assert expected[-1] == actual[-1], f"record {i} mark"

"""High-level API for loading and decoding EDM recordings.

Usage:
    from edmtools.decoder import EdmLog

    log = EdmLog("path/to/recording.jpi")
    print(f"Found {len(log.flight_numbers)} flights in file")

    df = log.to_dataframe(log.flight_numbers[0])
    print(df.head())
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

import numpy as np
import pandas as pd

from edmtools.decoder.flights import FlightDecoder
from edmtools.decoder.headers import parse_headers
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.metrics import MetricTable
from edmtools.decoder.schema import DataRecord, Flight, JpiFile, Metadata
from edmtools.decoder.stream import ByteStream

logger = logging.getLogger(__name__)


@dataclass
class DecoderConfig:
    """Which flights to decode, and how much of them.

    Flights outside ``start_flight_number..end_flight_number`` (inclusive,
    either end open when None) are still header-parsed to find the next
    flight, but are not returned.
    """
    headers_only: bool = False
    start_flight_number: Optional[int] = None
    end_flight_number: Optional[int] = None

    @classmethod
    def for_flight(cls, flight_number: int, headers_only: bool = False) -> DecoderConfig:
        return cls(headers_only=headers_only,
                   start_flight_number=flight_number,
                   end_flight_number=flight_number)

    def selects(self, flight_number: int) -> bool:
        if self.start_flight_number is not None and flight_number < self.start_flight_number:
            return False
        if self.end_flight_number is not None and flight_number > self.end_flight_number:
            return False
        return True


def decode(stream: ByteStream, config: Optional[DecoderConfig] = None) -> JpiFile:
    """Decode a whole recording from the stream's current position."""
    if config is None:
        config = DecoderConfig()

    metadata = parse_headers(stream)
    view = MetadataView(metadata)
    metric_table = MetricTable.for_metadata(view)
    logger.info("Model %d firmware %d build %d: %d flights",
                view.model_number, view.firmware_version, view.build_number, len(view.flights))

    jpi_file = JpiFile(metadata=metadata)
    for flight_metadata in view.flights:
        decoder = FlightDecoder(stream, flight_metadata, view, metric_table)
        if not config.selects(flight_metadata.flight_number):
            decoder.decode_header_and_skip_data()
            continue
        if config.headers_only:
            flight = decoder.decode_header_and_skip_data()
        else:
            flight = decoder.decode()
        jpi_file.flight.append(flight)
    return jpi_file


class EdmLog:
    """An EDM recording file holding one or more flights."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)
        self._data = self.path.read_bytes()
        self.metadata: Metadata = parse_headers(ByteStream(self._data))

    @property
    def flight_numbers(self) -> list[int]:
        return [entry.flight_number for entry in self.metadata.flight_metadata]

    def decode(self, config: Optional[DecoderConfig] = None) -> JpiFile:
        return decode(ByteStream(self._data), config)

    def decode_flight(self, flight_number: int) -> Flight:
        """Decode one flight. Raises KeyError when it is not in the directory."""
        if flight_number not in self.flight_numbers:
            raise KeyError(f"Flight number {flight_number} not found")
        return self.decode(DecoderConfig.for_flight(flight_number)).flight[0]

    def to_dataframe(self, flight_number: int) -> pd.DataFrame:
        """Convenience: decode one flight + convert to pandas DataFrame."""
        return flight_to_dataframe(self.decode_flight(flight_number))


# ── DataFrame export ──────────────────────────────────────────────────

def record_to_dict(record: DataRecord) -> dict[str, Any]:
    """Flatten a record into ``{path: value}`` for every set field."""
    row: dict[str, Any] = {}
    _flatten(record, "", row)
    return row


def _flatten(obj: Any, prefix: str, row: dict[str, Any]) -> None:
    for f in dataclasses.fields(obj):
        if f.name == "parse_warning":
            continue
        name = prefix + f.name
        value = getattr(obj, f.name)
        if isinstance(value, list):
            for i, item in enumerate(value):
                if dataclasses.is_dataclass(item):
                    _flatten(item, f"{name}[{i}].", row)
                else:
                    row[f"{name}[{i}]"] = item
        elif isinstance(value, Enum):
            row[name] = value.value
        elif value is not None:
            row[name] = value


def flight_to_dataframe(flight: Flight) -> pd.DataFrame:
    """One row per data record, with a ``timestamp`` column in Unix seconds.

    Columns are named after record paths (``engine[0].rpm``, ``voltage[0]``);
    values a record does not carry are NaN.
    """
    if not flight.data:
        return pd.DataFrame()

    df = pd.DataFrame([record_to_dict(record) for record in flight.data])
    interval = flight.recording_interval_secs or 0
    timestamps = np.arange(len(flight.data), dtype=np.int64) * interval + (flight.start_timestamp or 0)
    df.insert(0, "timestamp", timestamps)
    return df

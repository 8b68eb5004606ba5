"""EDM data record parser.

Each recording interval is stored as a delta against the previous one::

    decode_mask decode_mask repeat value_bytes sign_bytes payload checksum

The decode mask (8 or 16 bits, written twice) says which value bytes follow.
Every set bit across the value bytes names one metric (see
:mod:`edmtools.decoder.metrics`) and is matched by one payload byte: an
unsigned delta, negated when the corresponding sign bit is set. A payload
byte of 0 marks the channel "not available".
"""

from __future__ import annotations

import copy
import logging
from enum import Enum
from typing import Optional

import numpy as np

from edmtools.decoder.bitmask import BitMask
from edmtools.decoder.defs import (
    MAX_NUM_VALUE_BYTES,
    NOT_AVAILABLE_VALUE_MARKER,
    SIGNLESS_DECODE_BITS,
)
from edmtools.decoder.errors import FormatError
from edmtools.decoder.fields import FieldAddressor
from edmtools.decoder.metadata import MetadataView
from edmtools.decoder.metrics import Metric, MetricTable
from edmtools.decoder.schema import DataRecord
from edmtools.decoder.stream import ByteStream

logger = logging.getLogger(__name__)

ZERO_VALUE_BYTE_WARNING = "value byte is 00. Don't know how many bytes to read."


class DataRecordParser:
    """Stateful decoder for the data records of one flight.

    The parser keeps the last known value of every channel currently marked
    "not available". Such channels are presented cleared (unset, or 0 for
    repeated fields) and resume from the remembered value once data returns.
    """

    def __init__(
        self,
        metadata: MetadataView,
        stream: ByteStream,
        metric_table: Optional[MetricTable] = None,
    ) -> None:
        self.metadata = metadata
        self.stream = stream
        self.metric_table = metric_table if metric_table is not None else MetricTable.for_metadata(metadata)

        # The decode mask is at most 16 bits wide, one value/sign byte per bit.
        self.value_flags = BitMask(MAX_NUM_VALUE_BYTES)
        self.sign_flags = BitMask(MAX_NUM_VALUE_BYTES)

        self.previous_repeat_count = 0
        self.na_values: dict[Metric, np.float32] = {}

    # ── record decode ─────────────────────────────────────────────────

    def parse(self, previous: Optional[DataRecord]) -> DataRecord:
        """Decode the next record, starting from a copy of *previous*.

        After returning, :attr:`previous_repeat_count` says how many extra
        copies of *previous* precede the returned record.
        """
        self.value_flags.clear()
        self.sign_flags.clear()
        self.previous_repeat_count = 0
        self.stream.clear_current_record()

        record = copy.deepcopy(previous) if previous is not None else DataRecord()
        record.parse_warning = []

        fields = FieldAddressor(record)
        for bit_index in self._read_flags(record):
            self._apply_delta(fields, record, bit_index, self.stream.read())
        update_exhaust_gas_temperature_spread(record)

        checksum_warning = self.stream.checksum_epilogue()
        if checksum_warning is not None:
            logger.debug(checksum_warning)
            record.parse_warning.append(checksum_warning)

        logger.debug("Parsed %d record bytes [%s]",
                     self.stream.current_record_size, self.stream.current_record_hex())
        return record

    def _read_flags(self, record: DataRecord) -> list[int]:
        """Read the decode masks, repeat count, value and sign bytes.

        Returns the set bit indexes of the value flags, lowest first.
        """
        single_byte = self.metadata.decode_mask_is_single_byte
        read_mask = self.stream.read if single_byte else self.stream.read_word

        decode_mask = read_mask()
        second_decode_mask = read_mask()
        if decode_mask != second_decode_mask:
            raise FormatError(
                f"Expected decode mask {decode_mask:02X} to appear twice",
                self.stream.current_record_hex(),
            )
        logger.debug("Decode mask is %04X", decode_mask)

        self.previous_repeat_count = self.stream.read()

        num_decode_bits = 8 if single_byte else 16
        for i in range(num_decode_bits):
            if decode_mask & (1 << i):
                value_byte = self.stream.read()
                if value_byte == 0:
                    record.parse_warning.append(ZERO_VALUE_BYTE_WARNING)
                self.value_flags.set_byte(i, value_byte)
                logger.debug("Value byte %d is %02X", i, value_byte)

        for i in range(num_decode_bits):
            if i not in SIGNLESS_DECODE_BITS and decode_mask & (1 << i):
                sign_byte = self.stream.read()
                self.sign_flags.set_byte(i, sign_byte)
                logger.debug("Sign byte %d is %02X", i, sign_byte)

        return self.value_flags.set_bits()

    def _apply_delta(self, fields: FieldAddressor, record: DataRecord, bit_index: int, value: int) -> None:
        metric = self.metric_table.get(bit_index)
        if metric is None:
            raise FormatError(f"Unmapped bit {bit_index}", self.stream.current_record_hex())
        if metric.is_unsupported():
            record.parse_warning.append(f"Unexpected value for {metric}")
            return

        if value == NOT_AVAILABLE_VALUE_MARKER:
            # valid -> not available; an unset field resumes from its default
            if metric not in self.na_values and fields.has(metric.proto_path):
                self.na_values[metric] = self._existing_value_or_default(fields, metric)
                fields.clear(metric.proto_path)
            return
        if metric in self.na_values:
            # not available -> valid; the delta applies to the remembered value
            fields.set(metric.proto_path, self.na_values.pop(metric))

        # high bytes take the sign of their low byte
        delta = -value if self.sign_flags.test_bit(metric.low_byte_bit) else value
        if metric.is_high_byte_bit(bit_index):
            delta <<= 8
        scaled = metric.scale(delta, self.metadata.is_gallons_per_hour)

        existing = self._existing_value_or_default(fields, metric)
        logger.debug("Updating %s = %s + %s", metric.proto_path, existing, scaled)
        new_value = existing + scaled
        try:
            fields.set(metric.proto_path, new_value)
        except ValueError:
            record.parse_warning.append(f"Value {new_value} out of range for {metric.proto_path}")

    def _existing_value_or_default(self, fields: FieldAddressor, metric: Metric) -> np.float32:
        if fields.has(metric.proto_path):
            value = fields.get(metric.proto_path)
            if isinstance(value, Enum):
                value = value.value
            return np.float32(value)
        return metric.default_value(self.metadata.is_gallons_per_hour)


def update_exhaust_gas_temperature_spread(record: DataRecord) -> None:
    """Set each engine's EGT spread (hottest minus coolest probe)."""
    for engine in record.engine:
        if engine.exhaust_gas_temperature:
            engine.max_exhaust_gas_temperature_difference = (
                max(engine.exhaust_gas_temperature) - min(engine.exhaust_gas_temperature)
            )

"""Decode-mask bit to record field mapping.

Every bit of the value flags in a data record names one metric: the low or
the high byte of a field in :class:`~edmtools.decoder.schema.DataRecord`.
Which metric a bit belongs to depends on the unit generation (see
:func:`version_selector`).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, TYPE_CHECKING

import numpy as np

from edmtools.decoder.defs import (
    ALL_VERSIONS,
    DEFAULT_METRIC_VALUE,
    FIRMWARE_V4_METRICS,
    MODEL_EDM_760,
    MODEL_EDM_900_SERIES,
    MODEL_EDM_960,
    Version,
)
from edmtools.decoder.errors import TableBuildError
from edmtools.decoder.fields import resolve_type
from edmtools.decoder.schema import DataRecord

if TYPE_CHECKING:
    from edmtools.decoder.metadata import MetadataView

UNSUPPORTED_METRIC = ""


class ScaleFactor(Enum):
    TEN = "ten"
    TEN_IF_GPH = "ten_if_gph"


@dataclass(frozen=True)
class Metric:
    """One decodable quantity.

    ``low_byte_bit`` carries a signed 8-bit delta to the field. When
    ``high_byte_bit`` is set, that bit carries a delta to the high byte
    (``delta << 8``), signed by the low byte's sign flag.
    """
    version_mask: int
    low_byte_bit: int
    high_byte_bit: Optional[int]
    proto_path: str
    scale_factor: Optional[ScaleFactor] = None

    def is_unsupported(self) -> bool:
        return self.proto_path == UNSUPPORTED_METRIC

    def is_high_byte_bit(self, bit_index: int) -> bool:
        return self.high_byte_bit is not None and self.high_byte_bit == bit_index

    def bits(self) -> tuple[int, ...]:
        if self.high_byte_bit is None:
            return (self.low_byte_bit,)
        return (self.low_byte_bit, self.high_byte_bit)

    def scale(self, value: float, gallons_per_hour: bool) -> np.float32:
        value = np.float32(value)
        if self.scale_factor is None:
            return value
        if self.scale_factor is ScaleFactor.TEN_IF_GPH and not gallons_per_hour:
            return value
        return value / np.float32(10.0)

    def default_value(self, gallons_per_hour: bool) -> np.float32:
        # horsepower of the first engine is the one field seeded at zero
        if self.proto_path == "engine[0].horsepower":
            return np.float32(0)
        return self.scale(DEFAULT_METRIC_VALUE, gallons_per_hour)


V1, V2, V3, V4, V5 = Version.V1, Version.V2, Version.V3, Version.V4, Version.V5
TEN = ScaleFactor.TEN
TEN_IF_GPH = ScaleFactor.TEN_IF_GPH

# (versions, low byte bit, high byte bit, path[, scale])
METRICS: tuple[Metric, ...] = (
    # bytes 0 and 6
    Metric(V1 | V2 | V3 | V4 | V5, 0, 48, "engine[0].exhaust_gas_temperature[0]"),
    Metric(V1 | V2 | V3 | V4 | V5, 1, 49, "engine[0].exhaust_gas_temperature[1]"),
    Metric(V1 | V2 | V3 | V4 | V5, 2, 50, "engine[0].exhaust_gas_temperature[2]"),
    Metric(V1 | V2 | V3 | V4 | V5, 3, 51, "engine[0].exhaust_gas_temperature[3]"),
    Metric(V1 | V2 | V3 | V4 | V5, 4, 52, "engine[0].exhaust_gas_temperature[4]"),
    Metric(V1 | V2 | V3 | V4 | V5, 5, 53, "engine[0].exhaust_gas_temperature[5]"),
    Metric(V1 | V2 | V3 | V4 | V5, 6, 54, "engine[0].turbine_inlet_temperature[0]"),
    Metric(V1 | V2 | V3 | V4 | V5, 7, 55, "engine[0].turbine_inlet_temperature[1]"),

    # byte 1
    Metric(V1 | V2 | V3 | V4 | V5, 8, None, "engine[0].cylinder_head_temperature[0]"),
    Metric(V1 | V2 | V3 | V4 | V5, 9, None, "engine[0].cylinder_head_temperature[1]"),
    Metric(V1 | V2 | V3 | V4 | V5, 10, None, "engine[0].cylinder_head_temperature[2]"),
    Metric(V1 | V2 | V3 | V4 | V5, 11, None, "engine[0].cylinder_head_temperature[3]"),
    Metric(V1 | V2 | V3 | V4 | V5, 12, None, "engine[0].cylinder_head_temperature[4]"),
    Metric(V1 | V2 | V3 | V4 | V5, 13, None, "engine[0].cylinder_head_temperature[5]"),
    Metric(V1 | V2 | V3 | V4 | V5, 14, None, "engine[0].cylinder_head_temperature_cooling_rate"),
    Metric(V1 | V2 | V3 | V4 | V5, 15, None, "engine[0].oil_temperature"),

    # byte 2
    Metric(V1 | V2 | V3 | V4 | V5, 16, None, "mark"),
    Metric(V1 | V3 | V4 | V5, 17, None, "engine[0].oil_pressure"),
    Metric(V1 | V2 | V3 | V4 | V5, 18, None, "engine[0].compressor_discharge_temperature"),
    Metric(V1 | V3 | V4 | V5, 19, None, "engine[0].induction_air_temperature"),
    Metric(V2, 19, None, "engine[1].manifold_pressure", TEN),
    Metric(V1 | V2 | V3 | V4 | V5, 20, None, "voltage[0]", TEN),
    Metric(V1 | V2 | V3 | V4 | V5, 21, None, "outside_air_temperature"),
    Metric(V1 | V2 | V3 | V4 | V5, 22, None, "engine[0].fuel_used[0]", TEN_IF_GPH),
    Metric(V1 | V2 | V3 | V4 | V5, 23, None, "engine[0].fuel_flow[0]", TEN_IF_GPH),

    # bytes 3 and 7
    Metric(V1 | V3 | V4, 24, 56, "engine[0].exhaust_gas_temperature[6]"),
    Metric(V2 | V5, 24, 56, "engine[1].exhaust_gas_temperature[0]"),
    Metric(V1 | V3 | V4, 25, 57, "engine[0].exhaust_gas_temperature[7]"),
    Metric(V2 | V5, 25, 57, "engine[1].exhaust_gas_temperature[1]"),
    Metric(V1 | V3 | V4, 26, 58, "engine[0].exhaust_gas_temperature[8]"),
    Metric(V2 | V5, 26, 58, "engine[1].exhaust_gas_temperature[2]"),
    Metric(V1 | V3 | V4, 27, None, "engine[0].cylinder_head_temperature[6]"),
    Metric(V2 | V5, 27, 59, "engine[1].exhaust_gas_temperature[3]"),
    Metric(V1 | V3 | V4, 28, None, "engine[0].cylinder_head_temperature[7]"),
    Metric(V2 | V5, 28, 60, "engine[1].exhaust_gas_temperature[4]"),
    Metric(V1 | V3 | V4, 29, None, "engine[0].cylinder_head_temperature[8]"),
    Metric(V2 | V5, 29, 61, "engine[1].exhaust_gas_temperature[5]"),
    Metric(V1 | V3 | V4, 30, None, "engine[0].horsepower"),
    Metric(V2 | V5, 30, 62, "engine[1].turbine_inlet_temperature[0]"),
    Metric(V2 | V5, 31, 63, "engine[1].turbine_inlet_temperature[1]"),

    # byte 4
    Metric(V2 | V5, 32, None, "engine[1].cylinder_head_temperature[0]"),
    Metric(V2 | V5, 33, None, "engine[1].cylinder_head_temperature[1]"),
    Metric(V2 | V5, 34, None, "engine[1].cylinder_head_temperature[2]"),
    Metric(V2 | V5, 35, None, "engine[1].cylinder_head_temperature[3]"),
    Metric(V2 | V5, 36, None, "engine[1].cylinder_head_temperature[4]"),
    Metric(V2 | V5, 37, None, "engine[1].cylinder_head_temperature[5]"),
    Metric(V2 | V5, 38, None, "engine[1].cylinder_head_temperature_cooling_rate"),
    Metric(V2 | V5, 39, None, "engine[1].oil_temperature"),

    # byte 5
    Metric(V1 | V2 | V3 | V4 | V5, 40, None, "engine[0].manifold_pressure", TEN),
    Metric(V1 | V2 | V3 | V4 | V5, 41, 42, "engine[0].rpm"),
    Metric(V2 | V5, 43, 44, "engine[1].rpm"),
    Metric(V4, 44, None, "engine[0].hydraulic_pressure[1]"),
    Metric(V2 | V5, 45, None, "engine[1].compressor_discharge_temperature"),
    Metric(V4, 45, None, "engine[0].hydraulic_pressure[0]"),
    Metric(V2 | V5, 46, None, "engine[1].fuel_used[0]", TEN_IF_GPH),
    Metric(V4, 46, None, "engine[0].fuel_flow[1]", TEN_IF_GPH),
    Metric(V4, 47, None, "engine[0].fuel_used[1]", TEN_IF_GPH),
    Metric(V2 | V5, 47, None, "engine[1].fuel_flow[0]", TEN_IF_GPH),

    # byte 8
    Metric(V3 | V4 | V5, 64, None, "amperage[0]"),
    Metric(V3 | V4 | V5, 65, None, "voltage[1]", TEN),
    Metric(V3 | V4 | V5, 66, None, "amperage[1]"),
    Metric(V3 | V4, 67, None, "engine[1].fuel_level[0]", TEN_IF_GPH),
    Metric(V5, 67, None, "engine[0].fuel_level[0]", TEN_IF_GPH),
    Metric(V3 | V4, 68, None, "engine[0].fuel_level[0]", TEN_IF_GPH),
    Metric(V5, 68, None, "engine[0].fuel_level[1]", TEN_IF_GPH),
    Metric(V3 | V4 | V5, 69, None, "engine[0].fuel_pressure", TEN),
    Metric(V5, 70, None, "engine[0].horsepower"),
    Metric(V4, 71, None, UNSUPPORTED_METRIC, TEN_IF_GPH),  # left aux level?
    Metric(V5, 71, None, "engine[0].fuel_level[2]", TEN_IF_GPH),

    # byte 9
    Metric(V4 | V5, 72, 76, UNSUPPORTED_METRIC, TEN),  # left ng?
    Metric(V4 | V5, 73, 77, UNSUPPORTED_METRIC),  # left np?
    Metric(V4 | V5, 74, None, "engine[0].torque"),
    Metric(V4 | V5, 75, None, UNSUPPORTED_METRIC),  # left itt, no high byte?
    Metric(V4 | V5, 78, 79, "engine[0].hours", TEN),

    # byte 10
    Metric(V4, 84, None, UNSUPPORTED_METRIC, TEN_IF_GPH),  # right aux level?

    # byte 11
    Metric(V5, 88, None, "engine[1].manifold_pressure", TEN),
    Metric(V5, 89, None, "engine[1].horsepower"),
    Metric(V5, 90, None, "engine[1].induction_air_temperature"),
    Metric(V5, 91, None, "engine[1].fuel_level[0]", TEN_IF_GPH),
    Metric(V5, 92, None, "engine[1].fuel_level[1]", TEN_IF_GPH),
    Metric(V5, 93, None, "engine[1].fuel_pressure", TEN),
    Metric(V5, 94, None, "engine[1].oil_pressure", TEN),
    Metric(V5, 95, None, "engine[1].fuel_level[2]", TEN_IF_GPH),

    # byte 12
    Metric(V5, 96, 100, UNSUPPORTED_METRIC, TEN),  # right ng?
    Metric(V5, 97, 101, UNSUPPORTED_METRIC),  # right np?
    Metric(V5, 98, None, "engine[1].torque"),
    Metric(V5, 99, None, UNSUPPORTED_METRIC),  # right itt, no high byte?
    Metric(V5, 102, 103, "engine[1].hours", TEN),

    # byte 13
    Metric(V5, 104, 108, "engine[0].exhaust_gas_temperature[6]"),
    Metric(V5, 105, 109, "engine[0].exhaust_gas_temperature[7]"),
    Metric(V5, 106, 110, "engine[0].exhaust_gas_temperature[8]"),
    Metric(V5, 107, None, "engine[1].fuel_flow[1]", TEN_IF_GPH),
    Metric(V5, 111, None, "engine[0].hydraulic_pressure[0]"),

    # byte 14
    Metric(V5, 112, 116, "engine[1].exhaust_gas_temperature[6]"),
    Metric(V5, 113, 117, "engine[1].exhaust_gas_temperature[7]"),
    Metric(V5, 114, 118, "engine[1].exhaust_gas_temperature[6]"),
    Metric(V5, 115, None, "engine[1].fuel_flow[1]", TEN_IF_GPH),
    Metric(V5, 119, None, "engine[1].hydraulic_pressure[0]"),

    # byte 15
    Metric(V5, 120, None, "engine[0].cylinder_head_temperature[6]"),
    Metric(V5, 121, None, "engine[0].cylinder_head_temperature[7]"),
    Metric(V5, 122, None, "engine[0].cylinder_head_temperature[8]"),
    Metric(V5, 123, None, "engine[0].hydraulic_pressure[1]"),
    Metric(V5, 124, None, "engine[1].cylinder_head_temperature[6]"),
    Metric(V5, 125, None, "engine[1].cylinder_head_temperature[7]"),
    Metric(V5, 126, None, "engine[1].cylinder_head_temperature[8]"),
    Metric(V5, 127, None, "engine[1].hydraulic_pressure[1]"),
)


# ── version selection ─────────────────────────────────────────────────

def version_selector(metadata: MetadataView) -> Version:
    """Pick the metric generation for a unit; the first matching rule wins."""
    if metadata.is_model_number(MODEL_EDM_760):
        return Version.V2
    if metadata.is_model_number(MODEL_EDM_960):
        return Version.V5
    if metadata.is_model_number_at_least(MODEL_EDM_900_SERIES):
        if metadata.is_firmware_version_at_least(FIRMWARE_V4_METRICS):
            return Version.V4
        return Version.V3
    if metadata.has_protocol_header:
        return Version.V4
    return Version.V1


# ── table ─────────────────────────────────────────────────────────────

class MetricTable:
    """Immutable map from decode-mask bit index to the metric it updates."""

    def __init__(self, version: Version, metrics: tuple[Metric, ...] = METRICS) -> None:
        if not version & ALL_VERSIONS:
            raise TableBuildError(f"Unknown metric version {version!r}")
        self.version = version
        table: dict[int, Metric] = {}
        for metric in metrics:
            if not metric.version_mask & version:
                continue
            if not metric.is_unsupported() and resolve_type(DataRecord, metric.proto_path) is None:
                raise TableBuildError(f"Metric {metric} names no record field")
            for bit in metric.bits():
                if bit in table:
                    raise TableBuildError(
                        f"Bit {bit} claimed by both {table[bit]} and {metric} for {version!r}")
                table[bit] = metric
        self._table = table

    @classmethod
    def for_metadata(cls, metadata: MetadataView) -> MetricTable:
        return cls(version_selector(metadata))

    def get(self, bit_index: int) -> Optional[Metric]:
        return self._table.get(bit_index)

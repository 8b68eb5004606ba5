"""Decoded recording data structures.

Scalar fields default to None ("not set"); repeated fields default to an
empty list. Field annotations are the schema consulted by
:class:`edmtools.decoder.fields.FieldAddressor`, so integer and float fields
must be declared precisely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from edmtools.decoder.defs import FuelFlowUnits, Mark, TemperatureUnit


# ── unit configuration ────────────────────────────────────────────────

@dataclass
class Sensors:
    """Which probes the unit was configured with."""
    voltage: bool = False
    num_exhaust_gas_temperature: int = 0
    num_cylinder_head_temperature: int = 0
    oil_temperature: bool = False
    turbine_inlet_temperature_1: bool = False
    turbine_inlet_temperature_2: bool = False
    compressor_discharge_temperature: bool = False
    induction_air_temperature: bool = False
    outside_air_temperature: bool = False
    rpm: bool = False
    fuel_flow: bool = False
    manifold_pressure: bool = False


@dataclass
class AlarmThresholds:
    max_volts: Optional[float] = None
    min_volts: Optional[float] = None
    max_exhaust_gas_temperature_difference: Optional[int] = None
    max_cylinder_head_temperature: Optional[int] = None
    max_cylinder_head_temperature_cooling_rate: Optional[int] = None
    max_exhaust_gas_temperature: Optional[int] = None
    max_oil_temperature: Optional[int] = None
    min_oil_temperature: Optional[int] = None


@dataclass
class Fuel:
    fuel_flow_units: Optional[FuelFlowUnits] = None
    full_quantity: Optional[int] = None
    warning_quantity: Optional[int] = None
    k_factor_1: Optional[int] = None
    k_factor_2: Optional[int] = None


@dataclass
class Features:
    model_number: Optional[int] = None
    sensors: Sensors = field(default_factory=Sensors)
    engine_temperature_unit: Optional[TemperatureUnit] = None
    firmware_version: Optional[int] = None
    build_number: Optional[int] = None
    beta_number: Optional[int] = None


@dataclass
class FlightMetadata:
    """One `$D` directory entry."""
    flight_number: int
    flight_data_length_words: int


@dataclass
class Metadata:
    """Everything parsed from the text header section."""
    alarm_thresholds: AlarmThresholds = field(default_factory=AlarmThresholds)
    features: Features = field(default_factory=Features)
    fuel: Fuel = field(default_factory=Fuel)
    flight_metadata: list[FlightMetadata] = field(default_factory=list)
    protocol_version: Optional[int] = None
    download_timestamp: Optional[int] = None
    registration: Optional[str] = None
    # header bytes consumed, i.e. the offset of the first flight
    length: int = 0
    parse_warning: list[str] = field(default_factory=list)


# ── flight data ───────────────────────────────────────────────────────

@dataclass
class EngineDataRecord:
    exhaust_gas_temperature: list[int] = field(default_factory=list)
    cylinder_head_temperature: list[int] = field(default_factory=list)
    turbine_inlet_temperature: list[int] = field(default_factory=list)
    oil_temperature: Optional[int] = None
    oil_pressure: Optional[int] = None
    compressor_discharge_temperature: Optional[int] = None
    induction_air_temperature: Optional[int] = None
    manifold_pressure: Optional[float] = None
    rpm: Optional[int] = None
    horsepower: Optional[int] = None
    fuel_used: list[float] = field(default_factory=list)
    fuel_flow: list[float] = field(default_factory=list)
    fuel_level: list[float] = field(default_factory=list)
    fuel_pressure: Optional[float] = None
    hours: Optional[float] = None
    torque: Optional[int] = None
    hydraulic_pressure: list[int] = field(default_factory=list)
    cylinder_head_temperature_cooling_rate: Optional[int] = None
    max_exhaust_gas_temperature_difference: Optional[int] = None


@dataclass
class DataRecord:
    """One recording interval."""
    engine: list[EngineDataRecord] = field(default_factory=list)
    voltage: list[float] = field(default_factory=list)
    amperage: list[int] = field(default_factory=list)
    outside_air_temperature: Optional[int] = None
    mark: Optional[Mark] = None
    parse_warning: list[str] = field(default_factory=list)

    def to_row(self, engine_index: int = 0) -> list[str]:
        """Canonical single-engine text rendering.

        Columns: EGT..., CHT..., oil temperature, EGT spread, CHT cooling
        rate, OAT, voltage, fuel flow, fuel used, RPM, MAP, HP, oil pressure,
        hours, mark. Unset values render as empty strings.
        """
        engine = self.engine[engine_index] if engine_index < len(self.engine) else EngineDataRecord()
        row = [_fmt(v) for v in engine.exhaust_gas_temperature]
        row += [_fmt(v) for v in engine.cylinder_head_temperature]
        row += [
            _fmt(engine.oil_temperature),
            _fmt(engine.max_exhaust_gas_temperature_difference),
            _fmt(engine.cylinder_head_temperature_cooling_rate),
            _fmt(self.outside_air_temperature),
            _fmt(_first(self.voltage)),
            _fmt(_first(engine.fuel_flow)),
            _fmt(_first(engine.fuel_used)),
            _fmt(engine.rpm),
            _fmt(engine.manifold_pressure),
            _fmt(engine.horsepower),
            _fmt(engine.oil_pressure),
            _fmt(engine.hours),
            MARK_SYMBOLS.get(self.mark if self.mark is not None else Mark.NOT_MARKED, ""),
        ]
        return row


@dataclass
class Flight:
    flight_number: Optional[int] = None
    start_timestamp: Optional[int] = None
    recording_interval_secs: Optional[int] = None
    sensors: Sensors = field(default_factory=Sensors)
    header_length: int = 0
    data_length: int = 0
    data: list[DataRecord] = field(default_factory=list)
    parse_warning: list[str] = field(default_factory=list)


@dataclass
class JpiFile:
    metadata: Metadata = field(default_factory=Metadata)
    flight: list[Flight] = field(default_factory=list)


# Symbols the instrument's own CSV export uses in its mark column.
MARK_SYMBOLS = {
    Mark.NOT_MARKED: "",
    Mark.MARKED: "X",
    Mark.RICH_START: "[",
    Mark.RICH_END: "]",
}


def _first(values: list) -> Optional[object]:
    return values[0] if values else None


def _fmt(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float):
        return f"{value:.1f}"
    return str(int(value))

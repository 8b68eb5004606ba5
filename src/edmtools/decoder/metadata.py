"""Read-only questions the binary decoder asks about the text header."""

from __future__ import annotations

from typing import Optional

from edmtools.decoder.defs import (
    MODEL_EDM_760,
    MODEL_EDM_900_SERIES,
    MODEL_EDM_960,
    FuelFlowUnits,
)
from edmtools.decoder.schema import FlightMetadata, Metadata


class MetadataView:
    """Façade over a parsed :class:`Metadata` record."""

    def __init__(self, metadata: Metadata) -> None:
        self.metadata = metadata

    # ── identity ──────────────────────────────────────────────────────

    @property
    def model_number(self) -> int:
        return self.metadata.features.model_number or 0

    @property
    def firmware_version(self) -> int:
        return self.metadata.features.firmware_version or 0

    @property
    def build_number(self) -> int:
        return self.metadata.features.build_number or 0

    @property
    def has_protocol_header(self) -> bool:
        return self.metadata.protocol_version is not None

    def is_model_number(self, model_number: int) -> bool:
        return self.model_number == model_number

    def is_model_number_at_least(self, model_number: int) -> bool:
        return self.model_number >= model_number

    def is_firmware_version_at_least(self, version: int) -> bool:
        return self.firmware_version >= version

    def is_build_number_at_least(self, build_number: int) -> bool:
        return self.build_number >= build_number

    # ── format gates ──────────────────────────────────────────────────

    @property
    def has_extra_flight_header_configuration(self) -> bool:
        return self.has_protocol_header or self.is_model_number_at_least(MODEL_EDM_900_SERIES)

    @property
    def decode_mask_is_single_byte(self) -> bool:
        return not self.has_protocol_header and not self.is_model_number_at_least(MODEL_EDM_900_SERIES)

    @property
    def is_twin_engine(self) -> bool:
        return self.is_model_number(MODEL_EDM_760) or self.is_model_number(MODEL_EDM_960)

    @property
    def is_gallons_per_hour(self) -> bool:
        return self.metadata.fuel.fuel_flow_units == FuelFlowUnits.GPH

    # ── flight directory ──────────────────────────────────────────────

    @property
    def flights(self) -> list[FlightMetadata]:
        return self.metadata.flight_metadata

    def find_flight_index(self, flight_number: int) -> int:
        """Position of ``flight_number`` in the directory. Raises KeyError."""
        for i, entry in enumerate(self.metadata.flight_metadata):
            if entry.flight_number == flight_number:
                return i
        raise KeyError(f"Flight {flight_number} not found")

    def get_next_flight_number(self, flight_number: int) -> Optional[int]:
        """Directory successor of ``flight_number``, or None for the last flight."""
        index = self.find_flight_index(flight_number)
        if index + 1 >= len(self.metadata.flight_metadata):
            return None
        return self.metadata.flight_metadata[index + 1].flight_number

    def is_last_flight(self, flight_number: int) -> bool:
        if not self.metadata.flight_metadata:
            return False
        return self.metadata.flight_metadata[-1].flight_number == flight_number

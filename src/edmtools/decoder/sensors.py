"""Sensor configuration words from the `$C` header and each flight header.

Bit layout of the 32-bit mask (low word first)::

    -m-- fpai r2to eeee eeee eccc cccc cc-b

b = battery voltage, c = CHT probes, e = EGT probes, o = oil temperature,
t/2 = TIT 1/2, r = CDT, i = IAT, a = OAT, p = RPM, f = fuel flow,
m = manifold pressure. Bits 1, 28, 29 and 31 are not interpreted.
"""

from __future__ import annotations

from edmtools.decoder.bitmask import BitMask
from edmtools.decoder.schema import Sensors

_FLAG_BITS = {
    20: "oil_temperature",
    21: "turbine_inlet_temperature_1",
    22: "turbine_inlet_temperature_2",
    23: "compressor_discharge_temperature",
    24: "induction_air_temperature",
    25: "outside_air_temperature",
    26: "rpm",
    27: "fuel_flow",
}


def parse_sensors(low: int, high: int) -> Sensors:
    """Decode the two 16-bit sensor words into a :class:`Sensors` record."""
    mask = BitMask(4)
    mask.set_word(0, low)
    mask.set_word(2, high)

    sensors = Sensors(
        voltage=mask.test_bit(0),
        num_cylinder_head_temperature=mask.count_bits(2, 10),
        num_exhaust_gas_temperature=mask.count_bits(11, 19),
        manifold_pressure=mask.test_bit(30),
    )
    for bit, name in _FLAG_BITS.items():
        if mask.test_bit(bit):
            setattr(sensors, name, True)
    return sensors

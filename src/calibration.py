"""
calibration.py

Linear two-point calibration for 4-20 mA pressure sensors read through
an ADS1115. The raw reading at 4 mA maps to the low pressure and the
raw reading at 20 mA maps to the high pressure.
"""
from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MIN_RAW = 2090.0   # Reading at 4 mA (no pressure)
DEFAULT_MAX_RAW = 10630.0  # Reading at 20 mA (full scale, 10 bar for this sensor)
DEFAULT_LOW = 0.0          # Pressure in bar at 4 mA
DEFAULT_HIGH = 10.0        # Pressure in bar at 20 mA

# Full-scale voltage of PGA setting 000
REFERENCE_VOLTAGE = 6.144


@dataclass(frozen=True)
class Calibration:
    slope: float
    intercept: float

    @classmethod
    def from_points(cls, min_raw: float, max_raw: float, low: float, high: float) -> Calibration:
        """Build the mapping from the two calibration points.

        min_raw == max_raw raises ZeroDivisionError; callers validate first.
        """
        slope = (high - low) / (max_raw - min_raw)
        return cls(slope=slope, intercept=slope * min_raw)

    def pressure(self, raw: float) -> float:
        """Convert a raw sample to pressure, never below 0.0."""
        return max(0.0, self.slope * raw - self.intercept)


def volts_per_step(max_raw: float, reference_voltage: float = REFERENCE_VOLTAGE) -> float:
    # only used for the verbose voltage readout
    return reference_voltage / max_raw

"""Light-time solution and correction terms."""

from tracking_od.light_time.corrections import (
    FirstOrderRelativisticCorrection,
    LightTimeCorrection,
    TroposphericCorrection,
)
from tracking_od.light_time.solver import LightTimeCalculator, LightTimeSolution

__all__ = [
    "FirstOrderRelativisticCorrection",
    "LightTimeCalculator",
    "LightTimeCorrection",
    "LightTimeSolution",
    "TroposphericCorrection",
]

"""Capture settings sent to the peripheral for each sweep cell.

The numeric limits below are calibration constants of the peripheral's
sensor, not user options:

- manual shutter: 4 < val < 16383 (the grid clamps to [4, 16343])
- manual analog gain: 0 <= val <= 248
- manual colour gains: 0 <= val <= 1023, fixed at 128 during a sweep
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Tuple

from framesweep.errors import ArgumentError

# JPEG quality levels selectable by quality index
QUALITY_LEVELS: Tuple[int, ...] = (10, 25, 50, 100)

SHUTTER_MIN = 4
SHUTTER_MAX = 16383
SHUTTER_CLAMP_MAX = 16343
GAIN_MIN = 0
GAIN_MAX = 248
COLOUR_GAIN_MAX = 1023
DEFAULT_COLOUR_GAIN = 128


class MeteringMode(IntEnum):
    SPOT = 0
    CENTER_WEIGHTED = 1
    AVERAGE = 2


@dataclass(frozen=True)
class AutoExposureProfile:
    """Fixed auto-exposure/gain profile used when auto exposure is selected."""
    run_count: int = 5             # times the AE/gain algorithm runs before capture
    run_interval_ms: int = 100     # 0 <= val <= 255
    metering: MeteringMode = MeteringMode.CENTER_WEIGHTED
    exposure: float = 0.18         # 0.0 <= val <= 1.0
    exposure_speed: float = 0.5    # 0.0 <= val <= 1.0
    shutter_limit: int = SHUTTER_MAX
    analog_gain_limit: int = GAIN_MAX
    white_balance_speed: float = 0.5


DEFAULT_AUTO_EXPOSURE = AutoExposureProfile()


@dataclass(frozen=True)
class CaptureSettings:
    quality_index: int
    auto_exposure: bool
    gain: int
    shutter: int
    red_gain: int = DEFAULT_COLOUR_GAIN
    green_gain: int = DEFAULT_COLOUR_GAIN
    blue_gain: int = DEFAULT_COLOUR_GAIN
    auto_profile: Optional[AutoExposureProfile] = field(default=None)

    def __post_init__(self):
        if not 0 <= self.quality_index < len(QUALITY_LEVELS):
            raise ArgumentError(f"quality_index out of range: {self.quality_index}")
        if not GAIN_MIN <= self.gain <= GAIN_MAX:
            raise ArgumentError(f"gain out of range [{GAIN_MIN}, {GAIN_MAX}]: {self.gain}")
        if not SHUTTER_MIN <= self.shutter <= SHUTTER_MAX:
            raise ArgumentError(f"shutter out of range [{SHUTTER_MIN}, {SHUTTER_MAX}]: {self.shutter}")
        for name in ("red_gain", "green_gain", "blue_gain"):
            value = getattr(self, name)
            if not 0 <= value <= COLOUR_GAIN_MAX:
                raise ArgumentError(f"{name} out of range [0, {COLOUR_GAIN_MAX}]: {value}")
        if self.auto_exposure and self.auto_profile is None:
            raise ArgumentError("auto_exposure requires an auto-exposure profile")

    @property
    def quality_level(self) -> int:
        return QUALITY_LEVELS[self.quality_index]

    @classmethod
    def for_cell(cls, cell, quality_index: int = 0, auto_exposure: bool = False,
                 profile: AutoExposureProfile = DEFAULT_AUTO_EXPOSURE) -> "CaptureSettings":
        """
        Build the settings for one grid cell.

        The cell's gain/shutter are always recorded; with auto exposure the
        peripheral ignores them and runs the fixed profile instead.
        """
        return cls(
            quality_index=quality_index,
            auto_exposure=auto_exposure,
            gain=cell.gain,
            shutter=cell.shutter,
            auto_profile=profile if auto_exposure else None,
        )

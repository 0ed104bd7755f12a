import pytest

from framesweep.camera.settings import (
    DEFAULT_AUTO_EXPOSURE,
    QUALITY_LEVELS,
    CaptureSettings,
    MeteringMode,
)
from framesweep.errors import ArgumentError
from framesweep.pipeline.grid import GridCell


def test_for_cell_copies_gain_and_shutter():
    settings = CaptureSettings.for_cell(GridCell(1, 2, 124, 256), quality_index=3)

    assert (settings.gain, settings.shutter) == (124, 256)
    assert settings.quality_level == QUALITY_LEVELS[3] == 100
    assert not settings.auto_exposure


def test_auto_profile_constants():
    profile = DEFAULT_AUTO_EXPOSURE
    assert profile.run_count == 5
    assert profile.run_interval_ms == 100
    assert profile.metering is MeteringMode.CENTER_WEIGHTED
    assert (profile.exposure, profile.exposure_speed, profile.white_balance_speed) == (0.18, 0.5, 0.5)
    assert (profile.shutter_limit, profile.analog_gain_limit) == (16383, 248)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"gain": 249},
        {"gain": -1},
        {"shutter": 3},
        {"shutter": 16384},
        {"quality_index": 4},
        {"red_gain": 1024},
        {"auto_exposure": True},
    ],
)
def test_out_of_range_settings_are_rejected(kwargs):
    base = {"quality_index": 0, "auto_exposure": False, "gain": 0, "shutter": 4}
    base.update(kwargs)
    with pytest.raises(ArgumentError):
        CaptureSettings(**base)

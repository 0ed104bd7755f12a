from .decoder import PLACEHOLDER_SIZE, PhotoDecoder, make_placeholder
from .settings import (
    DEFAULT_AUTO_EXPOSURE,
    QUALITY_LEVELS,
    AutoExposureProfile,
    CaptureSettings,
    MeteringMode,
)

__all__ = [
    "PhotoDecoder",
    "make_placeholder",
    "PLACEHOLDER_SIZE",
    "CaptureSettings",
    "AutoExposureProfile",
    "MeteringMode",
    "DEFAULT_AUTO_EXPOSURE",
    "QUALITY_LEVELS",
]

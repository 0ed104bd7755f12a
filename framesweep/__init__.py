"""
framesweep: exposure calibration sweeps for a remote camera peripheral.

Drives the peripheral through an analog-gain x shutter grid, one capture
per cell, and tiles the photos into a single mosaic for inspection.
"""

from framesweep.config import SweepConfig
from framesweep.errors import (
    ArgumentError,
    CancelledError,
    DecodeError,
    SweepError,
    TransportError,
)
from framesweep.pipeline import SweepController

__version__ = "0.1.0"

__all__ = [
    "SweepConfig",
    "SweepController",
    "SweepError",
    "TransportError",
    "DecodeError",
    "ArgumentError",
    "CancelledError",
]

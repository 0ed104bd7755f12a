"""
Pipeline package for the camera calibration sweep.

This package contains the components responsible for:
- Generating the gain x shutter parameter grid (grid)
- Capturing one photo per grid cell over the transport (sequencer)
- Tiling the captures into a single mosaic (compositor)
- Managing the whole sweep and its state for the presentation layer (controller)
"""

from .grid import GridCell, ParameterGridGenerator
from .sequencer import CaptureResult, CaptureSequencer, CaptureStatus
from .compositor import GridCompositor, Mosaic
from .controller import SweepController, SweepProgress, SweepReport

__all__ = [
    "GridCell",
    "ParameterGridGenerator",
    "CaptureResult",
    "CaptureSequencer",
    "CaptureStatus",
    "GridCompositor",
    "Mosaic",
    "SweepController",
    "SweepProgress",
    "SweepReport",
]

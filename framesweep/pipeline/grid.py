import math
from dataclasses import dataclass
from typing import List

from framesweep.camera.settings import GAIN_MAX, SHUTTER_CLAMP_MAX, SHUTTER_MAX, SHUTTER_MIN
from framesweep.errors import ArgumentError


@dataclass(frozen=True)
class GridCell:
    """One (gain, shutter) coordinate of the sweep; row/col also locate it in the mosaic."""
    row: int
    col: int
    gain: int
    shutter: int

    def index(self, size: int) -> int:
        return self.row * size + self.col


class ParameterGridGenerator:
    """
    Produces the size x size exposure grid in row-major order.

    Rows step the analog gain linearly over [0, 248]; columns step the
    shutter logarithmically from 4 to 16383 (clamped to 16343), since
    sensor response scales with log exposure time.
    """

    @staticmethod
    def shutter_for(col: int, size: int) -> int:
        min_log = math.log(SHUTTER_MIN)
        max_log = math.log(SHUTTER_MAX)
        log_shutter = min_log + col * (max_log - min_log) / (size - 1)
        return min(max(round(math.exp(log_shutter)), SHUTTER_MIN), SHUTTER_CLAMP_MAX)

    @staticmethod
    def gain_for(row: int, size: int) -> int:
        return row * GAIN_MAX // (size - 1)

    def generate(self, size: int) -> List[GridCell]:
        if not isinstance(size, int) or size < 2:
            raise ArgumentError(f"Grid size must be an integer >= 2, got {size!r}")

        shutters = [self.shutter_for(col, size) for col in range(size)]
        cells = []
        for row in range(size):
            gain = self.gain_for(row, size)
            for col in range(size):
                cells.append(GridCell(row=row, col=col, gain=gain, shutter=shutters[col]))
        return cells

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

from framesweep.errors import ArgumentError, SweepError


@dataclass
class Mosaic:
    """
    Assembled sweep image plus its shareable encoded form.

    `image` may be released once the mosaic only needs to be shared;
    `data` and the geometry stay.
    """
    image: Optional[np.ndarray]
    data: bytes
    size: int
    cell_width: int
    cell_height: int
    mime_type: str = "image/jpeg"

    @property
    def width(self) -> int:
        return self.size * self.cell_width

    @property
    def height(self) -> int:
        return self.size * self.cell_height

    def release_image(self):
        self.image = None


class GridCompositor:
    """
    Tiles equally sized cell bitmaps into a size x size mosaic.

    Cell i of the input lands at row i // size, column i % size, i.e. the
    same row-major order the parameter grid is generated in.
    """

    def __init__(self, jpeg_quality: int = 90):
        self.log = logging.getLogger("GridCompositor")
        self.jpeg_quality = jpeg_quality

    def compose(self, cells: Sequence[np.ndarray], size: int) -> Mosaic:
        if size < 1 or len(cells) != size * size:
            raise ArgumentError(f"Expected {size * size} cells for a {size}x{size} mosaic, got {len(cells)}")

        shape = cells[0].shape
        for index, cell in enumerate(cells):
            if cell is None or cell.shape != shape:
                got = None if cell is None else cell.shape
                raise ArgumentError(f"Cell {index} has shape {got}, expected {shape}")

        cell_h, cell_w = shape[:2]
        mosaic = np.zeros((size * cell_h, size * cell_w) + shape[2:], dtype=cells[0].dtype)

        for index, cell in enumerate(cells):
            i, j = divmod(index, size)
            y, x = i * cell_h, j * cell_w
            mosaic[y:y + cell_h, x:x + cell_w] = cell

        self.log.info(f"Composed {size}x{size} mosaic of {cell_w}x{cell_h} cells -> {mosaic.shape[1]}x{mosaic.shape[0]}")
        return Mosaic(
            image=mosaic,
            data=self.encode(mosaic),
            size=size,
            cell_width=cell_w,
            cell_height=cell_h,
        )

    def encode(self, image: np.ndarray) -> bytes:
        ok, encoded = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise SweepError("JPEG encoding of mosaic failed")
        return encoded.tobytes()


def blank_like(reference: np.ndarray) -> np.ndarray:
    return np.zeros_like(reference)


def fit_cells(bitmaps: List[np.ndarray], ok_mask: List[bool]) -> Tuple[List[np.ndarray], List[int]]:
    """
    Make every cell match the first successfully decoded cell's size.

    Failed cells become blanks of that size. Decoded cells of a different
    size are blanked too, and their indexes are returned so the caller can
    record them as failed. If every cell failed the placeholders are
    already uniform and left untouched.
    """
    reference = next((b for b, ok in zip(bitmaps, ok_mask) if ok), None)
    if reference is None:
        return list(bitmaps), []

    cells, mismatched = [], []
    for index, (bitmap, ok) in enumerate(zip(bitmaps, ok_mask)):
        if ok and bitmap.shape == reference.shape:
            cells.append(bitmap)
            continue
        if ok:
            mismatched.append(index)
        cells.append(blank_like(reference))
    return cells, mismatched

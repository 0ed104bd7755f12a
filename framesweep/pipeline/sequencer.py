import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from framesweep.camera.decoder import PLACEHOLDER_SIZE, PhotoDecoder, make_placeholder
from framesweep.camera.settings import DEFAULT_AUTO_EXPOSURE, AutoExposureProfile, CaptureSettings
from framesweep.errors import CancelledError, DecodeError, TransportError
from framesweep.fsm import CaptureFSM
from framesweep.pipeline.grid import GridCell
from framesweep.transport.base import CaptureTransport


class CaptureStatus(Enum):
    OK = "ok"
    FAILED = "failed"


@dataclass
class CaptureResult:
    """Outcome of one grid cell. Failed cells still carry a placeholder bitmap."""
    cell: GridCell
    status: CaptureStatus
    bitmap: np.ndarray
    reason: Optional[str] = None
    elapsed_ms: float = 0.0
    payload_size: int = 0

    @property
    def ok(self) -> bool:
        return self.status is CaptureStatus.OK


class CaptureSequencer:
    """
    Drives one capture round-trip per grid cell over a half-duplex transport.

    For each cell:
    - send the capture settings
    - wait for exactly one payload, with the listener torn down afterwards
    - decode it, substituting a blank placeholder on any failure

    Results come back in cell order. A failing cell never aborts the sweep.
    Cancellation is only honoured between cells and raises CancelledError
    carrying the partial results.
    """

    def __init__(
        self,
        decoder: PhotoDecoder = None,
        payload_timeout: float = 3.0,
        quality_index: int = 0,
        auto_exposure: bool = False,
        auto_profile: AutoExposureProfile = DEFAULT_AUTO_EXPOSURE,
        placeholder_size: Tuple[int, int] = PLACEHOLDER_SIZE,
    ):
        self.log = logging.getLogger("CaptureSequencer")
        self.decoder = decoder or PhotoDecoder()
        self.payload_timeout = payload_timeout
        self.quality_index = quality_index
        self.auto_exposure = auto_exposure
        self.auto_profile = auto_profile
        self.placeholder_size = placeholder_size
        self.fsm = CaptureFSM()

    @property
    def state(self) -> str:
        return self.fsm.state

    def settings_for(self, cell: GridCell) -> CaptureSettings:
        return CaptureSettings.for_cell(
            cell,
            quality_index=self.quality_index,
            auto_exposure=self.auto_exposure,
            profile=self.auto_profile,
        )

    def run(
        self,
        cells: Sequence[GridCell],
        transport: CaptureTransport,
        cancel_event: Optional[threading.Event] = None,
        on_result: Optional[Callable[[CaptureResult], None]] = None,
    ) -> List[CaptureResult]:
        self.fsm.reset()
        results: List[CaptureResult] = []

        for cell in cells:
            if cancel_event is not None and cancel_event.is_set():
                self.fsm.cancel()
                raise CancelledError(f"Sweep cancelled after {len(results)}/{len(cells)} cells", results)

            result = self.capture_cell(cell, transport)
            results.append(result)
            if on_result is not None:
                on_result(result)

        self.fsm.finish()
        failed = sum(1 for r in results if not r.ok)
        self.log.info(f"Sweep done: {len(results)} cells, {failed} failed")
        return results

    def capture_cell(self, cell: GridCell, transport: CaptureTransport) -> CaptureResult:
        settings = self.settings_for(cell)
        self.fsm.request()
        self.log.debug(f"Requesting cell ({cell.row},{cell.col}) gain={cell.gain} shutter={cell.shutter}")

        start = time.perf_counter()
        try:
            payload = self._exchange(settings, transport)
        except TransportError as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.log.warning(f"Cell ({cell.row},{cell.col}) capture failed: {e}")
            self.fsm.cell_done()
            return self._failed(cell, f"transport: {e}", elapsed_ms)
        elapsed_ms = (time.perf_counter() - start) * 1000

        self.fsm.received()
        self.log.debug(f"Cell ({cell.row},{cell.col}): {len(payload)} bytes in {elapsed_ms:.0f} ms")

        try:
            bitmap = self.decoder.decode(payload)
        except DecodeError as e:
            self.log.error(f"Cell ({cell.row},{cell.col}) decode failed: {e}")
            self.fsm.cell_done()
            return self._failed(cell, f"decode: {e}", elapsed_ms, len(payload))

        self.fsm.cell_done()
        return CaptureResult(
            cell=cell,
            status=CaptureStatus.OK,
            bitmap=bitmap,
            elapsed_ms=elapsed_ms,
            payload_size=len(payload),
        )

    def _exchange(self, settings: CaptureSettings, transport: CaptureTransport) -> bytes:
        # Subscribe before sending so a fast payload is never missed;
        # the listener is gone again before the next cell starts.
        with transport.subscribe() as sub:
            try:
                transport.send(settings)
            except TransportError:
                raise
            except Exception as e:
                raise TransportError(f"Send failed: {e}") from e
            self.fsm.sent()
            return sub.get(timeout=self.payload_timeout)

    def _failed(self, cell: GridCell, reason: str, elapsed_ms: float, payload_size: int = 0) -> CaptureResult:
        return CaptureResult(
            cell=cell,
            status=CaptureStatus.FAILED,
            bitmap=make_placeholder(self.placeholder_size),
            reason=reason,
            elapsed_ms=elapsed_ms,
            payload_size=payload_size,
        )

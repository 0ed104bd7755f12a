import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from framesweep.camera.decoder import make_placeholder
from framesweep.config import SweepConfig
from framesweep.errors import CancelledError, SweepBusyError, SweepError
from framesweep.fsm import SweepFSM
from framesweep.pipeline.compositor import GridCompositor, Mosaic, fit_cells
from framesweep.pipeline.grid import GridCell, ParameterGridGenerator
from framesweep.pipeline.sequencer import CaptureResult, CaptureSequencer
from framesweep.transport.base import CaptureTransport


@dataclass
class SweepProgress:
    state: str
    completed: int
    total: int
    result: Optional[CaptureResult] = None


@dataclass
class SweepReport:
    """What survives a sweep: the mosaic and the per-cell failure log."""
    size: int
    total: int
    completed: int = 0
    failures: List[Dict] = field(default_factory=list)
    mosaic: Optional[Mosaic] = None
    cancelled: bool = False
    error: Optional[str] = None
    elapsed_s: float = 0.0
    # Only kept for a cancelled sweep that was not composited
    partial_results: List[CaptureResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.error is None

    def record_failure(self, cell: GridCell, reason: str):
        self.failures.append({"row": cell.row, "col": cell.col, "gain": cell.gain,
                              "shutter": cell.shutter, "reason": reason})


MAX_HISTORY = 10


class SweepController:
    """
    Orchestrates one calibration sweep:
    - Generates the gain x shutter grid
    - Runs the capture sequencer over the transport
    - Composites the captures into a mosaic
    - Exposes idle/running/ready state, progress and cancel to the presentation layer
    """

    def __init__(
        self,
        transport: CaptureTransport,
        config: SweepConfig = None,
        sequencer: CaptureSequencer = None,
        compositor: GridCompositor = None,
        callbacks: dict = None,
    ):
        self.log = logging.getLogger("SweepController")

        self.transport = transport
        self.config = (config or SweepConfig()).validate()

        # --- Core components ---
        self.generator = ParameterGridGenerator()
        self.sequencer = sequencer or CaptureSequencer(
            payload_timeout=self.config.payload_timeout,
            quality_index=self.config.quality_index,
            auto_exposure=self.config.auto_exposure,
        )
        self.compositor = compositor or GridCompositor(jpeg_quality=self.config.jpeg_quality)

        # --- Storage ---
        self.history: List[SweepReport] = []   # newest first, at most MAX_HISTORY

        self._listeners: List[Callable[[SweepProgress], None]] = []
        self._lock = threading.RLock()
        self._cancel = threading.Event()
        self._worker: Optional[threading.Thread] = None
        self._completed = 0

        # --- FSM ---
        self.fsm = SweepFSM(callbacks=self._fsm_callbacks(callbacks))

    # ----------------------------------------------------------------------
    # FSM CALLBACKS
    # ----------------------------------------------------------------------

    def _fsm_callbacks(self, user_callbacks):
        """Merge internal callbacks with user-provided ones."""
        cb = user_callbacks.copy() if user_callbacks else {}
        cb.update(
            {
                "on_enter_running": self._on_enter_running,
                "on_enter_ready": self._on_enter_ready,
            }
        )
        return cb

    def _on_enter_running(self):
        self.log.info(f"Sweep started: {self.config.size}x{self.config.size} grid")
        self._notify()

    def _on_enter_ready(self):
        self.log.info("Sweep ready")
        self._notify()

    # ----------------------------------------------------------------------
    # PROGRESS
    # ----------------------------------------------------------------------

    @property
    def total(self) -> int:
        return self.config.size * self.config.size

    def add_listener(self, listener: Callable[[SweepProgress], None]):
        self._listeners.append(listener)

    def remove_listener(self, listener: Callable[[SweepProgress], None]):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, result: Optional[CaptureResult] = None):
        progress = SweepProgress(self.fsm.state, self._completed, self.total, result)
        for listener in list(self._listeners):
            try:
                listener(progress)
            except Exception as e:
                self.log.error(f"Progress listener failed: {e}")

    def _on_result(self, result: CaptureResult):
        self._completed += 1
        self._notify(result)

    # ----------------------------------------------------------------------
    # SWEEP WORKER
    # ----------------------------------------------------------------------

    def _run(self):
        started = time.perf_counter()
        report = SweepReport(size=self.config.size, total=self.total)

        try:
            cells = self.generator.generate(self.config.size)
            try:
                results = self.sequencer.run(cells, self.transport, cancel_event=self._cancel,
                                             on_result=self._on_result)
            except CancelledError as e:
                self.log.info(str(e))
                report.cancelled = True
                results = e.results

            report.completed = len(results)
            for r in results:
                if not r.ok:
                    report.record_failure(r.cell, r.reason)

            if report.cancelled and not self.config.composite_partial:
                self.log.info(f"Partial sweep not composited ({len(results)}/{self.total} cells)")
                report.partial_results = results
            else:
                report.mosaic = self._composite(results, report, pad=report.cancelled)
        except SweepError as e:
            self.log.error(f"Sweep failed: {e}")
            report.error = str(e)
        except Exception as e:
            self.log.exception("Unexpected sweep failure")
            report.error = f"{type(e).__name__}: {e}"

        report.elapsed_s = time.perf_counter() - started
        self._complete(report)

    def _composite(self, results: List[CaptureResult], report: SweepReport, pad: bool = False) -> Mosaic:
        bitmaps = [r.bitmap for r in results]
        ok_mask = [r.ok for r in results]

        # Cancelled sweeps are padded so the mosaic keeps its grid shape
        missing = self.total - len(bitmaps)
        if pad and missing > 0:
            bitmaps += [make_placeholder(self.sequencer.placeholder_size) for _ in range(missing)]
            ok_mask += [False] * missing

        cells, mismatched = fit_cells(bitmaps, ok_mask)
        for index in mismatched:
            result = results[index]
            h, w = result.bitmap.shape[:2]
            reason = f"size: {w}x{h} differs from the first decoded cell"
            self.log.warning(f"Cell ({result.cell.row},{result.cell.col}) blanked, {reason}")
            report.record_failure(result.cell, reason)

        return self.compositor.compose(cells, self.config.size)

    def _complete(self, report: SweepReport):
        with self._lock:
            # Older mosaics only need their encoded bytes
            for older in self.history:
                if older.mosaic is not None:
                    older.mosaic.release_image()
            self.history.insert(0, report)
            del self.history[MAX_HISTORY:]
            if self.fsm.state == "running":
                if report.ok:
                    self.fsm.finish()
                else:
                    self.fsm.fail()
            else:
                # Already moved to ready by cancel(); publish the final report
                self._notify()

        if report.ok:
            self.log.info(
                f"Sweep complete in {report.elapsed_s:.1f}s: {report.completed}/{report.total} cells, "
                f"{len(report.failures)} failed"
            )

    # ----------------------------------------------------------------------
    # PUBLIC API
    # ----------------------------------------------------------------------

    def start(self, blocking: bool = False):
        """Start a new sweep. Non-blocking by default; the sweep runs on a worker thread."""
        if self.fsm.state == "running":
            raise SweepBusyError("A sweep is already running")

        worker = self._worker
        if worker is not None and worker.is_alive():
            # A cancelled sweep may still be finishing its in-flight cell
            worker.join(timeout=self.config.payload_timeout * 2)
            if worker.is_alive():
                raise SweepBusyError("Previous sweep is still finishing its last cell")

        with self._lock:
            if self.fsm.state == "running":
                raise SweepBusyError("A sweep is already running")

            self._cancel.clear()
            self._completed = 0
            self.fsm.start()

            if not blocking:
                self._worker = threading.Thread(target=self._run, name="sweep-worker", daemon=True)
                self._worker.start()
                return None

        self._run()
        return self.latest

    def cancel(self):
        """
        Request cancellation. Only meaningful while running; the in-flight
        cell is allowed to finish before the sequencer stops.
        """
        with self._lock:
            if not self.fsm.can("cancel"):
                self.log.warning(f"Cannot cancel from state: {self.fsm.state}")
                return
            self._cancel.set()
            self.fsm.cancel()

    def wait(self, timeout: Optional[float] = None) -> Optional[SweepReport]:
        """Block until the worker thread exits, then return the latest report."""
        if self._worker is not None:
            self._worker.join(timeout=timeout)
        return self.latest

    @property
    def latest(self) -> Optional[SweepReport]:
        return self.history[0] if self.history else None

    @property
    def state(self) -> str:
        return self.fsm.state

    def export_latest(self, exporter, name: str = "sweep.jpg"):
        """Hand the newest available mosaic to an export collaborator."""
        report = next((r for r in self.history if r.mosaic is not None), None)
        if report is None:
            raise SweepError("No mosaic available to export")
        return exporter.export(report.mosaic.data, report.mosaic.mime_type, name)

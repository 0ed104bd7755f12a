"""Hardware-free transports for demos and tests."""

import threading
from pathlib import Path
from typing import Iterable, List, Sequence, Set, Tuple, Union

import cv2
import numpy as np
from loguru import logger

from framesweep.camera.settings import GAIN_MAX, SHUTTER_MAX, CaptureSettings
from framesweep.errors import TransportError
from framesweep.transport.base import CaptureTransport

IMAGE_SUFFIXES = {".jpg", ".jpeg", ".png"}


class SimulatedTransport(CaptureTransport):
    """
    Synthesises a JPEG for every command, brighter for longer shutter and
    higher gain, the way a real sensor would respond.

    :param frame_size: (width, height) of the frame as the sensor emits it,
                       i.e. before orientation correction.
    :param latency: seconds between send and payload delivery; 0 delivers
                    synchronously.
    :param drop: request indexes (0-based) that never produce a payload.
    :param corrupt: request indexes that produce undecodable bytes.
    :param fail_send: request indexes whose send itself fails.
    """

    def __init__(
        self,
        frame_size: Tuple[int, int] = (64, 48),
        latency: float = 0.0,
        drop: Iterable[int] = (),
        corrupt: Iterable[int] = (),
        fail_send: Iterable[int] = (),
    ):
        super().__init__()
        self.frame_size = frame_size
        self.latency = latency
        self.drop: Set[int] = set(drop)
        self.corrupt: Set[int] = set(corrupt)
        self.fail_send: Set[int] = set(fail_send)
        self.sent: List[CaptureSettings] = []
        self._timers: List[threading.Timer] = []

    @staticmethod
    def brightness(settings: CaptureSettings) -> int:
        if settings.auto_exposure:
            level = settings.auto_profile.exposure
        else:
            level = (settings.shutter / SHUTTER_MAX) * (1.0 + 3.0 * settings.gain / GAIN_MAX)
        # gamma-encode like a sensor pipeline
        return int(round(255 * min(1.0, level) ** (1 / 2.2)))

    def render(self, settings: CaptureSettings) -> bytes:
        width, height = self.frame_size
        value = self.brightness(settings)
        frame = np.full((height, width, 3), value, dtype=np.uint8)
        ok, encoded = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, settings.quality_level])
        if not ok:
            raise TransportError("Simulator failed to encode frame")
        return encoded.tobytes()

    def send(self, settings: CaptureSettings) -> None:
        index = len(self.sent)
        self.sent.append(settings)

        if index in self.fail_send:
            raise TransportError(f"Simulated send failure on request {index}")
        if index in self.drop:
            logger.debug(f"Simulator dropping payload for request {index}")
            return

        payload = b"\x00not-a-jpeg" if index in self.corrupt else self.render(settings)

        if self.latency <= 0:
            self._publish(payload)
            return

        timer = threading.Timer(self.latency, self._publish, args=(payload,))
        timer.daemon = True
        self._timers = [t for t in self._timers if t.is_alive()]
        self._timers.append(timer)
        timer.start()

    def close(self):
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()
        super().close()


class ReplayTransport(CaptureTransport):
    """Replays previously captured photos, one per command, in order."""

    def __init__(self, source: Union[str, Path, Sequence[bytes]]):
        super().__init__()
        if isinstance(source, (str, Path)):
            self._payloads = self._load_dir(Path(source))
        else:
            self._payloads = list(source)
        self._cursor = 0

    @staticmethod
    def _load_dir(directory: Path) -> List[bytes]:
        if not directory.is_dir():
            raise TransportError(f"Replay directory not found: {directory}")
        paths = sorted(p for p in directory.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
        if not paths:
            raise TransportError(f"No images found in {directory}")
        logger.info(f"Replaying {len(paths)} images from {directory}")
        return [p.read_bytes() for p in paths]

    @property
    def remaining(self) -> int:
        return len(self._payloads) - self._cursor

    def send(self, settings: CaptureSettings) -> None:
        if self._cursor >= len(self._payloads):
            raise TransportError("Replay source exhausted")
        payload = self._payloads[self._cursor]
        self._cursor += 1
        self._publish(payload)

"""Half-duplex capture transport interface.

A transport accepts one settings command at a time and delivers image
payloads on an inbound stream. It does not correlate payloads with
requests; callers scope a :class:`PayloadSubscription` around each
request so that exactly one listener is attached while a photo is awaited.
"""

import queue
import threading
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional

from loguru import logger

from framesweep.camera.settings import CaptureSettings
from framesweep.errors import TransportError, TransportTimeoutError


class PayloadSubscription:
    """
    A single listener on a transport's inbound payload stream.

    Use as a context manager; leaving the block unsubscribes the listener
    whether or not a payload arrived.
    """

    def __init__(self, transport: "CaptureTransport"):
        self._transport = transport
        self._queue: "queue.Queue" = queue.Queue()
        self.closed = False

    def _deliver(self, item):
        self._queue.put(item)

    def get(self, timeout: Optional[float] = None) -> bytes:
        """Block until one payload arrives; raise TransportError on failure or timeout."""
        if self.closed:
            raise TransportError("Subscription already closed")
        try:
            item = self._queue.get(timeout=timeout)
        except queue.Empty:
            raise TransportTimeoutError(f"No payload within {timeout}s")

        if isinstance(item, BaseException):
            if isinstance(item, TransportError):
                raise item
            raise TransportError(f"Receive failed: {item}") from item
        return item

    def close(self):
        if not self.closed:
            self.closed = True
            self._transport._unsubscribe(self)

    def __enter__(self) -> "PayloadSubscription":
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


class CaptureTransport(ABC):
    """Base for any concrete transport (BLE link, simulator, file replay)."""

    def __init__(self):
        self._subscribers: List[PayloadSubscription] = []
        self._lock = threading.Lock()

    @abstractmethod
    def send(self, settings: CaptureSettings) -> None:
        """Send one capture-settings command. Returns once sent, not once a photo arrives."""

    def subscribe(self) -> PayloadSubscription:
        sub = PayloadSubscription(self)
        with self._lock:
            self._subscribers.append(sub)
        return sub

    def payloads(self) -> Iterator[bytes]:
        """Unbounded stream of inbound payloads; closing the generator unsubscribes."""
        with self.subscribe() as sub:
            while True:
                yield sub.get()

    @property
    def listener_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def _unsubscribe(self, sub: PayloadSubscription):
        with self._lock:
            if sub in self._subscribers:
                self._subscribers.remove(sub)

    def _publish(self, payload: bytes):
        """Hand an inbound payload to every attached listener."""
        with self._lock:
            targets = list(self._subscribers)
        if not targets:
            logger.warning(f"Dropping {len(payload)}-byte payload: no listener attached")
            return
        for sub in targets:
            sub._deliver(payload)

    def _publish_error(self, error: BaseException):
        with self._lock:
            targets = list(self._subscribers)
        for sub in targets:
            sub._deliver(error)

    def close(self):
        """Release transport resources. Subclasses extend this."""
        with self._lock:
            self._subscribers.clear()

"""Shared pytest configuration and fixtures for the framesweep test suite."""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from framesweep.transport.base import CaptureTransport  # noqa: E402


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: mark test as slow running"
    )


# =============================================================================
# Helpers
# =============================================================================

def encode_jpeg(image: np.ndarray, quality: int = 95) -> bytes:
    ok, encoded = cv2.imencode(".jpg", image, [cv2.IMWRITE_JPEG_QUALITY, quality])
    assert ok
    return encoded.tobytes()


class ScriptedTransport(CaptureTransport):
    """
    Transport answering each send from a script.

    Script items: bytes are published as the payload, None publishes
    nothing (the wait times out), an exception instance is raised by send.
    Requests past the end of the script publish nothing.
    """

    def __init__(self, script):
        super().__init__()
        self.script = list(script)
        self.sent = []
        self.listeners_at_send = []

    def send(self, settings):
        index = len(self.sent)
        self.sent.append(settings)
        self.listeners_at_send.append(self.listener_count)

        item = self.script[index] if index < len(self.script) else None
        if isinstance(item, BaseException):
            raise item
        if item is not None:
            self._publish(item)


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def make_jpeg():
    """Factory for solid-grey JPEG payloads of a given (width, height)."""
    def _make(value: int = 128, size=(16, 16)) -> bytes:
        width, height = size
        return encode_jpeg(np.full((height, width, 3), value, dtype=np.uint8))
    return _make


@pytest.fixture
def scripted_transport():
    return ScriptedTransport

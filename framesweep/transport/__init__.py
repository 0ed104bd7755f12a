from .base import CaptureTransport, PayloadSubscription
from .simulated import ReplayTransport, SimulatedTransport

__all__ = [
    "CaptureTransport",
    "PayloadSubscription",
    "SimulatedTransport",
    "ReplayTransport",
]

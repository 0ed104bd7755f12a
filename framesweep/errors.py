"""Exception taxonomy for the calibration sweep.

Per-cell failures (transport, decode) are recovered inside the sequencer.
Structural failures (compositor contract violations) reach the controller.
"""


class SweepError(Exception):
    """Base class for every error raised by framesweep."""


class TransportError(SweepError):
    """Sending a command or receiving a payload failed."""


class TransportTimeoutError(TransportError):
    """No payload arrived within the configured timeout."""


class DecodeError(SweepError):
    """The payload is not a structurally valid encoded image."""


class ArgumentError(SweepError, ValueError):
    """Caller contract violation (e.g. wrong cell count for the compositor)."""


class ConfigError(SweepError, ValueError):
    """Invalid sweep configuration."""


class CancelledError(SweepError):
    """The sweep was cancelled between cells. Not a failure.

    Carries the results collected before cancellation.
    """

    def __init__(self, message: str = "Sweep cancelled", results=None):
        super().__init__(message)
        self.results = results if results is not None else []


class SweepBusyError(SweepError):
    """A previous sweep is still finishing its in-flight cell."""

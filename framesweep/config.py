from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from framesweep.camera.settings import QUALITY_LEVELS
from framesweep.errors import ConfigError


@dataclass
class SweepConfig:
    """
    User-facing sweep parameters.

    Everything else (gain/shutter bounds, rotation, placeholder size,
    auto-exposure profile) is a calibration constant of the peripheral.
    """
    size: int = 5
    quality_index: int = 0
    auto_exposure: bool = False
    payload_timeout: float = 3.0   # seconds to wait for a single photo
    jpeg_quality: int = 90         # mosaic re-encode quality
    composite_partial: bool = False

    def validate(self) -> "SweepConfig":
        self._check_type("size", int)
        self._check_type("quality_index", int)
        self._check_type("auto_exposure", bool)
        self._check_type("payload_timeout", (int, float))
        self._check_type("jpeg_quality", int)
        self._check_type("composite_partial", bool)

        if self.size < 2:
            raise ConfigError(f"size must be an integer >= 2, got {self.size!r}")
        if not 0 <= self.quality_index < len(QUALITY_LEVELS):
            raise ConfigError(
                f"quality_index must be in [0, {len(QUALITY_LEVELS) - 1}], got {self.quality_index!r}"
            )
        if self.payload_timeout <= 0:
            raise ConfigError(f"payload_timeout must be positive, got {self.payload_timeout!r}")
        if not 1 <= self.jpeg_quality <= 100:
            raise ConfigError(f"jpeg_quality must be in [1, 100], got {self.jpeg_quality!r}")
        return self

    def _check_type(self, name: str, expected):
        value = getattr(self, name)
        # bool is an int subclass; only boolean fields accept it
        if expected is not bool and isinstance(value, bool):
            raise ConfigError(f"{name} must be a number, got {value!r}")
        if not isinstance(value, expected):
            raise ConfigError(f"{name} has wrong type {type(value).__name__}: {value!r}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SweepConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown sweep config keys: {', '.join(sorted(unknown))}")
        return cls(**data).validate()

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "SweepConfig":
        """Load a config from a YAML mapping; a missing or empty file yields defaults."""
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            raise ConfigError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigError(f"Malformed config file {path}: {e}")

        if not isinstance(data, dict):
            raise ConfigError(f"Config file {path} must contain a mapping")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

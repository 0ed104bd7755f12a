"""Export collaborators receiving finished mosaics."""

import mimetypes
import time
from pathlib import Path
from typing import Protocol, Union

from loguru import logger


class Exporter(Protocol):
    def export(self, data: bytes, mime_type: str, name: str):
        ...


class FileExporter:
    """Writes exported images into a directory, timestamping duplicate names."""

    def __init__(self, output_dir: Union[str, Path]):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)

    def export(self, data: bytes, mime_type: str, name: str) -> Path:
        path = self.output_dir / name
        if not path.suffix:
            path = path.with_suffix(mimetypes.guess_extension(mime_type) or "")
        if path.exists():
            ts = int(time.time() * 1000)
            path = path.with_name(f"{path.stem}_{ts}{path.suffix}")

        path.write_bytes(data)
        logger.info(f"Exported {len(data)} bytes ({mime_type}) to {path}")
        return path

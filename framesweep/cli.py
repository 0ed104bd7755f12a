"""Command-line sweep runner.

Runs a full gain x shutter sweep against a simulated peripheral or a
directory of previously captured photos, then writes the mosaic and the
per-cell failure log into ``--output``.

Usage:
    framesweep --size 5 --transport simulated
    framesweep --transport replay --replay-dir captures/ --config sweep.yaml

Transports:
    - simulated (default): synthetic frames whose brightness follows exposure
    - replay  : JPEG/PNG files from --replay-dir, sorted by name
"""
from __future__ import annotations

import argparse
import datetime as _dt
import logging
import sys
from pathlib import Path
from typing import Optional

import yaml
from loguru import logger

from framesweep.config import SweepConfig
from framesweep.errors import SweepError
from framesweep.export import FileExporter
from framesweep.pipeline import SweepController, SweepProgress
from framesweep.transport import ReplayTransport, SimulatedTransport

LOGGER = logging.getLogger(__name__)
LOG_LEVELS = {
    "critical": logging.CRITICAL,
    "error": logging.ERROR,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}
TRANSPORTS = ("simulated", "replay")


def _configure_logging(level: str) -> None:
    numeric = LOG_LEVELS.get(level.lower())
    if numeric is None:
        raise ValueError(f"Unknown log level '{level}'. Choose from {list(LOG_LEVELS)}")

    if not logging.getLogger().hasHandlers():
        logging.basicConfig(level=numeric, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    logging.getLogger().setLevel(numeric)

    logger.remove()
    logger.add(sys.stderr, level=level.upper())
    LOGGER.debug("Logging configured at %s", level.upper())


def _render_progress(progress: SweepProgress) -> None:
    if progress.result is None or progress.total <= 0:
        return

    bar_len = 30
    fraction = max(0.0, min(1.0, progress.completed / progress.total))
    filled = int(bar_len * fraction)
    bar = "#" * filled + "-" * (bar_len - filled)
    sys.stdout.write(f"\rSweeping [{bar}] {progress.completed}/{progress.total}")
    sys.stdout.flush()
    if progress.completed >= progress.total:
        sys.stdout.write("\n")


def _build_config(args: argparse.Namespace) -> SweepConfig:
    data = {}
    if args.config:
        data.update(SweepConfig.from_yaml(args.config).to_dict())
    overrides = {
        "size": args.size,
        "quality_index": args.quality_index,
        "payload_timeout": args.timeout,
        "jpeg_quality": args.jpeg_quality,
    }
    data.update({k: v for k, v in overrides.items() if v is not None})
    if args.auto_exposure:
        data["auto_exposure"] = True
    if args.composite_partial:
        data["composite_partial"] = True
    return SweepConfig.from_dict(data)


def _build_transport(args: argparse.Namespace):
    if args.transport == "replay":
        if not args.replay_dir:
            raise SweepError("--replay-dir is required with --transport replay")
        return ReplayTransport(args.replay_dir)
    return SimulatedTransport(latency=args.latency)


def run(args: argparse.Namespace) -> Optional[Path]:
    _configure_logging(args.log_level)

    config = _build_config(args)
    transport = _build_transport(args)
    output_dir = Path(args.output)
    exporter = FileExporter(output_dir)

    controller = SweepController(transport, config)
    controller.add_listener(_render_progress)

    try:
        report = controller.start(blocking=True)
    finally:
        transport.close()

    timestamp = _dt.datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = output_dir / f"sweep_{timestamp}_failures.yaml"
    with open(log_path, "w") as f:
        yaml.safe_dump(
            {
                "config": config.to_dict(),
                "completed": report.completed,
                "total": report.total,
                "cancelled": report.cancelled,
                "error": report.error,
                "failures": report.failures,
            },
            f,
            sort_keys=False,
        )
    LOGGER.info("Wrote failure log to %s", log_path)

    if not report.ok:
        LOGGER.error("Sweep failed: %s", report.error)
        return None

    out_path = controller.export_latest(exporter, name=f"sweep_{timestamp}.jpg")
    print(f"Saved mosaic to {out_path}")
    return out_path


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Camera gain x shutter calibration sweep")
    parser.add_argument("--config", type=Path, help="YAML sweep config; CLI flags override it")
    parser.add_argument("--size", type=int, help="Grid size N for an N x N sweep (>= 2)")
    parser.add_argument("--quality-index", type=int, help="Photo quality index (0-3)")
    parser.add_argument("--auto-exposure", action="store_true", help="Use the fixed auto-exposure profile")
    parser.add_argument("--timeout", type=float, help="Seconds to wait for each photo")
    parser.add_argument("--jpeg-quality", type=int, help="Mosaic JPEG quality (1-100)")
    parser.add_argument(
        "--composite-partial",
        action="store_true",
        help="Still build a mosaic when the sweep is cancelled",
    )
    parser.add_argument("--transport", choices=TRANSPORTS, default="simulated", help="Photo source")
    parser.add_argument("--replay-dir", type=Path, help="Directory of photos for --transport replay")
    parser.add_argument("--latency", type=float, default=0.0, help="Simulated payload latency in seconds")
    parser.add_argument("--output", type=Path, default=Path("output"), help="Output directory")
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS.keys(),
        default="info",
        help="Logging verbosity",
    )
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    try:
        out_path = run(args)
    except SweepError as e:
        LOGGER.error("%s", e)
        return 1
    return 0 if out_path is not None else 1


if __name__ == "__main__":
    sys.exit(main())

"""rawproc CLI batch developer.

Develops camera raw files into sRGB images without a GUI.
"""

import os
import sys

os.environ.setdefault("NUMBA_THREADING_LAYER", "workqueue")

import argparse
import concurrent.futures
import dataclasses
import json
import logging
import multiprocessing
import platform
import time
from typing import Any, Dict, List, Optional, Tuple

from rawproc.application.engine import DevelopEngine
from rawproc.domain.models import DevelopConfig, ExportFormat
from rawproc.features.demosaic.models import Interpolation
from rawproc.infrastructure.loaders.constants import SUPPORTED_RAW_EXTENSIONS
from rawproc.infrastructure.loaders.rawpy_loader import RawpyLoader
from rawproc.kernel.image.logic import calculate_file_hash
from rawproc.kernel.system.config import APP_CONFIG, BASE_USER_DIR, DEFAULT_DEVELOP_CONFIG
from rawproc.kernel.system.logging import get_logger, setup_logging
from rawproc.services.export.encoder import encode, extension_for
from rawproc.services.export.templating import render_export_filename, unique_output_path

logger = get_logger(__name__)

FORMAT_MAP = {
    "jpeg": ExportFormat.JPEG,
    "png": ExportFormat.PNG,
    "webp": ExportFormat.WEBP,
    "tiff": ExportFormat.TIFF,
}

INTERPOLATION_MAP = {
    "none": Interpolation.NONE,
    "nearest": Interpolation.NEAREST_NEIGHBOR,
    "bilinear": Interpolation.BILINEAR,
}

FORMAT_CHOICES = tuple(FORMAT_MAP.keys())
INTERPOLATION_CHOICES = tuple(INTERPOLATION_MAP.keys())

CONFIG_FILE = os.path.join(BASE_USER_DIR, "config.json")


def load_user_config() -> dict:
    """Loads ~/.rawproc/config.json if it exists. Returns {"cli": {}, "processing": {}}."""
    if not os.path.isfile(CONFIG_FILE):
        return {"cli": {}, "processing": {}}
    with open(CONFIG_FILE, "r") as f:
        data = json.load(f)
    return {
        "cli": data.get("cli", {}),
        "processing": data.get("processing", {}),
    }


def generate_default_config() -> int:
    """Creates ~/.rawproc/config.json with documented defaults. Returns 0 on success, 1 if exists."""
    if os.path.isfile(CONFIG_FILE):
        print(f"Config already exists: {CONFIG_FILE}", file=sys.stderr)
        return 1
    os.makedirs(os.path.dirname(CONFIG_FILE), exist_ok=True)
    default = {
        "cli": {
            "output": "./export",
            "format": "jpeg",
            "workers": APP_CONFIG.max_workers,
        },
        "processing": {
            "interpolation": "bilinear",
            "exposure_ev": 0.0,
            "contrast": 1.0,
            "saturation": 1.0,
            "hue_shift": 0.0,
            "brightness": 0.0,
            "autolevel": False,
            "monochrome": False,
            "filename_pattern": "{{ original_name }}",
        },
    }
    with open(CONFIG_FILE, "w") as f:
        json.dump(default, f, indent=4)
    print(f"Config created: {CONFIG_FILE}", file=sys.stderr)
    return 0


def _triplet(text: str) -> Tuple[float, float, float]:
    """Parses "R,G,B" or a single value applied to all three channels."""
    parts = [p for p in text.split(",") if p.strip()]
    try:
        values = [float(p) for p in parts]
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected numbers, got '{text}'")
    if len(values) == 1:
        return values[0], values[0], values[0]
    if len(values) != 3:
        raise argparse.ArgumentTypeError(f"Expected 1 or 3 values, got {len(values)}")
    return values[0], values[1], values[2]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rawproc",
        description="rawproc -- Camera raw batch developer",
        epilog="Example: rawproc --format png --interpolation nearest --output ./export /path/to/raws/",
    )

    parser.add_argument(
        "inputs",
        nargs="*",
        metavar="FILE_OR_DIR",
        help="Input raw files or directories containing them",
    )

    parser.add_argument(
        "--output",
        default=None,
        metavar="DIR",
        help="Output directory (default: ./export)",
    )

    parser.add_argument(
        "--format",
        choices=FORMAT_CHOICES,
        default=None,
        dest="output_format",
        help="Output file format (default: jpeg; tiff is 16-bit)",
    )

    parser.add_argument(
        "--interpolation",
        choices=INTERPOLATION_CHOICES,
        default=None,
        help="Demosaic method (default: bilinear)",
    )

    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        metavar="INT",
        help="Seed for nearest-neighbour tie-breaks, for reproducible output",
    )

    parser.add_argument(
        "--exposure",
        type=float,
        default=None,
        metavar="EV",
        help="Exposure compensation in stops (default: 0.0)",
    )

    parser.add_argument(
        "--black",
        type=_triplet,
        default=None,
        metavar="R,G,B",
        help="Override black levels, in sensor units",
    )

    parser.add_argument(
        "--white",
        type=_triplet,
        default=None,
        metavar="R,G,B",
        help="Override white balance multipliers (default: as shot)",
    )

    parser.add_argument(
        "--contrast",
        type=float,
        default=None,
        metavar="FLOAT",
        help="Contrast factor around mid grey (default: 1.0)",
    )

    parser.add_argument(
        "--saturation",
        type=float,
        default=None,
        metavar="FLOAT",
        help="Saturation multiplier (default: 1.0)",
    )

    parser.add_argument(
        "--hue-shift",
        type=float,
        default=None,
        metavar="DEGREES",
        help="Hue rotation in degrees (default: 0.0)",
    )

    parser.add_argument(
        "--brightness",
        type=float,
        default=None,
        metavar="FLOAT",
        help="Value offset in HSV, -1..1 (default: 0.0)",
    )

    parser.add_argument(
        "--autolevel",
        action="store_true",
        default=False,
        help="Stretch so that the brightest component reaches full scale",
    )

    parser.add_argument(
        "--monochrome",
        action="store_true",
        default=False,
        help="Convert to greyscale (mean of R, G and B)",
    )

    parser.add_argument(
        "--thumb",
        action="store_true",
        default=False,
        help="Develop a quarter-size preview by subsampling the mosaic",
    )

    parser.add_argument(
        "--filename-pattern",
        default=None,
        metavar="TEMPLATE",
        help='Jinja2 filename template (default: "{{ original_name }}")',
    )

    parser.add_argument(
        "--settings",
        default=None,
        metavar="JSON_FILE",
        help="Load a flat DevelopConfig from a JSON settings file",
    )

    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        metavar="INT",
        help=f"Parallel worker processes (default: {APP_CONFIG.max_workers})",
    )

    parser.add_argument(
        "--init-config",
        action="store_true",
        default=False,
        help=f"Generate default config at {CONFIG_FILE} and exit",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Debug logging",
    )

    return parser


def discover_files(inputs: List[str]) -> List[str]:
    """Resolves input paths to a sorted list of supported raw files."""
    files = []
    for input_path in inputs:
        path = os.path.abspath(input_path)
        if os.path.isfile(path):
            ext = os.path.splitext(path)[1].lower()
            if ext in SUPPORTED_RAW_EXTENSIONS:
                files.append(path)
            else:
                logger.warning(f"Skipping unsupported file: {path}")
        elif os.path.isdir(path):
            for root, _dirs, filenames in os.walk(path):
                for fname in sorted(filenames):
                    if os.path.splitext(fname)[1].lower() in SUPPORTED_RAW_EXTENSIONS:
                        files.append(os.path.join(root, fname))
        else:
            logger.warning(f"Path not found: {path}")
    return files


def build_config(args: argparse.Namespace, user_config: dict) -> DevelopConfig:
    """Builds DevelopConfig with loading priority:
    DEFAULT -> user config -> --settings -> CLI flags
    """
    # Layer 1: defaults as flat dict
    base_dict = DEFAULT_DEVELOP_CONFIG.to_dict()

    # Layer 2: user config processing overrides
    processing = user_config.get("processing", {})
    if processing:
        base_dict.update(processing)

    # Layer 3: --settings file overrides
    if args.settings:
        with open(os.path.abspath(args.settings), "r") as f:
            base_dict.update(json.load(f))

    config = DevelopConfig.from_flat_dict(base_dict)

    # Layer 4: CLI flags always win
    cli_defaults = user_config.get("cli", {})

    geometry = config.geometry
    if args.thumb:
        geometry = dataclasses.replace(geometry, thumbnail=True)

    radiometry_overrides: Dict[str, Any] = {}
    if args.exposure is not None:
        radiometry_overrides["exposure_ev"] = args.exposure
    if args.black is not None:
        radiometry_overrides["black_levels"] = tuple(int(v) for v in args.black)
    if args.white is not None:
        radiometry_overrides["white_balance"] = args.white
    radiometry = dataclasses.replace(config.radiometry, **radiometry_overrides)

    demosaic_overrides: Dict[str, Any] = {}
    if args.interpolation is not None:
        demosaic_overrides["interpolation"] = INTERPOLATION_MAP[args.interpolation].value
    if args.seed is not None:
        demosaic_overrides["seed"] = args.seed
    demosaic = dataclasses.replace(config.demosaic, **demosaic_overrides)

    tone_overrides: Dict[str, Any] = {}
    for name in ("contrast", "saturation", "hue_shift", "brightness"):
        value = getattr(args, name)
        if value is not None:
            tone_overrides[name] = value
    if args.autolevel:
        tone_overrides["autolevel"] = True
    if args.monochrome:
        tone_overrides["monochrome"] = True
    tone = dataclasses.replace(config.tone, **tone_overrides)

    output = args.output or cli_defaults.get("output") or config.export.export_path
    fmt_name = args.output_format or cli_defaults.get("format")
    export_overrides: Dict[str, Any] = {"export_path": os.path.abspath(output)}
    if fmt_name is not None:
        export_overrides["export_fmt"] = FORMAT_MAP[fmt_name.lower()].value
    if args.filename_pattern is not None:
        export_overrides["filename_pattern"] = args.filename_pattern
    export = dataclasses.replace(config.export, **export_overrides)

    return dataclasses.replace(
        config,
        geometry=geometry,
        radiometry=radiometry,
        demosaic=demosaic,
        tone=tone,
        export=export,
    )


def develop_file(file_path: str, config: DevelopConfig) -> bytes:
    """
    Worker: decodes and develops one raw file, returns the encoded output.
    Each call builds its own loader and engine, nothing is shared between workers.
    """
    source_hash = calculate_file_hash(file_path)
    img = RawpyLoader().decode(file_path)
    result = DevelopEngine().process(img, config, source_hash)
    return encode(result, config.export.export_fmt, config.export.jpeg_quality)


def _get_mp_context() -> multiprocessing.context.BaseContext:
    """
    Uses "spawn" on macOS for stability with C-libraries, system default elsewhere.
    """
    start_method = "spawn" if platform.system() == "Darwin" else None
    return multiprocessing.get_context(start_method)


def run_batch(files: List[str], config: DevelopConfig, workers: int) -> int:
    """
    Develops every file and writes the results. Returns the number of failures.
    A failing file is reported and skipped, the rest of the batch continues.
    """
    export_settings = config.export
    os.makedirs(export_settings.export_path, exist_ok=True)
    ext = extension_for(export_settings.export_fmt)

    total = len(files)
    failed = 0
    logger.info(f"Processing {total} file(s) -> {export_settings.export_path}")
    t_start = time.monotonic()

    with concurrent.futures.ProcessPoolExecutor(
        max_workers=max(1, workers), mp_context=_get_mp_context()
    ) as executor:
        futures = {executor.submit(develop_file, path, config): path for path in files}

        for i, future in enumerate(concurrent.futures.as_completed(futures), 1):
            file_path = futures[future]
            name = os.path.basename(file_path)
            try:
                bits = future.result()
            except Exception as e:
                logger.error(f"[{i}/{total}] {name} FAILED: {e}")
                failed += 1
                continue

            base_name = render_export_filename(file_path, export_settings)
            out_path = unique_output_path(export_settings.export_path, base_name, ext)
            with open(out_path, "wb") as f:
                f.write(bits)
            logger.info(f"[{i}/{total}] {name} -> {out_path}")

    total_time = time.monotonic() - t_start
    logger.info(f"Done: {total - failed}/{total} succeeded in {total_time:.1f}s")
    return failed


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point. Returns 0 on success, 1 on failure."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    if args.init_config:
        return generate_default_config()

    try:
        user_config = load_user_config()
    except json.JSONDecodeError as e:
        logger.error(f"Invalid user config {CONFIG_FILE}: {e}")
        return 1

    files = discover_files(args.inputs)
    if not files:
        logger.error("No supported raw files found.")
        return 1

    try:
        config = build_config(args, user_config)
    except (json.JSONDecodeError, FileNotFoundError, KeyError, TypeError, ValueError) as e:
        logger.error(f"Error loading settings: {e}")
        return 1

    workers = args.workers or user_config["cli"].get("workers") or APP_CONFIG.max_workers
    failed = run_batch(files, config, int(workers))
    return 1 if failed > 0 else 0


def cli_entry() -> None:
    """Console script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    sys.exit(main())

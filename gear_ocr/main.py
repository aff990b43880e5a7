"""Command line entry point for the gear OCR overlay."""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import cv2

from .config.settings import load_config
from .core.constants import APP_NAME, SUPPORTED_IMAGE_FORMATS, VERSION
from .core.entities import CaptureReason, GearRecord
from .core.exceptions import ApplicationError, ValidationError
from .core.logging_config import configure_from_config
from .services.capture_controller import CaptureController
from .services.capture_service import ScreenCaptureService
from .services.gear_pipeline import GearPipeline
from .services.overlay_session import OverlaySession

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gear_ocr",
        description="Read gear stats from a screen region with OCR",
    )
    parser.add_argument("--config", default="config.json", help="Path to the JSON config file")
    mode = parser.add_mutually_exclusive_group(required=True)
    mode.add_argument("--image", type=Path, help="Process a saved screenshot of the ROI")
    mode.add_argument("--snap", action="store_true", help="Capture the configured ROI once")
    mode.add_argument("--auto", action="store_true",
                      help="Watch the ROI and print a record whenever it settles on new content")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Override the configured log level")
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {VERSION}")
    return parser


def print_record(record: GearRecord) -> None:
    print(json.dumps(record.to_dict(), indent=2), flush=True)


def load_image(path: Path):
    if path.suffix.lower() not in SUPPORTED_IMAGE_FORMATS:
        raise ValidationError(f"Unsupported image format: {path.suffix}")
    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is None:
        raise ValidationError(f"Could not read image: {path}")
    return image


async def run(args: argparse.Namespace, config) -> int:
    capture = ScreenCaptureService()
    pipeline = GearPipeline.from_config(config, capture=capture)

    if args.image:
        print_record(await pipeline.process_image(load_image(args.image), reason=CaptureReason.MANUAL))
        return 0

    session = OverlaySession.from_config(config, capture.list_displays())
    controller = CaptureController.from_config(config, session, pipeline, capture)

    if args.snap:
        record = await controller.request_capture(CaptureReason.MANUAL)
        if record is not None:
            print_record(record)
        return 0

    controller.add_callback(print_record)
    await controller.start_auto()
    try:
        # Runs until interrupted
        await asyncio.Event().wait()
    finally:
        await controller.stop_auto()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    config = load_config(args.config)
    if args.log_level:
        config.log_level = args.log_level
    configure_from_config(config)

    try:
        return asyncio.run(run(args, config))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 0
    except (ApplicationError, ValidationError) as e:
        logger.error(f"{APP_NAME} failed: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

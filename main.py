"""Main orchestrator: load image → multi-scale scan → classify payload → output."""

import argparse
import logging
import signal
import sys
from pathlib import Path

from capture import load_image
from decoder import decode_rgba
from output import classify_payload, format_result
from scanner import ScanConfig, MultiScaleScanner
from utils import (
    load_config,
    setup_logging,
    JsonLinesLogger,
)

logger = logging.getLogger("scanner")

EXIT_FOUND = 0
EXIT_NOT_FOUND = 1
EXIT_BAD_INPUT = 2

_running = True


def _sigint_handler(sig, frame):
    global _running
    logger.info("Stopping scan...")
    _running = False


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Find and decode a QR code anywhere in an image"
    )
    parser.add_argument("image", help="Path to the image file")
    parser.add_argument("--config", help="Path to config.json")
    parser.add_argument(
        "--debug-image", metavar="OUT",
        help="Write an image showing every window probed (enables debug mode)",
    )
    parser.add_argument(
        "--no-advanced", action="store_true",
        help="Only try a single full-frame decode",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def build_scan_config(config: dict, args) -> ScanConfig:
    overrides = dict(config.get("scanner", {}))
    if args.no_advanced:
        overrides["useAdvancedScanning"] = False
    if args.debug_image:
        overrides["debugMode"] = True
    return ScanConfig.from_dict(overrides)


def debug_image_path(args) -> Path:
    """--debug-image if given, else <image>.debug.png beside the input."""
    if args.debug_image:
        return Path(args.debug_image)
    image = Path(args.image)
    return image.with_name(f"{image.stem}.debug.png")


def main(argv=None) -> int:
    global _running
    args = _parse_args(argv)
    setup_logging(args.verbose)
    _running = True

    config = load_config(args.config)
    try:
        scan_config = build_scan_config(config, args)
    except (TypeError, ValueError) as e:
        logger.error("Invalid scanner config: %s", e)
        return EXIT_BAD_INPUT
    jlog = JsonLinesLogger(config.get("log_file", "scanner.log.jsonl"))

    try:
        buffer = load_image(args.image)
    except ValueError as e:
        logger.error("%s", e)
        jlog.log("load_failed", image=args.image, error=str(e))
        return EXIT_BAD_INPUT

    previous_handler = signal.signal(signal.SIGINT, _sigint_handler)
    scanner = MultiScaleScanner(decode_rgba, should_cancel=lambda: not _running)
    try:
        result = scanner.scan(buffer, scan_config)
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    if result.diagnostics is not None:
        result.diagnostics.save(debug_image_path(args))

    if not result.found:
        print("No QR code found in the image")
        jlog.log("not_found", image=args.image, attempts=result.attempts)
        return EXIT_NOT_FOUND

    decoded = classify_payload(result.payload)
    logger.info("=== QR DECODED: %s", result.payload[:120])
    jlog.log(
        "qr_decoded",
        image=args.image,
        kind=decoded.kind,
        content=result.payload,
        scale=result.scale,
        attempts=result.attempts,
    )
    print(format_result(decoded))
    return EXIT_FOUND


if __name__ == "__main__":
    sys.exit(main())

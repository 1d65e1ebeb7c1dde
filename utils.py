"""Shared helpers: config, logging, JSON-lines scan history."""

import json
import time
import logging
from pathlib import Path

logger = logging.getLogger("scanner")

CONFIG_PATH = Path(__file__).parent / "config.json"


def load_config(path: str | Path | None = None) -> dict:
    """Load config.json; a missing file yields an empty config (all defaults)."""
    path = Path(path) if path is not None else CONFIG_PATH
    if not path.exists():
        logger.debug("No config at %s, using defaults", path)
        return {}
    with open(path) as f:
        return json.load(f)


class JsonLinesLogger:
    """Append structured JSON lines to a log file."""

    def __init__(self, path: str):
        self._path = Path(path)

    def log(self, event: str, **data):
        entry = {"ts": time.time(), "event": event, **data}
        with open(self._path, "a") as f:
            f.write(json.dumps(entry) + "\n")


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%H:%M:%S",
    )

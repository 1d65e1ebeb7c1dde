"""Record the windows probed during a scan and render them onto the source image."""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path

import cv2
import numpy as np
from PIL import Image

from capture import PixelBuffer

logger = logging.getLogger("scanner")

# RGBA colours
PROBE_COLOR = (255, 0, 0, 255)
PROBE_ALPHA = 0.5
PROBE_THICKNESS = 2
FOUND_COLOR = (0, 255, 0, 255)
FOUND_THICKNESS = 3


@dataclass(frozen=True)
class WindowProbe:
    """One square window, in the coordinates of the resampled frame."""

    x: int
    y: int
    size: int
    scale: float

    def original_rect(self) -> tuple[int, int, int, int]:
        """Project back to original-image space as (x, y, w, h)."""
        side = int(round(self.size / self.scale))
        return (
            int(round(self.x / self.scale)),
            int(round(self.y / self.scale)),
            side,
            side,
        )


@dataclass
class DiagnosticTrace:
    """Accumulates probe events; drawn in one pass by render()."""

    base: PixelBuffer
    probes: list[WindowProbe] = field(default_factory=list)
    found: WindowProbe | None = None

    def record_probe(self, probe: WindowProbe):
        self.probes.append(probe)

    def record_found(self, probe: WindowProbe):
        self.found = probe

    def render(self) -> np.ndarray:
        """Return an H×W×4 RGBA copy of the base image with rectangles drawn."""
        canvas = self.base.to_array().copy()

        if self.probes:
            overlay = canvas.copy()
            for probe in self.probes:
                _stroke(overlay, probe, PROBE_COLOR, PROBE_THICKNESS)
            canvas = cv2.addWeighted(overlay, PROBE_ALPHA, canvas, 1 - PROBE_ALPHA, 0)

        if self.found is not None:
            _stroke(canvas, self.found, FOUND_COLOR, FOUND_THICKNESS)

        return canvas

    def to_png_bytes(self) -> bytes:
        buf = io.BytesIO()
        Image.fromarray(self.render()).save(buf, format="PNG")
        return buf.getvalue()

    def save(self, path: str | Path):
        """Write the rendered trace as a PNG, whatever the file suffix."""
        Path(path).write_bytes(self.to_png_bytes())
        logger.info(
            "Diagnostic image saved to %s (%d windows, found=%s)",
            path, len(self.probes), self.found is not None,
        )


def _stroke(canvas: np.ndarray, probe: WindowProbe, color, thickness: int):
    x, y, w, h = probe.original_rect()
    cv2.rectangle(canvas, (x, y), (x + w - 1, y + h - 1), color, thickness)

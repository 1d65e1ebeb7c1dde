"""Turn image files or encoded bytes into RGBA pixel buffers for the scanner."""

import logging
from dataclasses import dataclass
from pathlib import Path

import cv2
import numpy as np

logger = logging.getLogger("scanner")


@dataclass(frozen=True)
class PixelBuffer:
    """Immutable RGBA image, row-major, 4 bytes per pixel."""

    pixels: bytes
    width: int
    height: int

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative dimensions: {self.width}x{self.height}")
        expected = self.width * self.height * 4
        if len(self.pixels) != expected:
            raise ValueError(
                f"Pixel buffer has {len(self.pixels)} bytes, "
                f"expected {expected} for {self.width}x{self.height} RGBA"
            )

    @classmethod
    def from_array(cls, arr: np.ndarray) -> "PixelBuffer":
        """Build from an H×W×4 uint8 RGBA array."""
        if arr.ndim != 3 or arr.shape[2] != 4:
            raise ValueError(f"Expected H×W×4 RGBA array, got shape {arr.shape}")
        h, w = arr.shape[:2]
        return cls(np.ascontiguousarray(arr, dtype=np.uint8).tobytes(), w, h)

    def to_array(self) -> np.ndarray:
        """Read-only H×W×4 view over the pixel bytes."""
        return np.frombuffer(self.pixels, dtype=np.uint8).reshape(
            (self.height, self.width, 4)
        )

    def crop(self, x: int, y: int, w: int, h: int) -> "PixelBuffer":
        if x < 0 or y < 0 or x + w > self.width or y + h > self.height:
            raise ValueError(
                f"Crop {w}x{h}+{x}+{y} outside {self.width}x{self.height} buffer"
            )
        return PixelBuffer.from_array(self.to_array()[y : y + h, x : x + w])


def to_rgba(image: np.ndarray) -> np.ndarray:
    """Normalize an OpenCV image (gray, BGR or BGRA) to RGBA."""
    if image.ndim == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    channels = image.shape[2]
    if channels == 1:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(image, cv2.COLOR_BGRA2RGBA)
    raise ValueError(f"Unsupported channel count: {channels}")


def _to_8bit(image: np.ndarray) -> np.ndarray:
    # 16-bit PNG/TIFF come through IMREAD_UNCHANGED as uint16
    if image.dtype == np.uint16:
        return (image >> 8).astype(np.uint8)
    return image


def buffer_from_bytes(data: bytes) -> PixelBuffer:
    """Decode an encoded image (PNG, JPEG, ...) held in memory."""
    arr = np.frombuffer(data, dtype=np.uint8)
    img = cv2.imdecode(arr, cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError("Failed to decode image")
    return PixelBuffer.from_array(to_rgba(_to_8bit(img)))


def load_image(path: str | Path) -> PixelBuffer:
    """Read an image file from disk into an RGBA pixel buffer."""
    path = Path(path)
    if not path.is_file():
        raise ValueError(f"Image file not found: {path}")

    img = cv2.imread(str(path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Failed to load image: {path}")

    buf = PixelBuffer.from_array(to_rgba(_to_8bit(img)))
    logger.info("Loaded %s (%dx%d)", path.name, buf.width, buf.height)
    return buf

"""Multi-scale sliding-window QR search around a black-box decode primitive.

Order: native frame → (advanced only) for each scale: whole resampled frame,
then every window size in listed order, windows in row-major order.
The first successful decode wins; nothing after it is probed.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Iterator, Mapping

import cv2

from capture import PixelBuffer
from diagnostics import DiagnosticTrace, WindowProbe

logger = logging.getLogger("scanner")

DecodeFn = Callable[[bytes, int, int], str | None]

_SCALE_EPSILON = 1e-9

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _parse_flag(key: str, value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE:
            return True
        if lowered in _FALSE:
            return False
    raise ValueError(f"{key} must be true or false, got {value!r}")


@dataclass(frozen=True)
class ScanConfig:
    use_advanced_scanning: bool = True
    debug_mode: bool = False
    min_scale: float = 0.5
    max_scale: float = 2.0
    scale_step: float = 0.25
    window_overlap: float = 0.25  # fraction shared by neighbouring windows
    window_sizes: tuple[int, ...] = (300, 500)

    _KEYS = {
        "useAdvancedScanning": "use_advanced_scanning",
        "debugMode": "debug_mode",
        "minScale": "min_scale",
        "maxScale": "max_scale",
        "scaleStep": "scale_step",
        "windowOverlap": "window_overlap",
        "windowSizes": "window_sizes",
    }

    @classmethod
    def from_dict(cls, data: Mapping | None) -> "ScanConfig":
        """Build from a config mapping; camelCase or snake_case keys."""
        kwargs = {}
        for key, value in (data or {}).items():
            name = cls._KEYS.get(key, key)
            if name not in cls.__dataclass_fields__:
                continue
            if name == "window_sizes":
                value = tuple(int(v) for v in value)
            elif name in ("use_advanced_scanning", "debug_mode"):
                value = _parse_flag(key, value)
            else:
                value = float(value)
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class ScanResult:
    found: bool
    payload: str | None = None
    scale: float | None = None  # None for the native pass
    window: WindowProbe | None = None  # None for whole-frame hits
    diagnostics: DiagnosticTrace | None = None
    attempts: int = 0

    @classmethod
    def hit(cls, payload: str, **kwargs) -> "ScanResult":
        return cls(found=True, payload=payload, **kwargs)

    @classmethod
    def miss(cls, **kwargs) -> "ScanResult":
        return cls(found=False, **kwargs)


def scale_range(min_scale: float, max_scale: float, step: float) -> Iterator[float]:
    """Yield min..max inclusive by step, reaching max exactly once."""
    if step <= 0 or min_scale > max_scale:
        return
    n = math.floor((max_scale - min_scale) / step + _SCALE_EPSILON)
    for i in range(n + 1):
        yield min_scale + i * step


def window_positions(
    frame_w: int, frame_h: int, size: int, overlap: float
) -> Iterator[tuple[int, int]]:
    """Top-left corners of every window of `size` in row-major order."""
    if size <= 0 or size > frame_w or size > frame_h:
        return
    step = max(1, math.floor(size * (1 - overlap)))
    for y in range(0, frame_h - size + 1, step):
        for x in range(0, frame_w - size + 1, step):
            yield x, y


def resample(buffer: PixelBuffer, width: int, height: int) -> PixelBuffer:
    """Resize the whole buffer to width×height."""
    src = buffer.to_array()
    shrinking = width * height < buffer.width * buffer.height
    interp = cv2.INTER_AREA if shrinking else cv2.INTER_CUBIC
    return PixelBuffer.from_array(cv2.resize(src, (width, height), interpolation=interp))


@dataclass
class MultiScaleScanner:
    """Wraps a decode primitive with the multi-scale sliding-window fallback."""

    decode: DecodeFn
    should_cancel: Callable[[], bool] | None = None
    attempts: int = field(default=0, init=False)

    def _attempt(self, pixels: bytes, width: int, height: int, where: str) -> str | None:
        self.attempts += 1
        try:
            return self.decode(pixels, width, height)
        except Exception as e:
            logger.debug("Decode raised at %s: %s", where, e)
            return None

    def _cancelled(self) -> bool:
        return self.should_cancel is not None and bool(self.should_cancel())

    def scan(self, buffer: PixelBuffer, config: ScanConfig) -> ScanResult:
        self.attempts = 0

        # 1) Native resolution
        payload = self._attempt(buffer.pixels, buffer.width, buffer.height, "native")
        if payload is not None:
            logger.debug("Decoded at native resolution")
            return ScanResult.hit(payload, attempts=self.attempts)

        if not config.use_advanced_scanning:
            return ScanResult.miss(attempts=self.attempts)

        trace = DiagnosticTrace(buffer) if config.debug_mode else None

        # 2) Resampled frames and sliding windows
        for scale in scale_range(config.min_scale, config.max_scale, config.scale_step):
            scaled_w = math.floor(buffer.width * scale)
            scaled_h = math.floor(buffer.height * scale)
            if scaled_w <= 0 or scaled_h <= 0:
                continue

            try:
                frame = resample(buffer, scaled_w, scaled_h)
            except (cv2.error, MemoryError, ValueError) as e:
                logger.warning("Skipping scale %.2f: resample failed (%s)", scale, e)
                continue

            payload = self._attempt(
                frame.pixels, scaled_w, scaled_h, f"scale {scale:.2f}"
            )
            if payload is not None:
                logger.debug("Decoded whole frame at %.2fx scale", scale)
                return ScanResult.hit(
                    payload, scale=scale, diagnostics=trace, attempts=self.attempts
                )

            for size in config.window_sizes:
                for x, y in window_positions(scaled_w, scaled_h, size, config.window_overlap):
                    if self._cancelled():
                        logger.info("Scan cancelled after %d attempts", self.attempts)
                        return ScanResult.miss(diagnostics=trace, attempts=self.attempts)

                    probe = WindowProbe(x, y, size, scale)
                    if trace is not None:
                        trace.record_probe(probe)

                    window = frame.crop(x, y, size, size)
                    payload = self._attempt(
                        window.pixels, size, size,
                        f"window {size}px at ({x},{y}) scale {scale:.2f}",
                    )
                    if payload is not None:
                        if trace is not None:
                            trace.record_found(probe)
                        logger.info(
                            "Decoded in %dpx window at (%d,%d), %.2fx scale",
                            size, x, y, scale,
                        )
                        return ScanResult.hit(
                            payload,
                            scale=scale,
                            window=probe,
                            diagnostics=trace,
                            attempts=self.attempts,
                        )

        logger.debug("No QR code found after %d decode attempts", self.attempts)
        return ScanResult.miss(diagnostics=trace, attempts=self.attempts)


def scan(
    buffer: PixelBuffer,
    config: ScanConfig,
    decode: DecodeFn,
    should_cancel: Callable[[], bool] | None = None,
) -> ScanResult:
    """Convenience: build a scanner and run one scan."""
    return MultiScaleScanner(decode, should_cancel=should_cancel).scan(buffer, config)

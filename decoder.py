"""QR code decode primitive built on a multi-library pipeline.

Order: zxingcpp (most robust) → pyzbar → OpenCV → Otsu threshold retries.
Never attempts an inverted-colour decode; light-on-dark codes are not found.
"""

import logging

import cv2
import numpy as np
from pyzbar.pyzbar import decode as pyzbar_decode, ZBarSymbol
import zxingcpp

logger = logging.getLogger("scanner")

_qr_detector = cv2.QRCodeDetector()


def _to_gray(frame: np.ndarray) -> np.ndarray:
    if frame.ndim == 2:
        return frame
    if frame.shape[2] == 4:
        return cv2.cvtColor(frame, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(frame, cv2.COLOR_BGR2GRAY)


def _zxing(gray: np.ndarray) -> str | None:
    try:
        results = zxingcpp.read_barcodes(
            gray, formats=zxingcpp.BarcodeFormat.QRCode, try_invert=False
        )
    except Exception as e:
        logger.debug("zxingcpp failed: %s", e)
        return None
    for r in results:
        if r.text:
            return r.text
    return None


def _zbar(gray: np.ndarray) -> str | None:
    try:
        results = pyzbar_decode(gray, symbols=[ZBarSymbol.QRCODE])
    except Exception as e:
        logger.debug("pyzbar failed: %s", e)
        return None
    for r in results:
        text = r.data.decode("utf-8", errors="replace")
        if text:
            return text
    return None


def _opencv(gray: np.ndarray) -> str | None:
    try:
        text, _, _ = _qr_detector.detectAndDecode(gray)
    except cv2.error as e:
        logger.debug("OpenCV QR detector failed: %s", e)
        return None
    return text or None


def _try_decode(gray: np.ndarray) -> str | None:
    """Run the full decode pipeline on a single grayscale image."""
    for backend in (_zxing, _zbar, _opencv):
        text = backend(gray)
        if text:
            return text

    # Otsu threshold + retry (handles low contrast)
    _, thresh = cv2.threshold(gray, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    for backend in (_zxing, _zbar):
        text = backend(thresh)
        if text:
            logger.debug("Decoded after Otsu threshold")
            return text

    return None


def decode_frame(frame: np.ndarray) -> str | None:
    """Decode a QR code from a grayscale, BGR or RGBA array."""
    if frame.size == 0:
        return None
    return _try_decode(_to_gray(frame))


def decode_rgba(pixels: bytes, width: int, height: int) -> str | None:
    """Decode primitive over raw RGBA bytes; returns the payload or None."""
    if width <= 0 or height <= 0:
        return None
    arr = np.frombuffer(pixels, dtype=np.uint8).reshape((height, width, 4))
    return decode_frame(arr)

import numpy as np
import pytest

from capture import PixelBuffer


def tiled_buffer(tiles: int, tile_size: int) -> PixelBuffer:
    """Square RGBA image of tiles×tiles uniform tiles.

    Each tile's red channel holds row * 16 + col, so a decoder can tell
    which tile a window covers by looking at its centre pixel.
    """
    side = tiles * tile_size
    arr = np.zeros((side, side, 4), dtype=np.uint8)
    arr[..., 3] = 255
    for row in range(tiles):
        for col in range(tiles):
            y, x = row * tile_size, col * tile_size
            arr[y : y + tile_size, x : x + tile_size, 0] = row * 16 + col
    return PixelBuffer.from_array(arr)


class RecordingDecoder:
    """Mock decode primitive.

    Records every call. Succeeds only on windows of `window_size` whose
    centre tile id is in `hits` (mapping tile id -> payload), or on every
    call when `always` is set.
    """

    def __init__(self, window_size=None, hits=None, always=None, raise_on=()):
        self.window_size = window_size
        self.hits = hits or {}
        self.always = always
        self.raise_on = set(raise_on)
        self.calls = []

    def __call__(self, pixels, width, height):
        self.calls.append((width, height))
        index = len(self.calls) - 1
        if index in self.raise_on:
            raise RuntimeError("decoder blew up")
        if self.always is not None:
            return self.always
        if width != self.window_size or height != self.window_size:
            return None
        arr = np.frombuffer(pixels, dtype=np.uint8).reshape((height, width, 4))
        tile_id = int(arr[height // 2, width // 2, 0])
        return self.hits.get(tile_id)

    def window_calls(self):
        return [c for c in self.calls if c == (self.window_size, self.window_size)]


@pytest.fixture
def grid():
    """4×4 tiles of 100px: a 400×400 image."""
    return tiled_buffer(4, 100)

"""
Conversion between Pillow images and the engine's packed pixel buffer.

A buffer is a flat ``uint8`` array of ``width * height * 4`` bytes, row-major,
each pixel stored as alpha, blue, green, red.
"""

import os

import numpy as np
from PIL import Image

from engine_errors import InvalidBufferLengthError

BYTES_PER_PIXEL = 4

# Offsets inside one pixel
ALPHA, BLUE, GREEN, RED = 0, 1, 2, 3

# RGBA <-> ABGR is the same reversal both ways
_REVERSE = [3, 2, 1, 0]


def load_image(path):
    image = Image.open(path)
    image.load()
    return image


def save_image(image, path):
    # JPEG has no alpha channel
    if os.path.splitext(path)[1].lower() in ('.jpg', '.jpeg') and image.mode != 'RGB':
        image = image.convert('RGB')
    image.save(path)


def to_buffer(image):
    """Deep copy of ``image`` as an ABGR buffer, whatever the source mode."""
    rgba = np.array(image.convert('RGBA'), dtype=np.uint8)
    return np.ascontiguousarray(rgba[..., _REVERSE]).reshape(-1)


def new_buffer(width, height):
    return np.zeros(width * height * BYTES_PER_PIXEL, dtype=np.uint8)


def as_pixel_array(buffer, width, height):
    """Validate ``buffer`` and view it as a ``(height, width, 4)`` array."""
    if isinstance(buffer, (bytes, bytearray, memoryview)):
        buffer = np.frombuffer(buffer, dtype=np.uint8)
    else:
        buffer = np.asarray(buffer, dtype=np.uint8)
    if width < 0 or height < 0 or buffer.size != width * height * BYTES_PER_PIXEL:
        raise InvalidBufferLengthError(buffer.size, width, height)
    return buffer.reshape(height, width, BYTES_PER_PIXEL)


def from_buffer(buffer, width, height):
    """New RGBA image of exactly ``width`` x ``height`` built from an ABGR buffer."""
    pixels = as_pixel_array(buffer, width, height)
    return Image.fromarray(np.ascontiguousarray(pixels[..., _REVERSE]))

"""Named convolution kernel presets."""

from typing import NamedTuple, Tuple


class Kernel(NamedTuple):
    """A flat row-major weight matrix and the cell aligned with the output pixel."""
    matrix: Tuple[float, ...]
    width: int
    height: int
    origin: Tuple[int, int]  # (row, col)


def make_kernel(matrix, width, height, origin):
    matrix = tuple(float(w) for w in matrix)
    if width < 1 or height < 1:
        raise ValueError(f"Kernel dimensions must be positive, got {width}x{height}")
    if len(matrix) != width * height:
        raise ValueError(f"Kernel of {width}x{height} needs {width * height} weights, got {len(matrix)}")
    row, col = origin
    if not (0 <= row < height and 0 <= col < width):
        raise ValueError(f"Origin {origin} lies outside a {width}x{height} kernel")
    return Kernel(matrix, width, height, (row, col))


def from_rows(rows, origin=None, scale=1.0):
    """Build a kernel from nested rows; the origin defaults to the centre cell."""
    height = len(rows)
    width = len(rows[0]) if height else 0
    if any(len(r) != width for r in rows):
        raise ValueError("All kernel rows must have the same length")
    if origin is None:
        origin = (height // 2, width // 2)
    return make_kernel([w * scale for r in rows for w in r], width, height, origin)


# Kernel presets
BOX_BLUR = from_rows([[1, 1, 1], [1, 1, 1], [1, 1, 1]], scale=1 / 9)
GAUSSIAN_BLUR = from_rows([[1, 2, 1], [2, 4, 2], [1, 2, 1]], scale=1 / 16)
EDGE_DETECTION = from_rows([[-1, -1, -1], [-1, 8, -1], [-1, -1, -1]])
SHARPEN = from_rows([[0, -1, 0], [-1, 5, -1], [0, -1, 0]])
EMBOSS = from_rows([[-2, -1, 0], [-1, 1, 1], [0, 1, 2]])

PRESETS = {
    'box_blur': BOX_BLUR,
    'gaussian_blur': GAUSSIAN_BLUR,
    'edge_detection': EDGE_DETECTION,
    'sharpen': SHARPEN,
    'emboss': EMBOSS,
}

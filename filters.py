import concurrent.futures
import logging
import time
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np

import kernels
from engine_config import EngineConfig
from engine_errors import KernelTooLargeError, PartialProcessingError
from partition import covered_rows, partition_rows
from pixel_buffer import ALPHA, BLUE, GREEN, RED, as_pixel_array, from_buffer, to_buffer

logger = logging.getLogger(__name__)


class ChannelSelector(Enum):
    """The colour channel kept by channel isolation; values are pixel offsets."""
    RED = RED
    GREEN = GREEN
    BLUE = BLUE


class FilterKind(Enum):
    BOX_BLUR = 'BOX BLUR'
    GAUSSIAN_BLUR = 'GAUSSIAN BLUR'
    EDGE_DETECTION = 'EDGE DETECTION'
    SHARPEN = 'SHARPEN'
    EMBOSS = 'EMBOSS'
    RED_ISOLATE = 'RED COLORING'
    GREEN_ISOLATE = 'GREEN COLORING'
    BLUE_ISOLATE = 'BLUE COLORING'
    GRAYSCALE = 'GRAYSCALE'


class BandResult(NamedTuple):
    index: int
    start: int
    end: int
    error: Optional[BaseException] = None

    @property
    def ok(self):
        return self.error is None


_KERNEL_FILTERS = {
    FilterKind.BOX_BLUR: kernels.BOX_BLUR,
    FilterKind.GAUSSIAN_BLUR: kernels.GAUSSIAN_BLUR,
    FilterKind.EDGE_DETECTION: kernels.EDGE_DETECTION,
    FilterKind.SHARPEN: kernels.SHARPEN,
    FilterKind.EMBOSS: kernels.EMBOSS,
}

_CHANNEL_FILTERS = {
    FilterKind.RED_ISOLATE: ChannelSelector.RED,
    FilterKind.GREEN_ISOLATE: ChannelSelector.GREEN,
    FilterKind.BLUE_ISOLATE: ChannelSelector.BLUE,
}


def _normalize_name(name):
    return ' '.join(name.strip().upper().replace('_', ' ').replace('-', ' ').split())


_FILTER_LOOKUP = {}
for _kind in FilterKind:
    _FILTER_LOOKUP[_normalize_name(_kind.name)] = _kind
    _FILTER_LOOKUP[_normalize_name(_kind.value)] = _kind


def resolve_filter(identifier):
    """Map a FilterKind, its name or its display label to a FilterKind; None if unknown."""
    if isinstance(identifier, FilterKind):
        return identifier
    if not isinstance(identifier, str):
        return None
    return _FILTER_LOOKUP.get(_normalize_name(identifier))


def _resolve_channel(channel):
    if isinstance(channel, ChannelSelector):
        return channel
    return ChannelSelector[str(channel).strip().upper()]


# --- Pixel arithmetic helpers ---

def _narrow(values, overflow):
    """Truncate float sums toward zero and fit them into a byte."""
    truncated = np.trunc(values)
    if overflow == 'clamp':
        return np.clip(truncated, 0, 255).astype(np.uint8)
    # Keep the low 8 bits, so 256 -> 0 and -1 -> 255
    return (truncated.astype(np.int64) & 0xFF).astype(np.uint8)


def _sample_indices(index, low, high, span, limit, edge_mode):
    """
    Bring sampled row or column indices back inside the image.

    In 'band' mode an index below ``low`` moves forward by ``span`` (the
    kernel size along that axis) and one at or above ``high`` moves back by
    it, once. For rows ``[low, high)`` is the worker's own band, so pixels
    near a band edge sample the opposite edge of that band.
    """
    if edge_mode == 'toroidal':
        return index % limit
    if edge_mode == 'clamp':
        return np.clip(index, 0, limit - 1)

    index = np.where(index < low, index + span, np.where(index >= high, index - span, index))
    if index.size and (index.min() < 0 or index.max() >= limit):
        raise IndexError(
            f"Sampled index range [{index.min()}, {index.max()}] falls outside [0, {limit})")
    return index


# --- Worker functions for bands (executed in parallel) ---

def _process_kernel_band(args):

    colour, kernel, start_row, end_row, edge_mode, overflow = args
    height, width = colour.shape[:2]
    origin_row, origin_col = kernel.origin

    # Output rows and columns shifted by the kernel anchor
    rows = np.arange(start_row - origin_row, end_row - origin_row)
    cols = np.arange(-origin_col, width - origin_col)

    sums = np.zeros((rows.size, cols.size, 3), dtype=np.float32)
    for npos, weight in enumerate(kernel.matrix):
        # Mirrored tap offsets: the kernel is applied rotated by 180 degrees
        tap_rows = _sample_indices(rows + (kernel.height - npos // kernel.width - 1),
                                   start_row, end_row, kernel.height, height, edge_mode)
        tap_cols = _sample_indices(cols + (kernel.width - npos % kernel.width - 1),
                                   0, width, kernel.width, width, edge_mode)
        sums += np.float32(weight) * colour[np.ix_(tap_rows, tap_cols)]

    band = np.empty((rows.size, width, 4), dtype=np.uint8)
    band[..., ALPHA] = 0xFF
    band[..., BLUE:RED + 1] = _narrow(sums, overflow)
    return start_row, band


def _process_isolate_band(args):

    pixels, offset, start_row, end_row = args
    band = np.zeros((end_row - start_row, pixels.shape[1], 4), dtype=np.uint8)
    band[..., ALPHA] = 0xFF
    band[..., offset] = pixels[start_row:end_row, :, offset]
    return start_row, band


def _process_grayscale_band(args):

    pixels, weights, start_row, end_row, overflow = args
    chunk = pixels[start_row:end_row].astype(np.float32)
    red_weight, green_weight, blue_weight = (np.float32(w) for w in weights)
    luma = (red_weight * chunk[..., RED]
            + green_weight * chunk[..., GREEN]
            + blue_weight * chunk[..., BLUE])

    band = np.empty(chunk.shape, dtype=np.uint8)
    band[..., ALPHA] = 0xFF
    band[..., BLUE:RED + 1] = _narrow(luma, overflow)[..., np.newaxis]
    return start_row, band


# --- Parallel Orchestration ---

def _run_bands(worker, make_args, height, width, config, executor=None):
    """
    Run ``worker`` once per band and assemble the bands into a fresh buffer.

    Blocks until every band has finished. Rows outside all bands, and rows
    of bands that failed, stay zero. A lone band with no executor supplied
    runs on the calling thread.
    """
    bands = partition_rows(height, config.workers, config.partition)
    missing = height - covered_rows(bands)
    if missing:
        logger.debug(f"{missing} trailing row(s) are not assigned to any band")

    out = np.zeros((height, width, 4), dtype=np.uint8)
    start = time.perf_counter()
    tasks = [(index, start_row, end_row) for index, (start_row, end_row) in enumerate(bands)
             if start_row != end_row]

    outcomes = {}
    if executor is None and len(tasks) == 1:
        task = tasks[0]
        try:
            outcomes[task] = (worker(make_args(task[1], task[2])), None)
        except Exception as e:
            outcomes[task] = (None, e)
    else:
        own_executor = executor is None
        if own_executor:
            executor = concurrent.futures.ThreadPoolExecutor(max_workers=config.workers)
        try:
            futures = {executor.submit(worker, make_args(start_row, end_row)): (index, start_row, end_row)
                       for index, start_row, end_row in tasks}
            concurrent.futures.wait(futures)
        finally:
            if own_executor:
                executor.shutdown(wait=True)
        for future, task in futures.items():
            if future.cancelled():
                error = concurrent.futures.CancelledError(f"band {task[0]} was cancelled")
            else:
                error = future.exception()
            outcomes[task] = (None if error else future.result(), error)

    results = []
    for (index, start_row, end_row), (outcome, error) in outcomes.items():
        if error is None:
            row, band = outcome
            out[row:row + band.shape[0]] = band
        else:
            logger.error(f"Band {index} (rows {start_row}-{end_row}) failed: {error!r}")
        results.append(BandResult(index, start_row, end_row, error))

    logger.debug(f"{worker.__name__}: {len(results)} band(s) on {width}x{height} "
                 f"in {time.perf_counter() - start:.4f}s")

    buffer = out.reshape(-1)
    failures = [r for r in results if not r.ok]
    if failures:
        if config.strict:
            raise PartialProcessingError(sorted(failures), buffer)
        logger.warning(f"{len(failures)} band(s) failed; their rows are left empty.")
    return buffer


def apply_kernel(buffer, width, height, kernel, config=None, executor=None):
    """
    Convolve the image with ``kernel`` band by band.

    Each colour channel is accumulated in float32 and narrowed to a byte per
    ``config.overflow``; alpha is always written as 0xFF.

    Raises:
        KernelTooLargeError: The kernel is wider or taller than the image.
        PartialProcessingError: A band failed and ``config.strict`` is set.
    """
    config = config or EngineConfig()
    pixels = as_pixel_array(buffer, width, height)
    if width < kernel.width or height < kernel.height:
        logger.error("Can't process the image with the given kernel. Kernel too big.")
        raise KernelTooLargeError((kernel.width, kernel.height), (width, height))

    # Private float copy of the colour channels, shared read-only by all bands
    colour = np.ascontiguousarray(pixels[..., BLUE:RED + 1], dtype=np.float32)
    return _run_bands(
        _process_kernel_band,
        lambda start_row, end_row: (colour, kernel, start_row, end_row, config.edge_mode, config.overflow),
        height, width, config, executor)


def isolate_channel(buffer, width, height, channel, config=None, executor=None):
    """Keep one colour channel, zero the other two and make every pixel opaque."""
    config = config or EngineConfig()
    pixels = np.array(as_pixel_array(buffer, width, height))
    offset = _resolve_channel(channel).value
    return _run_bands(
        _process_isolate_band,
        lambda start_row, end_row: (pixels, offset, start_row, end_row),
        height, width, config, executor)


def grayscale(buffer, width, height, config=None, executor=None):
    """Replace each colour channel with the truncated weighted luma of the pixel."""
    config = config or EngineConfig()
    pixels = np.array(as_pixel_array(buffer, width, height))
    return _run_bands(
        _process_grayscale_band,
        lambda start_row, end_row: (pixels, config.luma_weights, start_row, end_row, config.overflow),
        height, width, config, executor)


# --- Filter dispatch ---

def process_buffer(buffer, width, height, identifier, config=None, executor=None):
    """Apply the named filter to a raw buffer; unknown names return a copy of the input."""
    kind = resolve_filter(identifier)
    if kind in _KERNEL_FILTERS:
        return apply_kernel(buffer, width, height, _KERNEL_FILTERS[kind], config, executor)
    if kind in _CHANNEL_FILTERS:
        return isolate_channel(buffer, width, height, _CHANNEL_FILTERS[kind], config, executor)
    if kind is FilterKind.GRAYSCALE:
        return grayscale(buffer, width, height, config, executor)
    return np.array(as_pixel_array(buffer, width, height)).reshape(-1)


def process_image(image, identifier, config=None, executor=None):
    """
    Apply a named filter to a Pillow image.

    Returns a new RGBA image, the input image itself when the filter name is
    unknown, or None when the filter's kernel is larger than the image.
    Bands that fail are logged and come back as transparent black rows;
    nothing is raised for them here, whatever ``config.strict`` says.
    """
    kind = resolve_filter(identifier)
    if kind is None:
        logger.warning(f"Unknown filter {identifier!r}; image left unchanged.")
        return image

    width, height = image.size
    buffer = to_buffer(image)
    try:
        result = process_buffer(buffer, width, height, kind, config, executor)
    except KernelTooLargeError:
        return None
    except PartialProcessingError as e:
        logger.warning(f"{kind.value} on {width}x{height}: {e}; returning the partial image.")
        result = e.buffer
    return from_buffer(result, width, height)

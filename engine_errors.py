"""Exceptions raised by the filter engine."""


class FilterEngineError(Exception):
    """Base class for engine failures."""


class InvalidBufferLengthError(FilterEngineError, ValueError):

    def __init__(self, length, width, height):
        self.length = length
        self.width = width
        self.height = height
        super().__init__(
            f"Buffer of {length} bytes does not hold a {width}x{height} image "
            f"({width * height * 4} bytes expected)")


class KernelTooLargeError(FilterEngineError, ValueError):

    def __init__(self, kernel_size, image_size):
        self.kernel_size = kernel_size
        self.image_size = image_size
        super().__init__(
            f"Can't process a {image_size[0]}x{image_size[1]} image with a "
            f"{kernel_size[0]}x{kernel_size[1]} kernel. Kernel too big.")


class PartialProcessingError(FilterEngineError):
    """One or more bands did not complete.

    ``buffer`` holds the output as far as it got; rows of failed bands are
    left at zero.
    """

    def __init__(self, failures, buffer):
        self.failures = list(failures)
        self.buffer = buffer
        rows = ", ".join(f"[{f.start}, {f.end})" for f in self.failures)
        super().__init__(f"{len(self.failures)} band(s) failed: rows {rows}")

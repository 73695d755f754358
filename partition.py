"""Splitting an image's rows into horizontal bands, one per worker."""


def partition_rows(height, workers, strategy='balanced'):
    """
    Divides ``[0, height)`` into ``workers`` half-open row bands.

    'legacy' uses plain integer division, so the last ``height % workers``
    rows belong to no band. 'balanced' hands the remainder out one row at a
    time to the first bands, so every row is covered.
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    if height < 0:
        raise ValueError(f"height must not be negative, got {height}")

    if strategy == 'legacy':
        step = height // workers
        return [(i * step, (i + 1) * step) for i in range(workers)]

    if strategy == 'balanced':
        base, extra = divmod(height, workers)
        bands = []
        start = 0
        for i in range(workers):
            end = start + base + (1 if i < extra else 0)
            bands.append((start, end))
            start = end
        return bands

    raise ValueError(f"Unknown partition strategy: {strategy!r}")


def covered_rows(bands):
    return sum(end - start for start, end in bands)

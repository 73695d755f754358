"""
Engine configuration.

The defaults reproduce the reference behaviour: four workers, band-local
wraparound at band edges and byte narrowing that wraps instead of clamping.
Settings can be overridden per call or read from an INI file with an
``[engine]`` section.
"""

import configparser
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

# --- Defaults ---
DEFAULT_WORKERS = 4
DEFAULT_LUMA_WEIGHTS = (0.299, 0.587, 0.114)  # ITU-R BT.601, (red, green, blue)

PARTITION_STRATEGIES = ('balanced', 'legacy')
EDGE_MODES = ('band', 'toroidal', 'clamp')
OVERFLOW_MODES = ('wrap', 'clamp')

CONFIG_SECTION = 'engine'


class EngineConfig:
    """Tunable parameters passed into every engine entry point."""

    def __init__(self, workers=DEFAULT_WORKERS, partition='balanced', edge_mode='band',
                 overflow='wrap', strict=True, luma_weights=DEFAULT_LUMA_WEIGHTS):
        workers = int(workers)
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        if partition not in PARTITION_STRATEGIES:
            raise ValueError(f"Unknown partition strategy: {partition!r}")
        if edge_mode not in EDGE_MODES:
            raise ValueError(f"Unknown edge mode: {edge_mode!r}")
        if overflow not in OVERFLOW_MODES:
            raise ValueError(f"Unknown overflow mode: {overflow!r}")
        luma_weights = tuple(float(w) for w in luma_weights)
        if len(luma_weights) != 3:
            raise ValueError("luma_weights needs exactly three values (red, green, blue)")

        self.workers = workers
        self.partition = partition
        self.edge_mode = edge_mode
        self.overflow = overflow
        self.strict = bool(strict)
        self.luma_weights = luma_weights

    def replace(self, **changes):
        """Return a copy with some settings changed."""
        values = self.as_dict()
        values.update(changes)
        return EngineConfig(**values)

    def as_dict(self):
        return {
            'workers': self.workers,
            'partition': self.partition,
            'edge_mode': self.edge_mode,
            'overflow': self.overflow,
            'strict': self.strict,
            'luma_weights': self.luma_weights,
        }

    def __eq__(self, other):
        if not isinstance(other, EngineConfig):
            return NotImplemented
        return self.as_dict() == other.as_dict()

    def __repr__(self):
        fields = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"EngineConfig({fields})"


def load_config(path):
    """
    Reads engine settings from an INI file.

    A missing file or missing keys fall back to the defaults.

    Args:
        path: Path to the INI file.

    Returns:
        EngineConfig: The resulting configuration.
    """
    path = Path(path)
    parser = configparser.ConfigParser()
    if not path.is_file():
        logger.warning(f"Config file {path} not found, using defaults.")
        return EngineConfig()

    parser.read(path, encoding='utf-8')
    if not parser.has_section(CONFIG_SECTION):
        return EngineConfig()

    section = parser[CONFIG_SECTION]
    defaults = EngineConfig()
    luma = section.get('luma_weights')
    return EngineConfig(
        workers=section.getint('workers', fallback=defaults.workers),
        partition=section.get('partition', fallback=defaults.partition),
        edge_mode=section.get('edge_mode', fallback=defaults.edge_mode),
        overflow=section.get('overflow', fallback=defaults.overflow),
        strict=section.getboolean('strict', fallback=defaults.strict),
        luma_weights=[float(v) for v in luma.split(',')] if luma else defaults.luma_weights,
    )

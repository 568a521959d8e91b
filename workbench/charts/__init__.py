"""Chart catalogue, saved charts and tuning."""

from .catalog import CATALOG, ChartKind, validate_mapping  # noqa: F401
from .chart import Chart  # noqa: F401
from .hypertune import ChartTuner, apply_cosmetic_overrides  # noqa: F401

__all__ = ["CATALOG", "ChartKind", "validate_mapping", "Chart", "ChartTuner", "apply_cosmetic_overrides"]

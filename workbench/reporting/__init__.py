"""Reporting dashboard: slicers, cross-filtering and chart bindings."""

from .bindings import ChartBindingManager  # noqa: F401
from .layout import LayoutStore  # noqa: F401
from .registry import FilterRegistry, NumericRange  # noqa: F401
from .session import DashboardSession  # noqa: F401

__all__ = ["ChartBindingManager", "LayoutStore", "FilterRegistry", "NumericRange", "DashboardSession"]

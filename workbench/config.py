"""Application configuration objects."""

import os
import sys
from typing import Dict
from dotenv import load_dotenv

if getattr(sys, "frozen", False):
    load_dotenv(os.path.join(sys._MEIPASS, ".env"))
else:
    load_dotenv()


class Config:
    """Base configuration for the workbench backend."""

    # -------------------------
    # Remote workbench API
    # -------------------------
    API_URL = os.getenv("WORKBENCH_API_URL", "http://127.0.0.1:8000/api")
    API_TIMEOUT = float(os.getenv("WORKBENCH_API_TIMEOUT", "30"))

    # -------------------------
    # Row counts for chart titles
    # -------------------------
    # "remote" asks the filtered-count service, "local" counts raw rows in DuckDB
    COUNT_BACKEND = os.getenv("WORKBENCH_COUNT_BACKEND", "remote")
    COUNT_CACHE_SIZE = int(os.getenv("WORKBENCH_COUNT_CACHE_SIZE", "256"))

    # -------------------------
    # Slicers / layout
    # -------------------------
    UNIQUE_VALUES_MAX = int(os.getenv("WORKBENCH_UNIQUE_VALUES_MAX", "500"))
    GRID_COLS = 12

    # Default widget sizes on the dashboard grid (w, h)
    WIDGET_SIZES: Dict[str, tuple] = {
        "chart": (6, 4),
        "slicer_list": (3, 4),
        "slicer_range": (3, 2),
        "column_selector": (3, 4),
    }


class TestingConfig(Config):
    TESTING = True
    COUNT_CACHE_SIZE = 16


__all__ = ["Config", "TestingConfig"]

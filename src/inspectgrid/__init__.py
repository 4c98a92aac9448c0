"""Playwright helpers for driving and asserting on virtualized AG Grid instances."""

from __future__ import annotations

from .config import GridReference, normalize_config
from .errors import (
    GridAssertionError,
    GridError,
    GridInconsistencyError,
    GridMisuseError,
    GridNotFoundError,
    GridTimeoutError,
)
from .helper import GridHelper, grid
from .models import (
    CellPosition,
    CellRange,
    CellRendererConfig,
    ColumnDef,
    DetailGridPath,
    EnterpriseFlags,
    GridConfig,
    GridState,
    GridTimeouts,
    RowData,
    RowMatcher,
)

__version__ = "0.1.0"

__all__ = [
    "CellPosition",
    "CellRange",
    "CellRendererConfig",
    "ColumnDef",
    "DetailGridPath",
    "EnterpriseFlags",
    "GridAssertionError",
    "GridConfig",
    "GridError",
    "GridHelper",
    "GridInconsistencyError",
    "GridMisuseError",
    "GridNotFoundError",
    "GridReference",
    "GridState",
    "GridTimeouts",
    "GridTimeoutError",
    "RowData",
    "RowMatcher",
    "grid",
    "normalize_config",
]

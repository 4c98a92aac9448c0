from __future__ import annotations

from typing import TYPE_CHECKING

from .runtime_checks import escape_css_attribute_value

if TYPE_CHECKING:
    from .models import PinSide, RowMatcher

ROOT_WRAPPER = ".ag-root-wrapper"
HEADER = ".ag-header"
HEADER_CELL = ".ag-header-cell"
HEADER_GROUP_CELL = ".ag-header-group-cell"
BODY_VIEWPORT = ".ag-body-viewport"
HORIZONTAL_VIEWPORT = ".ag-center-cols-viewport"
CENTER_COLS_CONTAINER = ".ag-center-cols-container"
PINNED_LEFT_CONTAINER = ".ag-pinned-left-cols-container"
PINNED_RIGHT_CONTAINER = ".ag-pinned-right-cols-container"

ROW = ".ag-row"
DATA_ROW = ".ag-row:not(.ag-details-row)"
CELL = ".ag-cell"
ROW_GROUP = ".ag-row-group"
ROW_SELECTED = ".ag-row-selected"
FULL_WIDTH_ROW = ".ag-full-width-row"
DETAILS_ROW = ".ag-details-row"

# Rows of the grid a query is scoped to; rows of nested detail grids are excluded.
GRID_ROW = f"{DATA_ROW}:not(:scope {DETAILS_ROW} *)"

LOADING_OVERLAY = ".ag-overlay-loading-center"
NO_ROWS_OVERLAY = ".ag-overlay-no-rows-center"
PAGING_PANEL = ".ag-paging-panel"
STATUS_BAR = ".ag-status-bar"

LOADING_CELL = ".ag-loading"
SKELETON_ROW = ".ag-skeleton-row"
REFRESH_BUTTON = '[data-action="refresh"], .ag-tool-panel-button[title*="Refresh"]'

FLOATING_FILTER = ".ag-floating-filter"
SELECTION_CHECKBOX = ".ag-selection-checkbox"
HEADER_SELECT_ALL = ".ag-header-select-all"
CHECKBOX_INPUT = 'input[type="checkbox"]'
DRAG_HANDLE = ".ag-drag-handle"

CELL_EDITING = ".ag-cell-editing"
CELL_EDITOR_INPUT = ".ag-cell-editor input, .ag-cell-editor textarea, .ag-cell-edit-input, .ag-cell-editing input, .ag-cell-editing textarea"
CELL_FOCUS = ".ag-cell-focus"
HEADER_CELL_FOCUS = ".ag-header-cell-focus"

GROUP_EXPAND_ICON = ".ag-group-contracted:not(.ag-hidden)"
GROUP_COLLAPSE_ICON = ".ag-group-expanded:not(.ag-hidden)"
GROUP_CHILD_COUNT = ".ag-group-child-count"
GROUP_CELL = ".ag-group-cell"
TREE_EXPAND_ICON = ".ag-group-contracted:not(.ag-hidden), .ag-icon-tree-closed"
TREE_COLLAPSE_ICON = ".ag-group-expanded:not(.ag-hidden), .ag-icon-tree-open"
MASTER_EXPAND_ICON = ".ag-group-contracted:not(.ag-hidden), .ag-row-group-expand"
MASTER_COLLAPSE_ICON = ".ag-group-expanded:not(.ag-hidden), .ag-row-group-collapse"
MASTER_EXPANDED_CLASS = "ag-row-group-expanded"

RANGE_CELL = ".ag-cell-range-selected"
FILL_HANDLE = ".ag-fill-handle"

COLUMN_GROUP_EXPAND_ICON = ".ag-header-expand-icon, .ag-column-group-icons"

ATTR_STABLE_INDEX = "aria-rowindex"
ATTR_ROW_ID = "row-id"
ATTR_VIEWPORT_INDEX = "row-index"
ATTR_COL_ID = "col-id"
ATTR_COL_INDEX = "aria-colindex"
ATTR_SORT = "aria-sort"
ATTR_SELECTED = "aria-selected"
ATTR_EXPANDED = "aria-expanded"
ATTR_LEVEL = "aria-level"
ATTR_TREE_LEVEL = "tree-level"
ATTR_TOTAL_ROWS = "data-total-rows"

SORT_ATTRIBUTE_VALUES = {"ascending": "asc", "descending": "desc"}
DIRECTION_ATTRIBUTE_VALUES = {value: key for key, value in SORT_ATTRIBUTE_VALUES.items()}

PINNED_CONTAINERS = {"left": PINNED_LEFT_CONTAINER, "right": PINNED_RIGHT_CONTAINER}


def owned(selector: str) -> str:
    """Restrict a compound selector to the grid it is queried from, skipping nested detail grids."""
    return f"{selector}:not(:scope {DETAILS_ROW} *)"


def attribute_selector(name: str, value: object) -> str:
    return f'[{name}="{escape_css_attribute_value(str(value))}"]'


def cell_selector(col_id: str) -> str:
    return f"{CELL}{attribute_selector(ATTR_COL_ID, col_id)}"


def header_cell_selector(col_id: str) -> str:
    return f"{HEADER_CELL}{attribute_selector(ATTR_COL_ID, col_id)}"


def header_group_cell_selector(group_id: str) -> str:
    return f"{HEADER_GROUP_CELL}{attribute_selector(ATTR_COL_ID, group_id)}"


def filter_input_selector(col_id: str) -> str:
    return f"{FLOATING_FILTER}{attribute_selector(ATTR_COL_ID, col_id)} input"


def row_by_stable_index(stable_index: int) -> str:
    return f"{GRID_ROW}{attribute_selector(ATTR_STABLE_INDEX, stable_index)}"


def row_by_id(row_id: str) -> str:
    return f"{GRID_ROW}{attribute_selector(ATTR_ROW_ID, row_id)}"


def row_by_viewport_index(viewport_index: int) -> str:
    return f"{GRID_ROW}{attribute_selector(ATTR_VIEWPORT_INDEX, viewport_index)}"


def detail_row_selector(master_row_id: str, suffix: str) -> str:
    return owned(f"{DETAILS_ROW}{attribute_selector(ATTR_ROW_ID, f'{master_row_id}{suffix}')}")


def row_selector(matcher: RowMatcher) -> str | None:
    """Structural selector for a matcher, or None when only a scan can answer."""
    if matcher.stable_index is not None:
        return row_by_stable_index(matcher.stable_index)
    if matcher.row_id is not None:
        return row_by_id(matcher.row_id)
    if matcher.viewport_index is not None:
        return row_by_viewport_index(matcher.viewport_index)
    return None


def pinned_container_selector(side: PinSide | None) -> str | None:
    if side is None:
        return None
    return PINNED_CONTAINERS[side]

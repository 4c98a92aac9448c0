from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Mapping, Sequence

from . import actions, assertions, column_groups, grouping, keyboard, master_detail, nested_detail
from . import range_selection, row_data, scroll, server_side, state, tree_data, waits
from .config import GridReference, normalize_config
from .errors import GridMisuseError
from .locators import GridLocatorContext, create_locator_context
from .models import (
    CellPosition,
    CellRange,
    ColumnGroupState,
    ColumnType,
    DetailGridPath,
    FocusedCell,
    GridConfig,
    GridState,
    KeyboardNavigationState,
    NavigationDirection,
    NestedDetailState,
    RangeSelectionState,
    RowData,
    RowMatcher,
    ServerSideState,
    SortDirection,
)
from .row_data import ResolvedRow
from .validation import validate_grid_config

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page

    from .scroll import ScrollPosition

logger = logging.getLogger("inspectgrid.helper")


class GridHelper:
    """One grid on one page; owns its configuration and locator context."""

    def __init__(self, page: Page, reference: GridReference, *, context: GridLocatorContext | None = None) -> None:
        self._config: GridConfig = context.config if context is not None else normalize_config(reference)
        self._ctx = context if context is not None else create_locator_context(page, self._config)

    @property
    def config(self) -> GridConfig:
        return self._config

    @property
    def context(self) -> GridLocatorContext:
        return self._ctx

    @property
    def identity(self) -> str:
        return self._ctx.identity

    # Locators

    def get_grid(self) -> Locator:
        return self._ctx.root

    def get_row(self, matcher: RowMatcher) -> Locator:
        return self._ctx.row(matcher)

    def get_visible_rows(self) -> Locator:
        return self._ctx.rows

    def get_cell(self, matcher: RowMatcher, col_id: str) -> Locator:
        return self._ctx.cell(self._ctx.row_selector(matcher), col_id)

    def get_header_cell(self, col_id: str) -> Locator:
        return self._ctx.header_cell(col_id)

    def get_filter_input(self, col_id: str) -> Locator:
        return self._ctx.filter_input(col_id)

    # Row data

    async def find_row(self, matcher: RowMatcher) -> ResolvedRow | None:
        return await row_data.find_row(self._ctx, matcher)

    async def get_row_data(self, matcher: RowMatcher) -> RowData:
        return (await scroll.ensure_row(self._ctx, matcher)).data

    async def get_all_visible_row_data(self) -> list[RowData]:
        return await row_data.get_all_visible_row_data(self._ctx)

    async def get_cell_value(self, matcher: RowMatcher, col_id: str) -> str | None:
        resolved = await scroll.ensure_row(self._ctx, matcher)
        return await row_data.get_cell_value(self._ctx, resolved, col_id)

    async def get_grid_state(self) -> GridState:
        return await state.get_grid_state(self._ctx)

    async def get_selected_row_ids(self) -> list[str]:
        return await state.get_selected_row_ids(self._ctx)

    # Waits

    async def wait_for_ready(self, timeout: float | None = None) -> None:
        await waits.wait_for_ready(self._ctx, timeout)

    async def wait_for_data_loaded(self, timeout: float | None = None) -> None:
        await waits.wait_for_data_loaded(self._ctx, timeout)

    async def wait_for_row_count(self, count: int, timeout: float | None = None) -> None:
        await waits.wait_for_row_count(self._ctx, count, timeout)

    async def wait_for_row(self, matcher: RowMatcher, timeout: float | None = None) -> RowData:
        return (await waits.wait_for_row(self._ctx, matcher, timeout)).data

    # Assertions

    async def expect_row_count(
        self,
        count: int | None = None,
        *,
        min_count: int | None = None,
        max_count: int | None = None,
        timeout: float | None = None,
    ) -> None:
        await assertions.expect_row_count(self._ctx, count, min_count=min_count, max_count=max_count, timeout=timeout)

    async def expect_row_contains(self, cell_values: Mapping[str, Any], timeout: float | None = None) -> None:
        await assertions.expect_row_contains(self._ctx, cell_values, timeout)

    async def expect_row_not_contains(self, cell_values: Mapping[str, Any], timeout: float | None = None) -> None:
        await assertions.expect_row_not_contains(self._ctx, cell_values, timeout)

    async def expect_cell_value(
        self,
        matcher: RowMatcher,
        col_id: str,
        expected: Any,
        *,
        exact: bool = False,
        value_type: ColumnType | None = None,
    ) -> None:
        await assertions.expect_cell_value(self._ctx, matcher, col_id, expected, exact=exact, value_type=value_type)

    async def expect_sorted_by(self, col_id: str, direction: SortDirection = "asc") -> None:
        await assertions.expect_sorted_by(self._ctx, col_id, direction)

    async def expect_empty(self) -> None:
        await assertions.expect_empty(self._ctx)

    async def expect_row_selected(self, matcher: RowMatcher, selected: bool = True) -> None:
        await assertions.expect_row_selected(self._ctx, matcher, selected)

    async def expect_no_rows_overlay(self) -> None:
        await assertions.expect_no_rows_overlay(self._ctx)

    # Actions

    async def click_cell(self, matcher: RowMatcher, col_id: str) -> None:
        await actions.click_cell(self._ctx, matcher, col_id)

    async def double_click_cell(self, matcher: RowMatcher, col_id: str) -> None:
        await actions.double_click_cell(self._ctx, matcher, col_id)

    async def right_click_cell(self, matcher: RowMatcher, col_id: str) -> None:
        await actions.right_click_cell(self._ctx, matcher, col_id)

    async def press_cell_key(self, matcher: RowMatcher, col_id: str, key: str) -> None:
        await actions.press_cell_key(self._ctx, matcher, col_id, key)

    async def edit_cell(self, matcher: RowMatcher, col_id: str, value: str) -> None:
        await actions.edit_cell(self._ctx, matcher, col_id, value)

    async def sort_by_column(self, col_id: str, direction: SortDirection | None = None) -> None:
        await actions.sort_by_column(self._ctx, col_id, direction)

    async def filter_column(self, col_id: str, value: str) -> None:
        await actions.filter_column(self._ctx, col_id, value)

    async def clear_filter(self, col_id: str) -> None:
        await actions.clear_filter(self._ctx, col_id)

    async def clear_all_filters(self) -> None:
        await actions.clear_all_filters(self._ctx)

    async def select_row(self, matcher: RowMatcher) -> None:
        await actions.select_row(self._ctx, matcher)

    async def deselect_row(self, matcher: RowMatcher) -> None:
        await actions.deselect_row(self._ctx, matcher)

    async def select_all_rows(self) -> None:
        await actions.select_all_rows(self._ctx)

    async def deselect_all_rows(self) -> None:
        await actions.deselect_all_rows(self._ctx)

    async def drag_row_to(self, source: RowMatcher, target: RowMatcher) -> None:
        await actions.drag_row_to(self._ctx, source, target)

    async def scroll_to_row(self, matcher: RowMatcher) -> Locator:
        return await scroll.scroll_to_row(self._ctx, matcher)

    async def scroll_to_column(self, col_id: str) -> Locator:
        return await scroll.scroll_to_column(self._ctx, col_id)

    async def scroll_to_top(self) -> None:
        await scroll.scroll_to_top(self._ctx)

    async def scroll_to_bottom(self) -> None:
        await scroll.scroll_to_bottom(self._ctx)

    async def get_scroll_position(self) -> ScrollPosition:
        return await scroll.get_scroll_position(self._ctx)

    async def set_scroll_position(self, *, top: float | None = None, left: float | None = None) -> ScrollPosition:
        return await scroll.set_scroll_position(self._ctx, top=top, left=left)

    # Row grouping

    async def is_group_row(self, matcher: RowMatcher) -> bool:
        return await grouping.is_group_row(self._ctx, matcher)

    async def is_group_expanded(self, matcher: RowMatcher) -> bool:
        return await grouping.is_group_expanded(self._ctx, matcher)

    async def expand_group(self, matcher: RowMatcher) -> None:
        await grouping.expand_group(self._ctx, matcher)

    async def collapse_group(self, matcher: RowMatcher) -> None:
        await grouping.collapse_group(self._ctx, matcher)

    async def expand_all_groups(self) -> int:
        return await grouping.expand_all_groups(self._ctx)

    async def collapse_all_groups(self) -> int:
        return await grouping.collapse_all_groups(self._ctx)

    async def get_group_child_count(self, matcher: RowMatcher) -> int:
        return await grouping.get_group_child_count(self._ctx, matcher)

    async def get_group_level(self, matcher: RowMatcher) -> int | None:
        return await grouping.get_group_level(self._ctx, matcher)

    async def get_group_rows(self) -> list[RowData]:
        return await grouping.get_group_rows(self._ctx)

    # Tree data

    async def is_tree_node_expanded(self, matcher: RowMatcher) -> bool:
        return await tree_data.is_tree_node_expanded(self._ctx, matcher)

    async def expand_tree_node(self, matcher: RowMatcher) -> None:
        await tree_data.expand_tree_node(self._ctx, matcher)

    async def collapse_tree_node(self, matcher: RowMatcher) -> None:
        await tree_data.collapse_tree_node(self._ctx, matcher)

    async def expand_all_tree_nodes(self) -> int:
        return await tree_data.expand_all_tree_nodes(self._ctx)

    async def collapse_all_tree_nodes(self) -> int:
        return await tree_data.collapse_all_tree_nodes(self._ctx)

    async def get_tree_level(self, matcher: RowMatcher) -> int:
        return await tree_data.get_tree_level(self._ctx, matcher)

    async def expand_path_to(self, names: Sequence[str], *, col_id: str = tree_data.AUTO_GROUP_COLUMN) -> RowData:
        return await tree_data.expand_path_to(self._ctx, names, col_id=col_id)

    async def get_child_nodes(self, matcher: RowMatcher) -> list[RowData]:
        return await tree_data.get_child_nodes(self._ctx, matcher)

    async def get_parent_node(self, matcher: RowMatcher) -> RowData | None:
        return await tree_data.get_parent_node(self._ctx, matcher)

    # Master / detail

    async def is_master_row_expanded(self, matcher: RowMatcher) -> bool:
        return await master_detail.is_master_row_expanded(self._ctx, matcher)

    async def expand_master_row(self, matcher: RowMatcher) -> None:
        await master_detail.expand_master_row(self._ctx, matcher)

    async def collapse_master_row(self, matcher: RowMatcher) -> None:
        await master_detail.collapse_master_row(self._ctx, matcher)

    async def get_detail_grid(self, matcher: RowMatcher, reference: GridReference | None = None) -> GridHelper:
        config = normalize_config(reference) if reference is not None else None
        detail = await master_detail.detail_context(self._ctx, matcher, config)
        return GridHelper(detail.page, detail.config, context=detail)

    async def wait_for_detail_ready(self, matcher: RowMatcher, timeout: float | None = None) -> GridHelper:
        detail = await master_detail.wait_for_detail_ready(self._ctx, matcher, timeout)
        return GridHelper(detail.page, detail.config, context=detail)

    # Nested detail

    async def expand_nested_path(self, path: DetailGridPath | Sequence[RowMatcher]) -> GridHelper:
        detail = await nested_detail.expand_nested_path(self._ctx, path)
        return GridHelper(detail.page, detail.config, context=detail)

    async def collapse_nested_path(self, path: DetailGridPath | Sequence[RowMatcher]) -> int:
        return await nested_detail.collapse_nested_path(self._ctx, path)

    async def get_nested_detail_grid(self, path: DetailGridPath | Sequence[RowMatcher]) -> GridHelper:
        detail = await nested_detail.resolve_detail_context(self._ctx, path)
        return GridHelper(detail.page, detail.config, context=detail)

    async def get_nested_detail_row_data(
        self, path: DetailGridPath | Sequence[RowMatcher], matcher: RowMatcher
    ) -> RowData:
        return await nested_detail.get_nested_detail_row_data(self._ctx, path, matcher)

    async def get_nested_detail_row_count(self, path: DetailGridPath | Sequence[RowMatcher]) -> int:
        return await nested_detail.get_nested_detail_row_count(self._ctx, path)

    async def click_nested_detail_cell(
        self, path: DetailGridPath | Sequence[RowMatcher], matcher: RowMatcher, col_id: str
    ) -> None:
        await nested_detail.click_nested_detail_cell(self._ctx, path, matcher, col_id)

    async def expect_nested_detail_visible(self, path: DetailGridPath | Sequence[RowMatcher]) -> None:
        await nested_detail.expect_nested_detail_visible(self._ctx, path)

    async def expect_nested_detail_hidden(self, path: DetailGridPath | Sequence[RowMatcher]) -> None:
        await nested_detail.expect_nested_detail_hidden(self._ctx, path)

    async def get_nested_detail_state(self) -> NestedDetailState:
        return await nested_detail.get_nested_detail_state(self._ctx)

    async def expand_all_nested_details(self) -> int:
        return await nested_detail.expand_all_nested_details(self._ctx)

    async def collapse_all_nested_details(self) -> int:
        return await nested_detail.collapse_all_nested_details(self._ctx)

    # Server-side row model

    async def wait_for_block_load(self, stable_index: int, timeout: float | None = None) -> Locator:
        return await server_side.wait_for_block_load(self._ctx, stable_index, timeout)

    async def get_server_side_state(self, block_size: int = server_side.SERVER_SIDE_BLOCK_SIZE) -> ServerSideState:
        return await server_side.get_server_side_state(self._ctx, block_size)

    async def refresh_server_side_data(self, timeout: float | None = None) -> None:
        await server_side.refresh_server_side_data(self._ctx, timeout)

    async def scroll_to_server_side_row(self, stable_index: int, timeout: float | None = None) -> Locator:
        return await server_side.scroll_to_server_side_row(self._ctx, stable_index, timeout)

    async def is_row_loaded(self, stable_index: int) -> bool:
        return await server_side.is_row_loaded(self._ctx, stable_index)

    async def wait_for_infinite_scroll_load(self, expected_min_rows: int, timeout: float | None = None) -> int:
        return await server_side.wait_for_infinite_scroll_load(self._ctx, expected_min_rows, timeout)

    # Range selection

    async def select_cell_range(self, cell_range: CellRange, *, add_to_selection: bool = False) -> None:
        await range_selection.select_cell_range(self._ctx, cell_range, add_to_selection=add_to_selection)

    async def select_cells_by_drag(self, cell_range: CellRange) -> None:
        await range_selection.select_cells_by_drag(self._ctx, cell_range)

    async def extend_range_with_keyboard(
        self, start: CellPosition, direction: NavigationDirection, count: int = 1
    ) -> None:
        await range_selection.extend_range_with_keyboard(self._ctx, start, direction, count)

    async def add_cell_to_selection(self, position: CellPosition) -> None:
        await range_selection.add_cell_to_selection(self._ctx, position)

    async def clear_range_selection(self) -> None:
        await range_selection.clear_range_selection(self._ctx)

    async def is_cell_selected(self, position: CellPosition) -> bool:
        return await range_selection.is_cell_selected(self._ctx, position)

    async def get_range_selection_state(self) -> RangeSelectionState:
        return await range_selection.get_range_selection_state(self._ctx)

    async def get_selected_range_values(self) -> list[list[str]]:
        return await range_selection.get_selected_range_values(self._ctx)

    async def expect_range_selected(self, cell_range: CellRange, cell_count: int | None = None) -> None:
        await range_selection.expect_range_selected(self._ctx, cell_range, cell_count)

    async def copy_selection(self) -> None:
        await range_selection.copy_selection(self._ctx)

    async def paste_into_cell(self, position: CellPosition) -> None:
        await range_selection.paste_into_cell(self._ctx, position)

    async def fill_down(self, cell_range: CellRange) -> None:
        await range_selection.fill_down(self._ctx, cell_range)

    # Column groups

    async def is_column_group_expanded(self, group_id: str) -> bool:
        return await column_groups.is_column_group_expanded(self._ctx, group_id)

    async def expand_column_group(self, group_id: str) -> None:
        await column_groups.expand_column_group(self._ctx, group_id)

    async def collapse_column_group(self, group_id: str) -> None:
        await column_groups.collapse_column_group(self._ctx, group_id)

    async def toggle_column_group(self, group_id: str) -> bool:
        return await column_groups.toggle_column_group(self._ctx, group_id)

    async def get_column_group_state(self) -> list[ColumnGroupState]:
        return await column_groups.get_column_group_state(self._ctx)

    # Keyboard

    async def focus_cell(self, position: CellPosition) -> None:
        await keyboard.focus_cell(self._ctx, position)

    async def navigate(self, direction: NavigationDirection, count: int = 1) -> FocusedCell | None:
        return await keyboard.navigate(self._ctx, direction, count)

    async def navigate_to_row_edge(self, edge: keyboard.Edge) -> FocusedCell | None:
        return await keyboard.navigate_to_row_edge(self._ctx, edge)

    async def navigate_to_grid_edge(self, edge: keyboard.Edge) -> FocusedCell | None:
        return await keyboard.navigate_to_grid_edge(self._ctx, edge)

    async def page_down(self) -> FocusedCell | None:
        return await keyboard.page_down(self._ctx)

    async def page_up(self) -> FocusedCell | None:
        return await keyboard.page_up(self._ctx)

    async def enter_edit_mode(self, position: CellPosition | None = None) -> None:
        await keyboard.enter_edit_mode(self._ctx, position)

    async def exit_edit_mode(self, *, confirm: bool = True) -> None:
        await keyboard.exit_edit_mode(self._ctx, confirm=confirm)

    async def is_in_edit_mode(self) -> bool:
        return await keyboard.is_in_edit_mode(self._ctx)

    async def get_focused_cell(self) -> FocusedCell | None:
        return await keyboard.get_focused_cell(self._ctx)

    async def get_keyboard_state(self) -> KeyboardNavigationState:
        return await keyboard.get_keyboard_state(self._ctx)

    async def expect_cell_focused(self, position: CellPosition) -> None:
        await keyboard.expect_cell_focused(self._ctx, position)


def grid(page: Page, name_or_config: GridReference) -> GridHelper:
    """Entry point: bind a grid reference (name, CSS selector or config) to a page."""
    config = normalize_config(name_or_config)
    validation = validate_grid_config(config)
    if not validation.ok:
        raise GridMisuseError(grid=config.selector, message=validation.message)
    helper = GridHelper(page, config)
    logger.debug("Bound grid %s (%d declared columns)", helper.identity, len(config.columns))
    return helper

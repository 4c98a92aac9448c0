from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import anyio

from . import selectors as sel
from .errors import GridNotFoundError, GridTimeoutError
from .models import RowMatcher, SortDirection
from .row_data import ResolvedRow, cell_locator
from .scroll import ensure_row
from .state import get_column_sort, is_row_selected
from .validation import format_row_matcher

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.actions")

ACTION_SETTLE = 0.1
MAX_SORT_CLICKS = 3


async def _settle() -> None:
    await anyio.sleep(ACTION_SETTLE)


async def _require(ctx: GridLocatorContext, locator: Locator, description: str) -> Locator:
    if await locator.count() == 0:
        raise GridNotFoundError(grid=ctx.identity, message=f"{description} not found")
    return locator


async def resolve_cell(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str) -> Locator:
    resolved = await ensure_row(ctx, matcher)
    cell = cell_locator(ctx, resolved, col_id)
    return await _require(ctx, cell, f'Cell "{col_id}" in row {format_row_matcher(matcher)}')


async def click_cell(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str) -> None:
    cell = await resolve_cell(ctx, matcher, col_id)
    logger.info("Clicking cell %s in row %s of %s", col_id, format_row_matcher(matcher), ctx.identity)
    await cell.click()


async def double_click_cell(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str) -> None:
    cell = await resolve_cell(ctx, matcher, col_id)
    await cell.dblclick()


async def right_click_cell(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str) -> None:
    cell = await resolve_cell(ctx, matcher, col_id)
    await cell.click(button="right")


async def press_cell_key(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str, key: str) -> None:
    cell = await resolve_cell(ctx, matcher, col_id)
    await cell.press(key)


async def edit_cell(ctx: GridLocatorContext, matcher: RowMatcher, col_id: str, value: str) -> None:
    cell = await resolve_cell(ctx, matcher, col_id)
    logger.info("Editing cell %s in row %s of %s", col_id, format_row_matcher(matcher), ctx.identity)
    await cell.dblclick()

    editor = ctx.root.locator(sel.CELL_EDITOR_INPUT).first
    deadline = anyio.current_time() + ctx.config.timeouts.cell_edit
    while await editor.count() == 0:
        if anyio.current_time() >= deadline:
            raise GridTimeoutError(
                grid=ctx.identity,
                message=f'Cell "{col_id}" did not enter edit mode',
                condition=f"editor for cell {col_id}",
                timeout=ctx.config.timeouts.cell_edit,
            )
        await anyio.sleep(ctx.config.timeouts.poll_interval)

    await editor.fill(value)
    await editor.press("Enter")
    await _settle()


async def sort_by_column(ctx: GridLocatorContext, col_id: str, direction: SortDirection | None = None) -> None:
    header = await _require(ctx, ctx.header_cell(col_id), f'Header for column "{col_id}"')
    if direction is None:
        await header.click()
        await _settle()
        return

    for _attempt in range(MAX_SORT_CLICKS):
        if await get_column_sort(ctx, col_id) == direction:
            return
        logger.info("Clicking header %s of %s towards %s sort", col_id, ctx.identity, direction)
        await header.click()
        await _settle()

    if await get_column_sort(ctx, col_id) != direction:
        raise GridTimeoutError(
            grid=ctx.identity,
            message=f'Could not sort column "{col_id}" {direction} after {MAX_SORT_CLICKS} attempts',
            condition=f"aria-sort={sel.DIRECTION_ATTRIBUTE_VALUES[direction]} on {col_id}",
            attempts=MAX_SORT_CLICKS,
        )


async def filter_column(ctx: GridLocatorContext, col_id: str, value: str) -> None:
    field = await _require(ctx, ctx.filter_input(col_id), f'Filter input for column "{col_id}"')
    logger.info("Filtering %s of %s by %r", col_id, ctx.identity, value)
    await field.fill(value)
    await _settle()


async def clear_filter(ctx: GridLocatorContext, col_id: str) -> None:
    await filter_column(ctx, col_id, "")


async def clear_all_filters(ctx: GridLocatorContext) -> None:
    inputs = ctx.root.locator(f"{sel.FLOATING_FILTER} input")
    for index in range(await inputs.count()):
        field = inputs.nth(index)
        if await field.input_value():
            await field.fill("")
    await _settle()


async def _selection_checkbox(ctx: GridLocatorContext, resolved: ResolvedRow) -> Locator | None:
    # The checkbox may sit in a pinned container rather than the first rendered row element.
    scope = ctx.root.locator(resolved.selector) if resolved.selector else resolved.locator
    checkbox = scope.locator(f"{sel.SELECTION_CHECKBOX} {sel.CHECKBOX_INPUT}").first
    if await checkbox.count() > 0:
        return checkbox
    return None


async def set_row_selected(ctx: GridLocatorContext, matcher: RowMatcher, selected: bool) -> ResolvedRow:
    resolved = await ensure_row(ctx, matcher)
    if await is_row_selected(resolved.locator) == selected:
        return resolved

    checkbox = await _selection_checkbox(ctx, resolved)
    if checkbox is not None:
        if selected:
            await checkbox.check()
        else:
            await checkbox.uncheck()
    elif selected:
        await resolved.locator.click()
    else:
        await resolved.locator.click(modifiers=["ControlOrMeta"])
    await _settle()
    return resolved


async def select_row(ctx: GridLocatorContext, matcher: RowMatcher) -> None:
    await set_row_selected(ctx, matcher, True)


async def deselect_row(ctx: GridLocatorContext, matcher: RowMatcher) -> None:
    await set_row_selected(ctx, matcher, False)


async def _select_all_checkbox(ctx: GridLocatorContext) -> Locator:
    checkbox = ctx.root.locator(f"{sel.HEADER_SELECT_ALL} {sel.CHECKBOX_INPUT}").first
    if await checkbox.count() == 0:
        raise GridNotFoundError(
            grid=ctx.identity,
            message="Select all checkbox not found. Is header checkbox selection enabled?",
        )
    return checkbox


async def select_all_rows(ctx: GridLocatorContext) -> None:
    await (await _select_all_checkbox(ctx)).check()
    await _settle()


async def deselect_all_rows(ctx: GridLocatorContext) -> None:
    await (await _select_all_checkbox(ctx)).uncheck()
    await _settle()


async def drag_row_to(ctx: GridLocatorContext, source: RowMatcher, target: RowMatcher) -> None:
    source_row = await ensure_row(ctx, source)
    target_row = await ensure_row(ctx, target)
    handle = source_row.locator.locator(sel.DRAG_HANDLE).first
    grip = handle if await handle.count() > 0 else source_row.locator
    logger.info("Dragging row %s onto %s in %s", format_row_matcher(source), format_row_matcher(target), ctx.identity)
    await grip.drag_to(target_row.locator)
    await _settle()

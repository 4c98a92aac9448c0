from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import anyio

from . import selectors as sel
from .actions import resolve_cell
from .cell_values import extract_cell_value
from .errors import GridAssertionError, GridNotFoundError
from .models import CellPosition, CellRange, NavigationDirection, RangeSelectionState
from .runtime_checks import parse_int_attribute
from .validation import format_row_matcher
from .waits import poll_until

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.enterprise")

MULTI_SELECT_MODIFIER = "ControlOrMeta"
DRAG_STEPS = 10
ARROW_KEYS: dict[NavigationDirection, str] = {
    "up": "ArrowUp",
    "down": "ArrowDown",
    "left": "ArrowLeft",
    "right": "ArrowRight",
}
_RANGE_CLASS = sel.RANGE_CELL.lstrip(".")


async def has_class(element: Locator, class_name: str) -> bool:
    return class_name in (await element.get_attribute("class") or "").split()


def describe_cell(position: CellPosition) -> str:
    return f"{position.col_id}@{format_row_matcher(position.row)}"


async def _verify_boundaries(ctx: GridLocatorContext, start: Locator, end: Locator, description: str) -> None:
    async def _marked() -> bool:
        return await has_class(start, _RANGE_CLASS) and await has_class(end, _RANGE_CLASS)

    await poll_until(
        _marked,
        timeout=ctx.config.timeouts.assertion,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"range selection {description} to mark both boundary cells",
    )


async def select_cell_range(ctx: GridLocatorContext, cell_range: CellRange, *, add_to_selection: bool = False) -> None:
    start = await resolve_cell(ctx, cell_range.start.row, cell_range.start.col_id)
    end = await resolve_cell(ctx, cell_range.end.row, cell_range.end.col_id)
    modifiers = [MULTI_SELECT_MODIFIER] if add_to_selection else []
    description = f"{describe_cell(cell_range.start)} .. {describe_cell(cell_range.end)}"
    logger.info("Selecting range %s in %s", description, ctx.identity)
    await start.click(modifiers=modifiers)
    await end.click(modifiers=[*modifiers, "Shift"])
    await _verify_boundaries(ctx, start, end, description)


async def select_cells_by_drag(ctx: GridLocatorContext, cell_range: CellRange) -> None:
    start = await resolve_cell(ctx, cell_range.start.row, cell_range.start.col_id)
    end = await resolve_cell(ctx, cell_range.end.row, cell_range.end.col_id)
    start_box = await start.bounding_box()
    end_box = await end.bounding_box()
    if start_box is None or end_box is None:
        raise GridNotFoundError(grid=ctx.identity, message="Range boundary cell has no layout box to drag between")

    mouse = ctx.page.mouse
    await mouse.move(start_box["x"] + start_box["width"] / 2, start_box["y"] + start_box["height"] / 2)
    await mouse.down()
    await mouse.move(end_box["x"] + end_box["width"] / 2, end_box["y"] + end_box["height"] / 2, steps=DRAG_STEPS)
    await mouse.up()
    await _verify_boundaries(ctx, start, end, f"{describe_cell(cell_range.start)} .. {describe_cell(cell_range.end)}")


async def extend_range_with_keyboard(
    ctx: GridLocatorContext, start: CellPosition, direction: NavigationDirection, count: int = 1
) -> None:
    anchor = await resolve_cell(ctx, start.row, start.col_id)
    await anchor.click()
    for _step in range(count):
        await ctx.page.keyboard.press(f"Shift+{ARROW_KEYS[direction]}")
    # Keyboard extension moves focus onto the far boundary.
    focused = ctx.root.locator(sel.owned(sel.CELL_FOCUS)).first
    await _verify_boundaries(ctx, anchor, focused, f"{describe_cell(start)} +{count} {direction}")


async def add_cell_to_selection(ctx: GridLocatorContext, position: CellPosition) -> None:
    cell = await resolve_cell(ctx, position.row, position.col_id)
    await cell.click(modifiers=[MULTI_SELECT_MODIFIER])
    await _verify_boundaries(ctx, cell, cell, describe_cell(position))


async def clear_range_selection(ctx: GridLocatorContext) -> None:
    await ctx.page.keyboard.press("Escape")
    await anyio.sleep(ctx.config.timeouts.scroll)


async def is_cell_selected(ctx: GridLocatorContext, position: CellPosition) -> bool:
    cell = await resolve_cell(ctx, position.row, position.col_id)
    return await has_class(cell, _RANGE_CLASS)


async def _selected_cells(ctx: GridLocatorContext) -> list[tuple[int, str, int, Locator]]:
    cells = ctx.root.locator(sel.owned(sel.RANGE_CELL))
    found: list[tuple[int, str, int, Locator]] = []
    for index in range(await cells.count()):
        cell = cells.nth(index)
        col_id = await cell.get_attribute(sel.ATTR_COL_ID) or ""
        col_index = parse_int_attribute(await cell.get_attribute(sel.ATTR_COL_INDEX)) or index
        stable_index = parse_int_attribute(await cell.locator("..").get_attribute(sel.ATTR_STABLE_INDEX)) or 0
        found.append((stable_index, col_id, col_index, cell))
    return found


async def get_range_selection_state(ctx: GridLocatorContext) -> RangeSelectionState:
    cells = await _selected_cells(ctx)
    col_ids = tuple(dict.fromkeys(col_id for _row, col_id, _col, _cell in sorted(cells, key=lambda item: item[2])))
    stable_indices = tuple(sorted({row for row, _col_id, _col, _cell in cells}))
    return RangeSelectionState(
        cell_count=len(cells),
        row_count=len(stable_indices),
        column_count=len(col_ids),
        col_ids=col_ids,
        stable_indices=stable_indices,
    )


async def get_selected_range_values(ctx: GridLocatorContext) -> list[list[str]]:
    """Selected values as rows ordered by stable index, columns ordered by column index."""
    grid: dict[int, list[tuple[int, str]]] = {}
    for stable_index, col_id, col_index, cell in await _selected_cells(ctx):
        value = await extract_cell_value(cell, ctx.config, col_id)
        grid.setdefault(stable_index, []).append((col_index, value))
    return [[value for _col, value in sorted(grid[row])] for row in sorted(grid)]


async def expect_range_selected(ctx: GridLocatorContext, cell_range: CellRange, cell_count: int | None = None) -> None:
    start = await resolve_cell(ctx, cell_range.start.row, cell_range.start.col_id)
    end = await resolve_cell(ctx, cell_range.end.row, cell_range.end.col_id)
    description = f"{describe_cell(cell_range.start)} .. {describe_cell(cell_range.end)}"
    if not (await has_class(start, _RANGE_CLASS) and await has_class(end, _RANGE_CLASS)):
        raise GridAssertionError(grid=ctx.identity, message=f"Range {description} is not selected")
    if cell_count is not None:
        state = await get_range_selection_state(ctx)
        if state.cell_count != cell_count:
            raise GridAssertionError(
                grid=ctx.identity,
                message=f"Range {description} covers {state.cell_count} cells, expected {cell_count}",
            )


async def copy_selection(ctx: GridLocatorContext) -> None:
    await ctx.page.keyboard.press(f"{MULTI_SELECT_MODIFIER}+c")


async def paste_into_cell(ctx: GridLocatorContext, position: CellPosition) -> None:
    cell = await resolve_cell(ctx, position.row, position.col_id)
    await cell.click()
    await ctx.page.keyboard.press(f"{MULTI_SELECT_MODIFIER}+v")
    await anyio.sleep(ctx.config.timeouts.scroll)


async def fill_down(ctx: GridLocatorContext, cell_range: CellRange) -> None:
    await select_cell_range(ctx, cell_range)
    await ctx.page.keyboard.press(f"{MULTI_SELECT_MODIFIER}+d")
    await anyio.sleep(ctx.config.timeouts.scroll)

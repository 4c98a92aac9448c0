from __future__ import annotations

from typing import TYPE_CHECKING, Literal

import anyio

from . import selectors as sel
from .actions import resolve_cell
from .errors import GridAssertionError
from .models import CellPosition, FocusedCell, KeyboardNavigationState, NavigationDirection
from .range_selection import ARROW_KEYS, describe_cell
from .runtime_checks import parse_int_attribute
from .waits import poll_until

if TYPE_CHECKING:
    from .locators import GridLocatorContext

Edge = Literal["start", "end"]

KEY_SETTLE = 0.05


async def _press(ctx: GridLocatorContext, key: str, times: int = 1) -> None:
    for _step in range(times):
        await ctx.page.keyboard.press(key)
    await anyio.sleep(KEY_SETTLE)


async def focus_cell(ctx: GridLocatorContext, position: CellPosition) -> None:
    cell = await resolve_cell(ctx, position.row, position.col_id)
    await cell.click()

    async def _focused() -> bool:
        return sel.CELL_FOCUS.lstrip(".") in (await cell.get_attribute("class") or "").split()

    await poll_until(
        _focused,
        timeout=ctx.config.timeouts.assertion,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"cell {describe_cell(position)} to take focus",
    )


async def navigate(ctx: GridLocatorContext, direction: NavigationDirection, count: int = 1) -> FocusedCell | None:
    await _press(ctx, ARROW_KEYS[direction], count)
    return await get_focused_cell(ctx)


async def navigate_to_row_edge(ctx: GridLocatorContext, edge: Edge) -> FocusedCell | None:
    await _press(ctx, "Home" if edge == "start" else "End")
    return await get_focused_cell(ctx)


async def navigate_to_grid_edge(ctx: GridLocatorContext, edge: Edge) -> FocusedCell | None:
    await _press(ctx, "ControlOrMeta+Home" if edge == "start" else "ControlOrMeta+End")
    return await get_focused_cell(ctx)


async def page_down(ctx: GridLocatorContext) -> FocusedCell | None:
    await _press(ctx, "PageDown")
    return await get_focused_cell(ctx)


async def page_up(ctx: GridLocatorContext) -> FocusedCell | None:
    await _press(ctx, "PageUp")
    return await get_focused_cell(ctx)


async def get_focused_cell(ctx: GridLocatorContext) -> FocusedCell | None:
    focused = ctx.root.locator(sel.owned(sel.CELL_FOCUS)).first
    if await focused.count() == 0:
        return None
    col_id = await focused.get_attribute(sel.ATTR_COL_ID) or ""
    stable_index = parse_int_attribute(await focused.locator("..").get_attribute(sel.ATTR_STABLE_INDEX))
    return FocusedCell(stable_index=stable_index, col_id=col_id)


async def is_in_edit_mode(ctx: GridLocatorContext) -> bool:
    return await ctx.root.locator(sel.owned(sel.CELL_EDITING)).count() > 0


async def enter_edit_mode(ctx: GridLocatorContext, position: CellPosition | None = None) -> None:
    if position is not None:
        await focus_cell(ctx, position)
    await _press(ctx, "Enter")

    async def _editing() -> bool:
        return await is_in_edit_mode(ctx)

    await poll_until(
        _editing,
        timeout=ctx.config.timeouts.cell_edit,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition="a cell editor to open",
    )


async def exit_edit_mode(ctx: GridLocatorContext, *, confirm: bool = True) -> None:
    await _press(ctx, "Enter" if confirm else "Escape")


async def get_keyboard_state(ctx: GridLocatorContext) -> KeyboardNavigationState:
    return KeyboardNavigationState(
        focused_cell=await get_focused_cell(ctx),
        is_editing=await is_in_edit_mode(ctx),
        is_header_focused=await ctx.root.locator(sel.owned(sel.HEADER_CELL_FOCUS)).count() > 0,
    )


async def expect_cell_focused(ctx: GridLocatorContext, position: CellPosition) -> None:
    cell = await resolve_cell(ctx, position.row, position.col_id)
    if sel.CELL_FOCUS.lstrip(".") not in (await cell.get_attribute("class") or "").split():
        focused = await get_focused_cell(ctx)
        current = f"{focused.col_id}@{focused.stable_index}" if focused else "nothing"
        raise GridAssertionError(
            grid=ctx.identity,
            message=f"Expected cell {describe_cell(position)} to have focus, focus is on {current}",
        )

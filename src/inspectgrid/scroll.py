from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

import anyio

from . import selectors as sel
from .errors import GridInconsistencyError, GridMisuseError, GridNotFoundError, GridTimeoutError
from .models import MAX_SCROLL_ATTEMPTS, RowMatcher
from .row_data import ResolvedRow, count_rendered_rows, find_row, rendered_stable_range
from .validation import format_row_matcher, require_scrollable_matcher

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.scroll")

SCROLL_VIEWPORT_RATIO = 0.8
HORIZONTAL_SCROLL_RATIO = 0.5

SCROLL_VERTICAL_JS = """(el, ratio) => {
    el.scrollTop = el.scrollTop + el.clientHeight * ratio;
    return el.scrollTop;
}"""
SCROLL_HORIZONTAL_JS = """(el, ratio) => {
    el.scrollLeft = el.scrollLeft + el.clientWidth * ratio;
    return el.scrollLeft;
}"""
SCROLL_TO_BOTTOM_JS = """(el) => {
    el.scrollTop = el.scrollHeight;
    return el.scrollTop;
}"""
SET_SCROLL_POSITION_JS = """(el, position) => {
    if (position.top !== null) el.scrollTop = position.top;
    if (position.left !== null) el.scrollLeft = position.left;
    return { top: el.scrollTop, left: el.scrollLeft };
}"""
READ_SCROLL_POSITION_JS = "(el) => ({ top: el.scrollTop, left: el.scrollLeft })"


@dataclass(frozen=True, slots=True)
class ScrollPosition:
    top: float
    left: float


async def _require_viewport(ctx: GridLocatorContext) -> Locator:
    viewport = ctx.viewport
    if await viewport.count() == 0:
        raise GridNotFoundError(grid=ctx.identity, message="Scrollable body viewport not found")
    return viewport


async def _horizontal_viewport(ctx: GridLocatorContext) -> Locator:
    viewport = ctx.horizontal_viewport
    if await viewport.count() > 0:
        return viewport
    return await _require_viewport(ctx)


async def _settle(ctx: GridLocatorContext) -> None:
    await anyio.sleep(ctx.config.timeouts.scroll)


async def get_scroll_position(ctx: GridLocatorContext) -> ScrollPosition:
    viewport = await _require_viewport(ctx)
    raw = await viewport.evaluate(READ_SCROLL_POSITION_JS)
    return ScrollPosition(top=float(raw["top"]), left=float(raw["left"]))


async def set_scroll_position(
    ctx: GridLocatorContext, *, top: float | None = None, left: float | None = None
) -> ScrollPosition:
    viewport = await _require_viewport(ctx)
    raw = await viewport.evaluate(SET_SCROLL_POSITION_JS, {"top": top, "left": left})
    await _settle(ctx)
    return ScrollPosition(top=float(raw["top"]), left=float(raw["left"]))


async def scroll_to_top(ctx: GridLocatorContext) -> None:
    await set_scroll_position(ctx, top=0)


async def scroll_to_bottom(ctx: GridLocatorContext) -> None:
    viewport = await _require_viewport(ctx)
    await viewport.evaluate(SCROLL_TO_BOTTOM_JS)
    await _settle(ctx)


async def scroll_to_row(ctx: GridLocatorContext, matcher: RowMatcher) -> Locator:
    require_scrollable_matcher(matcher, grid=ctx.identity)
    if matcher.stable_index is not None:
        return await _scroll_to_stable_index(ctx, matcher.stable_index)
    if matcher.row_id is None:
        raise GridMisuseError(grid=ctx.identity, message=f"Cannot scroll to {format_row_matcher(matcher)}")
    return await _scroll_to_row_id(ctx, matcher.row_id)


async def _scroll_to_stable_index(ctx: GridLocatorContext, stable_index: int) -> Locator:
    target = ctx.root.locator(sel.row_by_stable_index(stable_index))
    viewport = await _require_viewport(ctx)

    for attempt in range(MAX_SCROLL_ATTEMPTS):
        if await target.count() > 0:
            row = target.first
            await row.scroll_into_view_if_needed()
            logger.debug("Row %s rendered after %d scroll steps", stable_index, attempt)
            return row

        window = await rendered_stable_range(ctx)
        if window is None:
            raise GridNotFoundError(
                grid=ctx.identity,
                message=f"Cannot scroll to stable_index={stable_index}: no rows are rendered",
            )
        low, high = window
        if low <= stable_index <= high:
            raise GridInconsistencyError(
                grid=ctx.identity,
                message=f"Row stable_index={stable_index} is inside the rendered window {low}..{high} but is not rendered",
                detail="The grid is likely filtered or grouped so the row cannot be reached by scrolling.",
            )

        ratio = SCROLL_VIEWPORT_RATIO if stable_index > high else -SCROLL_VIEWPORT_RATIO
        before = await viewport.evaluate(READ_SCROLL_POSITION_JS)
        after = await viewport.evaluate(SCROLL_VERTICAL_JS, ratio)
        logger.debug("Scroll step %d towards row %s: window %d..%d, top %s", attempt + 1, stable_index, low, high, after)
        if float(after) == float(before["top"]):
            edge = "end" if ratio > 0 else "start"
            raise GridNotFoundError(
                grid=ctx.identity,
                message=f"Row stable_index={stable_index} is beyond the {edge} of the scrollable data",
                detail=f"Last rendered window: {low}..{high}",
            )
        await _settle(ctx)

    raise GridTimeoutError(
        grid=ctx.identity,
        message=f"Could not find row at stable_index={stable_index} after {MAX_SCROLL_ATTEMPTS} scroll attempts",
        condition=f"row stable_index={stable_index} to render",
        attempts=MAX_SCROLL_ATTEMPTS,
    )


async def _scroll_to_row_id(ctx: GridLocatorContext, row_id: str) -> Locator:
    # Row ids carry no position, so the search sweeps downwards from the top.
    target = ctx.root.locator(sel.row_by_id(row_id))
    if await target.count() > 0:
        row = target.first
        await row.scroll_into_view_if_needed()
        return row

    viewport = await _require_viewport(ctx)
    await scroll_to_top(ctx)
    previous_top: float | None = None
    for attempt in range(MAX_SCROLL_ATTEMPTS):
        if await target.count() > 0:
            row = target.first
            await row.scroll_into_view_if_needed()
            logger.debug("Row id %s rendered after %d scroll steps", row_id, attempt)
            return row

        top = float(await viewport.evaluate(SCROLL_VERTICAL_JS, SCROLL_VIEWPORT_RATIO))
        if previous_top is not None and top == previous_top:
            raise GridNotFoundError(
                grid=ctx.identity,
                message=f'Row row_id="{row_id}" not found after sweeping the grid top to bottom',
            )
        previous_top = top
        await _settle(ctx)

    raise GridTimeoutError(
        grid=ctx.identity,
        message=f'Could not find row with row_id="{row_id}" after {MAX_SCROLL_ATTEMPTS} scroll attempts',
        condition=f'row row_id="{row_id}" to render',
        attempts=MAX_SCROLL_ATTEMPTS,
    )


async def scroll_to_column(ctx: GridLocatorContext, col_id: str) -> Locator:
    target = ctx.root.locator(sel.header_cell_selector(col_id))
    if await target.count() > 0:
        header = target.first
        await header.scroll_into_view_if_needed()
        return header

    viewport = await _horizontal_viewport(ctx)
    await viewport.evaluate(SET_SCROLL_POSITION_JS, {"top": None, "left": 0})
    await _settle(ctx)
    previous_left: float | None = None
    for attempt in range(MAX_SCROLL_ATTEMPTS):
        if await target.count() > 0:
            header = target.first
            await header.scroll_into_view_if_needed()
            logger.debug("Column %s rendered after %d horizontal steps", col_id, attempt)
            return header

        left = float(await viewport.evaluate(SCROLL_HORIZONTAL_JS, HORIZONTAL_SCROLL_RATIO))
        if previous_left is not None and left == previous_left:
            raise GridNotFoundError(grid=ctx.identity, message=f'Column "{col_id}" not found after scrolling horizontally')
        previous_left = left
        await _settle(ctx)

    raise GridTimeoutError(
        grid=ctx.identity,
        message=f'Could not find column "{col_id}" after {MAX_SCROLL_ATTEMPTS} scroll attempts',
        condition=f'column "{col_id}" to render',
        attempts=MAX_SCROLL_ATTEMPTS,
    )


async def ensure_row(ctx: GridLocatorContext, matcher: RowMatcher) -> ResolvedRow:
    """Resolve a row, scrolling it into the rendered window when the matcher allows it."""
    resolved = await find_row(ctx, matcher)
    if resolved is not None:
        return resolved
    if matcher.is_scrollable:
        await scroll_to_row(ctx, matcher)
        resolved = await find_row(ctx, matcher)
        if resolved is not None:
            return resolved
    raise GridNotFoundError(
        grid=ctx.identity,
        message=f"Row {format_row_matcher(matcher)} not found",
        detail=f"Rendered rows checked: {await count_rendered_rows(ctx)}",
    )

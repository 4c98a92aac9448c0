from __future__ import annotations

import logging
import re
from typing import TYPE_CHECKING

import anyio

from . import selectors as sel
from .errors import GridNotFoundError, GridTimeoutError
from .models import MAX_BULK_ITERATIONS, RowData, RowMatcher
from .row_data import ResolvedRow, get_all_visible_row_data
from .runtime_checks import parse_int_attribute
from .scroll import ensure_row
from .validation import format_row_matcher
from .waits import poll_until

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.enterprise")

TOGGLE_SETTLE = 0.1


async def read_expanded(row: Locator) -> bool:
    value = await row.get_attribute(sel.ATTR_EXPANDED)
    if value is not None:
        return value == "true"
    class_tokens = (await row.get_attribute("class") or "").split()
    return sel.MASTER_EXPANDED_CLASS in class_tokens


def row_scope(ctx: GridLocatorContext, resolved: ResolvedRow) -> Locator:
    """Every rendered element of the row; pinned containers split one row across several."""
    if resolved.selector:
        return ctx.root.locator(resolved.selector)
    return resolved.locator


async def _toggle_target(scope: Locator, icon_selector: str) -> Locator | None:
    icon = scope.locator(icon_selector).first
    if await icon.count() > 0:
        return icon
    group_cell = scope.locator(sel.GROUP_CELL).first
    if await group_cell.count() > 0:
        return group_cell
    return None


async def set_row_expanded(
    ctx: GridLocatorContext,
    matcher: RowMatcher,
    expanded: bool,
    *,
    expand_icon: str = sel.GROUP_EXPAND_ICON,
    collapse_icon: str = sel.GROUP_COLLAPSE_ICON,
    kind: str = "group",
) -> bool:
    """Bring a hierarchical row into the wanted state; returns whether a click was needed."""
    resolved = await ensure_row(ctx, matcher)
    if await read_expanded(resolved.locator) == expanded:
        return False

    scope = row_scope(ctx, resolved)
    target = await _toggle_target(scope, expand_icon if expanded else collapse_icon)
    if target is None:
        raise GridNotFoundError(
            grid=ctx.identity,
            message=f"No expand/collapse control in {kind} row {format_row_matcher(matcher)}",
        )

    verb = "Expanding" if expanded else "Collapsing"
    logger.info("%s %s row %s of %s", verb, kind, format_row_matcher(matcher), ctx.identity)
    await target.click()

    row = scope.first

    async def _settled() -> bool:
        return await read_expanded(row) == expanded

    await poll_until(
        _settled,
        timeout=ctx.config.timeouts.row_load,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"{kind} row {format_row_matcher(matcher)} to be {'expanded' if expanded else 'collapsed'}",
    )
    return True


async def set_all_expanded(
    ctx: GridLocatorContext,
    expanded: bool,
    *,
    expand_icon: str = sel.GROUP_EXPAND_ICON,
    collapse_icon: str = sel.GROUP_COLLAPSE_ICON,
    row_selector: str = sel.GRID_ROW,
    from_end: bool = False,
) -> int:
    """Click until no row is left in the opposite state; returns the number of clicks."""
    pending_selector = f'{row_selector}[{sel.ATTR_EXPANDED}="{"false" if expanded else "true"}"]'
    icon_selector = expand_icon if expanded else collapse_icon
    # Pinned halves of a row can only be paired by index among the rows of a single grid.
    pair_pinned = sel.GRID_ROW in row_selector

    for iteration in range(MAX_BULK_ITERATIONS):
        # Each click re-renders the window, so the pending set is queried again every time.
        pending = ctx.root.locator(pending_selector)
        if await pending.count() == 0:
            return iteration
        row = pending.last if from_end else pending.first
        target = await _toggle_target(row, icon_selector)
        stable_index = parse_int_attribute(await row.get_attribute(sel.ATTR_STABLE_INDEX))
        if target is None and stable_index and pair_pinned:
            target = await _toggle_target(ctx.root.locator(sel.row_by_stable_index(stable_index)), icon_selector)
        if target is None:
            raise GridNotFoundError(grid=ctx.identity, message="Row awaiting expand/collapse has no toggle control")
        await target.click()
        await anyio.sleep(TOGGLE_SETTLE)

    raise GridTimeoutError(
        grid=ctx.identity,
        message=f"{'Expanding' if expanded else 'Collapsing'} all rows did not converge after {MAX_BULK_ITERATIONS} clicks",
        condition="every hierarchical row to reach the same state",
        attempts=MAX_BULK_ITERATIONS,
    )


async def is_group_row(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return (await ensure_row(ctx, matcher)).data.is_group


async def is_group_expanded(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await read_expanded((await ensure_row(ctx, matcher)).locator)


async def expand_group(ctx: GridLocatorContext, matcher: RowMatcher) -> None:
    await set_row_expanded(ctx, matcher, True)


async def collapse_group(ctx: GridLocatorContext, matcher: RowMatcher) -> None:
    await set_row_expanded(ctx, matcher, False)


async def expand_all_groups(ctx: GridLocatorContext) -> int:
    return await set_all_expanded(ctx, True, row_selector=f"{sel.GRID_ROW}{sel.ROW_GROUP}")


async def collapse_all_groups(ctx: GridLocatorContext) -> int:
    return await set_all_expanded(ctx, False, row_selector=f"{sel.GRID_ROW}{sel.ROW_GROUP}")


async def get_group_child_count(ctx: GridLocatorContext, matcher: RowMatcher) -> int:
    resolved = await ensure_row(ctx, matcher)
    badge = row_scope(ctx, resolved).locator(sel.GROUP_CHILD_COUNT).first
    if await badge.count() == 0:
        return 0
    digits = re.search(r"\d+", await badge.text_content() or "")
    return int(digits.group(0)) if digits else 0


async def get_group_level(ctx: GridLocatorContext, matcher: RowMatcher) -> int | None:
    return (await ensure_row(ctx, matcher)).data.group_level


async def get_group_rows(ctx: GridLocatorContext) -> list[RowData]:
    return [row for row in await get_all_visible_row_data(ctx) if row.is_group]

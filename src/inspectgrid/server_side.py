from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from . import selectors as sel
from .errors import GridMisuseError, GridTimeoutError
from .models import MAX_SCROLL_ATTEMPTS, ServerSideState
from .runtime_checks import parse_int_attribute
from .scroll import get_scroll_position, set_scroll_position
from .state import is_loading, read_reported_total
from .waits import poll_until

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.enterprise")

SERVER_SIDE_BLOCK_SIZE = 100
DEFAULT_ROW_HEIGHT = 42.0
# How long a refresh may take to show any loading sign before it counts as instant.
LOAD_START_WINDOW = 2.0
# Intermediate chunks only wait this long for their blocks.
CHUNK_LOAD_LIMIT = 5.0

PLACEHOLDERS = f"{sel.owned(sel.LOADING_CELL)}, {sel.owned(sel.SKELETON_ROW)}"
LOADED_ROWS = f"{sel.GRID_ROW}:not({sel.LOADING_CELL}):not({sel.SKELETON_ROW})"

VIEWPORT_HEIGHT_JS = "(el) => el.clientHeight"
REFRESH_NUDGE_JS = """(el) => {
    el.scrollTop = 1;
    el.scrollTop = 0;
    return el.scrollTop;
}"""


def _require_stable_index(ctx: GridLocatorContext, stable_index: int) -> None:
    if stable_index < 1:
        raise GridMisuseError(grid=ctx.identity, message=f"stable_index is 1-based, got {stable_index}")


def _budget(ctx: GridLocatorContext, timeout: float | None) -> float:
    return timeout if timeout is not None else ctx.config.timeouts.block_load


async def count_placeholders(ctx: GridLocatorContext) -> int:
    return await ctx.root.locator(PLACEHOLDERS).count()


async def loaded_stable_indices(ctx: GridLocatorContext) -> list[int]:
    rows = ctx.root.locator(LOADED_ROWS)
    indices: set[int] = set()
    for index in range(await rows.count()):
        value = parse_int_attribute(await rows.nth(index).get_attribute(sel.ATTR_STABLE_INDEX))
        if value is not None:
            indices.add(value)
    return sorted(indices)


async def estimate_row_height(ctx: GridLocatorContext) -> float:
    rows = ctx.rows
    if await rows.count() == 0:
        return DEFAULT_ROW_HEIGHT
    box = await rows.first.bounding_box()
    if not box or box["height"] <= 0:
        return DEFAULT_ROW_HEIGHT
    return float(box["height"])


async def wait_for_loading_complete(ctx: GridLocatorContext, timeout: float | None = None) -> None:
    async def _settled() -> bool:
        return await count_placeholders(ctx) == 0 and not await is_loading(ctx)

    await poll_until(
        _settled,
        timeout=_budget(ctx, timeout),
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition="loading placeholders to clear",
    )


async def is_row_loaded(ctx: GridLocatorContext, stable_index: int) -> bool:
    """True when the row is rendered with real content rather than a placeholder."""
    _require_stable_index(ctx, stable_index)
    row = ctx.root.locator(f"{sel.row_by_stable_index(stable_index)}:not({sel.LOADING_CELL}):not({sel.SKELETON_ROW})")
    if await row.count() == 0:
        return False
    cells = row.first.locator(sel.CELL)
    if await cells.count() == 0:
        return False
    return await cells.first.locator(sel.LOADING_CELL).count() == 0


async def _await_row_loaded(ctx: GridLocatorContext, stable_index: int, timeout: float | None) -> Locator:
    async def _loaded() -> bool:
        return await is_row_loaded(ctx, stable_index) and await count_placeholders(ctx) == 0

    await poll_until(
        _loaded,
        timeout=_budget(ctx, timeout),
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"block containing row stable_index={stable_index} to load",
    )
    return ctx.root.locator(sel.row_by_stable_index(stable_index)).first


async def wait_for_block_load(ctx: GridLocatorContext, stable_index: int, timeout: float | None = None) -> Locator:
    """Scroll to where the row's block lives and wait until the row holds data."""
    _require_stable_index(ctx, stable_index)
    height = await estimate_row_height(ctx)
    await set_scroll_position(ctx, top=(stable_index - 1) * height)
    return await _await_row_loaded(ctx, stable_index, timeout)


async def scroll_to_server_side_row(ctx: GridLocatorContext, stable_index: int, timeout: float | None = None) -> Locator:
    """Scroll in steps of two viewport heights so every block on the way gets requested."""
    _require_stable_index(ctx, stable_index)
    budget = _budget(ctx, timeout)
    height = await estimate_row_height(ctx)
    current = (await get_scroll_position(ctx)).top
    viewport_height = float(await ctx.viewport.evaluate(VIEWPORT_HEIGHT_JS) or 0)
    target = max(0.0, (stable_index - 1) * height - viewport_height / 2)
    chunk = max(viewport_height, height) * 2
    step = chunk if target > current else -chunk

    attempts = 0
    while abs(current - target) > chunk:
        attempts += 1
        if attempts > MAX_SCROLL_ATTEMPTS:
            raise GridTimeoutError(
                grid=ctx.identity,
                message=f"Could not reach row stable_index={stable_index} after {MAX_SCROLL_ATTEMPTS} scroll steps",
                condition=f"row stable_index={stable_index} to come within one step",
                attempts=MAX_SCROLL_ATTEMPTS,
            )
        moved = (await set_scroll_position(ctx, top=current + step)).top
        if moved == current:
            break
        current = moved
        try:
            await wait_for_loading_complete(ctx, min(budget / 5, CHUNK_LOAD_LIMIT))
        except GridTimeoutError:
            logger.debug("Blocks still loading at scroll top %s on %s, moving on", current, ctx.identity)

    await set_scroll_position(ctx, top=target)
    logger.debug("Scrolled %s to row %s after %d steps", ctx.identity, stable_index, attempts)
    return await _await_row_loaded(ctx, stable_index, budget)


async def refresh_server_side_data(ctx: GridLocatorContext, timeout: float | None = None) -> None:
    button = ctx.root.locator(sel.REFRESH_BUTTON)
    if await button.count() > 0:
        logger.info("Refreshing %s through its refresh control", ctx.identity)
        await button.first.click()
    else:
        logger.info("Refreshing %s by scrolling back to the top", ctx.identity)
        await set_scroll_position(ctx, top=0)
        await ctx.viewport.evaluate(REFRESH_NUDGE_JS)

    async def _load_started() -> bool:
        return await is_loading(ctx) or await count_placeholders(ctx) > 0

    try:
        await poll_until(
            _load_started,
            timeout=LOAD_START_WINDOW,
            interval=ctx.config.timeouts.poll_interval,
            grid=ctx.identity,
            condition="refresh to start loading",
        )
    except GridTimeoutError:
        logger.debug("No loading sign after refreshing %s; treating the reload as instant", ctx.identity)
    await wait_for_loading_complete(ctx, timeout)


async def wait_for_infinite_scroll_load(
    ctx: GridLocatorContext, expected_min_rows: int, timeout: float | None = None
) -> int:
    """Wait until at least ``expected_min_rows`` loaded rows are rendered; returns the count seen."""
    observed = {"count": 0}

    async def _enough() -> bool:
        observed["count"] = len(await loaded_stable_indices(ctx))
        return observed["count"] >= expected_min_rows

    try:
        await poll_until(
            _enough,
            timeout=_budget(ctx, timeout),
            interval=ctx.config.timeouts.poll_interval,
            grid=ctx.identity,
            condition=f"at least {expected_min_rows} loaded rows",
        )
    except GridTimeoutError as exc:
        exc.detail = f"Loaded rows seen: {observed['count']}"
        raise
    return observed["count"]


async def get_server_side_state(ctx: GridLocatorContext, block_size: int = SERVER_SIDE_BLOCK_SIZE) -> ServerSideState:
    if block_size < 1:
        raise GridMisuseError(grid=ctx.identity, message=f"block_size must be positive, got {block_size}")
    indices = await loaded_stable_indices(ctx)
    loaded_range = (indices[0], indices[-1]) if indices else None
    cached_blocks = math.ceil((indices[-1] - indices[0] + 1) / block_size) if indices else 0
    return ServerSideState(
        is_loading=await count_placeholders(ctx) > 0,
        loaded_range=loaded_range,
        total_server_rows=await read_reported_total(ctx),
        cached_blocks=cached_blocks,
    )

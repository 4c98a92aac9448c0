from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Awaitable, Callable, TypeVar

import anyio

from .errors import GridTimeoutError
from .models import RowMatcher
from .row_data import ResolvedRow, count_rendered_rows, find_row
from .state import is_loading
from .validation import format_row_matcher

if TYPE_CHECKING:
    from .locators import GridLocatorContext

T = TypeVar("T")

logger = logging.getLogger("inspectgrid.waits")


async def poll_until(
    check: Callable[[], Awaitable[T | None]],
    *,
    timeout: float,
    interval: float,
    grid: str,
    condition: str,
) -> T:
    deadline = anyio.current_time() + timeout
    attempts = 0
    while True:
        result = await check()
        attempts += 1
        if result:
            return result
        remaining = deadline - anyio.current_time()
        if remaining <= 0:
            break
        await anyio.sleep(min(interval, remaining))

    logger.debug("Gave up on %s after %d checks", condition, attempts)
    raise GridTimeoutError(
        grid=grid,
        message=f"Timed out after {timeout:g}s waiting for {condition}",
        condition=condition,
        timeout=timeout,
    )


async def wait_for_ready(ctx: GridLocatorContext, timeout: float | None = None) -> None:
    budget = timeout if timeout is not None else ctx.config.timeouts.grid_ready
    deadline = anyio.current_time() + budget
    interval = ctx.config.timeouts.poll_interval

    async def _root_visible() -> bool:
        return await ctx.root.count() > 0 and await ctx.root.is_visible()

    async def _header_visible() -> bool:
        return await ctx.header.count() > 0 and await ctx.header.is_visible()

    await poll_until(_root_visible, timeout=budget, interval=interval, grid=ctx.identity, condition="grid root to be visible")
    await poll_until(
        _header_visible,
        timeout=max(deadline - anyio.current_time(), interval),
        interval=interval,
        grid=ctx.identity,
        condition="grid header to be visible",
    )
    await wait_for_data_loaded(ctx, max(deadline - anyio.current_time(), interval))


async def wait_for_data_loaded(ctx: GridLocatorContext, timeout: float | None = None) -> None:
    async def _loaded() -> bool:
        return not await is_loading(ctx)

    await poll_until(
        _loaded,
        timeout=timeout if timeout is not None else ctx.config.timeouts.grid_ready,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition="loading overlay to disappear",
    )


async def wait_for_row_count(ctx: GridLocatorContext, count: int, timeout: float | None = None) -> None:
    async def _has_count() -> bool:
        return await count_rendered_rows(ctx) == count

    await poll_until(
        _has_count,
        timeout=timeout if timeout is not None else ctx.config.timeouts.row_load,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"{count} rendered rows",
    )


async def wait_for_row(ctx: GridLocatorContext, matcher: RowMatcher, timeout: float | None = None) -> ResolvedRow:
    async def _resolved() -> ResolvedRow | None:
        return await find_row(ctx, matcher)

    return await poll_until(
        _resolved,
        timeout=timeout if timeout is not None else ctx.config.timeouts.row_load,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"row {format_row_matcher(matcher)}",
    )

from __future__ import annotations

from dataclasses import replace
from typing import TYPE_CHECKING

from . import selectors as sel
from .errors import GridMisuseError, GridNotFoundError
from .grid_root import resolve_root_selector
from .grouping import read_expanded, set_row_expanded
from .locators import GridLocatorContext
from .models import GridConfig, RowMatcher
from .scroll import ensure_row
from .validation import format_row_matcher
from .waits import poll_until

if TYPE_CHECKING:
    from playwright.async_api import Locator


async def is_master_row_expanded(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await read_expanded((await ensure_row(ctx, matcher)).locator)


async def expand_master_row(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await set_row_expanded(
        ctx,
        matcher,
        True,
        expand_icon=sel.MASTER_EXPAND_ICON,
        collapse_icon=sel.MASTER_COLLAPSE_ICON,
        kind="master",
    )


async def collapse_master_row(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await set_row_expanded(
        ctx,
        matcher,
        False,
        expand_icon=sel.MASTER_EXPAND_ICON,
        collapse_icon=sel.MASTER_COLLAPSE_ICON,
        kind="master",
    )


async def _master_row_id(ctx: GridLocatorContext, matcher: RowMatcher) -> str:
    resolved = await ensure_row(ctx, matcher)
    if not resolved.data.row_id:
        raise GridMisuseError(
            grid=ctx.identity,
            message=f"Master row {format_row_matcher(matcher)} has no row-id; detail rows are keyed by it",
        )
    return resolved.data.row_id


async def detail_row(ctx: GridLocatorContext, matcher: RowMatcher) -> Locator:
    row_id = await _master_row_id(ctx, matcher)
    return ctx.root.locator(sel.detail_row_selector(row_id, ctx.config.detail_row_suffix)).first


async def is_detail_visible(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    row = await detail_row(ctx, matcher)
    return await row.count() > 0 and await row.is_visible()


async def get_detail_root(ctx: GridLocatorContext, matcher: RowMatcher) -> Locator:
    row = await detail_row(ctx, matcher)
    if await row.count() == 0:
        raise GridNotFoundError(
            grid=ctx.identity,
            message=f"Detail grid of master row {format_row_matcher(matcher)} is not rendered; expand the row first",
        )
    return row.locator(sel.ROOT_WRAPPER).first


def detail_identity(ctx: GridLocatorContext, matcher: RowMatcher) -> str:
    return f"{ctx.identity} > detail[{format_row_matcher(matcher)}]"


def detail_root_selector(ctx: GridLocatorContext, master_row_id: str) -> str:
    """Page-level CSS for the root of a detail grid, usable to bind it again later."""
    parent = resolve_root_selector(ctx.config.selector).selector
    detail = f"{sel.DETAILS_ROW}{sel.attribute_selector(sel.ATTR_ROW_ID, master_row_id + ctx.config.detail_row_suffix)}"
    return f"{parent} {detail} {sel.ROOT_WRAPPER}"


async def detail_context(
    ctx: GridLocatorContext, matcher: RowMatcher, config: GridConfig | None = None
) -> GridLocatorContext:
    root = await get_detail_root(ctx, matcher)
    identity = detail_identity(ctx, matcher)
    if config is None:
        # Detail grids keep the parent's timings but declare their own columns.
        selector = detail_root_selector(ctx, await _master_row_id(ctx, matcher))
        config = replace(ctx.config, selector=selector, columns=(), cell_renderers={})
    return GridLocatorContext(page=ctx.page, config=config, root=root, identity=identity)


async def wait_for_detail_ready(
    ctx: GridLocatorContext, matcher: RowMatcher, timeout: float | None = None
) -> GridLocatorContext:
    async def _ready() -> GridLocatorContext | None:
        row = await detail_row(ctx, matcher)
        if await row.count() == 0:
            return None
        root = row.locator(sel.ROOT_WRAPPER).first
        if await root.count() == 0 or await root.locator(sel.HEADER).count() == 0:
            return None
        return await detail_context(ctx, matcher)

    return await poll_until(
        _ready,
        timeout=timeout if timeout is not None else ctx.config.timeouts.row_load,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f"detail grid of master row {format_row_matcher(matcher)}",
    )

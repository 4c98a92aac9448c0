from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from . import selectors as sel
from .actions import click_cell
from .errors import GridAssertionError
from .grouping import set_all_expanded
from .master_detail import collapse_master_row, detail_context, expand_master_row, is_detail_visible, wait_for_detail_ready
from .models import MAX_NESTING_DEPTH, DetailGridPath, NestedDetailState, RowData, RowMatcher
from .row_data import count_rendered_rows
from .scroll import ensure_row
from .validation import as_detail_path, format_row_matcher

if TYPE_CHECKING:
    from .locators import GridLocatorContext

logger = logging.getLogger("inspectgrid.enterprise")

PathLike = DetailGridPath | Sequence[RowMatcher]


def format_detail_path(path: DetailGridPath) -> str:
    return " > ".join(format_row_matcher(segment) for segment in path.segments)


async def resolve_detail_context(ctx: GridLocatorContext, path: PathLike) -> GridLocatorContext:
    """Walk an already expanded path and return the innermost detail grid."""
    detail_path = as_detail_path(path, grid=ctx.identity)
    current = ctx
    for segment in detail_path.segments:
        current = await detail_context(current, segment)
    return current


async def expand_nested_path(ctx: GridLocatorContext, path: PathLike) -> GridLocatorContext:
    detail_path = as_detail_path(path, grid=ctx.identity)
    current = ctx
    for depth, segment in enumerate(detail_path.segments, start=1):
        logger.info("Expanding detail level %d (%s) of %s", depth, format_row_matcher(segment), ctx.identity)
        await expand_master_row(current, segment)
        current = await wait_for_detail_ready(current, segment)
    return current


async def collapse_nested_path(ctx: GridLocatorContext, path: PathLike) -> int:
    """Collapse from the innermost open level outwards; returns how many levels were collapsed."""
    detail_path = as_detail_path(path, grid=ctx.identity)
    contexts = [ctx]
    for segment in detail_path.segments[:-1]:
        if not await is_detail_visible(contexts[-1], segment):
            break
        contexts.append(await detail_context(contexts[-1], segment))

    collapsed = 0
    for depth in reversed(range(len(contexts))):
        if await collapse_master_row(contexts[depth], detail_path.segments[depth]):
            collapsed += 1
    return collapsed


async def get_nested_detail_row_data(ctx: GridLocatorContext, path: PathLike, matcher: RowMatcher) -> RowData:
    detail = await resolve_detail_context(ctx, path)
    return (await ensure_row(detail, matcher)).data


async def get_nested_detail_row_count(ctx: GridLocatorContext, path: PathLike) -> int:
    return await count_rendered_rows(await resolve_detail_context(ctx, path))


async def click_nested_detail_cell(ctx: GridLocatorContext, path: PathLike, matcher: RowMatcher, col_id: str) -> None:
    await click_cell(await resolve_detail_context(ctx, path), matcher, col_id)


async def expect_nested_detail_visible(ctx: GridLocatorContext, path: PathLike) -> None:
    detail_path = as_detail_path(path, grid=ctx.identity)
    current = ctx
    for depth, segment in enumerate(detail_path.segments, start=1):
        if not await is_detail_visible(current, segment):
            raise GridAssertionError(
                grid=ctx.identity,
                message=f"Detail grid at depth {depth} is not visible",
                detail=f"  Path: {format_detail_path(detail_path)}",
            )
        current = await detail_context(current, segment)


async def expect_nested_detail_hidden(ctx: GridLocatorContext, path: PathLike) -> None:
    detail_path = as_detail_path(path, grid=ctx.identity)
    current = ctx
    for segment in detail_path.segments[:-1]:
        if not await is_detail_visible(current, segment):
            return
        current = await detail_context(current, segment)
    if await is_detail_visible(current, detail_path.segments[-1]):
        raise GridAssertionError(
            grid=ctx.identity,
            message=f"Detail grid at depth {len(detail_path)} is visible, expected it hidden",
            detail=f"  Path: {format_detail_path(detail_path)}",
        )


async def get_nested_detail_state(ctx: GridLocatorContext) -> NestedDetailState:
    depth = 0
    for level in range(1, MAX_NESTING_DEPTH + 1):
        chain = " ".join([sel.DETAILS_ROW] * level)
        if await ctx.root.locator(chain).count() == 0:
            break
        depth = level
    expanded = await ctx.root.locator(sel.DETAILS_ROW).count()
    return NestedDetailState(depth=depth, has_nested_details=depth > 1, expanded_detail_count=expanded)


async def expand_all_nested_details(ctx: GridLocatorContext) -> int:
    return await set_all_expanded(
        ctx,
        True,
        expand_icon=sel.MASTER_EXPAND_ICON,
        collapse_icon=sel.MASTER_COLLAPSE_ICON,
        row_selector=sel.DATA_ROW,
    )


async def collapse_all_nested_details(ctx: GridLocatorContext) -> int:
    # Innermost rows come last in document order, so collapsing from the end goes deep to shallow.
    return await set_all_expanded(
        ctx,
        False,
        expand_icon=sel.MASTER_EXPAND_ICON,
        collapse_icon=sel.MASTER_COLLAPSE_ICON,
        row_selector=sel.DATA_ROW,
        from_end=True,
    )

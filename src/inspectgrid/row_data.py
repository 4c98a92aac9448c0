from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, AsyncIterator, Mapping

from . import selectors as sel
from .cell_values import extract_cell_value, values_match
from .errors import GridMisuseError
from .models import RowData, RowMatcher
from .runtime_checks import parse_int_attribute

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext


@dataclass(frozen=True, slots=True)
class ResolvedRow:
    locator: Locator
    data: RowData

    @property
    def selector(self) -> str | None:
        if self.data.stable_index > 0:
            return sel.row_by_stable_index(self.data.stable_index)
        if self.data.row_id:
            return sel.row_by_id(self.data.row_id)
        return None


async def read_row_data(ctx: GridLocatorContext, row: Locator) -> RowData:
    stable_index = parse_int_attribute(await row.get_attribute(sel.ATTR_STABLE_INDEX)) or 0
    viewport_index = parse_int_attribute(await row.get_attribute(sel.ATTR_VIEWPORT_INDEX))
    row_id = await row.get_attribute(sel.ATTR_ROW_ID)
    class_tokens = (await row.get_attribute("class") or "").split()
    expanded = await row.get_attribute(sel.ATTR_EXPANDED)
    level = parse_int_attribute(await row.get_attribute(sel.ATTR_LEVEL))

    # Pinned columns render the same logical row once per container.
    if stable_index > 0:
        cells = ctx.root.locator(sel.row_by_stable_index(stable_index)).locator(sel.CELL)
    else:
        cells = row.locator(sel.CELL)

    values: dict[str, str] = {}
    for index in range(await cells.count()):
        cell = cells.nth(index)
        col_id = await cell.get_attribute(sel.ATTR_COL_ID)
        if not col_id or col_id in values:
            continue
        values[col_id] = await extract_cell_value(cell, ctx.config, col_id)

    return RowData(
        viewport_index=viewport_index if viewport_index is not None else -1,
        stable_index=stable_index,
        cells=values,
        row_id=row_id or None,
        is_group=sel.ROW_GROUP.lstrip(".") in class_tokens,
        is_expanded=None if expanded is None else expanded == "true",
        group_level=level,
    )


async def iter_rendered_rows(ctx: GridLocatorContext) -> AsyncIterator[ResolvedRow]:
    """Yield each rendered logical row once, in rendering order."""
    rows = ctx.rows
    seen: set[int] = set()
    for index in range(await rows.count()):
        row = rows.nth(index)
        stable_index = parse_int_attribute(await row.get_attribute(sel.ATTR_STABLE_INDEX)) or 0
        if stable_index > 0:
            if stable_index in seen:
                continue
            seen.add(stable_index)
            row = ctx.root.locator(sel.row_by_stable_index(stable_index)).first
        yield ResolvedRow(locator=row, data=await read_row_data(ctx, row))


async def count_rendered_rows(ctx: GridLocatorContext) -> int:
    rows = ctx.rows
    seen: set[int] = set()
    anonymous = 0
    for index in range(await rows.count()):
        stable_index = parse_int_attribute(await rows.nth(index).get_attribute(sel.ATTR_STABLE_INDEX))
        if stable_index is None:
            anonymous += 1
        else:
            seen.add(stable_index)
    return len(seen) + anonymous


async def rendered_stable_range(ctx: GridLocatorContext) -> tuple[int, int] | None:
    rows = ctx.rows
    indices: list[int] = []
    for index in range(await rows.count()):
        value = parse_int_attribute(await rows.nth(index).get_attribute(sel.ATTR_STABLE_INDEX))
        if value is not None:
            indices.append(value)
    if not indices:
        return None
    return min(indices), max(indices)


async def get_all_visible_row_data(ctx: GridLocatorContext) -> list[RowData]:
    return [resolved.data async for resolved in iter_rendered_rows(ctx)]


def matches_cell_values(row: RowData, expected: Mapping[str, Any], *, exact: bool = False) -> bool:
    for col_id, expected_value in expected.items():
        actual = row.cells.get(col_id)
        if actual is None or not values_match(actual, expected_value, exact=exact):
            return False
    return True


def row_matches(row: RowData, matcher: RowMatcher) -> bool:
    if matcher.stable_index is not None:
        return row.stable_index == matcher.stable_index
    if matcher.row_id is not None:
        return row.row_id == matcher.row_id
    if matcher.viewport_index is not None:
        return row.viewport_index == matcher.viewport_index
    if matcher.cell_values is not None:
        return matches_cell_values(row, matcher.cell_values)
    if matcher.predicate is None:
        raise GridMisuseError(grid="", message="RowMatcher carries no addressing field")
    return bool(matcher.predicate(row))


async def find_row(ctx: GridLocatorContext, matcher: RowMatcher) -> ResolvedRow | None:
    selector = sel.row_selector(matcher)
    if selector is not None:
        candidates = ctx.root.locator(selector)
        if await candidates.count() == 0:
            return None
        row = candidates.first
        return ResolvedRow(locator=row, data=await read_row_data(ctx, row))

    async for resolved in iter_rendered_rows(ctx):
        if row_matches(resolved.data, matcher):
            return resolved
    return None


def cell_locator(ctx: GridLocatorContext, resolved: ResolvedRow, col_id: str) -> Locator:
    selector = resolved.selector
    if selector is not None:
        return ctx.cell(selector, col_id)
    return resolved.locator.locator(sel.cell_selector(col_id)).first


async def get_cell_value(ctx: GridLocatorContext, resolved: ResolvedRow, col_id: str) -> str | None:
    cell = cell_locator(ctx, resolved, col_id)
    if await cell.count() == 0:
        return None
    return await extract_cell_value(cell, ctx.config, col_id)

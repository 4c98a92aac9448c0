from __future__ import annotations

import re
from typing import TYPE_CHECKING

from . import selectors as sel
from .models import GridState, SortDirection, SortModel
from .row_data import count_rendered_rows
from .runtime_checks import _normalize_space, parse_int_attribute

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext

_PAGING_TOTAL = re.compile(r"of\s*([\d,]+)", re.IGNORECASE)
_STATUS_TOTAL = re.compile(r"([\d,]+)\s*(?:rows?|records?|items?)\b", re.IGNORECASE)
_SELECTED_ROWS = f'{sel.GRID_ROW}{sel.ROW_SELECTED}, {sel.GRID_ROW}[{sel.ATTR_SELECTED}="true"]'


def parse_total_from_pagination(text: str | None) -> int | None:
    match = _PAGING_TOTAL.search(_normalize_space(text))
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


def parse_total_from_status_bar(text: str | None) -> int | None:
    match = _STATUS_TOTAL.search(_normalize_space(text))
    if not match:
        return None
    return int(match.group(1).replace(",", ""))


async def is_overlay_visible(overlay: Locator) -> bool:
    if await overlay.count() == 0:
        return False
    return await overlay.first.is_visible()


async def is_loading(ctx: GridLocatorContext) -> bool:
    return await is_overlay_visible(ctx.loading_overlay)


async def is_no_rows_overlay_visible(ctx: GridLocatorContext) -> bool:
    return await is_overlay_visible(ctx.no_rows_overlay)


async def get_column_sort(ctx: GridLocatorContext, col_id: str) -> SortDirection | None:
    header = ctx.header_cell(col_id)
    if await header.count() == 0:
        return None
    value = await header.get_attribute(sel.ATTR_SORT)
    return sel.SORT_ATTRIBUTE_VALUES.get(value or "")  # type: ignore[return-value]


async def get_sort_state(ctx: GridLocatorContext) -> tuple[SortModel, ...]:
    headers = ctx.root.locator(sel.HEADER_CELL)
    ordered: list[tuple[int, int, SortModel]] = []
    for index in range(await headers.count()):
        header = headers.nth(index)
        direction = sel.SORT_ATTRIBUTE_VALUES.get(await header.get_attribute(sel.ATTR_SORT) or "")
        col_id = await header.get_attribute(sel.ATTR_COL_ID)
        if direction is None or not col_id:
            continue
        # Multi-column sorts render their priority as a small number in the header.
        priority = 0
        order_badge = header.locator(".ag-sort-order")
        if await order_badge.count() > 0:
            priority = parse_int_attribute(await order_badge.first.text_content()) or 0
        ordered.append((priority, index, SortModel(col_id=col_id, direction=direction)))  # type: ignore[arg-type]
    ordered.sort(key=lambda item: (item[0], item[1]))
    return tuple(model for _priority, _index, model in ordered)


async def get_selected_row_ids(ctx: GridLocatorContext) -> list[str]:
    rows = ctx.root.locator(_SELECTED_ROWS)
    ids: list[str] = []
    for index in range(await rows.count()):
        row_id = await rows.nth(index).get_attribute(sel.ATTR_ROW_ID)
        if row_id and row_id not in ids:
            ids.append(row_id)
    return ids


async def count_selected_rows(ctx: GridLocatorContext) -> int:
    rows = ctx.root.locator(_SELECTED_ROWS)
    keys: set[str] = set()
    for index in range(await rows.count()):
        row = rows.nth(index)
        key = await row.get_attribute(sel.ATTR_STABLE_INDEX) or await row.get_attribute(sel.ATTR_ROW_ID)
        keys.add(key or f"#{index}")
    return len(keys)


async def read_reported_total(ctx: GridLocatorContext) -> int | None:
    """Total the grid itself reports in its paging panel, status bar or data-total-rows."""
    paging = ctx.root.locator(sel.PAGING_PANEL)
    if await paging.count() > 0:
        total = parse_total_from_pagination(await paging.first.text_content())
        if total is not None:
            return total
    status_bar = ctx.root.locator(sel.STATUS_BAR)
    if await status_bar.count() > 0:
        total = parse_total_from_status_bar(await status_bar.first.text_content())
        if total is not None:
            return total
    marker = ctx.root.locator(f"[{sel.ATTR_TOTAL_ROWS}]")
    if await marker.count() > 0:
        return parse_int_attribute(await marker.first.get_attribute(sel.ATTR_TOTAL_ROWS))
    return None


async def get_total_row_count(ctx: GridLocatorContext) -> int:
    total = await read_reported_total(ctx)
    if total is not None:
        return total
    return await count_rendered_rows(ctx)


async def get_grid_state(ctx: GridLocatorContext) -> GridState:
    return GridState(
        total_rows=await get_total_row_count(ctx),
        visible_rows=await count_rendered_rows(ctx),
        selected_rows=await count_selected_rows(ctx),
        sorted_by=await get_sort_state(ctx),
        is_loading=await is_loading(ctx),
    )


async def is_row_selected(row: Locator) -> bool:
    class_tokens = (await row.get_attribute("class") or "").split()
    if sel.ROW_SELECTED.lstrip(".") in class_tokens:
        return True
    return await row.get_attribute(sel.ATTR_SELECTED) == "true"

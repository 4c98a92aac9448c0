from __future__ import annotations

from typing import TYPE_CHECKING

from . import selectors as sel
from .errors import GridNotFoundError
from .models import ColumnGroupState
from .runtime_checks import _normalize_space
from .waits import poll_until

if TYPE_CHECKING:
    from playwright.async_api import Locator

    from .locators import GridLocatorContext


async def get_column_group_header(ctx: GridLocatorContext, group_id: str) -> Locator:
    header = ctx.root.locator(sel.header_group_cell_selector(group_id)).first
    if await header.count() == 0:
        raise GridNotFoundError(grid=ctx.identity, message=f'Column group "{group_id}" not found')
    return header


async def is_column_group_expanded(ctx: GridLocatorContext, group_id: str) -> bool:
    header = await get_column_group_header(ctx, group_id)
    return await header.get_attribute(sel.ATTR_EXPANDED) == "true"


async def set_column_group_expanded(ctx: GridLocatorContext, group_id: str, expanded: bool) -> bool:
    header = await get_column_group_header(ctx, group_id)
    if (await header.get_attribute(sel.ATTR_EXPANDED) == "true") == expanded:
        return False

    icon = header.locator(sel.COLUMN_GROUP_EXPAND_ICON).first
    await (icon if await icon.count() > 0 else header).click()

    async def _settled() -> bool:
        return (await header.get_attribute(sel.ATTR_EXPANDED) == "true") == expanded

    await poll_until(
        _settled,
        timeout=ctx.config.timeouts.assertion,
        interval=ctx.config.timeouts.poll_interval,
        grid=ctx.identity,
        condition=f'column group "{group_id}" to be {"expanded" if expanded else "collapsed"}',
    )
    return True


async def expand_column_group(ctx: GridLocatorContext, group_id: str) -> bool:
    return await set_column_group_expanded(ctx, group_id, True)


async def collapse_column_group(ctx: GridLocatorContext, group_id: str) -> bool:
    return await set_column_group_expanded(ctx, group_id, False)


async def toggle_column_group(ctx: GridLocatorContext, group_id: str) -> bool:
    expanded = await is_column_group_expanded(ctx, group_id)
    await set_column_group_expanded(ctx, group_id, not expanded)
    return not expanded


async def get_column_group_state(ctx: GridLocatorContext) -> list[ColumnGroupState]:
    headers = ctx.root.locator(sel.owned(sel.HEADER_GROUP_CELL))
    states: list[ColumnGroupState] = []
    for index in range(await headers.count()):
        header = headers.nth(index)
        group_id = await header.get_attribute(sel.ATTR_COL_ID)
        if not group_id:
            continue
        states.append(
            ColumnGroupState(
                group_id=group_id,
                is_expanded=await header.get_attribute(sel.ATTR_EXPANDED) == "true",
                label=_normalize_space(await header.text_content()),
            )
        )
    return states

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Sequence

from . import selectors as sel
from .cell_values import values_match
from .errors import GridMisuseError, GridNotFoundError
from .grouping import read_expanded, set_all_expanded, set_row_expanded
from .models import MAX_NESTING_DEPTH, RowData, RowMatcher
from .row_data import get_all_visible_row_data
from .runtime_checks import parse_int_attribute
from .scroll import ensure_row

if TYPE_CHECKING:
    from .locators import GridLocatorContext

AUTO_GROUP_COLUMN = "ag-Grid-AutoColumn"
_CHILD_COUNT_SUFFIX = re.compile(r"\s*\(\d+\)$")


def tree_level(row: RowData) -> int:
    # aria-level is 1-based; tree depth is reported 0-based.
    return row.group_level - 1 if row.group_level else 0


async def get_tree_level(ctx: GridLocatorContext, matcher: RowMatcher) -> int:
    resolved = await ensure_row(ctx, matcher)
    # Older grid versions expose the depth only through the tree-level attribute.
    explicit = parse_int_attribute(await resolved.locator.get_attribute(sel.ATTR_TREE_LEVEL))
    if explicit is not None:
        return explicit
    return tree_level(resolved.data)


async def is_tree_node_expanded(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await read_expanded((await ensure_row(ctx, matcher)).locator)


async def expand_tree_node(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await set_row_expanded(
        ctx,
        matcher,
        True,
        expand_icon=sel.TREE_EXPAND_ICON,
        collapse_icon=sel.TREE_COLLAPSE_ICON,
        kind="tree node",
    )


async def collapse_tree_node(ctx: GridLocatorContext, matcher: RowMatcher) -> bool:
    return await set_row_expanded(
        ctx,
        matcher,
        False,
        expand_icon=sel.TREE_EXPAND_ICON,
        collapse_icon=sel.TREE_COLLAPSE_ICON,
        kind="tree node",
    )


async def expand_all_tree_nodes(ctx: GridLocatorContext) -> int:
    return await set_all_expanded(ctx, True, expand_icon=sel.TREE_EXPAND_ICON, collapse_icon=sel.TREE_COLLAPSE_ICON)


async def collapse_all_tree_nodes(ctx: GridLocatorContext) -> int:
    return await set_all_expanded(ctx, False, expand_icon=sel.TREE_EXPAND_ICON, collapse_icon=sel.TREE_COLLAPSE_ICON)


async def expand_path_to(
    ctx: GridLocatorContext, names: Sequence[str], *, col_id: str = AUTO_GROUP_COLUMN
) -> RowData:
    """Expand each named ancestor in turn and return the row for the last name."""
    if not names:
        raise GridMisuseError(grid=ctx.identity, message="expand_path_to needs at least one node name")
    if len(names) > MAX_NESTING_DEPTH:
        raise GridMisuseError(
            grid=ctx.identity,
            message=f"Path depth ({len(names)}) exceeds maximum allowed depth ({MAX_NESTING_DEPTH})",
        )

    parent: RowData | None = None
    for depth, name in enumerate(names):
        node = await _find_child_by_name(ctx, parent, name, col_id)
        if node is None:
            trail = " > ".join(names[: depth + 1])
            raise GridNotFoundError(grid=ctx.identity, message=f'Tree node "{trail}" not found')
        if depth < len(names) - 1:
            await expand_tree_node(ctx, RowMatcher(stable_index=node.stable_index))
        parent = node
    return node


async def _find_child_by_name(
    ctx: GridLocatorContext, parent: RowData | None, name: str, col_id: str
) -> RowData | None:
    rows = await get_all_visible_row_data(ctx)
    candidates = rows if parent is None else _descendants(rows, parent)
    wanted_level = 0 if parent is None else tree_level(parent) + 1
    for row in candidates:
        if tree_level(row) == wanted_level and values_match(_node_label(row.cells.get(col_id, "")), name):
            return row
    return None


def _node_label(text: str) -> str:
    return _CHILD_COUNT_SUFFIX.sub("", text)


def _descendants(rows: Sequence[RowData], node: RowData) -> list[RowData]:
    start = next((index for index, row in enumerate(rows) if row.stable_index == node.stable_index), None)
    if start is None:
        return []
    level = tree_level(node)
    found: list[RowData] = []
    for row in rows[start + 1 :]:
        if tree_level(row) <= level:
            break
        found.append(row)
    return found


async def get_child_nodes(ctx: GridLocatorContext, matcher: RowMatcher) -> list[RowData]:
    node = (await ensure_row(ctx, matcher)).data
    level = tree_level(node)
    return [row for row in _descendants(await get_all_visible_row_data(ctx), node) if tree_level(row) == level + 1]


async def get_parent_node(ctx: GridLocatorContext, matcher: RowMatcher) -> RowData | None:
    node = (await ensure_row(ctx, matcher)).data
    level = tree_level(node)
    if level == 0:
        return None
    rows = await get_all_visible_row_data(ctx)
    position = next((index for index, row in enumerate(rows) if row.stable_index == node.stable_index), None)
    if position is None:
        return None
    for row in reversed(rows[:position]):
        if tree_level(row) == level - 1:
            return row
    return None

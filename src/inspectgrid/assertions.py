from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from .cell_values import parse_value_by_type, values_match
from .errors import GridAssertionError, GridMisuseError, GridNotFoundError, GridTimeoutError
from .models import ColumnType, RowMatcher, SortDirection
from .row_data import count_rendered_rows, find_row, get_all_visible_row_data, get_cell_value
from .scoring import find_closest_match, format_closest_match
from .scroll import ensure_row
from .state import get_column_sort, get_sort_state, is_no_rows_overlay_visible, is_row_selected
from .validation import format_expected_values, format_row_matcher
from .waits import poll_until

if TYPE_CHECKING:
    from .locators import GridLocatorContext

_VIRTUALIZATION_TIP = (
    "Tip: only rendered rows are checked. If the row exists further down, scroll to it first "
    "or narrow the grid with a filter."
)


def _timeout(ctx: GridLocatorContext, timeout: float | None) -> float:
    return timeout if timeout is not None else ctx.config.timeouts.assertion


async def expect_row_count(
    ctx: GridLocatorContext,
    count: int | None = None,
    *,
    min_count: int | None = None,
    max_count: int | None = None,
    timeout: float | None = None,
) -> None:
    if count is None and min_count is None and max_count is None:
        raise GridMisuseError(grid=ctx.identity, message="expect_row_count needs count, min_count or max_count")
    if count is None:
        actual = await count_rendered_rows(ctx)
        if min_count is not None and actual < min_count:
            raise GridAssertionError(grid=ctx.identity, message=f"Expected at least {min_count} rows, found {actual}")
        if max_count is not None and actual > max_count:
            raise GridAssertionError(grid=ctx.identity, message=f"Expected at most {max_count} rows, found {actual}")
        return

    observed = {"count": -1}

    async def _has_count() -> bool:
        observed["count"] = await count_rendered_rows(ctx)
        return observed["count"] == count

    try:
        await poll_until(
            _has_count,
            timeout=_timeout(ctx, timeout),
            interval=ctx.config.timeouts.poll_interval,
            grid=ctx.identity,
            condition=f"{count} rows",
        )
    except GridTimeoutError as exc:
        raise GridAssertionError(
            grid=ctx.identity,
            message=f"Expected {count} rows, found {observed['count']}",
            detail=f"Waited {exc.timeout:g}s for the row count to settle.",
        ) from None


async def expect_row_contains(
    ctx: GridLocatorContext, cell_values: Mapping[str, Any], timeout: float | None = None
) -> None:
    matcher = RowMatcher(cell_values=dict(cell_values))

    async def _match() -> bool:
        return await find_row(ctx, matcher) is not None

    try:
        await poll_until(
            _match,
            timeout=_timeout(ctx, timeout),
            interval=ctx.config.timeouts.poll_interval,
            grid=ctx.identity,
            condition=f"a row matching {format_expected_values(cell_values)}",
        )
    except GridTimeoutError:
        rows = await get_all_visible_row_data(ctx)
        closest = find_closest_match(rows, cell_values)
        labels = {col_id: ctx.config.column_label(col_id) for col_id in cell_values}
        raise GridAssertionError(
            grid=ctx.identity,
            message="does not contain a row matching:",
            detail="\n".join(
                [
                    f"  Expected: {format_expected_values(cell_values)}",
                    f"  Visible rows checked: {len(rows)}",
                    _indent(format_closest_match(closest, labels)),
                    f"  {_VIRTUALIZATION_TIP}",
                ]
            ),
        ) from None


async def expect_row_not_contains(
    ctx: GridLocatorContext, cell_values: Mapping[str, Any], timeout: float | None = None
) -> None:
    matcher = RowMatcher(cell_values=dict(cell_values))

    async def _absent() -> bool:
        return await find_row(ctx, matcher) is None

    try:
        await poll_until(
            _absent,
            timeout=_timeout(ctx, timeout),
            interval=ctx.config.timeouts.poll_interval,
            grid=ctx.identity,
            condition=f"no row matching {format_expected_values(cell_values)}",
        )
    except GridTimeoutError:
        raise GridAssertionError(
            grid=ctx.identity,
            message="contains a row matching:",
            detail=f"  Expected: {format_expected_values(cell_values)}\n  Expected this row to NOT exist.",
        ) from None


async def expect_cell_value(
    ctx: GridLocatorContext,
    matcher: RowMatcher,
    col_id: str,
    expected: Any,
    *,
    exact: bool = False,
    value_type: ColumnType | None = None,
) -> None:
    resolved = await ensure_row(ctx, matcher)
    actual = await get_cell_value(ctx, resolved, col_id)
    label = ctx.config.column_label(col_id)
    if actual is None:
        raise GridNotFoundError(
            grid=ctx.identity,
            message=f'Cell "{label}" not found in row {format_row_matcher(matcher)}',
        )

    if value_type is not None:
        expected_typed = parse_value_by_type(expected, value_type) if isinstance(expected, str) else expected
        ok = parse_value_by_type(actual, value_type) == expected_typed
    elif exact:
        ok = actual == (expected if isinstance(expected, str) else str(expected))
    else:
        ok = values_match(actual, expected)

    if not ok:
        qualifier = "expected exactly" if exact else "expected"
        raise GridAssertionError(
            grid=ctx.identity,
            message=f'Cell "{label}" has value "{actual}", {qualifier} "{expected}"',
            detail=f"  Row: {format_row_matcher(matcher)}",
        )


async def expect_sorted_by(ctx: GridLocatorContext, col_id: str, direction: SortDirection = "asc") -> None:
    actual = await get_column_sort(ctx, col_id)
    label = ctx.config.column_label(col_id)
    if actual is None:
        current = await get_sort_state(ctx)
        described = ", ".join(f"{model.col_id} {model.direction}" for model in current) or "none"
        raise GridAssertionError(
            grid=ctx.identity,
            message=f'Column "{label}" is not sorted. Currently sorted: {described}',
        )
    if actual != direction:
        raise GridAssertionError(
            grid=ctx.identity,
            message=f'Column "{label}" is sorted "{actual}", expected "{direction}"',
        )


async def expect_empty(ctx: GridLocatorContext) -> None:
    count = await count_rendered_rows(ctx)
    if count:
        raise GridAssertionError(grid=ctx.identity, message=f"Expected grid to be empty, found {count} rows")


async def expect_no_rows_overlay(ctx: GridLocatorContext) -> None:
    if await is_no_rows_overlay_visible(ctx):
        return
    count = await count_rendered_rows(ctx)
    raise GridAssertionError(grid=ctx.identity, message=f'"No rows" overlay is not visible. Grid has {count} rows.')


async def expect_row_selected(ctx: GridLocatorContext, matcher: RowMatcher, selected: bool = True) -> None:
    resolved = await ensure_row(ctx, matcher)
    if await is_row_selected(resolved.locator) == selected:
        return
    state = "selected" if selected else "not selected"
    raise GridAssertionError(grid=ctx.identity, message=f"Expected row {format_row_matcher(matcher)} to be {state}")


def _indent(text: str) -> str:
    return "\n".join(f"  {line}" for line in text.splitlines())

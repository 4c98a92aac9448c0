import pytest

from fake_dom import FakePage, build_context, grid_html, row_html
from inspectgrid.models import RowMatcher
from inspectgrid.row_data import count_rendered_rows, find_row, get_all_visible_row_data, get_cell_value, rendered_stable_range


def _page() -> FakePage:
    body = "".join(
        [
            row_html(11, {"id": "11", "name": "Alice", "status": "active"}, row_id="a"),
            row_html(12, {"id": "12", "name": "Bob", "status": "Pending "}, row_id="b"),
            row_html(13, {"id": "13", "name": "Carol", "status": "active"}, row_id="c"),
            '<div class="ag-row ag-details-row ag-full-width-row" row-id="a-detail">detail</div>',
        ]
    )
    return FakePage(grid_html(body))


@pytest.mark.asyncio
async def test_find_row_by_structural_matchers() -> None:
    ctx = build_context(_page())

    by_index = await find_row(ctx, RowMatcher.by_index(12))
    assert by_index is not None
    assert by_index.data.row_id == "b"
    assert by_index.data.cells["name"] == "Bob"

    by_id = await find_row(ctx, RowMatcher.by_id("c"))
    assert by_id is not None
    assert by_id.data.stable_index == 13

    by_viewport = await find_row(ctx, RowMatcher.by_viewport_index(10))
    assert by_viewport is not None
    assert by_viewport.data.row_id == "a"

    assert await find_row(ctx, RowMatcher.by_index(99)) is None


@pytest.mark.asyncio
async def test_find_row_by_values_returns_first_match() -> None:
    ctx = build_context(_page())

    resolved = await find_row(ctx, RowMatcher.by_values(status="ACTIVE"))
    assert resolved is not None
    assert resolved.data.stable_index == 11

    pending = await find_row(ctx, RowMatcher.by_values(status="pending", name="bob"))
    assert pending is not None
    assert pending.data.row_id == "b"

    assert await find_row(ctx, RowMatcher.by_values(status="archived")) is None


@pytest.mark.asyncio
async def test_find_row_by_predicate() -> None:
    ctx = build_context(_page())
    resolved = await find_row(ctx, RowMatcher.where(lambda row: row.cells.get("name", "").startswith("C")))
    assert resolved is not None
    assert resolved.data.row_id == "c"


@pytest.mark.asyncio
async def test_rendered_rows_skip_detail_rows() -> None:
    ctx = build_context(_page())
    rows = await get_all_visible_row_data(ctx)
    assert [row.stable_index for row in rows] == [11, 12, 13]
    assert await count_rendered_rows(ctx) == 3
    assert await rendered_stable_range(ctx) == (11, 13)


@pytest.mark.asyncio
async def test_cell_value_and_missing_cell() -> None:
    ctx = build_context(_page())
    resolved = await find_row(ctx, RowMatcher.by_id("b"))
    assert resolved is not None
    assert await get_cell_value(ctx, resolved, "status") == "Pending"
    assert await get_cell_value(ctx, resolved, "missing") is None


@pytest.mark.asyncio
async def test_pinned_cells_merge_into_one_row() -> None:
    body = (
        '<div class="ag-pinned-left-cols-container">'
        + row_html(1, {"id": "1"}, row_id="r1")
        + '</div><div class="ag-center-cols-container">'
        + row_html(1, {"name": "Alice", "status": "active"}, row_id="r1")
        + "</div>"
    )
    page = FakePage(grid_html(body))
    ctx = build_context(page, {"selector": "orders", "columns": [{"col_id": "id", "pinned": "left"}]})

    rows = await get_all_visible_row_data(ctx)
    assert len(rows) == 1
    assert rows[0].cells == {"id": "1", "name": "Alice", "status": "active"}

    resolved = await find_row(ctx, RowMatcher.by_index(1))
    assert resolved is not None
    assert await get_cell_value(ctx, resolved, "id") == "1"

import pytest

from fake_dom import Event, FakePage, add_class, build_context, cell_html, grid_html, remove_class, row_html, row_of
from inspectgrid import grouping
from inspectgrid.errors import GridNotFoundError, GridTimeoutError
from inspectgrid.models import RowMatcher

_AUTO = "ag-Grid-AutoColumn"


def _group_cell(label: str, count: int, expanded: bool) -> str:
    expanded_icon = "ag-group-expanded" + ("" if expanded else " ag-hidden")
    contracted_icon = "ag-group-contracted" + (" ag-hidden" if expanded else "")
    return cell_html(
        _AUTO,
        f'<span class="{expanded_icon}"></span><span class="{contracted_icon}"></span>'
        f'<span class="ag-group-value">{label}</span><span class="ag-group-child-count">({count})</span>',
        classes=["ag-group-cell"],
        raw=True,
    )


def _group_row(stable_index: int, label: str, count: int, *, expanded: bool) -> str:
    return row_html(
        stable_index,
        _group_cell(label, count, expanded),
        row_id=f"row-group-status-{label.lower()}",
        classes=["ag-row-group"],
        attrs={"aria-expanded": "true" if expanded else "false", "aria-level": 1},
    )


def _grouped_page(*, responsive: bool = True) -> FakePage:
    body = "".join(
        [
            _group_row(1, "Active", 3, expanded=True),
            row_html(2, {"name": "Order 1", "status": "Active"}, row_id="o1", attrs={"aria-level": 2}),
            _group_row(3, "Pending", 2, expanded=False),
            _group_row(4, "Closed", 5, expanded=False),
        ]
    )
    page = FakePage(grid_html(body))

    def _toggle(icon, event: Event) -> None:
        row = row_of(icon)
        expanded = row["aria-expanded"] != "true"
        row["aria-expanded"] = "true" if expanded else "false"
        cell = icon.parent
        for marker in cell.select(".ag-group-expanded, .ag-group-contracted"):
            opened = "ag-group-expanded" in marker["class"]
            (remove_class if opened == expanded else add_class)(marker, "ag-hidden")

    if responsive:
        page.on("click", ".ag-group-contracted, .ag-group-expanded", _toggle)
    return page


@pytest.mark.asyncio
async def test_expanding_an_expanded_group_clicks_nothing() -> None:
    page = _grouped_page()
    ctx = build_context(page)

    await grouping.expand_group(ctx, RowMatcher.by_index(1))

    assert page.events_of("click") == []
    assert await grouping.is_group_expanded(ctx, RowMatcher.by_index(1))


@pytest.mark.asyncio
async def test_expand_and_collapse_group() -> None:
    page = _grouped_page()
    ctx = build_context(page)
    pending = RowMatcher.by_id("row-group-status-pending")

    await grouping.expand_group(ctx, pending)
    assert await grouping.is_group_expanded(ctx, pending)
    assert "ag-group-contracted" in page.events_of("click")[0].attr("class")

    await grouping.collapse_group(ctx, pending)
    assert not await grouping.is_group_expanded(ctx, pending)
    assert len(page.events_of("click")) == 2


@pytest.mark.asyncio
async def test_group_metadata() -> None:
    ctx = build_context(_grouped_page())

    assert await grouping.is_group_row(ctx, RowMatcher.by_index(3))
    assert not await grouping.is_group_row(ctx, RowMatcher.by_id("o1"))
    assert await grouping.get_group_child_count(ctx, RowMatcher.by_index(4)) == 5
    assert await grouping.get_group_child_count(ctx, RowMatcher.by_id("o1")) == 0
    assert await grouping.get_group_level(ctx, RowMatcher.by_id("o1")) == 2
    assert [row.row_id for row in await grouping.get_group_rows(ctx)] == [
        "row-group-status-active",
        "row-group-status-pending",
        "row-group-status-closed",
    ]


@pytest.mark.asyncio
async def test_expand_and_collapse_all_groups_count_clicks() -> None:
    page = _grouped_page()
    ctx = build_context(page)

    assert await grouping.expand_all_groups(ctx) == 2
    assert await grouping.expand_all_groups(ctx) == 0
    assert await grouping.collapse_all_groups(ctx) == 3
    assert len(page.events_of("click")) == 5


@pytest.mark.asyncio
async def test_expand_all_is_bounded_when_grid_ignores_clicks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(grouping, "MAX_BULK_ITERATIONS", 3)
    page = _grouped_page(responsive=False)
    ctx = build_context(page)

    with pytest.raises(GridTimeoutError, match="did not converge after 3 clicks"):
        await grouping.expand_all_groups(ctx)
    assert len(page.events_of("click")) == 3


@pytest.mark.asyncio
async def test_group_state_change_is_verified() -> None:
    ctx = build_context(_grouped_page(responsive=False))
    with pytest.raises(GridTimeoutError, match="to be expanded"):
        await grouping.expand_group(ctx, RowMatcher.by_index(3))


@pytest.mark.asyncio
async def test_expand_group_without_control() -> None:
    body = row_html(1, {"name": "x"}, classes=["ag-row-group"], attrs={"aria-expanded": "false"})
    ctx = build_context(FakePage(grid_html(body)))
    with pytest.raises(GridNotFoundError, match="No expand/collapse control"):
        await grouping.expand_group(ctx, RowMatcher.by_index(1))

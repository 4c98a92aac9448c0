import pytest

from fake_dom import Event, FakePage, cell_html, grid_html, row_html, row_of
from fake_dom import build_context
from inspectgrid import tree_data
from inspectgrid.errors import GridMisuseError, GridNotFoundError
from inspectgrid.models import RowMatcher

_PATHS = (
    ("Documents",),
    ("Documents", "Work"),
    ("Documents", "Work", "report.pdf"),
    ("Documents", "Personal"),
    ("Music",),
    ("Music", "song.mp3"),
)


class TreeGrid:
    """Renders only the nodes whose ancestors are all expanded, like a client-side tree."""

    def __init__(self, expanded: set[tuple[str, ...]] | None = None) -> None:
        self.expanded = set(expanded or ())
        self.page = FakePage()
        self.page.on("click", ".ag-group-contracted, .ag-group-expanded", self._toggle)
        self.render()

    def _has_children(self, path: tuple[str, ...]) -> bool:
        return any(len(other) == len(path) + 1 and other[: len(path)] == path for other in _PATHS)

    def _visible(self, path: tuple[str, ...]) -> bool:
        return all(path[:depth] in self.expanded for depth in range(1, len(path)))

    def render(self) -> None:
        rows = []
        for path in (path for path in _PATHS if self._visible(path)):
            stable_index = len(rows) + 1
            attrs = {"aria-level": len(path), "data-path": "/".join(path)}
            icons = ""
            if self._has_children(path):
                opened = path in self.expanded
                attrs["aria-expanded"] = "true" if opened else "false"
                icons = (
                    f'<span class="ag-group-expanded{"" if opened else " ag-hidden"}"></span>'
                    f'<span class="ag-group-contracted{" ag-hidden" if opened else ""}"></span>'
                )
                count = sum(1 for other in _PATHS if len(other) == len(path) + 1 and other[: len(path)] == path)
                label = f'<span class="ag-group-value">{path[-1]}</span><span class="ag-group-child-count">({count})</span>'
            else:
                label = f'<span class="ag-group-value">{path[-1]}</span>'
            cell = cell_html(tree_data.AUTO_GROUP_COLUMN, icons + label, classes=["ag-group-cell"], raw=True)
            rows.append(row_html(stable_index, cell, row_id="/".join(path), attrs=attrs))
        self.page.set_content(grid_html("".join(rows), name="files"))

    def _toggle(self, icon, event: Event) -> None:
        path = tuple(row_of(icon)["data-path"].split("/"))
        self.expanded.symmetric_difference_update({path})
        self.render()


@pytest.mark.asyncio
async def test_expand_path_to_opens_each_ancestor() -> None:
    tree = TreeGrid()
    ctx = build_context(tree.page, "files")

    node = await tree_data.expand_path_to(ctx, ["documents", "Work", "report.pdf"])

    assert node.row_id == "Documents/Work/report.pdf"
    assert tree.expanded == {("Documents",), ("Documents", "Work")}
    assert len(tree.page.events_of("click")) == 2


@pytest.mark.asyncio
async def test_expand_path_to_reports_missing_node() -> None:
    ctx = build_context(TreeGrid().page, "files")
    with pytest.raises(GridNotFoundError, match='Tree node "Documents > Games" not found'):
        await tree_data.expand_path_to(ctx, ["Documents", "Games"])


@pytest.mark.asyncio
async def test_expand_path_to_validates_path_length() -> None:
    ctx = build_context(TreeGrid().page, "files")
    with pytest.raises(GridMisuseError):
        await tree_data.expand_path_to(ctx, [])
    with pytest.raises(GridMisuseError, match="exceeds maximum allowed depth"):
        await tree_data.expand_path_to(ctx, [f"level{index}" for index in range(11)])


@pytest.mark.asyncio
async def test_tree_navigation_helpers() -> None:
    tree = TreeGrid(expanded={("Documents",), ("Documents", "Work")})
    ctx = build_context(tree.page, "files")
    report = RowMatcher.by_id("Documents/Work/report.pdf")

    assert await tree_data.get_tree_level(ctx, report) == 2
    assert await tree_data.get_tree_level(ctx, RowMatcher.by_id("Music")) == 0

    children = await tree_data.get_child_nodes(ctx, RowMatcher.by_id("Documents"))
    assert [child.row_id for child in children] == ["Documents/Work", "Documents/Personal"]

    parent = await tree_data.get_parent_node(ctx, report)
    assert parent is not None
    assert parent.row_id == "Documents/Work"
    assert await tree_data.get_parent_node(ctx, RowMatcher.by_id("Documents")) is None


@pytest.mark.asyncio
async def test_expand_and_collapse_every_tree_node() -> None:
    tree = TreeGrid()
    ctx = build_context(tree.page, "files")

    assert await tree_data.expand_all_tree_nodes(ctx) == 3
    assert tree.expanded == {("Documents",), ("Documents", "Work"), ("Music",)}

    assert await tree_data.collapse_tree_node(ctx, RowMatcher.by_id("Music"))
    assert not await tree_data.is_tree_node_expanded(ctx, RowMatcher.by_id("Music"))
    assert not await tree_data.collapse_tree_node(ctx, RowMatcher.by_id("Music"))

    assert await tree_data.collapse_all_tree_nodes(ctx) == 1

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Literal, Mapping

from .errors import GridMisuseError

if TYPE_CHECKING:
    from playwright.async_api import Locator

ColumnType = Literal["text", "number", "date", "boolean", "custom"]
PinSide = Literal["left", "right"]
SortDirection = Literal["asc", "desc"]
NavigationDirection = Literal["up", "down", "left", "right"]

CellExtractor = Callable[["Locator"], Awaitable[str]]
RowPredicate = Callable[["RowData"], bool]

MAX_NESTING_DEPTH = 10
MAX_SCROLL_ATTEMPTS = 100
MAX_BULK_ITERATIONS = 100


@dataclass(frozen=True, slots=True)
class ColumnDef:
    col_id: str
    display_name: str | None = None
    type: ColumnType = "text"
    value_extractor: CellExtractor | None = None
    pinned: PinSide | None = None

    @property
    def label(self) -> str:
        return self.display_name or self.col_id


@dataclass(frozen=True, slots=True)
class CellRendererConfig:
    value_selector: str
    extract_value: CellExtractor | None = None


@dataclass(frozen=True, slots=True)
class GridTimeouts:
    grid_ready: float = 30.0
    row_load: float = 10.0
    cell_edit: float = 5.0
    scroll: float = 0.05
    assertion: float = 5.0
    block_load: float = 30.0
    poll_interval: float = 0.1


@dataclass(frozen=True, slots=True)
class EnterpriseFlags:
    row_grouping: bool = False
    tree_data: bool = False
    master_detail: bool = False
    server_side: bool = False


@dataclass(frozen=True, slots=True)
class GridConfig:
    selector: str
    columns: tuple[ColumnDef, ...] = ()
    cell_renderers: Mapping[str, CellRendererConfig] = field(default_factory=dict)
    enterprise: EnterpriseFlags = field(default_factory=EnterpriseFlags)
    timeouts: GridTimeouts = field(default_factory=GridTimeouts)
    detail_row_suffix: str = "-detail"

    def column(self, col_id: str) -> ColumnDef | None:
        for column in self.columns:
            if column.col_id == col_id:
                return column
        return None

    def column_label(self, col_id: str) -> str:
        column = self.column(col_id)
        return column.label if column else col_id


_MATCHER_FIELDS = ("stable_index", "row_id", "viewport_index", "cell_values", "predicate")


@dataclass(frozen=True, slots=True)
class RowMatcher:
    """Addresses a single row by exactly one criterion.

    ``stable_index`` is the 1-based ``aria-rowindex`` and survives scrolling.
    ``viewport_index`` is the 0-based ``row-index`` and is only meaningful until
    the next scroll.
    """

    stable_index: int | None = None
    row_id: str | None = None
    viewport_index: int | None = None
    cell_values: Mapping[str, Any] | None = None
    predicate: RowPredicate | None = None

    def __post_init__(self) -> None:
        populated = [name for name in _MATCHER_FIELDS if getattr(self, name) is not None]
        if len(populated) != 1:
            listed = ", ".join(populated) if populated else "none"
            raise GridMisuseError(
                grid="",
                message=f"RowMatcher needs exactly one addressing field, got: {listed}",
            )
        if self.stable_index is not None and self.stable_index < 1:
            raise GridMisuseError(grid="", message=f"stable_index is 1-based, got {self.stable_index}")
        if self.viewport_index is not None and self.viewport_index < 0:
            raise GridMisuseError(grid="", message=f"viewport_index is 0-based, got {self.viewport_index}")

    @classmethod
    def by_index(cls, stable_index: int) -> RowMatcher:
        return cls(stable_index=stable_index)

    @classmethod
    def by_id(cls, row_id: str) -> RowMatcher:
        return cls(row_id=str(row_id))

    @classmethod
    def by_viewport_index(cls, viewport_index: int) -> RowMatcher:
        return cls(viewport_index=viewport_index)

    @classmethod
    def by_values(cls, **cell_values: Any) -> RowMatcher:
        return cls(cell_values=dict(cell_values))

    @classmethod
    def where(cls, predicate: RowPredicate) -> RowMatcher:
        return cls(predicate=predicate)

    @property
    def is_structural(self) -> bool:
        return self.stable_index is not None or self.row_id is not None or self.viewport_index is not None

    @property
    def is_scrollable(self) -> bool:
        return self.stable_index is not None or self.row_id is not None


@dataclass(frozen=True, slots=True)
class RowData:
    viewport_index: int
    stable_index: int
    cells: dict[str, str]
    row_id: str | None = None
    is_group: bool = False
    is_expanded: bool | None = None
    group_level: int | None = None


@dataclass(frozen=True, slots=True)
class FieldMismatch:
    field: str
    expected: Any
    actual: Any


@dataclass(frozen=True, slots=True)
class ClosestMatchResult:
    row: RowData
    matched_fields: int
    total_fields: int
    mismatches: tuple[FieldMismatch, ...]


@dataclass(frozen=True, slots=True)
class SortModel:
    col_id: str
    direction: SortDirection


@dataclass(frozen=True, slots=True)
class GridState:
    total_rows: int
    visible_rows: int
    selected_rows: int
    sorted_by: tuple[SortModel, ...]
    is_loading: bool


@dataclass(frozen=True, slots=True)
class DetailGridPath:
    segments: tuple[RowMatcher, ...]

    def __post_init__(self) -> None:
        if not self.segments:
            raise GridMisuseError(grid="", message="DetailGridPath needs at least one master row matcher")
        if len(self.segments) > MAX_NESTING_DEPTH:
            raise GridMisuseError(
                grid="",
                message=f"Path depth ({len(self.segments)}) exceeds maximum allowed depth ({MAX_NESTING_DEPTH})",
            )

    @classmethod
    def of(cls, *segments: RowMatcher) -> DetailGridPath:
        return cls(tuple(segments))

    def __len__(self) -> int:
        return len(self.segments)

    @property
    def parent(self) -> DetailGridPath | None:
        if len(self.segments) == 1:
            return None
        return DetailGridPath(self.segments[:-1])


@dataclass(frozen=True, slots=True)
class CellPosition:
    row: RowMatcher
    col_id: str


@dataclass(frozen=True, slots=True)
class CellRange:
    start: CellPosition
    end: CellPosition


@dataclass(frozen=True, slots=True)
class RangeSelectionState:
    cell_count: int
    row_count: int
    column_count: int
    col_ids: tuple[str, ...]
    stable_indices: tuple[int, ...]


@dataclass(frozen=True, slots=True)
class ColumnGroupState:
    group_id: str
    is_expanded: bool
    label: str


@dataclass(frozen=True, slots=True)
class NestedDetailState:
    depth: int
    has_nested_details: bool
    expanded_detail_count: int


@dataclass(frozen=True, slots=True)
class ServerSideState:
    """Loading picture of a server-side or infinite row model.

    ``loaded_range`` holds the lowest and highest loaded ``stable_index``;
    ``total_server_rows`` is None when the grid does not report a total.
    """

    is_loading: bool
    loaded_range: tuple[int, int] | None
    total_server_rows: int | None
    cached_blocks: int


@dataclass(frozen=True, slots=True)
class FocusedCell:
    stable_index: int | None
    col_id: str


@dataclass(frozen=True, slots=True)
class KeyboardNavigationState:
    focused_cell: FocusedCell | None
    is_editing: bool
    is_header_focused: bool

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from . import selectors as sel
from .config import grid_identity
from .errors import GridMisuseError
from .grid_root import resolve_root_selector
from .models import GridConfig, RowMatcher
from .validation import format_row_matcher

if TYPE_CHECKING:
    from playwright.async_api import Locator, Page


@dataclass(slots=True)
class GridLocatorContext:
    page: Page
    config: GridConfig
    root: Locator
    identity: str

    @property
    def header(self) -> Locator:
        return self.root.locator(sel.HEADER).first

    @property
    def viewport(self) -> Locator:
        return self.root.locator(sel.BODY_VIEWPORT).first

    @property
    def horizontal_viewport(self) -> Locator:
        return self.root.locator(sel.HORIZONTAL_VIEWPORT).first

    @property
    def rows(self) -> Locator:
        return self.root.locator(sel.GRID_ROW)

    @property
    def loading_overlay(self) -> Locator:
        return self.root.locator(sel.owned(sel.LOADING_OVERLAY))

    @property
    def no_rows_overlay(self) -> Locator:
        return self.root.locator(sel.owned(sel.NO_ROWS_OVERLAY))

    def row_selector(self, matcher: RowMatcher) -> str:
        selector = sel.row_selector(matcher)
        if selector is None:
            raise GridMisuseError(
                grid=self.identity,
                message=f"{format_row_matcher(matcher)} has no structural locator; resolve it with find_row first",
            )
        return selector

    def row(self, matcher: RowMatcher) -> Locator:
        return self.root.locator(self.row_selector(matcher))

    def cell(self, row_selector: str, col_id: str) -> Locator:
        column = self.config.column(col_id)
        container = sel.pinned_container_selector(column.pinned if column else None)
        scope = self.root.locator(container) if container else self.root
        return scope.locator(row_selector).locator(sel.cell_selector(col_id)).first

    def header_cell(self, col_id: str) -> Locator:
        return self.root.locator(sel.header_cell_selector(col_id)).first

    def filter_input(self, col_id: str) -> Locator:
        return self.root.locator(sel.filter_input_selector(col_id)).first


def create_locator_context(page: Page, config: GridConfig, root: Locator | None = None) -> GridLocatorContext:
    if root is None:
        root = page.locator(resolve_root_selector(config.selector).selector).first
    return GridLocatorContext(page=page, config=config, root=root, identity=grid_identity(config))

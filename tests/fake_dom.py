"""In-memory stand-ins for the Playwright async Page and Locator, backed by BeautifulSoup.

Locators are lazy step chains re-resolved against the current document on every
call, so handlers that rewrite the markup behave like a re-rendering grid.
Single-element operations are strict: zero or several matches raise LocatorError.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import html as html_lib
import math
from typing import Any, Callable, Iterable, Mapping

from bs4 import BeautifulSoup, Tag
import soupsieve

from inspectgrid import scroll
from inspectgrid.config import normalize_config
from inspectgrid.locators import GridLocatorContext, create_locator_context

FAST_TIMEOUTS = {
    "grid_ready": 0.3,
    "row_load": 0.3,
    "cell_edit": 0.3,
    "scroll": 0.001,
    "assertion": 0.3,
    "block_load": 0.3,
    "poll_interval": 0.01,
}


class LocatorError(Exception):
    pass


@dataclass
class Event:
    action: str
    target: Tag | None = None
    detail: dict[str, Any] = field(default_factory=dict)

    def attr(self, name: str) -> str | None:
        return None if self.target is None else attribute_text(self.target, name)


Handler = Callable[[Tag, Event], None]
KeyHandler = Callable[[str], None]
Evaluator = Callable[[Tag, str, Any], Any]


def attribute_text(element: Tag, name: str) -> str | None:
    value = element.get(name)
    if value is None:
        return None
    if isinstance(value, list):
        return " ".join(value)
    return str(value)


def classes_of(element: Tag) -> list[str]:
    value = element.get("class") or []
    return value.split() if isinstance(value, str) else list(value)


def has_class(element: Tag, name: str) -> bool:
    return name in classes_of(element)


def add_class(element: Tag, name: str) -> None:
    classes = classes_of(element)
    if name not in classes:
        classes.append(name)
    element["class"] = classes


def remove_class(element: Tag, name: str) -> None:
    element["class"] = [token for token in classes_of(element) if token != name]


def fragment(markup: str) -> Tag:
    """Parse a single element for handlers that insert markup."""
    parsed = BeautifulSoup(markup, "html.parser")
    element = parsed.find(True)
    assert isinstance(element, Tag)
    return element.extract()


def is_rendered(element: Tag) -> bool:
    node: Any = element
    while isinstance(node, Tag) and not isinstance(node, BeautifulSoup):
        if node.has_attr("hidden") or has_class(node, "ag-hidden"):
            return False
        if "display:none" in str(node.get("style", "")).replace(" ", ""):
            return False
        node = node.parent
    return True


def row_of(element: Tag) -> Tag:
    node = element
    while not has_class(node, "ag-row"):
        node = node.parent
    return node


class FakeKeyboard:
    def __init__(self, page: FakePage) -> None:
        self._page = page

    async def press(self, key: str) -> None:
        self._page.press_key(key)


class FakeMouse:
    def __init__(self, page: FakePage) -> None:
        self._page = page

    async def move(self, x: float, y: float, *, steps: int = 1) -> None:
        self._page.events.append(Event("mouse_move", detail={"x": x, "y": y, "steps": steps}))

    async def down(self) -> None:
        self._page.events.append(Event("mouse_down"))

    async def up(self) -> None:
        self._page.events.append(Event("mouse_up"))


class FakeLocator:
    def __init__(self, page: FakePage, steps: tuple[tuple[str, Any], ...]) -> None:
        self._page = page
        self._steps = steps

    def __repr__(self) -> str:
        rendered = " >> ".join(f"{kind}={value}" for kind, value in self._steps)
        return f"Locator({rendered})"

    def locator(self, selector: str) -> FakeLocator:
        if selector == "..":
            return FakeLocator(self._page, (*self._steps, ("parent", None)))
        return FakeLocator(self._page, (*self._steps, ("css", selector)))

    @property
    def first(self) -> FakeLocator:
        return self.nth(0)

    @property
    def last(self) -> FakeLocator:
        return self.nth(-1)

    def nth(self, index: int) -> FakeLocator:
        return FakeLocator(self._page, (*self._steps, ("nth", index)))

    def resolve(self) -> list[Tag]:
        elements: list[Tag] = [self._page.soup]
        for kind, value in self._steps:
            if kind == "css":
                found: list[Tag] = []
                seen: set[int] = set()
                for scope in elements:
                    for match in soupsieve.select(value, scope):
                        if id(match) not in seen:
                            seen.add(id(match))
                            found.append(match)
                if len(elements) > 1:
                    found.sort(key=self._page.document_position)
                elements = found
            elif kind == "nth":
                elements = [elements[value]] if -len(elements) <= value < len(elements) else []
            else:
                parents: list[Tag] = []
                for element in elements:
                    parent = element.parent
                    if isinstance(parent, Tag) and all(parent is not known for known in parents):
                        parents.append(parent)
                elements = parents
        return elements

    def _single(self, action: str) -> Tag:
        elements = self.resolve()
        if not elements:
            raise LocatorError(f"{action}: {self!r} matched no element")
        if len(elements) > 1:
            raise LocatorError(f"{action}: strict mode violation, {self!r} resolved to {len(elements)} elements")
        return elements[0]

    async def count(self) -> int:
        return len(self.resolve())

    async def get_attribute(self, name: str) -> str | None:
        return attribute_text(self._single("get_attribute"), name)

    async def text_content(self) -> str:
        return self._single("text_content").get_text()

    async def input_value(self) -> str:
        element = self._single("input_value")
        if element.name == "select":
            option = element.find("option", selected=True) or element.find("option")
            if option is None:
                return ""
            return str(option.get("value", option.get_text()))
        if element.name == "textarea":
            return element.get_text()
        return str(element.get("value", ""))

    async def is_checked(self) -> bool:
        return self._single("is_checked").has_attr("checked")

    async def is_visible(self) -> bool:
        elements = self.resolve()
        if not elements:
            return False
        if len(elements) > 1:
            raise LocatorError(f"is_visible: strict mode violation, {self!r} resolved to {len(elements)} elements")
        return is_rendered(elements[0])

    async def click(self, *, modifiers: Iterable[str] | None = None, button: str = "left") -> None:
        element = self._single("click")
        self._page.dispatch("click", element, modifiers=list(modifiers or []), button=button)

    async def dblclick(self) -> None:
        self._page.dispatch("dblclick", self._single("dblclick"))

    async def fill(self, value: str) -> None:
        element = self._single("fill")
        element["value"] = value
        self._page.dispatch("fill", element, value=value)

    async def press(self, key: str) -> None:
        self._page.dispatch("press", self._single("press"), key=key)

    async def check(self) -> None:
        element = self._single("check")
        element["checked"] = ""
        self._page.dispatch("check", element)

    async def uncheck(self) -> None:
        element = self._single("uncheck")
        if element.has_attr("checked"):
            del element["checked"]
        self._page.dispatch("uncheck", element)

    async def scroll_into_view_if_needed(self) -> None:
        self._page.dispatch("scroll_into_view", self._single("scroll_into_view_if_needed"))

    async def bounding_box(self) -> dict[str, float] | None:
        element = self._single("bounding_box")
        position = self._page.document_position(element)
        return {"x": float(position * 10), "y": float(position * 5), "width": 100.0, "height": 24.0}

    async def drag_to(self, target: FakeLocator) -> None:
        source = self._single("drag_to")
        self._page.dispatch("drag", source, to=target._single("drag_to"))

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        return self._page.evaluate_element(self._single("evaluate"), expression, arg)


class FakePage:
    def __init__(self, content: str = "", *, evaluator: Evaluator | None = None) -> None:
        self.events: list[Event] = []
        self.keyboard = FakeKeyboard(self)
        self.mouse = FakeMouse(self)
        self.evaluator = evaluator
        self._handlers: list[tuple[str, str, Handler]] = []
        self._key_handlers: list[KeyHandler] = []
        self.set_content(content)

    def set_content(self, content: str) -> None:
        self.soup = BeautifulSoup(content, "html.parser")

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, ()).locator(selector)

    def on(self, action: str, selector: str, handler: Handler) -> None:
        self._handlers.append((action, selector, handler))

    def on_key(self, handler: KeyHandler) -> None:
        self._key_handlers.append(handler)

    def dispatch(self, action: str, target: Tag, **detail: Any) -> None:
        event = Event(action, target, detail)
        self.events.append(event)
        for handled, selector, handler in list(self._handlers):
            if handled == action and soupsieve.match(selector, target):
                handler(target, event)

    def press_key(self, key: str) -> None:
        self.events.append(Event("key", detail={"key": key}))
        for handler in list(self._key_handlers):
            handler(key)

    def evaluate_element(self, element: Tag, expression: str, arg: Any) -> Any:
        if self.evaluator is None:
            raise LocatorError("No script evaluator installed on this page")
        return self.evaluator(element, expression, arg)

    def document_position(self, element: Tag) -> int:
        for index, tag in enumerate(self.soup.find_all(True)):
            if tag is element:
                return index
        return -1

    def one(self, selector: str) -> Tag:
        matches = self.soup.select(selector)
        assert len(matches) == 1, f"{selector} matched {len(matches)} elements"
        return matches[0]

    def events_of(self, action: str) -> list[Event]:
        return [event for event in self.events if event.action == action]

    @property
    def keys(self) -> list[str]:
        return [event.detail["key"] for event in self.events_of("key")]


def _attrs(attrs: Mapping[str, Any] | None) -> str:
    if not attrs:
        return ""
    return "".join(f' {name}="{html_lib.escape(str(value))}"' for name, value in attrs.items() if value is not None)


def cell_html(col_id: str, value: str = "", *, col_index: int | None = None, classes: Iterable[str] = (), raw: bool = False) -> str:
    class_name = " ".join(["ag-cell", *classes])
    body = value if raw else html_lib.escape(value)
    return f'<div class="{class_name}"{_attrs({"col-id": col_id, "aria-colindex": col_index})}>{body}</div>'


def row_html(
    stable_index: int | None,
    cells: Mapping[str, str] | str,
    *,
    row_id: str | None = None,
    viewport_index: int | None = None,
    classes: Iterable[str] = (),
    attrs: Mapping[str, Any] | None = None,
) -> str:
    if isinstance(cells, str):
        body = cells
    else:
        body = "".join(cell_html(col_id, value, col_index=index) for index, (col_id, value) in enumerate(cells.items(), start=1))
    all_attrs = {
        "row-index": viewport_index if viewport_index is not None else (stable_index - 1 if stable_index else None),
        "aria-rowindex": stable_index,
        "row-id": row_id,
        **(attrs or {}),
    }
    class_name = " ".join(["ag-row", *classes])
    return f'<div class="{class_name}"{_attrs(all_attrs)}>{body}</div>'


def header_html(columns: Iterable[str], *, sort: Mapping[str, str] | None = None, extra: str = "") -> str:
    cells = []
    for col_id in columns:
        sort_value = (sort or {}).get(col_id)
        cells.append(
            f'<div class="ag-header-cell"{_attrs({"col-id": col_id, "aria-sort": sort_value})}>'
            f"<span class=\"ag-header-cell-text\">{html_lib.escape(col_id.title())}</span></div>"
        )
    return f'<div class="ag-header"><div class="ag-header-row">{"".join(cells)}</div>{extra}</div>'


def grid_html(body: str, *, name: str = "orders", header: str | None = None, extra: str = "") -> str:
    header = header if header is not None else header_html(("id", "name", "status"))
    return (
        f'<div data-testid="{name}"><div class="ag-root-wrapper">{header}'
        '<div class="ag-body-viewport"><div class="ag-center-cols-viewport">'
        f'<div class="ag-center-cols-container">{body}</div></div></div>{extra}</div></div>'
    )


def build_context(page: FakePage, reference: str | Mapping[str, Any] = "orders", **overrides: Any) -> GridLocatorContext:
    raw: dict[str, Any] = {"selector": reference} if isinstance(reference, str) else dict(reference)
    raw.setdefault("timeouts", FAST_TIMEOUTS)
    raw.update(overrides)
    return create_locator_context(page, normalize_config(raw))  # type: ignore[arg-type]


@dataclass
class VirtualGrid:
    """A row-virtualized grid: only rows near ``scroll_top`` exist in the markup."""

    rows: list[dict[str, str]]
    columns: tuple[str, ...] = ("id", "name", "status")
    name: str = "orders"
    row_height: int = 25
    client_height: int = 200
    buffer: int = 2
    skipped: set[int] = field(default_factory=set)
    paging_text: str | None = None
    scroll_top: float = 0.0
    page: FakePage = field(init=False)

    def __post_init__(self) -> None:
        self.page = FakePage(evaluator=self.evaluate)
        self.render()

    @property
    def max_scroll_top(self) -> float:
        return float(max(0, len(self.rows) * self.row_height - self.client_height))

    def window(self) -> range:
        first = int(self.scroll_top // self.row_height)
        visible = math.ceil(self.client_height / self.row_height)
        return range(max(0, first - self.buffer), min(len(self.rows), first + visible + self.buffer))

    def rendered_indices(self) -> list[int]:
        return [index + 1 for index in self.window() if index + 1 not in self.skipped]

    def render(self) -> None:
        body = "".join(
            row_html(index + 1, {col_id: self.rows[index].get(col_id, "") for col_id in self.columns}, row_id=self.rows[index].get("id"))
            for index in self.window()
            if index + 1 not in self.skipped
        )
        extra = f'<div class="ag-paging-panel">{self.paging_text}</div>' if self.paging_text else ""
        self.page.set_content(grid_html(body, name=self.name, header=header_html(self.columns), extra=extra))

    def _scroll_to(self, top: float) -> None:
        self.scroll_top = min(max(0.0, float(top)), self.max_scroll_top)
        self.render()

    def evaluate(self, element: Tag, expression: str, arg: Any) -> Any:
        if expression == scroll.READ_SCROLL_POSITION_JS:
            return {"top": self.scroll_top, "left": 0}
        if expression == scroll.SCROLL_VERTICAL_JS:
            self._scroll_to(self.scroll_top + self.client_height * arg)
            return self.scroll_top
        if expression == scroll.SCROLL_TO_BOTTOM_JS:
            self._scroll_to(self.max_scroll_top)
            return self.scroll_top
        if expression == scroll.SET_SCROLL_POSITION_JS:
            if arg["top"] is not None:
                self._scroll_to(arg["top"])
            return {"top": self.scroll_top, "left": 0}
        if expression == scroll.SCROLL_HORIZONTAL_JS:
            return 0
        raise LocatorError(f"Unexpected script: {expression}")


def make_rows(count: int, *, status: Callable[[int], str] | None = None) -> list[dict[str, str]]:
    pick = status or (lambda index: "active" if index % 2 else "pending")
    return [{"id": f"r{index}", "name": f"Order {index}", "status": pick(index)} for index in range(1, count + 1)]


class SpreadsheetGrid:
    """A 4x3 grid that keeps focus, range and editing classes up to date on clicks and keys."""

    columns = ("a", "b", "c")
    row_count = 4

    def __init__(self, *, keyboard: bool = True) -> None:
        body = "".join(
            row_html(
                row,
                "".join(cell_html(col_id, f"{col_id}{row}", col_index=col) for col, col_id in enumerate(self.columns, start=1)),
                row_id=f"r{row}",
            )
            for row in range(1, self.row_count + 1)
        )
        self.page = FakePage(grid_html(body, header=header_html(self.columns)))
        self.anchor: tuple[int, int] | None = None
        self.focus: tuple[int, int] | None = None
        self.page.on("click", ".ag-cell", self._click)
        if keyboard:
            self.page.on_key(self._key)

    def cell(self, row: int, col: int) -> Tag:
        return self.page.one(f'.ag-row[aria-rowindex="{row}"] .ag-cell[aria-colindex="{col}"]')

    def selected(self) -> list[str]:
        return [cell.get_text() for cell in self.page.soup.select(".ag-cell-range-selected")]

    def _cells(self) -> list[Tag]:
        return self.page.soup.select(".ag-cell")

    def _set_focus(self, position: tuple[int, int]) -> None:
        for cell in self._cells():
            remove_class(cell, "ag-cell-focus")
        self.focus = position
        add_class(self.cell(*position), "ag-cell-focus")

    def _clear_range(self) -> None:
        for cell in self._cells():
            remove_class(cell, "ag-cell-range-selected")

    def _mark(self, first: tuple[int, int], second: tuple[int, int], *, keep: bool = False) -> None:
        if not keep:
            self._clear_range()
        for row in range(min(first[0], second[0]), max(first[0], second[0]) + 1):
            for col in range(min(first[1], second[1]), max(first[1], second[1]) + 1):
                add_class(self.cell(row, col), "ag-cell-range-selected")

    def _click(self, cell: Tag, event: Event) -> None:
        position = (int(row_of(cell)["aria-rowindex"]), int(cell["aria-colindex"]))
        modifiers = event.detail["modifiers"]
        additive = "ControlOrMeta" in modifiers
        if "Shift" in modifiers and self.anchor is not None:
            self._mark(self.anchor, position, keep=additive)
        elif additive:
            self._mark(position, position, keep=True)
            self.anchor = position
        else:
            self._clear_range()
            self.anchor = position
        self._set_focus(position)

    def _key(self, key: str) -> None:
        if self.focus is None:
            return
        row, col = self.focus
        focused = self.cell(row, col)
        if key in ("Enter", "Escape"):
            if has_class(focused, "ag-cell-editing"):
                remove_class(focused, "ag-cell-editing")
            elif key == "Enter":
                add_class(focused, "ag-cell-editing")
            else:
                self._clear_range()
            return

        extend = key.startswith("Shift+")
        moves = {
            "ArrowUp": (row - 1, col),
            "ArrowDown": (row + 1, col),
            "ArrowLeft": (row, col - 1),
            "ArrowRight": (row, col + 1),
            "Home": (row, 1),
            "End": (row, len(self.columns)),
            "ControlOrMeta+Home": (1, 1),
            "ControlOrMeta+End": (self.row_count, len(self.columns)),
            "PageUp": (1, col),
            "PageDown": (self.row_count, col),
        }
        target = moves.get(key.removeprefix("Shift+"))
        if target is None:
            return
        target = (min(max(target[0], 1), self.row_count), min(max(target[1], 1), len(self.columns)))
        self._set_focus(target)
        if extend and self.anchor is not None:
            self._mark(self.anchor, target)

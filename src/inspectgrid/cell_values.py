from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
import re
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from .models import ColumnType, GridConfig
from .runtime_checks import _normalize_space

if TYPE_CHECKING:
    from playwright.async_api import Locator

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_TRUE_WORDS = {"true", "yes", "1"}
_FALSE_WORDS = {"false", "no", "0"}
_DATE_FORMATS = ("%Y-%m-%d", "%m/%d/%Y", "%d.%m.%Y", "%b %d, %Y", "%d %b %Y", "%B %d, %Y")


async def _checkbox_value(element: Locator) -> str:
    return str(await element.is_checked()).lower()


async def _trimmed_text(element: Locator) -> str:
    return _normalize_space(await element.text_content())


async def _current_value(element: Locator) -> str:
    return _normalize_space(await element.input_value())


@dataclass(frozen=True, slots=True)
class BuiltInExtractor:
    name: str
    selector: str
    read: Callable[["Locator"], Awaitable[str]]


BUILT_IN_EXTRACTORS: tuple[BuiltInExtractor, ...] = (
    BuiltInExtractor("checkbox", 'input[type="checkbox"]', _checkbox_value),
    BuiltInExtractor("link", "a", _trimmed_text),
    BuiltInExtractor("input", 'input:not([type="checkbox"])', _current_value),
    BuiltInExtractor("select", "select", _current_value),
    BuiltInExtractor("badge", ".badge, .tag, .chip, .label", _trimmed_text),
    BuiltInExtractor("button", "button", _trimmed_text),
)


async def extract_cell_value(cell: Locator, config: GridConfig, col_id: str) -> str:
    renderer = config.cell_renderers.get(col_id)
    if renderer is not None:
        target = cell.locator(renderer.value_selector).first
        if renderer.extract_value is not None:
            return await renderer.extract_value(target)
        return _normalize_space(await target.text_content())

    column = config.column(col_id)
    if column is not None and column.value_extractor is not None:
        return await column.value_extractor(cell)

    for extractor in BUILT_IN_EXTRACTORS:
        element = cell.locator(extractor.selector).first
        if await element.count() > 0:
            return await extractor.read(element)

    return _normalize_space(await cell.text_content())


def normalize_for_comparison(value: Any) -> str:
    return _normalize_space(value).lower()


def values_match(actual: Any, expected: Any, *, exact: bool = False) -> bool:
    if exact:
        return actual == expected
    return normalize_for_comparison(actual) == normalize_for_comparison(expected)


def parse_value_by_type(value: str, value_type: ColumnType) -> Any:
    if value_type == "number":
        return _parse_number(value)
    if value_type == "boolean":
        return _parse_boolean(value)
    if value_type == "date":
        return _parse_date(value)
    return value


def _parse_number(value: str) -> float | str:
    cleaned = _NON_NUMERIC.sub("", value)
    try:
        return float(cleaned)
    except ValueError:
        return value


def _parse_boolean(value: str) -> bool | str:
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    return value


def _parse_date(value: str) -> date | datetime | str:
    text = value.strip()
    if not text:
        return value
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    for pattern in _DATE_FORMATS:
        try:
            return datetime.strptime(text, pattern)
        except ValueError:
            continue
    return value

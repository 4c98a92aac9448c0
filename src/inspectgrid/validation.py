from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from .errors import GridMisuseError
from .models import MAX_NESTING_DEPTH, DetailGridPath, GridConfig, RowMatcher

_COLUMN_TYPES = {"text", "number", "date", "boolean", "custom"}
_PIN_SIDES = {"left", "right"}


@dataclass(frozen=True, slots=True)
class ConfigValidation:
    ok: bool
    message: str


def validate_grid_config(config: GridConfig) -> ConfigValidation:
    if not config.selector.strip():
        return ConfigValidation(False, "Grid selector is required.")

    seen: set[str] = set()
    for column in config.columns:
        if not column.col_id.strip():
            return ConfigValidation(False, "Every column needs a col_id.")
        if column.col_id in seen:
            return ConfigValidation(False, f"Duplicate column id: {column.col_id}")
        seen.add(column.col_id)
        if column.type not in _COLUMN_TYPES:
            return ConfigValidation(False, f"Column {column.col_id} has unknown type {column.type!r}.")
        if column.pinned is not None and column.pinned not in _PIN_SIDES:
            return ConfigValidation(False, f"Column {column.col_id} has unknown pin side {column.pinned!r}.")

    for col_id, renderer in config.cell_renderers.items():
        if not renderer.value_selector.strip():
            return ConfigValidation(False, f"Cell renderer for {col_id} needs a value_selector.")

    if not config.detail_row_suffix:
        return ConfigValidation(False, "detail_row_suffix must not be empty.")
    return ConfigValidation(True, "Validation successful.")


def as_detail_path(path: DetailGridPath | Sequence[RowMatcher], *, grid: str = "") -> DetailGridPath:
    if isinstance(path, DetailGridPath):
        return path
    segments = tuple(path)
    if len(segments) > MAX_NESTING_DEPTH:
        raise GridMisuseError(
            grid=grid,
            message=f"Path depth ({len(segments)}) exceeds maximum allowed depth ({MAX_NESTING_DEPTH})",
        )
    for segment in segments:
        if not isinstance(segment, RowMatcher):
            raise GridMisuseError(grid=grid, message=f"Detail path segments must be RowMatcher, got {segment!r}")
    return DetailGridPath(segments)


def require_scrollable_matcher(matcher: RowMatcher, *, grid: str) -> None:
    if matcher.is_scrollable:
        return
    if matcher.viewport_index is not None:
        reason = "viewport indices are invalidated by scrolling"
    else:
        reason = "value and predicate matchers have no position to scroll towards"
    raise GridMisuseError(
        grid=grid,
        message=f"Cannot scroll to {format_row_matcher(matcher)}: {reason}. Use stable_index or row_id.",
    )


def format_row_matcher(matcher: RowMatcher) -> str:
    if matcher.stable_index is not None:
        return f"stable_index={matcher.stable_index}"
    if matcher.row_id is not None:
        return f'row_id="{matcher.row_id}"'
    if matcher.viewport_index is not None:
        return f"viewport_index={matcher.viewport_index}"
    if matcher.cell_values is not None:
        return f"cell_values={format_expected_values(matcher.cell_values)}"
    return "predicate=[function]"


def format_expected_values(values: Mapping[str, object]) -> str:
    pairs = ", ".join(f'{key}: "{value}"' for key, value in values.items())
    return "{ " + pairs + " }"

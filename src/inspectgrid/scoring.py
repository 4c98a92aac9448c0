from __future__ import annotations

from typing import Any, Iterable, Mapping

from .cell_values import normalize_for_comparison
from .models import ClosestMatchResult, FieldMismatch, RowData


def score_row(row: RowData, expected: Mapping[str, Any]) -> ClosestMatchResult:
    matched = 0
    mismatches: list[FieldMismatch] = []
    for field, expected_value in expected.items():
        actual = row.cells.get(field)
        if actual is not None and normalize_for_comparison(actual) == normalize_for_comparison(expected_value):
            matched += 1
            continue
        mismatches.append(FieldMismatch(field=field, expected=expected_value, actual=actual))
    return ClosestMatchResult(
        row=row,
        matched_fields=matched,
        total_fields=len(expected),
        mismatches=tuple(mismatches),
    )


def find_closest_match(rows: Iterable[RowData], expected: Mapping[str, Any]) -> ClosestMatchResult | None:
    """Best-scoring row by per-field agreement; ties keep the earliest rendered row."""
    best: ClosestMatchResult | None = None
    for row in rows:
        result = score_row(row, expected)
        if best is None or result.matched_fields > best.matched_fields:
            best = result
    return best


def format_closest_match(result: ClosestMatchResult | None, labels: Mapping[str, str] | None = None) -> str:
    if result is None:
        return "No similar rows found."

    names = labels or {}
    lines = [
        f"Closest match (row {result.row.stable_index or result.row.viewport_index}, "
        f"{result.matched_fields}/{result.total_fields} fields match):"
    ]
    for mismatch in result.mismatches:
        label = names.get(mismatch.field, mismatch.field)
        actual = "(missing)" if mismatch.actual is None else f'"{mismatch.actual}"'
        lines.append(f'  - {label}: expected "{mismatch.expected}", got {actual}')
    return "\n".join(lines)

from __future__ import annotations

from dataclasses import dataclass
import re
from typing import Iterable

from .runtime_checks import escape_css_attribute_value, is_css_safe_id, looks_like_css_selector

GRID_LIKE_CLASS_TOKENS = ("ag-root-wrapper", "ag-theme", "ag-grid", "data-grid", "grid")
STABLE_ATTR_KEYS = ("data-testid", "data-test", "data-qa")


@dataclass(frozen=True, slots=True)
class GridRootSelector:
    selector: str
    identity: str
    reason: str
    stable: bool
    warning: str | None = None


def resolve_root_selector(reference: str) -> GridRootSelector:
    text = reference.strip()
    if looks_like_css_selector(text):
        return GridRootSelector(selector=text, identity=text, reason="css", stable=not text.startswith("."))
    return GridRootSelector(
        selector=f'[data-testid="{escape_css_attribute_value(text)}"]',
        identity=text,
        reason="data-testid",
        stable=True,
    )


def detect_grid_root_candidates(ancestry: Iterable[dict[str, str]]) -> list[GridRootSelector]:
    """Rank the ancestors of a rendered grid by how stable a root selector they give."""
    ranked: list[tuple[int, int, GridRootSelector]] = []
    for index, raw_node in enumerate(ancestry):
        node = _normalize_node(raw_node)
        if not _is_grid_like(node):
            continue
        candidate = _build_candidate(node)
        if candidate is None:
            continue
        ranked.append((_candidate_priority(candidate.reason), index, candidate))

    ranked.sort(key=lambda item: (item[0], item[1]))
    deduped: list[GridRootSelector] = []
    seen: set[str] = set()
    for _priority, _index, candidate in ranked:
        if candidate.selector in seen:
            continue
        seen.add(candidate.selector)
        deduped.append(candidate)
    return deduped


def _normalize_node(node: dict[str, str]) -> dict[str, str]:
    return {str(key): str(value) for key, value in node.items() if value is not None}


def _is_grid_like(node: dict[str, str]) -> bool:
    if node.get("role", "").lower() in {"grid", "treegrid"}:
        return True
    if any(node.get(attr, "").strip() for attr in STABLE_ATTR_KEYS):
        return True
    class_name = node.get("class", "").lower()
    element_id = node.get("id", "").lower()
    combined = f"{class_name} {element_id}"
    return any(token in combined for token in GRID_LIKE_CLASS_TOKENS)


def _build_candidate(node: dict[str, str]) -> GridRootSelector | None:
    element_id = node.get("id", "").strip()
    if element_id and is_css_safe_id(element_id):
        return GridRootSelector(selector=f"#{element_id}", identity=element_id, reason="id", stable=True)

    for attr in STABLE_ATTR_KEYS:
        value = node.get(attr, "").strip()
        if not value:
            continue
        return GridRootSelector(
            selector=f'[{attr}="{escape_css_attribute_value(value)}"]',
            identity=value,
            reason=attr,
            stable=True,
        )

    token = _first_valid_class_token(node.get("class", ""))
    if token:
        return GridRootSelector(
            selector=f".{token}",
            identity=token,
            reason="class",
            stable=False,
            warning="Unstable grid root selector (class-based).",
        )
    return None


def _first_valid_class_token(class_name: str) -> str | None:
    tokens = [token for token in class_name.split() if re.fullmatch(r"[a-zA-Z_-][a-zA-Z0-9_-]*", token)]
    for token in tokens:
        if any(marker in token.lower() for marker in GRID_LIKE_CLASS_TOKENS):
            return token
    return tokens[0] if tokens else None


def _candidate_priority(reason: str) -> int:
    if reason == "id":
        return 0
    if reason in STABLE_ATTR_KEYS:
        return 1
    return 2

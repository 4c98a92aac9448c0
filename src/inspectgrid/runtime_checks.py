from __future__ import annotations

import re
from typing import Any

_MISSING_BROWSER_ERROR_HINTS = (
    "executable doesn't exist",
    "executable does not exist",
    "download new browsers",
    "playwright install",
    "could not find browser",
    "failed to launch chromium because executable",
)


def _is_missing_browser_error(exc: Exception) -> bool:
    message = str(exc).lower()
    return any(hint in message for hint in _MISSING_BROWSER_ERROR_HINTS)


_CSS_SAFE_ID_PATTERN = re.compile(r"^-?[A-Za-z_][A-Za-z0-9_-]*$")
_CSS_SELECTOR_PREFIXES = ("#", ".", "[")


def _normalize_space(value: Any) -> str:
    if value is None:
        return ""
    return re.sub(r"\s+", " ", str(value)).strip()


def is_css_safe_id(value: str) -> bool:
    return bool(_CSS_SAFE_ID_PATTERN.fullmatch(value.strip()))


def escape_css_attribute_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


def looks_like_css_selector(reference: str) -> bool:
    return reference.strip().startswith(_CSS_SELECTOR_PREFIXES)


def parse_int_attribute(value: str | None) -> int | None:
    text = _normalize_space(value)
    if not text or not re.fullmatch(r"-?\d+", text):
        return None
    return int(text)

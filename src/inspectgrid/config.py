from __future__ import annotations

from dataclasses import fields, replace
import logging
from typing import Any, Mapping

from .errors import GridMisuseError
from .grid_root import resolve_root_selector
from .models import CellRendererConfig, ColumnDef, EnterpriseFlags, GridConfig, GridTimeouts

GridReference = str | GridConfig | Mapping[str, Any]

logger = logging.getLogger("inspectgrid.config")

DEFAULT_TIMEOUTS = GridTimeouts()
_TIMEOUT_KEYS = tuple(item.name for item in fields(GridTimeouts))
_FLAG_KEYS = tuple(item.name for item in fields(EnterpriseFlags))


def normalize_config(reference: GridReference) -> GridConfig:
    if isinstance(reference, str):
        if not reference.strip():
            raise GridMisuseError(grid="", message="Grid reference must not be empty")
        return GridConfig(selector=reference.strip())
    if isinstance(reference, GridConfig):
        return replace(reference, timeouts=merge_timeouts(reference.timeouts))
    if isinstance(reference, Mapping):
        return _config_from_mapping(reference)
    raise GridMisuseError(grid="", message=f"Unsupported grid reference: {type(reference).__name__}")


def merge_timeouts(overrides: GridTimeouts | Mapping[str, Any] | None) -> GridTimeouts:
    if overrides is None:
        return DEFAULT_TIMEOUTS
    if isinstance(overrides, GridTimeouts):
        raw = {key: getattr(overrides, key) for key in _TIMEOUT_KEYS}
    else:
        unknown = sorted(set(overrides) - set(_TIMEOUT_KEYS))
        if unknown:
            logger.warning("Ignoring unknown timeout keys: %s", ", ".join(unknown))
        raw = {key: overrides[key] for key in _TIMEOUT_KEYS if key in overrides}

    merged: dict[str, float] = {}
    for key in _TIMEOUT_KEYS:
        default = getattr(DEFAULT_TIMEOUTS, key)
        value = raw.get(key, default)
        try:
            number = float(value)
        except (TypeError, ValueError):
            number = 0.0
        if number <= 0:
            logger.warning("Timeout %s=%r is not positive, using default %s", key, value, default)
            number = default
        merged[key] = number
    return GridTimeouts(**merged)


def grid_identity(config: GridConfig) -> str:
    return resolve_root_selector(config.selector).identity


def _config_from_mapping(raw: Mapping[str, Any]) -> GridConfig:
    selector = str(raw.get("selector") or raw.get("name") or "").strip()
    if not selector:
        raise GridMisuseError(grid="", message="Grid configuration needs a selector")

    columns = tuple(_column_from_value(value) for value in raw.get("columns") or ())
    renderers = {
        str(col_id): _renderer_from_value(value) for col_id, value in (raw.get("cell_renderers") or {}).items()
    }
    flags_raw = raw.get("enterprise") or {}
    if isinstance(flags_raw, EnterpriseFlags):
        flags = flags_raw
    else:
        flags = EnterpriseFlags(**{key: bool(flags_raw[key]) for key in _FLAG_KEYS if key in flags_raw})

    config = GridConfig(
        selector=selector,
        columns=columns,
        cell_renderers=renderers,
        enterprise=flags,
        timeouts=merge_timeouts(raw.get("timeouts")),
    )
    suffix = raw.get("detail_row_suffix")
    if suffix:
        config = replace(config, detail_row_suffix=str(suffix))
    return config


def _column_from_value(value: ColumnDef | Mapping[str, Any]) -> ColumnDef:
    if isinstance(value, ColumnDef):
        return value
    col_id = str(value.get("col_id") or value.get("field") or "").strip()
    if not col_id:
        raise GridMisuseError(grid="", message=f"Column definition without col_id: {dict(value)!r}")
    return ColumnDef(
        col_id=col_id,
        display_name=value.get("display_name"),
        type=value.get("type", "text"),
        value_extractor=value.get("value_extractor"),
        pinned=value.get("pinned"),
    )


def _renderer_from_value(value: CellRendererConfig | Mapping[str, Any]) -> CellRendererConfig:
    if isinstance(value, CellRendererConfig):
        return value
    return CellRendererConfig(value_selector=str(value["value_selector"]), extract_value=value.get("extract_value"))

"""
Seed dataset loading.

A seed dataset is a JSON document:
    {"categories": [...], "parameters": [...]}

Parameters may use the legacy editor field names (categoryId, values,
config) and display type names ("Dropdown", "Slider", "Toggle Switch").
Both spellings are normalized here before the store sees them.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

LEGACY_TYPE_MAP = {
    "dropdown": "select",
    "radio buttons": "select",
    "checkbox": "select",
    "slider": "range",
    "toggle switch": "boolean",
}


def map_parameter_type(raw_type: Optional[str]) -> str:
    """Map legacy display type names onto stored parameter types."""
    if raw_type is None or raw_type == "":
        return "text"
    if not isinstance(raw_type, str):
        raise ValueError(f"Parameter type must be a string, got {raw_type!r}")
    lowered = raw_type.strip().lower()
    return LEGACY_TYPE_MAP.get(lowered, lowered)


def load_seed_dataset(path: Path) -> Optional[Dict[str, List[Dict[str, Any]]]]:
    """
    Load a seed dataset from disk.

    Failures are logged and reported as None ("nothing to import").
    """
    path = Path(path)
    if not path.exists():
        logger.warning(f"[Seed] Seed data file not found: {path}")
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"[Seed] Failed to read seed data {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"[Seed] Seed data must be a JSON object: {path}")
        return None

    categories = data.get("categories", [])
    parameters = data.get("parameters", [])
    if not isinstance(categories, list) or not isinstance(parameters, list):
        logger.warning(f"[Seed] categories and parameters must be JSON arrays: {path}")
        return None

    return {
        "categories": [c for c in categories if isinstance(c, dict)],
        "parameters": [p for p in parameters if isinstance(p, dict)],
    }


def _text(raw: Dict[str, Any], key: str, default: Optional[str] = None) -> Optional[str]:
    value = raw.get(key, default)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string, got {value!r}")
    return value


def _integer(raw: Dict[str, Any], *keys: str, default: Optional[int] = None) -> Optional[int]:
    for key in keys:
        if key in raw:
            value = raw[key]
            if value is None:
                return default
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"'{key}' must be an integer, got {value!r}")
            return value
    return default


def _name(raw: Dict[str, Any]) -> str:
    name = _text(raw, "name")
    if not name or not name.strip():
        raise ValueError("'name' is required")
    return name


def normalize_category(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a raw category entry onto create_category() keyword arguments.

    Raises:
        ValueError: If a field has the wrong JSON type
    """
    return {
        "name": _name(raw),
        "description": _text(raw, "description", "") or "",
        "visibility": _text(raw, "visibility", "Show"),
        "year": _integer(raw, "year"),
        "sort_order": _integer(raw, "sort_order", "sortOrder", default=0),
        "category_id": _text(raw, "id"),
    }


def normalize_parameter(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a raw parameter entry onto create_parameter() keyword arguments.

    Raises:
        ValueError: If a field has the wrong JSON type
    """
    config = raw.get("parameter_config", raw.get("config"))
    values = raw.get("parameter_values", raw.get("values"))
    param_type = map_parameter_type(raw.get("type"))

    if config is not None and not isinstance(config, dict):
        raise ValueError(f"'config' must be an object, got {config!r}")

    # Legacy sliders carry an empty value list next to their bounds
    if values == [] and param_type != "select":
        values = None

    category_id = raw.get("category_id", raw.get("categoryId"))
    if not isinstance(category_id, str):
        raise ValueError(f"'categoryId' must be a string, got {category_id!r}")

    return {
        "name": _name(raw),
        "type": param_type,
        "category_id": category_id,
        "description": _text(raw, "description", "") or "",
        "visibility": _text(raw, "visibility", "Basic"),
        "required": bool(raw.get("required", False)),
        "sort_order": _integer(raw, "sort_order", "sortOrder", default=0),
        "parameter_values": values,
        "parameter_config": config or None,
        "parameter_id": _text(raw, "id"),
    }

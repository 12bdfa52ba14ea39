"""
Settings codec.

Settings are stored as strings next to a data_type tag. decode() always
dispatches on the row's own tag; an unknown or missing tag is a string.
"""

import json
import math
from typing import Any, Mapping, Union

from specgen.errors import PersistenceIntegrityError
from .entities import Setting, SettingDataType


def encode(value: Any, data_type: Union[str, SettingDataType]) -> str:
    """
    Encode a typed value for storage.

    Raises:
        ValueError: If the tag is unknown or the value does not fit it
    """
    tag = SettingDataType(data_type)

    if tag == SettingDataType.BOOLEAN:
        if isinstance(value, str):
            return "true" if value.lower() == "true" else "false"
        return "true" if value else "false"

    if tag == SettingDataType.NUMBER:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            try:
                value = _parse_number(str(value))
            except ValueError:
                raise ValueError(f"Not a number: {value!r}")
        if isinstance(value, float) and not math.isfinite(value):
            raise ValueError(f"Not a finite number: {value!r}")
        return str(value)

    if tag == SettingDataType.JSON:
        try:
            return json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Not JSON serializable: {e}") from e

    return str(value)


def decode(row: Union[Setting, Mapping[str, Any]]) -> Any:
    """
    Decode a stored setting row into its typed value.

    Args:
        row: Setting or mapping with key, value and data_type

    Raises:
        PersistenceIntegrityError: If the stored text is malformed for its tag
    """
    if isinstance(row, Setting):
        key, value, data_type = row.key, row.value, row.data_type
    else:
        key, value, data_type = row.get("key", "?"), row.get("value"), row.get("data_type")

    tag = data_type.value if isinstance(data_type, SettingDataType) else data_type

    if tag == SettingDataType.NUMBER.value:
        try:
            return _parse_number(value)
        except (AttributeError, TypeError, ValueError):
            raise PersistenceIntegrityError(key, tag, value)

    if tag == SettingDataType.BOOLEAN.value:
        if value not in ("true", "false"):
            raise PersistenceIntegrityError(key, tag, value)
        return value == "true"

    if tag == SettingDataType.JSON.value:
        try:
            return json.loads(value)
        except (TypeError, ValueError):
            raise PersistenceIntegrityError(key, tag, value)

    return value


def _parse_number(text: str) -> Union[int, float]:
    """Parse numeric text, preferring int when the text is integral."""
    text = text.strip()
    try:
        return int(text)
    except ValueError:
        number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"Not a finite number: {text}")
    return number

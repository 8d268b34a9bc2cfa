import math
from typing import Any, Iterable

from daipk.model import PrimaryKey


def is_valid_key(key: Any) -> bool:
    """
    Check if the given value can be used as a primary key.

    Examples:
        >>> is_valid_key("user:1")
        True
        >>> is_valid_key("")
        False
        >>> is_valid_key(float("nan"))
        False
    """
    if isinstance(key, str):
        return len(key) > 0
    if isinstance(key, bool | int):
        return True
    if isinstance(key, float):
        return not math.isnan(key)
    return False


def to_field(key: PrimaryKey) -> str:
    """
    Get the canonical string form of a primary key, used as the field name in
    the store hash. Keys that compare equal in Python share the same form.

    Examples:
        >>> to_field("user:1")
        "user:1"
        >>> to_field(2.0)
        "2"
        >>> to_field(True)
        "1"
    """
    if isinstance(key, str):
        return key
    if isinstance(key, float):
        if key.is_integer():
            return str(int(key))
        return repr(key)
    return str(int(key))


def clean_keys(keys: Iterable[Any]) -> dict[str, PrimaryKey]:
    """
    Drop invalid keys (None, NaN, empty strings, unsupported types) and
    duplicates (by canonical form, first occurrence wins).

    Returns:
        Mapping of canonical field name to the original key, in input order
    """
    cleaned: dict[str, PrimaryKey] = {}
    for key in keys:
        if not is_valid_key(key):
            continue
        field = to_field(key)
        if field not in cleaned:
            cleaned[field] = key
    return cleaned

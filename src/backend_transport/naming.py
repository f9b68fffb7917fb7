"""
Field naming convention conversion.

Outbound payloads use snake_case keys ("wire" convention); inbound payloads
are handed to callers with camelCase keys ("application" convention).
"""
import re
from typing import Any, Callable


_UPPER = re.compile(r"(?<=[^_])([A-Z])")


def string_to_snake_case(name: str) -> str:
    """
    Convert a camelCase name to snake_case.

    Leading underscores are kept; names without capitals are unchanged.

    Example:
        >>> string_to_snake_case("testName")
        'test_name'
    """
    return _UPPER.sub(r"_\1", name).lower() if any(c.isupper() for c in name) else name


def string_to_camel_case(name: str) -> str:
    """
    Convert a snake_case name to camelCase.

    Names without inner underscores are unchanged, so already converted
    names pass through untouched. Names with a trailing or doubled
    underscore have no camelCase form and are also kept as given.

    Example:
        >>> string_to_camel_case("test_name")
        'testName'
    """
    stripped = name.lstrip("_")
    prefix = name[: len(name) - len(stripped)]
    if "_" not in stripped or stripped.endswith("_") or "__" in stripped:
        return name

    head, *rest = stripped.split("_")
    return prefix + head + "".join(part[:1].upper() + part[1:] for part in rest)


def _convert_keys(value: Any, convert: Callable[[str], str]) -> Any:
    if isinstance(value, dict):
        return {
            convert(key) if isinstance(key, str) else key: _convert_keys(item, convert)
            for key, item in value.items()
        }
    if isinstance(value, list):
        return [_convert_keys(item, convert) for item in value]
    if isinstance(value, tuple):
        return tuple(_convert_keys(item, convert) for item in value)
    return value


def to_wire(value: Any) -> Any:
    """
    Recursively rewrite mapping keys to snake_case.

    Args:
        value: Any JSON-like structure

    Returns:
        A new structure; the input is not modified
    """
    return _convert_keys(value, string_to_snake_case)


def to_application(value: Any) -> Any:
    """
    Recursively rewrite mapping keys to camelCase.

    Args:
        value: Any JSON-like structure

    Returns:
        A new structure; the input is not modified
    """
    return _convert_keys(value, string_to_camel_case)

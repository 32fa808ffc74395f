# ==============================================
# Common utility functions
# ==============================================

from typing import Dict, Any


def safe_get(dictionary: Dict, *keys, default=None) -> Any:
    """
    Safely get nested dictionary values

    Example:
        safe_get(data, 'data', 'test_case', 'identifier', default='')
    """
    result = dictionary
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key)
            if result is None:
                return default
        else:
            return default
    return result if result is not None else default


def truncate_string(text: str, max_length: int = 100, suffix: str = "...") -> str:
    """Truncate string to max length"""
    if len(text) <= max_length:
        return text
    return text[:max_length - len(suffix)] + suffix


def slugify_filename(value: str) -> str:
    """Make a value safe to embed in a file name"""
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in value)

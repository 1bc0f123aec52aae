# classes/base_utils.py
import re

from classes.app_config import logger


def unsafe_string_format(dest_string, print_unused_keys_report=True, **kwargs):
    """
    Formats a destination string by replacing placeholders with corresponding values from kwargs.
    Placeholders whose key is not in kwargs are left untouched (and reported).

    it works differently from the standard "format" method as instead of looking for all the potential keys,
    looks only for the keys as passed in kwargs; substituted values are never re-scanned, so braces inside
    them survive verbatim
    """
    # List to track keys that were not found
    missing_keys = []

    # Regex pattern to match placeholders like {key}
    def replacer(match):
        key = match.group(1)
        if key in kwargs:
            return str(kwargs[key])
        missing_keys.append(key)
        return match.group(0)  # Leave the placeholder unchanged

    pattern = re.compile(r'\{(\w+)\}')
    result = pattern.sub(replacer, dest_string)
    if missing_keys and print_unused_keys_report:
        logger.info(f"\033[93m\033[3mMissing keys within string-to-format in unsafe_string_format: {', '.join(missing_keys)}\033[0m")
    return result


class BaseUtils():

    # -----------------------
    # Payload helpers
    # -----------------------

    def _require_int(self, payload: dict, key: str) -> int:
        value = (payload or {}).get(key)
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"'{key}' must be an integer")
        return value

    def _optional_str(self, payload: dict, key: str) -> str | None:
        value = (payload or {}).get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            raise ValueError(f"'{key}' must be a string")
        return value

    def _optional_number(self, payload: dict, key: str, low: float, high: float | None = None) -> float | None:
        value = (payload or {}).get(key)
        if value is None:
            return None
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"'{key}' must be a number")
        if value < low or (high is not None and value > high):
            bound = f"between {low} and {high}" if high is not None else f">= {low}"
            raise ValueError(f"'{key}' must be {bound}")
        return value

# util/functions.py
from typing import Optional


def parse_part(value: Optional[str], default: int = 0) -> int:
    """
    - Parse the `part` query value.
    - Missing or non-integer values fall back to `default`.
    """
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default

"""Common validation utilities."""

import json
import math
import operator
import re
from typing import Any, List, Optional


def coerce_id(value: Any) -> int:
    """
    Coerce a template id to its canonical integer form.

    Ids reach us as ints from the overlay documents, as strings from older
    documents and request bodies, and as numpy/arrow integers from the base
    dataset. Anything that is not a whole number raises ``ValueError``.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError(f"Invalid template id: {value!r}")
    if isinstance(value, int):
        return value
    if hasattr(value, "__index__"):
        return operator.index(value)
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"[+-]?\d+", text):
            return int(text)
        try:
            value = float(text)
        except ValueError:
            raise ValueError(f"Invalid template id: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid template id: {value!r}")
    if not math.isfinite(number) or not number.is_integer():
        raise ValueError(f"Invalid template id: {value!r}")
    return int(number)


def is_blank(value: Any) -> bool:
    """True for None, empty strings and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def normalize_placeholders(value: Any) -> Optional[str]:
    """
    Normalize placeholder names into a JSON list string.

    Accepts a list of names or a comma separated string. Empty input, or input
    of any other shape, yields ``None``.
    """
    names: List[str] = []
    if isinstance(value, (list, tuple)):
        for item in value:
            if item is None or isinstance(item, (dict, list, tuple)):
                continue
            name = str(item).strip()
            if name:
                names.append(name)
    elif isinstance(value, str):
        names = [part.strip() for part in value.split(",") if part.strip()]
    else:
        return None
    return json.dumps(names) if names else None


def parse_placeholders(value: Optional[str]) -> List[str]:
    """Parse a stored placeholder list; unparsable text yields no placeholders."""
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except ValueError:
        return []
    if not isinstance(parsed, list):
        return []
    return [str(item) for item in parsed if item is not None]

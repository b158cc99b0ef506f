"""JSON parsing helpers for model output, which is not guaranteed to be JSON."""

import json
import re
from typing import Any

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


def parse_json_object(raw: str | dict | None) -> dict[str, Any] | None:
    """Parse a JSON object, returning None on failure or empty.

    Tolerates a surrounding ```json fence, which chat models often add.
    Returns None for: None, empty string, empty dict, invalid JSON, non-dict JSON.
    """
    if raw is None:
        return None
    if isinstance(raw, dict):
        return raw if raw else None
    if isinstance(raw, str):
        text = raw.strip()
        fenced = _FENCE_RE.match(text)
        if fenced:
            text = fenced.group(1)
        if not text:
            return None
        try:
            parsed = json.loads(text)
            if isinstance(parsed, dict) and parsed:
                return parsed
        except (ValueError, TypeError):
            pass
    return None

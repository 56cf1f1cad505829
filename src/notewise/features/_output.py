"""Parsing of JSON-shaped model output."""

from __future__ import annotations

import json
import re
from typing import Any

from notewise.exceptions import MalformedOutputError

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n(.*?)\n?```\s*$", re.DOTALL)


def parse_json_output(text: str, what: str) -> Any:
    """Parse *text* as JSON, tolerating a surrounding Markdown code fence.

    Raises :class:`MalformedOutputError` naming *what* was expected when
    the text is not valid JSON.
    """
    stripped = text.strip()
    fenced = _FENCE_RE.match(stripped)
    if fenced:
        stripped = fenced.group(1).strip()
    try:
        return json.loads(stripped)
    except ValueError as exc:
        msg = f"Model did not return valid JSON for {what}"
        raise MalformedOutputError(msg) from exc

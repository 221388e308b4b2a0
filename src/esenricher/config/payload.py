"""Parsing of the caller-supplied enrichment document."""

from __future__ import annotations

import json
from typing import Any

from .errors import InvalidPayloadError


def parse_payload(raw: str) -> dict[str, Any]:
    """Parse the partial-update document, rejecting anything but a JSON object.

    Elasticsearch merges the ``doc`` of an update action field by field, so a
    scalar or an array can never be applied and is reported before the job starts.
    """

    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise InvalidPayloadError(
            f"Unable to parse the update document into well formed JSON: {exc.msg} "
            f"(line {exc.lineno}, column {exc.colno})"
        ) from exc
    if not isinstance(parsed, dict):
        raise InvalidPayloadError(
            f"The update document must be a JSON object, got {type(parsed).__name__}"
        )
    return parsed

"""Turn a raw automation callback into a typed ``CallbackRecord``.

The automation's templating layer stringifies every field and may leave a
single stray marker character (``=`` by default) in front of string values.
All coercion of those values happens here; nothing downstream sees raw input.

Only a missing job id is fatal. Malformed ``success`` / ``items`` degrade to
``False`` / ``[]`` so an attributable callback still resolves its job.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jobrelay.errors import MissingJobIdError
from jobrelay.schemas.callback import CallbackRecord

DEFAULT_MARKER = "="


def strip_marker(value: Any, marker: str = DEFAULT_MARKER) -> Any:
    """Drop exactly one leading ``marker`` from strings; other values pass through."""
    if isinstance(value, str) and value.startswith(marker):
        return value[len(marker):]
    return value


def _first_present(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return None


def _coerce_job_id(raw: Any, marker: str) -> str:
    if isinstance(raw, bool):
        raise MissingJobIdError()
    if isinstance(raw, int):
        raw = str(raw)
    if not isinstance(raw, str):
        raise MissingJobIdError()

    job_id = strip_marker(raw, marker)
    if not job_id:
        raise MissingJobIdError()
    return job_id


def _coerce_success(raw: Any, marker: str) -> bool:
    if isinstance(raw, bool):
        return raw
    return strip_marker(raw, marker) == "true"


def _coerce_items(raw: Any, marker: str) -> list:
    if isinstance(raw, str):
        text = strip_marker(raw, marker)
        return [piece.strip() for piece in text.split(",") if piece.strip()]
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return []


def _coerce_item_count(raw: Any, items: list, marker: str) -> int:
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str):
        text = strip_marker(raw, marker).strip()
        try:
            return int(text)
        except ValueError:
            pass
    return len(items)


def _coerce_error_detail(raw: Any, marker: str) -> str | None:
    if raw is None:
        return None
    text = strip_marker(raw, marker) if isinstance(raw, str) else str(raw)
    text = text.strip()
    return text or None


def normalize_callback(payload: Any, *, marker: str = DEFAULT_MARKER) -> CallbackRecord:
    if not isinstance(payload, Mapping):
        raise MissingJobIdError("Callback payload must be a JSON object")

    job_id = _coerce_job_id(_first_present(payload, "jobId", "job_id"), marker)
    items = _coerce_items(payload.get("items"), marker)

    return CallbackRecord(
        job_id=job_id,
        success=_coerce_success(payload.get("success"), marker),
        items=items,
        item_count=_coerce_item_count(_first_present(payload, "itemCount", "item_count"), items, marker),
        error_detail=_coerce_error_detail(_first_present(payload, "errorDetail", "error"), marker),
    )

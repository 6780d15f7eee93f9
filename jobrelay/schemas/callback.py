from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CallbackRecord:
    """A cleaned, typed automation callback. Built per request, never stored."""

    job_id: str
    success: bool
    items: list = field(default_factory=list)
    item_count: int = 0
    error_detail: str | None = None


@dataclass(frozen=True)
class CallbackAck:
    job_id: str
    # False when no processing job matched (unknown id or a late/duplicate callback).
    matched: bool

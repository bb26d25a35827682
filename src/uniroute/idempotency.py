"""Deterministic idempotency keys.

Strategy:
- Canonical JSON of the payload (sorted keys, volatile fields dropped)
- sha256 over "<canonical>|<bucket>", bucket = floor(now / bucket_seconds)
- Key format: resp_<bucket>_<first 32 hex chars>

Same payload inside one bucket -> same key. Different payload or bucket -> different key.
"""
from __future__ import annotations

import hashlib
import json
import math
import time
from typing import Any, Callable, Dict, Optional

from .types import FilePart

VOLATILE_FIELDS = frozenset({"_idempotency_key", "idempotency_key", "request_id", "timestamp"})

def _canonical(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): _canonical(v) for k, v in value.items() if k not in VOLATILE_FIELDS}
    if isinstance(value, (list, tuple)):
        return [_canonical(v) for v in value]
    if isinstance(value, FilePart):
        # Files are identified by location and size; contents are never read here.
        return {"path": str(value.path), "size": value.size, "filename": value.filename}
    if isinstance(value, bytes):
        return hashlib.sha256(value).hexdigest()
    return value

def stable_json(payload: Dict[str, Any]) -> str:
    return json.dumps(
        _canonical(payload),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=str,
    )

class IdempotencyService:
    def __init__(self, default_bucket_seconds: int = 60, clock: Callable[[], float] = time.time):
        self.default_bucket_seconds = default_bucket_seconds if default_bucket_seconds >= 1 else 60
        self._clock = clock

    def build_key(self, payload: Dict[str, Any], bucket_seconds: Optional[int] = None) -> str:
        bucket = bucket_seconds if bucket_seconds is not None else self.default_bucket_seconds
        if bucket < 1:
            bucket = 60
        now_bucket = int(math.floor(self._clock() / bucket))
        digest = hashlib.sha256(f"{stable_json(payload)}|{now_bucket}".encode("utf-8")).hexdigest()
        return f"resp_{now_bucket}_{digest[:32]}"

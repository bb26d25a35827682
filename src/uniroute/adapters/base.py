"""Adapter interface for endpoint request/response transforms."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from ..types import UniformResponse

# Optional generation parameters forwarded as-is by the text adapters.
PASSTHROUGH_PARAMS = (
    "temperature",
    "max_tokens",
    "top_p",
    "frequency_penalty",
    "presence_penalty",
    "tools",
    "tool_choice",
    "stream",
    "user",
)

class EndpointAdapter:
    """Pure transform pair for one endpoint. Instances hold no per-request state."""

    type_name = ""
    id_prefix = ""

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        raise NotImplementedError

    def make_id(self, raw: Optional[Dict[str, Any]] = None) -> str:
        if raw and raw.get("id"):
            return str(raw["id"])
        return f"{self.id_prefix}{uuid.uuid4()}"

def sub(request: Any, key: str) -> Dict[str, Any]:
    """Return request[key] when it is a mapping, else an empty dict."""
    if not isinstance(request, dict):
        return {}
    v = request.get(key)
    return v if isinstance(v, dict) else {}

def is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())

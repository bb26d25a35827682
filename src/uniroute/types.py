"""Shared types and lightweight data containers.

We avoid heavy frameworks here. The goal is:
- keep the uniform response a plain, serializable dataclass
- keep file parameters small value objects; handles are opened only by the transport
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

ID_PREFIXES = {"response_api": "resp_", "chat_completion": "chatcmpl_"}

TEXT_TYPES = ("response_api", "chat_completion", "audio_transcription", "audio_translation")
AUDIO_TYPES = ("audio_speech",)
IMAGE_TYPES = ("image_generation", "image_edit", "image_variation")


def new_response_id(kind: str) -> str:
    return f"{ID_PREFIXES.get(kind, kind + '_')}{uuid.uuid4()}"


@dataclass
class UniformResponse:
    id: str
    status: str
    type: str
    text: Optional[str] = None
    conversation_id: Optional[str] = None
    audio_content: Optional[bytes] = None
    images: Optional[List[Dict[str, Any]]] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)

    def is_text(self) -> bool:
        return self.type in TEXT_TYPES

    def is_audio(self) -> bool:
        return self.type in AUDIO_TYPES

    def is_image(self) -> bool:
        return self.type in IMAGE_TYPES

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "status": self.status,
            "text": self.text,
            "conversation_id": self.conversation_id,
            "audio_content": self.audio_content,
            "images": self.images,
            "type": self.type,
            "metadata": dict(self.metadata),
            "raw": self.raw,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UniformResponse":
        images = data.get("images")
        kind = str(data.get("type") or "response_api")
        return cls(
            id=str(data.get("id") or new_response_id(kind)),
            status=str(data.get("status") or "completed"),
            type=kind,
            text=data.get("text"),
            conversation_id=data.get("conversation_id"),
            audio_content=data.get("audio_content"),
            images=list(images) if images is not None else None,
            metadata=dict(data.get("metadata") or {}),
            raw=data.get("raw") or {},
        )


@dataclass(frozen=True)
class FilePart:
    """A validated upload: only metadata is held, never an open handle."""

    path: Path
    size: int
    filename: str
    content_type: Optional[str] = None
    category: Optional[str] = None

"""Fixed backend operations.

Design:
- Endpoint is a closed enum; everything per-operation lives in one metadata table
  keyed by the enum, so a missing entry is caught by the exhaustiveness tests.
- file_fields maps a multipart field name to its format category ("audio"/"image").
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

AUDIO_FORMATS = ("mp3", "mp4", "mpeg", "mpga", "m4a", "wav", "webm")
IMAGE_UPLOAD_FORMATS = ("png",)

AUDIO_MAX_BYTES = 25 * 1024 * 1024
IMAGE_MAX_BYTES = 4 * 1024 * 1024


class Endpoint(str, Enum):
    RESPONSE_API = "response_api"
    CHAT_COMPLETION = "chat_completion"
    AUDIO_TRANSCRIPTION = "audio_transcription"
    AUDIO_TRANSLATION = "audio_translation"
    AUDIO_SPEECH = "audio_speech"
    IMAGE_GENERATION = "image_generation"
    IMAGE_EDIT = "image_edit"
    IMAGE_VARIATION = "image_variation"

    @classmethod
    def from_token(cls, token) -> Optional["Endpoint"]:
        if isinstance(token, Endpoint):
            return token
        if not isinstance(token, str):
            return None
        try:
            return cls(token.strip().lower())
        except ValueError:
            return None

    @property
    def info(self) -> "EndpointInfo":
        return ENDPOINT_TABLE[self]

    @property
    def url(self) -> str:
        return self.info.url

    @property
    def is_audio(self) -> bool:
        return self.info.audio

    @property
    def is_image(self) -> bool:
        return self.info.image

    @property
    def requires_multipart(self) -> bool:
        return self.info.multipart


@dataclass(frozen=True)
class EndpointInfo:
    url: str
    audio: bool = False
    image: bool = False
    multipart: bool = False
    file_fields: Dict[str, str] = field(default_factory=dict)
    max_upload_bytes: int = 0
    timeout: float = 60.0


ENDPOINT_TABLE: Dict[Endpoint, EndpointInfo] = {
    Endpoint.RESPONSE_API: EndpointInfo("/v1/responses"),
    Endpoint.CHAT_COMPLETION: EndpointInfo("/v1/chat/completions"),
    Endpoint.AUDIO_TRANSCRIPTION: EndpointInfo(
        "/v1/audio/transcriptions",
        audio=True,
        multipart=True,
        file_fields={"file": "audio"},
        max_upload_bytes=AUDIO_MAX_BYTES,
    ),
    Endpoint.AUDIO_TRANSLATION: EndpointInfo(
        "/v1/audio/translations",
        audio=True,
        multipart=True,
        file_fields={"file": "audio"},
        max_upload_bytes=AUDIO_MAX_BYTES,
    ),
    Endpoint.AUDIO_SPEECH: EndpointInfo("/v1/audio/speech", audio=True, timeout=120.0),
    Endpoint.IMAGE_GENERATION: EndpointInfo("/v1/images/generations", image=True, timeout=180.0),
    Endpoint.IMAGE_EDIT: EndpointInfo(
        "/v1/images/edits",
        image=True,
        multipart=True,
        file_fields={"image": "image", "mask": "image"},
        max_upload_bytes=IMAGE_MAX_BYTES,
        timeout=180.0,
    ),
    Endpoint.IMAGE_VARIATION: EndpointInfo(
        "/v1/images/variations",
        image=True,
        multipart=True,
        file_fields={"image": "image"},
        max_upload_bytes=IMAGE_MAX_BYTES,
        timeout=180.0,
    ),
}

DEFAULT_PRIORITY = [
    Endpoint.AUDIO_TRANSCRIPTION,
    Endpoint.AUDIO_TRANSLATION,
    Endpoint.AUDIO_SPEECH,
    Endpoint.IMAGE_GENERATION,
    Endpoint.IMAGE_EDIT,
    Endpoint.IMAGE_VARIATION,
    Endpoint.CHAT_COMPLETION,
    Endpoint.RESPONSE_API,
]

"""Audio adapters: transcription, translation and speech."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict

from ..endpoints import AUDIO_FORMATS, AUDIO_MAX_BYTES
from ..errors import AudioSpeechError, AudioTranscriptionError, AudioTranslationError
from ..multipart import inspect_file
from ..types import UniformResponse
from .base import EndpointAdapter, is_blank, sub

DEFAULT_WHISPER_MODEL = "whisper-1"
DEFAULT_TTS_MODEL = "tts-1"
VOICES = ("alloy", "echo", "fable", "onyx", "nova", "shimmer")
MAX_SPEECH_CHARS = 4096

_LANGUAGE_RE = re.compile(r"^[a-z]{2}$")

class _AudioFileAdapter(EndpointAdapter):
    error_cls = AudioTranscriptionError

    def _validated_file(self, audio: Dict[str, Any]) -> Any:
        path = audio.get("file")
        if path is None:
            raise self.error_cls("audio.file", "an audio file is required")
        if not isinstance(path, (str, Path)):
            raise self.error_cls("audio.file", "file path must be a string")
        inspect_file(path, "audio.file", AUDIO_MAX_BYTES, AUDIO_FORMATS, "audio")
        return path

class AudioTranscriptionAdapter(_AudioFileAdapter):
    type_name = "audio_transcription"
    id_prefix = "audio_transcription_"
    error_cls = AudioTranscriptionError

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        audio = sub(request, "audio")
        path = self._validated_file(audio)

        language = audio.get("language")
        if language is not None and not (isinstance(language, str) and _LANGUAGE_RE.match(language)):
            raise AudioTranscriptionError("audio.language", "language must be an ISO-639-1 code such as 'en'")

        return {
            "file": path,
            "model": audio.get("model") or DEFAULT_WHISPER_MODEL,
            "language": language,
            "prompt": audio.get("prompt"),
            "response_format": audio.get("response_format") or "json",
            "temperature": audio.get("temperature") if audio.get("temperature") is not None else 0,
        }

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        return UniformResponse(
            id=self.make_id(raw),
            status="completed",
            type=self.type_name,
            text=str(raw["text"]) if raw.get("text") is not None else None,
            metadata={
                "duration": raw.get("duration"),
                "language": raw.get("language"),
            },
            raw=raw,
        )

class AudioTranslationAdapter(_AudioFileAdapter):
    type_name = "audio_translation"
    id_prefix = "audio_translation_"
    error_cls = AudioTranslationError

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        audio = sub(request, "audio")
        path = self._validated_file(audio)
        return {
            "file": path,
            "model": audio.get("model") or DEFAULT_WHISPER_MODEL,
            "prompt": audio.get("prompt"),
            "response_format": audio.get("response_format") or "json",
            "temperature": audio.get("temperature") if audio.get("temperature") is not None else 0,
        }

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        # Translation always targets English, whatever the detected source language.
        return UniformResponse(
            id=self.make_id(raw),
            status="completed",
            type=self.type_name,
            text=str(raw["text"]) if raw.get("text") is not None else None,
            metadata={
                "duration": raw.get("duration"),
                "source_language": raw.get("language"),
                "target_language": "en",
            },
            raw=raw,
        )

class AudioSpeechAdapter(EndpointAdapter):
    type_name = "audio_speech"
    id_prefix = "audio_speech_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        audio = sub(request, "audio")
        text = audio.get("text")
        if text is None:
            raise AudioSpeechError("audio.text", "text input is required for speech generation")
        text = str(text)
        if is_blank(text):
            raise AudioSpeechError("audio.text", "text input cannot be empty")
        if len(text) > MAX_SPEECH_CHARS:
            raise AudioSpeechError("audio.text", f"text length must be <= {MAX_SPEECH_CHARS} characters")

        voice = audio.get("voice") or "alloy"
        if voice not in VOICES:
            raise AudioSpeechError("audio.voice", f"voice must be one of {', '.join(VOICES)}")

        speed = audio.get("speed")
        speed = 1.0 if speed is None else speed
        if isinstance(speed, bool) or not isinstance(speed, (int, float)) or not 0.25 <= speed <= 4.0:
            raise AudioSpeechError("audio.speed", "speed must be a number between 0.25 and 4.0")

        return {
            "model": audio.get("model") or DEFAULT_TTS_MODEL,
            "input": text,
            "voice": voice,
            "response_format": audio.get("response_format") or audio.get("format") or "mp3",
            "speed": speed,
        }

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        content = raw.get("content")
        if isinstance(content, (bytearray, memoryview)):
            content = bytes(content)
        elif not isinstance(content, bytes):
            content = None
        return UniformResponse(
            id=self.make_id(raw),
            status="completed",
            type=self.type_name,
            audio_content=content,
            metadata={
                "format": raw.get("format") or "mp3",
                "voice": raw.get("voice"),
                "model": raw.get("model"),
                "speed": raw.get("speed", 1.0),
            },
            raw=raw,
        )

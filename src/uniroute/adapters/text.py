"""Text adapters: Responses API and chat.completions.

Rules:
- Responses API is the default operation; it needs one of input / message / messages.
- Chat completion is chosen for embedded audio; the audio becomes an input_audio
  content part next to any plain text the caller sent.
- Text extraction prefers the most specific upstream field:
  output_text > content > text > messages, then the output[] item list.
"""
from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..endpoints import AUDIO_FORMATS, AUDIO_MAX_BYTES
from ..errors import ChatCompletionError, ResponseApiError
from ..multipart import inspect_file
from ..types import UniformResponse
from .base import PASSTHROUGH_PARAMS, EndpointAdapter, sub

DEFAULT_TEXT_MODEL = "gpt-4o-mini"

def _copy_params(request: Dict[str, Any], out: Dict[str, Any], names) -> None:
    for name in names:
        if request.get(name) is not None:
            out[name] = request[name]

def _extract_output_items(raw: Dict[str, Any]) -> Optional[str]:
    output = raw.get("output")
    if not isinstance(output, list):
        return None
    chunks: List[str] = []
    for item in output:
        if not isinstance(item, dict):
            continue
        for part in item.get("content") or []:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                chunks.append(part["text"])
    return "".join(chunks) if chunks else None

def extract_text(raw: Dict[str, Any]) -> Optional[str]:
    for key in ("output_text", "content", "text", "messages"):
        v = raw.get(key)
        if isinstance(v, str):
            return v
    return _extract_output_items(raw)

class ResponseApiAdapter(EndpointAdapter):
    type_name = "response_api"
    id_prefix = "resp_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {"model": request.get("model") or DEFAULT_TEXT_MODEL}

        if request.get("input") is not None:
            out["input"] = request["input"]
        elif request.get("message") is not None:
            out["input"] = request["message"]
        if request.get("messages") is not None:
            out["messages"] = request["messages"]

        if "input" not in out and "messages" not in out:
            raise ResponseApiError("input", "one of input, message or messages is required")

        _copy_params(request, out, ("conversation_id", "modalities") + PASSTHROUGH_PARAMS + ("metadata", "store"))
        if request.get("response_format") is not None:
            out["text"] = {"format": request["response_format"]}
        return out

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        conversation_id = None
        if raw.get("conversationId") is not None:
            conversation_id = str(raw["conversationId"])
        elif isinstance(raw.get("conversation"), dict) and raw["conversation"].get("id") is not None:
            conversation_id = str(raw["conversation"]["id"])

        return UniformResponse(
            id=self.make_id(raw),
            status=str(raw.get("status") or "completed"),
            type=self.type_name,
            text=extract_text(raw),
            conversation_id=conversation_id,
            metadata={
                "model": raw.get("model"),
                "created": raw.get("created") or raw.get("created_at"),
                "usage": raw.get("usage"),
                "metadata": raw.get("metadata"),
            },
            raw=raw,
        )

class ChatCompletionAdapter(EndpointAdapter):
    type_name = "chat_completion"
    id_prefix = "chatcmpl_"

    def transform_request(self, request: Dict[str, Any]) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "model": request.get("model") or DEFAULT_TEXT_MODEL,
            "messages": self._build_messages(request),
        }
        if not out["messages"]:
            raise ChatCompletionError("messages", "at least one message or audio_input is required")

        _copy_params(request, out, PASSTHROUGH_PARAMS + ("response_format", "modalities"))
        return out

    def _build_messages(self, request: Dict[str, Any]) -> List[Dict[str, Any]]:
        messages: List[Dict[str, Any]] = []
        if isinstance(request.get("messages"), list):
            messages.extend(request["messages"])

        text = request.get("input") if isinstance(request.get("input"), str) else request.get("message")
        audio_part = self._audio_part(sub(request, "audio_input"))

        if audio_part is not None:
            content: List[Dict[str, Any]] = []
            if isinstance(text, str) and text.strip():
                content.append({"type": "text", "text": text})
            content.append(audio_part)
            messages.append({"role": "user", "content": content})
        elif isinstance(text, str):
            messages.append({"role": "user", "content": text})
        return messages

    @staticmethod
    def _audio_part(audio_input: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if audio_input.get("data") is not None:
            data = audio_input["data"]
            if isinstance(data, bytes):
                data = base64.b64encode(data).decode("ascii")
            fmt = audio_input.get("format") or "wav"
        elif audio_input.get("file") is not None:
            path = audio_input["file"]
            if not isinstance(path, (str, Path)):
                raise ChatCompletionError("audio_input.file", "file path must be a string")
            inspect_file(path, "audio_input.file", AUDIO_MAX_BYTES, AUDIO_FORMATS, "audio")
            data = base64.b64encode(Path(path).read_bytes()).decode("ascii")
            fmt = audio_input.get("format") or Path(path).suffix.lstrip(".").lower() or "wav"
        else:
            return None
        return {"type": "input_audio", "input_audio": {"data": data, "format": fmt}}

    def transform_response(self, raw: Dict[str, Any]) -> UniformResponse:
        choices = raw.get("choices") or []
        choice = choices[0] if choices and isinstance(choices[0], dict) else {}
        message = choice.get("message") or {}
        content = message.get("content")

        return UniformResponse(
            id=self.make_id(raw),
            status="completed",
            type=self.type_name,
            text=content if isinstance(content, str) else None,
            metadata={
                "model": raw.get("model"),
                "created": raw.get("created"),
                "finish_reason": choice.get("finish_reason"),
                "message": message,
                "usage": raw.get("usage"),
            },
            raw=raw,
        )

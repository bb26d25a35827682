"""Request routing.

Decides which endpoint serves a uniform request.

Rules:
- Each endpoint has a fixed match predicate over the request (see PREDICATES).
- The priority list is walked in order; the first endpoint whose predicate matches wins.
- Nothing matches -> response_api.
- Malformed sub-shapes ("audio": "x", missing/unknown action, ...) just fail the
  predicates; routing never raises for them.

Conflicts (opt-in, validate_conflicts=True):
- All specific predicates are evaluated. response_api is the fallback and never
  counts as a conflicting candidate.
- More than one match -> conflict_behavior decides: error raises, warn logs and
  proceeds, silent proceeds.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

from .config import CONFLICT_BEHAVIORS, RoutingConfig
from .endpoints import DEFAULT_PRIORITY, Endpoint
from .errors import EndpointRoutingError, RoutingExplanation
from .logging_util import get_logger

Request = Dict[str, Any]

def _sub(request: Any, key: str) -> Dict[str, Any]:
    if not isinstance(request, dict):
        return {}
    v = request.get(key)
    return v if isinstance(v, dict) else {}

def _has(d: Dict[str, Any], key: str) -> bool:
    return d.get(key) is not None

def _audio_action(request: Request, field: str, action: str) -> bool:
    audio = _sub(request, "audio")
    return _has(audio, field) and audio.get("action") == action

def has_audio_transcription(request: Request) -> bool:
    return _audio_action(request, "file", "transcribe")

def has_audio_translation(request: Request) -> bool:
    return _audio_action(request, "file", "translate")

def has_audio_speech(request: Request) -> bool:
    return _audio_action(request, "text", "speech")

def has_image_edit(request: Request) -> bool:
    image = _sub(request, "image")
    return _has(image, "image") and _has(image, "prompt")

def has_image_variation(request: Request) -> bool:
    image = _sub(request, "image")
    return _has(image, "image") and not _has(image, "prompt")

def has_image_generation(request: Request) -> bool:
    image = _sub(request, "image")
    return _has(image, "prompt") and not _has(image, "image")

def has_audio_input(request: Request) -> bool:
    audio_input = _sub(request, "audio_input")
    return _has(audio_input, "file") or _has(audio_input, "data")

def has_text_input(request: Request) -> bool:
    if not isinstance(request, dict):
        return False
    return any(request.get(k) is not None for k in ("message", "messages", "input"))

PREDICATES: Dict[Endpoint, Callable[[Request], bool]] = {
    Endpoint.AUDIO_TRANSCRIPTION: has_audio_transcription,
    Endpoint.AUDIO_TRANSLATION: has_audio_translation,
    Endpoint.AUDIO_SPEECH: has_audio_speech,
    Endpoint.IMAGE_GENERATION: has_image_generation,
    Endpoint.IMAGE_EDIT: has_image_edit,
    Endpoint.IMAGE_VARIATION: has_image_variation,
    Endpoint.CHAT_COMPLETION: has_audio_input,
    Endpoint.RESPONSE_API: has_text_input,
}

MATCH_REASONS: Dict[Endpoint, str] = {
    Endpoint.AUDIO_TRANSCRIPTION: "audio.file is present and audio.action is 'transcribe'",
    Endpoint.AUDIO_TRANSLATION: "audio.file is present and audio.action is 'translate'",
    Endpoint.AUDIO_SPEECH: "audio.text is present and audio.action is 'speech'",
    Endpoint.IMAGE_GENERATION: "image.prompt is present without image.image",
    Endpoint.IMAGE_EDIT: "image.image and image.prompt are both present",
    Endpoint.IMAGE_VARIATION: "image.image is present without image.prompt",
    Endpoint.CHAT_COMPLETION: "audio_input carries a file or embedded data",
    Endpoint.RESPONSE_API: "message, messages or input is present",
}

class RequestRouter:
    def __init__(
        self,
        endpoint_priority: Optional[Sequence[Union[str, Endpoint]]] = None,
        validate_conflicts: bool = False,
        conflict_behavior: str = "error",
        validate_endpoint_names: bool = True,
        logger: Optional[logging.Logger] = None,
    ):
        if conflict_behavior not in CONFLICT_BEHAVIORS:
            raise ValueError(f"conflict_behavior must be one of {', '.join(CONFLICT_BEHAVIORS)}")

        self.validate_conflicts = validate_conflicts
        self.conflict_behavior = conflict_behavior
        self.logger = logger or get_logger(__name__)
        self.priority = self._parse_priority(endpoint_priority or DEFAULT_PRIORITY, validate_endpoint_names)

    @classmethod
    def from_config(cls, cfg: RoutingConfig, logger: Optional[logging.Logger] = None) -> "RequestRouter":
        return cls(
            endpoint_priority=cfg.endpoint_priority,
            validate_conflicts=cfg.validate_conflicts,
            conflict_behavior=cfg.conflict_behavior,
            validate_endpoint_names=cfg.validate_endpoint_names,
            logger=logger,
        )

    @staticmethod
    def _parse_priority(tokens: Iterable[Union[str, Endpoint]], validate: bool) -> List[Endpoint]:
        parsed: List[Endpoint] = []
        invalid: List[str] = []
        for token in tokens:
            endpoint = Endpoint.from_token(token)
            if endpoint is None:
                invalid.append(str(token))
            elif endpoint not in parsed:
                parsed.append(endpoint)

        if invalid and validate:
            raise EndpointRoutingError.invalid_priority_configuration(invalid, [e.value for e in Endpoint])
        return parsed

    def matching_endpoints(self, request: Request) -> List[Endpoint]:
        """All endpoints in priority order whose predicate matches."""
        return [e for e in self.priority if PREDICATES[e](request)]

    def explain(self, request: Request) -> RoutingExplanation:
        matched = self.matching_endpoints(request)
        chosen = matched[0] if matched else Endpoint.RESPONSE_API
        if matched:
            reasoning = "\n".join(f"- {e.value}: {MATCH_REASONS[e]}" for e in matched)
        else:
            reasoning = "- no specific predicate matched"
        return RoutingExplanation(
            candidates=[e.value for e in matched],
            reasoning=reasoning,
            conclusion=f"routed to {chosen.value}",
        )

    def determine_endpoint(self, request: Request) -> Endpoint:
        if self.validate_conflicts:
            self._check_conflicts(request)

        for endpoint in self.priority:
            if PREDICATES[endpoint](request):
                return endpoint
        return Endpoint.RESPONSE_API

    def _check_conflicts(self, request: Request) -> None:
        specific = [e for e in self.matching_endpoints(request) if e is not Endpoint.RESPONSE_API]
        if len(specific) < 2:
            return

        reasoning = "The request satisfies more than one endpoint:\n" + "\n".join(
            f"- {e.value}: {MATCH_REASONS[e]}" for e in specific
        )
        if self.conflict_behavior == "error":
            raise EndpointRoutingError.conflicting_endpoints([e.value for e in specific], reasoning)
        if self.conflict_behavior == "warn":
            self.logger.warning(
                "Routing conflict between %s; resolving by priority order",
                ", ".join(e.value for e in specific),
            )

"""Exception hierarchy.

Rules:
- Routing and adapters fail fast with these types; nothing here is swallowed.
- Every validation error names the offending parameter and the constraint.
- Only the transport recovers (retries), and only for transient conditions.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence


class UniRouteError(Exception):
    pass


class ConfigError(UniRouteError):
    pass


@dataclass
class RoutingExplanation:
    candidates: List[str] = field(default_factory=list)
    reasoning: str = ""
    conclusion: str = ""


class EndpointRoutingError(UniRouteError):
    def __init__(self, message: str, explanation: Optional[RoutingExplanation] = None):
        super().__init__(message)
        self.explanation = explanation

    @classmethod
    def conflicting_endpoints(cls, endpoints: Sequence[str], reasoning: str) -> "EndpointRoutingError":
        conclusion = (
            "Please resolve the conflict by removing one of the conflicting inputs "
            "or adjusting the routing priority configuration."
        )
        explanation = RoutingExplanation(list(endpoints), reasoning, conclusion)
        return cls(
            "Conflicting endpoint configuration detected.\n\n"
            f"Reasoning:\n{reasoning}\n\n"
            f"Conflicting endpoints: {', '.join(endpoints)}\n\n"
            f"Conclusion: {conclusion}",
            explanation,
        )

    @classmethod
    def invalid_priority_configuration(cls, invalid: Sequence[str], valid: Sequence[str]) -> "EndpointRoutingError":
        reasoning = (
            f"Invalid endpoints: {', '.join(invalid)}\n"
            f"Valid endpoints are: {', '.join(valid)}"
        )
        conclusion = "Please correct routing.endpoint_priority in your configuration."
        explanation = RoutingExplanation(list(invalid), reasoning, conclusion)
        return cls(
            "Invalid endpoint priority configuration.\n\n"
            f"Reasoning:\n{reasoning}\n\n"
            f"Conclusion: {conclusion}",
            explanation,
        )


class ValidationError(UniRouteError):
    def __init__(self, param: str, constraint: str, message: Optional[str] = None):
        super().__init__(message or f"{param}: {constraint}")
        self.param = param
        self.constraint = constraint


class ResponseApiError(ValidationError):
    pass


class ChatCompletionError(ValidationError):
    pass


class AudioTranscriptionError(ValidationError):
    pass


class AudioTranslationError(ValidationError):
    pass


class AudioSpeechError(ValidationError):
    pass


class ImageGenerationError(ValidationError):
    pass


class ImageEditError(ValidationError):
    pass


class ImageVariationError(ValidationError):
    pass


class FileValidationError(ValidationError):
    def __init__(self, param: str, constraint: str, path: Any, message: Optional[str] = None):
        super().__init__(param, constraint, message)
        self.path = path


class FileMissingError(FileValidationError):
    pass


class NotAFileError(FileValidationError):
    pass


class FileNotReadableError(FileValidationError):
    pass


class EmptyFileError(FileValidationError):
    pass


class FileTooLargeError(FileValidationError):
    def __init__(self, param: str, path: Any, size: int, max_size: int):
        actual_mb = round(size / 1048576, 2)
        max_mb = round(max_size / 1048576, 2)
        super().__init__(
            param,
            f"size <= {max_size} bytes",
            path,
            f"{param}: file size ({actual_mb}MB) exceeds maximum allowed size ({max_mb}MB): {path}",
        )
        self.size = size
        self.max_size = max_size


class UnsupportedFormatError(FileValidationError):
    def __init__(self, param: str, path: Any, extension: str, supported: Sequence[str], category: str = "file"):
        super().__init__(
            param,
            f"format in {', '.join(supported)}",
            path,
            f"{param}: unsupported {category} format: {extension or '(none)'}. "
            f"Supported formats: {', '.join(supported)}",
        )
        self.extension = extension
        self.supported = list(supported)


class ApiResponseError(UniRouteError):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
        param: Optional[str] = None,
    ):
        super().__init__(f"http {status_code}: {message}")
        self.status_code = status_code
        self.error_type = error_type
        self.code = code
        self.param = param


class TransportError(UniRouteError):
    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(f"{message} (attempts={attempts}): {last_error}")
        self.attempts = attempts
        self.last_error = last_error


class RequestCancelledError(UniRouteError):
    def __init__(self, attempts: int):
        super().__init__(f"request cancelled after {attempts} attempt(s)")
        self.attempts = attempts

"""Multipart upload parts.

Rules:
- Files are validated when added (not at build time): exists, regular file,
  readable, non-empty, under the size ceiling, allowed extension for its category.
- Only file metadata (stat) is inspected; contents are read by the transport at send time.
- build() is repeatable and has no side effects; clear() resets everything.
"""
from __future__ import annotations

import mimetypes
import os
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Union

from .endpoints import AUDIO_FORMATS, AUDIO_MAX_BYTES
from .errors import (
    EmptyFileError,
    FileMissingError,
    FileNotReadableError,
    FileTooLargeError,
    NotAFileError,
    UnsupportedFormatError,
)
from .types import FilePart

DEFAULT_ALLOWED_FORMATS: Dict[str, Sequence[str]] = {
    "audio": AUDIO_FORMATS,
    "image": ("png", "jpg", "jpeg", "gif", "webp"),
}

def resolve_path(file: Any) -> Path:
    """Accept a path, a PathLike, or an open file object that carries a name."""
    if isinstance(file, (str, os.PathLike)):
        return Path(file)
    name = getattr(file, "name", None)
    if isinstance(name, (str, os.PathLike)):
        return Path(name)
    raise TypeError(f"expected a file path or a named file object, got {type(file).__name__}")

def inspect_file(
    file: Any,
    param: str,
    max_bytes: int,
    allowed: Optional[Sequence[str]] = None,
    category: str = "file",
) -> int:
    """Validate an upload candidate and return its size in bytes."""
    path = resolve_path(file)

    if not path.exists():
        raise FileMissingError(param, "file must exist", path, f"{param}: file does not exist: {path}")
    if not path.is_file():
        raise NotAFileError(param, "path must be a regular file", path, f"{param}: path is not a file: {path}")
    if not os.access(path, os.R_OK):
        raise FileNotReadableError(param, "file must be readable", path, f"{param}: file is not readable: {path}")

    size = path.stat().st_size
    if size == 0:
        raise EmptyFileError(param, "file must not be empty", path, f"{param}: file is empty: {path}")
    if size > max_bytes:
        raise FileTooLargeError(param, path, size, max_bytes)

    if allowed is not None:
        ext = path.suffix.lstrip(".").lower()
        if ext not in allowed:
            raise UnsupportedFormatError(param, path, ext, allowed, category)
    return size

class MultipartRequestBuilder:
    def __init__(self, max_file_size: int = AUDIO_MAX_BYTES, allowed_formats: Optional[Dict[str, Sequence[str]]] = None):
        self._parts: Dict[str, Union[FilePart, Any]] = {}
        self._total = 0
        self._allowed: Dict[str, Sequence[str]] = dict(DEFAULT_ALLOWED_FORMATS)
        if allowed_formats:
            self._allowed.update({k: tuple(f.lower() for f in v) for k, v in allowed_formats.items()})
        self.set_max_file_size(max_file_size)

    def set_max_file_size(self, max_bytes: int) -> "MultipartRequestBuilder":
        if max_bytes < 0:
            raise ValueError("maximum file size must be a positive integer")
        self.max_file_size = max_bytes
        return self

    def set_allowed_formats(self, category: str, formats: Sequence[str]) -> "MultipartRequestBuilder":
        self._allowed[category] = tuple(f.lower() for f in formats)
        return self

    def add_file(
        self,
        name: str,
        file: Any,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        category: Optional[str] = None,
    ) -> "MultipartRequestBuilder":
        allowed = self._allowed.get(category) if category else None
        size = inspect_file(file, name, self.max_file_size, allowed, category or "file")
        path = resolve_path(file)
        self._forget(name)

        self._parts[name] = FilePart(
            path=path,
            size=size,
            filename=filename or path.name,
            content_type=content_type or mimetypes.guess_type(path.name)[0],
            category=category,
        )
        self._total += size
        return self

    def add_field(self, name: str, value: Any) -> "MultipartRequestBuilder":
        self._forget(name)
        self._parts[name] = value
        return self

    def _forget(self, name: str) -> None:
        prev = self._parts.pop(name, None)
        if isinstance(prev, FilePart):
            self._total -= prev.size

    def build(self) -> Dict[str, Any]:
        return dict(self._parts)

    def clear(self) -> "MultipartRequestBuilder":
        self._parts = {}
        self._total = 0
        return self

    def total_request_size(self) -> int:
        return self._total

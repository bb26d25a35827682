"""Adapter factory.

Design:
- One adapter instance per Endpoint, built lazily on first use.
- The cache map is owned by the caller (pass one in to share it); the factory only guards it.
- First access is get-or-create under a lock, so concurrent callers always see one instance.
- The lock travels with the map: factories built on the same map share one lock.
"""
from __future__ import annotations

import threading
from typing import Callable, Dict, MutableMapping, Optional

from ..endpoints import Endpoint
from .audio import AudioSpeechAdapter, AudioTranscriptionAdapter, AudioTranslationAdapter
from .base import EndpointAdapter
from .image import ImageEditAdapter, ImageGenerationAdapter, ImageVariationAdapter
from .text import ChatCompletionAdapter, ResponseApiAdapter

ADAPTER_CLASSES: Dict[Endpoint, Callable[[], EndpointAdapter]] = {
    Endpoint.RESPONSE_API: ResponseApiAdapter,
    Endpoint.CHAT_COMPLETION: ChatCompletionAdapter,
    Endpoint.AUDIO_TRANSCRIPTION: AudioTranscriptionAdapter,
    Endpoint.AUDIO_TRANSLATION: AudioTranslationAdapter,
    Endpoint.AUDIO_SPEECH: AudioSpeechAdapter,
    Endpoint.IMAGE_GENERATION: ImageGenerationAdapter,
    Endpoint.IMAGE_EDIT: ImageEditAdapter,
    Endpoint.IMAGE_VARIATION: ImageVariationAdapter,
}

# Injected caches are keyed by identity so every factory on one map takes the same lock.
_cache_locks: Dict[int, threading.Lock] = {}
_registry_lock = threading.Lock()

def lock_for(cache: MutableMapping) -> threading.Lock:
    """Return the one lock associated with a shared cache map."""
    with _registry_lock:
        return _cache_locks.setdefault(id(cache), threading.Lock())

class AdapterFactory:
    def __init__(
        self,
        cache: Optional[MutableMapping[Endpoint, EndpointAdapter]] = None,
        constructors: Optional[Dict[Endpoint, Callable[[], EndpointAdapter]]] = None,
        lock: Optional[threading.Lock] = None,
    ):
        self._constructors = dict(constructors or ADAPTER_CLASSES)
        if cache is None:
            self._cache: MutableMapping[Endpoint, EndpointAdapter] = {}
            self._lock = lock or threading.Lock()
        else:
            self._cache = cache
            self._lock = lock or lock_for(cache)

    def make(self, endpoint: Endpoint) -> EndpointAdapter:
        adapter = self._cache.get(endpoint)
        if adapter is not None:
            return adapter

        with self._lock:
            adapter = self._cache.get(endpoint)
            if adapter is None:
                ctor = self._constructors.get(endpoint)
                if ctor is None:
                    raise ValueError(f"no adapter registered for endpoint: {endpoint}")
                adapter = self._cache.setdefault(endpoint, ctor())
        return adapter

"""uniroute: one request shape for text, audio and image operations."""
from .adapters import AdapterFactory, EndpointAdapter
from .client import NullObserver, UnifiedClient
from .config import Settings, load_settings
from .endpoints import Endpoint
from .idempotency import IdempotencyService
from .multipart import MultipartRequestBuilder
from .router import RequestRouter
from .transport import RetryPolicy, Transport
from .types import FilePart, UniformResponse

__all__ = [
    "AdapterFactory",
    "Endpoint",
    "EndpointAdapter",
    "FilePart",
    "IdempotencyService",
    "MultipartRequestBuilder",
    "NullObserver",
    "RequestRouter",
    "RetryPolicy",
    "Settings",
    "Transport",
    "UnifiedClient",
    "UniformResponse",
    "load_settings",
]

__version__ = "0.1.0"

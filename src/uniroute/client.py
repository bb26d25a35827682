"""UnifiedClient: route -> adapt -> send -> adapt back."""
from __future__ import annotations

import threading
import time
from typing import Any, Dict, Optional

from .adapters import AdapterFactory
from .config import Settings, load_settings
from .endpoints import Endpoint
from .errors import UniRouteError
from .logging_util import get_logger, timed_step
from .multipart import MultipartRequestBuilder
from .router import RequestRouter
from .transport import ProgressCallback, RetryPolicy, Transport
from .types import UniformResponse

logger = get_logger(__name__)

class NullObserver:
    """Hook points for metrics/error reporting sinks. Does nothing by default."""

    def on_request(self, endpoint: Endpoint, request: Dict[str, Any]) -> None:
        pass

    def on_response(self, endpoint: Endpoint, response: UniformResponse, elapsed_ms: int) -> None:
        pass

    def on_error(self, endpoint: Optional[Endpoint], error: Exception) -> None:
        pass

def build_parts(endpoint: Endpoint, wire: Dict[str, Any], builder: Optional[MultipartRequestBuilder] = None) -> Dict[str, Any]:
    info = endpoint.info
    builder = (builder or MultipartRequestBuilder()).clear().set_max_file_size(info.max_upload_bytes)
    for name, value in wire.items():
        if value is None:
            continue
        category = info.file_fields.get(name)
        if category:
            builder.add_file(name, value, category=category)
        else:
            builder.add_field(name, value)
    return builder.build()

class UnifiedClient:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        router: Optional[RequestRouter] = None,
        factory: Optional[AdapterFactory] = None,
        transport: Optional[Transport] = None,
        observer: Optional[NullObserver] = None,
    ):
        self.settings = settings or load_settings()
        self.router = router or RequestRouter.from_config(self.settings.routing)
        self.factory = factory or AdapterFactory()
        self.transport = transport or Transport.from_settings(self.settings)
        self.observer = observer or NullObserver()

    def send(
        self,
        request: Dict[str, Any],
        cancel_event: Optional[threading.Event] = None,
        progress_callback: Optional[ProgressCallback] = None,
        retry: Optional[RetryPolicy] = None,
        request_id: Optional[str] = None,
        timings: Optional[Dict[str, int]] = None,
    ) -> UniformResponse:
        endpoint: Optional[Endpoint] = None
        t0 = time.time()
        try:
            with timed_step(logger, "route", "route request", timings, request_id=request_id):
                endpoint = self.router.determine_endpoint(request)
            self.observer.on_request(endpoint, request)
            name = endpoint.value

            with timed_step(logger, "transform_request", "build wire request", timings, name, request_id):
                adapter = self.factory.make(endpoint)
                wire = adapter.transform_request(request)

            with timed_step(logger, "send", f"POST {endpoint.url}", timings, name, request_id):
                raw = self._dispatch(endpoint, wire, request, cancel_event, progress_callback, retry)

            with timed_step(logger, "transform_response", "build uniform response", timings, name, request_id):
                response = adapter.transform_response(raw)
        except UniRouteError as e:
            self.observer.on_error(endpoint, e)
            raise

        self.observer.on_response(endpoint, response, int((time.time() - t0) * 1000))
        return response

    def _dispatch(self, endpoint, wire, request, cancel_event, progress_callback, retry) -> Dict[str, Any]:
        idempotent = self.settings.responses.idempotency_enabled
        timeout = endpoint.info.timeout
        if isinstance(request.get("_idempotency_key"), str):
            wire = dict(wire, _idempotency_key=request["_idempotency_key"])

        if endpoint.requires_multipart:
            parts = build_parts(endpoint, wire)
            return self.transport.post_multipart(
                endpoint.url,
                parts,
                progress_callback=progress_callback,
                idempotent=idempotent,
                timeout=timeout,
                retry=retry,
                cancel_event=cancel_event,
            )

        body = {k: v for k, v in wire.items() if v is not None}
        if endpoint is Endpoint.AUDIO_SPEECH:
            content = self.transport.post_binary(
                endpoint.url, body, idempotent=idempotent, timeout=timeout, retry=retry, cancel_event=cancel_event
            )
            return {
                "content": content,
                "format": wire.get("response_format"),
                "voice": wire.get("voice"),
                "model": wire.get("model"),
                "speed": wire.get("speed"),
            }

        return self.transport.post_json(
            endpoint.url, body, idempotent=idempotent, timeout=timeout, retry=retry, cancel_event=cancel_event
        )

    def run(self, request: Dict[str, Any], request_id: Optional[str] = None) -> Dict[str, Any]:
        meta: Dict[str, Any] = {"request_id": request_id, "endpoint": None, "steps": {}}
        t0 = time.time()
        try:
            response = self.send(request, request_id=request_id, timings=meta["steps"])
            meta["endpoint"] = response.type
            meta["steps"]["total_ms"] = int((time.time() - t0) * 1000)
            return {"response": response.to_dict(), "error": None, "meta": meta}
        except UniRouteError as e:
            logger.exception("UnifiedClient.run failed: %s", e)
            meta["steps"]["total_ms"] = int((time.time() - t0) * 1000)
            return {"response": None, "error": {"type": type(e).__name__, "message": str(e)}, "meta": meta}

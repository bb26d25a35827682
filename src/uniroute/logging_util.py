"""Logging for the request pipeline.

Every request passes the same four stages (see PIPELINE_STEPS). Each stage is logged
as "[STEP n/4 stage] endpoint=... request=... - message" and, when the caller keeps
a timings dict, its duration lands there as "<stage>_ms". Retries are logged by the
transport with the attempt number against the attempt budget.

Handlers are attached once per logger; an already configured logger is left alone.
Level comes from UNIROUTE_LOG_LEVEL (default INFO).
"""
from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

_DEFAULT_LEVEL = os.environ.get("UNIROUTE_LOG_LEVEL", "INFO").upper()
_FORMAT = "[%(levelname)s] %(name)s:%(lineno)d - %(message)s"

PIPELINE_STEPS = ("route", "transform_request", "send", "transform_response")

def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if logger.handlers:
        return logger

    logger.setLevel(_DEFAULT_LEVEL)
    h = logging.StreamHandler()
    h.setFormatter(logging.Formatter(_FORMAT))
    logger.addHandler(h)
    return logger

def _context(endpoint: Optional[str], request_id: Optional[str]) -> str:
    parts = []
    if endpoint:
        parts.append(f"endpoint={endpoint}")
    if request_id:
        parts.append(f"request={request_id}")
    return " ".join(parts)

def log_step(
    logger: logging.Logger,
    step: str,
    msg: str,
    endpoint: Optional[str] = None,
    request_id: Optional[str] = None,
) -> None:
    """Log one pipeline stage. `step` is a PIPELINE_STEPS name."""
    n = PIPELINE_STEPS.index(step) + 1 if step in PIPELINE_STEPS else 0
    ctx = _context(endpoint, request_id)
    label = f"{n}/{len(PIPELINE_STEPS)} {step}" if n else step
    if ctx:
        logger.info("[STEP %s] %s - %s", label, ctx, msg)
    else:
        logger.info("[STEP %s] %s", label, msg)

@contextmanager
def timed_step(
    logger: logging.Logger,
    step: str,
    msg: str,
    timings: Optional[Dict[str, int]] = None,
    endpoint: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[None]:
    """log_step, then record the stage duration as timings["<step>_ms"] even if it fails."""
    log_step(logger, step, msg, endpoint, request_id)
    t0 = time.time()
    try:
        yield
    finally:
        if timings is not None:
            timings[f"{step}_ms"] = int((time.time() - t0) * 1000)

def log_retry(
    logger: logging.Logger,
    path: str,
    attempt: int,
    max_attempts: int,
    error: BaseException,
    delay_ms: float,
) -> None:
    logger.warning(
        "POST %s attempt %d/%d failed (%s); retrying in %.0fms", path, attempt, max_attempts, error, delay_ms
    )

def log_exhausted(logger: logging.Logger, path: str, attempts: int, error: Optional[BaseException]) -> None:
    logger.error("POST %s failed after %d attempt(s): %s", path, attempts, error)

"""Settings loading.

Design:
- Settings come from one YAML file; sections are routing / transport / responses.
- Lookup order: explicit path -> UNIROUTE_CONFIG env var -> bundled configs/default.yaml.
- If the file is missing or broken we log it and fall back to built-in defaults.
- Values are coerced leniently: a bad value falls back to its default instead of failing.

Transport env overrides:
- UNIROUTE_BASE_URL
- UNIROUTE_TRANSPORT_MAX_RETRIES
- UNIROUTE_TRANSPORT_INITIAL_DELAY_MS
- UNIROUTE_TRANSPORT_MAX_DELAY_MS
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .endpoints import DEFAULT_PRIORITY
from .logging_util import get_logger

logger = get_logger(__name__)

CONFLICT_BEHAVIORS = ("error", "warn", "silent")

_BUNDLED = Path(__file__).resolve().parent / "configs" / "default.yaml"

@dataclass
class RoutingConfig:
    endpoint_priority: List[str] = field(default_factory=lambda: [e.value for e in DEFAULT_PRIORITY])
    validate_conflicts: bool = True
    conflict_behavior: str = "error"
    validate_endpoint_names: bool = True

@dataclass
class TransportConfig:
    base_url: str = "https://api.openai.com"
    api_key_env: str = "OPENAI_API_KEY"
    timeout: float = 60.0
    max_retries: int = 2
    initial_delay_ms: int = 200
    max_delay_ms: int = 2000

@dataclass
class ResponsesConfig:
    idempotency_enabled: bool = True
    idempotency_bucket: int = 60

@dataclass
class Settings:
    routing: RoutingConfig = field(default_factory=RoutingConfig)
    transport: TransportConfig = field(default_factory=TransportConfig)
    responses: ResponsesConfig = field(default_factory=ResponsesConfig)

def _load_yaml(path: Path) -> Dict:
    if not path.exists():
        logger.error("Config file not found: %s", path)
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.error("Failed to load YAML: %s (%s)", path, e)
        return {}
    if not isinstance(data, dict):
        logger.error("Config root must be a mapping: %s", path)
        return {}
    return data

def _to_bool(v: Any, default: bool) -> bool:
    if isinstance(v, bool):
        return v
    if isinstance(v, str):
        s = v.strip().lower()
        if s in ("1", "true", "y", "yes", "on"):
            return True
        if s in ("0", "false", "n", "no", "off"):
            return False
    return default

def _to_int(v: Any, default: int) -> int:
    if v is None or isinstance(v, bool):
        return default
    try:
        return int(v)
    except (TypeError, ValueError):
        return default

def _to_float(v: Any, default: float) -> float:
    if v is None or isinstance(v, bool):
        return default
    try:
        return float(v)
    except (TypeError, ValueError):
        return default

def _env(env: Dict[str, str], key: str, fallback: Any) -> Any:
    v = env.get(key)
    if v is None or not str(v).strip():
        return fallback
    return v

def _section(data: Dict, name: str) -> Dict:
    sec = data.get(name)
    return sec if isinstance(sec, dict) else {}

def parse_routing(sec: Dict[str, Any]) -> RoutingConfig:
    cfg = RoutingConfig()

    priority = sec.get("endpoint_priority")
    if isinstance(priority, list) and priority:
        cfg.endpoint_priority = [str(p) for p in priority]

    cfg.validate_conflicts = _to_bool(sec.get("validate_conflicts"), True)
    cfg.validate_endpoint_names = _to_bool(sec.get("validate_endpoint_names"), True)

    behavior = sec.get("conflict_behavior", "error")
    if not isinstance(behavior, str) or behavior.strip().lower() not in CONFLICT_BEHAVIORS:
        logger.warning("Unknown routing.conflict_behavior %r, using 'error'", behavior)
        behavior = "error"
    cfg.conflict_behavior = behavior.strip().lower()
    return cfg

def parse_transport(sec: Dict[str, Any], env: Optional[Dict[str, str]] = None) -> TransportConfig:
    env = os.environ if env is None else env
    d = TransportConfig()
    return TransportConfig(
        base_url=str(_env(env, "UNIROUTE_BASE_URL", sec.get("base_url")) or d.base_url).rstrip("/"),
        api_key_env=str(sec.get("api_key_env") or d.api_key_env),
        timeout=_to_float(sec.get("timeout"), d.timeout),
        max_retries=max(0, _to_int(_env(env, "UNIROUTE_TRANSPORT_MAX_RETRIES", sec.get("max_retries")), d.max_retries)),
        initial_delay_ms=max(0, _to_int(_env(env, "UNIROUTE_TRANSPORT_INITIAL_DELAY_MS", sec.get("initial_delay_ms")), d.initial_delay_ms)),
        max_delay_ms=max(0, _to_int(_env(env, "UNIROUTE_TRANSPORT_MAX_DELAY_MS", sec.get("max_delay_ms")), d.max_delay_ms)),
    )

def parse_responses(sec: Dict[str, Any]) -> ResponsesConfig:
    bucket = _to_int(sec.get("idempotency_bucket"), 60)
    return ResponsesConfig(
        idempotency_enabled=_to_bool(sec.get("idempotency_enabled"), True),
        idempotency_bucket=bucket if bucket >= 1 else 60,
    )

def settings_from_dict(data: Dict[str, Any], env: Optional[Dict[str, str]] = None) -> Settings:
    return Settings(
        routing=parse_routing(_section(data, "routing")),
        transport=parse_transport(_section(data, "transport"), env),
        responses=parse_responses(_section(data, "responses")),
    )

def load_settings(path: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> Settings:
    env = os.environ if env is None else env
    if path is None:
        override = (env.get("UNIROUTE_CONFIG") or "").strip()
        path = Path(override) if override else _BUNDLED
    data = _load_yaml(Path(path))
    logger.debug("Loaded settings from %s", path)
    return settings_from_dict(data, env)

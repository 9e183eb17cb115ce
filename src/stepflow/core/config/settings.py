# src/stepflow/core/config/settings.py
"""
Interpretação das seções de configuração do StepFlow.

Seções reconhecidas:

    resilience:
      retry:
        enabled: true
        max_attempts: 3
        backoff: constant        # constant | linear | exponential
        delay_ms: 100
        increment_ms: 100        # linear
        multiplier: 2.0          # exponential
      fallback:
        value: null

    tracing:
      enabled: true
      tracer: memory             # memory | logging | performance
      include_payloads: false    # logging
      slow_step_ms: 500          # performance

Decisões arquiteturais:
    - Seções ausentes resultam em None (sem estratégia / sem observer)
    - Retry e fallback declarados juntos formam um CompositeStrategy
      (retry primeiro, fallback depois)
    - Valores inválidos geram ConfigValueError no momento da leitura
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

from stepflow.core.engine.engine import Pipeline
from stepflow.core.pipeline.registry import GroupRegistry
from stepflow.core.resilience.strategies import CompositeStrategy, FallbackStrategy, RetryStrategy
from stepflow.core.tracing.tracers import LoggingTracer, MemoryTracer, PerformanceTracer

from .errors import ConfigValueError
from .hashing import compute_config_hash


BACKOFFS = ("constant", "linear", "exponential")
TRACERS = ("memory", "logging", "performance")


def _section(cfg: Mapping[str, Any], *path: str) -> Optional[Dict[str, Any]]:
    current: Any = cfg
    for key in path:
        if not isinstance(current, Mapping) or key not in current:
            return None
        current = current[key]
    if current is None:
        return None
    if not isinstance(current, Mapping):
        raise ConfigValueError(f"Config section '{'.'.join(path)}' must be a mapping")
    return dict(current)


def _number(section: Mapping[str, Any], key: str, default: float, *, where: str) -> float:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigValueError(f"'{where}.{key}' must be a number, got {value!r}")
    if value < 0:
        raise ConfigValueError(f"'{where}.{key}' must be >= 0, got {value!r}")
    return value


def retry_from_config(section: Mapping[str, Any]) -> RetryStrategy:
    where = "resilience.retry"
    max_attempts = section.get("max_attempts", 3)
    if isinstance(max_attempts, bool) or not isinstance(max_attempts, int) or max_attempts < 0:
        raise ConfigValueError(f"'{where}.max_attempts' must be an integer >= 0, got {max_attempts!r}")

    backoff = section.get("backoff", "constant")
    if backoff not in BACKOFFS:
        raise ConfigValueError(
            f"'{where}.backoff' must be one of {', '.join(BACKOFFS)}, got {backoff!r}"
        )

    delay_ms = _number(section, "delay_ms", 100, where=where)
    if backoff == "linear":
        return RetryStrategy.linear(max_attempts, delay_ms, _number(section, "increment_ms", 100, where=where))
    if backoff == "exponential":
        return RetryStrategy.exponential(max_attempts, delay_ms, _number(section, "multiplier", 2.0, where=where))
    return RetryStrategy.constant(max_attempts, delay_ms)


def strategy_from_config(cfg: Mapping[str, Any]) -> Any:
    """
    Monta a estratégia de resiliência declarada em `resilience`.

    Returns:
        RetryStrategy, FallbackStrategy, CompositeStrategy ou None.

    Raises:
        ConfigValueError: valores inválidos nas seções.
    """
    strategies: List[Any] = []

    retry = _section(cfg, "resilience", "retry")
    if retry is not None and retry.get("enabled", True):
        strategies.append(retry_from_config(retry))

    fallback = _section(cfg, "resilience", "fallback")
    if fallback is not None and fallback.get("enabled", True):
        if "value" not in fallback:
            raise ConfigValueError("'resilience.fallback' must declare 'value'")
        strategies.append(FallbackStrategy.with_default(fallback["value"]))

    if not strategies:
        return None
    if len(strategies) == 1:
        return strategies[0]
    return CompositeStrategy(tuple(strategies))


def observer_from_config(cfg: Mapping[str, Any]) -> Any:
    """
    Monta o tracer declarado em `tracing`.

    Returns:
        MemoryTracer, LoggingTracer, PerformanceTracer ou None.

    Raises:
        ConfigValueError: tracer desconhecido ou valores inválidos.
    """
    tracing = _section(cfg, "tracing")
    if tracing is None or not tracing.get("enabled", True):
        return None

    kind = tracing.get("tracer", "memory")
    if kind not in TRACERS:
        raise ConfigValueError(f"'tracing.tracer' must be one of {', '.join(TRACERS)}, got {kind!r}")

    if kind == "logging":
        return LoggingTracer(include_payloads=bool(tracing.get("include_payloads", False)))
    if kind == "performance":
        return PerformanceTracer(
            slow_step_ms=_number(tracing, "slow_step_ms", 500.0, where="tracing"),
            slow_total_ms=_number(tracing, "slow_total_ms", 1000.0, where="tracing"),
        )
    return MemoryTracer()


def pipeline_from_config(
    steps: Sequence[Any],
    cfg: Mapping[str, Any],
    *,
    registry: Optional[GroupRegistry] = None,
    name: Optional[str] = None,
) -> Pipeline:
    """Monta um Pipeline com estratégia e tracer da configuração e a tag `config_hash`."""
    pipeline = Pipeline(
        steps,
        registry=registry,
        strategy=strategy_from_config(cfg),
        observer=observer_from_config(cfg),
        name=name,
    )
    return pipeline.tag("config_hash", compute_config_hash(dict(cfg)))

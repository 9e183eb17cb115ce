# src/stepflow/core/tracing/tracers.py
"""
Tracers embutidos do StepFlow.

Componentes:
    - MemoryTracer      → guarda TraceEntry em memória (inspeção e testes)
    - LoggingTracer     → emite uma linha de log por Step via `logging`
    - PerformanceTracer → estatísticas de duração por Step (pandas)
    - MultiTracer       → repassa cada aviso a vários observers, em ordem

Limites explícitos:
    - Tracers não alteram payloads
    - Tracers não persistem dados fora do processo
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence

import pandas as pd

from stepflow.core.pipeline.types import TraceEntry


logger = logging.getLogger("stepflow.trace")


class MemoryTracer:
    """Acumula uma TraceEntry por Step concluído."""

    def __init__(self) -> None:
        self.entries: List[TraceEntry] = []

    def on_step_complete(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        self.entries.append(TraceEntry(label=label, before=before, after=after, duration_ms=duration_ms))

    def all(self) -> List[TraceEntry]:
        return list(self.entries)

    def steps(self) -> List[str]:
        return [e.label for e in self.entries]

    def count(self) -> int:
        return len(self.entries)

    def first_step(self) -> Optional[str]:
        return self.entries[0].label if self.entries else None

    def last_step(self) -> Optional[str]:
        return self.entries[-1].label if self.entries else None

    def clear(self) -> None:
        self.entries.clear()

    def __len__(self) -> int:
        return len(self.entries)


def _render(payload: Any, limit: int) -> str:
    try:
        text = json.dumps(payload, ensure_ascii=False, sort_keys=True, default=str)
    except (TypeError, ValueError):
        text = repr(payload)
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


class LoggingTracer:
    """
    Emite uma linha DEBUG por Step concluído.

    Com `include_payloads=True` os payloads são renderizados (JSON quando
    possível, `repr` caso contrário), truncados em `max_payload_chars`.
    """

    def __init__(
        self,
        logger_: Optional[logging.Logger] = None,
        *,
        level: int = logging.DEBUG,
        include_payloads: bool = False,
        max_payload_chars: int = 200,
    ) -> None:
        self.logger = logger_ or logger
        self.level = level
        self.include_payloads = include_payloads
        self.max_payload_chars = max_payload_chars

    def on_step_complete(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        if not self.logger.isEnabledFor(self.level):
            return
        if self.include_payloads:
            self.logger.log(
                self.level,
                "step %s completed in %.3f ms: %s -> %s",
                label,
                duration_ms,
                _render(before, self.max_payload_chars),
                _render(after, self.max_payload_chars),
            )
        else:
            self.logger.log(self.level, "step %s completed in %.3f ms", label, duration_ms)


_STAT_COLUMNS = ["step", "count", "total_ms", "mean_ms", "max_ms"]


class PerformanceTracer:
    """
    Coleta durações por Step e produz estatísticas.

    Limiares de alerta:
        - `slow_step_ms`: duração de um único Step considerada lenta
        - `slow_total_ms`: soma das durações considerada lenta
    """

    def __init__(
        self,
        *,
        slow_step_ms: float = 500.0,
        slow_total_ms: float = 1000.0,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self.slow_step_ms = slow_step_ms
        self.slow_total_ms = slow_total_ms
        self._clock = clock
        self._started = clock()
        self.metrics: List[Dict[str, Any]] = []

    def on_step_complete(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        self.metrics.append(
            {
                "step": label,
                "duration_ms": float(duration_ms),
                "offset_ms": (self._clock() - self._started) * 1000.0,
            }
        )

    def total_duration_ms(self) -> float:
        return float(sum(m["duration_ms"] for m in self.metrics))

    def bottlenecks(self, n: int = 5) -> List[Dict[str, Any]]:
        ranked = sorted(self.metrics, key=lambda m: m["duration_ms"], reverse=True)
        return [dict(m) for m in ranked[:n]]

    def has_performance_issues(self) -> bool:
        if self.total_duration_ms() > self.slow_total_ms:
            return True
        return any(m["duration_ms"] > self.slow_step_ms for m in self.metrics)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.metrics, columns=["step", "duration_ms", "offset_ms"])

    def step_stats(self) -> pd.DataFrame:
        df = self.to_frame()
        if df.empty:
            return pd.DataFrame(columns=_STAT_COLUMNS)
        stats = (
            df.groupby("step", sort=False)["duration_ms"]
            .agg(count="count", total_ms="sum", mean_ms="mean", max_ms="max")
            .reset_index()
        )
        return stats.sort_values("total_ms", ascending=False, kind="stable").reset_index(drop=True)

    def report(self) -> Dict[str, Any]:
        return {
            "step_count": len(self.metrics),
            "total_duration_ms": self.total_duration_ms(),
            "bottlenecks": self.bottlenecks(),
            "has_performance_issues": self.has_performance_issues(),
        }

    def clear(self) -> None:
        self.metrics.clear()
        self._started = self._clock()


@dataclass
class MultiTracer:
    """Repassa cada aviso a todos os observers, na ordem declarada."""

    observers: Sequence[Any] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.observers = list(self.observers)

    def add(self, observer: Any) -> "MultiTracer":
        self.observers.append(observer)
        return self

    def on_step_complete(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        for observer in self.observers:
            observer.on_step_complete(label, before, after, duration_ms)

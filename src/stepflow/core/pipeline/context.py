# src/stepflow/core/pipeline/context.py
"""
Contexto de execução de uma run do pipeline.

Este módulo define o `ExecutionContext`, a estrutura criada pelo Engine no
início de cada run e que acompanha a execução até o fim.

O ExecutionContext concentra:
    - identidade da execução (run_id, created_at)
    - o observer opcional da run
    - o payload corrente (último valor entregue entre Steps)
    - tags e metadados livres fornecidos pelo chamador
    - log estruturado de eventos do Engine
    - warnings não fatais por Step
    - recuperações aplicadas (fallback / compensação)

Princípios fundamentais:
    - Isolamento por execução (cada run possui seu próprio contexto)
    - Steps não recebem o contexto: o contrato de Step é `(payload, next)`
    - Eventos são estruturados e sempre incluem `run_id` e `step_id`

Limites explícitos:
    - Não executa Steps
    - Não decide políticas de recuperação
    - Não persiste dados
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


RUN_STEP_ID = "<run>"


def _new_run_id() -> str:
    return uuid.uuid4().hex


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ExecutionContext:
    """
    Contexto de execução de uma run do pipeline.

    Campos canônicos:
        - run_id: identificador único da execução
        - created_at: timestamp UTC de criação
        - observer: observer da run (ou None)
        - payload: payload corrente
        - tags / meta: dados livres do chamador
        - events: log estruturado de eventos
        - warnings: warnings por step_id
        - recoveries: recuperações aplicadas, em ordem
    """

    run_id: str = field(default_factory=_new_run_id)
    created_at: datetime = field(default_factory=_utc_now)
    observer: Any = None
    payload: Any = None
    tags: Dict[str, Any] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)
    recoveries: List[Dict[str, Any]] = field(default_factory=list, init=False)

    # -----------------------------
    # Tags & metadata
    # -----------------------------
    def tag(self, key: str, value: Any) -> None:
        self.tags[key] = value

    def set_meta(self, key: str, value: Any) -> None:
        self.meta[key] = value

    def get_meta(self, key: str, default: Any = None) -> Any:
        return self.meta.get(key, default)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": _utc_now().isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def events_for(self, step_id: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e.get("step_id") == step_id]

    # -----------------------------
    # Recoveries
    # -----------------------------
    def record_recovery(self, *, step_id: str, action: str, attempt: int, error: BaseException) -> None:
        self.recoveries.append(
            {
                "step_id": step_id,
                "action": action,
                "attempt": attempt,
                "error": f"{type(error).__name__}: {error}",
            }
        )

    def recovered_steps(self) -> List[str]:
        return [r["step_id"] for r in self.recoveries]

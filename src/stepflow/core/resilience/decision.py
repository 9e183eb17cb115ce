# src/stepflow/core/resilience/decision.py
"""
Decisões de recuperação do StepFlow.

Uma estratégia de resiliência é consultada uma única vez por falha de Step
e responde com exatamente uma `Decision`:

    - RETRY      → aguardar `delay_ms` e reexecutar o mesmo Step com o mesmo payload
    - FALLBACK   → entregar `payload` à continuação do Step que falhou
    - COMPENSATE → idem FALLBACK, sinalizando que efeitos de rollback foram aplicados
    - FAIL       → propagar o erro original e encerrar a run

Invariantes:
    - Decisões são imutáveis
    - `delay_ms` só é relevante para RETRY e nunca é negativo
    - O Engine não distingue FALLBACK de COMPENSATE além de rótulos e eventos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class RecoveryAction(str, Enum):
    """Ações possíveis de uma Decision."""
    RETRY = "retry"
    FALLBACK = "fallback"
    COMPENSATE = "compensate"
    FAIL = "fail"


@dataclass(frozen=True)
class Decision:
    """
    Resposta de uma estratégia de resiliência a uma falha.

    Campos:
        - action: ação escolhida
        - payload: novo payload (FALLBACK / COMPENSATE)
        - delay_ms: espera antes da nova tentativa (RETRY)
        - details: dados livres para diagnóstico (motivo, erros do handler)
    """

    action: RecoveryAction
    payload: Any = None
    delay_ms: float = 0
    details: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.action, RecoveryAction):
            object.__setattr__(self, "action", RecoveryAction(self.action))
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")

    @classmethod
    def retry(cls, delay_ms: float = 0, *, details: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(action=RecoveryAction.RETRY, delay_ms=delay_ms, details=dict(details or {}))

    @classmethod
    def fallback(cls, payload: Any, *, details: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(action=RecoveryAction.FALLBACK, payload=payload, details=dict(details or {}))

    @classmethod
    def compensate(cls, payload: Any, *, details: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(action=RecoveryAction.COMPENSATE, payload=payload, details=dict(details or {}))

    @classmethod
    def fail(cls, *, details: Optional[Dict[str, Any]] = None) -> "Decision":
        return cls(action=RecoveryAction.FAIL, details=dict(details or {}))

    @property
    def is_fail(self) -> bool:
        return self.action is RecoveryAction.FAIL

    @property
    def is_retry(self) -> bool:
        return self.action is RecoveryAction.RETRY

    @property
    def recovers(self) -> bool:
        return self.action in (RecoveryAction.FALLBACK, RecoveryAction.COMPENSATE)

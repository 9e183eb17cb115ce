"""
StepFlow — Canonical Exceptions (v1)

Este módulo define exceções tipadas levantadas pelos Steps embutidos.

Objetivo:
- Permitir que Steps levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ErrorPayload
- Permitir que estratégias de resiliência filtrem por tipo (`on=...`)

Regras:
- Exceções carregam apenas dados estruturados (serializáveis).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Optional

from stepflow.core.errors import RATE_LIMIT_EXCEEDED, STEP_EXECUTION_ERROR, STEP_VALIDATION_ERROR


@dataclass(frozen=True)
class StepflowException(Exception):
    """Base class para exceções internas do StepFlow.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Mensagem deve ser curta e humana
    """

    code: ClassVar[str] = STEP_EXECUTION_ERROR

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class ValidationFailedError(StepflowException):
    """Payload não satisfaz as regras de um ValidationStep."""

    code: ClassVar[str] = STEP_VALIDATION_ERROR

    @property
    def errors(self) -> Dict[str, Any]:
        return dict(self.details.get("errors", {}))


@dataclass(frozen=True)
class RateLimitExceededError(StepflowException):
    """Limite de tentativas da janela de um RateLimitStep foi atingido."""

    code: ClassVar[str] = RATE_LIMIT_EXCEEDED

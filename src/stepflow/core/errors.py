"""
StepFlow — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros reportáveis do StepFlow.

Falhas de Step nunca são encapsuladas durante a execução: o Engine
preserva a exceção original. O `ErrorPayload` é a representação
serializável dessa falha, produzida sob demanda a partir de um
`RunResult` para logs, relatórios e respostas de API.

Um erro reportável deve ser:

- explícito
- serializável
- acionável
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ErrorPayload:
    """
    Payload canônico de erro do StepFlow.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador (onde corrigir)
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Execução de Steps
STEP_EXECUTION_ERROR = "STEP_EXECUTION_ERROR"
STEP_VALIDATION_ERROR = "STEP_VALIDATION_ERROR"
RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

# Build
PIPELINE_BUILD_ERROR = "PIPELINE_BUILD_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def step_execution_error(
    *,
    step: Optional[str],
    attempts: int,
    exc_type: str,
    exc_message: str,
    hint: str = "Verifique o Step indicado e a estratégia de resiliência configurada. Nenhum fallback foi aplicado.",
) -> ErrorPayload:
    return ErrorPayload(
        type=STEP_EXECUTION_ERROR,
        message=exc_message or "Falha inesperada durante a execução do Step",
        details={
            "step": step,
            "attempts": attempts,
            "exception_class": exc_type,
        },
        hint=hint,
    )


def pipeline_build_error(
    *,
    exc_type: str,
    exc_message: str,
    hint: str = "Revise a lista de Steps e os grupos registrados antes de construir o pipeline.",
) -> ErrorPayload:
    return ErrorPayload(
        type=PIPELINE_BUILD_ERROR,
        message=exc_message or "Definição de pipeline inválida",
        details={"exception_class": exc_type},
        hint=hint,
    )


def error_payload_for(error: BaseException, *, step: Optional[str] = None, attempts: int = 0) -> ErrorPayload:
    """
    Converte uma exceção em ErrorPayload.

    Regras:
    - StepflowException: usa `code`, `message`, `details` e `hint` da exceção.
    - PipelineBuildError: PIPELINE_BUILD_ERROR.
    - Outras exceções: STEP_EXECUTION_ERROR, sem stack trace.
    """
    # imports locais: exceptions e pipeline.errors não dependem deste módulo
    from stepflow.core.exceptions import StepflowException
    from stepflow.core.pipeline.errors import PipelineBuildError

    if isinstance(error, StepflowException):
        details = dict(error.details or {})
        details.setdefault("step", step)
        details.setdefault("attempts", attempts)
        details.setdefault("exception_class", type(error).__name__)
        return ErrorPayload(
            type=error.code,
            message=error.message,
            details=details,
            hint=error.hint,
        )

    if isinstance(error, PipelineBuildError):
        return pipeline_build_error(exc_type=type(error).__name__, exc_message=str(error))

    return step_execution_error(
        step=step,
        attempts=attempts,
        exc_type=type(error).__name__,
        exc_message=str(error),
    )

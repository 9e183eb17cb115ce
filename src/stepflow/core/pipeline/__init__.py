# src/stepflow/core/pipeline/__init__.py
"""
# Pipeline Core — StepFlow

Este pacote define os **contratos canônicos** e as **estruturas fundamentais**
que compõem um pipeline no StepFlow.

Um pipeline é modelado como uma **cadeia de middleware**, onde:
- cada Step recebe o payload e a continuação (o restante do pipeline)
- a composição é feita exclusivamente pelo Engine
- o estado de uma execução é mediado pelo `ExecutionContext`

## Componentes

- **types**
  - `StepKind`, `StepStatus`, `TraceEntry`, `Outcome`

- **step**
  - `Step` (Protocol) e as especificações estruturais
    `Named`, `GroupRef`, `Nested`, `Guarded`

- **conditions**
  - `Condition`, `ConditionalStep`, `when`, `unless`, `branch`

- **context**
  - `ExecutionContext`: identidade da run, eventos, warnings e recuperações

- **registry**
  - `GroupRegistry`: catálogo explícito de grupos nomeados

## Limites Explícitos

- Não compõe nem executa pipelines (ver `stepflow.core.engine`)
- Não decide políticas de recuperação (ver `stepflow.core.resilience`)
"""

from .conditions import Condition, ConditionalStep, branch, unless, when
from .context import ExecutionContext
from .errors import (
    GroupCycleError,
    GroupNotFoundError,
    InvalidConditionError,
    InvalidStepSpecError,
    PipelineBuildError,
    UnsupportedOperatorError,
)
from .registry import GroupRegistry
from .step import GroupRef, Guarded, Named, Nested, Step, group, guarded, named, nested
from .types import Outcome, StepKind, StepStatus, TraceEntry

__all__ = [
    "Condition",
    "ConditionalStep",
    "ExecutionContext",
    "GroupCycleError",
    "GroupNotFoundError",
    "GroupRef",
    "GroupRegistry",
    "Guarded",
    "InvalidConditionError",
    "InvalidStepSpecError",
    "Named",
    "Nested",
    "Outcome",
    "PipelineBuildError",
    "Step",
    "StepKind",
    "StepStatus",
    "TraceEntry",
    "UnsupportedOperatorError",
    "branch",
    "group",
    "guarded",
    "named",
    "nested",
    "unless",
    "when",
]

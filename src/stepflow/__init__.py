# src/stepflow/__init__.py
"""
StepFlow — pipelines sequenciais de Steps no estilo middleware.

Um pipeline encadeia Steps `handle(payload, next)` sobre um payload
fornecido pelo chamador, com suporte a condições, sub-pipelines
aninhados, grupos nomeados reutilizáveis e uma camada de resiliência
(retry, fallback, compensação e composição de estratégias).

Uso mínimo:

    from stepflow import build
    from stepflow.steps import trim, uppercase, replace

    result = build([trim, uppercase, replace(" ", "-")]).run("  hello world  ")
    result.payload  # "HELLO-WORLD"
"""

from .core.engine import Pipeline, RunResult, build, compile_steps, execute
from .core.pipeline import (
    Condition,
    ConditionalStep,
    ExecutionContext,
    GroupCycleError,
    GroupNotFoundError,
    GroupRef,
    GroupRegistry,
    Guarded,
    InvalidConditionError,
    InvalidStepSpecError,
    Named,
    Nested,
    PipelineBuildError,
    Step,
    TraceEntry,
    UnsupportedOperatorError,
    branch,
    group,
    guarded,
    named,
    nested,
    unless,
    when,
)
from .core.resilience import (
    CompensationStrategy,
    CompositeStrategy,
    Decision,
    FallbackStrategy,
    RecoveryAction,
    RecoveryStrategy,
    RetryStrategy,
)
from .core.tracing import LoggingTracer, MemoryTracer, MultiTracer, Observer, PerformanceTracer

__all__ = [
    "CompensationStrategy",
    "CompositeStrategy",
    "Condition",
    "ConditionalStep",
    "Decision",
    "ExecutionContext",
    "FallbackStrategy",
    "GroupCycleError",
    "GroupNotFoundError",
    "GroupRef",
    "GroupRegistry",
    "Guarded",
    "InvalidConditionError",
    "InvalidStepSpecError",
    "LoggingTracer",
    "MemoryTracer",
    "MultiTracer",
    "Named",
    "Nested",
    "Observer",
    "PerformanceTracer",
    "Pipeline",
    "PipelineBuildError",
    "RecoveryAction",
    "RecoveryStrategy",
    "RetryStrategy",
    "RunResult",
    "Step",
    "TraceEntry",
    "UnsupportedOperatorError",
    "branch",
    "build",
    "compile_steps",
    "execute",
    "group",
    "guarded",
    "named",
    "nested",
    "unless",
    "when",
]

# src/stepflow/core/resilience/__init__.py
"""
Camada de resiliência do StepFlow.

Estratégias são consultadas pelo Engine uma vez por falha de Step e
respondem com uma `Decision` (retry, fallback, compensate ou fail).

Uma estratégia pode proteger o pipeline inteiro (`Pipeline.with_strategy`)
ou apenas uma subsequência declarada (`guarded(steps, strategy)`).
"""

from .decision import Decision, RecoveryAction
from .strategies import (
    CompensationStrategy,
    CompositeStrategy,
    FallbackStrategy,
    RecoveryStrategy,
    RetryStrategy,
)

__all__ = [
    "CompensationStrategy",
    "CompositeStrategy",
    "Decision",
    "FallbackStrategy",
    "RecoveryAction",
    "RecoveryStrategy",
    "RetryStrategy",
]

# src/stepflow/core/tracing/__init__.py
"""
Observabilidade de execução do StepFlow.

Define o contrato `Observer` e os tracers embutidos. Um observer é
opcional e recebe um aviso por Step concluído com sucesso.
"""

from .observer import Observer
from .tracers import LoggingTracer, MemoryTracer, MultiTracer, PerformanceTracer

__all__ = [
    "LoggingTracer",
    "MemoryTracer",
    "MultiTracer",
    "Observer",
    "PerformanceTracer",
]

# src/stepflow/core/engine/__init__.py
"""
Engine do StepFlow.

Este pacote contém a implementação responsável por **compilar** e
**executar** pipelines no StepFlow.

Componentes principais:
    - compiler → resolução de grupos, aninhamentos, condições e guardas
    - engine   → composição em continuação única e execução com resiliência

Princípios fundamentais:
    - Compilação e execução são responsabilidades separadas
    - Erros estruturais acontecem no build, nunca durante a run
    - A composição é uma dobra da direita para a esquerda

Invariantes:
    - Cada run recebe um ExecutionContext próprio
    - Falhas preservam a exceção original
"""

from .compiler import Node, compile_steps
from .engine import Pipeline, RunResult, build, execute

__all__ = ["Node", "Pipeline", "RunResult", "build", "compile_steps", "execute"]

# src/stepflow/core/pipeline/step.py
"""
Contrato canônico de Step do StepFlow.

Um Step é a menor unidade executável do pipeline. Seu contrato é o de um
middleware: recebe o payload corrente e a continuação (o restante do
pipeline) e devolve o resultado final.

    handle(payload, next) -> resultado

Formas aceitas como Step direto:
    - objetos que implementam `handle(payload, next)` (protocolo `Step`)
    - funções ou callables com assinatura `(payload, next)`

Além do Step direto, este módulo define as especificações estruturais
que o compilador do Engine sabe expandir:
    - GroupRef → referência a um grupo nomeado do GroupRegistry
    - Nested   → sub-pipeline executado de forma isolada
    - Guarded  → subsequência protegida por uma estratégia própria
    - Named    → Step direto com rótulo explícito

Princípios fundamentais:
    - Steps não conhecem o Engine nem o registry
    - Steps produzem um novo payload em vez de mutar o recebido
    - Conformidade é garantida por duck typing (@runtime_checkable)

Limites explícitos:
    - Não contém lógica de composição (ver `core.engine.compiler`)
    - Não define políticas de retry ou recuperação
"""

from __future__ import annotations

import functools
import inspect
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Optional, Protocol, Sequence, runtime_checkable

if TYPE_CHECKING:
    from stepflow.core.resilience.strategies import RecoveryStrategy
    from stepflow.core.tracing.observer import Observer


Continuation = Callable[[Any], Any]


@runtime_checkable
class Step(Protocol):
    """
    Contrato canônico de um Step do StepFlow.

    Um Step executa seu trabalho sobre o payload e decide se (e com qual
    valor) chama a continuação. Não chamar a continuação encerra o pipeline
    naquele ponto, devolvendo o valor retornado pelo Step.

    Invariantes:
        - `handle` não muta o payload recebido
        - O retorno de `handle` é o resultado final visto pelo chamador
    """

    def handle(self, payload: Any, next: Continuation) -> Any:
        ...


@dataclass(frozen=True)
class Named:
    """Step direto com rótulo explícito para traces e diagnósticos."""

    label: str
    step: Any

    def __post_init__(self) -> None:
        if not isinstance(self.label, str) or not self.label.strip():
            raise ValueError("step label must be a non-empty string")
        object.__setattr__(self, "label", self.label.strip())

    def handle(self, payload: Any, next: Continuation) -> Any:
        return invoke_step(self.step, payload, next)


def named(label: str, step: Any) -> Named:
    return Named(label=label, step=step)


@dataclass(frozen=True)
class GroupRef:
    """Referência a um grupo nomeado, resolvida em tempo de build."""

    name: str

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValueError("group name must be a non-empty string")
        object.__setattr__(self, "name", self.name.strip())


def group(name: str) -> GroupRef:
    return GroupRef(name)


@dataclass(frozen=True)
class Nested:
    """
    Sub-pipeline executado até o fim antes de entregar seu payload final
    à continuação externa.

    A estratégia e o observer declarados aqui valem apenas para os Steps
    internos. Falhas internas não recuperadas são vistas pelo pipeline
    externo como falha do bloco inteiro.
    """

    steps: Sequence[Any]
    strategy: Optional["RecoveryStrategy"] = None
    observer: Optional["Observer"] = None
    label: Optional[str] = None


def nested(
    steps: Sequence[Any],
    *,
    strategy: Optional["RecoveryStrategy"] = None,
    observer: Optional["Observer"] = None,
    label: Optional[str] = None,
) -> Nested:
    return Nested(steps=list(steps), strategy=strategy, observer=observer, label=label)


@dataclass(frozen=True)
class Guarded:
    """
    Subsequência de Steps protegida por uma estratégia própria.

    Os Steps são inseridos na posição declarada (como um grupo), mas
    falhas neles consultam `strategy` em vez da estratégia do pipeline.
    Guardas aninhadas: a mais interna prevalece.
    """

    steps: Sequence[Any] = field(default_factory=list)
    strategy: Optional["RecoveryStrategy"] = None


def guarded(steps: Any, strategy: "RecoveryStrategy") -> Guarded:
    if not isinstance(steps, (list, tuple)):
        steps = [steps]
    return Guarded(steps=list(steps), strategy=strategy)


def is_step(obj: Any) -> bool:
    handle = getattr(obj, "handle", None)
    return callable(handle) or callable(obj)


def invoke_step(step: Any, payload: Any, next: Continuation) -> Any:
    handle = getattr(step, "handle", None)
    if callable(handle):
        return handle(payload, next)
    return step(payload, next)


def label_of(step: Any, position: int) -> str:
    """
    Resolve o rótulo de um Step direto.

    Ordem: atributo `label` → `__name__` (exceto lambdas) → função de um
    `functools.partial` → nome da classe. Lambdas recebem `step_NN`, onde
    NN é a posição (1-based) na lista declarada.
    """
    label = getattr(step, "label", None)
    if isinstance(label, str) and label.strip():
        return label.strip()

    if isinstance(step, functools.partial):
        return label_of(step.func, position)

    name = getattr(step, "__name__", None)
    if isinstance(name, str) and name:
        if name == "<lambda>":
            return f"step_{position:02d}"
        return name

    if inspect.isclass(step):
        return step.__name__
    return type(step).__name__

# src/stepflow/core/engine/compiler.py
"""
Compilador de especificações de Steps.

Este módulo é responsável por validar a lista de especificações de um
pipeline e produzir uma sequência imutável de nós prontos para execução
pelo Engine.

O compilador opera exclusivamente em nível estrutural, resolvendo:
    - referências a grupos (expandidas no ponto declarado)
    - sub-pipelines aninhados (compilados recursivamente)
    - descritores condicionais (validados e com ramos compilados)
    - subsequências protegidas por estratégia própria (Guarded)

Princípios fundamentais:
    - Toda validação estrutural ocorre antes da execução
    - A mesma definição produz sempre a mesma sequência de nós
    - O resultado não depende de mudanças posteriores no registry

Decisões arquiteturais:
    - Grupos são expandidos por cópia, preservando a ordem de declaração
    - Ciclos entre grupos são detectados pela pilha de expansão
    - A estratégia de um Guarded é gravada nos nós que ele protege; a guarda
      mais interna prevalece
    - Ramos condicionais herdam a estratégia em escopo no ponto da condição

Invariantes:
    - Nenhum nó referencia nomes de grupos (todos já resolvidos)
    - Erros estruturais derivam de `PipelineBuildError`

Limites explícitos:
    - Não executa Steps
    - Não interage com ExecutionContext
    - Não decide políticas de recuperação
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from stepflow.core.pipeline.conditions import ConditionalStep, conditional_from_definition
from stepflow.core.pipeline.errors import GroupCycleError, InvalidStepSpecError
from stepflow.core.pipeline.registry import GroupRegistry
from stepflow.core.pipeline.step import GroupRef, Guarded, Nested, is_step, label_of
from stepflow.core.pipeline.types import StepKind


@dataclass(frozen=True)
class Node:
    """
    Nó compilado do pipeline.

    Campos por variante:
        - DIRECT: `step`
        - CONDITIONAL: `conditional`, `then`, `otherwise` (None sem ramo else)
        - NESTED: `children`, `inner_strategy`, `inner_observer`

    `strategy` é a estratégia do Guarded mais interno que envolve o nó,
    ou None quando vale a estratégia do pipeline.
    """

    kind: StepKind
    label: str
    position: int
    step: Any = None
    conditional: Optional[ConditionalStep] = None
    then: Tuple["Node", ...] = ()
    otherwise: Optional[Tuple["Node", ...]] = None
    children: Tuple["Node", ...] = ()
    inner_strategy: Any = None
    inner_observer: Any = None
    strategy: Any = None


def compile_steps(specs: Sequence[Any], registry: GroupRegistry) -> Tuple[Node, ...]:
    """
    Valida e compila uma lista de especificações de Steps.

    Args:
        specs: lista ordenada de especificações (ver `stepflow.core.pipeline.step`).
        registry: registry usado para resolver referências a grupos.

    Returns:
        Tuple[Node, ...]: nós na ordem de execução.

    Raises:
        InvalidStepSpecError: elemento sem forma reconhecida.
        GroupNotFoundError: referência a grupo não registrado.
        GroupCycleError: grupos com referência cíclica.
        InvalidConditionError / UnsupportedOperatorError: condição inválida.
    """
    if not isinstance(specs, (list, tuple)):
        raise InvalidStepSpecError(f"Pipeline steps must be a list, got {type(specs).__name__}")
    out: List[Node] = []
    _expand(specs, registry, out, stack=(), strategy=None)
    return tuple(out)


def _expand(
    specs: Sequence[Any],
    registry: GroupRegistry,
    out: List[Node],
    *,
    stack: Tuple[str, ...],
    strategy: Any,
) -> None:
    for spec in specs:
        position = len(out) + 1

        if isinstance(spec, (str, GroupRef)):
            name = spec.name if isinstance(spec, GroupRef) else spec.strip()
            if name in stack:
                raise GroupCycleError("Group reference cycle: " + " -> ".join(stack + (name,)))
            _expand(registry.resolve(name), registry, out, stack=stack + (name,), strategy=strategy)

        elif isinstance(spec, Guarded):
            if spec.strategy is None:
                raise InvalidStepSpecError("Guarded steps require a strategy")
            if not isinstance(spec.steps, (list, tuple)):
                raise InvalidStepSpecError("Guarded steps must be a list")
            _expand(spec.steps, registry, out, stack=stack, strategy=spec.strategy)

        elif isinstance(spec, Nested):
            out.append(_nested_node(spec.steps, registry, stack, position, strategy, spec))

        elif isinstance(spec, (list, tuple)):
            out.append(_nested_node(spec, registry, stack, position, strategy, None))

        elif isinstance(spec, (ConditionalStep, Mapping)):
            conditional = spec if isinstance(spec, ConditionalStep) else conditional_from_definition(spec)
            out.append(_conditional_node(conditional, registry, stack, position, strategy))

        elif is_step(spec):
            out.append(
                Node(
                    kind=StepKind.DIRECT,
                    label=label_of(spec, position),
                    position=position,
                    step=spec,
                    strategy=strategy,
                )
            )

        else:
            raise InvalidStepSpecError(
                f"Unsupported step specification at position {position}: {type(spec).__name__}"
            )


def _nested_node(
    steps: Sequence[Any],
    registry: GroupRegistry,
    stack: Tuple[str, ...],
    position: int,
    strategy: Any,
    spec: Optional[Nested],
) -> Node:
    if not isinstance(steps, (list, tuple)):
        raise InvalidStepSpecError("Nested pipeline steps must be a list")
    children: List[Node] = []
    _expand(steps, registry, children, stack=stack, strategy=None)
    label = spec.label if spec is not None and spec.label else f"nested_{position:02d}"
    return Node(
        kind=StepKind.NESTED,
        label=label,
        position=position,
        children=tuple(children),
        inner_strategy=spec.strategy if spec is not None else None,
        inner_observer=spec.observer if spec is not None else None,
        strategy=strategy,
    )


def _branch(
    spec: Any,
    registry: GroupRegistry,
    stack: Tuple[str, ...],
    strategy: Any,
) -> Tuple[Node, ...]:
    branch: List[Node] = []
    specs = spec if isinstance(spec, (list, tuple)) else [spec]
    _expand(specs, registry, branch, stack=stack, strategy=strategy)
    return tuple(branch)


def _conditional_node(
    conditional: ConditionalStep,
    registry: GroupRegistry,
    stack: Tuple[str, ...],
    position: int,
    strategy: Any,
) -> Node:
    otherwise = None
    if conditional.otherwise is not None:
        otherwise = _branch(conditional.otherwise, registry, stack, strategy)
    return Node(
        kind=StepKind.CONDITIONAL,
        label=conditional.describe(),
        position=position,
        conditional=conditional,
        then=_branch(conditional.then, registry, stack, strategy),
        otherwise=otherwise,
        strategy=strategy,
    )

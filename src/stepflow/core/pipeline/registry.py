# src/stepflow/core/pipeline/registry.py
"""
Registro de grupos nomeados de Steps.

Este módulo define o `GroupRegistry`, responsável por associar nomes a
listas ordenadas de especificações de Steps reutilizáveis em vários
pipelines.

O registry é uma instância explícita, passada ao builder por referência.
Não existe registry global: testes criam um registry novo por caso.

Responsabilidades do módulo:
    - Registrar grupos (o último registro de um nome prevalece)
    - Resolver nomes em tempo de build
    - Expor consulta e limpeza do catálogo

Decisões arquiteturais:
    - O conteúdo é armazenado como tupla imutável (cópia no registro)
    - `resolve` devolve uma nova lista (cópia no uso); pipelines já
      construídos não são afetados por mudanças posteriores no registry
    - Nomes desconhecidos geram `GroupNotFoundError`, sempre antes de
      qualquer payload ser processado

Invariantes:
    - Cada nome de grupo é uma string não vazia
    - A ordem de declaração dos Steps de um grupo é preservada

Limites explícitos:
    - Não compila nem executa Steps
    - Não possui lock interno: escrito no bootstrap e lido depois;
      leitores concorrentes são seguros apenas sem escritores simultâneos
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Sequence, Tuple

from .errors import GroupNotFoundError, InvalidStepSpecError


@dataclass
class GroupRegistry:
    """
    Catálogo de grupos nomeados de especificações de Steps.

    Decisões arquiteturais:
        - Re-registrar um nome sobrescreve a entrada anterior
        - Entradas são imutáveis depois de registradas
        - A ordem de registro dos nomes é preservada em `names()`
    """

    _groups: Dict[str, Tuple[Any, ...]] = field(default_factory=dict, init=False, repr=False)

    def register(self, name: str, steps: Sequence[Any]) -> None:
        if not isinstance(name, str) or not name.strip():
            raise ValueError("group name must be a non-empty string")
        if not isinstance(steps, (list, tuple)):
            raise InvalidStepSpecError(
                f"Group '{name}' steps must be a list, got {type(steps).__name__}"
            )
        key = name.strip()
        # re-registro move o nome para o fim da ordem
        self._groups.pop(key, None)
        self._groups[key] = tuple(steps)

    def resolve(self, name: str) -> List[Any]:
        if name not in self._groups:
            raise GroupNotFoundError(name)
        return list(self._groups[name])

    def has(self, name: str) -> bool:
        return name in self._groups

    def clear(self) -> None:
        self._groups.clear()

    def names(self) -> List[str]:
        return list(self._groups)

    def all(self) -> Dict[str, List[Any]]:
        return {name: list(steps) for name, steps in self._groups.items()}

    def __contains__(self, name: object) -> bool:
        return name in self._groups

    def __len__(self) -> int:
        return len(self._groups)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._groups))

# src/stepflow/core/pipeline/types.py
"""
Tipos canônicos do pipeline do StepFlow.

Este módulo define as estruturas e enums fundamentais que padronizam
a comunicação entre Steps, Engine, estratégias de resiliência e tracers.

Componentes principais:
    - StepKind   → enum de variantes estruturais de Steps
    - StepStatus → enum de estados finais de um Step dentro de uma run
    - TraceEntry → registro imutável de um Step concluído com sucesso
    - Outcome    → resultado interno (sucesso | falha) de uma cadeia de Steps

Princípios fundamentais:
    - Tipos são estáveis e serializáveis
    - Nenhuma lógica de execução vive neste módulo
    - O payload é opaco: nenhum tipo aqui inspeciona sua estrutura

Invariantes:
    - Enums possuem valores textuais canônicos
    - TraceEntry e Outcome são imutáveis

Limites explícitos:
    - Não executa Steps
    - Não compõe pipelines
    - Não decide políticas de recuperação
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class StepKind(str, Enum):
    """
    Variantes estruturais de Steps no pipeline.

    Tipos definidos:
        - DIRECT: executa trabalho e chama a continuação
        - CONDITIONAL: avalia um predicado e executa um ramo
        - NESTED: sub-pipeline executado até o fim, de forma isolada

    Referências a grupos não possuem variante própria: são expandidas
    em tempo de build e seus Steps tornam-se DIRECT (ou qualquer outra
    variante declarada no grupo).
    """
    DIRECT = "direct"
    CONDITIONAL = "conditional"
    NESTED = "nested"


class StepStatus(str, Enum):
    """
    Estados finais possíveis de um Step em uma run.

    Estados definidos:
        - SUCCESS: o Step concluiu e entregou seu resultado à continuação
        - RECOVERED: o Step falhou e uma estratégia substituiu seu resultado
          (fallback ou compensação)
        - FAILED: o Step falhou sem recuperação
    """
    SUCCESS = "success"
    RECOVERED = "recovered"
    FAILED = "failed"


@dataclass(frozen=True)
class TraceEntry:
    """
    Registro imutável de um Step concluído com sucesso.

    Campos:
        - label: nome do Step no pipeline
        - before: payload recebido pelo Step
        - after: payload entregue pelo Step à continuação
        - duration_ms: duração isolada do trabalho do Step

    Uma entrada é produzida por Step concluído, nunca por tentativa
    de retry que falhou.
    """
    label: str
    before: Any
    after: Any
    duration_ms: float


@dataclass(frozen=True)
class Outcome:
    """
    Resultado interno de uma cadeia de Steps (Result/Either).

    O Engine opera sobre valores `Outcome` em vez de propagar exceções
    entre Steps, o que permite às estratégias de resiliência decidir
    sobre falhas como dados.

    Invariantes:
        - `ok=True`  → `value` contém o payload final e `error` é None
        - `ok=False` → `error` contém a exceção original, sem encapsulamento
    """
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None
    step: Optional[str] = None
    attempts: int = 0

    @classmethod
    def success(cls, value: Any) -> "Outcome":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: BaseException, *, step: str, attempts: int) -> "Outcome":
        return cls(ok=False, error=error, step=step, attempts=attempts)

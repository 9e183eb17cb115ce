# src/stepflow/core/pipeline/errors.py
"""
Exceções canônicas de build do pipeline do StepFlow.

Falhas de build são detectadas antes que qualquer payload seja processado:
referências a grupos inexistentes, descritores condicionais malformados,
operadores de comparação não suportados e especificações de Step inválidas.

Princípios fundamentais:
    - Erros de build são sempre fatais e imediatos
    - Erros de build nunca são submetidos a estratégias de resiliência
    - Todas as exceções herdam de `PipelineBuildError`

Limites explícitos:
    - Não representa falhas de execução de Steps (essas preservam
      a exceção original levantada pelo Step)
"""


class PipelineBuildError(ValueError):
    """
    Exceção base para falhas estruturais detectadas em tempo de build.

    Permite captura genérica de qualquer erro de montagem do pipeline,
    separando-o de falhas de execução de Steps.
    """


class InvalidStepSpecError(PipelineBuildError):
    """
    Elemento da lista de Steps não corresponde a nenhuma forma aceita.

    Formas aceitas: Step/callable, nome de grupo (str), GroupRef, lista
    aninhada, Nested, Guarded, ConditionalStep ou descritor condicional.
    """


class GroupNotFoundError(PipelineBuildError, LookupError):
    """
    Referência a um grupo não registrado no GroupRegistry.

    Levantada pelo registry em `resolve()` e, portanto, sempre durante
    o build do pipeline, nunca durante a execução.
    """

    def __init__(self, name: str):
        super().__init__(f"Group '{name}' is not registered")
        self.name = name

    def __str__(self) -> str:
        return self.args[0]


class GroupCycleError(PipelineBuildError):
    """
    Grupos que se referenciam de forma cíclica.

    Exemplo: grupo `a` contém `b` e grupo `b` contém `a`. Nenhuma
    expansão finita existe, então o build é interrompido.
    """


class InvalidConditionError(PipelineBuildError):
    """Descritor condicional malformado (campos ausentes ou de tipo inválido)."""


class UnsupportedOperatorError(InvalidConditionError):
    """Operador de comparação fora do conjunto suportado."""

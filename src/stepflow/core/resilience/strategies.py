# src/stepflow/core/resilience/strategies.py
"""
Estratégias de resiliência do StepFlow.

Este módulo define o contrato `RecoveryStrategy` e as estratégias
embutidas consultadas pelo Engine quando um Step falha:

    - RetryStrategy        → nova tentativa com atraso constante, linear ou exponencial
    - FallbackStrategy     → substitui o resultado do Step por um valor alternativo
    - CompensationStrategy → executa rollback/limpeza e substitui o resultado
    - CompositeStrategy    → lista ordenada; a primeira decisão não-FAIL prevalece

Decisões arquiteturais:
    - Estratégias são frozen dataclasses, sem estado entre chamadas; a mesma
      instância pode ser compartilhada por várias runs e pipelines
    - A contagem de tentativas é fornecida pelo Engine (`attempt`, a partir
      de 1); o teto de tentativas é regra da estratégia
    - O escopo por categoria de erro é declarado com `on` (tipo ou tupla de
      tipos de exceção) e/ou `when(error, attempt) -> bool`; erros fora do
      escopo resultam em FAIL

Invariantes:
    - `decide` nunca levanta por causa de um handler do usuário: falhas do
      handler resultam em FAIL com o erro do handler em `details`
    - O erro original é sempre o erro propagado pelo Engine

Limites explícitos:
    - Não executa Steps
    - Não aguarda atrasos (o Engine aplica `delay_ms`)
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, Tuple, Type, Union, runtime_checkable

from .decision import Decision, RecoveryAction


ErrorTypes = Union[Type[BaseException], Tuple[Type[BaseException], ...]]
ErrorFilter = Callable[[BaseException, int], bool]
DelayFunction = Callable[[int], float]


@runtime_checkable
class RecoveryStrategy(Protocol):
    """
    Contrato de uma estratégia de resiliência.

    Args de `decide`:
        error: exceção original levantada pelo Step
        payload: payload recebido pelo Step na tentativa que falhou
        attempt: número da tentativa que falhou (1-based)
        context: dados do Step (`step`, `position`, `pipeline`, `run_id`)
    """

    def decide(self, error: BaseException, payload: Any, attempt: int, context: Mapping[str, Any]) -> Decision:
        ...


def _in_scope(on: Optional[ErrorTypes], when: Optional[ErrorFilter], error: BaseException, attempt: int) -> bool:
    if on is not None and not isinstance(error, on):
        return False
    if when is not None and not when(error, attempt):
        return False
    return True


def _describe_error(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


# ---------------------------------------------------------------------
# Retry
# ---------------------------------------------------------------------
def _linear_delay(base_delay_ms: float, increment_ms: float, attempt: int) -> float:
    return base_delay_ms + attempt * increment_ms


def _exponential_delay(base_delay_ms: float, multiplier: float, attempt: int) -> float:
    return base_delay_ms * multiplier ** (attempt - 1)


@dataclass(frozen=True)
class RetryStrategy:
    """
    Reexecuta o Step que falhou até `max_attempts` tentativas.

    A tentativa `attempt` que falhou recebe RETRY enquanto
    `attempt < max_attempts`; ao atingir o teto a estratégia responde FAIL.
    Com `max_attempts=0` a estratégia nunca tenta novamente.

    O atraso é `delay(attempt)` quando uma função de atraso é fornecida,
    senão `delay_ms` constante.
    """

    max_attempts: int = 3
    delay_ms: float = 100
    delay: Optional[DelayFunction] = None
    on: Optional[ErrorTypes] = None
    when: Optional[ErrorFilter] = None

    def __post_init__(self) -> None:
        if not isinstance(self.max_attempts, int) or isinstance(self.max_attempts, bool) or self.max_attempts < 0:
            raise ValueError("max_attempts must be an integer >= 0")
        if self.delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")

    @classmethod
    def constant(
        cls,
        max_attempts: int = 3,
        delay_ms: float = 100,
        *,
        on: Optional[ErrorTypes] = None,
        when: Optional[ErrorFilter] = None,
    ) -> "RetryStrategy":
        return cls(max_attempts=max_attempts, delay_ms=delay_ms, on=on, when=when)

    @classmethod
    def linear(
        cls,
        max_attempts: int = 3,
        base_delay_ms: float = 100,
        increment_ms: float = 100,
        *,
        on: Optional[ErrorTypes] = None,
        when: Optional[ErrorFilter] = None,
    ) -> "RetryStrategy":
        return cls(
            max_attempts=max_attempts,
            delay_ms=base_delay_ms,
            delay=functools.partial(_linear_delay, base_delay_ms, increment_ms),
            on=on,
            when=when,
        )

    @classmethod
    def exponential(
        cls,
        max_attempts: int = 3,
        base_delay_ms: float = 100,
        multiplier: float = 2.0,
        *,
        on: Optional[ErrorTypes] = None,
        when: Optional[ErrorFilter] = None,
    ) -> "RetryStrategy":
        return cls(
            max_attempts=max_attempts,
            delay_ms=base_delay_ms,
            delay=functools.partial(_exponential_delay, base_delay_ms, multiplier),
            on=on,
            when=when,
        )

    @classmethod
    def for_exception(cls, exc_type: ErrorTypes, max_attempts: int = 3, delay_ms: float = 100) -> "RetryStrategy":
        return cls(max_attempts=max_attempts, delay_ms=delay_ms, on=exc_type)

    def delay_for(self, attempt: int) -> float:
        if self.delay is not None:
            return max(0, self.delay(attempt))
        return self.delay_ms

    def decide(self, error: BaseException, payload: Any, attempt: int, context: Mapping[str, Any]) -> Decision:
        if not _in_scope(self.on, self.when, error, attempt):
            return Decision.fail(details={"reason": "out_of_scope"})
        if attempt >= self.max_attempts:
            return Decision.fail(details={"reason": "retries_exhausted", "attempts": attempt})
        delay = self.delay_for(attempt)
        return Decision.retry(
            delay,
            details={"retry_attempt": attempt, "retry_delay": delay, "retry_reason": str(error)},
        )


# ---------------------------------------------------------------------
# Fallback
# ---------------------------------------------------------------------
def _constant_value(value: Any, payload: Any, error: BaseException) -> Any:
    return value


def _transform_payload(fn: Callable[[Any], Any], payload: Any, error: BaseException) -> Any:
    return fn(payload)


@dataclass(frozen=True)
class FallbackStrategy:
    """
    Substitui o resultado do Step que falhou por `handler(payload, error)`.

    O valor devolvido pelo handler é entregue à continuação do Step, e o
    restante do pipeline segue como se o Step tivesse concluído.
    """

    handler: Callable[[Any, BaseException], Any]
    on: Optional[ErrorTypes] = None
    when: Optional[ErrorFilter] = None

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError("fallback handler must be callable")

    @classmethod
    def with_default(
        cls, value: Any, *, on: Optional[ErrorTypes] = None, when: Optional[ErrorFilter] = None
    ) -> "FallbackStrategy":
        return cls(handler=functools.partial(_constant_value, value), on=on, when=when)

    @classmethod
    def with_transform(
        cls, fn: Callable[[Any], Any], *, on: Optional[ErrorTypes] = None, when: Optional[ErrorFilter] = None
    ) -> "FallbackStrategy":
        return cls(handler=functools.partial(_transform_payload, fn), on=on, when=when)

    @classmethod
    def for_exception(cls, exc_type: ErrorTypes, handler: Callable[[Any, BaseException], Any]) -> "FallbackStrategy":
        return cls(handler=handler, on=exc_type)

    def decide(self, error: BaseException, payload: Any, attempt: int, context: Mapping[str, Any]) -> Decision:
        if not _in_scope(self.on, self.when, error, attempt):
            return Decision.fail(details={"reason": "out_of_scope"})
        try:
            value = self.handler(payload, error)
        except Exception as handler_error:
            return Decision.fail(
                details={"reason": "fallback_failed", "handler_error": _describe_error(handler_error)}
            )
        return Decision.fallback(value, details={"fallback_reason": str(error)})


# ---------------------------------------------------------------------
# Compensation
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class CompensationStrategy:
    """
    Executa `handler(payload, error, context)` para desfazer efeitos do Step
    e entrega o valor devolvido à continuação.

    `rollback` e `cleanup` são nomes alternativos de construção, úteis para
    deixar explícita a intenção do handler.
    """

    handler: Callable[[Any, BaseException, Mapping[str, Any]], Any]
    on: Optional[ErrorTypes] = None
    when: Optional[ErrorFilter] = None

    def __post_init__(self) -> None:
        if not callable(self.handler):
            raise TypeError("compensation handler must be callable")

    @classmethod
    def rollback(cls, handler: Callable[..., Any], *, when: Optional[ErrorFilter] = None) -> "CompensationStrategy":
        return cls(handler=handler, when=when)

    @classmethod
    def cleanup(cls, handler: Callable[..., Any], *, when: Optional[ErrorFilter] = None) -> "CompensationStrategy":
        return cls(handler=handler, when=when)

    @classmethod
    def for_exception(cls, exc_type: ErrorTypes, handler: Callable[..., Any]) -> "CompensationStrategy":
        return cls(handler=handler, on=exc_type)

    def decide(self, error: BaseException, payload: Any, attempt: int, context: Mapping[str, Any]) -> Decision:
        if not _in_scope(self.on, self.when, error, attempt):
            return Decision.fail(details={"reason": "out_of_scope"})
        try:
            value = self.handler(payload, error, context)
        except Exception as handler_error:
            return Decision.fail(
                details={"reason": "compensation_failed", "handler_error": _describe_error(handler_error)}
            )
        return Decision.compensate(value, details={"compensation_reason": str(error)})


# ---------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------
@dataclass(frozen=True)
class CompositeStrategy:
    """
    Lista ordenada de estratégias consultadas em sequência.

    A primeira decisão diferente de FAIL prevalece; se todas respondem
    FAIL, a composta responde FAIL com os detalhes de cada sub-estratégia.
    Uma sub-estratégia que levanta exceção ou não devolve Decision conta
    como FAIL e a consulta segue para a próxima.
    Os métodos de construção devolvem novas instâncias.
    """

    strategies: Tuple[Any, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "strategies", tuple(self.strategies))
        for s in self.strategies:
            if not callable(getattr(s, "decide", None)):
                raise TypeError(f"{type(s).__name__} does not implement decide()")

    def add(self, strategy: RecoveryStrategy) -> "CompositeStrategy":
        return CompositeStrategy(self.strategies + (strategy,))

    def retry(self, strategy: RetryStrategy) -> "CompositeStrategy":
        return self.add(strategy)

    def fallback(self, strategy: FallbackStrategy) -> "CompositeStrategy":
        return self.add(strategy)

    def compensate(self, strategy: CompensationStrategy) -> "CompositeStrategy":
        return self.add(strategy)

    def decide(self, error: BaseException, payload: Any, attempt: int, context: Mapping[str, Any]) -> Decision:
        declined: Dict[str, Any] = {}
        for index, strategy in enumerate(self.strategies):
            name = f"{index}:{type(strategy).__name__}"
            try:
                decision = strategy.decide(error, payload, attempt, context)
            except Exception as strategy_error:
                declined[name] = {"reason": "strategy_raised", "error": _describe_error(strategy_error)}
                continue
            if not isinstance(decision, Decision):
                declined[name] = {"reason": "invalid_decision", "received": type(decision).__name__}
                continue
            if decision.action is not RecoveryAction.FAIL:
                return decision
            declined[name] = dict(decision.details)
        return Decision.fail(details={"reason": "no_strategy_recovered", "declined": declined})

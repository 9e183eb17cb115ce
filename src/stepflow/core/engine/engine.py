# src/stepflow/core/engine/engine.py
"""
Engine de execução do pipeline do StepFlow.

O Engine compõe os nós compilados em uma única continuação (dobra da
direita para a esquerda, com a identidade como continuação final) e a
invoca uma vez por run.

Cada elo da cadeia devolve um `Outcome` em vez de propagar exceções entre
Steps. Dentro de um elo, a falha do Step é tratada como dado:

    1. O Step falha com o payload P na tentativa A (a partir de 1)
    2. A estratégia em escopo é consultada com (erro, P, A, contexto)
    3. RETRY      → aguarda `delay_ms` e reexecuta o mesmo Step com P e A+1
       FALLBACK   → entrega o novo payload à continuação do Step
       COMPENSATE → idem FALLBACK (diferença apenas em eventos)
       FAIL       → a run termina com o erro original

Decisões arquiteturais:
    - Uma falha ocorrida depois que o Step entregou seu resultado à
      continuação pertence ao Step seguinte e nunca é reavaliada pela
      estratégia do Step anterior, nem pode ser descartada por um Step que
      capture a exceção vinda de `next`
    - Estratégias que levantam exceção ou devolvem algo diferente de
      `Decision` são tratadas como FAIL e registradas no contexto
    - Falhas do observer são registradas como warning e não interrompem a run
    - Erros de Steps nunca são encapsulados: o RunResult carrega a exceção
      original, o rótulo do Step e o número final de tentativas

Limites explícitos:
    - Execução síncrona, em uma única thread
    - Nenhum Step é executado em paralelo
    - Não persiste payloads intermediários
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from stepflow.core.errors import ErrorPayload, error_payload_for
from stepflow.core.pipeline.context import RUN_STEP_ID, ExecutionContext
from stepflow.core.pipeline.registry import GroupRegistry
from stepflow.core.pipeline.step import invoke_step
from stepflow.core.pipeline.types import Outcome, StepKind, StepStatus
from stepflow.core.resilience.decision import Decision, RecoveryAction
from stepflow.core.resilience.strategies import (
    CompensationStrategy,
    FallbackStrategy,
    RetryStrategy,
)

from .compiler import Node, compile_steps


Link = Callable[[Any], Outcome]


def _describe(error: BaseException) -> str:
    return f"{type(error).__name__}: {error}"


def _terminal(payload: Any) -> Outcome:
    return Outcome.success(payload)


@dataclass(frozen=True)
class RunResult:
    """
    Resultado de uma execução de pipeline.

    Pode ser desempacotado como `(payload, error)`:

        payload, error = pipeline.run(data)

    Invariantes:
        - sucesso → `error` é None e `payload` contém o resultado final
        - falha   → `payload` é None; `error` é a exceção original
    """

    payload: Any = None
    error: Optional[BaseException] = None
    failed_step: Optional[str] = None
    attempts: int = 0
    context: Optional[ExecutionContext] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __iter__(self) -> Iterator[Any]:
        yield self.payload
        yield self.error

    def unwrap(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.payload

    def error_payload(self) -> Optional[ErrorPayload]:
        if self.error is None:
            return None
        return error_payload_for(self.error, step=self.failed_step, attempts=self.attempts)

    @property
    def status(self) -> StepStatus:
        if self.error is not None:
            return StepStatus.FAILED
        if self.context is not None and self.context.recoveries:
            return StepStatus.RECOVERED
        return StepStatus.SUCCESS


class _Settled(Exception):
    """Falha já decidida dentro de um ramo condicional."""

    def __init__(self, outcome: Outcome):
        super().__init__(outcome.step)
        self.outcome = outcome


@dataclass
class _Handoff:
    failure: Optional[Outcome] = None
    traced: bool = False


class _Runner:
    """Estado de uma run: contexto, estratégia, observer e espera."""

    def __init__(
        self,
        *,
        ctx: ExecutionContext,
        strategy: Any,
        observer: Any,
        sleep: Callable[[float], None],
        pipeline: str,
    ):
        self.ctx = ctx
        self.strategy = strategy
        self.observer = observer
        self.sleep = sleep
        self.pipeline = pipeline

    # -----------------------------
    # Composition
    # -----------------------------
    def chain(self, nodes: Sequence[Node], *, observe: bool = True) -> Link:
        rest: Link = _terminal
        for node in reversed(nodes):
            rest = self._link(node, rest, observe)
        return rest

    def _link(self, node: Node, rest: Link, observe: bool) -> Link:
        def run_node(payload: Any) -> Outcome:
            attempt = 1
            while True:
                handoff = _Handoff()
                started = time.perf_counter()

                def next_(value: Any) -> Any:
                    if not handoff.traced:
                        handoff.traced = True
                        if observe:
                            self._trace(node.label, payload, value, (time.perf_counter() - started) * 1000.0)
                    self.ctx.payload = value
                    outcome = rest(value)
                    if not outcome.ok:
                        handoff.failure = outcome
                        raise outcome.error
                    return outcome.value

                try:
                    result = self._invoke(node, payload, next_)
                except _Settled as settled:
                    return settled.outcome
                except Exception as exc:
                    if handoff.failure is not None:
                        # falha da continuação, mesmo que reencapsulada pelo Step
                        return handoff.failure

                    decision = self._consult(node, exc, payload, attempt)

                    if decision.action is RecoveryAction.RETRY:
                        self.ctx.log(
                            step_id=node.label,
                            level="info",
                            message="step.retry",
                            attempt=attempt,
                            delay_ms=decision.delay_ms,
                            error=_describe(exc),
                        )
                        self.sleep(decision.delay_ms / 1000.0)
                        attempt += 1
                        continue

                    if decision.recovers:
                        self.ctx.log(
                            step_id=node.label,
                            level="warning",
                            message=f"step.{decision.action.value}",
                            attempt=attempt,
                            error=_describe(exc),
                            details=dict(decision.details),
                        )
                        self.ctx.record_recovery(
                            step_id=node.label,
                            action=decision.action.value,
                            attempt=attempt,
                            error=exc,
                        )
                        self.ctx.payload = decision.payload
                        return rest(decision.payload)

                    self.ctx.log(
                        step_id=node.label,
                        level="error",
                        message="step.failed",
                        attempt=attempt,
                        error=_describe(exc),
                        details=dict(decision.details),
                    )
                    return Outcome.failure(exc, step=node.label, attempts=attempt)

                if handoff.failure is not None:
                    # falha da continuação capturada pelo próprio Step
                    return handoff.failure
                if not handoff.traced and observe:
                    # Step encerrou a cadeia sem chamar a continuação
                    self._trace(node.label, payload, result, (time.perf_counter() - started) * 1000.0)
                return Outcome.success(result)

        return run_node

    # -----------------------------
    # Variants
    # -----------------------------
    def _invoke(self, node: Node, payload: Any, next_: Callable[[Any], Any]) -> Any:
        if node.kind is StepKind.DIRECT:
            return invoke_step(node.step, payload, next_)

        if node.kind is StepKind.CONDITIONAL:
            if node.conditional.matches(payload):
                branch = node.then
            elif node.otherwise is not None:
                branch = node.otherwise
            else:
                return next_(payload)
            outcome = self.chain(branch, observe=False)(payload)
            if not outcome.ok:
                raise _Settled(outcome)
            return next_(outcome.value)

        inner = _Runner(
            ctx=self.ctx,
            strategy=node.inner_strategy,
            observer=node.inner_observer,
            sleep=self.sleep,
            pipeline=f"{self.pipeline}/{node.label}",
        )
        outcome = inner.chain(node.children)(payload)
        if not outcome.ok:
            self.ctx.log(
                step_id=node.label,
                level="error",
                message="nested.failed",
                inner_step=outcome.step,
                attempts=outcome.attempts,
                error=_describe(outcome.error),
            )
            raise outcome.error
        return next_(outcome.value)

    # -----------------------------
    # Strategy & observer
    # -----------------------------
    def _consult(self, node: Node, error: BaseException, payload: Any, attempt: int) -> Decision:
        strategy = node.strategy if node.strategy is not None else self.strategy
        if strategy is None:
            return Decision.fail(details={"reason": "no_strategy"})

        context = {
            "step": node.label,
            "position": node.position,
            "pipeline": self.pipeline,
            "run_id": self.ctx.run_id,
        }
        try:
            decision = strategy.decide(error, payload, attempt, context)
        except Exception as strategy_error:
            self.ctx.log(
                step_id=node.label,
                level="error",
                message="strategy.raised",
                strategy=type(strategy).__name__,
                error=_describe(strategy_error),
            )
            return Decision.fail(details={"reason": "strategy_raised"})

        if not isinstance(decision, Decision):
            self.ctx.log(
                step_id=node.label,
                level="error",
                message="strategy.invalid_decision",
                strategy=type(strategy).__name__,
                received=type(decision).__name__,
            )
            return Decision.fail(details={"reason": "invalid_decision"})
        return decision

    def _trace(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        if self.observer is None:
            return
        try:
            self.observer.on_step_complete(label, before, after, duration_ms)
        except Exception as observer_error:
            self.ctx.log(
                step_id=label,
                level="warning",
                message="observer.failed",
                observer=type(self.observer).__name__,
                error=_describe(observer_error),
            )
            self.ctx.add_warning(step_id=label, message=f"observer failed: {_describe(observer_error)}")


class Pipeline:
    """
    Pipeline construído a partir de uma lista de especificações de Steps.

    A lista é compilada no construtor: grupos inexistentes, ciclos e
    condições inválidas falham aqui, antes de qualquer payload.

    Uma instância pode ser executada várias vezes; cada run recebe um
    ExecutionContext próprio.
    """

    def __init__(
        self,
        steps: Sequence[Any],
        *,
        registry: Optional[GroupRegistry] = None,
        strategy: Any = None,
        observer: Any = None,
        name: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.registry = registry if registry is not None else GroupRegistry()
        self.nodes = compile_steps(steps, self.registry)
        self.strategy = strategy
        self.observer = observer
        self.name = name or "pipeline"
        self._sleep = sleep
        self._tags: Dict[str, Any] = {}

    # -----------------------------
    # Fluent configuration
    # -----------------------------
    def with_strategy(self, strategy: Any) -> "Pipeline":
        if strategy is not None and not callable(getattr(strategy, "decide", None)):
            raise TypeError(f"{type(strategy).__name__} does not implement decide()")
        self.strategy = strategy
        return self

    def with_retry(self, max_attempts: int = 3, delay_ms: float = 100) -> "Pipeline":
        return self.with_strategy(RetryStrategy.constant(max_attempts, delay_ms))

    def exponential_backoff(
        self, max_attempts: int = 3, base_delay_ms: float = 100, multiplier: float = 2.0
    ) -> "Pipeline":
        return self.with_strategy(RetryStrategy.exponential(max_attempts, base_delay_ms, multiplier))

    def linear_backoff(
        self, max_attempts: int = 3, base_delay_ms: float = 100, increment_ms: float = 100
    ) -> "Pipeline":
        return self.with_strategy(RetryStrategy.linear(max_attempts, base_delay_ms, increment_ms))

    def with_fallback(self, handler: Callable[[Any, BaseException], Any]) -> "Pipeline":
        return self.with_strategy(FallbackStrategy(handler))

    def with_compensation(self, handler: Callable[..., Any]) -> "Pipeline":
        return self.with_strategy(CompensationStrategy(handler))

    def with_observer(self, observer: Any) -> "Pipeline":
        self.observer = observer
        return self

    def tag(self, key: str, value: Any) -> "Pipeline":
        self._tags[key] = value
        return self

    # -----------------------------
    # Introspection
    # -----------------------------
    @property
    def tags(self) -> Dict[str, Any]:
        return dict(self._tags)

    def labels(self) -> List[str]:
        return [n.label for n in self.nodes]

    def __len__(self) -> int:
        return len(self.nodes)

    # -----------------------------
    # Execution
    # -----------------------------
    def run(self, payload: Any) -> RunResult:
        ctx = ExecutionContext(observer=self.observer, payload=payload, tags=dict(self._tags))
        ctx.log(step_id=RUN_STEP_ID, level="info", message="run.started", pipeline=self.name, steps=len(self.nodes))

        runner = _Runner(
            ctx=ctx,
            strategy=self.strategy,
            observer=self.observer,
            sleep=self._sleep,
            pipeline=self.name,
        )
        outcome = runner.chain(self.nodes)(payload)

        if outcome.ok:
            ctx.payload = outcome.value
            result = RunResult(payload=outcome.value, context=ctx)
            ctx.log(step_id=RUN_STEP_ID, level="info", message="run.finished", status=result.status.value)
            return result

        ctx.log(
            step_id=RUN_STEP_ID,
            level="error",
            message="run.finished",
            status=StepStatus.FAILED.value,
            failed_step=outcome.step,
            attempts=outcome.attempts,
            error=_describe(outcome.error),
        )
        return RunResult(
            error=outcome.error,
            failed_step=outcome.step,
            attempts=outcome.attempts,
            context=ctx,
        )

    def process(self, payload: Any) -> Any:
        return self.run(payload).unwrap()


def build(
    steps: Sequence[Any],
    *,
    registry: Optional[GroupRegistry] = None,
    strategy: Any = None,
    observer: Any = None,
    name: Optional[str] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Pipeline:
    return Pipeline(steps, registry=registry, strategy=strategy, observer=observer, name=name, sleep=sleep)


def execute(
    initial_payload: Any,
    steps: Sequence[Any],
    strategy: Any = None,
    observer: Any = None,
    registry: Optional[GroupRegistry] = None,
) -> RunResult:
    return build(steps, registry=registry, strategy=strategy, observer=observer).run(initial_payload)

# tests/core/engine/test_pipeline_conditions.py
"""
Testes de Steps condicionais executados pelo Engine.

Os testes asseguram que:
- `when` executa o ramo apenas quando o predicado é verdadeiro
- um predicado falso sem ramo `else` é a identidade
- `unless` e `branch` seguem a mesma semântica com lógica invertida/dupla
- descritores declarativos são avaliados sobre payloads aninhados
- o condicional é observado como uma unidade
- Steps do ramo herdam a estratégia em escopo no ponto da condição

Invariantes:
    - O predicado é avaliado uma vez por execução do condicional
    - Erros de definição de condição surgem no build
"""

import pytest

try:
    from stepflow.core.engine.engine import build
    from stepflow.core.pipeline.conditions import branch, unless, when
    from stepflow.core.pipeline.errors import InvalidConditionError, UnsupportedOperatorError
    from stepflow.core.pipeline.step import guarded
    from stepflow.core.resilience.strategies import FallbackStrategy, RetryStrategy
except Exception as e:  # noqa: BLE001
    build = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if build is None:
        pytest.fail(f"Missing pipeline engine. Import error: {_IMPORT_ERR}")


def test_false_predicate_without_else_is_identity(add):
    """
    run(P, [when(false, steps)]) == run(P, []) == P
    """
    _require_imports()

    result = build([when(lambda p: False, [add(1)])]).run(5)

    assert result.payload == build([]).run(5).payload == 5


def test_true_predicate_runs_branch_then_continues(add):
    _require_imports()

    result = build([when(lambda p: p > 0, [add(10), add(20)]), add(1)]).run(1)

    assert result.payload == 32


def test_else_branch_runs_when_predicate_is_false(add):
    _require_imports()

    pipeline = build([when(lambda p: p > 0, add(1), add(-1))])

    assert pipeline.run(5).payload == 6
    assert pipeline.run(-5).payload == -6


def test_unless_inverts_the_predicate(add):
    _require_imports()

    pipeline = build([unless(lambda p: p == 0, [add(100)])])

    assert pipeline.run(0).payload == 0
    assert pipeline.run(1).payload == 101


def test_branch_requires_both_paths(add):
    _require_imports()

    with pytest.raises(InvalidConditionError):
        branch(lambda p: True, add(1), None)

    assert build([branch(lambda p: p, add(1), add(2))]).run(0).payload == 2


def test_declarative_condition_on_nested_payload(add):
    """
    Verifica a forma declarativa `{field, operator, value}` com caminho
    pontuado sobre um payload aninhado.
    """
    _require_imports()

    def mark_adult(payload, next):
        return next({**payload, "adult": True})

    pipeline = build(
        [
            {
                "field": "user.profile.age",
                "operator": "greater_than",
                "value": 17,
                "then": [mark_adult],
            }
        ]
    )

    adult = pipeline.run({"user": {"profile": {"age": 30}}})
    minor = pipeline.run({"user": {"profile": {"age": 12}}})
    missing = pipeline.run({"user": {}})

    assert adult.payload["adult"] is True
    assert "adult" not in minor.payload
    assert "adult" not in missing.payload


def test_group_name_as_branch(registry, add):
    _require_imports()
    registry.register("bonus", [add(1000)])

    result = build([when(lambda p: True, "bonus")], registry=registry).run(1)

    assert result.payload == 1001


def test_unsupported_operator_fails_at_build():
    _require_imports()

    with pytest.raises(UnsupportedOperatorError):
        build([{"field": "age", "operator": "between", "value": [1, 2], "then": []}])


def test_descriptor_without_operator_fails_at_build(add):
    _require_imports()

    with pytest.raises(InvalidConditionError):
        build([{"field": "age", "then": [add(1)]}])


def test_descriptor_without_then_fails_at_build():
    _require_imports()

    with pytest.raises(InvalidConditionError):
        build([{"condition": {"field": "a", "operator": "equals", "value": 1}}])


def test_conditional_is_traced_as_one_unit(add, tracer):
    """
    Verifica que o condicional gera uma única entrada de trace, com o
    payload antes do predicado e o payload entregue à continuação.
    Os Steps do ramo não são observados individualmente.
    """
    _require_imports()

    result = build(
        [when({"field": "n", "operator": "equals", "value": 1}, [lambda p, next: next({"n": 2})])],
        observer=tracer,
    ).run({"n": 1})

    assert result.payload == {"n": 2}
    assert tracer.steps() == ["when(n equals 1)"]
    entry = tracer.entries[0]
    assert entry.before == {"n": 1}
    assert entry.after == {"n": 2}


def test_skipped_conditional_is_still_traced(tracer):
    _require_imports()

    build([unless(lambda p: True, [])], observer=tracer).run("x")

    assert tracer.steps() == ["unless(predicate)"]
    assert tracer.entries[0].before == tracer.entries[0].after == "x"


def test_branch_steps_use_pipeline_strategy(Flaky, sleeper):
    _require_imports()
    flaky = Flaky(1)

    result = build(
        [when(lambda p: True, [flaky])],
        strategy=RetryStrategy(max_attempts=3, delay_ms=0),
        sleep=sleeper,
    ).run("p")

    assert result.ok
    assert flaky.calls == 2


def test_branch_steps_use_enclosing_guard(Flaky):
    _require_imports()

    result = build(
        [guarded([when(lambda p: True, [Flaky(1)])], FallbackStrategy.with_default("guarded"))],
    ).run("p")

    assert result.payload == "guarded"


def test_unrecovered_branch_failure_reports_branch_step(Flaky, add):
    """
    A falha de um Step do ramo encerra a run com o rótulo do próprio Step,
    sem ser reavaliada como falha do condicional.
    """
    _require_imports()
    error = RuntimeError("branch")
    after = Flaky(0, label="after")

    result = build(
        [when(lambda p: True, [add(1), Flaky(1, error=error, label="inner")]), after],
        strategy=RetryStrategy(max_attempts=0),
    ).run(0)

    assert result.error is error
    assert result.failed_step == "inner"
    assert after.calls == 0


def test_failure_after_conditional_is_not_attributed_to_it(Flaky):
    _require_imports()
    after = Flaky(1, label="after")

    result = build([when(lambda p: True, [lambda p, next: next(p)]), after]).run(0)

    assert result.failed_step == "after"

# tests/core/pipeline/test_context_and_steps.py
"""
Testes do ExecutionContext e do contrato de Step.

Este módulo valida as estruturas de apoio do pipeline que não dependem
do Engine.

Os testes asseguram que:
- cada contexto possui run_id próprio e timestamp UTC
- eventos estruturados incluem run_id, step_id, nível e timestamp
- warnings e recuperações são acumulados por Step
- objetos com `handle` e callables `(payload, next)` são Steps
- rótulos de Steps seguem a ordem de resolução documentada

Invariantes:
    - O contexto não é compartilhado entre instâncias
    - Rótulos nunca são vazios
"""

import functools
from datetime import timezone

import pytest

try:
    from stepflow.core.pipeline.context import ExecutionContext
    from stepflow.core.pipeline.step import (
        GroupRef,
        Named,
        Step,
        invoke_step,
        is_step,
        label_of,
        named,
    )
except Exception as e:  # noqa: BLE001
    ExecutionContext = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if ExecutionContext is None:
        pytest.fail(f"Missing pipeline core. Import error: {_IMPORT_ERR}")


class Upper:
    label = "upper"

    def handle(self, payload, next):
        return next(payload.upper())


class Unlabelled:
    def handle(self, payload, next):
        return next(payload)


def passthrough(payload, next):
    return next(payload)


# -----------------------------
# ExecutionContext
# -----------------------------
def test_context_identity():
    _require_imports()

    a, b = ExecutionContext(), ExecutionContext()

    assert a.run_id != b.run_id
    assert len(a.run_id) == 32
    assert a.created_at.tzinfo == timezone.utc


def test_context_log_is_structured():
    """
    Verifica que eventos registrados via `log` carregam os campos
    canônicos e os campos extras informados.
    """
    _require_imports()
    ctx = ExecutionContext()

    ctx.log(step_id="s1", level="info", message="step.retry", attempt=2)

    event = ctx.events[0]
    assert event["run_id"] == ctx.run_id
    assert event["step_id"] == "s1"
    assert event["level"] == "info"
    assert event["message"] == "step.retry"
    assert event["attempt"] == 2
    assert "timestamp" in event
    assert ctx.events_for("s1") == [event]
    assert ctx.events_for("other") == []


def test_context_warnings_and_recoveries():
    _require_imports()
    ctx = ExecutionContext()

    ctx.add_warning(step_id="s", message="first")
    ctx.add_warning(step_id="s", message="second")
    ctx.record_recovery(step_id="s", action="fallback", attempt=1, error=ValueError("bad"))

    assert ctx.warnings == {"s": ["first", "second"]}
    assert ctx.recoveries == [{"step_id": "s", "action": "fallback", "attempt": 1, "error": "ValueError: bad"}]
    assert ctx.recovered_steps() == ["s"]


def test_context_tags_and_meta():
    _require_imports()
    ctx = ExecutionContext(tags={"env": "test"})

    ctx.tag("team", "core")
    ctx.set_meta("source", "api")

    assert ctx.tags == {"env": "test", "team": "core"}
    assert ctx.get_meta("source") == "api"
    assert ctx.get_meta("missing", "fallback") == "fallback"


# -----------------------------
# Step contract
# -----------------------------
def test_step_protocol_and_callables():
    _require_imports()

    assert isinstance(Upper(), Step)
    assert is_step(Upper())
    assert is_step(passthrough)
    assert not is_step("group-name-is-not-a-step")
    assert not is_step(42)


def test_invoke_step_uses_handle_or_call():
    _require_imports()

    assert invoke_step(Upper(), "abc", lambda p: p) == "ABC"
    assert invoke_step(passthrough, "abc", lambda p: p + "!") == "abc!"


@pytest.mark.parametrize(
    "step, expected",
    [
        (Upper(), "upper"),
        (passthrough, "passthrough"),
        (functools.partial(passthrough), "passthrough"),
        (Unlabelled(), "Unlabelled"),
        (lambda p, n: n(p), "step_07"),
    ],
)
def test_label_resolution(step, expected):
    _require_imports()

    assert label_of(step, 7) == expected


def test_named_wraps_any_step():
    _require_imports()

    step = named("  shout  ", Upper())

    assert isinstance(step, Named)
    assert step.label == "shout"
    assert step.handle("hey", lambda p: p) == "HEY"
    with pytest.raises(ValueError):
        named("", passthrough)


def test_group_ref_validates_name():
    _require_imports()

    assert GroupRef(" g ").name == "g"
    with pytest.raises(ValueError):
        GroupRef("")

# tests/steps/test_transform_and_validation.py
"""
Testes de TransformStep e ValidationStep.

Este módulo valida os Steps embutidos que transformam ou validam o
payload antes de chamar a continuação.

Os testes asseguram que:
- TransformStep aplica a função e seus construtores map/filter/pluck
- ValidationStep aceita payloads válidos sem alterá-los
- violações levantam ValidationFailedError com erros por campo
- falhas de validação podem ser recuperadas por estratégias do pipeline

Invariantes:
    - Nenhum dos Steps muta o payload recebido
    - Erros de validação carregam `details["errors"]` serializável
"""

import pytest

try:
    from stepflow.core.engine.engine import build
    from stepflow.core.errors import STEP_VALIDATION_ERROR
    from stepflow.core.exceptions import ValidationFailedError
    from stepflow.core.resilience.strategies import FallbackStrategy
    from stepflow.steps.transform import TransformStep
    from stepflow.steps.validation import ValidationStep
except Exception as e:  # noqa: BLE001
    TransformStep = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if TransformStep is None:
        pytest.fail(f"Missing built-in steps. Import error: {_IMPORT_ERR}")


def _run(step, payload):
    return step.handle(payload, lambda p: p)


# -----------------------------
# TransformStep
# -----------------------------
def test_transform_applies_function():
    _require_imports()

    step = TransformStep(lambda p: p * 3)

    assert step.label == "transform"
    assert _run(step, 2) == 6


def test_transform_requires_callable():
    _require_imports()

    with pytest.raises(TypeError):
        TransformStep("nope")


def test_map_filter_pluck():
    _require_imports()
    rows = [{"id": 1, "active": True}, {"id": 2, "active": False}]

    assert _run(TransformStep.map(lambda x: x + 1), [1, 2]) == [2, 3]
    assert _run(TransformStep.map(lambda x: x + 1), 1) == 2
    assert _run(TransformStep.filter(lambda r: r["active"]), rows) == [rows[0]]
    assert _run(TransformStep.filter(lambda v: v > 1), {"a": 1, "b": 2}) == {"b": 2}
    assert _run(TransformStep.filter(lambda v: v > 1), 0) is None
    assert _run(TransformStep.pluck("id"), rows) == [1, 2]
    assert _run(TransformStep.pluck("id"), rows[1]) == 2
    assert TransformStep.pluck("id").label == "pluck:id"


def test_filter_does_not_mutate_input():
    _require_imports()
    data = [1, 2, 3]

    _run(TransformStep.filter(lambda v: v > 1), data)

    assert data == [1, 2, 3]


# -----------------------------
# ValidationStep
# -----------------------------
def test_valid_payload_passes_unchanged():
    _require_imports()
    payload = {"user": {"email": "ana@example.com"}, "age": 30}
    step = ValidationStep({"user.email": ["required", "email"], "age": ["numeric"]})

    assert _run(step, payload) is payload


def test_invalid_payload_raises_with_field_errors():
    """
    Verifica que todas as regras violadas são reportadas, agrupadas por
    campo, em `details["errors"]`.
    """
    _require_imports()
    step = ValidationStep({"email": ["required", "email"], "age": ["numeric"], "name": "required"})

    with pytest.raises(ValidationFailedError) as exc:
        _run(step, {"email": "not-an-email", "age": "old"})

    errors = exc.value.errors
    assert errors == {
        "email": ["failed rule 'email'"],
        "age": ["failed rule 'numeric'"],
        "name": ["failed rule 'required'"],
    }
    assert str(exc.value) == "Validation failed for 3 field(s)"
    assert exc.value.code == STEP_VALIDATION_ERROR


def test_numeric_bounds():
    _require_imports()
    step = ValidationStep.numeric("score", min=0, max=10)

    assert _run(step, {"score": 5}) == {"score": 5}
    with pytest.raises(ValidationFailedError) as exc:
        _run(step, {"score": 11})
    assert exc.value.errors == {"score": ["failed rule 'max:10'"]}


def test_callable_rules_and_scalar_payloads():
    _require_imports()

    def positive(value):
        return value > 0

    step = ValidationStep({"value": [positive]})

    assert _run(step, 3) == 3
    with pytest.raises(ValidationFailedError) as exc:
        _run(step, -1)
    assert exc.value.errors == {"value": ["failed rule 'positive'"]}


def test_rule_raising_type_error_counts_as_failure():
    _require_imports()
    step = ValidationStep({"n": [lambda v: v > 0]})

    with pytest.raises(ValidationFailedError):
        _run(step, {"n": "text"})


def test_multiple_fields_require_mapping_payload():
    _require_imports()
    step = ValidationStep.required(["a", "b"])

    with pytest.raises(ValidationFailedError) as exc:
        _run(step, "scalar")

    assert "*" in exc.value.errors


@pytest.mark.parametrize("rules", [{}, {"a": ["unknown_rule"]}, {"a": [42]}])
def test_invalid_rule_declarations(rules):
    _require_imports()

    with pytest.raises(ValueError):
        ValidationStep(rules)


def test_validation_failure_in_pipeline_is_recoverable():
    """
    Uma falha de validação é uma falha comum de Step: uma estratégia com
    escopo em ValidationFailedError pode substituir o resultado.
    """
    _require_imports()

    strategy = FallbackStrategy.for_exception(ValidationFailedError, lambda p, e: {"errors": e.errors})
    result = build([ValidationStep.email()], strategy=strategy).run({"email": "bad"})

    assert result.payload == {"errors": {"email": ["failed rule 'email'"]}}


def test_unrecovered_validation_failure_error_payload():
    _require_imports()

    result = build([ValidationStep.required(["id"])]).run({})
    body = result.error_payload().to_dict()

    assert body["type"] == STEP_VALIDATION_ERROR
    assert body["details"]["errors"] == {"id": ["failed rule 'required'"]}
    assert body["details"]["step"] == "validate"

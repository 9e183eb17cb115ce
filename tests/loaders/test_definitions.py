# tests/loaders/test_definitions.py
"""
Testes dos loaders declarativos (fluxos e grupos em YAML/JSON).

Os testes asseguram que:
- definições de ações, referências importáveis, grupos, blocos aninhados
  e condicionais são convertidas em especificações de Steps
- arquivos de fluxo produzem Pipelines executáveis
- arquivos (ou diretórios) de grupos registram grupos no registry recebido
- definições inválidas geram erros de build

Decisões arquiteturais:
    - Arquivos são gravados em `tmp_path`; nenhum fixture de disco é compartilhado

Limites explícitos:
    - Não valida o comportamento dos Steps importados além do resultado final
"""

import json
from pathlib import Path

import pytest

try:
    from stepflow.core.pipeline.conditions import ConditionalStep
    from stepflow.core.pipeline.errors import (
        GroupNotFoundError,
        InvalidConditionError,
        InvalidStepSpecError,
        UnsupportedOperatorError,
    )
    from stepflow.core.pipeline.step import GroupRef, Named, Nested
    from stepflow.loaders.definitions import build_step, build_steps, import_reference, load_flow, load_groups
    from stepflow.steps.actions import trim
    from stepflow.steps.batch import BatchStep
except Exception as e:  # noqa: BLE001
    build_step = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if build_step is None:
        pytest.fail(f"Missing declarative loaders. Import error: {_IMPORT_ERR}")


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


# -----------------------------
# build_step
# -----------------------------
def test_import_reference():
    _require_imports()

    assert import_reference("stepflow.steps.actions:trim") is trim
    with pytest.raises(InvalidStepSpecError):
        import_reference("no_colon_here")
    with pytest.raises(InvalidStepSpecError):
        import_reference("stepflow.does_not_exist:thing")
    with pytest.raises(InvalidStepSpecError):
        import_reference("stepflow.steps.actions:missing")


def test_build_step_variants():
    """
    Verifica cada forma de definição aceita por `build_step`.
    """
    _require_imports()

    assert build_step("notifications") == GroupRef("notifications")
    assert build_step({"type": "group", "name": "audit"}) == GroupRef("audit")
    assert build_step({"step": "stepflow.steps.actions:trim"}) is trim

    batch = build_step({"step": "stepflow.steps.batch:BatchStep", "params": {"size": 5}})
    assert isinstance(batch, BatchStep)
    assert batch.size == 5

    appended = build_step({"type": "action", "action": "append", "value": "!"})
    assert appended.handle("hi", lambda p: p) == "hi!"

    labelled = build_step({"action": "replace", "old": " ", "new": "-", "label": "slugify"})
    assert isinstance(labelled, Named)
    assert labelled.label == "slugify"

    block = build_step({"type": "nested", "steps": ["a", "b"], "label": "inner"})
    assert isinstance(block, Nested)
    assert block.label == "inner"
    assert list(block.steps) == [GroupRef("a"), GroupRef("b")]


def test_build_conditional_definitions():
    _require_imports()

    declarative = build_step(
        {
            "condition": {"field": "user.age", "operator": "greater_than", "value": 17},
            "then": [{"action": "uppercase"}],
            "else": {"action": "lowercase"},
        }
    )
    referenced = build_step({"condition": "operator:truth", "then": "vip"})
    negated = build_step({"condition": "operator:truth", "else": "empty"})

    assert isinstance(declarative, ConditionalStep)
    assert declarative.matches({"user": {"age": 30}})
    assert declarative.otherwise is not None
    assert referenced.matches(1) and not referenced.matches(0)
    assert referenced.then == [GroupRef("vip")]
    assert negated.negate
    assert negated.matches(0)


@pytest.mark.parametrize(
    "definition, error",
    [
        (42, InvalidStepSpecError),
        ({"type": "mystery"}, InvalidStepSpecError),
        ({"action": "shout"}, InvalidStepSpecError),
        ({"action": "append"}, InvalidStepSpecError),
        ({"type": "group"}, InvalidStepSpecError),
        ({"type": "nested", "steps": []}, InvalidStepSpecError),
        ({"step": "stepflow.steps.actions:trim", "params": {"x": 1}}, InvalidStepSpecError),
        ({"step": "stepflow.steps.batch:BatchStep", "params": {"nope": 1}}, InvalidStepSpecError),
        ({"condition": {"field": "a", "operator": "between"}, "then": []}, UnsupportedOperatorError),
        ({"condition": 3, "then": []}, InvalidConditionError),
        ({"condition": {"field": "a", "operator": "equals"}}, InvalidConditionError),
    ],
)
def test_invalid_definitions(definition, error):
    _require_imports()

    with pytest.raises(error):
        build_step(definition)


def test_build_steps_requires_list():
    _require_imports()

    with pytest.raises(InvalidStepSpecError):
        build_steps({"action": "trim"})


# -----------------------------
# Files
# -----------------------------
def test_load_flow_from_yaml(tmp_path: Path):
    """
    Verifica que um fluxo YAML com ações, condição e bloco aninhado é
    montado e executado de ponta a ponta.
    """
    _require_imports()
    flow = _write(
        tmp_path / "slug.yaml",
        """
flow: slugify
steps:
  - action: trim
  - action: lowercase
  - condition: "operator:not_"
    then: [{action: append, value: "-empty"}]
  - type: nested
    label: dashes
    steps:
      - {action: replace, old: " ", new: "-"}
""",
    )

    pipeline = load_flow(flow)

    assert pipeline.name == "slugify"
    assert pipeline.run("  Hello World ").payload == "hello-world"


def test_load_flow_uses_file_stem_and_options(tmp_path: Path, tracer):
    _require_imports()
    flow = _write(tmp_path / "shout.json", json.dumps({"steps": [{"action": "uppercase"}]}))

    pipeline = load_flow(flow, observer=tracer)

    assert pipeline.name == "shout"
    assert pipeline.run("a").payload == "A"
    assert tracer.steps() == ["uppercase"]


def test_load_flow_with_registered_groups(tmp_path: Path, registry):
    """
    Verifica que grupos carregados de um diretório ficam disponíveis para
    fluxos construídos com o mesmo registry.
    """
    _require_imports()
    groups = tmp_path / "groups"
    groups.mkdir()
    _write(groups / "clean.yaml", "steps:\n  - action: trim\n  - action: lowercase\n")
    _write(groups / "b_shout.yml", "group: shout\nsteps:\n  - action: uppercase\n")
    _write(groups / "notes.txt", "ignored")
    flow = _write(tmp_path / "flow.yaml", "steps:\n  - clean\n  - {type: group, name: shout}\n")

    names = load_groups(groups, registry)
    pipeline = load_flow(flow, registry=registry)

    assert names == ["shout", "clean"]
    assert registry.names() == ["shout", "clean"]
    assert pipeline.run("  MiXeD ").payload == "MIXED"


def test_load_single_group_file(tmp_path: Path, registry):
    _require_imports()
    file = _write(tmp_path / "only.yaml", "group: only\nsteps: [{action: reverse}]\n")

    assert load_groups(file, registry) == ["only"]
    assert registry.has("only")


def test_flow_with_unknown_group_fails_at_build(tmp_path: Path, registry):
    _require_imports()
    flow = _write(tmp_path / "flow.yaml", "steps: [missing]\n")

    with pytest.raises(GroupNotFoundError):
        load_flow(flow, registry=registry)


@pytest.mark.parametrize(
    "name, text",
    [
        ("no_steps.yaml", "flow: x\n"),
        ("list_root.yaml", "- action: trim\n"),
        ("flow.toml", "steps = []\n"),
    ],
)
def test_invalid_flow_files(tmp_path: Path, name, text):
    _require_imports()
    flow = _write(tmp_path / name, text)

    with pytest.raises(InvalidStepSpecError):
        load_flow(flow)


def test_missing_files_raise_file_not_found(tmp_path: Path, registry):
    _require_imports()

    with pytest.raises(FileNotFoundError):
        load_flow(tmp_path / "absent.yaml")
    with pytest.raises(FileNotFoundError):
        load_groups(tmp_path / "absent.yaml", registry)

# src/stepflow/loaders/definitions.py
"""
Definições declarativas de Steps, fluxos e grupos.

Este módulo converte definições em dicionários (lidos de YAML ou JSON)
em especificações de Steps aceitas pelo Engine.

Formas de definição de Step:

    - trim                                   (string → referência a grupo)
    - {type: action, action: append, value: "!"}
    - {type: action, action: replace, old: " ", new: "-"}
    - {step: "pacote.modulo:atributo", params: {...}}
    - {type: group, name: notifications}
    - {type: nested, steps: [...], label: "..."}
    - {condition: {field: a.b, operator: equals, value: 1}, then: [...], else: [...]}

Arquivo de fluxo:

    flow: user-registration
    description: ...
    steps: [...]

Arquivo de grupo:

    group: notifications
    steps: [...]

Decisões arquiteturais:
    - Referências `modulo:atributo` são importadas com importlib; classes
      são instanciadas com `params`
    - Erros de definição derivam de `PipelineBuildError`
    - Grupos são registrados no registry recebido; não há registry global

Limites explícitos:
    - Não executa pipelines
    - Não valida o comportamento dos Steps importados
"""

from __future__ import annotations

import importlib
import inspect
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from stepflow.core.config.errors import ConfigError
from stepflow.core.config.loader import read_mapping_file
from stepflow.core.engine.engine import Pipeline
from stepflow.core.pipeline.conditions import Condition, unless, when
from stepflow.core.pipeline.errors import InvalidConditionError, InvalidStepSpecError
from stepflow.core.pipeline.registry import GroupRegistry
from stepflow.core.pipeline.step import GroupRef, Named, Nested
from stepflow.steps.actions import ACTIONS, action


logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

DEFINITION_SUFFIXES = (".yaml", ".yml", ".json")
_ACTION_PARAMS = ("value", "old", "new")


def import_reference(reference: str) -> Any:
    """
    Importa um objeto a partir de `pacote.modulo:atributo`.

    Raises:
        InvalidStepSpecError: referência malformada ou não importável.
    """
    if not isinstance(reference, str) or ":" not in reference:
        raise InvalidStepSpecError(f"Step reference must look like 'module:attribute', got {reference!r}")
    module_name, _, attr_path = reference.partition(":")
    try:
        obj: Any = importlib.import_module(module_name)
    except ImportError as exc:
        raise InvalidStepSpecError(f"Cannot import module '{module_name}': {exc}") from exc
    for attr in attr_path.split("."):
        if not hasattr(obj, attr):
            raise InvalidStepSpecError(f"'{module_name}' has no attribute '{attr_path}'")
        obj = getattr(obj, attr)
    return obj


def _build_action(definition: Mapping) -> Any:
    name = definition.get("action")
    if not isinstance(name, str) or name not in ACTIONS:
        raise InvalidStepSpecError(
            f"Unknown action {name!r} (available: {', '.join(sorted(ACTIONS))})"
        )
    params = dict(definition.get("params") or {})
    for key in _ACTION_PARAMS:
        if key in definition:
            params[key] = definition[key]
    try:
        return action(name, **params)
    except TypeError as exc:
        raise InvalidStepSpecError(f"Invalid parameters for action '{name}': {exc}") from exc


def _build_reference(definition: Mapping) -> Any:
    reference = definition.get("step") or definition.get("class")
    target = import_reference(reference)
    params = definition.get("params") or {}
    if not isinstance(params, Mapping):
        raise InvalidStepSpecError(f"'params' of step '{reference}' must be a mapping")
    if inspect.isclass(target):
        try:
            return target(**params)
        except TypeError as exc:
            raise InvalidStepSpecError(f"Cannot instantiate '{reference}': {exc}") from exc
    if params:
        raise InvalidStepSpecError(f"'params' are only supported for classes, '{reference}' is not a class")
    return target


def _build_condition(condition: Any) -> Any:
    if isinstance(condition, str):
        predicate = import_reference(condition)
        if not callable(predicate):
            raise InvalidConditionError(f"Condition '{condition}' is not callable")
        return predicate
    if isinstance(condition, Mapping):
        return Condition.from_definition(condition)
    raise InvalidConditionError(
        f"Condition must be a mapping or a 'module:attribute' reference, got {type(condition).__name__}"
    )


def _branch(definition: Any) -> List[Any]:
    if isinstance(definition, (list, tuple)):
        return build_steps(definition)
    return [build_step(definition)]


def _build_conditional(definition: Mapping) -> Any:
    predicate = _build_condition(definition["condition"])
    then = definition.get("then")
    otherwise = definition.get("else")
    label = definition.get("label")
    if then is None and otherwise is None:
        raise InvalidConditionError("Conditional definition must declare 'then' or 'else'")
    if then is None:
        return unless(predicate, _branch(otherwise), label=label)
    return when(
        predicate,
        _branch(then),
        _branch(otherwise) if otherwise is not None else None,
        label=label,
    )


def build_step(definition: Any) -> Any:
    """
    Converte uma definição declarativa em especificação de Step.

    Raises:
        InvalidStepSpecError: tipo desconhecido ou campos obrigatórios ausentes.
        InvalidConditionError / UnsupportedOperatorError: condição inválida.
    """
    if isinstance(definition, str):
        return GroupRef(definition)
    if not isinstance(definition, Mapping):
        raise InvalidStepSpecError(
            f"Step definition must be a mapping or a group name, got {type(definition).__name__}"
        )

    if "condition" in definition:
        return _build_conditional(definition)

    kind = definition.get("type")
    if kind is None:
        kind = "step" if "step" in definition else "action" if "action" in definition else None

    if kind in ("action", "closure"):
        step = _build_action(definition)
    elif kind in ("step", "class"):
        step = _build_reference(definition)
    elif kind == "group":
        name = definition.get("name")
        if not isinstance(name, str) or not name.strip():
            raise InvalidStepSpecError("Group definition must declare 'name'")
        return GroupRef(name)
    elif kind == "nested":
        steps = definition.get("steps")
        if not isinstance(steps, (list, tuple)) or not steps:
            raise InvalidStepSpecError("Nested definition must declare a non-empty 'steps' list")
        return Nested(steps=build_steps(steps), label=definition.get("label"))
    else:
        raise InvalidStepSpecError(
            f"Step definition must contain 'step', 'action', 'condition' or a known 'type', got {kind!r}"
        )

    label = definition.get("label")
    if label:
        return Named(label, step)
    return step


def build_steps(definitions: Sequence[Any]) -> List[Any]:
    if not isinstance(definitions, (list, tuple)):
        raise InvalidStepSpecError(f"Step definitions must be a list, got {type(definitions).__name__}")
    return [build_step(d) for d in definitions]


def _read_definition(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Definition file not found: {path}")
    try:
        data = read_mapping_file(path)
    except ConfigError as exc:
        raise InvalidStepSpecError(str(exc)) from exc
    if not isinstance(data, Mapping):
        raise InvalidStepSpecError(f"Definition root must be a mapping: {path}")
    return dict(data)


def load_flow(
    path: PathLike,
    registry: Optional[GroupRegistry] = None,
    **pipeline_options: Any,
) -> Pipeline:
    """
    Lê um arquivo de fluxo e constrói o Pipeline correspondente.

    Args:
        path: arquivo YAML/JSON com `steps` (e opcionalmente `flow`).
        registry: registry para referências a grupos.
        pipeline_options: `strategy`, `observer`, `sleep`, `name`.
    """
    file = Path(path)
    definition = _read_definition(file)
    if "steps" not in definition:
        raise InvalidStepSpecError(f"Flow definition must declare 'steps': {file}")
    pipeline_options.setdefault("name", definition.get("flow") or file.stem)
    steps = build_steps(definition["steps"])
    logger.debug("loaded flow '%s' with %d step(s)", pipeline_options["name"], len(steps))
    return Pipeline(steps, registry=registry, **pipeline_options)


def _group_files(path: Path) -> List[Path]:
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.suffix.lower() in DEFINITION_SUFFIXES)
    if not path.exists():
        raise FileNotFoundError(f"Group definition path not found: {path}")
    return [path]


def load_groups(path: PathLike, registry: GroupRegistry) -> List[str]:
    """
    Registra os grupos definidos em um arquivo ou diretório.

    Cada arquivo declara `group` (padrão: nome do arquivo) e `steps`.
    Arquivos de diretório são lidos em ordem alfabética.

    Returns:
        List[str]: nomes registrados, na ordem de leitura.
    """
    names: List[str] = []
    for file in _group_files(Path(path)):
        definition = _read_definition(file)
        name = definition.get("group") or file.stem
        if "steps" not in definition:
            raise InvalidStepSpecError(f"Group definition must declare 'steps': {file}")
        registry.register(name, build_steps(definition["steps"]))
        names.append(name)
        logger.debug("registered group '%s' from %s", name, file)
    return names

# src/stepflow/core/pipeline/conditions.py
"""
Condições e Steps condicionais do StepFlow.

Este módulo define:
    - Condition        → predicado puro sobre o payload
    - ConditionalStep  → Step que executa um ramo conforme um predicado
    - when / unless    → construtores canônicos de ConditionalStep
    - conditional_from_definition → leitura de descritores declarativos

Forma declarativa de condição:

    {"field": "user.profile.age", "operator": "greater_than", "value": 18}

O campo é um caminho pontuado avaliado sobre payloads aninhados
(mapeamentos, sequências com índices inteiros ou atributos de objetos).
Um caminho inexistente resolve para `None`.

Operadores suportados:
    - equals, contains, greater_than, less_than, in

Invariantes:
    - Predicados não alteram o payload
    - Operadores desconhecidos são rejeitados em tempo de build
    - Comparações de ordem com `None` resultam em False

Limites explícitos:
    - Não valida sintaxe completa de arquivos de definição
      (responsabilidade de `stepflow.loaders`)
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from .errors import InvalidConditionError, UnsupportedOperatorError


Predicate = Callable[[Any], bool]

_MISSING = object()


def resolve_path(payload: Any, path: str) -> Any:
    """Resolve um caminho pontuado (`a.b.0.c`) sobre o payload; ausente → None."""
    current = payload
    for segment in path.split("."):
        current = _step_into(current, segment)
        if current is _MISSING:
            return None
    return current


def _step_into(value: Any, segment: str) -> Any:
    if isinstance(value, Mapping):
        return value.get(segment, _MISSING)
    if isinstance(value, Sequence) and not isinstance(value, (str, bytes)):
        try:
            return value[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    if value is None:
        return _MISSING
    return getattr(value, segment, _MISSING)


def _equals(actual: Any, expected: Any) -> bool:
    return actual == expected


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    if isinstance(actual, str):
        return isinstance(expected, str) and expected in actual
    try:
        return expected in actual
    except TypeError:
        return False


def _greater_than(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    try:
        return actual > expected
    except TypeError:
        return False


def _less_than(actual: Any, expected: Any) -> bool:
    if actual is None or expected is None:
        return False
    try:
        return actual < expected
    except TypeError:
        return False


def _in(actual: Any, expected: Any) -> bool:
    if expected is None:
        return False
    try:
        return actual in expected
    except TypeError:
        return False


OPERATORS: Dict[str, Callable[[Any, Any], bool]] = {
    "equals": _equals,
    "contains": _contains,
    "greater_than": _greater_than,
    "less_than": _less_than,
    "in": _in,
}


@dataclass(frozen=True)
class Condition:
    """
    Predicado declarativo `campo operador valor`.

    Instâncias são construídas via `Condition.from_definition`, que valida
    a presença de `field` e `operator` e rejeita operadores não suportados.
    """

    field: str
    operator: str
    value: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.field, str) or not self.field.strip():
            raise InvalidConditionError("Condition 'field' must be a non-empty string")
        if not isinstance(self.operator, str) or not self.operator.strip():
            raise InvalidConditionError("Condition 'operator' must be a non-empty string")
        if self.operator not in OPERATORS:
            raise UnsupportedOperatorError(
                f"Unsupported condition operator '{self.operator}' "
                f"(supported: {', '.join(sorted(OPERATORS))})"
            )

    @classmethod
    def from_definition(cls, definition: Mapping) -> "Condition":
        if not isinstance(definition, Mapping):
            raise InvalidConditionError(
                f"Condition definition must be a mapping, got {type(definition).__name__}"
            )
        if "field" not in definition or "operator" not in definition:
            raise InvalidConditionError("Condition definition must contain 'field' and 'operator'")
        return cls(
            field=definition["field"],
            operator=definition["operator"],
            value=definition.get("value"),
        )

    def __call__(self, payload: Any) -> bool:
        actual = resolve_path(payload, self.field)
        return bool(OPERATORS[self.operator](actual, self.value))

    def describe(self) -> str:
        return f"{self.field} {self.operator} {self.value!r}"


def as_predicate(condition: Any) -> Predicate:
    """Normaliza callable ou descritor `{field, operator, value}` em predicado."""
    if isinstance(condition, Mapping):
        return Condition.from_definition(condition)
    if callable(condition):
        return condition
    raise InvalidConditionError(
        f"Condition must be a callable or a mapping, got {type(condition).__name__}"
    )


@dataclass(frozen=True)
class ConditionalStep:
    """
    Step que executa `then` quando o predicado é verdadeiro (ou falso, com
    `negate=True`) e `otherwise` no caso contrário.

    `then` e `otherwise` aceitam qualquer especificação de Step (Step único,
    nome de grupo, lista). Sem `otherwise`, um predicado não satisfeito
    entrega o payload inalterado à continuação.
    """

    predicate: Predicate
    then: Any
    otherwise: Any = None
    negate: bool = False
    label: Optional[str] = None

    def __post_init__(self) -> None:
        if not callable(self.predicate):
            raise InvalidConditionError("Conditional predicate must be callable")
        if self.then is None:
            raise InvalidConditionError("Conditional step requires a 'then' branch")

    def matches(self, payload: Any) -> bool:
        result = bool(self.predicate(payload))
        return not result if self.negate else result

    def describe(self) -> str:
        if self.label:
            return self.label
        describe = getattr(self.predicate, "describe", None)
        text = describe() if callable(describe) else getattr(self.predicate, "__name__", "predicate")
        if text == "<lambda>":
            text = "predicate"
        return f"{'unless' if self.negate else 'when'}({text})"


def when(condition: Any, then: Any, otherwise: Any = None, *, label: Optional[str] = None) -> ConditionalStep:
    return ConditionalStep(predicate=as_predicate(condition), then=then, otherwise=otherwise, label=label)


def unless(condition: Any, then: Any, otherwise: Any = None, *, label: Optional[str] = None) -> ConditionalStep:
    return ConditionalStep(
        predicate=as_predicate(condition), then=then, otherwise=otherwise, negate=True, label=label
    )


def branch(condition: Any, then: Any, otherwise: Any, *, label: Optional[str] = None) -> ConditionalStep:
    """Condicional com os dois ramos obrigatórios."""
    if otherwise is None:
        raise InvalidConditionError("branch() requires both 'then' and 'otherwise'")
    return when(condition, then, otherwise, label=label)


_DESCRIPTOR_CONDITION_KEYS = ("condition", "predicate")


def conditional_from_definition(spec: Mapping) -> ConditionalStep:
    """
    Converte um descritor condicional em ConditionalStep.

    Formas aceitas:
        {"condition": <callable | {field, operator, value}>, "then": ..., "else": ...}
        {"predicate": <callable>, "then": ..., "else": ...}
        {"field": ..., "operator": ..., "value": ..., "then": ..., "else": ...}

    Raises:
        InvalidConditionError: descritor sem condição ou sem ramo `then`.
        UnsupportedOperatorError: operador fora do conjunto suportado.
    """
    condition: Any = None
    for key in _DESCRIPTOR_CONDITION_KEYS:
        if key in spec:
            condition = spec[key]
            break
    else:
        if "field" in spec or "operator" in spec:
            condition = {k: spec.get(k) for k in ("field", "operator", "value") if k in spec}

    if condition is None:
        raise InvalidConditionError("Conditional descriptor must declare a condition")

    then = spec.get("then")
    if then is None:
        raise InvalidConditionError("Conditional descriptor must declare a 'then' branch")

    return when(condition, then, spec.get("else"), label=spec.get("label"))

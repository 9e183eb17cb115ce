# src/stepflow/steps/validation.py
"""
ValidationStep — valida o payload antes de chamar a continuação.

Regras são declaradas por campo (caminho pontuado). Cada regra é um nome
do catálogo `RULES` ou um callable `(valor) -> bool`:

    ValidationStep({"user.email": ["required", "email"], "age": [lambda v: v >= 18]})

Payloads que não são mapeamentos só são aceitos com uma única regra: o
valor é validado sob aquele campo e entregue inalterado à continuação.

Falhas levantam `ValidationFailedError` com `details["errors"]` no formato
`{campo: [mensagens]}`.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from stepflow.core.exceptions import ValidationFailedError
from stepflow.core.pipeline.conditions import resolve_path
from stepflow.core.pipeline.step import Continuation


logger = logging.getLogger(__name__)

Rule = Union[str, Callable[[Any], bool]]

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _required(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, (str, list, tuple, dict)) and len(value) == 0:
        return False
    return True


def _numeric(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


RULES: Dict[str, Callable[[Any], bool]] = {
    "required": _required,
    "string": lambda v: v is None or isinstance(v, str),
    "numeric": lambda v: v is None or _numeric(v),
    "email": lambda v: v is None or (isinstance(v, str) and bool(_EMAIL.match(v))),
    "list": lambda v: v is None or isinstance(v, (list, tuple)),
    "mapping": lambda v: v is None or isinstance(v, Mapping),
}


def _rule_name(rule: Rule) -> str:
    if isinstance(rule, str):
        return rule
    return getattr(rule, "__name__", "rule")


class ValidationStep:
    def __init__(self, rules: Mapping[str, Union[Rule, Sequence[Rule]]], *, label: Optional[str] = None):
        if not isinstance(rules, Mapping) or not rules:
            raise ValueError("ValidationStep requires a non-empty mapping of rules")
        normalized: Dict[str, List[Rule]] = {}
        for field, field_rules in rules.items():
            if isinstance(field_rules, (str,)) or callable(field_rules):
                field_rules = [field_rules]
            checked: List[Rule] = []
            for rule in field_rules:
                if isinstance(rule, str) and rule not in RULES:
                    raise ValueError(f"Unknown validation rule '{rule}' for field '{field}'")
                if not isinstance(rule, str) and not callable(rule):
                    raise ValueError(f"Validation rule for field '{field}' must be a name or callable")
                checked.append(rule)
            normalized[field] = checked
        self.rules = normalized
        self.label = label or "validate"

    @classmethod
    def required(cls, fields: Sequence[str]) -> "ValidationStep":
        return cls({f: ["required"] for f in fields})

    @classmethod
    def email(cls, field: str = "email") -> "ValidationStep":
        return cls({field: ["required", "email"]})

    @classmethod
    def numeric(cls, field: str, min: Optional[float] = None, max: Optional[float] = None) -> "ValidationStep":
        rules: List[Rule] = ["required", "numeric"]
        if min is not None:
            rules.append(_bound(lambda v: v >= min, f"min:{min}"))
        if max is not None:
            rules.append(_bound(lambda v: v <= max, f"max:{max}"))
        return cls({field: rules})

    def errors_for(self, payload: Any) -> Dict[str, List[str]]:
        if isinstance(payload, Mapping):
            values = {field: resolve_path(payload, field) for field in self.rules}
        elif len(self.rules) == 1:
            field = next(iter(self.rules))
            values = {field: payload}
        else:
            return {"*": ["payload must be a mapping when validating multiple fields"]}

        errors: Dict[str, List[str]] = {}
        for field, rules in self.rules.items():
            value = values[field]
            for rule in rules:
                check = RULES[rule] if isinstance(rule, str) else rule
                try:
                    passed = bool(check(value))
                except (TypeError, ValueError):
                    passed = False
                if not passed:
                    errors.setdefault(field, []).append(f"failed rule '{_rule_name(rule)}'")
        return errors

    def handle(self, payload: Any, next: Continuation) -> Any:
        errors = self.errors_for(payload)
        if errors:
            logger.debug("validation failed for fields: %s", ", ".join(sorted(errors)))
            raise ValidationFailedError(
                message=f"Validation failed for {len(errors)} field(s)",
                details={"errors": errors},
                hint="Fix the payload fields listed in details.errors",
            )
        return next(payload)


def _bound(check: Callable[[Any], bool], name: str) -> Callable[[Any], bool]:
    def rule(value: Any) -> bool:
        return value is None or check(value)

    rule.__name__ = name
    return rule

# src/stepflow/steps/actions.py
"""
Ações de texto embutidas.

Cada ação é um Step direto que transforma o payload e chama a continuação
com o resultado. Payloads que não são strings passam inalterados, exceto
em `append`/`prepend`, que sobre um mapeamento atuam na chave `name`.

O catálogo `ACTIONS` associa nomes a fábricas e é usado pelos loaders
declarativos (`type: action`).
"""

from __future__ import annotations

import functools
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict

from stepflow.core.pipeline.step import Continuation


@dataclass(frozen=True)
class Action:
    """Step direto `next(fn(payload))` com rótulo fixo."""

    label: str
    fn: Callable[[Any], Any]

    def handle(self, payload: Any, next: Continuation) -> Any:
        return next(self.fn(payload))


def _on_text(fn: Callable[[str], str], payload: Any) -> Any:
    return fn(payload) if isinstance(payload, str) else payload


def _append(value: str, payload: Any) -> Any:
    if isinstance(payload, str):
        return payload + value
    if isinstance(payload, Mapping):
        if isinstance(payload.get("name"), str):
            return {**payload, "name": payload["name"] + value}
        return payload
    return payload


def _prepend(value: str, payload: Any) -> Any:
    if isinstance(payload, str):
        return value + payload
    if isinstance(payload, Mapping):
        if isinstance(payload.get("name"), str):
            return {**payload, "name": value + payload["name"]}
        return payload
    return payload


def _replace(old: str, new: str, payload: Any) -> Any:
    return payload.replace(old, new) if isinstance(payload, str) else payload


trim = Action("trim", functools.partial(_on_text, str.strip))
uppercase = Action("uppercase", functools.partial(_on_text, str.upper))
lowercase = Action("lowercase", functools.partial(_on_text, str.lower))
reverse = Action("reverse", functools.partial(_on_text, lambda s: s[::-1]))


def append(value: str) -> Action:
    return Action("append", functools.partial(_append, str(value)))


def prepend(value: str) -> Action:
    return Action("prepend", functools.partial(_prepend, str(value)))


def replace(old: str, new: str) -> Action:
    return Action("replace", functools.partial(_replace, str(old), str(new)))


ACTIONS: Dict[str, Callable[..., Action]] = {
    "trim": lambda: trim,
    "uppercase": lambda: uppercase,
    "lowercase": lambda: lowercase,
    "reverse": lambda: reverse,
    "append": append,
    "prepend": prepend,
    "replace": replace,
}


def action(name: str, **params: Any) -> Action:
    """
    Instancia uma ação do catálogo pelo nome.

    Raises:
        KeyError: nome fora do catálogo.
        TypeError: parâmetros incompatíveis com a ação.
    """
    if name not in ACTIONS:
        raise KeyError(f"Unknown action '{name}' (available: {', '.join(sorted(ACTIONS))})")
    return ACTIONS[name](**params)

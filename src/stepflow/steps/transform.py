# src/stepflow/steps/transform.py
"""
TransformStep — aplica uma função ao payload antes da continuação.

Construtores:
    - TransformStep(fn)     → `next(fn(payload))`
    - TransformStep.map     → aplica a função a cada item de uma lista
    - TransformStep.filter  → mantém itens que satisfazem o predicado
    - TransformStep.pluck   → extrai uma chave de cada item (ou do mapeamento)

O payload recebido nunca é mutado: listas e mapeamentos resultantes
são sempre novos objetos.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Callable, Optional

from stepflow.core.pipeline.step import Continuation


def _get(item: Any, key: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(key)
    return getattr(item, key, None)


class TransformStep:
    def __init__(self, fn: Callable[[Any], Any], *, label: Optional[str] = None):
        if not callable(fn):
            raise TypeError("TransformStep requires a callable")
        self.fn = fn
        self.label = label or "transform"

    def handle(self, payload: Any, next: Continuation) -> Any:
        return next(self.fn(payload))

    @classmethod
    def map(cls, mapper: Callable[[Any], Any]) -> "TransformStep":
        def _map(payload: Any) -> Any:
            if isinstance(payload, (list, tuple)):
                return [mapper(item) for item in payload]
            return mapper(payload)

        return cls(_map, label="map")

    @classmethod
    def filter(cls, predicate: Callable[[Any], bool]) -> "TransformStep":
        def _filter(payload: Any) -> Any:
            if isinstance(payload, (list, tuple)):
                return [item for item in payload if predicate(item)]
            if isinstance(payload, Mapping):
                return {k: v for k, v in payload.items() if predicate(v)}
            return payload if predicate(payload) else None

        return cls(_filter, label="filter")

    @classmethod
    def pluck(cls, key: str) -> "TransformStep":
        def _pluck(payload: Any) -> Any:
            if isinstance(payload, (list, tuple)):
                return [_get(item, key) for item in payload]
            return _get(payload, key)

        return cls(_pluck, label=f"pluck:{key}")

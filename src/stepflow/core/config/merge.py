# src/stepflow/core/config/merge.py
"""
Deep-merge canônico de configuração do StepFlow.

Política de merge:
    - dict → merge recursivo por chave
    - list → sobrescrita total (sem merge elemento a elemento)
    - escalar → sobrescrita direta
    - conflito de tipos → ConfigTypeConflictError

Invariantes:
    - Nenhum input é mutado
    - Chaves ausentes no override são preservadas da base
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Combina `base` e `override` em um novo dicionário.

    Args:
        base (Dict[str, Any]): Configuração base (ex.: defaults).
        override (Dict[str, Any]): Overrides explícitos.

    Returns:
        Dict[str, Any]: Nova configuração resultante.

    Raises:
        ConfigTypeConflictError: Se a mesma chave tiver tipos incompatíveis.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requires dicts at the root, got "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        if key not in result or result[key] is None:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value)
            continue

        if isinstance(base_value, list) and isinstance(override_value, list):
            result[key] = deepcopy(override_value)
            continue

        # int -> float é aceito (ex.: multiplier: 2 -> 1.5)
        numeric = (int, float)
        if (
            isinstance(base_value, numeric)
            and isinstance(override_value, numeric)
            and not isinstance(base_value, bool)
            and not isinstance(override_value, bool)
        ):
            result[key] = override_value
            continue

        if type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Type conflict at key '{key}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result

# src/stepflow/core/config/hashing.py
"""
Hash canônico de configuração do StepFlow.

O hash identifica a configuração efetiva usada para montar um pipeline e
pode ser gravado como tag da run (`Pipeline.tag("config_hash", ...)`).

Política:
    - JSON canônico (chaves ordenadas, separadores compactos, UTF-8)
    - SHA-256, string hexadecimal de 64 caracteres
"""

import hashlib
import json
from typing import Any, Dict


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Gera o hash SHA-256 da configuração.

    Configurações estruturalmente equivalentes produzem o mesmo hash,
    independentemente da ordem original das chaves.

    Raises:
        TypeError: Se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(f"Config to hash must be a dict, got {type(config).__name__}")

    canonical_json = json.dumps(
        config,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()

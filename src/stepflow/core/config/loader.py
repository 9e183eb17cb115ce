# src/stepflow/core/config/loader.py
"""
Loader canônico de configuração do StepFlow.

A configuração efetiva é resolvida a partir de:
    - um arquivo de defaults (obrigatório)
    - um arquivo local de overrides (opcional; ignorado se não existir)

Formatos suportados: YAML (.yaml, .yml) e JSON (.json).

Invariantes:
    - O resultado é sempre um `dict`
    - Overrides nunca mutam os defaults

Limites explícitos:
    - Não interpreta seções (ver `stepflow.core.config.settings`)
    - Não monta pipelines
"""

from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
import json

import yaml  # PyYAML

from .merge import deep_merge
from .hashing import compute_config_hash
from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)


PathLike = Union[str, Path]


def read_mapping_file(path: Path) -> Any:
    """
    Lê um arquivo YAML ou JSON e devolve o conteúdo bruto.

    Arquivos vazios resultam em None. Também usado pelos loaders
    declarativos de Steps.

    Raises:
        UnsupportedConfigFormatError: extensão fora de .yaml/.yml/.json.
    """
    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)

    if suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    raise UnsupportedConfigFormatError(f"Unsupported config format: {path.suffix}")


def _load_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise DefaultsNotFoundError(f"Config file not found: {path}")

    data = read_mapping_file(path)
    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root must be a mapping, got {type(data).__name__}"
        )
    return data


def load_config(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva.

    Args:
        defaults_path: Caminho do arquivo de configuração base.
        local_path: Caminho opcional de overrides locais.

    Returns:
        Dict[str, Any]: Configuração final resolvida.

    Raises:
        DefaultsNotFoundError: Se o arquivo de defaults não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo não for um dicionário.
        ConfigTypeConflictError: Se ocorrer conflito estrutural durante o merge.
    """
    effective = _load_file(Path(defaults_path))

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            effective = deep_merge(effective, _load_file(local_file))

    return effective


def load_config_with_hash(
    *,
    defaults_path: PathLike,
    local_path: Optional[PathLike] = None,
) -> Tuple[Dict[str, Any], str]:
    """Igual a `load_config`, devolvendo também o hash canônico."""
    config = load_config(defaults_path=defaults_path, local_path=local_path)
    return config, compute_config_hash(config)

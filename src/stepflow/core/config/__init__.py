# src/stepflow/core/config/__init__.py

"""
Camada de configuração do StepFlow.

Responsabilidades do pacote:
    - Carregamento de arquivos de configuração (defaults + overrides locais)
    - Resolução de configuração final via deep-merge determinístico
    - Hash canônico para identificar a configuração de uma run
    - Interpretação das seções `resilience` e `tracing`

Princípios fundamentais:
    - Configuração é declarativa e não contém lógica de Steps
    - Overrides são sempre explícitos
    - A mesma entrada sempre produz a mesma configuração final
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    ConfigValueError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .hashing import compute_config_hash
from .loader import load_config, load_config_with_hash
from .merge import deep_merge
from .settings import observer_from_config, pipeline_from_config, strategy_from_config

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "ConfigValueError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "compute_config_hash",
    "deep_merge",
    "load_config",
    "load_config_with_hash",
    "observer_from_config",
    "pipeline_from_config",
    "strategy_from_config",
]

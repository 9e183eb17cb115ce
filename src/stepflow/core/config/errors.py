# src/stepflow/core/config/errors.py
"""
Exceções canônicas da camada de configuração do StepFlow.

As exceções deste módulo representam falhas estruturais ou de valor na
configuração usada para montar pipelines (estratégia de resiliência e
tracer). Nenhuma delas representa falha de execução de Step.

Invariantes:
    - Todas as exceções de configuração herdam de `ConfigError`
    - Erros de configuração são fatais e imediatos
"""


class ConfigError(Exception):
    """
    Exceção base para erros de configuração do StepFlow.

    Permite captura genérica de falhas de carregamento, merge e
    interpretação de configuração.
    """


class DefaultsNotFoundError(ConfigError):
    """
    Arquivo de configuração base (defaults) não encontrado.

    O arquivo de defaults é obrigatório; nenhum default implícito é criado.
    """


class UnsupportedConfigFormatError(ConfigError):
    """
    Formato de arquivo não suportado pelo loader.

    Formatos suportados:
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


class InvalidConfigRootTypeError(ConfigError):
    """O conteúdo raiz do arquivo não é um mapeamento chave-valor."""


class ConfigTypeConflictError(ConfigError):
    """
    Conflito de tipos durante o deep-merge.

    Exemplo de conflito:
        - base:     {"resilience": {"retry": {"max_attempts": 3}}}
        - override: {"resilience": "off"}

    Nenhum merge parcial é produzido em caso de conflito.
    """


class ConfigValueError(ConfigError, ValueError):
    """
    Valor inválido em uma seção interpretada da configuração.

    Exemplos: `backoff` desconhecido, `max_attempts` negativo,
    `tracing.tracer` fora do conjunto suportado.
    """

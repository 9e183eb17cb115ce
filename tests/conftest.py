# tests/conftest.py
"""
Fixtures compartilhados para testes do StepFlow.

Este módulo define fixtures reutilizáveis que fornecem:
- um GroupRegistry novo por teste (sem estado global)
- um MemoryTracer vazio
- um substituto de `time.sleep` que apenas registra as esperas
- Steps dummy para testes estruturais

Decisões arquiteturais:
    - Fixtures são mantidas simples e explícitas
    - Nenhuma fixture dorme de verdade: retries são testados com `sleep`
      injetado no Pipeline
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Nenhuma fixture executa pipeline real
    - Nenhuma fixture compartilha estado entre testes
"""

import pytest


@pytest.fixture
def registry():
    """
    GroupRegistry isolado para o teste.

    Returns:
        GroupRegistry: registry vazio.
    """
    from stepflow.core.pipeline.registry import GroupRegistry

    return GroupRegistry()


@pytest.fixture
def tracer():
    """MemoryTracer vazio."""
    from stepflow.core.tracing.tracers import MemoryTracer

    return MemoryTracer()


class SleepRecorder:
    """Substituto de `time.sleep`: guarda os segundos pedidos, sem esperar."""

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)

    @property
    def delays_ms(self):
        return [round(s * 1000.0, 6) for s in self.calls]


@pytest.fixture
def sleeper():
    return SleepRecorder()


@pytest.fixture
def Flaky():
    """
    Fixture factory de Steps que falham um número fixo de vezes.

    O Step retornado levanta `error` nas primeiras `failures` invocações
    e depois chama a continuação com `transform(payload)`. Todas as
    invocações (inclusive as que falham) são contadas em `calls`.

    Returns:
        type: Classe _Flaky.
    """

    class _Flaky:
        def __init__(self, failures, *, error=None, transform=None, label="flaky"):
            self.failures = failures
            self.error = error or RuntimeError("transient")
            self.transform = transform or (lambda p: p)
            self.label = label
            self.calls = 0
            self.payloads = []

        def handle(self, payload, next):
            self.calls += 1
            self.payloads.append(payload)
            if self.calls <= self.failures:
                raise self.error
            return next(self.transform(payload))

    return _Flaky


@pytest.fixture
def add():
    """Fábrica de Steps `payload + n` com rótulo `add_<n>`."""
    from stepflow.core.pipeline.step import named

    def _make(n):
        return named(f"add_{n}", lambda payload, next: next(payload + n))

    return _make


@pytest.fixture
def stepflow_defaults_yaml():
    """
    YAML de defaults semelhante ao de um projeto real.

    Retorna texto: o teste decide onde gravar o arquivo (tmp_path).
    """
    return """
resilience:
  retry:
    enabled: true
    max_attempts: 3
    backoff: constant
    delay_ms: 100
  fallback: null
tracing:
  enabled: true
  tracer: memory
pipelines:
  normalize:
    steps: [trim, uppercase]
"""


@pytest.fixture
def stepflow_local_yaml():
    """YAML de overrides locais: backoff exponencial e tracer de performance."""
    return """
resilience:
  retry:
    backoff: exponential
    multiplier: 1.5
tracing:
  tracer: performance
pipelines:
  normalize:
    steps: [trim]
"""

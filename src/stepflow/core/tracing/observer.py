# src/stepflow/core/tracing/observer.py
"""
Contrato de Observer do StepFlow.

Um observer recebe, de forma síncrona, um aviso por Step concluído com
sucesso: rótulo, payload recebido, payload entregue à continuação e a
duração isolada do trabalho do Step.

Invariantes:
    - Nunca é chamado por tentativa de retry que falhou
    - Nunca é chamado para Steps recuperados por fallback/compensação
    - Steps internos de um sub-pipeline aninhado não chegam ao observer
      externo (o bloco aninhado é reportado como um todo)

Falhas do observer não interrompem o processamento do payload: o Engine
registra um evento `warning` e um warning no contexto e segue a run.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Observer(Protocol):
    def on_step_complete(self, label: str, before: Any, after: Any, duration_ms: float) -> None:
        ...

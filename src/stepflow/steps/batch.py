# src/stepflow/steps/batch.py
"""
BatchStep — executa o restante do pipeline por lotes de uma lista.

A continuação é chamada uma vez por lote. Resultados em lista são
concatenados; qualquer outro resultado é acrescentado como item.
Payloads que não são listas seguem inalterados, em uma única chamada.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from stepflow.core.pipeline.step import Continuation


logger = logging.getLogger(__name__)


class BatchStep:
    def __init__(self, size: int = 100, *, label: Optional[str] = None):
        if not isinstance(size, int) or isinstance(size, bool) or size < 1:
            raise ValueError("batch size must be an integer >= 1")
        self.size = size
        self.label = label or "batch"

    def handle(self, payload: Any, next: Continuation) -> Any:
        if not isinstance(payload, (list, tuple)):
            return next(payload)

        items = list(payload)
        results: List[Any] = []
        batches = 0
        for start in range(0, len(items), self.size):
            chunk = items[start : start + self.size]
            batches += 1
            result = next(chunk)
            if isinstance(result, list):
                results.extend(result)
            else:
                results.append(result)

        logger.debug("processed %d item(s) in %d batch(es) of %d", len(items), batches, self.size)
        return results

# src/stepflow/steps/cache.py
"""
CacheStep — memoriza em memória o resultado do restante do pipeline.

A chave de cache é `stepflow.<key>.<sha256 do payload>`, com o payload
serializado em JSON canônico (ou `repr` quando não serializável).
Entradas expiram após `ttl_seconds`.

Limites explícitos:
    - Cache local ao objeto (não compartilhado entre processos)
    - Sem limite de tamanho; `clear()` esvazia o cache
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Tuple

from stepflow.core.pipeline.step import Continuation


logger = logging.getLogger(__name__)


def payload_fingerprint(payload: Any) -> str:
    try:
        raw = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    except (TypeError, ValueError):
        raw = repr(payload)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class CacheStep:
    def __init__(
        self,
        key: str,
        ttl_seconds: float = 3600,
        *,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not isinstance(key, str) or not key.strip():
            raise ValueError("cache key must be a non-empty string")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be > 0")
        self.key = key.strip()
        self.ttl_seconds = ttl_seconds
        self.label = f"cache:{self.key}"
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Any]] = {}

    def cache_key(self, payload: Any) -> str:
        return f"stepflow.{self.key}.{payload_fingerprint(payload)}"

    def handle(self, payload: Any, next: Continuation) -> Any:
        cache_key = self.cache_key(payload)
        now = self._clock()

        entry = self._entries.get(cache_key)
        if entry is not None:
            expires_at, value = entry
            if now < expires_at:
                logger.debug("cache hit: %s", cache_key)
                return value
            del self._entries[cache_key]

        logger.debug("cache miss: %s", cache_key)
        result = next(payload)
        self._entries[cache_key] = (now + self.ttl_seconds, result)
        return result

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

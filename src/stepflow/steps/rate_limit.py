# src/stepflow/steps/rate_limit.py
"""
RateLimitStep — limita execuções por janela fixa de tempo.

Cada chave (`<key>:<fingerprint do payload>` ou `<key>:<key_fn(payload)>`)
admite até `max_attempts` execuções bem-sucedidas por janela de
`decay_seconds`. Acima do limite, levanta `RateLimitExceededError`
(combinável com `RetryStrategy.for_exception`).

O contador só é incrementado depois que a continuação conclui. Janelas
expiradas de todas as chaves são descartadas quando uma nova janela é aberta.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Dict, List, Optional

from stepflow.core.exceptions import RateLimitExceededError
from stepflow.core.pipeline.step import Continuation

from .cache import payload_fingerprint


logger = logging.getLogger(__name__)


class RateLimitStep:
    def __init__(
        self,
        key: str,
        max_attempts: int = 60,
        decay_seconds: float = 60,
        *,
        key_fn: Optional[Callable[[Any], Any]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        if not isinstance(key, str) or not key.strip():
            raise ValueError("rate limit key must be a non-empty string")
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise ValueError("max_attempts must be an integer >= 1")
        if decay_seconds <= 0:
            raise ValueError("decay_seconds must be > 0")
        self.key = key.strip()
        self.max_attempts = max_attempts
        self.decay_seconds = decay_seconds
        self.label = f"rate_limit:{self.key}"
        self._key_fn = key_fn
        self._clock = clock
        # chave -> [início da janela, execuções]
        self._windows: Dict[str, List[float]] = {}

    def limit_key(self, payload: Any) -> str:
        if self._key_fn is not None:
            return f"{self.key}:{self._key_fn(payload)}"
        return f"{self.key}:{payload_fingerprint(payload)}"

    def _window(self, limit_key: str, now: float) -> List[float]:
        window = self._windows.get(limit_key)
        if window is None or now >= window[0] + self.decay_seconds:
            self._evict_expired(now)
            window = [now, 0]
            self._windows[limit_key] = window
        return window

    def _evict_expired(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now >= w[0] + self.decay_seconds]
        for k in expired:
            del self._windows[k]

    def __len__(self) -> int:
        return len(self._windows)

    def remaining(self, payload: Any) -> int:
        window = self._window(self.limit_key(payload), self._clock())
        return max(0, self.max_attempts - int(window[1]))

    def handle(self, payload: Any, next: Continuation) -> Any:
        limit_key = self.limit_key(payload)
        now = self._clock()
        window = self._window(limit_key, now)

        if window[1] >= self.max_attempts:
            retry_after = max(0, math.ceil(window[0] + self.decay_seconds - now))
            logger.warning("rate limit exceeded for %s", limit_key)
            raise RateLimitExceededError(
                message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
                details={
                    "key": limit_key,
                    "max_attempts": self.max_attempts,
                    "retry_after_seconds": retry_after,
                },
                hint="Reduce the call rate or raise max_attempts",
            )

        result = next(payload)
        window[1] += 1
        return result

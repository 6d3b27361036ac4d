# timewise_auth/core/ratelimit.py
"""Limite por IP (janela deslizante, em memória) para o endpoint de token."""
from __future__ import annotations

import math
import threading
import time
from collections import defaultdict, deque
from typing import Callable, Deque, Dict

from fastapi import Request

from timewise_auth.core.auth_middleware import client_ip
from timewise_auth.core.errors import RateLimitError


class SlidingWindowLimiter:
    def __init__(self, max_requests: int, window_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()

    def hit(self, key: str) -> None:
        """Registra uma request; RateLimitError se a janela já está cheia."""
        if self.max_requests <= 0:
            return
        now = self._clock()
        with self._lock:
            hits = self._hits[key]
            while hits and hits[0] <= now - self.window_seconds:
                hits.popleft()
            if len(hits) >= self.max_requests:
                retry_after = max(1, math.ceil(hits[0] + self.window_seconds - now))
                raise RateLimitError(retry_after)
            hits.append(now)

    def cleanup(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [k for k, h in self._hits.items() if not h or h[-1] <= now - self.window_seconds]
            for k in stale:
                del self._hits[k]
            return len(stale)


def token_rate_limit(request: Request) -> None:
    limiter: SlidingWindowLimiter | None = getattr(request.app.state, "token_rate_limiter", None)
    if limiter is None:
        return
    limiter.hit(client_ip(request) or "unknown")

# timewise_auth/services/sweeper.py
"""Sweep periódico do token store (substitui um timer por token revogado)."""
from __future__ import annotations

import asyncio

import structlog
from starlette.concurrency import run_in_threadpool

from timewise_auth.services.token_service import TokenService

logger = structlog.get_logger(__name__)


async def token_sweep_loop(service: TokenService, interval_seconds: float, limiter=None) -> None:
    while True:
        try:
            await asyncio.sleep(interval_seconds)
            # o store SQL bloqueia; roda fora do event loop
            removed = await run_in_threadpool(service.sweep)
            if removed:
                logger.debug("token_store_swept", removed=removed, trigger="periodic")
            if limiter is not None:
                limiter.cleanup()
        except asyncio.CancelledError:
            break
        except Exception as e:
            logger.warning("token_sweep_failed", error=str(e))


def start_sweeper(service: TokenService, interval_seconds: float, limiter=None) -> asyncio.Task:
    return asyncio.create_task(token_sweep_loop(service, interval_seconds, limiter), name="token-sweeper")


async def stop_sweeper(task: asyncio.Task | None) -> None:
    if task is None or task.done():
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass

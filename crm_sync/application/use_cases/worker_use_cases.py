"""
Casos de uso del punto de entrada interno del worker.

El endpoint responde 202 apenas agenda la invocacion; el resultado
solo es observable en la fila del job.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Set

from loguru import logger

from crm_sync.application.dto.import_dto import WorkerAcceptedDTO, WorkerInvocationDTO
from crm_sync.application.services.backfill.phase_engine import (
    InvocationOutcome,
    WorkerInvocation,
)

InvocationRunner = Callable[[WorkerInvocation], InvocationOutcome]


class WorkerUseCases:
    """
    Ejecuta invocaciones del motor en background, fuera del event loop.
    """

    _running: Set[asyncio.Task] = set()

    def __init__(self, runner: InvocationRunner) -> None:
        self._runner = runner

    async def accept(self, dto: WorkerInvocationDTO) -> WorkerAcceptedDTO:
        invocation = WorkerInvocation(
            job_id=dto.job_id,
            account_scope=dto.account_scope,
            generation=dto.generation,
        )
        # Ejecutar en background sin bloquear la request.
        task = asyncio.create_task(self._run(invocation))
        self._running.add(task)
        task.add_done_callback(self._running.discard)
        return WorkerAcceptedDTO(job_id=dto.job_id)

    async def _run(self, invocation: WorkerInvocation) -> None:
        try:
            await asyncio.to_thread(self._runner, invocation)
        except Exception as e:
            logger.exception(f"[crm-worker:{invocation.job_id}] Error wrapper: {e}")

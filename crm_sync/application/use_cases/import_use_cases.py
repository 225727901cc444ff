"""
Casos de uso del plano de control de importaciones.

- start_import: crea el job `pending` y dispara exactamente una
  invocacion fire-and-forget del worker.
- get_import_status: lectura idempotente de los campos publicos del job.
"""

from __future__ import annotations

import asyncio

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from crm_sync.application.dto.import_dto import (
    ImportStartDTO,
    ImportStartResponseDTO,
    ImportStatusDTO,
)
from crm_sync.application.interfaces.continuation_scheduler import ContinuationScheduler
from crm_sync.domain.entities.import_job import JobStatus
from crm_sync.infrastructure.repositories.import_job_repository import ImportJobRepository
from crm_sync.shared.exceptions.domain import ImportJobNotFoundException


class ImportUseCases:
    """Orquesta la creacion y consulta de jobs de importacion."""

    def __init__(self, db: AsyncSession, scheduler: ContinuationScheduler) -> None:
        self.db = db
        self._jobs = ImportJobRepository(db)
        self._scheduler = scheduler

    async def start_import(self, dto: ImportStartDTO, created_by: str) -> ImportStartResponseDTO:
        job = await self._jobs.create(
            created_by=created_by,
            import_type=dto.import_type,
            account_scope=dto.account_scope or None,
            owner_user_id=dto.owner_user_id or None,
        )
        # El worker lee la fila con otra conexion: debe estar confirmada antes de dispararlo.
        await self.db.commit()

        await asyncio.to_thread(
            self._scheduler.schedule_continuation,
            job.id,
            generation=0,
            account_scope=job.account_scope,
        )
        logger.info(f"Job {job.id} despachado al worker")
        return ImportStartResponseDTO(job_id=job.id, status=JobStatus.PENDING)

    async def get_import_status(self, job_id: str) -> ImportStatusDTO:
        job = await self._jobs.get(job_id)
        if job is None:
            raise ImportJobNotFoundException(job_id)
        return ImportStatusDTO.model_validate(job)

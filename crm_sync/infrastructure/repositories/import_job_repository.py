"""
Repositorio async de jobs de importacion (lado API).

El worker escribe la fila por su cuenta (SqlCheckpointStore); aqui solo
se crea el job y se lee su estado publico.
"""
from typing import Optional

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crm_sync.domain.entities.import_job import ImportType, JobStatus
from crm_sync.infrastructure.database.models import ImportJobModel


class ImportJobRepository:
    """
    Gestiona la tabla import_jobs desde los endpoints.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create(
        self,
        *,
        created_by: str,
        import_type: ImportType,
        account_scope: Optional[str] = None,
        owner_user_id: Optional[str] = None,
    ) -> ImportJobModel:
        """
        Inserta un job `pending` con generacion 0 y sin checkpoint.
        """
        job = ImportJobModel(
            status=JobStatus.PENDING.value,
            import_type=import_type.value,
            created_by=created_by,
            account_scope=account_scope,
            owner_user_id=owner_user_id,
            deals_found=0,
            contacts_imported=0,
            contacts_skipped=0,
            contacts_errors=0,
            error_details=[],
            checkpoint_data=None,
            generation=0,
        )
        self.db.add(job)
        await self.db.flush()
        await self.db.refresh(job)
        logger.info(f"Job de importacion creado: {job.id} ({import_type.value}) por {created_by}")
        return job

    async def get(self, job_id: str) -> Optional[ImportJobModel]:
        query = select(ImportJobModel).where(ImportJobModel.id == job_id)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

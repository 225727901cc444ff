"""
Implementacion SQLAlchemy (sync) del almacenamiento de checkpoints.

Cada operacion abre su propia transaccion corta: el worker nunca
mantiene una transaccion abierta durante llamadas HTTP al CRM.
Las escrituras filtran por (id, generation) para rechazar invocaciones
que perdieron el derecho a avanzar el job.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from crm_sync.domain.entities.checkpoint import Checkpoint, ErrorDetail, dump_checkpoint
from crm_sync.domain.entities.import_job import ImportType, JobSnapshot, JobStatus, SyncCounters
from crm_sync.domain.repositories.checkpoint_store import ICheckpointStore, StaleInvocationError
from crm_sync.infrastructure.database.models import ImportJobModel


def _counter_columns(counters: SyncCounters) -> Dict[str, int]:
    return {
        "contacts_imported": counters.updated,
        "contacts_skipped": counters.skipped,
        "contacts_errors": counters.errors,
    }


class SqlCheckpointStore(ICheckpointStore):
    """Gestiona la fila de `import_jobs` desde el worker."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def load(self, job_id: str) -> Optional[JobSnapshot]:
        with self._session_factory() as session:
            job = session.execute(
                select(ImportJobModel).where(ImportJobModel.id == job_id)
            ).scalar_one_or_none()
            if job is None:
                return None
            return JobSnapshot(
                id=job.id,
                status=JobStatus(job.status),
                import_type=ImportType(job.import_type),
                generation=job.generation or 0,
                account_scope=job.account_scope,
                owner_user_id=job.owner_user_id,
                checkpoint_data=job.checkpoint_data,
                error_details=list(job.error_details or []),
                updated_at=job.updated_at,
            )

    def claim(self, job_id: str, expected_generation: int) -> Optional[int]:
        new_generation = expected_generation + 1
        with self._session_factory.begin() as session:
            result = session.execute(
                update(ImportJobModel)
                .where(
                    ImportJobModel.id == job_id,
                    ImportJobModel.generation == expected_generation,
                )
                .values(generation=new_generation)
            )
            if result.rowcount != 1:
                return None
        return new_generation

    def mark_status(self, job_id: str, generation: int, status: JobStatus) -> None:
        self._guarded_update(job_id, generation, {"status": status.value})

    def save_checkpoint(
        self,
        job_id: str,
        generation: int,
        checkpoint: Checkpoint,
        counters: SyncCounters,
    ) -> None:
        values: Dict[str, Any] = {
            "checkpoint_data": dump_checkpoint(checkpoint),
            "deals_found": counters.found,
            **_counter_columns(counters),
        }
        self._guarded_update(job_id, generation, values)

    def flush_counters(self, job_id: str, generation: int, counters: SyncCounters) -> None:
        self._guarded_update(job_id, generation, _counter_columns(counters))

    def finish(
        self,
        job_id: str,
        generation: int,
        counters: SyncCounters,
        error_details: List[ErrorDetail],
    ) -> None:
        self._guarded_update(
            job_id,
            generation,
            {
                "status": JobStatus.DONE.value,
                "checkpoint_data": None,
                "error_details": [d.model_dump() for d in error_details],
                **_counter_columns(counters),
            },
        )

    def fail(self, job_id: str, generation: int, message: str) -> None:
        self._guarded_update(
            job_id,
            generation,
            {
                "status": JobStatus.ERROR.value,
                "error_message": message[:2000],
                "checkpoint_data": None,
            },
        )

    def _guarded_update(self, job_id: str, generation: int, values: Dict[str, Any]) -> None:
        with self._session_factory.begin() as session:
            rowcount = self._execute_guarded(session, job_id, generation, values)
        if rowcount != 1:
            logger.warning(
                f"Escritura rechazada para job {job_id}: generacion {generation} ya no es la vigente"
            )
            raise StaleInvocationError(f"job {job_id} avanzado por otra invocacion")

    @staticmethod
    def _execute_guarded(
        session: Session, job_id: str, generation: int, values: Dict[str, Any]
    ) -> int:
        result = session.execute(
            update(ImportJobModel)
            .where(
                ImportJobModel.id == job_id,
                ImportJobModel.generation == generation,
            )
            .values(**values)
        )
        return result.rowcount

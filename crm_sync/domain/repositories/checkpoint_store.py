"""
Interfaz del almacenamiento durable del job (checkpoint + contadores).

Toda escritura posterior al `claim` se condiciona a la generacion que
la invocacion posee. Si otra invocacion avanzo la generacion, la
escritura levanta StaleInvocationError y la invocacion actual debe
terminar sin tocar el job.
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from crm_sync.domain.entities.checkpoint import Checkpoint, ErrorDetail
from crm_sync.domain.entities.import_job import JobSnapshot, JobStatus, SyncCounters


class StaleInvocationError(RuntimeError):
    """La invocacion perdio el derecho a avanzar el job."""


class ICheckpointStore(ABC):
    """
    Operaciones de persistencia que usa el motor de fases.
    """

    @abstractmethod
    def load(self, job_id: str) -> Optional[JobSnapshot]:
        """
        Lee el job al inicio de la invocacion.

        Returns:
            Optional[JobSnapshot]: Job encontrado o None
        """

    @abstractmethod
    def claim(self, job_id: str, expected_generation: int) -> Optional[int]:
        """
        Incrementa la generacion de forma atomica si coincide con la esperada.

        Returns:
            Optional[int]: Nueva generacion poseida, o None si la invocacion es vieja
        """

    @abstractmethod
    def mark_status(self, job_id: str, generation: int, status: JobStatus) -> None:
        """Actualiza el estado visible del job."""

    @abstractmethod
    def save_checkpoint(
        self,
        job_id: str,
        generation: int,
        checkpoint: Checkpoint,
        counters: SyncCounters,
    ) -> None:
        """Persiste el checkpoint junto con los contadores visibles."""

    @abstractmethod
    def flush_counters(self, job_id: str, generation: int, counters: SyncCounters) -> None:
        """Publica contadores en la fila del job (observabilidad casi en tiempo real)."""

    @abstractmethod
    def finish(
        self,
        job_id: str,
        generation: int,
        counters: SyncCounters,
        error_details: List[ErrorDetail],
    ) -> None:
        """Marca el job como done y limpia el checkpoint."""

    @abstractmethod
    def fail(self, job_id: str, generation: int, message: str) -> None:
        """Marca el job como error y limpia el checkpoint."""

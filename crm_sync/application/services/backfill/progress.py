"""
Progreso del procesamiento: contadores publicados y errores acotados.
"""
from __future__ import annotations

from collections import deque
from typing import Deque, Iterable, List, Optional

from crm_sync.domain.entities.checkpoint import ErrorDetail
from crm_sync.domain.entities.import_job import SyncCounters
from crm_sync.domain.repositories.checkpoint_store import ICheckpointStore

MAX_ERROR_TEXT = 500


class JobProgressReporter:
    """
    Publica `totals` en la fila del job cada `flush_every` resultados
    combinados (updated + skipped + errors). `totals` lo acumula el motor;
    el reporter guarda la referencia y solo cuenta lo pendiente.
    """

    def __init__(
        self,
        store: ICheckpointStore,
        job_id: str,
        generation: int,
        totals: SyncCounters,
        flush_every: int = 10,
    ) -> None:
        self._store = store
        self._job_id = job_id
        self._generation = generation
        self._totals = totals
        self._flush_every = max(1, flush_every)
        self._pending = 0

    @property
    def totals(self) -> SyncCounters:
        return self._totals

    def report(self, delta: SyncCounters) -> None:
        self._pending += delta.outcomes
        if self._pending >= self._flush_every:
            self.flush()

    def flush(self) -> None:
        self._store.flush_counters(self._job_id, self._generation, self._totals)
        self._pending = 0


class BoundedErrorLog:
    """Ring buffer de errores por registro: conserva los ultimos `limit`."""

    def __init__(self, limit: int, initial: Optional[Iterable[ErrorDetail]] = None) -> None:
        self._entries: Deque[ErrorDetail] = deque(initial or [], maxlen=max(1, limit))

    def add(self, name: str, error: str) -> None:
        self._entries.append(ErrorDetail(name=name[:255], error=error[:MAX_ERROR_TEXT]))

    def to_list(self) -> List[ErrorDetail]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

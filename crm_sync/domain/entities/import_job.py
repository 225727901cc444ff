"""
Entidades del job de importacion desde el CRM externo.

El job es el unico artefacto durable del motor: estado, contadores,
lista acotada de errores y checkpoint viven en la misma fila.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class JobStatus(str, Enum):
    """Estados posibles de un job de importacion."""
    PENDING = "pending"
    FETCHING_DEALS = "fetching_deals"
    IMPORTING = "importing"
    DONE = "done"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.DONE, JobStatus.ERROR)


class ImportType(str, Enum):
    """
    Tipos de importacion soportados.

    backfill_sources: copia la fuente (deal_source) de cada negociacion
    al campo `source` de los contactos locales vinculados.
    """
    BACKFILL_SOURCES = "backfill_sources"


@dataclass
class SyncCounters:
    """
    Contadores de resultado de un job.

    Se usan tanto como totales acumulados como deltas por negociacion.
    """

    found: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0

    @property
    def outcomes(self) -> int:
        """Resultados combinados (updated + skipped + errors)."""
        return self.updated + self.skipped + self.errors

    def add(self, delta: "SyncCounters") -> None:
        self.found += delta.found
        self.updated += delta.updated
        self.skipped += delta.skipped
        self.errors += delta.errors


@dataclass
class JobSnapshot:
    """
    Vista del job que necesita el worker al iniciar una invocacion.

    checkpoint_data se mantiene crudo (dict) aqui; el motor lo parsea
    con `parse_checkpoint` para obtener la variante tipada de la fase.
    """

    id: str
    status: JobStatus
    import_type: ImportType
    generation: int
    account_scope: Optional[str] = None
    owner_user_id: Optional[str] = None
    checkpoint_data: Optional[Dict[str, Any]] = None
    error_details: List[Dict[str, Any]] = field(default_factory=list)
    updated_at: Optional[datetime] = None

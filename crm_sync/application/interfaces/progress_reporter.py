"""
Interfaz para reportar progreso del procesamiento.

Separa la politica de flush (cada cuantos registros se publica en la
fila del job) de la logica de matching.
"""

from __future__ import annotations

from typing import Callable, Protocol

from crm_sync.domain.entities.import_job import SyncCounters


class ProgressReporter(Protocol):
    """
    Recibe deltas de contadores por negociacion procesada.

    El motor acumula los totales; el reporter solo decide cuando
    publicarlos.

    Implementaciones:
    - JobProgressReporter: publica en `import_jobs` cada N resultados.
    - Fake en memoria para tests.
    """

    def report(self, delta: SyncCounters) -> None:
        ...

    def flush(self) -> None:
        ...


# (job_id, generation, totals acumulados) -> reporter de esa invocacion
ProgressReporterFactory = Callable[[str, int, SyncCounters], ProgressReporter]

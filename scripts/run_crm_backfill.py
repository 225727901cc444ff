"""
CLI: backfill de fuentes desde el CRM, ejecutado en linea.

Uso recomendado:
  - Backfills grandes fuera del runtime con limite de tiempo.
  - Reanudar un job que quedo detenido (re-encolado perdido).

Cada vuelta del loop es una invocacion con presupuesto de tiempo, igual
que en el worker; el checkpoint queda en `import_jobs` entre vueltas.

Ejecución:
  python scripts/run_crm_backfill.py --created-by ops
  python scripts/run_crm_backfill.py --account-scope 5f1a... --created-by ops
  python scripts/run_crm_backfill.py --job-id 3b6c...
"""

from __future__ import annotations

import argparse
import sys
from collections import deque
from pathlib import Path
from typing import Deque, Optional, Tuple

from loguru import logger
from dotenv import load_dotenv

# Permite ejecutar este script desde cualquier cwd sin configurar PYTHONPATH.
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

load_dotenv(_ROOT / ".env", override=False)

from crm_sync.application.services.backfill.phase_engine import (
    InvocationOutcome,
    WorkerInvocation,
)
from crm_sync.domain.entities.import_job import ImportType, JobStatus
from crm_sync.infrastructure.database.models import ImportJobModel
from crm_sync.infrastructure.database.session import Base, get_sync_engine, get_sync_session_factory
from crm_sync.infrastructure.external.crm.worker_factory import build_crm_client, build_engine


class InlineScheduler:
    """Guarda la continuacion para que el loop del script la ejecute."""

    def __init__(self) -> None:
        self.pending: Deque[WorkerInvocation] = deque()

    def schedule_continuation(
        self,
        job_id: str,
        *,
        generation: int,
        account_scope: Optional[str] = None,
    ) -> None:
        self.pending.append(
            WorkerInvocation(job_id=job_id, account_scope=account_scope, generation=generation)
        )


def _create_job(created_by: str, account_scope: Optional[str], owner_user_id: Optional[str]) -> str:
    Base.metadata.create_all(get_sync_engine(), tables=[ImportJobModel.__table__])
    with get_sync_session_factory().begin() as session:
        job = ImportJobModel(
            status=JobStatus.PENDING.value,
            import_type=ImportType.BACKFILL_SOURCES.value,
            created_by=created_by,
            account_scope=account_scope,
            owner_user_id=owner_user_id,
            error_details=[],
            generation=0,
        )
        session.add(job)
        session.flush()
        return job.id


def run_job(
    engine, scheduler: InlineScheduler, first: WorkerInvocation, max_invocations: int
) -> Tuple[InvocationOutcome, int]:
    """Encadena invocaciones hasta que no quede continuacion o se llegue al tope."""
    invocation: Optional[WorkerInvocation] = first
    outcome = InvocationOutcome.NOT_FOUND
    count = 0
    while invocation is not None and count < max_invocations:
        outcome = engine.run(invocation)
        count += 1
        logger.info(f"Invocacion {count}: {outcome.value}")
        invocation = scheduler.pending.popleft() if scheduler.pending else None
    return outcome, count


def exit_code(outcome: InvocationOutcome, status: Optional[str]) -> int:
    """0 si el job quedo `done`, incluso si ya lo estaba al reanudar."""
    if outcome is InvocationOutcome.DONE:
        return 0
    if outcome is InvocationOutcome.ALREADY_FINISHED and status == JobStatus.DONE.value:
        return 0
    return 1


def _job_status(job_id: str) -> Optional[str]:
    with get_sync_session_factory()() as session:
        job = session.get(ImportJobModel, job_id)
        return job.status if job is not None else None


def main() -> int:
    parser = argparse.ArgumentParser(description="Backfill de fuentes desde el CRM")
    parser.add_argument("--job-id", help="Reanudar un job existente en lugar de crear uno nuevo.")
    parser.add_argument("--account-scope", help="user_id del CRM para filtrar negociaciones.")
    parser.add_argument("--owner-user-id", help="Responsable local opcional.")
    parser.add_argument("--created-by", default="cli", help="Autor registrado en el job.")
    parser.add_argument(
        "--max-invocations",
        type=int,
        default=1000,
        help="Tope de invocaciones encadenadas (proteccion contra loops).",
    )
    args = parser.parse_args()

    job_id = args.job_id or _create_job(args.created_by, args.account_scope, args.owner_user_id)
    logger.info(f"Ejecutando job {job_id}")

    scheduler = InlineScheduler()
    client = build_crm_client()
    engine = build_engine(client=client, scheduler=scheduler)

    # Sin generacion explicita: se toma la almacenada (sirve para reanudar)
    first = WorkerInvocation(job_id=job_id, account_scope=args.account_scope)
    try:
        outcome, count = run_job(engine, scheduler, first, args.max_invocations)
    finally:
        client.close()

    code = exit_code(outcome, _job_status(job_id))
    if code == 0:
        logger.success(f"Job {job_id} terminado ({count} invocacion(es), {outcome.value})")
    else:
        logger.error(f"Job {job_id} no termino: {outcome.value}")
    return code


if __name__ == "__main__":
    raise SystemExit(main())

"""
Construccion del motor de backfill a partir de la configuracion.

Punto unico de armado para el endpoint del worker, el scheduler en
thread y el script de operador.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger
from sqlalchemy.orm import sessionmaker

from crm_sync.application.interfaces.continuation_scheduler import ContinuationScheduler
from crm_sync.application.services.backfill.contact_matcher import ContactMatcher
from crm_sync.application.services.backfill.phase_engine import (
    BackfillPhaseEngine,
    InvocationOutcome,
    WorkerInvocation,
)
from crm_sync.application.services.backfill.progress import JobProgressReporter
from crm_sync.application.services.backfill.timeout_guard import TimeoutGuard
from crm_sync.core.config import Settings, settings
from crm_sync.infrastructure.database.session import get_sync_session_factory
from crm_sync.infrastructure.external.crm.crm_client import CrmApiClient
from crm_sync.infrastructure.external.crm.scheduler import (
    HttpContinuationScheduler,
    ThreadContinuationScheduler,
)
from crm_sync.infrastructure.repositories.contact_repository_impl import ContactRepositoryImpl
from crm_sync.infrastructure.repositories.sql_checkpoint_store import SqlCheckpointStore


class WorkerConfigError(RuntimeError):
    """Configuracion invalida del worker."""


def build_crm_client(cfg: Settings = settings) -> CrmApiClient:
    return CrmApiClient(
        cfg.CRM_API_TOKEN,
        base_url=cfg.CRM_BASE_URL,
        token_in_query=cfg.CRM_TOKEN_IN_QUERY,
        request_delay_s=cfg.CRM_REQUEST_DELAY_S,
        rate_limit_cooldown_s=cfg.CRM_RATE_LIMIT_COOLDOWN_S,
        timeout_s=cfg.CRM_HTTP_TIMEOUT_S,
    )


def build_scheduler(cfg: Settings = settings) -> ContinuationScheduler:
    """
    Elige la implementacion segun WORKER_DISPATCH_MODE.

    - http: POST al endpoint del worker (WORKER_BASE_URL + WORKER_SECRET)
    - thread: invocacion en un thread daemon del mismo proceso
    """
    mode = cfg.WORKER_DISPATCH_MODE.strip().lower()
    if mode == "http":
        return HttpContinuationScheduler(cfg.WORKER_BASE_URL, cfg.WORKER_SECRET)
    if mode == "thread":
        return ThreadContinuationScheduler(run_invocation)
    raise WorkerConfigError(
        f"WORKER_DISPATCH_MODE invalido: '{cfg.WORKER_DISPATCH_MODE}' (usar 'http' o 'thread')"
    )


def build_engine(
    *,
    cfg: Settings = settings,
    client: Optional[CrmApiClient] = None,
    scheduler: Optional[ContinuationScheduler] = None,
    session_factory: Optional[sessionmaker] = None,
) -> BackfillPhaseEngine:
    """
    Arma el motor con sus colaboradores reales.

    Cualquier colaborador se puede inyectar (tests, script de operador).
    """
    factory = session_factory or get_sync_session_factory()
    store = SqlCheckpointStore(factory)
    return BackfillPhaseEngine(
        store=store,
        client=client or build_crm_client(cfg),
        matcher=ContactMatcher(ContactRepositoryImpl(factory), own_tag=cfg.CRM_SOURCE_TAG),
        scheduler=scheduler or build_scheduler(cfg),
        guard_factory=lambda: TimeoutGuard(cfg.WORKER_TIME_BUDGET_S),
        page_size=cfg.CRM_PAGE_SIZE,
        max_pages=cfg.CRM_MAX_PAGES,
        flush_every=cfg.PROGRESS_FLUSH_EVERY,
        error_details_limit=cfg.ERROR_DETAILS_LIMIT,
        reporter_factory=lambda job_id, generation, totals: JobProgressReporter(
            store, job_id, generation, totals, flush_every=cfg.PROGRESS_FLUSH_EVERY
        ),
    )


def run_invocation(invocation: WorkerInvocation) -> InvocationOutcome:
    """
    Ejecuta una invocacion completa del worker (bloqueante).
    Esta funcion es sincrona y se ejecuta en un thread separado.
    """
    client = build_crm_client()
    try:
        engine = build_engine(client=client)
        outcome = engine.run(invocation)
    finally:
        client.close()
    logger.info(f"Invocacion de job {invocation.job_id} finalizada: {outcome.value}")
    return outcome

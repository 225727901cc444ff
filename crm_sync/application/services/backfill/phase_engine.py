"""
Motor de fases del backfill de fuentes desde el CRM.

Diseño (resumen):
- fetching_deals: enumera todos los IDs de negociaciones en alcance,
  pagina por pagina, antes de tocar cualquier contacto.
- processing_deals: recorre la lista por indice; por cada negociacion
  busca los contactos vinculados y actualiza `source` si corresponde.
- Al agotar el presupuesto de tiempo se guarda el checkpoint y se pide
  una nueva invocacion. Al terminar, el job queda `done` sin checkpoint.

Una invocacion primero reclama el job incrementando `generation`; toda
escritura posterior se condiciona a esa generacion, de modo que dos
invocaciones solapadas nunca avanzan el mismo job.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from loguru import logger

from crm_sync.application.interfaces.continuation_scheduler import ContinuationScheduler
from crm_sync.application.interfaces.progress_reporter import ProgressReporterFactory
from crm_sync.application.services.backfill.contact_matcher import ContactMatcher, MatchOutcome
from crm_sync.application.services.backfill.paginator import Paginator
from crm_sync.application.services.backfill.progress import BoundedErrorLog, JobProgressReporter
from crm_sync.application.services.backfill.timeout_guard import TimeoutGuard
from crm_sync.domain.entities.checkpoint import (
    Checkpoint,
    DiscoveryCheckpoint,
    ProcessingCheckpoint,
    parse_checkpoint,
)
from crm_sync.domain.entities.contact import ExternalContact, ExternalDeal
from crm_sync.domain.entities.import_job import JobSnapshot, JobStatus, SyncCounters
from crm_sync.domain.repositories.checkpoint_store import ICheckpointStore, StaleInvocationError
from crm_sync.infrastructure.external.crm.crm_client import (
    CrmApiClient,
    CrmApiError,
    CrmTransportError,
)


class InvocationOutcome(str, Enum):
    """Resultado de una invocacion del worker."""
    NOT_FOUND = "not_found"
    ALREADY_FINISHED = "already_finished"
    STALE = "stale"
    CHECKPOINTED = "checkpointed"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class WorkerInvocation:
    """
    Pedido de ejecucion recibido por el worker.

    `generation` es la generacion que el emisor espera encontrar; sin
    valor se usa la generacion almacenada.
    """

    job_id: str
    account_scope: Optional[str] = None
    generation: Optional[int] = None


@dataclass
class _JobRun:
    job_id: str
    generation: int
    account_scope: Optional[str]


class BackfillPhaseEngine:
    """Secuencia un job por sus fases, reanudable desde el checkpoint."""

    def __init__(
        self,
        store: ICheckpointStore,
        client: CrmApiClient,
        matcher: ContactMatcher,
        scheduler: ContinuationScheduler,
        *,
        guard_factory: Callable[[], TimeoutGuard],
        page_size: int = 200,
        max_pages: int = 50,
        flush_every: int = 10,
        error_details_limit: int = 100,
        reporter_factory: Optional[ProgressReporterFactory] = None,
    ) -> None:
        self._store = store
        self._client = client
        self._matcher = matcher
        self._scheduler = scheduler
        self._guard_factory = guard_factory
        self._page_size = page_size
        self._max_pages = max_pages
        self._flush_every = flush_every
        self._error_details_limit = error_details_limit
        self._reporter_factory = reporter_factory or self._job_row_reporter

    def _job_row_reporter(self, job_id: str, generation: int, totals: SyncCounters) -> JobProgressReporter:
        return JobProgressReporter(self._store, job_id, generation, totals, self._flush_every)

    def run(self, invocation: WorkerInvocation) -> InvocationOutcome:
        job_id = invocation.job_id
        snapshot = self._store.load(job_id)
        if snapshot is None:
            logger.warning(f"Job {job_id} no existe; invocacion ignorada")
            return InvocationOutcome.NOT_FOUND

        if snapshot.status.is_terminal:
            logger.info(f"Job {job_id} ya termino ({snapshot.status.value}); nada que hacer")
            return InvocationOutcome.ALREADY_FINISHED

        expected = invocation.generation
        if expected is None:
            expected = snapshot.generation
        generation = self._store.claim(job_id, expected)
        if generation is None:
            logger.warning(
                f"Job {job_id}: invocacion vieja (esperaba generacion {expected}); se descarta"
            )
            return InvocationOutcome.STALE

        guard = self._guard_factory()
        run = _JobRun(
            job_id=job_id,
            generation=generation,
            account_scope=snapshot.account_scope or invocation.account_scope,
        )
        logger.info(f"Job {job_id}: invocacion generacion {generation}")

        try:
            return self._run_phases(run, snapshot, guard)
        except StaleInvocationError:
            logger.warning(f"Job {job_id}: otra invocacion tomo el job; se abandona")
            return InvocationOutcome.STALE
        except Exception as e:
            logger.exception(f"Job {job_id}: error fatal en el motor: {e}")
            try:
                self._store.fail(job_id, generation, str(e) or e.__class__.__name__)
            except StaleInvocationError:
                return InvocationOutcome.STALE
            return InvocationOutcome.FAILED

    def _run_phases(
        self, run: _JobRun, snapshot: JobSnapshot, guard: TimeoutGuard
    ) -> InvocationOutcome:
        checkpoint: Checkpoint = parse_checkpoint(snapshot.checkpoint_data)
        if checkpoint.account_scope:
            run.account_scope = checkpoint.account_scope

        if isinstance(checkpoint, DiscoveryCheckpoint):
            result = self._discover(run, checkpoint, guard)
            if isinstance(result, DiscoveryCheckpoint):
                return self._pause(run, result, SyncCounters(found=len(result.deal_ids)))
            checkpoint = result

        return self._process(run, checkpoint, guard)

    # ------------------------------------------------------------------
    # fetching_deals
    # ------------------------------------------------------------------

    def _discover(
        self, run: _JobRun, checkpoint: DiscoveryCheckpoint, guard: TimeoutGuard
    ) -> Union[DiscoveryCheckpoint, ProcessingCheckpoint]:
        """
        Devuelve un DiscoveryCheckpoint si se agoto el tiempo, o el
        ProcessingCheckpoint inicial (ya persistido) si termino.
        """
        self._store.mark_status(run.job_id, run.generation, JobStatus.FETCHING_DEALS)

        deal_ids: List[str] = list(checkpoint.deal_ids)
        next_page = checkpoint.page
        paginator = Paginator(
            lambda page, limit: self._client.list_deals(
                page=page, limit=limit, user_id=run.account_scope
            ),
            page_size=self._page_size,
            max_pages=self._max_pages,
        )
        pages = paginator.iter_pages(start_page=next_page)

        while True:
            if guard.should_stop():
                logger.info(
                    f"Job {run.job_id}: tiempo agotado en descubrimiento (pagina {next_page}, "
                    f"{len(deal_ids)} IDs)"
                )
                return DiscoveryCheckpoint(
                    page=next_page, deal_ids=deal_ids, account_scope=run.account_scope
                )

            page = next(pages, None)
            if page is None:
                break

            for item in page.items:
                deal_id = item.get("_id") or item.get("id")
                if deal_id:
                    deal_ids.append(str(deal_id))
            next_page = page.number + 1
            logger.debug(f"Job {run.job_id}: pagina {page.number} con {len(page.items)} deals")
            if page.is_last:
                break

        logger.info(f"Job {run.job_id}: descubrimiento completo, {len(deal_ids)} deals")
        processing = ProcessingCheckpoint.start(deal_ids, run.account_scope)
        self._store.save_checkpoint(
            run.job_id, run.generation, processing, SyncCounters(found=len(deal_ids))
        )
        return processing

    # ------------------------------------------------------------------
    # processing_deals
    # ------------------------------------------------------------------

    def _process(
        self, run: _JobRun, checkpoint: ProcessingCheckpoint, guard: TimeoutGuard
    ) -> InvocationOutcome:
        self._store.mark_status(run.job_id, run.generation, JobStatus.IMPORTING)

        deal_ids = checkpoint.deal_ids
        totals = SyncCounters(
            found=len(deal_ids),
            updated=checkpoint.updated,
            skipped=checkpoint.skipped,
            errors=checkpoint.errors,
        )
        error_log = BoundedErrorLog(self._error_details_limit, checkpoint.error_details)
        reporter = self._reporter_factory(run.job_id, run.generation, totals)

        index = checkpoint.deal_index
        while index < len(deal_ids):
            if guard.should_stop():
                logger.info(
                    f"Job {run.job_id}: tiempo agotado en procesamiento ({index}/{len(deal_ids)})"
                )
                paused = ProcessingCheckpoint(
                    deal_ids=deal_ids,
                    deal_index=index,
                    updated=totals.updated,
                    skipped=totals.skipped,
                    errors=totals.errors,
                    error_details=error_log.to_list(),
                    account_scope=run.account_scope,
                )
                return self._pause(run, paused, totals)

            delta = self._process_deal(deal_ids[index], error_log)
            totals.add(delta)
            reporter.report(delta)
            index += 1

        self._store.finish(run.job_id, run.generation, totals, error_log.to_list())
        logger.success(
            f"Job {run.job_id} terminado: {totals.updated} actualizados, "
            f"{totals.skipped} omitidos, {totals.errors} errores"
        )
        return InvocationOutcome.DONE

    def _process_deal(self, deal_id: str, error_log: BoundedErrorLog) -> SyncCounters:
        """Procesa una negociacion y devuelve su delta de contadores."""
        try:
            deal = ExternalDeal.from_payload(self._client.get_deal(deal_id), fallback_id=deal_id)
        except CrmApiError as e:
            logger.warning(f"Deal {deal_id}: detalle no disponible ({e.status_code}); se omite")
            return SyncCounters(skipped=1)
        except CrmTransportError as e:
            logger.warning(f"Deal {deal_id}: {e}")
            error_log.add(f"Deal {deal_id}", str(e))
            return SyncCounters(errors=1)

        if not deal.source_label:
            return SyncCounters(skipped=1)

        try:
            raw_contacts = self._client.list_deal_contacts(deal_id)
        except CrmApiError as e:
            logger.warning(f"Deal {deal_id}: contactos no disponibles ({e.status_code}); se omite")
            return SyncCounters(skipped=1)
        except CrmTransportError as e:
            logger.warning(f"Deal {deal_id}: {e}")
            error_log.add(f"Deal {deal_id}", str(e))
            return SyncCounters(errors=1)

        if not raw_contacts:
            return SyncCounters(skipped=1)

        delta = SyncCounters()
        for raw in raw_contacts:
            contact = None
            try:
                contact = ExternalContact.from_payload(raw)
                outcome = self._matcher.apply(contact, deal.source_label)
            except Exception as e:
                name = (contact.display_name if contact else "") or f"Deal {deal_id}"
                logger.warning(f"Deal {deal_id}: error en contacto '{name}': {e}")
                error_log.add(name, str(e))
                delta.errors += 1
                continue

            if outcome is MatchOutcome.UPDATED:
                delta.updated += 1
            else:
                delta.skipped += 1
        return delta

    # ------------------------------------------------------------------

    def _pause(self, run: _JobRun, checkpoint: Checkpoint, counters: SyncCounters) -> InvocationOutcome:
        self._store.save_checkpoint(run.job_id, run.generation, checkpoint, counters)
        self._scheduler.schedule_continuation(
            run.job_id, generation=run.generation, account_scope=run.account_scope
        )
        logger.info(f"Job {run.job_id}: checkpoint '{checkpoint.phase}' guardado; re-encolado")
        return InvocationOutcome.CHECKPOINTED

"""
Tests del motor de fases: reanudacion, cortocircuitos y errores fatales.
"""
from __future__ import annotations

from typing import List

import pytest
from sqlalchemy import update

from crm_sync.application.services.backfill.contact_matcher import ContactMatcher, MatchOutcome
from crm_sync.application.services.backfill.phase_engine import (
    BackfillPhaseEngine,
    InvocationOutcome,
    WorkerInvocation,
)
from crm_sync.domain.entities.checkpoint import DiscoveryCheckpoint, ProcessingCheckpoint, dump_checkpoint
from crm_sync.domain.entities.import_job import JobStatus
from crm_sync.infrastructure.database.models import ImportJobModel
from crm_sync.infrastructure.external.crm.crm_client import (
    CrmApiClient,
    CrmApiError,
    CrmTransportError,
)
from crm_sync.infrastructure.repositories.contact_repository_impl import ContactRepositoryImpl
from crm_sync.infrastructure.repositories.sql_checkpoint_store import SqlCheckpointStore
from tests.fakes import FakeCrmClient, RecordingScheduler, ScriptedGuard, get_job, insert_job


def _labeled_crm(deal_ids: List[str]) -> FakeCrmClient:
    deals = {d: {"_id": d, "deal_source": {"name": "Site"}} for d in deal_ids}
    return FakeCrmClient(deal_ids, deals=deals)


def _engine(factory, client, guard=None, matcher=None, scheduler=None, page_size=2, max_pages=50):
    return BackfillPhaseEngine(
        store=SqlCheckpointStore(factory),
        client=client,
        matcher=matcher or ContactMatcher(ContactRepositoryImpl(factory), own_tag="rd_crm"),
        scheduler=scheduler or RecordingScheduler(),
        guard_factory=lambda: guard or ScriptedGuard(),
        page_size=page_size,
        max_pages=max_pages,
        flush_every=10,
        error_details_limit=100,
    )


def test_unknown_job_returns_not_found(sync_session_factory) -> None:
    crm = FakeCrmClient([])
    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id="no-existe"))

    assert outcome is InvocationOutcome.NOT_FOUND
    assert crm.total_calls == 0


@pytest.mark.parametrize("status", [JobStatus.DONE, JobStatus.ERROR])
def test_terminal_job_short_circuits(sync_session_factory, status: JobStatus) -> None:
    job_id = insert_job(sync_session_factory, status=status, generation=4)
    crm = _labeled_crm(["d1", "d2"])
    scheduler = RecordingScheduler()

    outcome = _engine(sync_session_factory, crm, scheduler=scheduler).run(
        WorkerInvocation(job_id=job_id, generation=4)
    )

    assert outcome is InvocationOutcome.ALREADY_FINISHED
    assert crm.total_calls == 0
    assert scheduler.calls == []
    job = get_job(sync_session_factory, job_id)
    assert job.generation == 4
    assert job.status == status.value


def test_stale_generation_is_rejected_before_any_call(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory, generation=3)
    crm = _labeled_crm(["d1"])

    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id=job_id, generation=1))

    assert outcome is InvocationOutcome.STALE
    assert crm.total_calls == 0
    assert get_job(sync_session_factory, job_id).generation == 3


def test_invocation_without_generation_uses_stored_one(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory, generation=7)
    crm = _labeled_crm(["d1"])

    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id=job_id))

    assert outcome is InvocationOutcome.DONE
    assert get_job(sync_session_factory, job_id).generation == 8


def test_overtaken_invocation_stops_without_touching_job(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory)
    crm = _labeled_crm(["d1", "d2", "d3"])

    def bump_generation(page: int) -> None:
        with sync_session_factory.begin() as session:
            session.execute(
                update(ImportJobModel).where(ImportJobModel.id == job_id).values(generation=99)
            )

    crm.on_list_deals = bump_generation

    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id=job_id, generation=0))

    assert outcome is InvocationOutcome.STALE
    job = get_job(sync_session_factory, job_id)
    assert job.status == JobStatus.FETCHING_DEALS.value
    assert job.error_message is None
    assert job.checkpoint_data is None


def test_discovery_resume_keeps_accumulated_ids(sync_session_factory) -> None:
    deal_ids = ["d1", "d2", "d3", "d4", "d5"]
    checkpoint = DiscoveryCheckpoint(page=2, deal_ids=["d1", "d2"])
    job_id = insert_job(sync_session_factory, checkpoint_data=dump_checkpoint(checkpoint))
    crm = _labeled_crm(deal_ids)

    outcome = _engine(sync_session_factory, crm, guard=ScriptedGuard(allowed=2)).run(
        WorkerInvocation(job_id=job_id)
    )

    assert outcome is InvocationOutcome.CHECKPOINTED
    assert [call[0] for call in crm.page_calls] == [2, 3]
    job = get_job(sync_session_factory, job_id)
    assert job.checkpoint_data["phase"] == "processing_deals"
    assert job.checkpoint_data["deal_ids"] == deal_ids
    assert job.checkpoint_data["deal_index"] == 0
    assert job.deals_found == 5


def test_processing_index_never_regresses(sync_session_factory) -> None:
    deal_ids = ["d1", "d2", "d3", "d4", "d5"]
    checkpoint = ProcessingCheckpoint.start(deal_ids, account_scope=None)
    job_id = insert_job(sync_session_factory, checkpoint_data=dump_checkpoint(checkpoint))
    crm = _labeled_crm(deal_ids)

    seen_indexes = []
    for allowed in (2, 1, None):
        outcome = _engine(sync_session_factory, crm, guard=ScriptedGuard(allowed=allowed)).run(
            WorkerInvocation(job_id=job_id)
        )
        job = get_job(sync_session_factory, job_id)
        if outcome is InvocationOutcome.CHECKPOINTED:
            data = job.checkpoint_data
            seen_indexes.append(data["deal_index"])
            # Indice == resultados ya contabilizados
            assert data["deal_index"] == data["updated"] + data["skipped"] + data["errors"]

    assert seen_indexes == [2, 3]
    assert outcome is InvocationOutcome.DONE
    assert crm.deal_calls == deal_ids
    job = get_job(sync_session_factory, job_id)
    assert job.status == JobStatus.DONE.value
    assert job.contacts_skipped == 5


def test_discovery_page_failure_marks_job_error(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory)
    crm = _labeled_crm(["d1"])

    def fail(page: int) -> None:
        raise CrmApiError("CRM request fallo 500 en /deals", status_code=500)

    crm.on_list_deals = fail

    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id=job_id))

    assert outcome is InvocationOutcome.FAILED
    job = get_job(sync_session_factory, job_id)
    assert job.status == JobStatus.ERROR.value
    assert "500" in job.error_message
    assert job.checkpoint_data is None


def test_missing_token_is_fatal(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory)
    client = CrmApiClient("", sleep=lambda s: None)

    outcome = _engine(sync_session_factory, client).run(WorkerInvocation(job_id=job_id))

    assert outcome is InvocationOutcome.FAILED
    job = get_job(sync_session_factory, job_id)
    assert job.status == JobStatus.ERROR.value
    assert "CRM_API_TOKEN" in job.error_message


def test_unknown_checkpoint_phase_is_fatal(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory, checkpoint_data={"phase": "exporting", "page": 3})
    crm = _labeled_crm(["d1"])

    outcome = _engine(sync_session_factory, crm).run(WorkerInvocation(job_id=job_id))

    assert outcome is InvocationOutcome.FAILED
    assert crm.total_calls == 0
    assert get_job(sync_session_factory, job_id).status == JobStatus.ERROR.value


def test_record_failures_do_not_abort_processing(sync_session_factory) -> None:
    deal_ids = ["d1", "d2", "d3", "d4"]
    checkpoint = ProcessingCheckpoint.start(deal_ids, account_scope=None)
    job_id = insert_job(sync_session_factory, checkpoint_data=dump_checkpoint(checkpoint))
    crm = _labeled_crm(deal_ids)
    crm.deal_errors["d1"] = CrmApiError("CRM request fallo 404", status_code=404)
    crm.deal_errors["d2"] = CrmTransportError("Error de red hacia el CRM: timeout")
    crm.contacts["d3"] = [{"name": "Carla", "phones": [{"phone": "11988887777"}]}]
    crm.contacts["d4"] = [{"name": "Diego", "emails": [{"email": "diego@example.com"}]}]

    class ExplodingMatcher:
        def apply(self, contact, source_label):
            if contact.name == "Carla":
                raise RuntimeError("violacion de constraint")
            return MatchOutcome.UPDATED

    outcome = _engine(sync_session_factory, crm, matcher=ExplodingMatcher()).run(
        WorkerInvocation(job_id=job_id)
    )

    assert outcome is InvocationOutcome.DONE
    job = get_job(sync_session_factory, job_id)
    assert job.contacts_skipped == 1
    assert job.contacts_errors == 2
    assert job.contacts_imported == 1
    assert {d["name"] for d in job.error_details} == {"Deal d2", "Carla"}


def test_malformed_linked_contact_counts_as_error(sync_session_factory) -> None:
    deal_ids = ["d1", "d2"]
    checkpoint = ProcessingCheckpoint.start(deal_ids, account_scope=None)
    job_id = insert_job(sync_session_factory, checkpoint_data=dump_checkpoint(checkpoint))
    crm = _labeled_crm(deal_ids)
    crm.contacts["d1"] = [None]
    crm.contacts["d2"] = [{"name": "Elena", "emails": [{"email": "elena@example.com"}]}]

    class AlwaysUpdates:
        def apply(self, contact, source_label):
            return MatchOutcome.UPDATED

    outcome = _engine(sync_session_factory, crm, matcher=AlwaysUpdates()).run(
        WorkerInvocation(job_id=job_id)
    )

    assert outcome is InvocationOutcome.DONE
    assert crm.deal_calls == ["d1", "d2"]
    job = get_job(sync_session_factory, job_id)
    assert job.status == JobStatus.DONE.value
    assert job.contacts_errors == 1
    assert job.contacts_imported == 1
    assert [d["name"] for d in job.error_details] == ["Deal d1"]


def test_injected_reporter_receives_every_deal_delta(sync_session_factory) -> None:
    deal_ids = ["d1", "d2", "d3"]
    checkpoint = ProcessingCheckpoint.start(deal_ids, account_scope=None)
    job_id = insert_job(sync_session_factory, checkpoint_data=dump_checkpoint(checkpoint))
    crm = _labeled_crm(deal_ids)
    crm.contacts["d2"] = [{"name": "Fabio", "phones": [{"phone": "11977776666"}]}]

    class _ListReporter:
        def __init__(self) -> None:
            self.deltas = []

        def report(self, delta) -> None:
            self.deltas.append(delta)

        def flush(self) -> None:
            pass

    reporter = _ListReporter()
    calls = []

    def reporter_factory(job, generation, totals):
        calls.append((job, generation))
        return reporter

    engine = BackfillPhaseEngine(
        store=SqlCheckpointStore(sync_session_factory),
        client=crm,
        matcher=ContactMatcher(ContactRepositoryImpl(sync_session_factory), own_tag="rd_crm"),
        scheduler=RecordingScheduler(),
        guard_factory=ScriptedGuard,
        reporter_factory=reporter_factory,
    )

    assert engine.run(WorkerInvocation(job_id=job_id)) is InvocationOutcome.DONE
    assert calls == [(job_id, 1)]
    assert [d.outcomes for d in reporter.deltas] == [1, 1, 1]
    assert get_job(sync_session_factory, job_id).contacts_skipped == 3


def test_account_scope_filters_discovery(sync_session_factory) -> None:
    job_id = insert_job(sync_session_factory, account_scope="user-42")
    crm = _labeled_crm(["d1"])
    scheduler = RecordingScheduler()

    _engine(
        sync_session_factory, crm, guard=ScriptedGuard(allowed=1), scheduler=scheduler
    ).run(WorkerInvocation(job_id=job_id))

    assert crm.page_calls == [(1, 2, "user-42")]
    assert get_job(sync_session_factory, job_id).checkpoint_data["account_scope"] == "user-42"

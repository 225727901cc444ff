"""
Tests de las implementaciones de re-encolado y del armado del motor.
"""
from __future__ import annotations

import threading
from typing import List

import pytest
import requests

from crm_sync.application.services.backfill.phase_engine import BackfillPhaseEngine, WorkerInvocation
from crm_sync.core.config import Settings
from crm_sync.core.events import collect_config_warnings
from crm_sync.infrastructure.external.crm.scheduler import (
    HttpContinuationScheduler,
    ThreadContinuationScheduler,
)
from crm_sync.infrastructure.external.crm.worker_factory import (
    WorkerConfigError,
    build_engine,
    build_scheduler,
)


class _FakeResponse:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        self.text = ""


class _FakeSession:
    def __init__(self, result) -> None:
        self._result = result
        self.calls: List[dict] = []

    def post(self, url, json=None, headers=None, timeout=None):
        self.calls.append({"url": url, "json": json, "headers": headers})
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


def test_http_scheduler_posts_authenticated_invocation() -> None:
    session = _FakeSession(_FakeResponse(202))
    scheduler = HttpContinuationScheduler("http://worker.local/", "s3cret", session=session)

    scheduler.schedule_continuation("job-1", generation=4, account_scope="u-1")

    assert session.calls == [{
        "url": "http://worker.local/api/v1/worker/crm-import",
        "json": {"job_id": "job-1", "account_scope": "u-1", "generation": 4},
        "headers": {"Authorization": "Bearer s3cret"},
    }]


@pytest.mark.parametrize("result", [requests.ConnectionError("refused"), _FakeResponse(401)])
def test_http_scheduler_failure_is_not_raised_nor_retried(result) -> None:
    session = _FakeSession(result)
    scheduler = HttpContinuationScheduler("http://worker.local", "s3cret", session=session)

    scheduler.schedule_continuation("job-1", generation=1)

    assert len(session.calls) == 1


def test_thread_scheduler_runs_invocation() -> None:
    received: List[WorkerInvocation] = []
    finished = threading.Event()

    def runner(invocation: WorkerInvocation) -> None:
        received.append(invocation)
        finished.set()

    ThreadContinuationScheduler(runner).schedule_continuation("job-2", generation=5)

    assert finished.wait(timeout=2)
    assert received == [WorkerInvocation(job_id="job-2", generation=5)]


def test_scheduler_selected_by_dispatch_mode() -> None:
    assert isinstance(build_scheduler(Settings(WORKER_DISPATCH_MODE="http")), HttpContinuationScheduler)
    assert isinstance(build_scheduler(Settings(WORKER_DISPATCH_MODE="thread")), ThreadContinuationScheduler)
    with pytest.raises(WorkerConfigError):
        build_scheduler(Settings(WORKER_DISPATCH_MODE="kafka"))


def test_build_engine_with_injected_collaborators(sync_session_factory) -> None:
    engine = build_engine(
        cfg=Settings(WORKER_DISPATCH_MODE="thread"),
        session_factory=sync_session_factory,
    )

    assert isinstance(engine, BackfillPhaseEngine)


def test_config_warnings_for_missing_credentials() -> None:
    warnings = collect_config_warnings(
        Settings(CRM_API_TOKEN="", WORKER_SECRET="", AUTH_USERNAME="", ENVIRONMENT="production")
    )

    assert any("CRM_API_TOKEN" in w for w in warnings)
    assert any("WORKER_SECRET" in w for w in warnings)
    assert any("AUTH_USERNAME" in w for w in warnings)

"""
Implementaciones del re-encolado (self-requeue) del worker.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

import requests
from loguru import logger

from crm_sync.application.services.backfill.phase_engine import WorkerInvocation

WORKER_PATH = "/api/v1/worker/crm-import"


class HttpContinuationScheduler:
    """
    POST fire-and-forget al endpoint interno del worker.

    El endpoint responde 202 apenas agenda la ejecucion, por eso el
    timeout corto alcanza. Un fallo de entrega se registra y no se
    reintenta.
    """

    def __init__(
        self,
        base_url: str,
        secret: str,
        *,
        session: Optional[requests.Session] = None,
        timeout_s: float = 10.0,
    ) -> None:
        self._url = f"{base_url.rstrip('/')}{WORKER_PATH}"
        self._secret = secret
        self._session = session or requests.Session()
        self._timeout_s = timeout_s

    def schedule_continuation(
        self,
        job_id: str,
        *,
        generation: int,
        account_scope: Optional[str] = None,
    ) -> None:
        body = {"job_id": job_id, "account_scope": account_scope, "generation": generation}
        try:
            resp = self._session.post(
                self._url,
                json=body,
                headers={"Authorization": f"Bearer {self._secret}"},
                timeout=self._timeout_s,
            )
        except requests.RequestException as e:
            logger.error(f"No se pudo re-encolar job {job_id}: {e}")
            return

        if resp.status_code >= 300:
            logger.error(
                f"Re-encolado de job {job_id} rechazado: {resp.status_code} {resp.text[:200]}"
            )
            return
        logger.info(f"Job {job_id} re-encolado (generacion {generation})")


class ThreadContinuationScheduler:
    """
    Ejecuta la siguiente invocacion en un thread daemon del mismo proceso.

    Pensado para desarrollo o un unico nodo: no sobrevive a un reinicio.
    """

    def __init__(self, run_invocation: Callable[[WorkerInvocation], object]) -> None:
        self._run_invocation = run_invocation

    def schedule_continuation(
        self,
        job_id: str,
        *,
        generation: int,
        account_scope: Optional[str] = None,
    ) -> None:
        invocation = WorkerInvocation(
            job_id=job_id, account_scope=account_scope, generation=generation
        )
        thread = threading.Thread(
            target=self._run_invocation,
            args=(invocation,),
            name=f"crm-backfill-{job_id[:8]}",
            daemon=True,
        )
        thread.start()
        logger.info(f"Job {job_id} continua en thread {thread.name} (generacion {generation})")

"""
Dependencias para inyeccion de casos de uso.
"""
from typing import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crm_sync.application.interfaces.continuation_scheduler import ContinuationScheduler
from crm_sync.application.use_cases.auth_use_cases import AuthUseCases
from crm_sync.application.use_cases.crm_use_cases import CrmUseCases
from crm_sync.application.use_cases.import_use_cases import ImportUseCases
from crm_sync.application.use_cases.worker_use_cases import WorkerUseCases
from crm_sync.core.config import settings
from crm_sync.core.security import security_service
from crm_sync.infrastructure.database.session import get_db
from crm_sync.infrastructure.external.crm.worker_factory import (
    build_crm_client,
    build_scheduler,
    run_invocation,
)
from crm_sync.infrastructure.security.single_user_auth_service import SingleUserAuthService


def get_continuation_scheduler() -> ContinuationScheduler:
    """
    Dependencia para obtener el scheduler de invocaciones del worker.

    Returns:
        ContinuationScheduler: Implementacion segun WORKER_DISPATCH_MODE
    """
    return build_scheduler(settings)


async def get_import_use_cases(
    db: AsyncSession = Depends(get_db),
    scheduler: ContinuationScheduler = Depends(get_continuation_scheduler),
) -> ImportUseCases:
    """
    Dependencia para obtener los casos de uso de importacion.

    Args:
        db: Sesion de base de datos
        scheduler: Disparador de la primera invocacion

    Returns:
        ImportUseCases: Instancia de casos de uso de importacion
    """
    return ImportUseCases(db, scheduler)


def get_worker_use_cases() -> WorkerUseCases:
    return WorkerUseCases(run_invocation)


async def get_crm_use_cases() -> AsyncGenerator[CrmUseCases, None]:
    client = build_crm_client(settings)
    try:
        yield CrmUseCases(client)
    finally:
        client.close()


def get_auth_use_cases() -> AuthUseCases:
    return AuthUseCases(SingleUserAuthService.from_settings(settings), security_service)

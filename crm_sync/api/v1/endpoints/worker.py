"""
Punto de entrada interno del worker.

Solo lo invocan el dispatcher y el re-encolado, con WORKER_SECRET.
Responde 202 de inmediato; el resultado queda en la fila del job.
"""
from fastapi import APIRouter, Depends, status

from crm_sync.api.v1.dependencies.auth_deps import require_service_token
from crm_sync.api.v1.dependencies.use_case_deps import get_worker_use_cases
from crm_sync.application.dto.import_dto import WorkerAcceptedDTO, WorkerInvocationDTO
from crm_sync.application.use_cases.worker_use_cases import WorkerUseCases


router = APIRouter(prefix="/worker", tags=["Worker"])


@router.post(
    "/crm-import",
    response_model=WorkerAcceptedDTO,
    status_code=status.HTTP_202_ACCEPTED,
    dependencies=[Depends(require_service_token)],
    summary="Ejecutar una invocacion del backfill (interno)"
)
async def run_crm_import(
    dto: WorkerInvocationDTO,
    use_cases: WorkerUseCases = Depends(get_worker_use_cases),
) -> WorkerAcceptedDTO:
    return await use_cases.accept(dto)

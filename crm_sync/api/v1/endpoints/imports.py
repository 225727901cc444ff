"""
Endpoints del plano de control de importaciones desde el CRM.
"""
from fastapi import APIRouter, Depends, status

from crm_sync.api.v1.dependencies.auth_deps import get_current_operator
from crm_sync.api.v1.dependencies.use_case_deps import get_import_use_cases
from crm_sync.application.dto.import_dto import (
    ImportStartDTO,
    ImportStartResponseDTO,
    ImportStatusDTO,
)
from crm_sync.application.use_cases.import_use_cases import ImportUseCases


router = APIRouter(prefix="/crm-imports", tags=["CRM Imports"])


@router.post(
    "",
    response_model=ImportStartResponseDTO,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Iniciar importacion desde el CRM"
)
async def start_import(
    dto: ImportStartDTO,
    operator: str = Depends(get_current_operator),
    use_cases: ImportUseCases = Depends(get_import_use_cases),
) -> ImportStartResponseDTO:
    """
    Crea un job `pending` y dispara la primera invocacion del worker.

    El progreso se consulta con GET /crm-imports/{job_id}.
    """
    return await use_cases.start_import(dto, created_by=operator)


@router.get(
    "/{job_id}",
    response_model=ImportStatusDTO,
    summary="Estado de un job de importacion"
)
async def get_import_status(
    job_id: str,
    operator: str = Depends(get_current_operator),
    use_cases: ImportUseCases = Depends(get_import_use_cases),
) -> ImportStatusDTO:
    return await use_cases.get_import_status(job_id)

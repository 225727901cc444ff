"""
Endpoints de consulta al CRM externo.
Permiten verificar el token y elegir el `account_scope` desde la UI.
"""
from typing import List

from fastapi import APIRouter, Depends

from crm_sync.api.v1.dependencies.auth_deps import get_current_operator
from crm_sync.api.v1.dependencies.use_case_deps import get_crm_use_cases
from crm_sync.application.dto.import_dto import CrmConnectionDTO, CrmUserDTO
from crm_sync.application.use_cases.crm_use_cases import CrmUseCases


router = APIRouter(
    prefix="/crm",
    tags=["CRM"],
    dependencies=[Depends(get_current_operator)],
)


@router.get("/connection", response_model=CrmConnectionDTO, summary="Verificar token del CRM")
async def check_connection(
    use_cases: CrmUseCases = Depends(get_crm_use_cases),
) -> CrmConnectionDTO:
    return await use_cases.check_connection()


@router.get("/users", response_model=List[CrmUserDTO], summary="Usuarios del CRM")
async def list_users(
    use_cases: CrmUseCases = Depends(get_crm_use_cases),
) -> List[CrmUserDTO]:
    return await use_cases.list_users()

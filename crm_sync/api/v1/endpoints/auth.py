"""
Endpoints de autenticación.

Login único del operador configurado por env. El token devuelto protege
los endpoints de importacion y de consulta al CRM.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from crm_sync.api.v1.dependencies.use_case_deps import get_auth_use_cases
from crm_sync.application.use_cases.auth_use_cases import AuthUseCases


class AuthLoginRequestDTO(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthLoginResponseDTO(BaseModel):
    access_token: str
    token_type: str = "bearer"


router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post(
    "/login",
    response_model=AuthLoginResponseDTO,
    status_code=status.HTTP_200_OK,
    summary="Login del operador",
)
def login(
    dto: AuthLoginRequestDTO,
    use_cases: AuthUseCases = Depends(get_auth_use_cases),
) -> AuthLoginResponseDTO:
    return AuthLoginResponseDTO(access_token=use_cases.login(dto.username, dto.password))

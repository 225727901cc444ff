"""
Dependencias de autenticacion.

- Operador: JWT emitido por /auth/login.
- Servicio: bearer compartido (WORKER_SECRET) para el endpoint del worker.
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from crm_sync.core.security import security_service
from crm_sync.shared.exceptions.auth import UnauthorizedException


bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_operator(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """
    Valida el JWT del operador.

    Returns:
        str: Usuario (claim `sub`) del token
    """
    if credentials is None:
        raise UnauthorizedException("Falta token de acceso")
    payload = security_service.decode_access_token(credentials.credentials)
    subject = payload.get("sub")
    if not subject:
        raise UnauthorizedException("Token sin usuario")
    return str(subject)


async def require_service_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> None:
    """Solo el dispatcher y el re-encolado conocen WORKER_SECRET."""
    token = credentials.credentials if credentials else ""
    if not security_service.verify_service_token(token):
        raise UnauthorizedException("Credencial de servicio invalida")

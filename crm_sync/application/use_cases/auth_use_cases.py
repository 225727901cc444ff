"""
Casos de uso para autenticación.

Caso principal en este proyecto:
- login único del operador, que recibe un JWT para el plano de control.
"""

from __future__ import annotations

from crm_sync.core.security import SecurityService
from crm_sync.infrastructure.security.single_user_auth_service import SingleUserAuthService
from crm_sync.shared.exceptions.auth import AuthNotConfiguredException, InvalidCredentialsException


class AuthUseCases:
    def __init__(self, auth_service: SingleUserAuthService, security: SecurityService) -> None:
        self._auth_service = auth_service
        self._security = security

    def is_configured(self) -> bool:
        return self._auth_service.is_configured()

    def verify_login(self, username: str, password: str) -> bool:
        return self._auth_service.verify(username=username, password=password)

    def login(self, username: str, password: str) -> str:
        """
        Valida credenciales y emite el token de acceso.

        Raises:
            AuthNotConfiguredException: Si no hay usuario configurado
            InvalidCredentialsException: Si las credenciales no coinciden
        """
        if not self.is_configured():
            raise AuthNotConfiguredException()
        if not self.verify_login(username, password):
            raise InvalidCredentialsException()
        return self._security.create_access_token({"sub": username})

"""
Errores de autenticación del operador y de la credencial del worker.
"""
from crm_sync.shared.exceptions.base import AppException


class AuthException(AppException):
    status_code = 401
    error_code = "AUTH_ERROR"


class InvalidCredentialsException(AuthException):
    error_code = "INVALID_CREDENTIALS"

    def __init__(self) -> None:
        super().__init__("Credenciales inválidas")


class TokenExpiredException(AuthException):
    error_code = "TOKEN_EXPIRED"

    def __init__(self) -> None:
        super().__init__("El token ha expirado")


class UnauthorizedException(AuthException):
    """Falta el bearer o no corresponde al tipo de llamador esperado."""

    error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "No autorizado") -> None:
        super().__init__(message)


class AuthNotConfiguredException(AppException):
    """El login de operador no tiene credenciales configuradas."""

    status_code = 503
    error_code = "AUTH_NOT_CONFIGURED"

    def __init__(self) -> None:
        super().__init__("Auth no configurado (AUTH_USERNAME/AUTH_PASSWORD vacíos)")

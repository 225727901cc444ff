"""
Raíz de la jerarquía de errores que la API traduce a respuestas JSON.
"""
from typing import Any, Dict, Optional


class AppException(Exception):
    """
    Error con código HTTP y código de negocio propios.

    Las subclases fijan `status_code` y `error_code` como atributos de
    clase; el handler global de la app usa `to_payload()` para el cuerpo.
    """

    status_code: int = 500
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        if status_code is not None:
            self.status_code = status_code
        if error_code is not None:
            self.error_code = error_code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_payload(self) -> Dict[str, Any]:
        return {"error": self.error_code, "message": self.message, "details": self.details}

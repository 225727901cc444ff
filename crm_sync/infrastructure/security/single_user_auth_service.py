"""
Autenticación del operador único del plano de control.

Las credenciales vienen de AUTH_USERNAME/AUTH_PASSWORD; el JWT lo emite
SecurityService una vez validadas.
"""

from __future__ import annotations

import hmac

from crm_sync.core.config import Settings


class SingleUserAuthService:
    """Valida usuario/contraseña contra el operador configurado."""

    def __init__(self, expected_username: str, expected_password: str) -> None:
        self._expected_username = expected_username or ""
        self._expected_password = expected_password or ""

    @classmethod
    def from_settings(cls, cfg: Settings) -> "SingleUserAuthService":
        return cls(cfg.AUTH_USERNAME, cfg.AUTH_PASSWORD)

    def is_configured(self) -> bool:
        return bool(self._expected_username) and bool(self._expected_password)

    def verify(self, username: str, password: str) -> bool:
        if not self.is_configured():
            return False
        # Se evalúan ambas comparaciones siempre (tiempo constante)
        checks = (
            hmac.compare_digest((username or "").encode(), self._expected_username.encode()),
            hmac.compare_digest((password or "").encode(), self._expected_password.encode()),
        )
        return all(checks)

"""
Credenciales de la API: JWT del operador y bearer de servicio del worker.
"""
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import ExpiredSignatureError, JWTError, jwt

from crm_sync.core.config import settings
from crm_sync.shared.exceptions.auth import InvalidCredentialsException, TokenExpiredException


class SecurityService:

    @staticmethod
    def create_access_token(claims: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """
        Firma un JWT con `claims` mas `exp`.

        Sin `expires_delta` vence a los ACCESS_TOKEN_EXPIRE_MINUTES.
        """
        ttl = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        payload = {**claims, "exp": datetime.now(timezone.utc) + ttl}
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def decode_access_token(token: str) -> Dict[str, Any]:
        """
        Raises:
            TokenExpiredException: Si `exp` ya paso
            InvalidCredentialsException: Firma o formato invalidos
        """
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except ExpiredSignatureError:
            raise TokenExpiredException()
        except JWTError:
            raise InvalidCredentialsException()

    @staticmethod
    def verify_service_token(token: str) -> bool:
        """Sin WORKER_SECRET configurado ningun token es valido."""
        expected = settings.WORKER_SECRET
        if not expected:
            return False
        return hmac.compare_digest((token or "").encode(), expected.encode())


security_service = SecurityService()

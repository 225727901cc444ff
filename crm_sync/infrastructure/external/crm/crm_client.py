"""
Cliente minimo del CRM externo (RD Station CRM v1, sin SDKs externos).

Requisitos cubiertos:
- requests
- pausa fija antes de cada GET (rate limit del CRM)
- errores transitorios (429, 5xx, red): una pausa larga y un unico
  reintento del mismo request
- paginacion `page`/`limit` (el recorrido lo hace el Paginator)
"""

from __future__ import annotations

import time
from typing import Any, Callable, Dict, List, Optional

import requests
from loguru import logger


class CrmConfigError(RuntimeError):
    """Configuracion faltante del CRM (token). Es fatal para el job."""


class CrmApiError(RuntimeError):
    """Respuesta no-2xx del CRM (incluye un 429 o 5xx repetido)."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CrmTransportError(RuntimeError):
    """Fallo de red o respuesta que no se pudo decodificar."""


class CrmApiClient:
    """
    Cliente HTTP del CRM.

    Importante:
    - Solo GET. El motor nunca escribe en el CRM.
    - No interpreta los registros: devuelve dicts tal como vienen.
    """

    def __init__(
        self,
        token: str,
        *,
        session: Optional[requests.Session] = None,
        base_url: str = "https://crm.rdstation.com/api/v1",
        token_in_query: bool = True,
        request_delay_s: float = 0.6,
        rate_limit_cooldown_s: float = 10.0,
        timeout_s: int = 30,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._token = token or ""
        self._base_url = base_url.rstrip("/")
        self._token_in_query = token_in_query
        self._request_delay_s = request_delay_s
        self._rate_limit_cooldown_s = rate_limit_cooldown_s
        self._timeout_s = timeout_s
        self._sleep = sleep
        self._session = session or requests.Session()

    def list_deals(
        self, *, page: int, limit: int, user_id: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, Any] = {"page": page, "limit": limit}
        if user_id:
            params["user_id"] = user_id
        return _extract_list(self._get("/deals", params), "deals")

    def get_deal(self, deal_id: str) -> Dict[str, Any]:
        payload = self._get(f"/deals/{deal_id}")
        if not isinstance(payload, dict):
            raise CrmTransportError(f"Detalle de deal {deal_id} con formato inesperado")
        return payload

    def list_deal_contacts(self, deal_id: str) -> List[Dict[str, Any]]:
        return _extract_list(self._get(f"/deals/{deal_id}/contacts"), "contacts")

    def check_token(self) -> bool:
        """Valida el token contra el CRM. Un 401/403 se informa como False."""
        try:
            self._get("/token/check")
        except CrmApiError as e:
            if e.status_code in (401, 403):
                return False
            raise
        return True

    def list_users(self) -> List[Dict[str, Any]]:
        """Usuarios del CRM (sirven como `account_scope`)."""
        return _extract_list(self._get("/users"), "users")

    def close(self) -> None:
        self._session.close()

    def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        GET con pausa previa y un unico reintento ante errores transitorios.

        Estrategia:
        - Antes de cada request: pausa fija (request_delay_s).
        - 429, 5xx o fallo de red: pausa de cooldown y se repite el mismo
          request una vez.
        - Si el reintento vuelve a fallar, o ante cualquier otro no-2xx:
          CrmApiError con el status (CrmTransportError si fue la red).
        """
        if not self._token:
            raise CrmConfigError("CRM_API_TOKEN no configurado")

        url = f"{self._base_url}{path}"
        query: Dict[str, Any] = dict(params or {})
        headers = {"Accept": "application/json"}
        if self._token_in_query:
            query["token"] = self._token
        else:
            headers["Authorization"] = f"Bearer {self._token}"

        resp = None
        for attempt in (1, 2):
            try:
                resp = self._send(url, query, headers)
            except CrmTransportError as e:
                if attempt == 2:
                    raise
                reason = str(e)
            else:
                if attempt == 2 or not _is_transient(resp.status_code):
                    break
                reason = f"status {resp.status_code}"
            logger.warning(
                f"CRM fallo en {path} ({reason}); reintento en {self._rate_limit_cooldown_s}s"
            )
            self._sleep(self._rate_limit_cooldown_s)

        if not 200 <= resp.status_code < 300:
            raise CrmApiError(
                f"CRM request fallo {resp.status_code} en {path}",
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as e:
            raise CrmTransportError(f"Respuesta no JSON del CRM en {path}") from e

    def _send(self, url: str, query: Dict[str, Any], headers: Dict[str, str]) -> requests.Response:
        self._sleep(self._request_delay_s)
        try:
            return self._session.get(url, params=query, headers=headers, timeout=self._timeout_s)
        except requests.RequestException as e:
            raise CrmTransportError(f"Error de red hacia el CRM: {e}") from e


def _is_transient(status_code: int) -> bool:
    return status_code == 429 or 500 <= status_code < 600


def _extract_list(payload: Any, key: str) -> List[Dict[str, Any]]:
    """El CRM devuelve `{key: [...]}` o, en algunos endpoints, una lista directa."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict):
        return list(payload.get(key) or [])
    raise CrmTransportError(f"Respuesta inesperada del CRM (se esperaba '{key}')")

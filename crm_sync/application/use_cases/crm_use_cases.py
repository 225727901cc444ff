"""
Casos de uso de consulta al CRM: verificacion del token y listado de
usuarios (valores posibles de `account_scope`).
"""

from __future__ import annotations

import asyncio
from typing import List

from loguru import logger

from crm_sync.application.dto.import_dto import CrmConnectionDTO, CrmUserDTO
from crm_sync.infrastructure.external.crm.crm_client import (
    CrmApiClient,
    CrmApiError,
    CrmConfigError,
    CrmTransportError,
)
from crm_sync.shared.exceptions.domain import ExternalServiceException


class CrmUseCases:
    def __init__(self, client: CrmApiClient) -> None:
        self._client = client

    async def check_connection(self) -> CrmConnectionDTO:
        try:
            valid = await asyncio.to_thread(self._client.check_token)
        except CrmConfigError as e:
            return CrmConnectionDTO(configured=False, valid=False, message=str(e))
        except (CrmApiError, CrmTransportError) as e:
            logger.warning(f"Verificacion de token CRM fallida: {e}")
            return CrmConnectionDTO(configured=True, valid=False, message=str(e))

        message = "Conexion con el CRM OK" if valid else "Token del CRM invalido"
        return CrmConnectionDTO(configured=True, valid=valid, message=message)

    async def list_users(self) -> List[CrmUserDTO]:
        try:
            users = await asyncio.to_thread(self._client.list_users)
        except (CrmConfigError, CrmApiError, CrmTransportError) as e:
            raise ExternalServiceException(f"No se pudieron obtener usuarios del CRM: {e}")
        return [CrmUserDTO.from_payload(u) for u in users if isinstance(u, dict)]

"""
Errores de dominio: jobs inexistentes y fallas del CRM visibles al operador.
"""
from typing import Any

from crm_sync.shared.exceptions.base import AppException


class DomainException(AppException):
    status_code = 400
    error_code = "DOMAIN_ERROR"


class EntityNotFoundException(DomainException):
    status_code = 404
    error_code = "ENTITY_NOT_FOUND"

    def __init__(self, entity_name: str, entity_id: Any):
        super().__init__(
            f"{entity_name} con ID {entity_id} no encontrado",
            details={"entity": entity_name, "id": str(entity_id)},
        )


class ImportJobNotFoundException(EntityNotFoundException):
    error_code = "IMPORT_JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        super().__init__("Job de importacion", job_id)


class ExternalServiceException(AppException):
    """El CRM externo respondió con error o no está configurado."""

    status_code = 502
    error_code = "EXTERNAL_SERVICE_ERROR"

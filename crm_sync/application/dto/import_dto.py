"""
DTOs de la importacion desde el CRM externo.
Definen los contratos del endpoint de control y del worker.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field

from crm_sync.domain.entities.import_job import ImportType, JobStatus


class ImportStartDTO(BaseModel):
    """DTO para iniciar un job de importacion."""

    account_scope: Optional[str] = Field(
        None,
        max_length=255,
        description="user_id del CRM para filtrar negociaciones (opcional)"
    )
    import_type: ImportType = Field(
        ImportType.BACKFILL_SOURCES,
        description="Tipo de importacion"
    )
    owner_user_id: Optional[str] = Field(
        None,
        max_length=255,
        description="Responsable local opcional"
    )


class ImportStartResponseDTO(BaseModel):
    """Respuesta al crear un job."""

    job_id: str = Field(..., description="Identificador del job")
    status: JobStatus = Field(..., description="Estado inicial del job")


class ImportErrorDetailDTO(BaseModel):
    name: str
    error: str


class ImportStatusDTO(BaseModel):
    """Campos publicos de un job (el checkpoint no se expone)."""

    job_id: str = Field(..., validation_alias="id")
    status: JobStatus
    import_type: ImportType
    created_by: str
    account_scope: Optional[str] = None
    owner_user_id: Optional[str] = None
    deals_found: int = 0
    contacts_imported: int = 0
    contacts_skipped: int = 0
    contacts_errors: int = 0
    error_details: List[ImportErrorDetailDTO] = Field(default_factory=list)
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        """Configuración de Pydantic."""
        from_attributes = True
        populate_by_name = True


class WorkerInvocationDTO(BaseModel):
    """Cuerpo del POST interno al worker (dispatcher o re-encolado)."""

    job_id: str = Field(..., min_length=1)
    account_scope: Optional[str] = None
    generation: Optional[int] = Field(None, ge=0)


class WorkerAcceptedDTO(BaseModel):
    accepted: bool = True
    job_id: str


class CrmConnectionDTO(BaseModel):
    """Estado de la conexion con el CRM."""

    configured: bool
    valid: bool
    message: str


class CrmUserDTO(BaseModel):
    id: str
    name: Optional[str] = None
    email: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "CrmUserDTO":
        return cls(
            id=str(payload.get("id") or payload.get("_id") or ""),
            name=payload.get("name"),
            email=payload.get("email"),
        )

"""
Modelos de base de datos (ORM).
"""
import uuid

from sqlalchemy import Column, String, Integer, DateTime, Text, JSON
from sqlalchemy.sql import func

from crm_sync.infrastructure.database.session import Base
from crm_sync.domain.entities.import_job import ImportType, JobStatus


def _new_job_id() -> str:
    return str(uuid.uuid4())


class ImportJobModel(Base):
    """
    Modelo de base de datos para jobs de importacion desde el CRM.

    Es el unico artefacto durable del motor. El checkpoint vive en
    `checkpoint_data` (una sola columna estructurada) y se limpia al
    terminar (done/error).

    `generation` se incrementa atomicamente al inicio de cada invocacion
    del worker; las escrituras de invocaciones viejas se rechazan.
    """

    __tablename__ = "import_jobs"
    __mapper_args__ = {"eager_defaults": True}

    id = Column(String(36), primary_key=True, default=_new_job_id)
    status = Column(String(32), nullable=False, default=JobStatus.PENDING.value, index=True)
    import_type = Column(String(50), nullable=False, default=ImportType.BACKFILL_SOURCES.value)
    created_by = Column(String(255), nullable=False)
    account_scope = Column(String(255), nullable=True)   # user_id del CRM externo
    owner_user_id = Column(String(255), nullable=True)   # responsable local opcional

    deals_found = Column(Integer, nullable=False, default=0)
    contacts_imported = Column(Integer, nullable=False, default=0)
    contacts_skipped = Column(Integer, nullable=False, default=0)
    contacts_errors = Column(Integer, nullable=False, default=0)
    error_details = Column(JSON, nullable=False, default=list)
    error_message = Column(Text, nullable=True)

    checkpoint_data = Column(JSON(none_as_null=True), nullable=True)
    generation = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ImportJob(id={self.id}, status={self.status}, generation={self.generation})>"


class ContactModel(Base):
    """
    Modelo de la tabla `contacts` de la aplicacion host.

    Solo se mapean las columnas que usa el motor; el esquema completo
    pertenece a la aplicacion. El motor unicamente actualiza `source`.
    """

    __tablename__ = "contacts"

    id = Column(String(36), primary_key=True, default=_new_job_id)
    full_name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True, index=True)
    email = Column(String(255), nullable=True, index=True)
    source = Column(String(255), nullable=True)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Contact(id={self.id}, phone={self.phone}, source={self.source})>"

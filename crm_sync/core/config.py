"""
Configuracion del motor de backfill, leida de variables de entorno y `.env`.
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos principales:
    - Aplicacion/servidor y base de datos
    - Seguridad (login de operador + secreto de servicio del worker)
    - CRM externo (token, rate limit, paginacion)
    - Worker (presupuesto de tiempo por invocacion, modo de re-encolado)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="CRM Sync Engine")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="crm_user")
    DATABASE_PASSWORD: str = Field(default="crm_pass")
    DATABASE_NAME: str = Field(default="crm_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Seguridad
    SECRET_KEY: str = Field(default="change-this-secret-key-in-production")
    ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=30)
    AUTH_USERNAME: str = Field(default="")
    AUTH_PASSWORD: str = Field(default="")

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    # CRM externo (RD Station CRM v1)
    CRM_API_TOKEN: str = Field(default="")
    CRM_BASE_URL: str = Field(default="https://crm.rdstation.com/api/v1")
    # RD CRM v1 espera el token como query param (?token=...).
    # Con False se envia como header Authorization: Bearer.
    CRM_TOKEN_IN_QUERY: bool = Field(default=True)
    CRM_REQUEST_DELAY_S: float = Field(default=0.6)
    CRM_RATE_LIMIT_COOLDOWN_S: float = Field(default=10.0)
    CRM_HTTP_TIMEOUT_S: int = Field(default=30)
    CRM_PAGE_SIZE: int = Field(default=200)
    CRM_MAX_PAGES: int = Field(default=50)
    # Tag que el propio motor escribe en contacts.source; solo se pisa este valor o vacio.
    CRM_SOURCE_TAG: str = Field(default="rd_crm")

    # Worker
    # Margen de seguridad por debajo del limite duro del runtime.
    WORKER_TIME_BUDGET_S: float = Field(default=120.0)
    WORKER_SECRET: str = Field(default="")
    WORKER_BASE_URL: str = Field(default="http://localhost:8000")
    WORKER_DISPATCH_MODE: str = Field(default="http")
    PROGRESS_FLUSH_EVERY: int = Field(default=10)
    ERROR_DETAILS_LIMIT: int = Field(default=100)

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """DATABASE_URL si esta definida; si no, Postgres armado por componentes."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """
        URL sincrona equivalente para el worker (corre en threads).
        asyncpg -> psycopg (v3), aiosqlite -> pysqlite.
        """
        return (
            self.effective_database_url
            .replace("+asyncpg", "+psycopg")
            .replace("+aiosqlite", "")
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        return [origin.strip() for origin in cors_string.split(",")]


settings = Settings()

"""
Hooks de arranque y cierre de la API.
"""
from typing import Callable, List

from fastapi import FastAPI
from loguru import logger

from crm_sync.core.config import Settings, settings
from crm_sync.infrastructure.database.session import close_db, init_db


def collect_config_warnings(cfg: Settings) -> List[str]:
    """Configuracion faltante que no impide arrancar pero deja funciones inutilizables."""
    warnings = []

    if not cfg.CRM_API_TOKEN:
        warnings.append("CRM_API_TOKEN no configurado - los jobs terminaran en error")

    if not (cfg.AUTH_USERNAME and cfg.AUTH_PASSWORD):
        warnings.append("AUTH_USERNAME/AUTH_PASSWORD vacios - login deshabilitado")

    if cfg.WORKER_DISPATCH_MODE.lower() == "http" and not cfg.WORKER_SECRET:
        warnings.append("WORKER_SECRET vacio - el worker rechazara toda invocacion HTTP")

    if cfg.SECRET_KEY == "change-this-secret-key-in-production" and not cfg.is_development:
        warnings.append("SECRET_KEY por defecto en entorno no-desarrollo")

    return warnings


def _configure_file_sink(cfg: Settings) -> None:
    logger.add(
        cfg.LOG_FILE,
        rotation="500 MB",
        retention="10 days",
        level=cfg.LOG_LEVEL,
    )


def startup_handler(app: FastAPI) -> Callable:
    async def startup() -> None:
        logger.info(
            f"Iniciando {settings.APP_NAME} v{settings.APP_VERSION} "
            f"(entorno={settings.ENVIRONMENT}, dispatch={settings.WORKER_DISPATCH_MODE})"
        )
        for warning in collect_config_warnings(settings):
            logger.warning(f"CONFIG: {warning}")

        try:
            await init_db()
        except Exception:
            logger.exception("No se pudo inicializar la base de datos")
            raise

        _configure_file_sink(settings)
        logger.success(
            f"API lista en puerto {settings.PORT}; "
            f"continuaciones en {settings.WORKER_BASE_URL or '(mismo proceso)'}"
        )

    return startup


def shutdown_handler(app: FastAPI) -> Callable:
    async def shutdown() -> None:
        await close_db()
        logger.info("Conexiones de base de datos cerradas")

    return shutdown

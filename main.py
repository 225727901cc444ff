"""
Aplicación FastAPI del motor de backfill.

Expone el plano de control del operador (/api/v1/crm-imports, /api/v1/crm)
y el punto de entrada interno que reciben las continuaciones del worker.
"""
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crm_sync.api.middlewares.error_handler import ErrorHandlerMiddleware
from crm_sync.api.v1.router import api_router
from crm_sync.core.config import get_cors_origins, settings
from crm_sync.core.events import shutdown_handler, startup_handler
from crm_sync.shared.exceptions.base import AppException


async def _app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_application() -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Motor de backfill de fuentes desde el CRM externo",
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(settings.CORS_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    application.add_middleware(ErrorHandlerMiddleware)

    application.add_event_handler("startup", startup_handler(application))
    application.add_event_handler("shutdown", shutdown_handler(application))

    application.add_exception_handler(AppException, _app_exception_handler)
    application.include_router(api_router, prefix="/api")

    @application.get("/health", tags=["Health"])
    async def health_check():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "worker_dispatch": settings.WORKER_DISPATCH_MODE,
        }

    return application


app = create_application()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )

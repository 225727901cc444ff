"""
Última red para excepciones que no son AppException.
"""
from fastapi import Request, status
from fastapi.responses import JSONResponse
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware

_GENERIC_BODY = {
    "error": "INTERNAL_SERVER_ERROR",
    "message": "Ha ocurrido un error interno del servidor",
    "details": {},
}


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Loguea el traceback y responde un 500 sin detalles internos."""

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.opt(exception=exc).error(
                f"Error no manejado en {request.method} {request.url.path}: {exc}"
            )
            return JSONResponse(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                content=dict(_GENERIC_BODY),
            )

"""
Router de la API v1: login, plano de control de importaciones, consulta al
CRM y el punto de entrada interno del worker.
"""
from fastapi import APIRouter

from crm_sync.api.v1.endpoints import auth, crm, imports, worker

api_router = APIRouter(prefix="/v1")

for _module in (auth, imports, crm, worker):
    api_router.include_router(_module.router)

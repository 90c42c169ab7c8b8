from fastapi import APIRouter

from services.risk_api.src.risk_api.routes.rates import router as rates_router
from services.risk_api.src.risk_api.routes.risk import router as risk_router

api_router = APIRouter(prefix="/api")
api_router.include_router(rates_router)
api_router.include_router(risk_router)

__all__ = ["api_router"]

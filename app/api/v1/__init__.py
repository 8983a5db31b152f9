from fastapi import APIRouter

from app.api.v1.routers import auth, health, loans, repayments

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(loans.router)
api_router.include_router(repayments.router)

__all__ = ["api_router"]

from fastapi import APIRouter

from rintrack.api.v1.routers import (
    auth,
    health,
    loan_applications,
    loans,
    payments,
    users,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(users.router)
api_router.include_router(loans.router)
api_router.include_router(loan_applications.router)
api_router.include_router(payments.router)

__all__ = ["api_router"]

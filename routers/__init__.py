# routers/__init__.py

from fastapi import APIRouter

from .emails import router as emails_router
from .email_logs import router as email_logs_router
from .health import router as health_router


# Master router for embedding the email endpoints in another app
api_router = APIRouter()

api_router.include_router(emails_router)
api_router.include_router(email_logs_router)
api_router.include_router(health_router)

__all__ = ["api_router"]

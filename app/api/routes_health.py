# app/api/routes_health.py
from fastapi import APIRouter

from app.core.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "llm_configured": bool(settings.OPENROUTER_API_KEY),
        "session_backend": settings.SESSION_BACKEND,
    }

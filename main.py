# main.py
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from app.api import (
    routes_chat,
    routes_health,
    routes_knowledge,
    routes_sessions,
)
from app.core.config import settings
from app.core.db import init_db
from app.services.session_service import SessionRegistry

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def create_app(registry: SessionRegistry = None):
    app = FastAPI(title=settings.APP_NAME)
    app.state.registry = registry or SessionRegistry()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Session-Id"],
    )

    app.include_router(routes_health.router, prefix="/api")
    app.include_router(routes_chat.router, prefix="/api")
    app.include_router(routes_sessions.router, prefix="/api")
    app.include_router(routes_knowledge.router, prefix="/api")

    @app.on_event("startup")
    def on_startup():
        init_db()
        logger.info("Application startup complete (session backend: %s)", settings.SESSION_BACKEND)

    return app


app = create_app()

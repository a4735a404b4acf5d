# app/api/deps.py
from fastapi import Request

from app.services.session_service import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry

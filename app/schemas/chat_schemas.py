# app/schemas/chat_schemas.py
from pydantic import BaseModel
from typing import Any, Dict, List, Optional


class WireMessage(BaseModel):
    role: str
    content: str = ""


class ChatWireRequest(BaseModel):
    messages: List[WireMessage] = []
    language: str = "en"
    inputMode: str = "text"
    # optional; a new id is issued (X-Session-Id header) when missing
    session_id: Optional[str] = None


class SessionMessageIn(BaseModel):
    message: str
    language: str = "en"
    inputMode: str = "text"


class SessionStartResponse(BaseModel):
    session_id: str


class ChatResponse(BaseModel):
    session_id: str
    response: str
    agent_type: str
    metadata: Dict[str, Any] = {}
    error: Optional[str] = None

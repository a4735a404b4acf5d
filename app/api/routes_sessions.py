# app/api/routes_sessions.py
from fastapi import APIRouter, Depends, HTTPException

from app.agents.router_agent import TurnRouter
from app.api.deps import get_registry
from app.models.domain_models import Language
from app.schemas.chat_schemas import ChatResponse, SessionMessageIn, SessionStartResponse
from app.services.memory_service import ConversationMemory
from app.services.session_service import SessionRegistry

router = APIRouter(prefix="/sessions", tags=["sessions"])


def _existing(registry: SessionRegistry, session_id: str) -> ConversationMemory:
    memory = registry.memory(session_id)
    if not memory.exists:
        raise HTTPException(status_code=404, detail="Session not found")
    return memory


@router.post("/start", response_model=SessionStartResponse)
def start_session(registry: SessionRegistry = Depends(get_registry)):
    """Issue a server-generated session id; the session is persisted empty."""
    session_id = registry.new_session_id()
    registry.memory(session_id).create()
    return SessionStartResponse(session_id=session_id)


@router.post("/{session_id}/message", response_model=ChatResponse)
async def post_message(session_id: str, body: SessionMessageIn, registry: SessionRegistry = Depends(get_registry)):
    text = body.message.strip()
    if not text:
        raise HTTPException(status_code=400, detail="message must not be empty")

    async with registry.lock(session_id):
        orchestrator = registry.orchestrator(session_id)
        result = await orchestrator.process(text, Language.coerce(body.language), input_mode=body.inputMode)

    return ChatResponse(
        session_id=session_id,
        response=result.response,
        agent_type=result.agent_type.value,
        metadata=result.metadata,
        error=result.error,
    )


@router.get("/{session_id}/messages")
def get_messages(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    memory = _existing(registry, session_id)
    return {
        "session_id": session_id,
        "messages": [m.model_dump(mode="json") for m in memory.get_messages()],
    }


@router.get("/{session_id}/state")
def get_state(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    memory = _existing(registry, session_id)
    active = TurnRouter(memory).active_flow()
    return {
        "session_id": session_id,
        "collectedData": memory.get_slots(),
        "context": memory.get_all_context(),
        "active_flow": active.schema.name if active else None,
        "progress": list(active.progress()) if active else None,
        "next_field": active.current_field().value if active and active.current_field() else None,
    }


@router.delete("/{session_id}")
async def reset_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    async with registry.lock(session_id):
        memory = _existing(registry, session_id)
        memory.reset()
    return {"session_id": session_id, "reset": True}

# app/api/routes_chat.py
import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse

from app.api.deps import get_registry
from app.models.domain_models import Language, Role
from app.schemas.chat_schemas import ChatWireRequest
from app.services.session_service import SessionRegistry
from app.services.streaming import ChunkKind, done_chunk, encode_frame, error_chunk

router = APIRouter(prefix="/chat", tags=["chat"])

logger = logging.getLogger(__name__)

HISTORY_ROLES = {Role.USER.value, Role.ASSISTANT.value}


@router.post("")
async def chat_stream(req: ChatWireRequest, registry: SessionRegistry = Depends(get_registry)):
    messages = [m for m in req.messages if (m.content or "").strip()]
    if not messages:
        raise HTTPException(status_code=400, detail="messages must contain at least one non-empty message")

    last_user = next((i for i in range(len(messages) - 1, -1, -1) if messages[i].role == Role.USER.value), None)
    if last_user is None:
        raise HTTPException(status_code=400, detail="No user message found")

    text = messages[last_user].content.strip()
    prior = [m for m in messages[:last_user] if m.role in HISTORY_ROLES]
    session_id = req.session_id or registry.new_session_id()
    language = Language.coerce(req.language)

    async def event_stream():
        async with registry.lock(session_id):
            orchestrator = registry.orchestrator(session_id)
            if not orchestrator.memory.exists:
                # first turn on this server: keep the client's history as context
                for m in prior:
                    orchestrator.memory.add_message(Role(m.role), m.content)
            turn = orchestrator.stream(text, language, input_mode=req.inputMode)
            try:
                async for chunk in turn:
                    if chunk.kind is ChunkKind.DONE:
                        continue
                    yield encode_frame(chunk)
            except Exception:
                logger.exception("chat stream failed for session %s", session_id)
                yield encode_frame(error_chunk("Streaming failed. Please try again."))
            finally:
                # a disconnected client leaves the turn suspended; close it while the lock is held
                await turn.aclose()
            yield encode_frame(done_chunk(""))

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "X-Session-Id": session_id,
            "Cache-Control": "no-cache, no-transform",
            "Connection": "keep-alive",
        },
    )

import asyncio
import logging
from typing import Optional
from uuid import uuid4

from app.core.session import SessionLocks, SessionStore, build_session_store
from app.services.chat_service import ChatOrchestrator
from app.services.knowledge_service import KnowledgeRetriever
from app.services.llm_client import LLMClient
from app.services.memory_service import ConversationMemory

logger = logging.getLogger(__name__)


class SessionRegistry:
    """Shared collaborators plus one lock per session; builds a fresh orchestrator per turn."""

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        llm: Optional[LLMClient] = None,
        retriever: Optional[KnowledgeRetriever] = None,
    ):
        self.store = store or build_session_store()
        self.llm = llm or LLMClient()
        self.retriever = retriever or KnowledgeRetriever()
        self.locks = SessionLocks()

    @staticmethod
    def new_session_id() -> str:
        return uuid4().hex

    def memory(self, session_id: str) -> ConversationMemory:
        return ConversationMemory(self.store, session_id)

    def orchestrator(self, session_id: str) -> ChatOrchestrator:
        return ChatOrchestrator(self.memory(session_id), self.retriever, self.llm)

    def lock(self, session_id: str) -> asyncio.Lock:
        return self.locks.for_session(session_id)

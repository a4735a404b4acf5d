# app/services/memory_service.py
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from app.agents.extraction_agent import SlotField, validate_slot
from app.core.session import SessionStore
from app.models.domain_models import Role

logger = logging.getLogger(__name__)

KEY_PREFIX = "conversationMemory_"

ContextValue = Union[bool, str, int, None]


class Message(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Role
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    metadata: Optional[Dict[str, Any]] = None


class ConversationSession(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    messages: List[Message] = Field(default_factory=list)
    collected_data: Dict[str, Any] = Field(default_factory=dict, alias="collectedData")
    context: Dict[str, ContextValue] = Field(default_factory=dict)


def session_key(session_id: str) -> str:
    return f"{KEY_PREFIX}{session_id}"


class ConversationMemory:
    """
    Session-scoped message history, slots and context flags.

    Every mutation is flushed to the store straight away. The session is only
    created on the first mutation, and `reset()` deletes it from the store.
    """

    def __init__(self, store: SessionStore, session_id: str):
        self.store = store
        self.session_id = session_id
        self.key = session_key(session_id)
        self._session: Optional[ConversationSession] = None
        blob = store.get(self.key)
        if blob is not None:
            self._session = ConversationSession.model_validate(blob)

    # -----------------------------
    # internals
    # -----------------------------

    def _ensure(self) -> ConversationSession:
        if self._session is None:
            self._session = ConversationSession()
        return self._session

    def _flush(self) -> None:
        if self._session is None:
            return
        self.store.put(self.key, self._session.model_dump(mode="json", by_alias=True))

    @property
    def exists(self) -> bool:
        return self._session is not None

    # -----------------------------
    # messages
    # -----------------------------

    def add_message(self, role: Role, content: str, metadata: Optional[Dict[str, Any]] = None) -> Message:
        message = Message(role=Role(role), content=content, metadata=metadata)
        self._ensure().messages.append(message)
        self._flush()
        return message

    def get_messages(self) -> List[Message]:
        return list(self._session.messages) if self._session else []

    def recent_messages(self, limit: int) -> List[Message]:
        return self.get_messages()[-limit:] if limit > 0 else []

    # -----------------------------
    # slots
    # -----------------------------

    def update_slots(self, values: Dict[str, Any]) -> Dict[str, Any]:
        """Merge values that pass validation; returns what was accepted."""
        accepted = {}
        for name, value in values.items():
            try:
                field = SlotField(name)
            except ValueError:
                logger.warning("ignoring unknown slot %s", name)
                continue
            if value is None or validate_slot(field, value) is not None:
                continue
            accepted[field.value] = value
        if accepted:
            self._ensure().collected_data.update(accepted)
            self._flush()
        return accepted

    def get_slots(self) -> Dict[str, Any]:
        return dict(self._session.collected_data) if self._session else {}

    # -----------------------------
    # context flags
    # -----------------------------

    def set_context(self, key: str, value: ContextValue) -> None:
        self._ensure().context[key] = value
        self._flush()

    def clear_context(self, *keys: str) -> None:
        if self._session is None:
            return
        for key in keys:
            self._session.context.pop(key, None)
        self._flush()

    def get_context(self, key: str, default: ContextValue = None) -> ContextValue:
        if self._session is None:
            return default
        return self._session.context.get(key, default)

    def get_all_context(self) -> Dict[str, ContextValue]:
        return dict(self._session.context) if self._session else {}

    # -----------------------------
    # lifecycle
    # -----------------------------

    def create(self) -> None:
        """Persist an empty session so it can be read before the first message."""
        self._ensure()
        self._flush()

    def reset(self) -> None:
        self._session = None
        self.store.delete(self.key)
        logger.info("conversation %s reset", self.session_id)

    def snapshot(self) -> Dict[str, Any]:
        session = self._session or ConversationSession()
        return session.model_dump(mode="json", by_alias=True)

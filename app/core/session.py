import asyncio
import json
import logging
import weakref
from datetime import datetime
from typing import Any, Dict, Optional

from sqlmodel import SQLModel, Session

from app.core.config import settings
from app.models.domain_models import ConversationRecord

logger = logging.getLogger(__name__)


class SessionStore:
    """Key-value store for conversation blobs."""

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def put(self, key: str, blob: Dict[str, Any]) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemorySessionStore(SessionStore):
    # blobs are kept serialized so callers never share mutable state
    def __init__(self):
        self._store: Dict[str, str] = {}

    def get(self, key):
        raw = self._store.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key, blob):
        self._store[key] = json.dumps(blob, ensure_ascii=False)

    def delete(self, key):
        self._store.pop(key, None)

    def keys(self):
        return list(self._store)


class SqlSessionStore(SessionStore):
    def __init__(self, engine=None):
        if engine is None:
            from app.core.db import engine as default_engine
            engine = default_engine
        self.engine = engine
        SQLModel.metadata.create_all(bind=self.engine, tables=[ConversationRecord.__table__])

    def get(self, key):
        with Session(self.engine) as db:
            row = db.get(ConversationRecord, key)
            return dict(row.blob) if row else None

    def put(self, key, blob):
        with Session(self.engine) as db:
            row = db.get(ConversationRecord, key)
            if row is None:
                row = ConversationRecord(session_key=key, blob=blob)
            else:
                row.blob = blob
                row.updated_at = datetime.utcnow()
            db.add(row)
            db.commit()

    def delete(self, key):
        with Session(self.engine) as db:
            row = db.get(ConversationRecord, key)
            if row is not None:
                db.delete(row)
                db.commit()


def build_session_store(backend: Optional[str] = None) -> SessionStore:
    backend = (backend or settings.SESSION_BACKEND).lower()
    if backend == "sql":
        return SqlSessionStore()
    if backend != "memory":
        logger.warning("unknown SESSION_BACKEND=%s; using in-memory store", backend)
    return InMemorySessionStore()


class SessionLocks:
    """
    One asyncio.Lock per session id so a turn is never interleaved with another.
    A lock lives only while some turn holds or waits on it.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def for_session(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def __len__(self) -> int:
        return len(self._locks)

# app/api/routes_knowledge.py
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_registry
from app.core.config import settings
from app.services.session_service import SessionRegistry

router = APIRouter(prefix="/knowledge", tags=["knowledge"])


@router.get("/search")
def search_knowledge(q: str = "", k: int = settings.RAG_TOP_K, registry: SessionRegistry = Depends(get_registry)):
    if not q.strip():
        raise HTTPException(status_code=400, detail="q must not be empty")
    if k < 1:
        raise HTTPException(status_code=400, detail="k must be at least 1")
    docs = registry.retriever.retrieve(q, k=k)
    return {"query": q, "results": [d.model_dump() for d in docs]}

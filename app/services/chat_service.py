# app/services/chat_service.py
import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

from app.agents.advisor_agent import APOLOGY, build_system_prompt, local_fallback, profile_summary
from app.agents.router_agent import TurnRouter
from app.core.config import settings
from app.graph.builder import build_turn_graph
from app.graph.runtime import run_turn
from app.models.domain_models import AgentType, Language, Role
from app.models.responses import KnowledgeDoc, OrchestrationResult
from app.services.knowledge_service import KnowledgeRetriever
from app.services.llm_client import LLMClient, UpstreamError
from app.services.memory_service import ConversationMemory
from app.services.streaming import (
    ChunkKind, StreamChunk, done_chunk, emit_complete, emit_typed, error_chunk, parse_sse, rag_chunk,
)
from app.services.utils import localized

logger = logging.getLogger(__name__)

TokenCallback = Callable[[str], None]
DoneCallback = Callable[[str, Dict[str, Any]], None]


class ChatOrchestrator:
    """
    One conversation turn: record the user message, route it through the turn
    graph, then answer locally or via the remote model. Every turn records the
    user message once and exactly one assistant reply (reset turns excepted).
    """

    def __init__(self, memory: ConversationMemory, retriever: KnowledgeRetriever, llm: LLMClient):
        self.memory = memory
        self.retriever = retriever
        self.llm = llm
        self.router = TurnRouter(memory)
        self.graph = build_turn_graph(self.router)

    # -----------------------------
    # helpers
    # -----------------------------

    def _route(self, text: str, lang: Language) -> Dict[str, Any]:
        try:
            return run_turn(self.graph, self.memory.session_id, text, lang.value)
        except Exception:
            logger.exception("routing failed for session %s", self.memory.session_id)
            return {
                "route": "error",
                "reply": localized(APOLOGY, lang),
                "agent_type": AgentType.GENERAL.value,
                "decision_log": ["error: routing failed"],
                "actions": [],
            }

    def _remote_messages(self, lang: Language, input_mode: str, docs: List[KnowledgeDoc]) -> List[Dict[str, str]]:
        system = build_system_prompt(
            lang,
            input_mode=input_mode,
            rag_context=self.retriever.build_context(docs),
            profile=profile_summary(self.memory.get_slots()),
        )
        history = [
            {"role": m.role.value, "content": m.content}
            for m in self.memory.recent_messages(settings.HISTORY_WINDOW)
        ]
        return [{"role": "system", "content": system}] + history

    def _metadata(self, state: Dict[str, Any], used_docs: List[Dict[str, str]]) -> Dict[str, Any]:
        intent = state.get("intent") or {}
        metadata: Dict[str, Any] = {
            "intent": intent.get("intent"),
            "route": state.get("route"),
            "trace": list(state.get("decision_log") or []),
            "used_docs": used_docs,
        }
        for key in ("flow", "progress", "asked", "result"):
            if state.get(key) is not None:
                metadata[key] = state[key]
        if state.get("actions"):
            metadata["actions"] = state["actions"]
        return metadata

    def _finish(self, reply: str, agent_type: str, metadata: Dict[str, Any],
                error: Optional[str] = None, record: bool = True) -> StreamChunk:
        if record:
            self.memory.add_message(
                Role.ASSISTANT, reply, {"intent": metadata.get("intent"), "route": metadata.get("route")}
            )
        result = OrchestrationResult(
            response=reply,
            agent_type=AgentType(agent_type or AgentType.GENERAL.value),
            metadata=metadata,
            error=error,
        )
        return done_chunk(reply, result)

    async def _remote(self, messages: List[Dict[str, str]]) -> AsyncIterator[StreamChunk]:
        try:
            async for chunk in parse_sse(self.llm.stream_completion(messages)):
                yield chunk
        except UpstreamError as exc:
            logger.warning("upstream failed (%s): %s", exc.status_code, exc)
            yield error_chunk(str(exc))
        except Exception:
            logger.exception("remote answer failed for session %s", self.memory.session_id)
            yield error_chunk("AI service unavailable. Please try again.")

    def _record_interrupted(self, text: str, lang: Language, reply: str, metadata: Dict[str, Any]) -> None:
        if not reply.strip():
            reply = local_fallback(text, lang)
        logger.info("turn stopped early for session %s; recording %d chars", self.memory.session_id, len(reply))
        self.memory.add_message(
            Role.ASSISTANT,
            reply,
            {"intent": metadata.get("intent"), "route": metadata.get("route"), "interrupted": True},
        )

    # -----------------------------
    # public API
    # -----------------------------

    async def stream(
        self,
        text: str,
        language="en",
        input_mode: str = "text",
        typewriter: bool = True,
    ) -> AsyncIterator[StreamChunk]:
        lang = Language.coerce(language)
        self.memory.add_message(Role.USER, text)

        # whatever has been answered so far; recorded if the consumer stops early
        reply = ""
        metadata: Dict[str, Any] = {}
        unanswered = True
        try:
            docs = self.retriever.retrieve(text, k=settings.RAG_TOP_K)
            used_docs = [d.ref() for d in docs]
            yield rag_chunk(used_docs)

            state = self._route(text, lang)
            metadata = self._metadata(state, used_docs)
            agent_type = state.get("agent_type") or AgentType.GENERAL.value

            # ✅ local answer (flows, EMI, small talk, control, errors)
            if state.get("reply") is not None:
                reply = state["reply"]
                record = state.get("route") != "reset"
                unanswered = record
                if typewriter:
                    source = emit_typed(reply, settings.TYPEWRITER_CHUNK_SIZE, settings.TYPEWRITER_DELAY_SECONDS)
                else:
                    source = emit_complete(reply)
                async for chunk in source:
                    if chunk.kind is ChunkKind.DELTA:
                        yield chunk
                final = self._finish(reply, agent_type, metadata, record=record)
                unanswered = False
                yield final
                return

            # 🌐 remote answer
            messages = self._remote_messages(lang, input_mode, docs)
            error: Optional[str] = None
            # parse_sse stops on its own after an error or [DONE]
            async for chunk in self._remote(messages):
                if chunk.kind is ChunkKind.DELTA:
                    reply = chunk.text
                    yield chunk
                elif chunk.kind is ChunkKind.ERROR:
                    error = chunk.error

            if not reply.strip():
                # nothing usable arrived: canned local answer instead
                reply = local_fallback(text, lang)
                metadata["fallback"] = True
                if error:
                    metadata["upstream_error"] = error
                async for chunk in emit_complete(reply):
                    if chunk.kind is ChunkKind.DELTA:
                        yield chunk
                final = self._finish(reply, agent_type, metadata)
                unanswered = False
                yield final
                return

            if error:
                yield error_chunk(error, reply)
            final = self._finish(reply, agent_type, metadata, error=error)
            unanswered = False
            yield final
        finally:
            if unanswered:
                self._record_interrupted(text, lang, reply, metadata)

    async def process(
        self,
        text: str,
        language="en",
        on_token: Optional[TokenCallback] = None,
        on_done: Optional[DoneCallback] = None,
        input_mode: str = "text",
    ) -> OrchestrationResult:
        result: Optional[OrchestrationResult] = None
        async for chunk in self.stream(text, language, input_mode=input_mode, typewriter=False):
            if chunk.kind is ChunkKind.DELTA and on_token:
                on_token(chunk.content)
            elif chunk.kind is ChunkKind.DONE:
                result = chunk.result
        if on_done:
            on_done(result.response, result.metadata)
        return result

import asyncio

from app.agents.advisor_agent import CREDIT_TIPS, RESET_TEXT
from app.core.session import InMemorySessionStore
from app.models.domain_models import AgentType, Language, Role
from app.services.chat_service import ChatOrchestrator
from app.services.knowledge_service import KnowledgeRetriever
from app.services.llm_client import RATE_LIMITED, UpstreamError
from app.services.memory_service import ConversationMemory
from app.services.streaming import ChunkKind


def sse(*parts):
    return [f'data: {{"choices":[{{"delta":{{"content":"{p}"}}}}]}}\n\n' for p in parts] + ["data: [DONE]\n\n"]


class FakeLLM:
    def __init__(self, chunks=None, fail_after=None):
        self.chunks = chunks or []
        self.fail_after = fail_after
        self.calls = []

    async def stream_completion(self, messages):
        self.calls.append(messages)
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i == self.fail_after:
                raise UpstreamError("AI stream interrupted. Please try again.")
            yield chunk


class DownLLM:
    async def stream_completion(self, messages):
        raise UpstreamError(RATE_LIMITED, status_code=429)
        yield  # pragma: no cover


def make_orchestrator(llm, session_id="orch"):
    memory = ConversationMemory(InMemorySessionStore(), session_id)
    return ChatOrchestrator(memory, KnowledgeRetriever(), llm), memory


def run_stream(orchestrator, text, language="en"):
    async def run():
        return [c async for c in orchestrator.stream(text, language, typewriter=False)]

    return asyncio.run(run())


def test_local_flow_turn_records_both_messages():
    llm = FakeLLM()
    orchestrator, memory = make_orchestrator(llm)

    result = asyncio.run(orchestrator.process("check my eligibility"))

    assert result.agent_type is AgentType.ELIGIBILITY
    assert result.metadata["route"] == "eligibility"
    assert result.metadata["progress"] == [0, 7]
    assert result.metadata["asked"] == "monthly_income"
    assert [m.role for m in memory.get_messages()] == [Role.USER, Role.ASSISTANT]
    assert llm.calls == []


def test_remote_answer_streams_and_is_recorded():
    llm = FakeLLM(sse("Collateral is ", "an asset pledged."))
    orchestrator, memory = make_orchestrator(llm)

    tokens = []
    result = asyncio.run(orchestrator.process("what is collateral", on_token=tokens.append))

    assert result.response == "Collateral is an asset pledged."
    assert "".join(tokens) == result.response
    assert result.metadata["route"] == "remote"
    assert result.metadata["used_docs"]
    assert memory.get_messages()[-1].content == result.response

    messages = llm.calls[0]
    assert messages[0]["role"] == "system"
    assert "NidhiSaarthi" in messages[0]["content"]
    assert messages[-1] == {"role": "user", "content": "what is collateral"}


def test_stream_chunk_order():
    orchestrator, _ = make_orchestrator(FakeLLM(sse("Hi")))
    chunks = run_stream(orchestrator, "what is collateral")

    assert chunks[0].kind is ChunkKind.RAG
    assert chunks[-1].kind is ChunkKind.DONE
    assert [c.kind for c in chunks].count(ChunkKind.DONE) == 1
    assert chunks[-1].result.response == "Hi"


def test_upstream_failure_falls_back_to_canned_answer():
    orchestrator, memory = make_orchestrator(DownLLM())

    result = asyncio.run(orchestrator.process("how do I fix my cibil?", language="en"))

    assert result.response == CREDIT_TIPS[Language.EN]
    assert result.metadata["fallback"] is True
    assert result.metadata["upstream_error"] == RATE_LIMITED
    assert result.error is None
    assert memory.get_messages()[-1].content == result.response


def test_failure_after_partial_text_keeps_partial_answer():
    orchestrator, memory = make_orchestrator(FakeLLM(sse("Partial ", "more"), fail_after=1))

    chunks = run_stream(orchestrator, "what is collateral")
    kinds = [c.kind for c in chunks]

    assert ChunkKind.ERROR in kinds
    assert kinds[-1] is ChunkKind.DONE
    result = chunks[-1].result
    assert result.response == "Partial "
    assert result.error.startswith("AI stream interrupted")
    assert memory.get_messages()[-1].content == "Partial "


def test_reset_turn_leaves_no_session():
    orchestrator, memory = make_orchestrator(FakeLLM())
    asyncio.run(orchestrator.process("check my eligibility"))

    result = asyncio.run(orchestrator.process("reset", language="hi"))

    assert result.response == RESET_TEXT[Language.HI]
    assert not memory.exists


def test_on_done_callback():
    orchestrator, _ = make_orchestrator(FakeLLM())
    seen = {}

    def on_done(text, metadata):
        seen["text"] = text
        seen["route"] = metadata["route"]

    asyncio.run(orchestrator.process("hello", on_done=on_done))
    assert seen["route"] == "small_talk"
    assert "NidhiSaarthi" in seen["text"]


def stop_after_first_delta(orchestrator, text, typewriter=False):
    async def run():
        turn = orchestrator.stream(text, typewriter=typewriter)
        async for chunk in turn:
            if chunk.kind is ChunkKind.DELTA:
                break
        await turn.aclose()

    asyncio.run(run())


def test_stopped_remote_turn_records_streamed_text():
    orchestrator, memory = make_orchestrator(FakeLLM(sse("Collateral is ", "an asset pledged.")))

    stop_after_first_delta(orchestrator, "what is collateral")

    messages = memory.get_messages()
    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT]
    assert messages[-1].content == "Collateral is "
    assert messages[-1].metadata["interrupted"] is True


def test_stopped_local_turn_records_full_reply_once(monkeypatch):
    from app.core import config

    monkeypatch.setattr(config.settings, "TYPEWRITER_DELAY_SECONDS", 0)
    orchestrator, memory = make_orchestrator(FakeLLM())

    stop_after_first_delta(orchestrator, "check my eligibility", typewriter=True)

    messages = memory.get_messages()
    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT]
    assert "monthly" in messages[-1].content.lower()


def test_malformed_upstream_frame_does_not_lose_the_answer():
    chunks = ["data: {oops\n\n"] + sse("Collateral is ", "an asset pledged.")
    orchestrator, memory = make_orchestrator(FakeLLM(chunks))

    result = asyncio.run(orchestrator.process("what is collateral"))

    assert result.response == "Collateral is an asset pledged."
    assert "fallback" not in result.metadata
    assert result.error is None

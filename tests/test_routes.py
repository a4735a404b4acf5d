import pytest
from fastapi.testclient import TestClient

from app.core.session import InMemorySessionStore
from app.services.session_service import SessionRegistry
from main import create_app


class FakeLLM:
    def __init__(self, text="Collateral is an asset pledged against a loan."):
        self.text = text

    async def stream_completion(self, messages):
        yield 'data: {"choices":[{"delta":{"content":"%s"}}]}\n\n' % self.text
        yield "data: [DONE]\n\n"


@pytest.fixture
def registry(monkeypatch):
    from app.core import config

    monkeypatch.setattr(config.settings, "TYPEWRITER_DELAY_SECONDS", 0)
    return SessionRegistry(store=InMemorySessionStore(), llm=FakeLLM())


@pytest.fixture
def client(registry):
    return TestClient(create_app(registry=registry))


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_session_lifecycle(client):
    start = client.post("/api/sessions/start")
    assert start.status_code == 200
    sid = start.json()["session_id"]

    msgs = client.get(f"/api/sessions/{sid}/messages")
    assert msgs.status_code == 200
    assert msgs.json()["messages"] == []

    resp = client.post(f"/api/sessions/{sid}/message", json={"message": "check my eligibility"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["session_id"] == sid
    assert data["agent_type"] == "eligibility"
    assert data["metadata"]["progress"] == [0, 7]

    resp = client.post(f"/api/sessions/{sid}/message", json={"message": "50000"})
    assert resp.json()["metadata"]["progress"] == [1, 7]

    state = client.get(f"/api/sessions/{sid}/state").json()
    assert state["collectedData"] == {"monthly_income": 50000}
    assert state["active_flow"] == "eligibility"
    assert state["next_field"] == "loan_amount"
    assert state["context"]["inEligibilityFlow"] is True

    msgs = client.get(f"/api/sessions/{sid}/messages").json()["messages"]
    assert [m["role"] for m in msgs] == ["user", "assistant", "user", "assistant"]

    resp = client.delete(f"/api/sessions/{sid}")
    assert resp.status_code == 200
    assert client.get(f"/api/sessions/{sid}/messages").status_code == 404


def test_session_message_validation(client):
    sid = client.post("/api/sessions/start").json()["session_id"]
    assert client.post(f"/api/sessions/{sid}/message", json={"message": "   "}).status_code == 400
    assert client.get("/api/sessions/missing/state").status_code == 404


def test_session_message_in_hindi(client):
    sid = client.post("/api/sessions/start").json()["session_id"]
    resp = client.post(f"/api/sessions/{sid}/message", json={"message": "check my eligibility", "language": "hi"})
    assert "प्रगति" in resp.json()["response"]


def test_chat_stream_frames(client):
    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "hello"}]})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    assert resp.headers["x-session-id"]
    body = resp.text
    assert body.startswith("event: rag\n")
    assert "NidhiSaarthi" in body
    assert body.endswith("data: [DONE]\n\n")
    assert body.count("[DONE]") == 1


def test_chat_stream_remote_answer_and_history_seed(client, registry):
    payload = {
        "session_id": "wire-1",
        "messages": [
            {"role": "system", "content": "ignored"},
            {"role": "user", "content": "hi"},
            {"role": "assistant", "content": "Hello! How can I help?"},
            {"role": "user", "content": "what is collateral"},
        ],
    }
    resp = client.post("/api/chat", json=payload)

    assert resp.headers["x-session-id"] == "wire-1"
    assert "Collateral is an asset" in resp.text

    messages = registry.memory("wire-1").get_messages()
    assert [m.content for m in messages] == [
        "hi",
        "Hello! How can I help?",
        "what is collateral",
        "Collateral is an asset pledged against a loan.",
    ]


def test_chat_requires_a_user_message(client):
    assert client.post("/api/chat", json={"messages": []}).status_code == 400
    assert client.post("/api/chat", json={"messages": [{"role": "user", "content": "  "}]}).status_code == 400
    resp = client.post("/api/chat", json={"messages": [{"role": "assistant", "content": "hi"}]})
    assert resp.status_code == 400


def test_knowledge_search(client):
    resp = client.get("/api/knowledge/search", params={"q": "cibil score", "k": 2})
    assert resp.status_code == 200
    results = resp.json()["results"]
    assert 0 < len(results) <= 2
    assert results[0]["id"] == "credit-score-band"

    assert client.get("/api/knowledge/search", params={"q": " "}).status_code == 400

import pytest

from app.agents.eligibility_agent import ELIGIBILITY_FLOW
from app.agents.flow_engine import FINISH_ACTIONS, FlowSchema
from app.agents.router_agent import TurnRouter
from app.core.session import InMemorySessionStore
from app.graph.builder import build_turn_graph
from app.graph.runtime import run_turn
from app.services.memory_service import ConversationMemory


def make_session(session_id="flow-test"):
    memory = ConversationMemory(InMemorySessionStore(), session_id)
    graph = build_turn_graph(TurnRouter(memory))

    def turn(text, language="en"):
        return run_turn(graph, session_id, text, language)

    return memory, turn


def test_eligibility_journey_is_monotonic():
    memory, turn = make_session()

    first = turn("check my eligibility")
    assert first["route"] == "eligibility"
    assert first["flow"] == "eligibility"
    assert first["progress"] == [0, 7]
    assert first["asked"] == "monthly_income"
    assert "Progress: 0/7" in first["reply"]

    progress = [first["progress"][0]]
    state = first
    for answer in ["50000", "3 lakh", "720", "0", "salaried", "28", "3 years"]:
        state = turn(answer)
        assert state["route"] == "continue_flow"
        progress.append(state["progress"][0])

    assert progress == sorted(progress)
    assert state["progress"] == [7, 7]
    assert state["result"]["verdict"] == "Likely Eligible"
    assert state["result"]["probability"] == 95
    assert state["actions"] == FINISH_ACTIONS
    assert state["reply"].startswith("✅")
    assert not memory.get_context("inEligibilityFlow")
    assert memory.get_slots()["loan_tenure"] == 36


def test_invalid_answer_reasks_same_field():
    _, turn = make_session()
    turn("check my eligibility")
    turn("50000")
    turn("3 lakh")

    state = turn("1200")
    assert state["asked"] == "credit_score"
    assert state["progress"] == [2, 7]
    assert "out of range" in state["reply"]
    assert any("re-ask credit_score (range)" in line for line in state["decision_log"])

    state = turn("750")
    assert state["progress"] == [3, 7]
    assert state["asked"] == "existing_loans"


def test_data_dump_starts_flow_at_first_gap():
    memory, turn = make_session()

    state = turn("I earn 60000 per month and need a loan of 5 lakh")
    assert state["route"] == "eligibility"
    assert state["progress"] == [2, 7]
    assert state["asked"] == "credit_score"
    assert "Noted from your message" in state["reply"]
    assert memory.get_slots() == {"monthly_income": 60000, "loan_amount": 500000}


def test_question_mid_flow_is_a_context_switch():
    memory, turn = make_session()
    turn("check my eligibility")

    state = turn("what is a CIBIL score?")
    assert state["route"] == "remote"
    assert state["reply"] is None
    assert memory.get_context("inEligibilityFlow") is True
    assert memory.get_slots() == {}

    state = turn("50000")
    assert state["route"] == "continue_flow"
    assert state["progress"] == [1, 7]


def test_numeric_answer_with_question_mark_stays_in_flow():
    _, turn = make_session()
    turn("check my eligibility")

    state = turn("50000?")
    assert state["route"] == "continue_flow"
    assert state["progress"] == [1, 7]


def test_exit_keeps_slots_and_restart_resumes():
    memory, turn = make_session()
    turn("check my eligibility")
    turn("50000")

    state = turn("exit")
    assert state["route"] == "exit"
    assert not memory.get_context("inEligibilityFlow")
    assert memory.get_slots() == {"monthly_income": 50000}

    state = turn("check my eligibility")
    assert state["progress"] == [1, 7]
    assert state["asked"] == "loan_amount"


def test_reset_clears_session():
    memory, turn = make_session()
    turn("check my eligibility")
    turn("50000")

    state = turn("reset")
    assert state["route"] == "reset"
    assert not memory.exists
    assert memory.get_slots() == {}


def test_switching_to_resilience_cancels_eligibility():
    memory, turn = make_session()
    turn("check my eligibility")
    turn("50000")

    state = turn("can I check my financial resilience instead?")
    assert state["route"] == "resilience"
    assert state["flow"] == "resilience"
    assert state["progress"] == [1, 8]
    assert state["asked"] == "monthly_expenses"
    assert not memory.get_context("inEligibilityFlow")
    assert memory.get_context("inResilienceFlow") is True


def test_emi_and_small_talk_routes():
    _, turn = make_session()

    state = turn("calculate emi for 5 lakh at 10% for 3 years")
    assert state["route"] == "emi"
    assert abs(state["result"]["emi"] - 16134) <= 2
    assert "EMI" in state["reply"]

    state = turn("hello")
    assert state["route"] == "small_talk"
    assert "NidhiSaarthi" in state["reply"]


def test_prompts_follow_language():
    _, turn = make_session()
    state = turn("check my eligibility", language="hi")
    assert "प्रगति: 0/7" in state["reply"]


def test_schema_requires_prompt_for_every_field():
    with pytest.raises(RuntimeError):
        FlowSchema(
            name="broken",
            agent_type=ELIGIBILITY_FLOW.agent_type,
            fields=ELIGIBILITY_FLOW.fields,
            active_key="x",
            started_key="y",
            intro=ELIGIBILITY_FLOW.intro,
            prompts={},
            labels=ELIGIBILITY_FLOW.labels,
            completion=ELIGIBILITY_FLOW.completion,
            finish=ELIGIBILITY_FLOW.finish,
        )

import logging

from app.graph.state import TurnState

logger = logging.getLogger(__name__)


def run_turn(graph, session_id: str, text: str, language: str) -> TurnState:
    initial_state = {
        "session_id": session_id,
        "text": text,
        "language": language,

        "command": None,
        "intent": None,
        "extraction": None,

        "route": None,
        "flow": None,
        "progress": None,
        "asked": None,

        "reply": None,
        "agent_type": None,
        "result": None,
        "actions": [],

        "decision_log": [],
    }

    final_state = graph.invoke(initial_state)
    logger.info("turn %s: route=%s trace=%s", session_id, final_state.get("route"), final_state.get("decision_log"))
    return final_state

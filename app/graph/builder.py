from langgraph.graph import StateGraph, END
from app.graph.state import TurnState

ROUTES = ("continue_flow", "eligibility", "resilience", "emi", "small_talk", "remote")


def after_control(state: TurnState) -> str:
    # exit / reset already produced the reply
    return END if state.get("command") else "ingest"


def pick_route(state: TurnState) -> str:
    return state["route"]


def build_turn_graph(router):
    graph = StateGraph(TurnState)

    graph.add_node("control", router.control)
    graph.add_node("ingest", router.ingest)
    for name in ROUTES:
        graph.add_node(name, getattr(router, name))

    graph.set_entry_point("control")

    graph.add_conditional_edges("control", after_control, {"ingest": "ingest", END: END})
    graph.add_conditional_edges("ingest", pick_route, {name: name for name in ROUTES})
    for name in ROUTES:
        graph.add_edge(name, END)

    return graph.compile()

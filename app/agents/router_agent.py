# app/agents/router_agent.py
import logging
from typing import Optional

from app.agents.advisor_agent import EXIT_TEXT, RESET_TEXT, emi_answer, help_text
from app.agents.eligibility_agent import ELIGIBILITY_FLOW
from app.agents.extraction_agent import extract
from app.agents.flow_engine import FlowTurn, SlotFillingFlow
from app.agents.intent_agent import classify, control_command, is_resilience_request
from app.agents.resilience_agent import RESILIENCE_FLOW
from app.agents.underwriting_agent import quote_emi
from app.graph.state import TurnState
from app.models.domain_models import AgentType, Intent
from app.models.responses import IntentResult
from app.services.memory_service import ConversationMemory
from app.services.utils import localized

logger = logging.getLogger(__name__)

DATA_DUMP_MIN_FIELDS = 2


class TurnRouter:
    """
    Graph nodes for one conversation turn. Precedence:
    control command > active flow > eligibility / EMI / resilience intent
    > data dump (2+ fields with a loan signal) > small talk > remote model.
    """

    def __init__(self, memory: ConversationMemory):
        self.memory = memory
        self.eligibility_flow = SlotFillingFlow(ELIGIBILITY_FLOW, memory)
        self.resilience_flow = SlotFillingFlow(RESILIENCE_FLOW, memory)

    @property
    def flows(self):
        return (self.eligibility_flow, self.resilience_flow)

    def active_flow(self) -> Optional[SlotFillingFlow]:
        for flow in self.flows:
            if flow.is_active():
                return flow
        return None

    def progress(self):
        flow = self.active_flow()
        return list(flow.progress()) if flow else None

    # -----------------------------
    # nodes
    # -----------------------------

    def control(self, state: TurnState) -> TurnState:
        command = control_command(state["text"])
        state["command"] = command
        if command == "exit":
            for flow in self.flows:
                flow.cancel()
            state["reply"] = localized(EXIT_TEXT, state["language"])
            state["agent_type"] = AgentType.GENERAL.value
            state["route"] = "exit"
        elif command == "reset":
            self.memory.reset()
            state["reply"] = localized(RESET_TEXT, state["language"])
            state["agent_type"] = AgentType.GENERAL.value
            state["route"] = "reset"
        if command:
            state["decision_log"].append(f"control: {command}")
        return state

    def ingest(self, state: TurnState) -> TurnState:
        text = state["text"]
        intent = classify(text)
        state["intent"] = intent.model_dump(mode="json")
        state["decision_log"].append(f"intent: {intent.intent.value} ({intent.confidence:.2f}) {intent.reasoning}")

        active = self.active_flow()
        if active is not None:
            if not active.is_context_switch(text):
                state["route"] = "continue_flow"
                state["decision_log"].append(f"route: continue {active.schema.name} flow")
                return state
            state["decision_log"].append(f"context switch out of {active.schema.name} flow")
            state["route"] = self._route_for(intent, text, data_dump=False)
            state["decision_log"].append(f"route: {state['route']}")
            return state

        extraction = extract(text, existing=self.memory.get_slots())
        state["extraction"] = extraction.model_dump(mode="json")
        accepted = self.memory.update_slots(extraction.extracted)
        if accepted:
            state["decision_log"].append(f"slots: {', '.join(sorted(accepted))}")

        data_dump = len(extraction.fields_found) >= DATA_DUMP_MIN_FIELDS and extraction.has_domain_signal
        state["route"] = self._route_for(intent, text, data_dump=data_dump)
        state["decision_log"].append(f"route: {state['route']}")
        return state

    def _route_for(self, intent: IntentResult, text: str, data_dump: bool) -> str:
        if intent.intent is Intent.ELIGIBILITY_CHECK:
            return "eligibility"
        if intent.intent is Intent.EMI_CALCULATION and intent.entities.get("amount"):
            return "emi"
        if is_resilience_request(text):
            return "resilience"
        if data_dump:
            return "eligibility"
        if intent.intent is Intent.GENERAL_CHAT:
            return "small_talk"
        return "remote"

    def continue_flow(self, state: TurnState) -> TurnState:
        flow = self.active_flow()
        turn = flow.answer(state["text"], state["language"])
        return self._apply(state, flow, turn)

    def eligibility(self, state: TurnState) -> TurnState:
        self.resilience_flow.cancel()
        turn = self.eligibility_flow.start(state["language"])
        return self._apply(state, self.eligibility_flow, turn)

    def resilience(self, state: TurnState) -> TurnState:
        self.eligibility_flow.cancel()
        turn = self.resilience_flow.start(state["language"])
        return self._apply(state, self.resilience_flow, turn)

    def emi(self, state: TurnState) -> TurnState:
        entities = state["intent"]["entities"]
        quote = quote_emi(entities["amount"], entities.get("rate"), entities.get("tenure_months"))
        state["reply"] = emi_answer(quote, state["language"])
        state["result"] = quote.model_dump(mode="json")
        state["agent_type"] = AgentType.FINANCE.value
        return state

    def small_talk(self, state: TurnState) -> TurnState:
        state["reply"] = help_text(state["language"])
        state["agent_type"] = AgentType.GENERAL.value
        return state

    def remote(self, state: TurnState) -> TurnState:
        # answered by the remote model outside the graph
        state["reply"] = None
        state["agent_type"] = AgentType.FINANCE.value
        return state

    def _apply(self, state: TurnState, flow: SlotFillingFlow, turn: FlowTurn) -> TurnState:
        state["reply"] = turn.reply
        state["agent_type"] = flow.schema.agent_type.value
        state["flow"] = flow.schema.name
        state["progress"] = list(turn.progress)
        state["asked"] = turn.asked.value if turn.asked else None
        state["actions"] = turn.actions
        if turn.result is not None:
            state["result"] = turn.result.model_dump(mode="json")
        if turn.error:
            state["decision_log"].append(f"{flow.schema.name}: re-ask {turn.asked.value} ({turn.error})")
        elif turn.done:
            state["decision_log"].append(f"{flow.schema.name}: complete")
        logger.info("flow %s progress=%s done=%s", flow.schema.name, turn.progress, turn.done)
        return state

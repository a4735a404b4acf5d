# app/agents/flow_engine.py
"""
Generic slot-filling state machine shared by the eligibility and resilience flows.

    NOT_STARTED -> ASKING(field) -> VALIDATING(field) -> ASKING(next) ... -> COMPLETE

The current field is always the first required field missing from memory, so the
question order is fixed by the schema and cannot be reordered by answers.
"""
import logging
import re
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import BaseModel

from app.agents.extraction_agent import FieldError, SlotField, interpret_answer, normalise
from app.models.domain_models import AgentType, Language
from app.services.memory_service import ConversationMemory
from app.services.utils import format_inr, localized

logger = logging.getLogger(__name__)

FINISH_ACTIONS = ["detailed_report", "continue_chat"]

MONEY_FIELDS = {
    SlotField.MONTHLY_INCOME,
    SlotField.MONTHLY_EXPENSES,
    SlotField.LOAN_AMOUNT,
    SlotField.EXISTING_EMI_AMOUNT,
    SlotField.EMERGENCY_SAVINGS,
    SlotField.EXISTING_DEBT_MONTHLY,
    SlotField.INVESTMENTS,
}

# words that suggest the user is answering the question rather than asking one
SLOT_KEYWORDS = re.compile(
    r"\b(?:income|loan|salar\w*|credit|score|cibil|emi|tenure|job|age|existing|obligation\w*|amount|borrow\w*"
    r"|expense\w*|spend\w*|saving\w*|debt\w*|depend\w*|stab\w*|goal|insur\w*|invest\w*)\b"
)

PROGRESS_LABEL = {
    Language.EN: "Progress",
    Language.HI: "प्रगति",
    Language.TA: "முன்னேற்றம்",
}

NOTED_LABEL = {
    Language.EN: "📝 Noted from your message",
    Language.HI: "📝 आपके संदेश से दर्ज किया गया",
    Language.TA: "📝 உங்கள் செய்தியிலிருந்து குறித்துக்கொண்டது",
}

ERROR_TEMPLATES = {
    Language.EN: {
        "unparsed": "⚠️ I couldn't read that as a valid answer.",
        "range": "⚠️ That value looks out of range. Please enter something between {low} and {high}.",
        "choice": "⚠️ Please choose one of: {choices}.",
        "text": "⚠️ Please describe your goal in a few words.",
        "options": "Options: {choices}.",
        "between": "Expected a number between {low} and {high}.",
    },
    Language.HI: {
        "unparsed": "⚠️ मैं इसे सही उत्तर के रूप में नहीं समझ पाया।",
        "range": "⚠️ यह मान सीमा से बाहर लगता है। कृपया {low} और {high} के बीच कोई मान दर्ज करें।",
        "choice": "⚠️ कृपया इनमें से एक चुनें: {choices}।",
        "text": "⚠️ कृपया अपना लक्ष्य कुछ शब्दों में बताएं।",
        "options": "विकल्प: {choices}।",
        "between": "{low} और {high} के बीच की संख्या अपेक्षित है।",
    },
    Language.TA: {
        "unparsed": "⚠️ இதை சரியான பதிலாக என்னால் புரிந்துகொள்ள முடியவில்லை.",
        "range": "⚠️ இந்த மதிப்பு வரம்புக்கு வெளியே உள்ளது. {low} முதல் {high} வரை ஒரு மதிப்பை உள்ளிடவும்.",
        "choice": "⚠️ இவற்றில் ஒன்றைத் தேர்ந்தெடுக்கவும்: {choices}.",
        "text": "⚠️ உங்கள் இலக்கை சில வார்த்தைகளில் கூறவும்.",
        "options": "தேர்வுகள்: {choices}.",
        "between": "{low} முதல் {high} வரையிலான எண் எதிர்பார்க்கப்படுகிறது.",
    },
}


def _bound(field: SlotField, value: Optional[int]) -> str:
    if value is None:
        return ""
    return format_inr(value) if field in MONEY_FIELDS else str(value)


def describe_error(field: SlotField, error: FieldError, language) -> str:
    templates = localized(ERROR_TEMPLATES, language)
    low, high = _bound(field, error.low), _bound(field, error.high)
    choices = ", ".join(error.choices)

    if error.code == "range":
        return templates["range"].format(low=low, high=high)
    if error.code == "choice":
        return templates["choice"].format(choices=choices)
    if error.code == "text":
        return templates["text"]

    message = templates["unparsed"]
    if choices:
        message += " " + templates["options"].format(choices=choices)
    elif low and high:
        message += " " + templates["between"].format(low=low, high=high)
    return message


def display_value(field: SlotField, value: Any) -> str:
    if field in MONEY_FIELDS:
        return format_inr(value)
    if field is SlotField.LOAN_TENURE:
        return f"{value} months"
    if isinstance(value, bool):
        return "yes" if value else "no"
    return str(value)


# -----------------------------
# Schema + turn result
# -----------------------------

@dataclass
class FlowSchema:
    name: str
    agent_type: AgentType
    fields: Tuple[SlotField, ...]
    active_key: str
    started_key: str
    intro: Dict[Language, str]
    prompts: Dict[SlotField, Dict[Language, str]]
    labels: Dict[SlotField, Dict[Language, str]]
    completion: Dict[Language, str]
    # (slots, language) -> (report text, scoring result)
    finish: Callable[[Dict[str, Any], Language], Tuple[str, BaseModel]]

    def __post_init__(self):
        missing = [f.value for f in self.fields if f not in self.prompts or f not in self.labels]
        if missing:
            raise RuntimeError(f"{self.name} flow has no prompt/label for: {', '.join(missing)}")


@dataclass
class FlowTurn:
    reply: str
    progress: Tuple[int, int]
    asked: Optional[SlotField] = None
    done: bool = False
    result: Optional[BaseModel] = None
    error: Optional[str] = None
    actions: List[str] = dc_field(default_factory=list)


class SlotFillingFlow:
    def __init__(self, schema: FlowSchema, memory: ConversationMemory):
        self.schema = schema
        self.memory = memory

    # -----------------------------
    # state
    # -----------------------------

    def is_active(self) -> bool:
        return bool(self.memory.get_context(self.schema.active_key))

    def missing_fields(self) -> List[SlotField]:
        slots = self.memory.get_slots()
        return [f for f in self.schema.fields if f.value not in slots]

    def current_field(self) -> Optional[SlotField]:
        missing = self.missing_fields()
        return missing[0] if missing else None

    def progress(self) -> Tuple[int, int]:
        total = len(self.schema.fields)
        return total - len(self.missing_fields()), total

    def is_context_switch(self, text: str) -> bool:
        """A question that is not an answer to the pending field."""
        lower = normalise(text)
        if not lower.endswith("?"):
            return False
        field = self.current_field()
        if field is None:
            return False
        _, error = interpret_answer(field, text)
        if error is not None:
            return True
        return not SLOT_KEYWORDS.search(lower) and not re.search(r"\d", lower)

    # -----------------------------
    # transitions
    # -----------------------------

    def start(self, language) -> FlowTurn:
        lang = Language.coerce(language)
        field = self.current_field()
        if field is None:
            return self.complete(lang)

        resuming = self.is_active() and bool(self.memory.get_context(self.schema.started_key))
        self.memory.set_context(self.schema.active_key, True)
        self.memory.set_context(self.schema.started_key, True)
        logger.info("%s flow %s at %s", self.schema.name, "resumed" if resuming else "started", field.value)
        return self._ask(field, lang, intro=not resuming)

    def answer(self, text: str, language) -> FlowTurn:
        lang = Language.coerce(language)
        field = self.current_field()
        if field is None:
            return self.complete(lang)

        value, error = interpret_answer(field, text)
        if error is not None:
            logger.info("%s flow: %s rejected (%s)", self.schema.name, field.value, error.code)
            prefix = describe_error(field, error, lang)
            turn = self._ask(field, lang, intro=False)
            turn.reply = f"{prefix}\n\n{turn.reply}"
            turn.error = error.code
            return turn

        self.memory.update_slots({field.value: value})
        following = self.current_field()
        if following is None:
            return self.complete(lang)
        return self._ask(following, lang, intro=False)

    def complete(self, language) -> FlowTurn:
        lang = Language.coerce(language)
        report, result = self.schema.finish(self.memory.get_slots(), lang)
        self.memory.clear_context(self.schema.active_key, self.schema.started_key)
        logger.info("%s flow complete", self.schema.name)
        total = len(self.schema.fields)
        return FlowTurn(
            reply=f"{localized(self.schema.completion, lang)}\n\n{report}",
            progress=(total, total),
            done=True,
            result=result,
            actions=list(FINISH_ACTIONS),
        )

    def cancel(self) -> None:
        self.memory.clear_context(self.schema.active_key, self.schema.started_key)

    # -----------------------------
    # rendering
    # -----------------------------

    def _noted(self, lang: Language) -> Optional[str]:
        slots = self.memory.get_slots()
        known = [f for f in self.schema.fields if f.value in slots]
        if not known:
            return None
        items = ", ".join(
            f"{localized(self.schema.labels[f], lang)}: {display_value(f, slots[f.value])}" for f in known
        )
        return f"{localized(NOTED_LABEL, lang)}: {items}"

    def _ask(self, field: SlotField, lang: Language, intro: bool) -> FlowTurn:
        answered, total = self.progress()
        lines = []
        if intro:
            lines.append(localized(self.schema.intro, lang))
            noted = self._noted(lang)
            if noted:
                lines.append(noted)
        lines.append(f"⏳ {localized(PROGRESS_LABEL, lang)}: {answered}/{total}")
        lines.append(localized(self.schema.prompts[field], lang))
        return FlowTurn(reply="\n\n".join(lines), progress=(answered, total), asked=field)

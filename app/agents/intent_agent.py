# app/agents/intent_agent.py
import re
from typing import Any, Dict, Optional

from app.agents.extraction_agent import (
    RANGES, SlotField, extract_field, find_amounts, normalise,
)
from app.models.domain_models import Intent
from app.models.responses import IntentResult

EXIT_COMMANDS = ("exit", "stop", "cancel", "quit")
RESET_COMMANDS = ("reset", "restart", "start over")

# scanned in this order; eligibility is handled by its own rule and skipped here
INTENT_KEYWORDS: Dict[Intent, tuple] = {
    Intent.ELIGIBILITY_CHECK: ("eligible", "eligibility", "qualify", "can i get", "approval chances"),
    Intent.EMI_CALCULATION: ("emi", "installment", "instalment", "monthly payment", "repayment"),
    Intent.CREDIT_SCORE_ADVICE: ("credit score", "cibil", "credit report", "credit history"),
    Intent.DOCUMENT_REQUIREMENTS: ("documents", "document", "papers", "kyc", "paperwork", "proof"),
    Intent.BANK_COMPARISON: ("bank", "banks", "lender", "lenders", "nbfc"),
    Intent.FINANCIAL_PLANNING: ("budget", "savings", "invest", "investment", "financial plan", "retirement"),
    Intent.FINANCE_QA: ("loan", "loans", "interest", "rate", "tenure", "principal", "collateral", "dti", "debt"),
    Intent.GENERAL_CHAT: ("hello", "hi", "hey", "thanks", "thank you", "help", "namaste", "vanakkam", "good morning", "bye"),
}

_EMI_WORD = re.compile(
    r"(?<!existing )(?<!current )(?<!ongoing )(?<!running )"
    r"\b(?:emis?|installments?|instalments?|monthly\s+payments?)\b"
)
_CREDIT = re.compile(r"\b(?:credit|cibil)\b")
_CREDIT_GATE = re.compile(
    r"\b(?:improve|increase|boost|fix|repair|raise|build|low|bad|poor|report|what|how|why|affect|impact|tips?|rating|better)\b"
)
_DOCS = re.compile(r"\b(?:documents?|papers|proofs?|kyc|paperwork)\b")
_DOCS_GATE = re.compile(r"\b(?:what|which|need|needed|required|require|list|submit|bring)\b")
_BANKS = re.compile(r"\b(?:banks?|lenders?|compare|comparison)\b")
_BANKS_GATE = re.compile(r"\b(?:which|best|compare|comparison|top|recommend\w*|cheapest|lowest)\b")
_PLANNING = re.compile(r"\b(?:budget\w*|financial\s+plan\w*|save|saving|savings|invest\w*)\b")
_PLANNING_GATE = re.compile(r"\b(?:how|plan|tips?|should|help|goal|what|strategy|start)\b")
_ELIGIBILITY = re.compile(
    r"\bam\s+i\s+eligible|\bcheck\s+(?:my\s+)?eligibility|\beligib\w*|\bqualify\s+for\b"
    r"|\bcan\s+i\s+get\s+(?:a\s+)?loan\b|\bloan\s+approval\b|\bapproval\s+chances?\b"
)
_WANTS = re.compile(r"\b(?:need|want|looking\s+for)\b")
_LOAN_AMOUNT_PHRASE = re.compile(r"\bloan\s+(?:amount\s+)?(?:of|for)\s+(?:₹|rs\.?\s*)?\d")

RESILIENCE_TRIGGER = re.compile(
    r"resilien|stress\s*test|emergency\s+fund|\bemergency\b|can\s+i\s+afford|rainy\s+day|financial\s+cushion"
    r"|\bbackup\b|safety\s+net|how\s+long\s+can\s+i\s+(?:manage|survive)|financial\s+health|worst\s+case"
)

LOAN_PURPOSES = (
    ("home", re.compile(r"\b(?:home|house|housing|flat|property)\b")),
    ("car", re.compile(r"\b(?:car|vehicle|bike|two[-\s]?wheeler)\b")),
    ("education", re.compile(r"\b(?:education|study|studies|college|course)\b")),
    ("business", re.compile(r"\b(?:business|shop|mudra)\b")),
    ("medical", re.compile(r"\b(?:medical|hospital|surgery|treatment)\b")),
    ("wedding", re.compile(r"\b(?:wedding|marriage)\b")),
    ("personal", re.compile(r"\bpersonal\b")),
)


def control_command(text: str) -> Optional[str]:
    """'exit' or 'reset' when the whole message is a control word."""
    cleaned = normalise(text).strip(" .!?")
    if cleaned in EXIT_COMMANDS:
        return "exit"
    if cleaned in RESET_COMMANDS:
        return "reset"
    return None


def is_resilience_request(text: str) -> bool:
    return bool(RESILIENCE_TRIGGER.search(normalise(text)))


def emi_terms(text: str) -> Dict[str, Any]:
    """Principal, rate and tenure mentioned in an EMI question (any may be missing)."""
    lower = normalise(text)
    terms: Dict[str, Any] = {}

    loan = extract_field(SlotField.LOAN_AMOUNT, lower)
    if loan is not None:
        terms["amount"] = loan.value
    else:
        low, high = RANGES[SlotField.LOAN_AMOUNT]
        for value, m in find_amounts(lower):
            tail = lower[m.end():m.end() + 8]
            if low <= value <= high and not re.match(r"\s*(?:%|percent|months?|years?|yrs?)", tail):
                terms["amount"] = value
                break

    tenure = extract_field(SlotField.LOAN_TENURE, lower)
    if tenure is not None:
        terms["tenure_months"] = tenure.value
    else:
        m = re.search(r"\b(\d{1,3})\s*(months?|years?|yrs?)\b", lower)
        if m:
            n = int(m.group(1))
            terms["tenure_months"] = n * 12 if m.group(2).startswith("y") else n

    rate = re.search(r"(\d{1,2}(?:\.\d+)?)\s*(?:%|percent|per\s*cent)", lower)
    if rate:
        terms["rate"] = float(rate.group(1))
    return terms


def extract_entities(lower: str) -> Dict[str, Any]:
    entities: Dict[str, Any] = {}
    numbers = [value for value, _ in find_amounts(lower)]
    if numbers:
        entities["numbers"] = numbers
    job = extract_field(SlotField.JOB_TYPE, lower)
    if job is not None:
        entities["job_type"] = job.value
    for purpose, pattern in LOAN_PURPOSES:
        if pattern.search(lower):
            entities["loan_purpose"] = purpose
            break
    return entities


def _result(intent: Intent, confidence: float, entities: dict, reasoning: str) -> IntentResult:
    return IntentResult(intent=intent, confidence=confidence, entities=entities, reasoning=reasoning)


def classify(text: str) -> IntentResult:
    """
    Fixed priority order; an earlier rule always wins:
      1. control commands
      2. EMI keyword + number (or "how much")
      3. gated credit / documents / banks / planning
      4. eligibility phrasing
      5. wants a loan + amount -> finance_qa
      6. keyword table scan
      7. finance_qa default
    """
    lower = normalise(text)
    entities = extract_entities(lower)

    if control_command(lower):
        return _result(Intent.GENERAL_CHAT, 0.98, entities, "Control command")

    has_number = bool(re.search(r"\d", lower))
    if _EMI_WORD.search(lower) and (has_number or "how much" in lower):
        entities.update(emi_terms(lower))
        return _result(Intent.EMI_CALCULATION, 0.95, entities, "EMI keyword with an amount")

    if _CREDIT.search(lower) and _CREDIT_GATE.search(lower):
        return _result(Intent.CREDIT_SCORE_ADVICE, 0.9, entities, "Credit keyword with a qualifying question")
    if _DOCS.search(lower) and _DOCS_GATE.search(lower):
        return _result(Intent.DOCUMENT_REQUIREMENTS, 0.9, entities, "Document keyword with a qualifying question")
    if _BANKS.search(lower) and _BANKS_GATE.search(lower):
        return _result(Intent.BANK_COMPARISON, 0.9, entities, "Bank keyword with a comparison cue")
    if _PLANNING.search(lower) and _PLANNING_GATE.search(lower):
        return _result(Intent.FINANCIAL_PLANNING, 0.85, entities, "Planning keyword with a qualifying cue")

    if _ELIGIBILITY.search(lower):
        return _result(Intent.ELIGIBILITY_CHECK, 0.9, entities, "Explicit eligibility phrasing")

    wants_loan = _WANTS.search(lower) and re.search(r"\bloans?\b", lower) and has_number
    if wants_loan or _LOAN_AMOUNT_PHRASE.search(lower):
        return _result(Intent.FINANCE_QA, 0.9, entities, "Loan request with an amount")

    for intent, keywords in INTENT_KEYWORDS.items():
        if intent is Intent.ELIGIBILITY_CHECK:
            continue
        for keyword in keywords:
            if re.search(r"\b" + re.escape(keyword) + r"\b", lower):
                return _result(intent, 0.8, entities, f'Matched keyword: "{keyword}"')

    return _result(Intent.FINANCE_QA, 0.5, entities, "No specific pattern matched")

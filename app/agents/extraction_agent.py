# app/agents/extraction_agent.py
"""
Slot extraction: free text -> partial structured record.

Every field has an ordered list of regex rules. The first rule that yields a
value passing the field's validator wins. Nothing here has side effects; the
same text always produces the same result.
"""
import math
import re
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Pattern, Tuple

from pydantic import BaseModel, Field

from app.models.domain_models import JobType, Stability


class SlotField(str, Enum):
    MONTHLY_INCOME = "monthly_income"
    MONTHLY_EXPENSES = "monthly_expenses"
    LOAN_AMOUNT = "loan_amount"
    CREDIT_SCORE = "credit_score"
    EXISTING_LOANS = "existing_loans"
    EXISTING_EMI_AMOUNT = "existing_emi_amount"
    JOB_TYPE = "job_type"
    EMPLOYMENT_STABILITY = "employment_stability"
    DEPENDENTS = "dependents"
    AGE = "age"
    LOAN_TENURE = "loan_tenure"
    EMERGENCY_SAVINGS = "emergency_savings"
    EXISTING_DEBT_MONTHLY = "existing_debt_monthly"
    FINANCIAL_GOAL = "financial_goal"
    INVESTMENTS = "investments"
    HAS_INSURANCE = "has_insurance"


ELIGIBILITY_FIELDS: Tuple[SlotField, ...] = (
    SlotField.MONTHLY_INCOME,
    SlotField.MONTHLY_EXPENSES,
    SlotField.LOAN_AMOUNT,
    SlotField.CREDIT_SCORE,
    SlotField.EXISTING_LOANS,
    SlotField.EXISTING_EMI_AMOUNT,
    SlotField.JOB_TYPE,
    SlotField.EMPLOYMENT_STABILITY,
    SlotField.DEPENDENTS,
    SlotField.AGE,
    SlotField.LOAN_TENURE,
)

RESILIENCE_FIELDS: Tuple[SlotField, ...] = (
    SlotField.MONTHLY_INCOME,
    SlotField.MONTHLY_EXPENSES,
    SlotField.EMERGENCY_SAVINGS,
    SlotField.EXISTING_DEBT_MONTHLY,
    SlotField.CREDIT_SCORE,
    SlotField.EMPLOYMENT_STABILITY,
    SlotField.DEPENDENTS,
    SlotField.FINANCIAL_GOAL,
    SlotField.INVESTMENTS,
    SlotField.HAS_INSURANCE,
)


class FieldMatch(NamedTuple):
    value: Any
    confidence: float


class FieldError(NamedTuple):
    code: str  # unparsed | range | choice | text
    low: Optional[int] = None
    high: Optional[int] = None
    choices: Tuple[str, ...] = ()


class ExtractionResult(BaseModel):
    extracted: Dict[str, Any] = Field(default_factory=dict)
    fields_found: List[str] = Field(default_factory=list)
    confidence: Dict[str, float] = Field(default_factory=dict)
    merged: Dict[str, Any] = Field(default_factory=dict)
    is_eligibility_query: bool = False
    has_domain_signal: bool = False


# -----------------------------
# Indian number grammar
# -----------------------------

NUM_UNIT = (
    r"(?P<num>\d[\d,]*(?:\.\d+)?)"
    r"(?:\s*(?P<unit>lakhs?|lacs?|crores?|cr|k|thousand)(?![a-z]))?"
)
CURRENCY = r"(?:₹|(?<![a-z])rs\.?|(?<![a-z])inr)"
AMOUNT = CURRENCY + r"?\s*" + NUM_UNIT
MONEY = CURRENCY + r"\s*" + NUM_UNIT

_AMOUNT_RE = re.compile(AMOUNT, re.IGNORECASE)

UNIT_MULTIPLIERS = (
    ("lakh", 100_000),
    ("lac", 100_000),
    ("crore", 10_000_000),
    ("cr", 10_000_000),
    ("thousand", 1_000),
    ("k", 1_000),
)


def parse_amount(number: str, unit: Optional[str] = None) -> Optional[int]:
    digits = (number or "").replace(",", "")
    try:
        value = float(digits)
    except ValueError:
        return None
    if unit:
        unit = unit.lower()
        for prefix, multiplier in UNIT_MULTIPLIERS:
            if unit.startswith(prefix):
                value *= multiplier
                break
    if not math.isfinite(value):
        return None
    return int(round(value))


def find_amounts(text: str) -> List[Tuple[int, "re.Match"]]:
    found = []
    for m in _AMOUNT_RE.finditer(text):
        value = parse_amount(m.group("num"), m.group("unit"))
        if value is not None:
            found.append((value, m))
    return found


def parse_indian_number(text: str) -> Optional[int]:
    """First amount in the text, with ₹, comma grouping and lakh/crore/k units applied."""
    amounts = find_amounts(normalise(text))
    return amounts[0][0] if amounts else None


def normalise(text: str) -> str:
    text = (text or "").replace("’", "'").replace("₹ ", "₹")
    return re.sub(r"\s+", " ", text.strip().lower())


# -----------------------------
# Rules
# -----------------------------

class Rule(NamedTuple):
    pattern: Pattern
    convert: Callable[["re.Match"], Any]
    confidence: float


def _rule(regex: str, convert: Callable[["re.Match"], Any], confidence: float) -> Rule:
    return Rule(re.compile(regex, re.IGNORECASE), convert, confidence)


def _amount(m) -> Optional[int]:
    return parse_amount(m.group("num"), m.group("unit"))


def _int(m) -> int:
    return int(m.group(1))


def _const(value):
    return lambda m: value


def _months(m) -> int:
    n = int(m.group(1))
    unit = (m.group(2) or "").lower()
    return n * 12 if unit.startswith("y") else n


_STABILITY_WORDS = {
    "high": Stability.HIGH.value,
    "medium": Stability.MEDIUM.value,
    "moderate": Stability.MEDIUM.value,
    "low": Stability.LOW.value,
}


def _stability(m) -> str:
    return _STABILITY_WORDS[m.group(1).lower()]


_APPROX = r"(?:around\s+|about\s+|approx\.?\s+|roughly\s+)?"
_PER_MONTH = r"(?:per\s+month|a\s+month|/\s*month|monthly|p\.?m\b\.?)"

RULES: Dict[SlotField, Tuple[Rule, ...]] = {
    SlotField.MONTHLY_INCOME: (
        _rule(r"\b(?:i\s+)?(?:earn|earning|make|making|take\s+home)\s+" + _APPROX + AMOUNT, _amount, 0.95),
        _rule(
            r"\b(?:monthly\s+|net\s+|take[-\s]?home\s+)?(?:income|salary|earnings?|in[-\s]?hand)\s*"
            r"(?:is|=|:|of)?\s*" + _APPROX + AMOUNT,
            _amount, 0.9,
        ),
        _rule(AMOUNT + r"\s*" + _PER_MONTH + r"?\s*(?:income|salary|in[-\s]?hand|take[-\s]?home)\b", _amount, 0.8),
        _rule(MONEY + r"\s*" + _PER_MONTH, _amount, 0.7),
    ),
    SlotField.LOAN_AMOUNT: (
        _rule(r"\bloan\s+(?:amount\s+)?(?:of|for|is|=|:|around|about)?\s*" + AMOUNT, _amount, 0.95),
        _rule(
            r"\b(?:need|want|require|borrow|looking\s+for|apply\s+for)\s+(?:a\s+|an\s+)?(?:loan\s+of\s+)?" + AMOUNT,
            _amount, 0.9,
        ),
        _rule(
            AMOUNT + r"\s*(?:rupees?\s+)?(?:personal\s+|home\s+|car\s+|business\s+|education\s+|gold\s+)?loan\b",
            _amount, 0.85,
        ),
    ),
    SlotField.CREDIT_SCORE: (
        _rule(r"\b(?:credit\s*score|cibil(?:\s*score)?|credit)\s*(?:is|=|:|of|around|about)?\s*(\d{3})\b", _int, 0.95),
        _rule(r"\b(\d{3})\s*(?:credit\s*score|cibil|credit)\b", _int, 0.9),
        _rule(r"\bscore\s*(?:is|of|=|:)?\s*(\d{3})\b", _int, 0.8),
    ),
    SlotField.EXISTING_LOANS: (
        _rule(r"\b(\d{1,2})\s+(?:existing|active|current|running|ongoing|other)\s+(?:loans?|emis?)\b", _int, 0.9),
        _rule(
            r"\b(?:existing|active|current|running|ongoing)\s+loans?\s*(?:is|are|=|:|count)?\s*(\d{1,2})\b"
            r"(?!\s*(?:lakhs?|lacs?|k\b|thousand|,\d))",
            _int, 0.85,
        ),
        _rule(r"\b(?:no|zero|none|nil)\s+(?:existing\s+|active\s+|current\s+|other\s+|running\s+)?(?:loans?|emis?|debts?)\b",
              _const(0), 0.85),
        _rule(r"\b(\d{1,2})\s+loans\b", _int, 0.6),
    ),
    SlotField.JOB_TYPE: (
        _rule(r"\bself[-\s]?employed\b", _const(JobType.SELF_EMPLOYED.value), 0.95),
        _rule(r"\b(?:salaried|government\s+(?:job|employee)|private\s+(?:job|sector)|full[-\s]?time\s+employee)\b",
              _const(JobType.SALARIED.value), 0.9),
        _rule(r"\bfreelanc(?:e|er|ing)\b", _const(JobType.FREELANCE.value), 0.9),
        _rule(r"\b(?:business\s*(?:man|woman|owner)|own\s+(?:a\s+)?business|entrepreneur|shop\s*owner|run\s+(?:a|my)\s+business)\b",
              _const(JobType.BUSINESS.value), 0.85),
        _rule(r"\bbusiness\b(?!\s+loan)", _const(JobType.BUSINESS.value), 0.6),
    ),
    SlotField.AGE: (
        _rule(r"\b(?:age|aged)\s*(?:is|=|:|of)?\s*(\d{2})\b", _int, 0.95),
        _rule(r"\b(\d{2})\s*(?:years?|yrs?)\s*(?:old|of\s+age)\b", _int, 0.9),
        _rule(r"\bi\s*(?:am|'m)\s*(\d{2})\b(?!\s*(?:lakhs?|lacs?|k\b|thousand|%|months?|crores?|,\d))", _int, 0.7),
    ),
    SlotField.LOAN_TENURE: (
        _rule(
            r"\b(?:tenure|term|period|duration|repay(?:ment)?\s+(?:over|in|within))\s*(?:of|is|=|:|for)?\s*"
            r"(\d{1,3})\s*(months?|mos?|yrs?|years?)?\b",
            _months, 0.95,
        ),
        _rule(r"\b(\d{1,3})\s*(months?|mos?|yrs?|years?)\s+(?:of\s+)?(?:tenure|term|period|repayment|loan)\b", _months, 0.9),
        _rule(r"\bfor\s+(\d{1,3})\s*(months?)\b", _months, 0.75),
        _rule(r"\bover\s+(\d{1,2})\s*(years?|yrs?)\b", _months, 0.7),
    ),
    SlotField.MONTHLY_EXPENSES: (
        _rule(r"\b(?:monthly\s+)?(?:expenses?|expenditure|spend(?:ing)?|outgoings?)\s*(?:is|are|=|:|of)?\s*" + _APPROX + AMOUNT,
              _amount, 0.9),
        _rule(AMOUNT + r"\s*(?:per\s+month\s+|monthly\s+|a\s+month\s+)?(?:in\s+|as\s+|on\s+)?(?:monthly\s+)?"
                       r"(?:expenses?|expenditure|spending|household\s+costs?)\b",
              _amount, 0.8),
    ),
    SlotField.EXISTING_EMI_AMOUNT: (
        _rule(r"\b(?:existing|current|ongoing|running|total|monthly|present)\s+emis?\s*(?:amount\s*)?"
              r"(?:is|are|=|:|of|total)?\s*" + _APPROX + AMOUNT,
              _amount, 0.9),
        _rule(r"\bpay(?:ing)?\s+(?:an?\s+)?emis?\s+(?:of\s+)?" + AMOUNT, _amount, 0.85),
        _rule(AMOUNT + r"\s*(?:per\s+month\s+|monthly\s+)?(?:as\s+|in\s+|towards\s+)?(?:existing\s+|current\s+)?"
                       r"(?:emis?|obligations?|loan\s+repayments?)\b",
              _amount, 0.75),
        _rule(r"\bno\s+(?:existing\s+|current\s+)?(?:emis?|obligations?)\b", _const(0), 0.8),
    ),
    SlotField.EMPLOYMENT_STABILITY: (
        _rule(r"\b(?:stability|job\s+security|income\s+stability)\s*(?:is|=|:)?\s*(high|medium|moderate|low)\b", _stability, 0.95),
        _rule(r"\b(?:temporary|contract(?:ual)?|unstable|insecure|irregular|seasonal)\s+(?:job|role|work|employment|income)\b",
              _const(Stability.LOW.value), 0.85),
        _rule(r"\b(?:job|income|employment|work)\s+is\s+(?:very\s+|quite\s+)?(?:unstable|insecure|irregular|risky|temporary)\b",
              _const(Stability.LOW.value), 0.85),
        _rule(r"\b(?:permanent|government|govt|stable|secure|tenured)\s+(?:job|role|position|employment|income)\b",
              _const(Stability.HIGH.value), 0.85),
        _rule(r"\b(?:job|income|employment|work)\s+is\s+(?:very\s+|quite\s+|fairly\s+)?(?:stable|secure|permanent)\b",
              _const(Stability.HIGH.value), 0.85),
        _rule(r"\b(?:moderately\s+stable|somewhat\s+stable|uncertain)\b", _const(Stability.MEDIUM.value), 0.7),
    ),
    SlotField.DEPENDENTS: (
        _rule(r"\b(\d{1,2})\s+(?:dependents?|dependants?)\b", _int, 0.9),
        _rule(r"\b(?:dependents?|dependants?)\s*(?:is|are|=|:)?\s*(\d{1,2})\b", _int, 0.9),
        _rule(r"\bno\s+(?:dependents?|dependants?)\b", _const(0), 0.9),
    ),
    SlotField.EMERGENCY_SAVINGS: (
        _rule(r"\bno\s+(?:savings|emergency\s+fund|money\s+saved)\b", _const(0), 0.9),
        _rule(r"\b(?:emergency\s+(?:fund|savings?|corpus)|savings?|saved(?:\s+up)?)\s*(?:is|are|=|:|of)?\s*" + _APPROX + AMOUNT,
              _amount, 0.9),
        _rule(AMOUNT + r"\s*(?:in\s+|as\s+)?(?:savings|emergency\s+(?:fund|savings)|saved)\b", _amount, 0.85),
    ),
    SlotField.EXISTING_DEBT_MONTHLY: (
        _rule(r"\bno\s+(?:debts?|emis?|obligations?)\b", _const(0), 0.9),
        _rule(r"\b(?:monthly\s+)?(?:debt(?:\s+payments?)?|debt\s+obligations?|obligations?|emis?)\s*"
              r"(?:is|are|=|:|of|total)?\s*" + _APPROX + AMOUNT,
              _amount, 0.85),
        _rule(AMOUNT + r"\s*(?:per\s+month\s+|monthly\s+)?(?:in\s+|of\s+|as\s+)?(?:debts?|emis?|obligations?)\b", _amount, 0.8),
    ),
    SlotField.FINANCIAL_GOAL: (
        _rule(r"\bpersonal\s+loan\b", _const("Personal loan"), 0.9),
        _rule(r"\b(?:home|house|housing|property)\s+loan\b", _const("Home loan"), 0.9),
        _rule(r"\b(?:business|mudra)\s+loan\b", _const("Business loan"), 0.9),
        _rule(r"\b(?:resilience\s+check|just\s+checking|check(?:ing)?\s+(?:my\s+)?resilience|financial\s+health\s+check)\b",
              _const("Financial resilience check"), 0.8),
    ),
    SlotField.INVESTMENTS: (
        _rule(r"\b(?:investments?|mutual\s+funds?|stocks|shares|portfolio|sips?)\s*(?:is|are|=|:|of|worth)?\s*" + _APPROX + AMOUNT,
              _amount, 0.85),
        _rule(AMOUNT + r"\s*(?:invested\s+)?(?:in|of)\s+(?:investments?|mutual\s+funds?|stocks|shares|equity)\b", _amount, 0.8),
    ),
    SlotField.HAS_INSURANCE: (
        _rule(r"\b(?:no|without|don't\s+have|do\s+not\s+have)\s+(?:any\s+)?(?:health\s+|life\s+|term\s+|medical\s+)?insurance\b",
              _const(False), 0.9),
        _rule(r"\bnot\s+insured\b", _const(False), 0.9),
        _rule(r"\b(?:have|has|got|with)\s+(?:a\s+|an\s+)?(?:health\s+|life\s+|term\s+|medical\s+)?(?:insurance|cover)\b",
              _const(True), 0.85),
        _rule(r"\binsured\b", _const(True), 0.7),
    ),
}


# -----------------------------
# Validators
# -----------------------------

RANGES: Dict[SlotField, Tuple[int, int]] = {
    SlotField.MONTHLY_INCOME: (5_000, 50_000_000),
    SlotField.MONTHLY_EXPENSES: (1_000, 10_000_000),
    SlotField.LOAN_AMOUNT: (10_000, 100_000_000),
    SlotField.CREDIT_SCORE: (300, 900),
    SlotField.EXISTING_LOANS: (0, 20),
    SlotField.EXISTING_EMI_AMOUNT: (0, 1_000_000),
    SlotField.DEPENDENTS: (0, 20),
    SlotField.AGE: (18, 75),
    SlotField.LOAN_TENURE: (6, 360),
    SlotField.EMERGENCY_SAVINGS: (0, 100_000_000),
    SlotField.EXISTING_DEBT_MONTHLY: (0, 1_000_000),
    SlotField.INVESTMENTS: (0, 1_000_000_000),
}

GOAL_CHOICES = ("Personal loan", "Home loan", "Business loan", "Financial resilience check")

CHOICES: Dict[SlotField, Tuple[str, ...]] = {
    SlotField.JOB_TYPE: tuple(e.value for e in JobType),
    SlotField.EMPLOYMENT_STABILITY: tuple(e.value for e in Stability),
    SlotField.FINANCIAL_GOAL: GOAL_CHOICES,
    SlotField.HAS_INSURANCE: ("yes", "no"),
}


def _in_range(field: SlotField):
    low, high = RANGES[field]

    def check(value) -> Optional[FieldError]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return FieldError("unparsed", low, high)
        if value < low or value > high:
            return FieldError("range", low, high)
        return None

    return check


def _one_of(enum_cls):
    choices = tuple(e.value for e in enum_cls)

    def check(value) -> Optional[FieldError]:
        return None if value in choices else FieldError("choice", choices=choices)

    return check


def _goal(value) -> Optional[FieldError]:
    if not isinstance(value, str) or not value.strip() or len(value) > 80:
        return FieldError("text", choices=GOAL_CHOICES)
    return None


def _boolean(value) -> Optional[FieldError]:
    return None if isinstance(value, bool) else FieldError("choice", choices=("yes", "no"))


VALIDATORS: Dict[SlotField, Callable[[Any], Optional[FieldError]]] = {
    **{field: _in_range(field) for field in RANGES},
    SlotField.JOB_TYPE: _one_of(JobType),
    SlotField.EMPLOYMENT_STABILITY: _one_of(Stability),
    SlotField.FINANCIAL_GOAL: _goal,
    SlotField.HAS_INSURANCE: _boolean,
}


def validate_slot(field: SlotField, value: Any) -> Optional[FieldError]:
    return VALIDATORS[SlotField(field)](value)


# -----------------------------
# Lenient answer parsers (used while a flow is asking one field)
# -----------------------------

_ZERO_ANSWER = re.compile(r"^(?:no|nope|nah|0)$|\b(?:none|zero|nil|nothing|not\s+any)\b")
_YES = re.compile(r"\b(?:yes|yeah|yep|haan|ha|have|covered|insured)\b")
_NO = re.compile(r"\b(?:no|nope|nah|don't|not|nahi|without)\b")


def _answer_amount(text: str) -> Optional[int]:
    if _ZERO_ANSWER.search(text):
        return 0
    amounts = find_amounts(text)
    return amounts[0][0] if amounts else None


def _answer_tenure(text: str) -> Optional[int]:
    m = re.search(r"(\d+(?:\.\d+)?)\s*(years?|yrs?|y\b|months?|mos?|m\b)?", text)
    if not m:
        return None
    n = float(m.group(1))
    if (m.group(2) or "").startswith("y"):
        n *= 12
    if not math.isfinite(n):
        return None
    return int(round(n))


def _answer_job_type(text: str) -> Optional[str]:
    if re.search(r"\bself\b|self[-\s]?employ", text):
        return JobType.SELF_EMPLOYED.value
    if re.search(r"salar|employee|\bjob\b|service", text):
        return JobType.SALARIED.value
    if re.search(r"freelanc|gig|consult", text):
        return JobType.FREELANCE.value
    if re.search(r"business|owner|shop|trader|entrepreneur", text):
        return JobType.BUSINESS.value
    return None


def _answer_stability(text: str) -> Optional[str]:
    if re.search(r"unstable|insecure|not\s+(?:very\s+)?(?:stable|secure)|\blow\b|risky|temporary|contract|weak", text):
        return Stability.LOW.value
    if re.search(r"medium|moderate|average|uncertain|\bok(?:ay)?\b|so[-\s]so", text):
        return Stability.MEDIUM.value
    if re.search(r"\bhigh\b|secure|stable|permanent|strong|government", text):
        return Stability.HIGH.value
    return None


def _answer_goal(text: str) -> Optional[str]:
    if re.search(r"\bpersonal\b", text):
        return "Personal loan"
    if re.search(r"\bhome\b|\bhouse\b|property", text):
        return "Home loan"
    if re.search(r"business|mudra", text):
        return "Business loan"
    if re.search(r"resilien|just\s+check|stress|health", text):
        return "Financial resilience check"
    stripped = text.strip(" .!")
    if not stripped or stripped.endswith("?"):
        return None
    return stripped[:1].upper() + stripped[1:]


def _answer_boolean(text: str) -> Optional[bool]:
    if _NO.search(text):
        return False
    if _YES.search(text):
        return True
    return None


ANSWER_PARSERS: Dict[SlotField, Callable[[str], Any]] = {
    SlotField.MONTHLY_INCOME: _answer_amount,
    SlotField.MONTHLY_EXPENSES: _answer_amount,
    SlotField.LOAN_AMOUNT: _answer_amount,
    SlotField.CREDIT_SCORE: _answer_amount,
    SlotField.EXISTING_LOANS: _answer_amount,
    SlotField.EXISTING_EMI_AMOUNT: _answer_amount,
    SlotField.JOB_TYPE: _answer_job_type,
    SlotField.EMPLOYMENT_STABILITY: _answer_stability,
    SlotField.DEPENDENTS: _answer_amount,
    SlotField.AGE: _answer_amount,
    SlotField.LOAN_TENURE: _answer_tenure,
    SlotField.EMERGENCY_SAVINGS: _answer_amount,
    SlotField.EXISTING_DEBT_MONTHLY: _answer_amount,
    SlotField.FINANCIAL_GOAL: _answer_goal,
    SlotField.INVESTMENTS: _answer_amount,
    SlotField.HAS_INSURANCE: _answer_boolean,
}


def _check_complete(table: dict, name: str) -> None:
    missing = [f.value for f in SlotField if f not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")


_check_complete(RULES, "RULES")
_check_complete(VALIDATORS, "VALIDATORS")
_check_complete(ANSWER_PARSERS, "ANSWER_PARSERS")


# -----------------------------
# Public API
# -----------------------------

ELIGIBILITY_SIGNAL = re.compile(
    r"\beligib\w*|\bam\s+i\s+eligible|\bloan\s+approval|\bcan\s+i\s+get\s+(?:a\s+)?loan|\bqualify\b"
    r"|\bapproval\s+chances?|\bchances?\s+of\s+(?:getting|approval)"
)
LOAN_SIGNAL = re.compile(r"\b(?:loans?|borrow\w*|emis?|interest|approval|apply\w*|lend\w*|cibil|credit\s+score)\b")


def extract_field(field: SlotField, text: str) -> Optional[FieldMatch]:
    """First rule whose value passes validation, or None."""
    validator = VALIDATORS[field]
    for rule in RULES[field]:
        for m in rule.pattern.finditer(text):
            value = rule.convert(m)
            if value is not None and validator(value) is None:
                return FieldMatch(value, rule.confidence)
    return None


def extract(
    text: str,
    fields: Iterable[SlotField] = tuple(SlotField),
    existing: Optional[Dict[str, Any]] = None,
) -> ExtractionResult:
    lower = normalise(text)
    extracted: Dict[str, Any] = {}
    confidence: Dict[str, float] = {}
    for field in fields:
        match = extract_field(field, lower)
        if match is not None:
            extracted[field.value] = match.value
            confidence[field.value] = match.confidence

    found = list(extracted)
    eligibility_phrase = bool(ELIGIBILITY_SIGNAL.search(lower))
    return ExtractionResult(
        extracted=extracted,
        fields_found=found,
        confidence=confidence,
        merged={**(existing or {}), **extracted},
        is_eligibility_query=eligibility_phrase or len(found) >= 3,
        has_domain_signal=eligibility_phrase or bool(LOAN_SIGNAL.search(lower)) or len(found) >= 3,
    )


def extract_eligibility(text: str, existing: Optional[Dict[str, Any]] = None) -> ExtractionResult:
    return extract(text, ELIGIBILITY_FIELDS, existing)


def extract_resilience(text: str, existing: Optional[Dict[str, Any]] = None) -> ExtractionResult:
    return extract(text, RESILIENCE_FIELDS, existing)


def interpret_answer(field: SlotField, text: str) -> Tuple[Any, Optional[FieldError]]:
    """Read one field from a direct answer. Returns (value, None) or (None, error)."""
    lower = normalise(text)
    match = extract_field(field, lower)
    if match is not None:
        return match.value, None

    value = ANSWER_PARSERS[field](lower)
    if value is None:
        low, high = RANGES.get(field, (None, None))
        return None, FieldError("unparsed", low, high, CHOICES.get(field, ()))
    error = validate_slot(field, value)
    if error is not None:
        return None, error
    return value, None

# app/models/domain_models.py
from sqlmodel import SQLModel, Field
from typing import Any, Dict
from datetime import datetime
from enum import Enum
from sqlalchemy import Column
from sqlalchemy import JSON  # cross-db JSON


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class Language(str, Enum):
    EN = "en"
    HI = "hi"
    TA = "ta"

    @classmethod
    def coerce(cls, value) -> "Language":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "en").lower())
        except ValueError:
            return cls.EN


class Intent(str, Enum):
    ELIGIBILITY_CHECK = "eligibility_check"
    EMI_CALCULATION = "emi_calculation"
    CREDIT_SCORE_ADVICE = "credit_score_advice"
    DOCUMENT_REQUIREMENTS = "document_requirements"
    BANK_COMPARISON = "bank_comparison"
    FINANCIAL_PLANNING = "financial_planning"
    FINANCE_QA = "finance_qa"
    GENERAL_CHAT = "general_chat"


class AgentType(str, Enum):
    ELIGIBILITY = "eligibility"
    RESILIENCE = "resilience"
    FINANCE = "finance"
    GENERAL = "general"


class JobType(str, Enum):
    SALARIED = "Salaried"
    SELF_EMPLOYED = "Self-employed"
    BUSINESS = "Business"
    FREELANCE = "Freelance"


class Stability(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RiskCategory(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class Verdict(str, Enum):
    LIKELY_ELIGIBLE = "Likely Eligible"
    BORDERLINE = "Borderline"
    UNLIKELY = "Unlikely"


class ImpactLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class Scenario(str, Enum):
    JOB_LOSS = "job_loss"
    MEDICAL_EMERGENCY = "medical_emergency"
    MARKET_CRASH = "market_crash"
    INFLATION_SURGE = "inflation_surge"
    COMBINED = "combined"


class ConversationRecord(SQLModel, table=True):
    """One row per conversation; the whole session lives in `blob`."""
    session_key: str = Field(primary_key=True)
    blob: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    updated_at: datetime = Field(default_factory=datetime.utcnow)

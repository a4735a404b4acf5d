# app/schemas/profile_schemas.py
from pydantic import BaseModel
from typing import Optional

from app.models.domain_models import JobType, Stability


class EligibilityProfile(BaseModel):
    """A complete (defaulted) eligibility slot set."""
    monthly_income: int
    loan_amount: int
    credit_score: int
    existing_loans: int
    job_type: JobType
    age: int
    loan_tenure: int
    monthly_expenses: int
    existing_emi_amount: int
    employment_stability: Optional[Stability] = None
    dependents: int = 0


class ResilienceProfile(BaseModel):
    monthly_income: int
    monthly_expenses: int
    emergency_savings: int
    existing_debt_monthly: int
    credit_score: int
    employment_stability: Stability
    dependents: int
    financial_goal: str
    investments: int = 0
    property_value: int = 0
    has_insurance: bool = False
    investment_diversification: int = 0  # 0-100

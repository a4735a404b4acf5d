# app/agents/underwriting_agent.py
from typing import Any, Dict, List, Optional, Tuple

from app.agents.extraction_agent import SlotField
from app.models.domain_models import JobType, RiskCategory, Stability, Verdict
from app.models.responses import EligibilityResult, EmiQuote, Recommendation, ScoreFactor
from app.schemas.profile_schemas import EligibilityProfile

ELIGIBILITY_ANNUAL_RATE = 11.0
DEFAULT_EMI_RATE = 9.0
DEFAULT_EMI_TENURE_MONTHS = 60
BURDEN_PER_EXISTING_LOAN = 4000

ELIGIBILITY_DEFAULTS: Dict[SlotField, Any] = {
    SlotField.MONTHLY_INCOME: 30000,
    SlotField.LOAN_AMOUNT: 500000,
    SlotField.CREDIT_SCORE: 650,
    SlotField.EXISTING_LOANS: 0,
    SlotField.JOB_TYPE: JobType.SALARIED.value,
    SlotField.AGE: 30,
    SlotField.LOAN_TENURE: 60,
    SlotField.EMPLOYMENT_STABILITY: Stability.MEDIUM.value,
    SlotField.DEPENDENTS: 0,
}


def calculate_emi(principal: float, annual_rate: float, tenure_months: int) -> int:
    """Reducing-balance EMI: P·r·(1+r)^n / ((1+r)^n − 1), rounded to the rupee."""
    if tenure_months <= 0:
        return 0
    r = annual_rate / 12 / 100
    if r == 0:
        return round(principal / tenure_months)
    growth = (1 + r) ** tenure_months
    return round(principal * r * growth / (growth - 1))


def quote_emi(principal: int, annual_rate: Optional[float] = None, tenure_months: Optional[int] = None) -> EmiQuote:
    rate = DEFAULT_EMI_RATE if annual_rate is None else annual_rate
    tenure = tenure_months or DEFAULT_EMI_TENURE_MONTHS
    emi = calculate_emi(principal, rate, tenure)
    total = emi * tenure
    return EmiQuote(
        principal=principal,
        annual_rate=rate,
        tenure_months=tenure,
        emi=emi,
        total_payable=total,
        total_interest=total - principal,
    )


def build_eligibility_profile(slots: Dict[str, Any]) -> EligibilityProfile:
    """Fill missing fields with their documented fallbacks."""
    values = {field.value: slots.get(field.value, default) for field, default in ELIGIBILITY_DEFAULTS.items()}
    income = values["monthly_income"]
    loans = values["existing_loans"]
    values["monthly_expenses"] = slots.get("monthly_expenses", round(income * 0.5))
    values["existing_emi_amount"] = slots.get("existing_emi_amount", loans * BURDEN_PER_EXISTING_LOAN)
    return EligibilityProfile(**values)


# -----------------------------
# Bucketed weights
# -----------------------------

def credit_points(score: int) -> int:
    if score >= 750:
        return 18
    if score >= 700:
        return 12
    if score >= 650:
        return 6
    return -10


def dti_points(dti: int) -> int:
    if dti <= 35:
        return 15
    if dti <= 45:
        return 8
    if dti <= 55:
        return 0
    return -12


def income_points(income: int) -> int:
    if income >= 100000:
        return 10
    if income >= 50000:
        return 6
    if income >= 25000:
        return 2
    return -8


def expense_points(ratio: float) -> int:
    if ratio <= 0.5:
        return 6
    if ratio <= 0.7:
        return 2
    if ratio >= 0.85:
        return -6
    return 0


def surplus_points(surplus: int, income: int) -> int:
    if surplus < 0:
        return -12
    if surplus < income * 0.1:
        return -4
    return 4


def loan_to_income_points(lti: float) -> int:
    if lti > 8:
        return -8
    if lti > 6:
        return -4
    if lti > 0:
        return 2
    return 0


STABILITY_POINTS = {Stability.HIGH: 6, Stability.MEDIUM: 2, Stability.LOW: -6}


def dependents_points(dependents: int) -> int:
    if dependents >= 4:
        return -6
    if dependents >= 2:
        return -2
    return 0


def risk_band(probability: int) -> RiskCategory:
    if probability >= 75:
        return RiskCategory.LOW
    if probability >= 55:
        return RiskCategory.MEDIUM
    return RiskCategory.HIGH


def verdict_for(probability: int, dti: int, surplus: int) -> Verdict:
    if probability >= 70 and dti <= 45 and surplus >= 0:
        return Verdict.LIKELY_ELIGIBLE
    if probability >= 55 and dti <= 55:
        return Verdict.BORDERLINE
    return Verdict.UNLIKELY


def _recommendations(p: EligibilityProfile, dti: int, surplus: int, lti: float) -> List[Recommendation]:
    # impact = points recovered by reaching the next comfortable bucket
    candidates: List[Tuple[bool, str, int]] = [
        (p.credit_score < 700, "Improve CIBIL above 700 for better approval odds and rates.",
         credit_points(700) - credit_points(p.credit_score)),
        (dti > 45, "Reduce obligations or choose longer tenure to keep DTI under 40-45%.",
         dti_points(45) - dti_points(dti)),
        (surplus < 0, "Increase monthly surplus by cutting expenses or increasing income.",
         surplus_points(1, 0) - surplus_points(surplus, p.monthly_income)),
        (p.employment_stability is Stability.LOW, "Show stable income proofs or add a co-applicant.",
         STABILITY_POINTS[Stability.MEDIUM] - STABILITY_POINTS[Stability.LOW]),
        (p.existing_loans > 1, "Consider closing small active loans before applying.", 4),
        (p.monthly_income < 30000, "Add co-applicant or show stable secondary income.",
         income_points(50000) - income_points(p.monthly_income)),
        (lti > 6, "Consider a smaller loan amount relative to your annual income.",
         loan_to_income_points(1) - loan_to_income_points(lti)),
    ]
    picked = [Recommendation(action=action, impact=impact) for applies, action, impact in candidates if applies]
    return sorted(picked, key=lambda r: -r.impact)


def _risk_factors(p: EligibilityProfile, dti: int, surplus: int, lti: float) -> List[str]:
    factors = []
    if p.credit_score < 650:
        factors.append("Credit score below 650")
    if dti > 45:
        factors.append(f"High debt-to-income ratio ({dti}%)")
    if surplus < 0:
        factors.append("Monthly obligations exceed income")
    if p.existing_loans > 2:
        factors.append(f"{p.existing_loans} active loans")
    if lti > 6:
        factors.append(f"Loan is {lti:.1f}x annual income")
    if p.employment_stability is Stability.LOW:
        factors.append("Low income stability")
    if p.age < 23 or p.age > 58:
        factors.append("Age outside the preferred lending band")
    return factors


def score_eligibility(profile: EligibilityProfile, annual_rate: float = ELIGIBILITY_ANNUAL_RATE) -> EligibilityResult:
    income = profile.monthly_income
    emi = calculate_emi(profile.loan_amount, annual_rate, profile.loan_tenure)
    burden = profile.existing_emi_amount
    dti = round((emi + burden) / income * 100) if income > 0 else 100
    surplus = income - profile.monthly_expenses - burden - emi
    expense_ratio = profile.monthly_expenses / income if income > 0 else 1.0
    lti = profile.loan_amount / (income * 12) if income > 0 else 0.0

    breakdown = [
        ScoreFactor(factor="credit_score", points=credit_points(profile.credit_score)),
        ScoreFactor(factor="dti", points=dti_points(dti)),
        ScoreFactor(factor="income", points=income_points(income)),
        ScoreFactor(factor="job_type", points=5 if profile.job_type is JobType.SALARIED else 0),
        ScoreFactor(factor="existing_loans", points=4 if profile.existing_loans == 0 else 0),
        ScoreFactor(factor="age", points=-3 if profile.age < 23 or profile.age > 58 else 0),
        ScoreFactor(factor="expense_ratio", points=expense_points(expense_ratio)),
        ScoreFactor(factor="surplus", points=surplus_points(surplus, income)),
        ScoreFactor(factor="loan_to_income", points=loan_to_income_points(lti)),
        ScoreFactor(factor="employment_stability", points=STABILITY_POINTS.get(profile.employment_stability, 0)),
        ScoreFactor(factor="dependents", points=dependents_points(profile.dependents)),
    ]
    raw = 50 + sum(f.points for f in breakdown)
    probability = max(8, min(95, raw))

    return EligibilityResult(
        probability=probability,
        risk_category=risk_band(probability),
        verdict=verdict_for(probability, dti, surplus),
        emi=emi,
        dti=dti,
        surplus=surplus,
        expense_ratio=round(expense_ratio, 3),
        loan_to_income=round(lti, 2),
        breakdown=breakdown,
        risk_factors=_risk_factors(profile, dti, surplus, lti),
        recommendations=_recommendations(profile, dti, surplus, lti),
    )

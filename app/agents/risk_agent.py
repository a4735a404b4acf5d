# app/agents/risk_agent.py
import math
from typing import Any, Dict, List

from app.agents.extraction_agent import SlotField
from app.models.domain_models import ImpactLevel, RiskCategory, Scenario, Stability
from app.models.responses import ResilienceResult, ScenarioResult
from app.schemas.profile_schemas import ResilienceProfile

RESILIENCE_DEFAULTS: Dict[SlotField, Any] = {
    SlotField.CREDIT_SCORE: 650,
    SlotField.EMPLOYMENT_STABILITY: Stability.MEDIUM.value,
    SlotField.DEPENDENTS: 0,
    SlotField.FINANCIAL_GOAL: "Financial resilience check",
    SlotField.INVESTMENTS: 0,
    SlotField.HAS_INSURANCE: False,
}

STABILITY_BONUS = {Stability.HIGH: 15, Stability.MEDIUM: 10, Stability.LOW: 5}

AFFECTED_ASSETS = {
    Scenario.JOB_LOSS: ["Monthly Income", "Emergency Fund"],
    Scenario.MEDICAL_EMERGENCY: ["Emergency Fund", "Savings"],
    Scenario.MARKET_CRASH: ["Investments", "Net Worth"],
    Scenario.INFLATION_SURGE: ["Purchasing Power", "Savings"],
    Scenario.COMBINED: ["Income", "Emergency Fund", "Investments"],
}

RECOVERY_PLANS = {
    Scenario.JOB_LOSS: [
        "Immediately cut discretionary spending by 30-40%",
        "Activate emergency fund for essential expenses only",
        "Update resume and activate professional network",
        "Consider freelance or part-time work for income bridge",
        "Contact lenders to discuss EMI moratorium if needed",
    ],
    Scenario.MEDICAL_EMERGENCY: [
        "Use health insurance coverage first",
        "Negotiate hospital payment plans",
        "Access emergency fund for out-of-pocket costs",
        "Apply for employer medical assistance programs",
        "Consider medical loan as last resort",
    ],
    Scenario.MARKET_CRASH: [
        "Avoid panic selling - markets typically recover",
        "Continue SIPs to benefit from rupee cost averaging",
        "Rebalance portfolio if asset allocation drifts significantly",
        "Keep emergency fund separate from market investments",
        "Review and adjust investment horizon if needed",
    ],
    Scenario.INFLATION_SURGE: [
        "Review and reduce non-essential subscriptions",
        "Switch to value brands for daily necessities",
        "Negotiate salary increment based on inflation",
        "Invest in inflation-protected assets",
        "Build additional income streams",
    ],
    Scenario.COMBINED: [
        "Enter survival mode: only essential expenses",
        "Liquidate non-essential assets if needed",
        "Seek family support or community assistance",
        "Apply for government relief schemes",
        "Consider debt restructuring with lenders",
    ],
}


def build_resilience_profile(slots: Dict[str, Any]) -> ResilienceProfile:
    values = {field.value: slots.get(field.value, default) for field, default in RESILIENCE_DEFAULTS.items()}
    for field in (SlotField.MONTHLY_INCOME, SlotField.MONTHLY_EXPENSES,
                  SlotField.EMERGENCY_SAVINGS, SlotField.EXISTING_DEBT_MONTHLY):
        values[field.value] = slots.get(field.value, 0)
    return ResilienceProfile(**values)


def emergency_months(p: ResilienceProfile) -> float:
    return p.emergency_savings / p.monthly_expenses if p.monthly_expenses > 0 else 0.0


def debt_to_income(p: ResilienceProfile) -> float:
    return p.existing_debt_monthly / p.monthly_income * 100 if p.monthly_income > 0 else 100.0


def calculate_resilience_score(p: ResilienceProfile) -> int:
    score = 50.0

    months = emergency_months(p)
    if months >= 12:
        score += 20
    elif months >= 6:
        score += 15
    elif months >= 3:
        score += 10
    elif months >= 1:
        score += 5

    dti = debt_to_income(p)
    if dti <= 30:
        score += 20
    elif dti <= 40:
        score += 15
    elif dti <= 50:
        score += 10
    elif dti <= 60:
        score += 5

    score += STABILITY_BONUS[p.employment_stability]

    if p.credit_score >= 750:
        score += 15
    elif p.credit_score >= 700:
        score += 12
    elif p.credit_score >= 650:
        score += 8
    elif p.credit_score >= 600:
        score += 4

    score += p.investment_diversification / 100 * 15

    if p.has_insurance:
        score += 15
    elif p.dependents > 0:
        score -= 5

    return max(0, min(100, round(score)))


def impact_for(months: int) -> ImpactLevel:
    if months >= 12:
        return ImpactLevel.LOW
    if months >= 6:
        return ImpactLevel.MEDIUM
    if months >= 2:
        return ImpactLevel.HIGH
    return ImpactLevel.CRITICAL


def simulate_stress_test(p: ResilienceProfile, scenario: Scenario) -> ScenarioResult:
    remaining = p.emergency_savings + p.investments * 0.8 + p.property_value * 0.3
    obligation = float(p.monthly_expenses + p.existing_debt_monthly)

    if scenario is Scenario.JOB_LOSS:
        obligation = p.monthly_expenses * 1.1 + p.existing_debt_monthly
    elif scenario is Scenario.MEDICAL_EMERGENCY:
        remaining *= 0.7
        obligation += p.monthly_expenses * 0.15
    elif scenario is Scenario.MARKET_CRASH:
        remaining -= p.investments * 0.4
        obligation *= 1.05
    elif scenario is Scenario.INFLATION_SURGE:
        obligation *= 1.2
    elif scenario is Scenario.COMBINED:
        remaining = p.emergency_savings * 0.5 + p.investments * 0.3
        obligation = p.monthly_expenses * 1.35 + p.existing_debt_monthly

    survival = math.floor(remaining / obligation) if obligation > 0 else 0
    survival = max(0, survival)
    return ScenarioResult(
        scenario=scenario,
        survival_months=survival,
        impact_level=impact_for(survival),
        affected_assets=AFFECTED_ASSETS[scenario],
        recovery_months=math.ceil(survival * 1.5),
    )


def identify_risk_factors(p: ResilienceProfile) -> List[str]:
    factors = []
    months = emergency_months(p)
    if months < 3:
        factors.append(f"Low emergency fund ({months:.1f} months coverage)")
    dti = debt_to_income(p)
    if dti > 40:
        factors.append(f"High debt-to-income ratio ({dti:.0f}%)")
    if p.employment_stability is Stability.LOW:
        factors.append("Unstable employment situation")
    if not p.has_insurance and p.dependents > 0:
        factors.append("No insurance coverage with dependents")
    if p.investment_diversification < 30:
        factors.append("Low investment diversification")
    if p.credit_score < 650:
        factors.append("Below-average credit score")
    return factors


def identify_strengths(p: ResilienceProfile) -> List[str]:
    strengths = []
    months = emergency_months(p)
    if months >= 6:
        strengths.append(f"Strong emergency fund ({months:.1f} months)")
    if debt_to_income(p) < 30:
        strengths.append("Healthy debt-to-income ratio")
    if p.employment_stability is Stability.HIGH:
        strengths.append("Stable employment")
    if p.has_insurance:
        strengths.append("Adequate insurance coverage")
    if p.investment_diversification >= 60:
        strengths.append("Well-diversified investments")
    if p.credit_score >= 750:
        strengths.append("Excellent credit score")
    return strengths


def resilience_category(score: int) -> RiskCategory:
    if score >= 75:
        return RiskCategory.LOW
    if score >= 50:
        return RiskCategory.MEDIUM
    return RiskCategory.HIGH


def assess_resilience(p: ResilienceProfile) -> ResilienceResult:
    scenarios = [simulate_stress_test(p, s) for s in Scenario]
    # worst case dominates; ties keep scenario declaration order
    worst = min(scenarios, key=lambda r: r.survival_months)
    score = calculate_resilience_score(p)
    return ResilienceResult(
        score=score,
        risk_category=resilience_category(score),
        survival_months=worst.survival_months,
        worst_scenario=worst.scenario,
        emergency_months=round(emergency_months(p), 1),
        dti=round(debt_to_income(p), 1),
        scenarios=scenarios,
        risk_factors=identify_risk_factors(p),
        strengths=identify_strengths(p),
        recovery_plan=RECOVERY_PLANS[worst.scenario],
    )

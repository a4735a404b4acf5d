from app.agents.risk_agent import (
    RECOVERY_PLANS,
    assess_resilience,
    build_resilience_profile,
    calculate_resilience_score,
    debt_to_income,
)
from app.agents.underwriting_agent import (
    build_eligibility_profile,
    calculate_emi,
    quote_emi,
    score_eligibility,
)
from app.models.domain_models import ImpactLevel, JobType, RiskCategory, Scenario, Verdict


def strong_applicant():
    return {
        "monthly_income": 50000,
        "loan_amount": 300000,
        "credit_score": 720,
        "existing_loans": 0,
        "job_type": "Salaried",
        "age": 28,
        "loan_tenure": 36,
    }


def test_calculate_emi():
    assert abs(calculate_emi(300000, 11, 36) - 9822) <= 2
    assert calculate_emi(120000, 0, 12) == 10000
    assert calculate_emi(100000, 10, 0) == 0


def test_quote_emi_defaults_and_totals():
    quote = quote_emi(500000)
    assert quote.annual_rate == 9.0
    assert quote.tenure_months == 60
    assert quote.total_payable == quote.emi * 60
    assert quote.total_interest == quote.total_payable - 500000


def test_profile_defaults():
    profile = build_eligibility_profile({})
    assert profile.monthly_income == 30000
    assert profile.monthly_expenses == 15000
    assert profile.job_type is JobType.SALARIED

    with_loans = build_eligibility_profile({"existing_loans": 2})
    assert with_loans.existing_emi_amount == 8000


def test_strong_applicant_is_likely_eligible():
    result = score_eligibility(build_eligibility_profile(strong_applicant()))

    assert result.probability == 95
    assert result.risk_category is RiskCategory.LOW
    assert result.verdict is Verdict.LIKELY_ELIGIBLE
    assert result.dti == 20
    assert abs(result.emi - 9822) <= 2
    assert result.surplus > 0
    assert result.risk_factors == []


def test_weak_applicant_is_unlikely():
    slots = {
        "monthly_income": 20000,
        "loan_amount": 1000000,
        "credit_score": 600,
        "existing_loans": 3,
        "job_type": "Freelance",
        "age": 25,
        "loan_tenure": 36,
    }
    result = score_eligibility(build_eligibility_profile(slots))

    assert 8 <= result.probability < 55
    assert result.risk_category is RiskCategory.HIGH
    assert result.verdict is Verdict.UNLIKELY
    assert "Monthly obligations exceed income" in result.risk_factors
    impacts = [r.impact for r in result.recommendations]
    assert impacts == sorted(impacts, reverse=True)
    assert result.recommendations


def test_breakdown_adds_up():
    result = score_eligibility(build_eligibility_profile({"credit_score": 640, "monthly_income": 40000}))
    raw = 50 + sum(f.points for f in result.breakdown)
    assert result.probability == max(8, min(95, raw))


def resilient_household():
    return build_resilience_profile({
        "monthly_income": 60000,
        "monthly_expenses": 30000,
        "emergency_savings": 180000,
        "existing_debt_monthly": 6000,
        "credit_score": 760,
        "employment_stability": "High",
        "dependents": 1,
        "financial_goal": "Home loan",
        "has_insurance": True,
    })


def test_resilience_score_is_clamped():
    assert calculate_resilience_score(resilient_household()) == 100


def test_worst_scenario_drives_survival():
    result = assess_resilience(resilient_household())

    assert len(result.scenarios) == len(Scenario)
    assert result.survival_months == min(s.survival_months for s in result.scenarios)
    assert result.worst_scenario is Scenario.COMBINED
    assert result.recovery_plan == RECOVERY_PLANS[Scenario.COMBINED]
    assert result.emergency_months == 6.0
    assert "Stable employment" in result.strengths


def test_no_savings_ties_keep_scenario_order():
    profile = build_resilience_profile({
        "monthly_income": 30000,
        "monthly_expenses": 28000,
        "emergency_savings": 0,
        "existing_debt_monthly": 15000,
        "employment_stability": "Low",
        "dependents": 2,
    })
    result = assess_resilience(profile)

    assert result.survival_months == 0
    assert result.worst_scenario is Scenario.JOB_LOSS
    assert all(s.impact_level is ImpactLevel.CRITICAL for s in result.scenarios)
    assert result.score < 75
    assert "No insurance coverage with dependents" in result.risk_factors


def test_calculate_emi_reference_value_and_tenure_effect():
    assert abs(calculate_emi(500000, 9, 60) - 10379) <= 5
    assert calculate_emi(500000, 9, 60) < calculate_emi(500000, 9, 36)


def test_scoring_is_idempotent():
    slots = strong_applicant()
    first = score_eligibility(build_eligibility_profile(slots))
    second = score_eligibility(build_eligibility_profile(slots))
    assert first.model_dump() == second.model_dump()
    assert slots == strong_applicant()

    assert assess_resilience(resilient_household()).model_dump() == assess_resilience(resilient_household()).model_dump()


def test_zero_income_counts_as_full_debt_burden():
    slots = {"monthly_expenses": 20000, "emergency_savings": 0, "existing_debt_monthly": 0}
    no_income = build_resilience_profile(slots)
    earning = build_resilience_profile({**slots, "monthly_income": 50000})

    assert debt_to_income(no_income) == 100.0
    assert calculate_resilience_score(no_income) == 68
    assert calculate_resilience_score(earning) == 88

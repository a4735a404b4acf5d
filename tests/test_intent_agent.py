from app.agents.intent_agent import classify, control_command, emi_terms, is_resilience_request
from app.models.domain_models import Intent


def test_control_commands_match_whole_message_only():
    assert control_command("Exit!") == "exit"
    assert control_command("  cancel ") == "exit"
    assert control_command("start over") == "reset"
    assert control_command("exit the eligibility check please") is None


def test_eligibility_phrasing():
    result = classify("Am I eligible for a loan?")
    assert result.intent is Intent.ELIGIBILITY_CHECK
    assert result.confidence >= 0.9


def test_emi_with_amount_carries_terms():
    result = classify("calculate emi for 5 lakh at 10% for 3 years")
    assert result.intent is Intent.EMI_CALCULATION
    assert result.entities["amount"] == 500000
    assert result.entities["rate"] == 10.0
    assert result.entities["tenure_months"] == 36


def test_gated_topics():
    assert classify("How can I improve my credit score?").intent is Intent.CREDIT_SCORE_ADVICE
    assert classify("What documents are needed for a home loan?").intent is Intent.DOCUMENT_REQUIREMENTS
    assert classify("Which bank is best for a personal loan?").intent is Intent.BANK_COMPARISON


def test_keyword_scan_and_default():
    assert classify("hello").intent is Intent.GENERAL_CHAT
    assert classify("what is collateral").intent is Intent.FINANCE_QA

    fallback = classify("tell me something")
    assert fallback.intent is Intent.FINANCE_QA
    assert fallback.confidence == 0.5


def test_loan_purpose_entity():
    result = classify("I want a home loan of 40 lakh")
    assert result.entities["loan_purpose"] == "home"
    assert 4000000 in result.entities["numbers"]


def test_resilience_trigger():
    assert is_resilience_request("How long can I survive a job loss?")
    assert is_resilience_request("check my financial resilience")
    assert not is_resilience_request("what is a good credit score")


def test_emi_terms_without_rate():
    terms = emi_terms("emi on 8 lakh for 60 months")
    assert terms == {"amount": 800000, "tenure_months": 60}


def test_emi_request_wins_over_eligibility_mention():
    result = classify("I want to check eligibility but also calculate EMI for 50000")
    assert result.intent is Intent.EMI_CALCULATION
    assert result.entities["amount"] == 50000


def test_emi_terms_accept_smallest_loan_amount():
    assert emi_terms("emi for 10000")["amount"] == 10000
    assert "amount" not in emi_terms("emi for 9999")


def test_oversized_number_does_not_break_classification():
    result = classify("emi for " + "9" * 400)
    assert result.intent is Intent.EMI_CALCULATION
    assert "amount" not in result.entities

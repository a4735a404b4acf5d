from app.agents.extraction_agent import (
    SlotField,
    extract,
    extract_resilience,
    interpret_answer,
    parse_indian_number,
    validate_slot,
)


def test_extracts_several_fields_from_one_message():
    result = extract("I earn ₹50,000 per month and need a loan of 5 lakh, my CIBIL is 750, age 30")

    assert result.extracted["monthly_income"] == 50000
    assert result.extracted["loan_amount"] == 500000
    assert result.extracted["credit_score"] == 750
    assert result.extracted["age"] == 30
    assert result.is_eligibility_query
    assert result.has_domain_signal
    assert set(result.fields_found) == set(result.confidence)


def test_merged_keeps_existing_slots():
    result = extract("my salary is 80k", existing={"credit_score": 700})
    assert result.extracted == {"monthly_income": 80000}
    assert result.merged == {"credit_score": 700, "monthly_income": 80000}


def test_zero_loans_and_job_type():
    result = extract("No existing loans and I am salaried")
    assert result.extracted["existing_loans"] == 0
    assert result.extracted["job_type"] == "Salaried"


def test_out_of_range_values_are_not_extracted():
    result = extract("my credit score is 1200")
    assert "credit_score" not in result.extracted


def test_plain_chat_has_no_signal():
    result = extract("hello there")
    assert result.extracted == {}
    assert not result.has_domain_signal
    assert not result.is_eligibility_query


def test_resilience_fields():
    result = extract_resilience("expenses are 30000, savings of 2 lakh and I have health insurance")
    assert result.extracted["monthly_expenses"] == 30000
    assert result.extracted["emergency_savings"] == 200000
    assert result.extracted["has_insurance"] is True


def test_parse_indian_number():
    assert parse_indian_number("₹12,34,567") == 1234567
    assert parse_indian_number("1.5 crore") == 15000000
    assert parse_indian_number("50k") == 50000
    assert parse_indian_number("5 lakhs") == 500000
    assert parse_indian_number("nothing here") is None


def test_interpret_answer_lenient_parsers():
    assert interpret_answer(SlotField.LOAN_TENURE, "5 years") == (60, None)
    assert interpret_answer(SlotField.LOAN_TENURE, "36") == (36, None)
    assert interpret_answer(SlotField.EXISTING_LOANS, "none") == (0, None)
    assert interpret_answer(SlotField.JOB_TYPE, "I am a shopkeeper") == ("Business", None)
    assert interpret_answer(SlotField.HAS_INSURANCE, "yes") == (True, None)
    assert interpret_answer(SlotField.EMPLOYMENT_STABILITY, "pretty stable") == ("High", None)


def test_interpret_answer_range_error():
    value, error = interpret_answer(SlotField.CREDIT_SCORE, "1200")
    assert value is None
    assert error.code == "range"
    assert (error.low, error.high) == (300, 900)


def test_interpret_answer_unparsed_lists_choices():
    value, error = interpret_answer(SlotField.JOB_TYPE, "astronaut")
    assert value is None
    assert error.code == "unparsed"
    assert "Salaried" in error.choices


def test_validate_slot():
    assert validate_slot(SlotField.AGE, 30) is None
    assert validate_slot(SlotField.AGE, 17).code == "range"
    assert validate_slot(SlotField.AGE, "thirty").code == "unparsed"
    assert validate_slot(SlotField.JOB_TYPE, "Pilot").code == "choice"


def test_credit_score_phrasings_across_the_whole_range():
    for score in range(300, 901):
        for message in (f"cibil is {score}", f"{score} credit score", f"score of {score}"):
            assert extract(message).extracted.get("credit_score") == score, message


def test_extraction_is_deterministic():
    messages = [
        "I earn ₹50,000 per month and need a loan of 5 lakh, my CIBIL is 750, age 30",
        "salaried, 2 existing loans with emi of 12k, tenure 5 years",
        "expenses are 30000, savings of 2 lakh and I have health insurance",
        "hello there",
    ]
    for message in messages:
        first = extract(message, existing={"age": 41})
        for _ in range(3):
            assert extract(message, existing={"age": 41}).model_dump() == first.model_dump()


def test_oversized_numbers_are_ignored():
    huge = "9" * 400
    assert extract("my income is " + huge).extracted == {}
    assert parse_indian_number(huge) is None
    assert interpret_answer(SlotField.MONTHLY_INCOME, huge)[0] is None
    assert interpret_answer(SlotField.LOAN_TENURE, huge + " months")[0] is None

import json
import random

from smartwallet.ai import (
    CANNED_TIPS,
    FAILED_ANSWER,
    FinancialAdvisor,
    fallback_budget_plan,
    fallback_receipt,
    fallback_spending_analysis,
    strip_fences,
)

from conftest import FakeGemini

GOOD_ANALYSIS = {
    "financialScore": 64,
    "insights": [{"type": "info", "title": "Dining", "message": "Dining is steady."}],
    "recommendations": ["Cook at home twice a week"],
    "spendingTrends": [{"category": "Food & Dining", "trend": "up", "percentage": 4.5}],
}


def test_malformed_json_falls_back():
    advisor = FinancialAdvisor(client=FakeGemini(text="Sure! Here is your analysis: it looks fine."))

    result = advisor.analyze_spending([{"merchant": "Starbucks", "amount": 4.5}])

    assert result == fallback_spending_analysis()


def test_schema_violation_falls_back():
    bad = dict(GOOD_ANALYSIS, financialScore=450)
    advisor = FinancialAdvisor(client=FakeGemini(text=json.dumps(bad)))

    assert advisor.analyze_spending([]) == fallback_spending_analysis()


def test_partial_payload_falls_back():
    partial = {"financialScore": 70, "insights": []}
    advisor = FinancialAdvisor(client=FakeGemini(text=json.dumps(partial)))

    assert advisor.analyze_spending([]) == fallback_spending_analysis()


def test_valid_fenced_json_is_parsed():
    text = "```json\n" + json.dumps(GOOD_ANALYSIS) + "\n```"
    client = FakeGemini(text=text)
    advisor = FinancialAdvisor(client=client)

    result = advisor.analyze_spending([{"merchant": "Shell"}], context={"weather": {"condition": "Rain"}})

    assert result.financial_score == 64
    assert result.spending_trends[0].trend == "up"
    assert "Shell" in client.prompts[0]
    assert "Rain" in client.prompts[0]
    assert client.prompts[0].startswith("Return ONLY a valid JSON object")


def test_client_error_falls_back():
    advisor = FinancialAdvisor(client=FakeGemini(error=RuntimeError("quota exceeded")))

    assert advisor.process_receipt("TOTAL 12.00") == fallback_receipt()
    assert advisor.budget_recommendations(5000, []) == fallback_budget_plan()


def test_empty_text_falls_back():
    advisor = FinancialAdvisor(client=FakeGemini(text="   "))
    assert advisor.budget_recommendations(5000, []) == fallback_budget_plan()


def test_receipt_parsed():
    payload = {
        "merchant": "Corner Shop",
        "date": "2026-10-18",
        "total": 11.0,
        "tax": 1.0,
        "subtotal": 10.0,
        "items": [{"name": "Bread", "price": 10.0, "category": "Groceries"}],
        "paymentMethod": "Cash",
        "confidence": 90,
    }
    advisor = FinancialAdvisor(client=FakeGemini(text=json.dumps(payload)))

    r = advisor.process_receipt("Corner Shop ... Bread 10.00")

    assert r.merchant == "Corner Shop"
    assert r.payment_method == "Cash"
    assert r.model_dump(by_alias=True)["paymentMethod"] == "Cash"


def test_no_key_uses_mock_mode():
    advisor = FinancialAdvisor(api_key="", rng=random.Random(3))

    assert advisor.enabled is False
    assert advisor.analyze_spending([]) == fallback_spending_analysis()
    assert advisor.answer("Should I save more?", {}) in CANNED_TIPS


def test_answer_is_deterministic_with_seed():
    a = FinancialAdvisor(rng=random.Random(9)).answer("q", {})
    b = FinancialAdvisor(rng=random.Random(9)).answer("q", {})
    assert a == b


def test_answer_passes_through_free_text():
    client = FakeGemini(text="Build a 3-month emergency fund first.")
    advisor = FinancialAdvisor(client=client)

    out = advisor.answer("What first?", {"income": 4000})

    assert out == "Build a 3-month emergency fund first."
    assert '"income": 4000' in client.prompts[0]


def test_answer_failure_message():
    advisor = FinancialAdvisor(client=FakeGemini(error=ConnectionError("down")))
    assert advisor.answer("q", {}) == FAILED_ANSWER


def test_strip_fences():
    assert strip_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_fences('{"a": 1}') == '{"a": 1}'

# ai.py - Gemini financial advisor with schema-checked fallbacks
from __future__ import annotations

import json
import logging
import random
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar

from google import genai
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger("smartwallet.ai")


class _Camel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Insight(_Camel):
    type: Literal["warning", "success", "info"]
    title: str
    message: str


class SpendingTrend(_Camel):
    category: str
    trend: Literal["up", "down", "stable"]
    percentage: float


class SpendingAnalysis(_Camel):
    financial_score: int = Field(..., ge=1, le=100)
    insights: List[Insight]
    recommendations: List[str]
    spending_trends: List[SpendingTrend]


class ReceiptItem(_Camel):
    name: str
    price: float
    category: str


class ReceiptData(_Camel):
    merchant: str
    date: str
    total: float
    tax: float
    subtotal: float
    items: List[ReceiptItem]
    payment_method: str
    confidence: int = Field(..., ge=1, le=100)


class BudgetLine(_Camel):
    category: str
    suggested: float
    current: float
    reasoning: str


class BudgetPlan(_Camel):
    recommendations: List[BudgetLine]
    savings_goal: float
    emergency_fund: float
    overall_advice: str


M = TypeVar("M", bound=BaseModel)

FAILED_ANSWER = "I'm having trouble processing your question right now. Please try again later."

CANNED_TIPS = [
    "Based on current market conditions and your spending patterns, I'd recommend focusing on building your "
    "emergency fund to 6 months of expenses. Recent market volatility suggests keeping higher cash reserves for now.",
    "Looking at the weather forecast and your transportation spending, consider getting a monthly transit pass. "
    "With the rainy season approaching, this could save you $50-75 monthly on ride-sharing costs.",
    "Given the current economic climate and your investment goals, I suggest a balanced approach: 60% stocks, "
    "30% bonds, and 10% cash. This provides growth potential while managing risk during uncertain times.",
    "Your coffee spending has increased 40% this month, likely due to colder weather. Consider investing in a "
    "good coffee maker - it could save you $100+ monthly while still enjoying quality coffee at home.",
    "With inflation concerns and your current budget, focus on fixed-rate debt payments and consider I-bonds for "
    "inflation protection. Your emergency fund should be prioritized over aggressive investing right now.",
]


def fallback_spending_analysis() -> SpendingAnalysis:
    return SpendingAnalysis(
        financial_score=78,
        insights=[
            Insight(type="warning", title="Coffee Spending Alert",
                    message="You've spent 40% more on coffee this month compared to your average."),
            Insight(type="success", title="Great Savings Progress",
                    message="You're on track to save $200 extra this month!"),
        ],
        recommendations=[
            "Consider setting a weekly coffee budget of $25",
            "Look into meal planning to reduce food expenses",
            "Review subscription services for potential savings",
        ],
        spending_trends=[
            SpendingTrend(category="Food & Dining", trend="up", percentage=15),
            SpendingTrend(category="Transportation", trend="down", percentage=-8),
            SpendingTrend(category="Shopping", trend="stable", percentage=2),
        ],
    )


def fallback_receipt() -> ReceiptData:
    return ReceiptData(
        merchant="Target Store #1234",
        date=date.today().isoformat(),
        total=69.95,
        tax=5.95,
        subtotal=64.00,
        items=[
            ReceiptItem(name="Organic Milk", price=3.99, category="Groceries"),
            ReceiptItem(name="Bread", price=2.00, category="Groceries"),
            ReceiptItem(name="Coffee Pods", price=10.39, category="Groceries"),
        ],
        payment_method="Credit Card ending in 4521",
        confidence=85,
    )


def fallback_budget_plan() -> BudgetPlan:
    return BudgetPlan(
        recommendations=[
            BudgetLine(category="Food & Dining", suggested=480, current=680,
                       reasoning="Consider reducing dining out frequency to meet savings goals"),
        ],
        savings_goal=400,
        emergency_fund=800,
        overall_advice="Focus on reducing discretionary spending to improve your financial health.",
    )


def strip_fences(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.strip("`")
        if text.lower().startswith("json"):
            text = text[text.find("\n") + 1:]
    return text.strip()


class FinancialAdvisor:
    """Gemini-backed commentary. Structured answers are validated against
    pydantic schemas; anything that does not validate yields the fallback
    payload instead of partial data.
    """

    def __init__(
        self,
        api_key: str = "",
        model: str = "gemini-2.0-flash",
        client: Any = None,
        rng: Optional[random.Random] = None,
    ):
        self.model = model
        self.rng = rng or random.Random()
        self.client = client
        if self.client is None and api_key:
            self.client = genai.Client(api_key=api_key)
        if self.client is None:
            logger.warning("GEMINI_API_KEY not set; AI features use mock responses")

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _generate(self, prompt: str) -> str:
        resp = self.client.models.generate_content(model=self.model, contents=prompt)
        text = (getattr(resp, "text", None) or "").strip()
        if not text:
            raise RuntimeError(f"Model '{self.model}' returned empty text")
        return text

    def _structured(self, prompt: str, schema: Type[M], fallback: M) -> M:
        if not self.enabled:
            return fallback
        prompt = "Return ONLY a valid JSON object. No prose, no code fences.\n\n" + prompt
        try:
            text = self._generate(prompt)
        except Exception as e:
            logger.error("Gemini call failed for %s: %s", schema.__name__, e)
            return fallback
        try:
            return schema.model_validate_json(strip_fences(text))
        except ValidationError as e:
            logger.warning("Gemini returned invalid %s (%d errors); using fallback",
                           schema.__name__, e.error_count())
            return fallback

    def analyze_spending(self, transactions: List[dict], context: Optional[Dict[str, Any]] = None) -> SpendingAnalysis:
        prompt = (
            "Analyze the following financial transactions and provide insights.\n"
            f"Transactions: {json.dumps(transactions, indent=2, default=str)}\n"
        )
        if context:
            prompt += f"Additional context (weather, market): {json.dumps(context, indent=2, default=str)}\n"
        prompt += (
            "Provide spending patterns, budget recommendations, savings areas, a financial health "
            "score (1-100) and personalized advice, as JSON:\n"
            '{"financialScore": number, '
            '"insights": [{"type": "warning|success|info", "title": string, "message": string}], '
            '"recommendations": [string], '
            '"spendingTrends": [{"category": string, "trend": "up|down|stable", "percentage": number}]}'
        )
        return self._structured(prompt, SpendingAnalysis, fallback_spending_analysis())

    def process_receipt(self, ocr_text: str) -> ReceiptData:
        prompt = (
            f'Extract structured data from this receipt text:\n"{ocr_text}"\n'
            "Return JSON with this structure:\n"
            '{"merchant": string, "date": "YYYY-MM-DD", "total": number, "tax": number, '
            '"subtotal": number, "items": [{"name": string, "price": number, "category": string}], '
            '"paymentMethod": string, "confidence": number (1-100)}\n'
            "Categorize items into: Groceries, Electronics, Clothing, Healthcare, Entertainment, "
            "Transportation, Utilities, Other"
        )
        return self._structured(prompt, ReceiptData, fallback_receipt())

    def budget_recommendations(self, income: float, expenses: List[dict]) -> BudgetPlan:
        prompt = (
            f"Based on monthly income of {income} and these expense categories:\n"
            f"{json.dumps(expenses, indent=2, default=str)}\n"
            "Provide budget recommendations as JSON:\n"
            '{"recommendations": [{"category": string, "suggested": number, "current": number, '
            '"reasoning": string}], "savingsGoal": number, "emergencyFund": number, "overallAdvice": string}'
        )
        return self._structured(prompt, BudgetPlan, fallback_budget_plan())

    def answer(self, query: str, user_context: Dict[str, Any]) -> str:
        if not self.enabled:
            return self.rng.choice(CANNED_TIPS)
        prompt = (
            "You are a financial advisor AI. Answer this question based on the user's financial context:\n"
            f'Question: "{query}"\n'
            f"User Context:\n{json.dumps(user_context, indent=2, default=str)}\n"
            "Provide a helpful, personalized response focusing on actionable financial advice. "
            "Keep the response conversational and under 200 words."
        )
        try:
            return self._generate(prompt)
        except Exception as e:
            logger.error("Gemini query failed: %s", e)
            return FAILED_ANSWER

from typing import Dict, List, Optional

from pydantic import BaseModel


class Investment(BaseModel):
    id: str
    symbol: str
    name: str
    shares: float
    current_price: float
    purchase_price: float
    purchase_date: str
    current_value: float
    gain_loss: float
    gain_loss_percentage: float
    dividend_yield: Optional[float] = None


class Portfolio(BaseModel):
    total_value: float
    total_gain_loss: float
    total_gain_loss_percentage: float
    investments: List[Investment]
    asset_allocation: Dict[str, float]


class PortfolioInsights(BaseModel):
    risk_score: int
    diversification_score: int
    recommendations: List[str]
    next_actions: List[str]


_HOLDINGS = [
    ("1", "AAPL", "Apple Inc.", 10, 175.50, 150.00, "2023-06-15", 0.5),
    ("2", "GOOGL", "Alphabet Inc.", 5, 140.25, 120.00, "2023-08-20", None),
    ("3", "TSLA", "Tesla Inc.", 8, 245.80, 280.00, "2023-09-10", None),
    ("4", "VTI", "Vanguard Total Stock Market ETF", 25, 220.15, 200.00, "2023-07-01", 1.8),
]


def _holding(id_, symbol, name, shares, price, cost, bought, dividend) -> Investment:
    value = round(shares * price, 2)
    gain = round(value - shares * cost, 2)
    return Investment(
        id=id_,
        symbol=symbol,
        name=name,
        shares=shares,
        current_price=price,
        purchase_price=cost,
        purchase_date=bought,
        current_value=value,
        gain_loss=gain,
        gain_loss_percentage=round(gain / (shares * cost) * 100, 1),
        dividend_yield=dividend,
    )


class InvestmentService:
    def portfolio(self, user_id: str) -> Portfolio:
        holdings = [_holding(*h) for h in _HOLDINGS]
        total_value = sum(h.current_value for h in holdings)
        total_gain = sum(h.gain_loss for h in holdings)
        cost = total_value - total_gain
        return Portfolio(
            total_value=round(total_value, 2),
            total_gain_loss=round(total_gain, 2),
            total_gain_loss_percentage=round(total_gain / cost * 100, 2) if cost else 0.0,
            investments=holdings,
            asset_allocation={"stocks": 75, "bonds": 15, "cash": 8, "crypto": 2},
        )

    def insights(self, portfolio: Portfolio) -> PortfolioInsights:
        return PortfolioInsights(
            risk_score=65,
            diversification_score=78,
            recommendations=[
                "Consider rebalancing your portfolio to reduce Tesla exposure",
                "Your tech allocation is high - consider adding some defensive stocks",
                "Great job with the VTI ETF for broad market exposure",
            ],
            next_actions=[
                "Review quarterly earnings for AAPL",
                "Consider tax-loss harvesting with TSLA",
                "Increase bond allocation for better risk management",
            ],
        )

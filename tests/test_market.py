import random

import pytest

from smartwallet.currency import CurrencyService, UnsupportedCurrency, format_currency, format_indian
from smartwallet.news import NewsService, analyze_sentiment
from smartwallet.stocks import StockService
from smartwallet.weather import Forecast, Weather, WeatherService, spending_insights

from conftest import FakeResponse, FakeSession


class Clock:
    def __init__(self, t=1_000_000.0):
        self.t = t

    def __call__(self):
        return self.t


# Currency

def test_fallback_rates_are_seeded():
    a = CurrencyService(session=FakeSession(), rng=random.Random(7)).get_rates()
    b = CurrencyService(session=FakeSession(), rng=random.Random(7)).get_rates()
    assert a == b
    assert a["USD"] == 1.0
    assert a["INR"] == pytest.approx(83.0, rel=0.021)


def test_convert_with_live_rates():
    session = FakeSession(FakeResponse({"rates": {"USD": 1, "EUR": 0.5, "GBP": 0.25}}))
    svc = CurrencyService(session=session)

    c = svc.convert(10, "USD", "EUR")
    assert c.converted_amount == 5.0
    assert c.rate == 0.5

    c = svc.convert(10, "EUR", "GBP")
    assert c.converted_amount == 5.0


def test_rates_are_cached_for_an_hour():
    clock = Clock()
    session = FakeSession(FakeResponse({"rates": {"USD": 1, "EUR": 0.9}}),
                          FakeResponse({"rates": {"USD": 1, "EUR": 0.8}}))
    svc = CurrencyService(session=session, clock=clock)

    assert svc.get_rates()["EUR"] == 0.9
    clock.t += 59 * 60
    assert svc.get_rates()["EUR"] == 0.9
    assert len(session.calls) == 1
    clock.t += 2 * 60
    assert svc.get_rates()["EUR"] == 0.8


def test_bad_status_uses_fallback():
    svc = CurrencyService(session=FakeSession(FakeResponse({}, status_code=503)), rng=random.Random(1))
    assert set(svc.get_rates()) >= {"USD", "EUR", "JPY"}


def test_rates_are_cached_per_base():
    session = FakeSession(FakeResponse({"rates": {"USD": 1, "EUR": 0.9}}),
                          FakeResponse({"rates": {"EUR": 1, "USD": 1.11}}))
    svc = CurrencyService(session=session, clock=Clock())

    assert svc.get_rates("USD")["EUR"] == 0.9
    eur = svc.get_rates("eur")

    assert eur == {"EUR": 1.0, "USD": 1.11}
    assert session.calls[1][1].endswith("/EUR")
    assert svc.get_rates("USD")["EUR"] == 0.9
    assert len(session.calls) == 2


def test_fallback_rates_are_rebased():
    svc = CurrencyService(session=FakeSession(), rng=random.Random(3))
    usd = svc.get_rates("USD")
    eur = svc.get_rates("EUR")

    assert eur["EUR"] == 1.0
    assert eur["USD"] == pytest.approx(1 / 0.85, rel=0.021)
    assert usd["EUR"] == pytest.approx(0.85, rel=0.021)


def test_unknown_base_without_live_rates():
    svc = CurrencyService(session=FakeSession(), rng=random.Random(3))
    with pytest.raises(UnsupportedCurrency):
        svc.get_rates("XYZ")


def test_historical_rates_length():
    rows = CurrencyService(session=FakeSession(), rng=random.Random(2)).historical_rates("EUR", days=7)
    assert len(rows) == 8
    assert rows[0]["date"] < rows[-1]["date"]


def test_formatting():
    assert format_currency(1234.5, "EUR") == "€1,234.50"
    assert format_currency(-3, "XYZ") == "-XYZ3.00"
    assert format_indian(150_000) == "₹1.50 L"
    assert format_indian(25_000_000) == "₹2.50 Cr"
    assert format_indian(12_345.6) == "₹12,345.60"


# Stocks

def test_mock_quote_without_key():
    svc = StockService(session=FakeSession(), rng=random.Random(5))
    q = svc.quote("aapl")
    assert q.symbol == "AAPL"
    assert q.name == "Apple Inc."
    assert 175 * 0.95 < q.price < 175 * 1.05
    assert svc.session.calls == []


def test_global_quote_parsing_and_cache():
    payload = {"Global Quote": {
        "01. symbol": "MSFT", "05. price": "401.10", "06. volume": "2000000",
        "09. change": "-3.20", "10. change percent": "-0.79%",
    }}
    session = FakeSession(FakeResponse(payload))
    svc = StockService(api_key="k", session=session, clock=Clock())

    q = svc.quote("MSFT")
    assert (q.price, q.change, q.change_percent, q.volume) == (401.10, -3.20, -0.79, 2_000_000)
    assert svc.quote("MSFT") is q
    assert len(session.calls) == 1


def test_api_limit_message_falls_back_to_mock():
    session = FakeSession(FakeResponse({"Note": "Thank you for using Alpha Vantage!"}))
    svc = StockService(api_key="k", session=session, rng=random.Random(3))
    assert svc.quote("TSLA").symbol == "TSLA"


def test_market_overview_signs():
    m = StockService(session=FakeSession(), rng=random.Random(11)).market_overview()
    assert [i.symbol for i in m.indices] == ["SPX", "DJI", "IXIC"]
    assert all(q.change >= 0 for q in m.top_gainers)
    assert all(q.change <= 0 for q in m.top_losers)


def test_market_overview_is_cached_until_cleared():
    clock = Clock()
    svc = StockService(session=FakeSession(), rng=random.Random(11), clock=clock)

    first = svc.market_overview()
    assert svc.market_overview() is first
    svc.clear_cache()
    assert svc.market_overview() is not first
    clock.t += 3 * 60
    assert svc.market_overview() is not first


def test_search():
    svc = StockService(session=FakeSession(), rng=random.Random(4))
    assert [q.symbol for q in svc.search("micro")] == ["MSFT"]
    assert len(svc.search("a")) <= 5


def test_mock_chart_is_thirty_days():
    chart = StockService(session=FakeSession(), rng=random.Random(8)).chart("NVDA")
    assert len(chart.data) == 30
    assert all(p.low <= min(p.open, p.close) and p.high >= max(p.open, p.close) for p in chart.data)


# Weather

def _weather(temp, cond):
    return Weather(location="X", temperature=temp, condition=cond, humidity=50, wind_speed=3.0,
                   icon="01d", forecast=[])


@pytest.mark.parametrize("temp,cond,expected", [
    (12, "Rain", ["Transportation", "Entertainment"]),
    (30, "Clear", ["Food & Dining", "Utilities"]),
    (2, "Snow", ["Shopping"]),
    (20, "Clear", ["Transportation", "Entertainment"]),
    (12, "Cloudy", []),
])
def test_spending_insights(temp, cond, expected):
    assert [i.category for i in spending_insights(_weather(temp, cond))] == expected


def test_clear_pleasant_day_saves_money():
    savings = [i.potential_savings for i in spending_insights(_weather(20, "Clear"))]
    assert savings == [20, 50]


def test_openweather_parsing():
    current = {"name": "Paris", "main": {"temp": 18.6, "humidity": 71}, "wind": {"speed": 4.1},
               "weather": [{"main": "Clouds", "icon": "04d"}]}
    forecast = {"list": [
        {"dt_txt": "2026-10-19 12:00:00", "main": {"temp_max": 19.2, "temp_min": 12.1},
         "weather": [{"main": "Clouds", "icon": "04d"}], "pop": 0.2},
        {"dt_txt": "2026-10-19 15:00:00", "main": {"temp_max": 21.0, "temp_min": 13.0},
         "weather": [{"main": "Rain", "icon": "10d"}], "pop": 0.6},
        {"dt_txt": "2026-10-20 12:00:00", "main": {"temp_max": 16.4, "temp_min": 9.5},
         "weather": [{"main": "Rain", "icon": "10d"}]},
    ]}
    session = FakeSession(FakeResponse(current), FakeResponse(forecast))

    w = WeatherService(api_key="k", session=session).current("Paris")

    assert (w.location, w.temperature, w.condition) == ("Paris", 19, "Clouds")
    assert w.forecast == [
        Forecast(date="2026-10-19", high=21, low=12, condition="Clouds", icon="04d", precipitation_chance=20),
        Forecast(date="2026-10-20", high=16, low=10, condition="Rain", icon="10d", precipitation_chance=0),
    ]
    assert session.calls[0][2]["params"]["units"] == "metric"


def test_weather_failure_falls_back_to_mock():
    w = WeatherService(api_key="k", session=FakeSession(), rng=random.Random(6)).current("Nowhere")
    assert w.location == "New York"
    assert len(w.forecast) == 5


# News

@pytest.mark.parametrize("text,expected", [
    ("Stocks rally as profits surge", "positive"),
    ("Markets crash into recession", "negative"),
    ("Fed holds steady", "neutral"),
])
def test_analyze_sentiment(text, expected):
    assert analyze_sentiment(text) == expected


def test_mock_news_filters_by_category():
    svc = NewsService(session=FakeSession(), rng=random.Random(1))
    assert len(svc.financial_news("technology").articles) == 1
    assert len(svc.financial_news("general").articles) == 5
    assert len(svc.financial_news("finance").articles) == 3


def test_personalized_dedupes_and_sorts():
    svc = NewsService(session=FakeSession(), rng=random.Random(1))

    articles = svc.personalized(["finance", "technology", "finance", "business"])

    titles = [a.title for a in articles]
    assert len(titles) == len(set(titles)) == 4
    assert titles[0] == "Stock Market Reaches New Heights Amid Economic Recovery"
    assert [a.published_at for a in articles] == sorted((a.published_at for a in articles), reverse=True)


def test_live_news_is_scored_and_cached():
    payload = {"totalResults": 1, "articles": [
        {"title": "Chipmakers rally on profit boost", "description": None, "url": "https://x",
         "source": {"name": "Wire"}, "publishedAt": "2026-10-19T08:00:00Z"},
    ]}
    session = FakeSession(FakeResponse(payload))
    svc = NewsService(api_key="k", session=session, clock=Clock())

    news = svc.financial_news("technology")
    assert news.articles[0].sentiment == "positive"
    assert news.articles[0].description == ""
    assert svc.financial_news("technology") is news
    assert len(session.calls) == 1


def test_market_sentiment_on_mock_business_news():
    s = NewsService(session=FakeSession(), rng=random.Random(2)).market_sentiment()
    assert s.overall == "bullish"
    assert s.confidence == 95
    assert s.factors[0] == "1 positive news articles"

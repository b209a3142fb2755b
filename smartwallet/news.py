import logging
import random
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Literal, Optional, Tuple

import requests
from pydantic import BaseModel

logger = logging.getLogger("smartwallet.news")

_BASE_URL = "https://newsapi.org/v2"
_CACHE_TTL = 30 * 60  # seconds

POSITIVE_WORDS = ["gain", "rise", "up", "growth", "profit", "success", "boost", "surge", "rally"]
NEGATIVE_WORDS = ["loss", "fall", "down", "decline", "drop", "crash", "plunge", "slump", "recession"]

Sentiment = Literal["positive", "negative", "neutral"]


class Article(BaseModel):
    title: str
    description: str = ""
    url: str
    source: str
    published_at: str
    url_to_image: Optional[str] = None
    category: str
    sentiment: Sentiment = "neutral"


class MarketNews(BaseModel):
    articles: List[Article]
    last_updated: str
    total_results: int


class MarketSentiment(BaseModel):
    overall: Literal["bullish", "bearish", "neutral"]
    confidence: int
    factors: List[str]


def analyze_sentiment(text: str) -> Sentiment:
    """Keyword count; words match as substrings."""
    lower = text.lower()
    pos = sum(1 for w in POSITIVE_WORDS if w in lower)
    neg = sum(1 for w in NEGATIVE_WORDS if w in lower)
    if pos > neg:
        return "positive"
    if neg > pos:
        return "negative"
    return "neutral"


_MOCK_ARTICLES = [
    ("Stock Market Reaches New Heights Amid Economic Recovery",
     "Major indices continue their upward trajectory as investors remain optimistic about economic growth prospects.",
     "Financial Times", 2, "finance", "positive"),
    ("Federal Reserve Maintains Interest Rates",
     "The central bank decided to keep rates unchanged, citing stable inflation and employment data.",
     "Reuters", 4, "finance", "neutral"),
    ("Tech Stocks Show Mixed Performance",
     "While some technology companies reported strong earnings, others faced challenges in the current market.",
     "Bloomberg", 6, "technology", "neutral"),
    ("Consumer Spending Patterns Shift Post-Pandemic",
     "New data reveals changing consumer behavior with increased focus on digital services and experiences.",
     "Wall Street Journal", 8, "business", "positive"),
    ("Cryptocurrency Market Volatility Continues",
     "Digital currencies experience significant price swings as regulatory discussions intensify globally.",
     "CoinDesk", 10, "finance", "negative"),
]


class NewsService:
    def __init__(
        self,
        api_key: str = "",
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], float] = time.time,
        timeout: float = 10,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.clock = clock
        self.timeout = timeout
        self._cache: Dict[str, Tuple[float, MarketNews]] = {}
        if not api_key:
            logger.warning("NEWSAPI_KEY not set; news is mocked")

    def financial_news(self, category: str = "business") -> MarketNews:
        key = f"news_{category}"
        hit = self._cache.get(key)
        if hit and self.clock() - hit[0] < _CACHE_TTL:
            return hit[1]
        if not self.api_key:
            return self.mock_news(category)

        try:
            r = self.session.get(
                f"{_BASE_URL}/top-headlines",
                params={"category": category, "country": "us", "apiKey": self.api_key, "pageSize": 20},
                timeout=self.timeout,
            )
            if r.status_code == 200:
                data = r.json() or {}
                articles = []
                for a in data.get("articles") or []:
                    title = a.get("title") or ""
                    desc = a.get("description") or ""
                    articles.append(Article(
                        title=title,
                        description=desc,
                        url=a.get("url") or "#",
                        source=(a.get("source") or {}).get("name") or "",
                        published_at=a.get("publishedAt") or "",
                        url_to_image=a.get("urlToImage"),
                        category=category,
                        sentiment=analyze_sentiment(f"{title} {desc}"),
                    ))
                news = MarketNews(
                    articles=articles,
                    last_updated=datetime.now(timezone.utc).isoformat(),
                    total_results=int(data.get("totalResults") or len(articles)),
                )
                self._cache[key] = (self.clock(), news)
                return news
            logger.warning("News API returned %s, using mock data", r.status_code)
        except (requests.RequestException, ValueError) as e:
            logger.warning("News API failed, using mock data: %s", e)

        return self.mock_news(category)

    def personalized(self, interests: List[str]) -> List[Article]:
        collected: List[Article] = []
        for interest in interests[:3]:
            collected.extend(self.financial_news(interest).articles[:5])

        seen = set()
        unique = []
        for a in collected:
            if a.title not in seen:
                seen.add(a.title)
                unique.append(a)
        unique.sort(key=lambda a: a.published_at, reverse=True)
        return unique[:15]

    def market_sentiment(self) -> MarketSentiment:
        sentiments = [a.sentiment for a in self.financial_news("business").articles]
        positive = sentiments.count("positive")
        negative = sentiments.count("negative")
        neutral = sentiments.count("neutral")
        total = len(sentiments)

        jitter = (self.rng.random() - 0.5) * 0.1
        if not total:
            overall, confidence = "neutral", 50
        elif positive / total + jitter > 0.6:
            overall = "bullish"
            confidence = round((positive / total + abs(jitter)) * 100)
        elif negative / total - jitter > 0.6:
            overall = "bearish"
            confidence = round((negative / total + abs(jitter)) * 100)
        else:
            overall = "neutral"
            confidence = round((neutral / total + abs(jitter)) * 100)

        return MarketSentiment(
            overall=overall,
            confidence=min(95, max(50, confidence)),
            factors=[
                f"{positive} positive news articles",
                f"{negative} negative news articles",
                f"{neutral} neutral news articles",
                f"Market volatility: {'High' if self.rng.random() > 0.5 else 'Moderate'}",
            ],
        )

    def mock_news(self, category: str) -> MarketNews:
        now = datetime.now(timezone.utc)
        articles = [
            Article(
                title=title,
                description=desc,
                url="#",
                source=source,
                published_at=(now - timedelta(hours=hours)).isoformat(),
                category=cat,
                sentiment=sentiment,
            )
            for title, desc, source, hours, cat, sentiment in _MOCK_ARTICLES
        ]
        return MarketNews(
            articles=[a for a in articles if category == "general" or a.category == category],
            last_updated=now.isoformat(),
            total_results=len(articles),
        )

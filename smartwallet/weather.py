# weather.py - OpenWeather (keyed) + spending insights

import logging
import random
from datetime import date, timedelta
from typing import Dict, List, Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger("smartwallet.weather")

_BASE_URL = "https://api.openweathermap.org/data/2.5"

_CONDITIONS = ["Clear", "Cloudy", "Rain", "Snow", "Thunderstorm"]
_ICONS = ["01d", "02d", "10d", "13d", "11d"]


class Forecast(BaseModel):
    date: str
    high: int
    low: int
    condition: str
    icon: str
    precipitation_chance: int


class Weather(BaseModel):
    location: str
    temperature: int
    condition: str
    humidity: int
    wind_speed: float
    icon: str
    forecast: List[Forecast]


class SpendingInsight(BaseModel):
    category: str
    recommendation: str
    reason: str
    potential_savings: float  # negative means extra cost


def _collapse_forecast(items: List[dict]) -> List[Forecast]:
    days: Dict[str, dict] = {}
    for item in items[:15]:
        d = item["dt_txt"].split(" ")[0]
        main = item["main"]
        if d not in days:
            days[d] = {
                "date": d,
                "high": main["temp_max"],
                "low": main["temp_min"],
                "condition": item["weather"][0]["main"],
                "icon": item["weather"][0]["icon"],
                "pop": item.get("pop", 0) * 100,
            }
        else:
            days[d]["high"] = max(days[d]["high"], main["temp_max"])
            days[d]["low"] = min(days[d]["low"], main["temp_min"])

    return [
        Forecast(
            date=f["date"],
            high=round(f["high"]),
            low=round(f["low"]),
            condition=f["condition"],
            icon=f["icon"],
            precipitation_chance=round(f["pop"]),
        )
        for f in list(days.values())[:5]
    ]


class WeatherService:
    def __init__(
        self,
        api_key: str = "",
        session: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
        timeout: float = 10,
    ):
        self.api_key = api_key
        self.session = session or requests.Session()
        self.rng = rng or random.Random()
        self.timeout = timeout
        if not api_key:
            logger.warning("OPENWEATHER_API_KEY not set; weather is mocked")

    def current(self, city: str = "New York") -> Weather:
        if not self.api_key:
            return self.mock_weather()

        params = {"q": city, "appid": self.api_key, "units": "metric"}
        try:
            cur = self.session.get(f"{_BASE_URL}/weather", params=params, timeout=self.timeout)
            fc = self.session.get(f"{_BASE_URL}/forecast", params=params, timeout=self.timeout)
            if cur.status_code == 200 and fc.status_code == 200:
                c = cur.json()
                return Weather(
                    location=c["name"],
                    temperature=round(c["main"]["temp"]),
                    condition=c["weather"][0]["main"],
                    humidity=c["main"]["humidity"],
                    wind_speed=c["wind"]["speed"],
                    icon=c["weather"][0]["icon"],
                    forecast=_collapse_forecast(fc.json().get("list") or []),
                )
            logger.warning("Weather API returned %s/%s, using mock data", cur.status_code, fc.status_code)
        except (requests.RequestException, ValueError, KeyError, IndexError) as e:
            logger.warning("Weather API failed, using mock data: %s", e)

        return self.mock_weather()

    def mock_weather(self) -> Weather:
        rnd = self.rng
        i = rnd.randrange(len(_CONDITIONS))
        today = date.today()
        return Weather(
            location="New York",
            temperature=round(rnd.random() * 30 + 5),
            condition=_CONDITIONS[i],
            humidity=round(rnd.random() * 40 + 40),
            wind_speed=round(rnd.random() * 20 + 5),
            icon=_ICONS[i],
            forecast=[
                Forecast(
                    date=(today + timedelta(days=n)).isoformat(),
                    high=round(rnd.random() * 25 + 10),
                    low=round(rnd.random() * 15),
                    condition=rnd.choice(_CONDITIONS),
                    icon=rnd.choice(_ICONS),
                    precipitation_chance=round(rnd.random() * 100),
                )
                for n in range(5)
            ],
        )


def spending_insights(weather: Weather) -> List[SpendingInsight]:
    """Turn current conditions into category-level spending advice."""
    out: List[SpendingInsight] = []
    t = weather.temperature
    cond = weather.condition

    if cond in ("Rain", "Thunderstorm"):
        out.append(SpendingInsight(
            category="Transportation",
            recommendation="Consider ride-sharing instead of walking",
            reason="Rainy weather expected. Uber/taxi might be worth the cost to stay dry.",
            potential_savings=-15,
        ))
        out.append(SpendingInsight(
            category="Entertainment",
            recommendation="Perfect weather for indoor activities",
            reason="Rainy day - great time for museums, movies, or indoor dining.",
            potential_savings=0,
        ))

    if t > 25:
        out.append(SpendingInsight(
            category="Food & Dining",
            recommendation="Hot weather - consider cold drinks and ice cream",
            reason=f"Temperature is {t}°C. Stay cool with refreshing treats.",
            potential_savings=-10,
        ))
        out.append(SpendingInsight(
            category="Utilities",
            recommendation="AC usage may increase electricity costs",
            reason="Hot weather typically leads to higher cooling costs.",
            potential_savings=-25,
        ))

    if t < 5:
        out.append(SpendingInsight(
            category="Shopping",
            recommendation="Cold weather - check heating costs",
            reason=f"Temperature is {t}°C. Heating bills may be higher.",
            potential_savings=-30,
        ))

    if cond == "Clear" and 15 < t < 25:
        out.append(SpendingInsight(
            category="Transportation",
            recommendation="Perfect weather for walking or cycling",
            reason="Beautiful weather - save money by walking instead of driving.",
            potential_savings=20,
        ))
        out.append(SpendingInsight(
            category="Entertainment",
            recommendation="Great day for outdoor activities",
            reason="Perfect weather for free outdoor activities like parks and hiking.",
            potential_savings=50,
        ))

    return out

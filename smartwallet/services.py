import logging
import random
from dataclasses import dataclass
from typing import Optional

import requests
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.schedulers.base import BaseScheduler

from .ai import FinancialAdvisor
from .bank import MockBank
from .config import Settings
from .currency import CurrencyService
from .db import BillStore, TransactionStore, init_db
from .investments import InvestmentService
from .news import NewsService
from .notify import NotificationSink
from .reminders import ReminderScheduler
from .stocks import StockService
from .wallet import WalletPasses
from .weather import WeatherService

logger = logging.getLogger("smartwallet.services")


@dataclass
class Services:
    settings: Settings
    bills: BillStore
    transactions: TransactionStore
    sink: NotificationSink
    reminders: ReminderScheduler
    currency: CurrencyService
    stocks: StockService
    weather: WeatherService
    news: NewsService
    advisor: FinancialAdvisor
    bank: MockBank
    wallet: WalletPasses
    investments: InvestmentService

    def start(self) -> None:
        if not self.reminders.scheduler.running:
            self.reminders.scheduler.start()

    def shutdown(self) -> None:
        if self.reminders.scheduler.running:
            self.reminders.scheduler.shutdown(wait=False)


def build_services(
    settings: Settings,
    session: Optional[requests.Session] = None,
    scheduler: Optional[BaseScheduler] = None,
    advisor_client=None,
) -> Services:
    """Construct every service once; the app keeps the result on its state."""
    init_db(settings.db_path)
    session = session or requests.Session()

    def rng() -> random.Random:
        return random.Random(settings.mock_seed)

    bills = BillStore(settings.db_path)
    sink = NotificationSink(
        permission=settings.notify_permission,
        to=settings.notify_to,
        vonage_api_key=settings.vonage_api_key,
        vonage_api_secret=settings.vonage_api_secret,
        vonage_from=settings.vonage_from,
        timeout=settings.http_timeout,
        session=session,
    )
    sink.setup()

    return Services(
        settings=settings,
        bills=bills,
        transactions=TransactionStore(settings.db_path),
        sink=sink,
        reminders=ReminderScheduler(bills, sink, scheduler or BackgroundScheduler(daemon=True)),
        currency=CurrencyService(settings.exchangerate_api_url, session=session, rng=rng(),
                                 timeout=settings.http_timeout),
        stocks=StockService(settings.alpha_vantage_api_key, session=session, rng=rng(),
                            timeout=settings.http_timeout),
        weather=WeatherService(settings.openweather_api_key, session=session, rng=rng(),
                               timeout=settings.http_timeout),
        news=NewsService(settings.newsapi_key, session=session, rng=rng(), timeout=settings.http_timeout),
        advisor=FinancialAdvisor(settings.gemini_api_key, settings.gemini_model,
                                 client=advisor_client, rng=rng()),
        bank=MockBank(),
        wallet=WalletPasses(),
        investments=InvestmentService(),
    )

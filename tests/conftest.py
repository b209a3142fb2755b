import random
from datetime import datetime
from types import SimpleNamespace

import pytest
import requests
from apscheduler.schedulers.background import BackgroundScheduler

from smartwallet.config import Settings
from smartwallet.db import BillStore, TransactionStore, init_db
from smartwallet.notify import NotificationSink

NOW = datetime(2026, 10, 19, 9, 30)


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Hands out queued responses in order; an exhausted queue raises."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if not self.responses:
            raise requests.ConnectionError("no network in tests")
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r

    def get(self, url, **kwargs):
        return self._next("GET", url, kwargs)

    def post(self, url, **kwargs):
        return self._next("POST", url, kwargs)


class FakeGemini:
    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []
        self.models = SimpleNamespace(generate_content=self._generate)

    def _generate(self, model, contents):
        self.prompts.append(contents)
        if self.error:
            raise self.error
        return SimpleNamespace(text=self.text)


@pytest.fixture
def db_path(tmp_path):
    path = str(tmp_path / "wallet.sqlite3")
    init_db(path)
    return path


@pytest.fixture
def bill_store(db_path):
    return BillStore(db_path)


@pytest.fixture
def tx_store(db_path):
    return TransactionStore(db_path)


@pytest.fixture
def sink():
    s = NotificationSink(permission="granted", session=FakeSession())
    s.setup()
    return s


@pytest.fixture
def scheduler():
    # Never started: jobs stay pending and can be inspected.
    return BackgroundScheduler()


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def settings(db_path):
    return Settings(db_path=db_path, mock_seed=42, notify_permission="granted")

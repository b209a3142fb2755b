"""Mock bank-account linking: a stand-in for an aggregator such as Plaid."""

import logging
import uuid
from datetime import date
from typing import List, Literal

from pydantic import BaseModel

logger = logging.getLogger("smartwallet.bank")


class BankAccount(BaseModel):
    id: str
    name: str
    type: Literal["checking", "savings", "credit"]
    balance: float
    account_number: str
    routing_number: str
    institution: str
    is_connected: bool = False


class BankTransaction(BaseModel):
    id: str
    account_id: str
    amount: float
    date: str
    merchant: str
    category: str
    description: str
    pending: bool = False


def _default_accounts() -> List[BankAccount]:
    return [
        BankAccount(id="acc_1", name="Primary Checking", type="checking", balance=2450.75,
                    account_number="****1234", routing_number="021000021", institution="Chase Bank"),
        BankAccount(id="acc_2", name="Savings Account", type="savings", balance=8750.20,
                    account_number="****5678", routing_number="021000021", institution="Chase Bank"),
        BankAccount(id="acc_3", name="Credit Card", type="credit", balance=-1250.45,
                    account_number="****4521", routing_number="", institution="Chase Bank"),
    ]


def _default_transactions() -> List[BankTransaction]:
    return [
        BankTransaction(id="txn_1", account_id="acc_1", amount=-4.50, date="2024-01-15",
                        merchant="Starbucks", category="Food & Dining", description="Coffee purchase"),
        BankTransaction(id="txn_2", account_id="acc_3", amount=-89.99, date="2024-01-14",
                        merchant="Amazon", category="Shopping", description="Online purchase"),
        BankTransaction(id="txn_3", account_id="acc_1", amount=-45.20, date="2024-01-13",
                        merchant="Shell", category="Transportation", description="Gas station"),
    ]


class MockBank:
    def __init__(self):
        self.accounts = _default_accounts()
        self.transactions = _default_transactions()

    def _find(self, account_id: str):
        return next((a for a in self.accounts if a.id == account_id), None)

    def available_accounts(self) -> List[BankAccount]:
        return list(self.accounts)

    def connected_accounts(self) -> List[BankAccount]:
        return [a for a in self.accounts if a.is_connected]

    def connect(self, account_id: str) -> bool:
        account = self._find(account_id)
        if account is None:
            return False
        account.is_connected = True
        logger.info("Connected account %s", account_id)
        return True

    def disconnect(self, account_id: str) -> bool:
        account = self._find(account_id)
        if account is None:
            return False
        account.is_connected = False
        logger.info("Disconnected account %s", account_id)
        return True

    def account_transactions(self, account_id: str) -> List[BankTransaction]:
        return [t for t in self.transactions if t.account_id == account_id]

    def all_transactions(self) -> List[BankTransaction]:
        connected = {a.id for a in self.connected_accounts()}
        return [t for t in self.transactions if t.account_id in connected]

    def sync(self) -> List[BankTransaction]:
        new = [
            BankTransaction(
                id=f"txn_{uuid.uuid4().hex[:12]}",
                account_id="acc_1",
                amount=-12.50,
                date=date.today().isoformat(),
                merchant="Local Cafe",
                category="Food & Dining",
                description="Lunch",
            )
        ]
        self.transactions.extend(new)
        return new

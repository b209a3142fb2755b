from pydantic import BaseModel, Field, model_validator
from typing import List, Literal, Optional
from datetime import date
import uuid

BillCategory = Literal[
    "Utilities",
    "Insurance",
    "Entertainment",
    "Taxes",
    "Healthcare",
    "Housing",
    "Transportation",
    "Subscriptions",
    "Other",
]
Frequency = Literal["monthly", "quarterly", "yearly"]


class BillIn(BaseModel):
    name: str = Field(..., min_length=1)
    amount: float = Field(..., gt=0)
    due_date: date
    category: BillCategory = "Utilities"
    is_recurring: bool = False
    frequency: Optional[Frequency] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def _recurring_needs_frequency(self):
        if self.is_recurring and self.frequency is None:
            raise ValueError("frequency is required for recurring bills")
        return self


class Bill(BillIn):
    id: str = Field(default_factory=lambda: f"bill_{uuid.uuid4().hex}")
    user_id: str
    is_paid: bool = False


class Reminder(BaseModel):
    id: str
    bill_id: str
    reminder_date: date
    type: Literal["due_soon", "overdue", "paid"]  # "paid" is never produced
    message: str


class TransactionIn(BaseModel):
    merchant: str = Field(..., min_length=1)
    amount: float
    category: str = "Other"
    date: date
    time: str = "00:00"
    payment_method: str = "Credit Card"
    status: Literal["completed", "pending", "failed"] = "completed"
    has_receipt: bool = False
    items: List[str] = Field(default_factory=list)


class Transaction(TransactionIn):
    id: str = Field(default_factory=lambda: f"txn_{uuid.uuid4().hex}")
    user_id: str


class NotifyIn(BaseModel):
    bill_id: str
    channel: str = "auto"  # auto|sms|console
    to: Optional[str] = None  # phone for demo

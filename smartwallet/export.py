import csv
import io
from typing import Iterable

from .models import Transaction

CSV_HEADERS = ["Date", "Merchant", "Category", "Amount", "Payment Method", "Status"]


def export_transactions_csv(transactions: Iterable[Transaction]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for t in transactions:
        writer.writerow([t.date.isoformat(), t.merchant, t.category, t.amount, t.payment_method, t.status])
    return buf.getvalue()

from datetime import date

import pytest
from pydantic import ValidationError

from smartwallet.db import StorageError
from smartwallet.export import export_transactions_csv
from smartwallet.models import Bill, BillIn, Transaction


def property_tax(**kw):
    data = dict(
        user_id="u1",
        name="Property Tax",
        amount=1250.00,
        due_date=date(2027, 3, 31),
        category="Taxes",
        is_recurring=True,
        frequency="quarterly",
        notes="Q1 2027 payment",
        payment_method="Bank Transfer",
    )
    data.update(kw)
    return Bill(**data)


def test_add_then_list_preserves_every_field(bill_store):
    bill = property_tax()
    bill_store.add(bill)

    listed = bill_store.list("u1")

    assert listed == [bill]


def test_list_is_scoped_and_ordered(bill_store):
    a = bill_store.add(property_tax(name="A", due_date=date(2027, 5, 1)))
    bill_store.add(property_tax(name="X", user_id="u2"))
    b = bill_store.add(property_tax(name="B", due_date=date(2027, 1, 1)))

    assert [x.id for x in bill_store.list("u1")] == [a.id, b.id]
    assert bill_store.list("nobody") == []


def test_mark_paid_is_idempotent(bill_store):
    bill = bill_store.add(property_tax())

    assert bill_store.mark_paid(bill.id) is True
    assert bill_store.mark_paid(bill.id) is True
    assert bill_store.get(bill.id).is_paid is True


def test_mark_paid_unknown_bill(bill_store):
    assert bill_store.mark_paid("bill_missing") is False


def test_delete(bill_store):
    bill = bill_store.add(property_tax())
    assert bill_store.delete(bill.id) is True
    assert bill_store.get(bill.id) is None
    assert bill_store.delete(bill.id) is False


def test_write_failure_raises_storage_error(bill_store):
    bill = bill_store.add(property_tax())
    with pytest.raises(StorageError):
        bill_store.add(bill)  # duplicate primary key


def test_recurring_bill_requires_frequency():
    with pytest.raises(ValidationError):
        BillIn(name="Gym", amount=30, due_date=date(2027, 1, 1), is_recurring=True)


@pytest.mark.parametrize("amount", [0, -5])
def test_amount_must_be_positive(amount):
    with pytest.raises(ValidationError):
        BillIn(name="Gym", amount=amount, due_date=date(2027, 1, 1))


def test_unknown_category_rejected():
    with pytest.raises(ValidationError):
        BillIn(name="Gym", amount=30, due_date=date(2027, 1, 1), category="Fitness")


def test_generated_ids_are_unique():
    assert property_tax().id != property_tax().id


def _tx(merchant, **kw):
    return Transaction(user_id="u1", merchant=merchant, amount=kw.pop("amount", 4.5),
                       category="Food & Dining", date=date(2026, 10, 1), **kw)


def test_transactions_newest_first(tx_store):
    first = tx_store.save(_tx("Starbucks", items=["latte"]))
    second = tx_store.save(_tx("Shell", has_receipt=True))

    listed = tx_store.list("u1")

    assert listed == [second, first]
    assert listed[1].items == ["latte"]
    assert tx_store.list("u2") == []


def test_export_csv():
    csv_text = export_transactions_csv([_tx('Joe\'s "Diner"', amount=12.5, payment_method="Debit")])

    lines = csv_text.splitlines()
    assert lines[0] == "Date,Merchant,Category,Amount,Payment Method,Status"
    assert lines[1] == '2026-10-01,"Joe\'s ""Diner""",Food & Dining,12.5,Debit,completed'

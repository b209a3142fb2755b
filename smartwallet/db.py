import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from .models import Bill, Transaction

logger = logging.getLogger("smartwallet.db")


class StorageError(RuntimeError):
    """A write to the local store failed."""


def get_conn(db_path: str):
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    return conn


def init_db(db_path: str):
    conn = get_conn(db_path)
    cur = conn.cursor()
    cur.execute("""
    CREATE TABLE IF NOT EXISTS bills (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        name TEXT NOT NULL,
        amount REAL NOT NULL,
        due_date TEXT NOT NULL,
        category TEXT NOT NULL,
        is_recurring INTEGER NOT NULL,
        frequency TEXT,
        is_paid INTEGER NOT NULL,
        payment_method TEXT,
        notes TEXT
    )
    """)
    cur.execute("""
    CREATE TABLE IF NOT EXISTS transactions (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        merchant TEXT NOT NULL,
        amount REAL NOT NULL,
        category TEXT NOT NULL,
        date TEXT NOT NULL,
        time TEXT NOT NULL,
        payment_method TEXT NOT NULL,
        status TEXT NOT NULL,
        has_receipt INTEGER NOT NULL,
        items TEXT NOT NULL
    )
    """)
    conn.commit()
    conn.close()


class BillStore:
    """Bills persisted in SQLite, every query scoped by user id.

    Rows come back in insertion order; callers rely on that order when
    building reminder lists.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path

    def _write(self, sql: str, params) -> int:
        conn = None
        try:
            conn = get_conn(self.db_path)
            cur = conn.cursor()
            cur.execute(sql, params)
            conn.commit()
            return cur.rowcount
        except sqlite3.Error as e:
            logger.exception("Bill store write failed")
            raise StorageError(str(e)) from e
        finally:
            if conn is not None:
                conn.close()

    @staticmethod
    def _row_to_bill(row: sqlite3.Row) -> Bill:
        d = dict(row)
        d["is_recurring"] = bool(d["is_recurring"])
        d["is_paid"] = bool(d["is_paid"])
        return Bill(**d)

    def add(self, bill: Bill) -> Bill:
        b: Dict[str, Any] = bill.model_dump()
        b["due_date"] = bill.due_date.isoformat()
        b["is_recurring"] = int(bill.is_recurring)
        b["is_paid"] = int(bill.is_paid)
        self._write("""
            INSERT INTO bills (id, user_id, name, amount, due_date, category, is_recurring,
                               frequency, is_paid, payment_method, notes)
            VALUES (:id, :user_id, :name, :amount, :due_date, :category, :is_recurring,
                    :frequency, :is_paid, :payment_method, :notes)
        """, b)
        logger.info("Added bill %s for user %s", bill.id, bill.user_id)
        return bill

    def list(self, user_id: str) -> List[Bill]:
        conn = get_conn(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM bills WHERE user_id = ? ORDER BY rowid ASC", (user_id,))
            return [self._row_to_bill(r) for r in cur.fetchall()]
        finally:
            conn.close()

    def get(self, bill_id: str) -> Optional[Bill]:
        conn = get_conn(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM bills WHERE id = ?", (bill_id,))
            row = cur.fetchone()
            return self._row_to_bill(row) if row else None
        finally:
            conn.close()

    def mark_paid(self, bill_id: str) -> bool:
        """Set is_paid; repeating the call on a paid bill is harmless."""
        ok = self._write("UPDATE bills SET is_paid = 1 WHERE id = ?", (bill_id,)) > 0
        if ok:
            logger.info("Marked bill %s as paid", bill_id)
        return ok

    def delete(self, bill_id: str) -> bool:
        return self._write("DELETE FROM bills WHERE id = ?", (bill_id,)) > 0


class TransactionStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    def save(self, tx: Transaction) -> Transaction:
        t: Dict[str, Any] = tx.model_dump()
        t["date"] = tx.date.isoformat()
        t["has_receipt"] = int(tx.has_receipt)
        t["items"] = json.dumps(tx.items)
        conn = None
        try:
            conn = get_conn(self.db_path)
            conn.execute("""
                INSERT INTO transactions (id, user_id, merchant, amount, category, date, time,
                                          payment_method, status, has_receipt, items)
                VALUES (:id, :user_id, :merchant, :amount, :category, :date, :time,
                        :payment_method, :status, :has_receipt, :items)
            """, t)
            conn.commit()
        except sqlite3.Error as e:
            logger.exception("Transaction store write failed")
            raise StorageError(str(e)) from e
        finally:
            if conn is not None:
                conn.close()
        return tx

    def list(self, user_id: str) -> List[Transaction]:
        """Newest first."""
        conn = get_conn(self.db_path)
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM transactions WHERE user_id = ? ORDER BY rowid DESC", (user_id,))
            rows = []
            for r in cur.fetchall():
                d = dict(r)
                d["has_receipt"] = bool(d["has_receipt"])
                d["items"] = json.loads(d["items"])
                rows.append(Transaction(**d))
            return rows
        finally:
            conn.close()

import base64
import json
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Literal, Optional

from pydantic import BaseModel

logger = logging.getLogger("smartwallet.wallet")


class PassField(BaseModel):
    label: str
    value: str


class WalletPass(BaseModel):
    id: str
    user_id: str
    type: Literal["loyalty", "membership", "coupon", "event"]
    title: str
    subtitle: str
    balance: Optional[str] = None
    barcode: str
    background_color: str
    text_color: str = "#FFFFFF"
    fields: List[PassField]
    is_active: bool = True
    created_at: str


class WalletPasses:
    """In-memory digital wallet passes, scoped by user."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.clock = clock
        self.passes: List[WalletPass] = []

    def _stamp(self) -> str:
        return str(int(self.clock() * 1000))

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock(), timezone.utc).isoformat()

    def create_loyalty(self, user_id: str, balance: float) -> WalletPass:
        stamp = self._stamp()
        p = WalletPass(
            id=f"pass_{user_id}_{stamp}",
            user_id=user_id,
            type="loyalty",
            title="Smart Wallet",
            subtitle="Premium Member",
            balance=f"${balance:.2f}",
            barcode=f"SW{user_id[-6:].upper()}{stamp[-4:]}",
            background_color="#3B82F6",
            fields=[
                PassField(label="Account Balance", value=f"${balance:.2f}"),
                PassField(label="Member Since", value=str(datetime.fromtimestamp(self.clock()).year)),
                PassField(label="Status", value="Premium"),
                PassField(label="Points", value=str(int(balance * 10))),
            ],
            created_at=self._now_iso(),
        )
        self.passes.append(p)
        return p

    def create_membership(self, user_id: str, title: str, subtitle: str, member_number: str,
                          expiry_date: str) -> WalletPass:
        p = WalletPass(
            id=f"pass_membership_{self._stamp()}",
            user_id=user_id,
            type="membership",
            title=title,
            subtitle=subtitle,
            barcode=f"MEM{member_number}",
            background_color="#10B981",
            fields=[
                PassField(label="Member Number", value=member_number),
                PassField(label="Expires", value=expiry_date),
                PassField(label="Status", value="Active"),
            ],
            created_at=self._now_iso(),
        )
        self.passes.append(p)
        return p

    def create_event_ticket(self, user_id: str, name: str, venue: str, date: str, time_: str,
                            seat: Optional[str] = None) -> WalletPass:
        stamp = self._stamp()
        fields = [
            PassField(label="Date", value=date),
            PassField(label="Time", value=time_),
            PassField(label="Venue", value=venue),
        ]
        if seat:
            fields.append(PassField(label="Seat", value=seat))
        p = WalletPass(
            id=f"pass_event_{stamp}",
            user_id=user_id,
            type="event",
            title=name,
            subtitle=venue,
            barcode=f"EVT{stamp[-8:]}",
            background_color="#8B5CF6",
            fields=fields,
            created_at=self._now_iso(),
        )
        self.passes.append(p)
        return p

    def get(self, pass_id: str) -> Optional[WalletPass]:
        return next((p for p in self.passes if p.id == pass_id), None)

    def user_passes(self, user_id: str) -> List[WalletPass]:
        return [p for p in self.passes if p.user_id == user_id and p.is_active]

    def update_balance(self, pass_id: str, balance: float) -> bool:
        p = self.get(pass_id)
        if p is None or p.type != "loyalty":
            return False
        p.balance = f"${balance:.2f}"
        for f in p.fields:
            if f.label == "Account Balance":
                f.value = p.balance
        return True

    def deactivate(self, pass_id: str) -> bool:
        p = self.get(pass_id)
        if p is None:
            return False
        p.is_active = False
        logger.info("Deactivated pass %s", pass_id)
        return True


def pass_file(p: WalletPass) -> str:
    """pkpass-style JSON for the pass, as a base64 data URL."""
    first = p.fields[0] if p.fields else None
    data = {
        "formatVersion": 1,
        "passTypeIdentifier": f"pass.smartwallet.{p.type}",
        "serialNumber": p.id,
        "teamIdentifier": "SMARTWALLET",
        "organizationName": "Smart Wallet",
        "description": p.title,
        "logoText": "Smart Wallet",
        "backgroundColor": p.background_color,
        "foregroundColor": p.text_color,
        "generic": {
            "primaryFields": [{
                "key": "balance",
                "label": first.label if first else "Value",
                "value": first.value if first else (p.balance or ""),
            }],
            "secondaryFields": [
                {"key": f"field_{i}", "label": f.label, "value": f.value}
                for i, f in enumerate(p.fields[1:3])
            ],
            "auxiliaryFields": [
                {"key": f"aux_{i}", "label": f.label, "value": f.value}
                for i, f in enumerate(p.fields[3:])
            ],
        },
        "barcode": {
            "message": p.barcode,
            "format": "PKBarcodeFormatQR",
            "messageEncoding": "iso-8859-1",
        },
    }
    encoded = base64.b64encode(json.dumps(data, indent=2).encode("utf-8")).decode("ascii")
    return f"data:application/json;base64,{encoded}"

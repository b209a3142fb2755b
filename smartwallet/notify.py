import logging
from typing import Optional

import requests

from .models import Reminder

logger = logging.getLogger("smartwallet.notify")

REMINDER_TITLE = "Smart Wallet - Bill Reminder"


class NotificationSink:
    """Delivers reminder notifications over SMS (Vonage) or the console.

    Permission is resolved once by ``setup()``; deliveries made while it is
    anything other than ``granted`` are dropped.
    """

    def __init__(
        self,
        permission: str = "default",
        to: Optional[str] = None,
        vonage_api_key: Optional[str] = None,
        vonage_api_secret: Optional[str] = None,
        vonage_from: str = "SMARTWALLET",
        timeout: float = 10,
        session: Optional[requests.Session] = None,
    ):
        self._requested = permission
        self.permission = "default"
        self.to = to
        self.vonage_api_key = vonage_api_key
        self.vonage_api_secret = vonage_api_secret
        self.vonage_from = vonage_from
        self.timeout = timeout
        self.session = session or requests.Session()

    def setup(self) -> str:
        if self.permission == "default":
            self.permission = "granted" if self._requested == "granted" else "denied"
            logger.info("Notification permission: %s", self.permission)
        return self.permission

    def send(self, title: str, body: str, tag: str, channel: str = "auto", to: Optional[str] = None) -> dict:
        to = to or self.to
        msg = f"{title}: {body}"

        if (channel in ("auto", "sms")) and self.vonage_api_key and self.vonage_api_secret and to:
            try:
                resp = self.session.post(
                    "https://rest.nexmo.com/sms/json",
                    data={
                        "api_key": self.vonage_api_key,
                        "api_secret": self.vonage_api_secret,
                        "to": to,
                        "from": self.vonage_from,
                        "text": msg,
                        "client-ref": tag,
                    },
                    timeout=self.timeout,
                )
                return {"channel": "sms", "status": resp.status_code, "tag": tag}
            except requests.RequestException as e:
                logger.warning("SMS delivery failed for %s: %s", tag, e)
                return {"channel": "sms", "status": "error", "error": str(e), "tag": tag}

        print(f"[NOTIFY console] to={to or 'demo'} tag={tag} :: {msg}")
        return {"channel": "console", "status": "ok", "tag": tag}

    def deliver(self, reminder: Reminder) -> Optional[dict]:
        if self.permission != "granted":
            logger.debug("Notifications not granted; dropping %s", reminder.id)
            return None
        return self.send(REMINDER_TITLE, reminder.message, tag=reminder.id)

# src/autotp/notifications/telegram.py
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

import requests

log = logging.getLogger("autotp.notifications.telegram")

TELEGRAM_API = "https://api.telegram.org"
TELEGRAM_MAX_LEN = 3900  # below the 4096 hard limit


@dataclass(frozen=True)
class TelegramTarget:
    bot_token: str
    chat_id: str


def target_from_env() -> Optional[TelegramTarget]:
    """TELEGRAM_BOT_TOKEN + TELEGRAM_CHAT_ID, or None when either is missing."""
    token = (os.getenv("TELEGRAM_BOT_TOKEN") or "").strip()
    chat = (os.getenv("TELEGRAM_CHAT_ID") or "").strip()
    if not token or not chat:
        return None
    return TelegramTarget(bot_token=token, chat_id=chat)


class TelegramNotifier:
    """
    Fire-and-forget sender: failures are logged, never raised into the tick.
    """

    def __init__(self, target: TelegramTarget, *, timeout: float = 15.0, session: requests.Session | None = None):
        self.target = target
        self.timeout = float(timeout)
        self.sess = session or requests.Session()

    def send(self, text: str) -> bool:
        text = (text or "").strip()
        if not text:
            return False

        url = f"{TELEGRAM_API}/bot{self.target.bot_token}/sendMessage"
        payload = {
            "chat_id": self.target.chat_id,
            "text": text[:TELEGRAM_MAX_LEN],
            "disable_web_page_preview": True,
        }

        try:
            r = self.sess.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException:
            log.exception("[TELEGRAM] chat=%s unreachable", self.target.chat_id)
            return False

        if r.status_code != 200:
            log.error("[TELEGRAM] chat=%s rejected message: HTTP %s %s",
                      self.target.chat_id, r.status_code, r.text[:300])
            return False
        return True


def build_notifier_from_env() -> Optional[TelegramNotifier]:
    target = target_from_env()
    return TelegramNotifier(target) if target else None


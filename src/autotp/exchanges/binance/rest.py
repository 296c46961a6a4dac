# src/autotp/exchanges/binance/rest.py
from __future__ import annotations

import hashlib
import hmac
import logging
import time
from typing import Any, Optional
from urllib.parse import urlencode

import requests

from src.autotp.exchanges.base.exchange import ExchangeError

SPOT_BASE_URL = "https://api.binance.com"
FUTURES_BASE_URL = "https://fapi.binance.com"

# rate limit / venue overload: worth another attempt
RETRY_STATUSES = frozenset({418, 429, 500, 502, 503, 504})

log = logging.getLogger("src.autotp.exchanges.binance.rest")


def _venue_error(resp: requests.Response, method: str, path: str) -> ExchangeError:
    """Final (non-retryable) HTTP error -> ExchangeError with the venue code when present."""
    try:
        body = resp.json()
    except ValueError:
        return ExchangeError(
            f"Binance HTTP {resp.status_code} {method} {path}: {resp.text[:500]}",
            status=resp.status_code,
        )
    code = body.get("code") if isinstance(body, dict) else None
    msg = body.get("msg") if isinstance(body, dict) else body
    return ExchangeError(
        f"Binance HTTP {resp.status_code} {method} {path}: code={code} msg={msg}",
        code=code,
        status=resp.status_code,
    )


class BinanceREST:
    """
    Thin Binance REST client shared by the spot and futures gateways.

    Signed calls get timestamp / recvWindow / signature on every attempt.
    Network errors, 429 and 5xx are retried with a growing pause;
    any other 4xx is the venue's answer and raises ExchangeError at once.
    """

    def __init__(
        self,
        api_key: str,
        api_secret: str,
        *,
        base_url: str = SPOT_BASE_URL,
        timeout: float = 10.0,
        max_retries: int = 3,
        backoff_base: float = 1.5,
        recv_window: int = 5000,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = float(timeout)
        self.max_retries = max(1, int(max_retries))
        self.backoff_base = float(backoff_base)
        self.recv_window = int(recv_window)

        self._secret = (api_secret or "").encode("utf-8")
        self.sess = session or requests.Session()
        if api_key:
            self.sess.headers.update({"X-MBX-APIKEY": api_key})

    # ------------------------------------------------------------------
    # signing
    # ------------------------------------------------------------------

    def _signed(self, params: dict[str, Any]) -> dict[str, Any]:
        if not self._secret:
            raise ExchangeError("Binance signed request requires api_secret")

        out = dict(params)
        out.setdefault("recvWindow", self.recv_window)
        out["timestamp"] = int(time.time() * 1000)
        digest = hmac.new(self._secret, urlencode(out, doseq=True).encode("utf-8"), hashlib.sha256)
        out["signature"] = digest.hexdigest()
        return out

    # ------------------------------------------------------------------
    # transport
    # ------------------------------------------------------------------

    def _pause(self, attempt: int) -> None:
        if attempt < self.max_retries:
            time.sleep(self.backoff_base * attempt)

    def _request(self, method: str, path: str, params: Optional[dict[str, Any]], signed: bool) -> Any:
        url = self.base_url + path
        base = dict(params or {})
        last: Exception | None = None

        for attempt in range(1, self.max_retries + 1):
            query = self._signed(base) if signed else base
            try:
                resp = self.sess.request(method=method, url=url, params=query, timeout=self.timeout)
            except requests.RequestException as e:
                last = e
                log.warning("[BINANCE][REST] %s %s attempt %d/%d failed: %r",
                            method, path, attempt, self.max_retries, e)
                self._pause(attempt)
                continue

            if resp.status_code in RETRY_STATUSES:
                last = ExchangeError(f"Binance HTTP {resp.status_code} {method} {path}", status=resp.status_code)
                log.warning("[BINANCE][REST] %s %s -> HTTP %d, attempt %d/%d",
                            method, path, resp.status_code, attempt, self.max_retries)
                self._pause(attempt)
                continue

            if resp.status_code >= 400:
                raise _venue_error(resp, method, path)

            return resp.json() if resp.text else {}

        raise ExchangeError(f"Binance {method} {path} gave up after {self.max_retries} attempts: {last!r}")

    # ------------------------------------------------------------------
    # verbs
    # ------------------------------------------------------------------

    def get(self, path: str, *, params: Optional[dict[str, Any]] = None, signed: bool = False) -> Any:
        return self._request("GET", path, params, signed)

    def post(self, path: str, *, params: Optional[dict[str, Any]] = None, signed: bool = False) -> Any:
        return self._request("POST", path, params, signed)

    def delete(self, path: str, *, params: Optional[dict[str, Any]] = None, signed: bool = False) -> Any:
        return self._request("DELETE", path, params, signed)

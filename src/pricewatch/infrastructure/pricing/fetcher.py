# src/pricewatch/infrastructure/pricing/fetcher.py
"""
HTTP price fetcher.

Fetches a listing's price endpoint and turns the response into a Decimal.
JSON bodies are read from a "price" field (top level or under "data"); plain
text bodies use the last number-like token. Any network, status or parse
failure surfaces as TransientFetchError so the sweep can retry or skip.
"""

from __future__ import annotations

import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Protocol

import httpx

from pricewatch.config import settings
from pricewatch.domain.errors import TransientFetchError

log = logging.getLogger(__name__)

_NUMBER_TOKEN = re.compile(r"\d[\d.,]*")


class PriceFetcher(Protocol):
    async def fetch(self, url: str) -> Decimal: ...


def parse_price_to_decimal(price_raw: Optional[str]) -> Optional[Decimal]:
    """
    Examples:
      "EGP 2,013.50" -> 2013.50
      "2.013,50 EUR" -> 2013.50
      "2,013"        -> 2013
    """
    if not price_raw:
        return None

    s = str(price_raw).strip().replace("\u00a0", " ")
    s = re.sub(r"[^\d.,]", " ", s)

    # take last number-like token
    tokens = _NUMBER_TOKEN.findall(s)
    if not tokens:
        return None
    num = tokens[-1].rstrip(".,")

    if "," in num and "." in num:
        # whichever separator comes last is the decimal point
        if num.rfind(",") > num.rfind("."):
            num = num.replace(".", "").replace(",", ".")
        else:
            num = num.replace(",", "")
    elif "," in num:
        # a trailing ",dd" is a decimal comma, anything else is thousands
        if re.search(r",\d{2}$", num):
            num = num.replace(",", ".")
        else:
            num = num.replace(",", "")

    try:
        return Decimal(num)
    except InvalidOperation:
        return None


def _extract_json_price(payload: Any) -> Optional[Decimal]:
    if not isinstance(payload, dict):
        return None
    candidate = payload.get("price")
    if candidate is None and isinstance(payload.get("data"), dict):
        candidate = payload["data"].get("price")
    if candidate is None:
        return None
    if isinstance(candidate, (int, float, Decimal)):
        return Decimal(str(candidate))
    return parse_price_to_decimal(str(candidate))


class HttpPriceFetcher:
    """Async httpx client; one shared connection pool per fetcher."""

    def __init__(self, timeout: Optional[float] = None, client: Optional[httpx.AsyncClient] = None):
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT_SECONDS
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                follow_redirects=True,
                headers={"User-Agent": "pricewatch/1.0", "Accept": "application/json, text/plain;q=0.9"},
            )
        return self._client

    async def fetch(self, url: str) -> Decimal:
        try:
            response = await self._get_client().get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TransientFetchError(url, f"request failed: {e}") from e

        price: Optional[Decimal] = None
        content_type = response.headers.get("content-type", "")
        if "json" in content_type:
            try:
                price = _extract_json_price(response.json())
            except ValueError:
                log.debug("Body of %s claimed JSON but did not parse", url)
        if price is None:
            price = parse_price_to_decimal(response.text[:2000])

        if price is None or not price.is_finite() or price < 0:
            raise TransientFetchError(url, "no price found in response")
        return price

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

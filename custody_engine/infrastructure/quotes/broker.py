"""Swap quote acquisition across candidate quote-service base URLs."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable, Sequence
from decimal import Decimal
from typing import Any, Optional
from urllib.parse import urlparse

import httpx

from custody_engine.core.config import ChainSettings, QuoteSettings

from .exceptions import InvalidQuoteError, NoQuoteAvailableError, QuoteRequestError
from .models import SwapQuote

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
NATIVE_PLACEHOLDER_ADDRESS = "0xeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeeee"

SleepFunc = Callable[[float], Awaitable[None]]


class QuoteBroker:
    """Fetches point-in-time swap quotes; never caches."""

    def __init__(
        self,
        base_urls: Sequence[str],
        *,
        chain_id: int,
        native_symbol: str = "ETH",
        native_aliases: Iterable[str] = ("ETH",),
        api_key: Optional[str] = None,
        timeout: float = 30.0,
        attempts_per_endpoint: int = 2,
        retry_delay: float = 2.0,
        chain_id_hosts: Iterable[str] = ("api.0x.org",),
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        self.base_urls = list(base_urls)
        self.chain_id = chain_id
        self.native_symbol = native_symbol
        self._native_aliases = {alias.lower() for alias in native_aliases}
        self._native_aliases.update({native_symbol.lower(), ZERO_ADDRESS, NATIVE_PLACEHOLDER_ADDRESS})
        self._api_key = api_key
        self._timeout = timeout
        self._attempts = max(1, attempts_per_endpoint)
        self._retry_delay = retry_delay
        self._chain_id_hosts = {host.lower() for host in chain_id_hosts}
        self._client = client or httpx.AsyncClient(
            headers={"User-Agent": "custody-engine/0.1", "Accept": "application/json"}
        )
        self._owns_client = client is None
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: QuoteSettings,
        chain: ChainSettings,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> "QuoteBroker":
        return cls(
            settings.base_urls,
            chain_id=chain.chain_id,
            native_symbol=chain.native_symbol,
            native_aliases=chain.native_aliases,
            api_key=settings.api_key,
            timeout=settings.timeout,
            attempts_per_endpoint=settings.attempts_per_endpoint,
            retry_delay=settings.retry_delay,
            chain_id_hosts=settings.chain_id_hosts,
            client=client,
            sleep=sleep,
        )

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def is_native(self, token: str) -> bool:
        return token.strip().lower() in self._native_aliases

    def normalize_token(self, token: str) -> str:
        """Native aliases map to the canonical symbol; anything else is passed through."""
        token = token.strip()
        return self.native_symbol if self.is_native(token) else token

    async def get_quote(
        self,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker_address: str,
        slippage_percent: Decimal | float = 1.0,
    ) -> SwapQuote:
        """Fetch an executable quote for selling ``sell_amount`` base units.

        ``slippage_percent`` is a percentage (``1`` means 1%); it is sent to
        the quote service as the fraction ``slippagePercentage=0.01``.
        """
        if not self.base_urls:
            raise NoQuoteAvailableError([], None)

        sell = self.normalize_token(sell_token)
        buy = self.normalize_token(buy_token)
        last_error: Exception | None = None
        for base_url in self.base_urls:
            params = self._build_params(base_url, sell, buy, sell_amount, taker_address, slippage_percent)
            try:
                payload = await self._fetch(base_url, params)
                quote = self._parse_quote(payload, sell, buy, sell_amount, base_url)
            except (QuoteRequestError, InvalidQuoteError) as exc:
                logger.warning("Quote endpoint %s failed: %s", base_url, exc)
                last_error = exc
                continue
            logger.info(
                "Quote received from %s: buyAmount=%s estimatedGas=%s",
                base_url,
                quote.buy_amount,
                quote.estimated_gas,
            )
            return quote

        logger.error("All quote endpoints failed for %s -> %s", sell, buy)
        raise NoQuoteAvailableError(self.base_urls, last_error)

    def _build_params(
        self,
        base_url: str,
        sell: str,
        buy: str,
        sell_amount: int,
        taker_address: str,
        slippage_percent: Decimal | float,
    ) -> dict[str, str]:
        params = {
            "sellToken": sell,
            "buyToken": buy,
            "sellAmount": str(int(sell_amount)),
            "takerAddress": taker_address,
            # The service expects a fraction: 1% -> 0.01.
            "slippagePercentage": _format_decimal(Decimal(str(slippage_percent)) / 100),
        }
        host = (urlparse(base_url).hostname or "").lower()
        if host in self._chain_id_hosts:
            params["chainId"] = str(self.chain_id)
        if self._api_key:
            params["apiKey"] = self._api_key
        return params

    async def _fetch(self, base_url: str, params: dict[str, str]) -> Any:
        headers = {"0x-api-key": self._api_key} if self._api_key else None
        for attempt in range(1, self._attempts + 1):
            try:
                response = await self._client.get(base_url, params=params, headers=headers, timeout=self._timeout)
            except httpx.HTTPError as exc:
                error = QuoteRequestError(f"request failed: {str(exc) or exc.__class__.__name__}")
            else:
                if response.status_code < 400:
                    try:
                        return response.json()
                    except ValueError as exc:
                        raise InvalidQuoteError("quote response is not valid JSON") from exc
                if response.status_code < 500:
                    raise QuoteRequestError(f"HTTP {response.status_code}: {response.text[:200]}")
                error = QuoteRequestError(f"HTTP {response.status_code}")

            logger.debug("Quote attempt %d/%d on %s failed: %s", attempt, self._attempts, base_url, error)
            if attempt == self._attempts:
                raise error
            await self._sleep(self._retry_delay * attempt)
        raise QuoteRequestError("no attempts made")

    @staticmethod
    def _parse_quote(payload: Any, sell: str, buy: str, sell_amount: int, source_url: str) -> SwapQuote:
        if not isinstance(payload, dict):
            raise InvalidQuoteError("quote response is not a JSON object")
        to = payload.get("to")
        if not isinstance(to, str) or not to.strip():
            raise InvalidQuoteError("quote response has no destination contract")
        data = payload.get("data") or "0x"
        if not isinstance(data, str):
            raise InvalidQuoteError("quote calldata is not a hex string")

        return SwapQuote(
            sell_token=sell,
            buy_token=buy,
            sell_amount=sell_amount,
            to=to,
            data=data,
            value=_parse_int(payload.get("value"), "value") or 0,
            buy_amount=_parse_int(payload.get("buyAmount"), "buyAmount"),
            estimated_gas=_parse_int(payload.get("estimatedGas") or payload.get("gas"), "estimatedGas"),
            allowance_target=payload.get("allowanceTarget") or None,
            source_url=source_url,
            raw=payload,
        )


def _parse_int(value: Any, name: str) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        if isinstance(value, str):
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        return int(value)
    except (TypeError, ValueError):
        raise InvalidQuoteError(f"quote field {name} is not an integer: {value!r}") from None


def _format_decimal(value: Decimal) -> str:
    return f"{value.normalize():f}"


__all__ = ["QuoteBroker", "ZERO_ADDRESS", "NATIVE_PLACEHOLDER_ADDRESS"]

"""Multi-endpoint JSON-RPC gateway with probing, retry and rotation.

The gateway owns the ordered endpoint pool and the shared "current endpoint"
cursor. Callers only ever see :meth:`RPCGateway.call` and the typed read/write
helpers built on it; the raw HTTP client and the cursor stay private.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

import httpx

from custody_engine.core.config import ChainSettings

from .exceptions import (
    AllEndpointsUnavailableError,
    ChainIdMismatchError,
    RPCError,
    ReceiptTimeoutError,
    TransientNetworkError,
)

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]

_ALREADY_KNOWN_MARKERS = ("already known", "known transaction")
_NONCE_TOO_LOW_MARKER = "nonce too low"


@dataclass(slots=True)
class RPCEndpoint:
    url: str
    chain_id: int
    alive: bool | None = None
    excluded: bool = False
    last_checked: datetime | None = None
    last_error: str | None = None


class RPCGateway:
    """Executes JSON-RPC calls against the preferred live endpoint."""

    def __init__(
        self,
        urls: Sequence[str],
        *,
        chain_id: int,
        probe_timeout: float = 5.0,
        request_timeout: float = 10.0,
        submit_timeout: float = 30.0,
        retry_budget: int = 2,
        retry_backoff: float = 1.0,
        receipt_timeout: float = 120.0,
        receipt_poll_interval: float = 2.0,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        if not urls:
            raise ValueError("at least one RPC endpoint is required")
        self._endpoints = [RPCEndpoint(url=url, chain_id=chain_id) for url in urls]
        self._cursor = 0
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self._client = client or httpx.AsyncClient(headers={"Accept": "application/json"})
        self._owns_client = client is None
        self._sleep = sleep

        self.chain_id = chain_id
        self.probe_timeout = probe_timeout
        self.request_timeout = request_timeout
        self.submit_timeout = submit_timeout
        self.retry_budget = retry_budget
        self.retry_backoff = retry_backoff
        self.receipt_timeout = receipt_timeout
        self.receipt_poll_interval = receipt_poll_interval

    @classmethod
    def from_settings(
        cls,
        settings: ChainSettings,
        *,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> "RPCGateway":
        return cls(
            settings.rpc_urls,
            chain_id=settings.chain_id,
            probe_timeout=settings.probe_timeout,
            request_timeout=settings.request_timeout,
            submit_timeout=settings.submit_timeout,
            retry_budget=settings.retry_budget,
            retry_backoff=settings.retry_backoff,
            receipt_timeout=settings.receipt_timeout,
            receipt_poll_interval=settings.receipt_poll_interval,
            client=client,
            sleep=sleep,
        )

    @property
    def endpoints(self) -> list[RPCEndpoint]:
        """Snapshot of the endpoint pool for diagnostics."""
        return [replace(endpoint) for endpoint in self._endpoints]

    @property
    def current_url(self) -> str:
        return self._endpoints[self._cursor].url

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ------------------------------------------------------------------ calls

    async def call(self, method: str, params: Sequence[Any] | None = None, *, timeout: float | None = None) -> Any:
        """Run ``method`` on the current endpoint, rotating on transient failure."""
        attempts: dict[str, str] = {}
        params = list(params or [])
        for attempt in range(self.retry_budget + 1):
            endpoint = await self._acquire_endpoint(attempts, method)
            try:
                result = await self._request(endpoint, method, params, timeout or self.request_timeout)
            except TransientNetworkError as exc:
                attempts[endpoint.url] = str(exc)
                logger.warning(
                    "RPC %s failed on %s (attempt %d/%d): %s",
                    method,
                    endpoint.url,
                    attempt + 1,
                    self.retry_budget + 1,
                    exc,
                )
                await self._mark_dead(endpoint, str(exc))
                if attempt < self.retry_budget:
                    await self._sleep(self.retry_backoff * (attempt + 1))
                continue
            await self._mark_alive(endpoint)
            return result

        logger.error("RPC %s exhausted retry budget: %s", method, attempts)
        raise AllEndpointsUnavailableError(method, attempts)

    async def probe(self, endpoint: RPCEndpoint) -> bool:
        """Check reachability and chain id of ``endpoint``; updates its liveness flag."""
        try:
            reported = await self._request(endpoint, "eth_chainId", [], self.probe_timeout)
            chain_id = int(reported, 16)
        except TransientNetworkError as exc:
            await self._mark_dead(endpoint, str(exc))
            return False
        except (RPCError, TypeError, ValueError) as exc:
            await self._mark_dead(endpoint, f"invalid eth_chainId response: {exc}")
            return False

        if chain_id != endpoint.chain_id:
            error = ChainIdMismatchError(endpoint.url, endpoint.chain_id, chain_id)
            logger.error("Excluding RPC endpoint: %s", error)
            async with self._lock:
                endpoint.excluded = True
                endpoint.alive = False
                endpoint.last_error = str(error)
                endpoint.last_checked = _utcnow()
                self._advance_from(endpoint)
            return False

        async with self._lock:
            endpoint.alive = True
            endpoint.last_error = None
            endpoint.last_checked = _utcnow()
        logger.info("Using RPC endpoint %s (chain id %d)", endpoint.url, chain_id)
        return True

    async def ensure_ready(self) -> RPCEndpoint:
        """Probe endpoints in order and select the first live one.

        When nothing answers the first usable endpoint stays current so that
        the next call still has somewhere to go.
        """
        for index, endpoint in enumerate(self._endpoints):
            if endpoint.excluded:
                continue
            if endpoint.alive or await self.probe(endpoint):
                async with self._lock:
                    self._cursor = index
                return endpoint

        logger.warning("No RPC endpoint answered the readiness probe")
        async with self._lock:
            usable = [index for index, endpoint in enumerate(self._endpoints) if not endpoint.excluded]
            self._cursor = usable[0] if usable else 0
            return self._endpoints[self._cursor]

    # ---------------------------------------------------------------- helpers

    async def get_chain_id(self) -> int:
        return int(await self.call("eth_chainId"), 16)

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return int(await self.call("eth_getBalance", [address, block]), 16)

    async def get_code(self, address: str, block: str = "latest") -> str:
        return await self.call("eth_getCode", [address, block])

    async def get_transaction_count(self, address: str, block: str = "pending") -> int:
        return int(await self.call("eth_getTransactionCount", [address, block]), 16)

    async def gas_price(self) -> int:
        return int(await self.call("eth_gasPrice"), 16)

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        return await self.call("eth_call", [{"to": to, "data": data}, block])

    async def send_raw_transaction(self, raw_transaction: str, *, tx_hash: str | None = None) -> str:
        """Broadcast a signed transaction and return its hash.

        A resubmission after a timed-out attempt may be reported as already
        known by the next endpoint; that counts as success when the locally
        computed ``tx_hash`` is supplied. If the first attempt was already
        mined the node answers "nonce too low" instead; the transaction counts
        as submitted only when a receipt for ``tx_hash`` exists.
        """
        try:
            return await self.call("eth_sendRawTransaction", [raw_transaction], timeout=self.submit_timeout)
        except RPCError as exc:
            message = exc.message.lower()
            if not tx_hash:
                raise
            if any(marker in message for marker in _ALREADY_KNOWN_MARKERS):
                logger.info("Transaction %s already known to the node", tx_hash)
                return tx_hash
            if _NONCE_TOO_LOW_MARKER in message and await self.get_transaction_receipt(tx_hash) is not None:
                logger.info("Transaction %s already mined before resubmission", tx_hash)
                return tx_hash
            raise

    async def get_transaction_receipt(self, tx_hash: str) -> dict[str, Any] | None:
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(self, tx_hash: str, *, timeout: float | None = None) -> dict[str, Any]:
        timeout = self.receipt_timeout if timeout is None else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt is not None:
                return receipt
            if loop.time() >= deadline:
                raise ReceiptTimeoutError(tx_hash, timeout)
            await self._sleep(self.receipt_poll_interval)

    # --------------------------------------------------------------- internal

    async def _request(self, endpoint: RPCEndpoint, method: str, params: list[Any], timeout: float) -> Any:
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(endpoint.url, json=payload, timeout=timeout)
        except httpx.TimeoutException as exc:
            raise TransientNetworkError(f"timeout after {timeout:g}s") from exc
        except httpx.TransportError as exc:
            raise TransientNetworkError(str(exc) or exc.__class__.__name__) from exc

        if response.status_code >= 400:
            raise TransientNetworkError(f"HTTP {response.status_code}")
        try:
            body = response.json()
        except ValueError as exc:
            raise TransientNetworkError("malformed JSON-RPC response") from exc
        if not isinstance(body, dict):
            raise TransientNetworkError("malformed JSON-RPC response")

        error = body.get("error")
        if error:
            if isinstance(error, dict):
                raise RPCError(error.get("code"), str(error.get("message", "")), error.get("data"))
            raise RPCError(None, str(error))
        if "result" not in body:
            raise TransientNetworkError("JSON-RPC response without result")
        return body["result"]

    async def _acquire_endpoint(self, attempts: dict[str, str], method: str) -> RPCEndpoint:
        """Return the endpoint for the next attempt, probing unverified candidates."""
        for _ in range(len(self._endpoints)):
            async with self._lock:
                if all(endpoint.excluded for endpoint in self._endpoints):
                    break
                endpoint = self._endpoints[self._cursor]
            if endpoint.excluded:
                async with self._lock:
                    self._advance_from(endpoint)
                continue
            if endpoint.alive is not None:
                return endpoint
            if await self.probe(endpoint):
                return endpoint
            if endpoint.last_error:
                attempts[endpoint.url] = endpoint.last_error
        else:
            async with self._lock:
                return self._endpoints[self._cursor]

        for endpoint in self._endpoints:
            attempts.setdefault(endpoint.url, endpoint.last_error or "excluded")
        raise AllEndpointsUnavailableError(method, attempts)

    async def _mark_alive(self, endpoint: RPCEndpoint) -> None:
        async with self._lock:
            endpoint.alive = True
            endpoint.last_error = None
            endpoint.last_checked = _utcnow()

    async def _mark_dead(self, endpoint: RPCEndpoint, error: str) -> None:
        async with self._lock:
            endpoint.alive = False
            endpoint.last_error = error
            endpoint.last_checked = _utcnow()
            self._advance_from(endpoint)

    def _advance_from(self, failed: RPCEndpoint) -> None:
        """Move the cursor past ``failed``; caller must hold ``self._lock``.

        Only the caller that observed the current endpoint failing moves the
        cursor, so concurrent failures of the same endpoint rotate once.
        """
        if self._endpoints[self._cursor] is not failed:
            return
        count = len(self._endpoints)
        order = [(self._cursor + offset) % count for offset in range(1, count + 1)]
        candidates = [index for index in order if not self._endpoints[index].excluded]
        if not candidates:
            return
        preferred = [index for index in candidates if self._endpoints[index].alive is not False]
        self._cursor = (preferred or candidates)[0]
        logger.info("Rotated RPC endpoint %s -> %s", failed.url, self._endpoints[self._cursor].url)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["RPCEndpoint", "RPCGateway"]

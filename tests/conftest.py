from __future__ import annotations

import json
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Optional
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
import rlp
from eth_abi import decode, encode
from eth_account import Account
from eth_utils import function_signature_to_4byte_selector, keccak, to_checksum_address
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from custody_engine.core.config import ChainSettings, FundingSettings, QuoteSettings, Settings, VaultSettings
from custody_engine.core.crypto import KeyVault
from custody_engine.domain.funding import FundingService, SigningMasterWallet
from custody_engine.domain.swaps import SwapOrchestrator
from custody_engine.infrastructure.chain import RPCGateway
from custody_engine.infrastructure.database import init_db
from custody_engine.infrastructure.quotes import QuoteBroker

CHAIN_ID = 1074
RPC_URL = "https://rpc.test"
QUOTE_URL = "https://quotes.test/swap/v1/quote"
MASTER_KEY = "0x" + "4c" * 32
MASTER_ADDRESS = Account.from_key(MASTER_KEY).address
ROUTER = to_checksum_address("0x" + "ab" * 20)
SPENDER = to_checksum_address("0x" + "cd" * 20)
TOKEN = to_checksum_address("0x" + "12" * 20)
ETHER = 10**18


def _selector(signature: str) -> str:
    return "0x" + function_signature_to_4byte_selector(signature).hex()


SELECTORS = {
    "decimals": _selector("decimals()"),
    "symbol": _selector("symbol()"),
    "balanceOf": _selector("balanceOf(address)"),
    "allowance": _selector("allowance(address,address)"),
    "approve": _selector("approve(address,uint256)"),
}


async def no_sleep(_: float) -> None:
    return None


@dataclass
class SentTransaction:
    hash: str
    sender: str
    to: str
    value: int
    data: str
    gas: int
    nonce: int


@dataclass
class FakeChain:
    """In-memory JSON-RPC node: applies value transfers and ERC-20 approvals from raw transactions."""

    chain_id: int = CHAIN_ID
    gas_price: int = 10**9
    balances: dict[str, int] = field(default_factory=dict)
    token_decimals: dict[str, int] = field(default_factory=dict)
    token_symbols: dict[str, str] = field(default_factory=dict)
    token_balances: dict[tuple[str, str], int] = field(default_factory=dict)
    allowances: dict[tuple[str, str, str], int] = field(default_factory=dict)
    reverting: set[str] = field(default_factory=set)
    sent: list[SentTransaction] = field(default_factory=list)
    calls: list[str] = field(default_factory=list)

    def set_balance(self, address: str, wei: int) -> None:
        self.balances[address.lower()] = wei

    def balance(self, address: str) -> int:
        return self.balances.get(address.lower(), 0)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        method, params = body["method"], body.get("params", [])
        self.calls.append(method)
        handler = getattr(self, "rpc_" + method)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": handler(*params)})

    def rpc_eth_chainId(self) -> str:
        return hex(self.chain_id)

    def rpc_eth_getBalance(self, address: str, _block: str) -> str:
        return hex(self.balance(address))

    def rpc_eth_getTransactionCount(self, address: str, _block: str) -> str:
        return hex(sum(1 for tx in self.sent if tx.sender.lower() == address.lower()))

    def rpc_eth_gasPrice(self) -> str:
        return hex(self.gas_price)

    def rpc_eth_getTransactionReceipt(self, tx_hash: str) -> Optional[dict[str, Any]]:
        for tx in self.sent:
            if tx.hash == tx_hash:
                failed = tx.to.lower() in self.reverting
                return {"transactionHash": tx.hash, "status": "0x0" if failed else "0x1"}
        return None

    def rpc_eth_sendRawTransaction(self, raw: str) -> str:
        raw_bytes = bytes.fromhex(raw[2:])
        nonce, _gas_price, gas, to, value, data, *_ = rlp.decode(raw_bytes)
        tx = SentTransaction(
            hash="0x" + keccak(raw_bytes).hex(),
            sender=Account.recover_transaction(raw),
            to=to_checksum_address(to),
            value=int.from_bytes(value, "big"),
            data="0x" + data.hex(),
            gas=int.from_bytes(gas, "big"),
            nonce=int.from_bytes(nonce, "big"),
        )
        self.sent.append(tx)
        if tx.to.lower() not in self.reverting:
            self._apply(tx)
        return tx.hash

    def rpc_eth_call(self, call: dict[str, str], _block: str) -> str:
        token = call["to"].lower()
        data = call["data"]
        selector, args = data[:10], bytes.fromhex(data[10:])
        if selector == SELECTORS["decimals"] and token in self.token_decimals:
            return "0x" + encode(["uint8"], [self.token_decimals[token]]).hex()
        if selector == SELECTORS["symbol"] and token in self.token_symbols:
            return "0x" + encode(["string"], [self.token_symbols[token]]).hex()
        if selector == SELECTORS["balanceOf"]:
            (owner,) = decode(["address"], args)
            return "0x" + encode(["uint256"], [self.token_balances.get((token, owner.lower()), 0)]).hex()
        if selector == SELECTORS["allowance"]:
            owner, spender = decode(["address", "address"], args)
            value = self.allowances.get((token, owner.lower(), spender.lower()), 0)
            return "0x" + encode(["uint256"], [value]).hex()
        return "0x"

    def _apply(self, tx: SentTransaction) -> None:
        if tx.value:
            self.balances[tx.sender.lower()] = self.balance(tx.sender) - tx.value
            self.balances[tx.to.lower()] = self.balance(tx.to) + tx.value
        if tx.data.startswith(SELECTORS["approve"]):
            spender, amount = decode(["address", "uint256"], bytes.fromhex(tx.data[10:]))
            self.allowances[(tx.to.lower(), tx.sender.lower(), spender.lower())] = amount


@dataclass
class FakeQuoteService:
    """Quote endpoint fake; ``responders`` maps a base URL to a callable producing the response."""

    responders: dict[str, Callable[[dict[str, str]], httpx.Response]] = field(default_factory=dict)
    requests: list[tuple[str, dict[str, str]]] = field(default_factory=list)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        parsed = urlparse(str(request.url))
        base_url = f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
        params = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        self.requests.append((base_url, params))
        responder = self.responders.get(base_url, valid_quote)
        return responder(params)


def valid_quote(params: dict[str, str]) -> httpx.Response:
    native = params["sellToken"] == "ETH"
    return httpx.Response(
        200,
        json={
            "to": ROUTER,
            "data": "0xd9627aa4",
            "value": params["sellAmount"] if native else "0",
            "buyAmount": "250000000",
            "estimatedGas": "150000",
            "allowanceTarget": SPENDER,
        },
    )


@pytest.fixture
def chain() -> FakeChain:
    fake = FakeChain()
    fake.set_balance(MASTER_ADDRESS, 10 * ETHER)
    return fake


@pytest.fixture
def quotes() -> FakeQuoteService:
    return FakeQuoteService()


@pytest.fixture
async def http_client(chain: FakeChain, quotes: FakeQuoteService):
    def route(request: httpx.Request) -> httpx.Response:
        return chain(request) if request.method == "POST" else quotes(request)

    async with httpx.AsyncClient(transport=httpx.MockTransport(route)) as client:
        yield client


@pytest.fixture
def settings() -> Settings:
    return Settings(
        environment="test",
        vault=VaultSettings(encryption_secret="unit-test-secret", kdf_salt="unit-test-salt", kdf_iterations=1_000),
        chain=ChainSettings(rpc_urls=[RPC_URL], retry_backoff=0, receipt_poll_interval=0),
        quotes=QuoteSettings(base_urls=[QUOTE_URL], retry_delay=0),
        funding=FundingSettings(master_private_key=MASTER_KEY, settle_delay=0),
    )


@pytest.fixture
def vault(settings: Settings) -> KeyVault:
    return KeyVault.from_settings(settings.vault)


@pytest.fixture
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'custody.db'}")
    await init_db(engine)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture
def gateway(settings: Settings, http_client: httpx.AsyncClient) -> RPCGateway:
    return RPCGateway.from_settings(settings.chain, client=http_client, sleep=no_sleep)


@pytest.fixture
def broker(settings: Settings, http_client: httpx.AsyncClient) -> QuoteBroker:
    return QuoteBroker.from_settings(settings.quotes, settings.chain, client=http_client, sleep=no_sleep)


@pytest.fixture
def funding(settings: Settings, gateway: RPCGateway) -> FundingService:
    return FundingService.from_settings(settings, gateway, SigningMasterWallet(MASTER_KEY), sleep=no_sleep)


@pytest.fixture
def orchestrator(session_factory, gateway, broker, vault, funding, settings) -> SwapOrchestrator:
    return SwapOrchestrator(
        session_factory=session_factory,
        gateway=gateway,
        broker=broker,
        vault=vault,
        funding=funding,
        settings=settings,
    )


def ether(amount: str) -> int:
    return int(Decimal(amount) * ETHER)

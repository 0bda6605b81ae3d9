import httpx
import pytest

from custody_engine.core.container import ApplicationContainer
from custody_engine.core.security import create_access_token
from custody_engine.main import create_app

from conftest import MASTER_ADDRESS, ether

EXTERNAL = "0x52908400098527886E0F7030069857D2E4169EE7"


@pytest.fixture
async def api(settings, vault, gateway, broker, funding, orchestrator):
    container = ApplicationContainer(settings, vault, gateway, broker, funding, orchestrator)
    app = create_app(container)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        client.headers["Authorization"] = f"Bearer {create_access_token('user-1')}"
        yield client


async def test_health_needs_no_token(api):
    del api.headers["Authorization"]

    response = await api.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


async def test_missing_token_is_rejected(api):
    del api.headers["Authorization"]

    response = await api.get("/api/wallets/status")

    assert response.status_code in (401, 403)


async def test_invalid_token_is_rejected(api):
    api.headers["Authorization"] = "Bearer not-a-jwt"

    response = await api.get("/api/wallets/status")

    assert response.status_code == 401


async def test_create_custodial_wallet_then_status(api):
    created = await api.post("/api/wallets/custodial")

    assert created.status_code == 200
    body = created.json()
    assert body["created"] is True
    assert body["wallet"]["is_custodial"] is True
    assert body["wallet"]["chain_id"] == 1074

    status = (await api.get("/api/wallets/status")).json()
    assert status["has_connected_wallet"] is True
    assert status["wallet_type"] == "custodial"
    assert status["connected_address"] == body["wallet"]["address"]
    assert status["can_execute_transactions"] is True


async def test_external_wallet_and_disconnect(api):
    connected = await api.post("/api/wallets/external", json={"address": EXTERNAL, "name": "Ledger"})
    assert connected.status_code == 200
    assert connected.json()["wallet"]["is_custodial"] is False

    listed = (await api.get("/api/wallets")).json()
    assert listed["total"] == 1

    disconnected = await api.delete("/api/wallets/connected")
    assert disconnected.status_code == 200
    assert disconnected.json()["is_connected"] is False

    assert (await api.get("/api/wallets/connected")).status_code == 404


async def test_invalid_external_address_is_bad_request(api):
    response = await api.post("/api/wallets/external", json={"address": "0x" + "zz" * 20})

    assert response.status_code == 400


async def test_swap_without_wallet_is_not_found(api):
    response = await api.post("/api/swaps", json={"sell_token": "ETH", "buy_token": "USDC", "amount": "0.1"})

    assert response.status_code == 404


async def test_swap_with_non_positive_amount_is_unprocessable(api):
    response = await api.post("/api/swaps", json={"sell_token": "ETH", "buy_token": "USDC", "amount": "0"})

    assert response.status_code == 422


async def test_underfunded_master_maps_to_payment_required(api, chain):
    await api.post("/api/wallets/custodial")
    chain.set_balance(MASTER_ADDRESS, 0)

    response = await api.post("/api/swaps/send", json={"to_address": EXTERNAL, "amount": "0.1"})

    assert response.status_code == 402
    assert MASTER_ADDRESS in response.json()["detail"]


async def test_withdrawal_then_history_uses_camel_case(api):
    await api.post("/api/wallets/custodial")

    withdrawal = await api.post("/api/withdrawals", json={"amount_usd": "12.5"})
    assert withdrawal.status_code == 200
    reference = withdrawal.json()["reference"]
    assert reference.startswith("sim_withdraw_")

    history = (await api.get("/api/transactions", params={"kind": "withdraw"})).json()
    assert history["total"] == 1
    (entry,) = history["entries"]
    assert entry["owner"] == "user-1"
    assert entry["txHash"] == reference
    assert entry["status"] == "completed"
    assert "createdAt" in entry
    assert history["summary"].startswith("WITHDRAW - 12.5 USD")

    stats = (await api.get("/api/transactions/stats")).json()["stats"]
    assert stats == [{"kind": "withdraw", "count": 1, "total_value_usd": "12.5"}]


async def test_native_balance_endpoint(api, chain):
    chain.set_balance(EXTERNAL, ether("2"))

    response = await api.get(f"/api/balances/native/{EXTERNAL}")

    assert response.status_code == 200
    assert response.json() == {
        "address": EXTERNAL,
        "balance_wei": str(ether("2")),
        "balance": "2",
        "symbol": "ETH",
    }


async def test_master_wallet_info(api):
    response = await api.get("/api/funding/master")

    body = response.json()
    assert body["address"] == MASTER_ADDRESS
    assert body["balance"] == "10"
    assert body["needs_funding"] is False
    assert body["read_only"] is False


async def test_manual_funding_endpoint(api, chain):
    wallet = (await api.post("/api/wallets/custodial")).json()["wallet"]

    response = await api.post("/api/funding/wallet", json={"amount": "0.05"})

    assert response.status_code == 200
    assert response.json()["funded"] is True
    assert chain.balance(wallet["address"]) == ether("0.05")

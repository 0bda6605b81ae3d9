from decimal import Decimal

import httpx
import pytest

from custody_engine.core.crypto import DecryptionError, KeyVault
from custody_engine.domain.funding import InsufficientFundsError, MasterWalletUnderfundedError, ReadOnlyMasterWallet
from custody_engine.domain.swaps import InvalidAmountError, SwapOrchestrator, TransactionRevertedError
from custody_engine.domain.transactions import TransactionKind, TransactionStatus
from custody_engine.domain.wallets import WalletAccessError, WalletNotFoundError
from custody_engine.infrastructure.quotes import NoQuoteAvailableError

from conftest import MASTER_ADDRESS, QUOTE_URL, ROUTER, SELECTORS, SPENDER, TOKEN, ether

USDC = "0x" + "55" * 20
EXTERNAL = "0x52908400098527886E0F7030069857D2E4169EE7"


async def custodial_address(orchestrator: SwapOrchestrator, user_id: str = "user-1") -> str:
    connection = await orchestrator.create_or_connect_wallet(user_id)
    return connection.wallet.address


async def assert_all_terminal(orchestrator: SwapOrchestrator, user_id: str = "user-1") -> None:
    for entry in await orchestrator.list_history(user_id, limit=100):
        assert entry.status is not TransactionStatus.PENDING


async def test_native_swap_funds_shortfall_then_completes(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("0.05"))

    result = await orchestrator.swap("user-1", "ETH", USDC, "0.1")

    funding_tx, swap_tx = chain.sent
    assert funding_tx.sender == MASTER_ADDRESS
    assert funding_tx.to == address
    assert funding_tx.value == 52_000_000_000_000_000
    assert result.funding.funded is True

    _, params = quotes.requests[0]
    assert (params["sellToken"], params["buyToken"], params["sellAmount"]) == ("ETH", USDC, "100000000000000000")
    assert params["takerAddress"] == address

    assert swap_tx.sender == address
    assert swap_tx.to == ROUTER
    assert swap_tx.value == 10**17
    assert swap_tx.gas == 300_000
    assert result.success is True
    assert result.tx_hash == swap_tx.hash
    assert result.approval_tx_hash is None

    (entry,) = await orchestrator.list_history("user-1")
    assert entry.id == result.transaction_id
    assert entry.kind is TransactionKind.SWAP
    assert entry.status is TransactionStatus.COMPLETED
    assert entry.tx_hash == swap_tx.hash
    assert entry.amount == "0.1"
    assert entry.meta["quote"]["to"] == ROUTER
    assert entry.completed_at is not None


async def test_swap_gas_uses_padded_estimate_when_larger(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("1"))
    quotes.responders[QUOTE_URL] = lambda params: httpx.Response(
        200, json={"to": ROUTER, "data": "0x", "value": params["sellAmount"], "estimatedGas": "400000"}
    )

    await orchestrator.swap("user-1", "SMR", USDC, "0.5")

    assert chain.sent[-1].gas == 480_000


async def test_erc20_sell_with_sufficient_allowance_skips_approval(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("0.01"))
    chain.token_decimals[TOKEN.lower()] = 6
    chain.allowances[(TOKEN.lower(), address.lower(), SPENDER.lower())] = 10**12

    result = await orchestrator.swap("user-1", TOKEN, "ETH", "25")

    (swap_tx,) = chain.sent
    assert swap_tx.to == ROUTER
    assert result.funding.funded is False
    _, params = quotes.requests[0]
    assert params["sellAmount"] == "25000000"


async def test_erc20_sell_with_low_allowance_approves_first(orchestrator, chain):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("0.01"))
    chain.token_decimals[TOKEN.lower()] = 6

    result = await orchestrator.swap("user-1", TOKEN, "ETH", "25")

    approve_tx, swap_tx = chain.sent
    assert approve_tx.to == TOKEN
    assert approve_tx.data.startswith(SELECTORS["approve"])
    assert approve_tx.gas == 100_000
    assert chain.allowances[(TOKEN.lower(), address.lower(), SPENDER.lower())] == 25_000_000
    assert result.approval_tx_hash == approve_tx.hash
    assert result.tx_hash == swap_tx.hash


async def test_unreadable_decimals_default_to_eighteen(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("0.01"))
    chain.allowances[(TOKEN.lower(), address.lower(), SPENDER.lower())] = 10**30

    await orchestrator.swap("user-1", TOKEN, "ETH", "2")

    _, params = quotes.requests[0]
    assert params["sellAmount"] == str(2 * 10**18)


async def test_underfunded_master_leaves_no_completed_entry(orchestrator, chain, quotes):
    await custodial_address(orchestrator)
    chain.set_balance(MASTER_ADDRESS, ether("0.001"))

    with pytest.raises(MasterWalletUnderfundedError) as excinfo:
        await orchestrator.swap("user-1", "ETH", USDC, "0.048")

    assert excinfo.value.shortfall_wei == ether("0.05")
    assert chain.sent == []
    assert quotes.requests == []
    assert await orchestrator.list_history("user-1") == []


async def test_read_only_master_surfaces_as_insufficient_funds(orchestrator, chain):
    address = await custodial_address(orchestrator)
    orchestrator._funding.master = ReadOnlyMasterWallet(MASTER_ADDRESS)

    with pytest.raises(InsufficientFundsError) as excinfo:
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")

    error = excinfo.value
    assert error.address == address
    assert error.required_wei == ether("0.102")
    assert error.master_address == MASTER_ADDRESS
    assert error.__cause__ is not None
    assert chain.sent == []


async def test_reverted_swap_marks_entry_failed(orchestrator, chain):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("1"))
    chain.reverting.add(ROUTER.lower())

    with pytest.raises(TransactionRevertedError) as excinfo:
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")

    (entry,) = await orchestrator.list_history("user-1")
    assert entry.status is TransactionStatus.FAILED
    assert entry.tx_hash == excinfo.value.tx_hash == chain.sent[-1].hash
    assert "reverted" in entry.error_detail


async def test_quote_failure_raises_before_any_entry(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("1"))
    quotes.responders[QUOTE_URL] = lambda params: httpx.Response(500)

    with pytest.raises(NoQuoteAvailableError):
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")

    assert await orchestrator.list_history("user-1") == []


async def test_submission_failure_marks_entry_failed(orchestrator, chain, quotes):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("1"))
    quotes.responders[QUOTE_URL] = lambda params: httpx.Response(
        200, json={"to": ROUTER, "data": "0xzz", "value": "0"}
    )

    with pytest.raises(Exception):
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")

    (entry,) = await orchestrator.list_history("user-1")
    assert entry.status is TransactionStatus.FAILED
    assert entry.error_detail
    await assert_all_terminal(orchestrator)


async def test_external_wallet_cannot_swap(orchestrator, chain):
    await orchestrator.connect_external_wallet("user-1", EXTERNAL)

    with pytest.raises(WalletAccessError):
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")
    assert chain.sent == []


async def test_swap_without_wallet_raises_not_found(orchestrator):
    with pytest.raises(WalletNotFoundError):
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")


@pytest.mark.parametrize("amount", ["0", "-1", "abc", "NaN"])
async def test_invalid_amounts_are_rejected(orchestrator, chain, amount):
    await custodial_address(orchestrator)

    with pytest.raises(InvalidAmountError):
        await orchestrator.swap("user-1", "ETH", USDC, amount)
    assert chain.sent == []


async def test_dust_amount_below_token_precision_is_rejected(orchestrator, chain):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("1"))
    chain.token_decimals[TOKEN.lower()] = 2

    with pytest.raises(InvalidAmountError):
        await orchestrator.swap("user-1", TOKEN, "ETH", "0.001")


async def test_key_that_cannot_be_decrypted_fails_before_funding(orchestrator, chain):
    await custodial_address(orchestrator)
    orchestrator._vault = KeyVault("a-different-secret", salt="unit-test-salt", iterations=1_000)

    with pytest.raises(DecryptionError):
        await orchestrator.swap("user-1", "ETH", USDC, "0.1")
    assert chain.sent == []


async def test_send_transfers_native_tokens(orchestrator, chain):
    address = await custodial_address(orchestrator)
    chain.set_balance(address, ether("0.3"))

    result = await orchestrator.send("user-1", EXTERNAL.lower(), "0.25")

    (transfer,) = chain.sent
    assert transfer.to == EXTERNAL
    assert transfer.value == ether("0.25")
    assert result.to_address == EXTERNAL
    assert result.amount == "0.25"

    (entry,) = await orchestrator.list_history("user-1")
    assert entry.kind is TransactionKind.SEND
    assert entry.status is TransactionStatus.COMPLETED
    assert entry.to_wallet == EXTERNAL
    assert entry.tx_hash == transfer.hash


async def test_send_tops_up_amount_plus_gas_reserve(orchestrator, chain):
    address = await custodial_address(orchestrator)

    await orchestrator.send("user-1", EXTERNAL, "0.01")

    funding_tx, transfer = chain.sent
    assert funding_tx.value == ether("0.012")
    assert transfer.value == ether("0.01")


async def test_withdraw_to_fiat_records_completed_entry(orchestrator):
    await custodial_address(orchestrator)

    result = await orchestrator.withdraw_to_fiat("user-1", "25.50")

    assert result.reference.startswith("sim_withdraw_")
    assert result.message == "Withdrawal request submitted for $25.5 (simulation)."
    (entry,) = await orchestrator.list_history("user-1")
    assert entry.kind is TransactionKind.WITHDRAW
    assert entry.status is TransactionStatus.COMPLETED
    assert entry.tx_hash == result.reference
    assert entry.value_usd == "25.5"
    assert "IOTA Bank" in entry.notes

    stats = await orchestrator.transaction_stats("user-1")
    assert [(item.kind, item.count, item.total_value_usd) for item in stats] == [
        (TransactionKind.WITHDRAW, 1, Decimal("25.5"))
    ]


async def test_withdraw_requires_connected_wallet(orchestrator):
    with pytest.raises(WalletNotFoundError):
        await orchestrator.withdraw_to_fiat("user-1", "10")


async def test_withdraw_rejects_non_positive_amount(orchestrator):
    await custodial_address(orchestrator)

    with pytest.raises(InvalidAmountError):
        await orchestrator.withdraw_to_fiat("user-1", "0")


async def test_token_balance_falls_back_to_default_symbol(orchestrator, chain):
    owner = "0x" + "66" * 20
    chain.token_decimals[TOKEN.lower()] = 6
    chain.token_balances[(TOKEN.lower(), owner)] = 1_500_000

    balance = await orchestrator.get_token_balance(owner, TOKEN)

    assert balance.symbol == "TOKEN"
    assert balance.decimals == 6
    assert balance.balance == "1.5"


async def test_token_balance_reads_symbol(orchestrator, chain):
    owner = "0x" + "66" * 20
    chain.token_symbols[TOKEN.lower()] = "USDC"

    balance = await orchestrator.get_token_balance(owner, TOKEN)

    assert balance.symbol == "USDC"
    assert balance.decimals == 18
    assert balance.balance == "0"


async def test_native_balance_is_formatted(orchestrator, chain):
    chain.set_balance(EXTERNAL, ether("1.25"))

    balance = await orchestrator.get_native_balance(EXTERNAL.lower())

    assert balance.address == EXTERNAL
    assert balance.balance_wei == ether("1.25")
    assert balance.balance == "1.25"
    assert balance.symbol == "ETH"


async def test_manual_funding_tops_up_connected_wallet(orchestrator, chain):
    address = await custodial_address(orchestrator)

    result = await orchestrator.fund_wallet("user-1", "0.03")

    assert result.funded is True
    assert chain.balance(address) == ether("0.03")


async def test_history_text(orchestrator):
    await custodial_address(orchestrator)
    await orchestrator.withdraw_to_fiat("user-1", "5")

    text = await orchestrator.history_text("user-1")

    assert text.startswith("WITHDRAW - 5 USD on ")
    assert text.endswith("(Completed)")


async def test_new_custodial_wallet_is_funded_when_enabled(orchestrator, chain, settings):
    settings.funding.fund_new_wallets = True

    address = await custodial_address(orchestrator)

    assert chain.balance(address) == ether("0.02")

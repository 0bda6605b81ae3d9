"""Swap orchestrator: the single entry point for money movement.

A swap walks ``INITIATED -> FUNDING? -> QUOTING -> APPROVING? -> SUBMITTED ->
CONFIRMED | REVERTED``. The ledger entry is opened once a quote exists and
every later transition is committed in its own short session, so a crash
or error leaves the entry in the state it actually reached.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import time
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from custody_engine.core.config import Settings
from custody_engine.core.crypto import EncryptedKeyMaterial, KeyVault
from custody_engine.domain.funding import FundingError, FundingResult, FundingService, InsufficientFundsError
from custody_engine.domain.funding.models import MasterWalletInfo
from custody_engine.domain.transactions import (
    KindStats,
    LedgerEntry,
    TransactionKind,
    TransactionService,
)
from custody_engine.domain.wallets import (
    Wallet,
    WalletAccessError,
    WalletConnection,
    WalletService,
    WalletStatus,
    normalize_address,
)
from custody_engine.infrastructure.chain import (
    ChainError,
    ContractReadError,
    ERC20Token,
    RPCError,
    RPCGateway,
    TransactionRequest,
    approve_calldata,
    receipt_succeeded,
    sign_and_send,
)
from custody_engine.infrastructure.chain.units import NATIVE_DECIMALS, format_units, parse_amount, to_base_units
from custody_engine.infrastructure.database import session_scope
from custody_engine.infrastructure.quotes import QuoteBroker

from .exceptions import InvalidAmountError, TransactionRevertedError
from .models import NativeBalance, SendResult, SwapResult, SwapState, TokenBalance, WithdrawalResult

logger = logging.getLogger(__name__)

DEFAULT_TOKEN_SYMBOL = "TOKEN"


class SwapOrchestrator:
    """Coordinates vault, gateway, quotes and funding; owns each operation's ledger entry."""

    def __init__(
        self,
        *,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: RPCGateway,
        broker: QuoteBroker,
        vault: KeyVault,
        funding: FundingService,
        settings: Settings,
    ) -> None:
        self._session_factory = session_factory
        self._gateway = gateway
        self._broker = broker
        self._vault = vault
        self._funding = funding
        self._settings = settings
        self._gas_reserve_wei = to_base_units(settings.funding.gas_reserve)

    # ---------------------------------------------------------------- wallets

    async def create_or_connect_wallet(self, user_id: str) -> WalletConnection:
        async with session_scope(self._session_factory) as session:
            connection = await self._wallets(session).create_or_connect_custodial(user_id)
        if connection.created and self._settings.funding.fund_new_wallets:
            await self._funding.fund_new_wallet(connection.wallet.address)
        return connection

    async def connect_external_wallet(self, user_id: str, address: str, name: Optional[str] = None) -> WalletConnection:
        async with session_scope(self._session_factory) as session:
            connection = await self._wallets(session).connect_external(user_id, address, name)
        return connection

    async def get_connected_wallet(self, user_id: str) -> Wallet | None:
        async with self._session_factory() as session:
            return await self._wallets(session).get_connected_wallet(user_id)

    async def list_wallets(self, user_id: str) -> Sequence[Wallet]:
        async with self._session_factory() as session:
            return await self._wallets(session).list_wallets(user_id)

    async def disconnect_wallet(self, user_id: str, address: Optional[str] = None) -> Wallet | None:
        async with session_scope(self._session_factory) as session:
            wallet = await self._wallets(session).disconnect_wallet(user_id, address)
        return wallet

    async def wallet_status(self, user_id: str) -> WalletStatus:
        async with self._session_factory() as session:
            return await self._wallets(session).wallet_status(user_id)

    # --------------------------------------------------------------- balances

    async def get_native_balance(self, address: str) -> NativeBalance:
        checksum = normalize_address(address)
        balance = await self._gateway.get_balance(checksum)
        return NativeBalance(
            address=checksum,
            balance_wei=balance,
            balance=format_units(balance),
            symbol=self._settings.chain.native_symbol,
        )

    async def get_token_balance(self, address: str, token_address: str) -> TokenBalance:
        owner = normalize_address(address)
        token = ERC20Token(self._gateway, normalize_address(token_address))
        raw = await token.balance_of(owner)
        decimals = await self._token_decimals(token)
        try:
            symbol = await token.symbol()
        except ChainError as exc:
            logger.debug("symbol() unreadable on %s: %s", token.address, exc)
            symbol = DEFAULT_TOKEN_SYMBOL
        return TokenBalance(
            address=owner,
            token_address=token.address,
            symbol=symbol,
            decimals=decimals,
            balance_wei=raw,
            balance=format_units(raw, decimals),
        )

    # ------------------------------------------------------------------- swap

    async def swap(
        self,
        user_id: str,
        sell_token: str,
        buy_token: str,
        amount: Decimal | str,
        slippage_percent: Decimal | float = 1.0,
    ) -> SwapResult:
        self._log_state(user_id, SwapState.INITIATED, f"{amount} {sell_token} -> {buy_token}")
        address, material = await self._resolve_custodial(user_id)
        human_amount = _parse_positive(amount)
        sell_token_contract: Optional[ERC20Token] = None
        if not self._broker.is_native(sell_token):
            sell_token_contract = ERC20Token(self._gateway, normalize_address(sell_token))

        required_wei = self._gas_reserve_wei
        if sell_token_contract is None:
            required_wei += _to_base_units_checked(human_amount, NATIVE_DECIMALS)
        self._log_state(user_id, SwapState.FUNDING, address)
        funding = await self._ensure_funded(address, required_wei)

        decimals = NATIVE_DECIMALS
        if sell_token_contract is not None:
            decimals = await self._token_decimals(sell_token_contract)
        sell_amount = _to_base_units_checked(human_amount, decimals)

        self._log_state(user_id, SwapState.QUOTING, f"sellAmount={sell_amount}")
        quote = await self._broker.get_quote(sell_token, buy_token, sell_amount, address, slippage_percent)

        entry = await self._open_entry(
            owner_id=user_id,
            kind=TransactionKind.SWAP,
            token=quote.sell_token,
            to_token=quote.buy_token,
            amount=_format_amount(human_amount),
            from_wallet=address,
            meta={"quote": quote.to_meta(), "slippagePercent": str(slippage_percent), "funding": _funding_meta(funding)},
        )

        tx_hash: Optional[str] = None
        approval_hash: Optional[str] = None
        try:
            if sell_token_contract is not None:
                spender = quote.allowance_target or quote.to
                approval_hash = await self._approve_if_needed(
                    user_id, material, address, sell_token_contract, spender, sell_amount
                )

            gas = self._settings.chain.swap_gas_limit
            if quote.estimated_gas:
                gas = max(gas, quote.estimated_gas * 6 // 5)
            request = TransactionRequest(to=quote.to, value=quote.value, data=quote.data, gas=gas)
            with self._vault.unlocked(material) as account:
                tx_hash = await sign_and_send(self._gateway, account, request)
            await self._mark_submitted(entry.id, tx_hash)
            self._log_state(user_id, SwapState.SUBMITTED, tx_hash)

            receipt = await self._gateway.wait_for_receipt(tx_hash)
            if not receipt_succeeded(receipt):
                self._log_state(user_id, SwapState.REVERTED, tx_hash)
                raise TransactionRevertedError(tx_hash, "swap transaction reverted on chain")
            await self._complete_entry(entry.id, tx_hash=tx_hash)
        except (Exception, asyncio.CancelledError) as exc:
            await self._fail_entry(entry.id, exc, tx_hash)
            raise

        self._log_state(user_id, SwapState.CONFIRMED, tx_hash)
        await self._touch(address)
        return SwapResult(
            transaction_id=entry.id,
            tx_hash=tx_hash,
            success=True,
            quote=quote,
            funding=funding,
            approval_tx_hash=approval_hash,
        )

    # ------------------------------------------------------------------- send

    async def send(self, user_id: str, to_address: str, amount: Decimal | str) -> SendResult:
        recipient = normalize_address(to_address)
        human_amount = _parse_positive(amount)
        value_wei = _to_base_units_checked(human_amount, NATIVE_DECIMALS)
        address, material = await self._resolve_custodial(user_id)

        funding = await self._ensure_funded(address, value_wei + self._gas_reserve_wei)
        native = self._settings.chain.native_symbol
        entry = await self._open_entry(
            owner_id=user_id,
            kind=TransactionKind.SEND,
            token=native,
            amount=_format_amount(human_amount),
            from_wallet=address,
            to_wallet=recipient,
            meta={"funding": _funding_meta(funding)},
        )

        tx_hash: Optional[str] = None
        try:
            request = TransactionRequest(to=recipient, value=value_wei, gas=self._settings.chain.transfer_gas_limit)
            with self._vault.unlocked(material) as account:
                tx_hash = await sign_and_send(self._gateway, account, request)
            await self._mark_submitted(entry.id, tx_hash)

            receipt = await self._gateway.wait_for_receipt(tx_hash)
            if not receipt_succeeded(receipt):
                raise TransactionRevertedError(tx_hash, "transfer reverted on chain")
            await self._complete_entry(entry.id, tx_hash=tx_hash)
        except (Exception, asyncio.CancelledError) as exc:
            await self._fail_entry(entry.id, exc, tx_hash)
            raise

        logger.info("Sent %s %s from %s to %s (%s)", _format_amount(human_amount), native, address, recipient, tx_hash)
        await self._touch(address)
        return SendResult(
            transaction_id=entry.id,
            tx_hash=tx_hash,
            success=True,
            from_address=address,
            to_address=recipient,
            amount=_format_amount(human_amount),
            funding=funding,
        )

    # --------------------------------------------------------------- off-ramp

    async def withdraw_to_fiat(self, user_id: str, amount_usd: Decimal | str) -> WithdrawalResult:
        """Simulated off-ramp; records a completed withdraw entry without touching the chain."""
        amount = _parse_positive(amount_usd)
        offramp = self._settings.offramp
        reference = f"sim_withdraw_{int(time.time() * 1000)}_{secrets.randbelow(10**6)}"
        amount_text = _format_amount(amount)

        async with session_scope(self._session_factory) as session:
            wallet = await self._wallets(session).require_connected_wallet(user_id)
            ledger = TransactionService.with_session(session)
            entry = await ledger.open_entry(
                owner_id=user_id,
                kind=TransactionKind.WITHDRAW,
                token=offramp.currency,
                amount=amount_text,
                value_usd=amount_text,
                from_wallet=wallet.address,
                notes=f"Simulated off-ramp to {offramp.currency} -> {offramp.bank_name} {offramp.account_number}",
                meta={"simulated": True, "reference": reference},
            )
            await ledger.complete(entry.id, tx_hash=reference)

        logger.info("Simulated withdrawal %s of %s %s for user %s", reference, amount_text, offramp.currency, user_id)
        return WithdrawalResult(
            transaction_id=entry.id,
            reference=reference,
            amount_usd=amount,
            message=f"Withdrawal request submitted for ${amount_text} (simulation).",
            estimated_time=offramp.estimated_time,
            bank_name=offramp.bank_name,
            account_number=offramp.account_number,
        )

    # ---------------------------------------------------------------- funding

    async def fund_wallet(self, user_id: str, amount: Decimal | str | None = None) -> FundingResult:
        """Top the user's connected wallet up to ``amount`` (default: new-wallet funding level)."""
        target = _parse_positive(amount) if amount is not None else self._settings.funding.new_wallet_funding
        async with self._session_factory() as session:
            wallet = await self._wallets(session).require_connected_wallet(user_id)
        return await self._funding.ensure_funded(wallet.address, _to_base_units_checked(target, NATIVE_DECIMALS))

    async def master_wallet_info(self) -> MasterWalletInfo:
        return await self._funding.master_wallet_info()

    # ---------------------------------------------------------------- history

    async def list_history(
        self,
        user_id: str,
        limit: int = 10,
        kind: Optional[TransactionKind] = None,
    ) -> Sequence[LedgerEntry]:
        async with self._session_factory() as session:
            return await TransactionService.with_session(session).list_history(user_id, limit, kind)

    async def history_text(self, user_id: str, limit: int = 10) -> str:
        return TransactionService.format_history(await self.list_history(user_id, limit))

    async def transaction_stats(self, user_id: str) -> Sequence[KindStats]:
        async with self._session_factory() as session:
            return await TransactionService.with_session(session).stats_by_kind(user_id)

    # --------------------------------------------------------------- internal

    def _wallets(self, session: AsyncSession) -> WalletService:
        return WalletService.with_session(session, self._vault, self._settings.chain)

    async def _resolve_custodial(self, user_id: str) -> tuple[str, EncryptedKeyMaterial]:
        async with self._session_factory() as session:
            address, material = await self._wallets(session).get_custodial_key(user_id)
        # Decrypt once up front so a bad key fails before any funds move.
        with self._vault.unlocked(material) as account:
            if account.address.lower() != address.lower():
                raise WalletAccessError(f"Stored key for {address} does not match the wallet address")
        return address, material

    async def _ensure_funded(self, address: str, required_wei: int) -> FundingResult:
        try:
            return await self._funding.ensure_funded(address, required_wei)
        except InsufficientFundsError:
            raise
        except (FundingError, ChainError) as exc:
            master = self._funding.master.address
            raise InsufficientFundsError(
                f"Wallet {address} needs at least {format_units(required_wei)} "
                f"{self._settings.chain.native_symbol} and automatic funding failed: {exc}. "
                f"Fund the wallet directly or fund the master wallet {master} and try again.",
                address=address,
                required_wei=required_wei,
                master_address=master,
            ) from exc

    async def _token_decimals(self, token: ERC20Token) -> int:
        try:
            return int(await token.decimals())
        except ChainError as exc:
            logger.warning("decimals() unreadable on %s, assuming %d: %s", token.address, NATIVE_DECIMALS, exc)
            return NATIVE_DECIMALS

    async def _approve_if_needed(
        self,
        user_id: str,
        material: EncryptedKeyMaterial,
        owner: str,
        token: ERC20Token,
        spender: str,
        amount: int,
    ) -> Optional[str]:
        try:
            allowance = await token.allowance(owner, spender)
        except (ContractReadError, RPCError) as exc:
            logger.warning("allowance() unreadable on %s, treating as 0: %s", token.address, exc)
            allowance = 0
        if allowance >= amount:
            logger.info("Allowance %d on %s for %s already covers %d", allowance, token.address, spender, amount)
            return None

        self._log_state(user_id, SwapState.APPROVING, f"{token.address} spender={spender}")
        request = TransactionRequest(
            to=token.address,
            data=approve_calldata(spender, amount),
            gas=self._settings.chain.approve_gas_limit,
        )
        with self._vault.unlocked(material) as account:
            tx_hash = await sign_and_send(self._gateway, account, request)
        receipt = await self._gateway.wait_for_receipt(tx_hash)
        if not receipt_succeeded(receipt):
            raise TransactionRevertedError(tx_hash, f"approval of {token.address} reverted")
        logger.info("Approval %s confirmed", tx_hash)
        return tx_hash

    async def _open_entry(self, **fields: Any) -> LedgerEntry:
        async with session_scope(self._session_factory) as session:
            entry = await TransactionService.with_session(session).open_entry(**fields)
        return entry

    async def _mark_submitted(self, entry_id: str, tx_hash: str) -> None:
        async with session_scope(self._session_factory) as session:
            await TransactionService.with_session(session).mark_submitted(entry_id, tx_hash)

    async def _complete_entry(self, entry_id: str, *, tx_hash: Optional[str] = None) -> None:
        async with session_scope(self._session_factory) as session:
            await TransactionService.with_session(session).complete(entry_id, tx_hash=tx_hash)

    async def _fail_entry(self, entry_id: str, error: BaseException, tx_hash: Optional[str]) -> None:
        detail = str(error) or error.__class__.__name__
        try:
            async with session_scope(self._session_factory) as session:
                await TransactionService.with_session(session).fail(entry_id, detail, tx_hash=tx_hash)
        except Exception:
            # The original error is re-raised by the caller; keep it as the visible one.
            logger.exception("Could not mark ledger entry %s as failed", entry_id)

    async def _touch(self, address: str) -> None:
        async with session_scope(self._session_factory) as session:
            await self._wallets(session).touch(address)

    @staticmethod
    def _log_state(user_id: str, state: SwapState, detail: str = "") -> None:
        logger.info("Swap for user %s -> %s %s", user_id, state.value.upper(), detail)


def _parse_positive(value: Decimal | str | int | float) -> Decimal:
    try:
        amount = parse_amount(value)
    except ValueError as exc:
        raise InvalidAmountError(str(exc)) from exc
    if amount <= 0:
        raise InvalidAmountError(f"Amount must be greater than zero, got {value}")
    return amount


def _to_base_units_checked(amount: Decimal, decimals: int) -> int:
    value = to_base_units(amount, decimals)
    if value <= 0:
        raise InvalidAmountError(f"Amount {amount} is below the smallest unit of a {decimals}-decimal token")
    return value


def _format_amount(amount: Decimal) -> str:
    return f"{amount.normalize():f}"


def _funding_meta(funding: FundingResult) -> dict[str, Any]:
    return {
        "funded": funding.funded,
        "txHash": funding.tx_hash,
        "shortfallWei": str(funding.shortfall_wei),
    }


__all__ = ["SwapOrchestrator"]

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from custody_engine.domain.transactions import (
    LedgerEntry,
    LedgerStateError,
    TransactionKind,
    TransactionNotFoundError,
    TransactionService,
    TransactionStatus,
)
from custody_engine.infrastructure.database import session_scope


async def open_swap(session, owner="user-1", amount="0.1", **kwargs):
    return await TransactionService.with_session(session).open_entry(
        owner_id=owner,
        kind=kwargs.pop("kind", TransactionKind.SWAP),
        token="ETH",
        amount=amount,
        **kwargs,
    )


async def test_entry_is_created_pending(session_factory):
    async with session_factory() as session:
        entry = await open_swap(session, to_token="USDC", meta={"quote": {"to": "0xrouter"}})
        await session.commit()

    assert entry.status is TransactionStatus.PENDING
    assert entry.created_at is not None
    assert entry.meta == {"quote": {"to": "0xrouter"}}
    assert not entry.is_terminal


async def test_complete_then_second_transition_is_rejected(session_factory):
    async with session_factory() as session:
        ledger = TransactionService.with_session(session)
        entry = await open_swap(session)
        await ledger.mark_submitted(entry.id, "0xhash")
        completed = await ledger.complete(entry.id)
        await session.commit()

        assert completed.status is TransactionStatus.COMPLETED
        assert completed.tx_hash == "0xhash"
        assert completed.completed_at is not None

        with pytest.raises(LedgerStateError):
            await ledger.fail(entry.id, "late failure")
        with pytest.raises(LedgerStateError):
            await ledger.complete(entry.id)
        with pytest.raises(LedgerStateError):
            await ledger.mark_submitted(entry.id, "0xother")


async def test_failed_entry_keeps_error_detail(session_factory):
    async with session_factory() as session:
        ledger = TransactionService.with_session(session)
        entry = await open_swap(session)
        failed = await ledger.fail(entry.id, "quote unavailable", tx_hash="0xdead")
        await session.commit()

    async with session_factory() as session:
        stored = await TransactionService.with_session(session).get(entry.id)

    assert failed.status is TransactionStatus.FAILED
    assert stored.error_detail == "quote unavailable"
    assert stored.tx_hash == "0xdead"


async def test_unknown_entry_raises_not_found(session_factory):
    async with session_factory() as session:
        with pytest.raises(TransactionNotFoundError):
            await TransactionService.with_session(session).complete("missing")


async def test_history_is_newest_first_and_limited(session_factory):
    async with session_factory() as session:
        ids = [(await open_swap(session, amount=str(index))).id for index in range(4)]
        await open_swap(session, owner="someone-else")
        await session.commit()

    async with session_factory() as session:
        ledger = TransactionService.with_session(session)
        history = await ledger.list_history("user-1", limit=3)
        sends = await ledger.list_history("user-1", kind=TransactionKind.SEND)

    assert [entry.id for entry in history] == list(reversed(ids))[:3]
    assert sends == []


async def test_stats_aggregate_count_and_usd_value(session_factory):
    async with session_factory() as session:
        await open_swap(session, value_usd="10.5")
        await open_swap(session, value_usd="4.5")
        await open_swap(session, kind=TransactionKind.WITHDRAW, value_usd="20")
        await open_swap(session, kind=TransactionKind.SEND)
        await session.commit()

        stats = {item.kind: item for item in await TransactionService.with_session(session).stats_by_kind("user-1")}

    assert stats[TransactionKind.SWAP].count == 2
    assert stats[TransactionKind.SWAP].total_value_usd == Decimal("15.0")
    assert stats[TransactionKind.WITHDRAW].total_value_usd == Decimal("20.0")
    assert stats[TransactionKind.SEND].count == 1
    assert stats[TransactionKind.SEND].total_value_usd == Decimal("0")


def test_format_history_one_line_per_entry():
    entries = [
        LedgerEntry(
            id="1",
            owner_id="user-1",
            kind=TransactionKind.SWAP,
            token="ETH",
            amount="0.1",
            status=TransactionStatus.COMPLETED,
            created_at=datetime(2026, 1, 2, 15, 30, tzinfo=timezone.utc),
        ),
        LedgerEntry(
            id="2",
            owner_id="user-1",
            kind=TransactionKind.WITHDRAW,
            token="USD",
            amount="25",
            status=TransactionStatus.FAILED,
            created_at=datetime(2026, 1, 1),
        ),
    ]

    assert TransactionService.format_history(entries) == (
        "SWAP - 0.1 ETH on 2026-01-02 (Completed)\nWITHDRAW - 25 USD on 2026-01-01 (Failed)"
    )


async def test_session_scope_commits_or_rolls_back(session_factory):
    async with session_scope(session_factory) as session:
        kept = await open_swap(session)

    with pytest.raises(RuntimeError):
        async with session_scope(session_factory) as session:
            await open_swap(session, amount="9")
            raise RuntimeError("boom")

    async with session_factory() as session:
        entries = await TransactionService.with_session(session).list_history("user-1")
    assert [entry.id for entry in entries] == [kept.id]

import asyncio
from decimal import Decimal

import pytest
from sqlalchemy import update

from flog_economy.core.exceptions import (
    InsufficientFundsException,
    InsufficientStakeException,
    InvalidAmountException,
    ValidationException,
)
from flog_economy.models.wallet import TransactionType, WalletTransaction
from flog_economy.schemas.economy import TransactionRecord
from flog_economy.services.wallet_ledger import WalletLedger
from flog_economy.utils.helpers import utcnow

async def test_new_wallet_gets_starting_balance(wallet):
    created = await wallet.get_or_create("alice")
    assert created.balance == Decimal("1000")
    assert created.staked == Decimal("0")
    assert await wallet.history("alice") == []

async def test_get_or_create_is_idempotent(wallet):
    first = await wallet.get_or_create("alice")
    second = await wallet.get_or_create("alice")
    assert first.id == second.id

async def test_credit_records_transaction(wallet):
    transaction = await wallet.credit("alice", Decimal("25.50"), TransactionType.QUEST_REWARD, "Quest reward")

    assert transaction.amount == Decimal("25.50")
    summary = await wallet.get_summary("alice")
    assert summary.balance == Decimal("1025.50")
    assert summary.total_earned == Decimal("25.50")

async def test_debit_records_negative_transaction(wallet):
    await wallet.debit("alice", 300, TransactionType.PURCHASE, "Bought a sword", fee=Decimal("15"), counterparty_id="bob")

    history = await wallet.history("alice")
    assert len(history) == 1
    assert history[0].amount == Decimal("-300")
    assert history[0].fee == Decimal("15")
    assert history[0].counterparty_id == "bob"
    assert TransactionRecord.model_validate(history[0]).kind == TransactionType.PURCHASE
    assert await wallet.get_balance("alice") == Decimal("700")

async def test_debit_more_than_balance_leaves_wallet_untouched(wallet):
    await wallet.get_or_create("alice")

    with pytest.raises(InsufficientFundsException) as exc:
        await wallet.debit("alice", 1500, TransactionType.PURCHASE, "Too expensive")

    assert exc.value.error_code == "INSUFFICIENT_FUNDS"
    assert await wallet.get_balance("alice") == Decimal("1000")
    assert await wallet.history("alice") == []

async def test_debit_exact_balance_reaches_zero(wallet):
    await wallet.debit("alice", 1000, TransactionType.MYSTERY_BOX, "All in")
    assert await wallet.get_balance("alice") == Decimal("0")

@pytest.mark.parametrize("amount", [0, -1, "-0.50", "abc"])
async def test_non_positive_amounts_rejected(wallet, amount):
    with pytest.raises(InvalidAmountException):
        await wallet.credit("alice", amount, TransactionType.DAILY_BONUS, "Bonus")
    with pytest.raises(InvalidAmountException):
        await wallet.debit("alice", amount, TransactionType.PURCHASE, "Purchase")

async def test_balance_equals_sum_of_transactions(wallet):
    await wallet.credit("alice", 50, TransactionType.DAILY_BONUS, "Daily login bonus")
    await wallet.debit("alice", 120, TransactionType.PURCHASE, "Purchase")
    await wallet.stake("alice", 200)
    await wallet.unstake("alice", 75)

    history = await wallet.history("alice")
    balance = await wallet.get_balance("alice")
    assert balance == Decimal("1000") + sum(t.amount for t in history)

async def test_history_is_newest_first_and_limited(wallet):
    for amount in (1, 2, 3):
        await wallet.credit("alice", amount, TransactionType.DAILY_BONUS, f"Bonus {amount}")

    history = await wallet.history("alice", limit=2)
    assert [t.amount for t in history] == [Decimal("3"), Decimal("2")]

async def test_stake_and_unstake_move_between_buckets(wallet):
    await wallet.stake("alice", 400)
    summary = await wallet.get_summary("alice")
    assert (summary.balance, summary.staked) == (Decimal("600"), Decimal("400"))

    await wallet.unstake("alice", 150)
    summary = await wallet.get_summary("alice")
    assert (summary.balance, summary.staked) == (Decimal("750"), Decimal("250"))
    assert summary.total_earned == summary.total_spent == Decimal("0")

    kinds = [t.kind for t in await wallet.history("alice")]
    assert kinds == [TransactionType.UNSTAKING, TransactionType.STAKING]

async def test_stake_and_unstake_limits(wallet):
    with pytest.raises(InsufficientFundsException):
        await wallet.stake("alice", 1001)
    with pytest.raises(InsufficientStakeException):
        await wallet.unstake("alice", 1)

async def test_concurrent_debits_cannot_overdraw(session_factory, locks):
    async with session_factory() as session:
        await WalletLedger(session, locks=locks).get_or_create("alice")

    async def spend():
        async with session_factory() as session:
            ledger = WalletLedger(session, locks=locks)
            try:
                await ledger.debit("alice", 600, TransactionType.PURCHASE, "Concurrent purchase")
                return True
            except InsufficientFundsException:
                return False

    outcomes = await asyncio.gather(spend(), spend())
    assert sorted(outcomes) == [False, True]

    async with session_factory() as session:
        ledger = WalletLedger(session, locks=locks)
        assert await ledger.get_balance("alice") == Decimal("400")
        assert len(await ledger.history("alice")) == 1

def test_display_currency_conversion():
    assert WalletLedger.to_display_currency(Decimal("100"), "gbp") == Decimal("88.00")
    assert WalletLedger.to_display_currency(10, "USD") == Decimal("11.00")
    with pytest.raises(ValidationException):
        WalletLedger.to_display_currency(10, "JPY")

async def test_history_order_survives_equal_timestamps(wallet, db):
    await wallet.debit("alice", 100, TransactionType.MYSTERY_BOX, "Opened Bronze Mystery Box")
    await wallet.credit("alice", 75, TransactionType.MYSTERY_BOX, "Mystery box reward: 75 FLOG")
    await wallet.stake("alice", 10)

    await db.execute(
        update(WalletTransaction)
        .where(WalletTransaction.user_id == "alice")
        .values(created_at=utcnow())
    )
    await db.commit()

    history = await wallet.history("alice")
    assert [t.sequence for t in history] == [3, 2, 1]
    assert [t.amount for t in history] == [Decimal("-10"), Decimal("75"), Decimal("-100")]

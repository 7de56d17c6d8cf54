"""FLOG wallet ledger service"""

from typing import List, Optional, Union
from decimal import Decimal
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from flog_economy.core.config import settings
from flog_economy.core.exceptions import (
    InsufficientFundsException,
    InsufficientStakeException,
    ValidationException,
)
from flog_economy.core.locks import UserLockRegistry, user_locks
from flog_economy.core.monitoring import flog_credited, flog_debited, insufficient_funds
from flog_economy.models.wallet import Wallet, WalletTransaction, TransactionType
from flog_economy.schemas.economy import WalletSummary
from flog_economy.utils.helpers import to_flog
from flog_economy.utils.validators import validate_flog_amount, validate_user_id, validate_limit

logger = logging.getLogger(__name__)

Amount = Union[Decimal, int, str]

DISPLAY_RATES = {
    "GBP": settings.FLOG_TO_GBP,
    "USD": settings.FLOG_TO_USD,
    "EUR": settings.FLOG_TO_EUR,
}

class WalletLedger:
    """
    Owns per-user balances and the append-only transaction log

    Every balance change is flushed together with exactly one
    WalletTransaction. Mutations run under the user's lock and load the
    wallet row with SELECT ... FOR UPDATE, so the balance check and the
    write cannot interleave with another operation on the same user.

    Pass commit=False when the call is one step of a larger unit of work;
    the caller then owns the commit or rollback.
    """

    def __init__(
        self,
        db: AsyncSession,
        locks: Optional[UserLockRegistry] = None,
        starting_balance: Optional[Amount] = None,
    ):
        self.db = db
        self.locks = locks or user_locks
        self.starting_balance = to_flog(
            settings.STARTING_BALANCE if starting_balance is None else starting_balance
        )

    async def _load(self, user_id: str, for_update: bool = False) -> Optional[Wallet]:
        stmt = select(Wallet).where(Wallet.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.db.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def _load_or_create(self, user_id: str) -> Wallet:
        wallet = await self._load(user_id, for_update=True)
        if wallet is None:
            wallet = Wallet(
                user_id=user_id,
                balance=self.starting_balance,
                staked=Decimal("0"),
                total_earned=Decimal("0"),
                total_spent=Decimal("0"),
                transaction_count=0,
            )
            self.db.add(wallet)
            await self.db.flush()
            logger.info(f"Created wallet for user {user_id} with {self.starting_balance} FLOG")
        return wallet

    def _record(
        self,
        wallet: Wallet,
        amount: Decimal,
        kind: TransactionType,
        description: str,
        fee: Decimal = Decimal("0"),
        counterparty_id: Optional[str] = None,
        item_id: Optional[str] = None,
    ) -> WalletTransaction:
        wallet.transaction_count = (wallet.transaction_count or 0) + 1
        transaction = WalletTransaction(
            wallet_id=wallet.id,
            user_id=wallet.user_id,
            sequence=wallet.transaction_count,
            amount=amount,
            fee=fee,
            kind=kind,
            description=description,
            counterparty_id=counterparty_id,
            item_id=str(item_id) if item_id is not None else None,
        )
        self.db.add(transaction)
        return transaction

    async def _finish(self, commit: bool) -> None:
        await self.db.flush()
        if commit:
            await self.db.commit()

    async def get_or_create(self, user_id: str, commit: bool = True) -> Wallet:
        """Return the user's wallet, creating it with the starting balance if absent"""
        user_id = validate_user_id(user_id)
        async with self.locks.hold(user_id):
            try:
                wallet = await self._load_or_create(user_id)
                await self._finish(commit)
            except Exception:
                if commit:
                    await self.db.rollback()
                raise
        return wallet

    async def get_balance(self, user_id: str) -> Decimal:
        wallet = await self.get_or_create(user_id)
        return wallet.balance

    async def get_summary(self, user_id: str) -> WalletSummary:
        wallet = await self.get_or_create(user_id)
        return WalletSummary.model_validate(wallet)

    async def credit(
        self,
        user_id: str,
        amount: Amount,
        kind: TransactionType,
        description: str,
        *,
        fee: Amount = Decimal("0"),
        counterparty_id: Optional[str] = None,
        item_id: Optional[str] = None,
        commit: bool = True,
    ) -> WalletTransaction:
        """Add FLOG to a wallet and append a positive transaction"""
        user_id = validate_user_id(user_id)
        amount = validate_flog_amount(amount)

        async with self.locks.hold(user_id):
            try:
                wallet = await self._load_or_create(user_id)
                wallet.balance += amount
                wallet.total_earned += amount
                transaction = self._record(
                    wallet, amount, kind, description,
                    fee=to_flog(fee), counterparty_id=counterparty_id, item_id=item_id,
                )
                await self._finish(commit)
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        flog_credited.labels(kind=kind.value).inc(float(amount))
        logger.debug(f"Credited {amount} FLOG to {user_id} ({kind.value}): {description}")
        return transaction

    async def debit(
        self,
        user_id: str,
        amount: Amount,
        kind: TransactionType,
        description: str,
        *,
        fee: Amount = Decimal("0"),
        counterparty_id: Optional[str] = None,
        item_id: Optional[str] = None,
        commit: bool = True,
    ) -> WalletTransaction:
        """
        Remove FLOG from a wallet and append a negative transaction

        Raises InsufficientFundsException without touching the wallet when
        the balance does not cover the amount.
        """
        user_id = validate_user_id(user_id)
        amount = validate_flog_amount(amount)

        async with self.locks.hold(user_id):
            try:
                wallet = await self._load_or_create(user_id)
                if wallet.balance < amount:
                    insufficient_funds.labels(kind=kind.value).inc()
                    raise InsufficientFundsException(wallet.balance, amount)

                wallet.balance -= amount
                wallet.total_spent += amount
                transaction = self._record(
                    wallet, -amount, kind, description,
                    fee=to_flog(fee), counterparty_id=counterparty_id, item_id=item_id,
                )
                await self._finish(commit)
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        flog_debited.labels(kind=kind.value).inc(float(amount))
        logger.debug(f"Debited {amount} FLOG from {user_id} ({kind.value}): {description}")
        return transaction

    async def stake(self, user_id: str, amount: Amount, commit: bool = True) -> WalletTransaction:
        """Move FLOG from the spendable balance into the staked bucket"""
        user_id = validate_user_id(user_id)
        amount = validate_flog_amount(amount)

        async with self.locks.hold(user_id):
            try:
                wallet = await self._load_or_create(user_id)
                if wallet.balance < amount:
                    insufficient_funds.labels(kind=TransactionType.STAKING.value).inc()
                    raise InsufficientFundsException(wallet.balance, amount)

                wallet.balance -= amount
                wallet.staked += amount
                transaction = self._record(wallet, -amount, TransactionType.STAKING, f"Staked {amount} FLOG")
                await self._finish(commit)
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        logger.info(f"User {user_id} staked {amount} FLOG")
        return transaction

    async def unstake(self, user_id: str, amount: Amount, commit: bool = True) -> WalletTransaction:
        """Move FLOG from the staked bucket back to the spendable balance"""
        user_id = validate_user_id(user_id)
        amount = validate_flog_amount(amount)

        async with self.locks.hold(user_id):
            try:
                wallet = await self._load_or_create(user_id)
                if wallet.staked < amount:
                    raise InsufficientStakeException(wallet.staked, amount)

                wallet.staked -= amount
                wallet.balance += amount
                transaction = self._record(wallet, amount, TransactionType.UNSTAKING, f"Unstaked {amount} FLOG")
                await self._finish(commit)
            except Exception:
                if commit:
                    await self.db.rollback()
                raise

        logger.info(f"User {user_id} unstaked {amount} FLOG")
        return transaction

    async def history(self, user_id: str, limit: int = settings.DEFAULT_HISTORY_LIMIT) -> List[WalletTransaction]:
        """Most recent transactions, newest first by ledger sequence"""
        user_id = validate_user_id(user_id)
        result = await self.db.execute(
            select(WalletTransaction)
            .where(WalletTransaction.user_id == user_id)
            .order_by(WalletTransaction.sequence.desc())
            .limit(validate_limit(limit))
        )
        return list(result.scalars().all())

    @staticmethod
    def to_display_currency(amount: Amount, currency: str) -> Decimal:
        """Display-only conversion, rates are not market data"""
        rate = DISPLAY_RATES.get(currency.upper())
        if rate is None:
            raise ValidationException(f"Unsupported display currency: {currency}", error_code="UNSUPPORTED_CURRENCY")
        return to_flog(to_flog(amount) * rate)

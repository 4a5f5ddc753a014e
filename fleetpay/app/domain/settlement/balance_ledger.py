"""
Driver Balance Ledger (Domain Logic).

Maintains the forward-chained running account of every driver:
entries ordered by period_end, each opening with the closing balance of
the entry before it, the first opening at zero.

Entry points that read the latest entry and write a new one hold the
driver's lock until their commit. `upsert_settlement_entry` is the
unlocked building block for callers that already hold it.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, desc, asc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleetpay.app.core.exceptions import BalanceChainError, ResourceNotFoundError
from fleetpay.app.core.utils import utcnow
from fleetpay.app.domain.settlement import data_access
from fleetpay.app.domain.settlement.driver_locks import driver_locks
from fleetpay.app.domain.settlement.money import ZERO, ZERO_MONEY, quantize_money, to_money
from fleetpay.app.models.driver_balance import DriverBalance
from fleetpay.app.models.settlement import Settlement
from fleetpay.app.services.audit import log_event, AuditAction

logger = logging.getLogger("fleetpay.ledger")


class BalanceLedger:

    @staticmethod
    async def get_latest_entry(db: AsyncSession, driver_id: int) -> Optional[DriverBalance]:
        """The driver's entry with the latest period_end (ties: newest row)."""
        result = await db.execute(
            select(DriverBalance)
            .where(DriverBalance.driver_id == driver_id)
            .order_by(desc(DriverBalance.period_end), desc(DriverBalance.id))
            .limit(1)
        )
        return result.scalar_one_or_none()

    @staticmethod
    async def get_current_balance(db: AsyncSession, driver_id: int) -> Decimal:
        """Closing balance of the latest entry; zero when the driver has none."""
        latest = await BalanceLedger.get_latest_entry(db, driver_id)
        if latest is None:
            return quantize_money(ZERO)
        return to_money(latest.closing_balance)

    @staticmethod
    async def get_balance_history(db: AsyncSession, driver_id: int, limit: int = 20) -> List[DriverBalance]:
        """Entries of a driver, period_end descending."""
        result = await db.execute(
            select(DriverBalance)
            .where(DriverBalance.driver_id == driver_id)
            .order_by(desc(DriverBalance.period_end), desc(DriverBalance.id))
            .limit(limit)
        )
        return list(result.scalars().all())

    @staticmethod
    async def _successor(
        db: AsyncSession, driver_id: int, previous: Optional[DriverBalance], exclude_id: Optional[int] = None
    ) -> Optional[DriverBalance]:
        """The entry opening from `previous` (the chain start when None)."""
        query = select(DriverBalance).where(DriverBalance.driver_id == driver_id)
        if previous is None:
            query = query.where(DriverBalance.previous_entry_id.is_(None))
        else:
            query = query.where(DriverBalance.previous_entry_id == previous.id)
        if exclude_id is not None:
            query = query.where(DriverBalance.id != exclude_id)
        return (await db.execute(query.order_by(DriverBalance.id).limit(1))).scalar_one_or_none()

    @staticmethod
    def _fork(driver_id: int, previous: Optional[DriverBalance], claimant_id: int) -> BalanceChainError:
        logger.error(
            "Balance chain fork for driver %s: entry %s already opens from %s",
            driver_id, claimant_id, previous.id if previous else "the start",
        )
        return BalanceChainError(
            driver_id,
            message="Balance ledger fork detected; manual reconciliation required",
            details={
                "conflicting_entry_id": claimant_id,
                "previous_entry_id": previous.id if previous else None,
            },
        )

    @staticmethod
    async def _ensure_unclaimed(db: AsyncSession, driver_id: int, previous: Optional[DriverBalance]) -> None:
        """Raise if another entry already opens from `previous`."""
        claimant = await BalanceLedger._successor(db, driver_id, previous)
        if claimant is not None:
            raise BalanceLedger._fork(driver_id, previous, claimant.id)

    @staticmethod
    async def _flush_entry(db: AsyncSession, driver_id: int) -> None:
        try:
            await db.flush()
        except IntegrityError as exc:
            await db.rollback()
            logger.error("Balance chain constraint violated for driver %s: %s", driver_id, exc)
            raise BalanceChainError(
                driver_id,
                message="Concurrent balance ledger write detected; manual reconciliation required",
            ) from exc

    @staticmethod
    async def _rechain_adjustments(db: AsyncSession, entry: DriverBalance) -> None:
        """Re-open the run of adjustments following `entry` from its closing balance."""
        previous = entry
        while True:
            following = await BalanceLedger._successor(db, entry.driver_id, previous)
            if following is None or following.settlement_id is not None:
                break
            following.opening_balance = to_money(previous.closing_balance)
            following.closing_balance = quantize_money(
                to_money(following.opening_balance) + to_money(following.adjustments)
            )
            previous = following
        await BalanceLedger._flush_entry(db, entry.driver_id)

    @staticmethod
    async def upsert_settlement_entry(db: AsyncSession, settlement: Settlement) -> DriverBalance:
        """
        Create or refresh the ledger entry of a settlement.

        Opening balance is the closing balance of the driver's latest entry
        ending strictly before the settlement's period_start (0 if none),
        moved forward past any adjustments posted up to the settlement's
        period_end. Adjustments posted after period_end are re-chained on
        top of the settlement. Another settlement already opening from the
        same point is a fork. Caller must hold the driver's lock and commit.
        """
        driver_id = settlement.driver_id
        result = await db.execute(
            select(DriverBalance)
            .where(
                DriverBalance.driver_id == driver_id,
                DriverBalance.period_end < settlement.period_start,
            )
            .order_by(desc(DriverBalance.period_end), desc(DriverBalance.id))
            .limit(1)
        )
        previous = result.scalar_one_or_none()

        existing = (await db.execute(
            select(DriverBalance).where(DriverBalance.settlement_id == settlement.id)
        )).scalar_one_or_none()
        exclude_id = existing.id if existing else None

        displaced = None
        while True:
            claimant = await BalanceLedger._successor(db, driver_id, previous, exclude_id)
            if claimant is None:
                break
            if claimant.settlement_id is not None:
                raise BalanceLedger._fork(driver_id, previous, claimant.id)
            if claimant.period_end <= settlement.period_end:
                previous = claimant
                continue
            displaced = claimant
            break

        # The displaced adjustments must not be followed by a settlement
        tail = displaced
        while tail is not None:
            following = await BalanceLedger._successor(db, driver_id, tail, exclude_id)
            if following is None:
                break
            if following.settlement_id is not None:
                raise BalanceLedger._fork(driver_id, previous, following.id)
            tail = following

        if displaced is not None:
            # Park the link on the run's own tail so the predecessor is free
            displaced.previous_entry_id = tail.id
            await BalanceLedger._flush_entry(db, driver_id)

        opening = to_money(previous.closing_balance) if previous else ZERO
        settlement_net = to_money(settlement.driver_net_earnings)
        line_items_total = to_money(settlement.line_items_total)
        cash = to_money(settlement.cash_collected_by_driver)
        # settlement_net already contains line_items_total
        closing = quantize_money(opening + settlement_net - cash)

        entry = existing
        if entry is None:
            entry = DriverBalance(
                driver_id=driver_id,
                partner_id=settlement.partner_id,
                settlement_id=settlement.id,
                payout_made=ZERO_MONEY,
                adjustments=ZERO_MONEY,
            )
            db.add(entry)

        entry.previous_entry_id = previous.id if previous else None
        entry.period_start = settlement.period_start
        entry.period_end = settlement.period_end
        entry.opening_balance = quantize_money(opening)
        entry.settlement_net = settlement_net
        entry.line_items_total = line_items_total
        entry.cash_collected = cash
        entry.closing_balance = closing

        await BalanceLedger._flush_entry(db, driver_id)

        if displaced is not None:
            displaced.previous_entry_id = entry.id
            await BalanceLedger._flush_entry(db, driver_id)
            logger.info(
                "Settlement %s of driver %s inserted before adjustment %s",
                settlement.id, driver_id, displaced.id,
            )

        await BalanceLedger._rechain_adjustments(db, entry)
        return entry

    @staticmethod
    async def create_balance_entry(db: AsyncSession, settlement_id: int) -> DriverBalance:
        """
        Create or refresh the ledger entry of a persisted settlement.

        Raises:
            ResourceNotFoundError: unknown settlement
            BalanceChainError: the entry would fork the driver's chain
        """
        settlement = await db.get(Settlement, settlement_id)
        if settlement is None:
            raise ResourceNotFoundError("Settlement", settlement_id)

        async with driver_locks.hold(settlement.driver_id):
            entry = await BalanceLedger.upsert_settlement_entry(db, settlement)
            await db.commit()
        return entry

    @staticmethod
    async def add_manual_adjustment(
        db: AsyncSession,
        driver_id: int,
        partner_id: int,
        amount: Decimal,
        notes: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> DriverBalance:
        """
        Post a point-in-time adjustment on top of the driver's latest entry.

        Always inserts a new row with period_start = period_end = now (or the
        latest entry's period_end, when that lies in the future).

        Raises:
            ResourceNotFoundError: unknown driver for this partner
            BalanceChainError: the latest entry was claimed concurrently
        """
        await data_access.get_driver(db, driver_id, partner_id)
        amount = quantize_money(to_money(amount))

        async with driver_locks.hold(driver_id):
            previous = await BalanceLedger.get_latest_entry(db, driver_id)
            await BalanceLedger._ensure_unclaimed(db, driver_id, previous)

            opening = to_money(previous.closing_balance) if previous else ZERO
            now = utcnow()
            if previous is not None and previous.period_end > now:
                # keep period_end order when the latest settlement ends in the future
                now = previous.period_end
            entry = DriverBalance(
                driver_id=driver_id,
                partner_id=partner_id,
                previous_entry_id=previous.id if previous else None,
                period_start=now,
                period_end=now,
                opening_balance=quantize_money(opening),
                settlement_net=ZERO_MONEY,
                line_items_total=ZERO_MONEY,
                cash_collected=ZERO_MONEY,
                payout_made=ZERO_MONEY,
                adjustments=amount,
                closing_balance=quantize_money(opening + amount),
                notes=notes or "Manual adjustment",
            )
            db.add(entry)
            await BalanceLedger._flush_entry(db, driver_id)

            await log_event(
                db,
                AuditAction.BALANCE_ADJUSTED,
                actor_id=actor_id,
                partner_id=partner_id,
                driver_id=driver_id,
                metadata={"entry_id": entry.id, "amount": str(amount)},
            )
            await db.commit()

        logger.info("Driver %s balance adjusted by %s (entry %s)", driver_id, amount, entry.id)
        return entry

    @staticmethod
    async def record_payout(db: AsyncSession, settlement: Settlement) -> Optional[DriverBalance]:
        """Note the transferred payout on the settlement's entry. Closing balance is unchanged."""
        entry = (await db.execute(
            select(DriverBalance).where(DriverBalance.settlement_id == settlement.id)
        )).scalar_one_or_none()
        if entry is not None:
            entry.payout_made = to_money(settlement.payout_amount)
            await db.flush()
        return entry

    @staticmethod
    async def verify_chain(db: AsyncSession, driver_id: int) -> List[DriverBalance]:
        """
        Walk the driver's ledger oldest first and check every link.

        Returns:
            The entries in chain order when the chain is intact

        Raises:
            BalanceChainError: on the first broken link or arithmetic mismatch
        """
        result = await db.execute(
            select(DriverBalance)
            .where(DriverBalance.driver_id == driver_id)
            .order_by(asc(DriverBalance.period_end), asc(DriverBalance.id))
        )
        entries = list(result.scalars().all())

        previous = None
        for entry in entries:
            expected_opening = to_money(previous.closing_balance) if previous else ZERO
            expected_previous_id = previous.id if previous else None
            if entry.previous_entry_id != expected_previous_id or to_money(entry.opening_balance) != expected_opening:
                raise BalanceChainError(
                    driver_id,
                    details={
                        "entry_id": entry.id,
                        "expected_previous_entry_id": expected_previous_id,
                        "previous_entry_id": entry.previous_entry_id,
                        "expected_opening_balance": str(expected_opening),
                        "opening_balance": str(to_money(entry.opening_balance)),
                    },
                )

            expected_closing = quantize_money(
                to_money(entry.opening_balance)
                + to_money(entry.settlement_net)
                - to_money(entry.cash_collected)
                + to_money(entry.adjustments)
            )
            if to_money(entry.closing_balance) != expected_closing:
                raise BalanceChainError(
                    driver_id,
                    message="Balance ledger entry does not add up",
                    details={
                        "entry_id": entry.id,
                        "expected_closing_balance": str(expected_closing),
                        "closing_balance": str(to_money(entry.closing_balance)),
                    },
                )
            previous = entry

        return entries

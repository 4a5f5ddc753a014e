"""
Settlement Service (Domain Logic).

Persists calculated settlements, keeps their derived totals in line with
line items and manual deductions, drives the approval workflow and feeds
the balance ledger.

Every operation that ends in a ledger write holds the driver's lock from
its first read to its commit.
"""

import asyncio
import logging
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update, desc
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fleetpay.app.core.config import settings
from fleetpay.app.core.exceptions import InvalidSettlementStateError, ResourceNotFoundError
from fleetpay.app.core.utils import to_naive_utc, utcnow
from fleetpay.app.domain.settlement.balance_ledger import BalanceLedger
from fleetpay.app.domain.settlement.calculator import SettlementResult, calculate_settlement
from fleetpay.app.domain.settlement.driver_locks import driver_locks
from fleetpay.app.domain.settlement.money import ZERO, ZERO_MONEY, quantize_money, to_money
from fleetpay.app.models.billing_enums import LineItemType, SettlementStatus
from fleetpay.app.models.driver import Driver
from fleetpay.app.models.enums import DriverStatus
from fleetpay.app.models.ride import Ride
from fleetpay.app.models.settlement import Settlement
from fleetpay.app.models.settlement_line_item import SettlementLineItem
from fleetpay.app.services.audit import log_event, AuditAction

logger = logging.getLogger("fleetpay.settlement")


@dataclass
class BatchSettlementResult:
    """Outcome of a batch run: one entry per driver in exactly one list."""
    results: List[dict] = field(default_factory=list)
    errors: List[dict] = field(default_factory=list)


def line_items_total(items: List[SettlementLineItem]) -> Decimal:
    """Bonuses minus deductions."""
    total = ZERO
    for item in items:
        amount = to_money(item.amount)
        if item.type == LineItemType.BONUS:
            total += amount
        else:
            total -= amount
    return quantize_money(total)


class SettlementService:

    @staticmethod
    async def get_settlement(db: AsyncSession, settlement_id: int, partner_id: Optional[int] = None) -> Settlement:
        """
        Raises:
            ResourceNotFoundError: unknown settlement, or one of another partner
        """
        settlement = await db.get(Settlement, settlement_id)
        if settlement is None or (partner_id is not None and settlement.partner_id != partner_id):
            raise ResourceNotFoundError("Settlement", settlement_id)
        return settlement

    @staticmethod
    async def list_settlements(
        db: AsyncSession,
        partner_id: int,
        driver_id: Optional[int] = None,
        status: Optional[SettlementStatus] = None,
    ) -> List[Settlement]:
        query = select(Settlement).where(Settlement.partner_id == partner_id)
        if driver_id:
            query = query.where(Settlement.driver_id == driver_id)
        if status:
            query = query.where(Settlement.status == status)
        query = query.order_by(desc(Settlement.period_end), desc(Settlement.id))
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def preview_settlement(
        db: AsyncSession, driver_id: int, partner_id: int, period_start: datetime, period_end: datetime
    ) -> SettlementResult:
        """Calculate without writing anything."""
        return await calculate_settlement(
            db, driver_id, partner_id, to_naive_utc(period_start), to_naive_utc(period_end)
        )

    @staticmethod
    async def _find_by_key(db: AsyncSession, driver_id: int, period_start: datetime, period_end: datetime) -> Optional[Settlement]:
        result = await db.execute(
            select(Settlement).where(
                Settlement.driver_id == driver_id,
                Settlement.period_start == period_start,
                Settlement.period_end == period_end,
            )
        )
        return result.scalar_one_or_none()

    @staticmethod
    def _apply_result(settlement: Settlement, result: SettlementResult) -> None:
        for column, value in result.settlement_columns().items():
            setattr(settlement, column, value)
        settlement.calculated_at = utcnow()

    @staticmethod
    async def _upsert(
        db: AsyncSession, driver_id: int, partner_id: int,
        period_start: datetime, period_end: datetime, result: SettlementResult
    ) -> Settlement:
        settlement = await SettlementService._find_by_key(db, driver_id, period_start, period_end)
        if settlement is not None:
            SettlementService._apply_result(settlement, result)
            await db.flush()
            return settlement

        settlement = Settlement(
            driver_id=driver_id,
            partner_id=partner_id,
            period_start=period_start,
            period_end=period_end,
            status=SettlementStatus.CALCULATED,
            line_items_total=ZERO_MONEY,
        )
        SettlementService._apply_result(settlement, result)
        db.add(settlement)
        try:
            await db.flush()
        except IntegrityError:
            # Another process inserted the same key first; overwrite its row.
            await db.rollback()
            settlement = await SettlementService._find_by_key(db, driver_id, period_start, period_end)
            if settlement is None:
                raise
            SettlementService._apply_result(settlement, result)
            await db.flush()
        return settlement

    @staticmethod
    async def _recompute_derived_totals(db: AsyncSession, settlement: Settlement) -> Settlement:
        """
        Re-derive line_items_total, driver_net_earnings and payout_amount from
        the stored base figures and the current line items. Ride data and
        platform breakdowns are not touched.
        """
        items = (await db.execute(
            select(SettlementLineItem).where(SettlementLineItem.settlement_id == settlement.id)
        )).scalars().all()

        items_total = line_items_total(items)
        driver_net = quantize_money(
            to_money(settlement.total_platform_net)
            - to_money(settlement.partner_commission_amount)
            - to_money(settlement.vehicle_rental_deduction)
            - to_money(settlement.insurance_deduction)
            - to_money(settlement.fuel_cost_deduction)
            + items_total
        )

        settlement.line_items_total = items_total
        settlement.driver_net_earnings = driver_net
        settlement.payout_amount = quantize_money(driver_net - to_money(settlement.cash_collected_by_driver))
        await db.flush()
        return settlement

    @staticmethod
    async def create_or_update_settlement(
        db: AsyncSession,
        driver_id: int,
        partner_id: int,
        period_start: datetime,
        period_end: datetime,
        actor_id: Optional[int] = None,
    ) -> int:
        """
        Calculate, persist and ledger a driver's settlement for a period.

        Flow:
        1. Calculate (read-only; unknown driver fails here, before any write)
        2. Upsert by (driver_id, period_start, period_end), status preserved
        3. Tag the consumed rides with the settlement id
        4. Re-apply existing line items to the derived totals
        5. Upsert the settlement's balance ledger entry
        6. Commit

        Returns:
            Settlement id
        """
        period_start = to_naive_utc(period_start)
        period_end = to_naive_utc(period_end)

        async with driver_locks.hold(driver_id):
            result = await calculate_settlement(db, driver_id, partner_id, period_start, period_end)

            settlement = await SettlementService._upsert(
                db, driver_id, partner_id, period_start, period_end, result
            )

            if result.ride_ids:
                await db.execute(
                    update(Ride)
                    .where(Ride.id.in_(result.ride_ids))
                    .values(settlement_id=settlement.id)
                    .execution_options(synchronize_session=False)
                )

            await SettlementService._recompute_derived_totals(db, settlement)
            await BalanceLedger.upsert_settlement_entry(db, settlement)

            await log_event(
                db,
                AuditAction.SETTLEMENT_CALCULATED,
                actor_id=actor_id,
                partner_id=partner_id,
                driver_id=driver_id,
                settlement_id=settlement.id,
                metadata={
                    "total_rides": result.total_rides,
                    "payout_amount": str(settlement.payout_amount),
                },
            )
            await db.commit()

        logger.info(
            "Settlement %s calculated for driver %s (%s - %s): %s rides, payout %s",
            settlement.id, driver_id, period_start, period_end,
            result.total_rides, settlement.payout_amount,
        )
        return settlement.id

    @staticmethod
    async def recalculate(db: AsyncSession, settlement_id: int, partner_id: int, actor_id: Optional[int] = None) -> int:
        """Re-run the full calculation for an existing settlement's key."""
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        return await SettlementService.create_or_update_settlement(
            db, settlement.driver_id, settlement.partner_id,
            settlement.period_start, settlement.period_end, actor_id=actor_id,
        )

    @staticmethod
    async def recompute_line_items(db: AsyncSession, settlement_id: int) -> Settlement:
        """
        Refresh derived totals after line item changes and re-ledger.

        Raises:
            ResourceNotFoundError: unknown settlement
        """
        settlement = await SettlementService.get_settlement(db, settlement_id)
        async with driver_locks.hold(settlement.driver_id):
            await SettlementService._recompute_derived_totals(db, settlement)
            await BalanceLedger.upsert_settlement_entry(db, settlement)
            await db.commit()
        return settlement

    @staticmethod
    async def list_line_items(db: AsyncSession, settlement_id: int, partner_id: int) -> List[SettlementLineItem]:
        await SettlementService.get_settlement(db, settlement_id, partner_id)
        result = await db.execute(
            select(SettlementLineItem)
            .where(SettlementLineItem.settlement_id == settlement_id)
            .order_by(SettlementLineItem.created_at, SettlementLineItem.id)
        )
        return list(result.scalars().all())

    @staticmethod
    async def add_line_item(
        db: AsyncSession,
        settlement_id: int,
        partner_id: int,
        item_type: LineItemType,
        description: str,
        amount: Decimal,
        actor_id: Optional[int] = None,
    ) -> SettlementLineItem:
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        amount = quantize_money(to_money(amount))
        if amount <= 0:
            raise ValueError("Line item amount must be positive")

        async with driver_locks.hold(settlement.driver_id):
            item = SettlementLineItem(
                settlement_id=settlement.id,
                type=item_type,
                description=description,
                amount=amount,
                is_auto_applied=False,
            )
            db.add(item)
            await db.flush()

            await SettlementService._recompute_derived_totals(db, settlement)
            await BalanceLedger.upsert_settlement_entry(db, settlement)
            await log_event(
                db,
                AuditAction.LINE_ITEM_ADDED,
                actor_id=actor_id,
                partner_id=partner_id,
                driver_id=settlement.driver_id,
                settlement_id=settlement.id,
                metadata={"line_item_id": item.id, "type": item_type.value, "amount": str(amount)},
            )
            await db.commit()

        return item

    @staticmethod
    async def remove_line_item(
        db: AsyncSession,
        settlement_id: int,
        line_item_id: int,
        partner_id: int,
        actor_id: Optional[int] = None,
    ) -> Settlement:
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        item = await db.get(SettlementLineItem, line_item_id)
        if item is None or item.settlement_id != settlement.id:
            raise ResourceNotFoundError("Line item", line_item_id)

        async with driver_locks.hold(settlement.driver_id):
            await db.delete(item)
            await db.flush()

            await SettlementService._recompute_derived_totals(db, settlement)
            await BalanceLedger.upsert_settlement_entry(db, settlement)
            await log_event(
                db,
                AuditAction.LINE_ITEM_REMOVED,
                actor_id=actor_id,
                partner_id=partner_id,
                driver_id=settlement.driver_id,
                settlement_id=settlement.id,
                metadata={"line_item_id": line_item_id},
            )
            await db.commit()

        return settlement

    @staticmethod
    async def update_manual_deductions(
        db: AsyncSession,
        settlement_id: int,
        partner_id: int,
        fuel_cost_deduction: Optional[Decimal] = None,
        cash_collected_by_driver: Optional[Decimal] = None,
        actor_id: Optional[int] = None,
    ) -> Settlement:
        """
        Set the manual fuel deduction and/or override the cash collected,
        then re-derive net earnings and payout. A later full recalculation
        replaces both with engine values again.
        """
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)

        async with driver_locks.hold(settlement.driver_id):
            changes = {}
            if fuel_cost_deduction is not None:
                settlement.fuel_cost_deduction = quantize_money(to_money(fuel_cost_deduction))
                changes["fuel_cost_deduction"] = str(settlement.fuel_cost_deduction)
            if cash_collected_by_driver is not None:
                settlement.cash_collected_by_driver = quantize_money(to_money(cash_collected_by_driver))
                changes["cash_collected_by_driver"] = str(settlement.cash_collected_by_driver)

            await SettlementService._recompute_derived_totals(db, settlement)
            await BalanceLedger.upsert_settlement_entry(db, settlement)
            await log_event(
                db,
                AuditAction.MANUAL_DEDUCTIONS_UPDATED,
                actor_id=actor_id,
                partner_id=partner_id,
                driver_id=settlement.driver_id,
                settlement_id=settlement.id,
                metadata=changes,
            )
            await db.commit()

        return settlement

    @staticmethod
    def _require_status(settlement: Settlement, allowed: List[SettlementStatus], action: str) -> None:
        if settlement.status not in allowed:
            raise InvalidSettlementStateError(
                f"Cannot {action} settlement in status {settlement.status.value}",
                details={
                    "settlement_id": settlement.id,
                    "status": settlement.status.value,
                    "expected": [s.value for s in allowed],
                },
            )

    @staticmethod
    async def approve(db: AsyncSession, settlement_id: int, partner_id: int, actor_id: Optional[int] = None) -> Settlement:
        """CALCULATED or DISPUTED -> APPROVED."""
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        SettlementService._require_status(
            settlement, [SettlementStatus.CALCULATED, SettlementStatus.DISPUTED], "approve"
        )

        settlement.status = SettlementStatus.APPROVED
        settlement.approved_at = utcnow()

        await log_event(
            db, AuditAction.SETTLEMENT_APPROVED, actor_id=actor_id, partner_id=partner_id,
            driver_id=settlement.driver_id, settlement_id=settlement.id,
        )
        await db.commit()
        return settlement

    @staticmethod
    async def _pay(
        db: AsyncSession, settlement: Settlement, payout_reference: Optional[str], actor_id: Optional[int]
    ) -> None:
        settlement.status = SettlementStatus.PAID
        settlement.paid_at = utcnow()
        if payout_reference:
            settlement.payout_reference = payout_reference
        await BalanceLedger.record_payout(db, settlement)

        await log_event(
            db, AuditAction.SETTLEMENT_PAID, actor_id=actor_id, partner_id=settlement.partner_id,
            driver_id=settlement.driver_id, settlement_id=settlement.id,
            metadata={"payout_amount": str(settlement.payout_amount), "payout_reference": payout_reference},
        )

    @staticmethod
    async def mark_paid(
        db: AsyncSession,
        settlement_id: int,
        partner_id: int,
        payout_reference: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> Settlement:
        """APPROVED -> PAID; the payout is noted on the ledger entry."""
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        SettlementService._require_status(settlement, [SettlementStatus.APPROVED], "mark paid")

        async with driver_locks.hold(settlement.driver_id):
            await SettlementService._pay(db, settlement, payout_reference, actor_id)
            await db.commit()
        return settlement

    @staticmethod
    async def mark_paid_bulk(
        db: AsyncSession,
        settlement_ids: List[int],
        partner_id: int,
        payout_reference: Optional[str] = None,
        actor_id: Optional[int] = None,
    ) -> int:
        """
        Mark several APPROVED settlements of a partner as PAID in one transaction.

        All or nothing: an unknown id or a settlement in any other status
        rejects the whole request before anything is written.

        Returns:
            Number of settlements marked paid

        Raises:
            ResourceNotFoundError: an id unknown to this partner
            InvalidSettlementStateError: one or more settlements not APPROVED
        """
        wanted = sorted(set(settlement_ids))
        result = await db.execute(
            select(Settlement)
            .where(Settlement.id.in_(wanted), Settlement.partner_id == partner_id)
            .order_by(Settlement.id)
        )
        settlements = list(result.scalars().all())

        missing = sorted(set(wanted) - {s.id for s in settlements})
        if missing:
            raise ResourceNotFoundError("Settlement", missing[0])

        not_approved = [s for s in settlements if s.status != SettlementStatus.APPROVED]
        if not_approved:
            raise InvalidSettlementStateError(
                f"{len(not_approved)} settlement(s) are not in APPROVED status",
                details={
                    "settlement_ids": [s.id for s in not_approved],
                    "expected": [SettlementStatus.APPROVED.value],
                },
            )

        async with AsyncExitStack() as stack:
            # Fixed order so two bulk payouts cannot deadlock
            for driver_id in sorted({s.driver_id for s in settlements}):
                await stack.enter_async_context(driver_locks.hold(driver_id))
            for settlement in settlements:
                await SettlementService._pay(db, settlement, payout_reference, actor_id)
            await db.commit()

        logger.info("Marked %d settlement(s) of partner %s as paid", len(settlements), partner_id)
        return len(settlements)

    @staticmethod
    async def dispute(
        db: AsyncSession, settlement_id: int, partner_id: int,
        notes: Optional[str] = None, actor_id: Optional[int] = None,
    ) -> Settlement:
        """CALCULATED or APPROVED -> DISPUTED."""
        settlement = await SettlementService.get_settlement(db, settlement_id, partner_id)
        SettlementService._require_status(
            settlement, [SettlementStatus.CALCULATED, SettlementStatus.APPROVED], "dispute"
        )

        settlement.status = SettlementStatus.DISPUTED
        if notes:
            settlement.notes = notes

        await log_event(
            db, AuditAction.SETTLEMENT_DISPUTED, actor_id=actor_id, partner_id=partner_id,
            driver_id=settlement.driver_id, settlement_id=settlement.id,
            metadata={"notes": notes},
        )
        await db.commit()
        return settlement

    @staticmethod
    async def calculate_batch(
        session_factory: async_sessionmaker,
        partner_id: int,
        period_start: datetime,
        period_end: datetime,
        max_concurrency: Optional[int] = None,
        actor_id: Optional[int] = None,
    ) -> BatchSettlementResult:
        """
        Settle every ACTIVE driver of a partner for one period.

        Drivers run in parallel (bounded), each in its own session, so one
        driver's failure is rolled back and reported without touching the
        others.
        """
        async with session_factory() as db:
            result = await db.execute(
                select(Driver)
                .where(Driver.partner_id == partner_id, Driver.status == DriverStatus.ACTIVE)
                .order_by(Driver.id)
            )
            drivers = [(d.id, d.full_name) for d in result.scalars().all()]

        semaphore = asyncio.Semaphore(max_concurrency or settings.batch_concurrency)

        async def settle_one(driver_id: int, name: str):
            async with semaphore:
                async with session_factory() as db:
                    try:
                        settlement_id = await SettlementService.create_or_update_settlement(
                            db, driver_id, partner_id, period_start, period_end, actor_id=actor_id
                        )
                    except Exception as exc:
                        await db.rollback()
                        logger.exception("Batch settlement failed for driver %s", driver_id)
                        return False, {"driver_id": driver_id, "name": name, "error": str(exc)}
                    return True, {"driver_id": driver_id, "name": name, "settlement_id": settlement_id}

        outcomes = await asyncio.gather(*(settle_one(driver_id, name) for driver_id, name in drivers))

        batch = BatchSettlementResult()
        for ok, payload in outcomes:
            (batch.results if ok else batch.errors).append(payload)

        logger.info(
            "Batch settlement for partner %s: %d succeeded, %d failed",
            partner_id, len(batch.results), len(batch.errors),
        )
        return batch

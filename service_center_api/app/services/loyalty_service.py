"""
Business logic for the loyalty program.

Points are earned on money spent at the service center and spent on
rewards.  Every balance change is written to ``points_transactions``
together with the change itself, so the ledger always explains the
balances:

* ``earn``: ``floor(amount * rate * multiplier)`` where the multiplier
  comes from the customer's tier before the credit.
* ``bonus``: a manual credit without multiplier.
* ``redeem``: points spent on a reward (negative).
* ``refund``: points returned when a redemption is cancelled.

``total_points`` only grows and decides the tier; ``available_points``
is the spendable balance and can never become negative.
"""

import json
import logging
import math
import sqlite3
from decimal import Decimal
from typing import Any, Dict, List, Optional

from service_center_api.app.core.config import settings
from service_center_api.app.core.db import get_connection, now_iso
from service_center_api.app.core.enums import LoyaltyTier, RedemptionStatus, TransactionType
from service_center_api.app.core.exceptions import ConflictError, NotFoundError
from service_center_api.app.schemas.loyalty import (
    CustomerCreate,
    CustomerRead,
    RedemptionRead,
    RewardCreate,
    RewardRead,
    TierInfo,
    TransactionRead,
)
from service_center_api.app.services.audit_service import AuditService
from service_center_api.app.services.settings_service import LOYALTY_POINTS_PER_UNIT, SettingsService

logger = logging.getLogger(__name__)

# (tier, lifetime points needed, earning multiplier), highest tier first.
TIERS = (
    (LoyaltyTier.PLATINUM, 10_000, 2.0),
    (LoyaltyTier.GOLD, 5_000, 1.5),
    (LoyaltyTier.SILVER, 1_000, 1.25),
    (LoyaltyTier.BRONZE, 0, 1.0),
)


def tier_for_points(total_points: int) -> LoyaltyTier:
    for tier, threshold, _ in TIERS:
        if total_points >= threshold:
            return tier
    return LoyaltyTier.BRONZE


def multiplier_for(tier: LoyaltyTier) -> float:
    for candidate, _, multiplier in TIERS:
        if candidate is LoyaltyTier(tier):
            return multiplier
    raise ValueError(f"Unknown tier '{tier}'")


def points_for_spend(amount: float, rate: float, tier: LoyaltyTier) -> int:
    """Points earned for ``amount`` at ``rate`` points per unit in ``tier``.

    Computed in decimal so that e.g. ``100 * 0.29`` floors to 29, not 28.
    """
    exact = Decimal(str(amount)) * Decimal(str(rate)) * Decimal(str(multiplier_for(tier)))
    return math.floor(exact)


_REDEMPTION_SELECT = (
    "SELECT r.*, c.name AS customer_name, w.name AS reward_name FROM redemptions r "
    "JOIN loyalty_customers c ON c.id = r.customer_id "
    "JOIN rewards w ON w.id = r.reward_id"
)


class LoyaltyService:
    """Service for loyalty customers, rewards and the points ledger."""

    # ------------------------------------------------------------------
    # Row conversion
    # ------------------------------------------------------------------
    @staticmethod
    def _customer(row: sqlite3.Row) -> CustomerRead:
        data = dict(row)
        data["vehicle_numbers"] = json.loads(row["vehicle_numbers"]) if row["vehicle_numbers"] else []
        return CustomerRead(**data)

    @staticmethod
    def _reward(row: sqlite3.Row) -> RewardRead:
        data = dict(row)
        data["is_active"] = bool(row["is_active"])
        return RewardRead(**data)

    @staticmethod
    def _fetch_customer(cursor: sqlite3.Cursor, customer_id: int) -> sqlite3.Row:
        row = cursor.execute("SELECT * FROM loyalty_customers WHERE id = ?", (customer_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Customer {customer_id} not found")
        return row

    @staticmethod
    def _fetch_reward(cursor: sqlite3.Cursor, reward_id: int) -> sqlite3.Row:
        row = cursor.execute("SELECT * FROM rewards WHERE id = ?", (reward_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Reward {reward_id} not found")
        return row

    @staticmethod
    def _fetch_redemption(cursor: sqlite3.Cursor, redemption_id: int) -> sqlite3.Row:
        row = cursor.execute(f"{_REDEMPTION_SELECT} WHERE r.id = ?", (redemption_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Redemption {redemption_id} not found")
        return row

    @staticmethod
    def _fetch_transaction(cursor: sqlite3.Cursor, transaction_id: int) -> TransactionRead:
        row = cursor.execute("SELECT * FROM points_transactions WHERE id = ?", (transaction_id,)).fetchone()
        return TransactionRead(**dict(row))

    @staticmethod
    def _check_phone(cursor: sqlite3.Cursor, phone: str, customer_id: Optional[int] = None) -> None:
        if cursor.execute(
            "SELECT 1 FROM loyalty_customers WHERE phone = ? AND id != ?", (phone, customer_id or 0)
        ).fetchone():
            raise ConflictError(f"A customer with phone {phone} already exists")

    @staticmethod
    def _add_transaction(
        cursor: sqlite3.Cursor,
        customer_id: int,
        kind: TransactionType,
        points: int,
        actor_id: Optional[int],
        amount: Optional[float] = None,
        job_card_id: Optional[int] = None,
        redemption_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> int:
        cursor.execute(
            "INSERT INTO points_transactions (customer_id, type, points, amount, job_card_id, redemption_id, "
            "description, created_by, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (customer_id, kind.value, points, amount, job_card_id, redemption_id, description, actor_id, now_iso()),
        )
        return cursor.lastrowid

    @staticmethod
    def _credit(cursor: sqlite3.Cursor, customer: sqlite3.Row, points: int, spent: float = 0.0) -> None:
        """Add ``points`` to both balances and re-derive the tier."""
        total = customer["total_points"] + points
        cursor.execute(
            "UPDATE loyalty_customers SET total_points = ?, available_points = available_points + ?, "
            "tier = ?, total_spent = total_spent + ?, updated_at = ? WHERE id = ?",
            (total, points, tier_for_points(total).value, spent, now_iso(), customer["id"]),
        )

    # ------------------------------------------------------------------
    # Customers
    # ------------------------------------------------------------------
    @classmethod
    async def list_customers(cls, q: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[CustomerRead]:
        """List customers by name, optionally searching name, phone and vehicle numbers."""
        query = "SELECT * FROM loyalty_customers"
        params: List[Any] = []
        if q:
            like = f"%{q.strip()}%"
            query += " WHERE name LIKE ? OR phone LIKE ? OR vehicle_numbers LIKE ?"
            params.extend([like, like, like])
        query += " ORDER BY name LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            return [cls._customer(row) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_customer(cls, customer_id: int) -> CustomerRead:
        conn = get_connection()
        try:
            return cls._customer(cls._fetch_customer(conn.cursor(), customer_id))
        finally:
            conn.close()

    @classmethod
    async def create_customer(cls, data: CustomerCreate, actor_id: Optional[int]) -> CustomerRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._check_phone(cursor, data.phone)
            cursor.execute(
                "INSERT INTO loyalty_customers (name, phone, email, vehicle_numbers, tier, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    data.name,
                    data.phone,
                    data.email,
                    json.dumps(data.vehicle_numbers),
                    LoyaltyTier.BRONZE.value,
                    now_iso(),
                ),
            )
            customer_id = cursor.lastrowid
            AuditService.record(cursor, actor_id, "create", "loyalty_customer", customer_id, {"name": data.name})
            conn.commit()
            logger.info("Loyalty customer %s enrolled", data.name)
            return cls._customer(cls._fetch_customer(cursor, customer_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_customer(cls, customer_id: int, updates: Dict[str, Any], actor_id: Optional[int]) -> CustomerRead:
        """Edit contact details.  Balances and tier only change through the ledger."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._fetch_customer(cursor, customer_id)
            if not updates:
                return cls._customer(cls._fetch_customer(cursor, customer_id))
            if "phone" in updates:
                cls._check_phone(cursor, updates["phone"], customer_id)
            values = {
                key: json.dumps(value) if key == "vehicle_numbers" else value
                for key, value in updates.items()
            }
            assignments = ", ".join(f"{key} = ?" for key in values)
            cursor.execute(
                f"UPDATE loyalty_customers SET {assignments}, updated_at = ? WHERE id = ?",
                (*values.values(), now_iso(), customer_id),
            )
            AuditService.record(
                cursor, actor_id, "update", "loyalty_customer", customer_id, {"fields": sorted(updates)}
            )
            conn.commit()
            return cls._customer(cls._fetch_customer(cursor, customer_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_customer(cls, customer_id: int, actor_id: Optional[int]) -> None:
        """Delete a customer with their transactions and redemptions.

        Rewards held by pending redemptions go back to stock first.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            row = cls._fetch_customer(cursor, customer_id)
            pending = RedemptionStatus.PENDING.value
            cursor.execute(
                "UPDATE rewards SET stock = stock + ("
                " SELECT COUNT(*) FROM redemptions r"
                " WHERE r.reward_id = rewards.id AND r.customer_id = ? AND r.status = ?)"
                " WHERE stock IS NOT NULL AND id IN ("
                " SELECT reward_id FROM redemptions WHERE customer_id = ? AND status = ?)",
                (customer_id, pending, customer_id, pending),
            )
            cursor.execute("DELETE FROM loyalty_customers WHERE id = ?", (customer_id,))
            AuditService.record(
                cursor, actor_id, "delete", "loyalty_customer", customer_id,
                {"name": row["name"], "available_points": row["available_points"]},
            )
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def list_transactions(cls, customer_id: int, limit: int = 100, offset: int = 0) -> List[TransactionRead]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._fetch_customer(cursor, customer_id)
            rows = cursor.execute(
                "SELECT * FROM points_transactions WHERE customer_id = ? ORDER BY id DESC LIMIT ? OFFSET ?",
                (customer_id, limit, offset),
            ).fetchall()
            return [TransactionRead(**dict(row)) for row in rows]
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------
    @classmethod
    async def earn(
        cls,
        customer_id: int,
        amount: float,
        actor_id: Optional[int],
        job_card_id: Optional[int] = None,
        description: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Credit points for ``amount`` spent.

        A job card can be credited only once; a second attempt raises
        ``ConflictError``.  Returns the updated customer and the new
        transaction.
        """
        if amount <= 0:
            raise ValueError("Amount must be positive")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            customer = cls._fetch_customer(cursor, customer_id)
            if job_card_id is not None:
                if not cursor.execute("SELECT 1 FROM job_cards WHERE id = ?", (job_card_id,)).fetchone():
                    raise NotFoundError(f"Job card {job_card_id} not found")
                if cursor.execute(
                    "SELECT 1 FROM points_transactions WHERE job_card_id = ? AND type = ?",
                    (job_card_id, TransactionType.EARN.value),
                ).fetchone():
                    raise ConflictError(f"Job card {job_card_id} has already earned points")
            rate = float(
                SettingsService.get_value(cursor, LOYALTY_POINTS_PER_UNIT, settings.loyalty_points_per_unit)
            )
            points = points_for_spend(amount, rate, LoyaltyTier(customer["tier"]))
            cls._credit(cursor, customer, points, spent=amount)
            transaction_id = cls._add_transaction(
                cursor,
                customer_id,
                TransactionType.EARN,
                points,
                actor_id,
                amount=amount,
                job_card_id=job_card_id,
                description=description,
            )
            AuditService.record(
                cursor, actor_id, "earn", "loyalty_customer", customer_id,
                {"points": points, "amount": amount, "job_card_id": job_card_id},
            )
            conn.commit()
            logger.info("Customer %s earned %s points", customer_id, points)
            return {
                "customer": cls._customer(cls._fetch_customer(cursor, customer_id)),
                "transaction": cls._fetch_transaction(cursor, transaction_id),
            }
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            raise ConflictError(f"Job card {job_card_id} has already earned points") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def bonus(
        cls, customer_id: int, points: int, actor_id: Optional[int], description: Optional[str] = None
    ) -> Dict[str, Any]:
        if points <= 0:
            raise ValueError("Bonus points must be positive")
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            customer = cls._fetch_customer(cursor, customer_id)
            cls._credit(cursor, customer, points)
            transaction_id = cls._add_transaction(
                cursor, customer_id, TransactionType.BONUS, points, actor_id, description=description
            )
            AuditService.record(
                cursor, actor_id, "bonus", "loyalty_customer", customer_id,
                {"points": points, "description": description},
            )
            conn.commit()
            return {
                "customer": cls._customer(cls._fetch_customer(cursor, customer_id)),
                "transaction": cls._fetch_transaction(cursor, transaction_id),
            }
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def redeem(cls, customer_id: int, reward_id: int, actor_id: Optional[int]) -> Dict[str, Any]:
        """Exchange points for a reward.

        The balance, the stock, the redemption and its ledger row are all
        written in one transaction.  The balance is decremented with a
        guarded UPDATE so two concurrent redemptions cannot overdraw it.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            cls._fetch_customer(cursor, customer_id)
            reward = cls._fetch_reward(cursor, reward_id)
            if not reward["is_active"]:
                raise ValueError(f"Reward '{reward['name']}' is not available")
            if reward["stock"] is not None and reward["stock"] <= 0:
                raise ValueError(f"Reward '{reward['name']}' is out of stock")
            cost = reward["points_cost"]
            cursor.execute(
                "UPDATE loyalty_customers SET available_points = available_points - ?, updated_at = ? "
                "WHERE id = ? AND available_points >= ?",
                (cost, now_iso(), customer_id, cost),
            )
            if cursor.rowcount != 1:
                raise ValueError(f"Insufficient points: {cost} needed")
            if reward["stock"] is not None:
                cursor.execute("UPDATE rewards SET stock = stock - 1 WHERE id = ?", (reward_id,))
            cursor.execute(
                "INSERT INTO redemptions (customer_id, reward_id, points_spent, status, created_by, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (customer_id, reward_id, cost, RedemptionStatus.PENDING.value, actor_id, now_iso()),
            )
            redemption_id = cursor.lastrowid
            cls._add_transaction(
                cursor,
                customer_id,
                TransactionType.REDEEM,
                -cost,
                actor_id,
                redemption_id=redemption_id,
                description=reward["name"],
            )
            AuditService.record(
                cursor, actor_id, "redeem", "loyalty_customer", customer_id,
                {"reward_id": reward_id, "points": cost, "redemption_id": redemption_id},
            )
            conn.commit()
            logger.info("Customer %s redeemed reward %s for %s points", customer_id, reward_id, cost)
            return {
                "customer": cls._customer(cls._fetch_customer(cursor, customer_id)),
                "redemption": RedemptionRead(**dict(cls._fetch_redemption(cursor, redemption_id))),
            }
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Redemptions
    # ------------------------------------------------------------------
    @classmethod
    async def list_redemptions(
        cls, status: Optional[str] = None, customer_id: Optional[int] = None, limit: int = 100, offset: int = 0
    ) -> List[RedemptionRead]:
        where: List[str] = []
        params: List[Any] = []
        if status:
            where.append("r.status = ?")
            params.append(status)
        if customer_id is not None:
            where.append("r.customer_id = ?")
            params.append(customer_id)
        query = _REDEMPTION_SELECT
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY r.id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        conn = get_connection()
        try:
            return [RedemptionRead(**dict(row)) for row in conn.execute(query, tuple(params)).fetchall()]
        finally:
            conn.close()

    @classmethod
    async def update_redemption_status(
        cls, redemption_id: int, status: RedemptionStatus, actor_id: Optional[int]
    ) -> RedemptionRead:
        """Fulfil or cancel a pending redemption.

        Cancelling gives the points back to the spendable balance (the
        lifetime total is unaffected) and returns the item to stock.
        """
        status = RedemptionStatus(status)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute("BEGIN IMMEDIATE")
            row = cls._fetch_redemption(cursor, redemption_id)
            if row["status"] != RedemptionStatus.PENDING.value or status is RedemptionStatus.PENDING:
                raise ConflictError(
                    f"Redemption {redemption_id} cannot go from {row['status']} to {status.value}"
                )
            cursor.execute(
                "UPDATE redemptions SET status = ?, resolved_at = ?, resolved_by = ? WHERE id = ?",
                (status.value, now_iso(), actor_id, redemption_id),
            )
            if status is RedemptionStatus.CANCELLED:
                cursor.execute(
                    "UPDATE loyalty_customers SET available_points = available_points + ?, updated_at = ? WHERE id = ?",
                    (row["points_spent"], now_iso(), row["customer_id"]),
                )
                cursor.execute(
                    "UPDATE rewards SET stock = stock + 1 WHERE id = ? AND stock IS NOT NULL",
                    (row["reward_id"],),
                )
                cls._add_transaction(
                    cursor,
                    row["customer_id"],
                    TransactionType.REFUND,
                    row["points_spent"],
                    actor_id,
                    redemption_id=redemption_id,
                    description=f"Cancelled: {row['reward_name']}",
                )
            AuditService.record(
                cursor, actor_id, "status_change", "redemption", redemption_id,
                {"changes": {"status": {"old": row["status"], "new": status.value}}},
            )
            conn.commit()
            return RedemptionRead(**dict(cls._fetch_redemption(cursor, redemption_id)))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Rewards
    # ------------------------------------------------------------------
    @classmethod
    async def list_rewards(cls, active_only: bool = False) -> List[RewardRead]:
        query = "SELECT * FROM rewards"
        if active_only:
            query += " WHERE is_active = 1"
        conn = get_connection()
        try:
            return [cls._reward(row) for row in conn.execute(query + " ORDER BY points_cost").fetchall()]
        finally:
            conn.close()

    @classmethod
    async def get_reward(cls, reward_id: int) -> RewardRead:
        conn = get_connection()
        try:
            return cls._reward(cls._fetch_reward(conn.cursor(), reward_id))
        finally:
            conn.close()

    @classmethod
    async def create_reward(cls, data: RewardCreate, actor_id: Optional[int]) -> RewardRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO rewards (name, description, points_cost, category, stock, is_active, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?)",
                (
                    data.name,
                    data.description,
                    data.points_cost,
                    data.category.value,
                    data.stock,
                    1 if data.is_active else 0,
                    now_iso(),
                ),
            )
            reward_id = cursor.lastrowid
            AuditService.record(cursor, actor_id, "create", "reward", reward_id, data.model_dump(mode="json"))
            conn.commit()
            return cls._reward(cls._fetch_reward(cursor, reward_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def update_reward(cls, reward_id: int, updates: Dict[str, Any], actor_id: Optional[int]) -> RewardRead:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            cls._fetch_reward(cursor, reward_id)
            if updates:
                values = {}
                for key, value in updates.items():
                    if isinstance(value, bool):
                        value = 1 if value else 0
                    elif hasattr(value, "value"):
                        value = value.value
                    values[key] = value
                assignments = ", ".join(f"{key} = ?" for key in values)
                cursor.execute(
                    f"UPDATE rewards SET {assignments}, updated_at = ? WHERE id = ?",
                    (*values.values(), now_iso(), reward_id),
                )
                AuditService.record(cursor, actor_id, "update", "reward", reward_id, {"fields": sorted(updates)})
                conn.commit()
            return cls._reward(cls._fetch_reward(cursor, reward_id))
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @classmethod
    async def delete_reward(cls, reward_id: int, actor_id: Optional[int]) -> None:
        """Delete a reward that was never redeemed.

        Rewards with redemptions must be deactivated instead so the
        redemption history stays intact.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            reward = cls._fetch_reward(cursor, reward_id)
            if cursor.execute("SELECT 1 FROM redemptions WHERE reward_id = ? LIMIT 1", (reward_id,)).fetchone():
                raise ConflictError(f"Reward '{reward['name']}' has redemptions; deactivate it instead")
            cursor.execute("DELETE FROM rewards WHERE id = ?", (reward_id,))
            AuditService.record(cursor, actor_id, "delete", "reward", reward_id, {"name": reward["name"]})
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Program overview
    # ------------------------------------------------------------------
    @staticmethod
    def tiers() -> List[TierInfo]:
        return [
            TierInfo(tier=tier, min_points=threshold, multiplier=multiplier)
            for tier, threshold, multiplier in reversed(TIERS)
        ]

    @classmethod
    async def stats(cls) -> Dict[str, Any]:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            by_tier = {tier.value: 0 for tier in LoyaltyTier}
            for row in cursor.execute(
                "SELECT tier, COUNT(*) AS count FROM loyalty_customers GROUP BY tier"
            ).fetchall():
                by_tier[row["tier"]] = row["count"]
            issued, outstanding = cursor.execute(
                "SELECT COALESCE(SUM(total_points), 0), COALESCE(SUM(available_points), 0) FROM loyalty_customers"
            ).fetchone()
            redemptions = {
                row["status"]: row["count"]
                for row in cursor.execute(
                    "SELECT status, COUNT(*) AS count FROM redemptions GROUP BY status"
                ).fetchall()
            }
            return {
                "total_customers": sum(by_tier.values()),
                "customers_by_tier": by_tier,
                "points_issued": issued,
                "points_outstanding": outstanding,
                "pending_redemptions": redemptions.get(RedemptionStatus.PENDING.value, 0),
                "fulfilled_redemptions": redemptions.get(RedemptionStatus.FULFILLED.value, 0),
            }
        finally:
            conn.close()

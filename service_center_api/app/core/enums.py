"""
Enumerations and fixed reference data shared across the application.

Role identifiers match the rows seeded into the ``roles`` table by
``core.db.init_db``.  String enums are stored verbatim in the database
and exchanged verbatim over the API.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Role(IntEnum):
    """Role identifiers as stored in ``users.role_id``."""

    ADMIN = 1
    MANAGER = 2
    JOB_CARD = 3
    TECHNICIAN = 4
    SERVICE = 5


ROLE_NAMES: dict[int, str] = {
    Role.ADMIN: "Admin",
    Role.MANAGER: "Manager",
    Role.JOB_CARD: "Job Card",
    Role.TECHNICIAN: "Technician",
    Role.SERVICE: "Service",
}

# Roles allowed to see monetary job-card fields.
REVENUE_ROLES = frozenset({Role.ADMIN, Role.MANAGER})

# Roles restricted to status updates on job cards.
LIMITED_ROLES = frozenset({Role.TECHNICIAN, Role.SERVICE})

# Roles that run the front desk: job cards and loyalty customers.
FRONT_DESK_ROLES = (Role.ADMIN, Role.MANAGER, Role.JOB_CARD)


class ServiceCategory(str, Enum):
    PAID = "Paid Service"
    COMPANY_FREE = "Company Free Service"
    REPAIR = "Repair"


SERVICE_TYPES: dict[ServiceCategory, tuple[str, ...]] = {
    ServiceCategory.PAID: (
        "Regular Service",
        "Premium Service",
        "Service with Oil Spray (Oil Change)",
    ),
    ServiceCategory.COMPANY_FREE: (
        "1st Free Service",
        "2nd Free Service",
        "3rd Free Service",
    ),
    ServiceCategory.REPAIR: ("Repair",),
}


class JobStatus(str, Enum):
    """Job card statuses, declared in workflow order."""

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    OIL_CHANGE = "Oil Change"
    QUALITY_CHECK = "Quality Check"
    COMPLETED = "Completed"
    DELIVERED = "Delivered"


# Statuses in which a job no longer occupies its bay.
CLOSED_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.DELIVERED})


class PaymentStatus(str, Enum):
    PAID_IN_FULL = "Paid in Full"
    ADVANCE_PAID = "Advance Paid"


WASH_BAY = "Wash Bay"
TECHNICIAN_BAYS: tuple[str, ...] = ("Bay 1", "Bay 2", "Bay 3", "Bay 4", "Bay 5")
BAYS: tuple[str, ...] = TECHNICIAN_BAYS + (WASH_BAY,)


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    LATE = "Late"
    LEAVE = "Leave"


class LoyaltyTier(str, Enum):
    BRONZE = "Bronze"
    SILVER = "Silver"
    GOLD = "Gold"
    PLATINUM = "Platinum"


class RewardCategory(str, Enum):
    DISCOUNT = "Discount"
    FREE_SERVICE = "Free Service"
    MERCHANDISE = "Merchandise"
    SPECIAL = "Special"


class RedemptionStatus(str, Enum):
    PENDING = "Pending"
    FULFILLED = "Fulfilled"
    CANCELLED = "Cancelled"


class TransactionType(str, Enum):
    """Kinds of rows in the points ledger."""

    EARN = "earn"
    BONUS = "bonus"
    REDEEM = "redeem"
    REFUND = "refund"

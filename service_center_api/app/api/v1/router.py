"""
Top-level router for version 1 of the API.

This router aggregates the domain routers (job cards, staff,
attendance, loyalty, ...) under a unified prefix.  When a new domain is
added, include its router here.
"""

from fastapi import APIRouter

from .endpoints import (
    attendance,
    audit,
    auth,
    job_cards,
    loyalty,
    parts_catalog,
    reports,
    settings,
    staff,
    technicians,
    users,
)

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(job_cards.router, prefix="/job-cards", tags=["job-cards"])
router.include_router(job_cards.bays_router, prefix="/bays", tags=["job-cards"])
router.include_router(staff.router, prefix="/staff", tags=["staff"])
router.include_router(technicians.router, prefix="/technicians", tags=["technicians"])
router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
router.include_router(parts_catalog.router, prefix="/parts-catalog", tags=["parts-catalog"])
router.include_router(loyalty.router, prefix="/loyalty", tags=["loyalty"])
router.include_router(reports.statistics_router, prefix="/statistics", tags=["reports"])
router.include_router(reports.router, prefix="/reports", tags=["reports"])
router.include_router(settings.router, prefix="/settings", tags=["settings"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])

"""
Tests for job_workflow.py - status rules and payment split.
"""

import pytest

from service_center_api.app.core.enums import JobStatus, PaymentStatus, Role, ServiceCategory
from service_center_api.app.core.exceptions import (
    ConflictError,
    InvalidTransitionError,
    PermissionDeniedError,
)
from service_center_api.app.services import job_workflow


class TestAllowedStatuses:
    """Legal statuses per service category."""

    def test_repair_excludes_oil_change(self):
        statuses = job_workflow.allowed_statuses(ServiceCategory.REPAIR)
        assert JobStatus.OIL_CHANGE not in statuses
        assert len(statuses) == 5

    @pytest.mark.parametrize("category", ["Paid Service", "Company Free Service"])
    def test_service_categories_allow_every_status(self, category):
        assert set(job_workflow.allowed_statuses(category)) == set(JobStatus)

    def test_service_type_must_match_category(self):
        job_workflow.validate_service_type("Company Free Service", "2nd Free Service")
        with pytest.raises(ValueError):
            job_workflow.validate_service_type("Repair", "Regular Service")


class TestStatusChange:
    """check_status_change across roles and categories."""

    def test_same_status_is_noop(self):
        assert job_workflow.check_status_change("Pending", "Pending", "Paid Service", Role.ADMIN) is False

    def test_forward_move_is_allowed(self):
        assert job_workflow.check_status_change("Pending", "In Progress", "Repair", Role.JOB_CARD) is True

    @pytest.mark.parametrize("role", [Role.TECHNICIAN, Role.SERVICE])
    @pytest.mark.parametrize("target", ["Pending", "Oil Change", "Quality Check", "Delivered"])
    def test_limited_roles_restricted_targets(self, role, target):
        with pytest.raises(PermissionDeniedError):
            job_workflow.check_status_change("In Progress", target, "Paid Service", role)

    @pytest.mark.parametrize("target", ["In Progress", "Completed"])
    def test_limited_roles_may_start_and_complete(self, target):
        assert job_workflow.check_status_change("Pending", target, "Paid Service", Role.TECHNICIAN) is True

    def test_oil_change_illegal_for_repair(self):
        with pytest.raises(InvalidTransitionError):
            job_workflow.check_status_change("In Progress", "Oil Change", "Repair", Role.ADMIN)

    def test_delivered_requires_completed(self):
        with pytest.raises(ConflictError):
            job_workflow.check_status_change("Quality Check", "Delivered", "Paid Service", Role.ADMIN)
        assert job_workflow.check_status_change("Completed", "Delivered", "Paid Service", Role.ADMIN) is True

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.TECHNICIAN])
    def test_nothing_leaves_delivered(self, role):
        with pytest.raises(ConflictError):
            job_workflow.check_status_change("Delivered", "In Progress", "Paid Service", role)

    def test_privileged_roles_can_step_back(self):
        assert job_workflow.check_status_change("Quality Check", "In Progress", "Paid Service", Role.MANAGER) is True

    @pytest.mark.parametrize("role", [Role.TECHNICIAN, Role.SERVICE])
    def test_limited_roles_cannot_reopen_completed(self, role):
        with pytest.raises(PermissionDeniedError):
            job_workflow.check_status_change("Completed", "In Progress", "Paid Service", role)
        assert job_workflow.check_status_change("Completed", "Completed", "Paid Service", role) is False


class TestCategoryChange:

    def test_rejects_status_not_legal_in_new_category(self):
        with pytest.raises(InvalidTransitionError):
            job_workflow.check_category_change(JobStatus.OIL_CHANGE, ServiceCategory.REPAIR)

    def test_accepts_shared_status(self):
        job_workflow.check_category_change("In Progress", "Repair")


class TestPayment:

    def test_repair_pays_half_in_advance(self):
        result = job_workflow.calculate_payment("Repair", 18500)
        assert result == {
            "advance_payment": 9250,
            "remaining_payment": 9250,
            "payment_status": PaymentStatus.ADVANCE_PAID.value,
        }

    def test_odd_repair_cost_splits_to_cents(self):
        result = job_workflow.calculate_payment("Repair", 1001)
        assert result["advance_payment"] + result["remaining_payment"] == pytest.approx(1001)

    def test_service_paid_in_full(self):
        result = job_workflow.calculate_payment("Paid Service", 1500)
        assert result["advance_payment"] == 1500
        assert result["remaining_payment"] == 0
        assert result["payment_status"] == "Paid in Full"

#!/usr/bin/env python3
"""
Load demonstration data into an empty service center database.

Creates staff, technicians, one login per role, a handful of job cards,
catalog parts, rewards and loyalty customers.  Everything goes through
the service layer so the audit log is populated as well.  Running the
script against a database that already has job cards does nothing.

Usage:
    python seed_demo.py
"""

import asyncio
import logging

from service_center_api.app.core.config import settings
from service_center_api.app.core.db import get_connection, init_db
from service_center_api.app.core.enums import JobStatus, Role, ServiceCategory
from service_center_api.app.core.logging_config import setup_logging
from service_center_api.app.schemas.job_card import JobCardCreate
from service_center_api.app.schemas.loyalty import CustomerCreate, RewardCreate
from service_center_api.app.schemas.part import PartCreate
from service_center_api.app.schemas.staff import StaffCreate, TechnicianCreate
from service_center_api.app.schemas.user import UserCreate
from service_center_api.app.services.job_card_service import JobCardService
from service_center_api.app.services.loyalty_service import LoyaltyService
from service_center_api.app.services.parts_service import PartsService
from service_center_api.app.services.staff_service import StaffService, TechnicianService
from service_center_api.app.services.user_service import UserService

logger = logging.getLogger("seed_demo")

STAFF = [
    ("Arun Kumar", "0771234567", "arun@hondajaffna.lk", "Admin", ["Management", "Customer Relations"]),
    ("Priya Shankar", "0772345678", "priya@hondajaffna.lk", "Manager", ["Operations", "Scheduling"]),
    ("Ramesh Nair", "0773456789", "ramesh@hondajaffna.lk", "Job Card", ["Customer Service"]),
    ("Suresh Pillai", "0774567890", "suresh@hondajaffna.lk", "Job Card", ["Customer Service", "Billing"]),
    ("Karthik Rajan", "0775678901", "karthik@hondajaffna.lk", "Job Card", ["Data Entry"]),
]

TECHNICIANS = [
    ("Kannan Selvam", "0761111111", "Engine Repair"),
    ("Vimal Kumar", "0762222222", "Electrical Systems"),
    ("Ravi Chandran", "0763333333", "Brake & Suspension"),
    ("Senthil Murugan", "0764444444", "General Service"),
    ("Mani Kandan", "0765555555", "Senior Technician"),
]

USERS = [
    ("manager", "manager123", "Priya Shankar", Role.MANAGER),
    ("staff1", "staff123", "Ramesh Nair", Role.JOB_CARD),
    ("tech1", "tech123", "Kannan Selvam", Role.TECHNICIAN),
    ("service1", "service123", "Wash Bay Crew", Role.SERVICE),
]

JOBS = [
    ("Rajesh Kumar", "0771234567", "Shine", "NP-2341", 15420, ServiceCategory.PAID, "Regular Service", 1500, "Bay 1", 0, JobStatus.IN_PROGRESS),
    ("Lakshmi Devi", "0778765432", "Dio", "NP-5512", 3200, ServiceCategory.COMPANY_FREE, "1st Free Service", 0, "Bay 2", 3, JobStatus.PENDING),
    ("Mohan Raj", "0763456123", "CB350", "NP-7788", 22150, ServiceCategory.REPAIR, "Repair", 18500, "Bay 3", 0, JobStatus.QUALITY_CHECK),
    ("Anitha S", "0751239876", "Activa 6G", "NP-9001", 8700, ServiceCategory.PAID, "Premium Service", 2500, "Wash Bay", None, JobStatus.PENDING),
    ("Ganesh P", "0749988776", "Unicorn", "NP-4420", 30500, ServiceCategory.PAID, "Service with Oil Spray (Oil Change)", 3200, None, None, JobStatus.COMPLETED),
]

PARTS = [
    ("15412-KWN-901", "Oil Filter", 850),
    ("06455-KVB-T01", "Front Brake Pad Set", 2400),
    ("31916-KRM-841", "Spark Plug", 650),
    ("17210-K0N-D00", "Air Filter Element", 1200),
]

REWARDS = [
    ("10% Service Discount", "Discount on the next paid service", 500, "Discount", None),
    ("Free Wash", "One complimentary wash", 300, "Free Service", None),
    ("Honda Cap", "Branded cap", 800, "Merchandise", 25),
]

CUSTOMERS = [
    ("Rajesh Kumar", "0771234567", ["NP-2341"]),
    ("Lakshmi Devi", "0778765432", ["NP-5512"]),
    ("Mohan Raj", "0763456123", ["NP-7788", "NP-7789"]),
]


async def seed() -> None:
    conn = get_connection()
    try:
        if conn.execute("SELECT COUNT(*) FROM job_cards").fetchone()[0]:
            logger.info("Database already has job cards; nothing to do")
            return
        admin = conn.execute(
            "SELECT id FROM users WHERE username = ?", (settings.admin_username,)
        ).fetchone()
    finally:
        conn.close()
    actor = {"user_id": admin["id"], "role_id": int(Role.ADMIN)}

    staff_ids = {}
    for name, phone, email, role, skills in STAFF:
        member = await StaffService.create_staff(
            StaffCreate(name=name, phone=phone, email=email, role=role, work_skills=skills), actor["user_id"]
        )
        staff_ids[name] = member.id

    technicians = []
    for name, phone, specialization in TECHNICIANS:
        technicians.append(
            await TechnicianService.create_technician(
                TechnicianCreate(name=name, phone=phone, specialization=specialization), actor["user_id"]
            )
        )

    for username, password, full_name, role in USERS:
        await UserService.create_user(
            UserCreate(
                username=username,
                password=password,
                full_name=full_name,
                role_id=int(role),
                staff_id=staff_ids.get(full_name),
            ),
            actor["user_id"],
        )

    for name, phone, model, reg, odo, category, service_type, cost, bay, tech, status in JOBS:
        await JobCardService.create_job_card(
            JobCardCreate(
                customer_name=name,
                phone=phone,
                bike_model=model,
                registration=reg,
                odometer=odo,
                service_category=category,
                service_type=service_type,
                cost=cost,
                status=status,
                bay=bay,
                technician_id=technicians[tech].id if tech is not None else None,
            ),
            actor,
        )

    for part_number, name, price in PARTS:
        await PartsService.create_part(PartCreate(part_number=part_number, name=name, price=price), actor["user_id"])

    for name, description, cost, category, stock in REWARDS:
        await LoyaltyService.create_reward(
            RewardCreate(name=name, description=description, points_cost=cost, category=category, stock=stock),
            actor["user_id"],
        )

    for name, phone, vehicles in CUSTOMERS:
        customer = await LoyaltyService.create_customer(
            CustomerCreate(name=name, phone=phone, vehicle_numbers=vehicles), actor["user_id"]
        )
        await LoyaltyService.bonus(customer.id, 100, actor["user_id"], "Welcome bonus")

    logger.info(
        "Seeded %d staff, %d technicians, %d users, %d job cards",
        len(STAFF), len(TECHNICIANS), len(USERS), len(JOBS),
    )


def main() -> None:
    setup_logging(settings.log_level)
    init_db()
    asyncio.run(seed())


if __name__ == "__main__":
    main()

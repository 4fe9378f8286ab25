"""
Idempotent demo data: one admin, and a verified technician per service in
every district that has fewer than two technicians.

    python -m negotiation_service.seed
"""
import asyncio
import logging
import os
import random
from dataclasses import dataclass

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Role, Technician, User
from .pricing import CORE_SERVICES, STANDARD_SERVICES, ServiceCategory

logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL") or "admin@fixmate.com"
ADMIN_NAME = os.getenv("SEED_ADMIN_NAME") or "FixMate Admin"

DISTRICTS = [
    "Patna", "Purnia", "Darbhanga", "Sitamarhi", "Madhubani", "Madhepura",
    "Katihar", "Saharsa", "East Champaran", "West Champaran", "Begusarai", "Barauni",
]

TECH_NAMES = [
    "Rohit Kumar", "Rahul Singh", "Aman Verma", "Sumit Yadav", "Vikram Gupta",
    "Manoj Tiwari", "Sunil Sharma", "Pankaj Mishra", "Rajesh Ranjan", "Anil Paswan",
    "Kavita Devi", "Pooja Kumari", "Sita Devi", "Deepak Kumar", "Suresh Singh",
]

MIN_TECHNICIANS_PER_DISTRICT = 2


@dataclass
class SeedReport:
    admin_created: bool = False
    technicians_created: int = 0


def base_charge_for(service: ServiceCategory, rng: random.Random) -> int:
    if service == ServiceCategory.AC_REPAIR:
        return 1000 + rng.randrange(500)
    if service in CORE_SERVICES:
        return 500 + rng.randrange(1000)
    if service == ServiceCategory.MAID:
        return 500 + rng.randrange(300)
    return 100 + rng.randrange(150)


def _slug(value: str) -> str:
    return value.lower().replace(" ", "")


async def _email_taken(db: AsyncSession, email: str) -> bool:
    res = await db.execute(select(User.id).where(User.email == email))
    return res.scalar_one_or_none() is not None


async def seed_admin(db: AsyncSession) -> bool:
    if await _email_taken(db, ADMIN_EMAIL):
        return False
    db.add(User(name=ADMIN_NAME, email=ADMIN_EMAIL, role=Role.ADMIN.value))
    await db.flush()
    return True


async def seed_district(db: AsyncSession, district: str, rng: random.Random) -> int:
    res = await db.execute(select(func.count(Technician.id)).where(Technician.district == district))
    if res.scalar_one() >= MIN_TECHNICIANS_PER_DISTRICT:
        return 0

    created = 0
    groups = [("", CORE_SERVICES, "98765", 10), ("std_", STANDARD_SERVICES, "88765", 5)]
    for prefix, services, phone_prefix, max_experience in groups:
        for idx, service in enumerate(services):
            email = f"{_slug(district)}_{prefix}{_slug(service.value)}_{idx}@fixmate.com"
            if await _email_taken(db, email):
                continue

            user = User(
                name=rng.choice(TECH_NAMES),
                email=email,
                role=Role.TECHNICIAN.value,
                phone=f"{phone_prefix}{10000 + rng.randrange(90000)}",
                location=district,
            )
            db.add(user)
            await db.flush()

            bio = f"Expert {service.value} serving {district}." if service in CORE_SERVICES \
                else f"Reliable {service.value} service in {district}."
            db.add(Technician(
                user_id=user.id,
                skills=service.value,
                experience=rng.randrange(max_experience) + 1,
                district=district,
                is_verified=True,
                base_charge=base_charge_for(service, rng),
                bio=bio,
            ))
            created += 1

    await db.flush()
    return created


async def seed(db: AsyncSession, rng: random.Random | None = None) -> SeedReport:
    rng = rng or random.Random()
    report = SeedReport()

    report.admin_created = await seed_admin(db)
    for district in DISTRICTS:
        report.technicians_created += await seed_district(db, district, rng)

    await db.commit()
    logger.info("seed done: admin_created=%s technicians_created=%s",
                report.admin_created, report.technicians_created)
    return report


async def main():
    from .db import SessionLocal, create_tables
    from .logging_config import configure_logging

    configure_logging()
    await create_tables()
    async with SessionLocal() as db:
        await seed(db)


if __name__ == "__main__":
    asyncio.run(main())

"""
Seed Admin User and Visa Types

Creates the initial ADMIN account and a starter visa type catalogue.
Safe to re-run: existing rows are left untouched.

Usage:
    cd apps/api
    alembic upgrade head
    SEED_ADMIN_EMAIL=admin@example.com SEED_ADMIN_PASSWORD=... python scripts/seed_admin.py
"""

import asyncio
import os
from decimal import Decimal

from visa_api.core.database import _import_models, async_session_maker, engine
from visa_api.core.security import hash_password
from visa_api.modules.users.models import UserRole
from visa_api.modules.users.repository import UserRepository
from visa_api.modules.visa_types import repository as visa_type_repository

VISA_TYPES = [
    {
        "name": "Tourist Visa",
        "slug": "tourist",
        "description": "Short stays for tourism and family visits.",
        "fee": Decimal("80.00"),
        "processing_days": 10,
    },
    {
        "name": "Business Visa",
        "slug": "business",
        "description": "Meetings, conferences and short business trips.",
        "fee": Decimal("150.00"),
        "processing_days": 15,
    },
    {
        "name": "Student Visa",
        "slug": "student",
        "description": "Enrolment at an accredited institution.",
        "fee": Decimal("120.00"),
        "processing_days": 20,
    },
]


async def seed() -> None:
    email = os.environ.get("SEED_ADMIN_EMAIL", "admin@visa.dev")
    password = os.environ.get("SEED_ADMIN_PASSWORD")
    if not password:
        raise SystemExit("SEED_ADMIN_PASSWORD must be set")

    _import_models()

    async with async_session_maker() as db:
        existing_user = await UserRepository.get_by_email(db, email)
        if existing_user:
            print(f"Admin already exists: {email} ({existing_user.id})")
        else:
            admin = await UserRepository.create(
                db,
                email=email,
                password_hash=hash_password(password),
                first_name="System",
                last_name="Administrator",
                role=UserRole.ADMIN,
            )
            print(f"Admin created: {admin.email} ({admin.id})")

        for visa_type in VISA_TYPES:
            if await visa_type_repository.get_by_slug(db, visa_type["slug"]):
                print(f"Visa type exists: {visa_type['slug']}")
                continue
            await visa_type_repository.create(db, **visa_type)
            print(f"Visa type created: {visa_type['slug']}")

        await db.commit()

    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(seed())

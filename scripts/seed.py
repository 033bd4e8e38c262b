"""
Seed an admin account, sample vendors and sample RFPs.

Run this script after the tables exist (the API creates them on startup).

Usage:
    SEED_ADMIN_PASSWORD=... python scripts/seed.py
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from sqlalchemy import select
from database.connection import get_db_context, init_db, close_db
from database.models import RFP, User, Vendor
from api.auth.password import hash_password
from services.rfp_store import RFPStore


ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")

SAMPLE_VENDORS = [
    {
        "name": "Northwind IT",
        "email": "sales@northwind-it.com",
        "company": "Northwind Traders",
        "expertise": ["Hardware", "Networking"],
        "rating": 4,
    },
    {
        "name": "Pixel Works",
        "email": "hello@pixelworks.com",
        "company": "Pixel Works Studio",
        "expertise": ["Web design", "Mobile apps"],
        "rating": 5,
    },
]

SAMPLE_RFPS = [
    {
        "title": "Website Redesign Project",
        "description": "Complete redesign of company website with modern UI/UX",
        "budget_amount": 10000,
        "requirements": [
            "Responsive design",
            "Content Management System",
            "SEO optimization",
            "Contact form integration",
        ],
    },
    {
        "title": "E-commerce Platform Development",
        "description": "Build a full-featured e-commerce platform with payment integration",
        "budget_amount": 25000,
        "requirements": [
            "Product catalog",
            "Shopping cart",
            "Payment gateway integration",
            "User accounts",
            "Order management",
        ],
    },
    {
        "title": "Mobile App Development",
        "description": "Cross-platform mobile application for iOS and Android",
        "budget_amount": 35000,
        "requirements": [
            "Offline functionality",
            "Push notifications",
            "Social media integration",
        ],
    },
]


async def seed_admin() -> str:
    password = os.getenv("SEED_ADMIN_PASSWORD")
    async with get_db_context() as db:
        result = await db.execute(select(User).where(User.email == ADMIN_EMAIL))
        existing = result.scalar_one_or_none()
        if existing:
            print(f"Admin '{ADMIN_EMAIL}' already exists, skipping")
            return existing.id

        if not password:
            raise SystemExit("SEED_ADMIN_PASSWORD is required to create the admin account")

        admin = User(
            name="Administrator",
            email=ADMIN_EMAIL,
            password_hash=hash_password(password),
            role="admin",
        )
        db.add(admin)
        await db.flush()
        print(f"Created admin: {ADMIN_EMAIL}")
        return admin.id


async def seed():
    await init_db()
    store = RFPStore()
    admin_id = await seed_admin()

    for vendor in SAMPLE_VENDORS:
        async with get_db_context() as db:
            result = await db.execute(select(Vendor.id).where(Vendor.email == vendor["email"]))
            if result.scalar_one_or_none():
                print(f"Vendor '{vendor['email']}' already exists, skipping")
                continue
        await store.create_vendor(vendor, created_by=admin_id)
        print(f"Created vendor: {vendor['name']}")

    for rfp in SAMPLE_RFPS:
        async with get_db_context() as db:
            result = await db.execute(select(RFP.id).where(RFP.title == rfp["title"]))
            if result.scalar_one_or_none():
                print(f"RFP '{rfp['title']}' already exists, skipping")
                continue
        await store.create_rfp(rfp, created_by=admin_id)
        print(f"Created RFP: {rfp['title']}")

    await close_db()
    print("\nSample data seeded")


if __name__ == "__main__":
    asyncio.run(seed())

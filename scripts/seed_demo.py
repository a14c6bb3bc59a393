#!/usr/bin/env python3
"""
Seed script to create demo staff users and a pending reservation
"""

import asyncio
from datetime import date, timedelta

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


async def seed_demo_data():
    """Seed demo data for development"""
    from sqlalchemy import select

    from reservepay.config import settings
    from reservepay.database import SessionLocal, engine, Base
    from reservepay.models.reservation import Reservation, ReservationStatus
    from reservepay.models.user import User, UserRole
    from reservepay.services.pricing import PricingAuthority
    from reservepay.store import ReservationStore

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with SessionLocal() as db:
        result = await db.execute(select(User).where(User.email == "admin@example.com"))
        if result.scalar_one_or_none():
            print("Demo data already exists. Skipping...")
            return

        print("Creating demo users...")

        db.add(User(
            email="admin@example.com",
            hashed_password=pwd_context.hash("admin123"),
            full_name="Demo Admin",
            role=UserRole.ADMIN,
        ))
        db.add(User(
            email="staff@example.com",
            hashed_password=pwd_context.hash("staff123"),
            full_name="Demo Staff",
            role=UserRole.STAFF,
        ))

        print("Creating demo reservation...")

        store = ReservationStore(db)
        customer = await store.upsert_customer_by_email("guest@example.com", name="Demo Guest")

        counts = {"adult": 2, "child": 1}
        charge = PricingAuthority(settings.unit_prices, settings.currency).price_party(counts)
        reservation = Reservation(
            customer_id=customer.id,
            date=date.today() + timedelta(days=7),
            slot="10:00",
            adult_count=2,
            child_count=1,
            amount=charge.amount,
            currency=charge.currency,
            status=ReservationStatus.PENDING.value,
        )
        await store.add_reservation(reservation)

        await db.commit()

        print(f"""
Demo data created successfully!

Users:
  Admin:
    Email: admin@example.com
    Password: admin123

  Staff:
    Email: staff@example.com
    Password: staff123

Reservation: {reservation.id}
  Customer: guest@example.com
  Amount: {charge.amount} {charge.currency.upper()}
  Status: PENDING
""")


if __name__ == "__main__":
    asyncio.run(seed_demo_data())

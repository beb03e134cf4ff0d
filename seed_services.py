#!/usr/bin/env python3
"""
Seed the default service catalog
Run: python seed_services.py
Existing services (matched by name) are left untouched.
"""

import logging
import sys

from app import models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.models import Service

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

DEFAULT_SERVICES = [
    {
        "name": "Basic maintenance",
        "description": "Engine oil change, oil filter replacement, basic inspection",
        "price": 1500,
        "duration": 60,
    },
    {
        "name": "Brake system check",
        "description": "Brake pad, brake fluid and rotor inspection",
        "price": 800,
        "duration": 45,
    },
    {
        "name": "Tire change",
        "description": "Four-wheel tire change, balancing and alignment",
        "price": 3200,
        "duration": 90,
    },
    {
        "name": "A/C service",
        "description": "Cabin filter replacement, refrigerant check and top-up, system cleaning",
        "price": 1200,
        "duration": 60,
    },
    {
        "name": "Battery test and replacement",
        "description": "Battery life and voltage test, replacement when needed",
        "price": 2500,
        "duration": 30,
    },
    {
        "name": "Full vehicle inspection",
        "description": "Chassis, engine, electrical and fluid checks",
        "price": 500,
        "duration": 45,
    },
    {
        "name": "Transmission oil change",
        "description": "Transmission oil change, strainer cleaning, system check",
        "price": 3500,
        "duration": 90,
    },
    {
        "name": "Spark plug replacement",
        "description": "Spark plug replacement and ignition system check",
        "price": 1800,
        "duration": 45,
    },
]


def seed_services(db) -> int:
    """Insert missing default services; returns how many were created"""
    created = 0
    for data in DEFAULT_SERVICES:
        if db.query(Service).filter(Service.name == data["name"]).first():
            continue
        db.add(Service(is_active=True, **data))
        created += 1
    db.commit()
    return created


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        created = seed_services(db)
        logger.info(f"✅ Seeded {created} services ({len(DEFAULT_SERVICES)} defaults)")
    except Exception as e:
        logger.error(f"❌ Seeding failed: {e}")
        db.rollback()
        sys.exit(1)
    finally:
        db.close()

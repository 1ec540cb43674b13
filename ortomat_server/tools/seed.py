"""
Demo data for a fresh Ortomat database.

Creates one admin, one doctor and one courier (all with the same
password), a few machines with products in their cells, and one row of
every other entity kind so that every foreign key in the schema is
exercised. Used by `ortomat-backup seed` and by the test suite.

Invariants:
    - Seeding requires an empty store (unique keys would collide otherwise)
    - All rows are inserted in one transaction
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from ..auth.passwords import DEFAULT_ROUNDS, hash_password
from ..backup.registry import insertion_order
from ..backup.snapshot import format_timestamp
from ..store import OrtomatStore

logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"
CELLS_PER_ORTOMAT = 4


def build_demo_data(
    password_hash: str,
    ortomat_count: int = 2,
    log_count: int = 5,
    now: datetime | None = None,
) -> dict[str, list[dict[str, Any]]]:
    """Build cross-referencing demo records keyed by entity kind."""
    now = now or datetime.now(timezone.utc)
    created = format_timestamp(now)

    users = [
        {
            "id": "user-admin",
            "email": "admin@ortomat.ua",
            "password": password_hash,
            "role": "ADMIN",
            "first_name": "Admin",
            "last_name": "System",
            "phone": "+380991234567",
            "is_verified": True,
            "created_at": created,
        },
        {
            "id": "user-doctor",
            "email": "doctor@ortomat.ua",
            "password": password_hash,
            "role": "DOCTOR",
            "first_name": "Olena",
            "last_name": "Kovalenko",
            "middle_name": "Ivanivna",
            "phone": "+380671112233",
            "is_verified": True,
            "created_at": created,
        },
        {
            "id": "user-courier",
            "email": "courier@ortomat.ua",
            "password": password_hash,
            "role": "COURIER",
            "first_name": "Taras",
            "last_name": "Melnyk",
            "phone": "+380503334455",
            "is_verified": False,
            "created_at": created,
        },
    ]

    ortomats = [
        {
            "id": f"ortomat-{i}",
            "name": f"Ortomat #{i}",
            "address": f"Kyivska St. {i}, Clinic #{i}",
            "city": "Kyiv",
            "total_cells": CELLS_PER_ORTOMAT,
            "status": "active",
            "created_at": created,
        }
        for i in range(1, ortomat_count + 1)
    ]

    products = [
        {
            "id": "product-knee-s",
            "name": "Elastic knee brace S",
            "sku": "KNEE-S",
            "category": "Knee braces",
            "size": "S",
            "price": 450.0,
            "images": ["/images/knee-s-1.jpg", "/images/knee-s-2.jpg"],
            "attributes": {"material": "Elastane 80%, Polyester 20%", "compression": "medium"},
            "referral_points": 45,
            "created_at": created,
        },
        {
            "id": "product-lumbar-l",
            "name": "Lumbar corset L",
            "sku": "LUMBAR-L",
            "category": "Corsets",
            "size": "L",
            "price": 890.0,
            "attributes": {"adjustable": True},
            "referral_points": 89,
            "created_at": created,
        },
    ]

    cells = []
    for ortomat in ortomats:
        for number in range(1, CELLS_PER_ORTOMAT + 1):
            filled = number <= len(products)
            cells.append(
                {
                    "id": f"{ortomat['id']}-cell-{number}",
                    "number": number,
                    "ortomat_id": ortomat["id"],
                    "product_id": products[number - 1]["id"] if filled else None,
                    "is_available": not filled,
                    "last_refill_date": created if filled else None,
                    "courier_id": "user-courier" if filled else None,
                    "created_at": created,
                }
            )

    doctor_ortomats = [
        {
            "id": "doctor-link-1",
            "doctor_id": "user-doctor",
            "ortomat_id": ortomats[0]["id"],
            "referral_code": "DOC-1A2B3C4D",
            "total_points": 45,
            "total_sales": 1,
            "created_at": created,
        }
    ]

    courier_ortomats = [
        {
            "id": f"courier-link-{i}",
            "courier_id": "user-courier",
            "ortomat_id": ortomat["id"],
            "status": "active",
            "created_at": created,
        }
        for i, ortomat in enumerate(ortomats, start=1)
    ]

    invites = [
        {
            "id": "invite-1",
            "token": "f" * 64,
            "ortomat_id": ortomats[-1]["id"],
            "created_by": "user-admin",
            "expires_at": format_timestamp(now + timedelta(days=30)),
            "is_active": True,
            "created_at": created,
        }
    ]

    payments = [
        {
            "id": "payment-1",
            "order_id": "ORD-0001",
            "amount": 450.0,
            "status": "SUCCESS",
            "doctor_id": "user-doctor",
            "description": "Elastic knee brace S",
            "metadata": {"product_id": "product-knee-s", "ortomat_id": ortomats[0]["id"]},
            "created_at": created,
        }
    ]

    sales = [
        {
            "id": "sale-1",
            "order_number": "ORD-0001",
            "customer_phone": "+380931234567",
            "amount": 450.0,
            "commission": 45.0,
            "referral_code": "DOC-1A2B3C4D",
            "status": "completed",
            "cell_number": 1,
            "doctor_id": "user-doctor",
            "payment_id": "payment-1",
            "ortomat_id": ortomats[0]["id"],
            "product_id": "product-knee-s",
            "created_at": created,
            "completed_at": created,
        }
    ]

    logs = [
        {
            "id": f"log-{i}",
            "type": "CELL_OPENED",
            "category": "cells",
            "message": f"Cell {i % CELLS_PER_ORTOMAT + 1} opened",
            "metadata": {"sequence": i},
            "user_id": "user-courier",
            "ortomat_id": ortomats[0]["id"],
            "cell_number": i % CELLS_PER_ORTOMAT + 1,
            "severity": "INFO",
            "created_at": format_timestamp(now - timedelta(minutes=log_count - i)),
        }
        for i in range(log_count)
    ]

    settings = [
        {
            "id": "default",
            "purchase_terms": "Payment is processed by the payment provider. "
            "Pick up your item within 24 hours.",
            "created_at": created,
        }
    ]

    return {
        "users": users,
        "ortomats": ortomats,
        "products": products,
        "cells": cells,
        "doctor_ortomats": doctor_ortomats,
        "courier_ortomats": courier_ortomats,
        "invites": invites,
        "payments": payments,
        "sales": sales,
        "logs": logs,
        "settings": settings,
    }


async def seed_demo_data(
    store: OrtomatStore,
    password: str = SEED_PASSWORD,
    ortomat_count: int = 2,
    log_count: int = 5,
    bcrypt_rounds: int = DEFAULT_ROUNDS,
) -> dict[str, int]:
    """Insert demo data into an empty store.

    Returns:
        Number of records inserted per entity kind
    """
    data = build_demo_data(hash_password(password, bcrypt_rounds), ortomat_count, log_count)

    counts = {}
    async with store.transaction() as session:
        for kind in insertion_order():
            counts[kind.name] = await session.create_many(kind.table, data[kind.name])

    logger.info("Seeded demo data", extra={"counts": counts})
    return counts

#!/usr/bin/env python3
"""
Seed starter coupon codes for the storefront.

Creates three coupons:
1. WELCOME10 - 10% off first orders of 500 or more, capped at 200, once per user
2. SAVE10 - flat 10 off any order
3. FREESHIP - free shipping, 1000 redemptions

All valid for 30 days from the script execution date.
"""

import asyncio
import os
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal

# Add project root to path
project_root = os.path.dirname(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
)
sys.path.insert(0, project_root)

from libs.db.config import AsyncSessionLocal
from services.order_service.models import Coupon, CouponType
from sqlalchemy import select


async def seed_coupons():
    """Create starter coupon codes."""
    now = datetime.now(timezone.utc)
    valid_from = now
    valid_until = now + timedelta(days=30)

    coupons = [
        {
            "code": "WELCOME10",
            "description": "10% off your first order of 500 or more.",
            "type": CouponType.PERCENTAGE,
            "value": Decimal("10"),
            "min_purchase_amount": Decimal("500"),
            "max_discount_amount": Decimal("200"),
            "usage_limit": None,
            "usage_limit_per_user": 1,
            "valid_from": valid_from,
            "valid_until": valid_until,
            "is_active": True,
        },
        {
            "code": "SAVE10",
            "description": "Flat 10 off any order.",
            "type": CouponType.FIXED_AMOUNT,
            "value": Decimal("10"),
            "min_purchase_amount": None,
            "max_discount_amount": None,
            "usage_limit": None,
            "usage_limit_per_user": 3,
            "valid_from": valid_from,
            "valid_until": valid_until,
            "is_active": True,
        },
        {
            "code": "FREESHIP",
            "description": "Free shipping on any order.",
            "type": CouponType.FREE_SHIPPING,
            "value": Decimal("0"),
            "min_purchase_amount": None,
            "max_discount_amount": None,
            "usage_limit": 1000,
            "usage_limit_per_user": 1,
            "valid_from": valid_from,
            "valid_until": valid_until,
            "is_active": True,
        },
    ]

    async with AsyncSessionLocal() as session:
        async with session.begin():
            for coupon_data in coupons:
                stmt = select(Coupon).where(Coupon.code == coupon_data["code"])
                result = await session.execute(stmt)
                existing = result.scalar_one_or_none()

                if existing:
                    print(f"  Coupon '{coupon_data['code']}' already exists, skipping...")
                    continue

                session.add(Coupon(**coupon_data))
                print(f"  Created coupon: {coupon_data['code']}")
                print(f"    - Type: {coupon_data['type'].value}")
                print(f"    - Value: {coupon_data['value']}")
                print(f"    - Usage limit: {coupon_data['usage_limit'] or 'unlimited'}")
                print(f"    - Valid until: {valid_until.strftime('%Y-%m-%d')}")

            print("\n✓ Coupons seeded successfully!")


if __name__ == "__main__":
    print("Seeding storefront coupons...")
    asyncio.run(seed_coupons())

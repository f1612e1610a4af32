#!/usr/bin/env python3
"""
Database management script.
Creates and drops the schema and seeds reference data: roles, permissions,
subscription plans and an administrator account.
"""

import asyncio
import sys
import argparse
import logging
from decimal import Decimal

from sqlalchemy import select

from marketplace.config import settings
from marketplace.database import AsyncSessionLocal, create_tables, drop_tables, close_db_connection
from marketplace.models.user import User, UserRole, Role, Permission, PermissionCategory
from marketplace.models.subscription import SubscriptionPlan, PlanType, BillingCycle

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


ROLE_LEVELS = {
    UserRole.BUYER: 0,
    UserRole.HOMEOWNER: 1,
    UserRole.REALTOR: 2,
    UserRole.DEVELOPER: 2,
    UserRole.ADMIN: 10,
}

BASE_PERMISSIONS = [
    ("system_manage_settings", PermissionCategory.SYSTEM, "Change platform settings"),
    ("system_manage_roles", PermissionCategory.ROLE_MANAGEMENT, "Create roles and grant permissions"),
    ("manage_users", PermissionCategory.USER_MANAGEMENT, "Activate and deactivate users"),
    ("manage_properties", PermissionCategory.PROPERTY_MANAGEMENT, "Edit any property"),
    ("approve_listings", PermissionCategory.LISTING_APPROVAL, "Approve and reject listings"),
    ("manage_transactions", PermissionCategory.TRANSACTION_MANAGEMENT, "Review payments and refunds"),
    ("view_reports", PermissionCategory.REPORTING, "View platform reports"),
    ("send_notifications", PermissionCategory.NOTIFICATION, "Send platform notifications"),
    ("manage_billing", PermissionCategory.BILLING, "Manage plans and subscriptions"),
]

PLANS = [
    {
        "name": "Freemium",
        "description": "List a single property for free",
        "plan_type": PlanType.FREEMIUM,
        "price": Decimal("0"),
        "max_listings": 1,
        "max_photos_per_listing": 5,
        "display_order": 0,
    },
    {
        "name": "Basic",
        "description": "For individual agents and homeowners",
        "plan_type": PlanType.BASIC,
        "price": Decimal("5000.00"),
        "trial_period_days": 14,
        "max_listings": 10,
        "max_photos_per_listing": 15,
        "max_virtual_tours": 2,
        "max_premium_features": 1,
        "has_analytics": True,
        "is_popular": True,
        "display_order": 1,
    },
    {
        "name": "Premium",
        "description": "For agencies and developers",
        "plan_type": PlanType.PREMIUM,
        "price": Decimal("15000.00"),
        "max_listings": 100,
        "max_photos_per_listing": 40,
        "max_virtual_tours": 20,
        "max_premium_features": 10,
        "has_analytics": True,
        "has_market_insights": True,
        "has_priority_support": True,
        "has_advanced_search": True,
        "display_order": 2,
    },
]


class MigrationManager:
    """Manages schema creation and reference data."""

    async def create_schema(self) -> None:
        logger.info("Creating database tables")
        await create_tables()

    async def drop_schema(self) -> None:
        logger.warning("Dropping all tables - all data will be lost!")
        await drop_tables()

    async def seed_database(self, admin_email: str, admin_password: str) -> None:
        """Seed roles, permissions, plans and an admin user. Existing rows are left alone."""
        logger.info("Seeding database with initial data")

        async with AsyncSessionLocal() as session:
            try:
                for role, level in ROLE_LEVELS.items():
                    if await self._exists(session, Role.name, role.value):
                        continue
                    session.add(Role(name=role.value, hierarchy_level=level,
                                     description=f"{role.value.capitalize()} role"))

                for name, category, description in BASE_PERMISSIONS:
                    if await self._exists(session, Permission.name, name):
                        continue
                    session.add(Permission(name=name, category=category, description=description))

                for plan in PLANS:
                    if await self._exists(session, SubscriptionPlan.name, plan["name"]):
                        continue
                    session.add(SubscriptionPlan(billing_cycle=BillingCycle.MONTHLY, **plan))

                if not await self._exists(session, User.email, admin_email):
                    admin_user = User(
                        email=admin_email,
                        full_name="System Administrator",
                        role=UserRole.ADMIN,
                        is_active=True
                    )
                    admin_user.set_password(admin_password)
                    session.add(admin_user)
                    logger.info(f"Admin user created: {admin_email}")
                    logger.warning("Please change the admin password in production!")

                await session.commit()
                logger.info("Database seeded successfully")

            except Exception as e:
                await session.rollback()
                logger.error(f"Failed to seed database: {e}")
                raise

    async def reset_database(self, admin_email: str, admin_password: str) -> None:
        """Drop, recreate and reseed. Refused outside development and testing."""
        if not settings.is_development and not settings.is_testing:
            raise RuntimeError("Database reset is only allowed in development or test mode")
        await self.drop_schema()
        await self.create_schema()
        await self.seed_database(admin_email, admin_password)
        logger.info("Database reset completed")

    @staticmethod
    async def _exists(session, column, value) -> bool:
        result = await session.execute(select(column).where(column == value))
        return result.first() is not None


async def _run(coro) -> None:
    try:
        await coro
    finally:
        await close_db_connection()


def main():
    """Main CLI interface for database management."""
    parser = argparse.ArgumentParser(description="Database management for the marketplace")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("create", help="Create all tables")
    subparsers.add_parser("drop", help="Drop all tables (development only)")

    for name, help_text in (("seed", "Seed reference data"), ("reset", "Drop, recreate and seed")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--admin-email", default="admin@example.com")
        sub.add_argument("--admin-password", default="admin123456")
        if name == "reset":
            sub.add_argument("--confirm", action="store_true", help="Confirm database reset")

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        return

    manager = MigrationManager()

    try:
        if args.command == "create":
            asyncio.run(_run(manager.create_schema()))

        elif args.command == "drop":
            asyncio.run(_run(manager.drop_schema()))

        elif args.command == "seed":
            asyncio.run(_run(manager.seed_database(args.admin_email, args.admin_password)))

        elif args.command == "reset":
            if not args.confirm:
                print("Database reset requires --confirm flag")
                return
            asyncio.run(_run(manager.reset_database(args.admin_email, args.admin_password)))

    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()

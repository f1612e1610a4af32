"""
Tests for repository classes.
Tests data access, filtering, soft deletes and domain-specific queries.
"""

import pytest
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from marketplace.models.user import UserRole
from marketplace.models.property import PropertyType
from marketplace.models.listing import ListingStatus
from marketplace.models.transaction import TransactionType, TransactionStatus
from marketplace.models.subscription import SubscriptionStatus
from marketplace.models.notification import NotificationType
from marketplace.models.recommendation import RecommendationType, RecommendationStatus
from marketplace.repositories.user import UserRepository, RoleRepository, PermissionRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.repositories.listing import ListingRepository
from marketplace.repositories.transaction import TransactionRepository
from marketplace.repositories.subscription import UserSubscriptionRepository
from marketplace.repositories.notification import NotificationRepository
from marketplace.repositories.recommendation import RecommendationRepository
from tests.conftest import UserFactory, PropertyFactory, ListingFactory, TransactionFactory, DEFAULT_PASSWORD


class TestBaseRepository:
    """Test generic CRUD behaviour through a concrete repository."""

    @pytest.mark.asyncio
    async def test_get_multi_with_filters(self, listing_repository, test_property, test_realtor):
        await ListingFactory.create_listing(listing_repository, test_property.id, test_realtor.id)
        await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id, listing_status=ListingStatus.ACTIVE
        )

        active = await listing_repository.get_multi(filters={"listing_status": ListingStatus.ACTIVE})
        assert len(active) == 1
        assert await listing_repository.count() == 2

    @pytest.mark.asyncio
    async def test_update_assigns_fields(self, listing_repository, test_listing):
        updated = await listing_repository.update(
            test_listing.id, {"marketing_description": "Fresh paint", "virtual_tour_url": None}
        )
        assert updated.marketing_description == "Fresh paint"

    @pytest.mark.asyncio
    async def test_update_missing_returns_none(self, listing_repository):
        assert await listing_repository.update(uuid.uuid4(), {"marketing_description": "x"}) is None

    @pytest.mark.asyncio
    async def test_soft_delete_and_restore(self, listing_repository, test_listing):
        assert await listing_repository.delete(test_listing.id) is True

        assert await listing_repository.get_by_id(test_listing.id) is None
        assert await listing_repository.exists(test_listing.id) is False
        hidden = await listing_repository.get_by_id(test_listing.id, include_deleted=True)
        assert hidden is not None and hidden.deleted_at is not None

        restored = await listing_repository.restore(test_listing.id)
        assert restored.deleted_at is None
        assert await listing_repository.exists(test_listing.id) is True

    @pytest.mark.asyncio
    async def test_delete_missing_returns_false(self, listing_repository):
        assert await listing_repository.delete(uuid.uuid4()) is False


class TestUserRepository:
    """Test UserRepository functionality."""

    @pytest.mark.asyncio
    async def test_create_user_hashes_password(self, user_repository: UserRepository):
        user = await UserFactory.create_user(user_repository, email="New.User@Example.com")

        assert user.email == "new.user@example.com"
        assert user.hashed_password != DEFAULT_PASSWORD
        assert user.verify_password(DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_create_user_defaults_to_buyer(self, user_repository: UserRepository):
        user = await user_repository.create_user({
            "email": "plain@example.com", "password": DEFAULT_PASSWORD, "full_name": "Plain"
        })
        assert user.role == UserRole.BUYER

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, user_repository: UserRepository, test_buyer):
        with pytest.raises(ValueError, match="already exists"):
            await UserFactory.create_user(user_repository, email=test_buyer.email.upper())

    @pytest.mark.asyncio
    async def test_authenticate_user(self, user_repository: UserRepository, test_buyer, test_inactive_user):
        assert (await user_repository.authenticate_user(test_buyer.email, DEFAULT_PASSWORD)).id == test_buyer.id
        assert await user_repository.authenticate_user(test_buyer.email, "wrongpassword") is None
        assert await user_repository.authenticate_user("nobody@example.com", DEFAULT_PASSWORD) is None
        assert await user_repository.authenticate_user(test_inactive_user.email, DEFAULT_PASSWORD) is None

    @pytest.mark.asyncio
    async def test_get_users_by_role(self, user_repository: UserRepository, test_buyer, test_realtor):
        buyers = await user_repository.get_users_by_role(UserRole.BUYER)
        assert [u.id for u in buyers] == [test_buyer.id]


class TestRoleRepository:
    """Test role grants and revocations."""

    @pytest.mark.asyncio
    async def test_grant_revoke_and_revive(self, db_session):
        roles = RoleRepository(db_session)
        permissions = PermissionRepository(db_session)
        role = await roles.create({"name": "moderator", "description": "Moderates listings"})
        permission = await permissions.create({"name": "approve_listings"})

        first = await roles.grant(role.id, permission.id)
        assert await roles.grant(role.id, permission.id) is first

        role = await roles.get_with_permissions(role.id)
        assert role.has_permission("approve_listings")

        assert await roles.revoke(role.id, permission.id) is True
        assert await roles.revoke(role.id, permission.id) is False
        role = await roles.get_with_permissions(role.id)
        assert role.permissions == []

        revived = await roles.grant(role.id, permission.id)
        assert revived.id == first.id
        assert revived.deleted_at is None

    @pytest.mark.asyncio
    async def test_get_by_name_is_case_insensitive(self, db_session):
        roles = RoleRepository(db_session)
        role = await roles.create({"name": "Auditor", "description": "Reads reports"})
        assert (await roles.get_by_name("auditor")).id == role.id


class TestPropertyRepository:
    """Test property queries."""

    @pytest.mark.asyncio
    async def test_find_within_radius(self, property_repository: PropertyRepository, test_realtor):
        near = await PropertyFactory.create_property(property_repository, test_realtor.id)
        nearer = await PropertyFactory.create_property(
            property_repository, test_realtor.id, latitude=6.4480, longitude=3.4725
        )
        await PropertyFactory.create_property(
            property_repository, test_realtor.id, latitude=9.0765, longitude=7.3986
        )

        results = await property_repository.find_within_radius(6.4481, 3.4726, radius_km=5)

        assert [prop.id for prop, _ in results] == [nearer.id, near.id]
        assert all(distance <= 5 for _, distance in results)

    @pytest.mark.asyncio
    async def test_find_within_radius_filters_type(self, property_repository: PropertyRepository, test_realtor):
        await PropertyFactory.create_property(property_repository, test_realtor.id)
        villa = await PropertyFactory.create_property(
            property_repository, test_realtor.id, property_type=PropertyType.VILLA
        )

        results = await property_repository.find_within_radius(
            6.4474, 3.4723, radius_km=1, property_type=PropertyType.VILLA
        )
        assert [prop.id for prop, _ in results] == [villa.id]

    @pytest.mark.asyncio
    async def test_get_by_owner(self, property_repository: PropertyRepository, test_property, test_realtor, test_buyer):
        assert [p.id for p in await property_repository.get_by_owner(test_realtor.id)] == [test_property.id]
        assert await property_repository.get_by_owner(test_buyer.id) == []


class TestListingRepository:
    """Test listing search and lookups."""

    @pytest.mark.asyncio
    async def test_search_by_status_and_price(self, listing_repository: ListingRepository, test_property, test_realtor):
        cheap = await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id,
            listing_price=Decimal("100000"), listing_status=ListingStatus.ACTIVE
        )
        await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id,
            listing_price=Decimal("900000"), listing_status=ListingStatus.ACTIVE
        )
        await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id, listing_price=Decimal("120000")
        )

        results = await listing_repository.search(
            status=ListingStatus.ACTIVE, min_price=Decimal("50000"), max_price=Decimal("200000")
        )
        assert [listing.id for listing in results] == [cheap.id]

    @pytest.mark.asyncio
    async def test_mls_number_unique_among_live_listings(
        self, listing_repository: ListingRepository, test_property, test_realtor
    ):
        first = await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id, mls_number="MLS-1"
        )
        first_id, property_id, realtor_id = first.id, test_property.id, test_realtor.id
        assert (await listing_repository.get_by_mls_number("MLS-1")).id == first_id

        with pytest.raises(Exception):
            await ListingFactory.create_listing(listing_repository, property_id, realtor_id, mls_number="MLS-1")

        await listing_repository.delete(first_id)
        second = await ListingFactory.create_listing(
            listing_repository, property_id, realtor_id, mls_number="MLS-1"
        )
        assert second.mls_number == "MLS-1"

    @pytest.mark.asyncio
    async def test_get_active_for_property(self, listing_repository: ListingRepository, test_property, test_realtor):
        active = await ListingFactory.create_listing(
            listing_repository, test_property.id, test_realtor.id, listing_status=ListingStatus.ACTIVE
        )
        await ListingFactory.create_listing(listing_repository, test_property.id, test_realtor.id)

        results = await listing_repository.get_active_for_property(test_property.id)
        assert [listing.id for listing in results] == [active.id]


class TestTransactionRepository:
    """Test transaction lookups."""

    @pytest.mark.asyncio
    async def test_lookup_by_reference(self, transaction_repository: TransactionRepository, test_transaction):
        found = await transaction_repository.get_by_reference_number(test_transaction.reference_number)
        assert found.id == test_transaction.id

    @pytest.mark.asyncio
    async def test_get_by_user_with_status(
        self, transaction_repository: TransactionRepository, test_transaction, test_buyer, test_property
    ):
        other = await TransactionFactory.create_purchase(
            transaction_repository, test_buyer.id, test_property.id, amount=Decimal("100")
        )
        other.status = TransactionStatus.CANCELLED
        await transaction_repository.save(other)

        pending = await transaction_repository.get_by_user(test_buyer.id, status=TransactionStatus.PENDING)
        assert [t.id for t in pending] == [test_transaction.id]
        assert len(await transaction_repository.get_by_user(test_buyer.id)) == 2

    @pytest.mark.asyncio
    async def test_get_children(self, transaction_repository: TransactionRepository, test_transaction, test_buyer):
        refund = await transaction_repository.create({
            "user_id": test_buyer.id,
            "transaction_type": TransactionType.REFUND,
            "amount": Decimal("1000"),
            "parent_transaction_id": test_transaction.id,
        })
        children = await transaction_repository.get_children(test_transaction.id)
        assert [child.id for child in children] == [refund.id]


class TestUserSubscriptionRepository:
    """Test current subscription lookup."""

    @pytest.mark.asyncio
    async def test_current_ignores_cancelled(self, db_session, test_buyer, test_plans):
        repo = UserSubscriptionRepository(db_session)
        now = datetime.now(timezone.utc)
        subscription = await repo.create({
            "user_id": test_buyer.id,
            "plan_id": test_plans["paid"].id,
            "status": SubscriptionStatus.ACTIVE,
            "start_date": now,
            "end_date": now + timedelta(days=30),
        })
        assert (await repo.get_current_for_user(test_buyer.id)).id == subscription.id

        subscription.status = SubscriptionStatus.CANCELLED
        await repo.save(subscription)
        assert await repo.get_current_for_user(test_buyer.id) is None
        assert len(await repo.get_by_user(test_buyer.id)) == 1


class TestNotificationRepository:
    """Test notification threads and inbox queries."""

    @pytest.mark.asyncio
    async def test_thread_collects_nested_replies(self, db_session, test_buyer):
        repo = NotificationRepository(db_session)
        root = await repo.create({
            "recipient_id": test_buyer.id, "type": NotificationType.EMAIL, "content": "Welcome"
        })
        reply = await repo.create({
            "recipient_id": test_buyer.id, "type": NotificationType.EMAIL, "content": "Thanks", "parent_id": root.id
        })
        nested = await repo.create({
            "recipient_id": test_buyer.id, "type": NotificationType.EMAIL, "content": "Anytime", "parent_id": reply.id
        })

        thread = await repo.get_thread(root.id)
        assert [n.id for n in thread] == [root.id, reply.id, nested.id]
        assert await repo.get_thread(uuid.uuid4()) == []

    @pytest.mark.asyncio
    async def test_unread_filter(self, db_session, test_buyer):
        repo = NotificationRepository(db_session)
        read = await repo.create({
            "recipient_id": test_buyer.id, "type": NotificationType.PUSH, "content": "Seen",
            "read_at": datetime.now(timezone.utc)
        })
        unread = await repo.create({
            "recipient_id": test_buyer.id, "type": NotificationType.PUSH, "content": "New"
        })

        assert [n.id for n in await repo.get_by_recipient(test_buyer.id, unread_only=True)] == [unread.id]
        assert {n.id for n in await repo.get_by_recipient(test_buyer.id)} == {read.id, unread.id}


class TestRecommendationRepository:
    """Test recommendation ranking and expiry queries."""

    @pytest.mark.asyncio
    async def test_active_ordered_by_priority(self, db_session, test_buyer, test_property):
        repo = RecommendationRepository(db_session)
        low = await repo.create({
            "user_id": test_buyer.id, "property_id": test_property.id,
            "recommendation_type": RecommendationType.TRENDING, "priority": 2
        })
        high = await repo.create({
            "user_id": test_buyer.id, "property_id": test_property.id,
            "recommendation_type": RecommendationType.TRENDING, "priority": 9
        })
        dismissed = await repo.create({
            "user_id": test_buyer.id, "property_id": test_property.id,
            "recommendation_type": RecommendationType.TRENDING, "priority": 10
        })
        dismissed.status = RecommendationStatus.DISMISSED
        await repo.save(dismissed)

        results = await repo.get_active_for_user(test_buyer.id)
        assert [r.id for r in results] == [high.id, low.id]

    @pytest.mark.asyncio
    async def test_get_stale(self, db_session, test_buyer, test_property):
        repo = RecommendationRepository(db_session)
        fresh = await repo.create({
            "user_id": test_buyer.id, "property_id": test_property.id,
            "recommendation_type": RecommendationType.NEW_LISTING
        })

        later = datetime.now(timezone.utc) + timedelta(days=31)
        stale = await repo.get_stale(now=later)
        assert [r.id for r in stale] == [fresh.id]
        assert await repo.get_stale() == []

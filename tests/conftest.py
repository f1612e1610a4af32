"""
Test configuration and fixtures for the marketplace API.
Provides an in-memory database per test, test data factories, and authenticated clients.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "testing")

import pytest
import uuid
from decimal import Decimal
from typing import AsyncGenerator, Dict, Optional

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from marketplace.main import app
from marketplace.database import Base, get_db
from marketplace.models.user import User, UserRole
from marketplace.models.property import Property, PropertyType
from marketplace.models.listing import Listing
from marketplace.models.transaction import Transaction, TransactionType
from marketplace.models.subscription import SubscriptionPlan, PlanType
from marketplace.repositories.user import UserRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.repositories.listing import ListingRepository
from marketplace.repositories.transaction import TransactionRepository
from marketplace.repositories.subscription import SubscriptionPlanRepository
from marketplace.services.auth import AuthService
from marketplace.services.access import AccessService
from marketplace.services.listing import ListingService
from marketplace.services.media import MediaService
from marketplace.services.transaction import TransactionService
from marketplace.services.payment import PaymentService
from marketplace.services.subscription import SubscriptionService
from marketplace.services.notification import NotificationService
from marketplace.services.inquiry import InquiryService
from marketplace.services.recommendation import RecommendationService
from marketplace.utils.auth import create_access_token


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

DEFAULT_PASSWORD = "testpassword123"


@pytest.fixture
async def test_engine():
    """Fresh in-memory schema for every test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False}
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_factory = async_sessionmaker(bind=test_engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
            await session.close()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Create an async test client sharing the test session."""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


# Repository fixtures
@pytest.fixture
def user_repository(db_session: AsyncSession) -> UserRepository:
    return UserRepository(db_session)


@pytest.fixture
def property_repository(db_session: AsyncSession) -> PropertyRepository:
    return PropertyRepository(db_session)


@pytest.fixture
def listing_repository(db_session: AsyncSession) -> ListingRepository:
    return ListingRepository(db_session)


@pytest.fixture
def transaction_repository(db_session: AsyncSession) -> TransactionRepository:
    return TransactionRepository(db_session)


# Service fixtures
@pytest.fixture
def auth_service(db_session: AsyncSession) -> AuthService:
    return AuthService(db_session)


@pytest.fixture
def access_service(db_session: AsyncSession) -> AccessService:
    return AccessService(db_session)


@pytest.fixture
def listing_service(db_session: AsyncSession) -> ListingService:
    return ListingService(db_session)


@pytest.fixture
def media_service(db_session: AsyncSession) -> MediaService:
    return MediaService(db_session)


@pytest.fixture
def transaction_service(db_session: AsyncSession) -> TransactionService:
    return TransactionService(db_session)


@pytest.fixture
def payment_service(db_session: AsyncSession) -> PaymentService:
    return PaymentService(db_session)


@pytest.fixture
def subscription_service(db_session: AsyncSession) -> SubscriptionService:
    return SubscriptionService(db_session)


@pytest.fixture
def notification_service(db_session: AsyncSession) -> NotificationService:
    return NotificationService(db_session)


@pytest.fixture
def inquiry_service(db_session: AsyncSession) -> InquiryService:
    return InquiryService(db_session)


@pytest.fixture
def recommendation_service(db_session: AsyncSession) -> RecommendationService:
    return RecommendationService(db_session)


# Test data factories
class UserFactory:
    """Factory for creating test users."""

    @staticmethod
    def create_user_data(
        email: str = None,
        password: str = DEFAULT_PASSWORD,
        full_name: str = "Test User",
        role: UserRole = UserRole.REALTOR,
        is_active: bool = True
    ) -> dict:
        return {
            "email": email or f"test{uuid.uuid4().hex[:8]}@example.com",
            "password": password,
            "full_name": full_name,
            "role": role,
            "is_active": is_active
        }

    @staticmethod
    async def create_user(user_repo: UserRepository, **kwargs) -> User:
        return await user_repo.create_user(UserFactory.create_user_data(**kwargs))


class PropertyFactory:
    """Factory for creating test properties."""

    @staticmethod
    def create_property_data(owner_id: Optional[uuid.UUID] = None, **overrides) -> dict:
        data = {
            "address": "12 Admiralty Way",
            "city": "Lagos",
            "state": "LA",
            "zip_code": "106104",
            "latitude": 6.4474,
            "longitude": 3.4723,
            "property_type": PropertyType.APARTMENT,
            "bedrooms": 3,
            "bathrooms": 2.5,
            "square_feet": 1800,
            "features": ["pool", "gym"],
        }
        if owner_id:
            data["owner_id"] = owner_id
        data.update(overrides)
        return data

    @staticmethod
    async def create_property(property_repo: PropertyRepository, owner_id: uuid.UUID, **overrides) -> Property:
        return await property_repo.create(PropertyFactory.create_property_data(owner_id, **overrides))


class ListingFactory:
    """Factory for creating test listings."""

    @staticmethod
    async def create_listing(
        listing_repo: ListingRepository,
        property_id: uuid.UUID,
        listed_by: uuid.UUID,
        **overrides
    ) -> Listing:
        data = {
            "property_id": property_id,
            "listed_by": listed_by,
            "listing_price": Decimal("250000.00"),
            "marketing_description": "Bright corner unit with lagoon views",
        }
        data.update(overrides)
        return await listing_repo.create(data)


class TransactionFactory:
    """Factory for creating test transactions."""

    @staticmethod
    async def create_purchase(
        transaction_repo: TransactionRepository,
        user_id: uuid.UUID,
        property_id: uuid.UUID,
        amount: Decimal = Decimal("250000.00"),
        **overrides
    ) -> Transaction:
        data = {
            "user_id": user_id,
            "property_id": property_id,
            "transaction_type": TransactionType.PROPERTY_PURCHASE,
            "amount": amount,
            "currency": "USD",
        }
        data.update(overrides)
        return await transaction_repo.create(data)


class PlanFactory:
    """Factory for creating subscription plans."""

    @staticmethod
    async def create_plan(plan_repo: SubscriptionPlanRepository, **overrides) -> SubscriptionPlan:
        data = {
            "name": f"Plan {uuid.uuid4().hex[:6]}",
            "description": "Test plan",
            "plan_type": PlanType.BASIC,
            "price": Decimal("5000.00"),
            "max_listings": 2,
        }
        data.update(overrides)
        return await plan_repo.create(data)


def auth_headers(user: User) -> Dict[str, str]:
    """Bearer header for the given user."""
    token = create_access_token(user.id, user.email, user.role)
    return {"Authorization": f"Bearer {token}"}


# User fixtures
@pytest.fixture
async def test_realtor(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, full_name="Test Realtor", role=UserRole.REALTOR)


@pytest.fixture
async def test_buyer(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, full_name="Test Buyer", role=UserRole.BUYER)


@pytest.fixture
async def test_admin(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, full_name="Test Admin", role=UserRole.ADMIN)


@pytest.fixture
async def test_inactive_user(user_repository: UserRepository) -> User:
    return await UserFactory.create_user(user_repository, full_name="Inactive User", is_active=False)


# Domain fixtures
@pytest.fixture
async def test_property(property_repository: PropertyRepository, test_realtor: User) -> Property:
    return await PropertyFactory.create_property(property_repository, test_realtor.id)


@pytest.fixture
async def test_listing(listing_repository: ListingRepository, test_property: Property, test_realtor: User) -> Listing:
    return await ListingFactory.create_listing(
        listing_repository, test_property.id, test_realtor.id, commission_rate=Decimal("2.50")
    )


@pytest.fixture
async def test_transaction(
    transaction_repository: TransactionRepository, test_buyer: User, test_property: Property
) -> Transaction:
    return await TransactionFactory.create_purchase(transaction_repository, test_buyer.id, test_property.id)


@pytest.fixture
async def test_plans(db_session: AsyncSession) -> Dict[str, SubscriptionPlan]:
    """Free, trial and paid plans."""
    plan_repo = SubscriptionPlanRepository(db_session)
    return {
        "free": await PlanFactory.create_plan(
            plan_repo, name="Freemium", plan_type=PlanType.FREEMIUM, price=Decimal("0"), max_listings=1
        ),
        "trial": await PlanFactory.create_plan(
            plan_repo, name="Basic", trial_period_days=14, max_listings=10
        ),
        "paid": await PlanFactory.create_plan(
            plan_repo, name="Premium", plan_type=PlanType.PREMIUM, price=Decimal("15000.00"), max_listings=2
        ),
    }

"""
Comprehensive tests for service classes.
Tests business logic, authorization, and the translation of model rules into API errors.
"""

import pytest
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from marketplace.models.user import User, UserRole, PermissionCategory
from marketplace.models.listing import ListingStatus
from marketplace.models.media import MediaType
from marketplace.models.transaction import TransactionType, TransactionStatus
from marketplace.models.payment import PaymentStatus, PaymentMethod, GatewayProvider
from marketplace.models.subscription import SubscriptionStatus
from marketplace.models.notification import NotificationType, NotificationStatus
from marketplace.models.inquiry import InquiryType, InquiryStatus
from marketplace.models.recommendation import RecommendationType, RecommendationStatus
from marketplace.models.behavior import BehaviorType
from marketplace.services.property import PropertyService
from marketplace.services.subscription import add_months
from marketplace.schemas.user import UserCreate
from marketplace.schemas.property import PropertyCreate
from marketplace.schemas.listing import ListingCreate, ListingUpdate
from marketplace.schemas.media import MediaCreate, MediaUpdate, MediaReorderItem
from marketplace.schemas.transaction import TransactionCreate, PaymentCreate
from marketplace.schemas.notification import NotificationCreate, NotificationReply
from marketplace.schemas.inquiry import InquiryCreate
from marketplace.schemas.recommendation import RecommendationCreate, BehaviorCreate
from marketplace.utils.auth import verify_token
from marketplace.utils.exceptions import (
    NotFoundError,
    ForbiddenError,
    ConflictError,
    ValidationError,
    UnauthorizedError,
    InvalidTokenError,
    InvalidStatusTransitionError,
    BusinessRuleViolationError,
    ResourceLimitExceededError
)
from tests.conftest import UserFactory, PropertyFactory, DEFAULT_PASSWORD


class TestAuthService:
    """Test AuthService functionality."""

    @pytest.mark.asyncio
    async def test_register_and_login(self, auth_service):
        user = await auth_service.register(UserCreate(
            email="ada@example.com", password="password123", full_name="Ada Obi", role=UserRole.HOMEOWNER
        ))
        assert user.role == UserRole.HOMEOWNER

        logged_in, token, expires_in = await auth_service.login("ada@example.com", "password123")
        assert logged_in.id == user.id
        assert expires_in > 0
        assert verify_token(token).user_uuid == user.id

    @pytest.mark.asyncio
    async def test_register_duplicate_email(self, auth_service, test_buyer):
        with pytest.raises(ConflictError):
            await auth_service.register(UserCreate(
                email=test_buyer.email, password="password123", full_name="Copy Cat"
            ))

    @pytest.mark.asyncio
    async def test_login_invalid_credentials(self, auth_service, test_buyer):
        with pytest.raises(UnauthorizedError):
            await auth_service.login(test_buyer.email, "wrongpassword")

    @pytest.mark.asyncio
    async def test_login_inactive_user(self, auth_service, test_inactive_user):
        with pytest.raises(UnauthorizedError):
            await auth_service.login(test_inactive_user.email, DEFAULT_PASSWORD)

    @pytest.mark.asyncio
    async def test_get_current_user_from_token(self, auth_service, test_buyer):
        token, _ = auth_service.create_token(test_buyer)
        assert (await auth_service.get_current_user(token)).id == test_buyer.id

    @pytest.mark.asyncio
    async def test_get_current_user_invalid_token(self, auth_service):
        with pytest.raises(InvalidTokenError):
            await auth_service.get_current_user("not-a-token")

    @pytest.mark.asyncio
    async def test_create_realtor_profile(self, auth_service, test_realtor):
        profile = await auth_service.create_profile(test_realtor, "realtor", {
            "license_number": "LIC-2024-0042", "brokerage_name": "Lagoon Realty"
        })
        assert profile.user_id == test_realtor.id

        summary = auth_service.profile_summary("realtor", profile)
        assert summary["kind"] == "realtor"
        assert summary["is_verified"] is False

        with pytest.raises(ConflictError):
            await auth_service.create_profile(test_realtor, "realtor", {
                "license_number": "LIC-2", "brokerage_name": "Other"
            })

    @pytest.mark.asyncio
    async def test_create_buyer_profile(self, auth_service, test_buyer):
        profile = await auth_service.create_profile(test_buyer, "buyer", {
            "minimum_budget": Decimal("150000"),
            "maximum_budget": Decimal("300000"),
            "pre_approved": True,
            "pre_approval_amount": Decimal("280000"),
            "preferred_locations": ["Lekki", "Ikoyi"],
        })
        assert profile.user_id == test_buyer.id
        assert auth_service.profile_summary("buyer", profile)["is_verified"] is True

    @pytest.mark.asyncio
    async def test_buyer_profile_rejects_inverted_budget(self, auth_service, test_buyer):
        with pytest.raises(ValidationError) as exc_info:
            await auth_service.create_profile(test_buyer, "buyer", {
                "minimum_budget": Decimal("300000"), "maximum_budget": Decimal("150000")
            })
        assert "cannot exceed maximum budget" in exc_info.value.detail

    @pytest.mark.asyncio
    async def test_profile_requires_matching_role(self, auth_service, test_buyer):
        with pytest.raises(ForbiddenError):
            await auth_service.create_profile(test_buyer, "developer", {
                "company_name": "Skyline", "cac_reg_number": "RC1", "cloudinary_id": "logos/1"
            })

    @pytest.mark.asyncio
    async def test_unknown_profile_kind(self, auth_service, test_buyer):
        with pytest.raises(NotFoundError):
            await auth_service.get_profile(test_buyer.id, "landlord")


class TestAccessService:
    """Test role and permission management."""

    @pytest.mark.asyncio
    async def test_create_role_conflict(self, access_service):
        role = await access_service.create_role("moderator", hierarchy_level=3)
        assert role.name == "MODERATOR"
        assert role.description == "MODERATOR role"

        with pytest.raises(ConflictError):
            await access_service.create_role("Moderator")

    @pytest.mark.asyncio
    async def test_grant_and_revoke(self, access_service):
        role = await access_service.create_role("moderator")
        permission = await access_service.create_permission(
            "approve_listings", PermissionCategory.LISTING_APPROVAL
        )

        await access_service.grant(role.id, permission.id)
        role = await access_service.get_role(role.id)
        assert [p.name for p in role.permissions] == ["approve_listings"]

        await access_service.revoke(role.id, permission.id)
        with pytest.raises(NotFoundError):
            await access_service.revoke(role.id, permission.id)

    @pytest.mark.asyncio
    async def test_invalid_permission_name(self, access_service):
        with pytest.raises(ValidationError):
            await access_service.create_permission("Bad Name")

    @pytest.mark.asyncio
    async def test_system_permission_cannot_be_deleted(self, access_service):
        permission = await access_service.create_permission("system_manage_roles", PermissionCategory.SYSTEM)
        with pytest.raises(BusinessRuleViolationError):
            await access_service.delete_permission(permission.id)

        regular = await access_service.create_permission("view_reports", PermissionCategory.REPORTING)
        await access_service.delete_permission(regular.id)
        assert [p.name for p in await access_service.list_permissions()] == ["system_manage_roles"]

    @pytest.mark.asyncio
    async def test_list_permissions_by_category(self, access_service):
        await access_service.create_permission("view_reports", PermissionCategory.REPORTING)
        await access_service.create_permission("manage_billing", PermissionCategory.BILLING)

        billing = await access_service.list_permissions(PermissionCategory.BILLING)
        assert [p.name for p in billing] == ["manage_billing"]


class TestPropertyService:
    """Test PropertyService functionality."""

    @pytest.mark.asyncio
    async def test_create_property(self, db_session, test_realtor):
        service = PropertyService(db_session)
        prop = await service.create_property(
            PropertyCreate(**PropertyFactory.create_property_data(state="la")), test_realtor
        )
        assert prop.owner_id == test_realtor.id
        assert prop.state == "LA"

    @pytest.mark.asyncio
    async def test_find_nearby_validates_radius(self, db_session):
        service = PropertyService(db_session)
        with pytest.raises(ValidationError):
            await service.find_nearby(6.4, 3.4, radius_km=0)

    @pytest.mark.asyncio
    async def test_delete_property_forbidden(self, db_session, test_property, test_buyer):
        service = PropertyService(db_session)
        with pytest.raises(ForbiddenError):
            await service.delete_property(test_property.id, test_buyer)


class TestListingService:
    """Test ListingService functionality."""

    @pytest.mark.asyncio
    async def test_create_listing(self, listing_service, test_property, test_realtor):
        listing = await listing_service.create_listing(ListingCreate(
            property_id=test_property.id,
            listing_price=Decimal("300000"),
            marketing_description="Waterfront duplex",
            commission_rate=Decimal("3"),
            mls_number="MLS-42"
        ), test_realtor)

        assert listing.listed_by == test_realtor.id
        assert listing.listing_status == ListingStatus.DRAFT
        assert listing.commission_amount == Decimal("9000.00")

    @pytest.mark.asyncio
    async def test_create_listing_missing_property(self, listing_service, test_realtor):
        with pytest.raises(NotFoundError):
            await listing_service.create_listing(ListingCreate(
                property_id=uuid.uuid4(), listing_price=Decimal("1"), marketing_description="Ghost"
            ), test_realtor)

    @pytest.mark.asyncio
    async def test_create_listing_duplicate_mls(self, listing_service, test_property, test_realtor):
        data = ListingCreate(
            property_id=test_property.id, listing_price=Decimal("1000"),
            marketing_description="First", mls_number="MLS-7"
        )
        await listing_service.create_listing(data, test_realtor)
        with pytest.raises(ConflictError):
            await listing_service.create_listing(data, test_realtor)

    @pytest.mark.asyncio
    async def test_search_rejects_inverted_price_band(self, listing_service):
        with pytest.raises(ValidationError):
            await listing_service.search_listings(min_price=Decimal("10"), max_price=Decimal("5"))

    @pytest.mark.asyncio
    async def test_update_requires_fields(self, listing_service, test_listing, test_realtor):
        with pytest.raises(ValidationError):
            await listing_service.update_listing(test_listing.id, ListingUpdate(), test_realtor)

    @pytest.mark.asyncio
    async def test_update_price_records_history(self, listing_service, test_listing, test_realtor):
        updated = await listing_service.update_listing(
            test_listing.id, ListingUpdate(listing_price=Decimal("260000")), test_realtor
        )
        assert len(updated.price_history) == 1
        assert updated.commission_amount == Decimal("6500.00")

    @pytest.mark.asyncio
    async def test_update_forbidden_for_other_users(self, listing_service, test_listing, test_buyer):
        with pytest.raises(ForbiddenError):
            await listing_service.update_listing(
                test_listing.id, ListingUpdate(marketing_description="Mine now"), test_buyer
            )

    @pytest.mark.asyncio
    async def test_status_lifecycle(self, listing_service, test_listing, test_realtor):
        listing = await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)
        assert listing.listing_status == ListingStatus.ACTIVE

        listing = await listing_service.change_status(test_listing.id, ListingStatus.SOLD, test_realtor)
        assert listing.listing_status == ListingStatus.SOLD
        assert listing.sold_date is not None
        assert listing.expiration_date is None

        with pytest.raises(InvalidStatusTransitionError):
            await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)

    @pytest.mark.asyncio
    async def test_invalid_transition_maps_to_conflict(self, listing_service, test_listing, test_admin):
        listing_id = test_listing.id
        with pytest.raises(InvalidStatusTransitionError) as exc_info:
            await listing_service.change_status(listing_id, ListingStatus.PENDING, test_admin)
        assert exc_info.value.status_code == 409

        listing = await listing_service.get_listing(listing_id)
        assert listing.listing_status == ListingStatus.DRAFT

    @pytest.mark.asyncio
    async def test_record_engagement(self, listing_service, test_listing):
        await listing_service.record_engagement(test_listing.id, "view")
        listing = await listing_service.record_engagement(test_listing.id, "inquiry")
        assert listing.view_count == 1
        assert listing.inquiry_count == 1

        with pytest.raises(ValidationError):
            await listing_service.record_engagement(test_listing.id, "share")


class TestMediaService:
    """Test MediaService functionality."""

    @staticmethod
    def _media(suffix: str, **overrides) -> MediaCreate:
        data = {
            "file_name": f"{suffix}.jpg",
            "original_name": f"IMG_{suffix}.jpg",
            "mime_type": "image/jpeg",
            "file_size": 1024,
            "cloudinary_id": f"properties/{suffix}",
            "cloudinary_url": f"https://res.cloudinary.com/demo/image/upload/{suffix}.jpg",
        }
        data.update(overrides)
        return MediaCreate(**data)

    @pytest.mark.asyncio
    async def test_add_media_requires_owner(self, media_service, test_property, test_buyer):
        with pytest.raises(ForbiddenError):
            await media_service.add_media(test_property.id, self._media("a"), test_buyer)

    @pytest.mark.asyncio
    async def test_second_main_image_rejected(self, media_service, test_property, test_realtor):
        await media_service.add_media(test_property.id, self._media("a", is_main_image=True), test_realtor)
        with pytest.raises(ValidationError):
            await media_service.add_media(test_property.id, self._media("b", is_main_image=True), test_realtor)

    @pytest.mark.asyncio
    async def test_update_current_main_image(self, media_service, test_property, test_realtor):
        main = await media_service.add_media(
            test_property.id, self._media("a", is_main_image=True), test_realtor
        )
        updated = await media_service.update_media(main.id, MediaUpdate(alt_text="Front elevation"), test_realtor)

        assert updated.is_main_image is True
        assert updated.alt_text == "Front elevation"

    @pytest.mark.asyncio
    async def test_set_main_image_demotes_previous(self, media_service, test_property, test_realtor):
        first = await media_service.add_media(
            test_property.id, self._media("a", is_main_image=True), test_realtor
        )
        second = await media_service.add_media(test_property.id, self._media("b"), test_realtor)

        promoted = await media_service.set_main_image(test_property.id, second.id, test_realtor)
        assert promoted.is_main_image is True
        assert (await media_service.get_media(first.id)).is_main_image is False

        stats = await media_service.get_media_stats(test_property.id)
        assert stats["total_count"] == 2
        assert stats["total_size"] == 2048
        assert stats["main_image"].id == second.id

    @pytest.mark.asyncio
    async def test_video_cannot_be_main_image(self, media_service, test_property, test_realtor):
        video = await media_service.add_media(
            test_property.id,
            self._media("v", media_type=MediaType.VIDEO, mime_type="video/mp4"),
            test_realtor
        )
        with pytest.raises(Exception) as exc_info:
            await media_service.set_main_image(test_property.id, video.id, test_realtor)
        assert exc_info.value.status_code == 400

    @pytest.mark.asyncio
    async def test_reorder_media(self, media_service, test_property, test_realtor):
        first = await media_service.add_media(test_property.id, self._media("a"), test_realtor)
        second = await media_service.add_media(test_property.id, self._media("b", display_order=1), test_realtor)

        ordered = await media_service.reorder_media(test_property.id, [
            MediaReorderItem(id=first.id, display_order=5),
            MediaReorderItem(id=second.id, display_order=0),
        ], test_realtor)
        assert [m.id for m in ordered] == [second.id, first.id]

        with pytest.raises(NotFoundError):
            await media_service.reorder_media(
                test_property.id, [MediaReorderItem(id=uuid.uuid4(), display_order=1)], test_realtor
            )


class TestTransactionService:
    """Test TransactionService functionality."""

    @pytest.mark.asyncio
    async def test_create_purchase(self, transaction_service, test_property, test_buyer):
        txn = await transaction_service.create_transaction(TransactionCreate(
            transaction_type=TransactionType.PROPERTY_PURCHASE,
            amount=Decimal("250000"),
            currency="NGN",
            property_id=test_property.id
        ), test_buyer)

        assert txn.user_id == test_buyer.id
        assert txn.reference_number.startswith("TXN-")
        assert (await transaction_service.get_by_reference(txn.reference_number, test_buyer)).id == txn.id

    @pytest.mark.asyncio
    async def test_type_rules_become_validation_errors(self, transaction_service, test_buyer):
        with pytest.raises(ValidationError):
            await transaction_service.create_transaction(TransactionCreate(
                transaction_type=TransactionType.PROPERTY_PURCHASE, amount=Decimal("10")
            ), test_buyer)

    @pytest.mark.asyncio
    async def test_commission_payment(self, transaction_service, test_buyer, test_realtor):
        txn = await transaction_service.create_transaction(TransactionCreate(
            transaction_type=TransactionType.COMMISSION_PAYMENT,
            amount=Decimal("10000"),
            commission_rate=Decimal("2.5"),
            commission_amount=Decimal("250"),
            commission_recipient_id=test_realtor.id
        ), test_buyer)

        # the recipient can see the commission too
        assert (await transaction_service.get_transaction(txn.id, test_realtor)).id == txn.id

    @pytest.mark.asyncio
    async def test_missing_commission_recipient(self, transaction_service, test_buyer):
        with pytest.raises(NotFoundError):
            await transaction_service.create_transaction(TransactionCreate(
                transaction_type=TransactionType.COMMISSION_PAYMENT,
                amount=Decimal("10000"),
                commission_rate=Decimal("2.5"),
                commission_recipient_id=uuid.uuid4()
            ), test_buyer)

    @pytest.mark.asyncio
    async def test_other_users_cannot_view(self, transaction_service, test_transaction, test_realtor):
        with pytest.raises(ForbiddenError):
            await transaction_service.get_transaction(test_transaction.id, test_realtor)

    @pytest.mark.asyncio
    async def test_status_lifecycle(self, transaction_service, test_transaction, test_buyer):
        txn = await transaction_service.update_status(test_transaction.id, TransactionStatus.PROCESSING, test_buyer)
        assert txn.processed_at is not None

        txn = await transaction_service.update_status(test_transaction.id, TransactionStatus.FAILED, test_buyer)
        assert txn.failed_at is not None

        txn = await transaction_service.update_status(test_transaction.id, TransactionStatus.PENDING, test_buyer)
        assert txn.status == TransactionStatus.PENDING

        with pytest.raises(InvalidStatusTransitionError):
            await transaction_service.update_status(test_transaction.id, TransactionStatus.REFUNDED, test_buyer)


class TestPaymentService:
    """Test payments, webhooks and refunds."""

    @staticmethod
    def _cash() -> PaymentCreate:
        return PaymentCreate(gateway_provider=GatewayProvider.CASH, payment_method=PaymentMethod.CASH)

    async def _captured_payment(self, payment_service, transaction, user):
        payment = await payment_service.initiate_payment(transaction.id, self._cash(), user)
        for status in (PaymentStatus.PENDING, PaymentStatus.AUTHORIZED, PaymentStatus.CAPTURED):
            payment = await payment_service.update_status(payment.id, status, user)
        return payment

    @pytest.mark.asyncio
    async def test_initiate_payment(self, payment_service, test_transaction, test_buyer):
        payment = await payment_service.initiate_payment(test_transaction.id, self._cash(), test_buyer)

        assert payment.payment_status == PaymentStatus.INITIATED
        assert payment.created_by == test_buyer.id
        assert len(payment.audit_log) == 1

    @pytest.mark.asyncio
    async def test_initiate_requires_owner(self, payment_service, test_transaction, test_realtor):
        with pytest.raises(ForbiddenError):
            await payment_service.initiate_payment(test_transaction.id, self._cash(), test_realtor)

    @pytest.mark.asyncio
    async def test_initiate_on_final_transaction(self, payment_service, transaction_service,
                                                 test_transaction, test_buyer):
        await transaction_service.update_status(test_transaction.id, TransactionStatus.CANCELLED, test_buyer)
        with pytest.raises(BusinessRuleViolationError):
            await payment_service.initiate_payment(test_transaction.id, self._cash(), test_buyer)

    @pytest.mark.asyncio
    async def test_card_payment_needs_card_details(self, payment_service, test_transaction, test_buyer):
        with pytest.raises(ValidationError):
            await payment_service.initiate_payment(test_transaction.id, PaymentCreate(
                gateway_provider=GatewayProvider.PAYSTACK,
                payment_method=PaymentMethod.DEBIT_CARD,
                gateway_transaction_id="ps_1",
                card_last4="4242"
            ), test_buyer)

    @pytest.mark.asyncio
    async def test_card_payment(self, payment_service, test_transaction, test_buyer):
        payment = await payment_service.initiate_payment(test_transaction.id, PaymentCreate(
            gateway_provider=GatewayProvider.PAYSTACK,
            payment_method=PaymentMethod.DEBIT_CARD,
            gateway_transaction_id="ps_1",
            card_last4="4242",
            card_brand="visa",
            card_expiry_month=12,
            card_expiry_year=datetime.now(timezone.utc).year + 2
        ), test_buyer)
        assert payment.card_brand == "visa"

    @pytest.mark.asyncio
    async def test_status_changes_are_audited(self, payment_service, test_transaction, test_buyer):
        payment = await self._captured_payment(payment_service, test_transaction, test_buyer)

        assert payment.payment_status == PaymentStatus.CAPTURED
        assert payment.captured_at is not None
        assert [entry["status"] for entry in payment.audit_log] == [
            "INITIATED", "PENDING", "AUTHORIZED", "CAPTURED"
        ]
        assert payment.audit_log[-1]["updated_by"] == str(test_buyer.id)

    @pytest.mark.asyncio
    async def test_invalid_status_transition(self, payment_service, test_transaction, test_buyer):
        payment = await payment_service.initiate_payment(test_transaction.id, self._cash(), test_buyer)
        with pytest.raises(InvalidStatusTransitionError):
            await payment_service.update_status(payment.id, PaymentStatus.SETTLED, test_buyer)

    @pytest.mark.asyncio
    async def test_webhook_repeat_only_counts_attempts(self, payment_service, test_transaction, test_buyer):
        payment = await payment_service.initiate_payment(test_transaction.id, self._cash(), test_buyer)

        payment = await payment_service.record_webhook(payment.id, PaymentStatus.PENDING, {"event": "charge.pending"})
        payment = await payment_service.record_webhook(payment.id, PaymentStatus.PENDING, {"event": "charge.pending"})

        assert payment.webhook_received is True
        assert payment.webhook_attempts == 2
        assert payment.payment_status == PaymentStatus.PENDING
        assert len(payment.audit_log) == 2
        assert payment.audit_log[-1]["updated_by"] == "system"

    @pytest.mark.asyncio
    async def test_refund(self, payment_service, transaction_service, test_transaction, test_buyer):
        payment = await self._captured_payment(payment_service, test_transaction, test_buyer)
        await transaction_service.update_status(test_transaction.id, TransactionStatus.PROCESSING, test_buyer)
        await transaction_service.update_status(test_transaction.id, TransactionStatus.COMPLETED, test_buyer)

        refunded, refund = await payment_service.refund_payment(
            payment.id, test_buyer, amount=Decimal("1000"), reason="Buyer withdrew"
        )

        assert refunded.payment_status == PaymentStatus.REFUNDED
        assert refund.transaction_type == TransactionType.REFUND
        assert refund.status == TransactionStatus.COMPLETED
        assert refund.amount == Decimal("1000")
        assert refund.parent_transaction_id == test_transaction.id
        assert refund.description == "Buyer withdrew"

        original = await transaction_service.get_transaction(test_transaction.id, test_buyer)
        assert original.status == TransactionStatus.REFUNDED
        refunds = await transaction_service.get_refunds(test_transaction.id, test_buyer)
        assert [r.id for r in refunds] == [refund.id]

    @pytest.mark.asyncio
    async def test_refund_requires_captured_payment(self, payment_service, test_transaction, test_buyer):
        payment = await payment_service.initiate_payment(test_transaction.id, self._cash(), test_buyer)
        with pytest.raises(BusinessRuleViolationError):
            await payment_service.refund_payment(payment.id, test_buyer)

    @pytest.mark.asyncio
    async def test_refund_cannot_exceed_original(self, payment_service, test_transaction, test_buyer):
        payment = await self._captured_payment(payment_service, test_transaction, test_buyer)
        with pytest.raises(BusinessRuleViolationError):
            await payment_service.refund_payment(payment.id, test_buyer, amount=test_transaction.amount + 1)


class TestSubscriptionService:
    """Test subscriptions, billing and listing quotas."""

    def test_add_months_clamps_day(self):
        moment = datetime(2026, 1, 31, 9, 30, tzinfo=timezone.utc)
        assert add_months(moment, 1) == datetime(2026, 2, 28, 9, 30, tzinfo=timezone.utc)
        assert add_months(moment, 12) == datetime(2027, 1, 31, 9, 30, tzinfo=timezone.utc)

    @pytest.mark.asyncio
    async def test_free_plan_starts_active(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["free"].id)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.next_billing_date is None

    @pytest.mark.asyncio
    async def test_trial_plan_starts_active(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["trial"].id)
        assert subscription.status == SubscriptionStatus.ACTIVE
        assert subscription.is_trial_active is True
        assert subscription.trial_end_date is not None

    @pytest.mark.asyncio
    async def test_paid_plan_waits_for_payment(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["paid"].id)
        assert subscription.status == SubscriptionStatus.PENDING

        paid = await subscription_service.record_payment(subscription.id, Decimal("15000"), test_buyer)
        assert paid.status == SubscriptionStatus.ACTIVE
        assert paid.total_paid == Decimal("15000")
        assert paid.last_billing_date is not None

    @pytest.mark.asyncio
    async def test_subscription_payment_books_transaction(self, subscription_service, transaction_service,
                                                          test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["paid"].id)
        await subscription_service.record_payment(subscription.id, Decimal("15000"), test_buyer)

        transactions = await transaction_service.list_for_user(test_buyer.id)
        assert len(transactions) == 1
        assert transactions[0].transaction_type == TransactionType.SUBSCRIPTION_PAYMENT
        assert transactions[0].status == TransactionStatus.COMPLETED
        assert transactions[0].subscription_id == subscription.id

    @pytest.mark.asyncio
    async def test_only_one_current_subscription(self, subscription_service, test_buyer, test_plans):
        await subscription_service.subscribe(test_buyer, test_plans["free"].id)
        with pytest.raises(ConflictError):
            await subscription_service.subscribe(test_buyer, test_plans["paid"].id)

    @pytest.mark.asyncio
    async def test_inactive_plan_rejected(self, subscription_service, test_buyer, test_plans):
        plan = test_plans["paid"]
        plan.is_active = False
        await subscription_service.plan_repo.save(plan)

        with pytest.raises(BusinessRuleViolationError):
            await subscription_service.subscribe(test_buyer, plan.id)

    @pytest.mark.asyncio
    async def test_listing_quota(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["free"].id)

        subscription = await subscription_service.record_listing_usage(subscription.id, 1, test_buyer)
        assert subscription.current_listings == 1

        with pytest.raises(ResourceLimitExceededError):
            await subscription_service.record_listing_usage(subscription.id, 1, test_buyer)

        subscription = await subscription_service.record_listing_usage(subscription.id, -1, test_buyer)
        assert subscription.current_listings == 0

        with pytest.raises(BusinessRuleViolationError):
            await subscription_service.record_listing_usage(subscription.id, -1, test_buyer)

    @pytest.mark.asyncio
    async def test_listing_usage_needs_active_subscription(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["paid"].id)
        with pytest.raises(BusinessRuleViolationError):
            await subscription_service.record_listing_usage(subscription.id, 1, test_buyer)

    @pytest.mark.asyncio
    async def test_cancel(self, subscription_service, test_buyer, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["trial"].id)

        cancelled = await subscription_service.change_status(
            subscription.id, SubscriptionStatus.CANCELLED, test_buyer, reason="Too expensive"
        )
        assert cancelled.cancelled_at is not None
        assert cancelled.auto_renew is False
        assert cancelled.cancellation_reason == "Too expensive"
        assert cancelled.is_trial_active is False

        with pytest.raises(BusinessRuleViolationError):
            await subscription_service.record_payment(subscription.id, Decimal("5000"), test_buyer)
        with pytest.raises(InvalidStatusTransitionError):
            await subscription_service.change_status(subscription.id, SubscriptionStatus.ACTIVE, test_buyer)

    @pytest.mark.asyncio
    async def test_other_users_cannot_manage(self, subscription_service, test_buyer, test_realtor, test_plans):
        subscription = await subscription_service.subscribe(test_buyer, test_plans["free"].id)
        with pytest.raises(ForbiddenError):
            await subscription_service.change_status(subscription.id, SubscriptionStatus.CANCELLED, test_realtor)


class TestNotificationService:
    """Test notifications and threads."""

    @pytest.mark.asyncio
    async def test_create_requires_recipient(self, notification_service):
        with pytest.raises(NotFoundError):
            await notification_service.create_notification(NotificationCreate(
                recipient_id=uuid.uuid4(), type=NotificationType.EMAIL, content="Hello"
            ))

    @pytest.mark.asyncio
    async def test_reply_inherits_thread_details(self, notification_service, test_buyer):
        root = await notification_service.create_notification(NotificationCreate(
            recipient_id=test_buyer.id, type=NotificationType.PUSH, subject="Viewing", content="Confirmed"
        ))
        reply = await notification_service.reply(root.id, NotificationReply(content="See you there"), test_buyer)

        assert reply.parent_id == root.id
        assert reply.recipient_id == test_buyer.id
        assert reply.type == NotificationType.PUSH
        assert reply.subject == "Viewing"

        thread = await notification_service.get_thread(root.id, test_buyer)
        assert [n.id for n in thread] == [root.id, reply.id]

    @pytest.mark.asyncio
    async def test_thread_is_private(self, notification_service, test_buyer, test_realtor):
        root = await notification_service.create_notification(NotificationCreate(
            recipient_id=test_buyer.id, type=NotificationType.EMAIL, content="Private"
        ))
        with pytest.raises(ForbiddenError):
            await notification_service.get_thread(root.id, test_realtor)

    @pytest.mark.asyncio
    async def test_delivery_status(self, notification_service, test_buyer):
        notification = await notification_service.create_notification(NotificationCreate(
            recipient_id=test_buyer.id, type=NotificationType.EMAIL, content="Receipt"
        ))
        assert notification.status == NotificationStatus.PENDING

        sent = await notification_service.mark_sent(notification.id)
        assert sent.status == NotificationStatus.SENT

        with pytest.raises(BusinessRuleViolationError):
            await notification_service.mark_failed(notification.id)

    @pytest.mark.asyncio
    async def test_mark_read_is_idempotent(self, notification_service, test_buyer):
        notification = await notification_service.create_notification(NotificationCreate(
            recipient_id=test_buyer.id, type=NotificationType.EMAIL, content="Welcome"
        ))
        first = await notification_service.mark_read(notification.id, test_buyer)
        read_at = first.read_at
        second = await notification_service.mark_read(notification.id, test_buyer)

        assert read_at is not None
        assert second.read_at == read_at
        assert await notification_service.list_for_recipient(test_buyer.id, unread_only=True) == []


class TestInquiryService:
    """Test inquiries and the listing inquiry counter."""

    @staticmethod
    def _inquiry(listing_id, **overrides) -> InquiryCreate:
        data = {
            "listing_id": listing_id,
            "inquiry_type": InquiryType.VIEWING_REQUEST,
            "message": "Can I view the apartment on Saturday morning?",
        }
        data.update(overrides)
        return InquiryCreate(**data)

    @pytest.mark.asyncio
    async def test_create_counts_against_listing(self, db_session, inquiry_service, listing_service,
                                                 test_listing, test_realtor, test_buyer):
        await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)

        inquiry = await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)
        assert inquiry.inquirer_id == test_buyer.id
        assert inquiry.status == InquiryStatus.PENDING

        await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)
        listing = await listing_service.get_listing(test_listing.id)
        await db_session.refresh(listing)
        assert listing.inquiry_count == 2

    @pytest.mark.asyncio
    async def test_draft_listing_rejects_inquiries(self, inquiry_service, test_listing, test_buyer):
        with pytest.raises(BusinessRuleViolationError):
            await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)

    @pytest.mark.asyncio
    async def test_lister_cannot_inquire(self, inquiry_service, listing_service, test_listing, test_realtor):
        await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)
        with pytest.raises(BusinessRuleViolationError):
            await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_realtor)

    @pytest.mark.asyncio
    async def test_missing_listing(self, inquiry_service, test_buyer):
        with pytest.raises(NotFoundError):
            await inquiry_service.create_inquiry(self._inquiry(uuid.uuid4()), test_buyer)

    @pytest.mark.asyncio
    async def test_lister_responds(self, inquiry_service, listing_service, test_listing, test_realtor, test_buyer):
        await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)
        inquiry = await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)

        with pytest.raises(ForbiddenError):
            await inquiry_service.mark_contacted(inquiry.id, test_buyer)

        contacted = await inquiry_service.mark_contacted(inquiry.id, test_realtor, "Viewing booked for 10am")
        assert contacted.status == InquiryStatus.CONTACTED
        assert contacted.contacted_at is not None
        assert contacted.responder_id == test_realtor.id

        assert [i.id for i in await inquiry_service.list_open_for_user(test_buyer.id)] == [inquiry.id]
        resolved = await inquiry_service.change_status(inquiry.id, InquiryStatus.RESOLVED, test_realtor)
        assert resolved.status == InquiryStatus.RESOLVED
        assert await inquiry_service.list_open_for_user(test_buyer.id) == []

    @pytest.mark.asyncio
    async def test_closed_inquiry_cannot_reopen(self, inquiry_service, listing_service,
                                                test_listing, test_realtor, test_buyer):
        await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)
        inquiry = await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)
        inquiry_id = inquiry.id
        await inquiry_service.change_status(inquiry_id, InquiryStatus.ARCHIVED, test_realtor)

        with pytest.raises(ValidationError):
            await inquiry_service.change_status(inquiry_id, InquiryStatus.IN_PROGRESS, test_realtor)

    @pytest.mark.asyncio
    async def test_listing_inquiries_are_private(self, inquiry_service, listing_service,
                                                 test_listing, test_realtor, test_buyer):
        await listing_service.change_status(test_listing.id, ListingStatus.ACTIVE, test_realtor)
        await inquiry_service.create_inquiry(self._inquiry(test_listing.id), test_buyer)

        assert len(await inquiry_service.list_for_listing(test_listing.id, test_realtor)) == 1
        with pytest.raises(ForbiddenError):
            await inquiry_service.list_for_listing(test_listing.id, test_buyer)


class TestRecommendationService:
    """Test recommendations and behaviour tracking."""

    @pytest.mark.asyncio
    async def test_create_recommendation(self, recommendation_service, test_buyer, test_property):
        recommendation = await recommendation_service.create_recommendation(RecommendationCreate(
            user_id=test_buyer.id,
            property_id=test_property.id,
            recommendation_type=RecommendationType.PRICE_DROP,
            confidence_score=Decimal("0.8"),
            relevance_score=Decimal("0.6")
        ))
        assert recommendation.priority == 7
        assert recommendation.expires_at is not None

        active = await recommendation_service.list_active_for_user(test_buyer.id)
        assert [r.id for r in active] == [recommendation.id]

    @pytest.mark.asyncio
    async def test_create_requires_property(self, recommendation_service, test_buyer):
        with pytest.raises(NotFoundError):
            await recommendation_service.create_recommendation(RecommendationCreate(
                user_id=test_buyer.id, property_id=uuid.uuid4(),
                recommendation_type=RecommendationType.TRENDING
            ))

    @pytest.mark.asyncio
    async def test_engagement_flow(self, recommendation_service, test_buyer, test_property):
        recommendation = await recommendation_service.create_recommendation(RecommendationCreate(
            user_id=test_buyer.id, property_id=test_property.id,
            recommendation_type=RecommendationType.SIMILAR_PROPERTY
        ))

        viewed = await recommendation_service.mark_viewed(recommendation.id, test_buyer)
        assert viewed.status == RecommendationStatus.VIEWED
        assert viewed.viewed_at is not None

        again = await recommendation_service.mark_viewed(recommendation.id, test_buyer)
        assert again.viewed_at == viewed.viewed_at

        clicked = await recommendation_service.mark_clicked(recommendation.id, test_buyer)
        assert clicked.clicked_at is not None

    @pytest.mark.asyncio
    async def test_expired_recommendations_are_closed(self, recommendation_service, test_buyer, test_property):
        recommendation = await recommendation_service.create_recommendation(RecommendationCreate(
            user_id=test_buyer.id, property_id=test_property.id,
            recommendation_type=RecommendationType.TRENDING,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=1)
        ))
        recommendation.expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
        await recommendation_service.recommendation_repo.save(recommendation)

        assert await recommendation_service.expire_stale() == 1
        assert await recommendation_service.expire_stale() == 0

        with pytest.raises(BusinessRuleViolationError):
            await recommendation_service.mark_clicked(recommendation.id, test_buyer)

    @pytest.mark.asyncio
    async def test_recommendations_are_private(self, recommendation_service, test_buyer, test_realtor, test_property):
        recommendation = await recommendation_service.create_recommendation(RecommendationCreate(
            user_id=test_buyer.id, property_id=test_property.id,
            recommendation_type=RecommendationType.NEW_LISTING
        ))
        with pytest.raises(ForbiddenError):
            await recommendation_service.mark_dismissed(recommendation.id, test_realtor)

    @pytest.mark.asyncio
    async def test_record_behavior(self, recommendation_service, test_buyer, test_property):
        behavior = await recommendation_service.record_behavior(BehaviorCreate(
            behavior_type=BehaviorType.PROPERTY_VIEW,
            property_id=test_property.id,
            view_duration=45,
            interaction_score=Decimal("0.7")
        ), test_buyer)

        assert behavior.user_id == test_buyer.id
        recent = await recommendation_service.recent_behavior(test_buyer.id)
        assert [b.id for b in recent] == [behavior.id]

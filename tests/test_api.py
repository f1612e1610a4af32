"""
API tests for the marketplace endpoints.
Exercise complete request/response cycles against the in-memory database.
"""

import pytest
import uuid
from decimal import Decimal
from httpx import AsyncClient
from fastapi import status

from marketplace.models.user import User
from marketplace.models.property import Property
from marketplace.models.listing import Listing
from marketplace.models.transaction import Transaction
from tests.conftest import auth_headers, DEFAULT_PASSWORD

API = "/api/v1"


def assert_error(response, code: str) -> dict:
    """Check the shared error envelope and return its body."""
    body = response.json()
    assert "error" in body
    assert body["error"]["code"] == code
    assert "message" in body["error"]
    assert "timestamp" in body["error"]
    return body["error"]


class TestAuthenticationEndpoints:
    """Registration, login and current-user endpoints."""

    @pytest.mark.asyncio
    async def test_register_login_and_me(self, async_client: AsyncClient):
        register = await async_client.post(f"{API}/auth/register", json={
            "email": "Ada.Obi@Example.com",
            "password": "strongpass1",
            "full_name": "Ada Obi",
            "role": "HOMEOWNER"
        })
        assert register.status_code == status.HTTP_201_CREATED
        assert register.json()["email"] == "ada.obi@example.com"

        login = await async_client.post(f"{API}/auth/login", json={
            "email": "ada.obi@example.com",
            "password": "strongpass1"
        })
        assert login.status_code == status.HTTP_200_OK
        tokens = login.json()["tokens"]
        assert tokens["token_type"] == "bearer"

        me = await async_client.get(
            f"{API}/auth/me", headers={"Authorization": f"Bearer {tokens['access_token']}"}
        )
        assert me.status_code == status.HTTP_200_OK
        assert me.json()["role"] == "HOMEOWNER"

    @pytest.mark.asyncio
    async def test_login_invalid_credentials(self, async_client: AsyncClient, test_buyer: User):
        email = test_buyer.email
        response = await async_client.post(f"{API}/auth/login", json={
            "email": email,
            "password": "wrongpassword1"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert_error(response, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_me_requires_token(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/auth/me")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert_error(response, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_invalid_token(self, async_client: AsyncClient):
        response = await async_client.get(
            f"{API}/auth/me", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_register_rejects_short_password(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/auth/register", json={
            "email": "short@example.com",
            "password": "abc1",
            "full_name": "Short Password"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        error = assert_error(response, "VALIDATION_ERROR")
        assert any(detail["field"].endswith("password") for detail in error["details"])


class TestListingEndpoints:
    """Listing lifecycle over HTTP."""

    @pytest.mark.asyncio
    async def test_create_listing(self, async_client: AsyncClient, test_property: Property, test_realtor: User):
        headers = auth_headers(test_realtor)
        response = await async_client.post(f"{API}/listings", headers=headers, json={
            "property_id": str(test_property.id),
            "listing_price": "320000.00",
            "marketing_description": "Waterfront duplex",
            "commission_rate": "3"
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["listing_status"] == "DRAFT"
        assert data["listed_by"] == str(test_realtor.id)
        assert Decimal(data["original_price"]) == Decimal("320000.00")
        assert Decimal(data["commission_amount"]) == Decimal("9600.00")

    @pytest.mark.asyncio
    async def test_create_listing_requires_auth(self, async_client: AsyncClient, test_property: Property):
        response = await async_client.post(f"{API}/listings", json={
            "property_id": str(test_property.id),
            "listing_price": "100000",
            "marketing_description": "No token"
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert_error(response, "UNAUTHORIZED")

    @pytest.mark.asyncio
    async def test_create_listing_blank_description(self, async_client: AsyncClient,
                                                    test_property: Property, test_realtor: User):
        response = await async_client.post(f"{API}/listings", headers=auth_headers(test_realtor), json={
            "property_id": str(test_property.id),
            "listing_price": "100000",
            "marketing_description": "   "
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert_error(response, "VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_get_missing_listing(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/listings/{uuid.uuid4()}")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert_error(response, "NOT_FOUND")

    @pytest.mark.asyncio
    async def test_status_lifecycle(self, async_client: AsyncClient, test_listing: Listing, test_realtor: User):
        headers = auth_headers(test_realtor)
        url = f"{API}/listings/{test_listing.id}/status"

        skipped = await async_client.post(url, headers=headers, json={"status": "SOLD"})
        assert skipped.status_code == status.HTTP_409_CONFLICT
        assert_error(skipped, "INVALID_STATUS_TRANSITION")

        active = await async_client.post(url, headers=headers, json={"status": "ACTIVE"})
        assert active.status_code == status.HTTP_200_OK
        assert active.json()["listing_status"] == "ACTIVE"

        sold = await async_client.post(url, headers=headers, json={"status": "SOLD"})
        assert sold.status_code == status.HTTP_200_OK
        assert sold.json()["listing_status"] == "SOLD"
        assert sold.json()["sold_date"] is not None

        reopened = await async_client.post(url, headers=headers, json={"status": "ACTIVE"})
        assert reopened.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_price_change_recorded(self, async_client: AsyncClient, test_listing: Listing, test_realtor: User):
        response = await async_client.patch(
            f"{API}/listings/{test_listing.id}",
            headers=auth_headers(test_realtor),
            json={"listing_price": "240000.00"}
        )

        assert response.status_code == status.HTTP_200_OK
        history = response.json()["price_history"]
        assert len(history) == 1
        assert Decimal(str(history[0]["previous_price"])) == Decimal("250000.00")

    @pytest.mark.asyncio
    async def test_other_user_cannot_update(self, async_client: AsyncClient, test_listing: Listing, test_buyer: User):
        response = await async_client.patch(
            f"{API}/listings/{test_listing.id}",
            headers=auth_headers(test_buyer),
            json={"listing_price": "1.00"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert_error(response, "FORBIDDEN")

    @pytest.mark.asyncio
    async def test_record_view(self, async_client: AsyncClient, test_listing: Listing):
        response = await async_client.post(f"{API}/listings/{test_listing.id}/view")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["view_count"] == 1


class TestTransactionAndPaymentEndpoints:
    """Transactions, payments and the payment audit trail."""

    @pytest.mark.asyncio
    async def test_purchase_requires_property(self, async_client: AsyncClient, test_buyer: User):
        response = await async_client.post(f"{API}/transactions", headers=auth_headers(test_buyer), json={
            "transaction_type": "PROPERTY_PURCHASE",
            "amount": "1000.00"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert_error(response, "VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_create_purchase(self, async_client: AsyncClient, test_buyer: User, test_property: Property):
        response = await async_client.post(f"{API}/transactions", headers=auth_headers(test_buyer), json={
            "transaction_type": "PROPERTY_PURCHASE",
            "amount": "250000.00",
            "currency": "ngn",
            "property_id": str(test_property.id)
        })

        assert response.status_code == status.HTTP_201_CREATED
        data = response.json()
        assert data["status"] == "PENDING"
        assert data["currency"] == "NGN"
        assert data["reference_number"].startswith("TXN-")

    @pytest.mark.asyncio
    async def test_cash_payment_audit_trail(self, async_client: AsyncClient,
                                            test_transaction: Transaction, test_buyer: User):
        headers = auth_headers(test_buyer)
        created = await async_client.post(
            f"{API}/payments/transaction/{test_transaction.id}",
            headers=headers,
            json={"gateway_provider": "CASH", "payment_method": "CASH"}
        )
        assert created.status_code == status.HTTP_201_CREATED
        payment_id = created.json()["id"]
        assert len(created.json()["audit_log"]) == 1

        for next_status in ("PENDING", "AUTHORIZED", "CAPTURED"):
            response = await async_client.post(
                f"{API}/payments/{payment_id}/status", headers=headers, json={"status": next_status}
            )
            assert response.status_code == status.HTTP_200_OK

        data = response.json()
        assert data["payment_status"] == "CAPTURED"
        assert [entry["status"] for entry in data["audit_log"]] == [
            "INITIATED", "PENDING", "AUTHORIZED", "CAPTURED"
        ]
        assert data["captured_at"] is not None

    @pytest.mark.asyncio
    async def test_card_payment_needs_card_details(self, async_client: AsyncClient,
                                                   test_transaction: Transaction, test_buyer: User):
        response = await async_client.post(
            f"{API}/payments/transaction/{test_transaction.id}",
            headers=auth_headers(test_buyer),
            json={
                "gateway_provider": "PAYSTACK",
                "payment_method": "DEBIT_CARD",
                "gateway_transaction_id": "ps_123"
            }
        )

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert_error(response, "VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_webhook_requires_admin(self, async_client: AsyncClient,
                                          test_transaction: Transaction, test_buyer: User):
        headers = auth_headers(test_buyer)
        created = await async_client.post(
            f"{API}/payments/transaction/{test_transaction.id}",
            headers=headers,
            json={"gateway_provider": "CASH", "payment_method": "CASH"}
        )
        response = await async_client.post(
            f"{API}/payments/{created.json()['id']}/webhook",
            headers=headers,
            json={"status": "PENDING"}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN


class TestSubscriptionEndpoints:

    @pytest.mark.asyncio
    async def test_subscribe_to_free_plan(self, async_client: AsyncClient, test_buyer: User, test_plans):
        headers = auth_headers(test_buyer)
        plan_id = str(test_plans["free"].id)

        plans = await async_client.get(f"{API}/subscriptions/plans")
        assert plans.status_code == status.HTTP_200_OK
        assert plan_id in [plan["id"] for plan in plans.json()]

        response = await async_client.post(f"{API}/subscriptions", headers=headers, json={"plan_id": plan_id})
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["status"] == "ACTIVE"

        duplicate = await async_client.post(f"{API}/subscriptions", headers=headers, json={"plan_id": plan_id})
        assert duplicate.status_code == status.HTTP_409_CONFLICT
        assert_error(duplicate, "CONFLICT")

    @pytest.mark.asyncio
    async def test_incomplete_billing_address(self, async_client: AsyncClient, test_buyer: User, test_plans):
        response = await async_client.post(f"{API}/subscriptions", headers=auth_headers(test_buyer), json={
            "plan_id": str(test_plans["paid"].id),
            "billing_address": {"street": "1 Marina", "city": "Lagos"}
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestBuyerAndInquiryEndpoints:

    @pytest.mark.asyncio
    async def test_attach_buyer_profile(self, async_client: AsyncClient, test_buyer: User):
        headers = auth_headers(test_buyer)
        payload = {
            "minimum_budget": "150000",
            "maximum_budget": "300000",
            "preferred_locations": ["Lekki"],
            "property_type": "APARTMENT"
        }

        response = await async_client.post(f"{API}/auth/me/profiles/buyer", headers=headers, json=payload)
        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["kind"] == "buyer"
        assert response.json()["is_verified"] is False

        duplicate = await async_client.post(f"{API}/auth/me/profiles/buyer", headers=headers, json=payload)
        assert duplicate.status_code == status.HTTP_409_CONFLICT

    @pytest.mark.asyncio
    async def test_inquiry_flow(self, async_client: AsyncClient, test_listing: Listing,
                                test_realtor: User, test_buyer: User):
        listing_id = str(test_listing.id)
        realtor_headers = auth_headers(test_realtor)
        buyer_headers = auth_headers(test_buyer)
        await async_client.post(f"{API}/listings/{listing_id}/status", headers=realtor_headers,
                                json={"status": "ACTIVE"})

        created = await async_client.post(f"{API}/inquiries", headers=buyer_headers, json={
            "listing_id": listing_id,
            "inquiry_type": "PRICE_INQUIRY",
            "message": "Is the asking price negotiable?"
        })
        assert created.status_code == status.HTTP_201_CREATED
        inquiry_id = created.json()["id"]
        assert created.json()["status"] == "PENDING"

        listing = await async_client.get(f"{API}/listings/{listing_id}")
        assert listing.json()["inquiry_count"] == 1

        hidden = await async_client.get(f"{API}/inquiries/listing/{listing_id}", headers=buyer_headers)
        assert hidden.status_code == status.HTTP_403_FORBIDDEN

        contacted = await async_client.post(f"{API}/inquiries/{inquiry_id}/contacted", headers=realtor_headers,
                                            json={"notes": "Seller will take 240k"})
        assert contacted.status_code == status.HTTP_200_OK
        assert contacted.json()["status"] == "CONTACTED"

        resolved = await async_client.patch(f"{API}/inquiries/{inquiry_id}/status", headers=realtor_headers,
                                            json={"status": "RESOLVED"})
        assert resolved.status_code == status.HTTP_200_OK

        reopened = await async_client.patch(f"{API}/inquiries/{inquiry_id}/status", headers=realtor_headers,
                                            json={"status": "PENDING"})
        assert reopened.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
        assert_error(reopened, "VALIDATION_ERROR")

    @pytest.mark.asyncio
    async def test_inquiry_message_too_short(self, async_client: AsyncClient, test_listing: Listing,
                                             test_buyer: User):
        response = await async_client.post(f"{API}/inquiries", headers=auth_headers(test_buyer), json={
            "listing_id": str(test_listing.id),
            "message": "Hi"
        })

        assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


class TestNotificationEndpoints:

    @pytest.mark.asyncio
    async def test_create_requires_admin(self, async_client: AsyncClient, test_buyer: User):
        response = await async_client.post(f"{API}/notifications", headers=auth_headers(test_buyer), json={
            "recipient_id": str(test_buyer.id),
            "type": "EMAIL",
            "content": "Spoofed system message"
        })

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert_error(response, "FORBIDDEN")

    @pytest.mark.asyncio
    async def test_admin_creates_notification(self, async_client: AsyncClient, test_admin: User, test_buyer: User):
        response = await async_client.post(f"{API}/notifications", headers=auth_headers(test_admin), json={
            "recipient_id": str(test_buyer.id),
            "type": "EMAIL",
            "subject": "Your listing is live",
            "content": "Congratulations"
        })

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()["recipient_id"] == str(test_buyer.id)


class TestMonitoringAndContext:

    @pytest.mark.asyncio
    async def test_root(self, async_client: AsyncClient):
        response = await async_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["api_prefix"] == API

    @pytest.mark.asyncio
    async def test_request_id_header(self, async_client: AsyncClient):
        response = await async_client.get(f"{API}/listings/{uuid.uuid4()}")

        request_id = response.headers.get("X-Request-ID")
        assert request_id
        assert response.json()["error"]["request_id"] == request_id

    @pytest.mark.asyncio
    async def test_login_wrong_password_constant(self, async_client: AsyncClient):
        response = await async_client.post(f"{API}/auth/login", json={
            "email": "nobody@example.com",
            "password": DEFAULT_PASSWORD
        })

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

"""
Listing service: publishing properties for sale and moving listings through their lifecycle.
"""

from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.database import utcnow
from marketplace.repositories.listing import ListingRepository
from marketplace.repositories.property import PropertyRepository
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.user import User
from marketplace.schemas.listing import ListingCreate, ListingUpdate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, ConflictError, ValidationError
import uuid
import logging

logger = logging.getLogger(__name__)

ENGAGEMENT_COUNTERS = ("view", "inquiry", "favorite")


class ListingService(BaseService):
    """
    Listing service enforcing ownership and the listing status lifecycle.
    Price history and commission derivation happen in the model's flush hooks.
    """

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.listing_repo = ListingRepository(db_session)
        self.property_repo = PropertyRepository(db_session)

    async def create_listing(self, listing_data: ListingCreate, current_user: User) -> Listing:
        """
        Publish a listing for an existing property.

        Raises:
            NotFoundError: If the property doesn't exist
            ConflictError: If the MLS number is already used by a live listing
            ValidationError: If the model rejects the data
        """
        if not await self.property_repo.exists(listing_data.property_id):
            raise NotFoundError("Property", str(listing_data.property_id))

        if listing_data.mls_number and await self.listing_repo.get_by_mls_number(listing_data.mls_number):
            raise ConflictError(f"MLS number {listing_data.mls_number} is already listed")

        create_data = listing_data.model_dump()
        create_data["listed_by"] = current_user.id

        try:
            listing = await self.listing_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Listing {listing.id} created for property {listing.property_id} by {current_user.email}")
        return listing

    async def get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = await self.listing_repo.get_by_id(listing_id)
        if listing is None:
            raise NotFoundError("Listing", str(listing_id))
        return listing

    async def search_listings(
        self,
        status: Optional[ListingStatus] = None,
        min_price: Optional[Decimal] = None,
        max_price: Optional[Decimal] = None,
        skip: int = 0,
        limit: int = 20
    ) -> List[Listing]:
        if min_price is not None and max_price is not None and min_price > max_price:
            raise ValidationError("min_price cannot be greater than max_price")
        return await self.listing_repo.search(status, min_price, max_price, skip=skip, limit=limit)

    async def get_listings_by_user(self, user_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Listing]:
        return await self.listing_repo.get_by_lister(user_id, skip=skip, limit=limit)

    async def update_listing(self, listing_id: uuid.UUID, listing_data: ListingUpdate,
                             current_user: User) -> Listing:
        """
        Update listing details; a price change appends to price_history.

        Raises:
            NotFoundError: If the listing doesn't exist
            ForbiddenError: If the user didn't create the listing
            ValidationError: If nothing to update or a field is rejected
        """
        listing = await self.get_listing(listing_id)
        self._ensure_can_manage(listing, current_user)

        update_data = listing_data.model_dump(exclude_unset=True)
        if not update_data:
            raise ValidationError("No valid fields provided for update")

        mls_number = update_data.get("mls_number")
        if mls_number and mls_number != listing.mls_number:
            existing = await self.listing_repo.get_by_mls_number(mls_number)
            if existing is not None and existing.id != listing.id:
                raise ConflictError(f"MLS number {mls_number} is already listed")

        try:
            updated = await self.listing_repo.update(listing_id, update_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Listing {listing_id} updated by {current_user.email}")
        return updated

    async def change_status(
        self,
        listing_id: uuid.UUID,
        new_status: ListingStatus,
        current_user: User,
        sold_date: Optional[datetime] = None
    ) -> Listing:
        """
        Move a listing to a new status.
        Marking a listing SOLD stamps sold_date (now by default) and clears its expiration.

        Raises:
            InvalidStatusTransitionError: If the move is not allowed from the current status
        """
        listing = await self.get_listing(listing_id)
        self._ensure_can_manage(listing, current_user)

        try:
            if new_status == ListingStatus.SOLD:
                listing.expiration_date = None
                listing.sold_date = sold_date or utcnow()
            listing.listing_status = new_status
            listing = await self.listing_repo.save(listing)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Listing {listing_id} moved to {new_status.value}")
        return listing

    async def record_engagement(self, listing_id: uuid.UUID, counter: str) -> Listing:
        """Increment the view, inquiry or favorite counter."""
        if counter not in ENGAGEMENT_COUNTERS:
            raise ValidationError(f"Unknown engagement counter: {counter}")
        listing = await self.get_listing(listing_id)
        getattr(listing, f"record_{counter}")()
        return await self.listing_repo.save(listing)

    async def delete_listing(self, listing_id: uuid.UUID, current_user: User) -> bool:
        listing = await self.get_listing(listing_id)
        self._ensure_can_manage(listing, current_user)
        deleted = await self.listing_repo.delete(listing_id)
        logger.info(f"Listing {listing_id} deleted by {current_user.email}")
        return deleted

    @staticmethod
    def _ensure_can_manage(listing: Listing, user: User) -> None:
        if listing.listed_by != user.id and not user.is_admin:
            raise ForbiddenError("You don't have permission to manage this listing")

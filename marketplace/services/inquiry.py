"""
Inquiry service: buyers asking about listings, listers answering them.
Each new inquiry bumps the listing's inquiry counter in the same commit.
"""

from typing import Optional, List
from sqlalchemy.ext.asyncio import AsyncSession
from marketplace.repositories.inquiry import InquiryRepository
from marketplace.repositories.listing import ListingRepository
from marketplace.models.inquiry import Inquiry, InquiryStatus
from marketplace.models.listing import Listing, ListingStatus
from marketplace.models.user import User
from marketplace.schemas.inquiry import InquiryCreate
from marketplace.services.base import BaseService
from marketplace.utils.exceptions import NotFoundError, ForbiddenError, BusinessRuleViolationError
import uuid
import logging

logger = logging.getLogger(__name__)

INQUIRABLE_LISTING_STATUSES = (ListingStatus.ACTIVE, ListingStatus.PENDING)


class InquiryService(BaseService):

    def __init__(self, db_session: AsyncSession):
        super().__init__(db_session)
        self.inquiry_repo = InquiryRepository(db_session)
        self.listing_repo = ListingRepository(db_session)

    async def create_inquiry(self, inquiry_data: InquiryCreate, current_user: User) -> Inquiry:
        """
        Record an inquiry and count it against the listing.

        Raises:
            NotFoundError: If the listing doesn't exist
            BusinessRuleViolationError: If the listing is not on the market or the user listed it
            ValidationError: If the model rejects the data
        """
        listing = await self._get_listing(inquiry_data.listing_id)
        if listing.listing_status not in INQUIRABLE_LISTING_STATUSES:
            raise BusinessRuleViolationError("only active or pending listings accept inquiries",
                                             listing.listing_status.value)
        if listing.listed_by == current_user.id:
            raise BusinessRuleViolationError("listers cannot inquire about their own listings")

        create_data = inquiry_data.model_dump()
        create_data["inquirer_id"] = current_user.id

        try:
            listing.record_inquiry()
            inquiry = await self.inquiry_repo.create(create_data)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Inquiry {inquiry.id} on listing {inquiry.listing_id} from {current_user.email}")
        return inquiry

    async def get_inquiry(self, inquiry_id: uuid.UUID, current_user: Optional[User] = None) -> Inquiry:
        inquiry = await self.inquiry_repo.get_by_id(inquiry_id)
        if inquiry is None:
            raise NotFoundError("Inquiry", str(inquiry_id))
        if current_user is not None and inquiry.inquirer_id != current_user.id and not current_user.is_admin:
            listing = await self._get_listing(inquiry.listing_id)
            if listing.listed_by != current_user.id:
                raise ForbiddenError("This inquiry belongs to another user")
        return inquiry

    async def mark_contacted(self, inquiry_id: uuid.UUID, current_user: User,
                             notes: Optional[str] = None) -> Inquiry:
        inquiry = await self.get_inquiry(inquiry_id)
        await self._ensure_can_respond(inquiry, current_user)

        try:
            inquiry.mark_contacted(current_user.id, notes)
            inquiry = await self.inquiry_repo.save(inquiry)
        except ValueError as e:
            raise await self._reject(e)

        logger.info(f"Inquiry {inquiry_id} contacted by {current_user.email}")
        return inquiry

    async def change_status(self, inquiry_id: uuid.UUID, new_status: InquiryStatus,
                            current_user: User) -> Inquiry:
        """
        Move an inquiry along. Resolved and archived inquiries are final.

        Raises:
            ForbiddenError: If the user neither listed the property nor is an admin
            ValidationError: If the inquiry is already closed
        """
        inquiry = await self.get_inquiry(inquiry_id)
        await self._ensure_can_respond(inquiry, current_user)

        try:
            inquiry.status = new_status
            if inquiry.responder_id is None:
                inquiry.responder_id = current_user.id
            inquiry = await self.inquiry_repo.save(inquiry)
        except ValueError as e:
            raise await self._reject(e)

        return inquiry

    async def list_open_for_user(self, user_id: uuid.UUID, skip: int = 0, limit: int = 100) -> List[Inquiry]:
        return await self.inquiry_repo.get_open_for_inquirer(user_id, skip=skip, limit=limit)

    async def list_for_listing(
        self,
        listing_id: uuid.UUID,
        current_user: User,
        status: Optional[InquiryStatus] = None,
        skip: int = 0,
        limit: int = 100
    ) -> List[Inquiry]:
        listing = await self._get_listing(listing_id)
        if listing.listed_by != current_user.id and not current_user.is_admin:
            raise ForbiddenError("Only the lister can read inquiries on this listing")
        return await self.inquiry_repo.get_for_listing(listing_id, status=status, skip=skip, limit=limit)

    async def _get_listing(self, listing_id: uuid.UUID) -> Listing:
        listing = await self.listing_repo.get_by_id(listing_id)
        if listing is None:
            raise NotFoundError("Listing", str(listing_id))
        return listing

    async def _ensure_can_respond(self, inquiry: Inquiry, user: User) -> None:
        if user.is_admin:
            return
        listing = await self._get_listing(inquiry.listing_id)
        if listing.listed_by != user.id:
            raise ForbiddenError("Only the lister can respond to this inquiry")

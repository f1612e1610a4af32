"""
Buyer inquiries against listings.
Resolved and archived inquiries are closed to further status changes.
"""

from sqlalchemy import String, Text, DateTime, ForeignKey, JSON, Index, Enum as SQLEnum, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
import enum
import logging
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.listing import Listing
    from marketplace.models.user import User

logger = logging.getLogger(__name__)


class InquiryType(str, enum.Enum):
    GENERAL = "GENERAL"
    VIEWING_REQUEST = "VIEWING_REQUEST"
    PRICE_INQUIRY = "PRICE_INQUIRY"
    OFFER = "OFFER"
    FINANCING = "FINANCING"


class InquiryStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONTACTED = "CONTACTED"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"


CLOSED_INQUIRY_STATUSES = (InquiryStatus.RESOLVED, InquiryStatus.ARCHIVED)


class ContactPreference(str, enum.Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    SMS = "SMS"
    IN_APP = "IN_APP"


class Inquiry(SoftDeleteMixin, Base):
    """A prospective buyer's message about a listing, answered by the lister."""

    __tablename__ = "inquiries"

    MESSAGE_MIN_LENGTH = 10
    MESSAGE_MAX_LENGTH = 2000

    listing_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("listings.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    inquirer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    responder_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True
    )

    inquiry_type: Mapped[InquiryType] = mapped_column(
        SQLEnum(InquiryType),
        nullable=False,
        default=InquiryType.GENERAL,
        index=True
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[InquiryStatus] = mapped_column(
        SQLEnum(InquiryStatus),
        nullable=False,
        default=InquiryStatus.PENDING,
        index=True,
        active_history=True
    )
    contact_preference: Mapped[ContactPreference] = mapped_column(
        SQLEnum(ContactPreference),
        nullable=False,
        default=ContactPreference.EMAIL
    )
    contacted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    response_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    extra_metadata: Mapped[dict] = mapped_column("metadata", JSON, nullable=False, default=dict)

    listing: Mapped["Listing"] = relationship("Listing")
    inquirer: Mapped["User"] = relationship("User", foreign_keys=[inquirer_id])
    responder: Mapped[Optional["User"]] = relationship("User", foreign_keys=[responder_id])

    def __repr__(self) -> str:
        return f"<Inquiry(id={self.id}, listing_id={self.listing_id}, status={self.status})>"

    @validates("message")
    def _validate_message(self, key, value):
        value = ValidationUtils.non_empty(value, "Inquiry message cannot be empty")
        return ValidationUtils.length(value, "Message", min_length=self.MESSAGE_MIN_LENGTH,
                                      max_length=self.MESSAGE_MAX_LENGTH)

    @validates("inquiry_type")
    def _validate_type(self, key, value):
        return ValidationUtils.to_enum(value, InquiryType, "inquiry type")

    @validates("status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, InquiryStatus, "inquiry status")

    @validates("contact_preference")
    def _validate_contact_preference(self, key, value):
        return ValidationUtils.to_enum(value, ContactPreference, "contact preference")

    @property
    def is_open(self) -> bool:
        return self.status not in CLOSED_INQUIRY_STATUSES

    def mark_contacted(self, responder_id: uuid.UUID, notes: Optional[str] = None) -> None:
        self.status = InquiryStatus.CONTACTED
        self.responder_id = responder_id
        if notes is not None:
            self.response_notes = notes


@event.listens_for(Inquiry, "before_update")
def inquiry_before_update(mapper, connection, target: Inquiry) -> None:
    change = attribute_change(target, "status")
    if change is None:
        return
    previous, current = change
    if previous in CLOSED_INQUIRY_STATUSES:
        raise ValueError("Cannot modify resolved or archived inquiries")
    if current == InquiryStatus.CONTACTED and target.contacted_at is None:
        target.contacted_at = utcnow()
    logger.info(f"Inquiry {target.id} status {previous.value if previous else None} -> {current.value}")


listing_status_index = Index(
    'idx_inquiries_listing_status',
    Inquiry.listing_id,
    Inquiry.status
)

"""
Listing model: a property offered for sale with a status lifecycle.
Hooks keep last_updated, price history and commission figures in step with edits.
"""

from sqlalchemy import (
    String, Text, Integer, Numeric, Boolean, DateTime, JSON, ForeignKey, Index,
    Enum as SQLEnum, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin, utcnow
from marketplace.models.lifecycle import attribute_change, check_transition
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
from decimal import Decimal
import enum
import logging
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.property import Property
    from marketplace.models.user import User

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")


class ListingStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PENDING = "PENDING"
    SOLD = "SOLD"
    WITHDRAWN = "WITHDRAWN"
    EXPIRED = "EXPIRED"


LISTING_TRANSITIONS = {
    ListingStatus.DRAFT: {ListingStatus.ACTIVE, ListingStatus.WITHDRAWN},
    ListingStatus.ACTIVE: {ListingStatus.PENDING, ListingStatus.SOLD, ListingStatus.WITHDRAWN,
                           ListingStatus.EXPIRED},
    ListingStatus.PENDING: {ListingStatus.ACTIVE, ListingStatus.SOLD, ListingStatus.WITHDRAWN},
    ListingStatus.EXPIRED: {ListingStatus.ACTIVE},
    ListingStatus.WITHDRAWN: {ListingStatus.ACTIVE},
    ListingStatus.SOLD: set(),
}


class Listing(SoftDeleteMixin, Base):
    """
    Property-for-sale record.
    A sold date is present exactly when the listing is SOLD, and a SOLD
    listing carries no expiration date.
    """

    __tablename__ = "listings"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True
    )

    listed_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"),
        nullable=False,
        index=True,
        comment="User who published the listing"
    )

    listing_status: Mapped[ListingStatus] = mapped_column(
        SQLEnum(ListingStatus),
        nullable=False,
        default=ListingStatus.DRAFT,
        index=True,
        active_history=True
    )

    # Pricing
    listing_price: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), nullable=False, index=True, active_history=True
    )
    original_price: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    price_history: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)

    marketing_description: Mapped[str] = mapped_column(Text, nullable=False)

    # Dates
    listed_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    expiration_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    sold_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # Marketing
    virtual_tour_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    is_open_house: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    open_house_schedule: Mapped[List[dict]] = mapped_column(JSON, nullable=False, default=list)

    # Engagement counters
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inquiry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    favorite_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # MLS
    mls_number: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    mls_status: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    # Commission
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)
    commission_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    # Relationships
    property_rel: Mapped["Property"] = relationship("Property", back_populates="listings")
    lister: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<Listing(id={self.id}, status={self.listing_status}, price={self.listing_price})>"

    @validates("listing_status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, ListingStatus, "listing status")

    @validates("listing_price")
    def _validate_listing_price(self, key, value):
        value = ValidationUtils.require(ValidationUtils.to_decimal(value, "Listing price"),
                                        "Listing price is required")
        return ValidationUtils.number_range(value, "Listing price", min_value=0,
                                            min_message="Listing price cannot be negative")

    @validates("original_price")
    def _validate_original_price(self, key, value):
        value = ValidationUtils.to_decimal(value, "Original price")
        return ValidationUtils.number_range(value, "Original price", min_value=0,
                                            min_message="Original price cannot be negative")

    @validates("commission_rate")
    def _validate_commission_rate(self, key, value):
        value = ValidationUtils.to_decimal(value, "Commission rate")
        return ValidationUtils.number_range(
            value, "Commission rate", min_value=0, max_value=100,
            min_message="Commission rate cannot be negative",
            max_message="Commission rate cannot exceed 100%"
        )

    @validates("commission_amount")
    def _validate_commission_amount(self, key, value):
        value = ValidationUtils.to_decimal(value, "Commission amount")
        return ValidationUtils.number_range(value, "Commission amount", min_value=0,
                                            min_message="Commission amount cannot be negative")

    @validates("view_count", "inquiry_count", "favorite_count")
    def _validate_counters(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("marketing_description")
    def _validate_marketing_description(self, key, value):
        return ValidationUtils.non_empty(value, "Marketing description is required")

    @validates("mls_number", "mls_status")
    def _validate_mls(self, key, value):
        label = "MLS number" if key == "mls_number" else "MLS status"
        return ValidationUtils.non_empty(value, f"{label} cannot be empty if provided", required=False)

    @validates("virtual_tour_url")
    def _validate_virtual_tour_url(self, key, value):
        return ValidationUtils.url(value, "Invalid URL format for virtual tour")

    @validates("expiration_date")
    def _validate_expiration_date(self, key, value):
        value = ValidationUtils.ensure_aware(value)
        if value is not None and value <= utcnow():
            raise ValueError("Expiration date must be in the future")
        return value

    @validates("sold_date")
    def _validate_sold_date(self, key, value):
        value = ValidationUtils.ensure_aware(value)
        if value is not None and value > utcnow():
            raise ValueError("Sold date cannot be in the future")
        return value

    def validate_status_dates(self) -> None:
        """
        Cross-field rules tying dates to the listing status.

        Raises:
            ValueError: If sold/expiration dates disagree with the status
        """
        if self.listing_status == ListingStatus.SOLD and self.sold_date is None:
            raise ValueError("Sold date is required when the listing is SOLD")
        if self.sold_date is not None and self.listing_status != ListingStatus.SOLD:
            raise ValueError("Sold date is only allowed when the listing is SOLD")
        if self.expiration_date is not None and self.listing_status == ListingStatus.SOLD:
            raise ValueError("A SOLD listing cannot have an expiration date")

    def derive_commission(self, recompute: bool = False) -> None:
        """Fill commission_amount from the rate when the amount is missing or stale."""
        if self.commission_rate is None or self.listing_price is None:
            return
        if self.commission_amount is None or recompute:
            self.commission_amount = (self.listing_price * self.commission_rate / 100).quantize(CENTS)

    @property
    def is_active(self) -> bool:
        return self.listing_status == ListingStatus.ACTIVE

    def record_view(self) -> None:
        self.view_count = (self.view_count or 0) + 1

    def record_inquiry(self) -> None:
        self.inquiry_count = (self.inquiry_count or 0) + 1

    def record_favorite(self) -> None:
        self.favorite_count = (self.favorite_count or 0) + 1

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "listed_by": str(self.listed_by),
            "listing_status": self.listing_status.value,
            "listing_price": float(self.listing_price),
            "original_price": float(self.original_price) if self.original_price is not None else None,
            "price_history": list(self.price_history or []),
            "marketing_description": self.marketing_description,
            "listed_date": self.listed_date.isoformat(),
            "last_updated": self.last_updated.isoformat(),
            "expiration_date": self.expiration_date.isoformat() if self.expiration_date else None,
            "sold_date": self.sold_date.isoformat() if self.sold_date else None,
            "virtual_tour_url": self.virtual_tour_url,
            "is_open_house": self.is_open_house,
            "view_count": self.view_count,
            "inquiry_count": self.inquiry_count,
            "favorite_count": self.favorite_count,
            "mls_number": self.mls_number,
            "commission_rate": float(self.commission_rate) if self.commission_rate is not None else None,
            "commission_amount": float(self.commission_amount) if self.commission_amount is not None else None,
        }


@event.listens_for(Listing, "before_insert")
def listing_before_insert(mapper, connection, target: Listing) -> None:
    if target.original_price is None:
        target.original_price = target.listing_price
    target.derive_commission()
    target.validate_status_dates()


@event.listens_for(Listing, "before_update")
def listing_before_update(mapper, connection, target: Listing) -> None:
    status_change = attribute_change(target, "listing_status")
    if status_change:
        check_transition("listing", LISTING_TRANSITIONS, *status_change, initial=ListingStatus.DRAFT)

    price_change = attribute_change(target, "listing_price")
    if price_change:
        previous_price, new_price = price_change
        entry = {
            "price": str(new_price),
            "previous_price": str(previous_price) if previous_price is not None else None,
            "changed_at": utcnow().isoformat(),
        }
        target.price_history = [*(target.price_history or []), entry]
        logger.info(f"Listing {target.id} price changed {previous_price} -> {new_price}")

    rate_changed = attribute_change(target, "commission_rate") is not None
    amount_changed = attribute_change(target, "commission_amount") is not None
    target.derive_commission(recompute=(rate_changed or price_change is not None) and not amount_changed)

    target.last_updated = utcnow()
    target.validate_status_dates()


# Non-deleted listings must have distinct MLS numbers
mls_number_unique_index = Index(
    'uq_listings_mls_number_live',
    Listing.mls_number,
    unique=True,
    postgresql_where=Listing.deleted_at.is_(None),
    sqlite_where=Listing.deleted_at.is_(None)
)

status_price_index = Index(
    'idx_listings_status_price',
    Listing.listing_status,
    Listing.listing_price
)

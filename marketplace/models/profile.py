"""
Role-specific profiles extending a base user one-to-one.
A user holds at most one profile of each kind (unique user_id per table).
"""

from sqlalchemy import String, Text, Integer, Boolean, Numeric, ForeignKey, JSON, Enum as SQLEnum, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin
from marketplace.models.property import PropertyType
from marketplace.utils.validators import ValidationUtils
import enum
import uuid
from decimal import Decimal
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.user import User


class ContactMethod(str, enum.Enum):
    EMAIL = "EMAIL"
    PHONE = "PHONE"
    TEXT = "TEXT"


def _user_fk(constraint: str) -> Mapped[uuid.UUID]:
    return mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE", name=constraint),
        unique=True,
        nullable=False,
        index=True,
        comment="Owning user; one profile of this kind per user"
    )


class Developer(SoftDeleteMixin, Base):
    """Property developer company profile."""

    __tablename__ = "developers"

    user_id: Mapped[uuid.UUID] = _user_fk("fk_developers_user_id")

    company_name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    cac_reg_number: Mapped[str] = mapped_column(
        String(100),
        unique=True,
        nullable=False,
        comment="Corporate Affairs Commission registration number"
    )
    years_in_business: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    projects_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    website_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    office_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    company_logo_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    cloudinary_id: Mapped[str] = mapped_column(String(255), nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped["User"] = relationship("User", back_populates="developer_profile")

    @validates("company_name", "cac_reg_number", "cloudinary_id")
    def _validate_required_text(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.non_empty(value, f"{label} is required")

    @validates("years_in_business", "projects_completed")
    def _validate_counts(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("website_url", "company_logo_url")
    def _validate_urls(self, key, value):
        return ValidationUtils.url(value)

    @validates("office_address")
    def _validate_office_address(self, key, value):
        return ValidationUtils.non_empty(value, "Office address is required", required=False)


class HomeOwner(SoftDeleteMixin, Base):
    """Private owner selling or letting their own property."""

    __tablename__ = "homeowners"

    user_id: Mapped[uuid.UUID] = _user_fk("fk_homeowners_user_id")

    primary_residence: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    ownership_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    preferred_contact_method: Mapped[ContactMethod] = mapped_column(
        SQLEnum(ContactMethod),
        nullable=False,
        default=ContactMethod.EMAIL
    )
    verification_docs_urls: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    user: Mapped["User"] = relationship("User", back_populates="homeowner_profile")

    @validates("preferred_contact_method")
    def _validate_contact_method(self, key, value):
        return ValidationUtils.to_enum(value, ContactMethod, "contact method")

    @validates("verification_docs_urls")
    def _validate_docs(self, key, value):
        return ValidationUtils.url_list(value, "Invalid verification document URL")


class Realtor(SoftDeleteMixin, Base):
    """Licensed agent profile."""

    __tablename__ = "realtors"

    user_id: Mapped[uuid.UUID] = _user_fk("fk_realtors_user_id")

    license_number: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    brokerage_name: Mapped[str] = mapped_column(String(255), nullable=False)
    years_of_experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    specialties: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    certifications: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    verification_docs_urls: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cloudinary_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    user: Mapped["User"] = relationship("User", back_populates="realtor_profile")

    @validates("license_number", "brokerage_name")
    def _validate_required_text(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.non_empty(value, f"{label} is required")

    @validates("years_of_experience")
    def _validate_experience(self, key, value):
        return ValidationUtils.number_range(value, "Years of experience", min_value=0,
                                            min_message="Years of experience cannot be negative")

    @validates("verification_docs_urls")
    def _validate_docs(self, key, value):
        return ValidationUtils.url_list(value, "Invalid verification document URL")


class Buyer(SoftDeleteMixin, Base):
    """House hunter's search profile: budget band, financing and preferences."""

    __tablename__ = "buyers"

    user_id: Mapped[uuid.UUID] = _user_fk("fk_buyers_user_id")

    minimum_budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    maximum_budget: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    pre_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    pre_approval_amount: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    preferred_locations: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        default=PropertyType.SINGLE_FAMILY
    )

    user: Mapped["User"] = relationship("User", back_populates="buyer_profile")

    @validates("minimum_budget", "maximum_budget", "pre_approval_amount")
    def _validate_amounts(self, key, value):
        label = key.replace("_", " ").capitalize()
        value = ValidationUtils.to_decimal(value, label)
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("property_type")
    def _validate_property_type(self, key, value):
        return ValidationUtils.to_enum(value, PropertyType, "property type")

    @validates("preferred_locations")
    def _validate_locations(self, key, value):
        return [ValidationUtils.non_empty(item, "Preferred locations cannot be blank") for item in (value or [])]

    def validate_budget(self) -> None:
        """
        Raises:
            ValueError: If the budget band is missing or inverted, or a
                pre-approval has no amount
        """
        ValidationUtils.require(self.minimum_budget, "Minimum budget is required")
        ValidationUtils.require(self.maximum_budget, "Maximum budget is required")
        if self.minimum_budget > self.maximum_budget:
            raise ValueError("Minimum budget cannot exceed maximum budget")
        if self.pre_approved and self.pre_approval_amount is None:
            raise ValueError("Pre-approved buyers need a pre-approval amount")

    def matches_price(self, price: Decimal) -> bool:
        return self.minimum_budget <= price <= self.maximum_budget


@event.listens_for(Buyer, "before_insert")
@event.listens_for(Buyer, "before_update")
def buyer_before_save(mapper, connection, target: Buyer) -> None:
    target.validate_budget()

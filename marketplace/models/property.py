"""
Property model for physical real-estate assets.
Listings, media and transactions all hang off a property.
"""

from sqlalchemy import String, Text, Integer, Float, JSON, ForeignKey, Index, Enum as SQLEnum, Uuid, event
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base
from marketplace.utils.validators import ValidationUtils
import enum
import math
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.user import User
    from marketplace.models.listing import Listing
    from marketplace.models.media import PropertyMedia

EARTH_RADIUS_KM = 6371.0
COORDINATE_PRECISION = 6


class PropertyType(str, enum.Enum):
    """Kinds of property that can be listed."""
    SINGLE_FAMILY = "SINGLE_FAMILY"
    MULTI_FAMILY = "MULTI_FAMILY"
    CONDO = "CONDO"
    APARTMENT = "APARTMENT"
    COMMERCIAL = "COMMERCIAL"
    LAND = "LAND"
    VILLA = "VILLA"
    TOWNHOUSE = "TOWNHOUSE"


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance between two coordinates in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(min(1.0, math.sqrt(a)))


class Property(Base):
    """
    Property model holding location and physical characteristics.
    Coordinates are required and normalised to six decimal places before save.
    """

    __tablename__ = "properties"

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="ID of the user who owns this property"
    )

    # Location information
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    city: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    state: Mapped[str] = mapped_column(String(2), nullable=False)
    zip_code: Mapped[str] = mapped_column(String(10), nullable=False)

    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # Property specifications
    property_type: Mapped[PropertyType] = mapped_column(
        SQLEnum(PropertyType),
        nullable=False,
        index=True
    )

    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[float] = mapped_column(Float, nullable=False)
    square_feet: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    year_built: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    lot_size: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Lot size in square feet"
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    features: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # Relationships
    owner: Mapped["User"] = relationship("User", back_populates="properties")

    listings: Mapped[List["Listing"]] = relationship(
        "Listing",
        back_populates="property_rel",
        cascade="all, delete-orphan"
    )

    media: Mapped[List["PropertyMedia"]] = relationship(
        "PropertyMedia",
        back_populates="property_rel",
        cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Property(id={self.id}, address={self.address}, city={self.city})>"

    @validates("address", "city", "zip_code")
    def _validate_address_parts(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.non_empty(value, f"{label} is required")

    @validates("state")
    def _validate_state(self, key, value):
        value = ValidationUtils.non_empty(value, "State is required")
        if len(value) != 2:
            raise ValueError("State must be a 2-letter code")
        return value.upper()

    @validates("property_type")
    def _validate_property_type(self, key, value):
        return ValidationUtils.to_enum(value, PropertyType, "property type")

    @validates("bedrooms")
    def _validate_bedrooms(self, key, value):
        return ValidationUtils.number_range(value, "Bedrooms", min_value=0,
                                            min_message="Bedrooms cannot be negative")

    @validates("bathrooms")
    def _validate_bathrooms(self, key, value):
        return ValidationUtils.number_range(value, "Bathrooms", min_value=0.5,
                                            min_message="Must have at least 0.5 bathrooms")

    @validates("square_feet")
    def _validate_square_feet(self, key, value):
        return ValidationUtils.number_range(value, "Square footage", min_value=0,
                                            min_message="Square footage cannot be negative")

    @validates("year_built")
    def _validate_year_built(self, key, value):
        return ValidationUtils.number_range(value, "Year built", min_value=1800,
                                            min_message="Year built must be after 1800")

    @validates("latitude")
    def _validate_latitude(self, key, value):
        ValidationUtils.require(value, "Latitude is required")
        return ValidationUtils.number_range(
            float(value), "Latitude", min_value=-90, max_value=90,
            min_message="Latitude must be between -90 and 90",
            max_message="Latitude must be between -90 and 90"
        )

    @validates("longitude")
    def _validate_longitude(self, key, value):
        ValidationUtils.require(value, "Longitude is required")
        return ValidationUtils.number_range(
            float(value), "Longitude", min_value=-180, max_value=180,
            min_message="Longitude must be between -180 and 180",
            max_message="Longitude must be between -180 and 180"
        )

    def coordinates(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}

    def distance_km_to(self, latitude: float, longitude: float) -> float:
        """Distance from this property to a coordinate in kilometres."""
        return haversine_km(self.latitude, self.longitude, latitude, longitude)

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner_id": str(self.owner_id),
            "address": self.address,
            "city": self.city,
            "state": self.state,
            "zip_code": self.zip_code,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "property_type": self.property_type.value,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "square_feet": self.square_feet,
            "year_built": self.year_built,
            "lot_size": self.lot_size,
            "description": self.description,
            "features": list(self.features or []),
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@event.listens_for(Property, "before_insert")
@event.listens_for(Property, "before_update")
def round_coordinates(mapper, connection, target: Property) -> None:
    if target.latitude is not None:
        target.latitude = round(target.latitude, COORDINATE_PRECISION)
    if target.longitude is not None:
        target.longitude = round(target.longitude, COORDINATE_PRECISION)


# Composite index for owner dashboards
owner_type_index = Index(
    'idx_properties_owner_type',
    Property.owner_id,
    Property.property_type
)

# Coordinate lookups for radius searches
coordinates_index = Index(
    'idx_properties_coordinates',
    Property.latitude,
    Property.longitude
)

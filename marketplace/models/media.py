"""
Property media stored in Cloudinary.
Only URL and metadata records live here; uploads happen outside this service.
"""

from sqlalchemy import (
    String, Text, Integer, Boolean, ForeignKey, Index, Enum as SQLEnum, Uuid,
    event, func, select, and_
)
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base, SoftDeleteMixin
from marketplace.utils.validators import ValidationUtils
import enum
import logging
import uuid
from typing import Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.property import Property
    from marketplace.models.user import User

logger = logging.getLogger(__name__)


class MediaType(str, enum.Enum):
    IMAGE = "IMAGE"
    VIDEO = "VIDEO"
    VIRTUAL_TOUR = "VIRTUAL_TOUR"
    FLOOR_PLAN = "FLOOR_PLAN"


class PropertyMedia(SoftDeleteMixin, Base):
    """
    Media attached to a property.
    At most one live IMAGE per property may be flagged as the main image.
    """

    __tablename__ = "property_media"

    property_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("properties.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    media_type: Mapped[MediaType] = mapped_column(
        SQLEnum(MediaType),
        nullable=False,
        default=MediaType.IMAGE
    )

    # File metadata
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    original_name: Mapped[str] = mapped_column(String(255), nullable=False)
    mime_type: Mapped[str] = mapped_column(String(100), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False, comment="File size in bytes")

    # Cloudinary references
    cloudinary_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    cloudinary_url: Mapped[str] = mapped_column(String(500), nullable=False)

    # Display metadata
    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    alt_text: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_main_image: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Dimensions and encoding
    width: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, comment="Seconds")
    compression_quality: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    uploaded_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_processed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    property_rel: Mapped["Property"] = relationship("Property", back_populates="media")
    uploader: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<PropertyMedia(id={self.id}, type={self.media_type}, main={self.is_main_image})>"

    @validates("media_type")
    def _validate_media_type(self, key, value):
        return ValidationUtils.to_enum(value, MediaType, "media type")

    @validates("file_name", "original_name", "mime_type", "cloudinary_id")
    def _validate_required_text(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.non_empty(value, f"{label} is required")

    @validates("cloudinary_url")
    def _validate_cloudinary_url(self, key, value):
        ValidationUtils.require(value, "Cloudinary URL is required")
        return ValidationUtils.url(value, "Cloudinary URL must be a valid URL")

    @validates("file_size")
    def _validate_file_size(self, key, value):
        ValidationUtils.require(value, "File size is required")
        return ValidationUtils.number_range(value, "File size", min_value=1,
                                            min_message="File size must be at least 1 byte")

    @validates("title", "alt_text")
    def _validate_short_text(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.length(value, label, max_length=255)

    @validates("description")
    def _validate_description(self, key, value):
        return ValidationUtils.length(value, "Description", max_length=1000)

    @validates("display_order", "duration")
    def _validate_non_negative(self, key, value):
        label = key.replace("_", " ").capitalize()
        return ValidationUtils.number_range(value, label, min_value=0,
                                            min_message=f"{label} cannot be negative")

    @validates("width", "height")
    def _validate_dimensions(self, key, value):
        label = key.capitalize()
        return ValidationUtils.number_range(value, label, min_value=1,
                                            min_message=f"{label} must be at least 1 pixel")

    @validates("compression_quality")
    def _validate_compression_quality(self, key, value):
        return ValidationUtils.number_range(
            value, "Compression quality", min_value=1, max_value=100,
            min_message="Compression quality must be between 1 and 100",
            max_message="Compression quality must be between 1 and 100"
        )

    @property
    def is_image(self) -> bool:
        return self.media_type == MediaType.IMAGE

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "property_id": str(self.property_id),
            "media_type": self.media_type.value,
            "file_name": self.file_name,
            "original_name": self.original_name,
            "mime_type": self.mime_type,
            "file_size": self.file_size,
            "cloudinary_id": self.cloudinary_id,
            "cloudinary_url": self.cloudinary_url,
            "title": self.title,
            "alt_text": self.alt_text,
            "display_order": self.display_order,
            "is_main_image": self.is_main_image,
            "is_featured": self.is_featured,
            "width": self.width,
            "height": self.height,
            "created_at": self.created_at.isoformat(),
        }


def _ensure_single_main_image(connection, target: PropertyMedia) -> None:
    if not target.is_main_image or target.deleted_at is not None:
        return
    if target.media_type != MediaType.IMAGE:
        raise ValueError("Only images can be set as the main image")

    table = PropertyMedia.__table__
    query = select(func.count()).select_from(table).where(
        table.c.property_id == target.property_id,
        table.c.is_main_image.is_(True),
        table.c.deleted_at.is_(None),
    )
    if target.id is not None:
        query = query.where(table.c.id != target.id)

    if connection.execute(query).scalar_one() > 0:
        logger.warning(f"Rejected second main image for property {target.property_id}")
        raise ValueError("Only one main image is allowed per property")


@event.listens_for(PropertyMedia, "before_insert")
@event.listens_for(PropertyMedia, "before_update")
def media_before_save(mapper, connection, target: PropertyMedia) -> None:
    _ensure_single_main_image(connection, target)


property_order_index = Index(
    'idx_property_media_property_order',
    PropertyMedia.property_id,
    PropertyMedia.display_order
)

# Backs the pre-save check when several rows are flushed together
main_image_unique_index = Index(
    'uq_property_media_main_image',
    PropertyMedia.property_id,
    unique=True,
    postgresql_where=and_(PropertyMedia.is_main_image.is_(True), PropertyMedia.deleted_at.is_(None)),
    sqlite_where=and_(PropertyMedia.is_main_image.is_(True), PropertyMedia.deleted_at.is_(None))
)

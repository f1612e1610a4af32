"""
Outbound notification records, threaded through parent_id.
"""

from sqlalchemy import String, Text, DateTime, ForeignKey, Index, Enum as SQLEnum, Uuid, event, select
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates
from marketplace.database import Base
from marketplace.utils.validators import ValidationUtils
from datetime import datetime
import enum
import uuid
from typing import List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from marketplace.models.user import User


class NotificationType(str, enum.Enum):
    EMAIL = "EMAIL"
    PUSH = "PUSH"


class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class Notification(Base):
    """Message addressed to a user; replies point at their parent."""

    __tablename__ = "notifications"

    recipient_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    type: Mapped[NotificationType] = mapped_column(SQLEnum(NotificationType), nullable=False)
    subject: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    html: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[NotificationStatus] = mapped_column(
        SQLEnum(NotificationStatus),
        nullable=False,
        default=NotificationStatus.PENDING,
        index=True
    )
    parent_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("notifications.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    recipient: Mapped["User"] = relationship("User")
    parent: Mapped[Optional["Notification"]] = relationship(
        "Notification", remote_side="Notification.id", back_populates="replies"
    )
    replies: Mapped[List["Notification"]] = relationship("Notification", back_populates="parent")

    def __repr__(self) -> str:
        return f"<Notification(id={self.id}, type={self.type}, status={self.status})>"

    @validates("type")
    def _validate_type(self, key, value):
        ValidationUtils.require(value, "Notification type is required")
        return ValidationUtils.to_enum(value, NotificationType, "notification type")

    @validates("status")
    def _validate_status(self, key, value):
        return ValidationUtils.to_enum(value, NotificationStatus, "notification status")

    @validates("content")
    def _validate_content(self, key, value):
        return ValidationUtils.non_empty(value, "Notification content is required")

    @validates("subject")
    def _validate_subject(self, key, value):
        return ValidationUtils.length(value, "Subject", max_length=255)

    @property
    def is_read(self) -> bool:
        return self.read_at is not None

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "recipient_id": str(self.recipient_id),
            "type": self.type.value,
            "subject": self.subject,
            "content": self.content,
            "status": self.status.value,
            "parent_id": str(self.parent_id) if self.parent_id else None,
            "read_at": self.read_at.isoformat() if self.read_at else None,
            "created_at": self.created_at.isoformat(),
        }


def _ensure_same_thread(connection, target: Notification) -> None:
    if target.parent_id is None:
        return
    if target.parent_id == target.id:
        raise ValueError("A notification cannot be its own parent")

    table = Notification.__table__
    parent_recipient = connection.execute(
        select(table.c.recipient_id).where(table.c.id == target.parent_id)
    ).scalar_one_or_none()
    if parent_recipient is not None and parent_recipient != target.recipient_id:
        raise ValueError("A reply must go to the same recipient as its thread")


@event.listens_for(Notification, "before_insert")
def notification_before_insert(mapper, connection, target: Notification) -> None:
    _ensure_same_thread(connection, target)


@event.listens_for(Notification, "before_update")
def notification_before_update(mapper, connection, target: Notification) -> None:
    _ensure_same_thread(connection, target)


recipient_status_index = Index(
    'idx_notifications_recipient_status',
    Notification.recipient_id,
    Notification.status
)

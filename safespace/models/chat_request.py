"""
ChatRequest: a user's request to talk with a specialist.

Lifecycle: pending → accepted → closed. The accepting specialist is set
exactly once, by a conditional update that only matches pending rows.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import String, Integer, Uuid, ForeignKey, Index, CheckConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from safespace.database import Base, UTCDateTime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChatRequestStatus(str, Enum):
    """Possible chat request statuses."""
    PENDING = "pending"
    ACCEPTED = "accepted"
    CLOSED = "closed"


class ChatRequest(Base):
    __tablename__ = "chat_requests"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ChatRequestStatus.PENDING.value
    )  # pending | accepted | closed
    created_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), nullable=False,
    )  # auth user id of the requester
    created_by_name: Mapped[str] = mapped_column(
        String(255), nullable=False, default="",
    )  # snapshot, never re-derived from the profile
    accepted_by: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("specialists.id"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    closed_at: Mapped[datetime | None] = mapped_column(
        UTCDateTime(), nullable=True,
    )

    __table_args__ = (
        # list_all: newest first
        Index("idx_chat_requests_created", "created_at"),
        # list_accepted_by: a specialist's cases, newest first
        Index("idx_chat_requests_accepted_by", "accepted_by", "created_at"),
        # count_pending
        Index("idx_chat_requests_status", "status"),
        # Lifecycle invariants enforced by the database
        CheckConstraint(
            "status IN ('pending', 'accepted', 'closed')",
            name="ck_chat_requests_status",
        ),
        CheckConstraint(
            "(accepted_by IS NULL) = (status = 'pending')",
            name="ck_chat_requests_accepted_by",
        ),
        CheckConstraint(
            "(closed_at IS NULL) = (status <> 'closed')",
            name="ck_chat_requests_closed_at",
        ),
    )

    def __repr__(self) -> str:
        return f"<ChatRequest(id={self.id}, status={self.status}, accepted_by={self.accepted_by})>"

    @property
    def is_pending(self) -> bool:
        return self.status == ChatRequestStatus.PENDING.value

    @property
    def is_closed(self) -> bool:
        return self.status == ChatRequestStatus.CLOSED.value

"""
Specialist: directory entry for someone who can accept chat requests.
Keyed by e-mail against the authenticated identity.
"""

from datetime import datetime

from sqlalchemy import Integer, String, Text, Boolean, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from safespace.database import Base, UTCDateTime
from safespace.models.chat_request import utcnow


class Specialist(Base):
    """Specialist profile record."""

    __tablename__ = "specialists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )

    fullname: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(32), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)  # trimmed, lower-case
    website: Mapped[str | None] = mapped_column(String(512), nullable=True)
    about: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Avatar lives in the private object store; only the key is kept here
    avatar_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    avatar_alt: Mapped[str | None] = mapped_column(String(120), nullable=True)

    __table_args__ = (
        Index("idx_specialists_email", "email"),
    )

    def __repr__(self) -> str:
        return f"<Specialist(id={self.id}, email={self.email}, verified={self.is_verified})>"

    @property
    def display_name(self) -> str | None:
        name = (self.fullname or "").strip()
        return name or None

"""
Directory: specialist profile lookup and maintenance.

Specialists are matched to authenticated users by e-mail. E-mails are stored
trimmed and lower-cased; lookups normalise the same way.
db.commit() is the caller's responsibility.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.exceptions import PersistenceError, SpecialistNotFoundError
from safespace.logging_config import get_logger
from safespace.models.specialist import Specialist

logger = get_logger(__name__)

PROFILE_FIELDS = frozenset({
    "fullname", "phone", "email", "website", "about", "is_verified", "avatar_alt",
})


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


class Directory:
    """Reads and writes specialist records."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_email(self, email: str | None) -> Specialist | None:
        """Newest specialist registered under ``email``, or None."""
        normalized = normalize_email(email)
        if not normalized:
            return None

        stmt = (
            select(Specialist)
            .where(Specialist.email == normalized)
            .order_by(Specialist.created_at.desc(), Specialist.id.desc())
            .limit(1)
        )
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("specialist_lookup_failed", email=normalized, error=str(e))
            raise PersistenceError("Failed to look up specialist", original_error=e) from e
        return result.scalar_one_or_none()

    async def get(self, specialist_id: int) -> Specialist:
        try:
            specialist = await self.db.get(Specialist, specialist_id)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to load specialist", original_error=e) from e
        if specialist is None:
            raise SpecialistNotFoundError(specialist_id)
        return specialist

    async def list_all(self) -> list[Specialist]:
        """All specialists, newest first."""
        stmt = select(Specialist).order_by(Specialist.created_at.desc(), Specialist.id.desc())
        try:
            result = await self.db.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError("Failed to list specialists", original_error=e) from e
        return list(result.scalars().all())

    async def create(self, **fields: Any) -> Specialist:
        specialist = Specialist(**_clean(fields))
        self.db.add(specialist)
        await self._flush("create")
        logger.info("specialist_created", specialist_id=specialist.id, email=specialist.email)
        return specialist

    async def update(self, specialist_id: int, **fields: Any) -> Specialist:
        specialist = await self.get(specialist_id)
        for key, value in _clean(fields).items():
            setattr(specialist, key, value)
        await self._flush("update")
        logger.info("specialist_updated", specialist_id=specialist.id, fields=sorted(fields))
        return specialist

    async def upsert_profile(self, email: str, **fields: Any) -> Specialist:
        """
        Create or update the directory entry owned by ``email``.
        The e-mail itself always comes from the verified identity.
        """
        fields["email"] = email
        existing = await self.find_by_email(email)
        if existing is None:
            return await self.create(**fields)
        return await self.update(existing.id, **fields)

    async def set_avatar(self, specialist_id: int, path: str, alt: str | None = None) -> Specialist:
        specialist = await self.get(specialist_id)
        specialist.avatar_path = path
        if alt is not None:
            specialist.avatar_alt = alt.strip() or None
        await self._flush("set_avatar")
        logger.info("specialist_avatar_set", specialist_id=specialist_id, path=path)
        return specialist

    async def _flush(self, operation: str) -> None:
        try:
            await self.db.flush()
        except SQLAlchemyError as e:
            logger.error("specialist_write_failed", operation=operation, error=str(e))
            raise PersistenceError(f"Failed to {operation} specialist", original_error=e) from e


def _clean(fields: dict[str, Any]) -> dict[str, Any]:
    """Keep known profile fields; blank strings become NULL, e-mail is normalised."""
    cleaned: dict[str, Any] = {}
    for key, value in fields.items():
        if key not in PROFILE_FIELDS:
            raise ValueError(f"Unknown specialist field: {key}")
        if isinstance(value, str):
            value = value.strip() or None
        if key == "email" and value is not None:
            value = normalize_email(value)
        cleaned[key] = value
    return cleaned

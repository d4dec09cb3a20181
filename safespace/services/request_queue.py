"""
Request queue: lifecycle of chat requests.

    create  → pending
    accept  → pending  ⇒ accepted   (claim-once, one conditional UPDATE)
    close   → accepted ⇒ closed     (accepting specialist only)

The claim guarantee lives in the database: accept is a single
``UPDATE ... WHERE status = 'pending' RETURNING`` statement, so of two
concurrent accepts exactly one matches the row. No read-then-write here.

Every storage round-trip is bounded by a timeout. Reads are retried once;
writes never are. db.commit() is the caller's responsibility.
"""
import asyncio
import uuid
from typing import Any, Awaitable, TypeVar

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.auth import Caller
from safespace.config import settings
from safespace.exceptions import (
    AlreadyClaimedError,
    InvalidTransitionError,
    NotRequestOwnerError,
    NotSpecialistError,
    PersistenceError,
    RequestNotFoundError,
    ValidationError,
)
from safespace.logging_config import get_logger
from safespace.models.chat_request import ChatRequest, ChatRequestStatus, utcnow

logger = get_logger(__name__)

T = TypeVar("T")

PENDING = ChatRequestStatus.PENDING.value
ACCEPTED = ChatRequestStatus.ACCEPTED.value
CLOSED = ChatRequestStatus.CLOSED.value


def parse_request_id(request_id: uuid.UUID | str) -> uuid.UUID:
    """Request ids are UUIDs; anything else cannot reference a record."""
    if isinstance(request_id, uuid.UUID):
        return request_id
    try:
        return uuid.UUID(str(request_id))
    except ValueError:
        raise RequestNotFoundError(request_id)


class RequestQueue:
    """Creates, lists and claims chat requests."""

    def __init__(
        self,
        db: AsyncSession,
        *,
        timeout: float | None = None,
        read_retries: int | None = None,
    ):
        self.db = db
        self.timeout = settings.storage_timeout_seconds if timeout is None else timeout
        self.read_retries = settings.read_retries if read_retries is None else read_retries

    # ── Writes ───────────────────────────────────────────────────────────────

    async def create(self, created_by: uuid.UUID | str, created_by_name: str | None) -> ChatRequest:
        """
        Open a new pending request for ``created_by``.
        ``created_by_name`` is stored as given; placeholder fallback happens upstream.
        """
        if not created_by:
            raise ValidationError("created_by is required")
        if not isinstance(created_by, uuid.UUID):
            try:
                created_by = uuid.UUID(str(created_by))
            except ValueError:
                raise ValidationError("created_by must be a user id", {"created_by": str(created_by)})

        request = ChatRequest(
            created_by=created_by,
            created_by_name=created_by_name or "",
            status=PENDING,
            accepted_by=None,
            created_at=utcnow(),
            closed_at=None,
        )
        self.db.add(request)
        await self._run("create", self.db.flush())

        logger.info("request_created", request_id=str(request.id), created_by=str(created_by))
        return request

    async def accept(self, caller: Caller, request_id: uuid.UUID | str) -> ChatRequest:
        """
        Claim a pending request for the calling specialist.

        Raises:
            NotSpecialistError: caller has no directory entry
            RequestNotFoundError: no such request
            AlreadyClaimedError: the request was no longer pending
        """
        if not caller.is_specialist:
            raise NotSpecialistError(caller.user_id)
        rid = parse_request_id(request_id)

        stmt = (
            update(ChatRequest)
            .where(ChatRequest.id == rid, ChatRequest.status == PENDING)
            .values(status=ACCEPTED, accepted_by=caller.specialist_id)
            .returning(ChatRequest)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        result = await self._run("accept", self.db.execute(stmt))
        request = result.scalar_one_or_none()

        if request is None:
            current = await self._current("accept", rid)
            logger.info(
                "request_accept_rejected",
                request_id=str(rid),
                specialist_id=caller.specialist_id,
                current_status=current.status,
                accepted_by=current.accepted_by,
            )
            raise AlreadyClaimedError(rid, current.status)

        logger.info("request_accepted", request_id=str(rid), specialist_id=caller.specialist_id)
        return request

    async def close(self, caller: Caller, request_id: uuid.UUID | str) -> ChatRequest:
        """Close an accepted request. Only the specialist who accepted it may close it."""
        if not caller.is_specialist:
            raise NotSpecialistError(caller.user_id)
        rid = parse_request_id(request_id)

        stmt = (
            update(ChatRequest)
            .where(
                ChatRequest.id == rid,
                ChatRequest.status == ACCEPTED,
                ChatRequest.accepted_by == caller.specialist_id,
            )
            .values(status=CLOSED, closed_at=utcnow())
            .returning(ChatRequest)
            .execution_options(synchronize_session="fetch", populate_existing=True)
        )
        result = await self._run("close", self.db.execute(stmt))
        request = result.scalar_one_or_none()

        if request is None:
            current = await self._current("close", rid)
            if current.status != ACCEPTED:
                raise InvalidTransitionError(rid, current.status, ACCEPTED)
            raise NotRequestOwnerError(rid, caller.specialist_id)

        logger.info("request_closed", request_id=str(rid), specialist_id=caller.specialist_id)
        return request

    # ── Reads ────────────────────────────────────────────────────────────────

    async def get(self, request_id: uuid.UUID | str) -> ChatRequest:
        return await self._current("get", parse_request_id(request_id))

    async def list_all(self) -> list[ChatRequest]:
        """Every request, newest first."""
        stmt = select(ChatRequest).order_by(ChatRequest.created_at.desc())
        result = await self._read("list_all", stmt)
        return list(result.scalars().all())

    async def list_accepted_by(self, specialist_id: int) -> list[ChatRequest]:
        """Requests claimed by ``specialist_id`` (accepted and closed), newest first."""
        stmt = (
            select(ChatRequest)
            .where(ChatRequest.accepted_by == specialist_id)
            .order_by(ChatRequest.created_at.desc())
        )
        result = await self._read("list_accepted_by", stmt)
        return list(result.scalars().all())

    async def count_pending(self) -> int:
        """Advisory count for badges; no transactional guarantee."""
        stmt = (
            select(func.count())
            .select_from(ChatRequest)
            .where(ChatRequest.status == PENDING)
        )
        result = await self._read("count_pending", stmt)
        return int(result.scalar_one())

    # ── Storage plumbing ─────────────────────────────────────────────────────

    async def _current(self, operation: str, rid: uuid.UUID) -> ChatRequest:
        """Fresh copy of the row from the database, bypassing stale session state."""
        stmt = (
            select(ChatRequest)
            .where(ChatRequest.id == rid)
            .execution_options(populate_existing=True)
        )
        result = await self._run(operation, self.db.execute(stmt))
        request = result.scalar_one_or_none()
        if request is None:
            raise RequestNotFoundError(rid)
        return request

    async def _read(self, operation: str, stmt: Any):
        attempt = 0
        while True:
            try:
                return await self._run(operation, self.db.execute(stmt))
            except PersistenceError:
                if attempt >= self.read_retries:
                    raise
                attempt += 1
                logger.warning("request_queue_read_retry", operation=operation, attempt=attempt)
                await self._run(f"{operation}_rollback", self.db.rollback())

    async def _run(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except asyncio.TimeoutError as e:
            logger.error("request_queue_timeout", operation=operation, timeout=self.timeout)
            raise PersistenceError(
                f"Chat request {operation} timed out after {self.timeout}s", original_error=e
            ) from e
        except SQLAlchemyError as e:
            logger.error("request_queue_storage_error", operation=operation, error=str(e))
            raise PersistenceError(f"Chat request {operation} failed", original_error=e) from e

"""
REST API for chat requests.

POST /v1/requests                open a request (any signed-in user)
GET  /v1/requests?scope=all|mine  list requests (specialists)
GET  /v1/requests/pending/count  badge count (specialists)
POST /v1/requests/{id}/accept    claim a pending request (specialists)
POST /v1/requests/{id}/close     close an accepted request (accepting specialist)
GET  /v1/requests/events         server-sent "requests:updated" events
"""
from typing import Literal

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.auth import Caller, Identity, get_caller, get_identity, require_specialist
from safespace.config import settings
from safespace.database import commit, get_db
from safespace.logging_config import get_logger
from safespace.models.chat_request import ChatRequest
from safespace.schemas.schemas import ChatRequestResponse, ErrorResponse, PendingCountResponse
from safespace.services.events import RequestEvent, RequestEventBroker
from safespace.services.request_queue import RequestQueue

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/requests", tags=["requests"])


def get_events(request: Request) -> RequestEventBroker:
    return request.app.state.events


def _announce(events: RequestEventBroker, event_type: str, chat_request: ChatRequest) -> None:
    events.publish(RequestEvent.for_request(event_type, chat_request.id, chat_request.status))


@router.post(
    "",
    response_model=ChatRequestResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_request(
    caller: Caller = Depends(get_caller),
    db: AsyncSession = Depends(get_db),
    events: RequestEventBroker = Depends(get_events),
):
    """Open a chat request on behalf of the signed-in user."""
    chat_request = await RequestQueue(db).create(caller.user_id, caller.display_name)
    await commit(db)
    _announce(events, "created", chat_request)
    return chat_request


@router.get("", response_model=list[ChatRequestResponse])
async def list_requests(
    scope: Literal["all", "mine"] = Query("all", description="all requests, or the ones I accepted"),
    caller: Caller = Depends(require_specialist),
    db: AsyncSession = Depends(get_db),
):
    queue = RequestQueue(db)
    if scope == "mine":
        return await queue.list_accepted_by(caller.specialist_id)
    return await queue.list_all()


@router.get("/pending/count", response_model=PendingCountResponse)
async def pending_count(
    caller: Caller = Depends(require_specialist),
    db: AsyncSession = Depends(get_db),
):
    return PendingCountResponse(pending=await RequestQueue(db).count_pending())


@router.get("/events")
async def request_events(
    identity: Identity = Depends(get_identity),
    events: RequestEventBroker = Depends(get_events),
):
    logger.info("request_events_subscribed", user_id=str(identity.user_id))
    return StreamingResponse(
        events.stream(settings.event_keepalive_seconds),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


@router.post(
    "/{request_id}/accept",
    response_model=ChatRequestResponse,
    responses={
        404: {"model": ErrorResponse, "description": "Request not found"},
        409: {"model": ErrorResponse, "description": "Request already claimed"},
    },
)
async def accept_request(
    request_id: str,
    caller: Caller = Depends(require_specialist),
    db: AsyncSession = Depends(get_db),
    events: RequestEventBroker = Depends(get_events),
):
    """
    Claim a pending request. Exactly one of several concurrent claims wins;
    the others get 409 and should refresh their view.
    """
    chat_request = await RequestQueue(db).accept(caller, request_id)
    await commit(db)
    _announce(events, "accepted", chat_request)
    return chat_request


@router.post(
    "/{request_id}/close",
    response_model=ChatRequestResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Accepted by another specialist"},
        404: {"model": ErrorResponse, "description": "Request not found"},
        409: {"model": ErrorResponse, "description": "Request is not accepted"},
    },
)
async def close_request(
    request_id: str,
    caller: Caller = Depends(require_specialist),
    db: AsyncSession = Depends(get_db),
    events: RequestEventBroker = Depends(get_events),
):
    chat_request = await RequestQueue(db).close(caller, request_id)
    await commit(db)
    _announce(events, "closed", chat_request)
    return chat_request

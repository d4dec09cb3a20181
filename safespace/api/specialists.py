"""
Specialist directory API.

GET   /v1/specialists       list directory entries
POST  /v1/specialists       add an entry (verified specialists)
PATCH /v1/specialists/{id}  edit an entry (verified specialists)
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.auth import Caller, Identity, get_identity, require_verified_specialist
from safespace.database import commit, get_db
from safespace.logging_config import get_logger
from safespace.schemas.schemas import (
    ErrorResponse,
    SpecialistCreate,
    SpecialistResponse,
    SpecialistUpdate,
)
from safespace.services.directory import Directory

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/specialists", tags=["specialists"])


@router.get("", response_model=list[SpecialistResponse])
async def list_specialists(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    return await Directory(db).list_all()


@router.post(
    "",
    response_model=SpecialistResponse,
    status_code=status.HTTP_201_CREATED,
    responses={403: {"model": ErrorResponse, "description": "Not a verified specialist"}},
)
async def create_specialist(
    data: SpecialistCreate,
    caller: Caller = Depends(require_verified_specialist),
    db: AsyncSession = Depends(get_db),
):
    logger.info("create_specialist_request", by=caller.specialist_id, email=data.email)
    specialist = await Directory(db).create(**data.model_dump())
    await commit(db)
    return specialist


@router.patch(
    "/{specialist_id}",
    response_model=SpecialistResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Not a verified specialist"},
        404: {"model": ErrorResponse, "description": "Specialist not found"},
    },
)
async def update_specialist(
    specialist_id: int,
    data: SpecialistUpdate,
    caller: Caller = Depends(require_verified_specialist),
    db: AsyncSession = Depends(get_db),
):
    logger.info("update_specialist_request", by=caller.specialist_id, specialist_id=specialist_id)
    fields = data.model_dump(exclude_unset=True, exclude_none=True)
    specialist = await Directory(db).update(specialist_id, **fields)
    await commit(db)
    return specialist

"""
Own-profile API.

GET  /v1/profile         who am I: identity, directory entry, avatar
PUT  /v1/profile         create or update my directory entry
POST /v1/profile/avatar  upload my avatar (private, served via signed URL)
"""

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.auth import Caller, Identity, get_caller, get_identity, require_specialist
from safespace.config import settings
from safespace.database import commit, get_db
from safespace.exceptions import SafespaceError, StorageError, ValidationError
from safespace.logging_config import get_logger
from safespace.schemas.schemas import (
    AvatarResponse,
    ProfileResponse,
    ProfileUpdate,
    SpecialistResponse,
)
from safespace.services.directory import Directory
from safespace.services.object_store import ObjectStore
from safespace.utils.avatar import email_initial, string_to_color

logger = get_logger(__name__)

router = APIRouter(prefix="/v1/profile", tags=["profile"])


def get_object_store(request: Request) -> ObjectStore:
    return request.app.state.object_store


@router.get("", response_model=ProfileResponse)
async def get_profile(
    caller: Caller = Depends(get_caller),
    store: ObjectStore = Depends(get_object_store),
):
    specialist = caller.specialist
    avatar_url = None
    if specialist is not None and specialist.avatar_path:
        avatar_url = await store.get_signed_read_url(specialist.avatar_path)

    return ProfileResponse(
        user_id=caller.user_id,
        email=caller.identity.email,
        display_name=caller.display_name,
        initial=email_initial(caller.identity.email),
        color=string_to_color(caller.identity.email),
        avatar_url=avatar_url,
        specialist=SpecialistResponse.model_validate(specialist) if specialist else None,
    )


@router.put("", response_model=SpecialistResponse)
async def update_profile(
    data: ProfileUpdate,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    if not identity.email:
        raise ValidationError("Your account does not include an e-mail address")

    specialist = await Directory(db).upsert_profile(identity.email, **data.model_dump(exclude_none=True))
    await commit(db)
    logger.info("profile_saved", user_id=str(identity.user_id), specialist_id=specialist.id)
    return specialist


@router.post("/avatar", response_model=AvatarResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    alt: str | None = Form(None),
    caller: Caller = Depends(require_specialist),
    db: AsyncSession = Depends(get_db),
    store: ObjectStore = Depends(get_object_store),
):
    if not (file.content_type or "").startswith("image/"):
        raise ValidationError("Avatar must be an image", {"content_type": file.content_type})
    if alt is not None and len(alt.strip()) > 120:
        raise ValidationError("Alt text must be at most 120 characters")

    data = await file.read()
    if not data:
        raise ValidationError("Avatar file is empty")
    if len(data) > settings.avatar_max_bytes:
        raise ValidationError(
            "Avatar file is too large",
            {"size": len(data), "max_bytes": settings.avatar_max_bytes},
        )

    path = await store.put_private_object(
        str(caller.user_id), data, filename=file.filename, content_type=file.content_type
    )
    try:
        await Directory(db).set_avatar(caller.specialist_id, path, alt)
        await commit(db)
    except SafespaceError:
        # Nothing references the new object; remove it from the bucket
        logger.warning("avatar_save_failed", specialist_id=caller.specialist_id, path=path)
        try:
            await store.delete_object(path)
        except StorageError:
            logger.error("avatar_orphaned", specialist_id=caller.specialist_id, path=path)
        raise

    return AvatarResponse(avatar_path=path, avatar_url=await store.get_signed_read_url(path))

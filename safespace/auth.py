"""
Identity boundary: turns a Supabase access token into a trusted Caller.

The token is verified once per request; every queue operation receives the
resulting Caller explicitly instead of reading ambient session state.
"""
import uuid
from dataclasses import dataclass

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from safespace.config import settings
from safespace.database import get_db
from safespace.exceptions import AuthenticationError, NotSpecialistError
from safespace.logging_config import get_logger
from safespace.models.specialist import Specialist
from safespace.services.directory import Directory, normalize_email

logger = get_logger(__name__)

bearer = HTTPBearer(auto_error=False)

JWT_ALGORITHMS = ["HS256"]
FALLBACK_DISPLAY_NAME = "User"


@dataclass(frozen=True)
class Identity:
    """Claims the identity provider vouches for."""
    user_id: uuid.UUID
    email: str | None = None
    full_name: str | None = None


@dataclass(frozen=True)
class Caller:
    """Verified identity plus its directory entry, if any."""
    identity: Identity
    specialist: Specialist | None = None

    @property
    def user_id(self) -> uuid.UUID:
        return self.identity.user_id

    @property
    def is_specialist(self) -> bool:
        return self.specialist is not None

    @property
    def specialist_id(self) -> int | None:
        return self.specialist.id if self.specialist is not None else None

    @property
    def display_name(self) -> str:
        """Name snapshot stored on new chat requests."""
        if self.specialist is not None and self.specialist.display_name:
            return self.specialist.display_name
        if self.identity.full_name and self.identity.full_name.strip():
            return self.identity.full_name.strip()
        if self.identity.email:
            return self.identity.email
        return FALLBACK_DISPLAY_NAME


def decode_access_token(token: str) -> Identity:
    """Verify a Supabase JWT and extract the identity claims."""
    if not settings.supabase_jwt_secret:
        logger.error("jwt_secret_not_configured")
        raise AuthenticationError("Authentication is not configured")

    try:
        payload = jwt.decode(
            token,
            settings.supabase_jwt_secret,
            algorithms=JWT_ALGORITHMS,
            audience=settings.supabase_jwt_audience,
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired")
    except jwt.InvalidTokenError as e:
        logger.warning("invalid_access_token", error=str(e))
        raise AuthenticationError("Could not validate credentials")

    try:
        user_id = uuid.UUID(str(payload["sub"]))
    except ValueError:
        raise AuthenticationError("Token subject is not a user id")

    metadata = payload.get("user_metadata") or {}
    email = normalize_email(payload.get("email")) or None
    full_name = metadata.get("full_name") or metadata.get("fullname")

    return Identity(user_id=user_id, email=email, full_name=full_name)


async def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationError("Missing bearer token")
    return decode_access_token(credentials.credentials)


async def resolve_caller(db: AsyncSession, identity: Identity) -> Caller:
    """Attach the caller's directory entry; unverified entries may not count."""
    specialist = await Directory(db).find_by_email(identity.email)
    if specialist is not None and settings.require_verified_specialists and not specialist.is_verified:
        specialist = None
    return Caller(identity=identity, specialist=specialist)


async def get_caller(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> Caller:
    return await resolve_caller(db, identity)


async def require_specialist(caller: Caller = Depends(get_caller)) -> Caller:
    if not caller.is_specialist:
        raise NotSpecialistError(caller.user_id)
    return caller


async def require_verified_specialist(caller: Caller = Depends(require_specialist)) -> Caller:
    if not caller.specialist.is_verified:
        raise NotSpecialistError(caller.user_id)
    return caller

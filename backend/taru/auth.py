import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Iterable, Union

import jwt
import pydantic
from fastapi import Depends, Request

from taru.config import Settings
from taru.dependencies import get_app_settings
from taru.errors import AuthenticationError, AuthorizationError
from taru.models.user import CurrentUser, Role

logger = logging.getLogger(__name__)


@dataclass
class Authorized:
    user: CurrentUser


@dataclass
class Denied:
    reason: str


AuthorizationOutcome = Union[Authorized, Denied]


def create_access_token(user: CurrentUser, settings: Settings) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        **user.model_dump(by_alias=True, exclude_none=True),
        "iat": now,
        "exp": now + timedelta(days=settings.token_ttl_days),
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str, settings: Settings) -> CurrentUser:
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError as e:
        raise AuthenticationError("Token expired") from e
    except jwt.InvalidTokenError as e:
        raise AuthenticationError("Invalid token") from e

    try:
        return CurrentUser.model_validate(claims)
    except pydantic.ValidationError as e:
        logger.warning(f"Token carried malformed claims: {str(e)}")
        raise AuthenticationError("Invalid token") from e


async def get_current_user(
    request: Request, settings: Settings = Depends(get_app_settings)
) -> CurrentUser:
    """Resolve the caller from the HTTP-only auth cookie."""
    token = request.cookies.get(settings.auth_cookie_name)
    if not token:
        raise AuthenticationError("Authorization token required")
    return decode_access_token(token, settings)


def authorize(user: CurrentUser, allowed_roles: Iterable[Role]) -> AuthorizationOutcome:
    """The single role check every protected route goes through."""
    allowed = set(allowed_roles)
    if Role(user.role) in allowed:
        return Authorized(user=user)
    names = " or ".join(sorted(role.value for role in allowed))
    return Denied(reason=f"Access denied. {names} role required")


def require_roles(*roles: Role):
    """Route dependency admitting only callers whose role is in `roles`."""

    async def dependency(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        outcome = authorize(user, roles)
        if isinstance(outcome, Denied):
            logger.info(f"Denied {user.role} user {user.user_id}: {outcome.reason}")
            raise AuthorizationError(outcome.reason)
        return outcome.user

    return dependency

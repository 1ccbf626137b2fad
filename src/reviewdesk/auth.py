"""
Actor identity.

Every request carries a bearer JWT from the identity provider. The actor is
derived from the token only; client-supplied translator ids are never trusted.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta

import jwt
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from reviewdesk.clock import utcnow
from reviewdesk.config import Settings

logger = logging.getLogger(__name__)

TRANSLATOR_ROLES = {"translator", "superadmin"}
ELEVATED_ROLES = {"superadmin"}

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Actor:
    uid: str
    display_name: str | None = None
    email: str | None = None
    role: str = "user"

    @property
    def is_elevated(self) -> bool:
        return self.role in ELEVATED_ROLES


def create_access_token(
    settings: Settings,
    uid: str,
    name: str | None = None,
    role: str = "translator",
    email: str | None = None,
    expires_in: timedelta = timedelta(hours=1),
) -> str:
    payload = {
        "sub": uid,
        "name": name,
        "email": email,
        "role": role,
        "exp": utcnow() + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> Actor:
    claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    uid = claims.get("sub")
    if not uid:
        raise jwt.InvalidTokenError("token has no subject")
    return Actor(
        uid=uid,
        display_name=claims.get("name"),
        email=claims.get("email"),
        role=claims.get("role") or "user",
    )


def get_current_actor(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> Actor:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing bearer token")
    try:
        return decode_access_token(request.app.state.settings, credentials.credentials)
    except jwt.PyJWTError as e:
        logger.info("Rejected bearer token: %s", e)
        raise HTTPException(status_code=401, detail="Invalid or expired token")


def require_translator(actor: Actor = Depends(get_current_actor)) -> Actor:
    if actor.role not in TRANSLATOR_ROLES:
        raise HTTPException(status_code=403, detail="Translator role required")
    return actor


def require_superadmin(actor: Actor = Depends(get_current_actor)) -> Actor:
    if not actor.is_elevated:
        raise HTTPException(status_code=403, detail="Superadmin role required")
    return actor

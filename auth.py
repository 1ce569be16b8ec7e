"""
Access guard: signs and verifies the auth cookie token.

The token is a HS256 JWT carrying the caller's email in ``sub``. Routes that
need an identity depend on get_identity(), which turns a missing or invalid
cookie into Unauthorized (401).
"""

import logging
import time
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Optional

from fastapi import Cookie, Request, Response
from jose import JWTError, jwt

from config import Settings
from errors import Unauthorized

logger = logging.getLogger(__name__)

TOKEN_COOKIE_NAME = "token"
JWT_ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    email: str


class AccessGuard:
    def __init__(self, secret: str, expires_hours: int = 24, algorithm: str = JWT_ALGORITHM):
        if not secret:
            raise RuntimeError("ACCESS_TOKEN_SECRET must be set")
        self.secret = secret
        self.expires_hours = expires_hours
        self.algorithm = algorithm

    @property
    def max_age(self) -> int:
        return self.expires_hours * 3600

    def issue(self, payload: Dict[str, Any]) -> str:
        """Sign ``payload`` (must carry an email) into a token valid for expires_hours."""
        now = int(time.time())
        claims = {**payload, "sub": payload["email"], "iat": now, "exp": now + self.max_age}
        return jwt.encode(claims, self.secret, algorithm=self.algorithm)

    def verify(self, token: Optional[str]) -> Identity:
        if not token:
            raise Unauthorized()
        try:
            claims = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except JWTError as exc:
            logger.info(f"Rejected token: {exc}")
            raise Unauthorized() from exc
        email = claims.get("sub")
        if not email:
            raise Unauthorized()
        return Identity(email=email)


def cookie_options(settings: Settings) -> Dict[str, Any]:
    # Cross-site cookies need SameSite=None, which browsers only accept over HTTPS
    if settings.is_production:
        return {"httponly": True, "secure": True, "samesite": "none"}
    return {"httponly": True, "secure": False, "samesite": "strict"}


def set_token_cookie(response: Response, token: str, guard: AccessGuard, settings: Settings) -> None:
    response.set_cookie(key=TOKEN_COOKIE_NAME, value=token, max_age=guard.max_age, **cookie_options(settings))


def clear_token_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(key=TOKEN_COOKIE_NAME, **cookie_options(settings))


def get_access_guard(request: Request) -> AccessGuard:
    return request.app.state.access_guard


async def get_identity(request: Request, token: Annotated[Optional[str], Cookie()] = None) -> Identity:
    """FastAPI dependency: the verified caller identity from the auth cookie."""
    return get_access_guard(request).verify(token)

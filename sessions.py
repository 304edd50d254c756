import logging
import os
import time
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

logger = logging.getLogger(__name__)

SECRET_KEY = os.getenv("SECRET_KEY", "supersecretkey")
ALGORITHM = "HS256"
MIN_SECRET_LENGTH = 6

bearer_scheme = HTTPBearer(auto_error=False)


class Role(str, Enum):
    DOCTOR = "doctor"
    PHARMACY = "pharmacy"
    LAB = "lab"
    PATIENT = "patient"

    @property
    def session_key(self) -> str:
        return f"{self.value}Session"

    @property
    def login_path(self) -> str:
        return f"/{self.value}-login"

    @property
    def portal_path(self) -> str:
        return f"/{self.value}-portal"


class InvalidCredentials(Exception):
    message = "Please enter valid credentials"


class SessionRequired(Exception):
    def __init__(self, role: Role):
        super().__init__(f"{role.value} session required")
        self.role = role


@dataclass(frozen=True)
class AuthSession:
    role: Role
    identifier: str
    timestamp: int

    def to_dict(self):
        d = asdict(self)
        d["role"] = self.role.value
        return d


def login(role: Role, identifier: Any, secret: Any, now: Optional[float] = None) -> AuthSession:
    """Admit an actor into a portal.

    There is no account lookup: any non-empty identifier with a secret of at
    least six characters is accepted. Failures never say which part was wrong.
    """
    if not isinstance(identifier, str) or not isinstance(secret, str):
        raise InvalidCredentials()
    if not identifier.strip() or len(secret) < MIN_SECRET_LENGTH:
        raise InvalidCredentials()
    ts = int((now if now is not None else time.time()) * 1000)
    logger.info("%s session opened for %s", role.value, identifier)
    return AuthSession(role=role, identifier=identifier, timestamp=ts)


def encode_session(session: AuthSession) -> str:
    # No "exp" claim: markers do not expire.
    claims = {"sub": session.identifier, "role": session.role.value, "ts": session.timestamp}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_session(token: str, role: Role) -> Optional[AuthSession]:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if payload.get("role") != role.value or not payload.get("sub"):
        return None
    return AuthSession(role=role, identifier=payload["sub"], timestamp=int(payload.get("ts", 0)))


def require_session(role: Role):
    async def session_checker(
        request: Request,
        credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    ) -> AuthSession:
        token = request.cookies.get(role.session_key)
        if not token and credentials is not None:
            token = credentials.credentials
        session = decode_session(token, role) if token else None
        if session is None:
            raise SessionRequired(role)
        return session

    return session_checker

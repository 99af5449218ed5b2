"""Principal resolution boundary.

Identity is owned elsewhere; the scheduling core only sees an opaque
``(user_id, role)`` principal. Tokens are HS256 JWTs whose ``sub`` is the
user id.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from hirescore.core.settings import get_settings

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Principal:
    user_id: int
    role: str

    @property
    def is_recruiter(self) -> bool:
        return self.role == "recruiter"


class InvalidTokenError(ValueError):
    pass


def create_access_token(user_id: int, expires_delta: Optional[timedelta] = None) -> str:
    settings = get_settings()
    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.access_token_ttl_minutes)
    expire = datetime.now(timezone.utc) + expires_delta
    return jwt.encode({"sub": str(user_id), "exp": expire}, settings.jwt_secret, algorithm=ALGORITHM)


def decode_access_token(token: str) -> int:
    """Return the user id carried by ``token``."""
    try:
        payload = jwt.decode(token, get_settings().jwt_secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise InvalidTokenError(str(exc)) from exc
    subject = payload.get("sub")
    try:
        return int(subject)
    except (TypeError, ValueError) as exc:
        raise InvalidTokenError("token subject is not a user id") from exc

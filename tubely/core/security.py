import uuid
import datetime as dt
from typing import Any
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from tubely.core.config import Settings, get_settings
from tubely.core.errors import MissingTokenError, InvalidTokenError

JWT_ISSUER = "tubely"

http_bearer = HTTPBearer(auto_error=False)

def get_bearer_token(creds: HTTPAuthorizationCredentials | None) -> str:
    if creds is None or not creds.credentials:
        raise MissingTokenError("Couldn't find JWT")
    return creds.credentials

def create_access_token(user_id: uuid.UUID, secret: str, *, alg: str = "HS256", expires_in: dt.timedelta = dt.timedelta(hours=1)) -> str:
    now = dt.datetime.now(dt.timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "iss": JWT_ISSUER,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=alg)

def validate_jwt(token: str, secret: str, *, alg: str = "HS256") -> uuid.UUID:
    """Return the user id carried in ``sub``; signature and expiry are checked by jose."""
    try:
        payload = jwt.decode(token, secret, algorithms=[alg], issuer=JWT_ISSUER)
    except JWTError as e:
        raise InvalidTokenError("Couldn't validate JWT") from e
    try:
        return uuid.UUID(str(payload.get("sub")))
    except ValueError as e:
        raise InvalidTokenError("Couldn't validate JWT") from e

async def get_current_user_id(
    creds: HTTPAuthorizationCredentials | None = Depends(http_bearer),
    settings: Settings = Depends(get_settings),
) -> uuid.UUID:
    token = get_bearer_token(creds)
    return validate_jwt(token, settings.JWT_SECRET, alg=settings.JWT_ALG)

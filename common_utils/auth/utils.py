from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, List
import jwt
from fastapi import HTTPException, status
from app.config import settings

SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_MINUTES = settings.ACCESS_TOKEN_EXPIRE_MINUTES


def create_access_token(
    user_id: str,
    user_type: str = "admin",
    permissions: Optional[List[str]] = None,
    custom_claims: Optional[Dict] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Issue a bearer token. Sign-in itself happens at the identity provider;
    this is what the dashboard session is exchanged for.
    """
    to_encode = {
        "user_id": user_id,
        "token_type": "access",
        "user_type": user_type,
        "permissions": permissions,
    }

    if custom_claims:
        to_encode.update(custom_claims)

    to_encode = {k: v for k, v in to_encode.items() if v is not None}

    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": datetime.now(timezone.utc)})

    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def verify_token(token: str) -> Dict:
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    if payload.get("token_type") != "access":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token type")
    return payload

# token_module.py: bearer tokens του εξωτερικού identity provider
import logging
import os
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from dotenv import load_dotenv
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from errors import AuthenticationRequired, AuthorizationError
from models.user import User

load_dotenv()

logger = logging.getLogger(__name__)

AUTH_JWT_SECRET = os.getenv("AUTH_JWT_SECRET") or None
AUTH_JWT_ALGORITHM = os.getenv("AUTH_JWT_ALGORITHM", "HS256")
AUTH_JWT_AUDIENCE = os.getenv("AUTH_JWT_AUDIENCE") or None

# claim -> User column
PROFILE_CLAIMS = {
    "email": "email",
    "first_name": "first_name",
    "last_name": "last_name",
    "profile_image_url": "profile_image_url",
}

if AUTH_JWT_SECRET is None:
    logger.warning("AUTH_JWT_SECRET is not set: every bearer token will be rejected")

bearer_scheme = HTTPBearer(auto_error=False)


def create_access_token(data: Dict[str, Any], expires_minutes: int = 60) -> str:
    """Mint a token the same way the identity provider does (local tooling / tests)."""
    if AUTH_JWT_SECRET is None:
        raise RuntimeError("AUTH_JWT_SECRET is not set")
    payload = dict(data)
    payload["exp"] = datetime.now(timezone.utc) + timedelta(minutes=expires_minutes)
    if AUTH_JWT_AUDIENCE and "aud" not in payload:
        payload["aud"] = AUTH_JWT_AUDIENCE
    return jwt.encode(payload, AUTH_JWT_SECRET, algorithm=AUTH_JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    if AUTH_JWT_SECRET is None:
        # χωρίς κλειδί δεν εμπιστευόμαστε κανένα token
        raise AuthenticationRequired("Authentication is not configured")
    try:
        return jwt.decode(
            token,
            AUTH_JWT_SECRET,
            algorithms=[AUTH_JWT_ALGORITHM],
            audience=AUTH_JWT_AUDIENCE,
            options={"require": ["sub", "exp"], "verify_aud": AUTH_JWT_AUDIENCE is not None},
        )
    except jwt.PyJWTError as e:
        raise AuthenticationRequired("Invalid or expired token", reason=str(e))


def upsert_user(db: Session, claims: Dict[str, Any]) -> User:
    user: Optional[User] = db.get(User, str(claims["sub"]))
    changed = False
    if user is None:
        user = User(id=str(claims["sub"]), is_admin=False)
        db.add(user)
        changed = True
        logger.info("new user from identity provider: %s", user.id)

    for claim, column in PROFILE_CLAIMS.items():
        if claim not in claims:
            continue
        value = claims[claim]
        if claim == "email" and value:
            value = str(value).strip().lower()
        if getattr(user, column) != value:
            setattr(user, column, value)
            changed = True

    if changed:
        db.commit()
        db.refresh(user)
    return user


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise AuthenticationRequired("Unauthorized")
    claims = decode_token(credentials.credentials)
    return upsert_user(db, claims)


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user

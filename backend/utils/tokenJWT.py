# utils/tokenJWT.py
from typing import Optional
from jose import jwt, JWTError
from datetime import datetime, timedelta, timezone
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import settings
from database import get_db
from models import users as models

# Authorization scheme
bearer_scheme = HTTPBearer()

# Issue a signed access token; "sub" carries the staff e-mail
def create_access_token(data: dict, expires_delta: timedelta = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

# E-mail from a valid token, None for anything expired, forged or malformed
def decode_access_token(token: str) -> Optional[str]:
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")

def user_from_token(db: Session, token: str) -> Optional[models.User]:
    email = decode_access_token(token) if token else None
    if email is None:
        return None
    return db.query(models.User).filter(models.User.email == email).first()

# Resolve the logged-in user from the bearer token.
# Every protected route receives the user through this dependency instead of
# reading session state from anywhere else.
def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    user = user_from_token(db, credentials.credentials)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

# Dependency factory for role gates, e.g. role_required("admin", "manager")
def role_required(*allowed_roles):
    unknown = set(allowed_roles) - set(models.ROLES)
    if unknown:
        raise ValueError(f"Unknown roles: {sorted(unknown)}")

    def _checker(current_user: models.User = Depends(get_current_user)):
        if allowed_roles and (current_user.role or "").lower() not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have access to this page"
            )
        return current_user
    return _checker

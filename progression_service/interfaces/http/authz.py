from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from ...config import settings
from ...domain.entities import Identity, Role

bearer = HTTPBearer(auto_error=False)


def get_identity(creds: HTTPAuthorizationCredentials | None = Depends(bearer)) -> Identity | None:
    """Identity from the bearer token, or None when no token was sent."""
    if creds is None:
        return None
    try:
        claims = jwt.decode(creds.credentials, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    sub = claims.get("sub")
    if not sub:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")
    return Identity(
        user_id=str(sub),
        role=Role.parse(claims.get("role")),
        name=claims.get("name"),
        email=claims.get("email"),
    )


def require_identity(identity: Identity | None = Depends(get_identity)) -> Identity:
    if identity is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return identity


def require_student(identity: Identity = Depends(require_identity)) -> Identity:
    # plain accounts can browse but not learn
    if identity.role == Role.USER:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="student subscription required")
    return identity

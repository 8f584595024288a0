from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from app.core.security import decode_access_token

security = HTTPBearer()


async def get_current_member_id(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> int:
    """Member id from the bearer token; identity and membership live elsewhere."""
    token = credentials.credentials

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = decode_access_token(token)
        subject = payload.get("sub")
        if subject is None or payload.get("type", "access") != "access":
            raise credentials_exception
        return int(subject)
    except (JWTError, ValueError):
        raise credentials_exception

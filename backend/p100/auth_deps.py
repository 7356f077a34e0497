from __future__ import annotations
from fastapi import Depends, HTTPException
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
import jwt
from p100.security import decode_token, ADMIN_TOKEN_TYPE

security = HTTPBearer(auto_error=False)

async def require_admin(credentials: HTTPAuthorizationCredentials | None = Depends(security)) -> str:
    if not credentials:
        raise HTTPException(status_code=401, detail="Missing access token")
    try:
        data = decode_token(credentials.credentials)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    if data.get("type") != ADMIN_TOKEN_TYPE:
        raise HTTPException(status_code=401, detail="Wrong token type")
    return data.get("sub") or "admin"

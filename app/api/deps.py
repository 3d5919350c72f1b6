from dataclasses import dataclass

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError
from app.core.security import decode_token, ROLES
from app.services.file_lock import FileLock

bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    subject: str
    role: str


def get_locks(request: Request) -> FileLock:
    return request.app.state.locks


def get_current_user(
    creds: HTTPAuthorizationCredentials | None = Depends(bearer),
) -> Principal:
    if not creds:
        raise HTTPException(status_code=401, detail="Not authenticated")
    try:
        payload = decode_token(creds.credentials)
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")
    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in ROLES:
        raise HTTPException(status_code=401, detail="Invalid token")
    return Principal(subject=str(subject), role=role)

def require_roles(*roles: str):
    def _guard(user: Principal = Depends(get_current_user)) -> Principal:
        if user.role not in roles:
            raise HTTPException(status_code=403, detail="Forbidden")
        return user
    return _guard

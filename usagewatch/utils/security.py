from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from usagewatch.utils.jwt import read_owner_id

security = HTTPBearer()


def get_current_owner(
    creds: HTTPAuthorizationCredentials = Depends(security),
) -> str:
    # Bearer token -> owner id (sub claim)
    try:
        return read_owner_id(creds.credentials)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

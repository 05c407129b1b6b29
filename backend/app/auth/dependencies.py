"""
FastAPI dependencies for authentication.
Provides get_current_user dependency that verifies Firebase JWT tokens.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.auth.firebase import verify_firebase_token

# HTTPBearer scheme for extracting Authorization header
security = HTTPBearer()

UNKNOWN_IDENTITY = "unknown"


@dataclass(frozen=True)
class CurrentUser:
    """Authenticated reviewer as seen by the API."""
    uid: str
    email: Optional[str] = None

    @property
    def identity(self) -> str:
        """Opaque identity string stamped on approvals."""
        return self.email or UNKNOWN_IDENTITY


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    FastAPI dependency that verifies Firebase JWT token and returns the caller.

    Flow:
    1. Extract Bearer token from Authorization header
    2. Verify token with Firebase Admin SDK
    3. Extract uid and email from token claims

    Raises:
        HTTPException 401: If token is missing, invalid, or expired
    """
    token = credentials.credentials

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        # Validates signature, expiration, issuer and audience
        decoded_token = verify_firebase_token(token)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    firebase_uid = decoded_token.get("uid")
    if not firebase_uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token: missing uid"
        )

    return CurrentUser(uid=firebase_uid, email=decoded_token.get("email"))

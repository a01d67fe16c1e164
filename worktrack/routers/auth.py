"""Auth router - resolves the acting user from the bearer token."""
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError

from worktrack.models.principal import Principal
from worktrack.utils.auth import verify_access_token


router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """
    Dependency to get current user ID from JWT token.

    Args:
        credentials: HTTP bearer credentials

    Returns:
        User ID from token

    Raises:
        HTTPException: If token is missing or invalid (401)
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )

    try:
        return verify_access_token(credentials.credentials)
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
        )


@router.get("/me", response_model=Principal)
async def get_current_user(user_id: str = Depends(get_current_user_id)):
    """Return the user the token was issued for."""
    return Principal(user_id=user_id)

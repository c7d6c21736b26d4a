from fastapi import Depends, HTTPException, status, Request
from fastapi.security import OAuth2PasswordBearer
from app.core.security import decode_token
from app.services.auth_service import auth_service
from typing import Dict
import logging

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")

logger = logging.getLogger(__name__)


# Extracts and validates the bearer token to retrieve the acting user
async def get_current_user(token: str = Depends(oauth2_scheme), request: Request = None) -> Dict:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if request:
        logger.debug("Raw Authorization header present: %s", "<redacted>" if request.headers.get("authorization") else None)

    payload = decode_token(token)
    if payload is None:
        logger.warning("Token validation failed")
        raise credentials_exception

    email = payload.get("sub")
    if email is None:
        logger.debug("No 'sub' field in token payload.")
        raise credentials_exception

    user = await auth_service.get_user_by_email(email)
    if user is None:
        raise credentials_exception

    return user

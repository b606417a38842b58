"""
Authentication Endpoints.

This module exposes the single sign-in endpoint used by the web client.

Endpoints Provided:
- `/login`: Verifies a user's credentials for the chosen login mode and
  returns the user profile.

Architectural Design:
- Login Modes: `email` accounts are checked against their bcrypt password
  hash. `github` accounts are accepted when a matching record exists; the
  OAuth handshake happens in the client before this call.
- Sessionless: No token is issued. The client keeps the returned profile and
  sends the user id with subsequent writes.
- Data Validation: `LoginRequest` rejects a missing email or an unknown
  login mode before the service is reached.
- Clear Responses: Failures surface through the shared exception handlers as
  401 (bad credentials) or 404 (unknown GitHub user).
"""

from fastapi import APIRouter, Depends

from core.logging_config import get_logger
from core.schemas import LoginRequest, UserRead
from services.auth_service import AuthService

from .dependencies import get_auth_service
from .responses import envelope

logger = get_logger(__name__)
router = APIRouter(tags=["Authentication"])


@router.post("/login")
async def login(request: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    """Authenticate a user and return their profile"""
    user = await auth.login(request)
    logger.info(
        f"User logged in: {user.username}",
        extra={"user_id": user.id, "login_mode": request.login_mode},
    )
    return envelope(UserRead.from_model(user).to_json(), message="Login successful")

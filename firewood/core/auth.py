# firewood/core/auth.py
import logging
import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from firewood.core.config import get_settings

logger = logging.getLogger(__name__)

# HTTP Basic scheme:
# - auto_error=False => a missing Authorization header does not raise the
#   default error, so require_admin can answer with our own 401 + realm.
basic_scheme = HTTPBasic(auto_error=False, realm="Verrington Admin")


def _unauthorized(detail: str = "Authentication required") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": 'Basic realm="Verrington Admin"'},
    )


def credentials_match(username: str, password: str) -> bool:
    """
    Compare against ADMIN_USER / ADMIN_PASS in constant time.

    Fails closed: if either value is not configured, nobody matches.
    """
    settings = get_settings()
    expected_user = settings.ADMIN_USER
    expected_pass = settings.ADMIN_PASS
    if not expected_user or not expected_pass:
        return False

    user_ok = secrets.compare_digest(username.encode("utf-8"), expected_user.encode("utf-8"))
    pass_ok = secrets.compare_digest(password.encode("utf-8"), expected_pass.encode("utf-8"))
    return user_ok and pass_ok


def require_admin(
    credentials: HTTPBasicCredentials | None = Depends(basic_scheme),
) -> str:
    """
    Enforce the shared admin credentials.

    Returns:
        The admin username (used as default author label).

    Raises:
        HTTPException(401): missing, wrong or unconfigured credentials.
    """
    settings = get_settings()
    if not settings.ADMIN_USER or not settings.ADMIN_PASS:
        logger.warning("Admin request denied: ADMIN_USER/ADMIN_PASS not configured")
        raise _unauthorized()

    if credentials is None:
        raise _unauthorized()

    if not credentials_match(credentials.username, credentials.password):
        raise _unauthorized("Invalid credentials")

    return credentials.username

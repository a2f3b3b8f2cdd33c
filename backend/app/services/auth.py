# app/services/auth.py
"""
Dashboard access gate for the stats and download routes.

The routes only depend on `require_dashboard_auth`; swap it through
app.dependency_overrides to plug in another credential check.
"""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from app import config
from app.util.logging import logger

REALM = "Stats Dashboard"

_basic = HTTPBasic(realm=REALM, auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": f'Basic realm="{REALM}"'},
    )


def check_credentials(username: str, password: str) -> bool:
    """Compare against the configured dashboard credentials in constant time."""
    expected_user = config.STATS_USERNAME
    expected_pass = config.STATS_PASSWORD

    if not expected_user or not expected_pass:
        logger.error("Dashboard authentication attempted but no credentials configured")
        return False

    user_ok = secrets.compare_digest(username.encode("utf-8"), expected_user.encode("utf-8"))
    pass_ok = secrets.compare_digest(password.encode("utf-8"), expected_pass.encode("utf-8"))
    return user_ok and pass_ok


def require_dashboard_auth(credentials: Optional[HTTPBasicCredentials] = Depends(_basic)) -> str:
    if credentials is None:
        raise _unauthorized("Authentication required")
    if not check_credentials(credentials.username, credentials.password):
        logger.warning("Dashboard authentication failed")
        raise _unauthorized("Authentication failed")
    return credentials.username

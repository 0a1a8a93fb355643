"""
TED Talk API - Security Layer

HTTP Basic authentication with two roles:

    ADMIN - may import CSV data (and everything USER may do)
    USER  - read-only access to talks and analytics

Accounts come from settings (ADMIN_USERNAME/ADMIN_PASSWORD and
USER_USERNAME/USER_PASSWORD). Credentials are compared in constant time.
"""

import secrets
from dataclasses import dataclass, field
from typing import Callable, Literal

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from loguru import logger

from .config import get_settings

Role = Literal["ADMIN", "USER"]

ROLE_ADMIN: Role = "ADMIN"
ROLE_USER: Role = "USER"

# auto_error=False so missing credentials go through our own 401 below
_basic = HTTPBasic(auto_error=False, realm="tedtalk-api")


@dataclass(frozen=True)
class AuthContext:
    """
    Authentication context for the current request.

    Attributes:
        subject: The authenticated username
        roles: Roles granted to the subject
        via: How the user was authenticated
    """

    subject: str
    roles: frozenset[str] = field(default_factory=frozenset)
    via: Literal["basic"] = "basic"

    def has_role(self, role: str) -> bool:
        return role in self.roles


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": 'Basic realm="tedtalk-api"'},
    )


def _account_table() -> list[tuple[str, str, frozenset[str]]]:
    """Configured accounts as (username, password, roles)."""
    settings = get_settings()
    return [
        (settings.ADMIN_USERNAME, settings.ADMIN_PASSWORD, frozenset({ROLE_ADMIN, ROLE_USER})),
        (settings.USER_USERNAME, settings.USER_PASSWORD, frozenset({ROLE_USER})),
    ]


def authenticate(username: str, password: str) -> AuthContext | None:
    """
    Check a username/password pair against the configured accounts.

    Every account is compared so the timing does not reveal which usernames
    exist.
    """
    matched: AuthContext | None = None
    for account_user, account_password, roles in _account_table():
        user_ok = secrets.compare_digest(username.encode("utf-8"), account_user.encode("utf-8"))
        password_ok = secrets.compare_digest(
            password.encode("utf-8"), account_password.encode("utf-8")
        )
        if user_ok and password_ok and matched is None:
            matched = AuthContext(subject=account_user, roles=roles)
    return matched


async def get_current_user(
    credentials: HTTPBasicCredentials | None = Depends(_basic),
) -> AuthContext:
    """
    FastAPI dependency for authenticating requests via HTTP Basic.

    Raises:
        HTTPException 401: If credentials are missing or invalid

    Returns:
        AuthContext with authenticated user info
    """
    if credentials is None:
        raise _unauthorized("Authentication required")

    auth = authenticate(credentials.username, credentials.password)
    if auth is None:
        logger.warning(f"Invalid credentials attempted: username={credentials.username}")
        raise _unauthorized("Invalid username or password")

    logger.debug(f"Authenticated via basic auth: subject={auth.subject}")
    return auth


def require_role(role: Role) -> Callable[..., AuthContext]:
    """
    Dependency factory requiring an authenticated user with ``role``.

    Usage:
        @router.post("/import")
        async def import_csv(auth: AuthContext = Depends(require_role("ADMIN"))):
            ...
    """

    async def _dependency(auth: AuthContext = Depends(get_current_user)) -> AuthContext:
        if not auth.has_role(role):
            logger.warning(f"Forbidden: subject={auth.subject} lacks role {role}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role} role required",
            )
        return auth

    return _dependency

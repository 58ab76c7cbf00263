# ============================================================================
# FILE: autospa/api/dependencies.py
# Auth, permission and app-state dependencies
# ============================================================================
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Callable, Optional
from datetime import datetime, timedelta, timezone
from jose import JWTError, jwt
from uuid import UUID
import logging

from autospa.config.database import get_db
from autospa.config.settings import settings
from autospa.core.cache import TTLCache
from autospa.core.events import EventDispatcher
from autospa.core.exceptions import PermissionDeniedError
from autospa.models.employee import Employee
from autospa.services.auth.permission_service import PermissionService

logger = logging.getLogger(__name__)

# JWT security for staff / POS terminals
jwt_security = HTTPBearer(
    scheme_name="JWT Bearer Token",
    description="Enter your JWT access token"
)


# ============================================================================
# JWT Token Functions
# ============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Create a JWT access token.

    Args:
        data: Dictionary with claims (should include 'sub' with the employee id)
        expires_delta: Optional custom expiration time
    """
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    )
    to_encode.update({
        "exp": expire,
        "iat": datetime.now(timezone.utc),
        "type": "access"
    })

    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str) -> dict:
    """Decode an access token or raise 401."""
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET_KEY,
            algorithms=[settings.JWT_ALGORITHM]
        )
    except JWTError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Could not validate credentials: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return payload


# ============================================================================
# Authentication Dependencies
# ============================================================================

async def get_current_employee(
        credentials: HTTPAuthorizationCredentials = Depends(jwt_security),
        db: Session = Depends(get_db)
) -> Employee:
    """Employee named by the token's `sub` claim"""
    payload = verify_access_token(credentials.credentials)

    try:
        employee_id = UUID(str(payload.get("sub")))
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid employee ID in token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if employee is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Employee not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if employee.status != "active":
        raise PermissionDeniedError("Inactive employee account")

    return employee


def require_permission(permission_key: str) -> Callable:
    """
    Dependency factory:

        @router.patch("/{id}")
        async def update(employee: Employee = Depends(require_permission("appointments.manage"))):
    """

    async def checker(employee: Employee = Depends(get_current_employee)) -> Employee:
        if not PermissionService.has_permission(employee, permission_key):
            logger.warning(f"Employee {employee.id} ({employee.role}) denied {permission_key}")
            raise PermissionDeniedError(f"Missing permission: {permission_key}")
        return employee

    return checker


# ============================================================================
# App-state Dependencies
# ============================================================================

def get_settings_cache(request: Request) -> TTLCache:
    return request.app.state.settings_cache


def get_event_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.event_dispatcher


def get_now() -> datetime:
    """Current time; overridden in tests"""
    return datetime.now(timezone.utc)

"""
FastAPI dependencies for the VA Dashboard API.

Tenant access mirrors the row-level policies of the hosted schema: a user
may read and write a tenant's rows only through a ``tenant_users``
membership, and every scoped lookup is filtered by ``tenant_id``.
"""

from datetime import datetime, timedelta
from typing import Optional, Type, TypeVar
from uuid import UUID
from fastapi import Depends, Header, HTTPException, Path, status, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jose import JWTError, jwt
import hmac

from config.database import get_db
from config.logging import get_logger, bind_request_context
from config.settings import settings
from vadash.models.user import User
from vadash.models.tenant import Tenant, TenantUser

logger = get_logger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)

ModelT = TypeVar("ModelT")


def create_access_token(user: User, expires_delta: Optional[timedelta] = None) -> str:
    """
    Issue a signed JWT for a user.

    Args:
        user: Authenticated user
        expires_delta: Token lifetime (default from settings)

    Returns:
        str: Encoded token
    """
    expire = datetime.utcnow() + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    payload = {"sub": str(user.id), "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def get_current_user(
    db: Session = Depends(get_db),
    token: Optional[HTTPAuthorizationCredentials] = Security(security)
) -> User:
    """
    Get the current authenticated user from JWT token.

    Raises:
        HTTPException: 401 if token is missing, invalid or the user is gone
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if token is None:
        raise credentials_exception

    try:
        payload = jwt.decode(
            token.credentials,
            settings.secret_key,
            algorithms=[settings.algorithm]
        )
        user_id = UUID(payload.get("sub") or "")
    except (JWTError, ValueError):
        raise credentials_exception

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise credentials_exception

    bind_request_context(user_id=user.id)
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user)
) -> User:
    if not current_user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive user"
        )

    return current_user


def get_tenant_membership(
    tenant_id: UUID = Path(...),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
) -> TenantUser:
    """
    Resolve the current user's membership in the tenant named by the path.

    Raises:
        HTTPException: 404 if the tenant does not exist, 403 if the user is
            not a member
    """
    tenant = db.query(Tenant).filter(Tenant.id == tenant_id).first()
    if not tenant:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found"
        )

    membership = db.query(TenantUser).filter(
        TenantUser.tenant_id == tenant_id,
        TenantUser.user_id == current_user.id
    ).first()
    if not membership:
        logger.warning("Tenant access denied", tenant_id=str(tenant_id))
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden"
        )

    bind_request_context(tenant_id=tenant_id, role=membership.role.value)
    return membership


def get_scoped_or_404(
    db: Session,
    model: Type[ModelT],
    tenant_id: UUID,
    object_id: UUID,
    label: str
) -> ModelT:
    """Fetch a tenant-scoped row by id; rows of other tenants are not found."""
    obj = db.query(model).filter(
        model.id == object_id,
        model.tenant_id == tenant_id
    ).first()
    if not obj:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{label} not found"
        )
    return obj


def _check_shared_secret(expected: Optional[str], got: Optional[str], name: str) -> None:
    if not expected:
        # unset secret disables the endpoint
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Missing {name}."
        )
    if not got or not hmac.compare_digest(got, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized"
        )


def require_admin_token(x_admin_token: Optional[str] = Header(None)) -> None:
    """Guard for operator automation endpoints (``x-admin-token`` header)."""
    _check_shared_secret(settings.dashboard_admin_token, x_admin_token, "DASHBOARD_ADMIN_TOKEN")


def require_intake_token(x_intake_token: Optional[str] = Header(None)) -> None:
    """Guard for the intake form webhook (``x-intake-token`` header)."""
    _check_shared_secret(settings.intake_shared_secret, x_intake_token, "INTAKE_SHARED_SECRET")


def validate_pagination(
    skip: int = 0,
    limit: int = 100
) -> tuple[int, int]:
    """
    Validate pagination parameters.

    Raises:
        HTTPException: If parameters are invalid
    """
    if skip < 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Skip parameter must be non-negative"
        )

    if limit <= 0 or limit > 1000:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Limit parameter must be between 1 and 1000"
        )

    return skip, limit

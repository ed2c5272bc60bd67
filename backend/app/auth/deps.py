"""FastAPI dependencies for authentication and authorization.

Dependencies:
  get_current_user     → decode JWT, load user from DB, return User
  require_area(...)    → restrict to users of specific areas
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.jwt import decode_token
from app.database import get_db
from app.middleware.exceptions import AuthorizationError
from app.models.enums import Area
from app.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login")


# ── Core user dependency ────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode the JWT, load the user, and return it.

    The area is always read from the database row, not the token claim,
    so an area change takes effect on the next request.
    """
    payload = decode_token(token)
    user_id: str | None = payload.get("sub")
    if not user_id or payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )
    return user


# ── Area-based access control ───────────────────────────────

def require_area(*areas: Area):
    """Dependency factory: restrict to users of one or more areas.

    Usage:
        @router.delete("/{reposition_id}")
        async def delete(user: User = Depends(require_area(Area.ADMIN, Area.ENVIOS))):
            ...
    """
    allowed = {a.value for a in areas}

    async def _check(user: User = Depends(get_current_user)) -> User:
        if user.area not in allowed:
            raise AuthorizationError(
                f"Requires area: {', '.join(sorted(allowed))}"
            )
        return user

    return _check

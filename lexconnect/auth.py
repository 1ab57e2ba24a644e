import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import JWT_ALGORITHM, JWT_AUDIENCE, JWT_EXPIRES_MINUTES, JWT_ISSUER, JWT_SECRET
from .models import UserRole

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Verified caller identity taken from the bearer token"""

    user_id: str
    role: UserRole
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_client(self) -> bool:
        return self.role == UserRole.CLIENT

    @property
    def is_lawyer(self) -> bool:
        return self.role == UserRole.LAWYER


def create_access_token(
    user_id: str,
    email: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
    **extra_claims: Any,
) -> str:
    """
    Create a JWT carrying the LexConnect principal claims

    Args:
        user_id: Subject user id
        email: User email
        role: cliente, abogado or administrador
        expires_delta: Token lifetime (default JWT_EXPIRES_MINUTES)
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=JWT_EXPIRES_MINUTES))
    to_encode = {
        "userId": user_id,
        "email": email,
        "role": role,
        "iss": JWT_ISSUER,
        "aud": JWT_AUDIENCE,
        "exp": expire,
        **extra_claims,
    }
    return jose_jwt.encode(to_encode, JWT_SECRET, algorithm=JWT_ALGORITHM)


def verify_access_token(token: str) -> Optional[dict[str, Any]]:
    """
    Verify and decode a JWT

    Returns:
        Decoded payload if valid, None if invalid or expired
    """
    try:
        return jose_jwt.decode(
            token,
            JWT_SECRET,
            algorithms=[JWT_ALGORITHM],
            audience=JWT_AUDIENCE,
            issuer=JWT_ISSUER,
        )
    except JWTError as e:
        logger.warning(f"JWT verification failed: {e}")
        return None


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """Get the calling principal from the Authorization bearer token"""
    if not credentials:
        logger.warning("❌ No credentials provided")
        raise HTTPException(
            status_code=401,
            detail="Token de autorización requerido",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=401,
            detail="Token inválido o expirado",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("userId")
    role = payload.get("role")
    if not user_id or role not in {r.value for r in UserRole}:
        logger.error(f"❌ Token missing required claims. Available claims: {list(payload.keys())}")
        raise HTTPException(status_code=401, detail="Token con datos incompletos")

    logger.debug(f"✅ User authenticated: {payload.get('email')} ({role})")
    return Principal(user_id=user_id, role=UserRole(role), email=payload.get("email", ""))


def require_roles(*roles: UserRole):
    """Dependency factory restricting an endpoint to the given roles"""

    async def dependency(principal: Principal = Depends(get_current_user)) -> Principal:
        if principal.role not in roles:
            logger.warning(
                f"⚠️ {principal.email} ({principal.role.value}) denied; requires {[r.value for r in roles]}"
            )
            raise HTTPException(
                status_code=403,
                detail="Rol de usuario no autorizado para esta acción",
            )
        return principal

    return dependency

# logistics_backend/core/auth/service.py
import logging
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from logistics_backend.config.settings import settings
from logistics_backend.shared.utils.dates import utcnow

logger = logging.getLogger(__name__)

# Password context
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def _bcrypt_safe(password: str) -> str:
    # bcrypt only looks at the first 72 bytes
    return password.encode("utf-8")[:72].decode("utf-8", errors="ignore")


class AuthService:
    """Password hashing and JWT issuing"""

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        try:
            return pwd_context.verify(_bcrypt_safe(plain_password), hashed_password)
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

    @staticmethod
    def get_password_hash(password: str) -> str:
        return pwd_context.hash(_bcrypt_safe(password))

    @staticmethod
    def create_access_token(
        principal_id: int,
        principal_type: str,
        session_id: Optional[str] = None,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Token carrying ``sub`` (principal id), ``principal_type`` and, for admins, ``sid``"""
        expire = utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
        to_encode = {
            "sub": str(principal_id),
            "principal_type": principal_type,
            "exp": expire,
        }
        if session_id:
            to_encode["sid"] = session_id

        return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)

    @staticmethod
    def verify_token(token: str) -> Optional[dict]:
        try:
            return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
        except JWTError:
            return None

"""
Password Hashing for the Sapien API.

User passwords are stored only as bcrypt hashes. Login compares the submitted
password against the stored hash; plaintext passwords are never persisted or
compared directly.

Key Components:
- `PasswordManager`: bcrypt hashing and verification.
"""

import bcrypt

from core.logging_config import get_logger

logger = get_logger(__name__)

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordManager:
    """Password hashing and verification"""

    @staticmethod
    def _encode(password: str) -> bytes:
        return password.encode("utf-8")[:BCRYPT_MAX_BYTES]

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash password using bcrypt"""
        salt = bcrypt.gensalt()
        hashed = bcrypt.hashpw(PasswordManager._encode(password), salt)
        return hashed.decode("utf-8")

    @staticmethod
    def verify_password(password: str, hashed: str) -> bool:
        """Verify password against hash"""
        try:
            return bcrypt.checkpw(PasswordManager._encode(password), hashed.encode("utf-8"))
        except ValueError as e:
            logger.error(f"Password verification error: {e}")
            return False

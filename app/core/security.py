import secrets
import string

from passlib.context import CryptContext


# Portal users only; admin authentication lives outside this service
pwd_context = CryptContext(
    schemes=["bcrypt"],
    default="bcrypt",
    deprecated="auto",
    bcrypt__rounds=12,
)

TEMP_PASSWORD_ALPHABET = string.ascii_letters + string.digits


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a plain password against a bcrypt hash."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def generate_temporary_password(length: int = 12) -> str:
    """
    Generate a random temporary password for a new seller portal login.

    The seller is expected to change it on first login.
    """
    return "".join(secrets.choice(TEMP_PASSWORD_ALPHABET) for _ in range(length))

"""Password hashing with passlib's bcrypt scheme."""

from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Check a password against its hash; malformed hashes never match."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def normalize_security_answer(answer: str) -> str:
    """Security answers compare trimmed and case-insensitively."""
    return (answer or "").strip().lower()

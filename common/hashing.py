import bcrypt

from settings.config import get_settings


def hash_password(plain_password: str) -> str:
    """
    Hash a plaintext password using bcrypt with a per-password salt.
    """
    if not isinstance(plain_password, str):
        raise TypeError("Password must be a string")
    salt = bcrypt.gensalt(rounds=get_settings().BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """
    Verify a plaintext password against a bcrypt hash. Malformed hashes never match.
    """
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False

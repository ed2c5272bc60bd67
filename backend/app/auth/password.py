"""Password hashing (passlib)."""

from passlib.hash import sha256_crypt


def hash_password(password: str) -> str:
    if not password or not password.strip():
        raise ValueError("Password must not be empty")
    return sha256_crypt.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    if not plain or not hashed:
        return False
    return sha256_crypt.verify(plain, hashed)

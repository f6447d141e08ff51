import os
from passlib.context import CryptContext

# tests lower this; 12 in production
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=BCRYPT_ROUNDS)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def _too_long(password: str) -> bool:
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def hash_password(password: str) -> str:
    if _too_long(password):
        raise ValueError(f"Password is too long (max {MAX_PASSWORD_BYTES} bytes)")
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    # nothing this long was ever hashed
    if _too_long(plain):
        return False
    return pwd_context.verify(plain, hashed)

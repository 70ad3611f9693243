"""
Password hashing with scrypt.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string

SALT_LENGTH = 32
KEY_LENGTH = 64

# Default CPU/memory cost and block size, increased parallelization.
SCRYPT_N = 16384
SCRYPT_R = 8
SCRYPT_P = 4
SCRYPT_MAXMEM = 64 * 1024 * 1024

PASSWORD_CHARACTERS = string.ascii_letters + string.digits


def generate_salt() -> bytes:
    return secrets.token_bytes(SALT_LENGTH)


def hash_password(password: str, salt: bytes) -> bytes:
    return hashlib.scrypt(
        password.encode("utf-8"),
        salt=salt,
        n=SCRYPT_N,
        r=SCRYPT_R,
        p=SCRYPT_P,
        maxmem=SCRYPT_MAXMEM,
        dklen=KEY_LENGTH,
    )


def verify_password(password: str, salt: bytes, expected: bytes) -> bool:
    return hmac.compare_digest(hash_password(password, salt), bytes(expected))


def generate_password(length: int = 32) -> str:
    return "".join(secrets.choice(PASSWORD_CHARACTERS) for _ in range(length))

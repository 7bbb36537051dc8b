"""Symmetric encryption for provider tokens stored in the database"""

import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet

from ..config import SECRET_KEY


def get_cipher() -> Fernet:
    # Fernet needs 32 url-safe base64 bytes, derived from SECRET_KEY
    key = base64.urlsafe_b64encode(hashlib.sha256(SECRET_KEY.encode()).digest())
    return Fernet(key)


def encrypt_token(value: str) -> str:
    return get_cipher().encrypt(value.encode()).decode()


def decrypt_token(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    return get_cipher().decrypt(value.encode()).decode()

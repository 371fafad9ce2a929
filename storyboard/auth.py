import hashlib
import hmac
import secrets


def digest(secret: str, salt: str) -> str:
    """SHA-256 hex digest of ``secret || salt``."""
    return hashlib.sha256((secret + salt).encode('utf-8')).hexdigest()


def digests_match(a: str, b: str) -> bool:
    # constant time
    return hmac.compare_digest(a.encode('utf-8'), b.encode('utf-8'))


def new_salt() -> str:
    return secrets.token_hex(16)


def generate_session_token() -> str:
    # 384-bit random token, URL-safe
    return secrets.token_urlsafe(48)


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()

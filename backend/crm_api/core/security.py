from datetime import datetime, timedelta, timezone

import jwt
from passlib.context import CryptContext

from crm_api.core.config import settings


def _bcrypt_safe(p: str) -> str:
    p = str(p)
    b = p.encode("utf-8")
    if len(b) > 72:
        p = b[:72].decode("utf-8", errors="ignore")
    return p


class PasswordHasher:
    def __init__(self, rounds: int | None = None):
        self.ctx = CryptContext(
            schemes=["bcrypt"],
            deprecated="auto",
            bcrypt__rounds=rounds or settings.bcrypt_rounds,
        )

    def hash(self, p: str) -> str:
        if p is None:
            raise ValueError("password is required")
        return self.ctx.hash(_bcrypt_safe(p))

    def verify(self, p: str, hashed: str) -> bool:
        if p is None or hashed is None:
            return False
        return self.ctx.verify(_bcrypt_safe(p), hashed)


class TokenIssuer:
    def __init__(
        self,
        secret: str | None = None,
        algorithm: str | None = None,
        expires_min: int | None = None,
    ):
        self.secret = secret or settings.jwt_secret
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expires_min = expires_min or settings.jwt_expires_min

    def create_access_token(self, sub: str, role: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": sub,
            "role": role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(minutes=self.expires_min)).timestamp()),
        }
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict:
        return jwt.decode(token, self.secret, algorithms=[self.algorithm])

from __future__ import annotations

import base64
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import hashlib
import hmac
import json
from typing import Any
from uuid import uuid4


def _urlsafe_b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _urlsafe_b64decode(raw: str) -> bytes:
    padding = "=" * ((4 - len(raw) % 4) % 4)
    return base64.urlsafe_b64decode((raw + padding).encode("ascii"))


@dataclass(frozen=True)
class AuthTokenPayload:
    sub: str
    role: str
    exp: int
    iat: int
    jti: str

    def to_dict(self) -> dict[str, Any]:
        return {"sub": self.sub, "role": self.role, "exp": self.exp, "iat": self.iat, "jti": self.jti}


class JWTManager:
    """HS256 bearer tokens shared between the auth provider and GigHub services."""

    def __init__(self, secret: str, access_minutes: int = 60) -> None:
        if not secret:
            raise ValueError("JWT secret cannot be empty")
        self._secret = secret.encode("utf-8")
        self._access_minutes = access_minutes

    def issue_access_token(self, subject: str, role: str, jti: str | None = None) -> str:
        now = datetime.now(timezone.utc)
        payload = AuthTokenPayload(
            sub=subject,
            role=role,
            iat=int(now.timestamp()),
            exp=int((now + timedelta(minutes=self._access_minutes)).timestamp()),
            jti=jti or str(uuid4()),
        )
        return self._encode(payload.to_dict())

    def decode(self, token: str) -> AuthTokenPayload:
        parts = token.split(".")
        if len(parts) != 3:
            raise ValueError("malformed token")
        header_raw, payload_raw, sig_raw = parts
        if not hmac.compare_digest(self._sign(header_raw, payload_raw), sig_raw):
            raise ValueError("invalid token signature")
        try:
            payload_obj = json.loads(_urlsafe_b64decode(payload_raw))
        except (ValueError, UnicodeDecodeError) as exc:
            raise ValueError("malformed token payload") from exc
        exp = int(payload_obj.get("exp", 0))
        if exp <= int(datetime.now(timezone.utc).timestamp()):
            raise ValueError("token expired")
        subject = str(payload_obj.get("sub", ""))
        if not subject:
            raise ValueError("token has no subject")
        return AuthTokenPayload(
            sub=subject,
            role=str(payload_obj.get("role", "")),
            exp=exp,
            iat=int(payload_obj.get("iat", 0)),
            jti=str(payload_obj.get("jti", "")),
        )

    def _encode(self, payload: dict[str, Any]) -> str:
        header_raw = _urlsafe_b64encode(json.dumps({"alg": "HS256", "typ": "JWT"}, separators=(",", ":")).encode("utf-8"))
        payload_raw = _urlsafe_b64encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
        return f"{header_raw}.{payload_raw}.{self._sign(header_raw, payload_raw)}"

    def _sign(self, header_raw: str, payload_raw: str) -> str:
        signed = f"{header_raw}.{payload_raw}".encode("ascii")
        return _urlsafe_b64encode(hmac.new(self._secret, signed, hashlib.sha256).digest())

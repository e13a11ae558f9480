from __future__ import annotations

from dataclasses import dataclass

from fastapi import Header, Request

from shared.security import JWTManager, Role, ensure_roles

from dispatch_service.errors import ApiError, forbidden


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    role: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def decode_bearer(jwt: JWTManager, authorization: str | None) -> AuthContext:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise ApiError("UNAUTHORIZED", "missing bearer token", 401)
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token)
    except ValueError as exc:
        raise ApiError("INVALID_TOKEN", str(exc), 401) from exc
    return AuthContext(user_id=payload.sub, role=payload.role)


async def require_auth(request: Request, authorization: str | None = Header(default=None)) -> AuthContext:
    return decode_bearer(request.app.state.jwt, authorization)


def require_roles(auth: AuthContext, allowed: set[Role]) -> None:
    if not ensure_roles(auth.role, allowed):
        raise forbidden("insufficient role")


def require_self(auth: AuthContext, user_id: str) -> None:
    if auth.user_id != user_id:
        raise forbidden("not allowed for another account")


def require_self_or_admin(auth: AuthContext, user_id: str) -> None:
    if not auth.is_admin and auth.user_id != user_id:
        raise forbidden("not allowed for another account")

from shared.security.jwt_utils import AuthTokenPayload, JWTManager
from shared.security.rbac import Role, ensure_roles

__all__ = [
    "AuthTokenPayload",
    "JWTManager",
    "Role",
    "ensure_roles",
]

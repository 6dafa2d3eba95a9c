from .context import AuthContextV1, Permission, get_auth_context, require_permission

__all__ = ["AuthContextV1", "Permission", "get_auth_context", "require_permission"]

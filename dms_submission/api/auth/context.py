"""
Auth Context

Bearer-token validation and the capability check every route performs
before touching the submission service.

A permission is written resourceType/resourceLocation/ACTION, e.g.
"dms-submission/submit/WRITE". A location of "*" grants every location.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

import jwt
from fastapi import Header, HTTPException, Request
from pydantic import BaseModel, ConfigDict

from dms_submission.config import config

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "dms-submission"


@dataclass(frozen=True)
class Permission:
    """A (resourceType, resourceLocation, action) capability."""
    resource_type: str
    resource_location: str
    action: Literal["READ", "WRITE"]

    @classmethod
    def parse(cls, value: str) -> Optional["Permission"]:
        parts = value.strip().split("/")
        if len(parts) != 3 or not all(parts):
            return None
        action = parts[2].upper()
        if action not in ("READ", "WRITE"):
            return None
        return cls(parts[0], parts[1], action)

    def grants(self, required: "Permission") -> bool:
        return (
            self.resource_type == required.resource_type
            and self.resource_location in ("*", required.resource_location)
            and self.action == required.action
        )


class AuthContextV1(BaseModel):
    model_config = ConfigDict(extra="forbid")

    principal: str
    permissions: List[str] = []
    issuer: Optional[str] = None
    issued_at: Optional[int] = None
    expires_at: Optional[int] = None
    auth_type: Literal["jwt", "header"]

    def has_permission(self, required: Permission) -> bool:
        for raw in self.permissions:
            granted = Permission.parse(raw)
            if granted is not None and granted.grants(required):
                return True
        return False


def _permissions_claim(value: Any) -> List[str]:
    if isinstance(value, str):
        return [p for p in value.split(",") if p.strip()]
    if isinstance(value, list):
        return [str(p) for p in value]
    return []


def get_auth_context(
    request: Request,
    authorization: Optional[str] = Header(default=None),
    x_principal: Optional[str] = Header(default=None, alias="X-Principal"),
    x_permissions: Optional[str] = Header(default=None, alias="X-Permissions"),
) -> AuthContextV1:
    """Extract and validate the authentication context from JWT or dev fallback."""
    # 1. JWT
    if authorization and authorization.startswith("Bearer "):
        token = authorization[len("Bearer "):]

        if not config.auth.jwt_secret:
            logger.error("AUTH_JWT_SECRET is not configured.")
            raise HTTPException(status_code=500, detail="Configuration error")

        try:
            claims: Dict[str, Any] = jwt.decode(
                token,
                key=config.auth.jwt_secret,
                algorithms=["HS256"],
                issuer=config.auth.jwt_issuer,
                audience=config.auth.jwt_audience,
                options={
                    "verify_signature": True,
                    "verify_exp": True,
                    "verify_iss": bool(config.auth.jwt_issuer),
                    "verify_aud": bool(config.auth.jwt_audience),
                },
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Expired JWT token.")
            raise HTTPException(status_code=401, detail="Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid JWT token: {e}")
            raise HTTPException(status_code=401, detail="Invalid token")

        principal = claims.get("sub")
        if not principal:
            raise HTTPException(status_code=401, detail="JWT missing subject (sub)")

        return AuthContextV1(
            principal=principal,
            permissions=_permissions_claim(claims.get("permissions")),
            issuer=claims.get("iss"),
            issued_at=claims.get("iat"),
            expires_at=claims.get("exp"),
            auth_type="jwt",
        )

    # 2. Dev-only header fallback
    if not authorization and config.auth.allow_insecure_headers and config.auth.env == "dev":
        if not x_principal or not x_principal.strip():
            raise HTTPException(status_code=401, detail="Missing authentication")
        return AuthContextV1(
            principal=x_principal.strip(),
            permissions=_permissions_claim(x_permissions or ""),
            auth_type="header",
        )

    # 3. Fail closed
    raise HTTPException(status_code=401, detail="Missing or invalid authentication")


def require_permission(
    context: AuthContextV1,
    resource_location: str,
    action: Literal["READ", "WRITE"],
) -> None:
    """403 unless the caller holds (dms-submission, resource_location, action)."""
    required = Permission(RESOURCE_TYPE, resource_location, action)
    if not context.has_permission(required):
        logger.warning(
            f"Forbidden: {context.principal} lacks "
            f"{required.resource_type}/{required.resource_location}/{required.action}"
        )
        raise HTTPException(status_code=403, detail="Forbidden")

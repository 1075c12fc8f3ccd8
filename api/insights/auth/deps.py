"""
Organization access checks for the reporting routes.

Callers authenticate with a bearer JWT whose claims carry ``org_roles``
(organization slug -> role) and ``is_system_admin``. Memberships missing from
the token are looked up in ``organization_members``. ``X-Admin-Token`` equal
to ``ADMIN_TOKEN`` acts as a system admin for operators and local tooling.
"""

import hmac
import logging
import uuid
from typing import Any

from fastapi import Depends, Header, HTTPException

from .. import config, reporting_repo
from ..database import get_db
from .security import decode_access_token

logger = logging.getLogger(__name__)

ADMIN_ROLES = {"owner", "admin"}


def _log_auth_failure(reason: str, trace_id: str, slug: str | None = None, user_id: str | None = None) -> None:
    log_data = {"trace_id": trace_id, "reason": reason, "org": slug, "user_id": user_id}
    logger.warning(f"[AUTH_FAILURE] {log_data}")


def _unauthorized(reason: str, trace_id: str, status_code: int = 401, message: str = "unauthorized") -> HTTPException:
    detail: dict[str, Any] = {"message": message, "trace_id": trace_id}
    if config.DEV_MODE:
        detail["reason"] = reason
    return HTTPException(status_code=status_code, detail=detail)


def _extract_bearer(authorization: str | None) -> str | None:
    if not authorization:
        return None
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        return None
    return parts[1].strip()


def get_current_principal(
    authorization: str | None = Header(default=None, alias="Authorization"),
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
) -> dict[str, Any]:
    trace_id = str(uuid.uuid4())
    if x_admin_token and config.ADMIN_TOKEN and hmac.compare_digest(x_admin_token, config.ADMIN_TOKEN):
        return {"id": None, "org_roles": {}, "is_system_admin": True, "auth_source": "admin_token"}

    token = _extract_bearer(authorization)
    if not token:
        _log_auth_failure("missing_token", trace_id)
        raise _unauthorized("missing_token", trace_id, message="Authentication required")

    try:
        payload = decode_access_token(token)
    except HTTPException as exc:
        reason = "token_expired" if "expired" in str(exc.detail).lower() else "signature_invalid"
        _log_auth_failure(reason, trace_id)
        raise _unauthorized(reason, trace_id) from exc

    user_id = str(payload.get("sub") or "").strip()
    if not user_id:
        _log_auth_failure("token_missing_subject", trace_id)
        raise _unauthorized("token_missing_subject", trace_id)

    roles = payload.get("org_roles") if isinstance(payload.get("org_roles"), dict) else {}
    return {
        "id": user_id,
        "org_roles": {str(k): str(v).lower() for k, v in roles.items()},
        "is_system_admin": bool(payload.get("is_system_admin")),
        "auth_source": "bearer",
    }


def _org_access(slug: str, principal: dict[str, Any], db, require_admin: bool) -> dict[str, Any]:
    organization = reporting_repo.get_organization_by_slug(db, slug)
    if not organization:
        raise HTTPException(status_code=404, detail="Organization not found")

    if principal.get("is_system_admin"):
        return {"organization": organization, "principal": principal, "role": "system_admin"}

    role = principal.get("org_roles", {}).get(slug)
    if role is None and principal.get("id"):
        role = reporting_repo.get_member_role(db, organization["id"], principal["id"])

    trace_id = str(uuid.uuid4())
    if role is None:
        _log_auth_failure("not_org_member", trace_id, slug, principal.get("id"))
        raise _unauthorized("not_org_member", trace_id, 403, "Forbidden: Organization membership required")
    if require_admin and role not in ADMIN_ROLES:
        _log_auth_failure("not_org_admin", trace_id, slug, principal.get("id"))
        raise _unauthorized("not_org_admin", trace_id, 403, "Forbidden: Admin access required")
    return {"organization": organization, "principal": principal, "role": role}


def require_org_member(
    slug: str,
    principal: dict[str, Any] = Depends(get_current_principal),
    db=Depends(get_db),
) -> dict[str, Any]:
    return _org_access(slug, principal, db, require_admin=False)


def require_org_admin(
    slug: str,
    principal: dict[str, Any] = Depends(get_current_principal),
    db=Depends(get_db),
) -> dict[str, Any]:
    return _org_access(slug, principal, db, require_admin=True)

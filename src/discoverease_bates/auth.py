"""Caller scope resolution for discoverease-bates.

Authentication and authorization happen upstream. The identity layer forwards
the resolved firm (tenant) and user as request headers; this module only turns
them into a TenantContext.
"""

import uuid
from dataclasses import dataclass

from fastapi import Header, HTTPException, status


@dataclass(frozen=True)
class TenantContext:
    """Resolved caller scope.

    Attributes:
        tenant_id: Firm that owns every row the caller may touch.
        user_id: Acting user, recorded on uploaded documents.
    """

    tenant_id: uuid.UUID
    user_id: uuid.UUID | None = None


def get_current_user(
    x_tenant_id: str | None = Header(default=None),
    x_user_id: str | None = Header(default=None),
) -> TenantContext:
    """Build the TenantContext from identity-layer headers.

    Raises:
        HTTPException: 401 if the tenant header is missing or malformed.
    """
    if not x_tenant_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing tenant scope")
    try:
        tenant_id = uuid.UUID(x_tenant_id)
        user_id = uuid.UUID(x_user_id) if x_user_id else None
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid caller scope") from exc
    return TenantContext(tenant_id=tenant_id, user_id=user_id)

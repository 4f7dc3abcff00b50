"""
Request-scoped principal resolution.

Authentication happens upstream; the gateway forwards the authenticated
identity in ``X-Principal-Id`` and ``X-Principal-Role``. The resolved
``Principal`` is passed explicitly into every engine call.
"""

from typing import Optional

from fastapi import Header, HTTPException
from pydantic import ValidationError

from .workflow.enums import Role
from .workflow.primitives import Principal


def get_principal(
    x_principal_id: Optional[str] = Header(default=None),
    x_principal_role: Optional[str] = Header(default=None),
) -> Principal:
    """FastAPI dependency returning the caller's principal."""
    if not x_principal_id:
        raise HTTPException(status_code=401, detail="Missing principal identity")
    if not x_principal_role:
        raise HTTPException(status_code=401, detail="Missing principal role")

    try:
        role = Role(x_principal_role.lower())
    except ValueError:
        raise HTTPException(
            status_code=401, detail=f"Unknown principal role '{x_principal_role}'"
        )

    try:
        return Principal(id=x_principal_id, role=role)
    except ValidationError:
        raise HTTPException(status_code=401, detail="Invalid principal identity")

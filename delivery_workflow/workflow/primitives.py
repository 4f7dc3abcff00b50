"""
Common primitives for the delivery workflow.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, constr
from ulid import ULID

from .enums import Role


def generate_ulid() -> str:
    """Generate a ULID for object IDs.

    ULIDs are lexicographically sortable and globally unique.
    """
    return str(ULID())


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


class Principal(BaseModel):
    """The authenticated actor for a single request.

    Resolved by the identity layer and passed explicitly into every engine
    call; no engine component reads session state on its own.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    id: constr(min_length=1, max_length=128) = Field(
        ..., description="Unique identifier for the principal"
    )
    role: Role = Field(..., description="Role resolved by the identity provider")
    display: Optional[constr(min_length=1, max_length=256)] = Field(
        None, description="Human-readable display name"
    )

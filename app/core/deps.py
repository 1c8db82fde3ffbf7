"""
Request-scoped dependencies shared by the routers.

Authentication happens upstream; by the time a request reaches this service
the owner id has been verified and is forwarded in the X-Owner-Id header.
"""
from datetime import date
from typing import Optional

from fastapi import Header, Query

from app.core.dates import local_today


def get_owner_id(
    x_owner_id: str = Header(
        ...,
        min_length=1,
        max_length=64,
        description="Opaque id of the already-authenticated owner.",
        examples=["user-42"],
    ),
) -> str:
    return x_owner_id


def get_today(
    tz: Optional[str] = Query(
        default=None,
        description="IANA timezone used to resolve today. Defaults to the server setting.",
        examples=["Europe/Madrid"],
    ),
) -> date:
    return local_today(tz)

"""
FastAPI dependencies for caller identity.

Authentication happens upstream; the gateway forwards the subject in
``X-User-Id`` (plus optional ``X-User-Email`` / ``X-User-Role``). Unknown
subjects are provisioned on first request.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from chatmeter.core import UnauthorizedError, user_id_ctx
from chatmeter.db import get_db
from chatmeter.db.models import User
from chatmeter.db.repositories import get_or_create_user

USER_ID_HEADER = "X-User-Id"
USER_EMAIL_HEADER = "X-User-Email"
USER_ROLE_HEADER = "X-User-Role"


async def require_user(
    request: Request,
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """
    Resolve the calling user from identity headers.

    Raises:
        UnauthorizedError: If ``X-User-Id`` is missing or blank.
    """
    external_id = (request.headers.get(USER_ID_HEADER) or "").strip()
    if not external_id:
        raise UnauthorizedError()

    user = get_or_create_user(
        db,
        external_id,
        email=request.headers.get(USER_EMAIL_HEADER) or None,
        role=request.headers.get(USER_ROLE_HEADER) or "user",
    )
    user_id_ctx.set(user.id)
    return user


RequireUser = Annotated[User, Depends(require_user)]

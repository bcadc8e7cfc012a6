"""User repository."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from chatmeter.db.models import User


def get_user_by_external_id(db: Session, external_id: str) -> User | None:
    """Look up a user by the identity provider's id."""
    stmt = select(User).where(User.external_id == external_id)
    return db.execute(stmt).scalar_one_or_none()


def get_or_create_user(
    db: Session,
    external_id: str,
    *,
    email: str | None = None,
    role: str = "user",
) -> User:
    """Return the user for ``external_id``, provisioning it on first sight."""
    user = get_user_by_external_id(db, external_id)
    if user is not None:
        return user

    user = User(external_id=external_id, email=email, role=role)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Provisioned by a concurrent request
        db.rollback()
        user = get_user_by_external_id(db, external_id)
        if user is None:
            raise
        return user
    db.refresh(user)
    return user

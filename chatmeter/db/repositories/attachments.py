"""Attachment lookups for prompt context."""

from sqlalchemy import select
from sqlalchemy.orm import Session

from chatmeter.core.errors import InvalidAttachmentError
from chatmeter.db.models import ATTACHMENT_READY, Attachment


def create_attachment(
    db: Session,
    user_id: str,
    *,
    file_name: str,
    mime_type: str,
    extracted_text: str | None = None,
    status: str = ATTACHMENT_READY,
    chat_id: str | None = None,
    size_bytes: int = 0,
    storage_key: str = "",
) -> Attachment:
    """Register an attachment record."""
    attachment = Attachment(
        user_id=user_id,
        chat_id=chat_id,
        file_name=file_name,
        mime_type=mime_type,
        size_bytes=size_bytes,
        storage_key=storage_key,
        status=status,
        extracted_text=extracted_text,
    )
    db.add(attachment)
    db.commit()
    db.refresh(attachment)
    return attachment


def get_ready_attachments(
    db: Session, user_id: str, attachment_ids: list[str]
) -> list[Attachment]:
    """
    Return the caller's ready attachments for the given ids.

    Raises:
        InvalidAttachmentError: if any id is unknown, owned by someone else,
            or not yet ready.
    """
    wanted = list(dict.fromkeys(attachment_ids))
    if not wanted:
        return []

    stmt = select(Attachment).where(
        Attachment.id.in_(wanted),
        Attachment.user_id == user_id,
        Attachment.status == ATTACHMENT_READY,
    )
    found = {attachment.id: attachment for attachment in db.execute(stmt).scalars().all()}
    if len(found) != len(wanted):
        missing = [attachment_id for attachment_id in wanted if attachment_id not in found]
        raise InvalidAttachmentError(details={"attachment_ids": missing})
    return [found[attachment_id] for attachment_id in wanted]

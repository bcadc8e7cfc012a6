"""Project a provider request into each upstream's message format."""

from typing import Any

from chatmeter.providers.base import ProviderAttachment, ProviderRequest


def _openai_role(role: str) -> str:
    role = role.lower()
    return role if role in ("assistant", "system") else "user"


def _anthropic_role(role: str) -> str:
    return "assistant" if role.lower() == "assistant" else "user"


def _attachment_prompt(attachment: ProviderAttachment) -> str:
    header = f"File: {attachment.file_name} ({attachment.mime_type})"
    if attachment.extracted_text and attachment.extracted_text.strip():
        return f"{header}\n{attachment.extracted_text}"
    return header


def attachment_context(attachments: list[ProviderAttachment]) -> dict[str, str] | None:
    """One trailing user message describing all attachments."""
    if not attachments:
        return None
    blocks = "\n\n".join(_attachment_prompt(attachment) for attachment in attachments)
    return {"role": "user", "content": "Attachment context:\n" + blocks}


def to_openai_messages(request: ProviderRequest) -> list[dict[str, Any]]:
    """System prompt first, then history, then attachment context."""
    messages: list[dict[str, Any]] = []
    if request.system_prompt and request.system_prompt.strip():
        messages.append({"role": "system", "content": request.system_prompt})

    messages.extend(
        {"role": _openai_role(message.role), "content": message.content}
        for message in request.messages
    )

    context = attachment_context(request.attachments)
    if context:
        messages.append(context)
    return messages


def to_anthropic_messages(request: ProviderRequest) -> list[dict[str, Any]]:
    """History and attachment context; the system prompt travels separately."""
    messages: list[dict[str, Any]] = [
        {"role": _anthropic_role(message.role), "content": message.content}
        for message in request.messages
    ]

    context = attachment_context(request.attachments)
    if context:
        messages.append(context)
    return messages


def joined_history(request: ProviderRequest) -> str:
    """History text used to estimate input tokens when usage is missing."""
    return "\n".join(message.content for message in request.messages)

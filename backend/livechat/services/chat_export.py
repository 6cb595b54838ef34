"""
Chat history export.
"""

import json
from typing import Literal

from livechat.models.chat import Chat, ChatRole

ExportFormat = Literal["json", "txt"]

MEDIA_TYPES: dict[str, str] = {
    "json": "application/json",
    "txt": "text/plain; charset=utf-8",
}


def export_filename(chat: Chat, fmt: ExportFormat) -> str:
    return f"chat-{chat.id}.{fmt}"


def render_export(chat: Chat, fmt: ExportFormat = "json") -> str:
    """Render a full chat history as a downloadable document."""
    if fmt == "json":
        return json.dumps(chat.to_wire(), ensure_ascii=False, indent=2)
    if fmt == "txt":
        return render_transcript(chat)
    raise ValueError(f"Unsupported export format: {fmt}")


def render_transcript(chat: Chat) -> str:
    """Plain-text transcript, one message per line."""
    lines = [
        f"Chat {chat.id}",
        f"Name: {chat.name}",
        f"Email: {chat.email or '-'}",
        f"Created: {chat.created_at.isoformat()}",
        f"Status: {chat.status.value}",
        f"Assigned: {chat.assigned_admin or '-'}",
        "",
    ]
    for message in chat.messages:
        if message.role == ChatRole.ADMIN:
            speaker = message.author or "admin"
        else:
            speaker = chat.name
        lines.append(f"[{message.ts.isoformat()}] {speaker}: {message.text}")
    return "\n".join(lines) + "\n"

from __future__ import annotations

from estate_chat.application.exceptions import ValidationError


def validate_content(content: str | None, max_length: int) -> str:
    if content is None or not content.strip():
        raise ValidationError("Message content is required")
    if len(content) > max_length:
        raise ValidationError(f"Message content exceeds {max_length} characters")
    return content

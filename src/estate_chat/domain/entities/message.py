from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Message:
    id: int
    conversation_id: int
    sender_id: int
    content: str
    created_at: datetime

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class Conversation:
    """One buyer, one seller, one property."""

    id: int
    buyer_id: int
    seller_id: int
    property_id: int
    created_at: datetime

    def has_participant(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def other_participant(self, user_id: int) -> int | None:
        if user_id == self.buyer_id:
            return self.seller_id
        if user_id == self.seller_id:
            return self.buyer_id
        return None

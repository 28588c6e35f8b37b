from __future__ import annotations

from dataclasses import dataclass

from estate_chat.domain.value_objects.enums import UserRole


@dataclass(frozen=True, slots=True)
class Principal:
    """Authenticated caller identity extracted from JWT."""

    user_id: int
    role: UserRole = UserRole.BUYER

    @property
    def is_buyer(self) -> bool:
        return self.role == UserRole.BUYER

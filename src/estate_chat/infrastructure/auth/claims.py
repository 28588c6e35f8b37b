from __future__ import annotations

from typing import Any

from estate_chat.application.dto.principal import Principal
from estate_chat.domain.value_objects.enums import UserRole


def principal_from_claims(payload: dict[str, Any]) -> Principal:
    role_raw = payload.get("role", UserRole.BUYER)
    role = UserRole(role_raw) if role_raw in UserRole.__members__.values() else UserRole.BUYER
    return Principal(user_id=int(payload["sub"]), role=role)

"""Entrypoint: python -m estate_chat"""
from __future__ import annotations

import uvicorn

from estate_chat.config import settings


def main() -> None:
    uvicorn.run(
        "estate_chat.app:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        log_level=settings.LOG_LEVEL,
    )


if __name__ == "__main__":
    main()

"""Run the Staunton chat API: python -m staunton_chat"""
from __future__ import annotations

import uvicorn

from staunton_chat.config import settings


def main() -> None:
    uvicorn.run(
        "staunton_chat.app:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level=settings.LOG_LEVEL,
        ws_ping_interval=settings.WS_HEARTBEAT_SECONDS,
    )


if __name__ == "__main__":
    main()

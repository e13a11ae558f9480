from __future__ import annotations

import asyncio

from devkit.observability import configure_logging

from presence.agent import build_agent
from presence.config import HeartbeatSettings


def main() -> None:
    settings = HeartbeatSettings()
    configure_logging(settings.LOG_LEVEL)
    agent = build_agent(settings)
    try:
        asyncio.run(agent.run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

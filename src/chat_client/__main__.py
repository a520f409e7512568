"""Entrypoint: python -m chat_client"""
from __future__ import annotations

import asyncio
import logging

from chat_client.app import running_client
from chat_client.config import settings


async def _run() -> None:
    async with running_client(settings):
        await asyncio.Event().wait()


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()

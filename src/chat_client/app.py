from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import redis.asyncio as aioredis

from chat_client.application.ports.clock import SystemClock
from chat_client.application.ports.render import RenderSurface
from chat_client.application.ports.session import SessionState
from chat_client.application.ports.transport import ChatApi, ChatTransport
from chat_client.config import ChatOptions, Settings, settings
from chat_client.infrastructure.bus.redis_pubsub import RedisCommandPublisher, RedisEventSource
from chat_client.infrastructure.http.chat_api import HttpChatApi
from chat_client.infrastructure.render.logging_surface import LoggingRenderSurface
from chat_client.infrastructure.scheduling.asyncio_scheduler import AsyncioScheduler
from chat_client.infrastructure.session import SessionFlags
from chat_client.services.chat_controller import ChatController

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChatClient:
    controller: ChatController
    api: HttpChatApi
    events: RedisEventSource
    commands: RedisCommandPublisher
    session: SessionState


def create_controller(
    transport: ChatTransport,
    api: ChatApi,
    render: RenderSurface,
    session: SessionState,
    config: Settings = settings,
) -> ChatController:
    return ChatController(
        transport,
        api,
        render,
        session,
        AsyncioScheduler(),
        SystemClock(),
        ChatOptions.from_settings(config),
    )


@asynccontextmanager
async def running_client(
    config: Settings = settings,
    *,
    render: RenderSurface | None = None,
    session: SessionState | None = None,
) -> AsyncIterator[ChatClient]:
    """Startup / shutdown lifecycle of a fully wired chat client."""
    redis = aioredis.from_url(config.REDIS_URL, decode_responses=True)
    logger.info("Redis connection pool created")

    session = session or SessionFlags(user_id=config.CURRENT_USER_ID)
    commands = RedisCommandPublisher(redis, config.REDIS_COMMANDS_CHANNEL)
    api = HttpChatApi(config.API_BASE_URL, config.API_TOKEN, timeout=config.HTTP_TIMEOUT_SECONDS)
    controller = create_controller(commands, api, render or LoggingRenderSurface(), session, config)
    events = RedisEventSource(redis, config.events_channel, controller.dispatch)

    await commands.start()
    await events.start()
    await controller.start()
    try:
        yield ChatClient(controller=controller, api=api, events=events, commands=commands, session=session)
    finally:
        await events.stop()
        await controller.stop()
        await commands.stop()
        await api.aclose()
        await redis.aclose()
        logger.info("Redis connection pool closed")

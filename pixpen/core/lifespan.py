from __future__ import annotations

from contextlib import asynccontextmanager
from fastapi import FastAPI
from loguru import logger

from pixpen.core.config import Settings
from pixpen.dependencies.container import Container
from pixpen.services.gemini import GeminiClient


def build_lifespan(settings: Settings, gemini: GeminiClient | None = None):
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        container = Container.from_settings(settings, gemini=gemini)
        await container.start()
        app.state.container = container
        logger.info(f"{settings.app_name} started ({settings.app_env})")

        yield

        await container.stop()
        logger.info(f"{settings.app_name} stopped")

    return lifespan

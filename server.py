"""Booking API entry point.

Run with:
    python server.py
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from dotenv import load_dotenv
from fastapi import FastAPI
from loguru import logger

from booking.api.app import create_app
from booking.config import AppConfig
from booking.factory import build_booking_service


def build_app(config: AppConfig) -> FastAPI:
    service = build_booking_service(config)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        logger.info("Booking API started")
        try:
            yield
        finally:
            await service.close()
            logger.info("Booking API stopped")

    return create_app(service, title=config.api.title, lifespan=lifespan)


def main() -> None:
    load_dotenv()
    config = AppConfig()
    uvicorn.run(build_app(config), host=config.api.host, port=config.api.port)


if __name__ == "__main__":
    main()

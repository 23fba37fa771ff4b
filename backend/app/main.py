"""FastAPI app factory."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import Settings, settings

load_dotenv()

logging.basicConfig(
    level=getattr(logging, settings.relay_log_level.upper(), logging.DEBUG),
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    app_settings = app_settings or settings

    app = FastAPI(
        title="Drawing Relay",
        description="Relays tablet drawings to projectors with OCR + delegated shape moderation",
        version="0.1.0",
        lifespan=_lifespan,
    )
    app.state.settings = app_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from app.api.router import api_router, ws_router

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build the per-process moderation pipeline; tear its timers down on exit."""
    from app.moderation.classifier import ContentClassifier, TesseractRecognizer
    from app.moderation.config import ModerationConfig
    from app.moderation.pipeline import create_pipeline

    app_settings: Settings = app.state.settings

    recognizer = None
    if app_settings.ocr_enabled:
        recognizer = TesseractRecognizer.create(
            language=app_settings.ocr_language,
            tesseract_cmd=app_settings.tesseract_cmd,
        )
    else:
        logger.info("OCR disabled by configuration")

    app.state.pipeline = create_pipeline(
        classifier=ContentClassifier(recognizer),
        config=ModerationConfig.from_settings(app_settings),
    )
    logger.info("Relay ready (env=%s)", app_settings.relay_env)

    try:
        yield
    finally:
        app.state.pipeline.shutdown()


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port)

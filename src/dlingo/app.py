import logging
import os
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from typing import Optional

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from .catalog import ContentCatalog
from .config import settings
from .globals import catalog as default_catalog
from .models import SpeechOptions
from .router import router
from .speech import EdgeSpeechBackend, Pronouncer, SpeechBackend, VoiceRegistry
from .state import StateStore


# --- Logging Setup ---
def setup_logging():
    logger = logging.getLogger("dlingo")
    logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)

    if not os.path.exists(settings.LOG_DIR):
        os.makedirs(settings.LOG_DIR, exist_ok=True)
    log_path = os.path.join(settings.LOG_DIR, settings.LOG_FILE)
    if not any(isinstance(h, RotatingFileHandler) for h in logger.handlers):
        file_handler = RotatingFileHandler(
            log_path, maxBytes=5_000_000, backupCount=3, encoding="utf-8"
        )
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(levelname)s - %(message)s")
        )
        logger.addHandler(file_handler)
    # Also configure root logger to see logs from other libraries
    logging.basicConfig(level=logging.INFO)


# --- Lifecycle ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.catalog.load_all()
    app.state.store.reset()
    # Voices may arrive later; pronunciation falls back to the default voice
    app.state.voice_registry.start()
    yield
    await app.state.voice_registry.stop()


# --- App Factory ---
def create_app(
    speech_backend: Optional[SpeechBackend] = None,
    speech_enabled: bool = settings.SPEECH_ENABLED,
    catalog: Optional[ContentCatalog] = None,
) -> FastAPI:
    setup_logging()
    app = FastAPI(
        title=settings.PROJECT_NAME,
        debug=settings.DEBUG,
        lifespan=lifespan,
        root_path=settings.ROOT_PATH,
    )

    if speech_enabled and speech_backend is None:
        speech_backend = EdgeSpeechBackend()
    registry = VoiceRegistry(
        speech_backend if speech_enabled else None, settings.SPEECH_LANGUAGE
    )

    app.state.catalog = catalog or default_catalog
    app.state.store = StateStore()
    app.state.voice_registry = registry
    app.state.pronouncer = Pronouncer(
        registry,
        SpeechOptions(
            language=settings.SPEECH_LANGUAGE,
            rate=settings.SPEECH_RATE,
            pitch=settings.SPEECH_PITCH,
            volume=settings.SPEECH_VOLUME,
        ),
    )

    app.mount("/static", StaticFiles(directory=settings.STATIC_DIR), name="static")

    app.include_router(router)

    return app

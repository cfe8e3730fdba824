"""
Greenius - Main FastAPI Application
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from .config import settings
from .api import chat_router, config_router, sessions_router
from .core.logging_config import setup_logging
from .llm import ChatTransport, create_llm_provider
from .storage import LocalStorage, StatePersistence

# Logger will be initialized after setup_logging() is called
logger = logging.getLogger(__name__)


def build_transport() -> ChatTransport:
    """Transport for the configured provider; requests fail cleanly without an API key."""
    provider = create_llm_provider(
        provider=settings.llm_provider,
        api_key=settings.llm_api_key,
        model=settings.llm_model,
        base_url=settings.llm_base_url,
        timeout=settings.llm_timeout,
    )
    if provider is None:
        logger.warning("LLM_API_KEY is not set; chat requests will fail")
    return ChatTransport(provider)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events."""
    # Startup
    setup_logging(settings)

    storage = LocalStorage(settings.local_storage_path)
    persistence = StatePersistence(storage, settings.state_file)
    store = await persistence.load(
        transport=build_transport(),
        system_prompt=settings.system_prompt,
        revert_window=settings.revert_window_seconds,
    )
    app.state.persistence = persistence
    app.state.chat_store = store

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Storage path: {settings.local_storage_path}")
    logger.info(f"Log level: {settings.log_level.upper()}")
    yield
    # Shutdown
    stopped = app.state.chat_store.stop_all()
    if stopped:
        logger.info(f"Stopped {stopped} in-flight responses")
    await app.state.persistence.save(app.state.chat_store)
    logger.info(f"Shutting down {settings.app_name}")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Multi-session chat orchestration for the Greenius agriculture assistant",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(sessions_router)
app.include_router(chat_router)
app.include_router(config_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "app": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "storage": settings.storage_type,
        "llm_configured": app.state.chat_store.transport.provider is not None,
        "version": settings.app_version
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "greenius.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )

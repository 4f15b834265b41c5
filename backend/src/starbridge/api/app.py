from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load environment variables
load_dotenv()

# Setup logging first before any other imports that might use logger
from starbridge.logging_config import setup_logging  # noqa: E402

logger = setup_logging()

from starbridge import __version__  # noqa: E402
from starbridge.api.routes.campaigns import router as campaigns_router  # noqa: E402
from starbridge.config.settings import get_settings  # noqa: E402
from starbridge.connection.socketio_server import (  # noqa: E402
    create_sio,
    create_socketio_app,
    register_handlers,
)
from starbridge.runtime import CoordinationRuntime  # noqa: E402

settings = get_settings()
sio = create_sio(settings)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    runtime = CoordinationRuntime(transport=sio, settings=settings)
    await runtime.start()
    register_handlers(sio, runtime, settings.socketio_namespace)
    app.state.runtime = runtime
    logger.info("[OK] Starbridge API started (%s)", settings.environment)

    yield

    # Shutdown
    logger.info("Shutting down Starbridge API server...")
    await runtime.close()
    app.state.runtime = None
    logger.info("[OK] API server shutdown complete")


app = FastAPI(title="Starbridge Operations API", version=__version__, lifespan=lifespan)

# Wrap FastAPI app with Socket.IO for real-time communication.
# Use socket_app for uvicorn.
socket_app = create_socketio_app(sio, app)

app.include_router(campaigns_router)

# CORS follows the same allowlist as Socket.IO
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.cors_origins == "*" else settings.cors_origins,
    allow_credentials=settings.cors_origins != "*",
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/api/health")
async def health_check():
    """Health check endpoint for monitoring."""
    runtime = getattr(app.state, "runtime", None)
    database = False
    if runtime is not None and runtime.db_manager.is_initialized:
        database = await runtime.db_manager.test_connection()
    return {
        "status": "healthy",
        "service": "Starbridge Operations API",
        "database": database,
    }

"""Main FastAPI application with WebSocket support."""

import asyncio
import uuid
from contextlib import asynccontextmanager, suppress

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api import auth_routes, calorie_routes, dashboard_routes, settings_routes, weight_routes, workout_routes
from api.dependencies import get_session_manager, get_ws_user
from api.websocket_handler import ws_handler
from config.settings import settings
from models.database import close_mongo_connection, get_client, get_database, init_mongo
from schemas.auth import UserPublic
from services.auth_service import AuthProvider
from services.auth_store import MongoAuthStore
from services.session_manager import SessionManager
from services.store import MongoDocumentStore, StoreError
from utils.logger import setup_logger

logger = setup_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup/shutdown events."""
    # Startup
    logger.info("Starting application...")
    await init_mongo()
    database = get_database()
    store = MongoDocumentStore(get_client(), database)
    app.state.auth = AuthProvider(MongoAuthStore(database))
    app.state.sessions = SessionManager(store, app.state.auth)
    app.state.sweeper = asyncio.create_task(app.state.sessions.run_sweeper(settings.session_sweep_interval))
    logger.info("Application started successfully")

    yield

    # Shutdown
    logger.info("Shutting down application...")
    app.state.sweeper.cancel()
    with suppress(asyncio.CancelledError):
        await app.state.sweeper
    await app.state.sessions.close()
    await close_mongo_connection()
    logger.info("Application shut down")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Personal fitness dashboard: calories, workouts, steps and weight",
    lifespan=lifespan,
)

# Remove duplicates while preserving order
unique_origins = list(dict.fromkeys(settings.cors_origins))
logger.info(f"CORS configured with origins: {unique_origins}")

app.add_middleware(
    CORSMiddleware,
    allow_origins=unique_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@app.exception_handler(StoreError)
async def store_error_handler(request: Request, exc: StoreError):
    """Store failures reach the client instead of vanishing; nothing is retried."""
    logger.error(f"Store error on {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=503, content={"detail": "Store unavailable, the change was not saved"})


# Include API routes
app.include_router(auth_routes.router)
app.include_router(calorie_routes.router)
app.include_router(workout_routes.router)
app.include_router(weight_routes.router)
app.include_router(settings_routes.router)
app.include_router(dashboard_routes.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": settings.app_name,
        "version": settings.app_version,
        "status": "running",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": settings.app_name,
    }


@app.websocket("/ws/app-data")
async def app_data_websocket(
    websocket: WebSocket,
    user: UserPublic = Depends(get_ws_user),
    sessions: SessionManager = Depends(get_session_manager),
):
    """Push the signed-in user's data on connect and after every change."""
    if user is None:
        await websocket.close(code=4401)
        return

    connection_id = str(uuid.uuid4())
    await ws_handler.connect(websocket, connection_id)
    try:
        await ws_handler.stream_app_data(connection_id, sessions.ensure(user.id), user.id)
    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: {connection_id}")
    finally:
        ws_handler.disconnect(connection_id)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )

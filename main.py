# main.py - Session signaling server

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from dotenv import load_dotenv
import logging
import uvicorn

# Load environment variables
load_dotenv()

# Import route modules
from routes.room_management import router as room_router
from routes.participant_management import router as participant_router
from signaling import router as signaling_router, SignalingCoordinator
from room_manager import RoomRegistry
from config.settings import (
    validate_environment,
    get_allowed_origins,
    get_environment,
    get_host,
    get_log_level,
    get_port,
    is_production,
)

logging.basicConfig(
    level=get_log_level(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle app startup and shutdown"""
    # Startup
    logger.info("Starting up session signaling server")
    try:
        validate_environment()
        logger.info("Environment validation passed")
    except Exception as e:
        logger.error(f"Environment validation failed: {e}")
        raise

    app.state.coordinator = SignalingCoordinator(RoomRegistry())

    yield

    # Shutdown
    coordinator = app.state.coordinator
    logger.info(
        f"Shutting down session signaling server "
        f"({len(coordinator.rooms_snapshot())} rooms, {len(coordinator.connections)} connections dropped)"
    )
    await coordinator.close()

app = FastAPI(
    title="Session Signaling API",
    description="WebRTC signaling and presence for scheduled skill-swap sessions",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if is_production() else "/docs",
    redoc_url=None if is_production() else "/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_allowed_origins(),
    allow_credentials=True,
    allow_methods=["GET", "OPTIONS"],
    allow_headers=["*"],
)

# Include routers
app.include_router(signaling_router)
app.include_router(room_router, prefix="/api", tags=["Room Management"])
app.include_router(participant_router, prefix="/api", tags=["Participant Management"])

@app.get("/")
async def root():
    return {
        "message": "Session Signaling API",
        "status": "running",
        "version": "1.0.0",
        "environment": get_environment(),
        "endpoints": {
            "signaling": "/ws",
            "list_rooms": "/api/rooms",
            "room_info": "/api/room/{session_id}",
            "participants": "/api/room/{session_id}/participants",
            "health": "/health"
        }
    }

@app.get("/health")
async def health_check():
    coordinator = app.state.coordinator
    return {
        "status": "healthy",
        "active_rooms": len(coordinator.rooms_snapshot()),
        "connections": len(coordinator.connections),
        "environment": get_environment(),
    }

@app.exception_handler(500)
async def internal_server_error_handler(request, exc):
    logger.error(f"Internal server error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": "An unexpected error occurred"
        }
    )

@app.exception_handler(404)
async def not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not found",
            "message": getattr(exc, "detail", "The requested endpoint does not exist"),
            "available_endpoints": [
                "/ws",
                "/api/rooms",
                "/api/room/{session_id}",
                "/api/room/{session_id}/participants",
                "/health"
            ]
        }
    )

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host=get_host(),
        port=get_port(),
        reload=False,
        log_level=get_log_level().lower(),
        access_log=True,
        workers=1,  # rooms live in this process's memory
    )

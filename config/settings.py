import os
import logging

logger = logging.getLogger(__name__)

DEFAULT_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",  # Vite dev server
]

LOG_LEVELS = ["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"]

def get_host():
    return os.getenv("HOST", "0.0.0.0")

def get_port():
    return int(os.getenv("PORT", 4000))

def get_log_level():
    return os.getenv("LOG_LEVEL", "INFO").upper()

def get_environment():
    return os.getenv("ENVIRONMENT", "development")

def is_production():
    return get_environment() == "production"

def get_allowed_origins():
    """Origins from ALLOWED_ORIGINS, or the local dev servers when unset"""
    env_origins = os.getenv("ALLOWED_ORIGINS", "").split(",")
    env_origins = [origin.strip() for origin in env_origins if origin.strip()]
    return env_origins or list(DEFAULT_ORIGINS)

def validate_environment():
    """Validate the signaling server settings, raising RuntimeError on the first bad value"""
    try:
        port = get_port()
    except ValueError:
        raise RuntimeError(f"PORT must be an integer, got {os.getenv('PORT')!r}")
    if not 0 < port < 65536:
        raise RuntimeError(f"PORT must be between 1 and 65535, got {port}")

    log_level = get_log_level()
    if log_level not in LOG_LEVELS:
        raise RuntimeError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    logger.debug(f"Configuration: host={get_host()} port={port} environment={get_environment()}")
